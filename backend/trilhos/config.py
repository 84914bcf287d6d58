"""
Application Configuration

Uses Pydantic Settings for type-safe configuration.
"""

from pathlib import Path
from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator, ConfigDict


class Settings(BaseSettings):
    """Application settings with validation."""

    # === Core ===
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")

    # === Database ===
    database_url: str = Field(
        default="sqlite:///./trilhos.db",
        description="Database connection URL"
    )

    # === CORS ===
    cors_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"],
        description="Allowed CORS origins"
    )

    # === Reverse geocoding (Nominatim) ===
    geocoder_url: str = Field(
        default="https://nominatim.openstreetmap.org/reverse",
        description="Reverse geocoding endpoint"
    )
    geocoder_user_agent: str = Field(default="Trilhos GPS Tracker")
    geocoder_timeout_seconds: float = Field(default=5.0)

    # === Tracking client ===
    api_base_url: str = Field(
        default="http://localhost:8000/api/v1",
        description="Route API used by the tracking client"
    )
    api_timeout_seconds: float = Field(default=10.0)
    cache_dir: Optional[Path] = Field(
        default=None,
        description="Directory for the pending route slot (disabled when unset)"
    )

    # === Auto-save ===
    auto_save_interval_seconds: float = Field(default=30.0)
    auto_save_point_threshold: int = Field(default=10)

    # === Geolocation ===
    geolocation_high_accuracy: bool = Field(default=True)
    geolocation_initial_timeout_seconds: float = Field(default=10.0)
    geolocation_watch_timeout_seconds: float = Field(default=5.0)
    geolocation_maximum_age_seconds: float = Field(default=1.5)

    # === Policies ===
    clear_cache_on_failed_completion: bool = Field(
        default=True,
        description="Drop the pending route even when completing it fails"
    )
    sample_order_policy: str = Field(
        default="pass_through",
        description="pass_through | reject (drop samples older than the last one)"
    )

    @field_validator('database_url')
    @classmethod
    def fix_postgres_url(cls, v: str) -> str:
        """Fix Render/Railway postgres:// URL to postgresql://"""
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @field_validator('cors_origins', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(',')]
        return v

    @field_validator('sample_order_policy')
    @classmethod
    def check_sample_order_policy(cls, v: str) -> str:
        if v not in ("pass_through", "reject"):
            raise ValueError("sample_order_policy must be 'pass_through' or 'reject'")
        return v

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Global settings instance
settings = Settings()
