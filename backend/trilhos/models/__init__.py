"""
Database Models

Feature models live next to their feature (``trilhos.features.*.models``)
and register themselves on the shared declarative ``Base``.
"""

from trilhos.models.base import Base

__all__ = ["Base"]
