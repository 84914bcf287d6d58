"""
Tests for the trilhos CLI.
"""

from click.testing import CliRunner

from trilhos.cli import cli
from trilhos.features.routes.schemas import PendingRoute
from trilhos.features.tracking import PendingRouteCache
from conftest import make_track, START_MS


def test_pending_show_empty(tmp_path):
    result = CliRunner().invoke(cli, ["pending", "show", "--cache-dir", str(tmp_path)])

    assert result.exit_code == 0
    assert "No pending route." in result.output


def test_pending_show(tmp_path):
    PendingRouteCache(tmp_path).save(PendingRoute(
        points=make_track(3, step_s=30), name="Cached walk", started_at=START_MS
    ))

    result = CliRunner().invoke(cli, ["pending", "show", "--cache-dir", str(tmp_path)])

    assert result.exit_code == 0
    assert "Cached walk" in result.output
    assert "(not synced)" in result.output
    assert "1:00" in result.output


def test_pending_clear(tmp_path):
    cache = PendingRouteCache(tmp_path)
    cache.save(PendingRoute(points=make_track(1), name="Cached", started_at=START_MS))

    result = CliRunner().invoke(cli, ["pending", "clear", "--cache-dir", str(tmp_path), "--yes"])

    assert result.exit_code == 0
    assert cache.load() is None


def test_replay_missing_file(tmp_path):
    result = CliRunner().invoke(cli, ["replay", str(tmp_path / "missing.gpx")])
    assert result.exit_code != 0
