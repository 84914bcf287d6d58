"""
Command line tools for Trilhos.

Usage:
    trilhos serve --port 8000
    trilhos replay track.gpx --name "Morning walk" --user-id <user_id>
    trilhos replay track.gpx --local --cache-dir ./cache
    trilhos pending show --cache-dir ./cache
    trilhos pending clear --cache-dir ./cache
"""

import asyncio
import logging
import sys
from pathlib import Path

import click

from trilhos.config import settings
from trilhos.shared.formatters import format_distance, format_duration, format_speed


@click.group()
@click.option("--log-level", default=None, help="Override LOG_LEVEL")
def cli(log_level):
    """Trilhos GPS route tracking."""
    logging.basicConfig(
        level=getattr(logging, (log_level or settings.log_level).upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)],
    )


@cli.command()
@click.option("--host", default="127.0.0.1")
@click.option("--port", default=8000, type=int)
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host, port, reload):
    """Run the API server."""
    import uvicorn

    uvicorn.run("trilhos.main:app", host=host, port=port, reload=reload)


@cli.command()
@click.argument("gpx_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--name", default=None, help="Name to save the route under (default: generated)")
@click.option("--user-id", default=None, help="Record the route as this user")
@click.option("--api-url", default=None, help="Route API base URL (default: API_BASE_URL)")
@click.option("--local", is_flag=True, help="Write to the database directly instead of the API")
@click.option("--cache-dir", default=None, type=click.Path(file_okay=False, path_type=Path),
              help="Pending route cache directory (default: CACHE_DIR)")
@click.option("--speedup", default=60.0, type=float, help="Replay speed multiplier")
@click.option("--discard", is_flag=True, help="Abandon the route instead of saving it")
def replay(gpx_file, name, user_id, api_url, local, cache_dir, speedup, discard):
    """
    Replay a GPX track through a tracking session.

    The track is fed as live positions: the route is created, auto-saved
    while points arrive, and completed (or abandoned) at the end.
    """
    asyncio.run(_run_replay(gpx_file, name, user_id, api_url, local, cache_dir, speedup, discard))


async def _run_replay(gpx_file, name, user_id, api_url, local, cache_dir, speedup, discard):
    """Async implementation of replay command."""
    from trilhos.features.routes import ReverseGeocoder
    from trilhos.features.tracking import (
        ApiRouteStore,
        DatabaseRouteStore,
        GPXReplaySource,
        PendingRouteCache,
        TrackingSession,
    )

    try:
        source = GPXReplaySource.from_file(gpx_file, speedup=speedup)
    except ValueError as e:
        raise click.ClickException(str(e))

    if local:
        from trilhos.db.session import AsyncSessionLocal, init_db
        init_db()
        store = DatabaseRouteStore(AsyncSessionLocal)
    else:
        store = ApiRouteStore(api_url)

    geocoder = ReverseGeocoder()
    session = TrackingSession.from_settings(
        source,
        store,
        current_user_id=lambda: user_id,
        geocoder=geocoder,
        cache=PendingRouteCache(cache_dir or settings.cache_dir),
    )

    try:
        await session.open()
        if session.has_route_to_resume:
            click.echo(f"Discarding unfinished route: {session.route_name}")
            await session.discard_route()

        click.echo(f"Replaying {len(source.samples)} points from {gpx_file.name} (x{speedup:g})")
        if not await session.start_tracking():
            raise click.ClickException(session.error or "Could not start tracking")

        while session.is_tracking and source.active:
            await asyncio.sleep(0.1)

        session.stop_tracking()
        await session.autosave.drain()
        if session.error:
            click.echo(f"Tracking stopped: {session.error}")

        stats = session.stats
        click.echo(
            f"Recorded {stats.point_count} points: {format_distance(stats.total_distance)}, "
            f"{format_duration(stats.duration)}, avg {format_speed(stats.average_speed)}"
        )

        if discard:
            ok = await session.discard_route()
            click.echo("Route discarded" if ok else "Route discarded locally (remote update failed)")
            return

        final_name = name or session.route_name
        if await session.save_route(final_name):
            click.echo(f"Saved route '{final_name}'")
        else:
            raise click.ClickException("Failed to save route")
    finally:
        await session.close()
        await store.close()
        await geocoder.close()


@cli.group()
def pending():
    """Inspect the local pending route slot."""
    pass


@pending.command("show")
@click.option("--cache-dir", default=None, type=click.Path(file_okay=False, path_type=Path))
def pending_show(cache_dir):
    """Show the cached pending route."""
    from trilhos.features.tracking import PendingRouteCache, compute_route_stats

    cache = PendingRouteCache(cache_dir or settings.cache_dir)
    if not cache.enabled:
        raise click.ClickException("No cache directory configured (--cache-dir or CACHE_DIR)")

    route = cache.load()
    if route is None:
        click.echo("No pending route.")
        return

    stats = compute_route_stats(route.points)
    click.echo(f"Name:       {route.name}")
    click.echo(f"Route ID:   {route.route_id if route.route_id is not None else '(not synced)'}")
    click.echo(f"Needs sync: {'yes' if route.needs_sync else 'no'}")
    click.echo(f"Points:     {stats.point_count}")
    click.echo(f"Distance:   {format_distance(stats.total_distance)}")
    click.echo(f"Duration:   {format_duration(stats.duration)}")


@pending.command("clear")
@click.option("--cache-dir", default=None, type=click.Path(file_okay=False, path_type=Path))
@click.confirmation_option(prompt="Drop the cached pending route?")
def pending_clear(cache_dir):
    """Drop the cached pending route."""
    from trilhos.features.tracking import PendingRouteCache

    cache = PendingRouteCache(cache_dir or settings.cache_dir)
    cache.clear()
    click.echo("Pending route cleared.")


if __name__ == "__main__":
    cli()
