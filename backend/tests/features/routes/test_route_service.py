"""
Tests for RouteService and RouteRepository.

Runs against an in-memory SQLite database.
"""

from datetime import timezone

import pytest

from trilhos.features.routes import (
    RouteCreate,
    RouteNotFoundError,
    RouteService,
    RouteUpdate,
    load_points,
    route_to_gpx,
)
from trilhos.shared.constants import RouteStatus
from trilhos.shared.geo import total_distance, duration
from conftest import make_sample, make_track


class StubGeocoder:
    def __init__(self, place="Rua Augusta"):
        self.place = place
        self.calls = 0

    async def reverse_geocode(self, lat, lon):
        self.calls += 1
        return self.place


class TestCreateRoute:

    async def test_create_with_name(self, db):
        service = RouteService(db)
        points = make_track(3)

        route = await service.create_route(RouteCreate(name="Walk", points=points), "u1")

        assert route.id is not None
        assert route.name == "Walk"
        assert route.user_id == "u1"
        assert route.status == RouteStatus.ACTIVE.value
        assert route.total_distance == pytest.approx(total_distance(points))
        assert route.duration == duration(points)

    async def test_points_stored_with_camel_case_keys(self, db):
        route = await RouteService(db).create_route(
            RouteCreate(name="Walk", points=[make_sample(altitude_accuracy=3.0)])
        )
        assert route.points[0]["altitudeAccuracy"] == 3.0
        assert load_points(route.points)[0].altitude_accuracy == 3.0

    async def test_generated_name_uses_geocoder(self, db):
        geocoder = StubGeocoder()
        route = await RouteService(db, geocoder).create_route(RouteCreate(points=[make_sample()]))

        assert geocoder.calls == 1
        assert route.name.startswith("Rua Augusta - ")

    async def test_generated_name_without_geocoder(self, db):
        route = await RouteService(db).create_route(RouteCreate(points=[make_sample()]))
        assert route.name.startswith("Route - ")

    async def test_started_at_becomes_created_at(self, db):
        start = make_sample()
        route = await RouteService(db).create_route(
            RouteCreate(name="Walk", points=[start], started_at=start.timestamp)
        )
        # SQLite drops the zone; stored values are UTC
        created_at = route.created_at.replace(tzinfo=timezone.utc)
        assert int(created_at.timestamp() * 1000) == start.timestamp

    def test_empty_points_rejected(self):
        with pytest.raises(ValueError):
            RouteCreate(name="Walk", points=[])


class TestUpdateRoute:

    async def test_points_update_recomputes_metrics(self, db):
        service = RouteService(db)
        route = await service.create_route(RouteCreate(name="Walk", points=make_track(1)))
        points = make_track(5)

        updated = await service.update_route(route.id, RouteUpdate(points=points))

        assert len(updated.points) == 5
        assert updated.total_distance == pytest.approx(total_distance(points))
        assert updated.duration == duration(points)

    async def test_complete(self, db):
        service = RouteService(db)
        route = await service.create_route(RouteCreate(name="Walk", points=make_track(2)))

        updated = await service.update_route(
            route.id, RouteUpdate(name="Evening", status=RouteStatus.COMPLETED)
        )

        assert updated.name == "Evening"
        assert updated.status == RouteStatus.COMPLETED.value
        assert len(updated.points) == 2

    async def test_owner_scoped_update(self, db):
        service = RouteService(db)
        route = await service.create_route(RouteCreate(name="Walk", points=make_track(2)), "u1")
        route_id = route.id

        with pytest.raises(RouteNotFoundError):
            await service.update_route(route_id, RouteUpdate(name="Hijack"), owner_id="u2")

        updated = await service.update_route(route_id, RouteUpdate(name="Mine"), owner_id="u1")
        assert updated.name == "Mine"

    async def test_unscoped_update_of_anonymous_route(self, db):
        service = RouteService(db)
        route = await service.create_route(RouteCreate(name="Walk", points=make_track(2)))

        updated = await service.update_route(route.id, RouteUpdate(status=RouteStatus.ABANDONED))
        assert updated.status == RouteStatus.ABANDONED.value

    async def test_missing_route(self, db):
        with pytest.raises(RouteNotFoundError):
            await RouteService(db).update_route(999, RouteUpdate(name="Ghost"))


class TestDeleteRoute:

    async def test_delete(self, db):
        service = RouteService(db)
        route = await service.create_route(RouteCreate(name="Walk", points=make_track(2)), "u1")

        await service.delete_route(route.id, owner_id="u1")

        assert await service.get_route(route.id) is None

    async def test_delete_other_users_route(self, db):
        service = RouteService(db)
        route = await service.create_route(RouteCreate(name="Walk", points=make_track(2)), "u1")
        route_id = route.id

        with pytest.raises(RouteNotFoundError):
            await service.delete_route(route_id, owner_id="u2")
        assert await service.get_route(route_id) is not None


class TestQueries:

    async def test_active_route_is_newest_for_user(self, db):
        service = RouteService(db)
        await service.create_route(RouteCreate(name="Old", points=make_track(1)), "u1")
        newest = await service.create_route(RouteCreate(name="New", points=make_track(1)), "u1")
        await service.create_route(RouteCreate(name="Other", points=make_track(1)), "u2")

        active = await service.get_active_route("u1")
        assert active.id == newest.id

    async def test_no_active_route(self, db):
        assert await RouteService(db).get_active_route("nobody") is None

    async def test_history_and_activity(self, db):
        service = RouteService(db)
        mine = await service.create_route(
            RouteCreate(name="Mine", points=make_track(2), status=RouteStatus.COMPLETED), "u1"
        )
        theirs = await service.create_route(
            RouteCreate(name="Theirs", points=make_track(2), status=RouteStatus.COMPLETED), "u2"
        )
        await service.create_route(RouteCreate(name="Active", points=make_track(2)), "u1")

        history = await service.get_history("u1")
        activity = await service.get_activity()

        assert [r.id for r in history] == [mine.id]
        assert {r.id for r in activity} == {mine.id, theirs.id}


class TestGPXExport:

    async def test_route_to_gpx(self, db):
        import gpxpy

        route = await RouteService(db).create_route(
            RouteCreate(name="Walk", points=make_track(3))
        )
        parsed = gpxpy.parse(route_to_gpx(route))

        assert parsed.tracks[0].name == "Walk"
        assert len(parsed.tracks[0].segments[0].points) == 3
