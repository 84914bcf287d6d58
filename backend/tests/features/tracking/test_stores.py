"""
Tests for the remote route stores.

DatabaseRouteStore runs on the in-memory database. ApiRouteStore talks
to the real app through httpx.ASGITransport, and to MockTransport for
failure cases.
"""

import json

import httpx
import pytest

from trilhos.api.deps import get_geocoder
from trilhos.db.session import get_async_db
from trilhos.features.routes import RouteCreate, RouteUpdate
from trilhos.features.tracking import ApiRouteStore, DatabaseRouteStore, RouteStoreError
from trilhos.main import app
from trilhos.shared.constants import RouteStatus
from conftest import make_track


@pytest.fixture
def db_store(session_factory):
    return DatabaseRouteStore(session_factory)


@pytest.fixture
async def api_store(session_factory):
    async def override_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_async_db] = override_db
    app.dependency_overrides[get_geocoder] = lambda: None

    client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app))
    store = ApiRouteStore("http://test/api/v1", client=client)
    yield store

    await client.aclose()
    app.dependency_overrides.clear()


@pytest.fixture(params=["db", "api"])
def any_store(request, db_store, api_store):
    return db_store if request.param == "db" else api_store


class TestRouteStoreContract:

    async def test_insert_and_find(self, any_store):
        created = await any_store.insert(RouteCreate(name="Walk", points=make_track(3)), "u1")

        route = await any_store.find_by_id(created.id)

        assert created.name == "Walk"
        assert route.user_id == "u1"
        assert route.points == make_track(3)
        assert route.status == RouteStatus.ACTIVE

    async def test_generated_name(self, any_store):
        created = await any_store.insert(RouteCreate(points=make_track(1)))
        assert created.name.startswith("Route - ")

    async def test_update_points(self, any_store):
        created = await any_store.insert(RouteCreate(name="Walk", points=make_track(1)), "u1")

        await any_store.update(created.id, RouteUpdate(points=make_track(4)), "u1")

        route = await any_store.find_by_id(created.id)
        assert len(route.points) == 4
        assert route.duration == 15_000

    async def test_update_missing_is_404(self, any_store):
        with pytest.raises(RouteStoreError) as exc_info:
            await any_store.update(999, RouteUpdate(status=RouteStatus.ABANDONED))
        assert exc_info.value.status == 404

    async def test_update_other_users_route_is_404(self, any_store):
        created = await any_store.insert(RouteCreate(name="Walk", points=make_track(1)), "u1")

        with pytest.raises(RouteStoreError) as exc_info:
            await any_store.update(created.id, RouteUpdate(name="Mine now"), "u2")
        assert exc_info.value.status == 404

    async def test_delete(self, any_store):
        created = await any_store.insert(RouteCreate(name="Walk", points=make_track(1)), "u1")

        await any_store.delete(created.id, "u1")

        assert await any_store.find_by_id(created.id) is None

    async def test_find_active_for_user(self, any_store):
        assert await any_store.find_active_for_user("u1") is None

        created = await any_store.insert(RouteCreate(name="Walk", points=make_track(2)), "u1")

        active = await any_store.find_active_for_user("u1")
        assert active.id == created.id

    async def test_completed_lists(self, any_store):
        mine = await any_store.insert(
            RouteCreate(name="Mine", points=make_track(2), status=RouteStatus.COMPLETED), "u1"
        )
        theirs = await any_store.insert(
            RouteCreate(name="Theirs", points=make_track(2), status=RouteStatus.COMPLETED), "u2"
        )
        await any_store.insert(RouteCreate(name="Going", points=make_track(2)), "u1")

        history = await any_store.find_completed_for_user("u1")
        activity = await any_store.find_all_completed()

        assert [r.id for r in history] == [mine.id]
        assert [r.id for r in activity] == [theirs.id, mine.id]


class TestApiRouteStoreFailures:

    def store_for(self, handler) -> ApiRouteStore:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return ApiRouteStore("http://api.test/api/v1", client=client)

    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(RouteStoreError) as exc_info:
            await self.store_for(handler).insert(RouteCreate(points=make_track(1)))
        assert exc_info.value.status is None

    async def test_server_error(self):
        def handler(request):
            return httpx.Response(500, json={"detail": "boom"})

        with pytest.raises(RouteStoreError) as exc_info:
            await self.store_for(handler).update(1, RouteUpdate(points=make_track(2)))
        assert exc_info.value.status == 500
        assert "boom" in str(exc_info.value)

    async def test_non_json_error_body(self):
        def handler(request):
            return httpx.Response(502, text="Bad Gateway")

        with pytest.raises(RouteStoreError) as exc_info:
            await self.store_for(handler).find_all_completed()
        assert "Bad Gateway" in str(exc_info.value)

    async def test_request_shape(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["url"] = str(request.url)
            seen["user"] = request.headers.get("X-User-Id")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={})

        await self.store_for(handler).update(5, RouteUpdate(status=RouteStatus.COMPLETED), "u1")

        assert seen["method"] == "PATCH"
        assert seen["url"] == "http://api.test/api/v1/routes/5"
        assert seen["user"] == "u1"
        assert seen["body"] == {"status": "completed"}

    async def test_anonymous_sends_no_user_header(self):
        seen = {}

        def handler(request):
            seen["user"] = request.headers.get("X-User-Id")
            return httpx.Response(204)

        await self.store_for(handler).delete(5)
        assert seen["user"] is None

    async def test_close_leaves_injected_client_open(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(204)))
        store = ApiRouteStore("http://api.test", client=client)

        await store.close()

        assert not client.is_closed
        await client.aclose()
