"""
HTTP-level tests for the item routes, /health and /metrics.
"""

import httpx
import pytest
import pytest_asyncio
from dependency_injector import providers
from unittest.mock import AsyncMock, patch

from core.container import container
from core.exceptions import StoreUnavailableError
from main import app
from tests.conftest import FakeSharedCache, UnreachableSharedCache, make_settings


@pytest_asyncio.fixture
async def api():
    """Fresh container wired to an embedded store and a fake shared cache."""
    shared = FakeSharedCache()
    container.settings.override(providers.Object(make_settings(cache_max=10)))
    container.shared_cache.override(providers.Object(shared))
    container.reset_singletons()

    await container.database().startup()
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        client.shared_cache = shared
        yield client

    await container.database().shutdown()
    container.shared_cache.reset_override()
    container.settings.reset_override()
    container.reset_singletons()


class TestItemRoutes:

    @pytest.mark.asyncio
    async def test_create_returns_201(self, api):
        response = await api.post("/v1/items", json={"name": "foo", "value": "bar"})

        assert response.status_code == 201
        body = response.json()
        assert body["name"] == "foo"
        assert body["value"] == "bar"
        assert isinstance(body["id"], int)

    @pytest.mark.asyncio
    async def test_create_then_read_from_memory(self, api):
        created = (await api.post("/v1/items", json={"name": "foo", "value": "bar"})).json()

        response = await api.get(f"/v1/items/{created['id']}")

        assert response.status_code == 200
        assert response.json() == {"source": "memory", "item": created}

    @pytest.mark.asyncio
    async def test_read_falls_back_to_store(self, api):
        created = await container.database().create_item("direct", None)

        first = await api.get(f"/v1/items/{created.id}")
        second = await api.get(f"/v1/items/{created.id}")

        assert first.json()["source"] == "store"
        assert first.json()["item"] == {"id": created.id, "name": "direct", "value": None}
        assert second.json()["source"] == "memory"

    @pytest.mark.asyncio
    async def test_read_from_shared_cache(self, api):
        api.shared_cache.data["77"] = ('{"id": 77, "name": "peer", "value": "v"}', 300)

        response = await api.get("/v1/items/77")

        assert response.status_code == 200
        assert response.json()["source"] == "shared"

    @pytest.mark.asyncio
    async def test_missing_item_is_404(self, api):
        response = await api.get("/v1/items/999")

        assert response.status_code == 404
        assert response.json() == {"error": "Not found"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/v1/items/0", "/v1/items/-3", "/v1/items/abc", f"/v1/items/{2 ** 63}"])
    async def test_invalid_id_is_400(self, api, path):
        response = await api.get(path)

        assert response.status_code == 400

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [{}, {"name": ""}, {"value": "bar"}])
    async def test_invalid_create_is_400_without_insert(self, api, payload):
        with patch.object(container.database(), "create_item", AsyncMock()) as store_create:
            response = await api.post("/v1/items", json=payload)

        assert response.status_code == 400
        assert "error" in response.json()
        store_create.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_whitespace_name_is_201(self, api):
        response = await api.post("/v1/items", json={"name": "   "})

        assert response.status_code == 201
        assert response.json()["name"] == "   "

    @pytest.mark.asyncio
    async def test_store_failure_is_500(self, api):
        with patch.object(container.database(), "create_item",
                          AsyncMock(side_effect=StoreUnavailableError("connection lost"))):
            response = await api.post("/v1/items", json={"name": "foo"})

        assert response.status_code == 500
        assert response.json() == {"error": "Internal server error"}


class TestSharedCacheOutage:

    @pytest.mark.asyncio
    async def test_read_succeeds_when_shared_cache_unreachable(self, api):
        container.shared_cache.override(providers.Object(UnreachableSharedCache()))
        container.item_service.reset()
        created = await container.database().create_item("foo", "bar")

        response = await api.get(f"/v1/items/{created.id}")

        assert response.status_code == 200
        assert response.json()["source"] == "store"

        health = (await api.get("/health")).json()
        assert health["shared_cache"] == "down"
        assert health["status"] == "degraded"


class TestOperationalEndpoints:

    @pytest.mark.asyncio
    async def test_health(self, api):
        await api.post("/v1/items", json={"name": "foo"})

        response = await api.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "up"
        assert body["shared_cache"] == "up"
        assert body["memory_cache_size"] == 1
        assert body["store_backend"] == "embedded"

    @pytest.mark.asyncio
    async def test_metrics_counts_hits_and_misses(self, api):
        created = (await api.post("/v1/items", json={"name": "foo"})).json()
        await api.get(f"/v1/items/{created['id']}")
        await api.get("/v1/items/999")

        response = await api.get("/metrics")

        assert response.status_code == 200
        text = response.text
        assert 'cache_hits_total{tier="memory"} 1.0' in text
        assert "cache_misses_total 1.0" in text
