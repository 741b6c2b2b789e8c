"""npm 레지스트리 메타데이터 보강 테스트 (httpx.MockTransport)."""
import asyncio

import httpx
import pytest

from backend.common.config import EnrichmentSettings
from backend.core.models import DependencyRecord, DependencyType
from backend.core.registry_core import (
    apply_registry_metadata,
    fetch_package_metadata,
    registry_url_for,
)

REGISTRY = "https://registry.test"


def _dep(name: str, **fields) -> DependencyRecord:
    return DependencyRecord(name, "1.0.0", DependencyType.DEPENDENCIES, **fields)


def _settings(**overrides) -> EnrichmentSettings:
    values = {"registry_url": REGISTRY, "metadata_timeout": 0.2, "metadata_concurrency": 2}
    values.update(overrides)
    return EnrichmentSettings(**values)


class TestApplyRegistryMetadata:
    def test_sets_description_and_homepage(self):
        dep = apply_registry_metadata(_dep("axios"), {
            "description": "Promise based HTTP client",
            "homepage": "https://axios-http.com",
        })
        assert dep.description == "Promise based HTTP client"
        assert dep.homepage == "https://axios-http.com"

    def test_homepage_from_repository(self):
        dep = apply_registry_metadata(_dep("lodash"), {
            "repository": {"type": "git", "url": "git+https://github.com/lodash/lodash.git"},
        })
        assert dep.homepage == "https://github.com/lodash/lodash"

    def test_never_clears_existing_fields(self):
        original = _dep("left-pad", description="pads", homepage="https://example.com")
        assert apply_registry_metadata(original, {"description": "", "homepage": None}) == original
        assert apply_registry_metadata(original, "not json") == original

    def test_scoped_name_is_encoded(self):
        assert registry_url_for("@types/node", REGISTRY + "/") == "https://registry.test/@types%2Fnode"


class TestFetchPackageMetadata:
    @pytest.mark.asyncio
    async def test_enriches_in_order(self, mock_transport_factory):
        payloads = {
            "/react": {"description": "UI library", "homepage": "https://react.dev"},
            "/axios": {"description": "HTTP client"},
        }

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=payloads[request.url.path])

        transport, seen = mock_transport_factory(handler)
        deps = [_dep("react"), _dep("axios")]
        async with httpx.AsyncClient(transport=transport) as client:
            result = await fetch_package_metadata(deps, client, settings=_settings())

        assert result is not deps
        assert [d.name for d in result] == ["react", "axios"]
        assert result[0].homepage == "https://react.dev"
        assert result[1].description == "HTTP client"
        assert len(seen) == 2

    @pytest.mark.asyncio
    async def test_timeout_leaves_record_unchanged(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(1)
            return httpx.Response(200, json={"description": "too late"})

        deps = [_dep("left-pad")]
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await fetch_package_metadata(deps, client, settings=_settings(metadata_timeout=0.05))

        assert result == deps
        assert result[0].description is None
        assert result[0].homepage is None

    @pytest.mark.asyncio
    async def test_every_request_failing_returns_equal_list(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("network down", request=request)

        deps = [_dep("a", description="kept"), _dep("b"), _dep("c", homepage="https://c.dev")]
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await fetch_package_metadata(deps, client, settings=_settings())

        assert result == deps

    @pytest.mark.asyncio
    async def test_non_2xx_and_malformed_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/missing":
                return httpx.Response(404, json={"error": "Not found"})
            return httpx.Response(200, content=b"<html>oops</html>")

        deps = [_dep("missing"), _dep("broken")]
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await fetch_package_metadata(deps, client, settings=_settings())

        assert result == deps

    @pytest.mark.asyncio
    async def test_batches_bound_concurrency(self):
        active = 0
        peak = 0

        async def handler(request: httpx.Request) -> httpx.Response:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return httpx.Response(200, json={"description": request.url.path})

        deps = [_dep(f"pkg{i}") for i in range(5)]
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await fetch_package_metadata(deps, client, settings=_settings(metadata_concurrency=2))

        assert peak <= 2
        assert [d.description for d in result] == [f"/pkg{i}" for i in range(5)]

    @pytest.mark.asyncio
    async def test_idempotent(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"description": "same"})

        deps = [_dep("x")]
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            once = await fetch_package_metadata(deps, client, settings=_settings())
            twice = await fetch_package_metadata(once, client, settings=_settings())

        assert once == twice

    @pytest.mark.asyncio
    async def test_empty_list(self):
        assert await fetch_package_metadata([], settings=_settings()) == []
