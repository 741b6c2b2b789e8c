"""로고 탐색 테스트."""
import asyncio

import httpx
import pytest

from backend.common.config import EnrichmentSettings
from backend.core.logo_core import (
    fallback_logo_url,
    logo_candidates,
    resolve_logo,
    resolve_logos,
    simplify_name,
)
from backend.core.models import PLACEHOLDER_LOGO_URL, DependencyRecord, DependencyType


class TestCandidates:
    def test_order(self):
        assert logo_candidates("@babel/core") == [
            "https://cdn.jsdelivr.net/npm/@babel/core/logo.png",
            "https://unpkg.com/@babel/core/logo.png",
            "https://cdn.jsdelivr.net/gh/simple-icons/simple-icons/icons/babel-core.svg",
        ]

    def test_simplify_name(self):
        assert simplify_name("@Vue/CLI") == "vue-cli"

    def test_fallback_badge(self):
        assert fallback_logo_url("react") == "https://img.shields.io/npm/v/react.svg"
        assert fallback_logo_url("@types/node") == "https://img.shields.io/npm/v/@types/node.svg"


class TestResolveLogo:
    @pytest.mark.asyncio
    async def test_first_success_wins(self, mock_transport_factory):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200 if request.url.host == "unpkg.com" else 404)

        transport, seen = mock_transport_factory(handler)
        async with httpx.AsyncClient(transport=transport) as client:
            url = await resolve_logo("express", client)

        assert url == "https://unpkg.com/express/logo.png"
        assert [r.method for r in seen] == ["HEAD", "HEAD"]

    @pytest.mark.asyncio
    async def test_nothing_found_gives_badge(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("offline", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            url = await resolve_logo("definitely-not-a-real-package-xyz", client)

        assert url == "https://img.shields.io/npm/v/definitely-not-a-real-package-xyz.svg"

    @pytest.mark.asyncio
    async def test_overall_deadline(self):
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(1)
            return httpx.Response(200)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            url = await asyncio.wait_for(resolve_logo("slow", client, timeout=0.05), timeout=0.5)

        assert url == fallback_logo_url("slow")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("name", ["", "a b", "@scope/", "한글"])
    async def test_never_empty(self, name):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            url = await resolve_logo(name, client)

        assert url.startswith("https://img.shields.io/npm/v/")


class TestResolveLogos:
    @pytest.mark.asyncio
    async def test_replaces_placeholder(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200 if "simple-icons" in request.url.path else 404)

        deps = [
            DependencyRecord("react", "18", DependencyType.DEPENDENCIES, logo_url=PLACEHOLDER_LOGO_URL),
            DependencyRecord("vite", "5", DependencyType.DEV_DEPENDENCIES, logo_url=PLACEHOLDER_LOGO_URL),
        ]
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            result = await resolve_logos(deps, client, settings=EnrichmentSettings(logo_concurrency=1))

        assert [d.logo_url for d in result] == [
            "https://cdn.jsdelivr.net/gh/simple-icons/simple-icons/icons/react.svg",
            "https://cdn.jsdelivr.net/gh/simple-icons/simple-icons/icons/vite.svg",
        ]
        assert deps[0].logo_url == PLACEHOLDER_LOGO_URL
