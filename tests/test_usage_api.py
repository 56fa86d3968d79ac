"""Tests for the claude.ai usage client."""

from __future__ import annotations

import pytest
from aiohttp import web
from aiohttp import test_utils

from usage_watch.config import Config
from usage_watch.usage_api import (
    AuthMissing,
    MalformedResponse,
    OrgUnresolved,
    RemoteError,
    TransportError,
    fetch_snapshot,
    parse_cookies,
)

COOKIES = "sessionKey=sk-123; lastActiveOrg=org-abc"


def _cfg(base: str, cookies: str = COOKIES) -> Config:
    return Config(bot_token="t", cookies=cookies, usage_api_base=base, request_timeout=5)


def _app(handler) -> web.Application:
    app = web.Application()
    app.router.add_get("/api/organizations/{org}/usage", handler)
    return app


class TestParseCookies:
    def test_parses_header_string(self) -> None:
        assert parse_cookies(" a=1; lastActiveOrg=org-x ;b=c=d") == {
            "a": "1", "lastActiveOrg": "org-x", "b": "c=d",
        }

    def test_empty(self) -> None:
        assert parse_cookies("") == {}
        assert parse_cookies("garbage") == {}


class TestFetchSnapshot:
    @pytest.mark.asyncio
    async def test_no_cookies(self) -> None:
        with pytest.raises(AuthMissing) as exc:
            await fetch_snapshot(_cfg("http://unused", cookies=""))
        assert exc.value.code == "NO_COOKIES"

    @pytest.mark.asyncio
    async def test_no_org_cookie(self) -> None:
        with pytest.raises(OrgUnresolved) as exc:
            await fetch_snapshot(_cfg("http://unused", cookies="sessionKey=x"))
        assert exc.value.code == "NO_ORG_ID"

    @pytest.mark.asyncio
    async def test_success_sends_cookies(self) -> None:
        seen = {}

        async def handler(request: web.Request) -> web.Response:
            seen["org"] = request.match_info["org"]
            seen["cookie"] = request.headers.get("Cookie")
            return web.json_response({
                "five_hour": {"utilization": 82.0, "resets_at": "2030-01-01T00:00:00Z"},
                "seven_day": None,
                "unknown_bucket": {"utilization": 1},
            })

        async with test_utils.TestServer(_app(handler)) as server:
            snap = await fetch_snapshot(_cfg(str(server.make_url("/api/organizations"))))

        assert seen["org"] == "org-abc"
        assert parse_cookies(seen["cookie"]) == parse_cookies(COOKIES)
        assert snap["five_hour"].utilization == 82.0
        assert snap["seven_day"] is None
        assert "unknown_bucket" not in snap

    @pytest.mark.asyncio
    async def test_non_success_status(self) -> None:
        async def handler(request: web.Request) -> web.Response:
            return web.Response(status=403, text="forbidden")

        async with test_utils.TestServer(_app(handler)) as server:
            with pytest.raises(RemoteError) as exc:
                await fetch_snapshot(_cfg(str(server.make_url("/api/organizations"))))

        assert exc.value.code == "API_ERROR_403"
        assert exc.value.status == 403

    @pytest.mark.asyncio
    async def test_non_object_body(self) -> None:
        async def handler(request: web.Request) -> web.Response:
            return web.json_response([1, 2, 3])

        async with test_utils.TestServer(_app(handler)) as server:
            with pytest.raises(MalformedResponse):
                await fetch_snapshot(_cfg(str(server.make_url("/api/organizations"))))

    @pytest.mark.asyncio
    async def test_invalid_json(self) -> None:
        async def handler(request: web.Request) -> web.Response:
            return web.Response(text="<html>login</html>")

        async with test_utils.TestServer(_app(handler)) as server:
            with pytest.raises(MalformedResponse) as exc:
                await fetch_snapshot(_cfg(str(server.make_url("/api/organizations"))))
        assert exc.value.code == "BAD_RESPONSE"

    @pytest.mark.asyncio
    async def test_connection_refused(self) -> None:
        with pytest.raises(TransportError) as exc:
            await fetch_snapshot(_cfg("http://127.0.0.1:9/api/organizations"))
        assert exc.value.code == "NETWORK_ERROR"
