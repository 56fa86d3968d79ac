import asyncio
import logging
from typing import Dict

import aiohttp

from .config import Config
from .models import MetricSnapshot, parse_snapshot

logger = logging.getLogger("usage_watch.usage_api")

ORG_COOKIE = "lastActiveOrg"


class UsageFetchError(RuntimeError):
    code = "UNKNOWN_ERROR"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)


class AuthMissing(UsageFetchError):
    code = "NO_COOKIES"


class OrgUnresolved(UsageFetchError):
    code = "NO_ORG_ID"


class RemoteError(UsageFetchError):
    def __init__(self, status: int, detail: str = ""):
        self.status = status
        self.code = f"API_ERROR_{status}"
        super().__init__(f"{self.code}: {detail[:300]}" if detail else self.code)


class TransportError(UsageFetchError):
    code = "NETWORK_ERROR"


class MalformedResponse(UsageFetchError):
    code = "BAD_RESPONSE"


def parse_cookies(raw: str) -> Dict[str, str]:
    cookies: Dict[str, str] = {}
    for part in (raw or "").split(";"):
        name, sep, value = part.strip().partition("=")
        if sep and name:
            cookies[name.strip()] = value.strip()
    return cookies


def cookie_header(cookies: Dict[str, str]) -> str:
    return "; ".join(f"{k}={v}" for k, v in cookies.items())


async def fetch_snapshot(cfg: Config) -> MetricSnapshot:
    cookies = parse_cookies(cfg.cookies)
    if not cookies:
        raise AuthMissing()

    org_id = cookies.get(ORG_COOKIE)
    if not org_id:
        raise OrgUnresolved()

    url = f"{cfg.usage_api_base}/{org_id}/usage"
    headers = {
        "Cookie": cookie_header(cookies),
        "Content-Type": "application/json",
    }
    timeout = aiohttp.ClientTimeout(total=cfg.request_timeout)

    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url, headers=headers) as resp:
                if resp.status < 200 or resp.status >= 300:
                    txt = await resp.text()
                    raise RemoteError(resp.status, txt)

                try:
                    data = await resp.json(content_type=None)
                except ValueError as e:
                    raise MalformedResponse(f"Invalid JSON: {e}")

    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise TransportError(f"{TransportError.code}: {e!r}")

    if not isinstance(data, dict):
        raise MalformedResponse(f"Unexpected response format: {str(data)[:300]}")

    logger.debug("Fetched usage for org %s", org_id)
    return parse_snapshot(data)
