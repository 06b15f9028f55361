from __future__ import annotations

import asyncio
import logging
import weakref
from typing import Any, Mapping, Optional

import aiohttp

logger = logging.getLogger(__name__)

USER_AGENT = "NFTScout/1.0"
DEFAULT_TIMEOUT = 10.0


class HTTPError(Exception):
    """Raised when an HTTP request returns a non-success status code."""

    def __init__(self, status: int, url: str, body: str = "") -> None:
        super().__init__(f"HTTP {status} from {url}")
        self.status = status
        self.url = url
        self.body = body


# Maintain a session per event loop to avoid cross-loop usage errors when
# running multiple asyncio loops in different threads.
_SESSIONS: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, aiohttp.ClientSession]" = weakref.WeakKeyDictionary()
_TIMEOUT = DEFAULT_TIMEOUT


def configure(timeout: float) -> None:
    """Set the total timeout used by sessions created after this call."""

    global _TIMEOUT
    _TIMEOUT = max(0.1, float(timeout))


async def get_session() -> aiohttp.ClientSession:
    """Return an aiohttp session bound to the current event loop."""
    loop = asyncio.get_running_loop()
    sess = _SESSIONS.get(loop)
    if sess is None or sess.closed:
        sess = aiohttp.ClientSession(
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            timeout=aiohttp.ClientTimeout(total=_TIMEOUT),
        )
        _SESSIONS[loop] = sess
    return sess


async def close_session() -> None:
    """Close all known aiohttp sessions."""
    to_close = list(_SESSIONS.values())
    _SESSIONS.clear()
    for sess in to_close:
        if not sess.closed:
            await sess.close()


async def fetch_json(
    url: str,
    *,
    params: Optional[Mapping[str, Any]] = None,
    headers: Optional[Mapping[str, str]] = None,
    session: Optional[aiohttp.ClientSession] = None,
) -> Any:
    """GET ``url`` and decode the JSON body, raising :class:`HTTPError` on failure."""

    sess = session or await get_session()
    async with sess.get(url, params=params, headers=headers) as resp:
        if resp.status >= 400:
            body = await resp.text()
            raise HTTPError(resp.status, str(resp.url), body[:512])
        return await resp.json(content_type=None)
