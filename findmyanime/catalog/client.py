"""
findmyanime.catalog.client — Rate-governed client for the metadata API
=======================================================================

The public anime/manga metadata API (Jikan v4) allows only a few calls
per second and answers ``429 Too Many Requests`` beyond that.  Every
outbound call therefore passes through one :class:`RateGovernor`, which
spaces calls at least ``interval`` seconds apart, and a 429 is retried
after a fixed backoff instead of being reported to the caller.

A persistently rate-limited upstream makes :meth:`CatalogClient.fetch_resource`
wait indefinitely rather than fail fast.

Usage::

    client = CatalogClient()
    top = await client.top_anime(filter_by="airing", limit=24)
    await client.aclose()
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

logger = logging.getLogger(__name__)

JIKAN_BASE_URL = "https://api.jikan.moe/v4"
DEFAULT_INTERVAL = 0.4
DEFAULT_BACKOFF = 1.5

TOP_ANIME_FILTERS = frozenset({"airing", "upcoming", "bypopularity", "favorite"})


class UpstreamError(Exception):
    """The metadata API could not be reached or answered with an unusable response.

    ``status_code`` is 0 when no response was received.
    """

    def __init__(self, status_code: int, url: str = "") -> None:
        super().__init__(f"Upstream catalog error {status_code} for {url}")
        self.status_code = status_code
        self.url = url


class RateGovernor:
    """Serializes callers so consecutive calls start ``interval`` seconds apart.

    The reservation (``last = now + wait``) is made under a lock before
    sleeping, so concurrent callers are handed distinct, increasing slots.
    """

    def __init__(
        self,
        interval: float = DEFAULT_INTERVAL,
        *,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._last_call: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> float:
        """Wait for the next free slot.  Returns the seconds waited."""
        async with self._lock:
            now = self._clock()
            if self._last_call is None:
                wait = 0.0
            else:
                wait = max(0.0, self._last_call + self.interval - now)
            self._last_call = now + wait
        if wait > 0:
            await self._sleep(wait)
        return wait


class CatalogClient:
    """Async client for the metadata API with pacing and 429 retry."""

    def __init__(
        self,
        base_url: str = JIKAN_BASE_URL,
        *,
        governor: RateGovernor | None = None,
        backoff: float = DEFAULT_BACKOFF,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.governor = governor or RateGovernor()
        self.backoff = backoff
        self._sleep = sleep
        self._http = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def aclose(self) -> None:
        await self._http.aclose()

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def fetch_resource(
        self, path: str, params: dict[str, Any] | None = None
    ) -> Any:
        """GET *path* and return its decoded JSON body.

        429 responses are retried after ``backoff`` seconds with no retry
        cap.  Any other non-2xx status, a transport failure or a body that
        is not JSON raises :class:`UpstreamError`.
        """
        url = self._url(path)
        clean_params = {k: v for k, v in (params or {}).items() if v is not None}
        while True:
            await self.governor.acquire()
            try:
                resp = await self._http.get(url, params=clean_params)
            except httpx.HTTPError as exc:
                logger.warning("Catalog request to %s failed: %s", url, exc)
                raise UpstreamError(0, url) from exc
            if resp.status_code == 429:
                logger.warning(
                    "Catalog rate-limited (429) on %s — retrying in %.1fs",
                    url, self.backoff,
                )
                await self._sleep(self.backoff)
                continue
            if not resp.is_success:
                raise UpstreamError(resp.status_code, url)
            try:
                return resp.json()
            except ValueError as exc:
                raise UpstreamError(resp.status_code, url) from exc

    # -------------------------------------------------------------------
    # Convenience reads used by the catalog router
    # -------------------------------------------------------------------
    async def catalog_totals(self) -> dict[str, int | None]:
        """Total number of anime and manga entries known upstream."""
        anime = await self.fetch_resource("anime", {"limit": 1})
        manga = await self.fetch_resource("manga", {"limit": 1})
        return {
            "anime": _pagination_total(anime),
            "manga": _pagination_total(manga),
        }

    async def top_anime(self, filter_by: str | None = None, limit: int = 24) -> Any:
        if filter_by not in TOP_ANIME_FILTERS:
            filter_by = None
        return await self.fetch_resource("top/anime", {"filter": filter_by, "limit": limit})

    async def top_manga(self, limit: int = 12) -> Any:
        return await self.fetch_resource("top/manga", {"limit": limit})

    async def anime(self, mal_id: int) -> Any:
        return await self.fetch_resource(f"anime/{mal_id}")

    async def search_anime(self, query: str, limit: int = 8) -> Any:
        return await self.fetch_resource("anime", {"q": query, "limit": limit})

    async def anime_genres(self) -> Any:
        return await self.fetch_resource("genres/anime")

    async def anime_by_genre(self, genre_id: int, limit: int = 24) -> Any:
        return await self.fetch_resource(
            "anime",
            {
                "genres": genre_id,
                "order_by": "popularity",
                "sort": "asc",
                "limit": limit,
            },
        )


def _pagination_total(payload: Any) -> int | None:
    try:
        total = payload["pagination"]["items"]["total"]
    except (KeyError, TypeError):
        return None
    return int(total) if total is not None else None
