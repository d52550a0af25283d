"""Live fetch client for the catalog API with optional response caching."""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any
from urllib.parse import urlencode, urljoin

import httpx
from aiocache import Cache  # type: ignore[import-untyped]

from .config import Settings
from .metrics import record_fetch


class LiveFetchClient:
    """Handles HTTP requests with caching, concurrency limits, and metrics."""

    def __init__(
        self,
        settings: Settings,
        *,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._base_url = (base_url or str(settings.base_url)).rstrip("/") + "/"
        self._semaphore = asyncio.Semaphore(settings.concurrency)
        self._client = httpx.AsyncClient(
            timeout=settings.timeout_seconds,
            headers={"User-Agent": settings.user_agent, "Accept": "application/json"},
            transport=transport,
        )
        self._cache: Cache | None = None
        if settings.fetch_cache_ttl_seconds > 0:
            self._cache = Cache(Cache.MEMORY, ttl=settings.fetch_cache_ttl_seconds)

    @property
    def base_url(self) -> str:
        return self._base_url

    async def close(self) -> None:
        """Close underlying HTTP client and cache."""

        await self._client.aclose()
        if self._cache:
            await self._cache.close()

    async def clear_cache(self) -> None:
        if self._cache:
            await self._cache.clear()

    def absolute_url(self, url: str, params: dict[str, Any] | None = None) -> str:
        if url.startswith("http://") or url.startswith("https://"):
            absolute = url
        else:
            absolute = urljoin(self._base_url, url.lstrip("/"))
        if params:
            cleaned = {key: value for key, value in params.items() if value is not None}
            absolute = f"{absolute}?{urlencode(cleaned, doseq=True)}"
        return absolute

    async def fetch_text(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        *,
        use_cache: bool = True,
    ) -> str:
        """Fetch the URL and return response text."""

        absolute_url = self.absolute_url(url, params)

        if use_cache and self._cache:
            cached = await self._cache.get(absolute_url)
            if cached is not None:
                record_fetch(cache_hit=True, outcome="success", duration_seconds=0.0)
                return cached

        start = time.perf_counter()
        try:
            async with self._semaphore:
                response = await self._client.get(absolute_url)
                response.raise_for_status()
                text = response.text
        except Exception:
            record_fetch(
                cache_hit=False,
                outcome="error",
                duration_seconds=time.perf_counter() - start,
            )
            raise
        else:
            if use_cache and self._cache:
                await self._cache.set(absolute_url, text)
            record_fetch(
                cache_hit=False,
                outcome="success",
                duration_seconds=time.perf_counter() - start,
            )
            return text

    async def fetch_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        *,
        use_cache: bool = True,
    ) -> Any:
        """Fetch the URL and decode the body as JSON."""

        text = await self.fetch_text(url, params, use_cache=use_cache)
        return json.loads(text)
