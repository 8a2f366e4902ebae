from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Protocol
from aiohttp import ClientSession, ClientTimeout
import aiohttp
import logging

from ..adapters.base import FetchedPage
from ..config import FetcherOptions
from ..errors import FetchError

logger = logging.getLogger(__name__)

RETRY_STATUS_CODES = {429, 500, 502, 503, 504}


class Fetcher(Protocol):
    """Retrieves one URL. Raises FetchError instead of returning bad pages."""

    async def fetch(self, url: str) -> FetchedPage:
        ...


class AiohttpFetcher:
    """
    Default fetcher on a shared aiohttp ClientSession.
    Use as an async context manager; the session lives for the whole crawl.
    """

    def __init__(self, options: Optional[FetcherOptions] = None) -> None:
        self.options = options or FetcherOptions()
        self._session: Optional[ClientSession] = None

    async def __aenter__(self) -> "AiohttpFetcher":
        self._session = create_session(self.options)
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def fetch(self, url: str) -> FetchedPage:
        if self._session is None:
            raise RuntimeError("AiohttpFetcher used outside of 'async with'")

        opts = self.options
        last_exc: Optional[BaseException] = None
        for attempt in range(opts.retries + 1):
            if attempt:
                await asyncio.sleep(min(opts.retry_backoff * 2 ** (attempt - 1), 30.0))
            try:
                async with self._session.get(
                    url,
                    timeout=ClientTimeout(total=opts.request_timeout),
                    **opts.extra,
                ) as resp:
                    if resp.status in RETRY_STATUS_CODES and attempt < opts.retries:
                        logger.debug("Got %s for %s (attempt %s), retrying", resp.status, url, attempt + 1)
                        continue
                    if resp.status >= 400:
                        raise FetchError(url, f"HTTP {resp.status} {resp.reason} for {url}", status=resp.status)
                    html = await resp.text()
                    return FetchedPage(url=str(resp.url), html=html, status=resp.status)
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                last_exc = exc
                logger.debug("fetch attempt %s failed for %s: %r", attempt + 1, url, exc)

        raise FetchError(url, f"Failed to fetch {url} after {opts.retries + 1} attempts: {last_exc!r}")


def create_session(options: FetcherOptions) -> ClientSession:
    """
    Create a shared aiohttp ClientSession.
    """
    headers: Dict[str, str] = {"User-Agent": options.user_agent, **options.headers}
    # Concurrency is bounded by the engine's worker pool.
    connector = aiohttp.TCPConnector(limit=options.max_concurrency)
    return aiohttp.ClientSession(connector=connector, headers=headers)
