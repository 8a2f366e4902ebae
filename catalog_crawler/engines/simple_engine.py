from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional
from urllib.parse import urlparse

from .base import CrawlEngine, CrawlResult
from .frontier import Frontier
from ..config import CrawlConfig
from ..adapters.base import Extractor, FetchedPage
from ..errors import ConfigurationError, CrawlError, ExtractionError, FetchError
from ..export.base import Sink
from ..utils.http import AiohttpFetcher, Fetcher
from ..utils.loader import load_symbol
from ..utils.parsing import host_of, resolve_url
from ..utils.preflight import SCHEME_PORTS, check_host

logger = logging.getLogger(__name__)

Preflight = Callable[[str, int, int], Awaitable[None]]


class SimpleCrawlEngine(CrawlEngine):
    """
    Crawls one catalog site from its start URL.
    - Engine owns the frontier and the worker pool.
    - The extractor owns page parsing, the sink owns persistence.
    - The first fatal error aborts the whole run.
    """
    def __init__(
        self,
        config: CrawlConfig,
        *,
        fetcher: Optional[Fetcher] = None,
        extractor: Optional[Extractor] = None,
        sink: Optional[Sink] = None,
        preflight: Optional[Preflight] = None,
    ) -> None:
        self.config = config
        self.fetcher = fetcher
        self.extractor = extractor
        self.sink = sink
        self.preflight = preflight or check_host

        self._frontier: Optional[Frontier] = None
        self._aborted: Optional[asyncio.Event] = None
        self._error: Optional[Exception] = None
        self._write_lock: Optional[asyncio.Lock] = None
        self._pages = 0
        self._records = 0

    async def start(self) -> CrawlResult:
        logger.info("Starting crawler")
        try:
            await self._run()
        except CrawlError as exc:
            logger.error("Crawl failed with %s: %s", exc.kind, exc)
            return self._result(exc)
        logger.info("Stopping crawler: %s URLs seen, %s pages fetched, %s records written",
                    self._frontier.seen_count, self._pages, self._records)
        return self._result(None)

    # ---- Lifecycle ----------------------------------------------------------

    async def _run(self) -> None:
        cfg = self.config
        cfg.validate()

        # Resolve pluggable parts before any network I/O so bad paths fail early.
        if self.extractor is None:
            self.extractor = load_symbol(cfg.extractor)()
        if self.sink is None:
            self.sink = load_symbol(cfg.sink)(cfg)

        # target_host may carry an explicit port ("host:8080").
        target = urlparse(cfg.base_url)
        port = target.port or SCHEME_PORTS[cfg.target_scheme]
        await self.preflight(target.hostname, cfg.connection_timeout, port)

        await asyncio.to_thread(self.sink.initialize)

        self._frontier = Frontier()
        self._aborted = asyncio.Event()
        self._write_lock = asyncio.Lock()
        self._error = None
        self._pages = self._records = 0

        start_url = resolve_url(cfg.start_url, cfg.base_url)
        if start_url is None:
            raise ConfigurationError(f"Start URL {cfg.start_url!r} is not an HTTP(S) URL")
        await self._frontier.push(start_url)
        logger.info("Queued start URL %s", start_url)
        logger.info("Using extractor %r", self.extractor.name)

        if self.fetcher is not None:
            await self._drain(self.fetcher)
        else:
            async with AiohttpFetcher(cfg.fetcher) as fetcher:
                await self._drain(fetcher)

    async def _drain(self, fetcher: Fetcher) -> None:
        assert self._frontier is not None and self._aborted is not None
        workers = [
            asyncio.create_task(self._worker(fetcher), name=f"crawl-worker-{i}")
            for i in range(self.config.fetcher.max_concurrency)
        ]
        drained = asyncio.create_task(self._frontier.join())
        aborted = asyncio.create_task(self._aborted.wait())
        try:
            await asyncio.wait({drained, aborted}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (*workers, drained, aborted):
                task.cancel()
            await asyncio.gather(*workers, drained, aborted, return_exceptions=True)

        if self._error is not None:
            raise self._error

    async def _worker(self, fetcher: Fetcher) -> None:
        assert self._frontier is not None and self._aborted is not None
        while not self._aborted.is_set():
            url = await self._frontier.pop()
            try:
                await self._process(fetcher, url)
            except CrawlError as exc:
                self._abort(exc)
            except Exception as exc:
                # Not a crawl failure: stop the pool, then re-raise from _drain.
                logger.exception("Unexpected error while processing %s", url)
                self._abort(exc)
            finally:
                self._frontier.task_done()

    def _abort(self, exc: Exception) -> None:
        assert self._aborted is not None
        if self._error is None:
            logger.error("An error occurred during crawling: %s", exc)
            self._error = exc
        self._aborted.set()

    # ---- Per-page handling --------------------------------------------------

    async def _process(self, fetcher: Fetcher, url: str) -> None:
        assert self._aborted is not None and self._write_lock is not None
        page = await self._fetch(fetcher, url)
        logger.info("Received response for %s", page.url)
        if self._aborted.is_set():
            return

        self._pages += 1
        logger.info("Request %s", self._pages)
        if self._pages == 1 and host_of(page.url) != host_of(self.config.base_url):
            # Links are still filtered against the configured host.
            logger.warning("Start URL %s was redirected off the target host to %s; "
                           "links on other hosts will not be followed", url, page.url)

        logger.debug("Passing response to parser")
        try:
            outcome = self.extractor.extract(page)
        except Exception as exc:
            raise ExtractionError(f"Extractor failed on {page.url}: {exc!r}") from exc

        if outcome.record is not None:
            logger.debug("Passing result to writer")
            async with self._write_lock:
                # Results of fetches still in flight at abort time are dropped.
                if self._aborted.is_set():
                    return
                await asyncio.to_thread(self.sink.write, outcome.record)
                self._records += 1

        if outcome.is_leaf:
            logger.debug("No further URLs in response (leaf page for %r)", self.extractor.name)
            return
        if not outcome.discovered_urls:
            logger.debug("No further URLs in response")
            return

        queued = 0
        for href in outcome.discovered_urls:
            if await self._enqueue(href, page):
                queued += 1
        logger.info("Added %s of %s discovered URLs to queue (%s pending)",
                    queued, len(outcome.discovered_urls), len(self._frontier))

    async def _fetch(self, fetcher: Fetcher, url: str) -> FetchedPage:
        try:
            return await fetcher.fetch(url)
        except FetchError:
            raise
        except Exception as exc:
            raise FetchError(url, f"Failed to fetch {url}: {exc!r}") from exc

    async def _enqueue(self, href: str, page: FetchedPage) -> bool:
        assert self._frontier is not None
        url = resolve_url(href, page.url)
        if url is None:
            logger.debug("Skipping non-HTTP link %r on %s", href, page.url)
            return False
        if host_of(url) != host_of(self.config.base_url):
            logger.debug("Skipping off-site link %s", url)
            return False
        return await self._frontier.push(url)

    def _result(self, error: Optional[CrawlError]) -> CrawlResult:
        file_path = getattr(self.sink, "file_path", None)
        return CrawlResult(
            error=error,
            pages_fetched=self._pages,
            records_written=self._records,
            output_file=str(file_path) if file_path else None,
        )
