from __future__ import annotations

import asyncio
from typing import Set

from ..utils.parsing import normalize_url


class Frontier:
    """
    FIFO of pending URLs with a visited-set keyed by normalized URL.

    A URL is accepted at most once per run. The crawl is complete when
    ``join`` returns: nothing queued and every popped URL marked done.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[str] = asyncio.Queue()
        self._seen: Set[str] = set()
        self._lock = asyncio.Lock()

    async def push(self, url: str) -> bool:
        """Queue ``url`` unless it was seen before. Returns True if queued."""
        key = normalize_url(url)
        async with self._lock:
            if key in self._seen:
                return False
            self._seen.add(key)
            self._queue.put_nowait(key)
        return True

    async def pop(self) -> str:
        return await self._queue.get()

    def task_done(self) -> None:
        self._queue.task_done()

    async def join(self) -> None:
        await self._queue.join()

    @property
    def seen_count(self) -> int:
        return len(self._seen)

    def __len__(self) -> int:
        return self._queue.qsize()
