from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from abc import ABC, abstractmethod

from ..errors import CrawlError


@dataclass(frozen=True)
class CrawlResult:
    """Terminal outcome of one crawl run; ``error`` is set on failure."""

    error: Optional[CrawlError] = None
    pages_fetched: int = 0
    records_written: int = 0
    output_file: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_kind(self) -> Optional[str]:
        return self.error.kind if self.error is not None else None


class CrawlEngine(ABC):
    """
    Abstract engine interface. Implementations own the crawl lifecycle.
    """
    @abstractmethod
    async def start(self) -> CrawlResult:  # pragma: no cover - interface
        ...
