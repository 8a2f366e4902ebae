"""Error taxonomy for a crawl run. Every fatal kind ends up in the CrawlResult."""

from __future__ import annotations

from typing import Optional

__all__ = [
    "CrawlError",
    "ConfigurationError",
    "ConnectivityError",
    "FetchError",
    "WriteError",
    "ExtractionError",
]


class CrawlError(Exception):
    """Base class for all errors that terminate a crawl run."""

    kind = "CrawlError"


class ConfigurationError(CrawlError):
    kind = "ConfigurationError"


class ConnectivityError(CrawlError):
    kind = "ConnectivityError"


class FetchError(CrawlError):
    kind = "FetchError"

    def __init__(self, url: str, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.url = url
        self.status = status


class WriteError(CrawlError):
    kind = "WriteError"


class ExtractionError(CrawlError):
    kind = "ExtractionError"
