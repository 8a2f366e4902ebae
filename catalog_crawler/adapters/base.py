from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from typing import Dict, Optional, Protocol, Tuple

from bs4 import BeautifulSoup


@dataclass
class FetchedPage:
    """A fetched document together with the URL it was requested from."""

    url: str
    html: str
    status: int = 200

    @cached_property
    def document(self) -> BeautifulSoup:
        return BeautifulSoup(self.html, "html.parser")


@dataclass
class ProductRecord:
    """Structured data of one product detail page."""

    article_number: str = ""
    product_name: str = ""
    product_image: str = ""
    price_per_day: float = float("nan")
    description: str = ""
    technical_details: Dict[str, str] = field(default_factory=dict)
    link: str = ""


@dataclass(frozen=True)
class ExtractionOutcome:
    record: Optional[ProductRecord] = None
    discovered_urls: Tuple[str, ...] = ()

    @property
    def is_leaf(self) -> bool:
        return self.record is None and not self.discovered_urls


class Extractor(Protocol):
    """
    Interface for site-specific extraction logic.
    Must not do I/O and must not raise for missing elements.
    Engine owns the HTTP, queueing, and persistence.
    """

    name: str

    def extract(self, page: FetchedPage) -> ExtractionOutcome:
        ...
