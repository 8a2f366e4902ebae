from __future__ import annotations

import math
from typing import Dict, Iterable, List, Optional, Tuple

from bs4 import BeautifulSoup
from bs4.element import Tag

from .base import ExtractionOutcome, FetchedPage, ProductRecord


class CatalogAdapter:
    """
    Extractor for the rental catalog site.

    Listing pages carry preview rows linking to detail pages; detail pages
    carry a schema.org Product block. A page may be both, either, or neither.
    """

    name = "catalog"

    listing_row_selector = ".product-row-link"
    product_selector = 'div[itemtype="http://schema.org/Product"]'
    details_selector = ".produkte-bottom .left-col ul"
    article_number_prefix = "Art.-Nr."

    def extract(self, page: FetchedPage) -> ExtractionOutcome:
        soup = page.document
        urls = tuple(self._listing_links(soup))

        record: Optional[ProductRecord] = None
        product = soup.select_one(self.product_selector)
        if product is not None:
            record = self._extract_record(soup, product)

        return ExtractionOutcome(record=record, discovered_urls=urls)

    # ---- Extraction helpers -------------------------------------------------

    def _listing_links(self, soup: BeautifulSoup) -> List[str]:
        out: List[str] = []
        for row in soup.select(self.listing_row_selector):
            href = row.get("href")
            if isinstance(href, str) and href.strip():
                out.append(href.strip())
        return out

    def _extract_record(self, soup: BeautifulSoup, product: Tag) -> ProductRecord:
        article_number = self._text(product, '[itemprop="mpn"]')
        article_number = article_number.replace(self.article_number_prefix, "", 1).strip()

        return ProductRecord(
            article_number=article_number,
            product_name=self._text(product, '[itemprop="name"]'),
            product_image=self._attr(soup, '[itemprop="image"]', "src"),
            price_per_day=parse_price(self._text(product, '[itemprop="price"]')),
            description=self._text(product, '[itemprop="description"]'),
            technical_details=fold_details(self._detail_pairs(soup)),
            link=self._attr(soup, 'link[rel="canonical"]', "href"),
        )

    def _detail_pairs(self, soup: BeautifulSoup) -> Iterable[Tuple[str, str]]:
        for container in soup.select(self.details_selector):
            for li in container.find_all("li"):
                yield self._text(li, ".left"), self._text(li, ".right")

    # ---- Text helpers -------------------------------------------------------

    def _text(self, scope: Tag, selector: str) -> str:
        # Multiple matches are concatenated, like a jQuery-style .text().
        return "".join(node.get_text() for node in scope.select(selector)).strip()

    def _attr(self, scope: Tag, selector: str, attr: str) -> str:
        node = scope.select_one(selector)
        if node is None:
            return ""
        value = node.get(attr)
        return value.strip() if isinstance(value, str) else ""


def parse_price(text: str) -> float:
    """
    Parse a German formatted price ("49,99") into a float.
    Empty or malformed text yields NaN instead of raising.
    """
    cleaned = text.strip().replace(",", ".")
    if not cleaned:
        return math.nan
    try:
        return float(cleaned)
    except ValueError:
        return math.nan


def fold_details(pairs: Iterable[Tuple[str, str]]) -> Dict[str, str]:
    """Fold ordered (key, value) pairs into a dict; later keys win."""
    details: Dict[str, str] = {}
    for key, value in pairs:
        details[key] = value
    return details
