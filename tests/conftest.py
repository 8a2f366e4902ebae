import asyncio
from typing import Dict, List, Optional, Union

import pytest

from catalog_crawler.adapters.base import FetchedPage
from catalog_crawler.config import CrawlConfig, FetcherOptions
from catalog_crawler.errors import FetchError

BASE = "https://www.example.com"

LISTING_HTML = """
<html><body>
  <a class="product-row-link" href="/maschinen/bagger">Bagger</a>
  <a class="product-row-link" href="/maschinen/walze">Walze</a>
  <a class="product-row-link" href="/maschinen/ruettler">Rüttler</a>
</body></html>
"""

DETAIL_HTML = """
<html>
<head><link rel="canonical" href="https://www.example.com/maschinen/bagger"></head>
<body>
  <div itemscope itemtype="http://schema.org/Product">
    <h1 itemprop="name">Minibagger 1,5 t</h1>
    <img itemprop="image" src="https://www.example.com/img/bagger.jpg">
    <span itemprop="price">49,99</span>
    <span itemprop="mpn">Art.-Nr. 1234</span>
    <div itemprop="description">Kompakter Bagger für enge Baustellen</div>
  </div>
  <div class="produkte-bottom"><div class="left-col"><ul>
    <li><span class="left">Farbe</span><span class="right">Rot</span></li>
    <li><span class="left">Größe</span><span class="right">XL</span></li>
  </ul></div></div>
</body>
</html>
"""

LEAF_HTML = "<html><body><p>Nothing here</p></body></html>"


class FakeFetcher:
    """In-memory fetcher: maps URLs to HTML, an exception, or (delay, html)."""

    def __init__(self, pages: Dict[str, Union[str, Exception, tuple]]) -> None:
        self.pages = pages
        self.requested: List[str] = []

    async def fetch(self, url: str) -> FetchedPage:
        self.requested.append(url)
        body = self.pages.get(url)
        if isinstance(body, tuple):
            delay, body = body
            await asyncio.sleep(delay)
        else:
            await asyncio.sleep(0)
        if body is None:
            raise FetchError(url, f"HTTP 404 Not Found for {url}", status=404)
        if isinstance(body, Exception):
            raise body
        return FetchedPage(url=url, html=body)


class RecordingPreflight:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error
        self.calls: List[tuple] = []

    async def __call__(self, host: str, timeout_ms: int, port: int) -> None:
        self.calls.append((host, timeout_ms, port))
        if self.error is not None:
            raise self.error


@pytest.fixture
def output_dir(tmp_path):
    return tmp_path / "output"


@pytest.fixture
def config(output_dir):
    return CrawlConfig(
        target_host="www.example.com",
        output_path=str(output_dir),
        fetcher=FetcherOptions(max_concurrency=1),
    )


@pytest.fixture
def preflight():
    return RecordingPreflight()
