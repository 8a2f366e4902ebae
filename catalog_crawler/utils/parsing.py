from __future__ import annotations

from typing import Optional
from urllib.parse import urljoin, urlparse, urlunparse


def normalize_url(url: str) -> str:
    """
    Normalize URL for de-duplication: lowercase scheme and host, drop the
    fragment and a default port, give an empty path a "/".
    """
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    netloc = parsed.netloc.lower()
    default_port = {"http": ":80", "https": ":443"}.get(scheme)
    if default_port and netloc.endswith(default_port):
        netloc = netloc[: -len(default_port)]
    path = parsed.path or "/"
    return urlunparse((scheme, netloc, path, parsed.params, parsed.query, ""))


def resolve_url(href: str, base_url: str) -> Optional[str]:
    """
    Resolve a link found on a page against the page URL.
    Returns None for links that cannot be fetched over HTTP(S).
    """
    absolute = urljoin(base_url, href.strip())
    if urlparse(absolute).scheme not in ("http", "https"):
        return None
    return normalize_url(absolute)


def host_of(url: str) -> str:
    return (urlparse(url).hostname or "").lower()
