from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from urllib.parse import urlparse
import os
import json
import logging

from .errors import ConfigurationError
from .version import __version__, CONFIG_SCHEMA_VERSION

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = f"catalog_crawler/{__version__}"

# camelCase keys of the legacy config.json format, mapped to field names.
_CONFIG_ALIASES = {
    "targetHost": "target_host",
    "targetScheme": "target_scheme",
    "startUrl": "start_url",
    "connectionTimeout": "connection_timeout",
    "outputPath": "output_path",
    "crawlerOptions": "fetcher",
}

_FETCHER_ALIASES = {
    "maxConnections": "max_concurrency",
    "userAgent": "user_agent",
}

# Keyword arguments of aiohttp's ClientSession.get that may go through ``extra``.
# url, timeout and headers are set by the fetcher itself.
REQUEST_OPTIONS = frozenset({
    "params", "data", "json", "cookies", "skip_auto_headers", "auth",
    "allow_redirects", "max_redirects", "compress", "chunked", "expect100",
    "raise_for_status", "read_until_eof", "proxy", "proxy_auth", "ssl",
    "server_hostname", "proxy_headers",
    "trace_request_ctx", "read_bufsize", "auto_decompress", "max_line_size",
    "max_field_size",
})

# Options of the legacy crawler library with no aiohttp equivalent. Dropped with a warning.
_LEGACY_FETCHER_OPTIONS = frozenset({
    "rateLimit", "jQuery", "callback", "forceUTF8", "incomingEncoding",
    "priority", "skipDuplicates", "rotateUA", "preRequest", "referer",
    "encoding", "gzip", "method", "retryInterval", "priorityRange",
})


@dataclass(frozen=True)
class FetcherOptions:
    """
    Tuning options handed to the fetcher.
    Recognized options are fields; aiohttp request keywords land in ``extra``
    and are forwarded untouched to ``ClientSession.get``.
    """
    max_concurrency: int = 10
    request_timeout: float = 15.0  # seconds
    retries: int = 2
    retry_backoff: float = 1.0  # seconds, doubled per attempt
    user_agent: str = DEFAULT_USER_AGENT
    headers: Dict[str, str] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "FetcherOptions":
        known = {name for name in cls.__dataclass_fields__ if name != "extra"}
        kwargs: Dict[str, Any] = {}
        extra: Dict[str, Any] = dict((raw or {}).get("extra") or {})

        for key, value in (raw or {}).items():
            if key == "extra":
                continue
            # Millisecond options of the legacy format.
            if key == "timeout":
                kwargs["request_timeout"] = float(value) / 1000.0
                continue
            if key == "retryTimeout":
                kwargs["retry_backoff"] = float(value) / 1000.0
                continue
            if key in _LEGACY_FETCHER_OPTIONS:
                logger.warning("Ignoring fetcher option %r: not supported by this crawler", key)
                continue
            name = _FETCHER_ALIASES.get(key, key)
            if name in known:
                kwargs[name] = value
            else:
                extra[key] = value

        return cls(extra=extra, **kwargs)


@dataclass(frozen=True)
class CrawlConfig:
    """
    Canonical configuration object passed throughout the system.
    Immutable; derive modified copies with ``dataclasses.replace``.
    """
    schema_version: int = CONFIG_SCHEMA_VERSION
    target_host: Optional[str] = None
    target_scheme: str = "https"
    start_url: str = "/"
    connection_timeout: int = 10_000  # milliseconds
    output_path: Optional[str] = None
    fetcher: FetcherOptions = field(default_factory=FetcherOptions)
    # Dotted paths so the extractor/sink can be swapped without code changes.
    extractor: str = "catalog_crawler.adapters.catalog:CatalogAdapter"
    sink: str = "catalog_crawler.export.csv_exporter:CsvSink"

    @property
    def base_url(self) -> str:
        return f"{self.target_scheme}://{self.target_host}"

    # ---------- Loaders ----------

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "CrawlConfig":
        data = migrate_config(dict(raw))
        known = set(cls.__dataclass_fields__)
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            name = _CONFIG_ALIASES.get(key, key)
            if name not in known:
                raise ConfigurationError(f"Unknown configuration key: {key!r}")
            kwargs[name] = value

        fetcher = kwargs.get("fetcher")
        if not isinstance(fetcher, FetcherOptions):
            kwargs["fetcher"] = FetcherOptions.from_dict(fetcher)
        return cls(**kwargs)

    @classmethod
    def from_env(cls) -> "CrawlConfig":
        """
        Build config from environment variables (all optional here; the
        required ones are enforced by ``validate``).
        """
        def _get(name: str, default: str) -> str:
            return os.getenv(name, default)

        try:
            fetcher = FetcherOptions(
                max_concurrency=int(_get("CRAWLER_MAX_CONCURRENCY", "10")),
                request_timeout=float(_get("CRAWLER_REQUEST_TIMEOUT", "15.0")),
                retries=int(_get("CRAWLER_RETRIES", "2")),
                user_agent=_get("CRAWLER_USER_AGENT", DEFAULT_USER_AGENT),
            )
            return cls(
                target_host=os.getenv("CRAWLER_TARGET_HOST") or None,
                target_scheme=_get("CRAWLER_TARGET_SCHEME", "https"),
                start_url=_get("CRAWLER_START_URL", "/"),
                connection_timeout=int(_get("CRAWLER_CONNECTION_TIMEOUT", "10000")),
                output_path=os.getenv("CRAWLER_OUTPUT_PATH") or None,
                fetcher=fetcher,
            )
        except ValueError as exc:
            raise ConfigurationError(f"Invalid numeric value in environment: {exc}") from exc

    @classmethod
    def from_file(cls, path: str | os.PathLike[str]) -> "CrawlConfig":
        """
        Load configuration from a JSON file. Supports schema migration for future versions.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except OSError as exc:
            raise ConfigurationError(f"Cannot read configuration file {path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Configuration file {path} is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"Configuration file {path} must contain a JSON object")
        return cls.from_dict(data)

    # ---------- Validation ----------

    def validate(self) -> None:
        if not self.target_host:
            raise ConfigurationError(
                "Target host not configured: there is no \"target_host\" key in the "
                "configuration. It is the host part of the website URL, without scheme "
                "and path: for \"https://www.example.com/foo\" it is \"www.example.com\"."
            )
        if not self.output_path:
            raise ConfigurationError(
                "Output directory not configured: there is no \"output_path\" key in the "
                "configuration. It should be the path to a writable directory, "
                f"e.g. \"{os.getcwd()}/output\"."
            )
        if self.target_scheme not in ("http", "https"):
            raise ConfigurationError(f"Unsupported target scheme: {self.target_scheme!r}")
        if self.connection_timeout <= 0:
            raise ConfigurationError("connection_timeout must be > 0")
        if self.fetcher.max_concurrency <= 0:
            raise ConfigurationError("max_concurrency must be > 0")
        if self.fetcher.retries < 0:
            raise ConfigurationError("retries must be >= 0")
        unknown = sorted(set(self.fetcher.extra) - REQUEST_OPTIONS)
        if unknown:
            raise ConfigurationError(
                f"Unsupported fetcher option(s): {', '.join(unknown)}. Extra options are "
                f"passed to aiohttp's ClientSession.get and must be among: "
                f"{', '.join(sorted(REQUEST_OPTIONS))}"
            )
        try:
            urlparse(self.base_url).port
        except ValueError as exc:
            raise ConfigurationError(f"Invalid port in target host {self.target_host!r}") from exc


def migrate_config(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Migrate config dict to the latest schema version.
    Keep this pure and additive. Add migrations here as you bump schema.
    """
    schema = raw.get("schema_version", CONFIG_SCHEMA_VERSION)
    if schema > CONFIG_SCHEMA_VERSION:
        raise ConfigurationError(
            f"Configuration schema {schema} is newer than supported ({CONFIG_SCHEMA_VERSION})"
        )

    raw.setdefault("schema_version", CONFIG_SCHEMA_VERSION)
    return raw
