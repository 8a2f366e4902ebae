from __future__ import annotations

import json
import logging
import math
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional

from ..adapters.base import ProductRecord
from ..config import CrawlConfig
from ..errors import ConfigurationError, WriteError

logger = logging.getLogger(__name__)

DELIMITER = ";"


def encode_field(value: Any) -> str:
    """
    Quote one value as a JSON literal so quotes and newlines inside it cannot
    break the row. The delimiter only ever occurs inside JSON strings and is
    written as its unicode escape, so a row splits cleanly on ``;``.
    NaN has no JSON form and becomes null.
    """
    if isinstance(value, float) and math.isnan(value):
        value = None
    encoded = json.dumps(value, ensure_ascii=False, allow_nan=False)
    return encoded.replace(DELIMITER, "\\u003b")


def decode_row(line: str) -> List[Any]:
    """Split a data row back into its decoded field values."""
    return [json.loads(field) for field in line.rstrip("\n").split(DELIMITER)]


class CsvSink:
    """
    Writes one semicolon-delimited row per product to a timestamped file.
    """

    _headers = [
        "articleNumber",
        "productName",
        "productImage",
        "pricePerDay",
        "description",
        "technicalDetails",
        "link",
    ]

    def __init__(self, config: CrawlConfig, filename: str = "output") -> None:
        self.output_path = config.output_path
        self.filename = filename
        self.file_path: Optional[Path] = None

    def initialize(self) -> None:
        if not self.output_path:
            raise ConfigurationError(
                "Output directory not configured: set \"output_path\" to a writable directory."
            )

        directory = Path(self.output_path).resolve()
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise WriteError(f"Cannot create output directory {directory}: {exc}") from exc

        timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%SZ")
        self.file_path = self._create_file(directory, f"{self.filename}-{timestamp}")
        logger.info("Writing results to %s", self.file_path)

    def write(self, record: ProductRecord) -> None:
        if self.file_path is None:
            raise WriteError("Sink used before initialize()")
        try:
            with open(self.file_path, "a", encoding="utf-8", newline="") as f:
                f.write(self.format_row(record))
        except OSError as exc:
            raise WriteError(f"Cannot append to {self.file_path}: {exc}") from exc

    @staticmethod
    def format_row(record: ProductRecord) -> str:
        row = DELIMITER.join(
            [
                encode_field(record.article_number),
                encode_field(record.product_name),
                encode_field(record.product_image),
                encode_field(record.price_per_day),
                encode_field(record.description),
                encode_field(record.technical_details),
                encode_field(record.link),
            ]
        )
        # JSON escapes every newline already; a row must stay on one line regardless.
        return row.replace("\n", "\\n") + "\n"

    def _create_file(self, directory: Path, stem: str) -> Path:
        header = DELIMITER.join(self._headers) + "\n"
        suffix = 0
        while True:
            name = f"{stem}.csv" if suffix == 0 else f"{stem}-{suffix}.csv"
            path = directory / name
            try:
                # "x" never truncates a file left by an earlier run.
                with open(path, "x", encoding="utf-8", newline="") as f:
                    f.write(header)
                return path
            except FileExistsError:
                suffix += 1
            except OSError as exc:
                raise WriteError(f"Cannot create output file {path}: {exc}") from exc
