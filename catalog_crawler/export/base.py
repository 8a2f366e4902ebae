from __future__ import annotations

from typing import Protocol

from ..adapters.base import ProductRecord


class Sink(Protocol):
    """Append-only destination for extracted records."""

    def initialize(self) -> None:
        ...

    def write(self, record: ProductRecord) -> None:
        ...
