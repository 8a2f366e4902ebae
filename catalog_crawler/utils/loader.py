from __future__ import annotations

import importlib
from typing import Any

from ..errors import ConfigurationError


def load_symbol(dotted: str) -> Any:
    """
    Load a class or function from a dotted path.
    Supports both "package.module:ClassName" and "package.module.ClassName".
    """
    try:
        if ":" in dotted:
            module_name, symbol_name = dotted.split(":", 1)
        else:
            module_name, symbol_name = dotted.rsplit(".", 1)
        module = importlib.import_module(module_name)
        return getattr(module, symbol_name)
    except (ValueError, ImportError, AttributeError) as exc:
        raise ConfigurationError(f"Cannot load {dotted!r}: {exc}") from exc
