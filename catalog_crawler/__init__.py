"""Single-site catalog crawler: listing pages to product rows."""

from .version import __version__

__all__ = ["__version__"]
