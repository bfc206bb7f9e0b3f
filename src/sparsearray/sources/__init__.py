"""Page sources for AsyncRangeLoader."""

from contextlib import suppress

from sparsearray.sources.base import PageSource
from sparsearray.sources.memory import MemoryPageSource

# Optional sources - only available when dependencies are installed
with suppress(ImportError):
    from sparsearray.sources.http import HttpPageSource

__all__ = [
    "HttpPageSource",
    "MemoryPageSource",
    "PageSource",
]
