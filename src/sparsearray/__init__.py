"""sparsearray - Lazily fetched, windowed array cache for Python."""

from contextlib import suppress

# Core cache
from sparsearray.cache import WindowedArrayCache

# Duration parsing
from sparsearray.duration import parse_duration

# Errors
from sparsearray.errors import InvalidArgumentError, SourceError, SparseArrayError

# Change notification
from sparsearray.events import CacheEvent

# Async integration
from sparsearray.loader import AsyncRangeLoader
from sparsearray.slot import CacheSlot

# Page sources
from sparsearray.sources import MemoryPageSource, PageSource
from sparsearray.targets import IndexRange, flatten_targets

# Core types
from sparsearray.types import Duration, Page, Range

# Optional sources - only available when dependencies are installed
with suppress(ImportError):
    from sparsearray.sources import HttpPageSource

__version__ = "0.1.0"

__all__ = [
    "AsyncRangeLoader",
    "CacheEvent",
    "CacheSlot",
    "Duration",
    "HttpPageSource",
    "IndexRange",
    "InvalidArgumentError",
    "MemoryPageSource",
    "Page",
    "PageSource",
    "Range",
    "SourceError",
    "SparseArrayError",
    "WindowedArrayCache",
    "flatten_targets",
    "parse_duration",
]
