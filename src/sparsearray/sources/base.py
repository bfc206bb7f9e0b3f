"""Base protocol for page sources."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from sparsearray.types import Page, Range


@runtime_checkable
class PageSource(Protocol):
    """Async source of a length and of records by range."""

    async def fetch_length(self) -> int:
        """Return the total number of records."""
        ...

    async def fetch_range(self, range: Range) -> Page[object] | Sequence[object]:
        """Return the records of a range, optionally with the total."""
        ...

    async def disconnect(self) -> None:
        """Release any resources held by the source."""
        ...
