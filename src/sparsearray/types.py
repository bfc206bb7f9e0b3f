"""Core types for the sparsearray library."""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Range:
    """A block of indices requested from, or delivered by, a data source."""

    start: int
    length: int

    @property
    def stop(self) -> int:
        """Exclusive end index."""
        return self.start + self.length

    def indices(self) -> range:
        return range(self.start, self.stop)


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    """Records fetched for a range, with the total count when the source knows it."""

    records: Sequence[T]
    total: int | None = None


# Host callbacks. Both are fire-and-forget; results come back through
# provide_length() / provide_range().
RequestLength = Callable[[], None]
RequestRange = Callable[[Range], None]

# Millisecond clock
Clock = Callable[[], int]

# Duration type alias
Duration = str | int  # "30s", "5m", "2h", "1d" or milliseconds
