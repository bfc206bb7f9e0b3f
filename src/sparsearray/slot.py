"""Per-index cache entries."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from sparsearray.duration import parse_duration
from sparsearray.errors import InvalidArgumentError
from sparsearray.types import Clock, Duration

T = TypeVar("T")


def _to_ttl(value: Duration) -> int:
    try:
        return parse_duration(value)
    except (TypeError, ValueError) as e:
        raise InvalidArgumentError(f"Invalid time to live: {value!r}") from e


class CacheSlot(Generic[T]):
    """One index of a WindowedArrayCache.

    A slot starts empty and stale. Content arrives through refresh(); the
    owning cache decides when to request it using needs_refresh().
    """

    __slots__ = (
        "_clock",
        "_time_to_live",
        "content",
        "index",
        "is_loading",
        "updated_at",
    )

    def __init__(self, index: int, *, time_to_live: Duration, clock: Clock) -> None:
        self.index = index
        self.content: T | None = None
        self.updated_at: int | None = None
        self.is_loading = False
        self._time_to_live = _to_ttl(time_to_live)
        self._clock = clock

    @property
    def time_to_live(self) -> int:
        """Milliseconds after updated_at before the content counts as stale."""
        return self._time_to_live

    @time_to_live.setter
    def time_to_live(self, value: Duration) -> None:
        self._time_to_live = _to_ttl(value)

    @property
    def is_stale(self) -> bool:
        if self.content is None or self.updated_at is None:
            return True
        return self._clock() - self.updated_at > self._time_to_live

    def is_expired_at(self, marker: int) -> bool:
        """Whether the slot was last updated before the given expiry marker.

        A slot with a fetch in flight is never expired, otherwise every
        access during the fetch would ask for the window again.
        """
        if self.is_loading:
            return False
        return self.updated_at is None or self.updated_at < marker

    def needs_refresh(self, marker: int) -> bool:
        return self.is_stale or self.is_expired_at(marker)

    def refresh(self, content: T, updated_at: int) -> None:
        self.content = content
        self.updated_at = updated_at
        self.is_loading = False

    def invalidate(self) -> None:
        # updated_at stays so expiry comparisons keep their meaning
        self.content = None

    def get(self, key: str, default: Any = None) -> Any:
        """Read a field of the content, whether it is a mapping or an object."""
        if self.content is None:
            return default
        if isinstance(self.content, dict):
            return self.content.get(key, default)
        return getattr(self.content, key, default)

    def __repr__(self) -> str:
        state = "loading" if self.is_loading else ("stale" if self.is_stale else "fresh")
        return f"CacheSlot(index={self.index}, {state}, content={self.content!r})"
