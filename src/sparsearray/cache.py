"""WindowedArrayCache - a lazily fetched, index-addressable array.

The cache never fetches anything itself. It calls two host callbacks:

- request_length(): the host answers later with provide_length(n)
- request_range(Range): the host answers later with provide_range(range, records)

Indices are grouped into fixed-size windows. Accessing an index asks for its
whole window, at most once while the request is outstanding, and only when
some slot in the window is stale or expired.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from types import MappingProxyType
from typing import Any, Generic, TypeVar

from sparsearray.duration import format_duration, parse_duration
from sparsearray.errors import InvalidArgumentError
from sparsearray.events import CacheEvent, EventEmitter, Handler
from sparsearray.slot import CacheSlot
from sparsearray.targets import Target, flatten_targets
from sparsearray.types import Clock, Duration, Range, RequestLength, RequestRange

T = TypeVar("T")

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 10
DEFAULT_TTL = 36_000_000  # 10h


def _now_ms() -> int:
    return int(time.time() * 1000)


def _require_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidArgumentError(f"{name} must be an integer, got {value!r}")
    return value


def _coerce_range(value: Range | Mapping[str, int]) -> Range:
    if isinstance(value, Range):
        start, length = value.start, value.length
    elif isinstance(value, Mapping):
        try:
            start, length = value["start"], value["length"]
        except KeyError as e:
            raise InvalidArgumentError(f"Range is missing {e.args[0]!r}") from e
    else:
        raise InvalidArgumentError(f"Expected a Range, got {type(value)}")

    _require_int("Range start", start)
    _require_int("Range length", length)
    if start < 0 or length < 0:
        raise InvalidArgumentError(f"Range must not be negative: {value!r}")
    return value if isinstance(value, Range) else Range(start, length)


class WindowedArrayCache(Generic[T]):
    """Sparse array of CacheSlots filled window by window on demand.

    Usage:
        cache = WindowedArrayCache(
            request_length=lambda: api.count(then=cache.provide_length),
            request_range=lambda r: api.page(r, then=cache.provide_range),
        )
        cache.get_length()      # 0 until the host calls provide_length()
        slot = cache.get(42)    # asks for window 40..49, returns at once
        slot.content            # None until provide_range() delivers it
    """

    def __init__(
        self,
        *,
        request_length: RequestLength,
        request_range: RequestRange,
        window_size: int = DEFAULT_WINDOW_SIZE,
        ttl: Duration = DEFAULT_TTL,
        is_streaming: bool = True,
        clock: Clock | None = None,
    ) -> None:
        self._request_length = request_length
        self._request_range = request_range
        self.window_size = window_size
        self.ttl = ttl
        self.is_streaming = is_streaming
        self._clock: Clock = clock or _now_ms

        self._length: int | None = None
        self._is_requesting_length = False
        self._expired_at = 0
        self._last_stamp = 0
        self._slots: dict[int, CacheSlot[T]] = {}
        self._pending: set[int] = set()
        self._events = EventEmitter()

    # -------------------------------------------------------------------------
    # Configuration
    # -------------------------------------------------------------------------

    @property
    def window_size(self) -> int:
        """Number of indices requested together.

        Pending windows are tracked by their start, so changing this while
        requests are outstanding only affects windows requested afterwards.
        Outstanding requests are still released by their own start.
        """
        return self._window_size

    @window_size.setter
    def window_size(self, value: int) -> None:
        _require_int("window_size", value)
        if value <= 0:
            raise InvalidArgumentError(f"window_size must be positive, got {value}")
        self._window_size = value

    @property
    def ttl(self) -> int:
        """Default time to live in milliseconds, copied into new slots."""
        return self._ttl

    @ttl.setter
    def ttl(self, value: Duration) -> None:
        try:
            self._ttl = parse_duration(value)
        except (TypeError, ValueError) as e:
            raise InvalidArgumentError(f"Invalid ttl: {value!r}") from e

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def length(self) -> int | None:
        """Total element count, None while unknown. Never triggers a request."""
        return self._length

    @property
    def is_length(self) -> bool:
        return self._length is not None

    @property
    def is_requesting_length(self) -> bool:
        return self._is_requesting_length

    @property
    def expired_at(self) -> int:
        return self._expired_at

    @property
    def slots(self) -> Mapping[int, CacheSlot[T]]:
        return MappingProxyType(self._slots)

    @property
    def pending_windows(self) -> frozenset[int]:
        return frozenset(self._pending)

    def window_start(self, index: int) -> int:
        return (index // self._window_size) * self._window_size

    def window_range(self, index: int) -> Range:
        """The window containing index, clipped to the length when known."""
        start = self.window_start(index)
        size = self._window_size
        if self._length is not None:
            size = max(0, min(size, self._length - start))
        return Range(start, size)

    # -------------------------------------------------------------------------
    # Length
    # -------------------------------------------------------------------------

    def get_length(self) -> int:
        """Return the known length, or 0 after asking the host for it."""
        if self._length is None and not self._is_requesting_length:
            self._is_requesting_length = True
            logger.debug("Requesting length")
            self._request_length()
        return self._length or 0

    def provide_length(self, value: int) -> None:
        _require_int("length", value)
        if value < 0:
            raise InvalidArgumentError(f"length must not be negative, got {value}")

        changed = value != self._length
        self._length = value
        self._is_requesting_length = False
        if changed:
            logger.debug("Length resolved: %d", value)
            self._events.emit(CacheEvent.LENGTH_RESOLVED, value)

    def __len__(self) -> int:
        return self.get_length()

    # -------------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------------

    def get(self, index: int, peek: bool = False) -> CacheSlot[T] | None:
        """Return the slot at index, requesting its window unless peeking.

        Returns None when index is negative or past a known length. With
        the length still unknown, every non-negative index is in range.
        """
        if not self._in_range(index):
            return None
        slot = self._slot(index)
        if not peek and self.is_streaming:
            self._ensure_window_fetched(index)
        return slot

    def get_many(self, indices: Iterable[int]) -> list[CacheSlot[T] | None]:
        """Return slots in the order given, with one request per window."""
        slots: list[CacheSlot[T] | None] = []
        windows: dict[int, None] = {}
        for index in indices:
            slot = self.get(index, peek=True)
            slots.append(slot)
            if slot is not None:
                windows.setdefault(self.window_start(index))

        if self.is_streaming:
            for start in windows:
                self._ensure_window_fetched(start)
        return slots

    @property
    def first_object(self) -> CacheSlot[T] | None:
        return self.get(0)

    @property
    def last_object(self) -> CacheSlot[T] | None:
        length = self.get_length()
        if length == 0:
            return None
        return self.get(length - 1)

    def __getitem__(self, index: int) -> CacheSlot[T]:
        slot = self.get(index)
        if slot is None:
            raise IndexError(f"index {index} out of range")
        return slot

    def __iter__(self) -> Iterator[CacheSlot[T]]:
        for index in range(self.get_length()):
            slot = self.get(index)
            if slot is not None:
                yield slot

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    def provide_range(
        self,
        range: Range | Mapping[str, int],
        records: Sequence[T],
    ) -> None:
        """Store records delivered for a requested range.

        records[i] lands in slot range.start + i. A short delivery means
        fewer records exist: the remaining slots of the range keep whatever
        they held and stay stale until requested again. While the length is
        unknown, every access to that window requests it again.
        """
        requested = _coerce_range(range)
        stamp = self._stamp()

        updated: list[CacheSlot[T]] = []
        for offset, record in enumerate(records):
            slot = self._slot(requested.start + offset)
            slot.refresh(record, stamp)
            updated.append(slot)

        for index in requested.indices()[len(updated) :]:
            trailing = self._slots.get(index)
            if trailing is not None:
                trailing.is_loading = False

        self._release(requested)
        logger.debug(
            "Range delivered: start=%d requested=%d received=%d",
            requested.start,
            requested.length,
            len(updated),
        )

        for slot in updated:
            self._events.emit(CacheEvent.SLOT_UPDATED, slot.index, slot)

    def abandon(self, range: Range | Mapping[str, int]) -> None:
        """Give up on a requested range without delivering anything.

        The window is no longer pending and its slots stop loading. Content
        and timestamps are left alone, so the next access requests the
        window again.
        """
        requested = _coerce_range(range)
        for index in requested.indices():
            slot = self._slots.get(index)
            if slot is not None:
                slot.is_loading = False
        self._release(requested)
        logger.debug(
            "Range abandoned: start=%d length=%d", requested.start, requested.length
        )

    # -------------------------------------------------------------------------
    # Invalidation
    # -------------------------------------------------------------------------

    def unset(self, *targets: Target) -> None:
        """Drop the content of the targeted slots so they are fetched again.

        Targets may be indices, IndexRange / range objects, or any nesting
        of lists and tuples of those.
        """
        for index in sorted(flatten_targets(*targets)):
            slot = self._slots.get(index)
            if slot is None:
                continue
            slot.invalidate()
            logger.debug("Slot invalidated: index=%d", index)
            self._events.emit(CacheEvent.SLOT_INVALIDATED, index, slot)

    def expire(self) -> int:
        """Mark every slot updated so far as expired. Returns the new marker."""
        self._expired_at = self._stamp()
        logger.debug("Cache expired at %d", self._expired_at)
        self._events.emit(CacheEvent.EXPIRED, self._expired_at)
        return self._expired_at

    def clear(self) -> None:
        """Forget all slots, pending windows and the length.

        Requests already handed to the host are not withdrawn. If they are
        delivered after the clear, their records land in the emptied cache
        and release whatever window now starts at the same index.
        """
        count = len(self._slots)
        self._slots.clear()
        self._pending.clear()
        self._length = None
        self._is_requesting_length = False
        logger.debug("Cache cleared: removed %d slots", count)
        self._events.emit(CacheEvent.CLEARED)

    def on(self, event: CacheEvent | str, handler: Handler) -> Callable[[], None]:
        """Subscribe to state transitions. Returns an unsubscribe callable."""
        return self._events.on(event, handler)

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _in_range(self, index: int) -> bool:
        _require_int("index", index)
        if index < 0:
            return False
        return self._length is None or index < self._length

    def _slot(self, index: int) -> CacheSlot[T]:
        slot = self._slots.get(index)
        if slot is None:
            slot = CacheSlot(index, time_to_live=self._ttl, clock=self._clock)
            self._slots[index] = slot
        return slot

    def _stamp(self) -> int:
        # Strictly increasing, so expire() and deliveries in the same
        # millisecond still order correctly.
        now = max(self._clock(), self._last_stamp + 1)
        self._last_stamp = now
        return now

    def _is_fresh(self, index: int) -> bool:
        slot = self._slots.get(index)
        return slot is not None and not slot.needs_refresh(self._expired_at)

    def _release(self, requested: Range) -> None:
        # A requested range starts where its window started when it was
        # issued, even if window_size has changed since.
        if requested.start in self._pending:
            self._pending.discard(requested.start)
        else:
            self._pending.discard(self.window_start(requested.start))

    def _ensure_window_fetched(self, index: int) -> None:
        window = self.window_range(index)
        if window.length == 0 or window.start in self._pending:
            return
        if all(self._is_fresh(i) for i in window.indices()):
            return

        self._pending.add(window.start)
        for i in window.indices():
            self._slot(i).is_loading = True

        logger.debug("Requesting range: start=%d length=%d", window.start, window.length)
        self._events.emit(CacheEvent.RANGE_REQUESTED, window)
        self._request_range(window)

    def __repr__(self) -> str:
        return (
            f"WindowedArrayCache(length={self._length}, "
            f"window_size={self._window_size}, ttl={format_duration(self._ttl)}, "
            f"slots={len(self._slots)}, pending={len(self._pending)})"
        )
