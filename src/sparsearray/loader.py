"""AsyncRangeLoader - drive a WindowedArrayCache from async fetch functions.

The cache itself only calls fire-and-forget callbacks. This module supplies
those callbacks for asyncio code: each request becomes a task on the running
loop, and its result is delivered back into the cache when it completes.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Coroutine, Iterable, Sequence
from functools import partial
from typing import Any, Generic, TypeVar, Union

from sparsearray.cache import DEFAULT_TTL, DEFAULT_WINDOW_SIZE, WindowedArrayCache
from sparsearray.slot import CacheSlot
from sparsearray.sources.base import PageSource
from sparsearray.types import Clock, Duration, Page, Range

T = TypeVar("T")

logger = logging.getLogger(__name__)

FetchLength = Callable[[], Awaitable[int]]
FetchRange = Callable[[Range], Awaitable[Union[Page[T], Sequence[T]]]]


class AsyncRangeLoader(Generic[T]):
    """Owns a WindowedArrayCache and fulfils its requests with coroutines.

    Usage:
        loader = AsyncRangeLoader.from_source(MemoryPageSource(rows))
        slot = loader.cache.get(42)   # schedules the fetch, returns at once
        await loader.settle()         # wait for outstanding fetches
        slot.content

    Accessing the cache must happen while an event loop is running, since
    requests are scheduled as tasks on it.
    """

    def __init__(
        self,
        fetch_length: FetchLength,
        fetch_range: FetchRange[T],
        *,
        window_size: int = DEFAULT_WINDOW_SIZE,
        ttl: Duration = DEFAULT_TTL,
        is_streaming: bool = True,
        clock: Clock | None = None,
    ) -> None:
        self._fetch_length = fetch_length
        self._fetch_range = fetch_range
        self._tasks: set[asyncio.Task[None]] = set()
        self._errors: list[Exception] = []
        self.cache: WindowedArrayCache[T] = WindowedArrayCache(
            request_length=self._request_length,
            request_range=self._request_range,
            window_size=window_size,
            ttl=ttl,
            is_streaming=is_streaming,
            clock=clock,
        )

    @classmethod
    def from_source(cls, source: PageSource, **options: Any) -> AsyncRangeLoader[Any]:
        """Build a loader whose fetches go to a PageSource."""
        return cls(source.fetch_length, source.fetch_range, **options)

    @property
    def in_flight(self) -> int:
        """Number of fetches not yet completed."""
        return len(self._tasks)

    async def settle(self) -> None:
        """Wait until no fetch is outstanding, then re-raise the first failure.

        Fetches scheduled while waiting (for instance by event handlers) are
        waited for too.
        """
        while self._tasks:
            done, _ = await asyncio.wait(set(self._tasks))
            self._tasks.difference_update(done)

        if self._errors:
            error = self._errors[0]
            self._errors.clear()
            raise error

    async def load(self, index: int) -> CacheSlot[T] | None:
        """Get a slot and wait for its window to arrive."""
        slot = self.cache.get(index)
        await self.settle()
        return slot

    async def load_many(self, indices: Iterable[int]) -> list[CacheSlot[T] | None]:
        """Get several slots and wait for their windows to arrive."""
        slots = self.cache.get_many(indices)
        await self.settle()
        return slots

    async def load_length(self) -> int:
        """Ask for the length if unknown and wait for the answer."""
        self.cache.get_length()
        await self.settle()
        return self.cache.get_length()

    async def cancel(self) -> None:
        """Cancel outstanding fetches. Their windows are abandoned."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    # -------------------------------------------------------------------------
    # Cache callbacks
    # -------------------------------------------------------------------------

    def _request_length(self) -> None:
        self._spawn(self._load_length)

    def _request_range(self, window: Range) -> None:
        task = self._spawn(self._load_range, window)
        task.add_done_callback(partial(self._range_done, window))

    def _range_done(self, window: Range, task: asyncio.Task[None]) -> None:
        # A task cancelled before it ran never reaches its own error handling
        if task.cancelled():
            self.cache.abandon(window)

    def _spawn(
        self, fn: Callable[..., Coroutine[Any, Any, None]], *args: Any
    ) -> asyncio.Task[None]:
        # Raises RuntimeError outside a running loop, before any coroutine exists
        loop = asyncio.get_running_loop()
        task = loop.create_task(fn(*args))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _load_length(self) -> None:
        try:
            length = await self._fetch_length()
        except Exception as e:
            logger.exception("Length fetch failed")
            self._errors.append(e)
            return
        self.cache.provide_length(length)

    async def _load_range(self, window: Range) -> None:
        try:
            result = await self._fetch_range(window)
        except Exception as e:
            logger.exception(
                "Range fetch failed: start=%d length=%d", window.start, window.length
            )
            self.cache.abandon(window)
            self._errors.append(e)
            return

        if isinstance(result, Page):
            if result.total is not None:
                self.cache.provide_length(result.total)
            records = result.records
        else:
            records = result
        self.cache.provide_range(window, records)


__all__ = ["AsyncRangeLoader"]
