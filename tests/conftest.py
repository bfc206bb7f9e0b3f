"""Shared pytest fixtures."""

from collections.abc import Callable
from typing import Any

import pytest

from sparsearray import Range, WindowedArrayCache

TOTAL_RECORDS = 103_941


def make_record(index: int) -> dict[str, Any]:
    """Record stored at index; ids are 1-based like a database table."""
    return {"id": index + 1, "note": f"This is item {index + 1}"}


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, now: int = 1_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class Host:
    """Stands in for the application around a cache.

    Requests are queued and only answered on flush(), so tests control when
    "asynchronous" deliveries land.
    """

    def __init__(self, total: int = TOTAL_RECORDS, *, report_total: bool = True) -> None:
        self.total = total
        self.report_total = report_total
        self.cache: WindowedArrayCache[dict[str, Any]] | None = None
        self.length_requests = 0
        self.range_requests: list[Range] = []
        self._length_queued = False
        self._queued: list[Range] = []

    def request_length(self) -> None:
        self.length_requests += 1
        self._length_queued = True

    def request_range(self, window: Range) -> None:
        self.range_requests.append(window)
        self._queued.append(window)

    def flush(self) -> None:
        assert self.cache is not None
        if self._length_queued:
            self._length_queued = False
            self.cache.provide_length(self.total)

        queued, self._queued = self._queued, []
        for window in queued:
            if self.report_total:
                self.cache.provide_length(self.total)
            stop = min(window.stop, self.total)
            records = [make_record(i) for i in range(window.start, stop)]
            self.cache.provide_range(window, records)


@pytest.fixture
def clock() -> FakeClock:
    """Create a fake clock for each test."""
    return FakeClock()


@pytest.fixture
def host() -> Host:
    """Create a fresh Host for each test."""
    return Host()


@pytest.fixture
def make_cache(
    host: Host, clock: FakeClock
) -> Callable[..., WindowedArrayCache[dict[str, Any]]]:
    """Factory for caches wired to the host and the fake clock."""

    def factory(**options: Any) -> WindowedArrayCache[dict[str, Any]]:
        cache: WindowedArrayCache[dict[str, Any]] = WindowedArrayCache(
            request_length=host.request_length,
            request_range=host.request_range,
            clock=clock,
            **options,
        )
        host.cache = cache
        return cache

    return factory


@pytest.fixture
def cache(
    make_cache: Callable[..., WindowedArrayCache[dict[str, Any]]],
) -> WindowedArrayCache[dict[str, Any]]:
    """Create a cache with default options."""
    return make_cache()
