"""In-memory page source."""

import asyncio
from collections.abc import Sequence

from sparsearray.types import Page, Range


class MemoryPageSource:
    """Serves pages out of a list, optionally after a delay.

    Counts requests, which makes it handy for checking how often a cache
    goes back to its source.
    """

    def __init__(
        self,
        records: Sequence[object],
        *,
        delay: float = 0.0,
        report_total: bool = True,
    ) -> None:
        self._records = list(records)
        self._delay = delay
        self._report_total = report_total
        self.length_requests = 0
        self.range_requests: list[Range] = []

    @property
    def records(self) -> list[object]:
        return self._records

    @records.setter
    def records(self, records: Sequence[object]) -> None:
        self._records = list(records)

    async def fetch_length(self) -> int:
        """Return the number of records."""
        self.length_requests += 1
        if self._delay:
            await asyncio.sleep(self._delay)
        return len(self._records)

    async def fetch_range(self, range: Range) -> Page[object]:
        """Return the records of a range, clipped to the end of the list."""
        self.range_requests.append(range)
        if self._delay:
            await asyncio.sleep(self._delay)
        return Page(
            records=self._records[range.start : range.stop],
            total=len(self._records) if self._report_total else None,
        )

    async def disconnect(self) -> None:
        """Disconnect from the source (no-op for memory)."""
        pass
