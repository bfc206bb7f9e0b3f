"""HTTP page source for offset/limit JSON APIs."""

from __future__ import annotations

from typing import Any, cast

import httpx

from sparsearray.errors import SourceError
from sparsearray.types import Page, Range

_MISSING = object()


def _dig(payload: Any, path: str) -> Any:
    """Follow a dotted path through nested mappings."""
    node = payload
    for part in path.split("."):
        if not isinstance(node, dict) or part not in node:
            return _MISSING
        node = node[part]
    return node


class HttpPageSource:
    """Fetches pages from an endpoint such as ``GET /items?offset=20&limit=10``.

    The response is expected to look like::

        {"data": [...], "meta": {"total": 103941}}

    Both paths are configurable. The length is read from the total of a
    one-record page.
    """

    def __init__(
        self,
        url: str,
        *,
        client: httpx.AsyncClient | None = None,
        headers: dict[str, str] | None = None,
        offset_param: str = "offset",
        limit_param: str = "limit",
        records_path: str = "data",
        total_path: str = "meta.total",
        timeout: float = 30.0,
    ) -> None:
        self._url = url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(headers=headers, timeout=timeout)
        self._offset_param = offset_param
        self._limit_param = limit_param
        self._records_path = records_path
        self._total_path = total_path

    async def _request(self, offset: int, limit: int) -> dict[str, Any]:
        """Make a GET request for one page."""
        try:
            response = await self._client.get(
                self._url,
                params={self._offset_param: offset, self._limit_param: limit},
            )
        except httpx.HTTPError as e:
            raise SourceError(f"Request to {self._url} failed: {e}") from e

        if not response.is_success:
            try:
                error = response.json().get("error", "Request failed")
            except Exception:
                error = f"HTTP {response.status_code}"
            raise SourceError(error)

        try:
            payload = response.json()
        except ValueError as e:
            raise SourceError(f"Response from {self._url} is not JSON") from e
        if not isinstance(payload, dict):
            raise SourceError(f"Response from {self._url} is not a JSON object")
        return payload

    def _total(self, payload: dict[str, Any], *, required: bool) -> int | None:
        total = _dig(payload, self._total_path)
        if total is _MISSING or total is None:
            if required:
                raise SourceError(f"Response is missing {self._total_path!r}")
            return None
        if isinstance(total, bool) or not isinstance(total, int) or total < 0:
            raise SourceError(f"Invalid total in response: {total!r}")
        return total

    async def fetch_length(self) -> int:
        """Return the total reported by the API."""
        payload = await self._request(0, 1)
        total = self._total(payload, required=True)
        return cast(int, total)

    async def fetch_range(self, range: Range) -> Page[object]:
        """Return one page, with the total when the API reports it."""
        payload = await self._request(range.start, range.length)
        records = _dig(payload, self._records_path)
        if not isinstance(records, list):
            raise SourceError(f"Response is missing a list at {self._records_path!r}")
        return Page(records=records, total=self._total(payload, required=False))

    async def disconnect(self) -> None:
        """Close the HTTP client if this source created it."""
        if self._owns_client:
            await self._client.aclose()
