"""Invalidation targets and their normalization."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Union

from sparsearray.errors import InvalidArgumentError


@dataclass(frozen=True, slots=True)
class IndexRange:
    """An inclusive span of indices, ``IndexRange(3, 5)`` covers 3, 4 and 5."""

    first: int
    last: int

    def __post_init__(self) -> None:
        if self.last < self.first:
            raise InvalidArgumentError(
                f"IndexRange last ({self.last}) is before first ({self.first})"
            )

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.first, self.last + 1))


Target = Union[int, IndexRange, range, Iterable["Target"]]


def _walk(target: Target) -> Iterator[int]:
    if isinstance(target, bool):
        raise InvalidArgumentError(f"Expected an index, got {target!r}")
    if isinstance(target, int):
        yield target
    elif isinstance(target, (IndexRange, range)):
        yield from target
    elif isinstance(target, (list, tuple, set, frozenset)):
        for item in target:
            yield from _walk(item)
    else:
        raise InvalidArgumentError(
            f"Expected an index, IndexRange, range or sequence, got {type(target)}"
        )


def flatten_targets(*targets: Target) -> set[int]:
    """Flatten any grouping of indices and ranges into one set of indices.

    Example:
        flatten_targets(6)                          # {6}
        flatten_targets(32, 723)                    # {32, 723}
        flatten_targets([32], [723, [15699]])       # {32, 723, 15699}
        flatten_targets(IndexRange(0, 2), range(5, 7))  # {0, 1, 2, 5, 6}
    """
    result: set[int] = set()
    for target in targets:
        result.update(_walk(target))
    return result
