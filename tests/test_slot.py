"""Tests for CacheSlot."""

from dataclasses import dataclass

import pytest

from conftest import FakeClock
from sparsearray import CacheSlot, InvalidArgumentError


@pytest.fixture
def slot(clock: FakeClock) -> CacheSlot[dict]:
    """Create an empty slot with a 100ms time to live."""
    return CacheSlot(3, time_to_live=100, clock=clock)


class TestNewSlot:
    """Tests for the initial slot state."""

    def test_starts_empty_and_stale(self, slot: CacheSlot[dict]) -> None:
        assert slot.index == 3
        assert slot.content is None
        assert slot.updated_at is None
        assert slot.is_loading is False
        assert slot.is_stale is True

    def test_initially_expired(self, slot: CacheSlot[dict]) -> None:
        assert slot.is_expired_at(0) is True
        assert slot.needs_refresh(0) is True


class TestRefresh:
    """Tests for content delivery."""

    def test_refresh_sets_content(self, slot: CacheSlot[dict], clock: FakeClock) -> None:
        slot.is_loading = True
        slot.refresh({"id": 4}, clock.now)
        assert slot.content == {"id": 4}
        assert slot.updated_at == clock.now
        assert slot.is_loading is False
        assert slot.is_stale is False
        assert slot.needs_refresh(0) is False

    def test_stale_after_time_to_live(
        self, slot: CacheSlot[dict], clock: FakeClock
    ) -> None:
        slot.refresh({"id": 4}, clock.now)
        clock.advance(100)
        assert slot.is_stale is False
        clock.advance(1)
        assert slot.is_stale is True
        assert slot.needs_refresh(0) is True

    def test_time_to_live_change_applies_immediately(
        self, slot: CacheSlot[dict], clock: FakeClock
    ) -> None:
        slot.refresh({"id": 4}, clock.now)
        clock.advance(20)
        slot.time_to_live = "10ms"
        assert slot.time_to_live == 10
        assert slot.is_stale is True

    @pytest.mark.parametrize("ttl", [-5, "later"])
    def test_invalid_time_to_live(self, slot: CacheSlot[dict], ttl: object) -> None:
        with pytest.raises(InvalidArgumentError, match="time to live"):
            slot.time_to_live = ttl  # type: ignore[assignment]


class TestExpiry:
    """Tests for is_expired_at()."""

    def test_expired_before_marker(self, slot: CacheSlot[dict]) -> None:
        slot.refresh({"id": 4}, 1_000)
        assert slot.is_expired_at(999) is False
        assert slot.is_expired_at(1_000) is False
        assert slot.is_expired_at(1_001) is True

    def test_loading_is_never_expired(self, slot: CacheSlot[dict]) -> None:
        slot.is_loading = True
        assert slot.is_expired_at(10**12) is False

    def test_fresh_but_expired_needs_refresh(self, slot: CacheSlot[dict]) -> None:
        slot.refresh({"id": 4}, 1_000)
        assert slot.is_stale is False
        assert slot.needs_refresh(2_000) is True


class TestInvalidate:
    """Tests for invalidate()."""

    def test_clears_content_keeps_timestamp(self, slot: CacheSlot[dict]) -> None:
        slot.refresh({"id": 4}, 1_000)
        slot.invalidate()
        assert slot.content is None
        assert slot.updated_at == 1_000
        assert slot.is_stale is True
        assert slot.is_expired_at(500) is False


class TestFieldAccess:
    """Tests for get() on slot content."""

    def test_mapping_content(self, slot: CacheSlot[dict]) -> None:
        slot.refresh({"note": "This is item 4"}, 1_000)
        assert slot.get("note") == "This is item 4"
        assert slot.get("missing", "x") == "x"

    def test_object_content(self, clock: FakeClock) -> None:
        @dataclass
        class Item:
            id: int

        slot: CacheSlot[Item] = CacheSlot(0, time_to_live=100, clock=clock)
        slot.refresh(Item(id=1), clock.now)
        assert slot.get("id") == 1
        assert slot.get("note") is None

    def test_empty_slot(self, slot: CacheSlot[dict]) -> None:
        assert slot.get("note", "none yet") == "none yet"

    def test_repr(self, slot: CacheSlot[dict], clock: FakeClock) -> None:
        assert repr(slot) == "CacheSlot(index=3, stale, content=None)"
        slot.refresh({"id": 4}, clock.now)
        assert repr(slot) == "CacheSlot(index=3, fresh, content={'id': 4})"
        slot.is_loading = True
        assert repr(slot).startswith("CacheSlot(index=3, loading")
