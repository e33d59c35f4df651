"""Tests for the bounded telemetry history."""

import pytest

from race_engine.core.history import HISTORY_CAPACITY, TelemetryHistory
from race_engine.core.telemetry import TelemetrySnapshot

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _filled(n: int, capacity: int = HISTORY_CAPACITY) -> TelemetryHistory:
    history = TelemetryHistory(capacity)
    for i in range(n):
        history.append(TelemetrySnapshot(timestamp=float(i)))
    return history


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


def test_empty_history_is_valid() -> None:
    """An empty history has no latest sample and empty windows."""
    history = TelemetryHistory()
    assert len(history) == 0
    assert history.latest() is None
    assert history.recent(5) == []
    assert list(history) == []


def test_default_capacity_is_1000() -> None:
    """The default history keeps the last 1000 samples."""
    history = _filled(1005)
    assert history.capacity == 1000
    assert len(history) == 1000
    assert [s.timestamp for s in history][0] == 5.0


def test_eviction_drops_oldest_first() -> None:
    """Once full, each append evicts the oldest sample."""
    history = _filled(7, capacity=4)
    assert len(history) == 4
    assert [s.timestamp for s in history] == [3.0, 4.0, 5.0, 6.0]


def test_recent_is_most_recent_first() -> None:
    """recent(n) returns at most n samples, newest first."""
    history = _filled(6, capacity=4)
    assert [s.timestamp for s in history.recent(3)] == [5.0, 4.0, 3.0]
    assert [s.timestamp for s in history.recent(10)] == [5.0, 4.0, 3.0, 2.0]
    assert history.recent(0) == []


def test_recent_does_not_mutate() -> None:
    """Reading a window leaves the buffer untouched."""
    history = _filled(3)
    history.recent(2)
    assert len(history) == 3
    assert history.latest().timestamp == 2.0


def test_newest_first_covers_whole_buffer() -> None:
    history = _filled(3)
    assert [s.timestamp for s in history.newest_first()] == [2.0, 1.0, 0.0]


def test_invalid_capacity_raises() -> None:
    """Capacity below one is rejected."""
    with pytest.raises(ValueError, match="capacity"):
        TelemetryHistory(0)


def test_single_slot_history_keeps_latest() -> None:
    """A one-sample history always holds the newest sample."""
    history = _filled(3, capacity=1)
    assert len(history) == 1
    assert history.latest().timestamp == 2.0
    assert [s.timestamp for s in history] == [2.0]


def test_exactly_full_history_before_wrap() -> None:
    """Filling to capacity keeps arrival order without eviction."""
    history = _filled(4, capacity=4)
    assert [s.timestamp for s in history] == [0.0, 1.0, 2.0, 3.0]
    assert history.latest().timestamp == 3.0
