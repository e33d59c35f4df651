"""Bounded telemetry history for the race strategy engine."""

from __future__ import annotations

from collections.abc import Iterator

from race_engine.core.telemetry import TelemetrySnapshot

HISTORY_CAPACITY: int = 1000


class TelemetryHistory:
    """Fixed-capacity ring buffer of telemetry snapshots.

    Insertion order is arrival order.  Once ``capacity`` snapshots are held,
    each append overwrites the oldest one in O(1).

    Attributes:
        capacity: Maximum number of snapshots retained.
    """

    __slots__ = ("capacity", "_slots", "_head")

    def __init__(self, capacity: int = HISTORY_CAPACITY):
        """Initialise an empty history.

        Args:
            capacity: Maximum number of snapshots. Must be >= 1.

        Raises:
            ValueError: If capacity < 1.
        """
        if capacity < 1:
            raise ValueError("capacity must be >= 1.")
        self.capacity: int = capacity
        # Grows to capacity, then wraps; _head is the oldest entry once full.
        self._slots: list[TelemetrySnapshot] = []
        self._head: int = 0

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[TelemetrySnapshot]:
        """Iterate oldest-first."""
        size: int = len(self._slots)
        for offset in range(size):
            yield self._slots[(self._head + offset) % size]

    def append(self, snapshot: TelemetrySnapshot) -> None:
        """Append a snapshot, evicting the oldest one when full."""
        if len(self._slots) < self.capacity:
            self._slots.append(snapshot)
        else:
            self._slots[self._head] = snapshot
            self._head = (self._head + 1) % self.capacity

    def recent(self, n: int) -> list[TelemetrySnapshot]:
        """Return up to the last *n* snapshots, most-recent-first."""
        size: int = len(self._slots)
        count: int = max(0, min(n, size))
        return [
            self._slots[(self._head + size - back) % size]
            for back in range(1, count + 1)
        ]

    def latest(self) -> TelemetrySnapshot | None:
        """Most recent snapshot, or ``None`` when empty."""
        if not self._slots:
            return None
        return self.recent(1)[0]

    def newest_first(self) -> list[TelemetrySnapshot]:
        """All snapshots, most-recent-first."""
        return self.recent(len(self._slots))
