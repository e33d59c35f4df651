"""Circuit pit-lane data for the race strategy engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

logger = logging.getLogger(__name__)

OVERTAKING_DIFFICULTIES: tuple[str, ...] = ("easy", "medium", "hard")


@dataclass(frozen=True)
class DRSZone:
    """DRS zone bounded by lap-distance fractions (0.0-1.0)."""

    name: str
    start: float
    end: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.start <= 1.0 or not 0.0 <= self.end <= 1.0:
            raise ValueError(f"DRS zone '{self.name}' bounds must be in [0, 1].")


@dataclass(frozen=True)
class OvertakingZone:
    """Overtaking spot bounded by lap-distance fractions (0.0-1.0)."""

    name: str
    start: float
    end: float
    difficulty: str = "medium"

    def __post_init__(self) -> None:
        if not 0.0 <= self.start <= 1.0 or not 0.0 <= self.end <= 1.0:
            raise ValueError(
                f"Overtaking zone '{self.name}' bounds must be in [0, 1]."
            )
        if self.difficulty not in OVERTAKING_DIFFICULTIES:
            raise ValueError(
                "difficulty must be one of: "
                + ", ".join(OVERTAKING_DIFFICULTIES)
                + "."
            )


@dataclass(frozen=True)
class TrackData:
    """Static pit-lane description of a circuit.

    Attributes:
        name: Circuit name as reported by the simulator.
        length_km: Lap length in km (> 0).
        pit_lane_length_km: Pit-lane length in km (> 0).
        pit_speed_limit: Pit-lane speed limit in km/h (> 0).
        pit_entry_position: Lap fraction of the pit entry (0.0-1.0).
        pit_exit_position: Lap fraction of the pit exit (0.0-1.0).
        typical_stationary_time: Time stopped in the box, seconds.
        pit_lane_time_delta: Time lost in the pit lane against the
            racing line, seconds.
        safety_car_sectors: Sectors where safety cars are most frequent.
        drs_zones: DRS zones.
        overtaking_zones: Main overtaking spots.
    """

    name: str
    length_km: float
    pit_lane_length_km: float
    pit_speed_limit: float
    pit_entry_position: float
    pit_exit_position: float
    typical_stationary_time: float
    pit_lane_time_delta: float
    safety_car_sectors: tuple[int, ...] = ()
    drs_zones: tuple[DRSZone, ...] = ()
    overtaking_zones: tuple[OvertakingZone, ...] = ()

    def __post_init__(self) -> None:
        """Validate track parameters."""
        if not self.name:
            raise ValueError("Track name must not be empty.")
        if self.length_km <= 0.0:
            raise ValueError("length_km must be > 0.")
        if self.pit_lane_length_km <= 0.0:
            raise ValueError("pit_lane_length_km must be > 0.")
        if self.pit_speed_limit <= 0.0:
            raise ValueError("pit_speed_limit must be > 0.")
        if not 0.0 <= self.pit_entry_position <= 1.0:
            raise ValueError("pit_entry_position must be between 0.0 and 1.0.")
        if not 0.0 <= self.pit_exit_position <= 1.0:
            raise ValueError("pit_exit_position must be between 0.0 and 1.0.")
        if self.typical_stationary_time < 0.0:
            raise ValueError("typical_stationary_time must be >= 0.0.")
        if self.pit_lane_time_delta < 0.0:
            raise ValueError("pit_lane_time_delta must be >= 0.0.")
        for sector in self.safety_car_sectors:
            if sector not in (1, 2, 3):
                raise ValueError("safety_car_sectors must contain 1, 2 or 3.")


# Used for circuits missing from the database.
GENERIC_TRACK: TrackData = TrackData(
    name="generic",
    length_km=5.0,
    pit_lane_length_km=0.4,
    pit_speed_limit=60.0,
    pit_entry_position=0.90,
    pit_exit_position=0.10,
    typical_stationary_time=25.0,
    pit_lane_time_delta=23.0,
    safety_car_sectors=(1, 2, 3),
)


class TrackDatabase:
    """Read-only name -> :class:`TrackData` lookup with a generic fallback."""

    def __init__(
        self,
        tracks: dict[str, TrackData] | None = None,
        fallback: TrackData = GENERIC_TRACK,
    ):
        self._tracks: dict[str, TrackData] = dict(tracks or {})
        self.fallback: TrackData = fallback
        self._warned: set[str] = set()

    def __len__(self) -> int:
        return len(self._tracks)

    def __contains__(self, name: object) -> bool:
        return name in self._tracks

    @property
    def names(self) -> list[str]:
        return sorted(self._tracks)

    def get(self, name: str) -> TrackData:
        """Return the record for *name*, or the fallback renamed to *name*.

        The fallback is reported once per unknown name.
        """
        track = self._tracks.get(name)
        if track is not None:
            return track
        if name not in self._warned:
            self._warned.add(name)
            logger.warning("Unknown track %r, using generic pit-lane data", name)
        return replace(self.fallback, name=name or self.fallback.name)
