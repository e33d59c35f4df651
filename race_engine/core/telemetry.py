"""Telemetry read model consumed by the race strategy engine.

A :class:`TelemetrySnapshot` is produced by a simulator adapter and is
never mutated afterwards.  The values are taken as reported: the engine
does not clamp or reject implausible readings (negative fuel, wear above
100 %), it lets them flow through the arithmetic.

Units: times in seconds, distances in km, speeds in km/h, fuel in
litres, wear and lap distance in percent.
"""

from __future__ import annotations

from dataclasses import dataclass, field

# ---------------------------------------------------------------------------
# Session flags
# ---------------------------------------------------------------------------

FLAG_NONE: str = "none"
FLAG_GREEN: str = "green"
FLAG_YELLOW: str = "yellow"
FLAG_RED: str = "red"
FLAG_BLUE: str = "blue"
FLAG_WHITE: str = "white"
FLAG_CHECKERED: str = "checkered"


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SessionInfo:
    """Session-level state.

    Attributes:
        session_type: "practice", "qualifying", "race", ...
        flag: Current session flag (see the ``FLAG_*`` constants).
        track_name: Circuit name used for track-database lookups.
        total_laps: Race distance in laps; 0 for time-based sessions.
        session_time: Total scheduled session length in seconds.
        time_remaining: Session time left in seconds.
        air_temperature: Air temperature in Celsius.
        track_temperature: Track surface temperature in Celsius.
    """

    session_type: str = "race"
    flag: str = FLAG_GREEN
    track_name: str = ""
    total_laps: int = 0
    session_time: float = 0.0
    time_remaining: float = 0.0
    air_temperature: float = 0.0
    track_temperature: float = 0.0


# ---------------------------------------------------------------------------
# Player car
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FuelState:
    """Fuel readings for the player car."""

    level: float = 0.0
    capacity: float = 0.0
    percentage: float = 0.0
    usage_per_lap: float = 0.0
    estimated_laps_left: int = 0


@dataclass(frozen=True)
class WheelState:
    """Single-wheel tyre readings."""

    wear_percent: float = 0.0
    temperature: float = 0.0
    pressure: float = 0.0


@dataclass(frozen=True)
class TyreSet:
    """Tyre readings for all four corners of the player car."""

    compound: str = ""
    front_left: WheelState = field(default_factory=WheelState)
    front_right: WheelState = field(default_factory=WheelState)
    rear_left: WheelState = field(default_factory=WheelState)
    rear_right: WheelState = field(default_factory=WheelState)

    @property
    def wheels(self) -> tuple[WheelState, WheelState, WheelState, WheelState]:
        return (self.front_left, self.front_right, self.rear_left, self.rear_right)

    @classmethod
    def uniform(cls, wear_percent: float, compound: str = "") -> TyreSet:
        """Build a tyre set with the same wear on every wheel."""
        wheel = WheelState(wear_percent=wear_percent)
        return cls(
            compound=compound,
            front_left=wheel,
            front_right=wheel,
            rear_left=wheel,
            rear_right=wheel,
        )


@dataclass(frozen=True)
class PitState:
    """Pit-lane status of the player car."""

    is_on_pit_road: bool = False
    last_pit_lap: int = 0


@dataclass(frozen=True)
class PlayerState:
    """Player car state.

    Attributes:
        position: Race position (1 = leader).
        current_lap: Lap currently being driven.
        lap_distance_percent: Progress round the current lap (0-100).
        last_lap_time: Last completed lap in seconds (0 if none).
        best_lap_time: Personal best lap in seconds (0 if none).
        current_lap_time: Elapsed time on the current lap.
        gap_to_ahead: Gap to the car ahead in seconds.
        gap_to_behind: Gap to the car behind in seconds.
        speed: Current speed in km/h.
    """

    position: int = 0
    current_lap: int = 0
    lap_distance_percent: float = 0.0
    last_lap_time: float = 0.0
    best_lap_time: float = 0.0
    current_lap_time: float = 0.0
    gap_to_ahead: float = 0.0
    gap_to_behind: float = 0.0
    speed: float = 0.0
    fuel: FuelState = field(default_factory=FuelState)
    tyres: TyreSet = field(default_factory=TyreSet)
    pit: PitState = field(default_factory=PitState)


# ---------------------------------------------------------------------------
# Opponents
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OpponentState:
    """State of another car in the session.

    ``gap_to_player`` is negative when the opponent is behind the player.
    """

    car_index: int = 0
    driver_name: str = ""
    position: int = 0
    current_lap: int = 0
    lap_distance_percent: float = 0.0
    last_lap_time: float = 0.0
    gap_to_player: float = 0.0
    is_on_pit_road: bool = False
    last_pit_lap: int = 0


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TelemetrySnapshot:
    """Immutable telemetry sample.

    Attributes:
        timestamp: Sample time in seconds (adapter clock).
        session: Session information.
        player: Player car state.
        opponents: Other cars, in adapter order.
    """

    timestamp: float = 0.0
    session: SessionInfo = field(default_factory=SessionInfo)
    player: PlayerState = field(default_factory=PlayerState)
    opponents: tuple[OpponentState, ...] = ()


# ---------------------------------------------------------------------------
# Tyre helpers
# ---------------------------------------------------------------------------


def average_wear(tyres: TyreSet) -> float:
    """Mean wear percentage across the four tyres."""
    return sum(w.wear_percent for w in tyres.wheels) / 4.0


def max_wear(tyres: TyreSet) -> float:
    return max(w.wear_percent for w in tyres.wheels)


def min_wear(tyres: TyreSet) -> float:
    return min(w.wear_percent for w in tyres.wheels)


def wear_variance(tyres: TyreSet) -> float:
    """Population variance of the four wear readings."""
    mean: float = average_wear(tyres)
    return sum((w.wear_percent - mean) ** 2 for w in tyres.wheels) / 4.0


def average_temperature(tyres: TyreSet) -> float:
    return sum(w.temperature for w in tyres.wheels) / 4.0


def average_pressure(tyres: TyreSet) -> float:
    return sum(w.pressure for w in tyres.wheels) / 4.0


def stint_lap(player: PlayerState) -> int:
    """Laps driven on the current set of tyres.

    Falls back to the current lap when the pit record would give a
    negative stint.
    """
    laps: int = player.current_lap - player.pit.last_pit_lap
    if laps < 0:
        laps = player.current_lap
    return laps


def lap_progress(snapshot: TelemetrySnapshot) -> float | None:
    """Fraction of a lap-based race completed, or ``None`` if time-based."""
    total: int = snapshot.session.total_laps
    if total <= 0:
        return None
    return snapshot.player.current_lap / total
