"""Named thresholds and analysis preferences for the race strategy engine.

All numeric cut-offs used by the analyzers and the pit-stop calculator
live on :class:`StrategyPolicy` so that boundary behaviour can be tested
by constructing a policy with different values.  :class:`AnalysisConfig`
carries the caller-facing preferences.
"""

from __future__ import annotations

from dataclasses import dataclass, field

RACE_FORMATS: tuple[str, ...] = ("auto", "sprint", "endurance", "standard")


@dataclass(frozen=True)
class StrategyPolicy:
    """Thresholds shared by the analyzers.

    Lap times and gaps are in seconds, wear in percent, fuel in litres.
    """

    # -- Lap analysis ---------------------------------------------------------
    lap_sample_size: int = 10
    min_lap_samples: int = 3
    min_trend_samples: int = 5
    trend_threshold: float = 0.2
    improving_adjustment: float = -0.1
    degrading_adjustment: float = 0.2
    consistency_scale: float = 10.0

    # -- Fuel analysis --------------------------------------------------------
    fuel_sample_size: int = 10
    max_plausible_consumption: float = 10.0
    fuel_trend_threshold: float = 0.1
    aggressive_save_threshold: float = 0.3
    conservative_threshold: float = 0.1
    aggressive_threshold: float = -0.2

    # -- Tyre analysis --------------------------------------------------------
    wear_sample_size: int = 10
    min_wear_samples: int = 3
    wear_ceiling: float = 80.0
    performance_wear_floor: float = 20.0
    pit_window_wear: float = 60.0
    pit_window_fuel_laps: int = 10
    pit_window_min_progress: float = 0.2
    pit_window_max_progress: float = 0.9
    pit_delta_gap: float = 25.0
    overcut_stint_margin: int = 5
    hot_track_temperature: float = 40.0
    cold_track_temperature: float = 20.0
    late_race_progress: float = 0.7
    estimated_pit_loss: float = 25.0

    # -- Race context ---------------------------------------------------------
    sprint_max_laps: int = 15
    endurance_min_laps: int = 50
    sprint_max_time: float = 3600.0
    endurance_min_time: float = 7200.0
    position_window: int = 3
    position_trend_samples: int = 5
    fuel_risk_margin: float = 1.1
    tyre_risk_wear: float = 70.0
    tyre_disadvantage_wear: float = 80.0

    # -- Pit-stop calculator --------------------------------------------------
    strategic_window_wear: float = 40.0
    forced_window_fuel_laps: int = 8
    opportunity_window_fraction: float = 0.3
    undercut_gap: float = 25.0
    overcut_gap: float = 20.0
    clear_track_gap: float = 30.0
    backmarker_position_gap: int = 5
    backmarker_count: int = 3
    pit_entry_time: float = 3.0
    pit_exit_time: float = 4.0
    field_size: int = 20
    predicted_pit_wear: float = 80.0
    predicted_pit_stint: int = 25
    critical_fuel_laps: int = 5
    fuel_load_margin: float = 1.1


@dataclass(frozen=True)
class AnalysisConfig:
    """Caller preferences read by the engine.

    Attributes:
        race_format: ``"auto"`` to detect from the session, otherwise a
            forced format (``"sprint"``, ``"endurance"``, ``"standard"``).
        safety_margin: Fuel safety multiplier (1.1 = 10 % extra).
        include_opponent_data: When False, opponent telemetry is ignored.
        policy: Threshold set used by every analyzer.
    """

    race_format: str = "auto"
    safety_margin: float = 1.1
    include_opponent_data: bool = True
    policy: StrategyPolicy = field(default_factory=StrategyPolicy)

    def __post_init__(self) -> None:
        """Validate analysis preferences."""
        if self.race_format not in RACE_FORMATS:
            raise ValueError(
                "race_format must be one of: " + ", ".join(RACE_FORMATS) + "."
            )
        if not 1.0 <= self.safety_margin <= 2.0:
            raise ValueError("safety_margin must be between 1.0 and 2.0.")
