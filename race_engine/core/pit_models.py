"""Result types produced by the pit-stop calculator.

All times are seconds.  Every object is built fresh per calculation and
never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field

WINDOW_STRATEGIC: str = "strategic"
WINDOW_FORCED: str = "forced"
WINDOW_OPPORTUNITY: str = "opportunity"


# ---------------------------------------------------------------------------
# Windows and positions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PitWindow:
    """Lap range in which a stop makes sense.

    Attributes:
        start_lap: First lap of the window.
        end_lap: Last lap of the window.
        optimal_lap: Best lap inside the window.
        window_type: "strategic", "forced" or "opportunity".
        confidence: 0-1.
        expected_gain: Net time gained (negative = lost) by stopping.
        risk_level: "low", "medium" or "high".
        rationale: Why the window exists.
    """

    start_lap: int
    end_lap: int
    optimal_lap: int
    window_type: str
    confidence: float
    expected_gain: float
    risk_level: str
    rationale: str


@dataclass(frozen=True)
class TrackPosition:
    """Where the player is on the lap and how far from the flag."""

    lap_distance_percent: float = 0.0
    estimated_speed: float = 0.0
    next_sector: int = 1
    distance_to_finish: float = 0.0
    time_to_finish: float = 0.0


@dataclass(frozen=True)
class FuturePosition:
    lap: int
    position: int
    track_position: float
    estimated_time: float
    confidence: float
    influencing_factors: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Undercut / overcut
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class UndercutThreat:
    car_position: int
    driver_name: str
    gap_behind: float
    tyre_age: int
    estimated_gain: float
    threat_probability: float


@dataclass(frozen=True)
class DefenseOption:
    strategy: str
    description: str
    effectiveness: float
    risk_level: str
    required_actions: tuple[str, ...] = ()


@dataclass(frozen=True)
class UndercutAnalysis:
    """Cars behind that could jump the player by stopping first."""

    threat_level: str = "low"
    threatening_cars: tuple[UndercutThreat, ...] = ()
    defense_options: tuple[DefenseOption, ...] = ()
    optimal_response: str = "monitor"


@dataclass(frozen=True)
class OvercutTarget:
    car_position: int
    driver_name: str
    gap_ahead: float
    tyre_age: int
    degradation_rate: float
    estimated_gain: float
    success_probability: float


@dataclass(frozen=True)
class OvercutAnalysis:
    """Cars ahead on old tyres the player could pass by staying out."""

    opportunity_level: str = "low"
    target_cars: tuple[OvercutTarget, ...] = ()
    required_stint_extension: int = 0
    expected_gain: float = 0.0
    risk_factors: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Traffic, risk and opportunity
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TrafficPattern:
    """Expected traffic on one upcoming lap.

    Attributes:
        lap: Lap number.
        sector: Sector the player enters next.
        traffic_level: "clear", "light" or "heavy".
        estimated_delay: Time lost to traffic on that lap.
        affected_positions: Positions of the cars involved.
    """

    lap: int
    sector: int
    traffic_level: str
    estimated_delay: float
    affected_positions: tuple[int, ...] = ()


@dataclass(frozen=True)
class TrafficAnalysis:
    traffic_density: float = 0.0
    clear_track_laps: tuple[int, ...] = ()
    backmarker_risk: str = "low"
    traffic_patterns: tuple[TrafficPattern, ...] = ()


@dataclass(frozen=True)
class PitRiskFactor:
    risk_type: str
    severity: str
    probability: float
    impact: str
    mitigation: str
    time_window: str


@dataclass(frozen=True)
class OpportunityWindow:
    window_type: str
    start_lap: int
    end_lap: int
    probability: float
    potential_gain: float
    required_actions: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Pit loss and position changes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PitLossCalculation:
    """Breakdown of the time a stop costs.

    Attributes:
        pit_lane_entry: Braking into the pit lane.
        pit_lane_travel: Driving the pit lane at the speed limit.
        stationary_time: Time in the box.
        pit_lane_exit: Rejoining the track.
        total_pit_time: Sum of the four parts above.
        track_position: Time the same distance takes at race pace.
        net_time_loss: ``total_pit_time - track_position``.
        positions_lost: Estimated places lost.
        recovery_laps: Laps to win those places back.
    """

    pit_lane_entry: float = 0.0
    pit_lane_travel: float = 0.0
    stationary_time: float = 0.0
    pit_lane_exit: float = 0.0
    total_pit_time: float = 0.0
    track_position: float = 0.0
    net_time_loss: float = 0.0
    positions_lost: int = 0
    recovery_laps: int = 0


@dataclass(frozen=True)
class PositionChange:
    from_position: int
    to_position: int
    net_change: int
    probability: float
    recovery_time: float
    depends_on: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PitAlternative:
    lap: int
    tyre_compound: str
    fuel_load: float
    pros: tuple[str, ...] = ()
    cons: tuple[str, ...] = ()
    risk_level: str = "medium"


@dataclass(frozen=True)
class PitRecommendation:
    """Whether and when to stop, and what to fit.

    Attributes:
        should_pit: A stop is recommended.
        optimal_lap: Lap to stop on (0 when no stop is planned).
        window_open: The pit window is currently open.
        window_close_lap: Last lap of the window.
        tyre_compound: Compound to fit.
        fuel_load: Litres to add.
        estimated_loss: Time lost by stopping.
        strategic_gain: Net gain of the chosen window.
        risk_factors: Impacts of the serious risks in play.
        alternatives: Alternative stop plans.
    """

    should_pit: bool = False
    optimal_lap: int = 0
    window_open: bool = False
    window_close_lap: int = 0
    tyre_compound: str = "medium"
    fuel_load: float = 0.0
    estimated_loss: float = 25.0
    strategic_gain: float = 0.0
    risk_factors: tuple[str, ...] = ()
    alternatives: tuple[PitAlternative, ...] = ()


@dataclass(frozen=True)
class PitStopAnalysis:
    """Full pit-timing view for one snapshot."""

    track_name: str = ""
    optimal_windows: tuple[PitWindow, ...] = ()
    current_position: TrackPosition = field(default_factory=TrackPosition)
    estimated_positions: tuple[FuturePosition, ...] = ()
    undercut_analysis: UndercutAnalysis = field(default_factory=UndercutAnalysis)
    overcut_analysis: OvercutAnalysis = field(default_factory=OvercutAnalysis)
    traffic_analysis: TrafficAnalysis = field(default_factory=TrafficAnalysis)
    risk_factors: tuple[PitRiskFactor, ...] = ()
    opportunity_windows: tuple[OpportunityWindow, ...] = ()
    pit_loss: PitLossCalculation = field(default_factory=PitLossCalculation)
    position_changes: tuple[PositionChange, ...] = ()
    primary_recommendation: PitRecommendation = field(
        default_factory=PitRecommendation
    )
    alternative_options: tuple[PitAlternative, ...] = ()
    calculation_confidence: float = 0.0
    data_quality: float = 0.0

    def windows_of_type(self, window_type: str) -> list[PitWindow]:
        return [w for w in self.optimal_windows if w.window_type == window_type]
