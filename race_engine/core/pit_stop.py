"""Pit-stop timing calculator for the race strategy engine.

Unlike the analyzers, the calculator keeps a little rolling state of its
own: a position tracker (player and per-opponent samples) and a timing
analyzer (recent lap-time decompositions).  Both are bounded deques and
only feed the confidence and data-quality scores; every other figure is
derived from the snapshot and the track record.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass

from race_engine.core.pit_models import (
    WINDOW_FORCED,
    WINDOW_OPPORTUNITY,
    WINDOW_STRATEGIC,
    DefenseOption,
    FuturePosition,
    OpportunityWindow,
    OvercutAnalysis,
    OvercutTarget,
    PitAlternative,
    PitLossCalculation,
    PitRecommendation,
    PitRiskFactor,
    PitStopAnalysis,
    PitWindow,
    PositionChange,
    TrackPosition,
    TrafficAnalysis,
    TrafficPattern,
    UndercutAnalysis,
    UndercutThreat,
)
from race_engine.core.policy import StrategyPolicy
from race_engine.core.race_context import RaceAnalysis
from race_engine.core.telemetry import (
    FLAG_GREEN,
    OpponentState,
    TelemetrySnapshot,
    average_wear,
    stint_lap,
)
from race_engine.core.track import TrackData, TrackDatabase

logger = logging.getLogger(__name__)

PLAYER_TRACK_CAPACITY: int = 100
OPPONENT_TRACK_CAPACITY: int = 50
LAP_PATTERN_CAPACITY: int = 20

# Gap below which a car counts as traffic, seconds.
TRAFFIC_GAP: float = 5.0
TRAFFIC_DELAY_PER_CAR: float = 0.5


# ---------------------------------------------------------------------------
# Rolling trackers
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PositionSnapshot:
    """One tracked sample of a car's place on the lap.

    Attributes:
        track_position: Lap fraction (0.0-1.0).
        speed: km/h (0 for opponents, not reported).
        lap_time: Last completed lap, seconds.
        estimated_lap_time: Running time on the current lap, seconds.
        in_pit_lane: Car is on pit road.
        just_exited_pits: On pit road on a lap after its last stop.
    """

    track_position: float
    speed: float
    lap_time: float
    estimated_lap_time: float
    in_pit_lane: bool
    just_exited_pits: bool


class PositionTracker:
    """Bounded position history for the player and each opponent."""

    __slots__ = ("player", "opponents")

    def __init__(self) -> None:
        self.player: deque[PositionSnapshot] = deque(maxlen=PLAYER_TRACK_CAPACITY)
        self.opponents: dict[int, deque[PositionSnapshot]] = {}

    def update(
        self, snapshot: TelemetrySnapshot, opponents: tuple[OpponentState, ...]
    ) -> None:
        player = snapshot.player
        self.player.append(
            PositionSnapshot(
                track_position=player.lap_distance_percent / 100.0,
                speed=player.speed,
                lap_time=player.last_lap_time,
                estimated_lap_time=player.current_lap_time,
                in_pit_lane=player.pit.is_on_pit_road,
                just_exited_pits=(
                    player.pit.is_on_pit_road
                    and player.current_lap > player.pit.last_pit_lap
                ),
            )
        )
        for opponent in opponents:
            track = self.opponents.setdefault(
                opponent.car_index, deque(maxlen=OPPONENT_TRACK_CAPACITY)
            )
            track.append(
                PositionSnapshot(
                    track_position=opponent.lap_distance_percent / 100.0,
                    speed=0.0,
                    lap_time=opponent.last_lap_time,
                    estimated_lap_time=0.0,
                    in_pit_lane=opponent.is_on_pit_road,
                    just_exited_pits=(
                        opponent.is_on_pit_road
                        and opponent.current_lap > opponent.last_pit_lap
                    ),
                )
            )


@dataclass(frozen=True)
class LapTimePattern:
    """Lap time split into a base and its penalties, seconds."""

    base_lap_time: float
    tyre_degradation: float
    fuel_effect: float
    traffic_impact: float


def traffic_cars(opponents: tuple[OpponentState, ...]) -> list[OpponentState]:
    """Opponents close enough on the road to cost the player time."""
    return [o for o in opponents if abs(o.gap_to_player) < TRAFFIC_GAP]


class TimingAnalyzer:
    """Keeps the most recent :class:`LapTimePattern` records."""

    __slots__ = ("patterns",)

    def __init__(self) -> None:
        self.patterns: deque[LapTimePattern] = deque(maxlen=LAP_PATTERN_CAPACITY)

    def update(
        self, snapshot: TelemetrySnapshot, opponents: tuple[OpponentState, ...]
    ) -> None:
        player = snapshot.player
        if player.last_lap_time <= 0:
            return
        self.patterns.append(
            LapTimePattern(
                base_lap_time=player.best_lap_time,
                # 0.1 s per 10 % wear, 0.03 s per litre
                tyre_degradation=average_wear(player.tyres) / 10.0 * 0.1,
                fuel_effect=player.fuel.level * 0.03,
                traffic_impact=len(traffic_cars(opponents)) * TRAFFIC_DELAY_PER_CAR,
            )
        )


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def next_sector(lap_distance_percent: float) -> int:
    if lap_distance_percent < 33.33:
        return 1
    if lap_distance_percent < 66.66:
        return 2
    return 3


def current_track_position(
    snapshot: TelemetrySnapshot, track: TrackData
) -> TrackPosition:
    player = snapshot.player
    total_laps: int = snapshot.session.total_laps
    distance: float = 0.0
    time_left: float = 0.0
    if total_laps > 0:
        laps_remaining: int = total_laps - player.current_lap
        lap_left: float = 1.0 - player.lap_distance_percent / 100.0
        distance = laps_remaining * track.length_km + lap_left * track.length_km
        if player.last_lap_time > 0:
            time_left = (
                player.last_lap_time * lap_left
                + laps_remaining * player.last_lap_time
            )
    return TrackPosition(
        lap_distance_percent=player.lap_distance_percent,
        estimated_speed=player.speed,
        next_sector=next_sector(player.lap_distance_percent),
        distance_to_finish=distance,
        time_to_finish=time_left,
    )


def _window(
    start: int,
    end: int,
    optimal: int,
    window_type: str,
    confidence: float,
    expected_gain: float,
    risk_level: str,
    rationale: str,
) -> PitWindow:
    # Keep start <= optimal <= end even when fuel or race distance runs out.
    end = max(start, end)
    optimal = min(max(start, optimal), end)
    return PitWindow(
        start_lap=start,
        end_lap=end,
        optimal_lap=optimal,
        window_type=window_type,
        confidence=confidence,
        expected_gain=expected_gain,
        risk_level=risk_level,
        rationale=rationale,
    )


def optimal_windows(
    snapshot: TelemetrySnapshot, track: TrackData, policy: StrategyPolicy
) -> list[PitWindow]:
    """Strategic, forced and opportunity windows; none for timed races."""
    total_laps: int = snapshot.session.total_laps
    if total_laps <= 0:
        return []

    player = snapshot.player
    lap: int = player.current_lap
    windows: list[PitWindow] = []

    if average_wear(player.tyres) > policy.strategic_window_wear:
        windows.append(
            _window(
                lap + 1, lap + 8, lap + 3,
                WINDOW_STRATEGIC, 0.8, -track.pit_lane_time_delta, "medium",
                "Tyre degradation reaching optimal pit window",
            )
        )

    fuel_laps: int = player.fuel.estimated_laps_left
    if fuel_laps < policy.forced_window_fuel_laps:
        windows.append(
            _window(
                lap + 1, lap + fuel_laps - 1, lap + fuel_laps - 2,
                WINDOW_FORCED, 0.95, -track.pit_lane_time_delta, "high",
                "Fuel level requires pit stop",
            )
        )

    if total_laps - lap < total_laps * policy.opportunity_window_fraction:
        windows.append(
            _window(
                lap + 1, total_laps - 3, total_laps - 8,
                WINDOW_OPPORTUNITY, 0.6, 5.0, "medium",
                "Late-race fresh tyre advantage",
            )
        )
    return windows


def pit_predicted(snapshot: TelemetrySnapshot, lap: int, policy: StrategyPolicy) -> bool:
    stint: int = lap - snapshot.player.pit.last_pit_lap
    return (
        average_wear(snapshot.player.tyres) > policy.predicted_pit_wear
        or stint > policy.predicted_pit_stint
    )


def future_positions(
    snapshot: TelemetrySnapshot, policy: StrategyPolicy, laps: int = 5
) -> list[FuturePosition]:
    player = snapshot.player
    out: list[FuturePosition] = []
    for k in range(1, laps + 1):
        lap: int = player.current_lap + k
        position: int = player.position
        factors: list[str] = ["Current pace", "Tyre degradation"]
        if pit_predicted(snapshot, lap, policy):
            position += 2
            factors.append("Pit stop impact")
        out.append(
            FuturePosition(
                lap=lap,
                position=position,
                track_position=0.5,
                estimated_time=k * player.last_lap_time,
                confidence=0.8 - 0.1 * k,
                influencing_factors=tuple(factors),
            )
        )
    return out


def undercut_threats(
    snapshot: TelemetrySnapshot,
    opponents: tuple[OpponentState, ...],
    policy: StrategyPolicy,
) -> list[OpponentState]:
    player = snapshot.player
    return [
        o
        for o in opponents
        if o.position > player.position and abs(o.gap_to_player) < policy.undercut_gap
    ]


def analyze_undercut(
    snapshot: TelemetrySnapshot,
    opponents: tuple[OpponentState, ...],
    policy: StrategyPolicy,
) -> UndercutAnalysis:
    lap: int = snapshot.player.current_lap
    threats = tuple(
        UndercutThreat(
            car_position=o.position,
            driver_name=o.driver_name,
            gap_behind=abs(o.gap_to_player),
            tyre_age=lap - o.last_pit_lap,
            estimated_gain=8.0,
            threat_probability=0.7,
        )
        for o in undercut_threats(snapshot, opponents, policy)
    )
    if not threats:
        return UndercutAnalysis()
    defense = DefenseOption(
        strategy="Defensive pit stop",
        description="Pit immediately to cover undercut threat",
        effectiveness=0.8,
        risk_level="medium",
        required_actions=("Pit next lap", "Optimise pit stop time"),
    )
    return UndercutAnalysis(
        threat_level="medium",
        threatening_cars=threats,
        defense_options=(defense,),
        optimal_response="defensive_pit",
    )


def analyze_overcut(
    snapshot: TelemetrySnapshot,
    opponents: tuple[OpponentState, ...],
    policy: StrategyPolicy,
) -> OvercutAnalysis:
    player = snapshot.player
    player_stint: int = stint_lap(player)

    targets: list[OvercutTarget] = []
    for o in opponents:
        if o.position >= player.position or abs(o.gap_to_player) >= policy.overcut_gap:
            continue
        opponent_stint: int = player.current_lap - o.last_pit_lap
        if opponent_stint > player_stint + policy.overcut_stint_margin:
            targets.append(
                OvercutTarget(
                    car_position=o.position,
                    driver_name=o.driver_name,
                    gap_ahead=abs(o.gap_to_player),
                    tyre_age=opponent_stint,
                    degradation_rate=0.1,
                    estimated_gain=6.0,
                    success_probability=0.6,
                )
            )
    if not targets:
        return OvercutAnalysis()
    return OvercutAnalysis(
        opportunity_level="medium",
        target_cars=tuple(targets),
        required_stint_extension=8,
        expected_gain=6.0,
        risk_factors=("Tyre degradation", "Fuel consumption"),
    )


def analyze_traffic(
    snapshot: TelemetrySnapshot,
    opponents: tuple[OpponentState, ...],
    policy: StrategyPolicy,
    pattern_laps: int = 3,
) -> TrafficAnalysis:
    player = snapshot.player
    clear: bool = (
        player.gap_to_ahead > policy.clear_track_gap
        or player.gap_to_behind > policy.clear_track_gap
    )
    clear_laps = tuple(
        range(player.current_lap + 1, player.current_lap + 11) if clear else ()
    )

    backmarkers: int = sum(
        1 for o in opponents if o.position > player.position + policy.backmarker_position_gap
    )

    nearby = traffic_cars(opponents)
    if clear:
        level = "clear"
    elif len(nearby) >= 2:
        level = "heavy"
    else:
        level = "light"
    sector: int = next_sector(player.lap_distance_percent)
    patterns = tuple(
        TrafficPattern(
            lap=player.current_lap + k,
            sector=sector,
            traffic_level=level,
            estimated_delay=0.0 if clear else len(nearby) * TRAFFIC_DELAY_PER_CAR,
            affected_positions=tuple(sorted(o.position for o in nearby)),
        )
        for k in range(1, pattern_laps + 1)
    )

    return TrafficAnalysis(
        traffic_density=len(opponents) / 3.0,
        clear_track_laps=clear_laps,
        backmarker_risk="medium" if backmarkers > policy.backmarker_count else "low",
        traffic_patterns=patterns,
    )


def pit_loss(
    snapshot: TelemetrySnapshot, track: TrackData, policy: StrategyPolicy
) -> PitLossCalculation:
    """Time cost of a stop at this circuit."""
    pit_lane_m: float = track.pit_lane_length_km * 1000
    travel: float = pit_lane_m / (track.pit_speed_limit / 3.6)
    total: float = (
        policy.pit_entry_time + travel + track.typical_stationary_time + policy.pit_exit_time
    )

    last_lap: float = snapshot.player.last_lap_time
    track_time: float = 0.0
    positions_lost: int = 0
    if last_lap > 0:
        race_speed: float = track.length_km * 1000 / last_lap  # m/s
        track_time = pit_lane_m / race_speed
    net: float = total - track_time
    if last_lap > 0:
        positions_lost = int(net / last_lap * policy.field_size)

    return PitLossCalculation(
        pit_lane_entry=policy.pit_entry_time,
        pit_lane_travel=travel,
        stationary_time=track.typical_stationary_time,
        pit_lane_exit=policy.pit_exit_time,
        total_pit_time=total,
        track_position=track_time,
        net_time_loss=net,
        positions_lost=positions_lost,
        recovery_laps=positions_lost // 2,
    )


def position_changes(snapshot: TelemetrySnapshot) -> list[PositionChange]:
    """Stop now (lose two places) vs. stay out (gain one)."""
    position: int = snapshot.player.position
    return [
        PositionChange(
            from_position=position,
            to_position=position + 2,
            net_change=-2,
            probability=0.8,
            recovery_time=300.0,
            depends_on=("Clean pit stop", "Minimal traffic"),
        ),
        PositionChange(
            from_position=position,
            to_position=position - 1,
            net_change=1,
            probability=0.6,
            recovery_time=120.0,
            depends_on=("Tyre degradation management", "Others pitting first"),
        ),
    ]


def risk_factors(
    snapshot: TelemetrySnapshot,
    opponents: tuple[OpponentState, ...],
    policy: StrategyPolicy,
) -> list[PitRiskFactor]:
    player = snapshot.player
    risks: list[PitRiskFactor] = []
    if average_wear(player.tyres) > policy.tyre_risk_wear:
        risks.append(
            PitRiskFactor(
                risk_type="tyre_degradation",
                severity="high",
                probability=0.9,
                impact="Lap time loss increasing rapidly",
                mitigation="Pit within next 3 laps",
                time_window="immediate",
            )
        )
    if player.fuel.estimated_laps_left < policy.critical_fuel_laps:
        risks.append(
            PitRiskFactor(
                risk_type="fuel_shortage",
                severity="critical",
                probability=1.0,
                impact="DNF if not addressed",
                mitigation="Mandatory pit stop for fuel",
                time_window="next_2_laps",
            )
        )
    if undercut_threats(snapshot, opponents, policy):
        risks.append(
            PitRiskFactor(
                risk_type="undercut_threat",
                severity="medium",
                probability=0.7,
                impact="Loss of track position",
                mitigation="Defensive pit stop or extend stint",
                time_window="next_5_laps",
            )
        )
    return risks


def opportunity_windows(snapshot: TelemetrySnapshot) -> list[OpportunityWindow]:
    """Fixed-probability safety-car and weather scenarios."""
    lap: int = snapshot.player.current_lap
    windows: list[OpportunityWindow] = []
    if snapshot.session.flag == FLAG_GREEN:
        windows.append(
            OpportunityWindow(
                window_type="safety_car",
                start_lap=lap + 3,
                end_lap=lap + 10,
                probability=0.3,
                potential_gain=15.0,
                required_actions=("Monitor track conditions", "Ready pit crew"),
            )
        )
    windows.append(
        OpportunityWindow(
            window_type="weather",
            start_lap=lap + 5,
            end_lap=lap + 15,
            probability=0.2,
            potential_gain=20.0,
            required_actions=("Monitor weather radar", "Prepare wet tyres"),
        )
    )
    return windows


def alternative_options(snapshot: TelemetrySnapshot) -> list[PitAlternative]:
    lap: int = snapshot.player.current_lap
    return [
        PitAlternative(
            lap=lap + 1,
            tyre_compound="medium",
            fuel_load=50.0,
            pros=("Safe option", "Avoids tyre cliff", "Covers undercut"),
            cons=("Gives up track position", "May be too early"),
            risk_level="low",
        ),
        PitAlternative(
            lap=lap + 8,
            tyre_compound="soft",
            fuel_load=35.0,
            pros=("Overcut opportunity", "Fresh tyres at end", "Track position advantage"),
            cons=("Tyre degradation risk", "Fuel management required"),
            risk_level="high",
        ),
    ]


def primary_recommendation(
    snapshot: TelemetrySnapshot,
    windows: list[PitWindow],
    loss: PitLossCalculation,
    risks: list[PitRiskFactor],
    alternatives: list[PitAlternative],
    policy: StrategyPolicy,
) -> PitRecommendation:
    """Recommend a stop from the highest-confidence window, if any."""
    player = snapshot.player
    wear: float = average_wear(player.tyres)

    should_pit = False
    optimal_lap: int = 0
    close_lap: int = 0
    estimated_loss: float = policy.estimated_pit_loss
    gain: float = 0.0
    if windows:
        best = max(windows, key=lambda w: w.confidence)
        should_pit = True
        optimal_lap = best.optimal_lap
        close_lap = best.end_lap
        gain = best.expected_gain
        if loss.net_time_loss > 0:
            estimated_loss = loss.net_time_loss

    fuel_load: float = 0.0
    total_laps: int = snapshot.session.total_laps
    if total_laps > 0:
        laps_remaining: int = max(0, total_laps - player.current_lap)
        fuel_load = laps_remaining * player.fuel.usage_per_lap * policy.fuel_load_margin

    return PitRecommendation(
        should_pit=should_pit,
        optimal_lap=optimal_lap,
        window_open=should_pit,
        window_close_lap=close_lap,
        tyre_compound="soft" if wear > policy.pit_window_wear else "medium",
        fuel_load=fuel_load,
        estimated_loss=estimated_loss,
        strategic_gain=gain,
        risk_factors=tuple(r.impact for r in risks if r.severity in ("high", "critical")),
        alternatives=tuple(alternatives),
    )


# ---------------------------------------------------------------------------
# Calculator
# ---------------------------------------------------------------------------


class PitStopCalculator:
    """Detailed pit-timing view for the current snapshot.

    Attributes:
        track_db: Circuit lookup; the bundled circuit data when not given.
        policy: Threshold set.
        include_opponents: When False, opponent telemetry is ignored.
        tracker: Rolling position samples.
        timing: Rolling lap-time patterns.
    """

    def __init__(
        self,
        track_db: TrackDatabase | None = None,
        policy: StrategyPolicy | None = None,
        include_opponents: bool = True,
    ):
        if track_db is None:
            # race_engine.config imports this package at module level.
            from race_engine.config import load_track_database

            track_db = load_track_database()
        self.track_db: TrackDatabase = track_db
        self.policy: StrategyPolicy = policy if policy is not None else StrategyPolicy()
        self.include_opponents: bool = include_opponents
        self.tracker: PositionTracker = PositionTracker()
        self.timing: TimingAnalyzer = TimingAnalyzer()

    def confidence(self, snapshot: TelemetrySnapshot) -> float:
        player = snapshot.player
        score: float = 0.7
        if len(self.tracker.player) >= 10:
            score += 0.1
        if snapshot.session.flag != FLAG_GREEN:
            score -= 0.2
        if player.gap_to_ahead > 10 and player.gap_to_behind > 10:
            score += 0.1
        return max(0.1, min(1.0, score))

    def data_quality(self) -> float:
        score: float = 0.7
        if len(self.tracker.player) >= 5:
            score += 0.1
        if len(self.timing.patterns) >= 3:
            score += 0.1
        if len(self.tracker.opponents) >= 3:
            score += 0.1
        return max(0.1, min(1.0, score))

    def calculate_pit_stop_timing(
        self,
        snapshot: TelemetrySnapshot,
        race_analysis: RaceAnalysis | None = None,
    ) -> PitStopAnalysis:
        """Update the trackers and build a :class:`PitStopAnalysis`.

        Args:
            snapshot: Current telemetry sample.
            race_analysis: Race context for the same sample, if the caller
                has one.  Its risk level is reported in the debug log; the
                timing model itself reads the snapshot.

        Returns:
            A new :class:`PitStopAnalysis`.
        """
        policy = self.policy
        track = self.track_db.get(snapshot.session.track_name)
        opponents = snapshot.opponents if self.include_opponents else ()

        self.tracker.update(snapshot, opponents)
        self.timing.update(snapshot, opponents)

        windows = optimal_windows(snapshot, track, policy)
        loss = pit_loss(snapshot, track, policy)
        risks = risk_factors(snapshot, opponents, policy)
        alternatives = alternative_options(snapshot)

        if race_analysis is not None:
            logger.debug(
                "Pit timing on lap %d: %d windows, race risk %s",
                snapshot.player.current_lap,
                len(windows),
                race_analysis.risk_level or "unknown",
            )

        return PitStopAnalysis(
            track_name=track.name,
            optimal_windows=tuple(windows),
            current_position=current_track_position(snapshot, track),
            estimated_positions=tuple(future_positions(snapshot, policy)),
            undercut_analysis=analyze_undercut(snapshot, opponents, policy),
            overcut_analysis=analyze_overcut(snapshot, opponents, policy),
            traffic_analysis=analyze_traffic(snapshot, opponents, policy),
            risk_factors=tuple(risks),
            opportunity_windows=tuple(opportunity_windows(snapshot)),
            pit_loss=loss,
            position_changes=tuple(position_changes(snapshot)),
            primary_recommendation=primary_recommendation(
                snapshot, windows, loss, risks, alternatives, policy
            ),
            alternative_options=tuple(alternatives),
            calculation_confidence=self.confidence(snapshot),
            data_quality=self.data_quality(),
        )
