"""Race-situation analysis for the race strategy engine.

Classifies the race (format, phase), tracks the player's position trend
and nearby gaps, and condenses fuel/tyre/flag state into a risk level
and an opportunity score.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from race_engine.core.fuel import STRATEGY_AGGRESSIVE, FuelAnalysis
from race_engine.core.history import TelemetryHistory
from race_engine.core.lap import TREND_DEGRADING, TREND_IMPROVING, LapAnalysis
from race_engine.core.policy import StrategyPolicy
from race_engine.core.telemetry import (
    FLAG_GREEN,
    FLAG_YELLOW,
    OpponentState,
    TelemetrySnapshot,
    average_wear,
)
from race_engine.core.tyre import TyreAnalysis

FORMAT_SPRINT: str = "sprint"
FORMAT_ENDURANCE: str = "endurance"
FORMAT_STANDARD: str = "standard"

PHASE_EARLY: str = "early"
PHASE_MIDDLE: str = "middle"
PHASE_LATE: str = "late"
PHASE_CRITICAL: str = "critical"

RISK_LEVELS: tuple[str, ...] = ("low", "medium", "high", "critical")


@dataclass(frozen=True)
class RaceAnalysis:
    """Derived race-situation state.

    Attributes:
        race_format: "sprint", "endurance" or "standard".
        strategic_phase: "early", "middle", "late" or "critical".
        position_trend: "gaining", "stable" or "losing".
        competitive_gaps: Opponent position -> gap in seconds, for cars
            within a few places of the player.
        risk_level: "low", "medium", "high" or "critical".
        opportunity_score: 0-1 rating of current opportunities.
        key_strategic_factors: Short human-readable considerations.
    """

    race_format: str = ""
    strategic_phase: str = ""
    position_trend: str = ""
    competitive_gaps: dict[int, float] = field(default_factory=dict)
    risk_level: str = ""
    opportunity_score: float = 0.0
    key_strategic_factors: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def detect_race_format(snapshot: TelemetrySnapshot, policy: StrategyPolicy) -> str:
    session = snapshot.session
    if session.total_laps > 0:
        if session.total_laps <= policy.sprint_max_laps:
            return FORMAT_SPRINT
        if session.total_laps >= policy.endurance_min_laps:
            return FORMAT_ENDURANCE
    elif session.time_remaining > 0:
        if session.time_remaining < policy.sprint_max_time:
            return FORMAT_SPRINT
        if session.time_remaining > policy.endurance_min_time:
            return FORMAT_ENDURANCE
    return FORMAT_STANDARD


def race_progress(snapshot: TelemetrySnapshot) -> float:
    """Completed fraction of the race, by laps or by elapsed time."""
    session = snapshot.session
    if session.total_laps > 0:
        return snapshot.player.current_lap / session.total_laps
    if session.session_time > 0:
        elapsed: float = session.session_time - session.time_remaining
        return elapsed / session.session_time
    return 0.0


def strategic_phase(snapshot: TelemetrySnapshot) -> str:
    progress: float = race_progress(snapshot)
    if progress < 0.25:
        return PHASE_EARLY
    if progress < 0.75:
        return PHASE_MIDDLE
    if progress < 0.9:
        return PHASE_LATE
    return PHASE_CRITICAL


def position_trend(history: TelemetryHistory, policy: StrategyPolicy) -> str:
    window = history.recent(policy.position_trend_samples)
    if len(window) < policy.position_trend_samples:
        return "stable"
    end_pos: int = window[0].player.position
    start_pos: int = window[-1].player.position
    if end_pos < start_pos - 1:
        return "gaining"
    if end_pos > start_pos + 1:
        return "losing"
    return "stable"


def competitive_gaps(
    snapshot: TelemetrySnapshot,
    opponents: tuple[OpponentState, ...],
    policy: StrategyPolicy,
) -> dict[int, float]:
    gaps: dict[int, float] = {}
    for opponent in opponents:
        if abs(opponent.position - snapshot.player.position) <= policy.position_window:
            gaps[opponent.position] = opponent.gap_to_player
    return gaps


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def assess_risk_level(
    snapshot: TelemetrySnapshot,
    fuel: FuelAnalysis,
    tyre: TyreAnalysis,
    policy: StrategyPolicy,
) -> str:
    """Count active risk flags and map the count to a level."""
    flags: int = 0
    if snapshot.player.fuel.level < fuel.fuel_to_finish * policy.fuel_risk_margin:
        flags += 1
    if average_wear(snapshot.player.tyres) > policy.tyre_risk_wear:
        flags += 1
    if snapshot.session.flag != FLAG_GREEN:
        flags += 1
    if tyre.undercut_threat:
        flags += 1
    return RISK_LEVELS[min(flags, len(RISK_LEVELS) - 1)]


def opportunity_score(
    snapshot: TelemetrySnapshot,
    lap: LapAnalysis,
    fuel: FuelAnalysis,
    tyre: TyreAnalysis,
    policy: StrategyPolicy,
) -> float:
    score: float = 0.5

    if tyre.overcut_opportunity:
        score += 0.2
    if lap.trend_direction == TREND_IMPROVING:
        score += 0.1
    if snapshot.session.flag == FLAG_YELLOW:
        score += 0.2
    if fuel.strategy_recommendation == STRATEGY_AGGRESSIVE:
        score += 0.1

    if tyre.undercut_threat:
        score -= 0.2
    if lap.trend_direction == TREND_DEGRADING:
        score -= 0.1
    if average_wear(snapshot.player.tyres) > policy.tyre_disadvantage_wear:
        score -= 0.2

    return max(0.0, min(1.0, score))


def key_strategic_factors(
    snapshot: TelemetrySnapshot,
    fuel: FuelAnalysis,
    gaps: dict[int, float],
    phase: str,
) -> tuple[str, ...]:
    factors: list[str] = []
    if fuel.save_required > 0.2:
        factors.append("Critical fuel management required")
    if average_wear(snapshot.player.tyres) > 60:
        factors.append("Tyre degradation reaching critical level")
    if gaps:
        factors.append("Close position battles ongoing")
    if snapshot.session.flag != FLAG_GREEN:
        factors.append("Track conditions affecting strategy")
    if phase == PHASE_LATE:
        factors.append("Late race phase - aggressive strategy window")
    elif phase == PHASE_CRITICAL:
        factors.append("Final phase - every decision critical")
    return tuple(factors)


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------


def analyze_race(
    history: TelemetryHistory,
    lap: LapAnalysis,
    fuel: FuelAnalysis,
    tyre: TyreAnalysis,
    previous: RaceAnalysis | None = None,
    policy: StrategyPolicy | None = None,
    race_format: str = "auto",
    include_opponents: bool = True,
) -> RaceAnalysis:
    """Recompute race-situation analysis for the newest sample.

    Args:
        history: Telemetry history; the newest entry is the current sample.
        lap: Lap analysis for the same sample.
        fuel: Fuel analysis for the same sample.
        tyre: Tyre analysis for the same sample.
        previous: Last computed analysis, returned when history is empty.
        policy: Threshold set.
        race_format: ``"auto"`` or a forced format.
        include_opponents: When False, competitive gaps stay empty.

    Returns:
        A new :class:`RaceAnalysis`.
    """
    prior = previous if previous is not None else RaceAnalysis()
    policy = policy if policy is not None else StrategyPolicy()

    current = history.latest()
    if current is None:
        return prior

    fmt: str = race_format
    if fmt == "auto":
        fmt = detect_race_format(current, policy)

    phase: str = strategic_phase(current)
    opponents = current.opponents if include_opponents else ()
    gaps = competitive_gaps(current, opponents, policy)

    return replace(
        prior,
        race_format=fmt,
        strategic_phase=phase,
        position_trend=position_trend(history, policy),
        competitive_gaps=gaps,
        risk_level=assess_risk_level(current, fuel, tyre, policy),
        opportunity_score=opportunity_score(current, lap, fuel, tyre, policy),
        key_strategic_factors=key_strategic_factors(current, fuel, gaps, phase),
    )
