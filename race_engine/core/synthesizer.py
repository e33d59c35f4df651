"""Merge the analyses into a caller-facing strategic recommendation.

:func:`synthesize` is a pure function of the snapshot, the history size,
the derived state and (optionally) a pit-stop analysis.  It never reads
or writes engine state, so identical inputs produce identical output.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from race_engine.core.fuel import STRATEGY_AGGRESSIVE
from race_engine.core.pit_models import PitRecommendation, PitStopAnalysis
from race_engine.core.race_context import (
    PHASE_CRITICAL,
    PHASE_EARLY,
    PHASE_LATE,
    PHASE_MIDDLE,
)
from race_engine.core.state import DerivedState
from race_engine.core.telemetry import (
    FLAG_GREEN,
    FLAG_YELLOW,
    TelemetrySnapshot,
    average_wear,
)

ANALYSIS_DEPTH: str = "comprehensive"

TYRE_TEMPERATURE_TARGETS: dict[str, float] = {
    "front_left": 85.0,
    "front_right": 85.0,
    "rear_left": 90.0,
    "rear_right": 90.0,
}
TYRE_PRESSURE_TARGETS: dict[str, float] = {
    "front_left": 27.5,
    "front_right": 27.5,
    "rear_left": 27.0,
    "rear_right": 27.0,
}


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ActionRecommendation:
    """Something the driver or crew should do.

    Attributes:
        action: What to do.
        priority: "immediate", "high", "medium" or "low".
        timing: "now", "next_lap" or "pit_window".
        confidence: 0-1.
        rationale: Why.
    """

    action: str
    priority: str
    timing: str
    confidence: float
    rationale: str


@dataclass(frozen=True)
class PlannedStop:
    lap: int
    tyre_compound: str
    fuel_load: float
    reason: str


@dataclass(frozen=True)
class AlternativeStrategy:
    name: str
    description: str
    risk_level: str
    probability: float
    pit_stops: tuple[PlannedStop, ...] = ()
    advantages: tuple[str, ...] = ()
    disadvantages: tuple[str, ...] = ()


@dataclass(frozen=True)
class FuelManagementPlan:
    current_consumption: float = 0.0
    target_consumption: float = 0.0
    save_required: float = 0.0
    margin_available: float = 0.0
    lift_and_coast_zones: tuple[str, ...] = ()
    short_shift_points: tuple[str, ...] = ()
    weather_contingency: float = 0.0


@dataclass(frozen=True)
class TyreManagementPlan:
    current_degradation: float = 0.0
    optimal_stint_length: int = 0
    management_techniques: tuple[str, ...] = ()
    temperature_targets: dict[str, float] = field(default_factory=dict)
    pressure_targets: dict[str, float] = field(default_factory=dict)
    compound_strategy: str = ""


@dataclass(frozen=True)
class Threat:
    threat_type: str
    severity: str
    probability: float
    impact: str
    mitigation: str


@dataclass(frozen=True)
class Opportunity:
    opportunity_type: str
    potential: str
    probability: float
    requirements: tuple[str, ...] = ()
    timeline: str = ""


@dataclass(frozen=True)
class ThreatOpportunityAnalysis:
    immediate_threats: tuple[Threat, ...] = ()
    immediate_opportunities: tuple[Opportunity, ...] = ()
    overall_risk_level: str = ""
    opportunity_score: float = 0.0


@dataclass(frozen=True)
class WeatherStrategy:
    current_conditions: str = "dry"
    forecast: str = "stable"
    tyre_recommendations: tuple[str, ...] = ()
    timing_considerations: str = ""


@dataclass(frozen=True)
class FinishPrediction:
    estimated_position: int = 0
    finish_time: float = 0.0
    confidence: float = 0.0
    key_factors: tuple[str, ...] = ()


@dataclass(frozen=True)
class StrategicRecommendation:
    """Complete strategy advice for one snapshot.

    Attributes:
        primary_strategy: One-line headline strategy.
        confidence_level: 0.1-1.0.
        risk_assessment: Race risk level, verbatim.
        immediate_actions: Ordered actions.
        lap_targets: Target lap times in seconds, keyed by scenario
            ("optimal", "fuel_save", "attack", "current_stint").
        pit_recommendation: Pit plan.
        alternative_strategies: Other race plans.
        driving_recommendations: Driving technique advice.
        setup_suggestions: Car setup advice.
        fuel_management: Fuel plan.
        tyre_management: Tyre plan.
        threats_and_opportunities: Situational summary.
        weather_considerations: Weather plan.
        finish_prediction: Naive finish projection.
        analysis_depth: Always "comprehensive".
        data_quality: 0-1 rating of the data behind the advice.
        timestamp: Timestamp of the snapshot the advice is for.
    """

    primary_strategy: str
    confidence_level: float
    risk_assessment: str
    immediate_actions: tuple[ActionRecommendation, ...]
    lap_targets: dict[str, float]
    pit_recommendation: PitRecommendation
    alternative_strategies: tuple[AlternativeStrategy, ...]
    driving_recommendations: tuple[str, ...]
    setup_suggestions: tuple[str, ...]
    fuel_management: FuelManagementPlan
    tyre_management: TyreManagementPlan
    threats_and_opportunities: ThreatOpportunityAnalysis
    weather_considerations: WeatherStrategy
    finish_prediction: FinishPrediction
    analysis_depth: str = ANALYSIS_DEPTH
    data_quality: float = 0.0
    timestamp: float = 0.0


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------


def primary_strategy(state: DerivedState) -> str:
    phase: str = state.race.strategic_phase
    if phase == PHASE_EARLY:
        if state.fuel.strategy_recommendation == STRATEGY_AGGRESSIVE:
            return "Push hard early to build gap, manage fuel mid-race"
        return "Focus on consistency and tyre management for long-term strategy"
    if phase == PHASE_MIDDLE:
        if state.tyre.pit_window_open:
            return "Execute pit stop strategy, optimise tyre compound choice"
        return "Maintain position while monitoring competitors' strategies"
    if phase == PHASE_LATE:
        if state.race.opportunity_score > 0.7:
            return "Aggressive push phase - maximise performance for position gain"
        return "Defensive strategy - protect position and manage to finish"
    if phase == PHASE_CRITICAL:
        return "All-out attack phase - every tenth counts for final positions"
    return "Balanced approach focusing on consistency and opportunistic gains"


def confidence_level(
    snapshot: TelemetrySnapshot, history_size: int, state: DerivedState
) -> float:
    confidence: float = 0.5
    if history_size >= 10:
        confidence += 0.2
    if state.lap.consistency_score > 0.8:
        confidence += 0.1
    if snapshot.session.flag != FLAG_GREEN:
        confidence -= 0.2
    if state.race.strategic_phase in (PHASE_EARLY, PHASE_MIDDLE):
        confidence += 0.1
    elif state.race.strategic_phase == PHASE_CRITICAL:
        confidence -= 0.1
    return max(0.1, min(1.0, confidence))


def immediate_actions(
    snapshot: TelemetrySnapshot, state: DerivedState
) -> list[ActionRecommendation]:
    actions: list[ActionRecommendation] = []
    window_open: bool = state.tyre.pit_window_open
    if state.fuel.save_required > 0.3:
        actions.append(
            ActionRecommendation(
                action="Immediate fuel saving required",
                priority="immediate",
                timing="now",
                confidence=0.9,
                rationale="Critical fuel shortage detected",
            )
        )
    if window_open and average_wear(snapshot.player.tyres) > 70:
        actions.append(
            ActionRecommendation(
                action="Prepare for pit stop",
                priority="high",
                timing="next_lap",
                confidence=0.8,
                rationale="Optimal pit window with tyre degradation",
            )
        )
    if snapshot.session.flag == FLAG_YELLOW and not window_open:
        actions.append(
            ActionRecommendation(
                action="Consider safety car pit opportunity",
                priority="high",
                timing="pit_window",
                confidence=0.7,
                rationale="Safety car reduces pit stop penalty",
            )
        )
    return actions


def lap_targets(state: DerivedState) -> dict[str, float]:
    """Target lap times in seconds; empty until a best lap is known."""
    optimal: float = state.lap.optimal_lap_time
    if optimal <= 0:
        return {}
    targets: dict[str, float] = {"optimal": optimal}
    if state.fuel.save_required > 0.1:
        targets["fuel_save"] = optimal + 0.5
    if state.race.opportunity_score > 0.6:
        targets["attack"] = optimal - 0.2
    targets["current_stint"] = state.lap.predicted_lap_time
    return targets


def pit_recommendation_from_analysis(
    snapshot: TelemetrySnapshot, state: DerivedState
) -> PitRecommendation:
    """Pit plan from the tyre and fuel analyses alone."""
    tyre = state.tyre
    lap: int = snapshot.player.current_lap
    optimal_lap: int = 0
    close_lap: int = 0
    if snapshot.session.total_laps > 0:
        laps_remaining: int = max(0, snapshot.session.total_laps - lap)
        optimal_lap = lap + min(5, laps_remaining // 3)
        close_lap = lap + 10

    risks: tuple[str, ...] = ()
    if tyre.undercut_threat:
        risks = ("Undercut threat from competitors",)

    return PitRecommendation(
        should_pit=tyre.pit_window_open,
        optimal_lap=optimal_lap,
        window_open=tyre.pit_window_open,
        window_close_lap=close_lap,
        tyre_compound=tyre.compound_recommendation,
        fuel_load=state.fuel.fuel_to_finish + state.fuel.safety_margin,
        estimated_loss=tyre.estimated_pit_loss,
        risk_factors=risks,
    )


def alternative_strategies(state: DerivedState) -> list[AlternativeStrategy]:
    strategies: list[AlternativeStrategy] = [
        AlternativeStrategy(
            name="Conservative",
            description="Focus on consistency and finishing position",
            risk_level="low",
            probability=0.8,
            advantages=("Lower risk", "Consistent finishing"),
            disadvantages=("Limited position gain opportunity",),
        )
    ]
    if state.race.opportunity_score > 0.5:
        strategies.append(
            AlternativeStrategy(
                name="Aggressive",
                description="Push hard for maximum position gain",
                risk_level="high",
                probability=0.6,
                advantages=("High position gain potential", "Capitalise on opportunities"),
                disadvantages=("Higher tyre wear", "Fuel consumption risk"),
            )
        )
    return strategies


def driving_recommendations(
    snapshot: TelemetrySnapshot, state: DerivedState
) -> list[str]:
    advice: list[str] = []
    if state.lap.consistency_score < 0.7:
        advice.append("Focus on consistent braking points and racing line")
    if state.fuel.save_required > 0.1:
        advice.append("Implement lift-and-coast technique in slow corners")
        advice.append("Short-shift by 500-1000 RPM to save fuel")
    if average_wear(snapshot.player.tyres) > 50:
        advice.append("Avoid aggressive kerb usage to preserve tyres")
        advice.append("Smooth throttle application to manage tyre temperatures")
    return advice


def setup_suggestions(snapshot: TelemetrySnapshot, state: DerivedState) -> list[str]:
    suggestions: list[str] = []
    track_temp: float = snapshot.session.track_temperature
    if track_temp > 35:
        suggestions.append("Consider softer front anti-roll bar for hot conditions")
    elif track_temp < 20:
        suggestions.append("Increase tyre pressures for cold track conditions")
    if state.tyre.degradation_rate > 0.05:
        suggestions.append("Reduce camber to improve tyre longevity")
    return suggestions


def fuel_management_plan(state: DerivedState) -> FuelManagementPlan:
    fuel = state.fuel
    return FuelManagementPlan(
        current_consumption=fuel.average_consumption,
        target_consumption=fuel.average_consumption - fuel.save_required,
        save_required=fuel.save_required,
        margin_available=fuel.safety_margin,
        lift_and_coast_zones=("Turn 1 braking zone", "Final sector slow corners"),
        short_shift_points=("Exit of slow corners", "Long straights"),
        weather_contingency=fuel.weather_impact,
    )


def tyre_management_plan(
    snapshot: TelemetrySnapshot, state: DerivedState
) -> TyreManagementPlan:
    wear: float = average_wear(snapshot.player.tyres)
    if wear > 70:
        techniques = ("Gentle cornering", "Avoid kerbs", "Smooth throttle application")
    elif wear > 50:
        techniques = ("Avoid sliding", "Maintain optimal temperatures")
    else:
        techniques = ("Maximise performance", "Heat tyres when needed")
    return TyreManagementPlan(
        current_degradation=wear,
        optimal_stint_length=state.tyre.optimal_stint_length,
        management_techniques=techniques,
        temperature_targets=dict(TYRE_TEMPERATURE_TARGETS),
        pressure_targets=dict(TYRE_PRESSURE_TARGETS),
        compound_strategy=state.tyre.compound_recommendation,
    )


def threats_and_opportunities(
    snapshot: TelemetrySnapshot, state: DerivedState
) -> ThreatOpportunityAnalysis:
    player = snapshot.player
    threats: list[Threat] = []
    opportunities: list[Opportunity] = []
    if player.fuel.percentage < 20.0:
        threats.append(
            Threat(
                threat_type="fuel",
                severity="medium",
                probability=0.6,
                impact="Running out of fuel before the flag",
                mitigation="Save fuel or plan a fuel stop",
            )
        )
    if average_wear(player.tyres) > 80.0:
        threats.append(
            Threat(
                threat_type="tyre",
                severity="high",
                probability=0.8,
                impact="Tyre performance cliff",
                mitigation="Pit for fresh tyres",
            )
        )
    if player.position > 1:
        opportunities.append(
            Opportunity(
                opportunity_type="position",
                potential="high",
                probability=state.race.opportunity_score,
                requirements=("Close the gap to the car ahead",),
                timeline="remaining_race",
            )
        )
    return ThreatOpportunityAnalysis(
        immediate_threats=tuple(threats),
        immediate_opportunities=tuple(opportunities),
        overall_risk_level=state.race.risk_level,
        opportunity_score=state.race.opportunity_score,
    )


def weather_strategy(snapshot: TelemetrySnapshot) -> WeatherStrategy:
    if snapshot.session.track_temperature > 40.0:
        return WeatherStrategy(
            tyre_recommendations=(
                "Conservative compound selection due to high temperatures",
            ),
            timing_considerations="Consider earlier pit stops",
        )
    return WeatherStrategy(
        tyre_recommendations=("Standard compound selection",),
        timing_considerations="Maintain planned strategy",
    )


def finish_prediction(snapshot: TelemetrySnapshot) -> FinishPrediction:
    return FinishPrediction(
        estimated_position=snapshot.player.position,
        finish_time=snapshot.session.time_remaining,
        confidence=0.75,
        key_factors=("Based on current pace", "Assuming no major incidents"),
    )


def data_quality(history_size: int, state: DerivedState) -> float:
    """Score in [0.1, 1] from history depth and which analyses have data."""
    score: float = 0.0
    if history_size >= 10:
        score += 0.3
    elif history_size >= 5:
        score += 0.2
    elif history_size >= 2:
        score += 0.1

    laps: int = len(state.lap.recent_lap_times)
    if laps >= 5:
        score += 0.3
    elif laps >= 3:
        score += 0.2

    if state.fuel.average_consumption > 0:
        score += 0.2
    if state.tyre.degradation_rate > 0:
        score += 0.2
    return max(0.1, min(1.0, score))


# ---------------------------------------------------------------------------
# Synthesizer
# ---------------------------------------------------------------------------


def synthesize(
    snapshot: TelemetrySnapshot,
    history_size: int,
    state: DerivedState,
    pit_analysis: PitStopAnalysis | None = None,
) -> StrategicRecommendation:
    """Build a :class:`StrategicRecommendation`.

    Args:
        snapshot: Sample the advice is for (normally the newest one).
        history_size: Number of samples behind ``state``.
        state: Derived analyses for the same history.
        pit_analysis: Detailed pit view; when given its primary
            recommendation is used as the pit plan.

    Returns:
        A new :class:`StrategicRecommendation`.
    """
    if pit_analysis is not None:
        pit = pit_analysis.primary_recommendation
    else:
        pit = pit_recommendation_from_analysis(snapshot, state)

    return StrategicRecommendation(
        primary_strategy=primary_strategy(state),
        confidence_level=confidence_level(snapshot, history_size, state),
        risk_assessment=state.race.risk_level,
        immediate_actions=tuple(immediate_actions(snapshot, state)),
        lap_targets=lap_targets(state),
        pit_recommendation=pit,
        alternative_strategies=tuple(alternative_strategies(state)),
        driving_recommendations=tuple(driving_recommendations(snapshot, state)),
        setup_suggestions=tuple(setup_suggestions(snapshot, state)),
        fuel_management=fuel_management_plan(state),
        tyre_management=tyre_management_plan(snapshot, state),
        threats_and_opportunities=threats_and_opportunities(snapshot, state),
        weather_considerations=weather_strategy(snapshot),
        finish_prediction=finish_prediction(snapshot),
        analysis_depth=ANALYSIS_DEPTH,
        data_quality=data_quality(history_size, state),
        timestamp=snapshot.timestamp,
    )
