"""Tests for recommendation synthesis."""

from race_engine.core.fuel import FuelAnalysis
from race_engine.core.lap import LapAnalysis
from race_engine.core.pit_stop import PitStopCalculator
from race_engine.core.race_context import RaceAnalysis
from race_engine.core.state import DerivedState
from race_engine.core.synthesizer import (
    confidence_level,
    data_quality,
    immediate_actions,
    lap_targets,
    pit_recommendation_from_analysis,
    primary_strategy,
    synthesize,
)
from race_engine.core.telemetry import (
    FLAG_GREEN,
    FLAG_YELLOW,
    FuelState,
    PlayerState,
    SessionInfo,
    TelemetrySnapshot,
    TyreSet,
)
from race_engine.core.tyre import TyreAnalysis

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _snapshot(
    lap: int = 20,
    total_laps: int = 50,
    wear: float = 30.0,
    fuel_pct: float = 50.0,
    flag: str = FLAG_GREEN,
    position: int = 5,
    track_temp: float = 30.0,
) -> TelemetrySnapshot:
    return TelemetrySnapshot(
        timestamp=1234.5,
        session=SessionInfo(
            flag=flag,
            total_laps=total_laps,
            time_remaining=1800.0,
            track_temperature=track_temp,
        ),
        player=PlayerState(
            position=position,
            current_lap=lap,
            last_lap_time=90.0,
            fuel=FuelState(
                level=40.0, percentage=fuel_pct, usage_per_lap=2.0, estimated_laps_left=20
            ),
            tyres=TyreSet.uniform(wear),
        ),
    )


def _state(
    phase: str = "middle",
    opportunity: float = 0.5,
    optimal: float = 90.0,
    predicted: float = 90.4,
    save: float = 0.0,
    window_open: bool = False,
    consistency: float = 0.9,
) -> DerivedState:
    return DerivedState(
        lap=LapAnalysis(
            consistency_score=consistency,
            optimal_lap_time=optimal,
            predicted_lap_time=predicted,
            recent_lap_times=(90.1, 90.2, 90.3, 90.4, 90.5),
        ),
        fuel=FuelAnalysis(
            average_consumption=2.0, fuel_to_finish=60.0, save_required=save, safety_margin=6.0
        ),
        tyre=TyreAnalysis(
            degradation_rate=1.5,
            optimal_stint_length=20,
            pit_window_open=window_open,
            compound_recommendation="hard",
            estimated_pit_loss=25.0,
        ),
        race=RaceAnalysis(
            strategic_phase=phase, risk_level="low", opportunity_score=opportunity
        ),
    )


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------


def test_primary_strategy_by_phase() -> None:
    """Headline strategy follows the race phase."""
    assert primary_strategy(_state(phase="middle", window_open=True)).startswith(
        "Execute pit stop strategy"
    )
    assert primary_strategy(_state(phase="late", opportunity=0.8)).startswith(
        "Aggressive push phase"
    )
    assert primary_strategy(_state(phase="late")).startswith("Defensive strategy")
    assert primary_strategy(_state(phase="critical")).startswith("All-out attack")
    assert primary_strategy(_state(phase="")).startswith("Balanced approach")


def test_confidence_level_bounds() -> None:
    """Confidence rises with history and falls off green."""
    high = confidence_level(_snapshot(), 20, _state())
    low = confidence_level(_snapshot(flag=FLAG_YELLOW), 1, _state(phase="critical"))
    assert abs(high - 0.9) < 1e-9
    assert 0.1 <= low <= 1.0
    assert abs(low - 0.3) < 1e-9


def test_lap_targets() -> None:
    """Fuel-save and attack targets bracket the best lap."""
    targets = lap_targets(_state(save=0.2, opportunity=0.7))
    assert targets["optimal"] == 90.0
    assert abs(targets["fuel_save"] - 90.5) < 1e-9
    assert abs(targets["attack"] - 89.8) < 1e-9
    assert targets["current_stint"] == 90.4


def test_lap_targets_empty_without_best_lap() -> None:
    """No best lap means no targets."""
    assert lap_targets(_state(optimal=0.0)) == {}


def test_immediate_actions() -> None:
    """Fuel shortage outranks pit preparation."""
    actions = immediate_actions(_snapshot(wear=75.0), _state(save=0.4, window_open=True))
    assert [a.priority for a in actions] == ["immediate", "high"]
    assert actions[1].action == "Prepare for pit stop"


def test_safety_car_action_under_yellow() -> None:
    """A yellow with the window closed suggests a pit opportunity."""
    actions = immediate_actions(_snapshot(flag=FLAG_YELLOW), _state())
    assert [a.timing for a in actions] == ["pit_window"]


def test_pit_recommendation_from_analysis() -> None:
    """Without a pit view the plan comes from the tyre analysis."""
    rec = pit_recommendation_from_analysis(_snapshot(), _state(window_open=True))
    assert rec.should_pit is True
    assert rec.optimal_lap == 25
    assert rec.window_close_lap == 30
    assert rec.tyre_compound == "hard"
    assert abs(rec.fuel_load - 66.0) < 1e-9


def test_data_quality() -> None:
    """Data quality stays within [0.1, 1.0]."""
    assert abs(data_quality(20, _state()) - 1.0) < 1e-9
    assert abs(data_quality(1, DerivedState()) - 0.1) < 1e-9
    assert abs(data_quality(0, DerivedState()) - 0.1) < 1e-9


# ---------------------------------------------------------------------------
# Synthesizer
# ---------------------------------------------------------------------------


def test_synthesize_without_pit_analysis() -> None:
    """Synthesis stamps the sample time and analysis depth."""
    rec = synthesize(_snapshot(), 20, _state())
    assert rec.timestamp == 1234.5
    assert rec.analysis_depth == "comprehensive"
    assert rec.risk_assessment == "low"
    assert rec.pit_recommendation.tyre_compound == "hard"
    assert rec.finish_prediction.finish_time == 1800.0
    assert [s.name for s in rec.alternative_strategies] == ["Conservative"]


def test_synthesize_uses_pit_analysis() -> None:
    """A pit view supplies the pit plan."""
    snap = _snapshot(wear=85.0)
    analysis = PitStopCalculator().calculate_pit_stop_timing(snap)
    rec = synthesize(snap, 20, _state(), analysis)
    assert rec.pit_recommendation == analysis.primary_recommendation
    assert rec.pit_recommendation.tyre_compound == "soft"


def test_threats_from_low_fuel_and_worn_tyres() -> None:
    """Low fuel and worn tyres are both threats."""
    rec = synthesize(_snapshot(wear=85.0, fuel_pct=10.0), 20, _state())
    threats = rec.threats_and_opportunities.immediate_threats
    assert [t.threat_type for t in threats] == ["fuel", "tyre"]
    assert [t.probability for t in threats] == [0.6, 0.8]


def test_no_position_opportunity_for_leader() -> None:
    """The leader has no position to gain."""
    rec = synthesize(_snapshot(position=1), 20, _state())
    assert rec.threats_and_opportunities.immediate_opportunities == ()


def test_hot_track_advice() -> None:
    """A hot track changes setup and timing advice."""
    rec = synthesize(_snapshot(track_temp=45.0), 20, _state())
    assert rec.setup_suggestions[0].startswith("Consider softer front anti-roll bar")
    assert rec.weather_considerations.timing_considerations == "Consider earlier pit stops"
