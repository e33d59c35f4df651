"""End-to-end tests for the strategy engine."""

import logging
import threading
from dataclasses import asdict

import pytest

from race_engine.core.engine import StrategyEngine
from race_engine.core.policy import AnalysisConfig
from race_engine.core.state import DerivedState
from race_engine.core.telemetry import (
    FuelState,
    OpponentState,
    PitState,
    PlayerState,
    SessionInfo,
    TelemetrySnapshot,
    TyreSet,
    WheelState,
)

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _stint_snapshot(lap: int, total_laps: int = 50) -> TelemetrySnapshot:
    """End-of-lap sample; wear rises to roughly [75, 72, 78, 74] by lap 20."""
    scale = lap / 20.0
    wheels = [WheelState(wear_percent=w * scale) for w in (75.0, 72.0, 78.0, 74.0)]
    return TelemetrySnapshot(
        timestamp=lap * 92.0,
        session=SessionInfo(track_name="Silverstone", total_laps=total_laps),
        player=PlayerState(
            position=6,
            current_lap=lap,
            last_lap_time=92.0 + 0.05 * lap,
            best_lap_time=92.0,
            gap_to_ahead=1.2,
            gap_to_behind=3.4,
            fuel=FuelState(
                level=50.0 + 2.0 * (20 - lap),
                capacity=100.0,
                percentage=50.0 + 2.0 * (20 - lap),
                usage_per_lap=2.0,
                estimated_laps_left=25 + (20 - lap),
            ),
            tyres=TyreSet("medium", *wheels),
            pit=PitState(last_pit_lap=0),
        ),
        opponents=(
            OpponentState(car_index=4, position=5, current_lap=lap, gap_to_player=1.2),
            OpponentState(car_index=8, position=7, current_lap=lap, gap_to_player=-3.4),
        ),
    )


def _run(engine: StrategyEngine, laps: int = 20):
    for lap in range(1, laps):
        engine.add_snapshot(_stint_snapshot(lap))
    return engine.generate_recommendation(_stint_snapshot(laps))


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------


def test_worn_tyres_mid_race_recommend_soft_stop() -> None:
    """Worn mediums at lap 20 of 50 call for a stop on softs."""
    rec = _run(StrategyEngine())
    pit = rec.pit_recommendation
    assert pit.should_pit is True
    assert pit.tyre_compound == "soft"
    assert pit.optimal_lap == 23
    assert rec.timestamp == 20 * 92.0


def test_state_after_stint() -> None:
    """A 20-lap stint fills every analysis."""
    engine = StrategyEngine()
    _run(engine)
    state = engine.state
    assert len(engine.history) == 20
    assert state.race.race_format == "endurance"
    assert state.race.strategic_phase == "middle"
    assert state.lap.average_lap_time > 92.0
    assert state.fuel.average_consumption == pytest.approx(2.0)
    assert state.tyre.degradation_rate > 0
    assert set(state.race.competitive_gaps) == {5, 7}


def test_recommendations_are_deterministic() -> None:
    """Fresh engines fed the same stream agree exactly."""
    first = _run(StrategyEngine())
    second = _run(StrategyEngine())
    assert asdict(first) == asdict(second)


def test_time_based_endurance_race() -> None:
    """Three hours left in a timed race is endurance, with no pit window."""
    snap = TelemetrySnapshot(
        session=SessionInfo(total_laps=0, session_time=14400.0, time_remaining=12000.0),
        player=PlayerState(position=3, current_lap=12, last_lap_time=95.0),
    )
    engine = StrategyEngine()
    rec = engine.generate_recommendation(snap)
    assert engine.state.race.race_format == "endurance"
    assert engine.state.race.strategic_phase == "early"
    assert rec.pit_recommendation.should_pit is False
    assert rec.finish_prediction.finish_time == 12000.0


def test_calculate_pit_stop_timing_does_not_ingest() -> None:
    """The standalone pit view leaves the history alone."""
    engine = StrategyEngine()
    analysis = engine.calculate_pit_stop_timing(_stint_snapshot(20))
    assert len(engine.history) == 0
    assert analysis.track_name == "Silverstone"
    assert analysis.pit_loss.stationary_time == 22.0


# ---------------------------------------------------------------------------
# Robustness and configuration
# ---------------------------------------------------------------------------


def test_non_snapshot_input_is_dropped(caplog) -> None:
    """Non-snapshot input is logged and ignored."""
    engine = StrategyEngine()
    with caplog.at_level(logging.WARNING):
        engine.add_snapshot(None)
    assert len(engine.history) == 0
    assert "NoneType" in caplog.text


def test_recompute_failure_keeps_previous_state(monkeypatch, caplog) -> None:
    """A failing recompute is logged and the old state kept."""
    engine = StrategyEngine()
    engine.add_snapshot(_stint_snapshot(1))
    before = engine.state

    def _boom(*args, **kwargs) -> DerivedState:
        raise RuntimeError("boom")

    monkeypatch.setattr("race_engine.core.engine.recompute", _boom)
    with caplog.at_level(logging.ERROR):
        engine.add_snapshot(_stint_snapshot(2))
    assert engine.state is before
    assert "Recompute failed" in caplog.text


def test_history_capacity() -> None:
    """The engine history honours its capacity."""
    engine = StrategyEngine(capacity=5)
    for lap in range(1, 9):
        engine.add_snapshot(_stint_snapshot(lap))
    assert len(engine.history) == 5
    assert engine.history.latest().player.current_lap == 8


def test_race_format_override() -> None:
    """A configured race format overrides detection."""
    engine = StrategyEngine(config=AnalysisConfig(race_format="sprint"))
    engine.add_snapshot(_stint_snapshot(1))
    assert engine.state.race.race_format == "sprint"


def test_opponent_data_disabled() -> None:
    """Opponent telemetry can be switched off."""
    engine = StrategyEngine(config=AnalysisConfig(include_opponent_data=False))
    rec = _run(engine)
    assert engine.state.race.competitive_gaps == {}
    assert engine.state.tyre.undercut_threat is False
    assert rec.pit_recommendation.should_pit is True


def test_default_engine_knows_bundled_circuits(caplog) -> None:
    """Known circuits use their own pit data without fallback warnings."""
    engine = StrategyEngine()
    with caplog.at_level(logging.WARNING):
        for _ in range(3):
            analysis = engine.calculate_pit_stop_timing(_stint_snapshot(20))
    assert analysis.pit_loss.stationary_time == 22.0
    assert "Unknown track" not in caplog.text


def test_first_blank_snapshot_has_minimum_data_quality() -> None:
    """An all-zero first sample still scores the minimum data quality."""
    rec = StrategyEngine().generate_recommendation(TelemetrySnapshot())
    assert 0.1 <= rec.data_quality <= 1.0
    assert abs(rec.data_quality - 0.1) < 1e-9
    assert 0.1 <= rec.confidence_level <= 1.0


class _CountingLock:
    """Lock wrapper that counts acquisitions."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.acquired: int = 0

    def __enter__(self) -> "_CountingLock":
        self._lock.acquire()
        self.acquired += 1
        return self

    def __exit__(self, *exc) -> None:
        self._lock.release()


def test_recommendation_uses_one_lock_acquisition() -> None:
    """Ingest, state read and pit timing happen under a single lock hold."""
    engine = StrategyEngine()
    lock = _CountingLock()
    engine._lock = lock
    rec = engine.generate_recommendation(_stint_snapshot(1))
    assert lock.acquired == 1
    assert len(engine.history) == 1
    assert rec.timestamp == 92.0
