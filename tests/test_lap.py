"""Tests for lap-time analysis: consistency, trend and prediction."""

from race_engine.core.history import TelemetryHistory
from race_engine.core.lap import (
    TREND_DEGRADING,
    TREND_IMPROVING,
    TREND_STABLE,
    LapAnalysis,
    analyze_laps,
)
from race_engine.core.policy import StrategyPolicy
from race_engine.core.telemetry import PlayerState, TelemetrySnapshot

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _history(laps: list[float], best: float = 0.0) -> TelemetryHistory:
    """History with one sample per entry of *laps*, oldest first."""
    history = TelemetryHistory()
    for i, last_lap in enumerate(laps):
        history.append(
            TelemetrySnapshot(
                timestamp=float(i),
                player=PlayerState(
                    current_lap=i + 1, last_lap_time=last_lap, best_lap_time=best
                ),
            )
        )
    return history


# ---------------------------------------------------------------------------
# Insufficient data
# ---------------------------------------------------------------------------


def test_fewer_than_three_laps_returns_previous() -> None:
    """With < 3 completed laps the prior analysis is returned unchanged."""
    prior = LapAnalysis(consistency_score=0.42, trend_direction=TREND_STABLE)
    result = analyze_laps(_history([90.0, 91.0]), prior)
    assert result is prior


def test_zero_lap_times_are_not_samples() -> None:
    """Samples without a completed lap do not count towards the minimum."""
    prior = LapAnalysis(predicted_lap_time=88.0)
    result = analyze_laps(_history([0.0, 90.0, 0.0, 91.0, 0.0]), prior)
    assert result is prior


def test_empty_history_returns_default() -> None:
    assert analyze_laps(TelemetryHistory()) == LapAnalysis()


# ---------------------------------------------------------------------------
# Statistics
# ---------------------------------------------------------------------------


def test_identical_laps_are_perfectly_consistent() -> None:
    result = analyze_laps(_history([90.0, 90.0, 90.0]))
    assert abs(result.consistency_score - 1.0) < 1e-9
    assert abs(result.average_lap_time - 90.0) < 1e-9
    assert abs(result.lap_time_variance) < 1e-9


def test_consistency_is_clamped_at_zero() -> None:
    """Wildly scattered laps give a consistency of exactly 0."""
    result = analyze_laps(_history([10.0, 100.0, 10.0]))
    assert result.consistency_score == 0.0


def test_consistency_in_unit_interval() -> None:
    for laps in ([90.0, 90.5, 91.0], [80.0, 95.0, 88.0, 92.0], [100.0, 100.1, 99.9]):
        score = analyze_laps(_history(laps)).consistency_score
        assert 0.0 <= score <= 1.0


def test_median_uses_upper_middle_element() -> None:
    """For an even count the element at len // 2 of the sorted laps is used."""
    result = analyze_laps(_history([90.0, 92.0, 91.0, 95.0]))
    assert result.median_lap_time == 92.0


def test_recent_laps_are_capped_and_newest_first() -> None:
    laps = [90.0 + i for i in range(12)]
    result = analyze_laps(_history(laps))
    assert len(result.recent_lap_times) == 10
    assert result.recent_lap_times[0] == 101.0


# ---------------------------------------------------------------------------
# Trend and prediction
# ---------------------------------------------------------------------------


def test_trend_needs_five_laps() -> None:
    """With 3-4 laps the trend keeps its previous value."""
    prior = LapAnalysis(trend_direction=TREND_DEGRADING)
    result = analyze_laps(_history([92.0, 91.0, 90.0, 89.0]), prior)
    assert result.trend_direction == TREND_DEGRADING


def test_improving_trend_lowers_prediction() -> None:
    """Getting faster by 0.2 s per lap is an improving trend."""
    result = analyze_laps(_history([91.0, 90.8, 90.6, 90.4, 90.2, 90.0]))
    assert result.trend_direction == TREND_IMPROVING
    assert abs(result.predicted_lap_time - (90.5 - 0.1)) < 1e-9


def test_degrading_trend_raises_prediction() -> None:
    result = analyze_laps(_history([90.0, 90.2, 90.4, 90.6, 90.8, 91.0]))
    assert result.trend_direction == TREND_DEGRADING
    assert abs(result.predicted_lap_time - (90.5 + 0.2)) < 1e-9


def test_flat_laps_are_stable() -> None:
    result = analyze_laps(_history([90.0, 90.1, 90.0, 90.1, 90.0]))
    assert result.trend_direction == TREND_STABLE
    assert abs(result.predicted_lap_time - result.average_lap_time) < 1e-9


def test_custom_trend_threshold() -> None:
    """A looser threshold turns the same laps into a stable trend."""
    laps = [91.0, 90.8, 90.6, 90.4, 90.2, 90.0]
    result = analyze_laps(_history(laps), policy=StrategyPolicy(trend_threshold=1.0))
    assert result.trend_direction == TREND_STABLE


def test_optimal_lap_is_personal_best() -> None:
    result = analyze_laps(_history([90.0, 90.5, 91.0], best=89.7))
    assert result.optimal_lap_time == 89.7


def test_optimal_lap_kept_without_best() -> None:
    prior = LapAnalysis(optimal_lap_time=88.8)
    result = analyze_laps(_history([90.0, 90.5, 91.0]), prior)
    assert result.optimal_lap_time == 88.8
