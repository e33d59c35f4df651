"""Lap-time analysis for the race strategy engine.

Looks at the most recent completed laps in the telemetry history and
derives consistency, pace trend and a next-lap prediction.  When too few
completed laps are available the previous analysis is returned unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

import numpy as np

from race_engine.core.history import TelemetryHistory
from race_engine.core.policy import StrategyPolicy

logger = logging.getLogger(__name__)

TREND_IMPROVING: str = "improving"
TREND_STABLE: str = "stable"
TREND_DEGRADING: str = "degrading"


@dataclass(frozen=True)
class LapAnalysis:
    """Derived lap-time state.

    Attributes:
        consistency_score: 0-1, higher is more consistent.
        trend_direction: "improving", "stable", "degrading" or "" if unknown.
        predicted_lap_time: Expected next lap in seconds.
        optimal_lap_time: Personal best lap in seconds.
        lap_time_variance: Mean absolute deviation of recent laps.
        recent_lap_times: Recent laps, most-recent-first.
        average_lap_time: Mean of ``recent_lap_times``.
        median_lap_time: Middle value of the sorted recent laps.
    """

    consistency_score: float = 0.0
    trend_direction: str = ""
    predicted_lap_time: float = 0.0
    optimal_lap_time: float = 0.0
    lap_time_variance: float = 0.0
    recent_lap_times: tuple[float, ...] = ()
    average_lap_time: float = 0.0
    median_lap_time: float = 0.0


def _trend(laps: list[float], policy: StrategyPolicy) -> str:
    # laps are most-recent-first
    newer: float = sum(laps[:3]) / 3
    older: float = sum(laps[-3:]) / 3
    diff: float = newer - older
    if diff < -policy.trend_threshold:
        return TREND_IMPROVING
    if diff > policy.trend_threshold:
        return TREND_DEGRADING
    return TREND_STABLE


def analyze_laps(
    history: TelemetryHistory,
    previous: LapAnalysis | None = None,
    policy: StrategyPolicy | None = None,
) -> LapAnalysis:
    """Recompute lap analysis from the telemetry history.

    Args:
        history: Telemetry history; the newest entry is the current sample.
        previous: Last computed analysis, returned unchanged when there are
            fewer than ``policy.min_lap_samples`` completed laps.
        policy: Threshold set.

    Returns:
        A new :class:`LapAnalysis`.
    """
    prior = previous if previous is not None else LapAnalysis()
    policy = policy if policy is not None else StrategyPolicy()

    laps: list[float] = []
    for snapshot in history.newest_first():
        if len(laps) >= policy.lap_sample_size:
            break
        if snapshot.player.last_lap_time > 0:
            laps.append(snapshot.player.last_lap_time)

    if len(laps) < policy.min_lap_samples:
        logger.debug("Lap analysis skipped: %d completed laps", len(laps))
        return prior

    samples = np.asarray(laps, dtype=float)
    average: float = float(samples.mean())
    median: float = sorted(laps)[len(laps) // 2]
    variance: float = float(np.abs(samples - average).mean())

    consistency: float = prior.consistency_score
    if average > 0:
        consistency = max(0.0, 1.0 - (variance / average) * policy.consistency_scale)

    trend: str = prior.trend_direction
    if len(laps) >= policy.min_trend_samples:
        trend = _trend(laps, policy)

    adjustment: float = 0.0
    if trend == TREND_IMPROVING:
        adjustment = policy.improving_adjustment
    elif trend == TREND_DEGRADING:
        adjustment = policy.degrading_adjustment

    optimal: float = prior.optimal_lap_time
    current = history.latest()
    if current is not None and current.player.best_lap_time > 0:
        optimal = current.player.best_lap_time

    return replace(
        prior,
        consistency_score=consistency,
        trend_direction=trend,
        predicted_lap_time=average + adjustment,
        optimal_lap_time=optimal,
        lap_time_variance=variance,
        recent_lap_times=tuple(laps),
        average_lap_time=average,
        median_lap_time=median,
    )
