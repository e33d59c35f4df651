"""Fuel consumption analysis for the race strategy engine.

Consumption is measured between consecutive samples that straddle a lap
boundary.  From the average burn the analyzer projects how many laps the
tank covers, how much fuel the rest of the race needs and how much must
be saved per lap.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace

import numpy as np

from race_engine.core.history import TelemetryHistory
from race_engine.core.lap import LapAnalysis
from race_engine.core.policy import StrategyPolicy
from race_engine.core.telemetry import FLAG_RED, FLAG_YELLOW, TelemetrySnapshot

logger = logging.getLogger(__name__)

STRATEGY_AGGRESSIVE_SAVE: str = "aggressive_save"
STRATEGY_CONSERVATIVE: str = "conservative"
STRATEGY_BALANCED: str = "balanced"
STRATEGY_AGGRESSIVE: str = "aggressive"


@dataclass(frozen=True)
class FuelAnalysis:
    """Derived fuel state.

    Attributes:
        average_consumption: Litres per lap.
        trending_consumption: Mean of the two newest samples.
        remaining_laps: Laps the current fuel load covers.
        fuel_to_finish: Litres needed for the rest of the race.
        save_required: Litres to save per lap (negative means surplus).
        safety_margin: Extra litres implied by the configured margin.
        weather_impact: Heuristic consumption delta from flags and
            temperature.  Reported only.
        strategy_recommendation: "aggressive_save", "conservative",
            "balanced" or "aggressive".
    """

    average_consumption: float = 0.0
    trending_consumption: float = 0.0
    remaining_laps: int = 0
    fuel_to_finish: float = 0.0
    save_required: float = 0.0
    safety_margin: float = 0.0
    weather_impact: float = 0.0
    strategy_recommendation: str = ""


def consumption_samples(
    history: TelemetryHistory, policy: StrategyPolicy
) -> list[float]:
    """Per-lap fuel burn samples, most-recent-first."""
    snapshots = history.newest_first()
    samples: list[float] = []
    for current, previous in zip(snapshots, snapshots[1:]):
        if len(samples) >= policy.fuel_sample_size:
            break
        lap_completed = current.player.current_lap > previous.player.current_lap
        if lap_completed and previous.player.fuel.level > current.player.fuel.level:
            burn: float = previous.player.fuel.level - current.player.fuel.level
            if 0.0 < burn < policy.max_plausible_consumption:
                samples.append(burn)
    return samples


def weather_fuel_impact(snapshot: TelemetrySnapshot) -> float:
    """Heuristic consumption change from flags and air temperature."""
    impact: float = 0.0
    if snapshot.session.flag == FLAG_YELLOW:
        impact = -0.1
    elif snapshot.session.flag == FLAG_RED:
        impact = -0.3

    if snapshot.session.air_temperature > 30:
        impact += 0.05
    elif snapshot.session.air_temperature < 10:
        impact += 0.03
    return impact


def fuel_strategy_bucket(save_required: float, policy: StrategyPolicy) -> str:
    if save_required > policy.aggressive_save_threshold:
        return STRATEGY_AGGRESSIVE_SAVE
    if save_required > policy.conservative_threshold:
        return STRATEGY_CONSERVATIVE
    if save_required < policy.aggressive_threshold:
        return STRATEGY_AGGRESSIVE
    return STRATEGY_BALANCED


def analyze_fuel(
    history: TelemetryHistory,
    lap_analysis: LapAnalysis,
    previous: FuelAnalysis | None = None,
    policy: StrategyPolicy | None = None,
    safety_margin_factor: float = 1.1,
) -> FuelAnalysis:
    """Recompute fuel analysis from the telemetry history.

    Time-based sessions estimate the laps remaining from
    ``lap_analysis.average_lap_time``; when that is not yet known the
    fuel-to-finish projection is skipped for this cycle.

    Args:
        history: Telemetry history; the newest entry is the current sample.
        lap_analysis: Lap analysis computed for the same sample.
        previous: Last computed analysis.  Fields that cannot be updated
            keep their previous values.
        policy: Threshold set.
        safety_margin_factor: Fuel safety multiplier (e.g. 1.1).

    Returns:
        A new :class:`FuelAnalysis`.
    """
    prior = previous if previous is not None else FuelAnalysis()
    policy = policy if policy is not None else StrategyPolicy()

    current = history.latest()
    if current is None or len(history) < 2:
        logger.debug("Fuel analysis skipped: %d samples", len(history))
        return prior

    average: float = prior.average_consumption
    trending: float = prior.trending_consumption
    samples = consumption_samples(history, policy)
    if samples:
        average = float(np.mean(samples))
        if len(samples) >= 4:
            recent: float = (samples[0] + samples[1]) / 2
            older: float = (samples[-2] + samples[-1]) / 2
            trending = recent
            if abs(recent - older) > policy.fuel_trend_threshold:
                average = (average + recent) / 2

    level: float = current.player.fuel.level
    remaining_laps: int = prior.remaining_laps
    if average > 0:
        remaining_laps = math.floor(level / average)

    fuel_to_finish: float = prior.fuel_to_finish
    save_required: float = prior.save_required
    session = current.session
    if session.total_laps > 0:
        laps_left: int = session.total_laps - current.player.current_lap
        fuel_to_finish = laps_left * average
        if laps_left > 0:
            save_required = (fuel_to_finish - level) / laps_left
    elif session.time_remaining > 0 and lap_analysis.average_lap_time > 0:
        estimated_laps: float = session.time_remaining / lap_analysis.average_lap_time
        fuel_to_finish = estimated_laps * average
        save_required = (fuel_to_finish - level) / estimated_laps

    return replace(
        prior,
        average_consumption=average,
        trending_consumption=trending,
        remaining_laps=remaining_laps,
        fuel_to_finish=fuel_to_finish,
        save_required=save_required,
        safety_margin=fuel_to_finish * (safety_margin_factor - 1),
        weather_impact=weather_fuel_impact(current),
        strategy_recommendation=fuel_strategy_bucket(save_required, policy),
    )
