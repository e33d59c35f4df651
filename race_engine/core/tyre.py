"""Tyre degradation and pit-window analysis for the race strategy engine.

Degradation is estimated as wear gained per stint lap across recent
samples.  From it the analyzer derives how long the current set can run,
whether the pit window is open, undercut/overcut exposure relative to
nearby cars, and which compound to fit next.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from race_engine.core.fuel import FuelAnalysis
from race_engine.core.history import TelemetryHistory
from race_engine.core.policy import StrategyPolicy
from race_engine.core.telemetry import (
    OpponentState,
    TelemetrySnapshot,
    average_wear,
    lap_progress,
    stint_lap,
)

logger = logging.getLogger(__name__)

COMPOUND_SOFT: str = "soft"
COMPOUND_MEDIUM: str = "medium"
COMPOUND_HARD: str = "hard"


@dataclass(frozen=True)
class TyreAnalysis:
    """Derived tyre state.

    Attributes:
        degradation_rate: Wear percent gained per stint lap.
        optimal_stint_length: Laps left before reaching the wear ceiling.
        current_stint_lap: Laps on the current set.
        performance_delta: Estimated lap-time loss from wear, seconds.
        pit_window_open: Whether pitting is currently sensible.
        compound_recommendation: "soft", "medium" or "hard".
        estimated_pit_loss: Typical pit-stop time loss, seconds.
        undercut_threat: A close car behind could undercut.
        overcut_opportunity: A close car ahead is on much older tyres.
    """

    degradation_rate: float = 0.0
    optimal_stint_length: int = 0
    current_stint_lap: int = 0
    performance_delta: float = 0.0
    pit_window_open: bool = False
    compound_recommendation: str = ""
    estimated_pit_loss: float = 0.0
    undercut_threat: bool = False
    overcut_opportunity: bool = False


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def wear_samples(
    history: TelemetryHistory, policy: StrategyPolicy
) -> list[tuple[float, int]]:
    """(average wear, stint lap) pairs, most-recent-first."""
    samples: list[tuple[float, int]] = []
    for snapshot in history.newest_first():
        if len(samples) >= policy.wear_sample_size:
            break
        wear: float = average_wear(snapshot.player.tyres)
        if wear > 0:
            samples.append((wear, stint_lap(snapshot.player)))
    return samples


def is_pit_window_open(
    snapshot: TelemetrySnapshot, fuel: FuelAnalysis, policy: StrategyPolicy
) -> bool:
    """Wear or fuel demands a stop, outside the first and last laps."""
    wear_critical = average_wear(snapshot.player.tyres) > policy.pit_window_wear
    fuel_critical = fuel.remaining_laps < policy.pit_window_fuel_laps

    progress = lap_progress(snapshot)
    if progress is not None and (
        progress < policy.pit_window_min_progress
        or progress > policy.pit_window_max_progress
    ):
        return False
    return wear_critical or fuel_critical


def undercut_overcut_flags(
    snapshot: TelemetrySnapshot,
    opponents: tuple[OpponentState, ...],
    policy: StrategyPolicy,
) -> tuple[bool, bool]:
    """Return ``(undercut_threat, overcut_opportunity)``."""
    player = snapshot.player
    player_stint: int = stint_lap(player)
    undercut = False
    overcut = False
    for opponent in opponents:
        if abs(opponent.gap_to_player) >= policy.pit_delta_gap:
            continue
        if opponent.position > player.position:
            undercut = True
        elif opponent.position < player.position:
            opponent_stint: int = player.current_lap - opponent.last_pit_lap
            if opponent_stint > player_stint + policy.overcut_stint_margin:
                overcut = True
    return undercut, overcut


def recommend_compound(snapshot: TelemetrySnapshot, policy: StrategyPolicy) -> str:
    track_temp: float = snapshot.session.track_temperature
    if track_temp > policy.hot_track_temperature:
        return COMPOUND_HARD
    if track_temp < policy.cold_track_temperature:
        return COMPOUND_SOFT

    progress = lap_progress(snapshot)
    if progress is not None and progress > policy.late_race_progress:
        return COMPOUND_SOFT
    return COMPOUND_MEDIUM


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------


def analyze_tyres(
    history: TelemetryHistory,
    fuel: FuelAnalysis,
    previous: TyreAnalysis | None = None,
    policy: StrategyPolicy | None = None,
    include_opponents: bool = True,
) -> TyreAnalysis:
    """Recompute tyre analysis from the telemetry history.

    Args:
        history: Telemetry history; the newest entry is the current sample.
        fuel: Fuel analysis for the same sample (drives the fuel side of
            the pit window).
        previous: Last computed analysis.
        policy: Threshold set.
        include_opponents: When False, undercut/overcut flags stay False.

    Returns:
        A new :class:`TyreAnalysis`.
    """
    prior = previous if previous is not None else TyreAnalysis()
    policy = policy if policy is not None else StrategyPolicy()

    current = history.latest()
    if current is None:
        return prior

    rate: float = prior.degradation_rate
    samples = wear_samples(history, policy)
    if len(samples) >= policy.min_wear_samples:
        newest_wear, newest_lap = samples[0]
        oldest_wear, oldest_lap = samples[-1]
        lap_span: int = newest_lap - oldest_lap
        if lap_span > 0:
            rate = (newest_wear - oldest_wear) / lap_span
        else:
            logger.debug("Degradation rate kept: stint lap span %d", lap_span)

    wear: float = average_wear(current.player.tyres)
    stint_length: int = prior.optimal_stint_length
    if rate > 0:
        stint_length = int((policy.wear_ceiling - wear) / rate)

    opponents = current.opponents if include_opponents else ()
    undercut, overcut = undercut_overcut_flags(current, opponents, policy)

    return replace(
        prior,
        degradation_rate=rate,
        optimal_stint_length=stint_length,
        current_stint_lap=stint_lap(current.player),
        performance_delta=max(0.0, wear - policy.performance_wear_floor) / 10 * 0.1,
        pit_window_open=is_pit_window_open(current, fuel, policy),
        compound_recommendation=recommend_compound(current, policy),
        estimated_pit_loss=policy.estimated_pit_loss,
        undercut_threat=undercut,
        overcut_opportunity=overcut,
    )
