"""Derived analysis state and the pure recompute step."""

from __future__ import annotations

from dataclasses import dataclass, field

from race_engine.core.fuel import FuelAnalysis, analyze_fuel
from race_engine.core.history import TelemetryHistory
from race_engine.core.lap import LapAnalysis, analyze_laps
from race_engine.core.policy import AnalysisConfig, StrategyPolicy
from race_engine.core.race_context import RaceAnalysis, analyze_race
from race_engine.core.tyre import TyreAnalysis, analyze_tyres


@dataclass(frozen=True)
class DerivedState:
    """The four analyses computed from one history.

    Attributes:
        lap: Lap-time analysis.
        fuel: Fuel analysis.
        tyre: Tyre analysis.
        race: Race-situation analysis.
    """

    lap: LapAnalysis = field(default_factory=LapAnalysis)
    fuel: FuelAnalysis = field(default_factory=FuelAnalysis)
    tyre: TyreAnalysis = field(default_factory=TyreAnalysis)
    race: RaceAnalysis = field(default_factory=RaceAnalysis)


def recompute(
    history: TelemetryHistory,
    previous: DerivedState | None = None,
    config: AnalysisConfig | None = None,
    policy: StrategyPolicy | None = None,
) -> DerivedState:
    """Run the analyzers in dependency order over *history*.

    Args:
        history: Telemetry history; not modified.
        previous: State from the last run.  Sub-analyses that lack data
            this time keep their previous values.
        config: Analysis preferences.
        policy: Threshold set; defaults to ``config.policy``.

    Returns:
        A new :class:`DerivedState`.
    """
    prior = previous if previous is not None else DerivedState()
    config = config if config is not None else AnalysisConfig()
    policy = policy if policy is not None else config.policy

    lap = analyze_laps(history, prior.lap, policy)
    fuel = analyze_fuel(history, lap, prior.fuel, policy, config.safety_margin)
    tyre = analyze_tyres(
        history, fuel, prior.tyre, policy, config.include_opponent_data
    )
    race = analyze_race(
        history,
        lap,
        fuel,
        tyre,
        prior.race,
        policy,
        race_format=config.race_format,
        include_opponents=config.include_opponent_data,
    )
    return DerivedState(lap=lap, fuel=fuel, tyre=tyre, race=race)
