"""Core analysis modules for the race strategy engine."""

from race_engine.core.engine import StrategyEngine
from race_engine.core.fuel import FuelAnalysis, analyze_fuel
from race_engine.core.history import HISTORY_CAPACITY, TelemetryHistory
from race_engine.core.lap import LapAnalysis, analyze_laps
from race_engine.core.pit_models import (
    PitAlternative,
    PitLossCalculation,
    PitRecommendation,
    PitStopAnalysis,
    PitWindow,
)
from race_engine.core.pit_stop import PitStopCalculator
from race_engine.core.policy import AnalysisConfig, StrategyPolicy
from race_engine.core.race_context import RaceAnalysis, analyze_race
from race_engine.core.state import DerivedState, recompute
from race_engine.core.synthesizer import StrategicRecommendation, synthesize
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
from race_engine.core.track import TrackData, TrackDatabase
from race_engine.core.tyre import TyreAnalysis, analyze_tyres

__all__ = [
    "AnalysisConfig",
    "DerivedState",
    "FuelAnalysis",
    "FuelState",
    "HISTORY_CAPACITY",
    "LapAnalysis",
    "OpponentState",
    "PitAlternative",
    "PitLossCalculation",
    "PitRecommendation",
    "PitState",
    "PitStopAnalysis",
    "PitStopCalculator",
    "PitWindow",
    "PlayerState",
    "RaceAnalysis",
    "SessionInfo",
    "StrategicRecommendation",
    "StrategyEngine",
    "StrategyPolicy",
    "TelemetryHistory",
    "TelemetrySnapshot",
    "TrackData",
    "TrackDatabase",
    "TyreAnalysis",
    "TyreSet",
    "WheelState",
    "analyze_fuel",
    "analyze_laps",
    "analyze_race",
    "analyze_tyres",
    "recompute",
    "synthesize",
]
