"""Strategy engine facade.

:class:`StrategyEngine` owns the telemetry history, the latest
:class:`~race_engine.core.state.DerivedState` and a pit-stop calculator.
Ingesting a snapshot and recomputing the analyses happen under one lock,
and the new state replaces the old one as a single value.
"""

from __future__ import annotations

import logging
import threading

from race_engine.core.history import HISTORY_CAPACITY, TelemetryHistory
from race_engine.core.pit_models import PitStopAnalysis
from race_engine.core.pit_stop import PitStopCalculator
from race_engine.core.policy import AnalysisConfig
from race_engine.core.race_context import RaceAnalysis
from race_engine.core.state import DerivedState, recompute
from race_engine.core.synthesizer import StrategicRecommendation, synthesize
from race_engine.core.telemetry import TelemetrySnapshot
from race_engine.core.track import TrackDatabase

logger = logging.getLogger(__name__)


class StrategyEngine:
    """Turns a telemetry stream into strategy recommendations.

    Args:
        config: Analysis preferences and thresholds.
        track_db: Circuit lookup for the pit-stop calculator.  Defaults
            to the bundled circuit data.
        capacity: History capacity.
    """

    def __init__(
        self,
        config: AnalysisConfig | None = None,
        track_db: TrackDatabase | None = None,
        capacity: int = HISTORY_CAPACITY,
    ):
        self.config: AnalysisConfig = config if config is not None else AnalysisConfig()
        self._history: TelemetryHistory = TelemetryHistory(capacity)
        self._state: DerivedState = DerivedState()
        self._pit_calculator: PitStopCalculator = PitStopCalculator(
            track_db,
            self.config.policy,
            include_opponents=self.config.include_opponent_data,
        )
        self._lock = threading.Lock()

    @property
    def state(self) -> DerivedState:
        """Latest derived state."""
        return self._state

    @property
    def history(self) -> TelemetryHistory:
        return self._history

    @staticmethod
    def _accepts(snapshot: object) -> bool:
        if isinstance(snapshot, TelemetrySnapshot):
            return True
        logger.warning("Ignoring non-snapshot input of type %s", type(snapshot).__name__)
        return False

    def _ingest(self, snapshot: TelemetrySnapshot) -> None:
        """Append and recompute; caller holds the lock."""
        try:
            self._history.append(snapshot)
            self._state = recompute(self._history, self._state, self.config)
        except Exception:
            logger.exception(
                "Recompute failed at t=%s; keeping previous state", snapshot.timestamp
            )

    def add_snapshot(self, snapshot: TelemetrySnapshot) -> None:
        """Append *snapshot* and recompute the analyses.

        Never raises: objects that are not snapshots are dropped with a
        warning, and an unexpected failure is logged with the previous
        state kept.
        """
        if not self._accepts(snapshot):
            return
        with self._lock:
            self._ingest(snapshot)

    def calculate_pit_stop_timing(
        self,
        snapshot: TelemetrySnapshot,
        race_analysis: RaceAnalysis | None = None,
    ) -> PitStopAnalysis:
        """Detailed pit-timing view for *snapshot* (does not ingest it)."""
        with self._lock:
            return self._pit_calculator.calculate_pit_stop_timing(
                snapshot, race_analysis
            )

    def generate_recommendation(
        self, snapshot: TelemetrySnapshot
    ) -> StrategicRecommendation:
        """Ingest *snapshot* and return the merged recommendation.

        Ingest, state read and pit calculation share one lock acquisition,
        so the recommendation always reflects *snapshot* itself.
        """
        accepted: bool = self._accepts(snapshot)
        with self._lock:
            if accepted:
                self._ingest(snapshot)
            state = self._state
            history_size = len(self._history)
            pit_analysis = self._pit_calculator.calculate_pit_stop_timing(
                snapshot, state.race
            )
        return synthesize(snapshot, history_size, state, pit_analysis)
