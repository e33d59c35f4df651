#!/usr/bin/env python
"""Replay a recorded telemetry session through the strategy engine.

This script:

1. Loads a CSV recording (see :mod:`race_engine.data_ingestion.replay_loader`
   for the column layout).
2. Feeds every sample to a :class:`StrategyEngine`.
3. Generates a recommendation for the final sample.
4. Saves it to ``results/latest_replay_recommendation.json``.
5. Prints a structured summary.

Usage
-----
::

    python scripts/replay_session.py path/to/recording.csv [track name]

Requirements
------------
- ``pandas>=2.0.0``, ``numpy>=1.26``, ``pyyaml>=6.0`` must be installed.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from dataclasses import asdict

# Ensure the project root is on the import path.
_project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from race_engine.config import load_analysis_config, load_track_database  # noqa: E402
from race_engine.core.engine import StrategyEngine  # noqa: E402
from race_engine.data_ingestion.replay_loader import load_replay  # noqa: E402

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

RESULTS_DIR: str = os.path.join(_project_root, "results")
OUTPUT_PATH: str = os.path.join(RESULTS_DIR, "latest_replay_recommendation.json")


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------


def main() -> int:
    if len(sys.argv) < 2:
        print("usage: replay_session.py RECORDING.csv [TRACK NAME]")
        return 2
    recording = sys.argv[1]
    track_name = sys.argv[2] if len(sys.argv) > 2 else ""

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 60)
    print("TELEMETRY REPLAY")
    print("=" * 60)
    print()

    # -- Step 1: load ---------------------------------------------------------
    print(f"[1/4] Loading {recording}")
    snapshots = load_replay(recording, track_name)
    print(f"      {len(snapshots)} samples loaded.")
    print()
    if not snapshots:
        print("Nothing to replay.")
        return 1

    # -- Step 2: feed ---------------------------------------------------------
    print("[2/4] Feeding samples to the strategy engine")
    engine = StrategyEngine(config=load_analysis_config(), track_db=load_track_database())
    for snap in snapshots[:-1]:
        engine.add_snapshot(snap)
    print(f"      History holds {len(engine.history)} samples.")
    print()

    # -- Step 3: recommend ----------------------------------------------------
    print("[3/4] Generating recommendation for the final sample")
    rec = engine.generate_recommendation(snapshots[-1])
    print()

    # -- Step 4: save ---------------------------------------------------------
    print("[4/4] Saving results")
    os.makedirs(RESULTS_DIR, exist_ok=True)
    with open(OUTPUT_PATH, "w", encoding="utf-8") as fh:
        json.dump(asdict(rec), fh, indent=2, sort_keys=True)
    print(f"      Results saved to {OUTPUT_PATH}")
    print()

    # -- Summary --------------------------------------------------------------
    state = engine.state
    print("=" * 60)
    print("STRATEGY SUMMARY")
    print("=" * 60)
    print(f"  Format / phase : {state.race.race_format} / {state.race.strategic_phase}")
    print(f"  Strategy       : {rec.primary_strategy}")
    print(f"  Confidence     : {rec.confidence_level:.2f}")
    print(f"  Risk           : {rec.risk_assessment}")
    print(f"  Avg lap        : {state.lap.average_lap_time:.3f} s")
    print(f"  Fuel per lap   : {state.fuel.average_consumption:.2f} L")
    print(f"  Degradation    : {state.tyre.degradation_rate:.2f} %/lap")
    pit = rec.pit_recommendation
    print(f"  Pit            : {'yes, lap ' + str(pit.optimal_lap) if pit.should_pit else 'no'}")
    for factor in state.race.key_strategic_factors:
        print(f"    * {factor}")
    print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
