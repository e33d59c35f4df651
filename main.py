"""CLI entrypoint for the Race Strategy Analytics Engine."""

from __future__ import annotations

import sys

from race_engine import __version__
from race_engine.config import load_analysis_config, load_track_database
from race_engine.core.engine import StrategyEngine
from race_engine.core.telemetry import (
    FuelState,
    OpponentState,
    PitState,
    PlayerState,
    SessionInfo,
    TelemetrySnapshot,
    TyreSet,
    average_wear,
)

TOTAL_LAPS: int = 50
DEMO_LAPS: int = 24
BASE_LAP: float = 90.0
FUEL_START: float = 110.0
FUEL_PER_LAP: float = 2.1
WEAR_PER_LAP: float = 3.1


def _demo_snapshot(lap: int) -> TelemetrySnapshot:
    """Synthetic end-of-lap sample for a 50-lap race at Silverstone."""
    wear = WEAR_PER_LAP * lap
    fuel = FUEL_START - FUEL_PER_LAP * lap
    last_lap = BASE_LAP + wear * 0.01 if lap > 1 else 0.0
    return TelemetrySnapshot(
        timestamp=lap * BASE_LAP,
        session=SessionInfo(
            track_name="Silverstone",
            total_laps=TOTAL_LAPS,
            air_temperature=22.0,
            track_temperature=31.0,
        ),
        player=PlayerState(
            position=4,
            current_lap=lap,
            lap_distance_percent=2.0,
            last_lap_time=last_lap,
            best_lap_time=BASE_LAP if lap > 1 else 0.0,
            gap_to_ahead=1.8,
            gap_to_behind=2.6,
            speed=285.0,
            fuel=FuelState(
                level=fuel,
                capacity=FUEL_START,
                percentage=fuel / FUEL_START * 100.0,
                usage_per_lap=FUEL_PER_LAP,
                estimated_laps_left=int(fuel / FUEL_PER_LAP),
            ),
            tyres=TyreSet.uniform(wear, "medium"),
            pit=PitState(last_pit_lap=0),
        ),
        opponents=(
            OpponentState(car_index=3, driver_name="Car Ahead", position=3,
                          current_lap=lap, gap_to_player=1.8, last_pit_lap=0),
            OpponentState(car_index=5, driver_name="Car Behind", position=5,
                          current_lap=lap, gap_to_player=-2.6, last_pit_lap=0),
        ),
    )


def main() -> None:
    """Run a demonstration of the strategy engine on a synthetic stint."""
    print(f"Race Strategy Analytics Engine v{__version__}")
    print("=" * 56)

    # -- Load configuration ---------------------------------------------------
    config = load_analysis_config()
    tracks = load_track_database()
    print(f"\nTrack database: {len(tracks)} circuits loaded")
    for name in tracks.names:
        print(f"  - {name}")

    engine = StrategyEngine(config=config, track_db=tracks)

    # -- Feed a synthetic stint -----------------------------------------------
    print(f"\nFeeding {DEMO_LAPS} laps of telemetry:\n")
    print(f"  {'Lap':>3}  {'Wear %':>6}  {'Fuel L':>6}  {'Last Lap (s)':>12}")
    print(f"  {'---':>3}  {'------':>6}  {'------':>6}  {'------------':>12}")
    for lap in range(1, DEMO_LAPS):
        snap = _demo_snapshot(lap)
        engine.add_snapshot(snap)
        print(
            f"  {lap:3d}  {average_wear(snap.player.tyres):6.1f}"
            f"  {snap.player.fuel.level:6.1f}  {snap.player.last_lap_time:12.3f}"
        )

    rec = engine.generate_recommendation(_demo_snapshot(DEMO_LAPS))
    pit = rec.pit_recommendation

    print("\n" + "-" * 56)
    print(f"Strategy    : {rec.primary_strategy}")
    print(f"Confidence  : {rec.confidence_level:.2f}")
    print(f"Risk        : {rec.risk_assessment}")
    print(f"Data quality: {rec.data_quality:.2f}")
    print(f"\nPit now?    : {'yes' if pit.should_pit else 'no'}")
    if pit.should_pit:
        print(f"  Optimal lap : {pit.optimal_lap} (window closes lap {pit.window_close_lap})")
        print(f"  Compound    : {pit.tyre_compound}")
        print(f"  Fuel load   : {pit.fuel_load:.1f} L")
        print(f"  Time loss   : {pit.estimated_loss:.1f} s")

    if rec.immediate_actions:
        print("\nImmediate actions:")
        for action in rec.immediate_actions:
            print(f"  [{action.priority}] {action.action} ({action.timing})")

    if rec.lap_targets:
        print("\nLap targets:")
        for name, target in rec.lap_targets.items():
            print(f"  {name:<14} {target:8.3f} s")

    print("\nDemo complete.")


if __name__ == "__main__":
    sys.exit(main() or 0)
