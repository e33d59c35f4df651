"""Replay recorded telemetry from CSV files.

A recording is a flat table with one row per telemetry sample.  Only the
player car is recorded; opponent data is not part of the format.

Required columns:

- ``timestamp`` -- sample time in seconds.
- ``current_lap`` -- lap being driven.
- ``position`` -- race position.
- ``last_lap_time`` -- last completed lap in seconds (0 if none).
- ``fuel_level`` -- fuel in litres.

Optional columns fall back to zero (or the session defaults below):
``lap_distance_percent``, ``best_lap_time``, ``current_lap_time``,
``gap_to_ahead``, ``gap_to_behind``, ``speed``, ``fuel_capacity``,
``fuel_percentage``, ``fuel_usage_per_lap``, ``fuel_laps_left``,
``wear_fl``/``wear_fr``/``wear_rl``/``wear_rr`` (or a single ``wear``),
``compound``, ``on_pit_road``, ``last_pit_lap``, ``flag``,
``total_laps``, ``session_time``, ``time_remaining``,
``air_temperature``, ``track_temperature``, ``track_name``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pandas as pd

from race_engine.core.telemetry import (
    FLAG_GREEN,
    FuelState,
    PitState,
    PlayerState,
    SessionInfo,
    TelemetrySnapshot,
    TyreSet,
    WheelState,
)

REQUIRED_COLUMNS: tuple[str, ...] = (
    "timestamp",
    "current_lap",
    "position",
    "last_lap_time",
    "fuel_level",
)

_WHEEL_COLUMNS: tuple[str, ...] = ("wear_fl", "wear_fr", "wear_rl", "wear_rr")


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_replay_frame(path: Path | str) -> pd.DataFrame:
    """Read a recording and check its required columns.

    Rows are sorted by ``timestamp``.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If a required column is missing.
    """
    csv_path = Path(path)
    if not csv_path.exists():
        raise FileNotFoundError(f"Replay file not found: {csv_path}")

    frame = pd.read_csv(csv_path)
    missing = [c for c in REQUIRED_COLUMNS if c not in frame.columns]
    if missing:
        raise ValueError(
            f"Replay file {csv_path} is missing required columns: {', '.join(missing)}"
        )
    return frame.sort_values("timestamp", kind="stable").reset_index(drop=True)


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


def _num(row: dict[str, Any], column: str, default: float = 0.0) -> float:
    val = row.get(column, default)
    if val is None or pd.isna(val):
        return default
    return float(val)


def _int(row: dict[str, Any], column: str, default: int = 0) -> int:
    return int(_num(row, column, float(default)))


def _text(row: dict[str, Any], column: str, default: str) -> str:
    val = row.get(column, default)
    if val is None or pd.isna(val):
        return default
    return str(val)


def _tyres(row: dict[str, Any]) -> TyreSet:
    compound = _text(row, "compound", "")
    if all(c in row for c in _WHEEL_COLUMNS):
        fl, fr, rl, rr = (WheelState(wear_percent=_num(row, c)) for c in _WHEEL_COLUMNS)
        return TyreSet(
            compound=compound, front_left=fl, front_right=fr, rear_left=rl, rear_right=rr
        )
    return TyreSet.uniform(_num(row, "wear"), compound)


def row_to_snapshot(row: dict[str, Any], track_name: str = "") -> TelemetrySnapshot:
    """Build a :class:`TelemetrySnapshot` from one recording row."""
    session = SessionInfo(
        flag=_text(row, "flag", FLAG_GREEN),
        track_name=_text(row, "track_name", track_name),
        total_laps=_int(row, "total_laps"),
        session_time=_num(row, "session_time"),
        time_remaining=_num(row, "time_remaining"),
        air_temperature=_num(row, "air_temperature"),
        track_temperature=_num(row, "track_temperature"),
    )
    player = PlayerState(
        position=_int(row, "position"),
        current_lap=_int(row, "current_lap"),
        lap_distance_percent=_num(row, "lap_distance_percent"),
        last_lap_time=_num(row, "last_lap_time"),
        best_lap_time=_num(row, "best_lap_time"),
        current_lap_time=_num(row, "current_lap_time"),
        gap_to_ahead=_num(row, "gap_to_ahead"),
        gap_to_behind=_num(row, "gap_to_behind"),
        speed=_num(row, "speed"),
        fuel=FuelState(
            level=_num(row, "fuel_level"),
            capacity=_num(row, "fuel_capacity"),
            percentage=_num(row, "fuel_percentage"),
            usage_per_lap=_num(row, "fuel_usage_per_lap"),
            estimated_laps_left=_int(row, "fuel_laps_left"),
        ),
        tyres=_tyres(row),
        pit=PitState(
            is_on_pit_road=bool(_int(row, "on_pit_road")),
            last_pit_lap=_int(row, "last_pit_lap"),
        ),
    )
    return TelemetrySnapshot(
        timestamp=_num(row, "timestamp"), session=session, player=player
    )


def frame_to_snapshots(
    frame: pd.DataFrame, track_name: str = ""
) -> list[TelemetrySnapshot]:
    """Convert every row of *frame* into a snapshot, in row order."""
    return [
        row_to_snapshot(row, track_name) for row in frame.to_dict(orient="records")
    ]


def load_replay(path: Path | str, track_name: str = "") -> list[TelemetrySnapshot]:
    """Read a recording and return its snapshots in time order."""
    return frame_to_snapshots(load_replay_frame(path), track_name)
