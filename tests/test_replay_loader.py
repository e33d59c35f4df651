"""Tests for the CSV telemetry replay loader."""

import pandas as pd
import pytest

from race_engine.core.telemetry import average_wear
from race_engine.data_ingestion.replay_loader import (
    frame_to_snapshots,
    load_replay,
    load_replay_frame,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _recording(tmp_path, rows: list[dict]):
    path = tmp_path / "session.csv"
    pd.DataFrame(rows).to_csv(path, index=False)
    return path


def _row(t: float, lap: int, **extra) -> dict:
    row = {
        "timestamp": t,
        "current_lap": lap,
        "position": 4,
        "last_lap_time": 91.5,
        "fuel_level": 60.0 - 2.0 * lap,
    }
    row.update(extra)
    return row


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


def test_rows_sorted_by_timestamp(tmp_path) -> None:
    """Samples come back in time order."""
    path = _recording(tmp_path, [_row(200.0, 2), _row(100.0, 1), _row(300.0, 3)])
    snapshots = load_replay(path, "Monza")
    assert [s.timestamp for s in snapshots] == [100.0, 200.0, 300.0]
    assert [s.player.current_lap for s in snapshots] == [1, 2, 3]
    assert all(s.session.track_name == "Monza" for s in snapshots)


def test_optional_columns_default(tmp_path) -> None:
    """Absent optional columns take default values."""
    snap = load_replay(_recording(tmp_path, [_row(1.0, 1)]))[0]
    assert snap.session.flag == "green"
    assert snap.session.total_laps == 0
    assert snap.player.gap_to_ahead == 0.0
    assert snap.player.pit.is_on_pit_road is False
    assert snap.opponents == ()


def test_per_wheel_wear(tmp_path) -> None:
    """Per-wheel wear columns fill each tyre."""
    row = _row(1.0, 5, wear_fl=40.0, wear_fr=42.0, wear_rl=38.0, wear_rr=44.0, compound="soft")
    snap = load_replay(_recording(tmp_path, [row]))[0]
    assert snap.player.tyres.compound == "soft"
    assert snap.player.tyres.front_right.wear_percent == 42.0
    assert abs(average_wear(snap.player.tyres) - 41.0) < 1e-9


def test_single_wear_column(tmp_path) -> None:
    """A single wear column applies to all four tyres."""
    snap = load_replay(_recording(tmp_path, [_row(1.0, 5, wear=33.0)]))[0]
    assert abs(average_wear(snap.player.tyres) - 33.0) < 1e-9


def test_session_columns(tmp_path) -> None:
    """Session and pit columns are read, track name included."""
    row = _row(1.0, 5, flag="yellow", total_laps=30, track_name="Spa-Francorchamps",
               last_pit_lap=3, on_pit_road=1)
    snap = load_replay(_recording(tmp_path, [row]), "ignored")[0]
    assert snap.session.flag == "yellow"
    assert snap.session.total_laps == 30
    assert snap.session.track_name == "Spa-Francorchamps"
    assert snap.player.pit.last_pit_lap == 3
    assert snap.player.pit.is_on_pit_road is True


def test_blank_cells_fall_back(tmp_path) -> None:
    """Blank cells fall back to defaults."""
    rows = [_row(1.0, 1, gap_to_ahead=1.5), _row(2.0, 2)]
    snapshots = load_replay(_recording(tmp_path, rows))
    assert snapshots[0].player.gap_to_ahead == 1.5
    assert snapshots[1].player.gap_to_ahead == 0.0


def test_missing_required_column(tmp_path) -> None:
    """A missing required column is named in the error."""
    rows = [{"timestamp": 1.0, "current_lap": 1, "position": 4}]
    with pytest.raises(ValueError, match="last_lap_time"):
        load_replay_frame(_recording(tmp_path, rows))


def test_missing_file(tmp_path) -> None:
    """A missing recording raises FileNotFoundError."""
    with pytest.raises(FileNotFoundError):
        load_replay(tmp_path / "absent.csv")


def test_frame_to_snapshots_in_memory() -> None:
    """In-memory frames convert without a file."""
    frame = pd.DataFrame([_row(1.0, 1), _row(2.0, 2)])
    snapshots = frame_to_snapshots(frame, "Silverstone")
    assert len(snapshots) == 2
    assert snapshots[1].player.fuel.level == 56.0
