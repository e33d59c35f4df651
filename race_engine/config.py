"""Configuration loader for the race strategy engine."""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path

import yaml

from race_engine.core.policy import AnalysisConfig, StrategyPolicy
from race_engine.core.track import (
    GENERIC_TRACK,
    DRSZone,
    OvertakingZone,
    TrackData,
    TrackDatabase,
)

DATA_DIR: Path = Path(__file__).resolve().parent / "data"
TRACKS_PATH: Path = DATA_DIR / "tracks.yaml"
ANALYSIS_PATH: Path = DATA_DIR / "analysis.yaml"

_REQUIRED_TRACK_FIELDS: tuple[str, ...] = (
    "name",
    "length_km",
    "pit_lane_length_km",
    "pit_speed_limit",
    "pit_entry_position",
    "pit_exit_position",
    "typical_stationary_time",
    "pit_lane_time_delta",
)

_NUMERIC_TRACK_FIELDS: tuple[str, ...] = _REQUIRED_TRACK_FIELDS[1:]  # all except name

_POLICY_FIELDS: dict[str, type] = {f.name: f.type for f in fields(StrategyPolicy)}


def _read_yaml(path: Path, label: str) -> dict:
    if not path.exists():
        raise FileNotFoundError(f"{label} file not found: {path}")
    with open(path, encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"{label} file {path} must contain a mapping")
    return data


def _parse_track(entry: dict, idx: int) -> TrackData:
    # --- Validate required fields ---
    for field in _REQUIRED_TRACK_FIELDS:
        if field not in entry:
            raise ValueError(
                f"Track entry {idx} ({entry.get('name', '<unknown>')}) "
                f"is missing required field '{field}'"
            )

    for field in _NUMERIC_TRACK_FIELDS:
        val = entry[field]
        if isinstance(val, bool) or not isinstance(val, (int, float)):
            raise ValueError(
                f"Track entry {idx} ({entry['name']}): "
                f"'{field}' must be numeric, got {type(val).__name__}"
            )

    drs_zones = tuple(
        DRSZone(name=str(z["name"]), start=float(z["start"]), end=float(z["end"]))
        for z in entry.get("drs_zones") or ()
    )
    overtaking_zones = tuple(
        OvertakingZone(
            name=str(z["name"]),
            start=float(z["start"]),
            end=float(z["end"]),
            difficulty=str(z.get("difficulty", "medium")),
        )
        for z in entry.get("overtaking_zones") or ()
    )

    # TrackData.__post_init__ checks the ranges.
    return TrackData(
        name=str(entry["name"]),
        length_km=float(entry["length_km"]),
        pit_lane_length_km=float(entry["pit_lane_length_km"]),
        pit_speed_limit=float(entry["pit_speed_limit"]),
        pit_entry_position=float(entry["pit_entry_position"]),
        pit_exit_position=float(entry["pit_exit_position"]),
        typical_stationary_time=float(entry["typical_stationary_time"]),
        pit_lane_time_delta=float(entry["pit_lane_time_delta"]),
        safety_car_sectors=tuple(int(s) for s in entry.get("safety_car_sectors") or ()),
        drs_zones=drs_zones,
        overtaking_zones=overtaking_zones,
    )


def load_tracks(path: Path | None = None) -> dict[str, TrackData]:
    """Load circuit pit-lane data from a YAML file.

    Args:
        path: Optional override for the tracks file path.

    Returns:
        Mapping of circuit name to :class:`TrackData`.  The generic
        fallback record, when present in the file, is stored under the
        ``"generic"`` key.

    Raises:
        FileNotFoundError: If the tracks file does not exist.
        ValueError: If any entry is missing fields, has non-numeric or
            out-of-range values, or a name is duplicated.
    """
    data = _read_yaml(path or TRACKS_PATH, "Tracks")

    entries: list[dict] = data.get("tracks") or []
    tracks: dict[str, TrackData] = {}
    for idx, entry in enumerate(entries):
        track = _parse_track(entry, idx)
        if track.name in tracks:
            raise ValueError(f"Duplicate track entry '{track.name}'")
        tracks[track.name] = track

    if "generic" in data:
        tracks["generic"] = _parse_track(data["generic"], len(entries))
    return tracks


def load_track_database(path: Path | None = None) -> TrackDatabase:
    """Build a :class:`TrackDatabase` from the tracks YAML file.

    Raises:
        FileNotFoundError: If the tracks file does not exist.
        ValueError: If any entry is invalid.
    """
    tracks = load_tracks(path)
    fallback = tracks.pop("generic", GENERIC_TRACK)
    return TrackDatabase(tracks, fallback=fallback)


def load_analysis_config(path: Path | None = None) -> AnalysisConfig:
    """Load analysis preferences and optional threshold overrides.

    Args:
        path: Optional override for the analysis file path.

    Returns:
        An :class:`AnalysisConfig` whose ``policy`` carries any overrides
        listed under the ``policy`` key.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: On unknown policy keys, non-numeric policy values or
            invalid preferences.
    """
    data = _read_yaml(path or ANALYSIS_PATH, "Analysis config")

    overrides: dict = data.get("policy") or {}
    policy_kwargs: dict[str, float | int] = {}
    for key, val in overrides.items():
        if key not in _POLICY_FIELDS:
            raise ValueError(f"Unknown policy field '{key}'")
        if isinstance(val, bool) or not isinstance(val, (int, float)):
            raise ValueError(
                f"Policy field '{key}' must be numeric, got {type(val).__name__}"
            )
        # Integer thresholds stay integers.
        policy_kwargs[key] = int(val) if _POLICY_FIELDS[key] == "int" else float(val)

    include = data.get("include_opponent_data", True)
    if not isinstance(include, bool):
        raise ValueError("include_opponent_data must be true or false")

    return AnalysisConfig(
        race_format=str(data.get("race_format", "auto")),
        safety_margin=float(data.get("safety_margin", 1.1)),
        include_opponent_data=include,
        policy=StrategyPolicy(**policy_kwargs),
    )
