"""Input/output helpers for JSON inputs and tabular histogram export."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable

from .config import AnalysisConfig
from .exceptions import InputContractError
from .histograms import HistogramRegistry
from .models import ChargedCandidate, Collision, CompositeCandidate, EventInput

logger = logging.getLogger(__name__)

_COLLISION_FIELDS: dict[str, Callable[[Any], Any]] = {
    "collision_id": int,
    "pos_x": float,
    "pos_y": float,
    "pos_z": float,
    "sel8": bool,
    "mult_ft0a": float,
    "mult_ft0c": float,
    "cent_ft0c": float,
    "cent_ft0m": float,
    "num_contrib": int,
}
_COLLISION_REQUIRED = ("pos_z", "sel8")

_TRACK_FIELDS: dict[str, Callable[[Any], Any]] = {
    "track_id": int,
    "collision_id": int,
    "pt": float,
    "eta": float,
    "phi": float,
    "sign": int,
    "is_global_track": bool,
    "is_global_track_wo_dca": bool,
    "is_pv_contributor": bool,
    "its_n_cls": int,
    "has_tpc": bool,
    "has_tof": bool,
    "tpc_n_cls_found": int,
    "tpc_n_cls_crossed_rows": int,
    "tpc_crossed_rows_over_findable_cls": float,
    "dca_xy": float,
    "dca_z": float,
    "tpc_n_sigma_pi": float,
    "tof_n_sigma_pi": float,
}
_TRACK_REQUIRED = ("track_id", "pt", "eta", "phi", "sign")

_V0_FIELDS: dict[str, Callable[[Any], Any]] = {
    "v0_id": int,
    "collision_id": int,
    "pt": float,
    "eta": float,
    "phi": float,
    "mass": float,
    "rapidity": float,
    "pos_track_id": int,
    "neg_track_id": int,
    "px": float,
    "py": float,
    "pz": float,
    "x": float,
    "y": float,
    "z": float,
    "dca_v0_to_pv": float,
    "dca_v0_daughters": float,
    "v0_cos_pa": float,
    "v0_radius": float,
    "qt_arm": float,
    "alpha": float,
}
_V0_REQUIRED = ("v0_id", "pt", "eta", "phi", "mass", "rapidity", "pos_track_id", "neg_track_id")

_TABLE_FORMATS = ("parquet", "csv", "pkl")


def load_events_json(path: str | Path) -> list[EventInput]:
    """Load multi-collision input JSON into `EventInput` objects.

    Expected shape:
    {
      "events": [
        {"collision": {...}, "tracks": [...], "v0s": [...]},
        ...
      ]
    }
    Tracks and V0s without an explicit `collision_id` inherit their event's.
    """
    data = _load_json(path)
    events_data = data.get("events")
    if not isinstance(events_data, list):
        raise InputContractError(f"Events JSON {path} must contain a list under key 'events'.")
    out = [parse_event(event, idx) for idx, event in enumerate(events_data)]
    logger.info("Loaded %d collisions from %s", len(out), path)
    return out


def parse_event(item: Any, idx: int) -> EventInput:
    """Parse one event object (collision plus its tracks and V0s).

    A collision without `pos_x`/`pos_y` is placed on the beam axis.
    """
    if not isinstance(item, dict):
        raise InputContractError(f"Event entry at index {idx} must be an object.")
    collision_data = item.get("collision")
    if not isinstance(collision_data, dict):
        raise InputContractError(f"Event at index {idx} must contain a 'collision' object.")
    collision_data = {"collision_id": idx, "pos_x": 0.0, "pos_y": 0.0, **collision_data}
    collision = _build(
        Collision,
        _parse_record(collision_data, _COLLISION_FIELDS, _COLLISION_REQUIRED, f"collision of event {idx}"),
        f"collision of event {idx}",
    )
    context = f"collision {collision.collision_id}"
    tracks = []
    for tidx, t in enumerate(_require_list(item, "tracks", context)):
        where = f"track {tidx} of {context}"
        record = _parse_record(
            {"collision_id": collision.collision_id, **_require_object(t, tidx, "Track", context)},
            _TRACK_FIELDS,
            _TRACK_REQUIRED,
            where,
        )
        tracks.append(_build(ChargedCandidate, record, where))
    v0s = []
    for vidx, v in enumerate(_require_list(item, "v0s", context)):
        where = f"V0 {vidx} of {context}"
        record = _parse_record(
            {"collision_id": collision.collision_id, **_require_object(v, vidx, "V0", context)},
            _V0_FIELDS,
            _V0_REQUIRED,
            where,
        )
        v0s.append(_build(CompositeCandidate, record, where))
    _check_unique([t.track_id for t in tracks], "track_id", context)
    _check_unique([v.v0_id for v in v0s], "v0_id", context)
    return EventInput(collision=collision, tracks=tuple(tracks), v0s=tuple(v0s))


def load_config_json(path: str | Path) -> AnalysisConfig:
    """Load an `AnalysisConfig` from a nested JSON object."""
    return AnalysisConfig.from_dict(_load_json(path))


def write_histograms(
    out_dir: str | Path,
    registry: HistogramRegistry,
    fmt: str = "parquet",
    include_empty: bool = False,
) -> list[Path]:
    """Write each histogram as a Parquet/CSV/Pickle table of non-empty cells.

    Returns the written paths.
    """
    fmt = fmt.lower().lstrip(".")
    if fmt not in _TABLE_FORMATS:
        raise ValueError(f"Unsupported output format '{fmt}'. Use parquet, csv, or pkl")
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for hist in registry:
        if not include_empty and hist.entries == 0.0:
            continue
        df = hist.to_frame()
        path = out / f"{hist.name}.{fmt}"
        if fmt == "parquet":
            df.to_parquet(path, index=False)
        elif fmt == "pkl":
            df.to_pickle(path)
        else:
            df.to_csv(path, index=False)
        written.append(path)
        logger.debug("Wrote %s (%d cells)", path, len(df))
    return written


def _parse_record(
    item: dict[str, Any],
    schema: dict[str, Callable[[Any], Any]],
    required: tuple[str, ...],
    context: str,
) -> dict[str, Any]:
    """Coerce known keys of a record; unknown keys are ignored."""
    missing = [k for k in required if k not in item]
    if missing:
        raise InputContractError(f"Missing field(s) {', '.join(missing)} in {context}.")
    out: dict[str, Any] = {}
    for key, convert in schema.items():
        if key not in item:
            continue
        try:
            out[key] = convert(item[key])
        except (TypeError, ValueError) as exc:
            raise InputContractError(f"Invalid value for '{key}' in {context}: {item[key]!r}") from exc
    return out


def _build(record_type, record: dict[str, Any], context: str):
    """Construct one input record, reporting constructor failures as input errors."""
    try:
        return record_type(**record)
    except (TypeError, ValueError) as exc:
        raise InputContractError(f"Invalid {context}: {exc}") from exc


def _require_list(item: dict[str, Any], key: str, context: str) -> list[Any]:
    value = item.get(key, [])
    if not isinstance(value, list):
        raise InputContractError(f"Field '{key}' of {context} must be a list.")
    return value


def _require_object(value: Any, idx: int, kind: str, context: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise InputContractError(f"{kind} entry at index {idx} in {context} must be an object.")
    return value


def _check_unique(ids: list[int], field_name: str, context: str) -> None:
    seen: set[int] = set()
    for value in ids:
        if value in seen:
            raise InputContractError(f"Duplicate {field_name} {value} in {context}.")
        seen.add(value)


def _load_json(path: str | Path) -> dict[str, Any]:
    """Read and validate a JSON object document from disk."""
    raw = Path(path).read_text(encoding="utf-8")
    data = json.loads(raw)
    if not isinstance(data, dict):
        raise InputContractError(f"JSON document at {path} must be an object.")
    return data
