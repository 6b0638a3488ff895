# src/t0reco/io/canonicalize.py
from __future__ import annotations
from typing import Iterable, Mapping, Any

import pandas as pd

_CANON_KEYS = {
    # canonical_key: tuple of fallback source keys
    "x_cm": ("x_cm", "x", "X", "Xcm", "trk_x"),
    "y_cm": ("y_cm", "y", "Y", "Ycm", "trk_y"),
    "z_cm": ("z_cm", "z", "Z", "Zcm", "trk_z"),
    # Track / event identity
    "track_id": ("track_id", "track", "trk_id", "trackID"),
    "event_id": ("event_id", "event", "evt", "eventID"),
    # Collection label (optional)
    "producer": ("producer", "track_producer", "label"),
}

_REQUIRED = ("x_cm", "y_cm", "z_cm", "track_id")

def _first(names: Iterable[str], columns: Mapping[str, Any] | Iterable[str]):
    cols = set(columns)
    for k in names:
        if k in cols:
            return k
    return None

def canonicalize_point_table(df: pd.DataFrame) -> pd.DataFrame:
    """
    Rename the columns of a one-row-per-point table to the canonical names
    x_cm, y_cm, z_cm, track_id, event_id, producer.

    Missing event_id is filled with 0 (single-event file). Missing required
    columns raise KeyError. Columns that are not recognised are kept.
    """
    rename = {}
    for canon, candidates in _CANON_KEYS.items():
        src = _first(candidates, df.columns)
        if src is not None and src != canon:
            rename[src] = canon
    out = df.rename(columns=rename)

    missing = [k for k in _REQUIRED if k not in out.columns]
    if missing:
        raise KeyError(
            f"Point table is missing columns {missing}. Found: {sorted(map(str, df.columns))}"
        )
    if "event_id" not in out.columns:
        out["event_id"] = 0

    out = out.astype({"x_cm": "float64", "y_cm": "float64", "z_cm": "float64",
                      "track_id": "int64", "event_id": "int64"})
    return out
