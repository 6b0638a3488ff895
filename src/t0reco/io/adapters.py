"""
t0reco.io.adapters

Readers that turn reconstructed-track files into physics-layer
TrackEvent/Track objects for the T0 pipeline.

Design goals
------------
- Keep I/O concerns isolated from the geometric T0 logic.
- Normalize units on ingest: distances -> cm.
- Select the upstream collection by its producer label; a missing or
  unreadable collection is InputUnavailable, never an empty result.
- Remain side-effect free: yield Python objects; HDF5 output is handled
  downstream.

Entry points
------------
- class HDF5TrackAdapter: ragged (CSR) track layout written by t0reco tools.
- class CSVTrackAdapter: one row per trajectory point (CSV/Parquet).
- class ROOTTrackAdapter: one tree entry per track with jagged x/y/z branches.
- function make_adapter(io_cfg): factory from the [io] TOML section.

Config (example)
----------------
[io]
input_path   = "data/run42_tracks.h5"
input_format = "hdf5"         # "hdf5" | "csv" | "root"

[io.adapter]
unit_pos_is_mm = false
"""
from __future__ import annotations
from pathlib import Path
from typing import Dict, Iterator, List, Any

import h5py
import numpy as np
import pandas as pd

from t0reco.errors import InputUnavailable
from t0reco.io.canonicalize import canonicalize_point_table
from t0reco.physics.tracks import Track, TrackEvent

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_CM_PER_MM = 0.1

TRACKS_GROUP = "tracks"

def _require_file(path: str | Path) -> Path:
    p = Path(path)
    if not p.is_file():
        raise InputUnavailable(f"Track input file not found: {p}")
    return p


def _group_into_events(tracks: List[Track], event_ids: np.ndarray, meta: Dict[str, Any]) -> Iterator[TrackEvent]:
    """Group tracks by event id, keeping first-seen event order and track order."""
    order: List[int] = []
    buckets: Dict[int, List[Track]] = {}
    for trk, ev in zip(tracks, event_ids):
        ev = int(ev)
        if ev not in buckets:
            buckets[ev] = []
            order.append(ev)
        buckets[ev].append(trk)
    for ev in order:
        yield TrackEvent(event_id=ev, tracks=buckets[ev], meta=dict(meta, event_id=ev))


# ---------------------------------------------------------------------------
# Base adapter API
# ---------------------------------------------------------------------------

class BaseTrackAdapter:
    """
    Abstract adapter interface.

    Yields TrackEvents normalized to cm, for a single producer collection.
    """

    def __init__(self, unit_pos_is_mm: bool = False) -> None:
        self.pos_scale = _CM_PER_MM if unit_pos_is_mm else 1.0

    def iter_events(self, path: str, producer: str) -> Iterator[TrackEvent]:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# HDF5 adapter
# ---------------------------------------------------------------------------

class HDF5TrackAdapter(BaseTrackAdapter):
    """
    Read tracks from the t0reco HDF5 layout:

    /tracks/<producer>/track_ptr  (N_tracks+1,) int64   CSR pointers into the flat point arrays
    /tracks/<producer>/x_cm       (M,) float            flat trajectory points
    /tracks/<producer>/y_cm       (M,) float
    /tracks/<producer>/z_cm       (M,) float
    /tracks/<producer>/track_id   (N_tracks,) int64     optional, defaults to 0..N-1
    /tracks/<producer>/event_id   (N_tracks,) int64     optional, defaults to 0
    """

    def iter_events(self, path: str, producer: str) -> Iterator[TrackEvent]:
        p = _require_file(path)
        try:
            f = h5py.File(p, "r")
        except OSError as exc:
            raise InputUnavailable(f"Could not open {p} as HDF5: {exc}") from exc

        with f:
            key = f"{TRACKS_GROUP}/{producer}"
            if key not in f:
                available = sorted(f[TRACKS_GROUP].keys()) if TRACKS_GROUP in f else []
                raise InputUnavailable(
                    f"Track collection '{producer}' not found in {p} (available: {available})"
                )
            g = f[key]
            try:
                ptr = np.asarray(g["track_ptr"][...], dtype=np.int64)
                x = np.asarray(g["x_cm"][...], dtype=np.float64) * self.pos_scale
                y = np.asarray(g["y_cm"][...], dtype=np.float64) * self.pos_scale
                z = np.asarray(g["z_cm"][...], dtype=np.float64) * self.pos_scale
            except KeyError as exc:
                raise InputUnavailable(f"Track collection '{producer}' in {p} is incomplete: {exc}") from exc

            n_tracks = len(ptr) - 1
            if n_tracks < 0 or ptr[0] != 0 or np.any(np.diff(ptr) < 0) or ptr[-1] != len(x):
                raise InputUnavailable(f"Track collection '{producer}' in {p} has an invalid track_ptr")

            track_ids = (np.asarray(g["track_id"][...], dtype=np.int64)
                         if "track_id" in g else np.arange(n_tracks, dtype=np.int64))
            event_ids = (np.asarray(g["event_id"][...], dtype=np.int64)
                         if "event_id" in g else np.zeros(n_tracks, dtype=np.int64))
            if len(track_ids) != n_tracks or len(event_ids) != n_tracks:
                raise InputUnavailable(
                    f"Track collection '{producer}' in {p}: track_id/event_id have "
                    f"{len(track_ids)}/{len(event_ids)} entries for {n_tracks} tracks"
                )

        xyz = np.stack([x, y, z], axis=1)
        meta = {"source": "HDF5", "file": str(p), "producer": producer}
        tracks = [
            Track(points=xyz[ptr[i]:ptr[i + 1]], track_id=int(track_ids[i]), meta=dict(meta))
            for i in range(n_tracks)
        ]
        yield from _group_into_events(tracks, event_ids, meta)


# ---------------------------------------------------------------------------
# Tabular adapter (CSV / Parquet)
# ---------------------------------------------------------------------------

class CSVTrackAdapter(BaseTrackAdapter):
    """
    Read one-row-per-point tables (.csv, .parquet/.pq).

    Column names are canonicalized (see io.canonicalize). If the table has a
    'producer' column only rows with the requested producer are used; a
    producer with no rows is InputUnavailable. Rows keep file order within
    a track.
    """

    def _read_table(self, p: Path) -> pd.DataFrame:
        suffix = p.suffix.lower()
        try:
            if suffix in {".parquet", ".pq"}:
                return pd.read_parquet(p)
            return pd.read_csv(p)
        except (OSError, ValueError) as exc:
            raise InputUnavailable(f"Could not read track table {p}: {exc}") from exc

    def iter_events(self, path: str, producer: str) -> Iterator[TrackEvent]:
        p = _require_file(path)
        try:
            df = canonicalize_point_table(self._read_table(p))
        except (KeyError, ValueError) as exc:
            raise InputUnavailable(f"{p}: {exc}") from exc

        if "producer" in df.columns:
            df = df[df["producer"].astype(str) == producer]
            if df.empty:
                raise InputUnavailable(f"Track collection '{producer}' not found in {p}")

        meta = {"source": "table", "file": str(p), "producer": producer}
        tracks: List[Track] = []
        event_ids: List[int] = []
        for (ev, tid), grp in df.groupby(["event_id", "track_id"], sort=False):
            pts = grp[["x_cm", "y_cm", "z_cm"]].to_numpy(dtype=np.float64) * self.pos_scale
            tracks.append(Track(points=pts, track_id=int(tid), meta=dict(meta)))
            event_ids.append(int(ev))
        yield from _group_into_events(tracks, np.asarray(event_ids, dtype=np.int64), meta)


# ---------------------------------------------------------------------------
# ROOT adapter
# ---------------------------------------------------------------------------

class ROOTTrackAdapter(BaseTrackAdapter):
    """
    Read tracks from a flat ROOT ntuple; the tree is named after the producer.

    One entry per track:
      x, y, z    jagged trajectory points (names configurable via branch_map)
      event      event number (optional, defaults to 0)
      track_id   track identity (optional, defaults to entry index)
    """

    _DEFAULT_BRANCHES = {"x": "x", "y": "y", "z": "z", "event": "event", "track_id": "track_id"}

    def __init__(self, unit_pos_is_mm: bool = False, branch_map: Dict[str, str] | None = None) -> None:
        super().__init__(unit_pos_is_mm=unit_pos_is_mm)
        self.branches = dict(self._DEFAULT_BRANCHES, **(branch_map or {}))

    def iter_events(self, path: str, producer: str) -> Iterator[TrackEvent]:
        import uproot

        p = _require_file(path)
        try:
            f = uproot.open(p)
        except Exception as exc:
            raise InputUnavailable(f"Could not open {p} as ROOT: {exc}") from exc

        with f:
            if producer not in f:
                raise InputUnavailable(
                    f"Track tree '{producer}' not found in {p} (available: {list(f.keys())})"
                )
            tree = f[producer]
            names = set(tree.keys())
            for axis in ("x", "y", "z"):
                if self.branches[axis] not in names:
                    raise InputUnavailable(f"Branch '{self.branches[axis]}' missing from {p}:{producer}")
            wanted = [b for b in self.branches.values() if b in names]
            arrays = tree.arrays(wanted, library="np")

        xs = arrays[self.branches["x"]]
        ys = arrays[self.branches["y"]]
        zs = arrays[self.branches["z"]]
        n_tracks = len(xs)
        ev_br = self.branches["event"]
        id_br = self.branches["track_id"]
        event_ids = (np.asarray(arrays[ev_br], dtype=np.int64) if ev_br in arrays
                     else np.zeros(n_tracks, dtype=np.int64))
        track_ids = (np.asarray(arrays[id_br], dtype=np.int64) if id_br in arrays
                     else np.arange(n_tracks, dtype=np.int64))

        meta = {"source": "ROOT", "file": str(p), "producer": producer}
        tracks = []
        for i in range(n_tracks):
            pts = np.column_stack([
                np.asarray(xs[i], dtype=np.float64),
                np.asarray(ys[i], dtype=np.float64),
                np.asarray(zs[i], dtype=np.float64),
            ]) * self.pos_scale
            tracks.append(Track(points=pts, track_id=int(track_ids[i]), meta=dict(meta)))
        yield from _group_into_events(tracks, event_ids, meta)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

def make_adapter(io_cfg) -> BaseTrackAdapter:
    """
    Create an adapter from the [io] config section.

    Recognized keys under [io.adapter]:
      unit_pos_is_mm: bool
      branch_map: {x=..., y=..., z=..., event=..., track_id=...}   (ROOT-only)
    """
    fmt = io_cfg.input_format.lower()
    opts = dict(io_cfg.adapter or {})
    mm = bool(opts.get("unit_pos_is_mm", False))

    if fmt == "hdf5":
        return HDF5TrackAdapter(unit_pos_is_mm=mm)
    if fmt == "csv":
        return CSVTrackAdapter(unit_pos_is_mm=mm)
    if fmt == "root":
        return ROOTTrackAdapter(unit_pos_is_mm=mm, branch_map=opts.get("branch_map"))

    raise ValueError(f"Unknown input format: {fmt}")
