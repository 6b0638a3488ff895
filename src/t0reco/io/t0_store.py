from __future__ import annotations
from typing import Dict, Sequence
import h5py
import numpy as np
from datetime import datetime, timezone
from t0reco.config.schemas import Config
from t0reco.config.load import snapshot_config_toml
from t0reco.filters.boundary import BoundaryDiagnostics
from t0reco.geometry.bounds import DetectorBounds
from t0reco.physics.t0 import T0
from t0reco.physics.tracks import Track, TrackEvent

FORMAT_VERSION = "1.0"


def write_init(path: str, cfg_path: str, cfg: Config, bounds: DetectorBounds) -> h5py.File:
    f = h5py.File(path, "w")
    # Root attrs
    f.attrs["format_version"] = FORMAT_VERSION
    f.attrs["created_utc"] = datetime.now(timezone.utc).isoformat()
    f.attrs["software"] = "t0reco 0.1.0"
    f.attrs["config_text"] = snapshot_config_toml(cfg_path)

    # /meta
    meta = f.create_group("meta")
    for k, v in bounds.as_attrs().items():
        meta.attrs[k] = v
    meta.attrs["t0.track_producer"] = cfg.t0.track_producer
    meta.attrs["t0.resolution_cm"] = cfg.t0.resolution
    meta.attrs["t0.drift_velocity_cm_per_us"] = cfg.t0.drift_velocity
    return f


def _replace_or_create(grp: h5py.Group, name: str, data: np.ndarray) -> None:
    if name in grp:
        del grp[name]
    data = np.asarray(data)
    # zero-length datasets can't be chunked
    grp.create_dataset(name, data=data, compression="gzip" if data.size else None)


def write_t0s(
    f: h5py.File,
    t0s: Sequence[T0],
    t0_event_ids: Sequence[int],
    assns: np.ndarray,
) -> None:
    """
    Store reconstructed T0s and their track associations.

    Layout:

    /t0/time_us        (N,) float64
    /t0/trigger_type   (N,) int32
    /t0/trigger_bits   (N,) int32
    /t0/event_id       (N,) int64

    /assns/event_id    (N,) int64
    /assns/track_id    (N,) int64    id of the source track
    /assns/t0_index    (N,) int64    row in /t0

    Rejected tracks have no row (sparse association).
    """
    n = len(t0s)
    assns = np.asarray(assns, dtype=np.int64).reshape(-1, 3)
    if assns.shape[0] != n or len(t0_event_ids) != n:
        raise ValueError(f"T0/association length mismatch: {n} T0s, {assns.shape[0]} assns")

    grp = f.require_group("t0")
    _replace_or_create(grp, "time_us", np.array([t.time for t in t0s], dtype=np.float64))
    _replace_or_create(grp, "trigger_type", np.array([t.trigger_type for t in t0s], dtype=np.int32))
    _replace_or_create(grp, "trigger_bits", np.array([t.trigger_bits for t in t0s], dtype=np.int32))
    _replace_or_create(grp, "event_id", np.asarray(t0_event_ids, dtype=np.int64))

    agrp = f.require_group("assns")
    _replace_or_create(agrp, "event_id", assns[:, 0])
    _replace_or_create(agrp, "track_id", assns[:, 1])
    _replace_or_create(agrp, "t0_index", assns[:, 2])


def write_diagnostics(f: h5py.File, diag: BoundaryDiagnostics, n_events: int) -> None:
    grp = f.require_group("diagnostics")
    grp.attrs["n_events"] = n_events
    grp.attrs["total_tracks"] = diag.total_tracks
    grp.attrs["accepted"] = diag.accepted
    grp.attrs["rejected_exit_bottom"] = diag.rejected_exit_bottom
    grp.attrs["rejected_enters_side"] = diag.rejected_enters_side
    grp.attrs["malformed"] = diag.malformed


def read_t0s(path: str) -> Dict[str, np.ndarray]:
    path = str(path)
    with h5py.File(path, "r") as f:
        if "t0" not in f or "assns" not in f:
            raise KeyError(f"/t0 or /assns not found in {path}")
        out = {f"t0/{k}": np.array(v) for k, v in f["t0"].items()}
        out.update({f"assns/{k}": np.array(v) for k, v in f["assns"].items()})
    return out


def _flatten_tracks_for_ragged(tracks: Sequence[Track]):
    """
    Convert variable-length tracks into CSR pointers plus flat point columns.

    Returns:
      track_ptr: (N_tracks+1,) int64 pointers into the flat point arrays
      xyz: (M, 3) float64 (M = total points)
    """
    ptr = np.zeros(len(tracks) + 1, dtype=np.int64)
    for i, trk in enumerate(tracks):
        ptr[i + 1] = ptr[i] + trk.n_points
    if tracks:
        xyz = np.concatenate([trk.points for trk in tracks], axis=0)
    else:
        xyz = np.zeros((0, 3), dtype=np.float64)
    return ptr, xyz


def write_tracks_ragged(h5: h5py.File, events: Sequence[TrackEvent], producer: str) -> None:
    """
    Write tracks in the ragged layout read by io.adapters.HDF5TrackAdapter:

    /tracks/<producer>/{track_ptr, x_cm, y_cm, z_cm, track_id, event_id}
    """
    tracks = [trk for ev in events for trk in ev.tracks]
    event_ids = np.array([ev.event_id for ev in events for _ in ev.tracks], dtype=np.int64)
    track_ids = np.array([trk.track_id for trk in tracks], dtype=np.int64)
    ptr, xyz = _flatten_tracks_for_ragged(tracks)

    g = h5.require_group(f"tracks/{producer}")
    _replace_or_create(g, "track_ptr", ptr)
    _replace_or_create(g, "x_cm", xyz[:, 0])
    _replace_or_create(g, "y_cm", xyz[:, 1])
    _replace_or_create(g, "z_cm", xyz[:, 2])
    _replace_or_create(g, "track_id", track_ids)
    _replace_or_create(g, "event_id", event_ids)
