from __future__ import annotations

import math
import os
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np
import typer
from tqdm import tqdm

from t0reco.config.load import load_config
from t0reco.config.schemas import Config
from t0reco.errors import ConfigurationError, MalformedTrack
from t0reco.filters.boundary import BoundaryDiagnostics, is_usable
from t0reco.geometry.bounds import DetectorBounds, DetectorGeometry
from t0reco.io.adapters import make_adapter
from t0reco.io.t0_store import write_init, write_t0s, write_diagnostics
from t0reco.physics.planes import pierced_plane, crossing_drift_coord
from t0reco.physics.t0 import T0, Accepted, Rejected, ClassificationResult, t0_from_crossing
from t0reco.physics.tracks import Track, TrackEvent
from t0reco.vis.hdf import save_t0_histogram_png


@dataclass(frozen=True)
class T0Reconstructor:
    """
    Anode/cathode piercing T0 for single tracks.

    Holds only read-only run configuration, so one instance can be shared
    by (or pickled to) any number of workers.
    """
    bounds: DetectorBounds
    drift_velocity: float  # cm/us
    trigger_type: int = 0

    def __post_init__(self):
        if not (self.drift_velocity > 0 and math.isfinite(self.drift_velocity)):
            raise ConfigurationError(f"drift_velocity must be finite and > 0, got {self.drift_velocity}")

    @classmethod
    def from_cfg(cls, cfg: Config) -> "T0Reconstructor":
        geom = DetectorGeometry.from_cfg(cfg.geometry)
        bounds = DetectorBounds.from_geometry(geom, cfg.t0.resolution)
        return cls(bounds=bounds, drift_velocity=cfg.t0.drift_velocity, trigger_type=cfg.t0.trigger_type)

    def classify(self, track: Track, diag: BoundaryDiagnostics | None = None) -> ClassificationResult:
        """
        Order the track, apply the boundary checks and find the pierced plane.

        Raises MalformedTrack for tracks without points or with top and
        bottom at the same drift coordinate.
        """
        sorted_trk = track.ordered()
        if not is_usable(sorted_trk, self.bounds, diag):
            return Rejected()
        plane = pierced_plane(sorted_trk)
        return Accepted(plane=plane, crossing_x=crossing_drift_coord(sorted_trk))

    def t0_for(self, result: Accepted) -> float:
        return t0_from_crossing(result.plane, result.crossing_x, self.bounds.width, self.drift_velocity)

    def process_track(self, track: Track, diag: BoundaryDiagnostics | None = None) -> Optional[T0]:
        """T0 for an accepted track, None for a rejected one."""
        result = self.classify(track, diag)
        if isinstance(result, Rejected):
            return None
        return T0(time=self.t0_for(result), trigger_type=self.trigger_type, track_id=track.track_id)


class T0Batch(NamedTuple):
    t0s: List[T0]
    assns: np.ndarray  # (M, 2) int64: (track_index in batch, t0_index)
    diagnostics: BoundaryDiagnostics


# (track index, T0 or None, malformed message or None)
_Outcome = Tuple[int, Optional[T0], Optional[str]]

# ----------------- worker & reducer -----------------

def _process_chunk(
    reco: T0Reconstructor,
    tracks: Iterable[Track],
    offset: int,
) -> Tuple[List[_Outcome], BoundaryDiagnostics]:
    """Worker: per-track outcomes for one contiguous chunk, in input order."""
    diag = BoundaryDiagnostics()
    out: List[_Outcome] = []
    for k, trk in enumerate(tracks):
        diag.total_tracks += 1
        try:
            t0 = reco.process_track(trk, diag)
        except MalformedTrack as exc:
            diag.malformed += 1
            diag.inc("malformed")
            out.append((offset + k, None, str(exc)))
            continue
        if t0 is not None:
            diag.accepted += 1
        out.append((offset + k, t0, None))
    return out, diag


def _auto_chunk_size(n_tracks: int, workers: int) -> int:
    # a few chunks per worker keeps the pool busy without flooding it
    return max(64, math.ceil(n_tracks / max(1, 4 * workers)))


def _resolve_workers(workers: Union[int, str]) -> int:
    if workers == "auto":
        return max(1, os.cpu_count() or 1)
    if isinstance(workers, int):
        return max(0, workers)
    raise ValueError("workers must be int or 'auto'")


# ----------------- public API -----------------

def reconstruct_t0s(
    tracks: Sequence[Track],
    reco: T0Reconstructor,
    *,
    workers: Union[int, str] = 0,
    chunk_tracks: Union[int, str] = "auto",
    progress: bool = False,
    diagnostics_level: int = 1,
    min_parallel_tracks: int = 1000,
) -> T0Batch:
    """
    Reconstruct T0s for one batch of tracks.

    Tracks are independent; with workers > 0 and enough tracks they are fanned
    out over a process pool in contiguous chunks. Chunks are reduced in
    submission order, so T0s and associations always follow the input order
    of the tracks. Malformed tracks are reported and skipped.
    """
    tracks = list(tracks)
    N = len(tracks)
    n_workers = _resolve_workers(workers)

    if n_workers == 0 or N < min_parallel_tracks:
        it = tqdm(tracks, desc="T0", unit="track") if progress else tracks
        outcomes, diag = _process_chunk(reco, it, 0)
    else:
        if chunk_tracks == "auto":
            chunk = _auto_chunk_size(N, n_workers)
        else:
            chunk = max(1, int(chunk_tracks))
        starts = range(0, N, chunk)
        pbar = tqdm(total=len(starts), desc=f"T0 x{n_workers}", unit="chunk") if progress else None

        outcomes = []
        diag = BoundaryDiagnostics()
        with ProcessPoolExecutor(max_workers=n_workers) as ex:
            futs = [ex.submit(_process_chunk, reco, tracks[s:s + chunk], s) for s in starts]
            for fut in futs:
                part, part_diag = fut.result()
                outcomes.extend(part)
                diag.merge(part_diag)
                if pbar:
                    pbar.update(1)
        if pbar:
            pbar.close()

    t0s: List[T0] = []
    rows: List[Tuple[int, int]] = []
    n_reported = 0
    for idx, t0, malformed in outcomes:
        if malformed is not None:
            if diagnostics_level >= 2 or (diagnostics_level >= 1 and n_reported < 5):
                print(f"[t0] Skipping malformed track {tracks[idx].track_id}: {malformed}")
                n_reported += 1
            continue
        if t0 is None:
            continue
        rows.append((idx, len(t0s)))
        t0s.append(t0)

    assns = np.asarray(rows, dtype=np.int64).reshape(-1, 2)
    return T0Batch(t0s=t0s, assns=assns, diagnostics=diag)


def run_pipeline(
    cfg_path: str,
    *,
    workers: Optional[Union[int, str]] = None,
    diagnostics_level: Optional[int] = None,
) -> Path:
    """
    Reconstruct T0s for every event of the configured track collection.

    CLI flags (--workers/--diagnostics-level) override the corresponding
    [run] fields when not None.

    Parameters
    ----------
    cfg_path : str
        Path to TOML configuration file.

    Returns
    -------
    Path to written HDF5 file.

    Raises
    ------
    ConfigurationError
        Invalid configuration or detector bounds; nothing is read or written.
    InputUnavailable
        Track collection missing or unreadable; no output file is created.
    """
    cfg = load_config(cfg_path)

    # ---- apply CLI overrides on top of TOML ----
    if workers is not None:
        cfg.run.workers = workers
    if diagnostics_level is not None:
        if diagnostics_level not in (0, 1, 2):
            raise ConfigurationError("diagnostics_level must be 0, 1, or 2")
        cfg.run.diagnostics_level = diagnostics_level

    diag_level = cfg.run.diagnostics_level

    reco = T0Reconstructor.from_cfg(cfg)
    if diag_level >= 1:
        b = reco.bounds
        print(f"[run] config = {cfg_path}")
        print(f"[run] producer={cfg.t0.track_producer} v_drift={reco.drift_velocity} cm/us "
              f"resolution={cfg.t0.resolution} cm")
        print(f"[run] bounds top={b.top} bottom={b.bottom} front={b.front} back={b.back} width={b.width}")
        print(f"[run] input={cfg.io.input_path} -> output={cfg.io.output_path}")

    # Events (read fully before any output exists)
    adapter = make_adapter(cfg.io)
    events: List[TrackEvent] = list(adapter.iter_events(str(cfg.io.input_path), cfg.t0.track_producer))
    if diag_level >= 1:
        print(f"[pipeline] Got {len(events)} events, {sum(len(ev) for ev in events)} tracks")

    all_t0s: List[T0] = []
    t0_event_ids: List[int] = []
    assn_rows: List[Tuple[int, int, int]] = []
    total = BoundaryDiagnostics()
    for ev in events:
        batch = reconstruct_t0s(
            ev.tracks,
            reco,
            workers=cfg.run.workers,
            chunk_tracks=cfg.run.chunk_tracks,
            progress=cfg.run.progress,
            diagnostics_level=diag_level,
        )
        total.merge(batch.diagnostics)
        for track_idx, t0_idx in batch.assns:
            assn_rows.append((ev.event_id, ev.tracks[int(track_idx)].track_id, len(all_t0s)))
            all_t0s.append(batch.t0s[int(t0_idx)])
            t0_event_ids.append(ev.event_id)
        if diag_level >= 2:
            print(f"[pipeline] event {ev.event_id}: {batch.diagnostics.summary()}")

    if diag_level >= 1:
        print(f"[pipeline] {total.summary()}")

    # HDF5 output
    out_path = Path(cfg.io.output_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    f = write_init(str(out_path), cfg_path, cfg, reco.bounds)
    try:
        write_t0s(f, all_t0s, t0_event_ids, np.asarray(assn_rows, dtype=np.int64).reshape(-1, 3))
        write_diagnostics(f, total, len(events))
    finally:
        f.close()

    # Optional PNG export
    if cfg.vis.export_png_on_write:
        try:
            out_png = save_t0_histogram_png(str(out_path), bins=cfg.vis.bins)
            if diag_level >= 1:
                print(f"[pipeline] Wrote PNG {out_png}")
        except (OSError, ValueError) as e:
            if diag_level >= 1:
                print(f"[pipeline] PNG export failed: {e!r}")

    return out_path


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

app = typer.Typer(help="Anode/cathode piercing T0 reconstruction (t0reco.pipelines.core)")


def _parse_workers(value: Optional[str]) -> Optional[Union[int, str]]:
    if value is None or value == "auto":
        return value
    try:
        n = int(value)
    except ValueError:
        raise typer.BadParameter("workers must be an integer or 'auto'")
    if n < 0:
        raise typer.BadParameter("workers must be >= 0")
    return n


@app.command()
def main(
    cfg_path: str = typer.Argument(
        ...,
        help="Path to TOML config file",
    ),
    workers: Optional[str] = typer.Option(
        None,
        "--workers",
        "-j",
        help="Override [run].workers (integer or 'auto'; 0 = single process)",
    ),
    diagnostics_level: Optional[int] = typer.Option(
        None,
        "--diagnostics-level",
        "-v",
        help="Override [run].diagnostics_level (0, 1 or 2)",
    ),
):
    """
    Reconstruct T0s for one config and print the output path.
    """
    out_path = run_pipeline(
        cfg_path,
        workers=_parse_workers(workers),
        diagnostics_level=diagnostics_level,
    )
    typer.echo(str(out_path))


if __name__ == "__main__":
    app()
