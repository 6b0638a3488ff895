# src/t0reco/cli/synth.py
'''
Write a synthetic track file (HDF5 ragged layout) with anode/cathode
piercing tracks of known T0, for smoke-testing the pipeline end to end.
'''
from __future__ import annotations
from pathlib import Path
from typing import Optional

import h5py
import numpy as np
import typer

from t0reco.config.load import load_config
from t0reco.pipelines.core import T0Reconstructor
from t0reco.io.t0_store import write_tracks_ragged
from t0reco.physics.planes import PiercedPlane
from t0reco.sim.synth import synth_track_events

app = typer.Typer(help="Synthetic anode/cathode piercing tracks")


@app.command()
def main(
    cfg_path: str = typer.Argument(..., help="TOML config (geometry, [t0] and [io].input_path are used)"),
    n_events: int = typer.Option(10, "--events", "-n", help="Number of events"),
    tracks_per_event: int = typer.Option(20, "--tracks", "-t", help="Tracks per event"),
    seed: int = typer.Option(0, "--seed", help="RNG seed"),
    out: Optional[str] = typer.Option(None, "--out", "-o", help="Output HDF5 (defaults to [io].input_path)"),
):
    """
    Generate tracks with the configured geometry and drift velocity and store
    them under /tracks/<track_producer>, together with their true T0s.
    """
    cfg = load_config(cfg_path)
    reco = T0Reconstructor.from_cfg(cfg)
    rng = np.random.default_rng(seed)

    events, truth = synth_track_events(n_events, tracks_per_event, reco.bounds, reco.drift_velocity, rng=rng)

    out_path = Path(out or cfg.io.input_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with h5py.File(out_path, "w") as f:
        write_tracks_ragged(f, events, cfg.t0.track_producer)
        g = f.require_group("truth")
        g.create_dataset("t0_us", data=np.array([s.true_t0 for ev in truth for s in ev], dtype=np.float64))
        g.create_dataset("anode", data=np.array([s.plane is PiercedPlane.ANODE for ev in truth for s in ev], dtype=bool))

    typer.echo(f"[synth] Wrote {sum(len(ev) for ev in events)} tracks in {len(events)} events to {out_path}")


if __name__ == "__main__":
    app()
