from __future__ import annotations
import numpy as np
from typing import NamedTuple, List
from ..geometry.bounds import DetectorBounds
from ..physics.planes import PiercedPlane
from ..physics.tracks import Track, TrackEvent


class SynthTrack(NamedTuple):
    track: Track
    true_t0: float
    plane: PiercedPlane


def synth_piercing_tracks(
    n_tracks: int,
    bounds: DetectorBounds,
    drift_velocity: float,
    t0_range_us: tuple[float, float] = (-1000.0, 1000.0),
    n_points: int = 20,
    exit_margin_cm: float = 1.0,
    first_track_id: int = 0,
    rng: np.random.Generator | None = None,
) -> List[SynthTrack]:
    """
    Generate straight, downward-going tracks that enter through the anode
    (x=0) or the cathode (x=width) and leave below the bottom boundary.

      - entry point: on the chosen plane, y in the upper half of the active
        volume, z strictly inside the front/back boundaries
      - exit point: y = bounds.bottom - exit_margin_cm, x inside the drift volume
      - every point is shifted along x by drift_velocity * t0, which is what
        reconstructing with the trigger time as the track time does

    Half of the tracks are stored bottom-first to exercise the point orderer.
    """
    rng = rng or np.random.default_rng()
    out: List[SynthTrack] = []

    w = bounds.width
    y_lo = 0.5 * (bounds.top + bounds.bottom)
    z_pad = 0.05 * (bounds.back - bounds.front)

    for i in range(n_tracks):
        plane = PiercedPlane.ANODE if rng.uniform() < 0.5 else PiercedPlane.CATHODE
        t0 = float(rng.uniform(*t0_range_us))

        x_in = 0.0 if plane is PiercedPlane.ANODE else w
        y_in = rng.uniform(y_lo, bounds.top)
        z_in = rng.uniform(bounds.front + z_pad, bounds.back - z_pad)

        x_out = rng.uniform(0.1 * w, 0.9 * w)
        y_out = bounds.bottom - exit_margin_cm
        z_out = z_in + rng.uniform(-z_pad, z_pad)

        s = np.linspace(0.0, 1.0, max(2, n_points))[:, None]
        pts = np.array([x_in, y_in, z_in]) + s * np.array([x_out - x_in, y_out - y_in, z_out - z_in])
        pts[:, 0] += drift_velocity * t0

        if rng.uniform() < 0.5:
            pts = pts[::-1]

        trk = Track(points=pts, track_id=first_track_id + i, meta={"source": "synth"})
        out.append(SynthTrack(trk, t0, plane))

    return out


def synth_track_events(
    n_events: int,
    tracks_per_event: int,
    bounds: DetectorBounds,
    drift_velocity: float,
    rng: np.random.Generator | None = None,
    **kwargs,
) -> tuple[list[TrackEvent], list[list[SynthTrack]]]:
    """Group synthetic tracks into events; returns the events and their truth."""
    rng = rng or np.random.default_rng()
    events: list[TrackEvent] = []
    truth: list[list[SynthTrack]] = []
    for ev in range(n_events):
        st = synth_piercing_tracks(tracks_per_event, bounds, drift_velocity, rng=rng, **kwargs)
        events.append(TrackEvent(event_id=ev, tracks=[s.track for s in st]))
        truth.append(st)
    return events, truth
