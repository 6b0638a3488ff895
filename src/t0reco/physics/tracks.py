# src/t0reco/physics/tracks.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List

import numpy as np

from t0reco.errors import MalformedTrack


def _frozen_points(points) -> np.ndarray:
    arr = np.array(points, dtype=np.float64)  # always a copy
    if arr.size == 0:
        arr = arr.reshape(0, 3)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise ValueError(f"Track points must have shape (N, 3), got {arr.shape}")
    arr.setflags(write=False)
    return arr


@dataclass(slots=True)
class Track:
    """
    Reconstructed 3D track (physics layer).

    points: (N, 3) trajectory points [cm], columns (x, y, z) with
            x = drift coordinate, y = vertical, z = beam direction
    track_id: identity of the track within its producer collection
    meta: source bookkeeping (file, producer, event, ...)

    Points arrive in whatever direction the tracker produced them; use
    .ordered() for the top-first SortedTrack.
    """
    points: np.ndarray
    track_id: int = -1
    meta: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.points = _frozen_points(self.points)
        self.track_id = int(self.track_id)

    @property
    def n_points(self) -> int:
        return int(self.points.shape[0])

    def ordered(self) -> "SortedTrack":
        return sort_track_points(self)


@dataclass(frozen=True, slots=True)
class SortedTrack:
    """
    Track points ordered from the highest to the lowest point in Y.
    """
    points: np.ndarray
    track_id: int = -1

    @property
    def top(self) -> np.ndarray:
        return self.points[0]

    @property
    def bottom(self) -> np.ndarray:
        return self.points[-1]

    def is_y_ordered(self) -> bool:
        return bool(self.top[1] >= self.bottom[1])


def sort_track_points(track: Track) -> SortedTrack:
    """
    Return the track with its first point at the top.

    Only the end points decide the direction: the sequence is kept if the
    first point is higher than the last one and reversed otherwise. Points
    are not sorted individually, so a track that is not monotonic in Y keeps
    its internal wiggles (and may end up with an interior point above the
    "top" one).
    """
    pts = track.points
    if pts.shape[0] == 0:
        raise MalformedTrack(f"Track {track.track_id} has no trajectory points", track.track_id)

    if pts[0, 1] > pts[-1, 1]:
        out = pts.copy()
    else:
        out = pts[::-1].copy()
    out.setflags(write=False)
    return SortedTrack(points=out, track_id=track.track_id)


@dataclass(slots=True)
class TrackEvent:
    """
    One batch of tracks from a single producer collection (one detector
    readout). T0s are reconstructed and written per TrackEvent.
    """
    event_id: int
    tracks: List[Track]
    meta: Dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.tracks)
