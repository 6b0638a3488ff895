# src/t0reco/filters/boundary.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict

from t0reco.geometry.bounds import DetectorBounds
from t0reco.physics.tracks import SortedTrack


@dataclass
class BoundaryDiagnostics:
    total_tracks: int = 0
    accepted: int = 0
    rejected_exit_bottom: int = 0
    rejected_enters_side: int = 0
    malformed: int = 0
    reasons: Dict[str, int] = field(default_factory=dict)

    def inc(self, reason: str) -> None:
        self.reasons[reason] = self.reasons.get(reason, 0) + 1

    @property
    def rejected(self) -> int:
        return self.rejected_exit_bottom + self.rejected_enters_side

    def merge(self, other: "BoundaryDiagnostics") -> None:
        self.total_tracks += other.total_tracks
        self.accepted += other.accepted
        self.rejected_exit_bottom += other.rejected_exit_bottom
        self.rejected_enters_side += other.rejected_enters_side
        self.malformed += other.malformed
        for k, v in other.reasons.items():
            self.reasons[k] = self.reasons.get(k, 0) + v

    def summary(self) -> str:
        return (f"tracks={self.total_tracks} accepted={self.accepted} "
                f"rejected(exit_bottom={self.rejected_exit_bottom}, "
                f"enters_side={self.rejected_enters_side}) malformed={self.malformed}")


def track_exits_bottom(sorted_trk: SortedTrack, bounds: DetectorBounds) -> bool:
    """
    True if the lowest point lies below the bottom boundary, i.e. the track
    was reconstructed all the way out of the active volume.
    """
    return bool(sorted_trk.bottom[1] < bounds.bottom)


def track_enters_side(sorted_trk: SortedTrack, bounds: DetectorBounds) -> bool:
    """
    True if the highest point is neither above the top boundary nor at/beyond
    the front or back boundary, so the track can only have come in through
    the anode or the cathode.
    """
    top = sorted_trk.top
    if top[1] > bounds.top:
        return False
    if not (bounds.front < top[2] < bounds.back):
        return False
    return True


def is_usable(sorted_trk: SortedTrack, bounds: DetectorBounds,
              diag: BoundaryDiagnostics | None = None) -> bool:
    if not track_exits_bottom(sorted_trk, bounds):
        if diag is not None:
            diag.rejected_exit_bottom += 1
            diag.inc("no_bottom_exit")
        return False
    if not track_enters_side(sorted_trk, bounds):
        if diag is not None:
            diag.rejected_enters_side += 1
            diag.inc("not_side_entering")
        return False
    return True
