from __future__ import annotations
from enum import Enum

from t0reco.errors import MalformedTrack
from .tracks import SortedTrack


class PiercedPlane(str, Enum):
    # anode at low x, cathode at x = detector width
    ANODE = "anode"
    CATHODE = "cathode"


def pierced_plane(sorted_trk: SortedTrack) -> PiercedPlane:
    """
    Which drift-region face the track came in through.

    The track already passed the boundary checks, so it entered through the
    anode or the cathode. Coming in through the anode it moves away from
    x=0 on the way down (top.x < bottom.x); through the cathode it moves
    towards lower x.
    """
    top_x = float(sorted_trk.top[0])
    bottom_x = float(sorted_trk.bottom[0])
    if top_x < bottom_x:
        return PiercedPlane.ANODE
    if top_x > bottom_x:
        return PiercedPlane.CATHODE
    raise MalformedTrack(
        f"Track {sorted_trk.track_id}: top and bottom share x={top_x}; "
        f"cannot tell anode from cathode",
        sorted_trk.track_id,
    )


def crossing_drift_coord(sorted_trk: SortedTrack) -> float:
    """Drift coordinate where the track pierces the anode/cathode: x of the entry (top) point."""
    return float(sorted_trk.top[0])
