# src/t0reco/physics/t0.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Union
import math

from t0reco.errors import ConfigurationError
from .planes import PiercedPlane


@dataclass(frozen=True)
class Accepted:
    """Track passed the boundary checks; plane and entry drift coordinate [cm]."""
    plane: PiercedPlane
    crossing_x: float


@dataclass(frozen=True)
class Rejected:
    """Track failed the geometric acceptance."""


ClassificationResult = Union[Accepted, Rejected]


@dataclass(frozen=True)
class T0:
    """
    Reconstructed track time w.r.t. the trigger.

    time: T0 [us] (drift velocity in cm/us)
    trigger_type / trigger_bits: kept for the T0 data-product layout; the
        anode/cathode piercing method always writes 0 unless configured.
    track_id: id of the source track (the association key)
    """
    time: float
    trigger_type: int = 0
    trigger_bits: int = 0
    track_id: int = -1


def t0_from_crossing(
    plane: PiercedPlane,
    crossing_x: float,
    det_width: float,
    drift_velocity: float,
) -> float:
    """
    Convert the entry drift coordinate into a time offset.

    A track crossing the anode at the trigger time sits at x=0; any offset
    from the anode (or from the cathode at x=det_width) is drift time that
    elapsed between the trigger and the track.
    """
    if not (drift_velocity > 0 and math.isfinite(drift_velocity)):
        raise ConfigurationError(f"drift_velocity must be finite and > 0, got {drift_velocity}")
    if plane is PiercedPlane.ANODE:
        return crossing_x / drift_velocity
    return (crossing_x - det_width) / drift_velocity
