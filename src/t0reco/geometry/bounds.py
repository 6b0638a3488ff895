from __future__ import annotations
from dataclasses import dataclass
import math

from t0reco.errors import ConfigurationError

# Nominal TPC dimensions [cm]: (half_height, half_width, length)
GEOMETRY_PRESETS = {
    "microboone": (116.5, 128.175, 1036.8),
}

@dataclass(frozen=True)
class DetectorGeometry:
    """
    Raw TPC dimensions [cm] supplied by the geometry service.

    Y is vertical and centred on 0, X is the drift coordinate starting at the
    anode (x=0), Z runs along the beam starting at the upstream face (z=0).
    """
    half_height: float
    half_width: float
    length: float

    @classmethod
    def from_cfg(cls, geom_cfg) -> "DetectorGeometry":
        hh = hw = length = None
        if geom_cfg.preset is not None:
            hh, hw, length = GEOMETRY_PRESETS[geom_cfg.preset]
        # explicit values override individual preset dimensions
        if geom_cfg.half_height is not None:
            hh = geom_cfg.half_height
        if geom_cfg.half_width is not None:
            hw = geom_cfg.half_width
        if geom_cfg.length is not None:
            length = geom_cfg.length
        return cls(float(hh), float(hw), float(length))


@dataclass(frozen=True)
class DetectorBounds:
    """
    Acceptance boundaries [cm], computed once per run.

    top/bottom and front/back are inset from the physical faces by the
    resolution margin; width is the full drift length.
    """
    top: float
    bottom: float
    front: float
    back: float
    width: float

    def __post_init__(self):
        vals = (self.top, self.bottom, self.front, self.back, self.width)
        if not all(math.isfinite(v) for v in vals):
            raise ConfigurationError(f"Detector bounds must be finite: {vals}")
        if not self.top > self.bottom:
            raise ConfigurationError(
                f"Detector bounds need top > bottom (top={self.top}, bottom={self.bottom}); "
                f"is the resolution larger than the half height?"
            )
        if not self.back > self.front:
            raise ConfigurationError(
                f"Detector bounds need back > front (front={self.front}, back={self.back})"
            )
        if not self.width > 0:
            raise ConfigurationError(f"Detector drift width must be > 0, got {self.width}")

    @classmethod
    def from_geometry(cls, geom: DetectorGeometry, resolution: float) -> "DetectorBounds":
        if not (resolution >= 0 and math.isfinite(resolution)):
            raise ConfigurationError(f"resolution must be finite and >= 0, got {resolution}")
        return cls(
            top=geom.half_height - resolution,
            bottom=-geom.half_height + resolution,
            front=resolution,
            back=geom.length - resolution,
            width=2.0 * geom.half_width,
        )

    def as_attrs(self) -> dict[str, float]:
        return {
            "bounds.top": self.top,
            "bounds.bottom": self.bottom,
            "bounds.front": self.front,
            "bounds.back": self.back,
            "bounds.width": self.width,
        }
