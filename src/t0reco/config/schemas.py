from __future__ import annotations
import math
from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Literal, Optional, Dict, Union, Any


class RunCfg(BaseModel):
    """
    Global run controls.
    """

    # Performance / execution
    workers: Union[int, Literal["auto"]] = 0  # 0 = single process
    chunk_tracks: Union[int, Literal["auto"]] = "auto"
    progress: bool = False

    # Diagnostics
    diagnostics_level: int = 1  # 0=off, 1=minimal, 2=verbose

    @field_validator("diagnostics_level")
    def _diag_range(cls, v: int) -> int:
        if v not in (0, 1, 2):
            raise ValueError("diagnostics_level must be 0, 1, or 2")
        return v

    @field_validator("workers")
    def _workers_non_negative(cls, v):
        if isinstance(v, int) and v < 0:
            raise ValueError("workers must be >= 0 or 'auto'")
        return v


class IOCfg(BaseModel):
    """
    I/O paths.

    TOML:

    [io]
    input_path   = "tracks.h5"
    input_format = "hdf5"          # "hdf5" | "csv" | "root"
    output_path  = "t0.h5"
    """

    input_path: str
    input_format: Literal["hdf5", "csv", "root"] = "hdf5"
    output_path: str

    # Adapter-specific sub-config, e.g. [io.adapter]
    adapter: Dict[str, Any] = Field(default_factory=dict)


class GeometryCfg(BaseModel):
    """
    Raw detector dimensions, as handed out by the geometry service.

    TOML, either a preset:

    [geometry]
    preset = "microboone"

    or explicit values [cm]:

    [geometry]
    half_height = 116.5
    half_width  = 128.175
    length      = 1036.8
    """

    preset: Optional[Literal["microboone"]] = None
    half_height: Optional[float] = None
    half_width: Optional[float] = None
    length: Optional[float] = None

    @field_validator("half_height", "half_width", "length")
    def _positive(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not (v > 0 and math.isfinite(v)):
            raise ValueError("detector dimensions must be finite and > 0")
        return v

    @model_validator(mode="after")
    def _preset_or_dims(self) -> "GeometryCfg":
        dims = (self.half_height, self.half_width, self.length)
        if self.preset is None and any(d is None for d in dims):
            raise ValueError("[geometry] needs a preset or all of half_height, half_width, length")
        return self


class T0Cfg(BaseModel):
    """
    Anode/cathode piercing T0 settings.

    TOML:

    [t0]
    track_producer = "pandoraCosmic"
    resolution     = 10.0     # cm, inset from the detector edges
    drift_velocity = 0.1114   # cm/us
    """

    track_producer: str
    resolution: float
    drift_velocity: float
    trigger_type: int = 0

    @field_validator("track_producer")
    def _non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("track_producer must not be empty")
        return v

    @field_validator("resolution")
    def _resolution_range(cls, v: float) -> float:
        if not (v >= 0 and math.isfinite(v)):
            raise ValueError("resolution must be finite and >= 0")
        return v

    @field_validator("drift_velocity")
    def _velocity_positive(cls, v: float) -> float:
        if not (v > 0 and math.isfinite(v)):
            raise ValueError("drift_velocity must be finite and > 0")
        return v


class VisCfg(BaseModel):
    export_png_on_write: bool = False
    bins: int = 100


class Config(BaseModel):
    """
    Top-level TOML configuration.
    """

    run: RunCfg = Field(default_factory=RunCfg)
    io: IOCfg
    geometry: GeometryCfg
    t0: T0Cfg
    vis: VisCfg = Field(default_factory=VisCfg)
