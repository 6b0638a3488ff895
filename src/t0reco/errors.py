# src/t0reco/errors.py
from __future__ import annotations
from typing import Optional


class T0RecoError(Exception):
    """Base class for t0reco failures."""


class ConfigurationError(T0RecoError, ValueError):
    """
    Missing or invalid configuration (drift velocity, resolution, geometry).

    Raised at startup only; the run must not continue with a defaulted value.
    """


class InputUnavailable(T0RecoError, LookupError):
    """
    The upstream track collection cannot be located or read.

    The whole batch fails: no T0s are written for it.
    """


class MalformedTrack(T0RecoError, ValueError):
    """
    A single track cannot be classified (no points, or top and bottom share
    the same drift coordinate). The track is skipped; the batch continues.
    """

    def __init__(self, message: str, track_id: Optional[int] = None):
        super().__init__(message)
        self.track_id = track_id
