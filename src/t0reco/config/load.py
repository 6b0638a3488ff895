from __future__ import annotations
from .schemas import Config
from pathlib import Path
from pydantic import ValidationError

from t0reco.errors import ConfigurationError

try:
    import tomllib  # py311+
except ModuleNotFoundError:  # pragma: no cover
    import tomli as tomllib  # py<=310

def load_config(path: str | Path) -> Config:
    p = Path(path)
    if not p.is_file():
        raise ConfigurationError(f"Config file not found: {p}")
    try:
        data = tomllib.loads(p.read_text())
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Could not parse {p.name}: {exc}") from exc
    try:
        return Config(**data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration in {p.name}:\n{exc}") from exc

def snapshot_config_toml(path: str | Path) -> str:
    """Return the raw TOML text for embedding in HDF5 metadata."""
    return Path(path).read_text()
