from pathlib import Path

import pytest

from t0reco.geometry.bounds import DetectorBounds

DEFAULT_RUN = "diagnostics_level = 0"
DEFAULT_GEOMETRY = "half_height = 105.0\nhalf_width = 125.0\nlength = 1000.0"
DEFAULT_T0 = 'track_producer = "pandoraCosmic"\nresolution = 5.0\ndrift_velocity = 0.1'


@pytest.fixture
def bounds() -> DetectorBounds:
    return DetectorBounds(top=100.0, bottom=-100.0, front=5.0, back=995.0, width=250.0)


@pytest.fixture
def write_cfg(tmp_path: Path):
    """Write a TOML config into tmp_path; keyword args replace whole sections."""

    def _write(input_path: Path, output_path: Path | None = None, *, input_format: str = "hdf5",
               t0: str | None = None, run: str | None = None, geometry: str | None = None) -> Path:
        output_path = output_path or tmp_path / "out" / "t0.h5"
        sections = [
            "[run]", run or DEFAULT_RUN, "",
            "[io]",
            f'input_path = "{input_path.as_posix()}"',
            f'input_format = "{input_format}"',
            f'output_path = "{output_path.as_posix()}"', "",
            "[geometry]", geometry or DEFAULT_GEOMETRY, "",
            "[t0]", t0 or DEFAULT_T0, "",
        ]
        p = tmp_path / "cfg.toml"
        p.write_text("\n".join(sections))
        return p

    return _write
