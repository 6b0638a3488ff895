from t0reco.config.load import load_config
from t0reco.filters.boundary import BoundaryDiagnostics
from t0reco.io.t0_store import write_init, write_t0s, write_diagnostics, read_t0s
from t0reco.physics.t0 import T0
from t0reco.pipelines.core import T0Reconstructor
import h5py
import numpy as np
import pytest


def test_hdf5_write_read(write_cfg, tmp_path):
    cfg_path = write_cfg(tmp_path / "in.h5")
    cfg = load_config(cfg_path)
    reco = T0Reconstructor.from_cfg(cfg)

    out = tmp_path / "t0.h5"
    f = write_init(str(out), str(cfg_path), cfg, reco.bounds)
    t0s = [T0(time=-2400.0, track_id=10), T0(time=12.5, trigger_type=1, track_id=3)]
    write_t0s(f, t0s, [4, 6], np.array([[4, 10, 0], [6, 3, 1]]))
    diag = BoundaryDiagnostics(total_tracks=5, accepted=2, rejected_exit_bottom=3)
    write_diagnostics(f, diag, n_events=2)
    f.close()

    data = read_t0s(str(out))
    np.testing.assert_array_equal(data["t0/time_us"], [-2400.0, 12.5])
    np.testing.assert_array_equal(data["t0/trigger_type"], [0, 1])
    np.testing.assert_array_equal(data["assns/track_id"], [10, 3])
    np.testing.assert_array_equal(data["assns/t0_index"], [0, 1])

    with h5py.File(out, "r") as h:
        assert h.attrs["format_version"] == "1.0"
        assert "track_producer" in h.attrs["config_text"]
        assert h["meta"].attrs["bounds.width"] == pytest.approx(250.0)
        assert h["diagnostics"].attrs["rejected_exit_bottom"] == 3


def test_write_t0s_length_mismatch(tmp_path):
    with h5py.File(tmp_path / "x.h5", "w") as f:
        with pytest.raises(ValueError):
            write_t0s(f, [T0(time=1.0)], [0], np.zeros((0, 3)))


def test_empty_output(tmp_path):
    out = tmp_path / "empty.h5"
    with h5py.File(out, "w") as f:
        write_t0s(f, [], [], np.zeros((0, 3)))
    data = read_t0s(str(out))
    assert data["t0/time_us"].shape == (0,)
    assert data["assns/track_id"].shape == (0,)
