from pathlib import Path

import h5py
import numpy as np
import pytest

from t0reco.errors import InputUnavailable
from t0reco.io.t0_store import read_t0s, write_tracks_ragged
from t0reco.physics.tracks import Track, TrackEvent
from t0reco.pipelines.core import T0Reconstructor, reconstruct_t0s, run_pipeline
from t0reco.sim.synth import synth_track_events


def _mixed_tracks():
    return [
        Track(points=[(10, 90, 500), (-5, -105, 500)], track_id=10),     # cathode, -2400
        Track(points=[(10, 90, 500), (-5, -100, 500)], track_id=11),     # bottom on boundary
        Track(points=[(10, 90, 500), (10, -105, 500)], track_id=12),     # degenerate x
        Track(points=np.zeros((0, 3)), track_id=13),                      # no points
        Track(points=[(40, -105, 500), (-5, 90, 500)], track_id=14),     # anode, reversed, -50
        Track(points=[(10, 90, 5), (-5, -105, 500)], track_id=15),       # enters through front
    ]


def test_batch_sparse_and_ordered(bounds):
    reco = T0Reconstructor(bounds=bounds, drift_velocity=0.1)
    batch = reconstruct_t0s(_mixed_tracks(), reco, diagnostics_level=0)

    assert [t.track_id for t in batch.t0s] == [10, 14]
    assert [t.time for t in batch.t0s] == pytest.approx([-2400.0, -50.0])
    np.testing.assert_array_equal(batch.assns, [[0, 0], [4, 1]])

    d = batch.diagnostics
    assert d.total_tracks == 6
    assert d.accepted == 2
    assert d.malformed == 2
    assert d.rejected_exit_bottom == 1
    assert d.rejected_enters_side == 1


def test_malformed_tracks_reported(bounds, capsys):
    reco = T0Reconstructor(bounds=bounds, drift_velocity=0.1)
    reconstruct_t0s(_mixed_tracks(), reco, diagnostics_level=1)
    out = capsys.readouterr().out
    assert "[t0] Skipping malformed track 12" in out
    assert "[t0] Skipping malformed track 13" in out


def test_empty_batch(bounds):
    reco = T0Reconstructor(bounds=bounds, drift_velocity=0.1)
    batch = reconstruct_t0s([], reco)
    assert batch.t0s == []
    assert batch.assns.shape == (0, 2)


def test_parallel_matches_sequential(bounds):
    reco = T0Reconstructor(bounds=bounds, drift_velocity=0.1)
    events, _ = synth_track_events(1, 40, bounds, 0.1, rng=np.random.default_rng(1))
    tracks = events[0].tracks + _mixed_tracks()

    seq = reconstruct_t0s(tracks, reco, workers=0, diagnostics_level=0)
    par = reconstruct_t0s(tracks, reco, workers=2, chunk_tracks=7,
                          min_parallel_tracks=0, diagnostics_level=0)

    assert par.t0s == seq.t0s
    np.testing.assert_array_equal(par.assns, seq.assns)
    assert par.diagnostics == seq.diagnostics


def _write_input(path: Path, events, producer="pandoraCosmic"):
    with h5py.File(path, "w") as f:
        write_tracks_ragged(f, events, producer)


def test_run_pipeline_end_to_end(write_cfg, bounds, tmp_path: Path):
    events, truth = synth_track_events(3, 15, bounds, 0.1, rng=np.random.default_rng(7))
    events.append(TrackEvent(event_id=3, tracks=_mixed_tracks()))
    inp = tmp_path / "tracks.h5"
    _write_input(inp, events)

    out = run_pipeline(str(write_cfg(inp)))
    assert out.exists()

    data = read_t0s(str(out))
    true_t0 = [s.true_t0 for ev in truth for s in ev] + [-2400.0, -50.0]
    np.testing.assert_allclose(data["t0/time_us"], true_t0, atol=1e-6)

    expect_ev = [0] * 15 + [1] * 15 + [2] * 15 + [3, 3]
    np.testing.assert_array_equal(data["assns/event_id"], expect_ev)
    np.testing.assert_array_equal(data["t0/event_id"], expect_ev)
    np.testing.assert_array_equal(data["assns/t0_index"], np.arange(len(true_t0)))
    np.testing.assert_array_equal(data["assns/track_id"][-2:], [10, 14])

    with h5py.File(out, "r") as f:
        assert f["diagnostics"].attrs["malformed"] == 2
        assert f["diagnostics"].attrs["n_events"] == 4
        assert f["meta"].attrs["t0.track_producer"] == "pandoraCosmic"


def test_missing_collection_is_fatal(write_cfg, bounds, tmp_path: Path):
    events, _ = synth_track_events(1, 5, bounds, 0.1, rng=np.random.default_rng(3))
    inp = tmp_path / "tracks.h5"
    _write_input(inp, events, producer="otherTracker")
    out = tmp_path / "out" / "t0.h5"

    with pytest.raises(InputUnavailable):
        run_pipeline(str(write_cfg(inp, out)))
    assert not out.exists()


def test_missing_input_file_is_fatal(write_cfg, tmp_path: Path):
    out = tmp_path / "out" / "t0.h5"
    with pytest.raises(InputUnavailable):
        run_pipeline(str(write_cfg(tmp_path / "absent.h5", out)))
    assert not out.exists()


def test_progress_bar_sequential(bounds, capsys):
    reco = T0Reconstructor(bounds=bounds, drift_velocity=0.1)
    batch = reconstruct_t0s(_mixed_tracks(), reco, progress=True, diagnostics_level=0)
    assert len(batch.t0s) == 2
    assert "T0" in capsys.readouterr().err
