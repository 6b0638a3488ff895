from t0reco.geometry.bounds import DetectorBounds, DetectorGeometry
from t0reco.config.schemas import GeometryCfg
from t0reco.errors import ConfigurationError
import pytest

def test_bounds_from_geometry():
    geom = DetectorGeometry(half_height=116.5, half_width=128.175, length=1036.8)
    b = DetectorBounds.from_geometry(geom, resolution=10.0)
    assert b.top == pytest.approx(106.5)
    assert b.bottom == pytest.approx(-106.5)
    assert b.front == pytest.approx(10.0)
    assert b.back == pytest.approx(1026.8)
    assert b.width == pytest.approx(256.35)

def test_geometry_preset_and_override():
    g = DetectorGeometry.from_cfg(GeometryCfg(preset="microboone"))
    assert (g.half_height, g.half_width, g.length) == (116.5, 128.175, 1036.8)
    g2 = DetectorGeometry.from_cfg(GeometryCfg(preset="microboone", length=500.0))
    assert g2.length == 500.0 and g2.half_height == 116.5

def test_resolution_larger_than_half_height_is_config_error():
    geom = DetectorGeometry(half_height=10.0, half_width=5.0, length=100.0)
    with pytest.raises(ConfigurationError):
        DetectorBounds.from_geometry(geom, resolution=10.0)

@pytest.mark.parametrize("kw", [
    dict(top=-1, bottom=1, front=0, back=1, width=1),
    dict(top=1, bottom=-1, front=5, back=5, width=1),
    dict(top=1, bottom=-1, front=0, back=1, width=0),
])
def test_bounds_invariants(kw):
    with pytest.raises(ConfigurationError):
        DetectorBounds(**kw)
