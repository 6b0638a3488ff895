import pytest

from t0reco.filters.boundary import (
    BoundaryDiagnostics, is_usable, track_enters_side, track_exits_bottom,
)
from t0reco.geometry.bounds import DetectorBounds
from t0reco.physics.tracks import Track

B = DetectorBounds(top=100.0, bottom=-100.0, front=5.0, back=995.0, width=250.0)

def _sorted(top, bottom):
    return Track(points=[top, bottom]).ordered()

def test_exits_bottom_strict():
    assert track_exits_bottom(_sorted((0, 90, 500), (0, -100.001, 500)), B)
    assert not track_exits_bottom(_sorted((0, 90, 500), (0, -100.0, 500)), B)
    assert not track_exits_bottom(_sorted((0, 90, 500), (0, -50, 500)), B)

def test_enters_side_top_inclusive():
    assert track_enters_side(_sorted((0, 100.0, 500), (0, -105, 500)), B)
    assert not track_enters_side(_sorted((0, 100.5, 500), (0, -105, 500)), B)

@pytest.mark.parametrize("z, ok", [(5.0, False), (995.0, False), (4.0, False), (996.0, False),
                                   (5.01, True), (994.99, True)])
def test_enters_side_front_back(z, ok):
    assert track_enters_side(_sorted((0, 90, z), (0, -105, 500)), B) is ok

def test_both_predicates_needed():
    good = _sorted((10, 90, 500), (-5, -105, 500))
    no_exit = _sorted((10, 90, 500), (-5, -95, 500))
    through_top = _sorted((10, 120, 500), (-5, -105, 500))
    through_front = _sorted((10, 90, 2), (-5, -105, 500))
    assert is_usable(good, B)
    assert not is_usable(no_exit, B)
    assert not is_usable(through_top, B)
    assert not is_usable(through_front, B)
    # failing both is still a rejection
    assert not is_usable(_sorted((10, 120, 500), (-5, -95, 500)), B)

def test_diagnostics_counts():
    diag = BoundaryDiagnostics()
    is_usable(_sorted((10, 90, 500), (-5, -95, 500)), B, diag)
    is_usable(_sorted((10, 90, 2), (-5, -105, 500)), B, diag)
    is_usable(_sorted((10, 90, 500), (-5, -105, 500)), B, diag)
    assert diag.rejected_exit_bottom == 1
    assert diag.rejected_enters_side == 1
    assert diag.rejected == 2
    assert diag.reasons == {"no_bottom_exit": 1, "not_side_entering": 1}
