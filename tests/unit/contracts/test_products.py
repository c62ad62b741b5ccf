import numpy as np
import pytest
from lulcpost.contracts.core import ProcessingStep
from lulcpost.contracts.errors import ShapeMismatchError
from lulcpost.contracts.products import StageReport
from tests.factories import make_stack

def test_compare_counts_changes_per_year():
    before = make_stack(np.zeros((2, 2, 2)))
    after = before.with_data(np.array([[[1, 0], [0, 0]], [[1, 1], [0, 0]]], np.uint8))
    rep = StageReport.compare(ProcessingStep.GAPFILL, before, after)
    assert rep.total == 8 and rep.changed == 3
    assert dict(rep.changed_per_year) == {2000: 1, 2001: 2}
    assert rep.pct_changed == pytest.approx(37.5)
    assert "gapfill" in rep.summary()

def test_changed_per_year_is_read_only():
    st = make_stack(np.zeros((1, 1, 1)))
    rep = StageReport.compare(ProcessingStep.GAPFILL, st, st)
    with pytest.raises(TypeError):
        rep.changed_per_year[2000] = 9

def test_compare_different_geometry():
    with pytest.raises(ShapeMismatchError):
        StageReport.compare(ProcessingStep.GAPFILL, make_stack(np.zeros((1, 2, 2))), make_stack(np.zeros((2, 2, 2))))
