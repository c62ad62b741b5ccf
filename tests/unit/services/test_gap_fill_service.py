import numpy as np
import pytest
from lulcpost.contracts.core import ProcessingStep
from lulcpost.contracts.errors import ShapeMismatchError
from lulcpost.contracts.specs import GapFillSpec
from lulcpost.services.gap_fill_service import GapFillService, backward_fill, forward_fill
from tests.factories import make_stack, pixel_stack

ND = 0

def test_forward_then_backward_single_pixel():
    st = pixel_stack([ND, ND, 3, ND, 5])
    assert forward_fill(st.data, ND).ravel().tolist() == [ND, ND, 3, 3, 5]
    out = GapFillService().fill(st)
    assert out.series(0, 0) == (3, 3, 3, 3, 5)

def test_all_nodata_stays_nodata():
    out = GapFillService().fill(pixel_stack([ND] * 5))
    assert out.series(0, 0) == (ND,) * 5

def test_backward_forward_order():
    st = pixel_stack([ND, 4, ND, 6, ND])
    assert backward_fill(st.data, ND).ravel().tolist() == [4, 4, 6, 6, ND]
    out = GapFillService().fill(st, GapFillSpec(order="backward_forward"))
    assert out.series(0, 0) == (4, 4, 6, 6, 6)

def test_completeness_and_idempotence():
    rng = np.random.default_rng(7)
    data = rng.choice([ND, 3, 4, 11, 12], size=(8, 12, 12), p=[0.5, 0.2, 0.1, 0.1, 0.1])
    data[:, 0, 0] = ND   # píxel sin ningún año válido
    st = make_stack(data)
    svc = GapFillService()
    once = svc.fill(st)
    has_valid = (st.data != ND).any(axis=0)
    assert not (once.data[:, has_valid] == ND).any()
    assert (once.data[:, 0, 0] == ND).all()
    twice = svc.fill(once)
    np.testing.assert_array_equal(once.data, twice.data)

def test_geometry_preserved_and_input_untouched():
    st = pixel_stack([ND, 3, ND])
    before = st.data.copy()
    out, rep = GapFillService().fill_with_report(st)
    assert out.same_grid(st)
    np.testing.assert_array_equal(st.data, before)
    assert rep.step is ProcessingStep.GAPFILL and rep.changed == 2

def test_missing_years_are_inserted_and_filled():
    st = pixel_stack([3, 5], years=(2000, 2003))
    out = GapFillService().fill(st, GapFillSpec(years=(2000, 2001, 2002, 2003)))
    assert out.years == (2000, 2001, 2002, 2003)
    assert out.series(0, 0) == (3, 3, 3, 5)

def test_undeclared_years_fail():
    st = pixel_stack([3, 5, 6], years=(2000, 2001, 2002))
    with pytest.raises(ShapeMismatchError):
        GapFillService().fill(st, GapFillSpec(years=(2000, 2001)))

def test_custom_nodata_value():
    st = pixel_stack([255, 3, 255], nodata=255)
    assert GapFillService().fill(st).series(0, 0) == (3, 3, 3)
