import numpy as np
import pytest
from lulcpost.contracts.core import Provenance
from lulcpost.contracts.errors import ProvenanceError, ShapeMismatchError
from lulcpost.contracts.stack import ClassStack
from tests.factories import make_profile, make_raster, make_stack

def test_years_must_match_bands():
    prof = make_profile(2, 2, count=3)
    with pytest.raises(ShapeMismatchError):
        ClassStack(np.zeros((3, 2, 2), np.uint8), (2000, 2001), prof)

def test_years_strictly_increasing():
    with pytest.raises(ShapeMismatchError):
        make_stack(np.zeros((3, 2, 2)), years=(2000, 2002, 2001))

def test_float_data_rejected():
    prof = make_profile(2, 2, count=1)
    with pytest.raises(ShapeMismatchError):
        ClassStack(np.zeros((1, 2, 2), np.float32), (2000,), prof)

def test_buffer_is_read_only():
    st = make_stack(np.ones((2, 3, 3)))
    with pytest.raises(ValueError):
        st.data[0, 0, 0] = 5

def test_caller_array_is_not_frozen_nor_shared():
    arr = np.ones((2, 3, 3), dtype=np.uint8)
    st = make_stack(arr)
    assert arr.flags.writeable
    arr[0, 0, 0] = 9
    assert st.data[0, 0, 0] == 1

def test_georaster_copies_caller_array():
    arr = np.full((10, 10), 3, dtype=np.uint8)
    r = make_raster()
    r2 = type(r)(arr, r.profile)
    arr[0, 0] = 7
    assert arr.flags.writeable and r2.data[0, 0] == 3

def test_from_array_casts_python_ints():
    st = ClassStack.from_array([[[1, 2]], [[3, 4]]], [2000, 2001], template=make_profile(2, 1))
    assert st.data.dtype == np.int32
    assert st.profile.count == 2 and st.series(0, 1) == (2, 4)

def test_from_bands_checks_grid():
    a = make_raster(4, 4, value=3)
    b = make_raster(4, 5, value=3)
    with pytest.raises(ShapeMismatchError):
        ClassStack.from_bands({2000: a, 2001: b})
    st = ClassStack.from_bands({2001: a, 2000: make_raster(4, 4, value=1)})
    assert st.years == (2000, 2001)
    assert st.series(0, 0) == (1, 3)

def test_band_and_index():
    st = make_stack(np.arange(8).reshape(2, 2, 2) + 1)
    assert st.band(2001).data[1, 1] == 8
    with pytest.raises(KeyError):
        st.index_of(1999)
    assert st.band_names() == ("classification_2000", "classification_2001")

def test_with_data_drops_meta_and_keeps_grid():
    meta = Provenance(territory="T", region_id="1", version="5", step="gapfill")
    st = make_stack(np.ones((2, 2, 2)), meta=meta)
    out = st.with_data(np.full((2, 2, 2), 3, np.uint8))
    assert out.meta is None and out.same_grid(st)
    with pytest.raises(ShapeMismatchError):
        st.with_data(np.ones((1, 2, 2), np.uint8))

def test_tag_twice_fails():
    meta = Provenance(territory="T", region_id="1", version="5", step="gapfill")
    st = make_stack(np.ones((1, 1, 1))).tag(meta)
    assert st.meta == meta
    with pytest.raises(ProvenanceError):
        st.tag(meta)

def test_reindex_inserts_nodata_years():
    st = make_stack([3, 4], years=(2000, 2002))
    out = st.reindex([2000, 2001, 2002])
    assert out.years == (2000, 2001, 2002)
    assert out.series(0, 0) == (3, 0, 4)
    with pytest.raises(ShapeMismatchError):
        st.reindex([2000, 2001])
