import numpy as np
import pytest
from lulcpost.contracts.errors import ShapeMismatchError
from lulcpost.contracts.geo import GeoProfile, CRSRef, GeoRaster, validate_grid_compat, dtype_str

def test_georaster_immutable_buffer():
    p = GeoProfile(count=1, dtype="uint8", width=4, height=3,
                   transform=(0,30,0,0,0,-30), crs=CRSRef.from_epsg(32621))
    r = GeoRaster(np.zeros((3,4), dtype=np.uint8), p)
    with pytest.raises((ValueError, RuntimeError)):
        r.data[...] = 1

def test_georaster_shape_must_match_profile():
    p = GeoProfile(1,"uint8",4,3,(0,30,0,0,0,-30),CRSRef.from_epsg(32621))
    with pytest.raises(ShapeMismatchError):
        GeoRaster(np.zeros((4,3), dtype=np.uint8), p)

def test_validate_grid_tolerance():
    a = GeoProfile(1,"uint8",2,2,(0,30,0,0,0,-30),CRSRef.from_epsg(32621))
    b = GeoProfile(1,"uint16",2,2,(1e-7,30,0,0,0,-30),CRSRef.from_epsg(32621))
    validate_grid_compat(a,b)  # no lanza; el dtype puede diferir

@pytest.mark.parametrize("change", [
    dict(crs=CRSRef.from_epsg(4326)),
    dict(width=3),
    dict(transform=(15,30,0,0,0,-30)),
    dict(nodata=255),
])
def test_validate_grid_mismatch(change):
    from dataclasses import replace
    a = GeoProfile(1,"uint8",2,2,(0,30,0,0,0,-30),CRSRef.from_epsg(32621), nodata=0)
    with pytest.raises(ShapeMismatchError):
        validate_grid_compat(a, replace(a, **change))

def test_crsref_parse_and_equals():
    assert CRSRef.parse("epsg:32621").to_string() == "EPSG:32621"
    w1 = CRSRef.from_wkt('GEOGCS["WGS 84", DATUM["WGS_1984"]]')
    w2 = CRSRef.from_wkt('geogcs["WGS 84",datum["WGS_1984"]]')
    assert w1.equals(w2)
    assert CRSRef().equals(CRSRef())
    assert not CRSRef().equals(CRSRef.from_epsg(4326))

def test_dtype_str_rejects_float():
    assert dtype_str(np.int16) == "int16"
    with pytest.raises(ShapeMismatchError):
        dtype_str(np.float32)

def test_bounds():
    p = GeoProfile(1,"uint8",10,5,(100.0,30,0,1000.0,0,-30),CRSRef.from_epsg(32621))
    assert p.bounds == (100.0, 850.0, 400.0, 1000.0)
