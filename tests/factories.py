import numpy as np
from lulcpost.contracts.geo import GeoProfile, CRSRef, GeoRaster
from lulcpost.contracts.stack import ClassStack

def make_profile(w=10, h=10, px=30.0, epsg=32621, dtype="uint8", count=1, nodata=0):
    return GeoProfile(
        count=count, dtype=dtype, width=w, height=h,
        transform=(500000.0, px, 0.0, 600000.0, 0.0, -px),
        crs=CRSRef.from_epsg(epsg), nodata=nodata
    )

def make_raster(w=10, h=10, value=0, dtype=np.uint8):
    arr = np.full((h, w), value, dtype=dtype)
    return GeoRaster(data=arr, profile=make_profile(w, h, dtype=np.dtype(dtype).name))

def make_stack(data, years=None, nodata=0, dtype=np.uint8, meta=None):
    """`data` (T, H, W) o lista de bandas; años por defecto 2000.. consecutivos."""
    arr = np.asarray(data, dtype=dtype)
    if arr.ndim == 1:
        # serie de un solo píxel
        arr = arr.reshape(-1, 1, 1)
    t, h, w = arr.shape
    years = tuple(years) if years is not None else tuple(range(2000, 2000 + t))
    prof = make_profile(w, h, dtype=arr.dtype.name, count=t, nodata=nodata)
    return ClassStack(arr, years, prof, meta)

def pixel_stack(series, years=None, nodata=0):
    return make_stack(np.asarray(series).reshape(-1, 1, 1), years=years, nodata=nodata)
