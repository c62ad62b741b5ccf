# src/lulcpost/adapters/geotiff_stack_store.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Sequence, Tuple

import numpy as np
import rasterio
from rasterio.errors import CRSError
from rasterio.transform import Affine

from ..contracts.core import Provenance, band_name, year_from_band_name
from ..contracts.errors import ShapeMismatchError
from ..contracts.geo import CRSRef, GeoProfile, GeoRaster, GeoTransform, dtype_str
from ..contracts.stack import ClassStack
from ..ports.stack_store import StackStorePort

logger = logging.getLogger(__name__)

YEARS_TAG = "years"


def _affine_to_gt(a: Affine) -> GeoTransform:
    return (a.c, a.a, a.b, a.f, a.d, a.e)


def _rasterio_crs_to_crsref(crs_obj) -> CRSRef:
    """rasterio CRS → CRSRef (EPSG si se puede, si no WKT, si no vacío)."""
    if not crs_obj:
        return CRSRef()
    try:
        epsg = crs_obj.to_epsg()
    except CRSError:
        epsg = None
    if epsg is not None:
        return CRSRef.from_epsg(int(epsg))
    return CRSRef.from_wkt(crs_obj.to_wkt())


def _years_from(descriptions: Sequence[Optional[str]], tags: Mapping[str, str], count: int) -> Tuple[int, ...]:
    # 1) descripciones de banda 'classification_<año>'
    if descriptions and all(d for d in descriptions):
        try:
            return tuple(year_from_band_name(d) for d in descriptions)  # type: ignore[arg-type]
        except ValueError:
            pass
    # 2) tag 'years' = '2000,2001,...'
    raw = tags.get(YEARS_TAG)
    if raw:
        years = tuple(int(y) for y in raw.split(",") if y.strip())
        if len(years) != count:
            raise ShapeMismatchError(f"tag years declara {len(years)} años para {count} bandas")
        return years
    raise ShapeMismatchError("no se pudieron determinar los años: faltan descripciones de banda y tag 'years'")


@dataclass(frozen=True)
class GeoTiffStackStore(StackStorePort):
    """
    Stack multi-anual como GeoTIFF multibanda (una banda por año).
    - descripción de banda: 'classification_<año>'
    - procedencia: tags del dataset (territory, region_id, version, step, ...)
    - escritura atómica: archivo temporal + os.replace
    """
    compress: str = "DEFLATE"
    tiled: bool = True

    def read(self, uri: str) -> ClassStack:
        with rasterio.open(uri) as ds:
            data = ds.read()
            data.setflags(write=False)  # buffer propio: ClassStack no necesita copiarlo
            tags = ds.tags()
            years = _years_from(ds.descriptions, tags, ds.count)
            profile = GeoProfile(
                count=ds.count,
                dtype=dtype_str(data.dtype),
                width=ds.width,
                height=ds.height,
                transform=_affine_to_gt(ds.transform),
                crs=_rasterio_crs_to_crsref(ds.crs),
                nodata=int(ds.nodata) if ds.nodata is not None else None,
            )
        logger.debug("leído %s: %d bandas %dx%d", uri, profile.count, profile.width, profile.height)
        return ClassStack(data, years, profile, Provenance.from_tags(tags))

    def _profile(self, p: GeoProfile, count: int, dtype: str, nodata: Optional[int]) -> dict:
        profile = {
            "driver": "GTiff",
            "height": p.height,
            "width": p.width,
            "count": count,
            "dtype": dtype,
            "transform": Affine.from_gdal(*p.transform),
            "compress": self.compress,
            "tiled": self.tiled,
            "nodata": nodata,
        }
        crs = p.crs.to_string()
        if crs:
            profile["crs"] = crs
        return profile

    @staticmethod
    def _atomic_write(uri: str, profile: dict, fill: Callable[[Any], None]) -> str:
        """Escribe en '<nombre>.partial' y renombra; si falla no queda nada."""
        path = Path(uri)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_name(path.name + ".partial")
        try:
            with rasterio.open(tmp, "w", **profile) as dst:
                fill(dst)
            os.replace(tmp, path)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise
        return str(path)

    def write(self, uri: str, stack: ClassStack) -> str:
        profile = self._profile(stack.profile, stack.n_years, stack.data.dtype.name, stack.nodata)
        tags = {YEARS_TAG: ",".join(str(y) for y in stack.years)}
        if stack.meta is not None:
            tags.update(stack.meta.as_tags())

        def fill(dst) -> None:
            dst.write(np.ascontiguousarray(stack.data))
            for i, y in enumerate(stack.years, start=1):
                dst.set_band_description(i, band_name(y))
            dst.update_tags(**tags)

        return self._atomic_write(uri, profile, fill)

    def write_band(self, uri: str, raster: GeoRaster, *, tags: Optional[Mapping[str, str]] = None) -> str:
        """Raster de una banda (p.ej. mapa estable)."""
        profile = self._profile(raster.profile, 1, raster.data.dtype.name, raster.profile.nodata)

        def fill(dst) -> None:
            dst.write(raster.data, 1)
            if tags:
                dst.update_tags(**dict(tags))

        return self._atomic_write(uri, profile, fill)

    def exists(self, uri: str) -> bool:
        return os.path.exists(uri)


__all__ = ["GeoTiffStackStore"]
