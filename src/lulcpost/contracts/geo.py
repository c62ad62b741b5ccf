# src/lulcpost/contracts/geo.py

from __future__ import annotations
import math
from dataclasses import dataclass, replace
from typing import Any, Literal, NamedTuple, Tuple, Optional

import numpy as np
import numpy.typing as npt

from .errors import ShapeMismatchError

GeoTransform = Tuple[float, float, float, float, float, float]
DTypeStr = Literal["uint8", "uint16", "int16", "uint32", "int32"]

# dtypes enteros admitidos para rasters de clases
_INT_DTYPES: Tuple[str, ...] = ("uint8", "uint16", "int16", "uint32", "int32")


class Bounds(NamedTuple):
    minx: float; miny: float; maxx: float; maxy: float


# ---------- CRS (puro dominio, sin rasterio) ----------
@dataclass(frozen=True)
class CRSRef:
    wkt: Optional[str] = None
    epsg: Optional[int] = None

    @staticmethod
    def from_epsg(code: int) -> "CRSRef":
        return CRSRef(epsg=int(code))

    @staticmethod
    def from_wkt(wkt: str) -> "CRSRef":
        return CRSRef(wkt=wkt)

    @staticmethod
    def parse(text: str) -> "CRSRef":
        """Acepta 'EPSG:4326' o un WKT."""
        s = text.strip()
        if s.upper().startswith("EPSG:"):
            return CRSRef.from_epsg(int(s.split(":", 1)[1]))
        if not s:
            raise ValueError("CRS vacío")
        return CRSRef.from_wkt(s)

    def to_string(self) -> Optional[str]:
        if self.epsg is not None:
            return f"EPSG:{int(self.epsg)}"
        return self.wkt

    @staticmethod
    def _normalize_wkt(wkt: str) -> str:
        # upper + espacios colapsados; no reordena nodos
        s = " ".join(wkt.strip().upper().split())
        return s.replace(" ,", ",").replace(", ", ",").replace("[ ", "[").replace(" ]", "]")

    def equals(self, other: "CRSRef") -> bool:
        """
        Comparación determinista: EPSG contra EPSG, WKT normalizado contra WKT.
        Un CRS vacío sólo es igual a otro vacío.
        """
        if self is other:
            return True
        if self.epsg is not None and other.epsg is not None:
            return int(self.epsg) == int(other.epsg)
        if self.wkt and other.wkt:
            return self._normalize_wkt(self.wkt) == self._normalize_wkt(other.wkt)
        return self.epsg is None and other.epsg is None and not self.wkt and not other.wkt


# ---------- Perfil y Raster ----------
@dataclass(frozen=True)
class GeoProfile:
    count: int
    dtype: DTypeStr
    width: int
    height: int
    transform: GeoTransform
    crs: CRSRef
    nodata: Optional[int] = None

    @property
    def bounds(self) -> Bounds:
        return geotransform_bounds(self.transform, self.width, self.height)

    def with_count(self, count: int) -> "GeoProfile":
        return replace(self, count=int(count))

    def with_nodata(self, nodata: Optional[int]) -> "GeoProfile":
        return replace(self, nodata=nodata)


@dataclass(frozen=True)
class GeoRaster:
    """Una banda (H, W) de etiquetas de clase con su perfil."""
    data: "npt.NDArray[Any]"  # type: ignore[valid-type]
    profile: GeoProfile

    def __post_init__(self):
        if self.data.ndim != 2:
            raise ShapeMismatchError(f"GeoRaster espera 2D (H, W); llegó ndim={self.data.ndim}")
        if self.data.shape != (self.profile.height, self.profile.width):
            raise ShapeMismatchError(
                f"shape {self.data.shape} no coincide con perfil "
                f"({self.profile.height}, {self.profile.width})"
            )
        # Bloquea mutaciones accidentales sobre los datos (sin tocar el array del llamador)
        if self.data.flags.writeable:
            object.__setattr__(self, "data", np.array(self.data, copy=True))
        self.data.setflags(write=False)

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.data.shape  # type: ignore[no-any-return]


def geotransform_bounds(gt: GeoTransform, width: int, height: int) -> Bounds:
    x0, px, rx, y0, ry, py = gt
    x_w = x0 + width * px + height * rx
    y_w = y0 + width * ry + height * py
    minx, maxx = (x0, x_w) if x0 <= x_w else (x_w, x0)
    miny, maxy = (y_w, y0) if y_w <= y0 else (y0, y_w)
    return Bounds(minx, miny, maxx, maxy)


def _gt_close(a: GeoTransform, b: GeoTransform, tol: float = 1e-6) -> bool:
    return all(math.isclose(x, y, rel_tol=0.0, abs_tol=tol) for x, y in zip(a, b))


def validate_grid_compat(a: GeoProfile, b: GeoProfile) -> None:
    """
    Misma grilla: CRS, dimensiones, transform y nodata. El dtype puede variar
    (se unifica al apilar).
    """
    if not a.crs.equals(b.crs):
        raise ShapeMismatchError("CRS no coincide.")
    if a.width != b.width or a.height != b.height:
        raise ShapeMismatchError(
            f"Dimensiones no coinciden: {a.width}x{a.height} vs {b.width}x{b.height}"
        )
    if not _gt_close(a.transform, b.transform):
        raise ShapeMismatchError("GeoTransform no coincide (requiere resampling/alineación).")
    if a.nodata != b.nodata:
        raise ShapeMismatchError(f"nodata no coincide: {a.nodata} vs {b.nodata}")


def dtype_str(dt: Any) -> DTypeStr:
    name = np.dtype(dt).name
    if name not in _INT_DTYPES:
        raise ShapeMismatchError(f"dtype {name} no soportado: se esperan etiquetas enteras")
    return name  # type: ignore[return-value]


__all__ = [
    "GeoTransform", "Bounds", "CRSRef", "GeoProfile", "GeoRaster",
    "geotransform_bounds", "validate_grid_compat", "dtype_str", "DTypeStr",
]
