# src/lulcpost/contracts/stack.py
from __future__ import annotations

"""
Stack multi-anual de clases: una banda por año, orden cronológico.

La serie temporal de un píxel es `data[:, fila, col]`. El valor `nodata`
marca "sin clasificación" para ese píxel-año.
"""

from dataclasses import dataclass, replace
from typing import Any, Iterable, Mapping, Optional, Sequence, Tuple

import numpy as np
import numpy.typing as npt

from .core import MAX_YEAR, MIN_YEAR, Provenance, band_name
from .errors import ProvenanceError, ShapeMismatchError
from .geo import GeoProfile, GeoRaster, dtype_str, validate_grid_compat

NODATA_DEFAULT = 0


@dataclass(frozen=True)
class ClassStack:
    data: "npt.NDArray[Any]"  # (T, H, W)  # type: ignore[valid-type]
    years: Tuple[int, ...]
    profile: GeoProfile
    meta: Optional[Provenance] = None

    def __post_init__(self):
        object.__setattr__(self, "years", tuple(int(y) for y in self.years))
        if self.data.ndim != 3:
            raise ShapeMismatchError(f"ClassStack espera (T, H, W); llegó ndim={self.data.ndim}")
        t, h, w = self.data.shape
        if len(self.years) != t:
            raise ShapeMismatchError(f"{len(self.years)} años declarados para {t} bandas")
        if self.profile.count != t:
            raise ShapeMismatchError(f"profile.count={self.profile.count} pero hay {t} bandas")
        if (self.profile.height, self.profile.width) != (h, w):
            raise ShapeMismatchError(
                f"grilla {h}x{w} no coincide con perfil {self.profile.height}x{self.profile.width}"
            )
        dtype_str(self.data.dtype)
        if any(b <= a for a, b in zip(self.years, self.years[1:])):
            raise ShapeMismatchError(f"años no estrictamente crecientes: {self.years}")
        if self.years and not (MIN_YEAR <= self.years[0] and self.years[-1] <= MAX_YEAR):
            raise ShapeMismatchError(f"años fuera de rango [{MIN_YEAR}, {MAX_YEAR}]: {self.years}")
        if self.data.flags.writeable:
            # copia propia: el array del llamador sigue siendo suyo y mutable
            object.__setattr__(self, "data", np.array(self.data, copy=True))
        self.data.setflags(write=False)

    # -------- construcción --------
    @classmethod
    def from_array(
        cls,
        data: "npt.ArrayLike",
        years: Sequence[int],
        *,
        template: GeoProfile,
        meta: Optional[Provenance] = None,
    ) -> "ClassStack":
        arr = np.array(data, copy=True)
        if arr.dtype.kind in "iu" and arr.dtype.itemsize > 4:
            # listas de Python llegan como int64
            arr = arr.astype(np.int32)
        arr.setflags(write=False)
        return cls(arr, tuple(years), replace(template, count=len(years), dtype=dtype_str(arr.dtype)), meta)

    @classmethod
    def from_bands(cls, bands: Mapping[int, GeoRaster]) -> "ClassStack":
        """Apila bandas por año. Todas deben compartir la misma grilla."""
        if not bands:
            raise ShapeMismatchError("no hay bandas para apilar")
        years = sorted(int(y) for y in bands)
        first = bands[years[0]]
        for y in years[1:]:
            validate_grid_compat(first.profile, bands[y].profile)
        dtype = np.result_type(*(bands[y].data.dtype for y in years))
        out = np.empty((len(years), first.profile.height, first.profile.width), dtype=dtype)
        for i, y in enumerate(years):
            out[i] = bands[y].data
        out.setflags(write=False)
        prof = replace(first.profile, count=len(years), dtype=dtype_str(dtype))
        return cls(out, tuple(years), prof)

    # -------- acceso --------
    @property
    def nodata(self) -> int:
        return NODATA_DEFAULT if self.profile.nodata is None else int(self.profile.nodata)

    @property
    def n_years(self) -> int:
        return len(self.years)

    @property
    def height(self) -> int:
        return self.profile.height

    @property
    def width(self) -> int:
        return self.profile.width

    def band_names(self) -> Tuple[str, ...]:
        return tuple(band_name(y) for y in self.years)

    def index_of(self, year: int) -> int:
        try:
            return self.years.index(int(year))
        except ValueError:
            raise KeyError(f"año {year} no está en el stack {self.years}") from None

    def band(self, year: int) -> GeoRaster:
        i = self.index_of(year)
        return GeoRaster(self.data[i], self.profile.with_count(1))

    def series(self, row: int, col: int) -> Tuple[int, ...]:
        return tuple(int(v) for v in self.data[:, row, col])

    def valid_mask(self) -> np.ndarray:
        return self.data != self.nodata

    def same_grid(self, other: "ClassStack") -> bool:
        return (
            self.years == other.years
            and self.data.shape == other.data.shape
            and self.profile.with_count(1) == replace(other.profile.with_count(1), dtype=self.profile.dtype)
        )

    # -------- derivados (nunca mutan) --------
    def with_data(self, data: "npt.NDArray[Any]") -> "ClassStack":
        """Nuevo stack, misma grilla y años, sin metadatos de salida."""
        if data.shape != self.data.shape:
            raise ShapeMismatchError(f"shape {data.shape} != {self.data.shape}")
        prof = replace(self.profile, dtype=dtype_str(data.dtype))
        return ClassStack(data, self.years, prof)

    def tag(self, meta: Provenance) -> "ClassStack":
        if self.meta is not None:
            raise ProvenanceError(
                f"el stack ya tiene procedencia ({self.meta.step.value}, v{self.meta.version})"
            )
        return replace(self, meta=meta)

    def reindex(self, years: Iterable[int]) -> "ClassStack":
        """
        Alinea el stack a `years`: los años ausentes se insertan como bandas
        vacías (todo nodata). Años del stack fuera de `years` son error.
        """
        target = tuple(sorted(int(y) for y in years))
        if target == self.years:
            return self
        extra = sorted(set(self.years) - set(target))
        if extra:
            raise ShapeMismatchError(f"el stack trae años no declarados: {extra}")
        out = np.full((len(target), self.height, self.width), self.nodata, dtype=self.data.dtype)
        for i, y in enumerate(target):
            if y in self.years:
                out[i] = self.data[self.years.index(y)]
        out.setflags(write=False)
        return ClassStack(out, target, self.profile.with_count(len(target)))


__all__ = ["ClassStack", "NODATA_DEFAULT"]
