# src/lulcpost/config.py
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from string import Formatter
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Tuple

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .contracts.core import MAX_YEAR, MIN_YEAR, ProcessingStep
from .contracts.specs import FrequencySpec, GapFillSpec, SpatialFilterSpec

# Placeholders permitidos por clave
INPUT_PLACEHOLDERS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "classification": ("territory", "region_id", "version"),
    "intermediate": ("territory", "region_id", "version", "step"),
})
OUTPUT_PLACEHOLDERS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    ProcessingStep.GAPFILL.value: ("territory", "region_id", "version", "step"),
    ProcessingStep.FREQUENCY_FILTER.value: ("territory", "region_id", "version", "step"),
    ProcessingStep.SPATIAL_FILTER.value: ("territory", "region_id", "version", "step"),
    ProcessingStep.STABLE_MAP.value: ("territory", "region_id", "version"),
})


class Settings(BaseSettings):
    """
    Config unificada del proyecto. No toca disco.
    Debe ser construida y provista por composition/di.py (CLI).
    Variables de entorno: LULC_<CAMPO>, anidados con '__'
    (p.ej. LULC_SPATIAL__MIN_AREA=8).
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="LULC_",
        env_nested_delimiter="__",
        extra="forbid",
        frozen=True,
    )

    # --- básicos ---
    project_root: Path = Path(".")

    # --- identidad de la colección ---
    territory: str = "SURINAME"
    region_id: str = "1"
    collection_id: float = 1.0
    input_version: str = "5"
    output_version: str = "5"

    # --- serie temporal ---
    years: Tuple[int, ...] = tuple(range(2000, 2024))
    nodata: int = 0

    # --- ejecución ---
    tile_size: Optional[int] = None
    max_workers: int = 1

    # --- filtros ---
    gap_fill: GapFillSpec = Field(default_factory=GapFillSpec)
    frequency: FrequencySpec = Field(default_factory=FrequencySpec.native_vegetation)
    # año de referencia del relleno final: 2010, como la colección original
    spatial: SpatialFilterSpec = Field(default_factory=lambda: SpatialFilterSpec(reference_year=2010))

    input_patterns: Dict[str, str] = Field(default_factory=lambda: {
        "classification": "01-Classification/{territory}_{region_id}_{version}.tif",
        "intermediate": "02-Post/{step}/{territory}_{region_id}_{version}.tif",
    })
    output_patterns: Dict[str, str] = Field(default_factory=lambda: {
        "gapfill": "02-Post/{step}/{territory}_{region_id}_{version}.tif",
        "frequency_filter": "02-Post/{step}/{territory}_{region_id}_{version}.tif",
        "spatial_filter": "02-Post/{step}/{territory}_{region_id}_{version}.tif",
        "stable_map": "03-Products/STABLE/{territory}_STABLE_MAP_{region_id}_{version}.tif",
    })

    # ----------------------------
    # Normalizadores / validadores
    # ----------------------------
    @field_validator("project_root", mode="before")
    @classmethod
    def _abs_root(cls, v: Path | str) -> Path:
        return Path(v).expanduser().resolve()

    @field_validator("territory", "region_id", mode="before")
    @classmethod
    def _non_empty(cls, v) -> str:
        v2 = str(v).strip()
        if not v2:
            raise ValueError("territory/region_id no pueden ser vacíos")
        return v2

    @field_validator("years")
    @classmethod
    def _chronological(cls, v: Tuple[int, ...]) -> Tuple[int, ...]:
        if not v:
            raise ValueError("years no puede ser vacío")
        if any(b <= a for a, b in zip(v, v[1:])):
            raise ValueError(f"years debe ser estrictamente creciente: {v}")
        if v[0] < MIN_YEAR or v[-1] > MAX_YEAR:
            raise ValueError(f"years fuera de [{MIN_YEAR}, {MAX_YEAR}]")
        return v

    @field_validator("tile_size")
    @classmethod
    def _tile(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 1:
            raise ValueError("tile_size debe ser >= 1")
        return v

    @field_validator("max_workers")
    @classmethod
    def _workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_workers debe ser >= 1")
        return v

    @field_validator("input_patterns")
    @classmethod
    def _check_in(cls, d: Dict[str, str]) -> Dict[str, str]:
        _check_placeholders("input_patterns", d, INPUT_PLACEHOLDERS)
        return d

    @field_validator("output_patterns")
    @classmethod
    def _check_out(cls, d: Dict[str, str]) -> Dict[str, str]:
        _check_placeholders("output_patterns", d, OUTPUT_PLACEHOLDERS)
        return d

    @model_validator(mode="after")
    def _reference_in_years(self) -> "Settings":
        ref = self.spatial.reference_year
        if ref is not None and ref not in self.years:
            raise ValueError(f"spatial.reference_year={ref} no está en years")
        if self.nodata in self.frequency.class_ids:
            raise ValueError(f"nodata={self.nodata} coincide con una clase estable")
        return self

    # ----------------------------
    # Helpers puros (sin side-effects)
    # ----------------------------
    def _fmt(self, version: str, **fmt) -> dict:
        base = {"territory": self.territory, "region_id": self.region_id, "version": version}
        base.update(fmt)
        return base

    def in_path(self, key: str, **fmt) -> Path:
        pat = self.input_patterns[key]
        return (self.project_root / pat.format(**self._fmt(self.input_version, **fmt))).resolve()

    def out_path(self, key: str, **fmt) -> Path:
        """Resuelve patrón de salida (no crea carpetas)."""
        pat = self.output_patterns[key]
        fmt.setdefault("step", key)
        return (self.project_root / pat.format(**self._fmt(self.output_version, **fmt))).resolve()


def _iter_placeholders(fmt: str) -> Iterator[str]:
    for _, name, _, _ in Formatter().parse(fmt):
        if name:
            yield name


def _check_placeholders(field: str, d: Dict[str, str], allowed_map: Mapping[str, Tuple[str, ...]]) -> None:
    for k, pat in d.items():
        allowed = set(allowed_map.get(k, ()))
        unknown = set(_iter_placeholders(pat)) - allowed
        if unknown:
            raise ValueError(f"{field}[{k}] usa placeholders no permitidos: {sorted(unknown)}")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Instancia cacheada. Úsala SOLO desde composition/di.py o CLI.
    Prohibido usarla en services/ (dominio). Para tests, recuerda limpiar:
        get_settings.cache_clear()
    """
    return Settings()
