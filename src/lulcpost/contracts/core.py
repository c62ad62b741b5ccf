# src/lulcpost/contracts/core.py
from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Años de la serie (Landsat desde 1985; margen amplio hacia atrás)
MIN_YEAR = 1950
MAX_YEAR = 2100

BAND_PREFIX = "classification_"


def band_name(year: int) -> str:
    return f"{BAND_PREFIX}{int(year)}"


def year_from_band_name(name: str) -> int:
    if not name.startswith(BAND_PREFIX):
        raise ValueError(f"nombre de banda inválido: {name!r} (se espera '{BAND_PREFIX}<año>')")
    return int(name[len(BAND_PREFIX):])


# -------------------------
# Pasos de post-clasificación
# -------------------------
class ProcessingStep(str, Enum):
    GAPFILL = "gapfill"
    FREQUENCY_FILTER = "frequency_filter"
    SPATIAL_FILTER = "spatial_filter"
    STABLE_MAP = "stable_map"


# orden canónico de ejecución dentro de un mismo run
PIPELINE_ORDER: tuple[ProcessingStep, ...] = (
    ProcessingStep.GAPFILL,
    ProcessingStep.FREQUENCY_FILTER,
    ProcessingStep.SPATIAL_FILTER,
)


# -------------------------
# Procedencia de la salida
# -------------------------
# SemVer (1.2.0) o etiquetas cortas de colección ('5', '5a')
_VERSION_RE = re.compile(r"^(\d+\.\d+\.\d+|\d+[a-z]?)$")
_IDENT_RE = re.compile(r"^[A-Za-z0-9_\-]+$")


class Provenance(BaseModel):
    """Metadatos que acompañan al stack exportado. Inmutable."""
    model_config = ConfigDict(frozen=True)

    territory: str
    region_id: str
    version: str
    step: ProcessingStep
    collection_id: float = 1.0
    input_version: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("territory", "region_id")
    @classmethod
    def _ident(cls, v: str) -> str:
        v2 = str(v).strip()
        if not _IDENT_RE.match(v2):
            raise ValueError(f"identificador inválido: {v!r}")
        return v2

    @field_validator("version", "input_version")
    @classmethod
    def _version(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v2 = str(v).strip()
        if not _VERSION_RE.match(v2):
            raise ValueError(f"versión inválida: {v!r} (SemVer o '5', '5a')")
        return v2

    def as_tags(self) -> dict[str, str]:
        """Representación plana para tags de GeoTIFF."""
        tags = {
            "territory": self.territory,
            "region_id": self.region_id,
            "version": self.version,
            "step": self.step.value,
            "collection_id": f"{self.collection_id:g}",
            "created_at": self.created_at.isoformat(),
        }
        if self.input_version is not None:
            tags["input_version"] = self.input_version
        return tags

    @classmethod
    def from_tags(cls, tags: dict[str, str]) -> Optional["Provenance"]:
        if "step" not in tags:
            return None
        return cls(
            territory=tags["territory"],
            region_id=tags["region_id"],
            version=tags["version"],
            step=ProcessingStep(tags["step"]),
            collection_id=float(tags.get("collection_id", 1.0)),
            input_version=tags.get("input_version"),
            created_at=datetime.fromisoformat(tags["created_at"]) if "created_at" in tags else datetime.now(timezone.utc),
        )


__all__ = [
    "ProcessingStep",
    "PIPELINE_ORDER",
    "Provenance",
    "band_name",
    "year_from_band_name",
    "BAND_PREFIX",
    "MIN_YEAR",
    "MAX_YEAR",
]
