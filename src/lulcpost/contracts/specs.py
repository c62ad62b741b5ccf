# src/lulcpost/contracts/specs.py
from __future__ import annotations

"""
Especificaciones (inmutables) de cada filtro. Se validan al construirse:
una configuración inválida nunca llega a procesar píxeles.
"""

from dataclasses import dataclass
from typing import Literal, Optional, Tuple

from .errors import ConfigurationError

FillOrder = Literal["forward_backward", "backward_forward"]
KernelType = Literal["square", "circle"]


@dataclass(frozen=True)
class GapFillSpec:
    order: FillOrder = "forward_backward"
    years: Optional[Tuple[int, ...]] = None   # None -> los años del stack

    def __post_init__(self):
        if self.order not in ("forward_backward", "backward_forward"):
            raise ConfigurationError(f"order inválido: {self.order!r}")
        if self.years is not None:
            ys = tuple(int(y) for y in self.years)
            if len(set(ys)) != len(ys):
                raise ConfigurationError(f"años duplicados: {ys}")
            object.__setattr__(self, "years", tuple(sorted(ys)))


@dataclass(frozen=True)
class StableClassRule:
    """Una clase estable y su umbral de persistencia (fracción de años)."""
    class_id: int
    threshold: float
    inclusive: bool = True          # True: freq >= umbral; False: freq > umbral
    name: Optional[str] = None

    def __post_init__(self):
        if int(self.class_id) < 0:
            raise ConfigurationError(f"class_id negativo: {self.class_id}")
        if not 0.0 <= float(self.threshold) <= 1.0:
            raise ConfigurationError(
                f"umbral de clase {self.class_id} fuera de [0, 1]: {self.threshold}"
            )

    def matches(self, freq_pct):
        """`freq_pct` en porcentaje (0–100); acepta escalares o arrays."""
        limit = round(100.0 * float(self.threshold), 9)
        return freq_pct >= limit if self.inclusive else freq_pct > limit


@dataclass(frozen=True)
class FrequencySpec:
    """
    Reglas en orden de evaluación. Si varias se cumplen gana la ÚLTIMA
    (sobrescritura secuencial), no la de mayor frecuencia.
    """
    rules: Tuple[StableClassRule, ...] = ()
    aggregate_threshold: float = 0.9

    def __post_init__(self):
        object.__setattr__(self, "rules", tuple(self.rules))
        if not 0.0 <= float(self.aggregate_threshold) <= 1.0:
            raise ConfigurationError(
                f"aggregate_threshold fuera de [0, 1]: {self.aggregate_threshold}"
            )
        ids = [int(r.class_id) for r in self.rules]
        dup = sorted({i for i in ids if ids.count(i) > 1})
        if dup:
            raise ConfigurationError(f"clases estables duplicadas: {dup}")

    @property
    def class_ids(self) -> Tuple[int, ...]:
        return tuple(int(r.class_id) for r in self.rules)

    @classmethod
    def native_vegetation(cls) -> "FrequencySpec":
        """Bosque, humedal y pastizal nativo (colección Surinam)."""
        return cls(
            rules=(
                StableClassRule(3, 0.75, name="forest"),
                StableClassRule(11, 0.60, name="wetland"),
                StableClassRule(12, 0.50, inclusive=False, name="grassland"),
            ),
            aggregate_threshold=0.90,
        )


@dataclass(frozen=True)
class SpatialFilterSpec:
    radius: int = 1                 # 1 -> ventana 3x3
    kernel: KernelType = "square"
    min_area: int = 6               # unidad mínima de mapeo (píxeles conectados)
    max_size: int = 100             # tope del conteo de píxeles conectados
    eight_connected: bool = False
    passes: int = 2
    fill_radius: int = 4            # 0 desactiva el relleno final
    reference_year: Optional[int] = None   # None -> año central del stack

    def __post_init__(self):
        if self.radius < 1:
            raise ConfigurationError(f"radius debe ser >= 1: {self.radius}")
        if self.kernel not in ("square", "circle"):
            raise ConfigurationError(f"kernel inválido: {self.kernel!r}")
        if self.min_area < 0:
            raise ConfigurationError(f"min_area negativo: {self.min_area}")
        if self.max_size <= self.min_area:
            raise ConfigurationError(
                f"max_size ({self.max_size}) debe superar min_area ({self.min_area})"
            )
        if self.passes < 1:
            raise ConfigurationError(f"passes debe ser >= 1: {self.passes}")
        if self.fill_radius < 0:
            raise ConfigurationError(f"fill_radius negativo: {self.fill_radius}")


__all__ = [
    "GapFillSpec",
    "StableClassRule",
    "FrequencySpec",
    "SpatialFilterSpec",
    "FillOrder",
    "KernelType",
]
