# src/lulcpost/services/pipeline_service.py
from __future__ import annotations

"""
Orquestador de post-clasificación (contracts-first).
Pipeline determinista:
  LOAD → VALIDATE (años vs bandas) → GAPFILL → FREQUENCY → SPATIAL → TAG → (WRITE)

Cada paso puede correr solo contra un stack intermedio ya exportado.
No usa Settings ni calcula rutas: el llamador entrega URIs explícitas.
Los errores de cualquier etapa se propagan sin escribir nada.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Sequence, Tuple

from pydantic import ValidationError

from ..contracts.core import PIPELINE_ORDER, ProcessingStep, Provenance
from ..contracts.errors import ConfigurationError, ShapeMismatchError
from ..contracts.products import StageReport
from ..contracts.specs import FrequencySpec, GapFillSpec, SpatialFilterSpec
from ..contracts.stack import ClassStack
from ..ports.stack_store import StackStorePort
from .frequency_service import FrequencyFilterService
from .gap_fill_service import GapFillService
from .spatial_filter_service import SpatialFilterService

logger = logging.getLogger(__name__)


# ----------------------
# Especificaciones / DTOs
# ----------------------

@dataclass(frozen=True)
class PipelineSpec:
    territory: str
    region_id: str
    version: str
    steps: Tuple[ProcessingStep, ...] = PIPELINE_ORDER
    years: Optional[Tuple[int, ...]] = None      # años declarados de la entrada
    collection_id: float = 1.0
    input_version: Optional[str] = None
    gap_fill: GapFillSpec = GapFillSpec()
    frequency: FrequencySpec = FrequencySpec()
    spatial: SpatialFilterSpec = SpatialFilterSpec()

    def __post_init__(self):
        try:
            steps = tuple(ProcessingStep(s) for s in self.steps)
        except ValueError as ex:
            raise ConfigurationError(f"paso desconocido en {self.steps!r}") from ex
        if not steps:
            raise ConfigurationError("no hay pasos que ejecutar")
        bad = [s.value for s in steps if s not in PIPELINE_ORDER]
        if bad:
            raise ConfigurationError(f"pasos no encadenables en el pipeline: {bad}")
        if len(set(steps)) != len(steps):
            raise ConfigurationError(f"pasos duplicados: {[s.value for s in steps]}")
        # orden canónico, independiente de cómo se pidieron
        object.__setattr__(self, "steps", tuple(s for s in PIPELINE_ORDER if s in steps))
        if self.years is not None:
            object.__setattr__(self, "years", tuple(int(y) for y in self.years))
        # metadatos inválidos se detectan antes de procesar píxeles
        try:
            self.provenance()
        except ValidationError as ex:
            raise ConfigurationError(f"procedencia inválida: {ex}") from ex

    def provenance(self) -> Provenance:
        return Provenance(
            territory=self.territory,
            region_id=self.region_id,
            version=self.version,
            step=self.final_step,
            collection_id=self.collection_id,
            input_version=self.input_version,
        )

    @property
    def final_step(self) -> ProcessingStep:
        return self.steps[-1]


@dataclass(frozen=True)
class PipelineResult:
    stack: ClassStack
    reports: Tuple[StageReport, ...]
    out_uri: Optional[str] = None


# ----------------------
# Servicio
# ----------------------

@dataclass
class PostClassificationPipeline:
    store: Optional[StackStorePort] = None
    gap_fill: GapFillService = field(default_factory=GapFillService)
    frequency: FrequencyFilterService = field(default_factory=FrequencyFilterService)
    spatial: SpatialFilterService = field(default_factory=SpatialFilterService)

    # --------- API principal ---------
    def run(self, stack: ClassStack, spec: PipelineSpec) -> PipelineResult:
        stack = self._validate_years(stack, spec)
        stages: Dict[ProcessingStep, Callable[[ClassStack], Tuple[ClassStack, StageReport]]] = {
            ProcessingStep.GAPFILL: lambda s: self.gap_fill.fill_with_report(s, spec.gap_fill),
            ProcessingStep.FREQUENCY_FILTER: lambda s: self.frequency.apply_with_report(s, spec.frequency),
            ProcessingStep.SPATIAL_FILTER: lambda s: self.spatial.apply_with_report(s, spec.spatial),
        }
        reports: list[StageReport] = []
        current = stack
        for step in spec.steps:
            logger.info("etapa %s: %d años, %dx%d", step.value, current.n_years, current.height, current.width)
            current, rep = stages[step](current)
            reports.append(rep)

        return PipelineResult(stack=current.tag(spec.provenance()), reports=tuple(reports))

    def run_uri(self, in_uri: str, out_uri: Optional[str], spec: PipelineSpec) -> PipelineResult:
        if self.store is None:
            raise RuntimeError("StackStorePort no configurado")
        stack = self.store.read(in_uri)
        if stack.meta is not None:
            logger.info("entrada %s: paso previo %s (v%s)", in_uri, stack.meta.step.value, stack.meta.version)
        res = self.run(stack, spec)
        if out_uri is None:
            return res
        written = self.store.write(out_uri, res.stack)
        logger.info("salida escrita en %s", written)
        return PipelineResult(stack=res.stack, reports=res.reports, out_uri=written)

    # --------- Fases internas ---------
    @staticmethod
    def _validate_years(stack: ClassStack, spec: PipelineSpec) -> ClassStack:
        declared = spec.years
        if declared is None:
            return stack
        if ProcessingStep.GAPFILL in spec.steps:
            # el gapfill admite años sin banda: se insertan vacíos
            return stack.reindex(declared)
        if len(declared) != stack.n_years:
            raise ShapeMismatchError(
                f"{len(declared)} años declarados pero la entrada tiene {stack.n_years} bandas"
            )
        if tuple(declared) != stack.years:
            raise ShapeMismatchError(f"años declarados {declared} != años del stack {stack.years}")
        return stack


def resolve_steps(names: Sequence[str]) -> Tuple[ProcessingStep, ...]:
    """Nombres de CLI/config -> pasos (acepta 'frequency' y 'spatial' como alias)."""
    alias = {"frequency": "frequency_filter", "spatial": "spatial_filter", "gap_fill": "gapfill"}
    out = []
    for n in names:
        key = alias.get(n.strip().lower(), n.strip().lower())
        try:
            out.append(ProcessingStep(key))
        except ValueError:
            raise ConfigurationError(f"paso desconocido: {n!r}") from None
    return tuple(out)


__all__ = [
    "PipelineSpec",
    "PipelineResult",
    "PostClassificationPipeline",
    "resolve_steps",
]
