# src/lulcpost/services/frequency_service.py
from __future__ import annotations

"""
Filtro de frecuencia: estabiliza píxeles dominados por clases nativas.

Por píxel:
  freq(c)   = 100 * (años con clase c) / (total de años)
  aggregate = Σ freq(c) sobre las clases estables
Si aggregate >= umbral agregado, las reglas se evalúan en el orden
configurado y cada regla cumplida sobrescribe la clase objetivo (gana la
última). Con objetivo definido, TODA la serie del píxel pasa a esa clase.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from ..contracts.core import ProcessingStep
from ..contracts.errors import ConfigurationError
from ..contracts.products import StageReport
from ..contracts.specs import FrequencySpec
from ..contracts.stack import ClassStack

logger = logging.getLogger(__name__)

# redondeo de umbrales en porcentaje (0.6 * 100 -> 60.00000000000001)
_PCT_DIGITS = 9


def class_frequency(stack: ClassStack, class_id: int) -> np.ndarray:
    """Frecuencia (%) de `class_id` en la serie de cada píxel, (H, W) float64."""
    counts = np.count_nonzero(stack.data == class_id, axis=0)
    return 100.0 * counts / stack.n_years


@dataclass
class FrequencyFilterService:

    def apply(self, stack: ClassStack, spec: FrequencySpec) -> ClassStack:
        out, _ = self.apply_with_report(stack, spec)
        return out

    def apply_with_report(self, stack: ClassStack, spec: FrequencySpec) -> Tuple[ClassStack, StageReport]:
        self._check_dtype(stack, spec)
        if not spec.rules or stack.n_years == 0:
            out = stack.with_data(np.array(stack.data, copy=True))
            return out, StageReport.compare(ProcessingStep.FREQUENCY_FILTER, stack, out)

        data = stack.data
        counts = [np.count_nonzero(data == r.class_id, axis=0) for r in spec.rules]
        aggregate = np.round(100.0 * np.sum(counts, axis=0) / stack.n_years, _PCT_DIGITS)
        eligible = aggregate >= round(100.0 * spec.aggregate_threshold, _PCT_DIGITS)
        logger.debug("frequency: %d píxeles superan el umbral agregado", int(np.count_nonzero(eligible)))

        target = np.zeros(eligible.shape, dtype=data.dtype)
        has_target = np.zeros(eligible.shape, dtype=bool)
        for rule, cnt in zip(spec.rules, counts):
            freq = np.round(100.0 * cnt / stack.n_years, _PCT_DIGITS)
            hit = eligible & rule.matches(freq)
            # sobrescritura secuencial: la última regla cumplida gana
            target[hit] = rule.class_id
            has_target |= hit

        out_data = np.where(has_target[np.newaxis], target[np.newaxis], data).astype(data.dtype, copy=False)
        out = stack.with_data(out_data)
        report = StageReport.compare(ProcessingStep.FREQUENCY_FILTER, stack, out)
        logger.info(report.summary())
        return out, report

    @staticmethod
    def _check_dtype(stack: ClassStack, spec: FrequencySpec) -> None:
        info = np.iinfo(stack.data.dtype)
        for cid in spec.class_ids:
            if not info.min <= cid <= info.max:
                raise ConfigurationError(f"clase {cid} no cabe en dtype {stack.data.dtype}")
            if cid == stack.nodata:
                raise ConfigurationError(f"clase estable {cid} coincide con nodata")


__all__ = ["FrequencyFilterService", "class_frequency"]
