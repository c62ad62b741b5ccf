# src/lulcpost/services/gap_fill_service.py
from __future__ import annotations

"""
Relleno temporal de huecos (nodata) por píxel.

  1) pasada hacia adelante: cada hueco hereda el último valor válido anterior
  2) pasada hacia atrás sobre el resultado de (1): los huecos iniciales
     heredan el primer valor válido posterior

Un píxel sin ningún año válido queda todo nodata. Los píxeles son
independientes entre sí; sólo el eje temporal es secuencial.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from ..contracts.core import ProcessingStep
from ..contracts.products import StageReport
from ..contracts.specs import GapFillSpec
from ..contracts.stack import ClassStack

logger = logging.getLogger(__name__)


def forward_fill(data: np.ndarray, nodata: int) -> np.ndarray:
    """(T, H, W): cada hueco toma el valor (ya rellenado) del año anterior."""
    out = np.array(data, copy=True)
    for t in range(1, out.shape[0]):
        gap = out[t] == nodata
        out[t][gap] = out[t - 1][gap]
    return out


def backward_fill(data: np.ndarray, nodata: int) -> np.ndarray:
    return forward_fill(data[::-1], nodata)[::-1].copy()


@dataclass
class GapFillService:

    def fill(self, stack: ClassStack, spec: GapFillSpec = GapFillSpec()) -> ClassStack:
        out, _ = self.fill_with_report(stack, spec)
        return out

    def fill_with_report(self, stack: ClassStack, spec: GapFillSpec = GapFillSpec()) -> Tuple[ClassStack, StageReport]:
        src = stack.reindex(spec.years) if spec.years is not None else stack
        if src.n_years != stack.n_years:
            logger.info("gapfill: %d año(s) sin banda insertados como nodata", src.n_years - stack.n_years)

        nd = src.nodata
        if spec.order == "forward_backward":
            data = backward_fill(forward_fill(src.data, nd), nd)
        else:
            data = forward_fill(backward_fill(src.data, nd), nd)

        out = src.with_data(data)
        report = StageReport.compare(ProcessingStep.GAPFILL, src, out)
        logger.info(report.summary())
        return out, report


__all__ = ["GapFillService", "forward_fill", "backward_fill"]
