# src/lulcpost/services/spatial_filter_service.py
from __future__ import annotations

"""
Filtro espacial: elimina píxeles aislados o de borde por debajo de la unidad
mínima de mapeo (`min_area` píxeles conectados).

Por año y por pasada:
  1) nodata -> 0 (centinela) para que la vecindad esté bien definida
  2) moda focal en ventana de radio `radius`
  3) tamaño de la región conexa del mismo valor (topado en `max_size`)
  4) tamaño <= min_area -> toma la moda; el resto conserva su valor
  5) valor final 0 -> nodata
La pasada n lee la salida completa de la pasada n-1.

Relleno final: la banda del año de referencia define qué píxeles siguen
vacíos; en esos píxeles, cada año que también esté vacío toma su moda
focal de radio `fill_radius`.
"""

import logging
from dataclasses import dataclass, field
from typing import Tuple

import numpy as np

from ..adapters.numpy_raster_ops import NumpyRasterOps
from ..contracts.core import ProcessingStep
from ..contracts.errors import ConfigurationError, MissingReferenceError
from ..contracts.products import StageReport
from ..contracts.specs import SpatialFilterSpec
from ..contracts.stack import ClassStack
from ..ports.raster_ops import RasterOpsPort

logger = logging.getLogger(__name__)

SENTINEL = 0


@dataclass
class SpatialFilterService:
    ops: RasterOpsPort = field(default_factory=NumpyRasterOps)

    # --------- API principal ---------
    def apply(self, stack: ClassStack, spec: SpatialFilterSpec = SpatialFilterSpec()) -> ClassStack:
        out, _ = self.apply_with_report(stack, spec)
        return out

    def apply_with_report(
        self, stack: ClassStack, spec: SpatialFilterSpec = SpatialFilterSpec()
    ) -> Tuple[ClassStack, StageReport]:
        ref_year = self.reference_year(stack, spec)
        nd = stack.nodata

        current = stack.data
        for n in range(spec.passes):
            current = self._denoise_pass(current, nd, spec)
            logger.debug("spatial: pasada %d/%d completa", n + 1, spec.passes)

        if spec.fill_radius > 0:
            current = self._fill_holes(current, stack.index_of(ref_year), nd, spec)
            logger.debug("spatial: relleno final con referencia %d (radio %d)", ref_year, spec.fill_radius)

        out = stack.with_data(current)
        report = StageReport.compare(ProcessingStep.SPATIAL_FILTER, stack, out)
        logger.info(report.summary())
        return out, report

    @staticmethod
    def reference_year(stack: ClassStack, spec: SpatialFilterSpec) -> int:
        if stack.n_years == 0:
            raise MissingReferenceError("stack sin bandas: no hay año de referencia")
        if spec.reference_year is None:
            return stack.years[stack.n_years // 2]
        if int(spec.reference_year) not in stack.years:
            raise MissingReferenceError(
                f"año de referencia {spec.reference_year} ausente del stack {stack.years}"
            )
        return int(spec.reference_year)

    # --------- Fases internas ---------
    def denoise_band(self, band: np.ndarray, nodata: int, spec: SpatialFilterSpec) -> np.ndarray:
        """Una pasada sobre una banda (H, W)."""
        b0 = self.ops.unmask(band, nodata, SENTINEL)
        mode = self.ops.focal_mode(b0, spec.radius, spec.kernel)
        conn = self.ops.connected_pixel_count(b0, spec.max_size, spec.eight_connected)
        blended = self.ops.where(conn <= spec.min_area, mode, b0)
        return self.ops.update_mask(blended, blended != SENTINEL, nodata)

    def _denoise_pass(self, data: np.ndarray, nodata: int, spec: SpatialFilterSpec) -> np.ndarray:
        if nodata != SENTINEL and np.any(data == SENTINEL):
            raise ConfigurationError(
                f"la clase {SENTINEL} está reservada como centinela del filtro espacial"
            )
        out = np.empty_like(data)
        for i in range(data.shape[0]):
            out[i] = self.denoise_band(data[i], nodata, spec)
        return out

    def _fill_holes(self, data: np.ndarray, ref_idx: int, nodata: int, spec: SpatialFilterSpec) -> np.ndarray:
        holes = self.ops.unmask(data[ref_idx], nodata, SENTINEL) == SENTINEL
        out = np.empty_like(data)
        for i in range(data.shape[0]):
            b0 = self.ops.unmask(data[i], nodata, SENTINEL)
            mode = self.ops.focal_mode(b0, spec.fill_radius, "square")
            # sólo se rellenan píxeles vacíos; una clase válida del año se conserva
            filled = self.ops.where(holes & (b0 == SENTINEL), mode, b0)
            out[i] = self.ops.update_mask(filled, filled != SENTINEL, nodata)
        return out


__all__ = ["SpatialFilterService", "SENTINEL"]
