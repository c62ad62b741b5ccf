# src/lulcpost/ports/raster_ops.py
from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np

from ..contracts.specs import KernelType


@runtime_checkable
class RasterOpsPort(Protocol):
    """
    Primitivas por banda (H, W) que consumen los filtros espaciales.
    Reglas:
      - nunca mutan la entrada; devuelven arrays nuevos del mismo shape.
      - las vecindades se calculan con los píxeles vecinos reales (sin
        recortes por tile); fuera del raster no hay vecinos.
    """
    def unmask(self, band: np.ndarray, nodata: int, fill: int = 0) -> np.ndarray: ...
    def focal_mode(self, band: np.ndarray, radius: int, kernel: KernelType = "square") -> np.ndarray: ...
    def connected_pixel_count(self, band: np.ndarray, max_size: int, eight_connected: bool = False) -> np.ndarray: ...
    def where(self, condition: np.ndarray, value: np.ndarray, base: np.ndarray) -> np.ndarray: ...
    def update_mask(self, band: np.ndarray, keep: np.ndarray, nodata: int) -> np.ndarray: ...

__all__ = ["RasterOpsPort"]
