# src/lulcpost/services/stable_map_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from ..contracts.geo import GeoRaster
from ..contracts.stack import ClassStack

logger = logging.getLogger(__name__)


@dataclass
class StableMapService:
    """
    Mapa estable: píxeles que mantienen una única clase en toda la serie
    (ignorando años nodata). Se usa como fuente de muestras de entrenamiento.
    """

    def count_distinct(self, stack: ClassStack) -> np.ndarray:
        """Número de clases distintas (no nodata) por píxel, (H, W) int32."""
        data = stack.data
        n = np.zeros((stack.height, stack.width), dtype=np.int32)
        for v in np.unique(data):
            if v == stack.nodata:
                continue
            n += np.any(data == v, axis=0)
        return n

    def stable_map(self, stack: ClassStack) -> GeoRaster:
        n = self.count_distinct(stack)
        valid = stack.valid_mask()
        # primer año válido de cada píxel (todos iguales si n == 1)
        first = np.argmax(valid, axis=0)
        value = np.take_along_axis(stack.data, first[np.newaxis], axis=0)[0]
        out = np.where(n == 1, value, stack.nodata).astype(stack.data.dtype)
        logger.info("stable_map: %d píxeles estables de %d", int(np.count_nonzero(n == 1)), n.size)
        return GeoRaster(out, stack.profile.with_count(1).with_nodata(stack.nodata))


__all__ = ["StableMapService"]
