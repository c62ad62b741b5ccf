# src/lulcpost/adapters/numpy_raster_ops.py
from __future__ import annotations

"""
RasterOpsPort sobre numpy + scipy.ndimage.

- focal_mode: moda en ventana (cuadrada o circular). Empates -> el valor de
  clase más bajo. Fuera del raster no hay vecinos (no se rellena con nada).
- connected_pixel_count: tamaño de la región 4/8-conexa del mismo valor,
  topado en `max_size`.

Tiling opcional (`tile_size`): cada tile se calcula sobre una ventana con
halo (radio para la moda, `max_size` para el conteo) y se conserva el núcleo.
El resultado es idéntico al cálculo sin tiles.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Iterator, Optional, Tuple

import numpy as np
from scipy import ndimage

from ..contracts.specs import KernelType
from ..ports.raster_ops import RasterOpsPort

logger = logging.getLogger(__name__)

Window = Tuple[int, int, int, int]  # r0, r1, c0, c1


def _footprint(radius: int, kernel: KernelType) -> np.ndarray:
    size = 2 * radius + 1
    if kernel == "square":
        return np.ones((size, size), dtype=np.int32)
    yy, xx = np.mgrid[-radius:radius + 1, -radius:radius + 1]
    return (xx * xx + yy * yy <= radius * radius).astype(np.int32)


def _focal_mode_core(band: np.ndarray, radius: int, kernel: KernelType) -> np.ndarray:
    fp = _footprint(radius, kernel)
    best_val = np.zeros_like(band)
    best_cnt = np.full(band.shape, -1, dtype=np.int32)
    # np.unique ordena ascendente: con '>' estricto el empate queda en el menor
    for v in np.unique(band):
        cnt = ndimage.correlate((band == v).astype(np.int32), fp, mode="constant", cval=0)
        better = cnt > best_cnt
        best_val[better] = v
        best_cnt[better] = cnt[better]
    return best_val


def _connected_count_core(band: np.ndarray, max_size: int, eight_connected: bool) -> np.ndarray:
    structure = ndimage.generate_binary_structure(2, 2 if eight_connected else 1)
    out = np.zeros(band.shape, dtype=np.int32)
    for v in np.unique(band):
        labels, n = ndimage.label(band == v, structure=structure)
        if n == 0:
            continue
        sizes = np.bincount(labels.ravel())
        m = labels > 0
        out[m] = sizes[labels[m]]
    return np.minimum(out, max_size)


def _windows(h: int, w: int, tile: int) -> Iterator[Window]:
    for r0 in range(0, h, tile):
        for c0 in range(0, w, tile):
            yield r0, min(r0 + tile, h), c0, min(c0 + tile, w)


@dataclass(frozen=True)
class NumpyRasterOps(RasterOpsPort):
    tile_size: Optional[int] = None     # None -> banda completa
    max_workers: int = 1

    def __post_init__(self):
        if self.tile_size is not None and self.tile_size < 1:
            raise ValueError(f"tile_size debe ser >= 1: {self.tile_size}")
        if self.max_workers < 1:
            raise ValueError(f"max_workers debe ser >= 1: {self.max_workers}")

    # --------------- tiling ---------------
    def _run_tiled(self, fn: Callable[[np.ndarray], np.ndarray], band: np.ndarray, halo: int) -> np.ndarray:
        h, w = band.shape
        tile = self.tile_size
        if tile is None or (h <= tile and w <= tile):
            return fn(band)

        def work(win: Window) -> Tuple[Window, np.ndarray]:
            r0, r1, c0, c1 = win
            R0, R1 = max(0, r0 - halo), min(h, r1 + halo)
            C0, C1 = max(0, c0 - halo), min(w, c1 + halo)
            res = fn(band[R0:R1, C0:C1])
            return win, res[r0 - R0:r1 - R0, c0 - C0:c1 - C0]

        wins = list(_windows(h, w, tile))
        logger.debug("tiling %dx%d en %d tiles (halo=%d, workers=%d)", h, w, len(wins), halo, self.max_workers)
        if self.max_workers > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as ex:
                parts = list(ex.map(work, wins))
        else:
            parts = [work(win) for win in wins]

        out = np.empty(band.shape, dtype=parts[0][1].dtype)
        for (r0, r1, c0, c1), part in parts:
            out[r0:r1, c0:c1] = part
        return out

    # --------------- RasterOpsPort ---------------
    def unmask(self, band: np.ndarray, nodata: int, fill: int = 0) -> np.ndarray:
        return np.where(band == nodata, fill, band).astype(band.dtype, copy=False)

    def focal_mode(self, band: np.ndarray, radius: int, kernel: KernelType = "square") -> np.ndarray:
        if band.ndim != 2:
            raise ValueError(f"focal_mode espera banda 2D; llegó ndim={band.ndim}")
        if radius < 1:
            return band.copy()
        return self._run_tiled(lambda b: _focal_mode_core(b, radius, kernel), band, halo=radius)

    def connected_pixel_count(self, band: np.ndarray, max_size: int, eight_connected: bool = False) -> np.ndarray:
        if band.ndim != 2:
            raise ValueError(f"connected_pixel_count espera banda 2D; llegó ndim={band.ndim}")
        return self._run_tiled(
            lambda b: _connected_count_core(b, max_size, eight_connected), band, halo=max_size
        )

    def where(self, condition: np.ndarray, value: np.ndarray, base: np.ndarray) -> np.ndarray:
        return np.where(condition, value, base).astype(base.dtype, copy=False)

    def update_mask(self, band: np.ndarray, keep: np.ndarray, nodata: int) -> np.ndarray:
        return np.where(keep, band, nodata).astype(band.dtype, copy=False)


__all__ = ["NumpyRasterOps"]
