from __future__ import annotations

from types import MappingProxyType
from typing import Mapping

import numpy as np
from pydantic import BaseModel, ConfigDict, field_validator

from .core import ProcessingStep
from .errors import ShapeMismatchError
from .stack import ClassStack


class StageReport(BaseModel):
    """
    Resumen de cambios de una etapa: cuántos píxel-año cambiaron de valor
    (incluye nodata -> clase y clase -> nodata).
    """
    model_config = ConfigDict(frozen=True)

    step: ProcessingStep
    total: int
    changed: int
    changed_per_year: Mapping[int, int]

    @field_validator("changed_per_year")
    @classmethod
    def _freeze(cls, v: Mapping[int, int]) -> Mapping[int, int]:
        return MappingProxyType({int(k): int(n) for k, n in dict(v).items()})

    @property
    def pct_changed(self) -> float:
        if self.total <= 0:
            return 0.0
        return 100.0 * self.changed / float(self.total)

    @classmethod
    def compare(cls, step: ProcessingStep, before: ClassStack, after: ClassStack) -> "StageReport":
        if before.data.shape != after.data.shape or before.years != after.years:
            raise ShapeMismatchError("no se pueden comparar stacks de geometría distinta")
        diff = before.data != after.data
        per_year = diff.reshape(diff.shape[0], -1).sum(axis=1)
        return cls(
            step=step,
            total=int(diff.size),
            changed=int(np.count_nonzero(diff)),
            changed_per_year={y: int(n) for y, n in zip(before.years, per_year)},
        )

    def summary(self) -> str:
        return f"{self.step.value}: {self.changed}/{self.total} píxel-año modificados ({self.pct_changed:.2f}%)"


__all__ = ["StageReport"]
