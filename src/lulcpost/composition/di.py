from __future__ import annotations
from pathlib import Path
from typing import Optional, Sequence

import yaml
from pydantic import ValidationError

from ..adapters.geotiff_stack_store import GeoTiffStackStore
from ..adapters.numpy_raster_ops import NumpyRasterOps
from ..config import Settings
from ..contracts.core import PIPELINE_ORDER, ProcessingStep
from ..contracts.errors import ConfigurationError
from ..ports.stack_store import StackStorePort
from ..services.pipeline_service import PipelineSpec, PostClassificationPipeline
from ..services.spatial_filter_service import SpatialFilterService

CONFIG_FILE = Path("00-Config") / "settings.yaml"


def load_settings_from_yaml(path: Path, **defaults) -> Settings:
    """Los valores del YAML tienen prioridad sobre `defaults`."""
    loaded = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(loaded, dict):
        raise ConfigurationError(f"{path}: se esperaba un mapeo YAML")
    data = {**defaults, **loaded}
    try:
        return Settings(**data)
    except ValidationError as ex:
        raise ConfigurationError(f"{path}: configuración inválida\n{ex}") from ex


def build_settings(project_root: Path) -> Settings:
    cfg = (project_root / CONFIG_FILE).resolve()
    if cfg.exists():
        return load_settings_from_yaml(cfg, project_root=project_root)
    try:
        return Settings(project_root=project_root)
    except ValidationError as ex:
        raise ConfigurationError(f"configuración inválida\n{ex}") from ex


def build_pipeline(settings: Settings, store: Optional[StackStorePort] = None) -> PostClassificationPipeline:
    ops = NumpyRasterOps(tile_size=settings.tile_size, max_workers=settings.max_workers)
    return PostClassificationPipeline(
        store=store if store is not None else GeoTiffStackStore(),
        spatial=SpatialFilterService(ops=ops),
    )


def build_pipeline_spec(
    settings: Settings,
    steps: Sequence[ProcessingStep] = PIPELINE_ORDER,
    *,
    declared_years: bool = True,
) -> PipelineSpec:
    return PipelineSpec(
        territory=settings.territory,
        region_id=settings.region_id,
        version=settings.output_version,
        steps=tuple(steps),
        years=settings.years if declared_years else None,
        collection_id=settings.collection_id,
        input_version=settings.input_version,
        gap_fill=settings.gap_fill,
        frequency=settings.frequency,
        spatial=settings.spatial,
    )
