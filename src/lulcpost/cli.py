# src/lulcpost/cli.py
from __future__ import annotations

"""
CLI de post-clasificación multi-anual (contracts-first, minimal).

Comandos principales:
  - run: encadena gapfill → frequency_filter → spatial_filter (o un subconjunto).
  - gapfill / frequency / spatial: un paso suelto contra un stack intermedio.
  - stable-map: mapa de píxeles con una única clase en toda la serie.

Ejemplos rápidos:
  python -m lulcpost.cli --root ./proyecto run
  python -m lulcpost.cli --root ./proyecto run --steps gapfill spatial
  python -m lulcpost.cli --root ./proyecto spatial -i ./gapfill.tif -o ./spatial.tif
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .adapters.geotiff_stack_store import GeoTiffStackStore
from .composition.di import build_pipeline, build_pipeline_spec, build_settings, load_settings_from_yaml
from .config import Settings
from .contracts.core import PIPELINE_ORDER, ProcessingStep, Provenance
from .services.pipeline_service import resolve_steps
from .services.stable_map_service import StableMapService

logger = logging.getLogger("lulcpost.cli")

# paso previo por defecto de cada paso suelto
_PREVIOUS: dict[ProcessingStep, Optional[ProcessingStep]] = {
    ProcessingStep.GAPFILL: None,
    ProcessingStep.FREQUENCY_FILTER: ProcessingStep.GAPFILL,
    ProcessingStep.SPATIAL_FILTER: ProcessingStep.FREQUENCY_FILTER,
}


# ----------------------
# Utilidades locales
# ----------------------

def _load_settings(args: argparse.Namespace) -> Settings:
    root = Path(args.root) if args.root else Path(".")
    if args.config:
        s = load_settings_from_yaml(Path(args.config), project_root=root)
    else:
        s = build_settings(root)
    upd: dict = {}
    if args.territory:
        upd["territory"] = args.territory
    if args.region:
        upd["region_id"] = args.region
    if args.version:
        upd["output_version"] = args.version
    if args.input_version:
        upd["input_version"] = args.input_version
    if upd:
        s = s.model_copy(update=upd)
    return s


def _default_input(s: Settings, first: ProcessingStep, after: Optional[str]) -> Path:
    prev = ProcessingStep(resolve_steps([after])[0]) if after else _PREVIOUS[first]
    if prev is None:
        return s.in_path("classification")
    return s.in_path("intermediate", step=prev.value)


def _run_steps(args: argparse.Namespace, steps: Sequence[ProcessingStep]) -> int:
    s = _load_settings(args)
    pipeline = build_pipeline(s)
    spec = build_pipeline_spec(s, steps)
    in_uri = Path(args.input) if args.input else _default_input(s, spec.steps[0], getattr(args, "after", None))
    out_uri = Path(args.out) if args.out else s.out_path(spec.final_step.value)
    logger.info("entrada %s → pasos %s", in_uri, ", ".join(st.value for st in spec.steps))
    res = pipeline.run_uri(str(in_uri), str(out_uri), spec)
    for rep in res.reports:
        print(rep.summary())
    print(res.out_uri)
    return 0


# ----------------------
# Comandos
# ----------------------

def cmd_run(args: argparse.Namespace) -> int:
    steps = resolve_steps(args.steps) if args.steps else PIPELINE_ORDER
    return _run_steps(args, steps)


def cmd_gapfill(args: argparse.Namespace) -> int:
    return _run_steps(args, (ProcessingStep.GAPFILL,))


def cmd_frequency(args: argparse.Namespace) -> int:
    return _run_steps(args, (ProcessingStep.FREQUENCY_FILTER,))


def cmd_spatial(args: argparse.Namespace) -> int:
    return _run_steps(args, (ProcessingStep.SPATIAL_FILTER,))


def cmd_stable_map(args: argparse.Namespace) -> int:
    s = _load_settings(args)
    store = GeoTiffStackStore()
    in_uri = Path(args.input) if args.input else s.in_path("classification")
    stack = store.read(str(in_uri))
    stable = StableMapService().stable_map(stack)
    out_uri = Path(args.out) if args.out else s.out_path(ProcessingStep.STABLE_MAP.value)
    meta = Provenance(
        territory=s.territory,
        region_id=s.region_id,
        version=s.output_version,
        step=ProcessingStep.STABLE_MAP,
        collection_id=s.collection_id,
        input_version=s.input_version,
    )
    print(store.write_band(str(out_uri), stable, tags=meta.as_tags()))
    return 0


# ----------------------
# Parser
# ----------------------

def _add_io(p: argparse.ArgumentParser) -> None:
    p.add_argument("-i", "--input", help="stack de entrada (si no, usa Settings.input_patterns)")
    p.add_argument("-o", "--out", help="ruta de salida (si no, usa Settings.output_patterns)")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="lulcpost", description="Post-clasificación multi-anual (gapfill, frecuencia, espacial)")
    p.add_argument("--root", help="project_root (sobre-escribe Settings.project_root)")
    p.add_argument("--config", help="settings.yaml explícito (si no, <root>/00-Config/settings.yaml)")
    p.add_argument("--territory", help="territorio (p.ej. SURINAME)")
    p.add_argument("--region", help="id de región")
    p.add_argument("--version", help="versión de salida")
    p.add_argument("--input-version", help="versión de entrada")
    p.add_argument("-v", "--verbose", action="store_true", help="logging DEBUG")
    sub = p.add_subparsers(dest="cmd", required=True)

    pr = sub.add_parser("run", help="encadena los pasos de post-clasificación")
    _add_io(pr)
    pr.add_argument("--steps", nargs="*", default=None, help="subconjunto: gapfill frequency spatial")
    pr.set_defaults(func=cmd_run)

    for name, func, hlp in (
        ("gapfill", cmd_gapfill, "rellena huecos temporales"),
        ("frequency", cmd_frequency, "estabiliza clases nativas por frecuencia"),
        ("spatial", cmd_spatial, "filtro espacial (área mínima + relleno)"),
    ):
        ps = sub.add_parser(name, help=hlp)
        _add_io(ps)
        ps.add_argument("--after", help="paso previo cuyo intermedio se usa como entrada")
        ps.set_defaults(func=func)

    pm = sub.add_parser("stable-map", help="mapa de píxeles estables (una sola clase)")
    _add_io(pm)
    pm.set_defaults(func=cmd_stable_map)

    return p


def main(argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return int(bool(args.func(args)))  # 0 si todo bien
    except KeyboardInterrupt:
        return 130
    except Exception as ex:
        logger.debug("traza completa", exc_info=True)
        print(f"[ERROR] {ex}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
