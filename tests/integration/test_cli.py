import numpy as np
import pytest

rasterio = pytest.importorskip("rasterio")

from lulcpost.adapters.geotiff_stack_store import GeoTiffStackStore
from lulcpost.cli import main
from lulcpost.contracts.core import ProcessingStep, Provenance
from tests.factories import make_stack

pytestmark = pytest.mark.integration


def _write_input(root, years=(2000, 2001, 2002)):
    data = np.full((len(years), 10, 10), 3, dtype=np.uint8)
    data[0, :, :4] = 0
    data[:, 5, 5] = 21
    uri = root / "01-Classification" / "SURINAME_1_5.tif"
    GeoTiffStackStore().write(str(uri), make_stack(data, years=years))
    cfg = root / "00-Config"
    cfg.mkdir(parents=True, exist_ok=True)
    (cfg / "settings.yaml").write_text(
        "years: [" + ", ".join(str(y) for y in years) + "]\n"
        f"spatial:\n  reference_year: {years[len(years) // 2]}\n",
        encoding="utf-8",
    )
    return uri


def test_run_all_steps_with_default_paths(tmp_path, capsys):
    _write_input(tmp_path)
    assert main(["--root", str(tmp_path), "run"]) == 0
    out = tmp_path / "02-Post" / "spatial_filter" / "SURINAME_1_5.tif"
    st = GeoTiffStackStore().read(str(out))
    assert st.meta.step is ProcessingStep.SPATIAL_FILTER
    assert (st.data == 3).all()
    assert str(out.resolve()) in capsys.readouterr().out


def test_single_step_chain(tmp_path):
    _write_input(tmp_path)
    root = str(tmp_path)
    assert main(["--root", root, "gapfill"]) == 0
    assert main(["--root", root, "--input-version", "6", "spatial", "--after", "gapfill"]) == 1  # no existe gapfill v6
    assert main(["--root", root, "--input-version", "5", "--version", "5", "spatial", "--after", "gapfill"]) == 0
    assert (tmp_path / "02-Post" / "spatial_filter" / "SURINAME_1_5.tif").exists()


def test_stable_map_command(tmp_path):
    _write_input(tmp_path)
    out = tmp_path / "stable.tif"
    assert main(["--root", str(tmp_path), "stable-map", "-o", str(out)]) == 0
    with rasterio.open(out) as ds:
        meta = Provenance.from_tags(ds.tags())
    assert meta.step is ProcessingStep.STABLE_MAP
    assert (meta.territory, meta.version, meta.input_version) == ("SURINAME", "5", "5")


def test_stable_map_rejects_invalid_version(tmp_path, capsys):
    _write_input(tmp_path)
    out = tmp_path / "stable.tif"
    assert main(["--root", str(tmp_path), "--version", "v5", "stable-map", "-o", str(out)]) == 1
    assert not out.exists()
    assert "[ERROR]" in capsys.readouterr().err


def test_errors_return_1(tmp_path, capsys):
    assert main(["--root", str(tmp_path), "run", "-i", str(tmp_path / "missing.tif")]) == 1
    assert "[ERROR]" in capsys.readouterr().err
