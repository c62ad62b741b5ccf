import pytest
from datetime import datetime, timezone
from pydantic import ValidationError
from lulcpost.contracts.core import Provenance, ProcessingStep, band_name, year_from_band_name

def test_band_names_roundtrip():
    assert band_name(2010) == "classification_2010"
    assert year_from_band_name("classification_2010") == 2010
    with pytest.raises(ValueError):
        year_from_band_name("b2010")

@pytest.mark.parametrize("ver", ["5", "5a", "1.2.0"])
def test_provenance_version_ok(ver):
    p = Provenance(territory="SURINAME", region_id="1", version=ver, step=ProcessingStep.GAPFILL)
    assert p.version == ver

@pytest.mark.parametrize("ver", ["", "v5", "1.2", "5.A"])
def test_provenance_version_bad(ver):
    with pytest.raises(ValidationError):
        Provenance(territory="SURINAME", region_id="1", version=ver, step="gapfill")

def test_provenance_bad_identifier():
    with pytest.raises(ValidationError):
        Provenance(territory="SURI NAME", region_id="1", version="5", step="gapfill")

def test_provenance_is_frozen():
    p = Provenance(territory="SURINAME", region_id="1", version="5", step="spatial_filter")
    with pytest.raises(ValidationError):
        p.version = "6"

def test_provenance_tags_roundtrip():
    t = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
    p = Provenance(territory="SURINAME", region_id="2", version="5a", step="frequency_filter",
                   collection_id=1.0, input_version="4", created_at=t)
    tags = p.as_tags()
    assert tags["step"] == "frequency_filter" and tags["collection_id"] == "1"
    assert Provenance.from_tags(tags) == p

def test_provenance_from_tags_without_step():
    assert Provenance.from_tags({"years": "2000,2001"}) is None
