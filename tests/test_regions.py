"""
Tests for the Philippine rice region catalog
"""

import json

import pytest

from grain_planner.planner.regions import (
    default_location,
    find_closest_region,
    get_region_by_name,
    get_regions_by_production,
    haversine_km,
    is_within_philippines,
    load_regions_from_json,
)


class TestRegionCatalog:
    """Bundled catalog and lookups"""

    def test_catalog_size(self):
        regions = load_regions_from_json()
        assert len(regions) == 13
        assert regions[0].region == "Central Luzon"

    def test_closest_region(self):
        assert find_closest_region(15.5, 121.0).region == "Central Luzon"
        assert find_closest_region(17.5, 121.8).region == "Cagayan Valley"

    def test_lookup_by_name(self):
        assert get_region_by_name("cagayan").region == "Cagayan Valley"
        assert get_region_by_name("  BARMM ").region == "BARMM"
        assert get_region_by_name("Atlantis") is None
        assert get_region_by_name("") is None

    def test_by_production(self):
        high = get_regions_by_production("high")
        assert "Central Luzon" in [r.region for r in high]
        assert all(r.rice_production == "high" for r in high)

    def test_default_location(self):
        loc = default_location()
        assert loc.name == "Central Luzon"
        assert loc.latitude == pytest.approx(15.4817)
        assert loc.problems() == []

    def test_haversine(self):
        assert haversine_km(0.0, 0.0, 0.0, 1.0) == pytest.approx(111.19, abs=0.01)
        assert haversine_km(15.0, 121.0, 15.0, 121.0) == 0.0

    def test_bounds(self):
        assert is_within_philippines(15.4817, 120.9730)
        assert not is_within_philippines(35.68, 139.69)


class TestRegionLoader:
    """Catalog JSON validation"""

    def test_invalid_production_level(self, tmp_path):
        path = tmp_path / "regions.json"
        path.write_text(
            json.dumps({"regions": [{"region": "X", "rice_production": "huge", "latitude": 1, "longitude": 2}]}),
            encoding="utf-8",
        )
        with pytest.raises(ValueError, match="rice_production"):
            load_regions_from_json(path)

    def test_empty_catalog(self, tmp_path):
        path = tmp_path / "regions.json"
        path.write_text(json.dumps({"regions": [{"region": ""}]}), encoding="utf-8")
        with pytest.raises(ValueError, match="empty"):
            load_regions_from_json(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_regions_from_json(tmp_path / "nope.json")
