# grain_planner/planner/regions.py
from __future__ import annotations

import json
import math
from dataclasses import dataclass
from pathlib import Path
from typing import List, Literal, Optional, Tuple

from .. import config as cfg
from ..schemas.inputs import Location

ProductionLevel = Literal["high", "medium", "low"]

# approximate bounding box of the archipelago
PHILIPPINES_BOUNDS = {"north": 21.0, "south": 4.5, "east": 127.0, "west": 116.0}

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class RiceRegion:
    region: str
    description: str
    rice_production: ProductionLevel
    main_seasons: Tuple[str, ...]
    latitude: float
    longitude: float

    @property
    def location(self) -> Location:
        return Location(latitude=self.latitude, longitude=self.longitude, name=self.region)


def load_regions_from_json(path: Path = cfg.REGIONS_JSON) -> List[RiceRegion]:
    if not path.exists():
        raise FileNotFoundError(f"Region catalog not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)

    if not isinstance(raw, dict) or "regions" not in raw:
        raise ValueError("Invalid JSON: expected an object with a 'regions' key.")

    regions: List[RiceRegion] = []
    for item in raw.get("regions", []):
        if not isinstance(item, dict):
            continue

        name = str(item.get("region", "")).strip()
        if not name:
            # incomplete entry
            continue

        level = str(item.get("rice_production", "medium")).strip().lower()
        if level not in {"high", "medium", "low"}:
            raise ValueError(f"Invalid rice_production for {name}: {level}")

        regions.append(
            RiceRegion(
                region=name,
                description=str(item.get("description", "")).strip(),
                rice_production=level,  # type: ignore[arg-type]
                main_seasons=tuple(str(s) for s in item.get("main_seasons", [])),
                latitude=float(item["latitude"]),
                longitude=float(item["longitude"]),
            )
        )

    if not regions:
        raise ValueError("Region catalog is empty.")
    return regions


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def find_closest_region(latitude: float, longitude: float, regions: Optional[List[RiceRegion]] = None) -> RiceRegion:
    catalog = regions if regions is not None else load_regions_from_json()
    return min(catalog, key=lambda r: haversine_km(latitude, longitude, r.latitude, r.longitude))


def get_region_by_name(name: str, regions: Optional[List[RiceRegion]] = None) -> Optional[RiceRegion]:
    """Case-insensitive substring match on the region name; first hit wins."""
    needle = (name or "").strip().lower()
    if not needle:
        return None
    catalog = regions if regions is not None else load_regions_from_json()
    for r in catalog:
        if needle in r.region.lower():
            return r
    return None


def get_regions_by_production(level: ProductionLevel, regions: Optional[List[RiceRegion]] = None) -> List[RiceRegion]:
    catalog = regions if regions is not None else load_regions_from_json()
    return [r for r in catalog if r.rice_production == level]


def is_within_philippines(latitude: float, longitude: float) -> bool:
    b = PHILIPPINES_BOUNDS
    return b["south"] <= latitude <= b["north"] and b["west"] <= longitude <= b["east"]


def default_location() -> Location:
    region = get_region_by_name(cfg.DEFAULT_REGION)
    if region is None:
        raise ValueError(f"Default region not in catalog: {cfg.DEFAULT_REGION}")
    return region.location
