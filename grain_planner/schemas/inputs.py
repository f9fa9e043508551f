# grain_planner/schemas/inputs.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional

from .. import config as cfg
from ..errors import InvalidRequest


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(float(value))


_BOOL_STRINGS = {"true": True, "false": False, "1": True, "0": False}


def _parse_flag(value: Any, default: bool) -> Any:
    """JSON flags may arrive as strings; anything unrecognised is kept for `problems()` to report."""
    if value is None:
        return default
    if isinstance(value, str):
        return _BOOL_STRINGS.get(value.strip().lower(), value)
    return value


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float
    name: str

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Location":
        return cls(
            latitude=raw.get("latitude"),  # type: ignore[arg-type]
            longitude=raw.get("longitude"),  # type: ignore[arg-type]
            name=raw.get("name"),  # type: ignore[arg-type]
        )

    def to_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude, "name": self.name}

    def problems(self) -> List[str]:
        out: List[str] = []
        if not _is_number(self.latitude) or not (-90.0 <= float(self.latitude) <= 90.0):
            out.append("Valid latitude is required (-90 to 90)")
        if not _is_number(self.longitude) or not (-180.0 <= float(self.longitude) <= 180.0):
            out.append("Valid longitude is required (-180 to 180)")
        if not isinstance(self.name, str) or not self.name.strip():
            out.append("Location name is required")
        return out


@dataclass(frozen=True)
class PlantingAnalysisRequest:
    year: int
    location: Location
    include_alternatives: bool = False
    use_historical_data: bool = True
    override_quarter: Optional[int] = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "PlantingAnalysisRequest":
        """Accepts the camelCase JSON body (snake_case keys also work)."""
        loc_raw = raw.get("location")
        if not isinstance(loc_raw, Mapping):
            loc_raw = {}

        def pick(camel: str, snake: str, default: Any) -> Any:
            if camel in raw:
                return raw[camel]
            return raw.get(snake, default)

        return cls(
            year=raw.get("year"),  # type: ignore[arg-type]
            location=Location.from_dict(loc_raw),
            include_alternatives=_parse_flag(pick("includeAlternatives", "include_alternatives", None), False),
            use_historical_data=_parse_flag(pick("useHistoricalData", "use_historical_data", None), True),
            override_quarter=pick("overrideQuarter", "override_quarter", None),
        )

    def problems(self) -> List[str]:
        """Every violation, in a fixed order (empty when the request is valid)."""
        out: List[str] = []
        year_ok = (
            isinstance(self.year, int)
            and not isinstance(self.year, bool)
            and cfg.MIN_YEAR <= self.year <= cfg.MAX_YEAR
        )
        if not year_ok:
            out.append(f"Year must be between {cfg.MIN_YEAR} and {cfg.MAX_YEAR}")

        if isinstance(self.location, Location):
            out.extend(self.location.problems())
        else:
            out.append("Valid latitude is required (-90 to 90)")
            out.append("Valid longitude is required (-180 to 180)")
            out.append("Location name is required")

        if self.override_quarter is not None:
            q = self.override_quarter
            if isinstance(q, bool) or not isinstance(q, int) or q not in (1, 2, 3, 4):
                out.append("Override quarter must be 1, 2, 3, or 4")
        if not isinstance(self.include_alternatives, bool):
            out.append("includeAlternatives must be a boolean")
        if not isinstance(self.use_historical_data, bool):
            out.append("useHistoricalData must be a boolean")
        return out

    def validate(self) -> None:
        errors = self.problems()
        if errors:
            raise InvalidRequest(errors)
