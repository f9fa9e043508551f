# grain_planner/yield_model/formulas.py
from __future__ import annotations

import json
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Tuple

from .. import config as cfg
from ..climate.quarters import QUARTERS, check_quarter

COEFFICIENT_KEYS = ("temperature", "dew_point", "precipitation", "wind_speed", "humidity", "constant")

# accepted spellings in the JSON table
_KEY_ALIASES = {
    "dewPoint": "dew_point",
    "windSpeed": "wind_speed",
}


@dataclass(frozen=True)
class QuarterlyFormula:
    quarter: int
    temperature: float
    dew_point: float
    precipitation: float
    wind_speed: float
    humidity: float
    constant: float
    description: str = ""

    @property
    def expression(self) -> str:
        """Human-readable form: Ŷ = aT + bD + cP + dW + eH + f."""
        terms = [
            (self.temperature, "T"),
            (self.dew_point, "D"),
            (self.precipitation, "P"),
            (self.wind_speed, "W"),
            (self.humidity, "H"),
        ]
        out = f"Ŷ = {terms[0][0]:g}{terms[0][1]}"
        for coef, sym in terms[1:]:
            sign = "-" if coef < 0 else "+"
            out += f" {sign} {abs(coef):g}{sym}"
        sign = "-" if self.constant < 0 else "+"
        return out + f" {sign} {abs(self.constant):g}"

    def apply(
        self,
        temperature: float,
        dew_point: float,
        precipitation: float,
        wind_speed: float,
        humidity: float,
    ) -> float:
        return (
            self.temperature * temperature
            + self.dew_point * dew_point
            + self.precipitation * precipitation
            + self.wind_speed * wind_speed
            + self.humidity * humidity
            + self.constant
        )


def _parse_coefficients(quarter: int, raw: Any) -> Dict[str, float]:
    if not isinstance(raw, dict):
        raise ValueError(f"Q{quarter}: 'coefficients' must be an object.")
    coefs = {_KEY_ALIASES.get(k, k): v for k, v in raw.items()}
    missing = [k for k in COEFFICIENT_KEYS if k not in coefs]
    if missing:
        raise ValueError(f"Q{quarter}: missing coefficients {missing}.")
    return {k: float(coefs[k]) for k in COEFFICIENT_KEYS}


def load_formulas_from_json(path: Path = cfg.QUARTERLY_FORMULAS_JSON) -> Tuple[QuarterlyFormula, ...]:
    if not path.exists():
        raise FileNotFoundError(f"Formula table not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        raw = json.load(f)

    if not isinstance(raw, dict) or "formulas" not in raw:
        raise ValueError("Invalid JSON: expected an object with a 'formulas' key.")

    by_quarter: Dict[int, QuarterlyFormula] = {}
    for item in raw.get("formulas", []):
        if not isinstance(item, dict):
            raise ValueError("Invalid JSON: each formula must be an object.")
        q = check_quarter(item.get("quarter"))
        if q in by_quarter:
            raise ValueError(f"Duplicate formula for Q{q}.")
        coefs = _parse_coefficients(q, item.get("coefficients"))
        by_quarter[q] = QuarterlyFormula(
            quarter=q,
            description=str(item.get("description", "")).strip(),
            **coefs,
        )

    missing_q = [q for q in QUARTERS if q not in by_quarter]
    if missing_q:
        raise ValueError(f"Formula table is missing quarters {missing_q}.")

    return tuple(by_quarter[q] for q in QUARTERS)


@lru_cache(maxsize=1)
def default_formulas() -> Tuple[QuarterlyFormula, ...]:
    return load_formulas_from_json()


def get_quarterly_formula(quarter: int) -> QuarterlyFormula:
    q = check_quarter(quarter)
    return default_formulas()[q - 1]


def predict(
    quarter: int,
    temperature: float,
    dew_point: float,
    precipitation: float,
    wind_speed: float,
    humidity: float,
) -> float:
    """
    Predicted yield (kg/ha) for one quarter.

    Inputs are not range-checked; the linear model's output is returned as is,
    negative values included.
    """
    return get_quarterly_formula(quarter).apply(temperature, dew_point, precipitation, wind_speed, humidity)
