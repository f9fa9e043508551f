# grain_planner/yield_model/quarter_data.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

import numpy as np
import pandas as pd

from .. import config as cfg
from ..climate.quarters import QUARTERS, check_quarter
from ..errors import DataUnavailable, InvalidYear
from ..schemas.outputs import QuarterlyWeather

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["year", "quarter", "temperature", "dew_point", "precipitation", "wind_speed", "humidity"]

# plausible physical ranges for a quarter aggregate
VALID_RANGES: Dict[str, Tuple[float, float]] = {
    "temperature": (-50.0, 60.0),
    "dew_point": (-60.0, 50.0),
    "precipitation": (0.0, 10_000.0),
    "wind_speed": (0.0, 200.0),
    "humidity": (0.0, 100.0),
}


def is_valid_year(year) -> bool:
    return isinstance(year, int) and not isinstance(year, bool) and cfg.MIN_YEAR <= year <= cfg.MAX_YEAR


def check_year(year) -> int:
    if not is_valid_year(year):
        raise InvalidYear(year, cfg.MIN_YEAR, cfg.MAX_YEAR)
    return int(year)


def is_plausible(record: QuarterlyWeather) -> bool:
    for name, (lo, hi) in VALID_RANGES.items():
        value = getattr(record, name)
        if not np.isfinite(value) or not (lo <= value <= hi):
            return False
    return True


def _synthetic_quarter(year: int, quarter: int, seed: int) -> QuarterlyWeather:
    """
    Seasonal baseline per quarter, +0.1 °C/yr drift from 2025 and seeded noise.
    Same (year, quarter, seed) -> same record.
    """
    rng = np.random.default_rng(seed * 100_000 + year * 10 + quarter)

    base_temp = 25.0 + (quarter - 2) * 2.0
    base_dew = base_temp - 5.0
    base_precip = 100.0 + (quarter - 1) * 50.0
    base_wind = 10.0 + (quarter - 2) * 2.0
    base_rh = 70.0 + (quarter - 2) * 5.0

    drift = (year - cfg.MIN_YEAR) * 0.1
    noise = rng.random(5) - 0.5

    return QuarterlyWeather(
        year=year,
        quarter=quarter,
        temperature=float(base_temp + drift + noise[0] * 2.0),
        dew_point=float(base_dew + drift + noise[1] * 2.0),
        precipitation=float(base_precip + noise[2] * 20.0),
        wind_speed=float(base_wind + noise[3] * 3.0),
        humidity=float(base_rh + noise[4] * 10.0),
    )


class QuarterlyClimateDataset:
    """
    Quarter-representative weather for the supported year range.

    Built from a CSV (one row per year/quarter) or synthetically. Lookups for a
    year outside the range raise InvalidYear; a year in range with no rows
    raises DataUnavailable.
    """

    def __init__(self, records: Iterable[QuarterlyWeather], source: str = "custom"):
        self.source = source
        self._data: Dict[Tuple[int, int], QuarterlyWeather] = {}
        for r in records:
            check_quarter(r.quarter)
            if not is_plausible(r):
                raise ValueError(f"Implausible weather values for {r.year} Q{r.quarter}: {r}")
            self._data[(int(r.year), int(r.quarter))] = r

    @classmethod
    def synthetic(
        cls,
        start_year: int = cfg.MIN_YEAR,
        end_year: int = cfg.MAX_YEAR,
        seed: int = 0,
    ) -> "QuarterlyClimateDataset":
        records = [
            _synthetic_quarter(year, q, seed)
            for year in range(int(start_year), int(end_year) + 1)
            for q in QUARTERS
        ]
        return cls(records, source=f"synthetic(seed={seed})")

    @classmethod
    def from_frame(cls, df: pd.DataFrame, location: str = "Philippines", source: str = "frame") -> "QuarterlyClimateDataset":
        missing = [c for c in CSV_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"Quarterly weather table is missing columns: {missing}")

        d = df[CSV_COLUMNS].copy()
        d["year"] = pd.to_numeric(d["year"], errors="coerce")
        d["quarter"] = pd.to_numeric(d["quarter"], errors="coerce")
        for c in CSV_COLUMNS[2:]:
            d[c] = pd.to_numeric(d[c], errors="coerce")

        bad = d.isna().any(axis=1)
        if bad.any():
            raise ValueError(f"Quarterly weather table has {int(bad.sum())} incomplete row(s).")

        records: List[QuarterlyWeather] = [
            QuarterlyWeather(
                year=int(row.year),
                quarter=int(row.quarter),
                temperature=float(row.temperature),
                dew_point=float(row.dew_point),
                precipitation=float(row.precipitation),
                wind_speed=float(row.wind_speed),
                humidity=float(row.humidity),
                location=location,
            )
            for row in d.itertuples(index=False)
        ]
        return cls(records, source=source)

    @classmethod
    def from_csv(cls, path: Path, location: str = "Philippines") -> "QuarterlyClimateDataset":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Quarterly weather CSV not found: {path}")
        df = pd.read_csv(path)
        logger.info("[Dataset] loaded %s rows from %s", len(df), path)
        return cls.from_frame(df, location=location, source=str(path))

    @classmethod
    def default(cls, csv_path: Optional[str] = cfg.QUARTERLY_WEATHER_CSV) -> "QuarterlyClimateDataset":
        if csv_path:
            return cls.from_csv(Path(csv_path))
        return cls.synthetic()

    # ------------------------------------------------------------------
    def __len__(self) -> int:
        return len(self._data)

    def years(self) -> List[int]:
        return sorted({y for (y, _) in self._data})

    def has_year(self, year: int) -> bool:
        return is_valid_year(year) and all((year, q) in self._data for q in QUARTERS)

    def quarter(self, year: int, quarter: int) -> QuarterlyWeather:
        y = check_year(year)
        q = check_quarter(quarter)
        rec = self._data.get((y, q))
        if rec is None:
            raise DataUnavailable(f"No data available for year: {y} Q{q}")
        return rec

    def year(self, year: int) -> List[QuarterlyWeather]:
        y = check_year(year)
        if not any((y, q) in self._data for q in QUARTERS):
            raise DataUnavailable(f"No data available for year: {y}")
        return [self.quarter(y, q) for q in QUARTERS]

    def to_frame(self) -> pd.DataFrame:
        rows = [
            {
                "year": r.year,
                "quarter": r.quarter,
                "temperature": r.temperature,
                "dew_point": r.dew_point,
                "precipitation": r.precipitation,
                "wind_speed": r.wind_speed,
                "humidity": r.humidity,
            }
            for _, r in sorted(self._data.items())
        ]
        return pd.DataFrame(rows, columns=CSV_COLUMNS)
