# grain_planner/climate/retry.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Tuple, TypeVar

from ..errors import WeatherFetchError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class FallbackYearPolicy:
    """
    Retry policy for year-based weather fetches.

    The first attempt uses the reference year; each retry moves back by the
    next offset in `year_offsets`. Only WeatherFetchError (timeouts included)
    is retried; anything else propagates at once.
    """

    max_attempts: int = 2
    year_offsets: Tuple[int, ...] = (1,)

    def years(self, reference_year: int) -> List[int]:
        out = [int(reference_year)]
        for off in self.year_offsets:
            if len(out) >= self.max_attempts:
                break
            out.append(int(reference_year) - int(off))
        return out

    def run(self, fetch: Callable[[int], T], reference_year: int) -> Tuple[T, int]:
        """Call `fetch(year)` across the year sequence; returns (result, year used)."""
        years = self.years(reference_year)
        last_error: WeatherFetchError
        for attempt, year in enumerate(years, start=1):
            try:
                return fetch(year), year
            except WeatherFetchError as e:
                last_error = e
                if attempt < len(years):
                    logger.warning(
                        "[Weather] fetch for %s failed (%s); retrying with fallback year %s",
                        year,
                        e,
                        years[attempt],
                    )
        raise last_error
