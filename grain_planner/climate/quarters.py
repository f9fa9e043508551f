# grain_planner/climate/quarters.py
from __future__ import annotations

import calendar
from datetime import date
from typing import Any, Literal, Tuple

from ..errors import InvalidQuarter

Quarter = Literal[1, 2, 3, 4]

QUARTERS: Tuple[int, ...] = (1, 2, 3, 4)


def is_valid_quarter(quarter: Any) -> bool:
    return isinstance(quarter, int) and not isinstance(quarter, bool) and quarter in QUARTERS


def check_quarter(quarter: Any) -> int:
    if not is_valid_quarter(quarter):
        raise InvalidQuarter(quarter)
    return int(quarter)


def quarter_to_month_range(quarter: int) -> Tuple[int, int]:
    """Q1 -> (1, 3), Q2 -> (4, 6), Q3 -> (7, 9), Q4 -> (10, 12)."""
    q = check_quarter(quarter)
    start = (q - 1) * 3 + 1
    return start, start + 2


def quarter_date_range(year: int, quarter: int) -> Tuple[date, date]:
    start_month, end_month = quarter_to_month_range(quarter)
    last_day = calendar.monthrange(int(year), end_month)[1]
    return date(int(year), start_month, 1), date(int(year), end_month, last_day)


def quarter_months(quarter: int) -> Tuple[str, str]:
    start_month, end_month = quarter_to_month_range(quarter)
    return calendar.month_name[start_month], calendar.month_name[end_month]


def quarter_name(quarter: int) -> str:
    start, end = quarter_months(quarter)
    return f"Q{int(quarter)} ({start}-{end})"
