"""Reporting period helpers.

Periods are quarter strings such as "2026-Q1". They sort by (year, quarter),
so "2025-Q4" < "2026-Q1" < "2026-Q2".
"""

import calendar
import re
from datetime import date

PERIOD_RE = re.compile(r"^(\d{4})-Q([1-4])$")


class InvalidPeriodError(ValueError):
    pass


def parse_period(period):
    """Return (year, quarter) or raise InvalidPeriodError."""
    match = PERIOD_RE.match(str(period or "").strip())
    if not match:
        raise InvalidPeriodError(f"Invalid period '{period}'. Expected format YYYY-Qn, e.g. 2026-Q1.")
    return int(match.group(1)), int(match.group(2))


def normalize_period(period):
    year, quarter = parse_period(period)
    return f"{year}-Q{quarter}"


def period_sort_key(period):
    try:
        return parse_period(period)
    except InvalidPeriodError:
        return (0, 0)


def sort_periods(periods, newest_first=False):
    return sorted(set(periods), key=period_sort_key, reverse=newest_first)


def previous_period(period, known_periods):
    """Greatest known period strictly before `period`, or None."""
    key = period_sort_key(period)
    earlier = [p for p in known_periods if period_sort_key(p) < key]
    if not earlier:
        return None
    return max(earlier, key=period_sort_key)


def period_end(period):
    """Last calendar day of the quarter."""
    year, quarter = parse_period(period)
    month = quarter * 3
    return date(year, month, calendar.monthrange(year, month)[1])


def current_period(today=None):
    today = today or date.today()
    return f"{today.year}-Q{(today.month - 1) // 3 + 1}"
