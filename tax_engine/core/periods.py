from __future__ import annotations

import calendar
from datetime import date


def days_between(start: date, end: date) -> int:
    return max(0, (end - start).days)


def add_months(start: date, months: int) -> date:
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def elapsed_months(start: date, end: date) -> int:
    """Whole calendar months from ``start`` to ``end``; a partial month counts as one."""
    if end <= start:
        return 0
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if add_months(start, months) < end:
        months += 1
    return months


__all__ = ["add_months", "days_between", "elapsed_months"]
