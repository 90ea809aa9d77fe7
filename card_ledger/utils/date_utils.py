"""Date manipulation utilities"""

import calendar
from datetime import date
from typing import Tuple


def days_in_month(year: int, month: int) -> int:
    """Number of days in the given month"""
    return calendar.monthrange(year, month)[1]


def clamped_date(year: int, month: int, day: int) -> date:
    """Build a date, pulling day back to the last day of short months (31 -> Feb 28/29)"""
    return date(year, month, min(day, days_in_month(year, month)))


def shift_month(year: int, month: int, months: int) -> Tuple[int, int]:
    """Move a (year, month) pair by a number of months, either direction"""
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def add_months(from_date: date, months: int) -> date:
    """Calendar month arithmetic keeping day-of-month where possible"""
    year, month = shift_month(from_date.year, from_date.month, months)
    return clamped_date(year, month, from_date.day)
