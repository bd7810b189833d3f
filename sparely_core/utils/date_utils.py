"""Date and month manipulation utilities"""

import time
from datetime import date
from typing import List


def now_epoch_millis() -> int:
    """Current wall-clock time in epoch milliseconds"""
    return int(time.time() * 1000)


def month_start(day: date) -> date:
    """First day of the month containing `day`"""
    return day.replace(day=1)


def add_months(day: date, months: int) -> date:
    """Shift to the first day of the month `months` away (negative goes back)"""
    index = day.year * 12 + (day.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def months_between(start: date, end: date) -> int:
    """Whole calendar months from start's month to end's month (can be negative)"""
    return (end.year - start.year) * 12 + (end.month - start.month)


def generate_month_range(start: date, end: date) -> List[date]:
    """Generate list of month starts from start to end (inclusive)"""
    count = months_between(start, end) + 1
    first = month_start(start)
    return [add_months(first, i) for i in range(max(count, 0))]


def trailing_months(current: date, count: int) -> List[date]:
    """The `count` month starts ending with current's month, oldest first"""
    count = max(count, 1)
    return generate_month_range(add_months(current, -(count - 1)), current)
