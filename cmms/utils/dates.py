"""
Calendar date helpers for preventive maintenance recurrence.

All schedule dates are plain calendar dates (no time component) and travel
as ISO-8601 strings (YYYY-MM-DD).
"""
import calendar
from datetime import date, datetime, timedelta
from typing import Any, Optional

TIME_UNITS = ("day", "week", "month", "year")


def parse_calendar_date(value: Any) -> Optional[date]:
    """
    Parse a calendar date from a date, datetime or ISO-8601 string.

    Returns None when the value is missing or does not parse. Datetime strings
    ("2024-04-01T00:00:00Z") are accepted and truncated to their date part.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def add_months(start: date, months: int) -> date:
    """Add calendar months, clamping the day to the end of the target month"""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def add_interval(start: date, frequency: int, time_unit: str) -> date:
    if time_unit == "day":
        return start + timedelta(days=frequency)
    if time_unit == "week":
        return start + timedelta(weeks=frequency)
    if time_unit == "month":
        return add_months(start, frequency)
    if time_unit == "year":
        return add_months(start, 12 * frequency)
    raise ValueError(f"Unknown time unit: {time_unit}")


def work_order_trigger_date(next_due_date: date, days_before_due: Optional[int]) -> date:
    """Date from which a work order should exist for the upcoming due date"""
    return next_due_date - timedelta(days=days_before_due or 0)
