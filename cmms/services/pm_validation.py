"""
Validation for preventive maintenance payloads.

Every rule runs and appends its message; the caller gets the complete list
of problems in one response.
"""
from typing import Any, Dict, List, Optional, Tuple

from fastapi import HTTPException, status

from cmms.utils.dates import TIME_UNITS, add_interval, parse_calendar_date

SCHEDULE_TYPES = ("regularInterval", "afterCompletion")
PM_STATUSES = ("pending", "inProgress", "completed", "overdue")
WORK_ORDER_PRIORITIES = ("none", "low", "medium", "high")

MSG_NEXT_DUE_BEFORE_START = "Next due date cannot be before start date"
MSG_END_BEFORE_START = "End date cannot be before start date"
MSG_END_BEFORE_NEXT_DUE = "End date cannot be before next due date"
MSG_FREQUENCY_TOO_LARGE = "Frequency is too large for the selected time unit"


def _to_number(value: Any) -> Optional[float]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_pm_payload(data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """
    Check a preventive maintenance payload.

    Args:
        data: Raw payload fields (create payload, or stored values merged
            with an update payload)

    Returns:
        (is_valid, errors) where errors lists every failed rule in order
    """
    errors: List[str] = []

    # Required fields
    if _is_blank(data.get("title")):
        errors.append("Title cannot be empty")

    schedule_type = data.get("schedule_type")
    if _is_blank(schedule_type):
        errors.append("Schedule type is required")
    elif schedule_type not in SCHEDULE_TYPES:
        errors.append(f"Schedule type must be one of: {', '.join(SCHEDULE_TYPES)}")

    frequency = _to_number(data.get("frequency"))
    if frequency is None or frequency <= 0:
        errors.append("Frequency must be a positive number")
    elif not frequency.is_integer():
        errors.append("Frequency must be a whole number")

    time_unit = data.get("time_unit")
    if _is_blank(time_unit):
        errors.append("Time unit is required")
    elif time_unit not in TIME_UNITS:
        errors.append(f"Time unit must be one of: {', '.join(TIME_UNITS)}")

    raw_start = data.get("start_date")
    raw_next_due = data.get("next_due_date")
    raw_end = data.get("end_date")
    if _is_blank(raw_start):
        errors.append("Start date cannot be empty")
    if _is_blank(raw_next_due):
        errors.append("Next due date cannot be empty")

    # Lead time
    raw_days_before = data.get("create_wos_days_before_due")
    if not _is_blank(raw_days_before):
        days_before = _to_number(raw_days_before)
        if days_before is None or days_before < 0 or not days_before.is_integer():
            errors.append("Days before due for work order creation must be zero or a positive whole number")

    # Date formats
    start_date = parse_calendar_date(raw_start)
    next_due_date = parse_calendar_date(raw_next_due)
    end_date = parse_calendar_date(raw_end)
    if not _is_blank(raw_start) and start_date is None:
        errors.append("Start date format is invalid")
    if not _is_blank(raw_next_due) and next_due_date is None:
        errors.append("Next due date format is invalid")
    if not _is_blank(raw_end) and end_date is None:
        errors.append("End date format is invalid")

    # Date ordering
    if start_date and next_due_date and next_due_date < start_date:
        errors.append(MSG_NEXT_DUE_BEFORE_START)

    if end_date:
        if start_date and end_date < start_date:
            errors.append(MSG_END_BEFORE_START)
        if next_due_date and end_date < next_due_date:
            errors.append(MSG_END_BEFORE_NEXT_DUE)

    # The next cycle has to land on a representable calendar date
    cycle_base = next_due_date or start_date
    if cycle_base and frequency and frequency > 0 and frequency.is_integer() and time_unit in TIME_UNITS:
        try:
            add_interval(cycle_base, int(frequency), time_unit)
        except (ValueError, OverflowError):
            errors.append(MSG_FREQUENCY_TOO_LARGE)

    # Work order template
    if data.get("create_work_order_now"):
        if _is_blank(data.get("work_order_title")):
            errors.append("Work order title cannot be empty")
        priority = data.get("work_order_priority")
        if _is_blank(priority):
            errors.append("Work order priority is required")
        elif priority not in WORK_ORDER_PRIORITIES:
            errors.append(f"Work order priority must be one of: {', '.join(WORK_ORDER_PRIORITIES)}")
    elif not _is_blank(data.get("work_order_priority")) and data["work_order_priority"] not in WORK_ORDER_PRIORITIES:
        errors.append(f"Work order priority must be one of: {', '.join(WORK_ORDER_PRIORITIES)}")

    return len(errors) == 0, errors


def raise_for_invalid_pm(data: Dict[str, Any]):
    """Raise a 400 carrying every validation message when the payload is invalid"""
    is_valid, errors = validate_pm_payload(data)
    if not is_valid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "message": "Invalid preventive maintenance data",
                "errors": errors
            }
        )


def coerce_pm_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Convert validated raw values into the column types stored on the model"""
    days_before = data.get("create_wos_days_before_due")
    return {
        "title": data["title"].strip(),
        "description": data.get("description"),
        "schedule_type": data["schedule_type"],
        "frequency": int(float(data["frequency"])),
        "time_unit": data["time_unit"],
        "create_wos_days_before_due": None if _is_blank(days_before) else int(float(days_before)),
        "start_date": parse_calendar_date(data["start_date"]),
        "next_due_date": parse_calendar_date(data["next_due_date"]),
        "end_date": parse_calendar_date(data.get("end_date")),
    }
