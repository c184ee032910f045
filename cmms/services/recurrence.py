"""
Schedule arithmetic for preventive maintenance records.
"""
from datetime import date
from typing import Optional

from cmms.models import PreventiveMaintenance
from cmms.utils.dates import add_interval, work_order_trigger_date


def compute_next_due_date(pm: PreventiveMaintenance, completed_on: date) -> date:
    """
    Next due date once the current cycle is completed on `completed_on`.

    regularInterval keeps the established cadence and skips cycles already in
    the past; afterCompletion restarts the interval from the completion date.
    """
    if pm.schedule_type == "afterCompletion":
        return add_interval(completed_on, pm.frequency, pm.time_unit)

    next_due = add_interval(pm.next_due_date, pm.frequency, pm.time_unit)
    while next_due <= completed_on:
        next_due = add_interval(next_due, pm.frequency, pm.time_unit)
    return next_due


def advance_schedule(pm: PreventiveMaintenance, completed_on: date) -> PreventiveMaintenance:
    """Move the PM to its next cycle, closing it when the cycle passes end_date"""
    pm.last_completed_date = completed_on
    return _roll_forward(pm, completed_on)


def skip_cycle(pm: PreventiveMaintenance, skipped_on: date) -> PreventiveMaintenance:
    """Move past the current cycle without recording a completion"""
    return _roll_forward(pm, skipped_on)


def _roll_forward(pm: PreventiveMaintenance, as_of: date) -> PreventiveMaintenance:
    try:
        pm.next_due_date = compute_next_due_date(pm, as_of)
    except (ValueError, OverflowError):
        # No representable next cycle left
        pm.status = "completed"
        return pm
    if pm.end_date and pm.next_due_date > pm.end_date:
        pm.status = "completed"
    else:
        pm.status = "pending"
    return pm


def refresh_schedule_status(pm: PreventiveMaintenance, today: date) -> PreventiveMaintenance:
    """
    Re-derive an overdue or completed status after the schedule dates changed.

    A schedule whose next cycle is inside its end date again is reopened;
    it is pending when that cycle is still ahead and overdue otherwise.
    """
    if pm.is_standalone or pm.status not in ("overdue", "completed"):
        return pm
    if pm.end_date and pm.next_due_date > pm.end_date:
        pm.status = "completed"
    elif pm.next_due_date < today:
        pm.status = "overdue"
    else:
        pm.status = "pending"
    return pm


def generation_trigger_date(pm: PreventiveMaintenance) -> date:
    return work_order_trigger_date(pm.next_due_date, pm.create_wos_days_before_due)


def is_generation_due(pm: PreventiveMaintenance, today: date) -> bool:
    """True when the PM is active and today is inside its work order lead window"""
    if pm.status == "completed":
        return False
    if pm.end_date and pm.next_due_date > pm.end_date:
        return False
    return generation_trigger_date(pm) <= today


def is_overdue(pm: PreventiveMaintenance, today: date) -> bool:
    return pm.status == "pending" and pm.next_due_date < today


def pm_status_for_work_order(work_order_status: str) -> Optional[str]:
    """PM status implied by one of its work orders moving to `work_order_status`"""
    if work_order_status == "inProgress":
        return "inProgress"
    return None
