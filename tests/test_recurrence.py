from datetime import date

import pytest

from cmms.models import PreventiveMaintenance
from cmms.services.recurrence import (
    advance_schedule,
    compute_next_due_date,
    is_generation_due,
    is_overdue,
    refresh_schedule_status,
    skip_cycle,
)
from cmms.utils.dates import add_interval, parse_calendar_date


def make_pm(**fields):
    values = {
        "title": "Filter change",
        "schedule_type": "regularInterval",
        "frequency": 1,
        "time_unit": "month",
        "start_date": date(2024, 1, 1),
        "next_due_date": date(2024, 2, 1),
        "status": "pending",
    }
    values.update(fields)
    return PreventiveMaintenance(**values)


class TestAddInterval:
    def test_days_and_weeks(self):
        assert add_interval(date(2024, 2, 27), 3, "day") == date(2024, 3, 1)
        assert add_interval(date(2024, 1, 1), 2, "week") == date(2024, 1, 15)

    def test_month_end_is_clamped(self):
        assert add_interval(date(2024, 1, 31), 1, "month") == date(2024, 2, 29)
        assert add_interval(date(2023, 1, 31), 1, "month") == date(2023, 2, 28)
        assert add_interval(date(2024, 11, 30), 3, "month") == date(2025, 2, 28)

    def test_leap_day_plus_one_year(self):
        assert add_interval(date(2024, 2, 29), 1, "year") == date(2025, 2, 28)

    def test_unknown_unit_raises(self):
        with pytest.raises(ValueError):
            add_interval(date(2024, 1, 1), 1, "fortnight")


def test_parse_calendar_date_variants():
    assert parse_calendar_date("2024-03-05") == date(2024, 3, 5)
    assert parse_calendar_date("2024-03-05T23:59:00Z") == date(2024, 3, 5)
    assert parse_calendar_date(date(2024, 3, 5)) == date(2024, 3, 5)
    assert parse_calendar_date("") is None
    assert parse_calendar_date("not a date") is None
    assert parse_calendar_date("2024-03-05garbage") is None
    assert parse_calendar_date("2024-03-05 !!") is None
    assert parse_calendar_date(20240305) is None


class TestNextDueDate:
    def test_regular_interval_keeps_cadence(self):
        pm = make_pm()
        assert compute_next_due_date(pm, date(2024, 2, 3)) == date(2024, 3, 1)

    def test_regular_interval_skips_missed_cycles(self):
        pm = make_pm()
        assert compute_next_due_date(pm, date(2024, 5, 10)) == date(2024, 6, 1)

    def test_after_completion_counts_from_completion(self):
        pm = make_pm(schedule_type="afterCompletion", frequency=10, time_unit="day")
        assert compute_next_due_date(pm, date(2024, 2, 7)) == date(2024, 2, 17)


class TestAdvanceSchedule:
    def test_moves_to_next_cycle(self):
        pm = make_pm(status="inProgress")
        advance_schedule(pm, date(2024, 2, 1))

        assert pm.last_completed_date == date(2024, 2, 1)
        assert pm.next_due_date == date(2024, 3, 1)
        assert pm.status == "pending"

    def test_completes_when_past_end_date(self):
        pm = make_pm(end_date=date(2024, 2, 15))
        advance_schedule(pm, date(2024, 2, 1))

        assert pm.next_due_date == date(2024, 3, 1)
        assert pm.status == "completed"

    def test_closes_when_next_cycle_is_out_of_calendar_range(self):
        pm = make_pm(frequency=5000, time_unit="year", next_due_date=date(7024, 2, 1))
        advance_schedule(pm, date(7024, 2, 1))

        assert pm.last_completed_date == date(7024, 2, 1)
        assert pm.next_due_date == date(7024, 2, 1)
        assert pm.status == "completed"


class TestSkipCycle:
    def test_moves_on_without_recording_completion(self):
        pm = make_pm(status="inProgress")
        skip_cycle(pm, date(2024, 2, 3))

        assert pm.last_completed_date is None
        assert pm.next_due_date == date(2024, 3, 1)
        assert pm.status == "pending"


class TestRefreshScheduleStatus:
    def test_overdue_with_future_due_date_becomes_pending(self):
        pm = make_pm(status="overdue", next_due_date=date(2030, 1, 1))
        assert refresh_schedule_status(pm, date(2024, 3, 1)).status == "pending"

    def test_overdue_still_past_due_stays_overdue(self):
        pm = make_pm(status="overdue")
        assert refresh_schedule_status(pm, date(2024, 3, 1)).status == "overdue"

    def test_completed_reopens_when_end_date_is_extended(self):
        pm = make_pm(status="completed", next_due_date=date(2024, 3, 1), end_date=date(2024, 12, 31))
        assert refresh_schedule_status(pm, date(2024, 2, 20)).status == "pending"

    def test_completed_past_end_date_stays_completed(self):
        pm = make_pm(status="completed", next_due_date=date(2024, 3, 1), end_date=date(2024, 2, 15))
        assert refresh_schedule_status(pm, date(2024, 2, 20)).status == "completed"

    def test_in_progress_and_standalone_are_left_alone(self):
        assert refresh_schedule_status(make_pm(status="inProgress"), date(2024, 3, 1)).status == "inProgress"
        standalone = make_pm(status="completed", is_standalone=True, next_due_date=date(2030, 1, 1))
        assert refresh_schedule_status(standalone, date(2024, 3, 1)).status == "completed"



class TestSweepPredicates:
    def test_generation_respects_lead_time(self):
        pm = make_pm(next_due_date=date(2024, 2, 10), create_wos_days_before_due=5)

        assert not is_generation_due(pm, date(2024, 2, 4))
        assert is_generation_due(pm, date(2024, 2, 5))

    def test_without_lead_time_generates_on_due_date(self):
        pm = make_pm(next_due_date=date(2024, 2, 10))

        assert not is_generation_due(pm, date(2024, 2, 9))
        assert is_generation_due(pm, date(2024, 2, 10))

    def test_completed_or_ended_schedules_never_generate(self):
        assert not is_generation_due(make_pm(status="completed"), date(2025, 1, 1))
        assert not is_generation_due(
            make_pm(next_due_date=date(2024, 3, 1), end_date=date(2024, 2, 1)),
            date(2025, 1, 1),
        )

    def test_overdue_only_for_pending_past_due(self):
        assert is_overdue(make_pm(), date(2024, 2, 2))
        assert not is_overdue(make_pm(), date(2024, 2, 1))
        assert not is_overdue(make_pm(status="inProgress"), date(2024, 3, 1))
