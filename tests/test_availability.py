"""Tests for technician availability."""

from datetime import date, time

import pytest

from fieldops.domain.team.availability import check_availability
from fieldops.domain.team.schemas import TechnicianProfile
from fieldops.models import default_working_hours


def make_profile(**fields):
    data = {"id": "tech-1", "name": "Sam", "workingHours": default_working_hours()}
    data.update(fields)
    return TechnicianProfile.model_validate(data)


MONDAY = date(2024, 6, 3)
SATURDAY = date(2024, 6, 8)


class TestAvailability:
    """Availability against the weekly template and time off."""

    def test_available_on_working_day(self):
        result = check_availability(make_profile(), MONDAY)
        assert result.available
        assert result.reason is None

    def test_inactive_member(self):
        result = check_availability(make_profile(isActive=False), MONDAY)
        assert not result.available
        assert result.reason == "Team member is inactive"

    def test_time_off_covers_date(self):
        profile = make_profile(timeOff=[
            {"startDate": "2024-06-01", "endDate": "2024-06-05", "reason": "Vacation"},
        ])
        result = check_availability(profile, MONDAY)
        assert not result.available
        assert result.reason == "Time off: Vacation"

    @pytest.mark.parametrize("target", [date(2024, 6, 1), date(2024, 6, 5)])
    def test_time_off_is_inclusive(self, target):
        profile = make_profile(
            timeOff=[{"startDate": "2024-06-01", "endDate": "2024-06-05"}],
            workingHours={
                day: {"start": "08:00", "end": "17:00", "available": True}
                for day in default_working_hours()
            },
        )
        result = check_availability(profile, target)
        assert result.reason == "Time off: Time off"

    def test_time_off_outside_range(self):
        profile = make_profile(timeOff=[{"startDate": "2024-06-04", "endDate": "2024-06-05"}])
        assert check_availability(profile, MONDAY).available

    def test_weekend_not_scheduled(self):
        result = check_availability(make_profile(), SATURDAY)
        assert not result.available
        assert result.reason == "Not scheduled to work on saturday"

    def test_missing_day_template(self):
        result = check_availability(make_profile(workingHours={}), MONDAY)
        assert result.reason == "Not scheduled to work on monday"

    def test_starts_before_hours(self):
        result = check_availability(make_profile(), MONDAY, start_time=time(7, 30))
        assert not result.available
        assert result.reason == "Starts before working hours (08:00)"

    def test_ends_after_hours(self):
        result = check_availability(make_profile(), MONDAY, time(9, 0), time(18, 0))
        assert not result.available
        assert result.reason == "Ends after working hours (17:00)"

    def test_window_inside_hours(self):
        assert check_availability(make_profile(), MONDAY, time(8, 0), time(17, 0)).available
