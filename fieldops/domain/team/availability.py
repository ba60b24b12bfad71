"""
Technician availability

Pure check of a technician's working-hours template and time off against a
requested date and optional time window. No I/O and no clock reads, so it is
safe to call from any thread or request.
"""

from datetime import date, time
from typing import Optional

from .schemas import AvailabilityResult, TechnicianProfile

# Indexed by date.weekday()
WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def _hhmm(value: time) -> str:
    return value.strftime("%H:%M")


def check_availability(
    technician: TechnicianProfile,
    target_date: date,
    start_time: Optional[time] = None,
    end_time: Optional[time] = None,
) -> AvailabilityResult:
    """
    Decide whether a technician can work on target_date.

    Checks run in order: active flag, time off (inclusive range), weekday
    template, then the requested start/end against the template bounds.
    A rejection always carries a reason.
    """
    if not technician.isActive:
        return AvailabilityResult(available=False, reason="Team member is inactive")

    for pto in technician.timeOff:
        if pto.startDate <= target_date <= pto.endDate:
            return AvailabilityResult(available=False, reason=f"Time off: {pto.reason}")

    day_name = WEEKDAYS[target_date.weekday()]
    hours = technician.workingHours.get(day_name)

    if hours is None or not hours.available:
        return AvailabilityResult(available=False, reason=f"Not scheduled to work on {day_name}")

    if start_time and hours.start and start_time < hours.start:
        return AvailabilityResult(
            available=False, reason=f"Starts before working hours ({_hhmm(hours.start)})"
        )

    if end_time and hours.end and end_time > hours.end:
        return AvailabilityResult(
            available=False, reason=f"Ends after working hours ({_hhmm(hours.end)})"
        )

    return AvailabilityResult(available=True, reason=None)
