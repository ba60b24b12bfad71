"""
Job status state machine

Job statuses: pending_schedule → scheduled → in_progress ⇄ running_late → completed
Any non-terminal status can leave for cancellation:
    - deposit collected  → cancellation_requested → cancelled (approved)
                                                  → previous status (denied)
    - no deposit         → cancelled

Terminal: completed, cancelled. Nothing leaves a terminal status.
"""

from enum import Enum
from typing import Optional, Union

from ...exceptions import InvalidStateTransition


class JobStatus(str, Enum):
    PENDING_SCHEDULE = "pending_schedule"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    RUNNING_LATE = "running_late"
    COMPLETED = "completed"
    CANCELLATION_REQUESTED = "cancellation_requested"
    CANCELLED = "cancelled"


INITIAL_STATUS = JobStatus.PENDING_SCHEDULE
TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.CANCELLED})

# Work-progress transitions; cancellation edges are added by deposit state below
PROGRESS_TRANSITIONS = {
    JobStatus.PENDING_SCHEDULE: {JobStatus.SCHEDULED},
    JobStatus.SCHEDULED: {JobStatus.IN_PROGRESS},
    JobStatus.IN_PROGRESS: {JobStatus.RUNNING_LATE, JobStatus.COMPLETED},
    JobStatus.RUNNING_LATE: {JobStatus.IN_PROGRESS, JobStatus.COMPLETED},
    JobStatus.CANCELLATION_REQUESTED: set(),
    JobStatus.COMPLETED: set(),
    JobStatus.CANCELLED: set(),
}

# Statuses a cancellation request can be denied back to
RESTORABLE_STATUSES = frozenset(
    {
        JobStatus.PENDING_SCHEDULE,
        JobStatus.SCHEDULED,
        JobStatus.IN_PROGRESS,
        JobStatus.RUNNING_LATE,
    }
)


def parse_status(value: Union[str, JobStatus], current: Optional[str] = None) -> JobStatus:
    """Coerce a status string into the closed enumeration"""
    try:
        return JobStatus(value)
    except ValueError:
        raise InvalidStateTransition(current, str(value), f"Unknown job status '{value}'") from None


def has_deposit(deposit_amount: Optional[float]) -> bool:
    """Exact-zero semantics: any positive amount counts"""
    return (deposit_amount or 0) > 0


def is_terminal(status: Union[str, JobStatus]) -> bool:
    return parse_status(status) in TERMINAL_STATUSES


def cancellation_target(deposit_amount: Optional[float]) -> JobStatus:
    """Where a cancellation lands: a request when a deposit was collected, else immediate"""
    if has_deposit(deposit_amount):
        return JobStatus.CANCELLATION_REQUESTED
    return JobStatus.CANCELLED


def allowed_transitions(
    current: Union[str, JobStatus],
    *,
    deposit_amount: Optional[float] = 0,
    previous_status: Optional[str] = None,
) -> list[JobStatus]:
    """Legal next statuses for a job, in declaration order"""
    status = parse_status(current)
    if status in TERMINAL_STATUSES:
        return []

    if status == JobStatus.CANCELLATION_REQUESTED:
        targets = {JobStatus.CANCELLED}
        if previous_status and JobStatus(previous_status) in RESTORABLE_STATUSES:
            targets.add(JobStatus(previous_status))
    else:
        targets = set(PROGRESS_TRANSITIONS[status])
        targets.add(cancellation_target(deposit_amount))

    return [s for s in JobStatus if s in targets]


def validate_transition(
    current: Union[str, JobStatus],
    target: Union[str, JobStatus],
    *,
    deposit_amount: Optional[float] = 0,
    previous_status: Optional[str] = None,
) -> JobStatus:
    """
    Raise InvalidStateTransition unless current → target is legal.

    Returns the parsed target status.
    """
    status = parse_status(current)
    new_status = parse_status(target, current=status.value)

    if status in TERMINAL_STATUSES:
        raise InvalidStateTransition(
            status.value, new_status.value, f"Job is {status.value}; no further transitions allowed"
        )

    if new_status == status:
        raise InvalidStateTransition(
            status.value, new_status.value, f"Job is already {status.value}"
        )

    legal = allowed_transitions(
        status, deposit_amount=deposit_amount, previous_status=previous_status
    )
    if new_status in legal:
        return new_status

    if status != JobStatus.CANCELLATION_REQUESTED:
        if new_status == JobStatus.CANCELLED:
            raise InvalidStateTransition(
                status.value,
                new_status.value,
                "Job has a collected deposit; cancellation must be requested and approved",
            )
        if new_status == JobStatus.CANCELLATION_REQUESTED:
            raise InvalidStateTransition(
                status.value,
                new_status.value,
                "Job has no deposit; cancel it directly instead of requesting cancellation",
            )

    raise InvalidStateTransition(status.value, new_status.value)
