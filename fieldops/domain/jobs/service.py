"""Job service - Status transitions, technician assignment and the cancellation workflow"""

import logging
from datetime import date, datetime, time, timezone
from typing import Any, Callable, Optional, Union

from sqlalchemy import func
from sqlalchemy.orm import Session

from ... import config
from ...exceptions import IneligibleAssignment, InvalidStateTransition, NotFound
from ...models import Job, JobStatusEvent
from ...services import integrations, notification_service
from ...services.side_effects import Dispatcher, inline_dispatch, schedule
from ...shared.transactions import atomic
from ..quotes.repository import QuoteRepository
from ..team.eligibility import evaluate_technician
from ..team.schemas import JobRequirements
from ..team.service import TeamService
from .repository import JobRepository
from .schemas import CancelJobResult
from .state_machine import (
    TERMINAL_STATUSES,
    JobStatus,
    cancellation_target,
    parse_status,
    validate_transition,
)

logger = logging.getLogger(__name__)

CANCELLATION_STATUSES = frozenset({JobStatus.CANCELLATION_REQUESTED, JobStatus.CANCELLED})


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _as_date(value: Union[str, date, None]) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(value)


def _as_time(value: Union[str, time, None]) -> Optional[time]:
    if value is None or isinstance(value, time):
        return value
    return time.fromisoformat(value)


def _format_time(value: Optional[time]) -> Optional[str]:
    return value.strftime("%H:%M") if value else None


class JobService:
    """Service layer for job business logic"""

    def __init__(self, db: Session, dispatch: Dispatcher = inline_dispatch):
        self.db = db
        self.repo = JobRepository()
        self.team = TeamService(db)
        self.dispatch = dispatch

    # ========================================================================
    # LOOKUPS
    # ========================================================================

    def get_job(self, contractor_id: str, job_id: str) -> Job:
        job = self.repo.get_job(self.db, contractor_id, job_id)
        if not job:
            raise NotFound(f"Job {job_id} not found")
        return job

    def list_jobs(self, contractor_id: str, status: Optional[str] = None) -> list[Job]:
        if status:
            status = parse_status(status).value
        return self.repo.get_jobs(self.db, contractor_id, status)

    def get_status_history(self, contractor_id: str, job_id: str) -> list[JobStatusEvent]:
        job = self.get_job(contractor_id, job_id)
        return self.repo.get_history(self.db, job.id)

    # ========================================================================
    # TRANSITION ENGINE
    # ========================================================================

    def _lock_job(self, contractor_id: str, job_id: str) -> Job:
        job = self.repo.get_job_for_update(self.db, contractor_id, job_id)
        if not job:
            raise NotFound(f"Job {job_id} not found")
        return job

    def _record_transition(
        self,
        job: Job,
        from_status: str,
        target: JobStatus,
        actor: str,
        note: Optional[str] = None,
    ) -> None:
        """Apply the new status and its bookkeeping; caller owns the transaction"""
        job.status = target.value
        job.status_changed_at = func.now()

        if target == JobStatus.CANCELLATION_REQUESTED:
            job.previous_status = from_status
        elif from_status == JobStatus.CANCELLATION_REQUESTED.value:
            job.previous_status = None

        if target == JobStatus.IN_PROGRESS and not job.started_at:
            job.started_at = func.now()
        elif target == JobStatus.COMPLETED:
            job.completed_at = func.now()

        self.repo.add_event(self.db, job, from_status, target.value, actor, note)
        if target in TERMINAL_STATUSES:
            self.repo.release_active_job(self.db, job.contractor_id)

    def _run_transition(
        self,
        contractor_id: str,
        job_id: str,
        target_for: Callable[[Job], Union[str, JobStatus]],
        actor: str,
        note: Optional[str] = None,
        prepare: Optional[Callable[[Job, str, JobStatus], None]] = None,
    ) -> tuple[Job, str, JobStatus]:
        """
        Lock, validate, apply and commit one status change.

        target_for picks the requested status from the locked row, so checks
        that depend on the job's state see the committed values. prepare may
        fill status-specific fields or raise before anything is written.
        """
        with atomic(self.db, f"Job {job_id} status change"):
            job = self._lock_job(contractor_id, job_id)
            from_status = job.status
            target = validate_transition(
                from_status,
                target_for(job),
                deposit_amount=job.deposit_amount,
                previous_status=job.previous_status,
            )
            if prepare:
                prepare(job, from_status, target)
            self._record_transition(job, from_status, target, actor, note)
            job_number = job.job_number

        logger.info(f"✅ Job {job_number}: {from_status} → {target.value} (actor: {actor})")
        return job, from_status, target

    def transition_job_status(
        self,
        contractor_id: str,
        job_id: str,
        new_status: Union[str, JobStatus],
        actor: str = config.DEFAULT_ACTOR,
        note: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Job:
        """
        Move a job to new_status if the state machine allows it.

        metadata may carry scheduling fields for 'scheduled' and a refund
        amount or message when resolving a cancellation request.
        """
        metadata = metadata or {}

        def prepare(job: Job, from_status: str, target: JobStatus) -> None:
            if target == JobStatus.SCHEDULED:
                self._apply_schedule(job, metadata)
            elif target in CANCELLATION_STATUSES or from_status == JobStatus.CANCELLATION_REQUESTED:
                self._apply_cancellation(job, from_status, target, actor, note, metadata)

        job, from_status, target = self._run_transition(
            contractor_id, job_id, lambda job: new_status, actor, note, prepare
        )
        if target in CANCELLATION_STATUSES or from_status == JobStatus.CANCELLATION_REQUESTED:
            self._dispatch_cancellation_effects(job, from_status, target, actor, note)
        return job

    # ========================================================================
    # SCHEDULING & ASSIGNMENT
    # ========================================================================

    def _ensure_eligible(
        self,
        job: Job,
        technician_id: str,
        scheduled_date: date,
        start_time: Optional[time] = None,
        end_time: Optional[time] = None,
    ):
        """Re-run the eligibility evaluation against the job's requirements"""
        member = self.team.get_member(job.contractor_id, technician_id)
        requirements = JobRequirements(
            date=scheduled_date,
            startTime=start_time,
            endTime=end_time,
            requiredSkills=job.required_skills or [],
            requiredCertifications=job.required_certifications or [],
        )
        result = evaluate_technician(self.team.repo.to_profile(member), requirements)
        if not result.eligible:
            logger.warning(
                f"⚠️ Technician {technician_id} rejected for job {job.job_number}: {result.reason}"
            )
            raise IneligibleAssignment(
                f"Technician {member.name} is not eligible: {result.reason}",
                details=result.model_dump(),
            )
        return member

    def _apply_schedule(self, job: Job, metadata: dict[str, Any]) -> None:
        """Fill scheduling fields from metadata and require a crew and a date"""
        scheduled_date = _as_date(metadata.get("scheduledDate")) or _as_date(job.scheduled_date)
        start_time = _as_time(metadata.get("scheduledTime")) or _as_time(job.scheduled_time)
        end_time = _as_time(metadata.get("scheduledEndTime")) or _as_time(job.scheduled_end_time)
        tech_id = metadata.get("assignedTechId") or job.assigned_tech_id
        crew = metadata.get("assignedCrew") or job.assigned_crew or []

        if not (tech_id or crew) or not scheduled_date:
            raise InvalidStateTransition(
                job.status,
                JobStatus.SCHEDULED.value,
                "Job needs an assigned technician or crew and a scheduled date before scheduling",
            )

        # Assignments supplied with this call are checked like direct assignments
        new_ids = []
        if metadata.get("assignedTechId"):
            new_ids.append(metadata["assignedTechId"])
        new_ids.extend(metadata.get("assignedCrew") or [])
        for technician_id in dict.fromkeys(new_ids):
            self._ensure_eligible(job, technician_id, scheduled_date, start_time, end_time)

        job.scheduled_date = scheduled_date.isoformat()
        job.scheduled_time = _format_time(start_time)
        job.scheduled_end_time = _format_time(end_time)
        job.assigned_tech_id = tech_id
        job.assigned_crew = list(crew) or None

    def assign_technician(
        self,
        contractor_id: str,
        job_id: str,
        technician_id: str,
        scheduled_date: date,
        scheduled_time: Optional[time] = None,
        end_time: Optional[time] = None,
        actor: str = config.DEFAULT_ACTOR,
    ) -> Job:
        """
        Assign a technician and schedule the job.

        Eligibility is evaluated again here; the ranking the dispatcher saw may
        be stale. A pending job moves to 'scheduled'; a scheduled job is
        reassigned in place.
        """
        with atomic(self.db, f"Assign technician to job {job_id}"):
            job = self._lock_job(contractor_id, job_id)
            status = parse_status(job.status)
            if status not in (JobStatus.PENDING_SCHEDULE, JobStatus.SCHEDULED):
                raise InvalidStateTransition(
                    status.value,
                    JobStatus.SCHEDULED.value,
                    f"Cannot assign a technician to a job that is {status.value}",
                )

            member = self._ensure_eligible(job, technician_id, scheduled_date, scheduled_time, end_time)

            job.assigned_tech_id = member.id
            job.scheduled_date = scheduled_date.isoformat()
            job.scheduled_time = _format_time(scheduled_time)
            job.scheduled_end_time = _format_time(end_time)

            if status == JobStatus.PENDING_SCHEDULE:
                self._record_transition(
                    job, status.value, JobStatus.SCHEDULED, actor, f"Assigned to {member.name}"
                )
            job_number = job.job_number
            member_name = member.name

        if status == JobStatus.PENDING_SCHEDULE:
            logger.info(f"✅ Job {job_number} assigned to {member_name} and scheduled for {scheduled_date}")
        else:
            logger.info(f"🔄 Job {job_number} reassigned to {member_name} for {scheduled_date}")

        schedule(
            self.dispatch,
            "notify job_assigned",
            notification_service.notify,
            contractor_id,
            notification_service.JOB_ASSIGNED,
            {
                "jobId": job_id,
                "jobNumber": job_number,
                "technicianId": technician_id,
                "technicianName": member_name,
                "scheduledDate": scheduled_date.isoformat(),
                "scheduledTime": _format_time(scheduled_time),
            },
        )
        return job

    # ========================================================================
    # CANCELLATION WORKFLOW
    # ========================================================================

    def _apply_cancellation(
        self,
        job: Job,
        from_status: str,
        target: JobStatus,
        actor: str,
        reason: Optional[str],
        metadata: Optional[dict[str, Any]] = None,
    ) -> None:
        """Fill the cancellation sub-documents for whichever cancellation step this is"""
        metadata = metadata or {}
        now = _now_iso()

        if from_status == JobStatus.CANCELLATION_REQUESTED.value:
            request = dict(job.cancellation_request or {})
            if target == JobStatus.CANCELLED:
                request.update(status="approved", resolvedAt=now, resolvedBy=actor)
                job.cancellation = {
                    "cancelledAt": now,
                    "cancelledBy": "contractor_approved",
                    "approvedBy": actor,
                    "originalRequestedBy": request.get("requestedBy"),
                    "reason": request.get("reason"),
                    "refundAmount": metadata.get("refundAmount"),
                    "contractorMessage": metadata.get("message"),
                }
            else:
                request.update(
                    status="denied",
                    resolvedAt=now,
                    resolvedBy=actor,
                    denialReason=metadata.get("message") or reason or "",
                )
            job.cancellation_request = request
        elif target == JobStatus.CANCELLATION_REQUESTED:
            job.cancellation_request = {
                "requestedAt": now,
                "requestedBy": actor,
                "reason": reason or "",
                "depositAmount": job.deposit_amount,
                "status": "pending",
            }
        else:
            job.cancellation = {
                "cancelledAt": now,
                "cancelledBy": actor,
                "reason": reason or "",
            }

    def cancel_job(
        self,
        contractor_id: str,
        job_id: str,
        reason: str = "",
        actor: str = config.DEFAULT_ACTOR,
    ) -> CancelJobResult:
        """
        Cancel a job, or open a cancellation request when a deposit was collected.

        Side effects (quote status, schedule hold, chat channel, notification)
        are dispatched after commit and never fail the cancellation.
        """

        def prepare(job: Job, from_status: str, target: JobStatus) -> None:
            self._apply_cancellation(job, from_status, target, actor, reason)

        job, from_status, target = self._run_transition(
            contractor_id,
            job_id,
            lambda job: cancellation_target(job.deposit_amount),
            actor,
            reason or None,
            prepare,
        )
        self._dispatch_cancellation_effects(job, from_status, target, actor, reason)

        mode = "immediate" if target == JobStatus.CANCELLED else "request"
        return CancelJobResult(jobId=job_id, mode=mode, status=target.value)

    def _require_pending_request(self, job: Job, target: str) -> None:
        if job.status != JobStatus.CANCELLATION_REQUESTED.value:
            raise InvalidStateTransition(
                job.status, target, f"Job {job.job_number} has no pending cancellation request"
            )

    def approve_cancellation(
        self,
        contractor_id: str,
        job_id: str,
        actor: str = config.DEFAULT_ACTOR,
        refund_amount: Optional[float] = None,
        message: Optional[str] = None,
    ) -> Job:
        def target_for(job: Job) -> JobStatus:
            self._require_pending_request(job, JobStatus.CANCELLED.value)
            return JobStatus.CANCELLED

        def prepare(job: Job, from_status: str, target: JobStatus) -> None:
            self._apply_cancellation(
                job, from_status, target, actor, None,
                {"refundAmount": refund_amount, "message": message},
            )

        job, from_status, target = self._run_transition(
            contractor_id, job_id, target_for, actor, message, prepare
        )
        self._dispatch_cancellation_effects(job, from_status, target, actor, message)
        return job

    def deny_cancellation(
        self,
        contractor_id: str,
        job_id: str,
        actor: str = config.DEFAULT_ACTOR,
        message: str = "",
    ) -> Job:
        """Reject a cancellation request and put the job back where it was"""

        def target_for(job: Job) -> str:
            self._require_pending_request(job, job.previous_status or "")
            if not job.previous_status:
                raise InvalidStateTransition(
                    job.status, "", "Cancellation request has no status to restore"
                )
            return job.previous_status

        def prepare(job: Job, from_status: str, target: JobStatus) -> None:
            self._apply_cancellation(job, from_status, target, actor, None, {"message": message})

        job, from_status, target = self._run_transition(
            contractor_id, job_id, target_for, actor, message or None, prepare
        )
        self._dispatch_cancellation_effects(job, from_status, target, actor, message)
        return job

    # ========================================================================
    # SIDE EFFECTS
    # ========================================================================

    def _mark_source_quote(
        self,
        contractor_id: str,
        quote_id: str,
        job_status: str,
        cancelled_by: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> None:
        # Runs after the request session may be gone, so it owns its session
        with Session(bind=self.db.get_bind()) as session:
            with atomic(session, f"Mark quote {quote_id} job status"):
                QuoteRepository.mark_job_status(
                    session, contractor_id, quote_id, job_status, cancelled_by, reason
                )
        logger.info(f"📝 Quote {quote_id} job status set to {job_status}")

    def _dispatch_cancellation_effects(
        self,
        job: Job,
        from_status: str,
        target: JobStatus,
        actor: str,
        reason: Optional[str],
    ) -> None:
        """Schedule each cancellation side effect on its own"""
        contractor_id = job.contractor_id
        job_id = job.id
        payload = {
            "jobId": job_id,
            "jobNumber": job.job_number,
            "customerName": (job.customer or {}).get("name"),
            "status": target.value,
            "previousStatus": from_status,
            "actor": actor,
            "reason": reason,
        }

        if from_status == JobStatus.CANCELLATION_REQUESTED.value:
            event_type = (
                notification_service.CANCELLATION_APPROVED
                if target == JobStatus.CANCELLED
                else notification_service.CANCELLATION_DENIED
            )
        elif target == JobStatus.CANCELLED:
            event_type = notification_service.JOB_CANCELLED
        else:
            event_type = notification_service.JOB_CANCELLATION_REQUESTED

        if job.source_quote_id:
            cancelled_by = actor if target == JobStatus.CANCELLED else None
            schedule(
                self.dispatch,
                "mark source quote",
                self._mark_source_quote,
                contractor_id,
                job.source_quote_id,
                target.value,
                cancelled_by,
                reason,
            )

        # A denied request keeps the job on the calendar and in chat
        if target in CANCELLATION_STATUSES:
            schedule(
                self.dispatch,
                "release schedule hold",
                integrations.release_schedule_hold,
                contractor_id,
                job_id,
            )
            if job.chat_channel_id:
                schedule(
                    self.dispatch,
                    "archive chat channel",
                    integrations.archive_chat_channel,
                    job.chat_channel_id,
                    job_id,
                    reason or target.value,
                )

        schedule(
            self.dispatch,
            f"notify {event_type}",
            notification_service.notify,
            contractor_id,
            event_type,
            payload,
        )
