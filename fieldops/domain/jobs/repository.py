"""Job repository - Database operations for jobs and their status history"""

from typing import Optional

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from ...models import Contractor, Job, JobStatusEvent
from .schemas import JobResponse, StatusEventResponse
from .state_machine import allowed_transitions


class JobRepository:
    """Repository for job database operations"""

    @staticmethod
    def get_job(db: Session, contractor_id: str, job_id: str) -> Optional[Job]:
        return db.query(Job).filter(Job.id == job_id, Job.contractor_id == contractor_id).first()

    @staticmethod
    def get_job_for_update(db: Session, contractor_id: str, job_id: str) -> Optional[Job]:
        return (
            db.query(Job)
            .filter(Job.id == job_id, Job.contractor_id == contractor_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    @staticmethod
    def get_jobs(db: Session, contractor_id: str, status: Optional[str] = None) -> list[Job]:
        query = db.query(Job).filter(Job.contractor_id == contractor_id)
        if status:
            query = query.filter(Job.status == status)
        return query.order_by(Job.created_at.desc(), Job.job_number.desc()).all()

    @staticmethod
    def add_event(
        db: Session,
        job: Job,
        from_status: Optional[str],
        to_status: str,
        actor: str,
        note: Optional[str] = None,
    ) -> JobStatusEvent:
        event = JobStatusEvent(
            job_id=job.id,
            from_status=from_status,
            to_status=to_status,
            actor=actor,
            note=note,
        )
        db.add(event)
        return event

    @staticmethod
    def get_history(db: Session, job_id: str) -> list[JobStatusEvent]:
        return (
            db.query(JobStatusEvent)
            .filter(JobStatusEvent.job_id == job_id)
            .order_by(JobStatusEvent.id)
            .all()
        )

    @staticmethod
    def release_active_job(db: Session, contractor_id: str) -> None:
        """Decrement the contractor's active job count, never below zero"""
        db.query(Contractor).filter(Contractor.id == contractor_id).update(
            {
                Contractor.active_job_count: case(
                    (Contractor.active_job_count > 0, Contractor.active_job_count - 1),
                    else_=0,
                ),
                Contractor.updated_at: func.now(),
            },
            synchronize_session=False,
        )

    @staticmethod
    def to_response(job: Job) -> JobResponse:
        return JobResponse(
            id=job.id,
            jobNumber=job.job_number,
            status=job.status,
            previousStatus=job.previous_status,
            allowedTransitions=[
                s.value
                for s in allowed_transitions(
                    job.status,
                    deposit_amount=job.deposit_amount,
                    previous_status=job.previous_status,
                )
            ],
            title=job.title or "",
            customer=job.customer or {},
            customerId=job.customer_record_id,
            lineItems=job.line_items or [],
            subtotal=job.subtotal or 0,
            taxAmount=job.tax_amount or 0,
            total=job.total or 0,
            depositRequired=bool(job.deposit_required),
            depositAmount=job.deposit_amount or 0,
            sourceQuoteId=job.source_quote_id,
            requiredSkills=job.required_skills or [],
            requiredCertifications=job.required_certifications or [],
            scheduledDate=job.scheduled_date,
            scheduledTime=job.scheduled_time,
            scheduledEndTime=job.scheduled_end_time,
            assignedTechId=job.assigned_tech_id,
            assignedCrew=job.assigned_crew,
            startedAt=job.started_at,
            completedAt=job.completed_at,
            cancellationRequest=job.cancellation_request,
            cancellation=job.cancellation,
            statusChangedAt=job.status_changed_at,
            created_at=job.created_at,
        )

    @staticmethod
    def to_event_response(event: JobStatusEvent) -> StatusEventResponse:
        return StatusEventResponse(
            fromStatus=event.from_status,
            toStatus=event.to_status,
            actor=event.actor,
            note=event.note,
            createdAt=event.created_at,
        )
