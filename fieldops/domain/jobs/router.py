"""Job router - FastAPI endpoints for job status, assignment and cancellation"""

import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...shared.request_context import get_actor
from .schemas import (
    ApproveCancellationRequest,
    AssignTechnicianRequest,
    CancelJobRequest,
    CancelJobResult,
    DenyCancellationRequest,
    JobResponse,
    StatusEventResponse,
    StatusTransitionRequest,
)
from .service import JobService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contractors/{contractor_id}/jobs", tags=["Jobs"])


def get_job_service(
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
) -> JobService:
    """Dependency injection for JobService; side effects run after the response"""
    return JobService(db, dispatch=background_tasks.add_task)


@router.get("", response_model=list[JobResponse])
async def list_jobs(
    contractor_id: str,
    status: Optional[str] = Query(None),
    service: JobService = Depends(get_job_service),
):
    return [service.repo.to_response(j) for j in service.list_jobs(contractor_id, status)]


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    contractor_id: str,
    job_id: str,
    service: JobService = Depends(get_job_service),
):
    return service.repo.to_response(service.get_job(contractor_id, job_id))


@router.get("/{job_id}/history", response_model=list[StatusEventResponse])
async def get_status_history(
    contractor_id: str,
    job_id: str,
    service: JobService = Depends(get_job_service),
):
    """Committed status transitions, oldest first"""
    events = service.get_status_history(contractor_id, job_id)
    return [service.repo.to_event_response(e) for e in events]


@router.post("/{job_id}/status", response_model=JobResponse)
async def transition_job_status(
    contractor_id: str,
    job_id: str,
    data: StatusTransitionRequest,
    actor: str = Depends(get_actor),
    service: JobService = Depends(get_job_service),
):
    job = service.transition_job_status(
        contractor_id,
        job_id,
        data.status,
        actor=actor,
        note=data.note,
        metadata=data.transition_metadata(),
    )
    return service.repo.to_response(job)


@router.post("/{job_id}/assign", response_model=JobResponse)
async def assign_technician(
    contractor_id: str,
    job_id: str,
    data: AssignTechnicianRequest,
    actor: str = Depends(get_actor),
    service: JobService = Depends(get_job_service),
):
    """Assign and schedule; 422 when the technician no longer qualifies"""
    job = service.assign_technician(
        contractor_id,
        job_id,
        data.technicianId,
        data.scheduledDate,
        data.scheduledTime,
        data.scheduledEndTime,
        actor=actor,
    )
    return service.repo.to_response(job)


# ============================================================================
# CANCELLATION
# ============================================================================


@router.post("/{job_id}/cancel", response_model=CancelJobResult)
async def cancel_job(
    contractor_id: str,
    job_id: str,
    data: CancelJobRequest,
    actor: str = Depends(get_actor),
    service: JobService = Depends(get_job_service),
):
    """Immediate cancellation, or a request when a deposit was collected"""
    return service.cancel_job(contractor_id, job_id, data.reason, actor=actor)


@router.post("/{job_id}/cancellation/approve", response_model=JobResponse)
async def approve_cancellation(
    contractor_id: str,
    job_id: str,
    data: ApproveCancellationRequest,
    actor: str = Depends(get_actor),
    service: JobService = Depends(get_job_service),
):
    job = service.approve_cancellation(
        contractor_id, job_id, actor=actor, refund_amount=data.refundAmount, message=data.message
    )
    return service.repo.to_response(job)


@router.post("/{job_id}/cancellation/deny", response_model=JobResponse)
async def deny_cancellation(
    contractor_id: str,
    job_id: str,
    data: DenyCancellationRequest,
    actor: str = Depends(get_actor),
    service: JobService = Depends(get_job_service),
):
    job = service.deny_cancellation(contractor_id, job_id, actor=actor, message=data.message)
    return service.repo.to_response(job)
