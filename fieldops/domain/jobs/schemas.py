"""Job domain schemas - Pydantic models for validation"""

import datetime as dt
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator


class JobResponse(BaseModel):
    id: str
    jobNumber: str
    status: str
    previousStatus: Optional[str] = None
    allowedTransitions: list[str] = Field(default_factory=list)
    title: str
    customer: dict
    customerId: Optional[str] = None
    lineItems: list[dict]
    subtotal: float
    taxAmount: float
    total: float
    depositRequired: bool
    depositAmount: float
    sourceQuoteId: Optional[str] = None
    requiredSkills: list[str] = Field(default_factory=list)
    requiredCertifications: list[str] = Field(default_factory=list)
    scheduledDate: Optional[str] = None
    scheduledTime: Optional[str] = None
    scheduledEndTime: Optional[str] = None
    assignedTechId: Optional[str] = None
    assignedCrew: Optional[list[str]] = None
    startedAt: Optional[dt.datetime] = None
    completedAt: Optional[dt.datetime] = None
    cancellationRequest: Optional[dict] = None
    cancellation: Optional[dict] = None
    statusChangedAt: Optional[dt.datetime] = None
    created_at: Optional[dt.datetime] = None


class StatusTransitionRequest(BaseModel):
    """
    Requested status change.

    The scheduling fields are only read for a move to 'scheduled' and may
    supply what the job is still missing.
    """

    status: str
    note: Optional[str] = None
    scheduledDate: Optional[dt.date] = None
    scheduledTime: Optional[dt.time] = None
    scheduledEndTime: Optional[dt.time] = None
    assignedTechId: Optional[str] = None
    assignedCrew: Optional[list[str]] = None

    def transition_metadata(self) -> dict[str, Any]:
        return self.model_dump(exclude={"status"}, exclude_none=True)


class AssignTechnicianRequest(BaseModel):
    technicianId: str
    scheduledDate: dt.date
    scheduledTime: Optional[dt.time] = None
    scheduledEndTime: Optional[dt.time] = None

    @field_validator("scheduledEndTime")
    @classmethod
    def end_after_start(cls, v, info):
        start = info.data.get("scheduledTime")
        if v and start and v <= start:
            raise ValueError("scheduledEndTime must be after scheduledTime")
        return v


class CancelJobRequest(BaseModel):
    reason: str = ""


class CancelJobResult(BaseModel):
    jobId: str
    mode: Literal["immediate", "request"]
    status: str


class ApproveCancellationRequest(BaseModel):
    refundAmount: Optional[float] = None
    message: Optional[str] = None

    @field_validator("refundAmount")
    @classmethod
    def non_negative(cls, v):
        if v is not None and v < 0:
            raise ValueError("refundAmount must not be negative")
        return v


class DenyCancellationRequest(BaseModel):
    message: str = ""


class StatusEventResponse(BaseModel):
    fromStatus: Optional[str] = None
    toStatus: str
    actor: str
    note: Optional[str] = None
    createdAt: Optional[dt.datetime] = None
