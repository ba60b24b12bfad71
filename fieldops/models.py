import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate an opaque document id"""
    return str(uuid.uuid4())


def default_working_hours():
    return {
        "monday": {"start": "08:00", "end": "17:00", "available": True},
        "tuesday": {"start": "08:00", "end": "17:00", "available": True},
        "wednesday": {"start": "08:00", "end": "17:00", "available": True},
        "thursday": {"start": "08:00", "end": "17:00", "available": True},
        "friday": {"start": "08:00", "end": "17:00", "available": True},
        "saturday": {"start": None, "end": None, "available": False},
        "sunday": {"start": None, "end": None, "available": False},
    }


def default_member_stats():
    return {
        "totalJobs": 0,
        "completedJobs": 0,
        "averageRating": 0,
        "firstTimeFixRate": 0,
        "onTimeRate": 0,
    }


class Contractor(Base):
    __tablename__ = "contractors"

    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=True)

    # Aggregates maintained by quote acceptance and terminal job transitions
    accepted_quote_count = Column(Integer, default=0, nullable=False)
    total_job_value = Column(Float, default=0, nullable=False)
    active_job_count = Column(Integer, default=0, nullable=False)
    # Source of human-readable job numbers, bumped inside the acceptance transaction
    job_sequence = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    team = relationship("TeamMember", back_populates="contractor", cascade="all, delete-orphan")


class TeamMember(Base):
    """Technician profile used by the eligibility engine"""

    __tablename__ = "team_members"

    id = Column(String(36), primary_key=True, default=generate_id)
    contractor_id = Column(String(36), ForeignKey("contractors.id"), nullable=False, index=True)

    name = Column(String(255), nullable=False, default="")
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    role = Column(String(20), nullable=False, default="technician")  # technician, lead, manager
    is_active = Column(Boolean, nullable=False, default=True)

    # [{skillId, proficiency, yearsExperience, addedAt}]
    skills = Column(JSON, nullable=False, default=list)
    # [{certId, name, issuedAt, expiresAt, certificateNumber, verified, verifiedAt}]
    certifications = Column(JSON, nullable=False, default=list)
    # {weekday: {start, end, available}}
    working_hours = Column(JSON, nullable=False, default=default_working_hours)
    # [{id, startDate, endDate, reason, approved, createdAt}]
    time_off = Column(JSON, nullable=False, default=list)

    home_base = Column(JSON, nullable=True)  # {address, lat, lng}
    max_drive_time_minutes = Column(Integer, nullable=False, default=60)
    hourly_rate = Column(Float, nullable=False, default=0)
    # Rolling aggregates refreshed outside this service
    stats = Column(JSON, nullable=False, default=default_member_stats)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    contractor = relationship("Contractor", back_populates="team")


class Quote(Base):
    __tablename__ = "quotes"
    __table_args__ = (UniqueConstraint("contractor_id", "quote_number"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    contractor_id = Column(String(36), ForeignKey("contractors.id"), nullable=False, index=True)
    quote_number = Column(String(50), nullable=False)
    created_year = Column(Integer, nullable=False)

    # draft → sent → viewed → accepted | declined | expired
    status = Column(String(20), nullable=False, default="draft", index=True)

    customer = Column(JSON, nullable=False, default=dict)  # {name, email, phone, address}
    customer_id = Column(String(255), nullable=True)
    title = Column(String(255), nullable=False, default="")
    line_items = Column(JSON, nullable=False, default=list)

    subtotal = Column(Float, nullable=False, default=0)
    tax_rate = Column(Float, nullable=False, default=0)
    tax_amount = Column(Float, nullable=False, default=0)
    total = Column(Float, nullable=False, default=0)

    deposit_required = Column(Boolean, nullable=False, default=False)
    deposit_type = Column(String(20), nullable=False, default="percentage")  # percentage, fixed
    deposit_value = Column(Float, nullable=False, default=0)
    deposit_amount = Column(Float, nullable=False, default=0)

    # Carried to the job for technician matching
    required_skills = Column(JSON, nullable=False, default=list)
    required_certifications = Column(JSON, nullable=False, default=list)

    notes = Column(Text, nullable=True)
    terms = Column(Text, nullable=True)
    expires_at = Column(DateTime, nullable=True)

    sent_at = Column(DateTime, nullable=True)
    viewed_at = Column(DateTime, nullable=True)
    last_viewed_at = Column(DateTime, nullable=True)
    view_count = Column(Integer, nullable=False, default=0)
    accepted_at = Column(DateTime, nullable=True)
    customer_message = Column(Text, nullable=True)
    declined_at = Column(DateTime, nullable=True)
    decline_reason = Column(Text, nullable=True)

    # Set once on acceptance, never cleared
    converted_to_job_id = Column(String(36), nullable=True)
    # Mirrors the linked job after cancellation side effects
    job_status = Column(String(50), nullable=True)
    job_cancelled_at = Column(DateTime, nullable=True)
    job_cancelled_by = Column(String(255), nullable=True)
    job_cancellation_reason = Column(Text, nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Job(Base):
    __tablename__ = "jobs"
    __table_args__ = (UniqueConstraint("contractor_id", "job_number"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    contractor_id = Column(String(36), ForeignKey("contractors.id"), nullable=False, index=True)
    job_number = Column(String(50), nullable=False)

    # Status workflow: see domain/jobs/state_machine.py
    status = Column(String(50), nullable=False, default="pending_schedule", index=True)
    # Status held before a cancellation request, restored on denial
    previous_status = Column(String(50), nullable=True)
    status_changed_at = Column(DateTime, server_default=func.now())

    title = Column(String(255), nullable=False, default="")
    customer = Column(JSON, nullable=False, default=dict)
    customer_record_id = Column(String(255), nullable=True)
    line_items = Column(JSON, nullable=False, default=list)

    # Snapshot of what the customer agreed to; never recomputed
    subtotal = Column(Float, nullable=False, default=0)
    tax_amount = Column(Float, nullable=False, default=0)
    total = Column(Float, nullable=False, default=0)
    deposit_required = Column(Boolean, nullable=False, default=False)
    deposit_type = Column(String(20), nullable=False, default="percentage")
    deposit_value = Column(Float, nullable=False, default=0)
    deposit_amount = Column(Float, nullable=False, default=0)

    source_quote_id = Column(String(36), ForeignKey("quotes.id"), nullable=True)

    required_skills = Column(JSON, nullable=False, default=list)
    required_certifications = Column(JSON, nullable=False, default=list)

    # Scheduling
    scheduled_date = Column(String(10), nullable=True)  # YYYY-MM-DD
    scheduled_time = Column(String(5), nullable=True)  # HH:MM
    scheduled_end_time = Column(String(5), nullable=True)
    assigned_tech_id = Column(String(36), ForeignKey("team_members.id"), nullable=True)
    assigned_crew = Column(JSON, nullable=True)  # [techId, ...]

    # Execution audit
    started_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)

    # {requestedAt, requestedBy, reason, depositAmount, status, resolvedAt, ...}
    cancellation_request = Column(JSON, nullable=True)
    # {cancelledAt, cancelledBy, reason, ...}
    cancellation = Column(JSON, nullable=True)

    chat_channel_id = Column(String(255), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    events = relationship(
        "JobStatusEvent",
        back_populates="job",
        order_by="JobStatusEvent.id",
        cascade="all, delete-orphan",
    )


class JobStatusEvent(Base):
    """Audit row for every committed job status transition"""

    __tablename__ = "job_status_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_id = Column(String(36), ForeignKey("jobs.id"), nullable=False, index=True)
    from_status = Column(String(50), nullable=True)  # None for job creation
    to_status = Column(String(50), nullable=False)
    actor = Column(String(255), nullable=False)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)

    job = relationship("Job", back_populates="events")


class CustomerRecord(Base):
    """Per-contractor customer aggregate, upserted on every quote acceptance"""

    __tablename__ = "customers"

    contractor_id = Column(String(36), ForeignKey("contractors.id"), primary_key=True)
    id = Column(String(255), primary_key=True)  # derived key, see quotes/repository.py

    name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)

    total_jobs = Column(Integer, nullable=False, default=0)
    total_spend = Column(Float, nullable=False, default=0)
    first_contact = Column(DateTime, server_default=func.now())
    last_contact = Column(DateTime, server_default=func.now())
