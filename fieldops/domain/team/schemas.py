"""Team domain schemas - Pydantic models for technician profiles and matching"""

import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...shared.validators import validate_email, validate_us_phone

Proficiency = Literal["beginner", "intermediate", "advanced", "expert"]
Role = Literal["technician", "lead", "manager"]


class Skill(BaseModel):
    skillId: str
    proficiency: Proficiency = "intermediate"
    yearsExperience: float = 0
    addedAt: Optional[str] = None


class Certification(BaseModel):
    certId: str
    name: Optional[str] = None
    issuedAt: Optional[str] = None
    expiresAt: Optional[dt.date] = None
    certificateNumber: Optional[str] = None
    verified: bool = False
    verifiedAt: Optional[str] = None


class DayHours(BaseModel):
    start: Optional[dt.time] = None
    end: Optional[dt.time] = None
    available: bool = False


class TimeOff(BaseModel):
    id: Optional[str] = None
    startDate: dt.date
    endDate: dt.date
    reason: str = "Time off"
    approved: bool = False
    createdAt: Optional[str] = None


class MemberStats(BaseModel):
    """Rolling aggregates maintained by completed-job history; read-only here"""

    totalJobs: int = 0
    completedJobs: int = 0
    averageRating: float = 0
    firstTimeFixRate: float = 0
    onTimeRate: float = 0


class TechnicianProfile(BaseModel):
    """Snapshot of a team member as consumed by availability and eligibility checks"""

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    role: Role = "technician"
    isActive: bool = True
    skills: list[Skill] = Field(default_factory=list)
    certifications: list[Certification] = Field(default_factory=list)
    workingHours: dict[str, DayHours] = Field(default_factory=dict)
    timeOff: list[TimeOff] = Field(default_factory=list)
    hourlyRate: float = 0
    stats: MemberStats = Field(default_factory=MemberStats)


class JobRequirements(BaseModel):
    date: dt.date
    startTime: Optional[dt.time] = None
    endTime: Optional[dt.time] = None
    requiredSkills: list[str] = Field(default_factory=list)
    requiredCertifications: list[str] = Field(default_factory=list)


class AvailabilityResult(BaseModel):
    available: bool
    reason: Optional[str] = None


class EligibilityResult(BaseModel):
    """Outcome of evaluating one technician; failure lists are empty on success"""

    technicianId: str
    eligible: bool
    reason: Optional[str] = None
    missingSkills: list[str] = Field(default_factory=list)
    missingCerts: list[str] = Field(default_factory=list)
    expiredCerts: list[str] = Field(default_factory=list)
    matchScore: Optional[float] = None


class EligibleTechnician(TechnicianProfile):
    matchScore: float


class EligibilityReport(BaseModel):
    eligible: list[EligibleTechnician] = Field(default_factory=list)
    rejected: list[EligibilityResult] = Field(default_factory=list)


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================


class TeamMemberCreate(BaseModel):
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Role = "technician"
    isActive: bool = True
    skills: list[Skill] = Field(default_factory=list)
    certifications: list[Certification] = Field(default_factory=list)
    workingHours: Optional[dict[str, DayHours]] = None
    timeOff: list[TimeOff] = Field(default_factory=list)
    homeBase: Optional[dict] = None
    maxDriveTimeMinutes: int = 60
    hourlyRate: float = 0

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        if v:
            return validate_email(v)
        return v


class TeamMemberUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[Role] = None
    isActive: Optional[bool] = None
    workingHours: Optional[dict[str, DayHours]] = None
    homeBase: Optional[dict] = None
    maxDriveTimeMinutes: Optional[int] = None
    hourlyRate: Optional[float] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v):
        if v:
            return validate_us_phone(v)
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        if v:
            return validate_email(v)
        return v


class SkillCreate(BaseModel):
    skillId: str
    proficiency: Proficiency = "intermediate"
    yearsExperience: float = 0


class CertificationCreate(BaseModel):
    certId: str
    name: Optional[str] = None
    issuedAt: Optional[str] = None
    expiresAt: Optional[dt.date] = None
    certificateNumber: Optional[str] = None
    verified: bool = False


class TimeOffCreate(BaseModel):
    startDate: dt.date
    endDate: dt.date
    reason: Optional[str] = None
    approved: bool = False

    @field_validator("endDate")
    @classmethod
    def end_not_before_start(cls, v, info):
        start = info.data.get("startDate")
        if start and v < start:
            raise ValueError("endDate must be on or after startDate")
        return v


class TeamMemberResponse(TechnicianProfile):
    contractorId: str
    email: Optional[str] = None
    phone: Optional[str] = None
    homeBase: Optional[dict] = None
    maxDriveTimeMinutes: int = 60
