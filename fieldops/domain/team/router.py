"""Team router - FastAPI endpoints for technicians and eligibility"""

import logging
from datetime import date, time
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from .constants import COMMON_CERTIFICATIONS, COMMON_SKILLS
from .schemas import (
    AvailabilityResult,
    CertificationCreate,
    EligibilityReport,
    EligibleTechnician,
    JobRequirements,
    SkillCreate,
    TeamMemberCreate,
    TeamMemberResponse,
    TeamMemberUpdate,
    TimeOffCreate,
)
from .service import TeamService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contractors/{contractor_id}/team", tags=["Team"])


def get_team_service(db: Session = Depends(get_db)) -> TeamService:
    """Dependency injection for TeamService"""
    return TeamService(db)


@router.get("/catalog")
async def get_catalog():
    """Common skills and certifications for the team editor"""
    return {"skills": COMMON_SKILLS, "certifications": COMMON_CERTIFICATIONS}


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.get("", response_model=list[TeamMemberResponse])
async def list_team(
    contractor_id: str,
    active_only: bool = Query(True),
    service: TeamService = Depends(get_team_service),
):
    members = service.list_members(contractor_id, active_only=active_only)
    return [service.repo.to_response(m) for m in members]


@router.post("", response_model=TeamMemberResponse, status_code=201)
async def add_team_member(
    contractor_id: str,
    data: TeamMemberCreate,
    service: TeamService = Depends(get_team_service),
):
    member = service.add_member(contractor_id, data)
    return service.repo.to_response(member)


@router.get("/{member_id}", response_model=TeamMemberResponse)
async def get_team_member(
    contractor_id: str,
    member_id: str,
    service: TeamService = Depends(get_team_service),
):
    return service.repo.to_response(service.get_member(contractor_id, member_id))


@router.patch("/{member_id}", response_model=TeamMemberResponse)
async def update_team_member(
    contractor_id: str,
    member_id: str,
    data: TeamMemberUpdate,
    service: TeamService = Depends(get_team_service),
):
    return service.repo.to_response(service.update_member(contractor_id, member_id, data))


@router.post("/{member_id}/deactivate", response_model=TeamMemberResponse)
async def deactivate_team_member(
    contractor_id: str,
    member_id: str,
    service: TeamService = Depends(get_team_service),
):
    return service.repo.to_response(service.deactivate_member(contractor_id, member_id))


@router.delete("/{member_id}")
async def delete_team_member(
    contractor_id: str,
    member_id: str,
    service: TeamService = Depends(get_team_service),
):
    service.delete_member(contractor_id, member_id)
    return {"message": "Team member deleted"}


# ============================================================================
# SKILLS, CERTIFICATIONS, TIME OFF
# ============================================================================


@router.post("/{member_id}/skills", response_model=TeamMemberResponse)
async def add_skill(
    contractor_id: str,
    member_id: str,
    data: SkillCreate,
    service: TeamService = Depends(get_team_service),
):
    return service.repo.to_response(service.add_skill(contractor_id, member_id, data))


@router.delete("/{member_id}/skills/{skill_id}", response_model=TeamMemberResponse)
async def remove_skill(
    contractor_id: str,
    member_id: str,
    skill_id: str,
    service: TeamService = Depends(get_team_service),
):
    return service.repo.to_response(service.remove_skill(contractor_id, member_id, skill_id))


@router.post("/{member_id}/certifications", response_model=TeamMemberResponse)
async def add_certification(
    contractor_id: str,
    member_id: str,
    data: CertificationCreate,
    service: TeamService = Depends(get_team_service),
):
    return service.repo.to_response(service.add_certification(contractor_id, member_id, data))


@router.post("/{member_id}/time-off", response_model=TeamMemberResponse)
async def add_time_off(
    contractor_id: str,
    member_id: str,
    data: TimeOffCreate,
    service: TeamService = Depends(get_team_service),
):
    return service.repo.to_response(service.add_time_off(contractor_id, member_id, data))


# ============================================================================
# AVAILABILITY & ELIGIBILITY
# ============================================================================


@router.get("/{member_id}/availability", response_model=AvailabilityResult)
async def check_availability(
    contractor_id: str,
    member_id: str,
    date: date,
    start_time: Optional[time] = Query(None),
    end_time: Optional[time] = Query(None),
    service: TeamService = Depends(get_team_service),
):
    return service.check_member_availability(contractor_id, member_id, date, start_time, end_time)


@router.post("/eligible", response_model=list[EligibleTechnician])
async def find_eligible_technicians(
    contractor_id: str,
    requirements: JobRequirements,
    service: TeamService = Depends(get_team_service),
):
    """Eligible technicians ordered by match score, highest first"""
    return service.find_eligible_technicians(contractor_id, requirements)


@router.post("/eligibility-report", response_model=EligibilityReport)
async def eligibility_report(
    contractor_id: str,
    requirements: JobRequirements,
    service: TeamService = Depends(get_team_service),
):
    """Eligible technicians plus the reasons every other technician was excluded"""
    return service.evaluate_team(contractor_id, requirements)
