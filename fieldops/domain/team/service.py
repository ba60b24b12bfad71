"""Team service - Technician profiles, availability and eligibility matching"""

import logging
import uuid
from datetime import date, datetime, time, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ...exceptions import NotFound
from ...models import TeamMember, default_member_stats, default_working_hours
from ...shared.transactions import atomic
from .availability import check_availability
from .eligibility import evaluate_technician, rank_technicians
from .repository import TeamRepository
from .schemas import (
    AvailabilityResult,
    CertificationCreate,
    EligibilityReport,
    EligibilityResult,
    EligibleTechnician,
    JobRequirements,
    SkillCreate,
    TeamMemberCreate,
    TeamMemberUpdate,
    TimeOffCreate,
)

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class TeamService:
    """Service layer for team member business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TeamRepository()

    # ========================================================================
    # LOOKUPS
    # ========================================================================

    def get_member(self, contractor_id: str, member_id: str) -> TeamMember:
        member = self.repo.get_member(self.db, contractor_id, member_id)
        if not member:
            raise NotFound(f"Team member {member_id} not found")
        return member

    def list_members(self, contractor_id: str, active_only: bool = True) -> list[TeamMember]:
        return self.repo.get_members(self.db, contractor_id, active_only=active_only)

    # ========================================================================
    # CRUD
    # ========================================================================

    def add_member(self, contractor_id: str, data: TeamMemberCreate) -> TeamMember:
        if not self.repo.get_contractor(self.db, contractor_id):
            raise NotFound(f"Contractor {contractor_id} not found")

        working_hours = (
            {day: hours.model_dump(mode="json") for day, hours in data.workingHours.items()}
            if data.workingHours
            else default_working_hours()
        )

        member = TeamMember(
            contractor_id=contractor_id,
            name=data.name,
            email=data.email,
            phone=data.phone,
            role=data.role,
            is_active=data.isActive,
            skills=[s.model_dump(mode="json") for s in data.skills],
            certifications=[c.model_dump(mode="json") for c in data.certifications],
            working_hours=working_hours,
            time_off=[t.model_dump(mode="json") for t in data.timeOff],
            home_base=data.homeBase,
            max_drive_time_minutes=data.maxDriveTimeMinutes,
            hourly_rate=data.hourlyRate,
            stats=default_member_stats(),
        )

        with atomic(self.db, "Add team member"):
            self.repo.add_member(self.db, member)

        logger.info(f"✅ Team member {member.id} added for contractor {contractor_id}")
        return member

    def update_member(self, contractor_id: str, member_id: str, data: TeamMemberUpdate) -> TeamMember:
        member = self.get_member(contractor_id, member_id)

        updates = {}
        if data.name is not None:
            updates["name"] = data.name
        if data.email is not None:
            updates["email"] = data.email
        if data.phone is not None:
            updates["phone"] = data.phone
        if data.role is not None:
            updates["role"] = data.role
        if data.isActive is not None:
            updates["is_active"] = data.isActive
        if data.workingHours is not None:
            updates["working_hours"] = {
                day: hours.model_dump(mode="json") for day, hours in data.workingHours.items()
            }
        if data.homeBase is not None:
            updates["home_base"] = data.homeBase
        if data.maxDriveTimeMinutes is not None:
            updates["max_drive_time_minutes"] = data.maxDriveTimeMinutes
        if data.hourlyRate is not None:
            updates["hourly_rate"] = data.hourlyRate

        with atomic(self.db, "Update team member"):
            for key, value in updates.items():
                setattr(member, key, value)

        return member

    def deactivate_member(self, contractor_id: str, member_id: str) -> TeamMember:
        """Soft-disable; the member stays on record but is never eligible"""
        member = self.get_member(contractor_id, member_id)
        with atomic(self.db, "Deactivate team member"):
            member.is_active = False
        logger.info(f"⚠️ Team member {member_id} deactivated")
        return member

    def delete_member(self, contractor_id: str, member_id: str) -> None:
        member = self.get_member(contractor_id, member_id)
        with atomic(self.db, "Delete team member"):
            self.repo.delete_member(self.db, member)
        logger.info(f"🗑️ Team member {member_id} hard-deleted")

    # ========================================================================
    # SKILLS, CERTIFICATIONS, TIME OFF
    # ========================================================================

    def add_skill(self, contractor_id: str, member_id: str, skill: SkillCreate) -> TeamMember:
        """Add a skill, or merge into the existing entry with the same skillId"""
        member = self.get_member(contractor_id, member_id)
        skills = [dict(s) for s in (member.skills or [])]
        incoming = skill.model_dump(mode="json")

        for existing in skills:
            if existing.get("skillId") == skill.skillId:
                existing.update(incoming)
                break
        else:
            skills.append({**incoming, "addedAt": _now_iso()})

        with atomic(self.db, "Add skill"):
            member.skills = skills
        return member

    def remove_skill(self, contractor_id: str, member_id: str, skill_id: str) -> TeamMember:
        member = self.get_member(contractor_id, member_id)
        with atomic(self.db, "Remove skill"):
            member.skills = [s for s in (member.skills or []) if s.get("skillId") != skill_id]
        return member

    def add_certification(
        self, contractor_id: str, member_id: str, certification: CertificationCreate
    ) -> TeamMember:
        """Add a certification, or merge into the existing entry with the same certId"""
        member = self.get_member(contractor_id, member_id)
        certs = [dict(c) for c in (member.certifications or [])]
        incoming = certification.model_dump(mode="json")

        for existing in certs:
            if existing.get("certId") == certification.certId:
                existing.update(incoming)
                break
        else:
            certs.append(
                {
                    **incoming,
                    "issuedAt": incoming.get("issuedAt") or _now_iso(),
                    "verifiedAt": None,
                }
            )

        with atomic(self.db, "Add certification"):
            member.certifications = certs
        return member

    def add_time_off(self, contractor_id: str, member_id: str, data: TimeOffCreate) -> TeamMember:
        member = self.get_member(contractor_id, member_id)
        entry = {
            "id": f"pto_{uuid.uuid4().hex[:12]}",
            "startDate": data.startDate.isoformat(),
            "endDate": data.endDate.isoformat(),
            "reason": data.reason or "Time off",
            "approved": data.approved,
            "createdAt": _now_iso(),
        }
        with atomic(self.db, "Add time off"):
            member.time_off = [*(member.time_off or []), entry]
        logger.info(
            f"📅 Time off {entry['startDate']}..{entry['endDate']} added for team member {member_id}"
        )
        return member

    # ========================================================================
    # AVAILABILITY & ELIGIBILITY
    # ========================================================================

    def check_member_availability(
        self,
        contractor_id: str,
        member_id: str,
        target_date: date,
        start_time: Optional[time] = None,
        end_time: Optional[time] = None,
    ) -> AvailabilityResult:
        member = self.get_member(contractor_id, member_id)
        return check_availability(self.repo.to_profile(member), target_date, start_time, end_time)

    def evaluate_member(
        self, contractor_id: str, member_id: str, requirements: JobRequirements
    ) -> EligibilityResult:
        member = self.get_member(contractor_id, member_id)
        return evaluate_technician(self.repo.to_profile(member), requirements)

    def evaluate_team(self, contractor_id: str, requirements: JobRequirements) -> EligibilityReport:
        """Rank the whole team, keeping rejections so the caller can explain them"""
        members = self.repo.get_members(self.db, contractor_id)
        report = rank_technicians([self.repo.to_profile(m) for m in members], requirements)
        logger.info(
            f"🔎 Eligibility for contractor {contractor_id} on {requirements.date}: "
            f"{len(report.eligible)} eligible, {len(report.rejected)} rejected"
        )
        return report

    def find_eligible_technicians(
        self, contractor_id: str, requirements: JobRequirements
    ) -> list[EligibleTechnician]:
        return self.evaluate_team(contractor_id, requirements).eligible
