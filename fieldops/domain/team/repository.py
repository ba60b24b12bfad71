"""Team repository - Database operations for team members"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Contractor, TeamMember
from .schemas import TeamMemberResponse, TechnicianProfile


class TeamRepository:
    """Repository for team member database operations"""

    @staticmethod
    def get_contractor(db: Session, contractor_id: str) -> Optional[Contractor]:
        return db.query(Contractor).filter(Contractor.id == contractor_id).first()

    @staticmethod
    def get_member(db: Session, contractor_id: str, member_id: str) -> Optional[TeamMember]:
        return (
            db.query(TeamMember)
            .filter(TeamMember.id == member_id, TeamMember.contractor_id == contractor_id)
            .first()
        )

    @staticmethod
    def get_members(db: Session, contractor_id: str, active_only: bool = False) -> list[TeamMember]:
        """Team members in document order (by name, then id)"""
        query = db.query(TeamMember).filter(TeamMember.contractor_id == contractor_id)
        if active_only:
            query = query.filter(TeamMember.is_active.is_(True))
        return query.order_by(TeamMember.name, TeamMember.id).all()

    @staticmethod
    def add_member(db: Session, member: TeamMember) -> TeamMember:
        db.add(member)
        db.flush()
        return member

    @staticmethod
    def delete_member(db: Session, member: TeamMember) -> None:
        db.delete(member)

    @staticmethod
    def to_profile(member: TeamMember) -> TechnicianProfile:
        """Convert a stored team member into the value object the matcher consumes"""
        return TechnicianProfile.model_validate(
            {
                "id": member.id,
                "name": member.name,
                "role": member.role,
                "isActive": bool(member.is_active),
                "skills": member.skills or [],
                "certifications": member.certifications or [],
                "workingHours": member.working_hours or {},
                "timeOff": member.time_off or [],
                "hourlyRate": member.hourly_rate or 0,
                "stats": member.stats or {},
            }
        )

    @staticmethod
    def to_response(member: TeamMember) -> TeamMemberResponse:
        profile = TeamRepository.to_profile(member)
        return TeamMemberResponse(
            **profile.model_dump(),
            contractorId=member.contractor_id,
            email=member.email,
            phone=member.phone,
            homeBase=member.home_base,
            maxDriveTimeMinutes=member.max_drive_time_minutes or 60,
        )
