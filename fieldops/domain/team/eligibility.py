"""
Technician eligibility and ranking

Given a technician and a job's requirements, decide pass/fail (availability,
skills, certifications, in that order) and score the technicians that pass.
Pure functions of their inputs.
"""

from datetime import date
from typing import Iterable

from .availability import check_availability
from .schemas import (
    EligibilityReport,
    EligibilityResult,
    EligibleTechnician,
    JobRequirements,
    TechnicianProfile,
)

PROFICIENCY_WEIGHTS = {"beginner": 1, "intermediate": 2, "advanced": 3, "expert": 4}
MAX_COUNTED_YEARS = 10
YEARS_WEIGHT = 0.5
FIRST_TIME_FIX_WEIGHT = 10
ON_TIME_WEIGHT = 5
RATING_WEIGHT = 2


def find_missing_skills(technician: TechnicianProfile, required_skills: list[str]) -> list[str]:
    """Required skill ids the technician does not have"""
    if not required_skills:
        return []
    held = {s.skillId for s in technician.skills}
    return [skill for skill in required_skills if skill not in held]


def check_certifications(
    technician: TechnicianProfile, required_certs: list[str], on_date: date
) -> tuple[list[str], list[str]]:
    """
    Returns (missing, expired) certification ids.

    A certification is expired when its expiresAt falls before the job date.
    """
    if not required_certs:
        return [], []

    held = {c.certId: c for c in technician.certifications}
    missing = []
    expired = []
    for cert_id in required_certs:
        cert = held.get(cert_id)
        if cert is None:
            missing.append(cert_id)
        elif cert.expiresAt is not None and cert.expiresAt < on_date:
            expired.append(cert_id)
    return missing, expired


def calculate_match_score(technician: TechnicianProfile, requirements: JobRequirements) -> float:
    """Ranking heuristic over eligible technicians (not a filter)"""
    score = 0.0
    skills = {s.skillId: s for s in technician.skills}

    for skill_id in requirements.requiredSkills:
        skill = skills.get(skill_id)
        if skill:
            score += PROFICIENCY_WEIGHTS.get(skill.proficiency, 1)
            score += min(skill.yearsExperience or 0, MAX_COUNTED_YEARS) * YEARS_WEIGHT

    stats = technician.stats
    score += (stats.firstTimeFixRate or 0) * FIRST_TIME_FIX_WEIGHT
    score += (stats.onTimeRate or 0) * ON_TIME_WEIGHT
    score += (stats.averageRating or 0) * RATING_WEIGHT
    return score


def evaluate_technician(
    technician: TechnicianProfile, requirements: JobRequirements
) -> EligibilityResult:
    availability = check_availability(
        technician, requirements.date, requirements.startTime, requirements.endTime
    )
    if not availability.available:
        return EligibilityResult(
            technicianId=technician.id, eligible=False, reason=availability.reason
        )

    missing_skills = find_missing_skills(technician, requirements.requiredSkills)
    if missing_skills:
        return EligibilityResult(
            technicianId=technician.id,
            eligible=False,
            reason=f"Missing skills: {', '.join(missing_skills)}",
            missingSkills=missing_skills,
        )

    missing_certs, expired_certs = check_certifications(
        technician, requirements.requiredCertifications, requirements.date
    )
    if missing_certs or expired_certs:
        parts = []
        if missing_certs:
            parts.append(f"Missing certifications: {', '.join(missing_certs)}")
        if expired_certs:
            parts.append(f"Expired certifications: {', '.join(expired_certs)}")
        return EligibilityResult(
            technicianId=technician.id,
            eligible=False,
            reason="; ".join(parts),
            missingCerts=missing_certs,
            expiredCerts=expired_certs,
        )

    return EligibilityResult(
        technicianId=technician.id,
        eligible=True,
        matchScore=calculate_match_score(technician, requirements),
    )


def rank_technicians(
    technicians: Iterable[TechnicianProfile], requirements: JobRequirements
) -> EligibilityReport:
    """
    Evaluate every technician and order the eligible ones by score.

    sorted() is stable, so equal scores keep the input order.
    """
    eligible = []
    rejected = []
    for technician in technicians:
        result = evaluate_technician(technician, requirements)
        if result.eligible:
            eligible.append(
                EligibleTechnician(**technician.model_dump(), matchScore=result.matchScore)
            )
        else:
            rejected.append(result)

    eligible = sorted(eligible, key=lambda t: t.matchScore, reverse=True)
    return EligibilityReport(eligible=eligible, rejected=rejected)
