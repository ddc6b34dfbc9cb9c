"""
Auto-Assign Engine - Connected Capacity Scheduling
connected_capacity/scheduling/auto_assign.py

Suggests the best staff member for every unscheduled service:

  1. skip services with no remaining visits
  2. eligible staff: active, not locked, role allowed for the service
  3. hard constraints: required skills, weekly capacity, leave
  4. score survivors; best non-"none" match wins, otherwise a no-match
     suggestion carrying the exclusion reasons
  5. order by match tier, then confidence score
"""

from collections import Counter
from datetime import date
from typing import List, Optional, Sequence, Tuple

import structlog

from connected_capacity.core.exceptions import SchedulingException
from connected_capacity.models.enumerations import MatchStatus
from connected_capacity.models.scheduling import (
    AssignmentSuggestion,
    CareRequirement,
    SchedulingPatient,
    ServiceRequirement,
    StaffMember,
    StaffScore,
)
from connected_capacity.scheduling.staff_scoring import WEIGHT_ROLE, StaffScoringService

logger = structlog.get_logger(__name__)

_EXCLUSION_MESSAGES = (
    ("unavailable", "{} staff unavailable (time-off)"),
    ("capacity", "{} staff over capacity threshold"),
    ("skills", "{} staff missing required skills"),
)


class AutoAssignEngine:

    def __init__(self, scoring_service: Optional[StaffScoringService] = None):
        self.scoring_service = scoring_service or StaffScoringService()

    def generate_suggestions(
        self,
        requirements: Sequence[CareRequirement],
        staff: Sequence[StaffMember],
        week_start: Optional[date] = None,
    ) -> List[AssignmentSuggestion]:
        duplicates = [staff_id for staff_id, count in Counter(m.staff_id for m in staff).items() if count > 1]
        if duplicates:
            raise SchedulingException(f"Duplicate staff ids: {', '.join(sorted(duplicates))}")

        suggestions: List[AssignmentSuggestion] = []
        for requirement in requirements:
            for service in requirement.services:
                suggestion = self.process_service(requirement.patient, service, staff, week_start)
                if suggestion is not None:
                    suggestions.append(suggestion)

        suggestions.sort(key=lambda s: s.sort_key, reverse=True)
        logger.info(
            "assignment_suggestions_generated",
            total=len(suggestions),
            matched=sum(1 for s in suggestions if s.has_suggestion),
        )
        return suggestions

    def process_service(
        self,
        patient: SchedulingPatient,
        service: ServiceRequirement,
        staff: Sequence[StaffMember],
        week_start: Optional[date] = None,
    ) -> Optional[AssignmentSuggestion]:
        if service.remaining_visits <= 0:
            return None

        eligible = self.find_eligible_staff(service, staff)
        evaluated = len(eligible)
        if not eligible:
            return AssignmentSuggestion.no_match(
                patient, service, ["No staff with eligible role found"], evaluated, week_start
            )

        passed, reasons = self.apply_hard_constraints(eligible, service)
        if not passed:
            return AssignmentSuggestion.no_match(patient, service, reasons, evaluated, week_start)

        scores = self.scoring_service.score_multiple_staff(passed, patient, service)
        best = scores[0]
        if best.match_status == MatchStatus.NONE:
            return AssignmentSuggestion.no_match(
                patient, service, ["No staff met minimum scoring threshold"], evaluated, week_start
            )

        best_staff = next(member for member in passed if member.staff_id == best.staff_id)
        return self.build_suggestion(
            patient, service, best_staff, best, evaluated, len(passed), reasons, week_start
        )

    @staticmethod
    def find_eligible_staff(service: ServiceRequirement, staff: Sequence[StaffMember]) -> List[StaffMember]:
        return [
            member for member in staff
            if member.is_active and not member.scheduling_locked and service.is_eligible_role(member.role_code)
        ]

    @staticmethod
    def apply_hard_constraints(
        staff: Sequence[StaffMember],
        service: ServiceRequirement,
    ) -> Tuple[List[StaffMember], List[str]]:
        passed: List[StaffMember] = []
        excluded: Counter = Counter()
        required_skills = set(service.required_skills)

        for member in staff:
            if not required_skills.issubset(member.skills):
                excluded["skills"] += 1
                continue
            if member.remaining_hours * 60 < service.duration_minutes:
                excluded["capacity"] += 1
                continue
            if member.on_leave:
                excluded["unavailable"] += 1
                continue
            passed.append(member)

        reasons = [message.format(excluded[key]) for key, message in _EXCLUSION_MESSAGES if excluded[key]]
        return passed, reasons

    def score_single(
        self,
        patient: SchedulingPatient,
        service: ServiceRequirement,
        staff_member: StaffMember,
        week_start: Optional[date] = None,
    ) -> AssignmentSuggestion:
        """Suggestion for one explicit staff member, skipping eligibility filters."""
        score = self.scoring_service.calculate_score(staff_member, patient, service)
        return self.build_suggestion(patient, service, staff_member, score, 1, 1, [], week_start)

    @staticmethod
    def build_suggestion(
        patient: SchedulingPatient,
        service: ServiceRequirement,
        staff_member: StaffMember,
        score: StaffScore,
        candidates_evaluated: int,
        candidates_passed: int,
        exclusion_reasons: List[str],
        week_start: Optional[date] = None,
    ) -> AssignmentSuggestion:
        return AssignmentSuggestion(
            patient_id=patient.patient_id,
            service_code=service.service_code,
            service_name=service.service_name,
            duration_minutes=service.duration_minutes,
            suggested_staff_id=staff_member.staff_id,
            delivery_mode=service.delivery_mode,
            patient_region_code=patient.region_code,
            patient_acuity_level=patient.acuity_level,
            patient_maple_score=patient.maple_score,
            patient_risk_flags=patient.risk_flags,
            staff_role_code=staff_member.role_code,
            staff_employment_type=staff_member.employment_type,
            staff_remaining_hours=score.remaining_hours,
            staff_utilization_percent=score.utilization_percent,
            staff_has_required_skills=set(service.required_skills).issubset(staff_member.skills),
            confidence_score=score.total_score,
            match_status=score.match_status,
            scoring_breakdown=score.breakdown,
            is_primary_role=score.breakdown["role_fit"].score >= WEIGHT_ROLE,
            estimated_travel_minutes=score.travel_minutes,
            continuity_visit_count=score.continuity_visits,
            candidates_evaluated=candidates_evaluated,
            candidates_passed=candidates_passed,
            exclusion_reasons=exclusion_reasons,
            week_start=week_start,
        )
