"""
Staff Scoring Service - Connected Capacity Scheduling
connected_capacity/scheduling/staff_scoring.py

Confidence score (0-100) for assigning a staff member to a patient service.

| Component         | Weight |
|-------------------|--------|
| Capacity fit      | 25     |
| Continuity        | 20     |
| Travel efficiency | 20     |
| Region match      | 10     |
| Role fit          | 10     |
| Workload balance  | 10     |
| Urgency fit       | 5      |

Match status: strong >= 80, moderate >= 60, weak >= 40, else none.
"""

from typing import Dict, List, Optional, Sequence

import structlog

from connected_capacity.engines.utils import round_half_up
from connected_capacity.models.enumerations import MatchStatus
from connected_capacity.models.scheduling import (
    ScoreComponent,
    SchedulingPatient,
    ServiceRequirement,
    StaffMember,
    StaffScore,
)
from connected_capacity.scheduling.travel import estimate_travel_minutes

logger = structlog.get_logger(__name__)

WEIGHT_CAPACITY = 25
WEIGHT_CONTINUITY = 20
WEIGHT_TRAVEL = 20
WEIGHT_REGION = 10
WEIGHT_ROLE = 10
WEIGHT_WORKLOAD = 10
WEIGHT_URGENCY = 5

STRONG_MATCH_THRESHOLD = 80
MODERATE_MATCH_THRESHOLD = 60
WEAK_MATCH_THRESHOLD = 40

TRAVEL_EXCELLENT = 15
TRAVEL_GOOD = 25
TRAVEL_ACCEPTABLE = 40

POINTS_PER_VISIT = 4
DEFAULT_RELIABILITY = 0.90


def determine_match_status(score: float) -> MatchStatus:
    if score >= STRONG_MATCH_THRESHOLD:
        return MatchStatus.STRONG
    if score >= MODERATE_MATCH_THRESHOLD:
        return MatchStatus.MODERATE
    if score >= WEAK_MATCH_THRESHOLD:
        return MatchStatus.WEAK
    return MatchStatus.NONE


class StaffScoringService:

    def calculate_score(
        self,
        staff: StaffMember,
        patient: SchedulingPatient,
        service: ServiceRequirement,
    ) -> StaffScore:
        capacity, remaining = self.score_capacity(staff, service.duration_minutes)
        continuity, visits = self.score_continuity(staff, patient)
        travel, travel_minutes = self.score_travel(staff, patient)
        workload, utilization = self.score_workload_balance(staff)

        breakdown: Dict[str, ScoreComponent] = {
            "capacity_fit": capacity,
            "continuity": continuity,
            "travel_efficiency": travel,
            "region_match": self.score_region(staff, patient),
            "role_fit": self.score_role_fit(staff, service),
            "workload_balance": workload,
            "urgency_fit": self.score_urgency_fit(staff, patient),
        }
        total = round_half_up(sum(component.score for component in breakdown.values()), 1)

        return StaffScore(
            staff_id=staff.staff_id,
            patient_id=patient.patient_id,
            service_code=service.service_code,
            total_score=total,
            match_status=determine_match_status(total),
            breakdown=breakdown,
            travel_minutes=travel_minutes,
            continuity_visits=visits,
            remaining_hours=remaining,
            utilization_percent=utilization,
        )

    def score_multiple_staff(
        self,
        staff: Sequence[StaffMember],
        patient: SchedulingPatient,
        service: ServiceRequirement,
    ) -> List[StaffScore]:
        scores = [self.calculate_score(member, patient, service) for member in staff]
        return sorted(scores, key=lambda s: s.total_score, reverse=True)

    # ------------------------------------------------------------------
    # Components
    # ------------------------------------------------------------------

    @staticmethod
    def score_capacity(staff: StaffMember, duration_minutes: int):
        remaining = staff.remaining_hours
        required = duration_minutes / 60

        if remaining < required:
            return ScoreComponent(score=0, max=WEIGHT_CAPACITY, note="Insufficient capacity"), remaining

        buffer_percent = (remaining - required) / staff.max_weekly_hours * 100
        if buffer_percent >= 30:
            score = WEIGHT_CAPACITY
        elif buffer_percent >= 20:
            score = WEIGHT_CAPACITY * 0.9
        elif buffer_percent >= 10:
            score = WEIGHT_CAPACITY * 0.7
        else:
            score = WEIGHT_CAPACITY * 0.5

        remaining = round_half_up(remaining, 1)
        component = ScoreComponent(
            score=round_half_up(score, 1), max=WEIGHT_CAPACITY, note=f"{remaining:g}h remaining"
        )
        return component, remaining

    @staticmethod
    def score_continuity(staff: StaffMember, patient: SchedulingPatient):
        visits = staff.visits_with(patient.patient_id)
        if visits <= 0:
            return ScoreComponent(score=0, max=WEIGHT_CONTINUITY, note="New relationship"), 0

        note = "1 previous visit" if visits == 1 else f"{visits} previous visits"
        score = min(WEIGHT_CONTINUITY, visits * POINTS_PER_VISIT)
        return ScoreComponent(score=score, max=WEIGHT_CONTINUITY, note=note), visits

    @staticmethod
    def score_travel(staff: StaffMember, patient: SchedulingPatient):
        if patient.location is None:
            return ScoreComponent(score=WEIGHT_TRAVEL * 0.5, max=WEIGHT_TRAVEL, note="No patient location data"), None

        if staff.previous_location is None:
            return ScoreComponent(score=WEIGHT_TRAVEL * 0.7, max=WEIGHT_TRAVEL, note="No prior appointment"), None

        minutes = estimate_travel_minutes(staff.previous_location, patient.location)
        if minutes <= TRAVEL_EXCELLENT:
            score = WEIGHT_TRAVEL
        elif minutes <= TRAVEL_GOOD:
            score = WEIGHT_TRAVEL * 0.8
        elif minutes <= TRAVEL_ACCEPTABLE:
            score = WEIGHT_TRAVEL * 0.5
        else:
            score = max(0.0, WEIGHT_TRAVEL * (1 - (minutes - TRAVEL_ACCEPTABLE) / 60))

        component = ScoreComponent(score=round_half_up(score, 1), max=WEIGHT_TRAVEL, note=f"{minutes} min travel")
        return component, minutes

    @staticmethod
    def score_region(staff: StaffMember, patient: SchedulingPatient) -> ScoreComponent:
        if not staff.region_code or not patient.region_code:
            return ScoreComponent(score=WEIGHT_REGION * 0.5, max=WEIGHT_REGION, note="Region data incomplete")
        if staff.region_code == patient.region_code:
            return ScoreComponent(score=WEIGHT_REGION, max=WEIGHT_REGION, note="Same region")
        return ScoreComponent(score=0, max=WEIGHT_REGION, note="Different region")

    @staticmethod
    def score_role_fit(staff: StaffMember, service: ServiceRequirement) -> ScoreComponent:
        if not staff.role_code:
            return ScoreComponent(score=0, max=WEIGHT_ROLE, note="No role assigned")
        if staff.role_code in service.primary_roles:
            return ScoreComponent(score=WEIGHT_ROLE, max=WEIGHT_ROLE, note="Primary role")
        if staff.role_code in service.eligible_roles:
            return ScoreComponent(score=WEIGHT_ROLE * 0.6, max=WEIGHT_ROLE, note="Secondary role")
        return ScoreComponent(score=0, max=WEIGHT_ROLE, note="Role not eligible")

    @staticmethod
    def score_workload_balance(staff: StaffMember):
        utilization = staff.utilization_percent

        # 50-70% utilization is the target band
        if 50 <= utilization <= 70:
            score = WEIGHT_WORKLOAD
        elif utilization < 50:
            score = WEIGHT_WORKLOAD * 0.8
        elif utilization <= 80:
            score = WEIGHT_WORKLOAD * 0.7
        else:
            score = WEIGHT_WORKLOAD * 0.4

        component = ScoreComponent(
            score=round_half_up(score, 1),
            max=WEIGHT_WORKLOAD,
            note=f"{round_half_up(utilization):.0f}% utilized",
        )
        return component, round_half_up(utilization, 1)

    @staticmethod
    def score_urgency_fit(staff: StaffMember, patient: SchedulingPatient) -> ScoreComponent:
        if not patient.is_high_acuity:
            return ScoreComponent(score=WEIGHT_URGENCY, max=WEIGHT_URGENCY, note="Standard acuity")

        reliability: Optional[float] = staff.reliability
        if reliability is None:
            reliability = DEFAULT_RELIABILITY

        if reliability >= 0.95:
            return ScoreComponent(score=WEIGHT_URGENCY, max=WEIGHT_URGENCY, note="High acuity + reliable staff")
        if reliability >= 0.85:
            return ScoreComponent(score=WEIGHT_URGENCY * 0.6, max=WEIGHT_URGENCY, note="High acuity patient")
        return ScoreComponent(score=WEIGHT_URGENCY * 0.3, max=WEIGHT_URGENCY, note="Consider more reliable staff")
