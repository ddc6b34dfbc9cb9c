"""
Scheduling models - Connected Capacity Bundle Engine
connected_capacity/models/scheduling.py

Staff, patient and requirement inputs for assignment scoring, and the
suggestion returned per unscheduled service.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from connected_capacity.models.enumerations import MatchStatus

DEFAULT_MAX_WEEKLY_HOURS = 40.0


class GeoPoint(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class StaffMember(BaseModel):
    """
    Field staff candidate with the week's scheduling state.
    """

    staff_id: str = Field(..., min_length=1)
    role_code: Optional[str] = Field(default=None, description="Staff role, e.g. RN, PSW, PT")
    employment_type: Optional[str] = None
    region_code: Optional[str] = None
    max_weekly_hours: float = Field(default=DEFAULT_MAX_WEEKLY_HOURS, gt=0)
    scheduled_hours: float = Field(default=0.0, ge=0, description="Hours already scheduled this week")
    skills: List[str] = Field(default_factory=list)
    on_leave: bool = False
    is_active: bool = True
    scheduling_locked: bool = False
    reliability: Optional[float] = Field(
        default=None,
        ge=0,
        le=1,
        description="Completed / scheduled visits over the last three months",
    )
    previous_location: Optional[GeoPoint] = Field(
        default=None,
        description="Location of the staff member's prior appointment that day",
    )
    patient_visit_counts: Dict[str, int] = Field(
        default_factory=dict,
        description="Completed visits keyed by patient id",
    )

    @property
    def remaining_hours(self) -> float:
        return self.max_weekly_hours - self.scheduled_hours

    @property
    def utilization_percent(self) -> float:
        return self.scheduled_hours / self.max_weekly_hours * 100

    def visits_with(self, patient_id: str) -> int:
        return self.patient_visit_counts.get(patient_id, 0)


class SchedulingPatient(BaseModel):
    patient_id: str = Field(..., min_length=1)
    region_code: Optional[str] = None
    region_name: Optional[str] = None
    location: Optional[GeoPoint] = None
    maple_score: Optional[int] = Field(default=None, ge=1, le=5)
    acuity_level: str = Field(default="medium", description="low, medium or high")
    risk_flags: List[str] = Field(default_factory=list)

    @property
    def is_high_acuity(self) -> bool:
        return (self.maple_score or 0) >= 4 or self.acuity_level == "high"


class ServiceRequirement(BaseModel):
    """
    One service on a patient's care bundle and how much of it is scheduled.
    """

    service_code: str = Field(..., min_length=1)
    service_name: str
    duration_minutes: int = Field(default=60, gt=0)
    required_visits: int = Field(default=1, ge=0)
    scheduled_visits: int = Field(default=0, ge=0)
    eligible_roles: List[str] = Field(default_factory=list, description="Roles that may deliver the service")
    primary_roles: List[str] = Field(default_factory=list, description="Roles that normally deliver it")
    required_skills: List[str] = Field(default_factory=list)
    delivery_mode: Optional[str] = None

    @field_validator("service_code")
    @classmethod
    def uppercase_code(cls, value: str) -> str:
        return value.upper()

    @property
    def remaining_visits(self) -> int:
        return max(0, self.required_visits - self.scheduled_visits)

    def is_eligible_role(self, role_code: Optional[str]) -> bool:
        return role_code is not None and role_code in (self.eligible_roles + self.primary_roles)


class CareRequirement(BaseModel):
    patient: SchedulingPatient
    services: List[ServiceRequirement] = Field(default_factory=list)


class ScoreComponent(BaseModel):
    score: float
    max: float
    note: str


class StaffScore(BaseModel):
    staff_id: str
    patient_id: str
    service_code: str
    total_score: float
    match_status: MatchStatus
    breakdown: Dict[str, ScoreComponent]
    travel_minutes: Optional[int] = None
    continuity_visits: int = 0
    remaining_hours: Optional[float] = None
    utilization_percent: Optional[float] = None


class AssignmentSuggestion(BaseModel):
    """
    Best staff match for one unscheduled service, or a no-match with reasons.
    """

    patient_id: str
    service_code: str
    service_name: str
    duration_minutes: int
    suggested_staff_id: Optional[str] = None
    delivery_mode: Optional[str] = None

    # Patient context
    patient_region_code: Optional[str] = None
    patient_acuity_level: Optional[str] = None
    patient_maple_score: Optional[int] = None
    patient_risk_flags: List[str] = Field(default_factory=list)

    # Staff context
    staff_role_code: Optional[str] = None
    staff_employment_type: Optional[str] = None
    staff_remaining_hours: Optional[float] = None
    staff_utilization_percent: Optional[float] = None
    staff_has_required_skills: Optional[bool] = None

    # Scoring
    confidence_score: float = 0.0
    match_status: MatchStatus = MatchStatus.NONE
    scoring_breakdown: Optional[Dict[str, ScoreComponent]] = None
    is_primary_role: Optional[bool] = None

    estimated_travel_minutes: Optional[int] = None
    continuity_visit_count: Optional[int] = None

    candidates_evaluated: Optional[int] = None
    candidates_passed: Optional[int] = None
    exclusion_reasons: List[str] = Field(default_factory=list)

    week_start: Optional[date] = None

    @property
    def has_suggestion(self) -> bool:
        return self.suggested_staff_id is not None and self.match_status != MatchStatus.NONE

    @property
    def is_strong_match(self) -> bool:
        return self.match_status == MatchStatus.STRONG or self.confidence_score >= 80

    @property
    def continuity_note(self) -> Optional[str]:
        if not self.continuity_visit_count or self.continuity_visit_count < 1:
            return None
        if self.continuity_visit_count == 1:
            return "Has served this patient once before"
        return f"Has served this patient {self.continuity_visit_count} times"

    @property
    def sort_key(self) -> float:
        return self.match_status.rank * 100 + self.confidence_score

    def to_api_dict(self) -> Dict[str, Any]:
        return {
            "patient_id": self.patient_id,
            "service_code": self.service_code,
            "service_name": self.service_name,
            "duration_minutes": self.duration_minutes,
            "suggested_staff_id": self.suggested_staff_id,
            "suggested_staff_role": self.staff_role_code,
            "confidence_score": round(self.confidence_score, 1),
            "match_status": self.match_status.value,
            "has_suggestion": self.has_suggestion,
            "is_strong_match": self.is_strong_match,
            "estimated_travel_minutes": self.estimated_travel_minutes,
            "continuity_note": self.continuity_note,
            "scoring_breakdown": (
                {k: v.model_dump() for k, v in self.scoring_breakdown.items()}
                if self.scoring_breakdown else None
            ),
            "exclusion_reasons": self.exclusion_reasons,
            "candidates_evaluated": self.candidates_evaluated,
            "candidates_passed": self.candidates_passed,
        }

    @classmethod
    def no_match(
        cls,
        patient: SchedulingPatient,
        service: ServiceRequirement,
        exclusion_reasons: List[str],
        candidates_evaluated: int = 0,
        week_start: Optional[date] = None,
    ) -> "AssignmentSuggestion":
        return cls(
            patient_id=patient.patient_id,
            service_code=service.service_code,
            service_name=service.service_name,
            duration_minutes=service.duration_minutes,
            delivery_mode=service.delivery_mode,
            patient_region_code=patient.region_code,
            patient_acuity_level=patient.acuity_level,
            patient_maple_score=patient.maple_score,
            patient_risk_flags=patient.risk_flags,
            match_status=MatchStatus.NONE,
            exclusion_reasons=exclusion_reasons,
            candidates_evaluated=candidates_evaluated,
            candidates_passed=0,
            week_start=week_start,
        )


class StaffScoreRequest(BaseModel):
    """Request body for scoring candidates against one service."""

    patient: SchedulingPatient
    service: ServiceRequirement
    staff: List[StaffMember] = Field(..., min_length=1)


class SuggestionsRequest(BaseModel):
    """Request body for auto-assign suggestions."""

    requirements: List[CareRequirement]
    staff: List[StaffMember] = Field(default_factory=list)
    week_start: Optional[date] = None
