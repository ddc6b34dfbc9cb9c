from datetime import datetime, timezone
from math import floor
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from connected_capacity.models.enumerations import ScenarioAxis

WEEKS_PER_MONTH = 4.33

PRIORITY_LEVELS = ("core", "recommended", "optional")

_DISCIPLINE_LABELS = {
    "rn": "Registered Nurse",
    "rpn": "Registered Practical Nurse",
    "psw": "Personal Support Worker",
    "pt": "Physiotherapist",
    "ot": "Occupational Therapist",
    "slp": "Speech Language Pathologist",
    "sw": "Social Worker",
    "dietitian": "Dietitian",
    "css": "Community Support Service",
}

_DELIVERY_LABELS = {
    "in_person": "In-Person",
    "virtual": "Virtual",
    "hybrid": "Hybrid",
    "automated": "Automated",
}

_COST_STATUS_LABELS = {
    "within_cap": "Within Reference",
    "near_cap": "Near Reference",
    "over_cap": "Over Reference",
}

_COST_STATUS_BADGES = {
    "within_cap": "success",
    "near_cap": "warning",
    "over_cap": "danger",
}

_PRIORITY_BADGES = {
    "core": "danger",
    "recommended": "primary",
    "optional": "secondary",
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ScenarioServiceLine(BaseModel):
    """
    One service within a scenario: what, how often, how long and why.
    """

    service_category: str = Field(..., description="Service category (e.g., nursing, psw, therapy)")
    service_name: str = Field(..., description="Display name")
    frequency_count: int = Field(..., ge=0, description="Visits per period")
    frequency_period: str = Field(default="week", description="day, week, month or episode")
    duration_minutes: int = Field(default=60, ge=0, description="Duration per visit in minutes")
    discipline: str = Field(default="psw", description="rn, rpn, psw, pt, ot, slp, sw, dietitian, css")

    service_code: Optional[str] = Field(default=None, description="Service code for costing and tracking")
    estimated_weeks: Optional[int] = Field(default=None, description="Duration in weeks (None = ongoing)")
    requires_specialization: bool = False
    specialization: Optional[str] = None
    delivery_mode: str = Field(default="in_person", description="in_person, virtual, hybrid or automated")
    requires_continuity: bool = False
    time_preference: Optional[str] = None

    cost_per_visit: float = Field(default=0.0, ge=0)
    weekly_estimated_cost: float = Field(default=0.0, ge=0)
    cost_tier: Optional[str] = None

    priority_level: str = Field(default="recommended", description="core, recommended or optional")
    is_safety_critical: bool = False
    risks_addressed: Optional[List[str]] = None
    clinical_rationale: Optional[str] = None
    patient_goal_supported: Optional[str] = None
    justifying_factors: Optional[List[str]] = None
    axis_contribution: Optional[str] = None
    is_modifiable: bool = True
    alternative: Optional[str] = None

    @field_validator("priority_level")
    @classmethod
    def validate_priority(cls, v: str) -> str:
        if v not in PRIORITY_LEVELS:
            raise ValueError(f"priority_level must be one of {PRIORITY_LEVELS}")
        return v

    @property
    def frequency_label(self) -> str:
        count = self.frequency_count
        if self.frequency_period == "day":
            return "Once daily" if count == 1 else f"{count} times daily"
        if self.frequency_period == "episode":
            return "One-time"
        if self.frequency_period == "week":
            period = "per week" if count == 1 else "times per week"
        elif self.frequency_period == "month":
            period = "per month" if count == 1 else "times per month"
        else:
            period = f"per {self.frequency_period}"
        return f"Once {period}" if count == 1 else f"{count} {period}"

    @property
    def duration_label(self) -> str:
        if self.duration_minutes < 60:
            return f"{self.duration_minutes} min"
        hours = floor(self.duration_minutes / 60)
        minutes = self.duration_minutes % 60
        if minutes == 0:
            return f"{hours} hr" + ("s" if hours > 1 else "")
        return f"{hours} hr {minutes} min"

    @property
    def delivery_mode_label(self) -> str:
        return _DELIVERY_LABELS.get(self.delivery_mode, self.delivery_mode.capitalize())

    @property
    def discipline_label(self) -> str:
        return _DISCIPLINE_LABELS.get(self.discipline, self.discipline.upper())

    @property
    def weekly_visits(self) -> float:
        if self.frequency_period == "day":
            return float(self.frequency_count * 7)
        if self.frequency_period == "month":
            return self.frequency_count / WEEKS_PER_MONTH
        if self.frequency_period == "episode":
            return 0.0
        return float(self.frequency_count)

    @property
    def weekly_hours(self) -> float:
        return self.weekly_visits * self.duration_minutes / 60

    def to_api_dict(self) -> Dict[str, Any]:
        return {
            "service_category": self.service_category,
            "service_name": self.service_name,
            "service_code": self.service_code,
            "frequency": {
                "count": self.frequency_count,
                "period": self.frequency_period,
                "label": self.frequency_label,
            },
            "duration": {"minutes": self.duration_minutes, "label": self.duration_label},
            "estimated_weeks": self.estimated_weeks,
            "discipline": {"code": self.discipline, "label": self.discipline_label},
            "specialization": {"required": self.requires_specialization, "type": self.specialization},
            "delivery": {
                "mode": self.delivery_mode,
                "label": self.delivery_mode_label,
                "continuity": self.requires_continuity,
                "time_preference": self.time_preference,
            },
            "cost": {
                "per_visit": self.cost_per_visit,
                "weekly_estimate": self.weekly_estimated_cost,
                "tier": self.cost_tier,
            },
            "priority": {
                "level": self.priority_level,
                "safety_critical": self.is_safety_critical,
                "badge_class": _PRIORITY_BADGES.get(self.priority_level, "secondary"),
            },
            "clinical": {
                "rationale": self.clinical_rationale,
                "patient_goal": self.patient_goal_supported,
                "risks_addressed": self.risks_addressed,
                "justifying_factors": self.justifying_factors,
            },
            "scenario": {
                "axis_contribution": self.axis_contribution,
                "modifiable": self.is_modifiable,
                "alternative": self.alternative,
            },
            "calculated": {
                "weekly_visits": round(self.weekly_visits, 1),
                "weekly_hours": round(self.weekly_hours, 2),
            },
        }


class ScenarioBundle(BaseModel):
    """
    A complete scenario proposal: services, cost annotation and patient-experience context.
    """

    scenario_id: str = Field(default_factory=lambda: str(uuid4()))
    patient_id: str
    primary_axis: ScenarioAxis
    title: str
    description: str

    service_lines: List[ScenarioServiceLine] = Field(default_factory=list)
    secondary_axes: List[ScenarioAxis] = Field(default_factory=list)
    subtitle: Optional[str] = None
    icon: str = "📋"

    # Cost annotation
    weekly_estimated_cost: float = 0.0
    reference_cap: float = 5000.0
    cost_status: str = "within_cap"
    cap_utilization: float = 0.0
    cost_note: Optional[str] = None

    # Operational metrics
    total_weekly_hours: float = 0.0
    total_weekly_visits: int = 0
    in_person_percentage: float = 100.0
    virtual_percentage: float = 0.0
    discipline_count: int = 0

    # Context
    trade_offs: Dict[str, str] = Field(default_factory=dict)
    key_benefits: List[str] = Field(default_factory=list)
    patient_goals_supported: List[str] = Field(default_factory=list)
    risks_addressed: List[str] = Field(default_factory=list)

    # Safety
    meets_safety_requirements: bool = True
    safety_warnings: Optional[List[str]] = None
    is_validated: bool = False

    # Source & confidence
    source: str = "rule_engine"
    confidence_level: str = "medium"
    confidence_notes: Optional[str] = None

    # Explanation
    explanation: Optional[str] = None
    has_explanation: bool = False

    # Metadata
    generated_at: str = Field(default_factory=_now_iso)
    display_order: Optional[int] = None
    is_recommended: bool = False

    @property
    def cost_status_label(self) -> str:
        return _COST_STATUS_LABELS.get(self.cost_status, "Unknown")

    def service_lines_by_category(self) -> Dict[str, List[ScenarioServiceLine]]:
        grouped: Dict[str, List[ScenarioServiceLine]] = {}
        for line in self.service_lines:
            grouped.setdefault(line.service_category, []).append(line)
        return grouped

    def service_lines_by_priority(self) -> Dict[str, List[ScenarioServiceLine]]:
        grouped: Dict[str, List[ScenarioServiceLine]] = {level: [] for level in PRIORITY_LEVELS}
        for line in self.service_lines:
            grouped[line.priority_level].append(line)
        return grouped

    def service_lines_by_discipline(self) -> Dict[str, List[ScenarioServiceLine]]:
        grouped: Dict[str, List[ScenarioServiceLine]] = {}
        for line in self.service_lines:
            grouped.setdefault(line.discipline, []).append(line)
        return grouped

    def core_services(self) -> List[ScenarioServiceLine]:
        return [line for line in self.service_lines if line.priority_level == "core" or line.is_safety_critical]

    def has_service_category(self, category: str) -> bool:
        return any(line.service_category == category for line in self.service_lines)

    def unique_disciplines(self) -> List[str]:
        return list(dict.fromkeys(line.discipline for line in self.service_lines))

    def summary(self) -> str:
        return (
            f"{self.title} ({self.primary_axis.value}) - {len(self.service_lines)} services, "
            f"${self.weekly_estimated_cost:.0f}/week ({self.cost_status})"
        )

    def to_api_dict(self) -> Dict[str, Any]:
        return {
            "scenario_id": self.scenario_id,
            "patient_id": self.patient_id,
            "axis": {
                "primary": {
                    "value": self.primary_axis.value,
                    "label": self.primary_axis.label,
                    "emoji": self.primary_axis.emoji,
                },
                "secondary": [{"value": a.value, "label": a.label} for a in self.secondary_axes],
            },
            "label": {
                "title": self.title,
                "subtitle": self.subtitle,
                "description": self.description,
                "icon": self.icon,
            },
            "services": [line.to_api_dict() for line in self.service_lines],
            "cost": {
                "weekly_estimate": self.weekly_estimated_cost,
                "reference_cap": self.reference_cap,
                "status": self.cost_status,
                "status_label": self.cost_status_label,
                "status_badge": _COST_STATUS_BADGES.get(self.cost_status, "secondary"),
                "cap_utilization": round(self.cap_utilization, 1),
                "note": self.cost_note,
            },
            "operations": {
                "weekly_hours": round(self.total_weekly_hours, 1),
                "weekly_visits": self.total_weekly_visits,
                "in_person_percentage": round(self.in_person_percentage, 1),
                "virtual_percentage": round(self.virtual_percentage, 1),
                "discipline_count": self.discipline_count,
                "disciplines": self.unique_disciplines(),
            },
            "context": {
                "trade_offs": self.trade_offs,
                "key_benefits": self.key_benefits,
                "patient_goals": self.patient_goals_supported,
                "risks_addressed": self.risks_addressed,
            },
            "safety": {
                "meets_requirements": self.meets_safety_requirements,
                "warnings": self.safety_warnings,
                "validated": self.is_validated,
            },
            "source": {
                "type": self.source,
                "confidence": self.confidence_level,
                "confidence_notes": self.confidence_notes,
            },
            "explanation": {
                "text": self.explanation,
                "has_explanation": self.has_explanation,
            },
            "meta": {
                "generated_at": self.generated_at,
                "display_order": self.display_order,
                "is_recommended": self.is_recommended,
            },
        }

    def to_deidentified(self) -> Dict[str, Any]:
        data = self.to_api_dict()
        data.pop("patient_id", None)
        return data

    @classmethod
    def minimal(cls, patient_id: str, axis: ScenarioAxis) -> "ScenarioBundle":
        return cls(
            patient_id=patient_id,
            primary_axis=axis,
            title=axis.label,
            description=axis.description,
            icon=axis.emoji,
            trade_offs=axis.trade_offs,
            source="template",
            confidence_level="low",
        )


class GenerationOptions(BaseModel):
    """
    Scenario generation options.
    """

    min_scenarios: int = Field(default=3, ge=1, le=8, description="Minimum scenarios to return")
    max_scenarios: int = Field(default=5, ge=1, le=8, description="Maximum scenarios to return")
    include_balanced: bool = Field(default=True, description="Append a balanced scenario last")
    reference_cap: float = Field(default=5000.0, gt=0, description="Weekly reference cost cap")

    @model_validator(mode="after")
    def validate_bounds(self):
        """Ensure min_scenarios <= max_scenarios and room for one axis beside BALANCED."""
        if self.min_scenarios > self.max_scenarios:
            raise ValueError("min_scenarios must be <= max_scenarios")
        if self.include_balanced and self.max_scenarios < 2:
            raise ValueError("max_scenarios must be >= 2 when include_balanced is set")
        return self

    @classmethod
    def from_settings(cls) -> "GenerationOptions":
        from connected_capacity.config import settings
        return cls(
            min_scenarios=settings.MIN_SCENARIOS,
            max_scenarios=settings.MAX_SCENARIOS,
            reference_cap=settings.REFERENCE_CAP,
        )
