"""
Scenario Axis Selector - Connected Capacity Bundle Engine
connected_capacity/engines/axis_selector.py

Decides which scenario axes apply to a patient profile. Each axis is scored
from profile attributes; an axis scoring 40 or more is a candidate.
BALANCED is always a candidate at a fixed score of 50.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from connected_capacity.models.enumerations import ScenarioAxis
from connected_capacity.models.profile import PatientNeedsProfile

APPLICABLE_SCORE = 40
BALANCED_SCORE = 50

THRESHOLDS: Dict[str, int] = {
    # Recovery / rehab
    "rehab_score_minimum": 40,
    "weekly_therapy_minutes_minimum": 30,
    # Safety / stability
    "falls_risk_high": 2,
    "health_instability_high": 3,
    "cognitive_complexity_safety": 3,
    # Tech-enabled
    "tech_readiness_minimum": 2,
    # Caregiver relief
    "caregiver_stress_high": 3,
    "caregiver_availability_with_stress": 2,
    # Medical intensive
    "health_instability_medical": 4,
    # Cognitive support
    "cognitive_complexity_high": 3,
    "behavioural_complexity_high": 3,
    # Community integration
    "social_support_low": 2,
    "iadl_support_level_minimum": 2,
}


@dataclass
class AxisEvaluation:
    axis: ScenarioAxis
    score: int = 0
    reasons: List[str] = field(default_factory=list)

    @property
    def applicable(self) -> bool:
        return self.score >= APPLICABLE_SCORE

    def add(self, points: int, reason: Optional[str] = None) -> None:
        self.score += points
        if reason:
            self.reasons.append(reason)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "axis": self.axis.value,
            "label": self.axis.label,
            "score": self.score,
            "reasons": list(self.reasons),
            "applicable": self.applicable,
        }


class ScenarioAxisSelector:
    """Single source of truth for axis selection policy."""

    def __init__(self, thresholds: Optional[Dict[str, int]] = None):
        self.thresholds = {**THRESHOLDS, **(thresholds or {})}

    def get_applicable_axes(self, profile: PatientNeedsProfile, max_axes: int = 4) -> List[ScenarioAxis]:
        """Top ``max_axes`` candidate axes, highest score first."""
        candidates = [e for e in self._evaluate_all(profile) if e.applicable]
        # sorted() is stable: BALANCED wins ties because it is evaluated first
        candidates = sorted(candidates, key=lambda e: e.score, reverse=True)
        return [e.axis for e in candidates[:max_axes]]

    def get_detailed_evaluation(self, profile: PatientNeedsProfile) -> Dict[str, AxisEvaluation]:
        return {e.axis.value: e for e in self._evaluate_all(profile)}

    def is_axis_applicable(self, profile: PatientNeedsProfile, axis: ScenarioAxis) -> bool:
        return axis in self.get_applicable_axes(profile, max_axes=len(ScenarioAxis))

    def get_threshold(self, name: str) -> Optional[int]:
        return self.thresholds.get(name)

    def _evaluate_all(self, profile: PatientNeedsProfile) -> List[AxisEvaluation]:
        balanced = AxisEvaluation(ScenarioAxis.BALANCED, BALANCED_SCORE, ["Default balanced option"])
        evaluators: List[Callable[[PatientNeedsProfile], AxisEvaluation]] = [
            self.evaluate_recovery_rehab,
            self.evaluate_safety_stability,
            self.evaluate_tech_enabled,
            self.evaluate_caregiver_relief,
            self.evaluate_medical_intensive,
            self.evaluate_cognitive_support,
            self.evaluate_community_integrated,
        ]
        return [balanced] + [evaluate(profile) for evaluate in evaluators]

    # ------------------------------------------------------------------
    # Per-axis scoring
    # ------------------------------------------------------------------

    def evaluate_recovery_rehab(self, profile: PatientNeedsProfile) -> AxisEvaluation:
        t = self.thresholds
        result = AxisEvaluation(ScenarioAxis.RECOVERY_REHAB)
        if profile.rehab_potential_score >= t["rehab_score_minimum"]:
            result.add(40, f"Rehab potential score: {profile.rehab_potential_score}")
        if profile.weekly_therapy_minutes >= t["weekly_therapy_minutes_minimum"]:
            result.add(30, f"Therapy minutes/week: {profile.weekly_therapy_minutes}")
        if profile.episode_type in ("post_acute", "acute_exacerbation"):
            result.add(20, f"Episode type: {profile.episode_type}")
        if profile.has_rehab_potential:
            result.add(10, "Has documented rehab potential")
        return result

    def evaluate_safety_stability(self, profile: PatientNeedsProfile) -> AxisEvaluation:
        t = self.thresholds
        result = AxisEvaluation(ScenarioAxis.SAFETY_STABILITY)
        if profile.falls_risk_level >= t["falls_risk_high"]:
            result.add(35, f"High falls risk level: {profile.falls_risk_level}")
        if profile.health_instability >= t["health_instability_high"]:
            result.add(30, f"Health instability (CHESS): {profile.health_instability}")
        if profile.cognitive_complexity >= t["cognitive_complexity_safety"]:
            result.add(20, f"Cognitive complexity: {profile.cognitive_complexity}")
        if profile.lives_alone:
            result.add(15, "Lives alone")
        if profile.has_wandering_risk or profile.has_aggression_risk:
            result.add(10, "Behavioural safety risk")
        return result

    def evaluate_tech_enabled(self, profile: PatientNeedsProfile) -> AxisEvaluation:
        t = self.thresholds
        result = AxisEvaluation(ScenarioAxis.TECH_ENABLED)
        if profile.technology_readiness >= t["tech_readiness_minimum"]:
            result.add(35, f"Technology readiness: {profile.technology_readiness}")
        if profile.has_internet:
            result.add(25, "Has reliable internet")
        if profile.health_instability <= 2:
            result.add(15, "Stable health status")
        if profile.has_pers:
            result.add(10, "Has PERS installed")
        if profile.suitable_for_rpm:
            result.add(15, "Suitable for RPM")
        if profile.is_rural:
            result.add(10, "Rural location benefits from remote support")
        # high cognitive complexity makes device use harder
        if profile.cognitive_complexity >= 4:
            result.add(-20)
        return result

    def evaluate_caregiver_relief(self, profile: PatientNeedsProfile) -> AxisEvaluation:
        t = self.thresholds
        result = AxisEvaluation(ScenarioAxis.CAREGIVER_RELIEF)
        if profile.caregiver_stress_level >= t["caregiver_stress_high"]:
            result.add(40, f"High caregiver stress: {profile.caregiver_stress_level}")
        if profile.caregiver_requires_relief:
            result.add(30, "Caregiver requires relief")
        if profile.caregiver_availability_score >= t["caregiver_availability_with_stress"]:
            result.add(15, "Caregiver is engaged and available")
        if profile.cognitive_complexity >= 3:
            result.add(10, "Cognitive complexity increases caregiver burden")
        if profile.behavioural_complexity >= 2:
            result.add(10, "Behavioural complexity increases caregiver burden")
        return result

    def evaluate_medical_intensive(self, profile: PatientNeedsProfile) -> AxisEvaluation:
        t = self.thresholds
        result = AxisEvaluation(ScenarioAxis.MEDICAL_INTENSIVE)
        if profile.requires_extensive_services:
            result.add(50, "Requires extensive services")
            if profile.extensive_services:
                result.reasons.append("Services: " + ", ".join(profile.extensive_services))
        if profile.health_instability >= t["health_instability_medical"]:
            result.add(30, f"Very high health instability: {profile.health_instability}")
        if profile.skin_integrity_risk >= 2:
            result.add(15, f"Skin integrity risk: {profile.skin_integrity_risk}")
        if profile.pain_management_need >= 2:
            result.add(10, f"Pain management need: {profile.pain_management_need}")
        if len(profile.active_conditions or []) >= 3:
            result.add(10, "Multiple active conditions")
        return result

    def evaluate_cognitive_support(self, profile: PatientNeedsProfile) -> AxisEvaluation:
        t = self.thresholds
        result = AxisEvaluation(ScenarioAxis.COGNITIVE_SUPPORT)
        if profile.cognitive_complexity >= t["cognitive_complexity_high"]:
            result.add(40, f"Cognitive complexity: {profile.cognitive_complexity}")
        if profile.behavioural_complexity >= t["behavioural_complexity_high"]:
            result.add(25, f"Behavioural complexity: {profile.behavioural_complexity}")
        if profile.mental_health_complexity >= 2:
            result.add(15, f"Mental health complexity: {profile.mental_health_complexity}")
        if profile.has_wandering_risk:
            result.add(15, "Wandering risk")
        if profile.has_aggression_risk:
            result.add(10, "Aggression risk")
        if profile.behavioural_flags:
            result.add(10, "Documented behavioural concerns")
        return result

    def evaluate_community_integrated(self, profile: PatientNeedsProfile) -> AxisEvaluation:
        t = self.thresholds
        result = AxisEvaluation(ScenarioAxis.COMMUNITY_INTEGRATED)
        if profile.social_support_score <= t["social_support_low"]:
            result.add(30, f"Low social support: {profile.social_support_score}")
        if profile.iadl_support_level >= t["iadl_support_level_minimum"]:
            result.add(25, f"IADL support level: {profile.iadl_support_level}")
        if profile.lives_alone:
            result.add(15, "Lives alone - may benefit from social connection")
        if profile.cognitive_complexity <= 2:
            result.add(15, "Cognitive capacity for program participation")
        if profile.health_instability <= 2:
            result.add(10, "Stable for community participation")
        return result
