"""
CA Assessment Mapper - Connected Capacity Bundle Engine
connected_capacity/mappers/ca_mapper.py

Maps interRAI Contact Assessment (CA) raw items to profile fields.
CA has no RUG classification, so a NeedsCluster is derived instead.
"""

from typing import Any, Dict, List

from connected_capacity.engines.utils import round_half_up
from connected_capacity.mappers.base import AssessmentMapper
from connected_capacity.models.assessment import AssessmentInput
from connected_capacity.models.enumerations import NeedsCluster

_ADL_ITEMS = (
    ("ca_bathing", "bathing_capacity"),
    ("ca_dressing", "dressing_capacity"),
    ("ca_toileting", "toilet_capacity"),
    ("ca_locomotion", "locomotion_capacity"),
    ("ca_eating", "eating_capacity"),
)

_IADL_ITEMS = (
    ("ca_meals", "meal_prep_capacity"),
    ("ca_housework", "housework_capacity"),
    ("ca_finances", "finances_capacity"),
    ("ca_medications", "medication_capacity"),
    ("ca_transportation", "transport_capacity"),
)


class CaAssessmentMapper(AssessmentMapper):
    """Maps CA assessments; confidence weight 0.7."""

    assessment_type = "ca"
    confidence_weight = 0.7
    supports_rug_classification = False

    def map_to_profile_fields(self, assessment: AssessmentInput) -> Dict[str, Any]:
        raw = assessment.raw_items or {}
        return {
            "has_ca_assessment": True,
            "primary_assessment_type": "ca",
            "primary_assessment_date": assessment.assessment_date,
            "needs_cluster": self.derive_needs_cluster(raw).value,
            "adl_support_level": self.extract_adl_support_level(raw),
            "iadl_support_level": self.extract_iadl_support_level(raw),
            "mobility_complexity": self.extract_mobility_complexity(raw),
            "specific_adl_needs": self.extract_specific_adl_needs(raw),
            "cognitive_complexity": self.extract_cognitive_complexity(raw),
            "behavioural_complexity": self.extract_behavioural_complexity(raw),
            "falls_risk_level": self.extract_falls_risk_level(raw),
            "health_instability": self.extract_health_instability(raw),
            "lives_alone": self.item(raw, "ca_lives_alone", "lives_alone") > 0,
            "caregiver_availability_score": 3 if self.item(raw, "ca_caregiver_present", "informal_support") > 0 else 0,
        }

    def derive_needs_cluster(self, raw: Dict[str, Any]) -> NeedsCluster:
        """Priority-ordered cluster derivation; first match wins."""
        adl = self.extract_adl_support_level(raw)
        cognitive = self.extract_cognitive_complexity(raw)
        health = self.extract_health_instability(raw)
        behavioural = self.extract_behavioural_complexity(raw)

        if adl >= 4 and cognitive >= 3:
            return NeedsCluster.HIGH_ADL_COGNITIVE
        if adl >= 4:
            return NeedsCluster.HIGH_ADL
        if cognitive >= 3:
            return NeedsCluster.COGNITIVE_COMPLEX
        if behavioural >= 3:
            return NeedsCluster.MH_COMPLEX
        if health >= 3:
            return NeedsCluster.MEDICAL_COMPLEX
        if adl >= 2:
            return NeedsCluster.MODERATE_ADL
        if adl >= 1:
            return NeedsCluster.LOW_ADL
        return NeedsCluster.GENERAL

    def extract_adl_support_level(self, raw: Dict[str, Any]) -> int:
        if raw.get("adl_capacity_score") is not None:
            return self.normalize_scale(raw["adl_capacity_score"], 0, 6)
        return self._capacity_sum_scale(raw, _ADL_ITEMS)

    def extract_iadl_support_level(self, raw: Dict[str, Any]) -> int:
        if raw.get("iadl_capacity_score") is not None:
            return self.normalize_scale(raw["iadl_capacity_score"], 0, 6)
        return self._capacity_sum_scale(raw, _IADL_ITEMS)

    def _capacity_sum_scale(self, raw: Dict[str, Any], items) -> int:
        # Five items scored 0-4 each, folded onto the 0-6 scale
        total = sum(self.item(raw, *keys) for keys in items)
        return int(max(0, min(6, round_half_up(total / 3))))

    def extract_mobility_complexity(self, raw: Dict[str, Any]) -> int:
        locomotion = self.item(raw, "ca_locomotion", "locomotion_capacity")
        stairs = self.item(raw, "ca_stairs", "stair_capacity")
        return self.normalize_scale(max(locomotion, stairs), 0, 6)

    def extract_cognitive_complexity(self, raw: Dict[str, Any]) -> int:
        total = (
            self.item(raw, "ca_short_term_memory", "stm_problem")
            + self.item(raw, "ca_decision_making", "decision_making")
            + self.item(raw, "ca_orientation")
        )
        return self.normalize_scale(total, 0, 6)

    def extract_behavioural_complexity(self, raw: Dict[str, Any]) -> int:
        present = [self.item(raw, k) > 0 for k in ("ca_aggression", "ca_wandering", "ca_resists_care")]
        return min(4, sum(present))

    def extract_health_instability(self, raw: Dict[str, Any]) -> int:
        score = 0
        if self.item(raw, "ca_acute_change", "acute_change") > 0:
            score += 2
        if self.item(raw, "ca_unstable_condition") > 0:
            score += 2
        if self.item(raw, "ca_recent_hospital") > 0:
            score += 1
        return min(5, score)

    def extract_falls_risk_level(self, raw: Dict[str, Any]) -> int:
        fall_history = self.item(raw, "ca_fall_history", "fall_any")
        unsteady = self.item(raw, "ca_unsteady")
        if fall_history > 1 or unsteady > 1:
            return 2
        if fall_history > 0 or unsteady > 0:
            return 1
        return 0

    def extract_specific_adl_needs(self, raw: Dict[str, Any]) -> List[str]:
        candidates = [
            ("bathing", "ca_bathing"),
            ("dressing", "ca_dressing"),
            ("toileting", "ca_toileting"),
            ("mobility", "ca_locomotion"),
        ]
        return [need for need, key in candidates if self.item(raw, key) >= 2]

    def populatable_fields(self) -> List[str]:
        return [
            "has_ca_assessment", "primary_assessment_type", "primary_assessment_date",
            "needs_cluster", "adl_support_level", "iadl_support_level",
            "mobility_complexity", "specific_adl_needs", "cognitive_complexity",
            "behavioural_complexity", "falls_risk_level", "health_instability",
            "lives_alone", "caregiver_availability_score",
        ]
