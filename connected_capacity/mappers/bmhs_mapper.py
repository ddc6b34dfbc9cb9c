"""
BMHS Assessment Mapper - Connected Capacity Bundle Engine
connected_capacity/mappers/bmhs_mapper.py

Maps the interRAI Brief Mental Health Screener (BMHS) to mental-health
and behavioural profile fields.

Section B (disordered thought) items are scored 0 = not present,
1 = present but not in the last 24 hours, 2 = exhibited in the last
24 hours. Section C covers risk of harm to self and others.
"""

from typing import Any, Dict, List, Tuple

from connected_capacity.mappers.base import AssessmentMapper
from connected_capacity.models.assessment import AssessmentInput

SECTION_B_ITEMS = {
    "B1a": "bmhs_irritability",
    "B1b": "bmhs_hallucinations",
    "B1c": "bmhs_command_hallucinations",
    "B1d": "bmhs_delusions",
    "B1e": "bmhs_hyperarousal",
    "B1f": "bmhs_pressured_speech",
    "B1g": "bmhs_abnormal_thought",
    "B1h": "bmhs_inappropriate_behaviour",
    "B1i": "bmhs_verbal_abuse",
    "B1j": "bmhs_intoxication",
}

SECTION_C_ITEMS = {
    "C1": "bmhs_previous_police_contact",
    "C2": "bmhs_weapon_history",
    "C3a": "bmhs_violent_ideation",
    "C3b": "bmhs_intimidation",
    "C3c": "bmhs_violence_to_others",
    "C4a": "bmhs_self_injury_attempt",
    "C4b": "bmhs_self_injury_considered",
    "C4c": "bmhs_suicide_plan",
    "C4d": "bmhs_others_concern_self_harm",
    "C5": "bmhs_squalid_home",
    "C6": "bmhs_medication_refusal",
}

_VIOLENCE_ITEMS = ("bmhs_violent_ideation", "bmhs_intimidation", "bmhs_violence_to_others")
_SELF_HARM_ITEMS = (
    "bmhs_self_injury_attempt",
    "bmhs_self_injury_considered",
    "bmhs_suicide_plan",
    "bmhs_others_concern_self_harm",
)

_INSIGHT_LEVELS = {0: "full", 1: "limited", 2: "none"}


class BmhsAssessmentMapper(AssessmentMapper):
    """Maps BMHS assessments; confidence weight 0.5."""

    assessment_type = "bmhs"
    confidence_weight = 0.5

    def map_to_profile_fields(self, assessment: AssessmentInput) -> Dict[str, Any]:
        raw = assessment.raw_items or {}
        disordered_thought = self.disordered_thought_score(raw)
        self_harm = self.self_harm_risk_level(raw)
        violence = self.violence_risk_level(raw)

        return {
            "has_bmhs_assessment": True,
            "mental_health_complexity": self.mental_health_complexity(raw),
            "behavioural_complexity": self.behavioural_complexity(raw),
            "has_disordered_thought": disordered_thought > 0,
            "disordered_thought_score": disordered_thought,
            "risk_of_harm_score": self.risk_of_harm_score(raw),
            "has_hallucinations": self._has(raw, "bmhs_hallucinations"),
            "has_command_hallucinations": self._has(raw, "bmhs_command_hallucinations"),
            "has_delusions": self._has(raw, "bmhs_delusions"),
            "mental_health_insight": self.insight_level(raw),
            "bmhs_cognitive_impairment": self.item(raw, "bmhs_cognitive_skills") == 1,
            "has_self_harm_risk": self_harm > 0,
            "self_harm_risk_level": self_harm,
            "has_violence_risk": violence > 0,
            "violence_risk_level": violence,
            "has_squalid_home": self.item(raw, "bmhs_squalid_home") == 1,
            "has_medication_refusal": self.item(raw, "bmhs_medication_refusal") == 1,
            "has_active_intoxication": self._has(raw, "bmhs_intoxication"),
            "requires_psychiatric_consult": self.requires_psychiatric_consult(raw),
            "requires_behavioural_support": self.behavioural_complexity(raw) >= 2,
            "requires_crisis_intervention": self_harm >= 2 or violence >= 2,
        }

    # ------------------------------------------------------------------
    # Scores
    # ------------------------------------------------------------------

    def disordered_thought_score(self, raw: Dict[str, Any]) -> int:
        score = 0
        for field in SECTION_B_ITEMS.values():
            value = self.item(raw, field)
            if value in (1, 2):
                score += value
        return score

    def risk_of_harm_score(self, raw: Dict[str, Any]) -> int:
        score = sum(self.item(raw, field) for field in _VIOLENCE_ITEMS)
        score += sum(1 for field in _SELF_HARM_ITEMS if self.item(raw, field) > 0)
        if self.item(raw, "bmhs_weapon_history") == 1:
            score += 1
        return score

    def self_harm_risk_level(self, raw: Dict[str, Any]) -> int:
        attempt = self.item(raw, "bmhs_self_injury_attempt") == 1
        considered = self.item(raw, "bmhs_self_injury_considered") == 1
        has_plan = self.item(raw, "bmhs_suicide_plan") == 1
        others_concerned = self.item(raw, "bmhs_others_concern_self_harm") == 1
        command = self._has(raw, "bmhs_command_hallucinations")

        if attempt or (has_plan and command):
            return 3
        if has_plan or (considered and (others_concerned or command)):
            return 2
        if considered or others_concerned:
            return 1
        return 0

    def violence_risk_level(self, raw: Dict[str, Any]) -> int:
        violence = self.item(raw, "bmhs_violence_to_others")
        intimidation = self.item(raw, "bmhs_intimidation")
        ideation = self.item(raw, "bmhs_violent_ideation")
        weapon = self.item(raw, "bmhs_weapon_history") == 1
        command = self._has(raw, "bmhs_command_hallucinations")

        if violence == 2:
            return 3
        if violence == 1 or (intimidation == 2 and (weapon or command)):
            return 2
        if ideation >= 1 or intimidation >= 1:
            return 1
        return 0

    def mental_health_complexity(self, raw: Dict[str, Any]) -> int:
        weights: List[Tuple[bool, int]] = [
            (self._has(raw, "bmhs_command_hallucinations"), 2),
            (self._has(raw, "bmhs_hallucinations"), 1),
            (self._has(raw, "bmhs_delusions"), 1),
            (self.insight_level(raw) == "none", 1),
            (self._has(raw, "bmhs_abnormal_thought"), 1),
        ]
        return min(5, sum(points for present, points in weights if present))

    def behavioural_complexity(self, raw: Dict[str, Any]) -> int:
        complexity = self.violence_risk_level(raw)
        for field in ("bmhs_inappropriate_behaviour", "bmhs_verbal_abuse", "bmhs_hyperarousal"):
            if self._has(raw, field):
                complexity += 1
        return min(5, complexity)

    def insight_level(self, raw: Dict[str, Any]) -> str:
        value = raw.get("bmhs_insight")
        if value is None:
            return "unknown"
        return _INSIGHT_LEVELS.get(self.item(raw, "bmhs_insight", default=-1), "unknown")

    def requires_psychiatric_consult(self, raw: Dict[str, Any]) -> bool:
        if self._has(raw, "bmhs_command_hallucinations"):
            return True
        if self.self_harm_risk_level(raw) >= 2:
            return True
        disordered = self.disordered_thought_score(raw)
        if disordered >= 8:
            return True
        return self.insight_level(raw) == "none" and disordered >= 4

    def _has(self, raw: Dict[str, Any], field: str) -> bool:
        return self.item(raw, field) >= 1

    def populatable_fields(self) -> List[str]:
        return list(self.map_to_profile_fields(AssessmentInput(assessment_type="bmhs")).keys())
