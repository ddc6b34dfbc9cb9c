"""
Rules-Based Explanation Provider - Connected Capacity Bundle Engine
connected_capacity/engines/explanation.py

Deterministic scenario explanations built from the primary axis, algorithm
scores and triggered CAPs. Always available; no external model involved.
"""

import time
from typing import Dict, List, Optional

import structlog

from connected_capacity.models.enumerations import CapLevel, ScenarioAxis
from connected_capacity.models.explanation import ExplanationResponse
from connected_capacity.models.profile import PatientNeedsProfile
from connected_capacity.models.scenario import ScenarioBundle

logger = structlog.get_logger(__name__)

MAX_DETAILED_POINTS = 5

AXIS_OPENINGS: Dict[ScenarioAxis, str] = {
    ScenarioAxis.RECOVERY_REHAB: "This bundle prioritizes rehabilitation and functional recovery.",
    ScenarioAxis.SAFETY_STABILITY: "This bundle focuses on maintaining safety and preventing decline.",
    ScenarioAxis.TECH_ENABLED: "This bundle leverages remote monitoring to provide continuous oversight.",
    ScenarioAxis.CAREGIVER_RELIEF: "This bundle is designed to support caregivers and prevent burnout.",
    ScenarioAxis.COMMUNITY_INTEGRATED: "This bundle integrates community resources for holistic care.",
    ScenarioAxis.BALANCED: "This bundle provides balanced coverage across all care domains.",
}
DEFAULT_OPENING = "This bundle addresses the patient's identified care needs."

AXIS_POINTS: Dict[ScenarioAxis, str] = {
    ScenarioAxis.RECOVERY_REHAB: "Emphasizes PT/OT therapy to maximize functional recovery",
    ScenarioAxis.SAFETY_STABILITY: "Prioritizes consistent monitoring and fall prevention",
    ScenarioAxis.TECH_ENABLED: "Utilizes RPM and telehealth for efficient continuous care",
    ScenarioAxis.CAREGIVER_RELIEF: "Includes respite and support services for family caregivers",
    ScenarioAxis.COMMUNITY_INTEGRATED: "Connects patient to community resources and day programs",
    ScenarioAxis.BALANCED: "Provides comprehensive coverage balancing all care domains",
}
DEFAULT_POINT = "Tailored to patient's specific clinical profile"


def _cap_display_name(name: str) -> str:
    return name.replace("_", " ").capitalize()


class RulesBasedExplanationProvider:

    source = "rules_based"

    def generate_explanation(self, profile: PatientNeedsProfile, scenario: ScenarioBundle) -> ExplanationResponse:
        started = time.perf_counter()

        short = self.build_short_explanation(profile, scenario)
        points = self.build_detailed_points(profile, scenario)
        label = self.determine_confidence_label(profile)

        elapsed_ms = int(round((time.perf_counter() - started) * 1000))
        logger.debug("explanation_generated", axis=scenario.primary_axis.value, points=len(points))

        return ExplanationResponse(
            short_explanation=short,
            detailed_points=points,
            confidence_label=label,
            source=self.source,
            response_time_ms=elapsed_ms,
        )

    def build_short_explanation(self, profile: PatientNeedsProfile, scenario: ScenarioBundle) -> str:
        axis = scenario.primary_axis
        parts = [AXIS_OPENINGS.get(axis, DEFAULT_OPENING)]

        clinical = self.clinical_justification(profile, axis)
        if clinical:
            parts.append(clinical)

        cap_note = self.cap_note(profile)
        if cap_note:
            parts.append(cap_note)

        return " ".join(parts)

    @staticmethod
    def clinical_justification(profile: PatientNeedsProfile, axis: ScenarioAxis) -> Optional[str]:
        if axis == ScenarioAxis.RECOVERY_REHAB:
            if profile.rehabilitation_score >= 3:
                return (
                    f"Rehabilitation Algorithm score ({profile.rehabilitation_score}/5) indicates "
                    "strong potential for functional improvement."
                )
            return None
        if axis == ScenarioAxis.SAFETY_STABILITY:
            if profile.chess_ca_score >= 2 or profile.falls_risk_level >= 2:
                return "Clinical indicators suggest elevated risk requiring daily monitoring and stability support."
            return None
        if axis == ScenarioAxis.CAREGIVER_RELIEF:
            if profile.caregiver_stress_level >= 2:
                return "Caregiver stress assessment indicates respite support would benefit care sustainability."
            return None
        if axis == ScenarioAxis.TECH_ENABLED:
            if profile.technology_readiness >= 2:
                return "Patient profile indicates suitability for remote monitoring technologies."
            return None

        if profile.personal_support_score >= 3:
            return f"Personal Support Algorithm ({profile.personal_support_score}/6) guides service intensity."
        return None

    @staticmethod
    def cap_note(profile: PatientNeedsProfile) -> Optional[str]:
        improve = [_cap_display_name(name) for name in profile.caps_at_level(CapLevel.IMPROVE)]
        if not improve:
            return None
        if len(improve) == 1:
            return f"The {improve[0]} CAP indicates active intervention is recommended."
        return (
            f"Multiple CAPs ({', '.join(improve[:-1])} and {improve[-1]}) "
            "indicate areas for active intervention."
        )

    def build_detailed_points(self, profile: PatientNeedsProfile, scenario: ScenarioBundle) -> List[str]:
        points = [AXIS_POINTS.get(scenario.primary_axis, DEFAULT_POINT)]

        if profile.rehabilitation_score >= 3:
            points.append(
                "Rehabilitation potential supports intensive therapy services "
                f"(Rehab score: {profile.rehabilitation_score}/5)"
            )
        if profile.personal_support_score >= 3:
            points.append(
                f"Personal support needs guide PSW service intensity (PSA score: {profile.personal_support_score}/6)"
            )
        if profile.chess_ca_score >= 2:
            points.append(
                f"Health instability indicators warrant nursing oversight (CHESS: {profile.chess_ca_score}/5)"
            )
        if profile.pain_score >= 3:
            points.append(f"Pain management is prioritized in nursing care plan (Pain: {profile.pain_score}/4)")
        if profile.distressed_mood_score >= 3:
            points.append(
                f"Mood support services included based on DMS assessment ({profile.distressed_mood_score}/9)"
            )

        for name, cap in profile.triggered_caps.items():
            if cap.get("level") in (CapLevel.IMPROVE.value, CapLevel.FACILITATE.value):
                description = cap.get("description") or "clinical intervention recommended"
                points.append(f"{_cap_display_name(name)} CAP triggered - {description}")

        if scenario.risks_addressed:
            points.append("Bundle addresses identified risks: " + ", ".join(scenario.risks_addressed[:3]))

        return points[:MAX_DETAILED_POINTS]

    @staticmethod
    def determine_confidence_label(profile: PatientNeedsProfile) -> str:
        if profile.has_full_hc_assessment and profile.rug_group:
            return "High Confidence - Full HC Assessment"
        if profile.has_ca_assessment or profile.rug_category:
            return "Good Confidence - Standardized Assessment"
        if profile.confidence_level == "low":
            return "Preliminary - Limited Assessment Data"
        return "Standard Confidence"
