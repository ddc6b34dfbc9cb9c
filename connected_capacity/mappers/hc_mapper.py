"""
HC Assessment Mapper - Connected Capacity Bundle Engine
connected_capacity/mappers/hc_mapper.py

Maps interRAI Home Care (HC) raw items to PatientNeedsProfile fields.

HC is the most comprehensive instrument: it carries the RUG-III/HC
classification, every clinical output scale (ADL Hierarchy, IADL, CPS,
CHESS) and the behaviour, therapy and caregiver sections.
"""

from typing import Any, Dict, List, Optional

from connected_capacity.engines.utils import first_present, to_int
from connected_capacity.mappers.base import AssessmentMapper
from connected_capacity.models.assessment import AssessmentInput

POLYPHARMACY_THRESHOLD = 9

# RUG group prefix -> category
RUG_CATEGORIES = {
    "RB": "Special Rehabilitation",
    "RA": "Special Rehabilitation",
    "SE": "Special Rehabilitation",
    "SR": "Special Rehabilitation",
    "ES": "Extensive Services",
    "SC": "Special Care",
    "CC": "Clinically Complex",
    "IB": "Impaired Cognition",
    "IA": "Impaired Cognition",
    "BB": "Behaviour Problems",
    "BA": "Behaviour Problems",
    "PB": "Reduced Physical Function",
    "PA": "Reduced Physical Function",
    "PC": "Reduced Physical Function",
    "PD": "Reduced Physical Function",
    "PE": "Reduced Physical Function",
}

_EXTENSIVE_TREATMENTS = ("iv_therapy", "tracheostomy", "ventilator", "dialysis", "radiation")
_EXTENSIVE_SERVICE_ITEMS = ("iv_therapy", "tracheostomy", "ventilator", "wound_care", "oxygen_therapy")


class HcAssessmentMapper(AssessmentMapper):
    """Maps HC assessments; confidence weight 1.0."""

    assessment_type = "hc"
    confidence_weight = 1.0
    supports_rug_classification = True

    def map_to_profile_fields(self, assessment: AssessmentInput) -> Dict[str, Any]:
        raw = assessment.raw_items or {}
        rug_group = self.extract_rug_group(assessment)

        return {
            # Data source tracking
            "has_full_hc_assessment": True,
            "primary_assessment_type": "hc",
            "primary_assessment_date": assessment.assessment_date,

            # Case classification
            "rug_group": rug_group,
            "rug_category": assessment.rug_category or self.rug_category_for(rug_group),
            "rug_numeric_rank": self.extract_rug_numeric_rank(assessment),

            # Functional needs
            "adl_support_level": self.extract_adl_support_level(raw),
            "iadl_support_level": self.extract_iadl_support_level(raw),
            "mobility_complexity": self.extract_mobility_complexity(raw),
            "specific_adl_needs": self.extract_specific_adl_needs(raw),

            # Cognitive & behavioural
            "cognitive_complexity": self.extract_cognitive_complexity(raw),
            "behavioural_complexity": self.extract_behavioural_complexity(raw),
            "has_wandering_risk": self.item(raw, "wandering", "E4") > 0,
            "has_aggression_risk": self.extract_aggression_risk(raw),
            "behavioural_flags": self.extract_behavioural_flags(raw),

            # Clinical risk profile
            "falls_risk_level": self.extract_falls_risk_level(raw),
            "skin_integrity_risk": self.extract_skin_integrity_risk(raw),
            "pain_management_need": self.normalize_scale(self.item(raw, "pain_scale", "J2a"), 0, 3),
            "continence_support": self.extract_continence_support(raw),
            "health_instability": self.extract_health_instability(raw),
            "clinical_risk_flags": self.extract_clinical_risk_flags(raw),

            # Treatment context
            "requires_extensive_services": any(self.item(raw, k) > 0 for k in _EXTENSIVE_TREATMENTS),
            "extensive_services": [k for k in _EXTENSIVE_SERVICE_ITEMS if self.item(raw, k) > 0],
            "weekly_therapy_minutes": self.extract_weekly_therapy_minutes(raw),

            # Support context
            "caregiver_availability_score": self.extract_caregiver_availability(raw),
            "caregiver_stress_level": self.normalize_scale(self.item(raw, "caregiver_distress", "G4"), 0, 4),
            "lives_alone": self.item(raw, "lives_alone", "A5") > 0,
            "caregiver_requires_relief": self.item(raw, "caregiver_distress", "G4") >= 3,

            # Risk indicators
            **self.extract_risk_indicators(raw),
        }

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    @staticmethod
    def extract_rug_group(assessment: AssessmentInput) -> Optional[str]:
        if assessment.rug_group:
            return assessment.rug_group
        value = (assessment.raw_items or {}).get("rug_group")
        return str(value).upper() if value else None

    @staticmethod
    def rug_category_for(rug_group: Optional[str]) -> Optional[str]:
        if not rug_group:
            return None
        return RUG_CATEGORIES.get(rug_group[:2].upper(), "Unknown")

    def extract_rug_numeric_rank(self, assessment: AssessmentInput) -> Optional[int]:
        if assessment.rug_numeric_rank is not None:
            return assessment.rug_numeric_rank
        value = (assessment.raw_items or {}).get("rug_numeric_rank")
        return None if value is None else to_int(value)

    # ------------------------------------------------------------------
    # Output scales
    # ------------------------------------------------------------------

    def extract_adl_support_level(self, raw: Dict[str, Any]) -> int:
        value = first_present(raw, "adl_hierarchy", "adl_h", "ADL_HIERARCHY")
        return self.normalize_scale(value, 0, 6)

    def extract_iadl_support_level(self, raw: Dict[str, Any]) -> int:
        value = first_present(raw, "iadl_capacity", "iadl_summary_score", "IADL_CAPACITY")
        return self.normalize_scale(value, 0, 6)

    def extract_mobility_complexity(self, raw: Dict[str, Any]) -> int:
        locomotion = self.item(raw, "locomotion", "G2a")
        transfer = self.item(raw, "transfer", "G1a")
        return self.normalize_scale(max(locomotion, transfer), 0, 6)

    def extract_cognitive_complexity(self, raw: Dict[str, Any]) -> int:
        value = first_present(raw, "cps", "CPS", "cognitive_performance_scale")
        return self.normalize_scale(value, 0, 6)

    def extract_health_instability(self, raw: Dict[str, Any]) -> int:
        value = first_present(raw, "chess", "CHESS", "chess_score")
        return self.normalize_scale(value, 0, 5)

    def extract_behavioural_complexity(self, raw: Dict[str, Any]) -> int:
        items = [
            self.item(raw, "verbal_abuse", "E1a"),
            self.item(raw, "physical_abuse", "E1b"),
            self.item(raw, "resists_care", "E1c"),
            self.item(raw, "wandering", "E4"),
        ]
        return min(sum(1 for v in items if v > 0), 4)

    # ------------------------------------------------------------------
    # Flags and lists
    # ------------------------------------------------------------------

    def extract_aggression_risk(self, raw: Dict[str, Any]) -> bool:
        verbal = self.item(raw, "verbal_abuse", "E1a")
        physical = self.item(raw, "physical_abuse", "E1b")
        return verbal > 1 or physical > 0

    def extract_specific_adl_needs(self, raw: Dict[str, Any]) -> List[str]:
        candidates = [
            ("bathing", ("bathing", "G1l")),
            ("dressing", ("dressing", "G1e")),
            ("eating", ("eating", "G1h")),
            ("toileting", ("toilet_use", "G1i")),
            ("transfers", ("transfer", "G1a")),
        ]
        return [need for need, keys in candidates if self.item(raw, *keys) >= 3]

    def extract_behavioural_flags(self, raw: Dict[str, Any]) -> List[str]:
        flags = [
            ("verbal_abuse", "verbal_aggression"),
            ("physical_abuse", "physical_aggression"),
            ("resists_care", "resists_care"),
            ("wandering", "wandering"),
            ("socially_inappropriate", "socially_inappropriate"),
        ]
        return [flag for key, flag in flags if self.item(raw, key) > 0]

    def extract_falls_risk_level(self, raw: Dict[str, Any]) -> int:
        fall_history = self.item(raw, "fall_history", "J1h")
        falls_last_90 = self.item(raw, "falls_last_90", "J1i")
        if falls_last_90 > 1:
            return 2
        if fall_history > 0 or falls_last_90 > 0:
            return 1
        return 0

    def extract_skin_integrity_risk(self, raw: Dict[str, Any]) -> int:
        pressure_ulcer = self.item(raw, "pressure_ulcer", "M2a")
        skin_tears = self.item(raw, "skin_tears", "M5")
        if pressure_ulcer >= 2:
            return 2
        if pressure_ulcer > 0 or skin_tears > 0:
            return 1
        return 0

    def extract_continence_support(self, raw: Dict[str, Any]) -> int:
        bladder = self.item(raw, "bladder_continence", "H1a")
        bowel = self.item(raw, "bowel_continence", "H2a")
        return self.normalize_scale(max(bladder, bowel), 0, 5)

    def extract_clinical_risk_flags(self, raw: Dict[str, Any]) -> List[str]:
        flags = [
            ("pressure_ulcer", "pressure_ulcer"),
            ("falls_last_90", "recent_fall"),
            ("dehydration_risk", "dehydration_risk"),
            ("weight_loss", "weight_loss"),
        ]
        return [flag for key, flag in flags if self.item(raw, key) > 0]

    def extract_weekly_therapy_minutes(self, raw: Dict[str, Any]) -> int:
        total = (
            self.item(raw, "pt_minutes", "P1ba")
            + self.item(raw, "ot_minutes", "P1bb")
            + self.item(raw, "slp_minutes", "P1bc")
        )
        return max(0, total)

    def extract_caregiver_availability(self, raw: Dict[str, Any]) -> int:
        has_helper = self.item(raw, "informal_helper", "G3") > 0
        lives_with = self.item(raw, "helper_lives_with") > 0
        if has_helper and lives_with:
            return 5
        if has_helper:
            return 3
        return 0

    def extract_risk_indicators(self, raw: Dict[str, Any]) -> Dict[str, Any]:
        medication_count = max(0, self.item(raw, "medication_count", "N1"))
        return {
            "has_recent_fall": self.item(raw, "falls_last_90", "J1i") > 0,
            "has_delirium": self.item(raw, "delirium", "C3") > 0,
            "has_home_environment_risk": self.item(raw, "home_environment_risk", "home_hazards") > 0,
            "has_polypharmacy_risk": medication_count >= POLYPHARMACY_THRESHOLD,
            "has_recent_hospital_stay": self.item(raw, "hospital_stay_90", "recent_hospital_stay") > 0,
            "has_recent_er_visit": self.item(raw, "er_visit_90", "recent_er_visit") > 0,
            "medication_count": medication_count,
        }

    def populatable_fields(self) -> List[str]:
        return list(self.map_to_profile_fields(AssessmentInput(assessment_type="hc")).keys())
