"""
Patient Needs Profile - Connected Capacity Bundle Engine
connected_capacity/models/profile.py

Normalized, assessment-independent view of a patient's care needs. Built by
the ingestion service from HC / CA / BMHS assessments and referral data and
consumed by the axis selector, scenario generator and explanation provider.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from connected_capacity.models.enumerations import CapLevel

REHAB_POTENTIAL_THRESHOLD = 40

_CONFIDENCE_LABELS = {
    "high": "High Confidence (Full HC Assessment)",
    "medium": "Medium Confidence (CA + supplementary data)",
    "low": "Low Confidence (Limited assessment data)",
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


class PatientNeedsProfile(BaseModel):
    """Immutable needs profile for one patient."""

    model_config = ConfigDict(frozen=True)

    # Profile metadata
    patient_id: str
    profile_generated_at: datetime = Field(default_factory=_now)
    profile_version: str = "1.0"

    # Data source tracking
    primary_assessment_type: Optional[str] = None
    primary_assessment_date: Optional[datetime] = None
    has_full_hc_assessment: bool = False
    has_ca_assessment: bool = False
    has_bmhs_assessment: bool = False
    has_referral_data: bool = False
    data_completeness_score: float = Field(default=0.0, ge=0, le=1)

    # Case classification
    rug_group: Optional[str] = None
    rug_category: Optional[str] = None
    needs_cluster: Optional[str] = None
    episode_type: Optional[str] = None
    rug_numeric_rank: Optional[int] = None

    # Functional needs (0-6)
    adl_support_level: int = Field(default=0, ge=0, le=6)
    iadl_support_level: int = Field(default=0, ge=0, le=6)
    mobility_complexity: int = Field(default=0, ge=0, le=6)
    specific_adl_needs: Optional[List[str]] = None

    # Cognitive & behavioural
    cognitive_complexity: int = Field(default=0, ge=0, le=6)
    behavioural_complexity: int = Field(default=0, ge=0, le=5)
    mental_health_complexity: int = Field(default=0, ge=0, le=5)
    has_wandering_risk: bool = False
    has_aggression_risk: bool = False
    behavioural_flags: Optional[List[str]] = None

    # Mental health (BMHS)
    has_self_harm_risk: bool = False
    self_harm_risk_level: int = 0
    has_violence_risk: bool = False
    violence_risk_level: int = 0
    requires_psychiatric_consult: bool = False
    requires_behavioural_support: bool = False
    requires_crisis_intervention: bool = False
    has_disordered_thought: bool = False
    disordered_thought_score: int = 0
    risk_of_harm_score: int = 0
    has_hallucinations: bool = False
    has_command_hallucinations: bool = False
    has_delusions: bool = False
    mental_health_insight: Optional[str] = None
    bmhs_cognitive_impairment: bool = False
    has_squalid_home: bool = False
    has_medication_refusal: bool = False
    has_active_intoxication: bool = False

    # Clinical risk profile
    falls_risk_level: int = Field(default=0, ge=0, le=2)
    skin_integrity_risk: int = Field(default=0, ge=0, le=2)
    pain_management_need: int = Field(default=0, ge=0, le=3)
    continence_support: int = Field(default=0, ge=0, le=5)
    health_instability: int = Field(default=0, ge=0, le=5)
    clinical_risk_flags: Optional[List[str]] = None
    active_conditions: Optional[List[str]] = None

    # Treatment / therapy context
    has_rehab_potential: bool = False
    rehab_potential_score: int = Field(default=0, ge=0, le=100)
    requires_extensive_services: bool = False
    extensive_services: Optional[List[str]] = None
    weekly_therapy_minutes: int = Field(default=0, ge=0)

    # Support context
    caregiver_availability_score: int = 0
    caregiver_stress_level: int = 0
    lives_alone: bool = False
    caregiver_requires_relief: bool = False
    social_support_score: int = 0

    # Technology readiness
    technology_readiness: int = 0
    has_internet: bool = False
    has_pers: bool = False
    suitable_for_rpm: bool = False

    # Environment
    region_code: Optional[str] = None
    region_name: Optional[str] = None
    travel_complexity_score: int = 0
    is_rural: bool = False

    # Confidence & completeness
    confidence_level: str = "low"
    missing_data_fields: Optional[List[str]] = None
    data_quality_notes: Optional[str] = None

    # Algorithm scores
    self_reliance_index: bool = False
    assessment_urgency_score: int = 1
    service_urgency_score: int = 1
    rehabilitation_score: int = 1
    personal_support_score: int = 1
    distressed_mood_score: int = 0
    pain_score: int = 0
    chess_ca_score: int = 0

    # CAP name -> CapResult.to_dict()
    triggered_caps: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    # Additional risk indicators
    has_recent_fall: bool = False
    has_delirium: bool = False
    has_home_environment_risk: bool = False
    has_polypharmacy_risk: bool = False
    has_recent_hospital_stay: bool = False
    has_recent_er_visit: bool = False
    medication_count: int = 0

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def confidence_label(self) -> str:
        return _CONFIDENCE_LABELS.get(self.confidence_level, "Unknown Confidence")

    @property
    def primary_classification(self) -> Optional[str]:
        return self.rug_group or self.needs_cluster

    @property
    def classification_type(self) -> str:
        if self.rug_group is not None:
            return "RUG-III/HC"
        if self.needs_cluster is not None:
            return "Needs Cluster"
        return "Unclassified"

    def is_sufficient_for_bundling(self) -> bool:
        return self.has_full_hc_assessment or self.has_ca_assessment or self.has_referral_data

    def has_algorithm_scores(self) -> bool:
        """True when any algorithm produced a non-baseline score."""
        return (
            self.personal_support_score > 1
            or self.rehabilitation_score > 1
            or self.chess_ca_score > 0
            or self.pain_score > 0
            or self.distressed_mood_score > 0
        )

    def caps_at_level(self, *levels: CapLevel) -> List[str]:
        wanted = {level.value for level in levels}
        return [name for name, cap in self.triggered_caps.items() if cap.get("level") in wanted]

    def to_deidentified(self) -> Dict[str, Any]:
        return {
            "profile_version": self.profile_version,
            "data_sources": {
                "has_hc": self.has_full_hc_assessment,
                "has_ca": self.has_ca_assessment,
                "has_bmhs": self.has_bmhs_assessment,
                "has_referral": self.has_referral_data,
                "completeness": round(self.data_completeness_score, 2),
            },
            "case_classification": {
                "rug_group": self.rug_group,
                "rug_category": self.rug_category,
                "needs_cluster": self.needs_cluster,
                "episode_type": self.episode_type,
            },
            "functional_needs": {
                "adl_level": self.adl_support_level,
                "iadl_level": self.iadl_support_level,
                "mobility_complexity": self.mobility_complexity,
                "specific_adl_needs": self.specific_adl_needs,
            },
            "cognitive_behavioural": {
                "cognitive_complexity": self.cognitive_complexity,
                "behavioural_complexity": self.behavioural_complexity,
                "mental_health_complexity": self.mental_health_complexity,
                "wandering_risk": self.has_wandering_risk,
                "aggression_risk": self.has_aggression_risk,
                "behavioural_flags": self.behavioural_flags,
            },
            "clinical_risks": {
                "falls_risk": self.falls_risk_level,
                "skin_risk": self.skin_integrity_risk,
                "pain_level": self.pain_management_need,
                "continence": self.continence_support,
                "health_instability": self.health_instability,
                "clinical_flags": self.clinical_risk_flags,
                "active_conditions": self.active_conditions,
            },
            "treatment_context": {
                "rehab_potential": self.has_rehab_potential,
                "rehab_score": self.rehab_potential_score,
                "requires_extensive": self.requires_extensive_services,
                "extensive_services": self.extensive_services,
                "weekly_therapy_minutes": self.weekly_therapy_minutes,
            },
            "support_context": {
                "caregiver_availability": self.caregiver_availability_score,
                "caregiver_stress": self.caregiver_stress_level,
                "lives_alone": self.lives_alone,
                "needs_respite": self.caregiver_requires_relief,
                "social_support": self.social_support_score,
            },
            "technology": {
                "readiness": self.technology_readiness,
                "has_internet": self.has_internet,
                "has_pers": self.has_pers,
                "rpm_suitable": self.suitable_for_rpm,
            },
            "environment": {
                "region_code": self.region_code,
                "travel_complexity": self.travel_complexity_score,
                "is_rural": self.is_rural,
            },
            "algorithm_scores": {
                "self_reliance_index": self.self_reliance_index,
                "assessment_urgency": self.assessment_urgency_score,
                "service_urgency": self.service_urgency_score,
                "rehabilitation": self.rehabilitation_score,
                "personal_support": self.personal_support_score,
                "distressed_mood": self.distressed_mood_score,
                "pain": self.pain_score,
                "chess_ca": self.chess_ca_score,
            },
            "triggered_caps": {name: cap.get("level") for name, cap in self.triggered_caps.items()},
            "confidence": {
                "level": self.confidence_level,
                "label": self.confidence_label,
            },
        }

    @classmethod
    def minimal(cls, patient_id: str) -> "PatientNeedsProfile":
        return cls(
            patient_id=patient_id,
            confidence_level="low",
            data_quality_notes="Minimal profile - no assessment data available",
        )
