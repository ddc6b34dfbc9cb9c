"""
Assessment Ingestion Service - Connected Capacity Bundle Engine
connected_capacity/services/ingestion_service.py

Builds a PatientNeedsProfile from every available data source.

Merge order:
    1. HC (authoritative)
    2. CA fills fields that are missing, None or 0
    3. BMHS overrides mental-health and behavioural fields
    4. Referral fills fields that are missing or None

Then episode type and rehab potential are derived, CA algorithm scores
computed, and CAPs evaluated when a full HC assessment is present.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog

from connected_capacity.config import settings
from connected_capacity.derivers.episode_type import EpisodeTypeDeriver
from connected_capacity.derivers.rehab_potential import RehabPotentialDeriver
from connected_capacity.engines.algorithm_evaluator import AlgorithmEvaluator
from connected_capacity.engines.cap_trigger import CAPTriggerEngine
from connected_capacity.engines.utils import to_int
from connected_capacity.mappers.bmhs_mapper import BmhsAssessmentMapper
from connected_capacity.mappers.ca_mapper import CaAssessmentMapper
from connected_capacity.mappers.hc_mapper import HcAssessmentMapper
from connected_capacity.models.assessment import (
    AssessmentInput,
    PatientContext,
    ProfileRequest,
    ReferralInput,
)
from connected_capacity.models.profile import PatientNeedsProfile
from connected_capacity.services.cache import get_cache, profile_cache_key

logger = structlog.get_logger(__name__)

REFERRAL_WEIGHT = 0.4

# Raw items that feed the episode and rehab derivers without being profile fields
_PATTERN_FLAGS = (
    "end_stage_disease",
    "hospice_enrolled",
    "acute_change",
    "condition_flare",
    "therapy_recommended",
    "recent_decline",
    "not_at_baseline",
    "improvement_noted",
    "patient_motivated",
    "long_term_decline",
)
_PATTERN_SCALES = ("prognosis", "life_expectancy")

_COMPLETENESS_FIELDS = (
    "adl_support_level",
    "cognitive_complexity",
    "health_instability",
    "falls_risk_level",
    "episode_type",
)

_IMPORTANT_FIELDS = {
    "rug_group": "RUG Classification",
    "adl_support_level": "ADL Support Level",
    "cognitive_complexity": "Cognitive Complexity",
    "health_instability": "Health Instability",
    "weekly_therapy_minutes": "Therapy Minutes",
}

_ALGORITHM_FIELDS = {
    "self_reliance_index": "self_reliance_index",
    "assessment_urgency": "assessment_urgency_score",
    "service_urgency": "service_urgency_score",
    "rehabilitation": "rehabilitation_score",
    "personal_support": "personal_support_score",
    "distressed_mood": "distressed_mood_score",
    "pain": "pain_score",
    "chess_ca": "chess_ca_score",
}


def _is_unset(value: Any) -> bool:
    """Missing for gap-filling: None or a numeric zero (booleans are set)."""
    if value is None:
        return True
    return not isinstance(value, bool) and isinstance(value, (int, float)) and value == 0


class AssessmentIngestionService:
    """Turns assessments and referral data into a PatientNeedsProfile."""

    def __init__(
        self,
        hc_mapper: Optional[HcAssessmentMapper] = None,
        ca_mapper: Optional[CaAssessmentMapper] = None,
        bmhs_mapper: Optional[BmhsAssessmentMapper] = None,
        episode_type_deriver: Optional[EpisodeTypeDeriver] = None,
        rehab_potential_deriver: Optional[RehabPotentialDeriver] = None,
        algorithm_evaluator: Optional[AlgorithmEvaluator] = None,
        cap_engine: Optional[CAPTriggerEngine] = None,
        cache_enabled: Optional[bool] = None,
    ):
        self.hc_mapper = hc_mapper or HcAssessmentMapper()
        self.ca_mapper = ca_mapper or CaAssessmentMapper()
        self.bmhs_mapper = bmhs_mapper or BmhsAssessmentMapper()
        self.episode_type_deriver = episode_type_deriver or EpisodeTypeDeriver()
        self.rehab_potential_deriver = rehab_potential_deriver or RehabPotentialDeriver()
        self.algorithm_evaluator = algorithm_evaluator
        self.cap_engine = cap_engine
        self.cache_enabled = settings.CACHE_ENABLED if cache_enabled is None else cache_enabled

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build_patient_needs_profile(self, request: ProfileRequest) -> PatientNeedsProfile:
        patient_id = request.patient.patient_id
        cache = get_cache() if self.cache_enabled else None

        if cache is not None and request.force_refresh:
            # a failed rebuild must not leave the stale profile behind
            self.invalidate_cache(patient_id)
        elif cache is not None:
            cached = cache.get(profile_cache_key(patient_id), PatientNeedsProfile)
            if cached is not None:
                logger.debug("profile_cache_hit")
                return cached

        try:
            profile = self.build_from_sources(
                request.patient, request.hc, request.ca, request.bmhs, request.referral
            )
        except Exception as e:
            logger.error("profile_build_failed", error=str(e), error_type=type(e).__name__)
            return PatientNeedsProfile.minimal(patient_id)

        if cache is not None:
            cache.set(profile_cache_key(patient_id), profile, settings.CACHE_TTL_PROFILE)

        return profile

    def has_sufficient_data(self, request: ProfileRequest) -> bool:
        sources = self.available_data_sources(request)
        return sources["has_hc"] or sources["has_ca"] or sources["has_referral"]

    @staticmethod
    def available_data_sources(request: ProfileRequest) -> Dict[str, Any]:
        def _date(assessment: Optional[AssessmentInput]) -> Optional[str]:
            if assessment is None or assessment.assessment_date is None:
                return None
            return assessment.assessment_date.date().isoformat()

        referral = request.referral
        return {
            "has_hc": request.hc is not None,
            "hc_date": _date(request.hc),
            "has_ca": request.ca is not None,
            "ca_date": _date(request.ca),
            "has_bmhs": request.bmhs is not None,
            "bmhs_date": _date(request.bmhs),
            "has_referral": referral is not None,
            "referral_source": referral.source if referral is not None else None,
        }

    def invalidate_cache(self, patient_id: str) -> None:
        cache = get_cache()
        if cache is not None:
            cache.delete(profile_cache_key(patient_id))

    # ------------------------------------------------------------------
    # Profile assembly
    # ------------------------------------------------------------------

    def build_from_sources(
        self,
        patient: PatientContext,
        hc: Optional[AssessmentInput] = None,
        ca: Optional[AssessmentInput] = None,
        bmhs: Optional[AssessmentInput] = None,
        referral: Optional[ReferralInput] = None,
    ) -> PatientNeedsProfile:
        merged: Dict[str, Any] = {}
        confidence_factors: List[float] = []

        if hc is not None:
            merged.update(self.hc_mapper.map_to_profile_fields(hc))
            confidence_factors.append(self.hc_mapper.confidence_weight)

        if ca is not None:
            for key, value in self.ca_mapper.map_to_profile_fields(ca).items():
                if _is_unset(merged.get(key)):
                    merged[key] = value
            confidence_factors.append(self.ca_mapper.confidence_weight)

        if bmhs is not None:
            merged.update(self.bmhs_mapper.map_to_profile_fields(bmhs))
            confidence_factors.append(self.bmhs_mapper.confidence_weight)

        if referral is not None:
            for key, value in self.extract_from_referral(referral).items():
                if merged.get(key) is None:
                    merged[key] = value
            confidence_factors.append(REFERRAL_WEIGHT)

        derivation_input = {**merged, **self._pattern_items(hc, ca)}

        episode_type = self.episode_type_deriver.derive(patient, derivation_input, referral)
        merged["episode_type"] = episode_type
        derivation_input["episode_type"] = episode_type

        rehab = self.rehab_potential_deriver.derive(derivation_input, episode_type, referral)
        merged["has_rehab_potential"] = rehab.has_rehab_potential
        merged["rehab_potential_score"] = rehab.score

        primary = hc if hc is not None else ca
        merged.update(self.compute_algorithm_scores(primary, merged, referral))

        triggered_caps: Dict[str, Dict[str, Any]] = {}
        if hc is not None and self.cap_engine is not None:
            results = self.cap_engine.evaluate_all(self.build_cap_input(merged))
            triggered_caps = {name: result.to_dict() for name, result in results.items()}
        merged["triggered_caps"] = triggered_caps

        primary_type = "hc" if hc is not None else ("ca" if ca is not None else "referral_only")
        primary_date = primary.assessment_date if primary is not None else None

        merged.update(
            {
                "patient_id": patient.patient_id,
                "profile_generated_at": datetime.now(timezone.utc),
                "primary_assessment_type": primary_type,
                "primary_assessment_date": primary_date,
                "has_full_hc_assessment": hc is not None,
                "has_ca_assessment": ca is not None,
                "has_bmhs_assessment": bmhs is not None,
                "has_referral_data": referral is not None,
                "data_completeness_score": self.calculate_completeness_score(merged),
                "region_code": patient.region_code,
                "region_name": patient.region_name,
                "confidence_level": self.calculate_confidence_level(confidence_factors, hc is not None),
                "missing_data_fields": self.missing_fields(merged),
                "data_quality_notes": self.data_quality_notes(merged, hc, ca),
            }
        )

        fields = PatientNeedsProfile.model_fields
        profile = PatientNeedsProfile(**{k: v for k, v in merged.items() if k in fields and v is not None})

        logger.info(
            "profile_built",
            primary_assessment_type=primary_type,
            confidence=profile.confidence_level,
            completeness=profile.data_completeness_score,
            episode_type=episode_type,
            triggered_caps=sorted(triggered_caps),
        )
        return profile

    @staticmethod
    def extract_from_referral(referral: ReferralInput) -> Dict[str, Any]:
        data: Dict[str, Any] = {"has_referral_data": True}
        if referral.has_internet:
            data["has_internet"] = True
        if referral.has_pers:
            data["has_pers"] = True
        if referral.is_rural:
            data["is_rural"] = True
        if referral.diagnoses:
            data["active_conditions"] = list(referral.diagnoses)
        return data

    @staticmethod
    def _pattern_items(*assessments: Optional[AssessmentInput]) -> Dict[str, Any]:
        items: Dict[str, Any] = {}
        for assessment in assessments:
            if assessment is None:
                continue
            raw = assessment.raw_items or {}
            for key in _PATTERN_FLAGS:
                if key in raw and key not in items:
                    items[key] = bool(to_int(raw[key]))
            for key in _PATTERN_SCALES:
                if raw.get(key) is not None and key not in items:
                    items[key] = to_int(raw[key])
        return items

    # ------------------------------------------------------------------
    # Algorithm scores and CAP input
    # ------------------------------------------------------------------

    def compute_algorithm_scores(
        self,
        assessment: Optional[AssessmentInput],
        merged: Dict[str, Any],
        referral: Optional[ReferralInput],
    ) -> Dict[str, Any]:
        if self.algorithm_evaluator is None or assessment is None:
            return self.default_algorithm_scores(merged)

        context = {
            "has_recent_hospital_stay": bool(merged.get("has_recent_hospital_stay")),
            "has_recent_er_visit": bool(merged.get("has_recent_er_visit")),
            "is_palliative": bool(
                referral is not None
                and referral.referral_type
                and "palliative" in referral.referral_type.lower()
            ),
        }
        try:
            scores = self.algorithm_evaluator.evaluate_all_algorithms(assessment.raw_items or {}, context)
        except Exception as e:
            logger.warning("algorithm_scores_defaulted", error=str(e))
            return self.default_algorithm_scores(merged)

        return {field: getattr(scores, key) for key, field in _ALGORITHM_FIELDS.items()}

    @staticmethod
    def default_algorithm_scores(merged: Dict[str, Any]) -> Dict[str, Any]:
        """Approximate algorithm scores from profile data alone."""
        adl = to_int(merged.get("adl_support_level"))
        cognitive = to_int(merged.get("cognitive_complexity"))
        instability = to_int(merged.get("health_instability"))

        if adl >= 5:
            psa = 6
        elif adl >= 1:
            psa = adl + 1
        else:
            psa = 1

        if cognitive >= 4:
            rehab = 1
        elif adl >= 3 and cognitive < 3:
            rehab = 3
        elif adl >= 2:
            rehab = 2
        else:
            rehab = 1

        return {
            "self_reliance_index": adl == 0 and cognitive == 0,
            "assessment_urgency_score": min(6, max(1, adl + (2 if cognitive >= 3 else 0))),
            "service_urgency_score": 3 if instability >= 3 else 1,
            "rehabilitation_score": rehab,
            "personal_support_score": psa,
            "distressed_mood_score": to_int(merged.get("mental_health_complexity")),
            "pain_score": to_int(merged.get("pain_management_need")),
            "chess_ca_score": min(5, instability),
        }

    @staticmethod
    def build_cap_input(merged: Dict[str, Any]) -> Dict[str, Any]:
        falls_risk = to_int(merged.get("falls_risk_level"))
        has_recent_fall = merged.get("has_recent_fall")
        pain_score = merged.get("pain_score")
        return {
            # Falls
            "has_recent_fall": falls_risk >= 2 if has_recent_fall is None else bool(has_recent_fall),
            "falls_risk_level": falls_risk,
            # Mobility & function
            "mobility_complexity": to_int(merged.get("mobility_complexity")),
            "adl_support_level": to_int(merged.get("adl_support_level")),
            "iadl_support_level": to_int(merged.get("iadl_support_level")),
            # Cognition & behaviour
            "cognitive_complexity": to_int(merged.get("cognitive_complexity")),
            "has_delirium": bool(merged.get("has_delirium")),
            "behavioural_complexity": to_int(merged.get("behavioural_complexity")),
            # Clinical risk
            "pain_score": to_int(merged.get("pain_management_need")) if pain_score is None else to_int(pain_score),
            "health_instability": to_int(merged.get("health_instability")),
            "has_pressure_ulcer_risk": to_int(merged.get("skin_integrity_risk")) >= 2,
            "has_polypharmacy_risk": bool(merged.get("has_polypharmacy_risk")),
            # Environment & support
            "has_home_environment_risk": bool(merged.get("has_home_environment_risk")),
            "caregiver_stress_level": to_int(merged.get("caregiver_stress_level")),
            "lives_alone": bool(merged.get("lives_alone")),
            # Recent events
            "has_recent_hospital_stay": bool(merged.get("has_recent_hospital_stay")),
            "has_recent_er_visit": bool(merged.get("has_recent_er_visit")),
            # Assessment context
            "has_full_hc_assessment": True,
            "episode_type": merged.get("episode_type") or "unknown",
            "rehab_potential_score": to_int(merged.get("rehab_potential_score")),
            # Algorithm scores
            "self_reliance_index": bool(merged.get("self_reliance_index")),
            "personal_support_score": to_int(merged.get("personal_support_score"), 1),
            "rehabilitation_score": to_int(merged.get("rehabilitation_score"), 1),
            "chess_ca_score": to_int(merged.get("chess_ca_score")),
            "distressed_mood_score": to_int(merged.get("distressed_mood_score")),
        }

    # ------------------------------------------------------------------
    # Confidence and data quality
    # ------------------------------------------------------------------

    @staticmethod
    def calculate_confidence_level(factors: List[float], has_hc: bool) -> str:
        if not factors:
            return "low"
        max_factor = max(factors)
        if max_factor >= 1.0 and has_hc:
            return "high"
        if max_factor >= 0.7:
            return "medium"
        return "low"

    @staticmethod
    def calculate_completeness_score(merged: Dict[str, Any]) -> float:
        populated = sum(1 for f in _COMPLETENESS_FIELDS if not _is_unset(merged.get(f)))
        return populated / len(_COMPLETENESS_FIELDS)

    @staticmethod
    def missing_fields(merged: Dict[str, Any]) -> List[str]:
        return [label for key, label in _IMPORTANT_FIELDS.items() if merged.get(key) is None]

    @staticmethod
    def data_quality_notes(
        merged: Dict[str, Any],
        hc: Optional[AssessmentInput],
        ca: Optional[AssessmentInput],
    ) -> str:
        if hc is not None:
            notes = ["Full HC assessment available"]
        elif ca is not None:
            notes = ["CA assessment only - RUG derived from needs cluster"]
        else:
            notes = ["Limited assessment data - using referral/defaults"]

        if merged.get("rug_group") is None:
            notes.append("No RUG classification - using needs cluster for template selection")

        return ". ".join(notes)
