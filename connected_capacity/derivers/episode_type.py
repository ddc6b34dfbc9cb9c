"""
Episode Type Deriver - Connected Capacity Bundle Engine
connected_capacity/derivers/episode_type.py

Derives the care episode type from, in priority order:
    1. explicit referral type, source or program
    2. hospital discharge date (within 30 days) or surgery on the referral
    3. assessment patterns (palliative, acute, post-acute, complex)
    4. a default from ADL / cognition / instability
"""

from datetime import date
from typing import Any, Dict, Optional, Tuple

from connected_capacity.engines.utils import first_present, to_int
from connected_capacity.models.assessment import PatientContext, ReferralInput
from connected_capacity.models.enumerations import EpisodeType

POST_ACUTE_DAYS_THRESHOLD = 30

_REFERRAL_TYPES = {
    "post_acute": EpisodeType.POST_ACUTE,
    "post-acute": EpisodeType.POST_ACUTE,
    "hospital_discharge": EpisodeType.POST_ACUTE,
    "chronic": EpisodeType.CHRONIC,
    "maintenance": EpisodeType.CHRONIC,
    "complex": EpisodeType.COMPLEX_CONTINUING,
    "complex_continuing": EpisodeType.COMPLEX_CONTINUING,
    "acute": EpisodeType.ACUTE_EXACERBATION,
    "acute_exacerbation": EpisodeType.ACUTE_EXACERBATION,
    "flare": EpisodeType.ACUTE_EXACERBATION,
    "palliative": EpisodeType.PALLIATIVE,
    "end_of_life": EpisodeType.PALLIATIVE,
    "hospice": EpisodeType.PALLIATIVE,
}

_METHOD_CONFIDENCE = {
    "explicit_referral": "high",
    "discharge_date": "high",
    "surgery_type": "high",
    "assessment_patterns": "medium",
    "default": "low",
}

EPISODE_TYPE_INFO = {
    EpisodeType.POST_ACUTE: ("Post-Acute", "Recent hospital discharge, rehabilitation focus"),
    EpisodeType.CHRONIC: ("Chronic", "Stable long-term condition, maintenance care"),
    EpisodeType.COMPLEX_CONTINUING: ("Complex Continuing", "Long-term with multiple complexities"),
    EpisodeType.ACUTE_EXACERBATION: ("Acute Exacerbation", "Acute flare-up of chronic condition"),
    EpisodeType.PALLIATIVE: ("Palliative", "End-of-life focused care"),
}


class EpisodeTypeDeriver:

    def __init__(self, today: Optional[date] = None):
        self._today = today

    @property
    def today(self) -> date:
        return self._today or date.today()

    def derive(
        self,
        patient: Optional[PatientContext],
        data: Dict[str, Any],
        referral: Optional[ReferralInput] = None,
    ) -> str:
        return self.derive_with_method(patient, data, referral)[0]

    def derive_with_method(
        self,
        patient: Optional[PatientContext],
        data: Dict[str, Any],
        referral: Optional[ReferralInput] = None,
    ) -> Tuple[str, str]:
        """Return (episode_type, derivation_method)."""
        from_referral = self.derive_from_referral(referral)
        if from_referral is not None:
            return from_referral.value, "explicit_referral"

        discharge = self.derive_from_discharge(patient, referral)
        if discharge is not None:
            return discharge

        from_patterns = self.derive_from_assessment_patterns(data)
        if from_patterns is not None:
            return from_patterns.value, "assessment_patterns"

        return self.derive_default(data).value, "default"

    # ------------------------------------------------------------------
    # Priority 1: referral
    # ------------------------------------------------------------------

    @staticmethod
    def derive_from_referral(referral: Optional[ReferralInput]) -> Optional[EpisodeType]:
        if referral is None:
            return None

        if referral.referral_type:
            # An unrecognised explicit type does not fall through to source/program
            return _REFERRAL_TYPES.get(referral.referral_type.strip().lower())

        source = (referral.source or "").lower()
        if "hospital" in source or "discharge" in source:
            return EpisodeType.POST_ACUTE

        program = (referral.program or "").lower()
        if "transitional" in program or "ohah" in program:
            return EpisodeType.POST_ACUTE
        if "palliative" in program or "hospice" in program:
            return EpisodeType.PALLIATIVE

        return None

    # ------------------------------------------------------------------
    # Priority 2: discharge / surgery
    # ------------------------------------------------------------------

    def derive_from_discharge(
        self,
        patient: Optional[PatientContext],
        referral: Optional[ReferralInput],
    ) -> Optional[Tuple[str, str]]:
        discharge_date = None
        if referral is not None and referral.discharge_date is not None:
            discharge_date = referral.discharge_date
        elif patient is not None:
            discharge_date = patient.last_discharge_date

        if discharge_date is not None:
            days_since = abs((self.today - discharge_date).days)
            if days_since <= POST_ACUTE_DAYS_THRESHOLD:
                return EpisodeType.POST_ACUTE.value, "discharge_date"

        if referral is not None and (referral.surgery_type or referral.procedure_type):
            return EpisodeType.POST_ACUTE.value, "surgery_type"

        return None

    # ------------------------------------------------------------------
    # Priority 3: assessment patterns
    # ------------------------------------------------------------------

    def derive_from_assessment_patterns(self, data: Dict[str, Any]) -> Optional[EpisodeType]:
        if self.has_palliative_indicators(data):
            return EpisodeType.PALLIATIVE
        if self.has_acute_exacerbation_indicators(data):
            return EpisodeType.ACUTE_EXACERBATION
        if self.has_post_acute_indicators(data):
            return EpisodeType.POST_ACUTE
        if self.has_complex_continuing_indicators(data):
            return EpisodeType.COMPLEX_CONTINUING
        return None

    @staticmethod
    def has_palliative_indicators(data: Dict[str, Any]) -> bool:
        prognosis = first_present(data, "prognosis", "life_expectancy")
        if prognosis is not None and to_int(prognosis, 99) <= 2:
            return True
        return data.get("end_stage_disease") is True or data.get("hospice_enrolled") is True

    @staticmethod
    def has_acute_exacerbation_indicators(data: Dict[str, Any]) -> bool:
        if to_int(data.get("health_instability")) >= 4:
            return True
        return data.get("acute_change") is True or data.get("condition_flare") is True

    @staticmethod
    def has_post_acute_indicators(data: Dict[str, Any]) -> bool:
        therapy_minutes = to_int(data.get("weekly_therapy_minutes"))
        if therapy_minutes >= 60:
            return True
        if data.get("has_rehab_potential") and therapy_minutes > 0:
            return True
        return data.get("rug_category") == "Special Rehabilitation"

    @staticmethod
    def has_complex_continuing_indicators(data: Dict[str, Any]) -> bool:
        adl = to_int(data.get("adl_support_level"))
        cognitive = to_int(data.get("cognitive_complexity"))
        if adl >= 4 and cognitive >= 3:
            return True
        if to_int(data.get("behavioural_complexity")) >= 3:
            return True
        if data.get("requires_extensive_services") is True:
            return True
        return len(data.get("active_conditions") or []) >= 4

    # ------------------------------------------------------------------
    # Priority 4: default
    # ------------------------------------------------------------------

    @staticmethod
    def derive_default(data: Dict[str, Any]) -> EpisodeType:
        if (
            to_int(data.get("adl_support_level")) >= 4
            or to_int(data.get("cognitive_complexity")) >= 4
            or to_int(data.get("health_instability")) >= 4
        ):
            return EpisodeType.COMPLEX_CONTINUING
        return EpisodeType.CHRONIC

    @staticmethod
    def confidence_for(method: str) -> str:
        return _METHOD_CONFIDENCE.get(method, "low")

    @staticmethod
    def is_valid_episode_type(value: str) -> bool:
        return value in {e.value for e in EpisodeType}

    @staticmethod
    def all_episode_types() -> Dict[str, Dict[str, str]]:
        return {
            episode.value: {"label": label, "description": description}
            for episode, (label, description) in EPISODE_TYPE_INFO.items()
        }
