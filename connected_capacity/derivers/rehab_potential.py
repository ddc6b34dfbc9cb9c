"""
Rehab Potential Deriver - Connected Capacity Bundle Engine
connected_capacity/derivers/rehab_potential.py

Additive factor model for rehabilitation potential (0-100).

    Factor                      Max
    episode type                 30
    therapy indicators           20
    functional potential         20
    ADL / mobility status        15
    cognitive capacity           10
    referral indicators          15
    negative modifiers         -65

The total is clamped to [0, 100]; a score >= 40 means the patient has rehab
potential.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog

from connected_capacity.engines.utils import clamp, to_int
from connected_capacity.models.assessment import ReferralInput

logger = structlog.get_logger(__name__)

POTENTIAL_THRESHOLD = 40
MAX_SCORE = 100

_REHAB_KEYWORDS = ("rehab", "rehabilitation", "therapy", "recovery", "restore", "regain")

_EPISODE_POINTS = {
    "post_acute": (30, "Post-acute episode with high rehab potential (+30)"),
    "acute_exacerbation": (20, "Acute exacerbation with recovery potential (+20)"),
    "chronic": (10, "Chronic maintenance with some improvement potential (+10)"),
    "complex_continuing": (5, "Complex continuing care with limited rehab focus (+5)"),
    "palliative": (0, "Palliative focus, rehab not primary goal"),
}


@dataclass
class FactorScore:
    points: int = 0
    reason: Optional[str] = None


@dataclass
class RehabPotentialResult:
    score: int
    has_rehab_potential: bool
    factors: List[str] = field(default_factory=list)

    @property
    def level(self) -> str:
        return potential_level(self.score)

    @property
    def description(self) -> str:
        return potential_description(self.score)


def potential_level(score: int) -> str:
    if score >= 70:
        return "high"
    if score >= 40:
        return "moderate"
    if score >= 20:
        return "low"
    return "minimal"


def potential_description(score: int) -> str:
    if score >= 70:
        return "Strong rehabilitation potential - therapy-intensive care recommended"
    if score >= 40:
        return "Moderate rehabilitation potential - balanced approach recommended"
    if score >= 20:
        return "Limited rehabilitation potential - focus on maintenance and safety"
    return "Minimal rehabilitation potential - comfort and stability focused"


class RehabPotentialDeriver:

    def derive(
        self,
        data: Dict[str, Any],
        episode_type: Optional[str] = None,
        referral: Optional[ReferralInput] = None,
    ) -> RehabPotentialResult:
        parts = [
            self.score_episode_type(episode_type),
            self.score_therapy_indicators(data),
            self.score_functional_potential(data),
            self.score_adl_status(data),
            self.score_cognitive_capacity(data),
        ]
        if referral is not None:
            parts.append(self.score_referral_indicators(referral))

        negative = self.negative_modifiers(data)

        score = sum(p.points for p in parts) + negative.points
        factors = [p.reason for p in parts if p.points > 0 and p.reason]
        if negative.points < 0 and negative.reason:
            factors.append(negative.reason)

        score = int(clamp(score, 0, MAX_SCORE))
        logger.debug("rehab_potential_derived", score=score, factor_count=len(factors))
        return RehabPotentialResult(
            score=score,
            has_rehab_potential=score >= POTENTIAL_THRESHOLD,
            factors=factors,
        )

    @staticmethod
    def score_episode_type(episode_type: Optional[str]) -> FactorScore:
        if episode_type is None:
            return FactorScore()
        points, reason = _EPISODE_POINTS.get(episode_type, (0, None))
        return FactorScore(points, reason)

    @staticmethod
    def score_therapy_indicators(data: Dict[str, Any]) -> FactorScore:
        points = 0
        reasons = []
        minutes = to_int(data.get("weekly_therapy_minutes"))
        if minutes >= 60:
            points += 15
            reasons.append(f"Active therapy plan ({minutes}+ min/week)")
        elif minutes >= 30:
            points += 10
            reasons.append(f"Moderate therapy plan ({minutes} min/week)")
        elif minutes > 0:
            points += 5
            reasons.append(f"Light therapy plan ({minutes} min/week)")

        if data.get("therapy_recommended") is True:
            points += 5
            reasons.append("Therapy recommended in assessment")

        return _capped(points, 20, reasons)

    @staticmethod
    def score_functional_potential(data: Dict[str, Any]) -> FactorScore:
        indicators = [
            ("recent_decline", 10, "Recent functional decline (recovery potential)"),
            ("not_at_baseline", 10, "Below functional baseline"),
            ("improvement_noted", 10, "Recent improvement documented"),
            ("patient_motivated", 5, "Patient motivated for rehab"),
        ]
        points = 0
        reasons = []
        for key, value, reason in indicators:
            if data.get(key) is True:
                points += value
                reasons.append(reason)
        return _capped(points, 20, reasons)

    @staticmethod
    def score_adl_status(data: Dict[str, Any]) -> FactorScore:
        adl = to_int(data.get("adl_support_level"))
        mobility = to_int(data.get("mobility_complexity"))

        # Moderate impairment (2-4) has the most room for recovery
        reasons = []
        if 2 <= adl <= 4:
            points = 15
            reasons.append("Moderate ADL impairment - good rehab candidate (+15)")
        elif adl >= 5:
            points = 5
            reasons.append("Severe ADL impairment - limited but possible (+5)")
        else:
            points = 0

        if 2 <= mobility <= 4:
            points += 5
            reasons.append("Moderate mobility impairment (+5)")

        return FactorScore(min(15, points), "; ".join(reasons) or None)

    @staticmethod
    def score_cognitive_capacity(data: Dict[str, Any]) -> FactorScore:
        cognitive = to_int(data.get("cognitive_complexity"))
        if cognitive <= 1:
            return FactorScore(10, "Intact cognition supports rehab participation (+10)")
        if cognitive <= 2:
            return FactorScore(7, "Mild cognitive impairment - can participate (+7)")
        if cognitive <= 3:
            return FactorScore(4, "Moderate cognitive impairment - may need adapted approach (+4)")
        return FactorScore()

    @staticmethod
    def score_referral_indicators(referral: ReferralInput) -> FactorScore:
        points = 0
        reasons = []
        text = f"{referral.notes or ''} {referral.referral_reason or ''}".lower()
        if any(keyword in text for keyword in _REHAB_KEYWORDS):
            points += 10
            reasons.append("Referral mentions rehabilitation goals")

        if referral.surgery_type or referral.procedure_type:
            points += 10
            reasons.append("Post-surgical recovery expected")

        if referral.expected_length_of_stay is not None and referral.expected_length_of_stay <= 90:
            points += 5
            reasons.append("Short expected episode (time-limited recovery)")

        return _capped(points, 15, reasons)

    @staticmethod
    def negative_modifiers(data: Dict[str, Any]) -> FactorScore:
        modifiers = [
            (to_int(data.get("cognitive_complexity")) >= 5, -15, "Severe cognitive impairment (-15)"),
            (to_int(data.get("health_instability")) >= 4, -10, "High health instability (-10)"),
            (to_int(data.get("prognosis"), 99) <= 2, -20, "Poor prognosis (-20)"),
            (to_int(data.get("adl_support_level")) >= 6, -10, "Total ADL dependence (-10)"),
            (data.get("long_term_decline") is True, -10, "Pattern of long-term decline (-10)"),
        ]
        points = sum(value for applies, value, _ in modifiers if applies)
        reasons = [reason for applies, _, reason in modifiers if applies]
        return FactorScore(points, "; ".join(reasons) if points < 0 else None)


def _capped(points: int, cap: int, reasons: List[str]) -> FactorScore:
    if points <= 0:
        return FactorScore()
    return FactorScore(min(cap, points), "; ".join(reasons) + f" (+{points})")
