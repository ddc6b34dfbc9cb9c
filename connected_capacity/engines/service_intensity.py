# connected_capacity/engines/service_intensity.py
"""
Service Intensity Resolver
--------------------------
Maps CA algorithm scores to weekly service intensities using the JSON
matrix at ``<RULES_DIR>/service_intensity_matrix.json``.

    personal_support  -> PSW hours
    rehabilitation    -> PT / OT visits (50/50 split, 45 min per visit)
    chess_ca          -> NUR visits

CAP recommendations then scale existing services or add new ones, and the
scenario axis applies its own multipliers.
"""
import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog

from connected_capacity.core.exceptions import RuleNotFoundException, RuleValidationException
from connected_capacity.engines.utils import round_half_up, to_float

logger = structlog.get_logger(__name__)

RULE_TYPE = "intensity matrix"

# Service codes
SERVICE_PSW = "PSW"
SERVICE_NUR = "NUR"
SERVICE_PT = "PT"
SERVICE_OT = "OT"
SERVICE_SLP = "SLP"
SERVICE_SW = "SW"
SERVICE_RD = "RD"
SERVICE_HM = "HM"

# Matrix mapping keys
MAPPING_PSA_TO_PSW = "psa_to_psw_hours"
MAPPING_REHAB_TO_THERAPY = "rehab_to_therapy_visits"
MAPPING_CHESS_TO_NURSING = "chess_to_nursing_visits"
MAPPING_PAIN_TO_NURSING = "pain_to_nursing_visits"
MAPPING_DMS_TO_MENTAL_HEALTH = "dms_to_mental_health"

PT_RATIO = 0.5
THERAPY_HOURS_PER_VISIT = 0.75

AXIS_SERVICE_MODIFIERS: Dict[str, Dict[str, float]] = {
    "recovery_rehab": {SERVICE_PT: 1.3, SERVICE_OT: 1.3, SERVICE_SLP: 1.2},
    "safety_stability": {SERVICE_NUR: 1.2, SERVICE_PSW: 1.1},
    "tech_enabled": {SERVICE_NUR: 0.8, SERVICE_PSW: 0.9},
    "caregiver_relief": {SERVICE_PSW: 1.25, SERVICE_HM: 1.3},
    "community_integrated": {SERVICE_SW: 1.2},
}

# Matrix-level axis modifiers apply to the service a mapping drives
_MAPPING_TARGETS = {
    MAPPING_PSA_TO_PSW: SERVICE_PSW,
    MAPPING_REHAB_TO_THERAPY: SERVICE_PT,
    MAPPING_CHESS_TO_NURSING: SERVICE_NUR,
}

# New service from a CAP: (hours, visits) by priority
_CAP_PRIORITY_DEFAULTS = {
    "core": (2.0, 2.0),
    "recommended": (1.0, 1.0),
}
_CAP_OPTIONAL_DEFAULT = (0.5, 0.0)


@dataclass
class ServiceIntensity:
    """Weekly intensity for one service code."""
    hours: float = 0.0
    visits: float = 0.0
    label: str = ""
    rationale: str = ""
    confidence: str = "medium"
    source: str = "matrix"
    priority: Optional[str] = None
    focus: Optional[str] = None
    cap_triggered: bool = False
    scenario_modifier: Optional[float] = None
    scenario_axis: Optional[str] = None

    def scale(self, multiplier: float, places: Optional[int] = None) -> None:
        self.hours = self.hours * multiplier
        self.visits = self.visits * multiplier
        if places is not None:
            self.hours = round_half_up(self.hours, places)
            self.visits = round_half_up(self.visits, places)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ServiceIntensityResolver:
    """Score-to-intensity lookup over the service intensity matrix."""

    def __init__(self, matrix_path: Optional[Path] = None):
        if matrix_path is None:
            from connected_capacity.config import settings
            matrix_path = settings.intensity_matrix_path
        self.matrix_path = Path(matrix_path)
        self._matrix: Optional[Dict[str, Any]] = None

    def load_matrix(self) -> Dict[str, Any]:
        if self._matrix is not None:
            return self._matrix

        if not self.matrix_path.is_file():
            raise RuleNotFoundException(RULE_TYPE, str(self.matrix_path))

        try:
            matrix = json.loads(self.matrix_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise RuleValidationException(RULE_TYPE, self.matrix_path.name, f"invalid JSON: {e.msg}") from e

        if not isinstance(matrix, dict):
            raise RuleValidationException(RULE_TYPE, self.matrix_path.name, "matrix must be an object")

        self._matrix = matrix
        return matrix

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve(
        self,
        algorithm_scores: Dict[str, Any],
        triggered_caps: Optional[Dict[str, Dict[str, Any]]] = None,
        scenario_axis: Optional[str] = None,
    ) -> Dict[str, ServiceIntensity]:
        services: Dict[str, ServiceIntensity] = {}

        if algorithm_scores.get("personal_support") is not None:
            services[SERVICE_PSW] = self.get_service_intensity(
                MAPPING_PSA_TO_PSW, algorithm_scores["personal_support"]
            )

        if algorithm_scores.get("rehabilitation") is not None:
            rehab = self.get_service_intensity(MAPPING_REHAB_TO_THERAPY, algorithm_scores["rehabilitation"])
            for code, ratio, portion in ((SERVICE_PT, PT_RATIO, "PT"), (SERVICE_OT, 1 - PT_RATIO, "OT")):
                visits = rehab.visits * ratio
                services[code] = ServiceIntensity(
                    visits=round_half_up(visits, 1),
                    hours=round_half_up(visits * THERAPY_HOURS_PER_VISIT, 1),
                    label=rehab.label,
                    rationale=f"{rehab.rationale} ({portion} portion)",
                    confidence=rehab.confidence,
                    source=rehab.source,
                )

        if algorithm_scores.get("chess_ca") is not None:
            services[SERVICE_NUR] = self.get_service_intensity(
                MAPPING_CHESS_TO_NURSING, algorithm_scores["chess_ca"]
            )

        self._apply_cap_adjustments(services, triggered_caps or {})

        if scenario_axis:
            self._apply_scenario_modifiers(services, scenario_axis)

        return services

    def get_service_intensity(self, mapping: str, score: Any) -> ServiceIntensity:
        matrix = self.load_matrix()
        config = matrix.get(mapping)
        if not isinstance(config, dict) or not config.get("mappings"):
            return ServiceIntensity(label="No mapping defined", rationale="No mapping defined", source="default")

        entries: Dict[str, Any] = config["mappings"]
        score_key = str(int(to_float(score)))
        if score_key not in entries:
            score_key = str(_closest_score(int(to_float(score)), entries.keys()))

        entry = entries.get(score_key) or {}
        return ServiceIntensity(
            hours=to_float(entry.get("hours")),
            visits=to_float(entry.get("visits")),
            label=entry.get("label", ""),
            rationale=entry.get("rationale", config.get("description", "")),
            confidence=entry.get("confidence", "medium"),
            source=(config.get("source") or {}).get("primary", "matrix"),
        )

    def _apply_cap_adjustments(
        self,
        services: Dict[str, ServiceIntensity],
        triggered_caps: Dict[str, Dict[str, Any]],
    ) -> None:
        matrix_adjustments = self.load_matrix().get("cap_adjustments") or {}

        for cap_name, cap_result in triggered_caps.items():
            recommendations = _normalize_recommendations(cap_result.get("recommendations"))
            if not recommendations:
                recommendations = _normalize_recommendations(matrix_adjustments.get(cap_name))

            for service_code, recommendation in recommendations:
                priority = recommendation.get("priority", "optional")
                multiplier = to_float(recommendation.get("frequency_multiplier"), 1.0)
                focus = recommendation.get("focus")

                existing = services.get(service_code)
                if existing is not None:
                    existing.scale(multiplier)
                    existing.rationale += f" | CAP: {cap_name} ({priority})"
                    existing.cap_triggered = True
                    if focus:
                        existing.focus = focus
                else:
                    hours, visits = _CAP_PRIORITY_DEFAULTS.get(priority, _CAP_OPTIONAL_DEFAULT)
                    services[service_code] = ServiceIntensity(
                        hours=hours,
                        visits=visits,
                        rationale=f"CAP: {cap_name} ({priority})",
                        source="cap_trigger",
                        priority=priority,
                        focus=focus,
                        cap_triggered=True,
                    )

    def _apply_scenario_modifiers(self, services: Dict[str, ServiceIntensity], axis: str) -> None:
        for service_code, modifier in AXIS_SERVICE_MODIFIERS.get(axis, {}).items():
            service = services.get(service_code)
            if service is None:
                continue
            service.scale(modifier, places=1)
            service.scenario_modifier = modifier
            service.scenario_axis = axis

        modifier_key = f"{axis.upper()}_AXIS"
        for mapping_key, config in self.load_matrix().items():
            if not isinstance(config, dict):
                continue
            modifier = (config.get("modifiers") or {}).get(modifier_key)
            target = _MAPPING_TARGETS.get(mapping_key)
            if not modifier or target not in services:
                continue
            services[target].scale(to_float(modifier.get("multiplier"), 1.0), places=1)

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def get_matrix_meta(self) -> Dict[str, Any]:
        matrix = self.load_matrix()
        return {
            "version": matrix.get("version", "unknown"),
            "last_updated": matrix.get("last_updated"),
            "updated_by": matrix.get("updated_by"),
            "review_status": matrix.get("review_status", "unknown"),
            "next_review_date": matrix.get("next_review_date"),
            "source": (matrix.get("source") or {}).get("primary"),
            "available_mappings": [
                key for key, value in matrix.items() if isinstance(value, dict) and "mappings" in value
            ],
        }


def _closest_score(score: int, available: Iterable[str]) -> int:
    """Closest available score; ties go to the first listed."""
    numeric = [int(s) for s in available]
    closest = numeric[0]
    for candidate in numeric[1:]:
        if abs(score - candidate) < abs(score - closest):
            closest = candidate
    return closest


def _normalize_recommendations(raw: Any) -> List[Tuple[str, Dict[str, Any]]]:
    """Accept {code: {...}} or [{service: code, ...}] and return (code, rec) pairs."""
    if not raw:
        return []
    if isinstance(raw, dict):
        return [(str(code).upper(), rec or {}) for code, rec in raw.items() if isinstance(rec, (dict, type(None)))]

    pairs: List[Tuple[str, Dict[str, Any]]] = []
    for rec in raw:
        if not isinstance(rec, dict):
            continue
        code = rec.get("service") or rec.get("service_code")
        if code:
            pairs.append((str(code).upper(), rec))
    return pairs
