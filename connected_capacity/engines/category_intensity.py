"""
Category Intensity Resolver - Connected Capacity Bundle Engine
connected_capacity/engines/category_intensity.py

Resolves algorithm scores and triggered CAPs to category-level floors
(clinical minimums) and recommended allocations rather than fixed service
codes, so a scenario can pick a different service mix within each category.

Floors come from the service intensity matrix; recommended allocations add
a 20% buffer. CAP floor adjustments are scaled by the CAP level.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from connected_capacity.engines.utils import round_half_up, to_float
from connected_capacity.models.profile import PatientNeedsProfile

logger = structlog.get_logger(__name__)

RECOMMENDED_BUFFER = 1.2

CAP_LEVEL_MULTIPLIERS = {
    "IMPROVE": 1.0,
    "PREVENT": 0.7,
    "FACILITATE": 0.5,
    "MAINTAIN": 0.3,
}

# category -> (driving algorithm, unit, matrix mapping)
_FLOOR_SOURCES = {
    "personal_support": ("personal_support", "hours", "psa_to_psw_hours"),
    "clinical_monitoring": ("chess_ca", "visits", "chess_to_nursing_visits"),
    "rehab_support": ("rehabilitation", "visits", "rehab_to_therapy_visits"),
    "risk_mgmt_and_complexity": (None, "units", None),
    "nutrition_support": (None, "units", None),
    "social_support": (None, "units", None),
}


class CategoryIntensityResolver:
    """Category floors and envelopes from algorithm scores, CAPs and the profile."""

    def __init__(
        self,
        categories_path: Optional[Path] = None,
        matrix_path: Optional[Path] = None,
    ):
        if categories_path is None or matrix_path is None:
            from connected_capacity.config import settings
            categories_path = categories_path or settings.service_categories_path
            matrix_path = matrix_path or settings.intensity_matrix_path

        self.categories_path = Path(categories_path)
        self.matrix_path = Path(matrix_path)

        self._category_config: Dict[str, Any] = {"categories": {}}
        self._floor_matrix: Dict[str, Dict[str, Any]] = {}
        self._cap_adjustments: Dict[str, Any] = {}
        self._load_configurations()

    def _load_configurations(self) -> None:
        if self.categories_path.is_file():
            self._category_config = json.loads(self.categories_path.read_text(encoding="utf-8"))
        else:
            logger.warning("service_categories_not_found", path=str(self.categories_path))

        if self.matrix_path.is_file():
            matrix = json.loads(self.matrix_path.read_text(encoding="utf-8"))
            self._floor_matrix = self._build_floor_matrix(matrix)
            self._cap_adjustments = matrix.get("cap_floor_adjustments") or {}
        else:
            logger.warning("intensity_matrix_not_found", path=str(self.matrix_path))

    @staticmethod
    def _build_floor_matrix(matrix: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
        floor_matrix = {}
        for category, (algorithm, unit, mapping) in _FLOOR_SOURCES.items():
            floors = {}
            if mapping is not None:
                for score, entry in ((matrix.get(mapping) or {}).get("mappings") or {}).items():
                    base = to_float(entry.get("hours", entry.get("visits")))
                    floors[str(score)] = {
                        "floor": base,
                        "recommended": base * RECOMMENDED_BUFFER,
                    }
            floor_matrix[category] = {"algorithm": algorithm, "unit": unit, "floors": floors}
        return floor_matrix

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def resolve_to_categories(
        self,
        algorithm_scores: Dict[str, Any],
        triggered_caps: Dict[str, Dict[str, Any]],
        profile: PatientNeedsProfile,
    ) -> Dict[str, Dict[str, Any]]:
        categories: Dict[str, Dict[str, Any]] = {}

        # 1. base floors from the driving algorithms
        for name, definition in self.get_category_definitions().items():
            floor = 0.0
            recommended = 0.0
            floors = self._floor_matrix.get(name, {}).get("floors") or {}
            for algorithm in definition.get("algorithm_drivers") or []:
                if algorithm_scores.get(algorithm) is None or not floors:
                    continue
                score = int(to_float(algorithm_scores[algorithm]))
                entry = floors.get(str(score)) or _closest_floor(score, floors)
                floor = max(floor, entry["floor"])
                recommended = max(recommended, entry["recommended"])

            categories[name] = {
                "floor": floor,
                "recommended": recommended,
                "unit": definition.get("unit", "units"),
                "triggered_caps": [],
                "cap_boosts": {},
            }

        # 2. CAP floor adjustments
        for cap_name, cap_result in triggered_caps.items():
            level = (cap_result or {}).get("level", "NOT_TRIGGERED")
            if level == "NOT_TRIGGERED":
                continue
            multiplier = CAP_LEVEL_MULTIPLIERS.get(level, 0.0)

            for name, adjustment in (self._cap_adjustments.get(cap_name) or {}).items():
                category = categories.get(name)
                if category is None:
                    continue
                floor_add = to_float(adjustment.get("floor_add")) * multiplier
                recommended_add = to_float(adjustment.get("recommended_add")) * multiplier
                category["floor"] += floor_add
                category["recommended"] += recommended_add
                category["triggered_caps"].append(cap_name)
                category["cap_boosts"][cap_name] = {
                    "floor_add": floor_add,
                    "recommended_add": recommended_add,
                    "level": level,
                }

            for name, definition in self.get_category_definitions().items():
                category = categories[name]
                if cap_name in (definition.get("cap_boosters") or []) and cap_name not in category["triggered_caps"]:
                    category["floor"] += 1
                    category["recommended"] += 2
                    category["triggered_caps"].append(cap_name)

        # 3. profile adjustments
        self._apply_profile_adjustments(categories, profile)

        # 4. recommended never below the floor
        for category in categories.values():
            category["floor"] = round_half_up(category["floor"], 2)
            category["recommended"] = round_half_up(max(category["floor"], category["recommended"]), 2)

        return categories

    @staticmethod
    def _apply_profile_adjustments(
        categories: Dict[str, Dict[str, Any]],
        profile: PatientNeedsProfile,
    ) -> None:
        def bump(name: str, floor: float, recommended: float) -> None:
            if name in categories:
                categories[name]["floor"] += floor
                categories[name]["recommended"] += recommended

        if profile.cognitive_complexity >= 3:
            boost = (profile.cognitive_complexity - 2) * 2
            bump("personal_support", boost, boost * 1.5)
            bump("risk_mgmt_and_complexity", 1, 2)

        if profile.falls_risk_level >= 2:
            bump("risk_mgmt_and_complexity", profile.falls_risk_level, profile.falls_risk_level * 1.5)

        if profile.lives_alone:
            bump("risk_mgmt_and_complexity", 2, 3)
            bump("social_support", 1, 2)

        if profile.caregiver_stress_level >= 3:
            bump("social_support", 2, 4)

        if profile.pain_score >= 2:
            bump("clinical_monitoring", 1, 1)

    # ------------------------------------------------------------------
    # Eligibility
    # ------------------------------------------------------------------

    def get_eligible_services(
        self,
        category: str,
        profile: PatientNeedsProfile,
        triggered_caps: Optional[Dict[str, Dict[str, Any]]] = None,
    ) -> Dict[str, Dict[str, Any]]:
        definition = self.get_category_definitions().get(category)
        if not definition:
            return {}

        triggered_caps = triggered_caps or {}
        eligible = {}
        for code, service in (definition.get("services") or {}).items():
            if service.get("requires_tech") and (profile.technology_readiness < 2 or not profile.has_internet):
                continue

            required_caps: List[str] = service.get("requires_cap") or []
            if required_caps and not any(
                (triggered_caps.get(cap) or {}).get("level", "NOT_TRIGGERED") != "NOT_TRIGGERED"
                for cap in required_caps
            ):
                continue

            if service.get("requires_clinical") and not profile.requires_extensive_services:
                continue

            eligible[code] = service
        return eligible

    def get_category_definitions(self) -> Dict[str, Any]:
        return self._category_config.get("categories") or {}

    def get_floor_matrix(self) -> Dict[str, Dict[str, Any]]:
        return self._floor_matrix

    def get_cap_adjustments(self) -> Dict[str, Any]:
        return self._cap_adjustments


def _closest_floor(score: int, floors: Dict[str, Dict[str, float]]) -> Dict[str, float]:
    closest_key = min(floors, key=lambda key: abs(score - int(key)))
    return floors[closest_key]
