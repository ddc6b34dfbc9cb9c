# connected_capacity/engines/cap_trigger.py
"""
CAP Trigger Engine
------------------
Evaluates Clinical Assessment Protocol (CAP) trigger rules written in YAML.

Files are looked up in ``<RULES_DIR>/caps/{functional,clinical,cognition,social}``
and then in ``<RULES_DIR>/caps`` itself. Triggers are checked in file order
and the first one that fires decides the CAP level.

Trigger conditions:
    default: true                      fires unconditionally
    all: [cond, ...]                   every condition holds
    any: [cond, ...]                   at least one holds
    min_count: {count: n, from: [...]} at least n hold
Groups combine with AND; a trigger with no non-empty group never fires.
"""
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import structlog
import yaml

from connected_capacity.core.exceptions import (
    BundleEngineException,
    RuleNotFoundException,
    RuleValidationException,
)
from connected_capacity.models.enumerations import CapLevel

logger = structlog.get_logger(__name__)

RULE_TYPE = "CAP"
CAP_SUBDIRECTORIES = ("functional", "clinical", "cognition", "social")
_VALID_LEVELS = {level.value for level in CapLevel}


@dataclass
class CapResult:
    """Output of CAPTriggerEngine.evaluate()."""
    level: str
    cap_name: str
    description: str = ""
    recommendations: Union[List[Any], Dict[str, Any]] = field(default_factory=list)
    guidelines: List[Any] = field(default_factory=list)

    @property
    def triggered(self) -> bool:
        return self.level != CapLevel.NOT_TRIGGERED.value

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["triggered"] = self.triggered
        return data


class CAPTriggerEngine:
    """Evaluate YAML CAP trigger definitions against profile data."""

    def __init__(self, caps_path: Optional[Path] = None):
        if caps_path is None:
            from connected_capacity.config import settings
            caps_path = settings.caps_dir
        self.caps_path = Path(caps_path)
        self._loaded: Dict[str, dict] = {}

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self, cap_name: str) -> dict:
        if cap_name in self._loaded:
            return self._loaded[cap_name]

        file_path = self._find_cap_file(cap_name)
        if file_path is None:
            raise RuleNotFoundException(RULE_TYPE, cap_name)

        try:
            definition = yaml.safe_load(file_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise RuleValidationException(RULE_TYPE, cap_name, f"invalid YAML: {e}") from e

        if not definition:
            raise RuleValidationException(RULE_TYPE, cap_name, "empty definition")

        self.validate(definition, cap_name)
        self._loaded[cap_name] = definition
        return definition

    def validate(self, definition: Any, cap_name: str = "") -> bool:
        if not isinstance(definition, dict):
            raise RuleValidationException(RULE_TYPE, cap_name, "definition must be a mapping")

        for key in ("name", "version", "triggers"):
            if definition.get(key) is None:
                raise RuleValidationException(RULE_TYPE, cap_name, f"missing required field: {key}")

        triggers = definition["triggers"]
        if not isinstance(triggers, list) or not triggers:
            raise RuleValidationException(RULE_TYPE, cap_name, "must have at least one trigger")

        for index, trigger in enumerate(triggers):
            if not isinstance(trigger, dict) or "level" not in trigger:
                raise RuleValidationException(RULE_TYPE, cap_name, f"trigger {index} missing 'level'")
            if trigger["level"] not in _VALID_LEVELS:
                raise RuleValidationException(
                    RULE_TYPE, cap_name, f"invalid trigger level: {trigger['level']}"
                )
        return True

    def _find_cap_file(self, cap_name: str) -> Optional[Path]:
        for subdir in CAP_SUBDIRECTORIES:
            candidate = self.caps_path / subdir / f"{cap_name}.yaml"
            if candidate.is_file():
                return candidate
        candidate = self.caps_path / f"{cap_name}.yaml"
        return candidate if candidate.is_file() else None

    def clear_cache(self) -> None:
        self._loaded.clear()

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def evaluate(self, cap_name: str, profile_data: Dict[str, Any]) -> CapResult:
        cap = self.load(cap_name)

        for trigger in cap.get("triggers", []):
            conditions = trigger.get("conditions") or {}
            if conditions.get("default") is True:
                return self._format_result(trigger, cap_name)
            if self._conditions_hold(conditions, profile_data):
                return self._format_result(trigger, cap_name)

        return CapResult(
            level=CapLevel.NOT_TRIGGERED.value,
            cap_name=cap_name,
            description="No CAP triggered",
        )

    def evaluate_all(self, profile_data: Dict[str, Any]) -> Dict[str, CapResult]:
        """Evaluate every available CAP; only triggered results are returned."""
        results: Dict[str, CapResult] = {}
        for cap_name in self.available_caps():
            try:
                result = self.evaluate(cap_name, profile_data)
            except BundleEngineException as e:
                logger.warning("cap_evaluation_failed", cap=cap_name, error=str(e))
                continue
            if result.triggered:
                results[cap_name] = result

        logger.info(
            "caps_evaluated",
            triggered=sorted(results),
            levels={name: r.level for name, r in results.items()},
        )
        return results

    def _conditions_hold(self, conditions: Dict[str, Any], data: Dict[str, Any]) -> bool:
        all_conditions = conditions.get("all") or []
        any_conditions = conditions.get("any") or []
        min_count = conditions.get("min_count")

        if not (all_conditions or any_conditions or min_count):
            return False

        if all_conditions and not all(self._condition_holds(c, data) for c in all_conditions):
            return False

        if any_conditions and not any(self._condition_holds(c, data) for c in any_conditions):
            return False

        if min_count:
            if isinstance(min_count, dict):
                required = min_count.get("count", 1)
                candidates = min_count.get("from") or []
            else:
                required = min_count
                candidates = conditions.get("from") or []
            matched = sum(1 for c in candidates if self._condition_holds(c, data))
            if matched < required:
                return False

        return True

    @staticmethod
    def _condition_holds(condition: Dict[str, Any], data: Dict[str, Any]) -> bool:
        field_name = condition.get("field")
        if not field_name:
            return False

        operator = condition.get("operator", "==")
        expected = condition.get("value")
        actual = data.get(field_name)

        if operator == "==":
            return actual == expected
        if operator == "!=":
            return actual != expected
        if operator == "in":
            return actual in (expected or [])
        if operator == "not_in":
            return actual not in (expected or [])

        # Ordering operators never match a missing or non-numeric value
        try:
            actual_num = float(actual)
            expected_num = float(expected)
        except (TypeError, ValueError):
            return False

        if operator == ">=":
            return actual_num >= expected_num
        if operator == "<=":
            return actual_num <= expected_num
        if operator == ">":
            return actual_num > expected_num
        if operator == "<":
            return actual_num < expected_num
        return False

    @staticmethod
    def _format_result(trigger: Dict[str, Any], cap_name: str) -> CapResult:
        # {code: {...}} keeps per-service multipliers; list() would keep only the codes
        recommendations = trigger.get("service_recommendations") or []
        return CapResult(
            level=trigger["level"],
            cap_name=cap_name,
            description=trigger.get("description", ""),
            recommendations=dict(recommendations) if isinstance(recommendations, dict) else list(recommendations),
            guidelines=list(trigger.get("care_guidelines") or []),
        )

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def available_caps(self) -> List[str]:
        names: List[str] = []
        directories = [self.caps_path / d for d in CAP_SUBDIRECTORIES] + [self.caps_path]
        for directory in directories:
            if not directory.is_dir():
                continue
            for file_path in sorted(directory.glob("*.yaml")):
                if file_path.stem not in names:
                    names.append(file_path.stem)
        return names

    def get_cap_meta(self, cap_name: str) -> Dict[str, Any]:
        cap = self.load(cap_name)
        return {
            "name": cap.get("name", cap_name),
            "version": cap.get("version", "unknown"),
            "source": cap.get("source"),
            "applicable_instruments": cap.get("applicable_instruments", []),
            "category": cap.get("category", "unknown"),
            "trigger_levels": [t.get("level") for t in cap.get("triggers", [])],
        }
