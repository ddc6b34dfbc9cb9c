# connected_capacity/engines/algorithm_evaluator.py
"""
Algorithm Evaluator
-------------------
Bridges raw assessment items to the CA decision-tree algorithms.

Raw HC item keys are mapped to CA item codes; items the HC instrument does
not capture are derived from other data or defaulted. Every algorithm is
evaluated independently: a failure is logged and replaced by its fallback
score so one bad tree never blocks profile building.
"""
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

import structlog

from connected_capacity.core.exceptions import BundleEngineException
from connected_capacity.engines.cap_trigger import CapResult, CAPTriggerEngine
from connected_capacity.engines.decision_tree import DecisionTreeEngine
from connected_capacity.engines.utils import to_int

logger = structlog.get_logger(__name__)

# CA item code -> HC raw item key (None: derived)
CA_TO_HC_MAP: Dict[str, Optional[str]] = {
    # Section C - preliminary screener
    "C1": "iB3a",
    "C2a": "adl_bathing",
    "C2b": "adl_transfer",
    "C2c": "adl_hygiene",
    "C2d": "adl_dressing_lower",
    "C2e": "adl_bed_mobility",
    "C3": "dyspnea",
    "C4": None,
    "C5a": "mood_sad_expressions",
    "C5b": "mood_unrealistic_fears",
    "C5c": "mood_crying",
    "C6a": None,
    # Section D - extended evaluation
    "D1": None,
    "D3a": "iadl_meal_prep",
    "D3b": "iadl_housework",
    "D3c": "iadl_medications",
    "D3d": None,
    "D4": None,
    "D7c": "edema",
    "D7d": "vomiting",
    "D8a": "pain_frequency",
    "D8b": "pain_intensity",
    "D10a": None,
    "D10b": "weight_loss",
    "D14b": "extensive_iv",
    "D14e": "clinical_wound",
    "D15": None,
    "D16": None,
    "D19b": "caregiver_stress",
    # Referral
    "B2c": None,
}


@dataclass
class AlgorithmSpec:
    score_key: str
    file_name: str
    fallback: Any
    as_bool: bool = False


ALGORITHMS: List[AlgorithmSpec] = [
    AlgorithmSpec("self_reliance_index", "self_reliance_index", False, as_bool=True),
    AlgorithmSpec("assessment_urgency", "assessment_urgency", 1),
    AlgorithmSpec("service_urgency", "service_urgency", 1),
    AlgorithmSpec("rehabilitation", "rehabilitation", 1),
    AlgorithmSpec("personal_support", "personal_support", 1),
    AlgorithmSpec("distressed_mood", "distressed_mood", 0),
    AlgorithmSpec("pain", "pain_scale", 0),
    AlgorithmSpec("chess_ca", "chess_ca", 0),
]


@dataclass
class AlgorithmScores:
    """Scores produced by the CA algorithm set."""
    self_reliance_index: bool = False
    assessment_urgency: int = 1
    service_urgency: int = 1
    rehabilitation: int = 1
    personal_support: int = 1
    distressed_mood: int = 0
    pain: int = 0
    chess_ca: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class AlgorithmEvaluator:
    """Runs every CA algorithm and CAP for one patient."""

    def __init__(
        self,
        decision_tree_engine: Optional[DecisionTreeEngine] = None,
        cap_trigger_engine: Optional[CAPTriggerEngine] = None,
    ):
        self.decision_tree_engine = decision_tree_engine or DecisionTreeEngine()
        self.cap_trigger_engine = cap_trigger_engine or CAPTriggerEngine()

    def evaluate_all_algorithms(
        self,
        raw_items: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> AlgorithmScores:
        ca_input = self.map_to_ca_input(raw_items, context or {})
        values: Dict[str, Any] = {}

        for spec in ALGORITHMS:
            try:
                result = self.decision_tree_engine.evaluate(spec.file_name, ca_input)
                values[spec.score_key] = bool(result) if spec.as_bool else to_int(result, spec.fallback)
            except BundleEngineException as e:
                logger.warning(
                    "algorithm_evaluation_failed",
                    algorithm=spec.file_name,
                    fallback=spec.fallback,
                    error=str(e),
                )
                values[spec.score_key] = spec.fallback

        scores = AlgorithmScores(**values)
        logger.debug("algorithms_evaluated", **scores.to_dict())
        return scores

    def evaluate_all_caps(self, cap_input: Dict[str, Any]) -> Dict[str, CapResult]:
        return self.cap_trigger_engine.evaluate_all(cap_input)

    def map_to_ca_input(self, raw_items: Dict[str, Any], context: Dict[str, Any]) -> Dict[str, Any]:
        ca_input: Dict[str, Any] = {}
        for ca_code, hc_key in CA_TO_HC_MAP.items():
            if hc_key is None:
                ca_input[ca_code] = self._derive_unavailable_item(ca_code, raw_items, context)
            else:
                value = raw_items.get(hc_key)
                ca_input[ca_code] = 0 if value is None else value
        return ca_input

    @staticmethod
    def _derive_unavailable_item(ca_code: str, raw_items: Dict[str, Any], context: Dict[str, Any]) -> int:
        chess = raw_items.get("chess")
        unstable = chess is not None and to_int(chess) >= 3

        if ca_code == "C4":
            # Self-reported health tracks CHESS inversely
            return 3 if unstable else 1
        if ca_code == "C6a":
            return 1 if unstable else 0
        if ca_code == "D15":
            return 1 if context.get("has_recent_hospital_stay") else 0
        if ca_code == "D16":
            return 1 if context.get("has_recent_er_visit") else 0
        if ca_code == "B2c":
            return 1 if context.get("is_palliative") else 0
        return 0

    @staticmethod
    def get_item_mapping() -> Dict[str, Optional[str]]:
        return dict(CA_TO_HC_MAP)

    def available_algorithms(self) -> Dict[str, Dict[str, Any]]:
        return self.decision_tree_engine.available_algorithms()

    def available_caps(self) -> List[str]:
        return self.cap_trigger_engine.available_caps()
