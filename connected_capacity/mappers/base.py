"""
Assessment Mapper Base - Connected Capacity Bundle Engine
connected_capacity/mappers/base.py

Common contract for instrument-specific mappers. A mapper turns the raw
items of one assessment into PatientNeedsProfile field values (snake_case
keys). Missing items are treated as 0.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from connected_capacity.engines.utils import clamp, first_present, to_int
from connected_capacity.models.assessment import AssessmentInput


class AssessmentMapper(ABC):
    """Base class for HC / CA / BMHS mappers."""

    assessment_type: str = ""
    confidence_weight: float = 0.0
    supports_rug_classification: bool = False

    @abstractmethod
    def map_to_profile_fields(self, assessment: AssessmentInput) -> Dict[str, Any]:
        """Map an assessment to profile field values."""

    @abstractmethod
    def populatable_fields(self) -> List[str]:
        """Profile fields this mapper can set."""

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def item(raw_items: Dict[str, Any], *keys: str, default: int = 0) -> int:
        """First present item among the candidate keys, as int."""
        return to_int(first_present(raw_items, *keys), default)

    @staticmethod
    def normalize_scale(value: Any, min_val: int, max_val: int) -> int:
        """Clamp a scale value into [min_val, max_val]; None maps to min_val."""
        if value is None:
            return min_val
        return int(clamp(to_int(value, min_val), min_val, max_val))
