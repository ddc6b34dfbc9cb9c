"""
Explanation models - Connected Capacity Bundle Engine
connected_capacity/models/explanation.py
"""

from datetime import datetime, timezone
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class ExplanationResponse(BaseModel):
    """Plain-language explanation of why a scenario fits a patient."""

    short_explanation: str = Field(..., description="Two or three sentence summary")
    detailed_points: List[str] = Field(default_factory=list, description="Up to five supporting points")
    confidence_label: str
    source: str = Field(default="rules_based", description="Provider that produced the explanation")
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    response_time_ms: int = Field(default=0, ge=0)

    def to_api_dict(self) -> Dict[str, Any]:
        return {
            "short_explanation": self.short_explanation,
            "detailed_points": self.detailed_points,
            "confidence_label": self.confidence_label,
            "source": self.source,
            "generated_at": self.generated_at.isoformat(),
            "response_time_ms": self.response_time_ms,
        }
