"""
Bundle Event Logger - Connected Capacity Bundle Engine
connected_capacity/services/event_logger.py

Structured, de-identified events for bundle engine analytics:

    scenarios_generated   one record per generated scenario
    scenario_selected     coordinator picked a scenario
    explanation_requested explanation shown for a scenario

Patients and users are referenced by short salted hashes (P-xxxx, U-xxxx),
never by id. Recent events are kept in a bounded in-memory buffer for stats.
Failures are logged and never propagate to the caller.
"""

import hashlib
from collections import Counter, deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional, Sequence
from uuid import uuid4

import structlog

from connected_capacity.models.profile import PatientNeedsProfile
from connected_capacity.models.scenario import ScenarioBundle

logger = structlog.get_logger(__name__)

DEFAULT_BUFFER_SIZE = 1000


class BundleEventLogger:

    def __init__(
        self,
        salt: Optional[str] = None,
        engine_version: Optional[str] = None,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ):
        if salt is None or engine_version is None:
            from connected_capacity.config import settings
            salt = salt if salt is not None else settings.EVENT_SALT.get_secret_value()
            engine_version = engine_version or settings.ENGINE_VERSION
        self._salt = salt
        self.engine_version = engine_version
        self._events: Deque[Dict[str, Any]] = deque(maxlen=buffer_size)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def log_scenario_generated(
        self,
        profile: PatientNeedsProfile,
        scenario: ScenarioBundle,
        generation_time_ms: int = 0,
    ) -> None:
        self._log_event("scenarios_generated", profile.patient_id, None, {
            "primary_axis": scenario.primary_axis.value,
            "secondary_axes": [a.value for a in scenario.secondary_axes],
            "scenario_title": scenario.title,
            "service_count": len(scenario.service_lines),
            "services": [
                {"code": line.service_code, "hours": round(line.weekly_hours, 2), "visits": line.frequency_count}
                for line in scenario.service_lines
            ],
            "weekly_hours": scenario.total_weekly_hours,
            "weekly_cost": scenario.weekly_estimated_cost,
            "cost_status": scenario.cost_status,
            "rug_group": profile.rug_group,
            "needs_cluster": profile.needs_cluster,
            "episode_type": profile.episode_type,
            "algorithm_scores": {
                "personal_support": profile.personal_support_score,
                "rehabilitation": profile.rehabilitation_score,
                "chess_ca": profile.chess_ca_score,
                "pain": profile.pain_score,
                "distressed_mood": profile.distressed_mood_score,
                "service_urgency": profile.service_urgency_score,
            },
            "triggered_caps": list(profile.triggered_caps),
            "confidence_level": profile.confidence_level,
            "data_completeness": profile.data_completeness_score,
            "generation_time_ms": generation_time_ms,
        }, scenario_id=scenario.scenario_id)

    def log_scenarios_generated(
        self,
        profile: PatientNeedsProfile,
        scenarios: Sequence[ScenarioBundle],
        total_generation_time_ms: int = 0,
    ) -> None:
        per_scenario = round(total_generation_time_ms / len(scenarios)) if scenarios else 0
        for scenario in scenarios:
            self.log_scenario_generated(profile, scenario, per_scenario)

    def log_scenario_selected(
        self,
        patient_id: str,
        scenario_id: str,
        scenarios_offered_count: int,
        scenario_rank: int,
        was_recommended: bool,
        selection_time_seconds: Optional[int] = None,
        modifications_made: bool = False,
        user_id: Optional[str] = None,
        explanation_requested: bool = False,
        explanation_source: Optional[str] = None,
    ) -> None:
        self._log_event("scenario_selected", patient_id, user_id, {
            "scenarios_offered_count": scenarios_offered_count,
            "scenario_rank": scenario_rank,
            "was_recommended": was_recommended,
            "selection_time_seconds": selection_time_seconds,
            "modifications_made": modifications_made,
            "explanation_requested": explanation_requested,
            "explanation_source": explanation_source,
        }, scenario_id=scenario_id)

    def log_explanation_requested(
        self,
        patient_id: str,
        scenario_id: str,
        explanation_source: str,
        response_time_ms: int,
        user_id: Optional[str] = None,
    ) -> None:
        self._log_event("explanation_requested", patient_id, user_id, {
            "explanation_source": explanation_source,
            "response_time_ms": response_time_ms,
        }, scenario_id=scenario_id)

    def _log_event(
        self,
        event_type: str,
        patient_id: str,
        user_id: Optional[str],
        payload: Dict[str, Any],
        scenario_id: Optional[str] = None,
    ) -> None:
        try:
            event = {
                "id": str(uuid4()),
                "event_type": event_type,
                "event_timestamp": datetime.now(timezone.utc).isoformat(),
                "patient_ref": self.patient_ref(patient_id),
                "user_ref": self.user_ref(user_id) if user_id else None,
                "scenario_id": scenario_id,
                "engine_version": self.engine_version,
                "payload": payload,
            }
            self._events.append(event)
            logger.info("bundle_engine_event", **{k: v for k, v in event.items() if k != "payload"})
        except Exception as e:
            logger.error("bundle_event_log_failed", event_type=event_type, error=str(e))

    # ------------------------------------------------------------------
    # De-identification
    # ------------------------------------------------------------------

    def _short_hash(self, prefix: str, identifier: str) -> str:
        return hashlib.sha256(f"{prefix}_{identifier}{self._salt}".encode("utf-8")).hexdigest()[:4]

    def patient_ref(self, patient_id: str) -> str:
        return f"P-{self._short_hash('patient', patient_id)}"

    def user_ref(self, user_id: str) -> str:
        return f"U-{self._short_hash('user', user_id)}"

    # ------------------------------------------------------------------
    # Buffer access
    # ------------------------------------------------------------------

    def recent_events(self, event_type: Optional[str] = None, limit: int = 100) -> List[Dict[str, Any]]:
        events = [e for e in self._events if event_type is None or e["event_type"] == event_type]
        return events[-limit:]

    def get_event_stats(self) -> Dict[str, Any]:
        return {
            "total_events": len(self._events),
            "by_type": dict(Counter(e["event_type"] for e in self._events)),
        }

    def clear(self) -> None:
        self._events.clear()
