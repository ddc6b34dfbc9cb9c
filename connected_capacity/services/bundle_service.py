"""
Bundle Engine Service - Connected Capacity Bundle Engine
connected_capacity/services/bundle_service.py

Orchestrates the bundle pipeline for one patient:

  1. Build the PatientNeedsProfile (mappers, derivers, algorithms, CAPs)
  2. Check the profile can support bundling
  3. Select scenario axes
  4. Generate, cost-annotate and validate scenarios
  5. Record de-identified analytics events
"""

import time
from typing import Any, Dict, List, Optional, Sequence

import structlog

from connected_capacity.core.exceptions import InsufficientAssessmentDataException
from connected_capacity.engines.algorithm_evaluator import AlgorithmEvaluator
from connected_capacity.engines.axis_selector import ScenarioAxisSelector
from connected_capacity.engines.category_intensity import CategoryIntensityResolver
from connected_capacity.engines.cost_annotation import CostAnnotationService
from connected_capacity.engines.explanation import RulesBasedExplanationProvider
from connected_capacity.engines.scenario_generator import ScenarioGenerator
from connected_capacity.engines.service_catalog import ServiceCatalog
from connected_capacity.engines.service_intensity import ServiceIntensityResolver
from connected_capacity.models.assessment import ProfileRequest
from connected_capacity.models.enumerations import ScenarioAxis
from connected_capacity.models.explanation import ExplanationResponse
from connected_capacity.models.profile import PatientNeedsProfile
from connected_capacity.models.scenario import GenerationOptions, ScenarioBundle
from connected_capacity.services.event_logger import BundleEventLogger
from connected_capacity.services.ingestion_service import AssessmentIngestionService

logger = structlog.get_logger(__name__)


class BundleEngineService:
    """
    Entry point used by the HTTP layer.

    Engines are injected for tests; defaults read their rule files from
    ``settings.RULES_DIR``.
    """

    def __init__(
        self,
        algorithm_evaluator: Optional[AlgorithmEvaluator] = None,
        intensity_resolver: Optional[ServiceIntensityResolver] = None,
        ingestion_service: Optional[AssessmentIngestionService] = None,
        generator: Optional[ScenarioGenerator] = None,
        explanation_provider: Optional[RulesBasedExplanationProvider] = None,
        event_logger: Optional[BundleEventLogger] = None,
        axis_selector: Optional[ScenarioAxisSelector] = None,
    ):
        self.algorithm_evaluator = algorithm_evaluator or AlgorithmEvaluator()
        self.ingestion_service = ingestion_service or AssessmentIngestionService(
            algorithm_evaluator=self.algorithm_evaluator,
            cap_engine=self.algorithm_evaluator.cap_trigger_engine,
        )
        self.axis_selector = axis_selector or ScenarioAxisSelector()
        self.cost_service = CostAnnotationService()
        self.generator = generator or ScenarioGenerator(
            axis_selector=self.axis_selector,
            cost_service=self.cost_service,
            service_catalog=ServiceCatalog(),
            intensity_resolver=intensity_resolver or ServiceIntensityResolver(),
            category_resolver=CategoryIntensityResolver(),
        )
        self.explanation_provider = explanation_provider or RulesBasedExplanationProvider()
        self.event_logger = event_logger or BundleEventLogger()

    # ------------------------------------------------------------------
    # Profile and axes
    # ------------------------------------------------------------------

    def build_profile(self, request: ProfileRequest) -> PatientNeedsProfile:
        return self.ingestion_service.build_patient_needs_profile(request)

    def suggest_axes(self, profile: PatientNeedsProfile, max_axes: Optional[int] = None) -> Dict[str, Any]:
        if max_axes is None:
            from connected_capacity.config import settings
            max_axes = settings.MAX_AXES

        selected = self.axis_selector.get_applicable_axes(profile, max_axes)
        evaluation = self.axis_selector.get_detailed_evaluation(profile)
        return {
            "patient_id": profile.patient_id,
            "axes": [
                {"value": axis.value, "label": axis.label, "emoji": axis.emoji, "description": axis.description}
                for axis in selected
            ],
            "evaluation": {name: result.to_dict() for name, result in evaluation.items()},
        }

    # ------------------------------------------------------------------
    # Scenarios
    # ------------------------------------------------------------------

    def generate_scenarios(
        self,
        request: ProfileRequest,
        axes: Optional[Sequence[ScenarioAxis]] = None,
        options: Optional[GenerationOptions] = None,
    ) -> Dict[str, Any]:
        """Full pipeline: profile, axes, scenarios, events."""
        started = time.perf_counter()
        options = options or GenerationOptions.from_settings()

        profile = self.build_profile(request)
        if not profile.is_sufficient_for_bundling():
            raise InsufficientAssessmentDataException(
                profile.patient_id,
                "An HC assessment, CA assessment or referral is required to generate scenarios",
            )

        scenarios = self.generator.generate_scenarios(profile, axes, options)
        elapsed_ms = int(round((time.perf_counter() - started) * 1000))

        self.event_logger.log_scenarios_generated(profile, scenarios, elapsed_ms)
        logger.info(
            "scenario_generation_complete",
            scenario_count=len(scenarios),
            confidence=profile.confidence_level,
            elapsed_ms=elapsed_ms,
        )

        return {
            "patient_id": profile.patient_id,
            "profile_summary": {
                "confidence_level": profile.confidence_level,
                "confidence_label": profile.confidence_label,
                "classification": profile.primary_classification,
                "classification_type": profile.classification_type,
                "episode_type": profile.episode_type,
                "data_completeness": profile.data_completeness_score,
                "triggered_caps": {name: cap.get("level") for name, cap in profile.triggered_caps.items()},
            },
            "scenarios": [scenario.to_api_dict() for scenario in scenarios],
            "scenario_count": len(scenarios),
            "generation_time_ms": elapsed_ms,
        }

    def compare_scenarios(self, first: ScenarioBundle, second: ScenarioBundle) -> Dict[str, Any]:
        return self.generator.compare_scenarios(first, second)

    def explain_scenario(
        self,
        profile: PatientNeedsProfile,
        scenario: ScenarioBundle,
        user_id: Optional[str] = None,
    ) -> ExplanationResponse:
        explanation = self.explanation_provider.generate_explanation(profile, scenario)
        self.event_logger.log_explanation_requested(
            profile.patient_id,
            scenario.scenario_id,
            explanation.source,
            explanation.response_time_ms,
            user_id=user_id,
        )
        return explanation

    def record_selection(
        self,
        patient_id: str,
        scenario_id: str,
        offered: List[ScenarioBundle],
        user_id: Optional[str] = None,
        explanation_source: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Log which offered scenario a coordinator picked."""
        rank = next((i + 1 for i, s in enumerate(offered) if s.scenario_id == scenario_id), 0)
        was_recommended = any(s.scenario_id == scenario_id and s.is_recommended for s in offered)

        self.event_logger.log_scenario_selected(
            patient_id,
            scenario_id,
            scenarios_offered_count=len(offered),
            scenario_rank=rank,
            was_recommended=was_recommended,
            user_id=user_id,
            explanation_requested=explanation_source is not None,
            explanation_source=explanation_source,
        )
        return {"scenario_id": scenario_id, "rank": rank, "was_recommended": was_recommended}
