"""
Dependencies - Connected Capacity Bundle Engine
connected_capacity/core/dependencies.py

FastAPI dependency injection for rule engines and services.
"""

from functools import lru_cache

from connected_capacity.engines.algorithm_evaluator import AlgorithmEvaluator
from connected_capacity.engines.cap_trigger import CAPTriggerEngine
from connected_capacity.engines.decision_tree import DecisionTreeEngine
from connected_capacity.engines.service_intensity import ServiceIntensityResolver
from connected_capacity.scheduling.auto_assign import AutoAssignEngine
from connected_capacity.scheduling.staff_scoring import StaffScoringService
from connected_capacity.services.bundle_service import BundleEngineService


@lru_cache()
def get_decision_tree_engine() -> DecisionTreeEngine:
    """Get cached DecisionTreeEngine instance."""
    return DecisionTreeEngine()


@lru_cache()
def get_cap_trigger_engine() -> CAPTriggerEngine:
    """Get cached CAPTriggerEngine instance."""
    return CAPTriggerEngine()


@lru_cache()
def get_service_intensity_resolver() -> ServiceIntensityResolver:
    """Get cached ServiceIntensityResolver instance."""
    return ServiceIntensityResolver()


@lru_cache()
def get_algorithm_evaluator() -> AlgorithmEvaluator:
    """Get cached AlgorithmEvaluator sharing the cached rule engines."""
    return AlgorithmEvaluator(get_decision_tree_engine(), get_cap_trigger_engine())


@lru_cache()
def get_bundle_service() -> BundleEngineService:
    """Get cached BundleEngineService instance."""
    return BundleEngineService(
        algorithm_evaluator=get_algorithm_evaluator(),
        intensity_resolver=get_service_intensity_resolver(),
    )


@lru_cache()
def get_staff_scoring_service() -> StaffScoringService:
    """Get cached StaffScoringService instance."""
    return StaffScoringService()


@lru_cache()
def get_auto_assign_engine() -> AutoAssignEngine:
    """Get cached AutoAssignEngine instance."""
    return AutoAssignEngine(get_staff_scoring_service())
