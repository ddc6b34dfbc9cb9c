"""
routers/bundle_engine.py - Bundle Engine Endpoints

Endpoints:
  GET  /api/v1/bundle-engine/algorithms                  - List decision-tree algorithms
  POST /api/v1/bundle-engine/algorithms/{name}/evaluate  - Evaluate one algorithm
  GET  /api/v1/bundle-engine/caps                        - List CAP definitions
  POST /api/v1/bundle-engine/caps/{name}/evaluate        - Evaluate one CAP
  POST /api/v1/bundle-engine/profile                     - Build a patient needs profile
  POST /api/v1/bundle-engine/axes                        - Suggest scenario axes
  POST /api/v1/bundle-engine/scenarios                   - Generate scenarios
  POST /api/v1/bundle-engine/scenarios/compare           - Compare two scenarios
  POST /api/v1/bundle-engine/scenarios/explain           - Rules-based explanation
  POST /api/v1/bundle-engine/scenarios/select            - Record scenario selection
  GET  /api/v1/bundle-engine/service-intensity/meta      - Intensity matrix metadata
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from connected_capacity.config import settings
from connected_capacity.core.dependencies import (
    get_bundle_service,
    get_cap_trigger_engine,
    get_decision_tree_engine,
    get_service_intensity_resolver,
)
from connected_capacity.engines.cap_trigger import CAPTriggerEngine
from connected_capacity.engines.decision_tree import DecisionTreeEngine
from connected_capacity.engines.service_intensity import ServiceIntensityResolver
from connected_capacity.models.assessment import ProfileRequest
from connected_capacity.models.enumerations import ScenarioAxis
from connected_capacity.models.profile import PatientNeedsProfile
from connected_capacity.models.scenario import GenerationOptions, ScenarioBundle
from connected_capacity.services.bundle_service import BundleEngineService

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{settings.API_V1_PREFIX}/bundle-engine", tags=["Bundle Engine"])


# =====================================================================
# Request / Response Models
# =====================================================================

class EvaluationInput(BaseModel):
    input: Dict[str, Any] = Field(default_factory=dict, description="Item codes / profile fields")


class AlgorithmEvaluationResponse(BaseModel):
    algorithm: str
    value: Any
    path: List[Dict[str, Any]]
    computed: Dict[str, Any]


class AxesRequest(BaseModel):
    profile: ProfileRequest
    max_axes: Optional[int] = Field(default=None, ge=1, le=8)


class ScenarioRequest(BaseModel):
    profile: ProfileRequest
    axes: Optional[List[ScenarioAxis]] = Field(default=None, description="Explicit axes; selected when omitted")
    options: Optional[GenerationOptions] = None


class CompareRequest(BaseModel):
    first: ScenarioBundle
    second: ScenarioBundle


class ExplainRequest(BaseModel):
    profile: PatientNeedsProfile
    scenario: ScenarioBundle
    user_id: Optional[str] = None


class SelectionRequest(BaseModel):
    patient_id: str = Field(..., min_length=1)
    scenario_id: str = Field(..., min_length=1)
    offered: List[ScenarioBundle] = Field(..., min_length=1)
    user_id: Optional[str] = None
    explanation_source: Optional[str] = None


# =====================================================================
# Algorithms & CAPs
# =====================================================================

@router.get("/algorithms", summary="List decision-tree algorithms")
async def list_algorithms(engine: DecisionTreeEngine = Depends(get_decision_tree_engine)):
    algorithms = engine.available_algorithms()
    return {"count": len(algorithms), "algorithms": algorithms}


@router.post(
    "/algorithms/{name}/evaluate",
    response_model=AlgorithmEvaluationResponse,
    summary="Evaluate one decision-tree algorithm",
)
async def evaluate_algorithm(
    name: str,
    body: EvaluationInput,
    engine: DecisionTreeEngine = Depends(get_decision_tree_engine),
):
    result = engine.evaluate_detailed(name, body.input)
    return AlgorithmEvaluationResponse(
        algorithm=result.algorithm,
        value=result.value,
        path=[{"condition": condition, "outcome": outcome} for condition, outcome in result.path],
        computed=result.computed,
    )


@router.get("/caps", summary="List CAP definitions")
async def list_caps(engine: CAPTriggerEngine = Depends(get_cap_trigger_engine)):
    caps = {name: engine.get_cap_meta(name) for name in engine.available_caps()}
    return {"count": len(caps), "caps": caps}


@router.post("/caps/{name}/evaluate", summary="Evaluate one CAP")
async def evaluate_cap(
    name: str,
    body: EvaluationInput,
    engine: CAPTriggerEngine = Depends(get_cap_trigger_engine),
):
    result = engine.evaluate(name, body.input)
    return {**result.to_dict(), "triggered": result.triggered}


# =====================================================================
# Profile, axes & scenarios
# =====================================================================

@router.post("/profile", response_model=PatientNeedsProfile, summary="Build a patient needs profile")
async def build_profile(
    request: ProfileRequest,
    service: BundleEngineService = Depends(get_bundle_service),
):
    return service.build_profile(request)


@router.post("/axes", summary="Suggest scenario axes for a patient")
async def suggest_axes(
    request: AxesRequest,
    service: BundleEngineService = Depends(get_bundle_service),
):
    profile = service.build_profile(request.profile)
    return service.suggest_axes(profile, request.max_axes)


@router.post("/scenarios", summary="Generate care bundle scenarios")
async def generate_scenarios(
    request: ScenarioRequest,
    service: BundleEngineService = Depends(get_bundle_service),
):
    logger.info("Generating scenarios (axes=%s)", [a.value for a in request.axes] if request.axes else "auto")
    return service.generate_scenarios(request.profile, request.axes, request.options)


@router.post("/scenarios/compare", summary="Compare two scenarios")
async def compare_scenarios(
    request: CompareRequest,
    service: BundleEngineService = Depends(get_bundle_service),
):
    return service.compare_scenarios(request.first, request.second)


@router.post("/scenarios/explain", summary="Explain a scenario")
async def explain_scenario(
    request: ExplainRequest,
    service: BundleEngineService = Depends(get_bundle_service),
):
    explanation = service.explain_scenario(request.profile, request.scenario, request.user_id)
    return explanation.to_api_dict()


@router.post("/scenarios/select", summary="Record the scenario a coordinator selected")
async def select_scenario(
    request: SelectionRequest,
    service: BundleEngineService = Depends(get_bundle_service),
):
    return service.record_selection(
        request.patient_id,
        request.scenario_id,
        request.offered,
        user_id=request.user_id,
        explanation_source=request.explanation_source,
    )


# =====================================================================
# Service intensity
# =====================================================================

@router.get("/service-intensity/meta", summary="Service intensity matrix metadata")
async def service_intensity_meta(
    resolver: ServiceIntensityResolver = Depends(get_service_intensity_resolver),
):
    return resolver.get_matrix_meta()
