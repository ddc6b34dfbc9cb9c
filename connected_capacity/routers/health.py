"""
Health Check Router - Connected Capacity Bundle Engine
connected_capacity/routers/health.py

Reports rule-table availability and Redis cache status.
"""
from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from connected_capacity.config import settings
from connected_capacity.core.dependencies import (
    get_cap_trigger_engine,
    get_decision_tree_engine,
    get_service_intensity_resolver,
)
from connected_capacity.core.exceptions import BundleEngineException
from connected_capacity.engines.cap_trigger import CAPTriggerEngine
from connected_capacity.engines.decision_tree import DecisionTreeEngine
from connected_capacity.engines.service_intensity import ServiceIntensityResolver
from connected_capacity.services.cache import get_cache

router = APIRouter(tags=["Health"])


#  Schemas


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    version: str
    rules: Dict[str, int]
    dependencies: Dict[str, str]


#  Dependency Health Checks


def check_redis() -> str:
    """Redis status; 'disabled' when profile caching is off."""
    if not settings.CACHE_ENABLED:
        return "disabled"
    cache = get_cache()
    return "healthy" if cache is not None else "unhealthy: redis unreachable"


def check_intensity_matrix(resolver: ServiceIntensityResolver) -> str:
    try:
        meta = resolver.get_matrix_meta()
    except BundleEngineException as e:
        return f"unhealthy: {e}"
    return f"healthy (version {meta['version']})"


#  Main Health Check Route


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={
        200: {"description": "Rule tables loaded"},
        503: {"description": "Rule tables missing or a dependency is unhealthy"},
    },
    summary="Health check",
)
async def health_check(
    trees: DecisionTreeEngine = Depends(get_decision_tree_engine),
    caps: CAPTriggerEngine = Depends(get_cap_trigger_engine),
    resolver: ServiceIntensityResolver = Depends(get_service_intensity_resolver),
):
    rules = {
        "algorithms": len(trees.available_algorithms()),
        "caps": len(caps.available_caps()),
    }
    dependencies = {
        "redis": check_redis(),
        "intensity_matrix": check_intensity_matrix(resolver),
    }

    healthy = rules["algorithms"] > 0 and not any(v.startswith("unhealthy") for v in dependencies.values())
    response = HealthResponse(
        status="healthy" if healthy else "degraded",
        timestamp=datetime.now(timezone.utc),
        version=settings.APP_VERSION,
        rules=rules,
        dependencies=dependencies,
    )

    if healthy:
        return response
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=response.model_dump(mode="json"),
    )
