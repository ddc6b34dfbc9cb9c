"""
routers/scheduling.py - Staff Assignment Endpoints

Endpoints:
  POST /api/v1/scheduling/score        - Score candidate staff for one service
  POST /api/v1/scheduling/suggestions  - Auto-assign suggestions for unscheduled care
"""

import logging

from fastapi import APIRouter, Depends

from connected_capacity.config import settings
from connected_capacity.core.dependencies import get_auto_assign_engine, get_staff_scoring_service
from connected_capacity.models.scheduling import StaffScoreRequest, SuggestionsRequest
from connected_capacity.scheduling.auto_assign import AutoAssignEngine
from connected_capacity.scheduling.staff_scoring import StaffScoringService

logger = logging.getLogger(__name__)

router = APIRouter(prefix=f"{settings.API_V1_PREFIX}/scheduling", tags=["Scheduling"])


@router.post("/score", summary="Score candidate staff for one service")
async def score_staff(
    request: StaffScoreRequest,
    scoring: StaffScoringService = Depends(get_staff_scoring_service),
):
    scores = scoring.score_multiple_staff(request.staff, request.patient, request.service)
    return {
        "service_code": request.service.service_code,
        "count": len(scores),
        "scores": [score.model_dump(mode="json") for score in scores],
    }


@router.post("/suggestions", summary="Auto-assign suggestions for unscheduled services")
async def assignment_suggestions(
    request: SuggestionsRequest,
    engine: AutoAssignEngine = Depends(get_auto_assign_engine),
):
    suggestions = engine.generate_suggestions(request.requirements, request.staff, request.week_start)
    matched = sum(1 for s in suggestions if s.has_suggestion)
    logger.info("Generated %d suggestions (%d matched)", len(suggestions), matched)
    return {
        "week_start": request.week_start.isoformat() if request.week_start else None,
        "total": len(suggestions),
        "matched": matched,
        "unmatched": len(suggestions) - matched,
        "suggestions": [s.to_api_dict() for s in suggestions],
    }
