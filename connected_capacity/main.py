from datetime import datetime, timezone

import structlog
from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# IMPORT ROUTERS
from connected_capacity.routers.health import router as health_router
from connected_capacity.routers.bundle_engine import router as bundle_engine_router
from connected_capacity.routers.scheduling import router as scheduling_router
from connected_capacity.config import settings
from connected_capacity.core.exceptions import (
    ExpressionException,
    InsufficientAssessmentDataException,
    RuleNotFoundException,
    RuleValidationException,
    SchedulingException,
)
from connected_capacity.core.logging import configure_logging

load_dotenv()

logger = structlog.get_logger(__name__)


# SWAGGER UI - tag display order
_OPENAPI_TAGS = [
    {"name": "Root"},
    {"name": "Health"},
    {"name": "Bundle Engine"},
    {"name": "Scheduling"},
]

# FASTAPI APPLICATION CONFIGURATION
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    openapi_tags=_OPENAPI_TAGS,
)

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


# EXCEPTION HANDLERS
def _error(status_code: int, error_code: str, message: str, details=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error_code": error_code,
            "message": message,
            "details": details,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if any("json_invalid" in err.get("type", "") for err in errors):
        return _error(status.HTTP_400_BAD_REQUEST, "INVALID_REQUEST", "Malformed JSON request body")

    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", []) if part != "body"),
            "message": err.get("msg", ""),
            "type": err.get("type", ""),
        }
        for err in errors
    ]
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": "Request validation failed", "errors": details},
    )


async def rule_not_found_handler(request: Request, exc: RuleNotFoundException):
    return _error(
        status.HTTP_404_NOT_FOUND,
        "RULE_NOT_FOUND",
        str(exc),
        {"rule_type": exc.rule_type, "name": exc.name},
    )


async def rule_invalid_handler(request: Request, exc: Exception):
    logger.warning("rule_evaluation_rejected", error=str(exc), path=request.url.path)
    return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, "INVALID_RULE", str(exc))


async def insufficient_data_handler(request: Request, exc: InsufficientAssessmentDataException):
    return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, "INSUFFICIENT_ASSESSMENT_DATA", exc.message)


async def scheduling_exception_handler(request: Request, exc: SchedulingException):
    return _error(status.HTTP_400_BAD_REQUEST, "SCHEDULING_ERROR", exc.message)


# REGISTER EXCEPTION HANDLERS
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(RuleNotFoundException, rule_not_found_handler)
app.add_exception_handler(RuleValidationException, rule_invalid_handler)
app.add_exception_handler(ExpressionException, rule_invalid_handler)
app.add_exception_handler(InsufficientAssessmentDataException, insufficient_data_handler)
app.add_exception_handler(SchedulingException, scheduling_exception_handler)

# REGISTER ROUTERS (order matches _OPENAPI_TAGS)
app.include_router(health_router)           # Health
app.include_router(bundle_engine_router)    # Bundle Engine
app.include_router(scheduling_router)       # Scheduling


# ROOT ENDPOINT
@app.get("/", tags=["Root"], summary="Root endpoint")
async def root():
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": {
            "swagger": "/docs",
            "redoc": "/redoc"
        },
        "status": "running"
    }


# STARTUP EVENT
@app.on_event("startup")
async def startup_event():
    configure_logging()
    logger.info("service_starting", app=settings.APP_NAME, env=settings.APP_ENV, rules_dir=str(settings.RULES_DIR))


# SHUTDOWN EVENT
@app.on_event("shutdown")
async def shutdown_event():
    logger.info("service_stopping", app=settings.APP_NAME)


# RUN WITH UVICORN
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "connected_capacity.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
