"""Health and readiness routes."""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from desco_report.core.config import settings
from desco_report.core.readiness import DependencyChecker, ReadinessState

router = APIRouter()


def _checker(request: Request) -> DependencyChecker | None:
    return getattr(request.app.state, "dependency_checker", None)


def _readiness(request: Request) -> dict:
    checker = _checker(request)
    state = checker.state if checker else ReadinessState.NOT_CHECKED
    body: dict = {"readiness": state.value}
    if checker and checker.last_report:
        body["checks"] = {
            r.name: {"healthy": r.healthy, "elapsedMs": round(r.elapsed_ms, 1), "error": r.error}
            for r in checker.last_report.results
        }
    return body


@router.get("/health")
def health_check(request: Request) -> dict:
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "desco-report",
        "version": settings.VERSION,
        **_readiness(request),
    }


@router.get("/health/ready")
def readiness_check(request: Request) -> JSONResponse:
    """200 once dependencies were found healthy, 503 otherwise."""
    body = _readiness(request)
    ready = body["readiness"] == ReadinessState.HEALTHY.value
    return JSONResponse(status_code=200 if ready else 503, content=body)
