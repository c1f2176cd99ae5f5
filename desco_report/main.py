"""FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from desco_report.api.routes import api_router
from desco_report.core.config import settings
from desco_report.core.database import Base, SessionLocal, engine
from desco_report.core.logging import configure_logging
from desco_report.core.readiness import DependencyChecker, ReadinessState, database_check
from desco_report.services.seed import seed_database

# Import models for Base.metadata.create_all
from desco_report import models  # noqa: F401

logger = logging.getLogger(__name__)


def build_dependency_checker() -> DependencyChecker:
    """Checker over every external dependency the server needs at start-up."""
    return DependencyChecker(
        [("database", database_check(engine))],
        max_retries=settings.DEPENDENCY_CHECK_MAX_RETRIES,
        retry_delay=settings.DEPENDENCY_CHECK_RETRY_DELAY_SECONDS,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager."""
    configure_logging()

    checker = build_dependency_checker()
    app.state.dependency_checker = checker
    if settings.DEPENDENCY_CHECK_ENABLED:
        await run_in_threadpool(checker.run)
    else:
        checker.skip()

    if checker.state is ReadinessState.DEGRADED:
        logger.error("Database unavailable, skipping table creation and seeding")
    else:
        # Startup: Create database tables and seed roles/admin
        Base.metadata.create_all(bind=engine)
        with SessionLocal() as db:
            seed_database(db)
    logger.info("%s %s started", settings.PROJECT_NAME, settings.VERSION)
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    description="DESCO prepaid account reporting API",
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error handlers: every error body is {"message": ...}
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    logger.warning("Validation error on %s %s: %s", request.method, request.url.path, errors)
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"message": message})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"message": "An unexpected error occurred"},
    )


# Include API routers
app.include_router(api_router, prefix="/api")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "desco_report.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
