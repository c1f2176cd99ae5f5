"""API routes package."""

from fastapi import APIRouter

from desco_report.api.routes import auth, desco, health

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router)
api_router.include_router(desco.router)
