"""Health check endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.v1.dependencies import get_profile_repository, get_profile_session_registry
from core.config import settings
from core.exceptions import AppException
from domain.services.profile_session_registry import ProfileSessionRegistry
from infrastructure.database.profile_repository import RoutedProfileRepository
from infrastructure.database.session import get_async_session

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str
    environment: str
    database: str | None = None
    multi_profile: bool | None = None
    open_sessions: int | None = None


@router.get("/health", response_model=HealthResponse, summary="Basic health check")
async def health_check(
    repository: RoutedProfileRepository = Depends(get_profile_repository),
) -> HealthResponse:
    """
    Basic health check for load balancers.

    Returns service status without checking dependencies. Fast and lightweight.
    ``multi_profile`` is the last probe result and stays null until one ran.
    """
    return HealthResponse(
        status="healthy",
        version="1.0.0",
        timestamp=datetime.utcnow().isoformat(),
        environment=settings.app_env,
        multi_profile=repository.multi_profile_supported,
    )


@router.get(
    "/health/detailed",
    response_model=HealthResponse,
    summary="Detailed health check",
)
async def detailed_health_check(
    db: AsyncSession = Depends(get_async_session),
    repository: RoutedProfileRepository = Depends(get_profile_repository),
    registry: ProfileSessionRegistry = Depends(get_profile_session_registry),
) -> HealthResponse:
    """
    Detailed health check including database connectivity and whether the
    multi-profile table is provisioned.
    """
    db_status = "unknown"
    multi_profile: bool | None = None

    try:
        await db.execute(text("SELECT 1"))
        db_status = "healthy"
    except SQLAlchemyError as e:
        db_status = f"unhealthy: {str(e)}"

    if db_status == "healthy":
        try:
            multi_profile = await repository.probe_multi_profile_support()
        except AppException as e:
            db_status = f"degraded: {e.message}"

    overall_status = "healthy" if db_status == "healthy" else "degraded"

    return HealthResponse(
        status=overall_status,
        version="1.0.0",
        timestamp=datetime.utcnow().isoformat(),
        environment=settings.app_env,
        database=db_status,
        multi_profile=multi_profile,
        open_sessions=len(registry),
    )
