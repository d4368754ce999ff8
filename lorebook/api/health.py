"""
Health check endpoints.

Provides liveness and readiness probes with database and catalog checks.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lorebook.db.database import get_session
from lorebook.services.card_database import get_catalog

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str | None = None
    catalog: str | None = None


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """
    Liveness probe.

    Returns healthy if the service is running.
    Does not check dependencies.
    """
    return HealthResponse(status="healthy")


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def ready(
    response: Response,
    session: Annotated[AsyncSession, Depends(get_session)],
) -> HealthResponse:
    """
    Readiness probe.

    Checks database connectivity and that the card catalog loads.
    Returns 503 if either is unavailable.
    """
    try:
        await session.execute(text("SELECT 1"))
        database = "connected"
    except SQLAlchemyError:
        database = "disconnected"

    try:
        catalog = f"{len(get_catalog())} prints"
    except FileNotFoundError:
        catalog = "missing"

    if database != "connected" or catalog == "missing":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(status="not ready", database=database, catalog=catalog)

    return HealthResponse(status="ready", database=database, catalog=catalog)
