"""
Health check endpoint.

Returns liveness plus MongoDB connectivity so callers can tell "API down"
apart from "API up, complaint store unreachable". The POST analytics routes
keep working without the database; only the stored-complaint snapshot
needs it.
"""

import logging

from fastapi import APIRouter
from pydantic import BaseModel

from civicpulse.core import database as db_module
from civicpulse.core.config import settings

logger = logging.getLogger(__name__)
router = APIRouter()


class HealthResponse(BaseModel):
    status: str  # Always "ok" if the API process is alive
    version: str
    database: str  # "connected" | "disconnected"
    environment: str


@router.get("", response_model=HealthResponse, summary="API health check")
async def health_check() -> HealthResponse:
    """HTTP 200 even when the database is disconnected."""
    db_status = "disconnected"
    try:
        # Access via module reference so tests can patch db_module.db_client
        if db_module.db_client.client is not None:
            await db_module.db_client.client.admin.command("ping")
            db_status = "connected"
    except Exception as exc:
        logger.warning("DB ping failed: %s", exc)

    return HealthResponse(
        status="ok",
        version="0.1.0",
        database=db_status,
        environment=settings.environment,
    )
