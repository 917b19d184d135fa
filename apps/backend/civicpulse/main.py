"""
CivicPulse Analytics API — Application entry point.

Bootstraps FastAPI, wires up middleware, registers route groups, and
manages the MongoDB connection lifecycle.

    uvicorn civicpulse.main:app --reload --app-dir apps/backend
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from civicpulse.core.config import settings
from civicpulse.core.database import close_mongo_connection, connect_to_mongo
from civicpulse.core.rate_limit import limiter
from civicpulse.routes.analytics import router as analytics_router
from civicpulse.routes.health import router as health_router

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open MongoDB on startup, close it on shutdown."""
    logger.info("Starting CivicPulse Analytics API (env: %s)", settings.environment)
    await connect_to_mongo()
    yield
    logger.info("Shutting down CivicPulse Analytics API")
    await close_mongo_connection()


# ─── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="CivicPulse Analytics API",
    description=(
        "Hotspot prediction, category forecasts, delay-risk scoring and "
        "department load for municipal complaint dashboards. "
        "All predictions are heuristic estimates."
    ),
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
)


# ─── Rate limiting ─────────────────────────────────────────────────────────────
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# ─── Middleware ─────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Routes ────────────────────────────────────────────────────────────────────
app.include_router(health_router, prefix="/health", tags=["health"])
app.include_router(analytics_router)


@app.get("/", tags=["root"])
async def root():
    """API root — basic metadata."""
    return {
        "name": "CivicPulse Analytics API",
        "version": "0.1.0",
        "status": "running",
        "environment": settings.environment,
        "docs": "/docs",
    }
