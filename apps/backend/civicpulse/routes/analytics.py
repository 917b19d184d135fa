"""
analytics.py — Predictive analytics routes for the officer and state dashboards.

Routes:
  POST /api/v1/analytics/hotspots                   — hotspot zones + alerts
  POST /api/v1/analytics/forecasts                  — category forecasts
  POST /api/v1/analytics/delay-risks                — delay risk + department load
  POST /api/v1/analytics/overview                   — headline counters
  GET  /api/v1/analytics/municipals/{municipal_id}  — full snapshot from MongoDB

HOW THE DATA FLOWS
──────────────────
The POST routes take the complaint list in the body (the dashboard already
holds it after its own fetch). The GET route loads the municipal's
complaints from MongoDB via services/complaint_source.py. Either way the
list is handed to the pure models in civicpulse.services together with a
single `now` read here, once per request. Pass `now` explicitly (body
field or query parameter) to get reproducible output.

The models are CPU-only and O(n log n) over a few thousand records, so
they run inline in the request.

TESTING
───────
  pytest apps/backend/tests/test_analytics_routes.py -v

  curl -X POST http://localhost:8000/api/v1/analytics/hotspots \
       -H "Content-Type: application/json" \
       -d '{"complaints": [...], "now": "2025-06-15T12:00:00Z"}'
  curl http://localhost:8000/api/v1/analytics/municipals/MUM-01
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from civicpulse.core.database import get_db
from civicpulse.core.rate_limit import analytics_limit, limiter
from civicpulse.models.analytics import (
    AnalyticsRequest,
    AnalyticsSnapshot,
    DashboardOverview,
    DelayRiskResponse,
    ForecastResponse,
    HotspotResponse,
)
from civicpulse.models.complaint import as_utc
from civicpulse.services.complaint_source import audit_records, load_complaints
from civicpulse.services.insights import (
    build_delays,
    build_forecasts,
    build_hotspots,
    build_snapshot,
)
from civicpulse.services.summary import dashboard_overview

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/analytics", tags=["analytics"])


def _reference_time(override: Optional[datetime]) -> datetime:
    """The request's `now`: caller-supplied, else the server clock (UTC)."""
    return as_utc(override) if override is not None else datetime.now(tz=timezone.utc)


# ── Body-driven routes ────────────────────────────────────────────────────────

@router.post("/hotspots", response_model=HotspotResponse)
@limiter.limit(analytics_limit)
async def hotspots(request: Request, payload: AnalyticsRequest):
    """Grid hotspots, highest risk first, plus actionable alerts."""
    audit_records(payload.complaints)
    return build_hotspots(payload.complaints, _reference_time(payload.now))


@router.post("/forecasts", response_model=ForecastResponse)
@limiter.limit(analytics_limit)
async def forecasts(request: Request, payload: AnalyticsRequest):
    """
    Next-month category projections, 7-day demand and seasonal surges.

    `insufficientData` is true (and every list empty) below the minimum
    history; the dashboard shows its "not enough data" state.
    """
    audit_records(payload.complaints)
    return build_forecasts(payload.complaints, _reference_time(payload.now), seed=payload.seed)


@router.post("/delay-risks", response_model=DelayRiskResponse)
@limiter.limit(analytics_limit)
async def delay_risks(request: Request, payload: AnalyticsRequest):
    """Delay risk for every pending complaint, with department load."""
    audit_records(payload.complaints)
    return build_delays(payload.complaints, _reference_time(payload.now))


@router.post("/overview", response_model=DashboardOverview)
@limiter.limit(analytics_limit)
async def overview(request: Request, payload: AnalyticsRequest):
    """Headline counters for the overview cards."""
    audit_records(payload.complaints)
    return dashboard_overview(payload.complaints, _reference_time(payload.now))


# ── Stored-complaint route ────────────────────────────────────────────────────

@router.get("/municipals/{municipal_id}", response_model=AnalyticsSnapshot)
async def municipal_snapshot(
    municipal_id: str,
    now: Optional[datetime] = Query(default=None, description="Reference time (defaults to server clock)"),
    seed: int = Query(default=0, ge=0, description="Seed for the daily demand jitter"),
    db=Depends(get_db),
):
    """
    Load a municipal's complaints from MongoDB and return every panel.

    503 when the database is unreachable — there is no seed fallback
    because an empty snapshot would read as "no complaints".
    """
    if db is None:
        raise HTTPException(status_code=503, detail="Database unavailable")

    try:
        complaints = await load_complaints(db, municipal_id)
    except Exception as exc:
        logger.warning("Loading complaints for %s failed: %s", municipal_id, exc)
        raise HTTPException(status_code=503, detail="Complaint store unavailable") from exc

    return build_snapshot(municipal_id, complaints, _reference_time(now), seed=seed)
