"""
rate_limit.py — Global rate limiter instance for the analytics routes.

Uses slowapi (a Starlette-compatible wrapper around the `limits` library).
Requests are keyed by client IP address; the per-route limit string comes
from settings.analytics_rate_limit.

Usage in routes:
    from fastapi import Request
    from civicpulse.core.rate_limit import analytics_limit, limiter

    @router.post("/hotspots")
    @limiter.limit(analytics_limit)
    async def hotspots(request: Request, payload: AnalyticsRequest):
        ...
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from civicpulse.core.config import settings

limiter = Limiter(key_func=get_remote_address)


def analytics_limit() -> str:
    """Limit string for the analytics routes, read lazily so tests can patch settings."""
    return settings.analytics_rate_limit
