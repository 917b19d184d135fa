"""
normalizer.py — Per-complaint features shared by every analytics model.

Every function here is a pure function of (record, now[, config]). `now`
is always passed in by the caller; nothing in this module reads the clock.

Two notions of "open" exist in the complaint lifecycle and callers must
pick the right one explicitly:

  is_open     status in {pending, verified}  → dashboard "active" counts
  is_pending  status == pending              → delay-risk candidates, overdue flag

Verified complaints already have a resolution attached, so they are never
scored for delay even though they still count as active.

USAGE
─────
    from civicpulse.services.normalizer import normalize

    n = normalize(record, now)
    n.age_days      → 12
    n.zone_id       → "1897:7283"  (None when no usable coordinates)
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from civicpulse.models.complaint import (
    Category,
    ComplaintRecord,
    ComplaintStatus,
    Coordinates,
    as_utc,
)
from civicpulse.services.analytics_config import DEFAULT_CONFIG, AnalyticsConfig

_SECONDS_PER_DAY = 86_400

# Strict "lat,lng" decimal-degree literal, e.g. "19.0760, 72.8777"
_LATLNG_RE = re.compile(r"^\s*(-?\d{1,2}(?:\.\d+)?)\s*,\s*(-?\d{1,3}(?:\.\d+)?)\s*$")

_TEAMS = {
    Category.ROADS: "PWD",
    Category.WASTE: "Sanitation Dept",
    Category.WATER: "Water Dept",
    Category.STREETLIGHTS: "Electricity Dept",
    Category.SEWAGE: "Water & Sewage",
    Category.OTHER: "Municipal Office",
}


@dataclass(frozen=True)
class NormalizedComplaint:
    record: ComplaintRecord
    age_days: int
    days_since_submitted: int
    is_open: bool
    is_pending: bool
    is_overdue: bool
    coordinates: Optional[Coordinates]
    zone_id: Optional[str]
    assigned_team: str


def whole_days(start: datetime, end: datetime) -> int:
    """Whole days from start to end, floored and clamped at 0."""
    seconds = (as_utc(end) - as_utc(start)).total_seconds()
    return max(0, math.floor(seconds / _SECONDS_PER_DAY))


def age_days(record: ComplaintRecord, now: datetime) -> int:
    """
    Whole days the complaint has been (or was) open.

    Freezes at resolved_date once the complaint is resolved. A stray
    resolved_date on a pending record is ignored. Negative durations
    (resolved before submitted, or submitted in the future) are clamped
    to 0.
    """
    end = now
    if record.has_resolution and record.resolved_date is not None:
        end = record.resolved_date
    return whole_days(record.submitted_date, end)


def days_since_submitted(record: ComplaintRecord, now: datetime) -> int:
    """Whole days since submission, regardless of resolution."""
    return whole_days(record.submitted_date, now)


def resolution_days(record: ComplaintRecord) -> Optional[float]:
    """
    Fractional days from submission to resolution.

    None when the record is not resolved/verified or has no resolved_date
    (an upstream data defect — such records are left out of averages).
    """
    if not record.has_resolution or record.resolved_date is None:
        return None
    seconds = (record.resolved_date - record.submitted_date).total_seconds()
    return max(0.0, seconds / _SECONDS_PER_DAY)


def is_open(record: ComplaintRecord) -> bool:
    return record.status in (ComplaintStatus.PENDING, ComplaintStatus.VERIFIED)


def is_pending(record: ComplaintRecord) -> bool:
    return record.status == ComplaintStatus.PENDING


def is_overdue(record: ComplaintRecord, now: datetime, threshold_days: int) -> bool:
    return is_pending(record) and age_days(record, now) > threshold_days


def parse_latlng(text: Optional[str]) -> Optional[Coordinates]:
    """Parse a strict "lat,lng" literal. Anything else → None."""
    if not text:
        return None
    match = _LATLNG_RE.match(text)
    if match is None:
        return None
    lat, lng = float(match.group(1)), float(match.group(2))
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None
    return Coordinates(lat=lat, lng=lng)


def resolve_coordinates(record: ComplaintRecord) -> Optional[Coordinates]:
    """
    Coordinate fallback chain:
      1. "lat,lng" literal in `location`
      2. explicit latitude/longitude, both present and in range
      3. None — the complaint is left out of spatial clustering
    """
    parsed = parse_latlng(record.location)
    if parsed is not None:
        return parsed

    lat, lng = record.latitude, record.longitude
    if lat is None or lng is None:
        return None
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return None
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None
    return Coordinates(lat=lat, lng=lng)


def zone_id(coords: Coordinates, cell_degrees: float) -> str:
    """
    Grid cell key for a coordinate.

    The quotient is rounded to 9 places before flooring so values sitting
    on a cell edge (0.29 / 0.01 = 28.999…) land in the same cell on every
    call.
    """
    lat_idx = math.floor(round(coords.lat / cell_degrees, 9))
    lng_idx = math.floor(round(coords.lng / cell_degrees, 9))
    return f"{lat_idx}:{lng_idx}"


def assigned_team(category: Category) -> str:
    return _TEAMS.get(category, _TEAMS[Category.OTHER])


def normalize(
    record: ComplaintRecord,
    now: datetime,
    config: AnalyticsConfig = DEFAULT_CONFIG,
) -> NormalizedComplaint:
    """Derive every per-complaint feature used downstream."""
    coords = resolve_coordinates(record)
    age = age_days(record, now)
    open_ = is_open(record)
    return NormalizedComplaint(
        record=record,
        age_days=age,
        days_since_submitted=days_since_submitted(record, now),
        is_open=open_,
        is_pending=is_pending(record),
        is_overdue=is_overdue(record, now, config.baseline_days(record.category)),
        coordinates=coords,
        zone_id=zone_id(coords, config.grid_cell_degrees) if coords is not None else None,
        assigned_team=assigned_team(record.category),
    )


def percent_change(current: float, previous: float) -> float:
    """Percentage change rounded to 1 decimal; 0.0 when previous is 0."""
    if previous == 0:
        return 0.0
    return round((current - previous) / previous * 100, 1)
