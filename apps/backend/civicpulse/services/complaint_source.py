"""
complaint_source.py — Load complaint records for a municipal scope.

This is the only place the analytics stack touches the database. The
stored documents follow the dashboard's table layout (snake_case,
`category_id`, numeric columns that may arrive as strings) and are mapped
here into frozen ComplaintRecord objects before any model sees them.

Data-quality problems are handled by fallback, never by failing the
request:
  - unparseable / out-of-range coordinates → dropped (record kept)
  - unparseable votes / verification_count → 0 (record kept)
  - documents that fail validation         → skipped with a warning
  - resolved before submitted, pending with a resolved_date,
    resolved without resolved_date          → kept, warning logged

Mongo document shape:
  {
    "complaint_id": 1042,
    "municipal_id": "MUM-01",
    "category_id": "roads",
    "title": "...", "description": "...",
    "location": "MG Road, Junction 4",
    "latitude": "19.0760", "longitude": "72.8777",
    "votes": 127,
    "submitted_date": ISODate(...),
    "status": "pending",
    "resolved_date": null,
    "verification_count": 0
  }
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from civicpulse.core.config import settings
from civicpulse.models.complaint import ComplaintRecord, ComplaintStatus

logger = logging.getLogger(__name__)


def _parse_coordinate(value: Any, limit: float) -> Optional[float]:
    # numeric columns can come back as strings
    if value is None or value == "":
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or abs(number) > limit:
        return None
    return number


def _parse_count(value: Any) -> int:
    # "12", "12.5", 12.0 → 12; anything unparseable → 0
    if value is None or value == "":
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return int(number)


def document_to_record(doc: dict) -> Optional[ComplaintRecord]:
    """Map one stored document → ComplaintRecord, or None when unusable."""
    raw_id = doc.get("complaint_id", doc.get("id", doc.get("_id")))
    identifier = raw_id if isinstance(raw_id, (int, str)) else str(raw_id)
    try:
        return ComplaintRecord(
            id=identifier,
            category=doc.get("category_id", doc.get("category")),
            location=doc.get("location") or None,
            latitude=_parse_coordinate(doc.get("latitude"), 90),
            longitude=_parse_coordinate(doc.get("longitude"), 180),
            votes=_parse_count(doc.get("votes")),
            submitted_date=doc.get("submitted_date"),
            status=doc.get("status") or ComplaintStatus.PENDING,
            resolved_date=doc.get("resolved_date"),
            verification_count=_parse_count(doc.get("verification_count")),
            title=doc.get("title") or "",
            description=doc.get("description") or "",
            municipal_id=doc.get("municipal_id"),
        )
    except (ValidationError, TypeError, ValueError) as exc:
        logger.warning("Skipping malformed complaint %s: %s", identifier, exc)
        return None


def audit_records(records: Iterable[ComplaintRecord]) -> int:
    """
    Log data-quality warnings for records that break lifecycle invariants.

    The analytics models tolerate every one of these (negative durations
    clamp to 0, missing resolution dates drop out of averages); this only
    makes the defects visible. Returns the number of flagged records.
    """
    flagged = 0
    for record in records:
        problem = None
        if record.resolved_date is not None and record.resolved_date < record.submitted_date:
            problem = "resolved before it was submitted"
        elif record.status == ComplaintStatus.PENDING and record.resolved_date is not None:
            problem = "pending but carries a resolved_date"
        elif record.has_resolution and record.resolved_date is None:
            problem = f"{record.status.value} without a resolved_date"
        if problem:
            flagged += 1
            logger.warning("Data quality: complaint %s is %s", record.id, problem)
    return flagged


async def load_complaints(db, municipal_id: str) -> list[ComplaintRecord]:
    """Fetch every complaint of a municipal, newest first."""
    cursor = (
        db[settings.complaints_collection]
        .find({"municipal_id": municipal_id})
        .sort("submitted_date", -1)
    )
    records: list[ComplaintRecord] = []
    skipped = 0
    async for doc in cursor:
        record = document_to_record(doc)
        if record is None:
            skipped += 1
            continue
        records.append(record)

    logger.info(
        "Loaded %d complaints for municipal %s (%d skipped)",
        len(records), municipal_id, skipped,
    )
    audit_records(records)
    return records
