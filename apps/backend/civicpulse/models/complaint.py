"""
complaint.py — Pydantic models for citizen complaint records.

ComplaintRecord is the single input type of the analytics layer. It is
frozen: every model in civicpulse.services treats the list it receives as
read-only, so several models can run over the same list in any order.

Field names are snake_case in Python; the dashboard sends camelCase
(submittedDate, resolvedDate, verificationCount), which is accepted via
aliases.

Loose category strings coming from the dashboard or older documents
("garbage", "Potholes", "others") are coerced into the Category enum;
anything unrecognised becomes Category.OTHER.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Category(str, Enum):
    """Department tag of a complaint."""

    ROADS = "roads"
    WASTE = "waste"
    WATER = "water"
    STREETLIGHTS = "streetlights"
    SEWAGE = "sewage"
    OTHER = "other"


class ComplaintStatus(str, Enum):
    """Forward-only lifecycle: pending → resolved → verified."""

    PENDING = "pending"
    RESOLVED = "resolved"
    VERIFIED = "verified"


_CATEGORY_ALIASES = {
    "garbage": Category.WASTE,
    "potholes": Category.ROADS,
    "pothole": Category.ROADS,
    "road": Category.ROADS,
    "drainage": Category.SEWAGE,
    "electricity": Category.STREETLIGHTS,
    "streetlight": Category.STREETLIGHTS,
    "others": Category.OTHER,
}


def coerce_category(value: object) -> Category:
    """Map a loosely-typed category string onto the Category enum."""
    if isinstance(value, Category):
        return value
    key = str(value or "").strip().lower()
    try:
        return Category(key)
    except ValueError:
        return _CATEGORY_ALIASES.get(key, Category.OTHER)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Coordinates(BaseModel):
    """A validated decimal-degree point."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)


class ComplaintRecord(BaseModel):
    """A single citizen complaint as seen by the analytics layer."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: Union[int, str]
    category: Category = Category.OTHER
    location: Optional[str] = None   # free text, or a "lat,lng" literal
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    votes: int = Field(default=0, ge=0)
    submitted_date: datetime = Field(alias="submittedDate")
    status: ComplaintStatus = ComplaintStatus.PENDING
    resolved_date: Optional[datetime] = Field(default=None, alias="resolvedDate")
    verification_count: int = Field(default=0, ge=0, alias="verificationCount")

    # ── Context carried through from the dashboard (not used for scoring) ────
    title: str = ""
    description: str = ""
    municipal_id: Optional[str] = Field(default=None, alias="municipalId")

    @field_validator("category", mode="before")
    @classmethod
    def _coerce_category(cls, value):
        return coerce_category(value)

    @field_validator("status", mode="before")
    @classmethod
    def _lower_status(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("submitted_date", "resolved_date")
    @classmethod
    def _to_utc(cls, value):
        return as_utc(value) if value is not None else None

    @property
    def has_resolution(self) -> bool:
        """True once the complaint left `pending` (resolved or verified)."""
        return self.status in (ComplaintStatus.RESOLVED, ComplaintStatus.VERIFIED)
