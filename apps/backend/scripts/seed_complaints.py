#!/usr/bin/env python3
"""
seed_complaints.py — Populate MongoDB with a realistic demo complaint history.

Usage (from the repository root):
    python apps/backend/scripts/seed_complaints.py              # replace existing demo data
    python apps/backend/scripts/seed_complaints.py --append     # add without clearing first
    python apps/backend/scripts/seed_complaints.py --seed 7     # different but reproducible history

Prerequisites:
    • MONGO_URI env var set (or .env file present)

What this script creates
────────────────────────
  complaints  ← ~120 complaints per municipal over the last 120 days,
                spread over a handful of wards with lat/lng, a mix of
                pending / resolved / verified statuses, and a few
                deliberately defective rows (bad coordinates, resolved
                without resolved_date) so the data-quality paths show up
                in the logs.
  indexes     ← (municipal_id, submitted_date desc)
"""

import argparse
import asyncio
import os
import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import certifi
from dotenv import load_dotenv
from motor.motor_asyncio import AsyncIOMotorClient

ROOT = Path(__file__).parent.parent
load_dotenv(ROOT / ".env")

MONGO_URI = os.environ.get("MONGO_URI", "")
MONGO_DB_NAME = os.environ.get("MONGO_DB_NAME", "civicpulse")
COLLECTION = os.environ.get("COMPLAINTS_COLLECTION", "complaints")

if not MONGO_URI:
    print("ERROR: MONGO_URI not set. Add it to apps/backend/.env")
    sys.exit(1)

MUNICIPALS = ("MUM-01", "PUN-01")

# Columns: ward label, lat, lng, dominant category, relative volume
_WARDS = [
    ("MG Road, Junction 4",         19.0760, 72.8777, "roads",        1.6),
    ("Park Street, Block A",        19.0822, 72.8812, "waste",        1.3),
    ("Station Road",                19.0614, 72.8996, "roads",        1.0),
    ("Lake View Road",              19.1136, 72.8697, "streetlights", 0.7),
    ("Green Avenue, Sector 12",     19.0330, 72.8654, "waste",        0.9),
    ("Hill Colony, Water Tank Lane", 19.0965, 72.8421, "water",       0.8),
    ("Canal Side, Ward 9",          19.0471, 72.8917, "sewage",       0.6),
]

_CATEGORIES = ("roads", "waste", "water", "streetlights", "sewage", "others")

_TITLES = {
    "roads":        ["Large pothole near signal", "Road surface broken", "Speed breaker damaged"],
    "waste":        ["Overflowing garbage bins", "Illegal dumping site", "Garbage not collected"],
    "water":        ["No water supply since morning", "Pipeline leakage", "Dirty water supply"],
    "streetlights": ["Street lights not working", "Flickering lamp post", "Exposed wiring on pole"],
    "sewage":       ["Sewage overflow on street", "Blocked drain", "Open manhole"],
    "others":       ["Stray cattle on road", "Illegal hoarding", "Noise from construction"],
}

_RESOLUTION_DAYS = {
    "roads": (2, 12), "waste": (1, 5), "water": (1, 6),
    "streetlights": (1, 8), "sewage": (2, 9), "others": (1, 10),
}


def _make_complaint(rng: random.Random, complaint_id: int, municipal_id: str, now: datetime) -> dict:
    """Build one complaint document in the stored (snake_case) layout."""
    ward, lat, lng, dominant, _ = rng.choices(_WARDS, weights=[w[4] for w in _WARDS])[0]
    category = dominant if rng.random() < 0.6 else rng.choice(_CATEGORIES)

    # Skew submissions toward the recent past so trends are visible
    days_ago = min(119.0, rng.expovariate(1 / 35))
    submitted = now - timedelta(days=days_ago, hours=rng.uniform(0, 23))

    status, resolved = "pending", None
    if days_ago > 2 and rng.random() < 0.65:
        lo, hi = _RESOLUTION_DAYS[category]
        resolved = submitted + timedelta(days=rng.uniform(lo, hi))
        if resolved < now:
            status = "verified" if rng.random() < 0.4 else "resolved"
        else:
            resolved = None

    doc = {
        "complaint_id":       complaint_id,
        "municipal_id":       municipal_id,
        "category_id":        category,
        "title":              rng.choice(_TITLES[category]),
        "description":        f"Reported near {ward}.",
        "location":           ward,
        # Numeric columns stored as strings, as the upstream table does
        "latitude":           f"{lat + rng.uniform(-0.004, 0.004):.6f}",
        "longitude":          f"{lng + rng.uniform(-0.004, 0.004):.6f}",
        "votes":              int(rng.paretovariate(1.2)) - 1,
        "submitted_date":     submitted,
        "status":             status,
        "resolved_date":      resolved,
        "verification_count": rng.randint(3, 6) if status == "verified" else rng.randint(0, 2),
    }

    # A few defective rows to exercise the data-quality fallbacks
    roll = rng.random()
    if roll < 0.03:
        doc["latitude"], doc["longitude"] = "not-a-number", None
    elif roll < 0.05 and status != "pending":
        doc["resolved_date"] = None
    return doc


async def create_indexes(db) -> None:
    """Idempotent index creation — safe to run multiple times."""
    print("  Creating indexes…")
    await db[COLLECTION].create_index(
        [("municipal_id", 1), ("submitted_date", -1)],
        name="municipal_asc_submitted_desc",
        background=True,
    )
    print("  Indexes OK")


async def seed(append: bool = False, seed_value: int = 42, per_municipal: int = 120) -> None:
    client = AsyncIOMotorClient(MONGO_URI, tlsCAFile=certifi.where())
    db = client[MONGO_DB_NAME]

    try:
        await client.admin.command("ping")
        print(f"Connected to MongoDB ({MONGO_DB_NAME})")
    except Exception as exc:
        print(f"ERROR: Cannot connect to MongoDB: {exc}")
        return

    if not append:
        print(f"\nClearing existing {COLLECTION}…")
        result = await db[COLLECTION].delete_many({"municipal_id": {"$in": list(MUNICIPALS)}})
        print(f"  Deleted {result.deleted_count} existing documents")

    rng = random.Random(seed_value)
    now = datetime.now(tz=timezone.utc)
    next_id = 1 + await db[COLLECTION].count_documents({}) if append else 1

    print("\nInserting complaints…")
    for municipal_id in MUNICIPALS:
        docs = [
            _make_complaint(rng, next_id + i, municipal_id, now)
            for i in range(per_municipal)
        ]
        next_id += per_municipal
        result = await db[COLLECTION].insert_many(docs)
        print(f"  {municipal_id}: inserted {len(result.inserted_ids)} complaints")

    print("\nEnsuring indexes…")
    await create_indexes(db)

    total = await db[COLLECTION].count_documents({})
    statuses = await db[COLLECTION].distinct("status")
    print("\n✓ Done")
    print(f"  {COLLECTION} total : {total}")
    print(f"  Statuses         : {sorted(statuses)}")

    client.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed CivicPulse demo complaints into MongoDB")
    parser.add_argument("--append", action="store_true", help="Add complaints without clearing first")
    parser.add_argument("--seed", type=int, default=42, help="Random seed for a reproducible history")
    parser.add_argument("--per-municipal", type=int, default=120, help="Complaints per municipal")
    args = parser.parse_args()

    print(f"CivicPulse Complaint Seeder  (db: {MONGO_DB_NAME})")
    print(f"Mode: {'append' if args.append else 'replace'}\n")

    asyncio.run(seed(append=args.append, seed_value=args.seed, per_municipal=args.per_municipal))
