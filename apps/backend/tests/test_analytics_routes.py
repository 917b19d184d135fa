"""
test_analytics_routes.py — Tests for the /api/v1/analytics routes.

POST routes take the complaint list in the body (camelCase, as the
dashboard sends it). The GET municipal snapshot reads from MongoDB, which
is replaced here by an in-memory FakeDB via app.dependency_overrides.
"""

import logging
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)
NOW_ISO = "2025-06-15T12:00:00Z"


def _complaint(complaint_id, category="roads", days_ago=1, status="pending", votes=0,
               resolved_after=None, location="19.0765,72.8775"):
    submitted = NOW - timedelta(days=days_ago)
    body = {
        "id": complaint_id,
        "category": category,
        "location": location,
        "votes": votes,
        "submittedDate": submitted.isoformat(),
        "status": status,
    }
    if resolved_after is not None:
        body["resolvedDate"] = (submitted + timedelta(days=resolved_after)).isoformat()
    return body


def _payload(complaints, **extra):
    return {"complaints": complaints, "now": NOW_ISO, **extra}


def _history():
    """Twelve complaints over two zones and three months."""
    complaints = [_complaint(i, days_ago=i * 3, votes=i) for i in range(1, 9)]
    complaints += [
        _complaint(20, category="waste", days_ago=2, location="Park Street"),
        _complaint(21, category="waste", days_ago=12, status="resolved", resolved_after=2),
        _complaint(22, category="water", days_ago=40, status="verified", resolved_after=5,
                   location="19.0865,72.8775"),
        _complaint(23, category="roads", days_ago=50, status="resolved", resolved_after=9),
    ]
    return complaints


# ── Minimal FakeDB (complaints collection only needs find().sort()) ──────────

class FakeCursor:
    def __init__(self, docs):
        self._docs = list(docs)

    def sort(self, _key, _direction):
        return self

    def __aiter__(self):
        self._iter = iter(self._docs)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


class FakeComplaintsCollection:
    def __init__(self, docs, fail=False):
        self.docs = docs
        self.fail = fail

    def find(self, query):
        if self.fail:
            raise ConnectionError("server selection timeout")
        return FakeCursor(d for d in self.docs if d["municipal_id"] == query["municipal_id"])


class FakeDB:
    def __init__(self, docs=(), fail=False):
        self.collection = FakeComplaintsCollection(list(docs), fail=fail)

    def __getitem__(self, name):
        return self.collection


def _stored(complaint_id, days_ago, **overrides):
    doc = {
        "complaint_id": complaint_id,
        "municipal_id": "MUM-01",
        "category_id": "roads",
        "latitude": "19.0765",
        "longitude": "72.8775",
        "votes": 2,
        "submitted_date": NOW - timedelta(days=days_ago),
        "status": "pending",
        "resolved_date": None,
        "verification_count": 0,
    }
    doc.update(overrides)
    return doc


@pytest.fixture()
async def db_client_factory():
    """Yield a function that builds a client with get_db overridden."""
    from civicpulse.core.database import get_db
    from civicpulse.main import app

    clients = []

    async def make(fake_db):
        app.dependency_overrides[get_db] = lambda: fake_db
        ac = AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
        clients.append(ac)
        return ac

    yield make

    for ac in clients:
        await ac.aclose()
    app.dependency_overrides.clear()


# ── POST /hotspots ────────────────────────────────────────────────────────────

class TestHotspotsRoute:
    async def test_returns_camel_case_predictions(self, client):
        r = await client.post("/api/v1/analytics/hotspots", json=_payload(_history()))
        assert r.status_code == 200

        data = r.json()
        assert set(data) == {"predictions", "alerts"}
        top = data["predictions"][0]
        for field in ("zoneId", "riskScore", "riskLevel", "categoryMix", "topCategory",
                      "changeVsLastWeek", "recentCount", "confidence", "badge"):
            assert field in top

    async def test_highest_risk_first(self, client):
        data = (await client.post("/api/v1/analytics/hotspots", json=_payload(_history()))).json()
        scores = [p["riskScore"] for p in data["predictions"]]
        assert scores == sorted(scores, reverse=True)

    async def test_no_coordinates_gives_empty_list(self, client):
        complaints = [_complaint(i, location="Station Road") for i in range(3)]
        data = (await client.post("/api/v1/analytics/hotspots", json=_payload(complaints))).json()
        assert data == {"predictions": [], "alerts": []}

    async def test_negative_votes_rejected(self, client):
        r = await client.post("/api/v1/analytics/hotspots", json=_payload([_complaint(1, votes=-4)]))
        assert r.status_code == 422

    async def test_missing_submitted_date_rejected(self, client):
        r = await client.post("/api/v1/analytics/hotspots",
                              json=_payload([{"id": 1, "category": "roads"}]))
        assert r.status_code == 422


# ── POST /forecasts ───────────────────────────────────────────────────────────

class TestForecastsRoute:
    async def test_insufficient_data_below_minimum(self, client):
        complaints = [_complaint(i) for i in range(4)]
        data = (await client.post("/api/v1/analytics/forecasts", json=_payload(complaints))).json()
        assert data == {"insufficientData": True, "categories": [], "daily": [], "seasonal": []}

    async def test_forecasts_with_enough_history(self, client):
        data = (await client.post("/api/v1/analytics/forecasts", json=_payload(_history()))).json()
        assert data["insufficientData"] is False
        assert len(data["categories"]) > 0
        first = data["categories"][0]
        assert first["targetMonth"] == "2025-06"
        for field in ("currentCount", "previousCount", "trend", "projectedCount", "confidence"):
            assert field in first

    async def test_seed_makes_daily_series_reproducible(self, client):
        body = _payload(_history(), seed=7)
        first = (await client.post("/api/v1/analytics/forecasts", json=body)).json()
        second = (await client.post("/api/v1/analytics/forecasts", json=body)).json()
        assert first["daily"] == second["daily"]


# ── POST /delay-risks ─────────────────────────────────────────────────────────

class TestDelayRisksRoute:
    async def test_response_shape(self, client):
        data = (await client.post("/api/v1/analytics/delay-risks", json=_payload(_history()))).json()
        assert set(data) == {"risks", "summary", "departmentLoads", "categoryDelayProbability", "trend"}
        assert len(data["trend"]) == 14

    async def test_only_pending_scored(self, client):
        data = (await client.post("/api/v1/analytics/delay-risks", json=_payload(_history()))).json()
        assert {r["currentStatus"] for r in data["risks"]} == {"pending"}
        assert len(data["risks"]) == 9

    async def test_risks_sorted_and_in_range(self, client):
        risks = (await client.post("/api/v1/analytics/delay-risks", json=_payload(_history()))).json()["risks"]
        values = [r["riskOfDelay"] for r in risks]
        assert values == sorted(values, reverse=True)
        assert all(0 <= v <= 100 for v in values)

    async def test_open_counts_match_pending(self, client):
        data = (await client.post("/api/v1/analytics/delay-risks", json=_payload(_history()))).json()
        assert sum(d["currentOpenComplaints"] for d in data["departmentLoads"]) == len(data["risks"])


# ── POST /overview ────────────────────────────────────────────────────────────

class TestOverviewRoute:
    async def test_counters(self, client):
        data = (await client.post("/api/v1/analytics/overview", json=_payload(_history()))).json()
        assert data["totalCount"] == 12
        assert data["pendingCount"] == 9
        assert data["activeCount"] == 10
        assert data["resolutionRate"] == 25
        assert "changePercent" in data["weeklyTrend"]

    async def test_empty_list(self, client):
        data = (await client.post("/api/v1/analytics/overview", json=_payload([]))).json()
        assert data["totalCount"] == 0
        assert data["weeklyTrend"]["changePercent"] == 0.0


# ── GET /municipals/{municipal_id} ────────────────────────────────────────────

class TestMunicipalSnapshot:
    async def test_503_without_database(self, client):
        r = await client.get("/api/v1/analytics/municipals/MUM-01")
        assert r.status_code == 503
        assert r.json()["detail"] == "Database unavailable"

    async def test_snapshot_from_store(self, db_client_factory):
        docs = [_stored(i, days_ago=i * 2) for i in range(1, 8)]
        docs.append(_stored(99, days_ago=1, municipal_id="PUN-01"))
        ac = await db_client_factory(FakeDB(docs))

        r = await ac.get("/api/v1/analytics/municipals/MUM-01", params={"now": NOW_ISO})
        assert r.status_code == 200

        data = r.json()
        assert data["municipalId"] == "MUM-01"
        assert data["complaintCount"] == 7
        for key in ("overview", "hotspots", "forecasts", "delays", "generatedAt"):
            assert key in data
        assert data["forecasts"]["insufficientData"] is False
        assert len(data["delays"]["risks"]) == 7

    async def test_malformed_documents_skipped(self, db_client_factory):
        docs = [_stored(1, days_ago=1), _stored(2, days_ago=2, submitted_date=None)]
        ac = await db_client_factory(FakeDB(docs))
        data = (await ac.get("/api/v1/analytics/municipals/MUM-01", params={"now": NOW_ISO})).json()
        assert data["complaintCount"] == 1
        assert data["forecasts"]["insufficientData"] is True

    async def test_store_failure_is_503(self, db_client_factory):
        ac = await db_client_factory(FakeDB(fail=True))
        r = await ac.get("/api/v1/analytics/municipals/MUM-01")
        assert r.status_code == 503
        assert r.json()["detail"] == "Complaint store unavailable"

    async def test_negative_seed_rejected(self, db_client_factory):
        ac = await db_client_factory(FakeDB())
        r = await ac.get("/api/v1/analytics/municipals/MUM-01", params={"seed": -1})
        assert r.status_code == 422


# ── Data-quality audit ────────────────────────────────────────────────────────

class TestDataQualityAudit:
    @pytest.mark.parametrize("path", ["hotspots", "forecasts", "delay-risks", "overview"])
    async def test_every_post_route_logs_lifecycle_defects(self, client, caplog, path):
        body = _payload([_complaint(1), _complaint(2, resolved_after=1)])
        with caplog.at_level(logging.WARNING):
            r = await client.post(f"/api/v1/analytics/{path}", json=body)
        assert r.status_code == 200
        assert "complaint 2 is pending but carries a resolved_date" in caplog.text


# ── Rate limiting ─────────────────────────────────────────────────────────────

class TestRateLimit:
    async def test_post_routes_are_rate_limited(self, client, monkeypatch):
        from civicpulse.core.config import settings

        monkeypatch.setattr(settings, "analytics_rate_limit", "2/minute")
        body = _payload([_complaint(1)])

        statuses = [
            (await client.post("/api/v1/analytics/overview", json=body)).status_code
            for _ in range(3)
        ]
        assert statuses == [200, 200, 429]

    @pytest.mark.parametrize("path", ["hotspots", "forecasts", "delay-risks", "overview"])
    async def test_full_bucket_returns_429(self, client, path):
        """Patch `limiter._limiter.hit` → False so slowapi treats the window as full."""
        from civicpulse.core.rate_limit import limiter

        with patch.object(limiter._limiter, "hit", return_value=False):
            r = await client.post(f"/api/v1/analytics/{path}", json=_payload([_complaint(1)]))
        assert r.status_code == 429
        assert "error" in r.json()

    async def test_snapshot_route_is_not_rate_limited(self, client):
        from civicpulse.core.rate_limit import limiter

        with patch.object(limiter._limiter, "hit", return_value=False):
            r = await client.get("/api/v1/analytics/municipals/MUM-01")
        assert r.status_code == 503
