import pytest
from httpx import AsyncClient

from ascendia.config import settings

pytestmark = pytest.mark.asyncio


async def test_today_and_complete(client: AsyncClient):
    r = await client.get("/v1/missions/today")
    assert r.status_code == 200
    data = r.json()
    assert data["date_key"] == "2026-02-02"
    assert len(data["missions"]) == 4
    assert {m["type"] for m in data["missions"]} <= {"pushups", "squats", "plank", "crunches", "run"}
    assert data["profile"]["user_id"] == "user-1"

    mission_id = data["missions"][0]["id"]
    r = await client.post(f"/v1/missions/{mission_id}/complete")
    assert r.status_code == 200
    body = r.json()
    assert body["profile"]["total_missions_completed"] == 1
    completed = [m for m in body["missions"] if m["id"] == mission_id]
    assert completed[0]["status"] == "completed"


async def test_complete_unknown_mission(client: AsyncClient):
    r = await client.post("/v1/missions/nope/complete")
    assert r.status_code == 404
    assert r.json()["code"] == "not_found"


async def test_me_roundtrip(client: AsyncClient):
    r = await client.get("/v1/me")
    assert r.status_code == 200
    assert r.json()["user"] == {"id": "user-1", "email": "hunter@ascendia.local"}

    r = await client.patch("/v1/me", json={"timezone": "Nowhere/Land"})
    assert r.status_code == 400
    assert r.json()["code"] == "validation_failed"

    r = await client.patch("/v1/me", json={"timezone": "America"})
    assert r.status_code == 400
    assert r.json()["code"] == "validation_failed"

    r = await client.patch("/v1/me", json={"timezone": "Europe/Berlin", "archetypeId": "iron-sentinel"})
    assert r.status_code == 200
    profile = r.json()["profile"]
    assert profile["timezone"] == "Europe/Berlin"
    assert profile["archetype_id"] == "iron-sentinel"

    r = await client.delete("/v1/me")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


async def test_archetypes_listed_in_order(client: AsyncClient):
    r = await client.get("/v1/archetypes")
    assert r.status_code == 200
    ids = [a["id"] for a in r.json()["archetypes"]]
    assert ids == ["shadow-ascendant", "iron-sentinel", "flame-vanguard"]


async def test_last7(client: AsyncClient):
    await client.get("/v1/missions/today")
    r = await client.get("/v1/progress/last7")
    assert r.status_code == 200
    data = r.json()
    assert len(data["days"]) == 7
    assert data["days"][0] == {"date_key": "2026-02-02", "total": 4, "completed": 0}
    assert data["totals"]["level"] == 1


async def test_internal_routes_hidden_without_secret(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "cron_secret", None)
    r = await client.post("/internal/reconcile", headers={"x-cron-secret": "anything"})
    assert r.status_code == 404


async def test_internal_sweep(client: AsyncClient, store, monkeypatch):
    monkeypatch.setattr(settings, "cron_secret", "s3cret")
    await store.upsert_profile("a", {"current_streak": 2, "last_success_date": "2026-01-20"})
    await store.upsert_profile("b", {})

    r = await client.post("/internal/reconcile", headers={"x-cron-secret": "wrong"})
    assert r.status_code == 404

    r = await client.post("/internal/reconcile", headers={"x-cron-secret": "s3cret"})
    assert r.status_code == 200
    assert r.json() == {"ok": True, "processed": 2, "reconciled": 2, "errors": []}

    r = await client.post("/internal/reconcile/a", headers={"x-cron-secret": "s3cret"})
    assert r.status_code == 200
    assert r.json()["profile"]["current_streak"] == 0
    assert r.json()["profile"]["last_reconciled_date"] == "2026-02-01"

    r = await client.post("/internal/reconcile/ghost", headers={"x-cron-secret": "s3cret"})
    assert r.status_code == 404
