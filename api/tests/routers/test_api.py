"""
HTTP round trips through the FastAPI app on a SQLite file.

Auth and external providers are replaced through dependency overrides; the
lifespan is not run, so the engine and tracker registry are attached here.
"""
from datetime import timedelta

import pytest
from httpx import ASGITransport, AsyncClient

from homekeep.core.deps import get_current_user, get_ocr_client, get_subscription_client
from homekeep.core.security import UserContext
from homekeep.main import app
from homekeep.schemas.trial import SubscriptionInfo, SubscriptionStatus
from homekeep.services.tracker import TrackerRegistry
from homekeep.services.warranty_ocr import OcrExtraction

from conftest import T0

USER = UserContext(user_id="user-1", email="owner@example.com")


class FakeSubscriptionClient:
    def __init__(self):
        self.cancelled = False

    def create_checkout_session(self, user_id, return_url=None):
        return f"https://checkout.example/{user_id}"

    def check_subscription_status(self, user_id):
        return SubscriptionStatus(
            active=True,
            subscription=SubscriptionInfo(
                id="sub_1", status="active",
                current_period_end=T0 + timedelta(days=30),
                cancel_at_period_end=self.cancelled,
            ),
        )

    def cancel_subscription(self, user_id):
        self.cancelled = True
        return True


class FakeOcrClient:
    def extract(self, file_base64):
        return OcrExtraction(itemName="Dishwasher", manufacturer="Bosch", expiryDate="2026-05-01")


@pytest.fixture
async def registry(engine, clock):
    registry = TrackerRegistry(engine, clock=clock)
    app.state.engine = engine
    app.state.trackers = registry
    yield registry
    await registry.close()


@pytest.fixture
async def api(registry):
    subscriptions = FakeSubscriptionClient()
    app.dependency_overrides[get_current_user] = lambda: USER
    app.dependency_overrides[get_subscription_client] = lambda: subscriptions
    app.dependency_overrides[get_ocr_client] = lambda: FakeOcrClient()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
async def anon(registry):
    app.dependency_overrides.clear()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


async def create_home(api) -> dict:
    resp = await api.post("/api/v1/properties/", json={"name": "My Home", "address": "123 Main St"})
    assert resp.status_code == 201
    return resp.json()


async def create_task(api, property_id: str, due=T0 + timedelta(days=90)) -> dict:
    resp = await api.post("/api/v1/maintenance/tasks", json={
        "property_id": property_id,
        "title": "Replace HVAC Filter",
        "category": "HVAC",
        "frequency": {"value": 3, "unit": "months"},
        "next_due": due.isoformat(),
    })
    assert resp.status_code == 201, resp.text
    return resp.json()


# ── Health / auth ────────────────────────────────────────────────────────────

class TestHealthAndAuth:
    async def test_health(self, anon):
        resp = await anon.get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "trackers": 0}
        assert resp.headers["X-Frame-Options"] == "DENY"

    async def test_health_db(self, anon):
        resp = await anon.get("/health/db")
        assert resp.json()["database"] == "connected"

    async def test_health_db_reports_unreachable_database(self, anon, monkeypatch):
        class DeadEngine:
            def connect(self):
                raise OSError("connection refused")

        monkeypatch.setattr(app.state, "engine", DeadEngine())
        resp = await anon.get("/health/db")
        assert resp.status_code == 503
        assert resp.json()["database"] == "unreachable"

    async def test_requires_bearer_token(self, anon):
        resp = await anon.get("/api/v1/properties/")
        assert resp.status_code == 401

    async def test_rejects_bad_token(self, anon):
        resp = await anon.get("/api/v1/properties/", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401


# ── Properties & tasks ───────────────────────────────────────────────────────

class TestProperties:
    async def test_crud(self, api):
        home = await create_home(api)
        assert (await api.get("/api/v1/properties/")).json()[0]["id"] == home["id"]

        resp = await api.patch(f"/api/v1/properties/{home['id']}", json={"name": "Cabin"})
        assert resp.json()["name"] == "Cabin"
        assert resp.json()["address"] == "123 Main St"

        assert (await api.delete(f"/api/v1/properties/{home['id']}")).status_code == 204
        assert (await api.get(f"/api/v1/properties/{home['id']}")).status_code == 404

    async def test_delete_cascades(self, api):
        home = await create_home(api)
        task = await create_task(api, home["id"])
        await api.post("/api/v1/warranties/", json={
            "property_id": home["id"], "item_name": "Fridge", "category": "Appliances",
            "purchase_date": T0.isoformat(), "expiry_date": (T0 + timedelta(days=700)).isoformat(),
        })
        await api.post(f"/api/v1/maintenance/tasks/{task['id']}/complete",
                       json={"completed_date": T0.isoformat()})

        await api.delete(f"/api/v1/properties/{home['id']}")

        assert (await api.get("/api/v1/maintenance/tasks")).json() == []
        assert (await api.get("/api/v1/warranties/")).json() == []
        assert (await api.get("/api/v1/maintenance/logs")).json() == []

    async def test_delete_missing_property_is_noop(self, api):
        assert (await api.delete("/api/v1/properties/nope")).status_code == 204


class TestMaintenance:
    async def test_complete_task(self, api):
        home = await create_home(api)
        task = await create_task(api, home["id"])
        done_at = T0 + timedelta(days=95)

        resp = await api.post(f"/api/v1/maintenance/tasks/{task['id']}/complete", json={
            "completed_date": done_at.isoformat(), "cost": 20, "notes": "",
            "service_provider_id": None, "documents": [],
        })
        assert resp.status_code == 201
        body = resp.json()
        assert body["log"]["task_id"] == task["id"]
        assert body["task"]["next_due"].startswith("2024-07-05T09:00:00")

        detail = (await api.get(f"/api/v1/maintenance/tasks/{task['id']}")).json()
        assert detail["frequency_label"] == "Every 3 months"
        assert detail["priority"] == "low"
        assert len(detail["logs"]) == 1

    async def test_complete_unknown_task(self, api):
        resp = await api.post("/api/v1/maintenance/tasks/missing/complete",
                              json={"completed_date": T0.isoformat()})
        assert resp.status_code == 404

    async def test_task_needs_existing_property(self, api):
        resp = await api.post("/api/v1/maintenance/tasks", json={
            "property_id": "ghost", "title": "x", "frequency": {"value": 1, "unit": "days"},
            "next_due": T0.isoformat(),
        })
        assert resp.status_code == 404

    async def test_invalid_frequency_rejected(self, api):
        home = await create_home(api)
        resp = await api.post("/api/v1/maintenance/tasks", json={
            "property_id": home["id"], "title": "x", "frequency": {"value": 1, "unit": "fortnights"},
            "next_due": T0.isoformat(),
        })
        assert resp.status_code == 422

    async def test_priority_buckets(self, api):
        home = await create_home(api)
        await create_task(api, home["id"], due=T0 + timedelta(days=3))
        groups = (await api.get("/api/v1/maintenance/tasks/priority")).json()
        assert list(groups) == ["high"]

    async def test_update_task_frequency(self, api):
        home = await create_home(api)
        task = await create_task(api, home["id"])
        resp = await api.patch(f"/api/v1/maintenance/tasks/{task['id']}",
                               json={"frequency": {"value": 1, "unit": "years"}})
        assert resp.json()["frequency"] == {"value": 1, "unit": "years"}


# ── Warranties & providers ───────────────────────────────────────────────────

class TestWarranties:
    async def test_expiry_before_purchase_rejected(self, api):
        home = await create_home(api)
        resp = await api.post("/api/v1/warranties/", json={
            "property_id": home["id"], "item_name": "Fridge",
            "purchase_date": T0.isoformat(), "expiry_date": (T0 - timedelta(days=1)).isoformat(),
        })
        assert resp.status_code == 422

    async def test_scan_returns_draft(self, api):
        resp = await api.post("/api/v1/warranties/scan", json={"file_base64": "data:image/png;base64,AAAA"})
        assert resp.status_code == 200
        assert resp.json()["item_name"] == "Dishwasher"
        assert resp.json()["expiry_date"].startswith("2026-05-01")
        assert (await api.get("/api/v1/warranties/")).json() == []


class TestServiceProviders:
    async def test_filter_by_category(self, api):
        await api.post("/api/v1/service-providers/", json={"name": "ABC Plumbing", "category": ["Plumbing"]})
        await api.post("/api/v1/service-providers/", json={"name": "XYZ HVAC", "category": ["HVAC"]})
        resp = await api.get("/api/v1/service-providers/", params={"category": "HVAC"})
        assert [p["name"] for p in resp.json()] == ["XYZ HVAC"]

    async def test_category_required(self, api):
        resp = await api.post("/api/v1/service-providers/", json={"name": "Nobody", "category": []})
        assert resp.status_code == 422


# ── Subscription / notifications / demo ──────────────────────────────────────

class TestSubscription:
    async def test_trial_started_on_first_use(self, api):
        body = (await api.get("/api/v1/subscription/trial")).json()
        assert body["is_active"] is True
        assert body["days_left"] == 14
        assert body["is_pro"] is False

    async def test_trial_cannot_be_edited_by_the_user(self, api):
        resp = await api.patch(
            "/api/v1/subscription/trial",
            json={"is_pro": True, "end_date": "2099-01-01T00:00:00Z"},
        )
        assert resp.status_code == 405
        body = (await api.get("/api/v1/subscription/trial")).json()
        assert body["is_pro"] is False
        assert body["end_date"].startswith("2024-01-15")

    async def test_checkout(self, api):
        resp = await api.post("/api/v1/subscription/checkout")
        assert resp.json() == {"url": "https://checkout.example/user-1"}

    async def test_sync_and_cancel(self, api):
        body = (await api.post("/api/v1/subscription/sync")).json()
        assert body["is_pro"] is True
        assert body["end_date"].startswith("2024-01-31")

        body = (await api.post("/api/v1/subscription/cancel")).json()
        assert body["is_pro"] is True
        assert body["cancel_at_period_end"] is True


class TestNotifications:
    async def test_overdue_reminder_lands_in_toast_inbox(self, api, registry):
        home = await create_home(api)
        await create_task(api, home["id"], due=T0 + timedelta(days=1))
        await (await registry.get(USER)).scheduler.idle()

        toasts = (await api.get("/api/v1/notifications/toasts")).json()
        assert [t["title"] for t in toasts] == ["Maintenance Task Due Soon"]

        resp = await api.delete(f"/api/v1/notifications/toasts/{toasts[0]['id']}")
        assert resp.status_code == 204
        assert (await api.get("/api/v1/notifications/toasts")).json() == []
        assert (await api.delete(f"/api/v1/notifications/toasts/{toasts[0]['id']}")).status_code == 404


class TestDemoData:
    async def test_seeds_once(self, api):
        assert (await api.post("/api/v1/demo-data/")).json() == {"seeded": True}
        assert (await api.post("/api/v1/demo-data/")).json() == {"seeded": False}
        tasks = (await api.get("/api/v1/maintenance/tasks")).json()
        assert [t["title"] for t in tasks] == ["Check Smoke Detectors", "Clean Gutters", "Replace HVAC Filter"]
        assert len((await api.get("/api/v1/maintenance/tasks/task1/logs")).json()) == 1
