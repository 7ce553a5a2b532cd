"""Store tests against a SQLite file."""
import asyncio
from datetime import timedelta
from decimal import Decimal

import pytest

from homekeep.core.errors import DuplicateKey, NotFound, StorageUnavailable
from homekeep.schemas.common import Category, Frequency
from homekeep.schemas.maintenance import MaintenanceLogRecord, MaintenanceTaskRecord
from homekeep.schemas.property import PropertyRecord
from homekeep.schemas.service_provider import ServiceProviderRecord
from homekeep.services.store import Collection, Store
from homekeep.services.trial import new_trial

from conftest import T0


def make_property(pid: str = "p1", name: str = "Home") -> PropertyRecord:
    return PropertyRecord(id=pid, name=name, address="1 Elm St", created_at=T0, updated_at=T0)


def make_task(tid: str = "t1", property_id: str = "p1") -> MaintenanceTaskRecord:
    return MaintenanceTaskRecord(
        id=tid, property_id=property_id, title="Filter", description="", category=Category.HVAC,
        frequency=Frequency(value=3, unit="months"), last_completed=None,
        next_due=T0 + timedelta(days=90), created_at=T0, updated_at=T0,
    )


# ── CRUD ─────────────────────────────────────────────────────────────────────

class TestCrud:
    async def test_init_is_idempotent(self, store):
        await store.init()
        await store.init()
        assert await store.get_all(Collection.PROPERTIES) == []

    async def test_add_and_get(self, store):
        await store.add(Collection.PROPERTIES, make_property())
        fetched = await store.get_by_id(Collection.PROPERTIES, "p1")
        assert fetched == make_property()
        assert fetched.created_at.tzinfo is not None

    async def test_get_missing_returns_none(self, store):
        assert await store.get_by_id(Collection.PROPERTIES, "nope") is None

    async def test_add_duplicate_raises(self, store):
        await store.add(Collection.PROPERTIES, make_property())
        with pytest.raises(DuplicateKey):
            await store.add(Collection.PROPERTIES, make_property(name="Other"))
        assert (await store.get_by_id(Collection.PROPERTIES, "p1")).name == "Home"

    async def test_update_is_upsert(self, store):
        await store.update(Collection.PROPERTIES, make_property("p9"))
        assert (await store.get_by_id(Collection.PROPERTIES, "p9")) is not None
        await store.update(Collection.PROPERTIES, make_property("p9", name="Renamed"))
        assert (await store.get_by_id(Collection.PROPERTIES, "p9")).name == "Renamed"

    async def test_replace_existing_requires_record(self, store):
        with pytest.raises(NotFound):
            await store.replace_existing(Collection.PROPERTIES, make_property("ghost"))
        assert await store.get_by_id(Collection.PROPERTIES, "ghost") is None

    async def test_replace_existing_overwrites(self, store):
        await store.add(Collection.PROPERTIES, make_property())
        await store.replace_existing(Collection.PROPERTIES, make_property(name="Cabin"))
        assert (await store.get_by_id(Collection.PROPERTIES, "p1")).name == "Cabin"

    async def test_delete_is_idempotent(self, store):
        await store.add(Collection.PROPERTIES, make_property())
        await store.delete(Collection.PROPERTIES, "p1")
        await store.delete(Collection.PROPERTIES, "p1")
        assert await store.get_all(Collection.PROPERTIES) == []

    async def test_nested_and_list_fields_round_trip(self, store):
        await store.add(Collection.MAINTENANCE_TASKS, make_task())
        provider = ServiceProviderRecord(
            id="s1", name="ABC", category=[Category.PLUMBING, Category.HVAC], phone="", email="",
            website="", notes="", rating=4, created_at=T0, updated_at=T0,
        )
        await store.add(Collection.SERVICE_PROVIDERS, provider)
        log = MaintenanceLogRecord(
            id="l1", task_id="t1", property_id="p1", completed_date=T0, cost=Decimal("15.99"),
            notes="", service_provider_id=None, documents=["receipt.pdf"], created_at=T0, updated_at=T0,
        )
        await store.add(Collection.MAINTENANCE_LOGS, log)

        task = await store.get_by_id(Collection.MAINTENANCE_TASKS, "t1")
        assert task.frequency == Frequency(value=3, unit="months")
        assert (await store.get_by_id(Collection.SERVICE_PROVIDERS, "s1")).category == [
            Category.PLUMBING, Category.HVAC,
        ]
        fetched_log = await store.get_by_id(Collection.MAINTENANCE_LOGS, "l1")
        assert fetched_log.documents == ["receipt.pdf"]
        assert fetched_log.cost == Decimal("15.99")

    async def test_invalid_record_rejected_at_boundary(self, store):
        with pytest.raises(ValueError):
            await store.add(Collection.PROPERTIES, {"id": "p1"})


# ── Isolation ────────────────────────────────────────────────────────────────

class TestOwnerIsolation:
    async def test_owners_do_not_see_each_other(self, engine, store):
        other = Store(engine, "user-2")
        await store.add(Collection.PROPERTIES, make_property())
        await other.add(Collection.PROPERTIES, make_property(name="Theirs"))

        assert [p.name for p in await store.get_all(Collection.PROPERTIES)] == ["Home"]
        assert [p.name for p in await other.get_all(Collection.PROPERTIES)] == ["Theirs"]

        await other.delete(Collection.PROPERTIES, "p1")
        assert await store.get_by_id(Collection.PROPERTIES, "p1") is not None


# ── Trial singleton ──────────────────────────────────────────────────────────

class TestTrial:
    async def test_absent_until_created(self, store):
        assert await store.get_trial() is None

    async def test_add_trial_once(self, store):
        trial = new_trial(T0)
        await store.add_trial(trial)
        assert await store.get_trial() == trial
        with pytest.raises(DuplicateKey):
            await store.add_trial(new_trial(T0 + timedelta(days=1)))

    async def test_put_trial_replaces(self, store):
        await store.add_trial(new_trial(T0))
        await store.put_trial(new_trial(T0).model_copy(update={"is_pro": True}))
        assert (await store.get_trial()).is_pro is True


# ── Failure mapping ──────────────────────────────────────────────────────────

class TestReminderClaim:
    async def test_first_claim_wins(self, store):
        assert await store.claim_reminder("task:t1", T0) is True
        assert await store.claim_reminder("task:t1", T0) is False

    async def test_claim_is_per_firing_and_per_owner(self, engine, store):
        assert await store.claim_reminder("task:t1", T0) is True
        assert await store.claim_reminder("task:t1", T0 + timedelta(days=90)) is True
        assert await store.claim_reminder("task:t2", T0) is True
        assert await Store(engine, "user-2").claim_reminder("task:t1", T0) is True


class TestTimeout:
    async def test_slow_operation_becomes_storage_unavailable(self, engine, monkeypatch):
        store = Store(engine, "user-1", timeout=0.01)
        await store.init()

        real_run = Store._run

        async def slow(self, op):
            async def stalled():
                await asyncio.sleep(1)
                return await op
            return await real_run(self, stalled())

        monkeypatch.setattr(Store, "_run", slow)
        with pytest.raises(StorageUnavailable):
            await store.get_all(Collection.PROPERTIES)
