"""Reminder planning and the Celery sweep (WhatsApp mocked)."""
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import patch

from homekeep.core.errors import NotificationDeliveryFailed
from homekeep.schemas.common import Category, Frequency
from homekeep.schemas.maintenance import MaintenanceTaskCreate
from homekeep.schemas.property import PropertyCreate
from homekeep.services import reminders
from homekeep.services.reminders import (
    Reminder,
    all_reminders,
    collect_due,
    due_in_window,
    plan_reminders,
    task_reminder,
    warranty_reminder,
)

from conftest import T0


def task(tid="t1", title="Clean Gutters", due=T0 + timedelta(days=10)):
    return SimpleNamespace(id=tid, title=title, next_due=due)


def warranty(wid="w1", item="Refrigerator", expiry=T0 + timedelta(days=100)):
    return SimpleNamespace(id=wid, item_name=item, expiry_date=expiry)


# ── Planning ─────────────────────────────────────────────────────────────────

class TestPlanning:
    def test_task_fires_two_days_before_due(self):
        r = task_reminder(task())
        assert r.key == "task:t1"
        assert r.fire_at == T0 + timedelta(days=8)
        assert r.title == "Maintenance Task Due Soon"
        assert r.body == 'Task "Clean Gutters" is due soon.'

    def test_warranty_fires_thirty_days_before_expiry(self):
        r = warranty_reminder(warranty())
        assert r.key == "warranty:w1"
        assert r.fire_at == T0 + timedelta(days=70)
        assert r.title == "Warranty Expiring Soon"
        assert r.body == 'Warranty for "Refrigerator" expires in 30 days.'

    def test_warranty_body_counts_days_left_at_delivery(self):
        w = warranty(expiry=T0 + timedelta(days=10))
        assert warranty_reminder(w, T0).body.endswith("expires in 10 days.")
        assert warranty_reminder(w, T0 + timedelta(days=9)).body.endswith("expires in 1 day.")
        # Before the fire time the body is worded for the fire time
        assert warranty_reminder(w, T0 - timedelta(days=60)).body.endswith("expires in 30 days.")

    def test_plan_skips_warranties_past_their_fire_time_and_sorts(self):
        plan = plan_reminders(
            [task("late", due=T0 + timedelta(days=50)), task("overdue", due=T0 - timedelta(days=5))],
            [
                warranty("live"),
                warranty("inside", expiry=T0 + timedelta(days=10)),
                warranty("dead", expiry=T0 - timedelta(days=1)),
            ],
            T0,
        )
        assert [r.key for r in plan] == ["task:overdue", "task:late", "warranty:live"]

    def test_all_reminders_keeps_past_firings(self):
        everything = all_reminders([], [warranty("inside", expiry=T0 + timedelta(days=10))], T0)
        assert [r.key for r in everything] == ["warranty:inside"]
        assert everything[0].body.endswith("expires in 10 days.")

    def test_due_in_window_is_half_open(self):
        items = [
            Reminder("a", "", "", T0),
            Reminder("b", "", "", T0 + timedelta(hours=1)),
            Reminder("c", "", "", T0 + timedelta(hours=24)),
            Reminder("d", "", "", T0 + timedelta(hours=25)),
        ]
        window = due_in_window(items, T0, T0 + timedelta(hours=24))
        assert [r.key for r in window] == ["b", "c"]


# ── Sweep ────────────────────────────────────────────────────────────────────

class TestSweep:
    def test_sends_each_claimed_reminder(self):
        due = [
            ("+15550001", Reminder("task:t1", "Maintenance Task Due Soon", "x", T0)),
            ("+15550002", Reminder("warranty:w1", "Warranty Expiring Soon", "y", T0)),
        ]

        async def fake_collect(now):
            return due

        with patch.object(reminders, "_collect_due", fake_collect), \
                patch.object(reminders, "send_whatsapp") as send:
            sent = reminders.send_due_reminders()

        assert sent == 2
        assert send.call_args_list[0].args == ("+15550001", "*Maintenance Task Due Soon*\nx")

    def test_delivery_failure_is_logged_not_raised(self):
        due = [("+15550001", Reminder("task:t1", "Due", "x", T0))]

        async def fake_collect(now):
            return due

        with patch.object(reminders, "_collect_due", fake_collect), \
                patch.object(reminders, "send_whatsapp", side_effect=NotificationDeliveryFailed("down")):
            assert reminders.send_due_reminders() == 0


# ── Sweep collection ─────────────────────────────────────────────────────────

async def add_gutters(tracker, due):
    home = await tracker.add_property(PropertyCreate(name="Home", address="1 Elm St"))
    return await tracker.add_maintenance_task(MaintenanceTaskCreate(
        property_id=home.id,
        title="Clean Gutters",
        category=Category.OUTDOOR,
        frequency=Frequency(value=6, unit="months"),
        next_due=due,
    ))


class TestCollectDue:
    async def test_collects_missed_reminder_once(self, engine, store, tracker):
        await store.put_contact("+15550001", T0)
        task = await add_gutters(tracker, T0 + timedelta(days=3))
        # API process goes away before the timer fires
        await tracker.close()

        sweep_at = T0 + timedelta(days=1, hours=1)
        assert await collect_due(engine, sweep_at) == [("+15550001", task_reminder(task))]
        assert await collect_due(engine, sweep_at) == []

    async def test_skips_reminder_already_sent_in_process(self, engine, store, tracker, channel):
        await store.put_contact("+15550001", T0)
        await add_gutters(tracker, T0 + timedelta(days=1, hours=12))
        await tracker.scheduler.idle()
        assert len(channel.sent) == 1

        assert await collect_due(engine, T0) == []

    async def test_accounts_without_contact_are_skipped(self, engine, tracker):
        await add_gutters(tracker, T0 + timedelta(days=3))
        assert await collect_due(engine, T0 + timedelta(days=1, hours=1)) == []
