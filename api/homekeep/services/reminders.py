"""
Reminder planning and the durable reminder sweep.

Reminder fire times are derived from stored data, never stored themselves:
  task      next_due    − task_reminder_lead_days      (default 2)
  warranty  expiry_date − warranty_reminder_lead_days  (default 30)

Two consumers:
  HomeTracker           arms in-process timers from plan_reminders()
  send_due_reminders    Celery beat job (09:00 UTC daily); pushes every
                        reminder whose fire time fell inside the last sweep
                        window, so reminders still go out when no API
                        process was alive to hold the timer.

Both claim a firing with Store.claim_reminder before sending it, so each
(key, fire_at) goes out at most once across restarts and the sweep.
"""
import asyncio
import logging
import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine

from homekeep.core.config import settings
from homekeep.core.database import build_engine, build_sessionmaker
from homekeep.core.errors import NotificationDeliveryFailed
from homekeep.models.contact import NotificationContact
from homekeep.schemas.maintenance import MaintenanceTaskRecord
from homekeep.schemas.warranty import WarrantyRecord
from homekeep.services.store import Collection, Store
from homekeep.services.whatsapp import format_reminder, send_whatsapp
from homekeep.worker import celery_app

logger = logging.getLogger(__name__)

TASK_REMINDER_TITLE = "Maintenance Task Due Soon"
WARRANTY_REMINDER_TITLE = "Warranty Expiring Soon"
DAY = timedelta(days=1)


@dataclass(frozen=True)
class Reminder:
    key: str            # "task:<id>" | "warranty:<id>"; one live timer per key
    title: str
    body: str
    fire_at: datetime


def task_key(task_id: str) -> str:
    return f"task:{task_id}"


def warranty_key(warranty_id: str) -> str:
    return f"warranty:{warranty_id}"


def task_reminder(task: MaintenanceTaskRecord) -> Reminder:
    return Reminder(
        key=task_key(task.id),
        title=TASK_REMINDER_TITLE,
        body=f'Task "{task.title}" is due soon.',
        fire_at=task.next_due - timedelta(days=settings.task_reminder_lead_days),
    )


def warranty_reminder(warranty: WarrantyRecord, now: datetime | None = None) -> Reminder:
    """The body counts days left as of delivery: ``fire_at``, or ``now`` if later."""
    fire_at = warranty.expiry_date - timedelta(days=settings.warranty_reminder_lead_days)
    sent_at = fire_at if now is None else max(now, fire_at)
    days = max(0, math.ceil((warranty.expiry_date - sent_at) / DAY))
    return Reminder(
        key=warranty_key(warranty.id),
        title=WARRANTY_REMINDER_TITLE,
        body=f'Warranty for "{warranty.item_name}" expires in {days} day{"" if days == 1 else "s"}.',
        fire_at=fire_at,
    )


def plan_reminders(
    tasks: Iterable[MaintenanceTaskRecord],
    warranties: Iterable[WarrantyRecord],
    now: datetime,
) -> list[Reminder]:
    """Every reminder that should be armed at ``now``.

    All tasks are included (overdue ones fire immediately when armed, once);
    warranties only while their reminder is still ahead, the same rule as
    on add.
    """
    reminders = [task_reminder(t) for t in tasks]
    reminders.extend(r for r in map(warranty_reminder, warranties) if r.fire_at > now)
    return sorted(reminders, key=lambda r: r.fire_at)


def all_reminders(
    tasks: Iterable[MaintenanceTaskRecord],
    warranties: Iterable[WarrantyRecord],
    now: datetime,
) -> list[Reminder]:
    """Every derivable reminder, past or future, worded for delivery at ``now``."""
    reminders = [task_reminder(t) for t in tasks]
    reminders.extend(warranty_reminder(w, now) for w in warranties)
    return sorted(reminders, key=lambda r: r.fire_at)


def due_in_window(reminders: Iterable[Reminder], start: datetime, end: datetime) -> list[Reminder]:
    """Reminders with ``start < fire_at <= end``."""
    return [r for r in reminders if start < r.fire_at <= end]


# ─── Celery sweep ─────────────────────────────────────────────────────────────

async def collect_due(engine: AsyncEngine, now: datetime) -> list[tuple[str, Reminder]]:
    """(phone, reminder) pairs due in the window ending at ``now`` and not sent yet.

    Each returned firing is claimed, so a later sweep or API process skips it.
    """
    window_start = now - timedelta(hours=settings.reminder_sweep_hours)
    async with build_sessionmaker(engine)() as session:
        contacts = (await session.execute(select(NotificationContact))).scalars().all()

    due: list[tuple[str, Reminder]] = []
    for contact in contacts:
        store = Store(engine, contact.owner_id)
        tasks = await store.get_all(Collection.MAINTENANCE_TASKS)
        warranties = await store.get_all(Collection.WARRANTIES)
        for reminder in due_in_window(all_reminders(tasks, warranties, now), window_start, now):
            if await store.claim_reminder(reminder.key, reminder.fire_at):
                due.append((contact.phone, reminder))
    return due


async def _collect_due(now: datetime) -> list[tuple[str, Reminder]]:
    engine = build_engine(settings.database_url)
    try:
        return await collect_due(engine, now)
    finally:
        await engine.dispose()


@celery_app.task(name="homekeep.services.reminders.send_due_reminders")
def send_due_reminders() -> int:
    """Push reminders that came due since the previous sweep. Returns the number sent."""
    now = datetime.now(timezone.utc)
    logger.info("Sweeping for reminders due since %s", now - timedelta(hours=settings.reminder_sweep_hours))

    sent = 0
    for phone, reminder in asyncio.run(_collect_due(now)):
        try:
            send_whatsapp(phone, format_reminder(reminder.title, reminder.body))
            sent += 1
        except NotificationDeliveryFailed as exc:
            logger.warning("Reminder %s not delivered: %s", reminder.key, exc)

    logger.info("Reminder sweep sent %d message(s)", sent)
    return sent
