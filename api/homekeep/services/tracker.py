"""
HomeTracker: the application facade and the only writer to the Store.

Responsibilities:
  * assigns ids and created_at / updated_at stamps
  * cascading deletes (property → tasks → logs, property → warranties,
    task → logs), discovered from the Store so a retry always finishes
  * task completion: log first, then the task's last_completed / next_due
  * lazy trial creation and subscription folding
  * arming / cancelling reminders in the NotificationScheduler
  * an in-memory mirror of every collection, re-read in full after each
    mutation (read-your-writes only)

Cross-collection work is not transactional. Every step is idempotent, so a
failed cascade is repaired by calling the same operation again.
"""
import asyncio
import logging
import uuid
from collections.abc import Callable
from datetime import datetime

from homekeep.core.errors import (
    CascadeDeleteIncomplete,
    DuplicateKey,
    HomeKeepError,
    TaskNotFound,
)
from homekeep.core.security import UserContext
from homekeep.schemas.maintenance import (
    MaintenanceLogCreate,
    MaintenanceLogRecord,
    MaintenanceTaskCreate,
    MaintenanceTaskRecord,
)
from homekeep.schemas.property import PropertyCreate, PropertyRecord
from homekeep.schemas.service_provider import ServiceProviderCreate, ServiceProviderRecord
from homekeep.schemas.trial import SubscriptionStatus, TrialRecord, TrialStatus
from homekeep.schemas.warranty import WarrantyCreate, WarrantyRecord
from homekeep.services.notifications import NotificationScheduler, utcnow
from homekeep.services.recurrence import compute_next_due, group_by_priority
from homekeep.services.reminders import (
    plan_reminders,
    task_key,
    task_reminder,
    warranty_key,
    warranty_reminder,
)
from homekeep.services.store import Collection, Store
from homekeep.services.trial import derive_trial_status, fold_subscription, new_trial
from homekeep.services.whatsapp import WhatsAppChannel

logger = logging.getLogger(__name__)


def new_id() -> str:
    return str(uuid.uuid4())


class HomeTracker:
    def __init__(
        self,
        store: Store,
        scheduler: NotificationScheduler | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self._clock = clock
        self.scheduler = (
            scheduler if scheduler is not None
            else NotificationScheduler(clock=clock, claim=store.claim_reminder)
        )
        self._last_stamp: datetime | None = None

        # Mirror, replaced wholesale by refresh()
        self.trial: TrialStatus | None = None
        self.properties: list[PropertyRecord] = []
        self.maintenance_tasks: list[MaintenanceTaskRecord] = []
        self.warranties: list[WarrantyRecord] = []
        self.service_providers: list[ServiceProviderRecord] = []
        self.maintenance_logs: list[MaintenanceLogRecord] = []

    # ─── Lifecycle ────────────────────────────────────────────────────────────

    async def init(self, rearm: bool = True) -> None:
        await self.store.init()
        await self.refresh()
        if rearm:
            armed = await self.rearm_reminders()
            logger.info("Tracker ready for %s (%d reminder(s) armed)", self.store.owner_id, armed)

    async def close(self) -> None:
        await self.scheduler.close()

    async def refresh(self) -> None:
        """Re-read every collection from the Store."""
        self.trial = await self.get_trial_status()
        properties = await self.store.get_all(Collection.PROPERTIES)
        tasks = await self.store.get_all(Collection.MAINTENANCE_TASKS)
        warranties = await self.store.get_all(Collection.WARRANTIES)
        providers = await self.store.get_all(Collection.SERVICE_PROVIDERS)
        logs = await self.store.get_all(Collection.MAINTENANCE_LOGS)

        self.properties = sorted(properties, key=lambda p: p.created_at)
        self.maintenance_tasks = sorted(tasks, key=lambda t: t.next_due)
        self.warranties = sorted(warranties, key=lambda w: w.expiry_date)
        self.service_providers = sorted(providers, key=lambda s: s.name.lower())
        self.maintenance_logs = sorted(logs, key=lambda log: log.completed_date, reverse=True)

    async def rearm_reminders(self) -> int:
        """Arm a timer for every stored task and pending warranty reminder.

        Overdue task reminders are sent now unless an earlier run already
        sent them; the delivery claim in the Store decides.
        """
        reminders = plan_reminders(self.maintenance_tasks, self.warranties, self._clock())
        for reminder in reminders:
            await self.scheduler.schedule(reminder.key, reminder.title, reminder.body, reminder.fire_at)
        return len(reminders)

    # ─── Trial / subscription ─────────────────────────────────────────────────

    async def get_trial_status(self) -> TrialStatus:
        """Derived status; creates the 14-day trial on first use."""
        now = self._clock()
        trial = await self._ensure_trial(now)
        return derive_trial_status(now, trial)

    async def update_trial_info(self, **changes) -> TrialStatus:
        """Merge raw fields into the trial record. Derived fields are ignored."""
        trial = await self._ensure_trial(self._clock())
        updated = TrialRecord.model_validate({**trial.model_dump(), **changes})
        await self.store.put_trial(updated)
        await self.refresh()
        return self.trial

    async def apply_subscription(self, status: SubscriptionStatus) -> TrialStatus:
        """Fold a provider subscription check into the trial record."""
        trial = await self._ensure_trial(self._clock())
        await self.store.put_trial(fold_subscription(trial, status))
        await self.refresh()
        logger.info(
            "Subscription synced for %s: active=%s", self.store.owner_id, status.active
        )
        return self.trial

    async def _ensure_trial(self, now: datetime) -> TrialRecord:
        trial = await self.store.get_trial()
        if trial is not None:
            return trial
        try:
            return await self.store.add_trial(new_trial(now))
        except DuplicateKey:
            # Another request created it between our read and write
            trial = await self.store.get_trial()
            if trial is None:
                raise
            return trial

    # ─── Properties ───────────────────────────────────────────────────────────

    async def add_property(self, data: PropertyCreate) -> PropertyRecord:
        record = await self._create(Collection.PROPERTIES, PropertyRecord, data.model_dump())
        await self.refresh()
        return record

    async def update_property(self, record: PropertyRecord) -> PropertyRecord:
        record = await self._save(Collection.PROPERTIES, record)
        await self.refresh()
        return record

    async def delete_property(self, property_id: str) -> None:
        """Delete a property with its tasks, their logs and its warranties.

        Children are removed before the parent. On failure the property is
        still listed and calling this again completes the job.
        """
        try:
            tasks = [
                t for t in await self.store.get_all(Collection.MAINTENANCE_TASKS)
                if t.property_id == property_id
            ]
            task_ids = {t.id for t in tasks}
            logs = [
                log for log in await self.store.get_all(Collection.MAINTENANCE_LOGS)
                if log.task_id in task_ids or log.property_id == property_id
            ]
            warranties = [
                w for w in await self.store.get_all(Collection.WARRANTIES)
                if w.property_id == property_id
            ]

            for log in logs:
                await self.store.delete(Collection.MAINTENANCE_LOGS, log.id)
            for task in tasks:
                await self.store.delete(Collection.MAINTENANCE_TASKS, task.id)
                self.scheduler.cancel(task_key(task.id))
            for warranty in warranties:
                await self.store.delete(Collection.WARRANTIES, warranty.id)
                self.scheduler.cancel(warranty_key(warranty.id))
            await self.store.delete(Collection.PROPERTIES, property_id)
        except HomeKeepError as exc:
            logger.error("Cascade delete of property %s stopped: %s", property_id, exc)
            raise CascadeDeleteIncomplete(
                f"There was an error deleting property {property_id}; retry the delete", exc
            ) from exc

        logger.info(
            "Deleted property %s (%d task(s), %d log(s), %d warranty(ies))",
            property_id, len(tasks), len(logs), len(warranties),
        )
        await self.refresh()

    # ─── Maintenance tasks ────────────────────────────────────────────────────

    async def add_maintenance_task(self, data: MaintenanceTaskCreate) -> MaintenanceTaskRecord:
        task = await self._create(
            Collection.MAINTENANCE_TASKS, MaintenanceTaskRecord, data.model_dump()
        )
        await self.refresh()
        await self._arm_task_reminder(task)
        return task

    async def update_maintenance_task(self, task: MaintenanceTaskRecord) -> MaintenanceTaskRecord:
        task = await self._save(Collection.MAINTENANCE_TASKS, task)
        await self.refresh()
        await self._arm_task_reminder(task)
        return task

    async def delete_maintenance_task(self, task_id: str) -> None:
        """Delete a task and its logs (logs first, so a retry finds the task again)."""
        try:
            logs = [
                log for log in await self.store.get_all(Collection.MAINTENANCE_LOGS)
                if log.task_id == task_id
            ]
            for log in logs:
                await self.store.delete(Collection.MAINTENANCE_LOGS, log.id)
            await self.store.delete(Collection.MAINTENANCE_TASKS, task_id)
        except HomeKeepError as exc:
            logger.error("Cascade delete of task %s stopped: %s", task_id, exc)
            raise CascadeDeleteIncomplete(
                f"There was an error deleting task {task_id}; retry the delete", exc
            ) from exc

        self.scheduler.cancel(task_key(task_id))
        await self.refresh()

    async def complete_maintenance_task(
        self, task_id: str, data: MaintenanceLogCreate
    ) -> tuple[MaintenanceLogRecord, MaintenanceTaskRecord]:
        """Log a completion and advance the task's due date from the completion date.

        The log is written before the task. If the task write fails the log
        stays (logs are immutable) and resync_task_from_logs() repairs the
        due date.
        """
        task = await self.store.get_by_id(Collection.MAINTENANCE_TASKS, task_id)
        if task is None:
            raise TaskNotFound(task_id)

        log = await self._create(
            Collection.MAINTENANCE_LOGS,
            MaintenanceLogRecord,
            {**data.model_dump(), "task_id": task.id, "property_id": task.property_id},
        )

        try:
            updated = await self._advance_task(task, log.completed_date)
        except HomeKeepError:
            logger.warning(
                "Task %s: completion logged as %s but due date not advanced",
                task_id, log.id,
            )
            raise

        await self.refresh()
        await self._arm_task_reminder(updated)
        return log, updated

    async def resync_task_from_logs(self, task_id: str) -> MaintenanceTaskRecord:
        """Bring last_completed / next_due in line with the task's latest log."""
        task = await self.store.get_by_id(Collection.MAINTENANCE_TASKS, task_id)
        if task is None:
            raise TaskNotFound(task_id)

        logs = [
            log for log in await self.store.get_all(Collection.MAINTENANCE_LOGS)
            if log.task_id == task_id
        ]
        if not logs:
            return task

        latest = max(logs, key=lambda log: log.completed_date)
        if task.last_completed is not None and task.last_completed >= latest.completed_date:
            return task

        updated = await self._advance_task(task, latest.completed_date)
        await self.refresh()
        await self._arm_task_reminder(updated)
        return updated

    def get_maintenance_logs_for_task(self, task_id: str) -> list[MaintenanceLogRecord]:
        """Logs for a task from the mirror, newest first. No I/O."""
        return [log for log in self.maintenance_logs if log.task_id == task_id]

    def tasks_for_property(self, property_id: str) -> list[MaintenanceTaskRecord]:
        return [t for t in self.maintenance_tasks if t.property_id == property_id]

    def tasks_by_priority(self, property_id: str | None = None) -> dict[str, list[MaintenanceTaskRecord]]:
        tasks = self.maintenance_tasks if property_id is None else self.tasks_for_property(property_id)
        return group_by_priority(tasks, self._clock())

    async def _advance_task(
        self, task: MaintenanceTaskRecord, completed_date: datetime
    ) -> MaintenanceTaskRecord:
        updated = task.model_copy(update={
            "last_completed": completed_date,
            "next_due": compute_next_due(completed_date, task.frequency),
            "updated_at": self.stamp(),
        })
        return await self.store.replace_existing(Collection.MAINTENANCE_TASKS, updated)

    async def _arm_task_reminder(self, task: MaintenanceTaskRecord) -> None:
        reminder = task_reminder(task)
        await self.scheduler.schedule(reminder.key, reminder.title, reminder.body, reminder.fire_at)

    # ─── Warranties ───────────────────────────────────────────────────────────

    async def add_warranty(self, data: WarrantyCreate) -> WarrantyRecord:
        warranty = await self._create(Collection.WARRANTIES, WarrantyRecord, data.model_dump())
        await self.refresh()
        await self._arm_warranty_reminder(warranty)
        return warranty

    async def update_warranty(self, warranty: WarrantyRecord) -> WarrantyRecord:
        warranty = await self._save(Collection.WARRANTIES, warranty)
        await self.refresh()
        await self._arm_warranty_reminder(warranty)
        return warranty

    async def delete_warranty(self, warranty_id: str) -> None:
        await self.store.delete(Collection.WARRANTIES, warranty_id)
        self.scheduler.cancel(warranty_key(warranty_id))
        await self.refresh()

    def warranties_for_property(self, property_id: str) -> list[WarrantyRecord]:
        return [w for w in self.warranties if w.property_id == property_id]

    async def _arm_warranty_reminder(self, warranty: WarrantyRecord) -> None:
        reminder = warranty_reminder(warranty)
        if reminder.fire_at > self._clock():
            await self.scheduler.schedule(reminder.key, reminder.title, reminder.body, reminder.fire_at)
        else:
            self.scheduler.cancel(reminder.key)

    # ─── Service providers ────────────────────────────────────────────────────

    async def add_service_provider(self, data: ServiceProviderCreate) -> ServiceProviderRecord:
        provider = await self._create(
            Collection.SERVICE_PROVIDERS, ServiceProviderRecord, data.model_dump()
        )
        await self.refresh()
        return provider

    async def update_service_provider(self, provider: ServiceProviderRecord) -> ServiceProviderRecord:
        provider = await self._save(Collection.SERVICE_PROVIDERS, provider)
        await self.refresh()
        return provider

    async def delete_service_provider(self, provider_id: str) -> None:
        # Logs keep their service_provider_id; providers are referenced, not owned
        await self.store.delete(Collection.SERVICE_PROVIDERS, provider_id)
        await self.refresh()

    # ─── Helpers ──────────────────────────────────────────────────────────────

    def now(self) -> datetime:
        return self._clock()

    def stamp(self) -> datetime:
        """Current time, never earlier than the previous stamp."""
        now = self._clock()
        if self._last_stamp is not None and now < self._last_stamp:
            now = self._last_stamp
        self._last_stamp = now
        return now

    async def _create(self, collection: Collection, record_cls, data: dict):
        now = self.stamp()
        record = record_cls.model_validate(
            {**data, "id": new_id(), "created_at": now, "updated_at": now}
        )
        return await self.store.add(collection, record)

    async def _save(self, collection: Collection, record):
        """Upsert with a fresh updated_at; created_at is kept as given."""
        record = record.model_copy(update={"updated_at": self.stamp()})
        return await self.store.update(collection, record)


class TrackerRegistry:
    """One long-lived HomeTracker per signed-in user, so mirrors and timers outlive a request."""

    def __init__(self, engine, clock: Callable[[], datetime] = utcnow):
        self._engine = engine
        self._clock = clock
        self._trackers: dict[str, HomeTracker] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    async def get(self, user: UserContext) -> HomeTracker:
        tracker = self._trackers.get(user.user_id)
        if tracker is not None:
            return tracker

        # One lock per user; accounts load independently
        async with self._locks.setdefault(user.user_id, asyncio.Lock()):
            tracker = self._trackers.get(user.user_id)
            if tracker is None:
                store = Store(self._engine, user.user_id)
                scheduler = NotificationScheduler(
                    channels=[WhatsAppChannel(user.phone)],
                    clock=self._clock,
                    claim=store.claim_reminder,
                )
                tracker = HomeTracker(store, scheduler, clock=self._clock)
                await tracker.init()
                if user.phone:
                    await store.put_contact(user.phone, self._clock())
                self._trackers[user.user_id] = tracker
        return tracker

    def count(self) -> int:
        return len(self._trackers)

    async def close(self) -> None:
        trackers = list(self._trackers.values())
        self._trackers.clear()
        self._locks.clear()
        for tracker in trackers:
            await tracker.close()
