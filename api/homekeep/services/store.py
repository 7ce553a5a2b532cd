"""
Persistent store: keyed CRUD over the five entity collections plus the
per-account trial singleton and the reminder delivery record.

Every operation runs in its own short transaction, so a single record is
never observed half-written. Multi-record consistency is the facade's
concern (see ``homekeep.services.tracker``).

Write modes are explicit:
  update()            upsert, succeeds whether or not the id exists
  replace_existing()  strict, raises NotFound when the id is absent
"""
import asyncio
import enum
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine

from homekeep.core.config import settings
from homekeep.core.database import Base, build_sessionmaker
from homekeep.core.errors import DuplicateKey, NotFound, StorageUnavailable
from homekeep.models.contact import NotificationContact
from homekeep.models.maintenance import MaintenanceLog, MaintenanceTask
from homekeep.models.property import Property
from homekeep.models.reminder import ReminderDelivery
from homekeep.models.service_provider import ServiceProvider
from homekeep.models.trial import TRIAL_KEY, TrialInfo
from homekeep.models.warranty import Warranty
from homekeep.schemas.maintenance import MaintenanceLogRecord, MaintenanceTaskRecord
from homekeep.schemas.property import PropertyRecord
from homekeep.schemas.service_provider import ServiceProviderRecord
from homekeep.schemas.trial import TrialRecord
from homekeep.schemas.warranty import WarrantyRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R", bound=BaseModel)


class Collection(str, enum.Enum):
    PROPERTIES = "properties"
    MAINTENANCE_TASKS = "maintenance_tasks"
    WARRANTIES = "warranties"
    SERVICE_PROVIDERS = "service_providers"
    MAINTENANCE_LOGS = "maintenance_logs"


@dataclass(frozen=True)
class _Binding:
    model: type[Base]
    schema: type[BaseModel]
    json_fields: frozenset[str] = frozenset()


_BINDINGS: dict[Collection, _Binding] = {
    Collection.PROPERTIES: _Binding(Property, PropertyRecord),
    Collection.MAINTENANCE_TASKS: _Binding(
        MaintenanceTask, MaintenanceTaskRecord, frozenset({"frequency"})
    ),
    Collection.WARRANTIES: _Binding(Warranty, WarrantyRecord, frozenset({"documents"})),
    Collection.SERVICE_PROVIDERS: _Binding(
        ServiceProvider, ServiceProviderRecord, frozenset({"category"})
    ),
    Collection.MAINTENANCE_LOGS: _Binding(
        MaintenanceLog, MaintenanceLogRecord, frozenset({"documents"})
    ),
}


class Store:
    """Per-account view over the shared database."""

    def __init__(self, engine: AsyncEngine, owner_id: str, timeout: float | None = None):
        self._engine = engine
        self._sessions = build_sessionmaker(engine)
        self.owner_id = owner_id
        self._timeout = settings.store_timeout_seconds if timeout is None else timeout
        self._ready = False

    # ─── Lifecycle ────────────────────────────────────────────────────────────

    async def init(self) -> None:
        """Create any missing tables. Safe to call repeatedly."""
        if self._ready:
            return

        async def _create() -> None:
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

        await self._run(_create())
        self._ready = True
        logger.debug("Store ready for owner %s", self.owner_id)

    # ─── Collections ──────────────────────────────────────────────────────────

    async def get_all(self, collection: Collection | str) -> list[Any]:
        """All records of this owner in the collection. Order is unspecified."""
        binding = _BINDINGS[Collection(collection)]
        await self.init()

        async def _op() -> list[Any]:
            async with self._sessions() as session:
                result = await session.execute(
                    select(binding.model).where(binding.model.owner_id == self.owner_id)
                )
                return [binding.schema.model_validate(row) for row in result.scalars().all()]

        return await self._run(_op())

    async def get_by_id(self, collection: Collection | str, entity_id: str) -> Any | None:
        binding = _BINDINGS[Collection(collection)]
        await self.init()

        async def _op() -> Any | None:
            async with self._sessions() as session:
                row = await session.get(binding.model, (self.owner_id, entity_id))
                return binding.schema.model_validate(row) if row is not None else None

        return await self._run(_op())

    async def add(self, collection: Collection | str, record: R) -> R:
        coll = Collection(collection)
        binding = _BINDINGS[coll]
        record = self._validate(binding, record)
        await self.init()

        async def _op() -> None:
            async with self._sessions() as session, session.begin():
                existing = await session.get(binding.model, (self.owner_id, record.id))
                if existing is not None:
                    raise DuplicateKey(coll.value, record.id)
                session.add(self._to_row(binding, record))

        try:
            await self._run(_op())
        except IntegrityError as exc:
            raise DuplicateKey(coll.value, record.id) from exc
        return record

    async def update(self, collection: Collection | str, record: R) -> R:
        """Full replace keyed by id; inserts when the id does not exist yet."""
        binding = _BINDINGS[Collection(collection)]
        record = self._validate(binding, record)
        await self.init()

        async def _op() -> None:
            async with self._sessions() as session, session.begin():
                await session.merge(self._to_row(binding, record))

        await self._run(_op())
        return record

    async def replace_existing(self, collection: Collection | str, record: R) -> R:
        """Full replace keyed by id; raises NotFound when the id does not exist."""
        coll = Collection(collection)
        binding = _BINDINGS[coll]
        record = self._validate(binding, record)
        await self.init()

        async def _op() -> None:
            async with self._sessions() as session, session.begin():
                existing = await session.get(binding.model, (self.owner_id, record.id))
                if existing is None:
                    raise NotFound(coll.value, record.id)
                await session.merge(self._to_row(binding, record))

        await self._run(_op())
        return record

    async def delete(self, collection: Collection | str, entity_id: str) -> None:
        """Remove the record if present. Deleting a missing id is a no-op."""
        binding = _BINDINGS[Collection(collection)]
        await self.init()

        async def _op() -> None:
            async with self._sessions() as session, session.begin():
                row = await session.get(binding.model, (self.owner_id, entity_id))
                if row is not None:
                    await session.delete(row)

        await self._run(_op())

    # ─── Trial singleton ──────────────────────────────────────────────────────

    async def get_trial(self) -> TrialRecord | None:
        await self.init()

        async def _op() -> TrialRecord | None:
            async with self._sessions() as session:
                row = await session.get(TrialInfo, (self.owner_id, TRIAL_KEY))
                return TrialRecord.model_validate(row) if row is not None else None

        return await self._run(_op())

    async def add_trial(self, trial: TrialRecord) -> TrialRecord:
        """Create the singleton; DuplicateKey if this account already has one."""
        await self.init()

        async def _op() -> None:
            async with self._sessions() as session, session.begin():
                if await session.get(TrialInfo, (self.owner_id, TRIAL_KEY)) is not None:
                    raise DuplicateKey("trial_info", TRIAL_KEY)
                session.add(TrialInfo(owner_id=self.owner_id, key=TRIAL_KEY, **trial.model_dump()))

        try:
            await self._run(_op())
        except IntegrityError as exc:
            raise DuplicateKey("trial_info", TRIAL_KEY) from exc
        return trial

    async def put_trial(self, trial: TrialRecord) -> TrialRecord:
        await self.init()

        async def _op() -> None:
            async with self._sessions() as session, session.begin():
                await session.merge(
                    TrialInfo(owner_id=self.owner_id, key=TRIAL_KEY, **trial.model_dump())
                )

        await self._run(_op())
        return trial

    # ─── Notification contact ─────────────────────────────────────────────────

    async def put_contact(self, phone: str, now: datetime) -> None:
        await self.init()

        async def _op() -> None:
            async with self._sessions() as session, session.begin():
                await session.merge(
                    NotificationContact(owner_id=self.owner_id, phone=phone, updated_at=now)
                )

        await self._run(_op())

    # ─── Reminder deliveries ──────────────────────────────────────────────────

    async def claim_reminder(self, key: str, fire_at: datetime) -> bool:
        """Record that the reminder ``key`` firing at ``fire_at`` is going out.

        Returns False when that firing was already claimed, by this process,
        an earlier one or the background sweep. The insert is the claim, so
        concurrent claimants cannot both win.
        """
        await self.init()

        async def _op() -> None:
            async with self._sessions() as session, session.begin():
                session.add(ReminderDelivery(
                    owner_id=self.owner_id,
                    key=key,
                    fire_at_epoch=int(fire_at.timestamp()),
                    fire_at=fire_at,
                ))

        try:
            await self._run(_op())
        except IntegrityError:
            return False
        return True

    # ─── Helpers ──────────────────────────────────────────────────────────────

    async def _run(self, op: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(op, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise StorageUnavailable(
                f"Store operation exceeded {self._timeout}s"
            ) from exc
        except IntegrityError:
            raise
        except (DBAPIError, OSError) as exc:
            logger.error("Store operation failed for owner %s: %s", self.owner_id, exc)
            raise StorageUnavailable(str(exc)) from exc

    @staticmethod
    def _validate(binding: _Binding, record: Any) -> Any:
        if isinstance(record, binding.schema):
            return record
        return binding.schema.model_validate(record)

    def _to_row(self, binding: _Binding, record: BaseModel) -> Base:
        data = {
            k: (v.value if isinstance(v, enum.Enum) else v)
            for k, v in record.model_dump().items()
        }
        if binding.json_fields:
            data.update(record.model_dump(mode="json", include=set(binding.json_fields)))
        return binding.model(owner_id=self.owner_id, **data)
