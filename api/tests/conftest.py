"""
Shared fixtures: a throwaway SQLite database file, a controllable clock and a
recording push channel, so tracker tests never touch Postgres, Redis or
the WhatsApp bot.

Run with:
    cd api && python -m pytest tests -v
"""
from datetime import datetime, timedelta, timezone

import pytest

from homekeep.core.database import build_engine
from homekeep.core.errors import NotificationDeliveryFailed
from homekeep.services.notifications import NotificationScheduler, ToastInbox
from homekeep.services.store import Store
from homekeep.services.tracker import HomeTracker

T0 = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)
OWNER = "user-1"


class FakeClock:
    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


class RecordingChannel:
    """Push channel that records messages instead of sending them."""

    name = "fake-push"

    def __init__(self, permitted: bool = True, fail: bool = False):
        self._permitted = permitted
        self.fail = fail
        self.sent: list[tuple[str, str]] = []

    @property
    def permitted(self) -> bool:
        return self._permitted

    def send(self, title: str, body: str) -> None:
        if self.fail:
            raise NotificationDeliveryFailed("push gateway down")
        self.sent.append((title, body))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
async def engine(tmp_path):
    # A file, not :memory:, so concurrent sessions get their own connections
    engine = build_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'homekeep.db'}",
        connect_args={"check_same_thread": False},
    )
    yield engine
    await engine.dispose()


@pytest.fixture
async def store(engine) -> Store:
    store = Store(engine, OWNER)
    await store.init()
    return store


@pytest.fixture
def channel() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
async def scheduler(channel, clock, store):
    scheduler = NotificationScheduler(
        [channel], inbox=ToastInbox(maxlen=10), clock=clock, claim=store.claim_reminder
    )
    yield scheduler
    await scheduler.close()


@pytest.fixture
async def tracker(store, scheduler, clock):
    tracker = HomeTracker(store, scheduler, clock=clock)
    await tracker.init()
    yield tracker
    await tracker.close()
