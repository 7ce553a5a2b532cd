"""
In-process reminder scheduler.

  schedule(key, title, body, at)   at <= now → send in the background; else one-shot timer
  cancel(key)                      drop a pending timer (entity updated/deleted)
  idle()                           wait for sends already under way
  close()                          drop every pending timer (shutdown)

Delivery is best-effort and at-most-once. Before sending, the firing
(key, at) is claimed through ``claim`` (Store.claim_reminder in production);
a firing that was already claimed is skipped, whichever process or sweep
sent it. Push channels are tried in order and any NotificationDeliveryFailed
falls back to the in-app ToastInbox.
Timers live only as long as the process; HomeTracker.init() re-arms them
from stored due dates and the Celery sweep in ``reminders`` covers the gaps.
"""
import asyncio
import logging
import uuid
from collections import deque
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Protocol

from homekeep.core.config import settings
from homekeep.core.errors import HomeKeepError, NotificationDeliveryFailed

logger = logging.getLogger(__name__)

TOAST_CHANNEL = "toast"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ─── Toast inbox ──────────────────────────────────────────────────────────────

@dataclass
class Toast:
    id: str
    title: str
    body: str
    created_at: datetime


class ToastInbox:
    """Bounded in-app fallback channel; oldest toasts drop off first."""

    def __init__(self, maxlen: int | None = None):
        self._toasts: deque[Toast] = deque(maxlen=maxlen or settings.toast_inbox_size)

    def push(self, title: str, body: str, now: datetime) -> Toast:
        toast = Toast(id=str(uuid.uuid4()), title=title, body=body, created_at=now)
        self._toasts.append(toast)
        return toast

    def list(self) -> list[Toast]:
        """Newest first."""
        return list(reversed(self._toasts))

    def dismiss(self, toast_id: str) -> bool:
        for toast in self._toasts:
            if toast.id == toast_id:
                self._toasts.remove(toast)
                return True
        return False

    def clear(self) -> None:
        self._toasts.clear()


# ─── Push channels ────────────────────────────────────────────────────────────

class PushChannel(Protocol):
    name: str

    @property
    def permitted(self) -> bool: ...

    def send(self, title: str, body: str) -> None: ...


# ─── Scheduler ────────────────────────────────────────────────────────────────

ClaimFn = Callable[[str, datetime], Awaitable[bool]]


class NotificationScheduler:
    def __init__(
        self,
        channels: Iterable[PushChannel] = (),
        inbox: ToastInbox | None = None,
        clock: Callable[[], datetime] = utcnow,
        claim: ClaimFn | None = None,
    ):
        self._channels = list(channels)
        self.inbox = inbox if inbox is not None else ToastInbox()
        self._clock = clock
        self._claim = claim
        self._timers: dict[str, asyncio.Task] = {}
        self._inflight: set[asyncio.Task] = set()

    async def schedule(self, key: str, title: str, body: str, at: datetime) -> None:
        """Arm (or re-arm) the reminder identified by ``key``. Never waits on delivery."""
        self.cancel(key)
        delay = (at - self._clock()).total_seconds()
        if delay <= 0:
            send = asyncio.create_task(self._send(key, title, body, at), name=f"reminder-now:{key}")
            self._inflight.add(send)
            send.add_done_callback(self._collect)
            return

        timer = asyncio.create_task(
            self._fire_later(delay, key, title, body, at), name=f"reminder:{key}"
        )
        self._timers[key] = timer
        timer.add_done_callback(lambda t, k=key: self._forget(k, t))
        logger.debug("Reminder %s armed for %s", key, at.isoformat())

    def cancel(self, key: str) -> bool:
        timer = self._timers.pop(key, None)
        if timer is None:
            return False
        timer.cancel()
        return True

    def pending(self) -> set[str]:
        return set(self._timers)

    async def idle(self) -> None:
        """Wait for deliveries already under way (not for future timers)."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def close(self) -> None:
        timers = list(self._timers.values())
        self._timers.clear()
        for timer in timers:
            timer.cancel()
        await asyncio.gather(*timers, *list(self._inflight), return_exceptions=True)

    async def deliver(self, title: str, body: str) -> str:
        """Send through the first permitted push channel, else the toast inbox."""
        for channel in self._channels:
            if not channel.permitted:
                continue
            try:
                await asyncio.to_thread(channel.send, title, body)
                return channel.name
            except NotificationDeliveryFailed as exc:
                logger.warning("Reminder via %s failed, falling back: %s", channel.name, exc)

        self.inbox.push(title, body, self._clock())
        return TOAST_CHANNEL

    async def _send(self, key: str, title: str, body: str, at: datetime) -> str | None:
        if self._claim is not None:
            try:
                if not await self._claim(key, at):
                    logger.debug("Reminder %s for %s already sent", key, at.isoformat())
                    return None
            except HomeKeepError as exc:
                logger.warning("Reminder %s skipped, delivery record unavailable: %s", key, exc)
                return None
        return await self.deliver(title, body)

    async def _fire_later(self, delay: float, key: str, title: str, body: str, at: datetime) -> None:
        await asyncio.sleep(delay)
        await self._send(key, title, body, at)

    def _forget(self, key: str, timer: asyncio.Task) -> None:
        if self._timers.get(key) is timer:
            del self._timers[key]

    def _collect(self, send: asyncio.Task) -> None:
        self._inflight.discard(send)
        if not send.cancelled() and send.exception() is not None:
            logger.error("Reminder delivery %s crashed: %r", send.get_name(), send.exception())
