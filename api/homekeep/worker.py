from celery import Celery
from celery.schedules import crontab

from homekeep.core.config import settings

celery_app = Celery(
    "homekeep",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
)

# ─── Scheduled tasks ──────────────────────────
# The sweep window (settings.reminder_sweep_hours) must match this interval.
celery_app.conf.beat_schedule = {
    "send-due-reminders": {
        "task": "homekeep.services.reminders.send_due_reminders",
        "schedule": crontab(hour=9, minute=0),
    },
}

# Explicitly include task modules so the worker registers them on startup.
# autodiscover_tasks() only looks for a "tasks.py" file, which we don't use.
celery_app.conf.include = [
    "homekeep.services.reminders",
]
