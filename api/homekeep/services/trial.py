"""
Trial / subscription state derivation.

Only start_date, end_date, is_pro and cancel_at_period_end are persisted.
is_active and days_left are recomputed on every read so they can never go
stale.
"""
import math
from datetime import datetime, timedelta

from homekeep.core.config import settings
from homekeep.schemas.trial import SubscriptionStatus, TrialRecord, TrialStatus

_DAY = timedelta(days=1)


def new_trial(now: datetime, days: int | None = None) -> TrialRecord:
    """Fresh unpaid evaluation window starting at ``now``."""
    length = settings.trial_days if days is None else days
    return TrialRecord(
        start_date=now,
        end_date=now + timedelta(days=length),
        is_pro=False,
        cancel_at_period_end=False,
    )


def derive_trial_status(now: datetime, trial: TrialRecord) -> TrialStatus:
    if trial.is_pro:
        # Paid accounts have no countdown; renewal is tracked by the provider
        is_active, days_left = True, 0
    else:
        remaining = trial.end_date - now
        days_left = max(0, math.ceil(remaining / _DAY))
        is_active = now <= trial.end_date

    return TrialStatus(
        start_date=trial.start_date,
        end_date=trial.end_date,
        is_pro=trial.is_pro,
        cancel_at_period_end=trial.cancel_at_period_end,
        is_active=is_active,
        days_left=days_left,
    )


def fold_subscription(trial: TrialRecord, status: SubscriptionStatus) -> TrialRecord:
    """Merge a provider subscription check into the stored trial record."""
    if status.active and status.subscription is not None:
        return trial.model_copy(update={
            "is_pro": True,
            "end_date": status.subscription.current_period_end,
            "cancel_at_period_end": status.subscription.cancel_at_period_end,
        })
    if status.active:
        return trial.model_copy(update={"is_pro": True})
    return trial.model_copy(update={"is_pro": False, "cancel_at_period_end": False})
