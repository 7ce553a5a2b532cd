"""
Recurring-task due-date engine: pure functions, no DB.

Due dates advance by calendar units, not fixed second counts: "every month"
from Jan 31 lands on the last day of February, and "every year" from Feb 29
lands on Feb 28 in non-leap years. Dates are always computed from the
completion date, so repeated completions never drift.
"""
import math
from collections import defaultdict
from collections.abc import Iterable
from datetime import datetime, timezone

from dateutil.relativedelta import relativedelta

from homekeep.core.errors import InvalidFrequencyUnit
from homekeep.schemas.common import Frequency, FrequencyUnit

# ─── Priority thresholds (days until due) ─────────────────────────────────────

HIGH_PRIORITY_DAYS = 7
MEDIUM_PRIORITY_DAYS = 30

PRIORITY_LEVELS = ("overdue", "high", "medium", "low")

_SECONDS_PER_DAY = 24 * 60 * 60


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _delta(value: int, unit: FrequencyUnit | str) -> relativedelta:
    try:
        unit = FrequencyUnit(unit)
    except ValueError:
        raise InvalidFrequencyUnit(unit) from None

    if unit is FrequencyUnit.DAYS:
        return relativedelta(days=value)
    if unit is FrequencyUnit.WEEKS:
        return relativedelta(days=value * 7)
    if unit is FrequencyUnit.MONTHS:
        return relativedelta(months=value)
    return relativedelta(years=value)


def compute_next_due(completed_date: datetime, frequency: Frequency) -> datetime:
    """Return ``completed_date`` advanced by one period of ``frequency`` (UTC)."""
    return _as_utc(completed_date) + _delta(frequency.value, frequency.unit)


def describe_frequency(frequency: Frequency) -> str:
    """Human label: ``Every month``, ``Every 3 months``."""
    unit = FrequencyUnit(frequency.unit).value
    if frequency.value == 1:
        return f"Every {unit[:-1]}"
    return f"Every {frequency.value} {unit}"


def priority_level(next_due: datetime, now: datetime) -> str:
    """Bucket a due date: overdue | high (<7 days) | medium (<30 days) | low."""
    days_until_due = math.floor(
        (_as_utc(next_due) - _as_utc(now)).total_seconds() / _SECONDS_PER_DAY
    )
    if days_until_due < 0:
        return "overdue"
    if days_until_due < HIGH_PRIORITY_DAYS:
        return "high"
    if days_until_due < MEDIUM_PRIORITY_DAYS:
        return "medium"
    return "low"


def group_by_priority(tasks: Iterable, now: datetime) -> dict[str, list]:
    """Group anything with a ``next_due`` attribute by priority level."""
    groups: dict[str, list] = defaultdict(list)
    for task in tasks:
        groups[priority_level(task.next_due, now)].append(task)
    return dict(groups)
