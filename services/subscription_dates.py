"""Plan duration to end-date arithmetic.

Month additions use ``dateutil.relativedelta``, which clamps to the last day of a shorter
target month: 2024-01-31 + 1 month is 2024-02-29 and + 3 months is 2024-04-30. The time of
day is carried over unchanged. A plan of ``0`` months is a 24-hour trial and always adds
exactly one day.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional, TypeVar

from dateutil.relativedelta import relativedelta

from services.plan_catalog_service import PlanCatalogResolver

DateT = TypeVar("DateT", date, datetime)

TRIAL_DURATION = timedelta(days=1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def parse_date_value(value: object) -> Optional[datetime]:
    """Best-effort parse of a stored date value into an aware datetime. Returns None when unusable."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    text = str(value).strip()
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None
    return ensure_aware(parsed)


def add_plan_duration(start: DateT, months: int) -> DateT:
    if months <= 0:
        return start + TRIAL_DURATION
    return start + relativedelta(months=months)


def compute_end_date_sync(
    resolver: PlanCatalogResolver,
    plan_name: Optional[str],
    start_date: Optional[DateT] = None,
) -> DateT:
    """End date from the built-in table only. Never performs I/O."""
    start = start_date if start_date is not None else utc_now()
    return add_plan_duration(start, resolver.resolve_months_sync(plan_name))


async def compute_end_date(
    resolver: PlanCatalogResolver,
    plan_name: Optional[str],
    start_date: Optional[DateT] = None,
) -> DateT:
    start = start_date if start_date is not None else utc_now()
    months = await resolver.resolve_months(plan_name)
    return add_plan_duration(start, months)


def format_date_for_input(value: date) -> str:
    """``YYYY-MM-DD`` in UTC, as expected by date inputs."""
    if isinstance(value, datetime):
        return ensure_aware(value).astimezone(timezone.utc).date().isoformat()
    return value.isoformat()


__all__ = [
    "TRIAL_DURATION",
    "add_plan_duration",
    "compute_end_date",
    "compute_end_date_sync",
    "ensure_aware",
    "format_date_for_input",
    "parse_date_value",
    "utc_now",
]
