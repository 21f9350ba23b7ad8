"""Lifecycle status derivation from plan end dates."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone, tzinfo
from typing import Optional, Union

from core.status_constants import LifecycleStatus, normalize_stored_status
from services.subscription_dates import ensure_aware, utc_now

DEFAULT_EXPIRING_WINDOW_DAYS = 5


@dataclass(frozen=True)
class StatusInfo:
    status: LifecycleStatus
    is_expired: bool
    days_remaining: int

    def to_dict(self) -> dict:
        return {"status": self.status.value, "isExpired": self.is_expired, "daysRemaining": self.days_remaining}


def _calendar_day(value: Union[date, datetime], tz: tzinfo) -> date:
    if isinstance(value, datetime):
        return ensure_aware(value).astimezone(tz).date()
    return value


def days_between(end_date: Union[date, datetime], now: Optional[datetime] = None, *, tz: Optional[tzinfo] = None) -> int:
    """Whole calendar days from ``now`` to ``end_date``, both normalized to midnight in ``tz``."""
    zone = tz or timezone.utc
    current = now if now is not None else utc_now()
    return (_calendar_day(end_date, zone) - _calendar_day(current, zone)).days


def derive_status(
    end_date: Union[date, datetime],
    stored_status: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> StatusInfo:
    """Derive the canonical status. A stored ``pending`` wins over any date."""

    days_remaining = days_between(end_date, now, tz=tz)
    is_expired = days_remaining < 0
    if normalize_stored_status(stored_status) == LifecycleStatus.PENDING.value:
        status = LifecycleStatus.PENDING
    elif is_expired:
        status = LifecycleStatus.EXPIRED
    else:
        status = LifecycleStatus.ACTIVE
    return StatusInfo(status=status, is_expired=is_expired, days_remaining=days_remaining)


def display_status(info: StatusInfo, *, expiring_window_days: int = DEFAULT_EXPIRING_WINDOW_DAYS) -> LifecycleStatus:
    # UI only: never persisted.
    if info.status is LifecycleStatus.ACTIVE and 0 < info.days_remaining <= expiring_window_days:
        return LifecycleStatus.EXPIRING
    return info.status


def can_access(
    end_date: Union[date, datetime],
    stored_status: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> bool:
    return derive_status(end_date, stored_status, now=now, tz=tz).status is LifecycleStatus.ACTIVE


def access_denied_message(
    end_date: Union[date, datetime],
    stored_status: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> str:
    info = derive_status(end_date, stored_status, now=now, tz=tz)
    if info.status is LifecycleStatus.PENDING:
        return (
            "Tu cuenta está pendiente de activación por el administrador. "
            "Por favor, espera a que tu cuenta sea activada."
        )
    if info.status is LifecycleStatus.EXPIRED:
        return (
            f"Tu plan ha vencido hace {abs(info.days_remaining)} días. "
            "Por favor, contacta al administrador para renovar tu suscripción."
        )
    return "Tu cuenta no está disponible. Por favor, contacta al administrador."


__all__ = [
    "DEFAULT_EXPIRING_WINDOW_DAYS",
    "StatusInfo",
    "access_denied_message",
    "can_access",
    "days_between",
    "derive_status",
    "display_status",
]
