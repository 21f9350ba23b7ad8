"""Dashboard counters and alerts over subscription accounts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Any, Dict, Iterable, List, Optional

from core.status_constants import LifecycleStatus
from services.backend.protocols import AccountRecord
from services.status_service import DEFAULT_EXPIRING_WINDOW_DAYS, derive_status, display_status
from services.subscription_dates import format_date_for_input, utc_now


@dataclass
class AccountSummary:
    total: int = 0
    active: int = 0
    pending: int = 0
    expiring_soon: int = 0
    expired: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "active": self.active,
            "pending": self.pending,
            "expiringSoon": self.expiring_soon,
            "expired": self.expired,
        }


@dataclass
class LifecycleAlert:
    id: str
    type: str
    title: str
    message: str
    severity: str
    timestamp: datetime
    metadata: Dict[str, Any] = field(default_factory=dict)


def summarize_accounts(
    records: Iterable[AccountRecord],
    *,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
    expiring_window_days: int = DEFAULT_EXPIRING_WINDOW_DAYS,
) -> AccountSummary:
    current = now or utc_now()
    summary = AccountSummary()
    for record in records:
        summary.total += 1
        if record.end_date is None:
            if (record.stored_status or "").strip().lower() == LifecycleStatus.PENDING.value:
                summary.pending += 1
            continue
        info = derive_status(record.end_date, record.stored_status, now=current, tz=tz)
        if info.status is LifecycleStatus.PENDING:
            summary.pending += 1
        elif info.status is LifecycleStatus.EXPIRED:
            summary.expired += 1
        else:
            summary.active += 1
            if display_status(info, expiring_window_days=expiring_window_days) is LifecycleStatus.EXPIRING:
                summary.expiring_soon += 1
    return summary


def _label(record: AccountRecord) -> str:
    return record.display_name or record.id


def build_lifecycle_alerts(
    records: Iterable[AccountRecord],
    *,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
    expiring_window_days: int = DEFAULT_EXPIRING_WINDOW_DAYS,
) -> List[LifecycleAlert]:
    current = now or utc_now()
    alerts: List[LifecycleAlert] = []
    for record in records:
        stored = (record.stored_status or "").strip().lower()
        if stored == LifecycleStatus.PENDING.value:
            alerts.append(
                LifecycleAlert(
                    id=f"pending-{record.id}",
                    type="demo",
                    title="Usuario Pendiente de Activación",
                    message=f"{_label(record)} está pendiente de activación.",
                    severity="high",
                    timestamp=current,
                    metadata={"role": record.role.value},
                )
            )
            continue
        if record.end_date is None:
            continue
        info = derive_status(record.end_date, record.stored_status, now=current, tz=tz)
        if display_status(info, expiring_window_days=expiring_window_days) is LifecycleStatus.EXPIRING:
            alerts.append(
                LifecycleAlert(
                    id=f"expiring-{record.id}",
                    type="expiring",
                    title="Suscripción Próxima a Vencer",
                    message=f"La suscripción de {_label(record)} vence el {format_date_for_input(record.end_date)}.",
                    severity="medium",
                    timestamp=current,
                    metadata={"role": record.role.value, "daysRemaining": info.days_remaining},
                )
            )
    alerts.sort(key=lambda alert: (0 if alert.severity == "high" else 1, alert.id))
    return alerts


__all__ = [
    "AccountSummary",
    "LifecycleAlert",
    "build_lifecycle_alerts",
    "summarize_accounts",
]
