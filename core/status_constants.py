"""Lifecycle status, storage status and role constants shared across services."""

from __future__ import annotations

from enum import Enum
from typing import Optional, Sequence


class LifecycleStatus(str, Enum):
    """Status derived from plan dates. ``EXPIRING`` is a display-only classification."""

    PENDING = "pending"
    ACTIVE = "active"
    EXPIRING = "expiring"
    EXPIRED = "expired"

    def __str__(self) -> str:  # pragma: no cover - convenience
        return self.value


class StorageStatus(str, Enum):
    """Values the backend accepts in its ``status`` columns."""

    PENDING = "pending"
    ACTIVE = "active"
    INACTIVE = "inactive"

    def __str__(self) -> str:  # pragma: no cover - convenience
        return self.value


class AccountRole(str, Enum):
    RESELLER = "reseller"
    CLIENT = "client"

    def __str__(self) -> str:  # pragma: no cover - convenience
        return self.value


SUPPORTED_ROLES: Sequence[AccountRole] = tuple(AccountRole)

# Stored values that mean "the plan has lapsed". Older rows still carry the literal "expired".
LAPSED_STORED_STATUSES = frozenset({"expired", StorageStatus.INACTIVE.value})

TRIAL_PLAN_NAME = "Demo (24 Hrs)"
DEFAULT_PLAN_MONTHS = 1


def to_storage_status(status: LifecycleStatus) -> StorageStatus:
    """Map a derived status onto the value persisted by the backend.

    This is the only place ``expired`` becomes ``inactive``; it is applied at the write
    boundary and nowhere else.
    """

    if status is LifecycleStatus.PENDING:
        return StorageStatus.PENDING
    if status is LifecycleStatus.EXPIRED:
        return StorageStatus.INACTIVE
    return StorageStatus.ACTIVE


def normalize_stored_status(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    normalized = str(value).strip().lower()
    return normalized or None


def is_lapsed_status(value: Optional[str]) -> bool:
    return normalize_stored_status(value) in LAPSED_STORED_STATUSES


__all__ = [
    "AccountRole",
    "DEFAULT_PLAN_MONTHS",
    "LAPSED_STORED_STATUSES",
    "LifecycleStatus",
    "SUPPORTED_ROLES",
    "StorageStatus",
    "TRIAL_PLAN_NAME",
    "is_lapsed_status",
    "normalize_stored_status",
    "to_storage_status",
]
