"""Storage contracts the lifecycle services are written against.

The hosted backend owns the actual tables, RPC functions and row-level security. These
protocols describe only the capabilities the subscription lifecycle needs from it:

* ``PlanLookup``: resolve a custom plan's duration by name.
* ``AccountStore``: the canonical cross-table status write, the direct per-table writes
  used as best-effort fallbacks, and bulk/single reads of subscription accounts.
* ``PlanCatalogStore``: CRUD for admin-defined plans.

Accounts are addressed by ``id`` only. Older reseller rows also carry ``user_id``; reconciling
the two columns is a schema cleanup for the backend, not something these contracts paper over.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, List, Optional, Protocol, Union

from core.status_constants import AccountRole, StorageStatus

DateLike = Union[date, datetime]


class RecordNotFoundError(LookupError):
    """Raised when the storage layer cannot resolve the targeted account or plan."""

    def __init__(self, record_id: str, *, kind: str = "account") -> None:
        super().__init__(f"{kind} '{record_id}' was not found")
        self.record_id = record_id
        self.kind = kind


@dataclass(slots=True)
class AccountRecord:
    id: str
    role: AccountRole
    plan_name: Optional[str]
    end_date: Optional[DateLike]
    stored_status: Optional[str]
    start_date: Optional[DateLike] = None
    display_name: Optional[str] = None


@dataclass(slots=True)
class PlanRecord:
    name: str
    months: int
    price: float = 0.0
    is_custom: bool = True
    id: Optional[str] = None


class PlanLookup(Protocol):
    async def get_months_for_plan(self, name: str) -> Optional[int]:
        ...


class AccountStore(Protocol):
    async def update_account_status(self, account_id: str, role: AccountRole, status: StorageStatus) -> Any:
        """Canonical write updating profile and role records together. Returns the raw success signal."""
        ...

    async def update_profile_status(self, account_id: str, status: StorageStatus) -> None:
        ...

    async def update_role_status(self, account_id: str, role: AccountRole, status: StorageStatus) -> None:
        ...

    async def get_account(self, account_id: str, role: AccountRole) -> AccountRecord:
        ...

    async def list_accounts_with_end_date(self, role: AccountRole) -> List[AccountRecord]:
        ...

    async def list_accounts(self, role: AccountRole) -> List[AccountRecord]:
        ...

    async def update_account_plan(
        self,
        account_id: str,
        role: AccountRole,
        *,
        plan_name: Optional[str],
        start_date: Optional[DateLike],
        end_date: DateLike,
    ) -> AccountRecord:
        ...

    async def count_plan_usage(self, plan_name: str) -> int:
        ...


class PlanCatalogStore(Protocol):
    async def list_custom_plans(self) -> List[PlanRecord]:
        ...

    async def insert_plan(self, plan: PlanRecord) -> PlanRecord:
        ...

    async def delete_plan(self, name: str) -> bool:
        ...


__all__ = [
    "AccountRecord",
    "AccountStore",
    "DateLike",
    "PlanCatalogStore",
    "PlanLookup",
    "PlanRecord",
    "RecordNotFoundError",
]
