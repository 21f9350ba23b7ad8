"""Plan assignment, renewal and plan edits for subscription accounts."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional, Tuple, Union

from core.status_constants import AccountRole
from services.backend.protocols import AccountRecord, AccountStore
from services.plan_catalog_service import PlanCatalogResolver
from services.status_sync_service import StatusSynchronizer, SyncOutcome
from services.subscription_dates import compute_end_date, parse_date_value, utc_now

logger = logging.getLogger(__name__)

DateValue = Union[date, datetime]


class PlanRequiredError(ValueError):
    """Raised when an end date must be computed but the account has no plan to compute it from."""

    def __init__(self, account_id: str) -> None:
        super().__init__(f"account '{account_id}' has no plan; pass a plan name or an explicit end date")
        self.account_id = account_id


@dataclass
class LifecycleResult:
    record: AccountRecord
    sync: SyncOutcome


class SubscriptionLifecycleService:
    def __init__(
        self,
        store: AccountStore,
        resolver: PlanCatalogResolver,
        synchronizer: StatusSynchronizer,
        *,
        now_fn: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._resolver = resolver
        self._synchronizer = synchronizer
        self._now_fn = now_fn

    async def preview_plan_dates(
        self,
        plan_name: str,
        start_date: Optional[DateValue] = None,
    ) -> Tuple[DateValue, DateValue]:
        start = start_date if start_date is not None else self._now_fn()
        return start, await compute_end_date(self._resolver, plan_name, start)

    def _renewal_start(self, record: AccountRecord) -> datetime:
        now = self._now_fn()
        current_end = parse_date_value(record.end_date)
        if current_end is not None and current_end > now:
            return current_end
        return now

    async def _persist_and_sync(
        self,
        record: AccountRecord,
        *,
        plan_name: Optional[str],
        start_date: Optional[DateValue],
        end_date: DateValue,
    ) -> LifecycleResult:
        updated = await self._store.update_account_plan(
            record.id,
            record.role,
            plan_name=plan_name,
            start_date=start_date,
            end_date=end_date,
        )
        outcome = await self._synchronizer.synchronize(
            updated.id,
            updated.end_date if updated.end_date is not None else end_date,
            updated.stored_status,
            role=record.role,
        )
        return LifecycleResult(record=updated, sync=outcome)

    async def renew(
        self,
        account_id: str,
        role: AccountRole,
        plan_name: str,
        start_date: Optional[DateValue] = None,
    ) -> LifecycleResult:
        """Assign ``plan_name`` and recompute the end date.

        Without an explicit start, an early renewal stacks on the remaining time.
        """
        record = await self._store.get_account(account_id, role)
        start = start_date if start_date is not None else self._renewal_start(record)
        end = await compute_end_date(self._resolver, plan_name, start)
        logger.info("Renewing %s %s on plan '%s' until %s", role.value, account_id, plan_name, end.isoformat())
        return await self._persist_and_sync(record, plan_name=plan_name, start_date=start, end_date=end)

    async def edit_plan(
        self,
        account_id: str,
        role: AccountRole,
        *,
        plan_name: Optional[str] = None,
        end_date: Optional[DateValue] = None,
    ) -> LifecycleResult:
        record = await self._store.get_account(account_id, role)
        new_plan = plan_name or record.plan_name
        plan_changed = plan_name is not None and plan_name != record.plan_name

        start: Optional[DateValue] = None
        if end_date is not None:
            new_end: DateValue = end_date
        elif plan_changed or record.end_date is None:
            if new_plan is None:
                raise PlanRequiredError(account_id)
            start = self._now_fn()
            new_end = await compute_end_date(self._resolver, new_plan, start)
        else:
            new_end = record.end_date

        return await self._persist_and_sync(record, plan_name=new_plan, start_date=start, end_date=new_end)


__all__ = ["LifecycleResult", "PlanRequiredError", "SubscriptionLifecycleService"]
