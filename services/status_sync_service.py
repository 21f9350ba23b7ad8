"""Status write-back for subscription accounts and the reconciliation sweep."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Sequence, Tuple, Union

from core.status_constants import (
    SUPPORTED_ROLES,
    AccountRole,
    LifecycleStatus,
    StorageStatus,
    is_lapsed_status,
    normalize_stored_status,
    to_storage_status,
)
from services.backend.protocols import AccountRecord, AccountStore, RecordNotFoundError
from services.status_service import StatusInfo, derive_status
from services.subscription_dates import utc_now

logger = logging.getLogger(__name__)


class SyncError(RuntimeError):
    """Raised when the canonical status write fails or reports anything other than success."""

    def __init__(self, account_id: str, signal: Any, message: Optional[str] = None) -> None:
        super().__init__(message or f"status update for '{account_id}' was not confirmed (signal={signal!r})")
        self.account_id = account_id
        self.signal = signal


@dataclass(frozen=True)
class SideEffectFailure:
    name: str
    error: str


@dataclass
class SyncOutcome:
    account_id: str
    role: AccountRole
    info: StatusInfo
    written_status: StorageStatus
    signal: Any = None
    side_effect_failures: List[SideEffectFailure] = field(default_factory=list)

    @property
    def status(self) -> LifecycleStatus:
        return self.info.status


SideEffect = Tuple[str, Callable[[], Awaitable[Any]]]

_LIFECYCLE_FOR_STORAGE = {
    StorageStatus.PENDING: LifecycleStatus.PENDING,
    StorageStatus.ACTIVE: LifecycleStatus.ACTIVE,
    StorageStatus.INACTIVE: LifecycleStatus.EXPIRED,
}


class StatusSynchronizer:
    """Derive an account's status and persist it.

    The store's ``update_account_status`` is the one canonical write. Direct table writes
    kept for partially migrated schemas run first as best-effort side effects: their
    failures are logged and recorded on the outcome but never raised.
    """

    def __init__(
        self,
        store: AccountStore,
        *,
        tz: Optional[tzinfo] = None,
        now_fn: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._tz = tz or timezone.utc
        self._now_fn = now_fn

    def derive(self, end_date: Union[date, datetime], stored_status: Optional[str] = None) -> StatusInfo:
        return derive_status(end_date, stored_status, now=self._now_fn(), tz=self._tz)

    def _side_effects(self, account_id: str, role: AccountRole, status: StorageStatus) -> List[SideEffect]:
        if role is not AccountRole.RESELLER:
            return []
        return [
            ("profiles.status", lambda: self._store.update_profile_status(account_id, status)),
            ("resellers.status", lambda: self._store.update_role_status(account_id, role, status)),
        ]

    async def _run_side_effects(self, account_id: str, effects: Iterable[SideEffect]) -> List[SideEffectFailure]:
        failures: List[SideEffectFailure] = []
        for name, effect in effects:
            try:
                await effect()
            except Exception as exc:  # best-effort
                logger.warning("Ancillary status write %s failed for %s: %s", name, account_id, exc)
                failures.append(SideEffectFailure(name=name, error=str(exc) or exc.__class__.__name__))
        return failures

    async def _write_status(
        self,
        account_id: str,
        role: AccountRole,
        target: StorageStatus,
    ) -> Tuple[Any, List[SideEffectFailure]]:
        failures = await self._run_side_effects(account_id, self._side_effects(account_id, role, target))

        try:
            signal = await self._store.update_account_status(account_id, role, target)
        except RecordNotFoundError:
            raise
        except Exception as exc:
            logger.error("Canonical status write failed for %s %s: %s", role.value, account_id, exc)
            raise SyncError(account_id, None, f"status update for '{account_id}' failed: {exc}") from exc

        if signal is not True:
            logger.error("Canonical status write for %s %s returned %r", role.value, account_id, signal)
            raise SyncError(account_id, signal)
        return signal, failures

    async def synchronize(
        self,
        account_id: str,
        end_date: Union[date, datetime],
        current_stored_status: Optional[str] = None,
        *,
        role: AccountRole = AccountRole.RESELLER,
    ) -> SyncOutcome:
        info = self.derive(end_date, current_stored_status)
        target = to_storage_status(info.status)

        signal, failures = await self._write_status(account_id, role, target)

        logger.info("Synchronized %s %s to %s", role.value, account_id, target.value)
        return SyncOutcome(
            account_id=account_id,
            role=role,
            info=info,
            written_status=target,
            signal=signal,
            side_effect_failures=failures,
        )

    async def synchronize_account(self, account_id: str, role: AccountRole = AccountRole.RESELLER) -> SyncOutcome:
        record = await self._store.get_account(account_id, role)
        if record.end_date is None:
            raise RecordNotFoundError(account_id, kind=f"{role.value} end date")
        return await self.synchronize(account_id, record.end_date, record.stored_status, role=role)

    async def set_status(self, account_id: str, role: AccountRole, status: StorageStatus) -> SyncOutcome:
        """Write an administrator-chosen status, e.g. activating a ``pending`` account.

        Goes through the same ancillary writes and canonical write as :meth:`synchronize`.
        Later sweeps still reconcile the new status against the plan end date.
        """
        target = StorageStatus(status)
        record = await self._store.get_account(account_id, role)

        signal, failures = await self._write_status(account_id, role, target)

        if record.end_date is not None:
            info = self.derive(record.end_date, target.value)
        else:
            info = StatusInfo(
                status=_LIFECYCLE_FOR_STORAGE[target],
                is_expired=target is StorageStatus.INACTIVE,
                days_remaining=0,
            )
        logger.info("Set %s %s status to %s", role.value, account_id, target.value)
        return SyncOutcome(
            account_id=account_id,
            role=role,
            info=info,
            written_status=target,
            signal=signal,
            side_effect_failures=failures,
        )

    def needs_sync(self, record: AccountRecord) -> bool:
        if record.end_date is None:
            return False
        info = self.derive(record.end_date, record.stored_status)
        lapsed = is_lapsed_status(record.stored_status)
        if info.is_expired == lapsed:
            return False
        return to_storage_status(info.status).value != normalize_stored_status(record.stored_status)

    async def sweep_all(self, roles: Optional[Sequence[AccountRole]] = None) -> int:
        """Reconcile every account with an end date. Returns how many were changed."""

        changed = 0
        failed = 0
        for role in roles or SUPPORTED_ROLES:
            records = await self._store.list_accounts_with_end_date(role)
            for record in records:
                if not self.needs_sync(record):
                    continue
                try:
                    await self.synchronize(record.id, record.end_date, record.stored_status, role=role)
                except Exception as exc:
                    failed += 1
                    logger.warning("Sweep could not synchronize %s %s: %s", role.value, record.id, exc)
                    continue
                changed += 1
        logger.info("Status sweep finished: %d changed, %d failed", changed, failed)
        return changed


__all__ = [
    "SideEffectFailure",
    "StatusSynchronizer",
    "SyncError",
    "SyncOutcome",
]
