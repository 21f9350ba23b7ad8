"""Account and plan storage bound directly to the backend's SQL tables."""

from __future__ import annotations

import asyncio
import logging
from datetime import date, datetime, time, timezone
from typing import Any, Callable, List, Optional, Type, Union

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from core.status_constants import AccountRole, StorageStatus
from models.client import Client
from models.profile import Profile
from models.reseller import Reseller
from models.subscription_plan import SubscriptionPlan
from services.backend.protocols import AccountRecord, DateLike, PlanRecord, RecordNotFoundError

logger = logging.getLogger(__name__)

RoleModel = Union[Type[Reseller], Type[Client]]


class SqlStoreError(RuntimeError):
    """Raised when the SQL binding cannot complete an operation."""


def _model_for(role: AccountRole) -> RoleModel:
    return Reseller if role is AccountRole.RESELLER else Client


def _as_datetime(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _as_date(value: DateLike) -> date:
    return value.date() if isinstance(value, datetime) else value


def _to_record(row: Any, role: AccountRole) -> AccountRecord:
    if role is AccountRole.RESELLER:
        return AccountRecord(
            id=row.id,
            role=role,
            plan_name=row.plan_type,
            end_date=row.plan_end_date,
            stored_status=row.status,
            display_name=row.full_name,
        )
    return AccountRecord(
        id=row.id,
        role=role,
        plan_name=row.plan,
        end_date=row.end_date,
        stored_status=row.status,
        start_date=row.start_date,
        display_name=row.name,
    )


class SqlAccountStore:
    """SQLAlchemy implementation of the account, plan lookup and catalog contracts."""

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None) -> None:
        if session_factory is None:
            from database import SessionLocal

            session_factory = SessionLocal
        self._session_factory = session_factory

    async def _run(self, func_: Callable[[Session], Any]) -> Any:
        def _task() -> Any:
            session = self._session_factory()
            try:
                result = func_(session)
                session.commit()
                return result
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

        return await asyncio.to_thread(_task)

    # Status writes -----------------------------------------------------------

    async def update_account_status(self, account_id: str, role: AccountRole, status: StorageStatus) -> Any:
        value = StorageStatus(status).value
        model = _model_for(role)

        def _write(session: Session) -> bool:
            result = session.execute(update(model).where(model.id == account_id).values(status=value))
            if not result.rowcount:
                raise RecordNotFoundError(account_id, kind=role.value)
            if role is AccountRole.RESELLER:
                session.execute(update(Profile).where(Profile.id == account_id).values(status=value))
            return True

        return await self._run(_write)

    async def update_profile_status(self, account_id: str, status: StorageStatus) -> None:
        value = StorageStatus(status).value
        await self._run(
            lambda session: session.execute(update(Profile).where(Profile.id == account_id).values(status=value))
        )

    async def update_role_status(self, account_id: str, role: AccountRole, status: StorageStatus) -> None:
        value = StorageStatus(status).value
        model = _model_for(role)
        await self._run(
            lambda session: session.execute(update(model).where(model.id == account_id).values(status=value))
        )

    # Account reads -----------------------------------------------------------

    async def get_account(self, account_id: str, role: AccountRole) -> AccountRecord:
        model = _model_for(role)

        def _read(session: Session) -> AccountRecord:
            row = session.get(model, account_id)
            if row is None:
                raise RecordNotFoundError(account_id, kind=role.value)
            return _to_record(row, role)

        return await self._run(_read)

    async def list_accounts_with_end_date(self, role: AccountRole) -> List[AccountRecord]:
        model = _model_for(role)
        end_column = Reseller.plan_end_date if role is AccountRole.RESELLER else Client.end_date

        def _read(session: Session) -> List[AccountRecord]:
            rows = session.execute(select(model).where(end_column.isnot(None))).scalars().all()
            return [_to_record(row, role) for row in rows]

        return await self._run(_read)

    async def list_accounts(self, role: AccountRole) -> List[AccountRecord]:
        model = _model_for(role)

        def _read(session: Session) -> List[AccountRecord]:
            rows = session.execute(select(model)).scalars().all()
            return [_to_record(row, role) for row in rows]

        return await self._run(_read)

    async def update_account_plan(
        self,
        account_id: str,
        role: AccountRole,
        *,
        plan_name: Optional[str],
        start_date: Optional[DateLike],
        end_date: DateLike,
    ) -> AccountRecord:
        model = _model_for(role)

        def _write(session: Session) -> AccountRecord:
            row = session.get(model, account_id)
            if row is None:
                raise RecordNotFoundError(account_id, kind=role.value)
            if role is AccountRole.RESELLER:
                if plan_name is not None:
                    row.plan_type = plan_name
                row.plan_end_date = _as_datetime(end_date)
            else:
                if plan_name is not None:
                    row.plan = plan_name
                row.end_date = _as_date(end_date)
                if start_date is not None:
                    row.start_date = _as_date(start_date)
            session.flush()
            return _to_record(row, role)

        return await self._run(_write)

    async def count_plan_usage(self, plan_name: str) -> int:
        def _count(session: Session) -> int:
            clients = session.execute(select(func.count()).select_from(Client).where(Client.plan == plan_name)).scalar()
            resellers = session.execute(
                select(func.count()).select_from(Reseller).where(Reseller.plan_type == plan_name)
            ).scalar()
            return int(clients or 0) + int(resellers or 0)

        return await self._run(_count)

    # Plan catalog ------------------------------------------------------------

    async def get_months_for_plan(self, name: str) -> Optional[int]:
        def _read(session: Session) -> Optional[int]:
            months = session.execute(select(SubscriptionPlan.months).where(SubscriptionPlan.name == name)).scalar()
            return int(months) if months is not None else None

        try:
            return await self._run(_read)
        except SQLAlchemyError as exc:
            raise SqlStoreError(f"plan lookup failed for '{name}'") from exc

    async def list_custom_plans(self) -> List[PlanRecord]:
        def _read(session: Session) -> List[PlanRecord]:
            rows = session.execute(select(SubscriptionPlan).order_by(SubscriptionPlan.months.asc())).scalars().all()
            return [
                PlanRecord(
                    id=row.id,
                    name=row.name,
                    months=int(row.months),
                    price=float(row.price or 0),
                    is_custom=bool(row.is_custom),
                )
                for row in rows
            ]

        return await self._run(_read)

    async def insert_plan(self, plan: PlanRecord) -> PlanRecord:
        def _write(session: Session) -> PlanRecord:
            row = SubscriptionPlan(name=plan.name, months=plan.months, price=plan.price, is_custom=plan.is_custom)
            session.add(row)
            session.flush()
            return PlanRecord(
                id=row.id,
                name=row.name,
                months=int(row.months),
                price=float(row.price or 0),
                is_custom=bool(row.is_custom),
            )

        try:
            return await self._run(_write)
        except IntegrityError as exc:
            raise SqlStoreError(f"plan '{plan.name}' could not be inserted") from exc

    async def delete_plan(self, name: str) -> bool:
        def _delete(session: Session) -> bool:
            row = session.execute(
                select(SubscriptionPlan).where(SubscriptionPlan.name == name, SubscriptionPlan.is_custom.is_(True))
            ).scalar_one_or_none()
            if row is None:
                return False
            session.delete(row)
            return True

        return await self._run(_delete)


__all__ = ["SqlAccountStore", "SqlStoreError"]
