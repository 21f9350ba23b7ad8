"""Account and plan storage backed by the hosted REST API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Mapping, Optional

from core.status_constants import AccountRole, StorageStatus
from services.backend.protocols import AccountRecord, DateLike, PlanRecord, RecordNotFoundError
from services.backend.supabase_client import BackendError, SupabaseRestClient, eq

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"
PLANS_TABLE = "subscription_plans"


@dataclass(frozen=True)
class RoleTable:
    """Column layout of a role-specific table."""

    table: str
    plan_column: str
    end_column: str
    start_column: Optional[str]
    name_column: str
    date_only: bool


ROLE_TABLES: Mapping[AccountRole, RoleTable] = {
    AccountRole.RESELLER: RoleTable(
        table="resellers",
        plan_column="plan_type",
        end_column="plan_end_date",
        start_column=None,
        name_column="full_name",
        date_only=False,
    ),
    AccountRole.CLIENT: RoleTable(
        table="clients",
        plan_column="plan",
        end_column="fecha_fin",
        start_column="fecha_inicio",
        name_column="cliente",
        date_only=True,
    ),
}


def _serialize_date(value: Optional[DateLike], *, date_only: bool) -> Optional[str]:
    if value is None:
        return None
    if date_only and isinstance(value, datetime):
        return value.date().isoformat()
    return value.isoformat()


def _parse_date(value: Any) -> Optional[DateLike]:
    if value in (None, ""):
        return None
    if isinstance(value, (date, datetime)):
        return value
    text = str(value).strip()
    try:
        if len(text) == 10:
            return date.fromisoformat(text)
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        logger.warning("Unparseable date value from backend: %r", value)
        return None


class RestAccountStore:
    """``AccountStore``/``PlanLookup``/``PlanCatalogStore`` over ``/rest/v1``."""

    def __init__(
        self,
        client: SupabaseRestClient,
        *,
        status_rpc: str = "update_user_status",
        plan_months_rpc: str = "get_plan_months",
    ) -> None:
        self._client = client
        self._status_rpc = status_rpc
        self._plan_months_rpc = plan_months_rpc

    def _row_to_record(self, row: Mapping[str, Any], role: AccountRole) -> AccountRecord:
        layout = ROLE_TABLES[role]
        return AccountRecord(
            id=str(row.get("id")),
            role=role,
            plan_name=row.get(layout.plan_column),
            end_date=_parse_date(row.get(layout.end_column)),
            stored_status=row.get("status"),
            start_date=_parse_date(row.get(layout.start_column)) if layout.start_column else None,
            display_name=row.get(layout.name_column),
        )

    def _columns(self, role: AccountRole) -> str:
        layout = ROLE_TABLES[role]
        columns = ["id", layout.plan_column, layout.end_column, "status", layout.name_column]
        if layout.start_column:
            columns.append(layout.start_column)
        return ",".join(columns)

    # Status writes -----------------------------------------------------------

    async def update_account_status(self, account_id: str, role: AccountRole, status: StorageStatus) -> Any:
        if role is AccountRole.RESELLER:
            signal = await self._client.rpc(
                self._status_rpc,
                {"input_user_id": account_id, "new_status": StorageStatus(status).value},
            )
            # The RPC answers false for unknown ids too.
            if signal is not True and not await self._exists(account_id, role):
                raise RecordNotFoundError(account_id, kind=role.value)
            return signal
        layout = ROLE_TABLES[role]
        rows = await self._client.update(
            layout.table,
            {"status": StorageStatus(status).value},
            filters={"id": eq(account_id)},
        )
        if not rows:
            raise RecordNotFoundError(account_id, kind=role.value)
        return True

    async def update_profile_status(self, account_id: str, status: StorageStatus) -> None:
        await self._client.update(
            PROFILES_TABLE,
            {"status": StorageStatus(status).value},
            filters={"id": eq(account_id)},
        )

    async def update_role_status(self, account_id: str, role: AccountRole, status: StorageStatus) -> None:
        await self._client.update(
            ROLE_TABLES[role].table,
            {"status": StorageStatus(status).value},
            filters={"id": eq(account_id)},
        )

    # Account reads -----------------------------------------------------------

    async def _exists(self, account_id: str, role: AccountRole) -> bool:
        rows = await self._client.select(
            ROLE_TABLES[role].table,
            columns="id",
            filters={"id": eq(account_id)},
            limit=1,
        )
        return bool(rows)

    async def get_account(self, account_id: str, role: AccountRole) -> AccountRecord:
        rows = await self._client.select(
            ROLE_TABLES[role].table,
            columns=self._columns(role),
            filters={"id": eq(account_id)},
            limit=1,
        )
        if not rows:
            raise RecordNotFoundError(account_id, kind=role.value)
        return self._row_to_record(rows[0], role)

    async def list_accounts_with_end_date(self, role: AccountRole) -> List[AccountRecord]:
        layout = ROLE_TABLES[role]
        rows = await self._client.select(
            layout.table,
            columns=self._columns(role),
            filters={layout.end_column: "not.is.null"},
        )
        return [self._row_to_record(row, role) for row in rows]

    async def list_accounts(self, role: AccountRole) -> List[AccountRecord]:
        rows = await self._client.select(ROLE_TABLES[role].table, columns=self._columns(role))
        return [self._row_to_record(row, role) for row in rows]

    async def update_account_plan(
        self,
        account_id: str,
        role: AccountRole,
        *,
        plan_name: Optional[str],
        start_date: Optional[DateLike],
        end_date: DateLike,
    ) -> AccountRecord:
        layout = ROLE_TABLES[role]
        values: Dict[str, Any] = {layout.end_column: _serialize_date(end_date, date_only=layout.date_only)}
        if plan_name is not None:
            values[layout.plan_column] = plan_name
        if layout.start_column and start_date is not None:
            values[layout.start_column] = _serialize_date(start_date, date_only=layout.date_only)
        rows = await self._client.update(layout.table, values, filters={"id": eq(account_id)})
        if not rows:
            raise RecordNotFoundError(account_id, kind=role.value)
        return self._row_to_record(rows[0], role)

    async def count_plan_usage(self, plan_name: str) -> int:
        total = 0
        for layout in ROLE_TABLES.values():
            rows = await self._client.select(
                layout.table,
                columns="id",
                filters={layout.plan_column: eq(plan_name)},
            )
            total += len(rows)
        return total

    # Plan catalog ------------------------------------------------------------

    async def get_months_for_plan(self, name: str) -> Optional[int]:
        try:
            result = await self._client.rpc(self._plan_months_rpc, {"plan_name": name})
        except BackendError as exc:
            if exc.status_code == 404:
                return None
            raise
        if result is None:
            return None
        if isinstance(result, list):
            result = result[0] if result else None
            if isinstance(result, Mapping):
                result = next(iter(result.values()), None)
        if isinstance(result, bool):
            return None
        try:
            return int(result)
        except (TypeError, ValueError):
            logger.warning("Plan months RPC returned a non-integer for %r: %r", name, result)
            return None

    async def list_custom_plans(self) -> List[PlanRecord]:
        rows = await self._client.select(
            PLANS_TABLE,
            columns="id,name,months,price,is_custom",
            order="months.asc",
        )
        return [
            PlanRecord(
                id=str(row.get("id")) if row.get("id") is not None else None,
                name=str(row.get("name")),
                months=int(row.get("months") or 0),
                price=float(row.get("price") or 0),
                is_custom=bool(row.get("is_custom", True)),
            )
            for row in rows
        ]

    async def insert_plan(self, plan: PlanRecord) -> PlanRecord:
        created = await self._client.insert(
            PLANS_TABLE,
            [{"name": plan.name, "months": plan.months, "price": plan.price, "is_custom": plan.is_custom}],
        )
        if created:
            row = created[0]
            return PlanRecord(
                id=str(row.get("id")) if row.get("id") is not None else None,
                name=str(row.get("name", plan.name)),
                months=int(row.get("months", plan.months)),
                price=float(row.get("price", plan.price) or 0),
                is_custom=bool(row.get("is_custom", plan.is_custom)),
            )
        return plan

    async def delete_plan(self, name: str) -> bool:
        rows = await self._client.delete(
            PLANS_TABLE,
            filters={"name": eq(name), "is_custom": "is.true"},
        )
        return bool(rows)


__all__ = ["ROLE_TABLES", "RestAccountStore", "RoleTable"]
