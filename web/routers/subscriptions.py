"""Subscription status, renewal, sweep and dashboard routes."""

from __future__ import annotations

from typing import Any, List, NoReturn, Optional

from fastapi import APIRouter, Depends, HTTPException, status

from core.settings import BackendSettings
from core.status_constants import SUPPORTED_ROLES, AccountRole, StorageStatus
from schemas.api.subscriptions import (
    AccountSummarySchema,
    LifecycleAlertSchema,
    PlanEditRequest,
    RenewRequest,
    SideEffectFailureSchema,
    StatusChangeRequest,
    SubscriptionAccountSchema,
    SubscriptionChangeResponse,
    SubscriptionStatusSchema,
    SubscriptionSummaryResponse,
    SweepRequest,
    SweepResponse,
)
from services.backend.protocols import AccountRecord, RecordNotFoundError
from services.status_service import display_status
from services.status_sync_service import StatusSynchronizer, SyncError, SyncOutcome
from services.subscription_lifecycle_service import LifecycleResult, PlanRequiredError, SubscriptionLifecycleService
from services.subscription_stats import build_lifecycle_alerts, summarize_accounts
from web.deps import get_account_store, get_backend_settings, get_lifecycle_service, get_status_synchronizer

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])

SYNC_FAILED_MESSAGE = "No se pudo actualizar el estado"


def _raise_for(exc: Exception) -> NoReturn:
    if isinstance(exc, RecordNotFoundError):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "subscription.not_found", "message": "La cuenta no existe."},
        ) from exc
    if isinstance(exc, SyncError):
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"code": "subscription.sync_failed", "message": SYNC_FAILED_MESSAGE},
        ) from exc
    if isinstance(exc, PlanRequiredError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "subscription.plan_required", "message": "La cuenta no tiene plan. Indica un plan o una fecha de vencimiento."},
        ) from exc
    raise exc


def _serialize_status(outcome: SyncOutcome, window_days: int) -> SubscriptionStatusSchema:
    return SubscriptionStatusSchema(
        accountId=outcome.account_id,
        role=outcome.role.value,
        status=outcome.status.value,
        displayStatus=display_status(outcome.info, expiring_window_days=window_days).value,
        storedStatus=outcome.written_status.value,
        isExpired=outcome.info.is_expired,
        daysRemaining=outcome.info.days_remaining,
        warnings=[SideEffectFailureSchema(name=item.name, error=item.error) for item in outcome.side_effect_failures],
    )


def _serialize_account(record: AccountRecord) -> SubscriptionAccountSchema:
    return SubscriptionAccountSchema(
        id=record.id,
        role=record.role.value,
        planName=record.plan_name,
        startDate=record.start_date,
        endDate=record.end_date,
        displayName=record.display_name,
    )


def _serialize_change(result: LifecycleResult, window_days: int) -> SubscriptionChangeResponse:
    return SubscriptionChangeResponse(
        account=_serialize_account(result.record),
        status=_serialize_status(result.sync, window_days),
    )


@router.post(
    "/{role}/{account_id}/sync",
    response_model=SubscriptionStatusSchema,
    summary="Sincroniza el estado de una cuenta con su fecha de vencimiento.",
)
async def sync_account(
    role: AccountRole,
    account_id: str,
    synchronizer: StatusSynchronizer = Depends(get_status_synchronizer),
    settings: BackendSettings = Depends(get_backend_settings),
) -> SubscriptionStatusSchema:
    try:
        outcome = await synchronizer.synchronize_account(account_id, role)
    except (RecordNotFoundError, SyncError) as exc:
        _raise_for(exc)
    return _serialize_status(outcome, settings.expiring_window_days)


@router.post(
    "/{role}/{account_id}/renew",
    response_model=SubscriptionChangeResponse,
    summary="Renueva el plan de una cuenta.",
)
async def renew_account(
    role: AccountRole,
    account_id: str,
    payload: RenewRequest,
    service: SubscriptionLifecycleService = Depends(get_lifecycle_service),
    settings: BackendSettings = Depends(get_backend_settings),
) -> SubscriptionChangeResponse:
    try:
        result = await service.renew(account_id, role, payload.planName, payload.startDate)
    except (RecordNotFoundError, SyncError) as exc:
        _raise_for(exc)
    return _serialize_change(result, settings.expiring_window_days)


@router.patch(
    "/{role}/{account_id}/plan",
    response_model=SubscriptionChangeResponse,
    summary="Edita el plan o la fecha de vencimiento de una cuenta.",
)
async def edit_account_plan(
    role: AccountRole,
    account_id: str,
    payload: PlanEditRequest,
    service: SubscriptionLifecycleService = Depends(get_lifecycle_service),
    settings: BackendSettings = Depends(get_backend_settings),
) -> SubscriptionChangeResponse:
    try:
        result = await service.edit_plan(account_id, role, plan_name=payload.planName, end_date=payload.endDate)
    except (RecordNotFoundError, SyncError, PlanRequiredError) as exc:
        _raise_for(exc)
    return _serialize_change(result, settings.expiring_window_days)


@router.post(
    "/{role}/{account_id}/status",
    response_model=SubscriptionStatusSchema,
    summary="Cambia el estado de una cuenta (por ejemplo, activa una cuenta pendiente).",
)
async def change_account_status(
    role: AccountRole,
    account_id: str,
    payload: StatusChangeRequest,
    synchronizer: StatusSynchronizer = Depends(get_status_synchronizer),
    settings: BackendSettings = Depends(get_backend_settings),
) -> SubscriptionStatusSchema:
    try:
        outcome = await synchronizer.set_status(account_id, role, StorageStatus(payload.status))
    except (RecordNotFoundError, SyncError) as exc:
        _raise_for(exc)
    return _serialize_status(outcome, settings.expiring_window_days)


@router.post("/sweep", response_model=SweepResponse, summary="Reconcilia el estado de todas las cuentas.")
async def run_sweep(
    payload: Optional[SweepRequest] = None,
    synchronizer: StatusSynchronizer = Depends(get_status_synchronizer),
) -> SweepResponse:
    roles = [AccountRole(role) for role in payload.roles] if payload and payload.roles else None
    changed = await synchronizer.sweep_all(roles)
    return SweepResponse(changed=changed)


@router.get(
    "/summary",
    response_model=SubscriptionSummaryResponse,
    summary="Resumen de cuentas y alertas de vencimiento.",
)
async def read_summary(
    store: Any = Depends(get_account_store),
    settings: BackendSettings = Depends(get_backend_settings),
) -> SubscriptionSummaryResponse:
    summaries = {}
    every_record: List[AccountRecord] = []
    for role in SUPPORTED_ROLES:
        records = await store.list_accounts(role)
        every_record.extend(records)
        summary = summarize_accounts(
            records,
            tz=settings.timezone,
            expiring_window_days=settings.expiring_window_days,
        )
        summaries[role] = AccountSummarySchema(**summary.to_dict())

    alerts = build_lifecycle_alerts(
        every_record,
        tz=settings.timezone,
        expiring_window_days=settings.expiring_window_days,
    )
    return SubscriptionSummaryResponse(
        resellers=summaries[AccountRole.RESELLER],
        clients=summaries[AccountRole.CLIENT],
        alerts=[
            LifecycleAlertSchema(
                id=alert.id,
                type=alert.type,
                title=alert.title,
                message=alert.message,
                severity=alert.severity,
                timestamp=alert.timestamp,
                metadata=alert.metadata,
            )
            for alert in alerts
        ],
    )


__all__ = ["router"]
