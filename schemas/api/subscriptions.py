"""Pydantic schemas for subscription status, renewal and dashboard routes."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

LifecycleStatusLiteral = Literal["pending", "active", "expiring", "expired"]
StorageStatusLiteral = Literal["pending", "active", "inactive"]
AccountRoleLiteral = Literal["reseller", "client"]


class SideEffectFailureSchema(BaseModel):
    name: str
    error: str


class SubscriptionStatusSchema(BaseModel):
    accountId: str
    role: AccountRoleLiteral
    status: LifecycleStatusLiteral
    displayStatus: LifecycleStatusLiteral
    storedStatus: StorageStatusLiteral
    isExpired: bool
    daysRemaining: int
    warnings: List[SideEffectFailureSchema] = Field(
        default_factory=list,
        description="Ancillary writes that failed without affecting the result.",
    )


class SubscriptionAccountSchema(BaseModel):
    id: str
    role: AccountRoleLiteral
    planName: Optional[str] = None
    startDate: Optional[Union[datetime, date]] = None
    endDate: Optional[Union[datetime, date]] = None
    displayName: Optional[str] = None


class SubscriptionChangeResponse(BaseModel):
    account: SubscriptionAccountSchema
    status: SubscriptionStatusSchema


class RenewRequest(BaseModel):
    planName: str = Field(..., min_length=1)
    startDate: Optional[datetime] = Field(
        default=None,
        description="Start of the new period. Defaults to the current end date while it is in the future, else now.",
    )


class PlanEditRequest(BaseModel):
    planName: Optional[str] = Field(default=None, min_length=1)
    endDate: Optional[datetime] = Field(
        default=None,
        description="Explicit end date. Takes precedence over recomputing from the plan.",
    )


class StatusChangeRequest(BaseModel):
    status: StorageStatusLiteral = Field(..., description="Stored status to write, e.g. 'active' to activate a pending account.")


class SweepRequest(BaseModel):
    roles: Optional[List[AccountRoleLiteral]] = None


class SweepResponse(BaseModel):
    changed: int


class AccountSummarySchema(BaseModel):
    total: int = 0
    active: int = 0
    pending: int = 0
    expiringSoon: int = 0
    expired: int = 0


class LifecycleAlertSchema(BaseModel):
    id: str
    type: str
    title: str
    message: str
    severity: Literal["high", "medium", "low"]
    timestamp: datetime
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SubscriptionSummaryResponse(BaseModel):
    resellers: AccountSummarySchema
    clients: AccountSummarySchema
    alerts: List[LifecycleAlertSchema] = Field(default_factory=list)


__all__ = [
    "AccountSummarySchema",
    "LifecycleAlertSchema",
    "PlanEditRequest",
    "RenewRequest",
    "SideEffectFailureSchema",
    "StatusChangeRequest",
    "SubscriptionAccountSchema",
    "SubscriptionChangeResponse",
    "SubscriptionStatusSchema",
    "SubscriptionSummaryResponse",
    "SweepRequest",
    "SweepResponse",
]
