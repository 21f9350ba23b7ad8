"""Pydantic schemas for the plan catalog and end-date previews."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator


class PlanSchema(BaseModel):
    name: str
    months: int = Field(..., ge=0, description="Plan duration in months. 0 means a 24-hour trial.")
    isCustom: bool = False
    price: float = 0.0


class PlanListResponse(BaseModel):
    plans: List[PlanSchema] = Field(default_factory=list)


class PlanCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    months: int = Field(..., ge=0, description="Duration in months. Use 0 for a 24-hour trial.")
    price: float = Field(default=0.0, ge=0)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("name must not be blank")
        return cleaned


class PlanEndDateRequest(BaseModel):
    planName: str = Field(..., min_length=1)
    startDate: Optional[datetime] = Field(
        default=None,
        description="ISO timestamp the plan starts at. Defaults to now.",
    )


class PlanEndDateResponse(BaseModel):
    planName: str
    months: int
    startDate: datetime
    endDate: datetime
    endDateInput: str = Field(..., description="End date formatted as YYYY-MM-DD.")


__all__ = [
    "PlanCreateRequest",
    "PlanEndDateRequest",
    "PlanEndDateResponse",
    "PlanListResponse",
    "PlanSchema",
]
