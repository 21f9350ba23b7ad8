"""Plan catalog routes: listing, custom plan admin and end-date previews."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from schemas.api.plan import (
    PlanCreateRequest,
    PlanEndDateRequest,
    PlanEndDateResponse,
    PlanListResponse,
    PlanSchema,
)
from services.plan_catalog_service import (
    PlanCatalogError,
    PlanCatalogResolver,
    PlanCatalogService,
    PlanConflictError,
    PlanDefinition,
    PlanInUseError,
    PlanNotFoundError,
)
from services.subscription_dates import add_plan_duration, format_date_for_input, utc_now
from web.deps import get_plan_catalog_service, get_plan_resolver

router = APIRouter(prefix="/plans", tags=["Plans"])


def _serialize_plan(plan: PlanDefinition) -> PlanSchema:
    return PlanSchema(name=plan.name, months=plan.months, isCustom=plan.is_custom, price=plan.price)


@router.get("", response_model=PlanListResponse, summary="Lista los planes predeterminados y personalizados.")
async def read_plans(service: PlanCatalogService = Depends(get_plan_catalog_service)) -> PlanListResponse:
    plans = await service.list_plans()
    return PlanListResponse(plans=[_serialize_plan(plan) for plan in plans])


@router.post(
    "",
    response_model=PlanSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Crea un plan personalizado.",
)
async def create_plan(
    payload: PlanCreateRequest,
    service: PlanCatalogService = Depends(get_plan_catalog_service),
) -> PlanSchema:
    try:
        plan = await service.create_custom_plan(payload.name, payload.months, payload.price)
    except PlanConflictError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": "plan.conflict", "message": str(exc)},
        ) from exc
    except PlanCatalogError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "plan.invalid_payload", "message": str(exc)},
        ) from exc
    return _serialize_plan(plan)


@router.delete(
    "/{name}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Elimina un plan personalizado que no esté en uso.",
)
async def delete_plan(
    name: str,
    service: PlanCatalogService = Depends(get_plan_catalog_service),
) -> Response:
    try:
        await service.delete_custom_plan(name)
    except PlanNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"code": "plan.not_found", "message": str(exc)},
        ) from exc
    except PlanInUseError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": "plan.in_use", "message": str(exc), "usageCount": exc.usage_count},
        ) from exc
    except PlanCatalogError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "plan.builtin_protected", "message": str(exc)},
        ) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/end-date", response_model=PlanEndDateResponse, summary="Calcula la fecha de vencimiento de un plan.")
async def preview_end_date(
    payload: PlanEndDateRequest,
    resolver: PlanCatalogResolver = Depends(get_plan_resolver),
) -> PlanEndDateResponse:
    start = payload.startDate or utc_now()
    months = await resolver.resolve_months(payload.planName)
    end = add_plan_duration(start, months)
    return PlanEndDateResponse(
        planName=payload.planName,
        months=months,
        startDate=start,
        endDate=end,
        endDateInput=format_date_for_input(end),
    )


__all__ = ["router"]
