"""Health-related API endpoints."""

from __future__ import annotations

from typing import Any, Optional, Tuple

from fastapi import APIRouter, Depends

from core.settings import BackendSettings
from web.deps import get_account_store, get_backend_settings

router = APIRouter(prefix="/health", tags=["Health"])


async def ping_store(store: Any) -> Tuple[bool, Optional[str]]:
    """Return store reachability and an optional error message."""
    try:
        await store.list_custom_plans()
        return True, None
    except Exception as exc:
        return False, str(exc) or exc.__class__.__name__


@router.get(
    "/status",
    summary="Service runtime status",
    description="Aggregated service health information used by monitoring probes.",
)
async def read_service_status(
    store: Any = Depends(get_account_store),
    settings: BackendSettings = Depends(get_backend_settings),
):
    store_ok, store_error = await ping_store(store)
    status = "ok" if store_ok else "degraded"
    payload = {"status": status, "store": {"ok": store_ok, "backend": settings.store_backend}}
    if store_error:
        payload["store"]["error"] = store_error
    return payload


__all__ = ["router", "ping_store"]
