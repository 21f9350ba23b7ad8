"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from core.settings import STORE_BACKEND_SQL, BackendSettings, load_backend_settings
from services.backend.rest_store import RestAccountStore
from services.backend.supabase_client import build_rest_client
from services.plan_catalog_service import PlanCatalogResolver, PlanCatalogService
from services.plan_config_store import load_plan_table
from services.status_sync_service import StatusSynchronizer
from services.subscription_lifecycle_service import SubscriptionLifecycleService


@lru_cache(maxsize=1)
def get_backend_settings() -> BackendSettings:
    return load_backend_settings()


@lru_cache(maxsize=1)
def get_account_store() -> Any:
    """Storage binding selected by ``SUBSCRIPTION_STORE_BACKEND``."""
    settings = get_backend_settings()
    if settings.store_backend == STORE_BACKEND_SQL:
        from services.backend.sql_store import SqlAccountStore

        return SqlAccountStore()
    return RestAccountStore(
        build_rest_client(settings),
        status_rpc=settings.status_rpc,
        plan_months_rpc=settings.plan_months_rpc,
    )


def get_plan_resolver() -> PlanCatalogResolver:
    return PlanCatalogResolver(load_plan_table(), lookup=get_account_store())


def get_plan_catalog_service() -> PlanCatalogService:
    store = get_account_store()
    return PlanCatalogService(store, store, builtin_months=load_plan_table())


def get_status_synchronizer() -> StatusSynchronizer:
    return StatusSynchronizer(get_account_store(), tz=get_backend_settings().timezone)


def get_lifecycle_service() -> SubscriptionLifecycleService:
    return SubscriptionLifecycleService(get_account_store(), get_plan_resolver(), get_status_synchronizer())


def reset_dependency_caches() -> None:
    get_backend_settings.cache_clear()
    get_account_store.cache_clear()


__all__ = [
    "get_account_store",
    "get_backend_settings",
    "get_lifecycle_service",
    "get_plan_catalog_service",
    "get_plan_resolver",
    "get_status_synchronizer",
    "reset_dependency_caches",
]
