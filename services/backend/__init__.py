"""Storage bindings for the subscription lifecycle."""

from .protocols import (
    AccountRecord,
    AccountStore,
    PlanCatalogStore,
    PlanLookup,
    PlanRecord,
    RecordNotFoundError,
)
from .rest_store import RestAccountStore
from .supabase_client import BackendError, SupabaseRestClient, build_rest_client

__all__ = [
    "AccountRecord",
    "AccountStore",
    "BackendError",
    "PlanCatalogStore",
    "PlanLookup",
    "PlanRecord",
    "RecordNotFoundError",
    "RestAccountStore",
    "SupabaseRestClient",
    "build_rest_client",
]
