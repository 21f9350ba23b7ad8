"""Runtime settings for the hosted backend and the subscription lifecycle."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from core.env import env_float, env_int, env_str
from core.env_utils import load_dotenv_if_available
from core.logging import get_logger

logger = get_logger(__name__)

STORE_BACKEND_REST = "rest"
STORE_BACKEND_SQL = "sql"
_STORE_BACKENDS = {STORE_BACKEND_REST, STORE_BACKEND_SQL}


@dataclass(frozen=True)
class BackendSettings:
    supabase_url: Optional[str]
    supabase_key: Optional[str]
    timeout_seconds: float = 10.0
    status_rpc: str = "update_user_status"
    plan_months_rpc: str = "get_plan_months"
    timezone_name: str = "UTC"
    expiring_window_days: int = 5
    sweep_interval_seconds: int = 0
    store_backend: str = STORE_BACKEND_REST

    @property
    def timezone(self) -> ZoneInfo:
        try:
            return ZoneInfo(self.timezone_name)
        except ZoneInfoNotFoundError:
            logger.warning("Unknown SUBSCRIPTION_TIMEZONE '%s'. Falling back to UTC.", self.timezone_name)
            return ZoneInfo("UTC")

    def require_rest_credentials(self) -> None:
        if self.store_backend != STORE_BACKEND_REST:
            return
        missing = []
        if not self.supabase_url:
            missing.append("SUPABASE_URL")
        if not self.supabase_key:
            missing.append("SUPABASE_SERVICE_ROLE_KEY or SUPABASE_ANON_KEY")
        if missing:
            raise RuntimeError(f"[backend] Missing required environment variables: {', '.join(missing)}.")


def load_backend_settings(*, load_dotenv: bool = True) -> BackendSettings:
    """Build settings from the environment (and an optional .env file)."""

    if load_dotenv:
        load_dotenv_if_available()

    store_backend = (env_str("SUBSCRIPTION_STORE_BACKEND", STORE_BACKEND_REST) or STORE_BACKEND_REST).lower()
    if store_backend not in _STORE_BACKENDS:
        logger.warning("Unsupported SUBSCRIPTION_STORE_BACKEND '%s'. Using '%s'.", store_backend, STORE_BACKEND_REST)
        store_backend = STORE_BACKEND_REST

    return BackendSettings(
        supabase_url=env_str("SUPABASE_URL"),
        supabase_key=env_str("SUPABASE_SERVICE_ROLE_KEY") or env_str("SUPABASE_ANON_KEY"),
        timeout_seconds=env_float("SUPABASE_TIMEOUT_SECONDS", 10.0, minimum=0.1),
        status_rpc=env_str("SUBSCRIPTION_STATUS_RPC", "update_user_status") or "update_user_status",
        plan_months_rpc=env_str("PLAN_MONTHS_RPC", "get_plan_months") or "get_plan_months",
        timezone_name=env_str("SUBSCRIPTION_TIMEZONE", "UTC") or "UTC",
        expiring_window_days=env_int("SUBSCRIPTION_EXPIRING_WINDOW_DAYS", 5, minimum=1),
        sweep_interval_seconds=env_int("SUBSCRIPTION_SWEEP_INTERVAL_SECONDS", 0, minimum=0),
        store_backend=store_backend,
    )


__all__ = [
    "BackendSettings",
    "STORE_BACKEND_REST",
    "STORE_BACKEND_SQL",
    "load_backend_settings",
]
