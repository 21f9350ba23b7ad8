"""Thin async client for the hosted backend's REST and RPC endpoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

import httpx

from core.settings import BackendSettings

logger = logging.getLogger(__name__)

REST_PREFIX = "/rest/v1"


class BackendError(RuntimeError):
    """Raised when the backend answers with an HTTP error."""

    def __init__(self, status_code: int, message: str, *, payload: Optional[Any] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload if payload is not None else {}


def eq(value: Any) -> str:
    return f"eq.{value}"


@dataclass(slots=True)
class SupabaseRestClient:
    """HTTP wrapper around ``/rest/v1`` table and RPC routes."""

    base_url: str
    api_key: str
    timeout: float = 10.0

    def _headers(self, prefer: Optional[str]) -> Dict[str, str]:
        headers = {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, str]] = None,
        json: Optional[Any] = None,
        prefer: Optional[str] = None,
    ) -> Any:
        url = f"{self.base_url.rstrip('/')}{REST_PREFIX}/{path.lstrip('/')}"
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.request(method, url, headers=self._headers(prefer), params=params, json=json)
        if response.status_code >= 400:
            try:
                payload = response.json()
            except ValueError:
                payload = {"body": response.text}
            message = "backend request failed"
            if isinstance(payload, dict):
                message = payload.get("message") or payload.get("error") or payload.get("hint") or message
            logger.warning("Backend %s %s failed with %s: %s", method, path, response.status_code, payload)
            raise BackendError(response.status_code, message, payload=payload)
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def rpc(self, function: str, params: Mapping[str, Any]) -> Any:
        """Call a database function exposed under ``/rpc``."""
        return await self._request("POST", f"rpc/{function}", json=dict(params))

    async def select(
        self,
        table: str,
        *,
        columns: str = "*",
        filters: Optional[Mapping[str, str]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        params: Dict[str, str] = {"select": columns}
        params.update(filters or {})
        if order:
            params["order"] = order
        if limit is not None:
            params["limit"] = str(limit)
        rows = await self._request("GET", table, params=params)
        return list(rows or [])

    async def update(
        self,
        table: str,
        values: Mapping[str, Any],
        *,
        filters: Mapping[str, str],
    ) -> List[Dict[str, Any]]:
        if not filters:
            raise ValueError("Refusing to update without filters.")
        rows = await self._request(
            "PATCH",
            table,
            params=dict(filters),
            json=dict(values),
            prefer="return=representation",
        )
        return list(rows or [])

    async def insert(self, table: str, rows: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        created = await self._request(
            "POST",
            table,
            json=[dict(row) for row in rows],
            prefer="return=representation",
        )
        return list(created or [])

    async def delete(self, table: str, *, filters: Mapping[str, str]) -> List[Dict[str, Any]]:
        if not filters:
            raise ValueError("Refusing to delete without filters.")
        rows = await self._request("DELETE", table, params=dict(filters), prefer="return=representation")
        return list(rows or [])


def build_rest_client(settings: BackendSettings) -> SupabaseRestClient:
    settings.require_rest_credentials()
    return SupabaseRestClient(
        base_url=settings.supabase_url or "",
        api_key=settings.supabase_key or "",
        timeout=settings.timeout_seconds,
    )


__all__ = ["BackendError", "SupabaseRestClient", "build_rest_client", "eq"]
