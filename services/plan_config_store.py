"""Built-in plan table (plan name -> months) with an optional JSON override file."""

from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Tuple

from core.logging import get_logger
from core.status_constants import TRIAL_PLAN_NAME
from services.json_store import JsonStore

DEFAULT_PLAN_TABLE_PATH = Path("config") / "plan_table.json"

logger = get_logger(__name__)
_PLAN_TABLE_STORE = JsonStore(
    path_env="PLAN_TABLE_FILE",
    default_path=DEFAULT_PLAN_TABLE_PATH,
)

DEFAULT_PLAN_TABLE: Mapping[str, int] = MappingProxyType(
    {
        TRIAL_PLAN_NAME: 0,
        "1 Mes": 1,
        "3 Meses": 3,
        "4 Meses": 4,
        "6 Meses": 6,
        "7 Meses": 7,
        "12 Meses": 12,
        "14 Meses": 14,
    }
)


def _coerce_months(name: str, value: Any) -> int | None:
    if isinstance(value, bool):
        logger.warning("Plan table entry %r ignored: months must be an integer, got %r.", name, value)
        return None
    try:
        months = int(str(value).strip()) if isinstance(value, str) else int(value)
    except (TypeError, ValueError):
        logger.warning("Plan table entry %r ignored: months must be an integer, got %r.", name, value)
        return None
    if months < 0 or (isinstance(value, float) and not value.is_integer()):
        logger.warning("Plan table entry %r ignored: invalid months %r.", name, value)
        return None
    return months


def _iter_entries(source: Any) -> Iterable[Tuple[str, Any]]:
    if isinstance(source, Mapping):
        for key, value in source.items():
            yield str(key), value
    elif isinstance(source, list):
        for item in source:
            if isinstance(item, Mapping):
                yield str(item.get("name") or ""), item.get("months")


def _merge_plan_table(raw: Any) -> Dict[str, Any]:
    if not isinstance(raw, Mapping):
        raise ValueError("Plan table must be a JSON object.")

    table: Dict[str, int] = {} if raw.get("replaceDefaults") else dict(DEFAULT_PLAN_TABLE)
    for name, value in _iter_entries(raw.get("plans")):
        cleaned = name.strip()
        if not cleaned:
            logger.warning("Plan table entry with an empty name ignored.")
            continue
        months = _coerce_months(cleaned, value)
        if months is None:
            continue
        table[cleaned] = months

    if not table:
        logger.warning("Plan table override left no plans. Using built-in defaults.")
        table = dict(DEFAULT_PLAN_TABLE)
    return {"plans": table, "updated_at": raw.get("updated_at"), "note": raw.get("note")}


def _default_payload() -> Dict[str, Any]:
    return {"plans": dict(DEFAULT_PLAN_TABLE)}


def _table_error_hook(path: Path, exc: Exception) -> None:
    logger.warning("Plan table load failed for %s: %s", path, exc)


def load_plan_table(*, reload: bool = False) -> Mapping[str, int]:
    """Return the immutable built-in plan table (defaults merged with the override file)."""

    payload = _PLAN_TABLE_STORE.load(
        loader=_merge_plan_table,
        fallback=_default_payload,
        reload=reload,
        on_error=_table_error_hook,
    )
    return MappingProxyType(dict(payload["plans"]))


def clear_plan_table_cache() -> None:
    _PLAN_TABLE_STORE.clear_cache()


__all__ = [
    "DEFAULT_PLAN_TABLE",
    "clear_plan_table_cache",
    "load_plan_table",
]
