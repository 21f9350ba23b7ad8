"""Cached JSON-file persistence with an environment override for the path."""

from __future__ import annotations

import json
import os
from copy import deepcopy
from pathlib import Path
from typing import Any, Callable, Optional, Union

JsonDefault = Union[Any, Callable[[], Any]]
ErrorHook = Callable[[Path, Exception], None]


def _resolve_default(default: JsonDefault) -> Any:
    return default() if callable(default) else default


def read_json_document(path: Path, *, default: JsonDefault, on_error: Optional[ErrorHook] = None) -> Any:
    """Return the JSON payload stored at ``path``, or ``default`` when missing or unreadable."""
    if not path.exists():
        return _resolve_default(default)
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        if on_error is not None:
            on_error(path, exc)
        return _resolve_default(default)


class JsonStore:
    """JSON document wrapper that caches the loaded (normalized) payload."""

    def __init__(self, *, path_env: Optional[str], default_path: Path) -> None:
        self._path_env = path_env
        self._default_path = Path(default_path)
        self._cache: Optional[Any] = None
        self._cache_path: Optional[Path] = None

    @property
    def path(self) -> Path:
        if self._path_env:
            env_value = os.getenv(self._path_env)
            if env_value:
                return Path(env_value).expanduser()
        return self._default_path

    def clear_cache(self) -> None:
        self._cache = None
        self._cache_path = None

    def load(
        self,
        *,
        loader: Callable[[Any], Any],
        fallback: Callable[[], Any],
        reload: bool = False,
        on_error: Optional[ErrorHook] = None,
    ) -> Any:
        path = self.path
        if self._cache is not None and not reload and self._cache_path == path:
            return deepcopy(self._cache)

        raw_payload = read_json_document(path, default=fallback, on_error=on_error)
        try:
            merged = loader(raw_payload)
        except ValueError as exc:
            if on_error is not None:
                on_error(path, exc)
            merged = loader(fallback())
        self._cache = deepcopy(merged)
        self._cache_path = path
        return deepcopy(merged)


__all__ = [
    "JsonStore",
    "read_json_document",
]
