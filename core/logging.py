"""Shared logging helpers."""

from __future__ import annotations

import logging
import os
from typing import Optional

try:  # pragma: no cover - optional dependency
    from google.cloud import logging as gcp_logging
except Exception:  # pragma: no cover - GCP logging optional
    gcp_logging = None

_CONFIGURED = False
_CLOUD_HANDLER_ATTACHED = False
_DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"
_TRUTHY = {"1", "true", "yes", "on"}


def _resolve_level(default: int) -> int:
    raw = (os.getenv("LOG_LEVEL") or "").strip().upper()
    if not raw:
        return default
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else default


def _maybe_setup_google_logging(level: int) -> None:
    """Attach the Cloud Logging handler when the deployment asks for it."""
    global _CLOUD_HANDLER_ATTACHED
    if _CLOUD_HANDLER_ATTACHED or gcp_logging is None:
        return
    if os.getenv("ENABLE_GOOGLE_CLOUD_LOGGING", "false").strip().lower() not in _TRUTHY:
        return
    try:
        client = gcp_logging.Client()
        client.setup_logging(log_level=level)
        _CLOUD_HANDLER_ATTACHED = True
    except Exception as exc:  # pragma: no cover - handler best-effort
        logging.getLogger(__name__).warning("Failed to initialise Google Cloud Logging: %s", exc)


def setup_logging(level: int = logging.INFO, *, fmt: Optional[str] = None) -> None:
    """Configure the root logger once; LOG_LEVEL/LOG_FORMAT override the defaults."""
    global _CONFIGURED
    resolved = _resolve_level(level)
    if not _CONFIGURED:
        logging.basicConfig(level=resolved, format=fmt or os.getenv("LOG_FORMAT") or _DEFAULT_FORMAT)
        _CONFIGURED = True
    _maybe_setup_google_logging(resolved)


def get_logger(name: str, *, level: int = logging.INFO) -> logging.Logger:
    """Return a module logger, making sure logging has been configured."""
    setup_logging(level=level)
    logger = logging.getLogger(name)
    logger.setLevel(_resolve_level(level))
    return logger


__all__ = ["get_logger", "setup_logging"]
