"""Helper for loading an optional .env file."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv  # type: ignore

from core.logging import get_logger

logger = get_logger(__name__)


def load_dotenv_if_available(path: Path | None = None) -> bool:
    """Load variables from a .env file when it exists. Returns whether a file was read."""

    env_path = path or Path(os.getenv("DOTENV_PATH") or ".env")
    try:
        if env_path.exists():
            load_dotenv(dotenv_path=env_path, override=False)
            logger.debug("Loaded environment variables from %s", env_path)
            return True
    except OSError as exc:  # pragma: no cover - best effort
        logger.warning("Failed to load .env file %s: %s", env_path, exc)
    return False


__all__ = ["load_dotenv_if_available"]
