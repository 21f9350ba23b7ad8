"""Periodic status reconciliation running inside the API process."""

from __future__ import annotations

import asyncio
from typing import Callable, Optional

from core.logging import get_logger
from services.status_sync_service import StatusSynchronizer

logger = get_logger(__name__)

_sweep_task: Optional["asyncio.Task[None]"] = None


async def run_sweep_loop(
    synchronizer_factory: Callable[[], StatusSynchronizer],
    interval_seconds: float,
    *,
    max_runs: Optional[int] = None,
) -> None:
    """Sweep every ``interval_seconds``. A failed run is logged and the loop continues."""
    runs = 0
    while max_runs is None or runs < max_runs:
        runs += 1
        try:
            changed = await synchronizer_factory().sweep_all()
            logger.info("Scheduled status sweep changed %d account(s).", changed)
        except Exception:
            logger.exception("Scheduled status sweep failed.")
        if max_runs is not None and runs >= max_runs:
            break
        await asyncio.sleep(interval_seconds)


def start_status_sweep(synchronizer_factory: Callable[[], StatusSynchronizer], interval_seconds: int) -> bool:
    """Start the loop on the running event loop. Returns False when disabled or already running."""
    global _sweep_task
    if interval_seconds <= 0:
        logger.info("Status sweep scheduler is disabled.")
        return False
    if _sweep_task is not None and not _sweep_task.done():
        return False
    _sweep_task = asyncio.get_running_loop().create_task(run_sweep_loop(synchronizer_factory, interval_seconds))
    logger.info("Status sweep scheduler started (every %ss).", interval_seconds)
    return True


async def stop_status_sweep() -> None:
    global _sweep_task
    task, _sweep_task = _sweep_task, None
    if task is None or task.done():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


__all__ = ["run_sweep_loop", "start_status_sweep", "stop_status_sweep"]
