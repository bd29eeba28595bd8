"""Periodic garbage collection of unreferenced actions."""

import asyncio
import logging
import os

from planner.db.action_registry import ActionRegistry, action_registry
from planner.models import Action

logger = logging.getLogger(__name__)

ACTION_GC_INTERVAL_SECONDS = int(os.getenv("ACTION_GC_INTERVAL_SECONDS", str(60 * 60)))


async def sweep_actions_once(registry: ActionRegistry | None = None) -> list[Action]:
    """Run one sweep and log what it removed."""
    registry = registry or action_registry
    removed = await registry.sweep_unreferenced()
    if removed:
        names = ", ".join(f"{action.name} ({action.id})" for action in removed)
        logger.info(f"Action GC removed {len(removed)} unreferenced action(s): {names}")
    else:
        logger.debug("Action GC found no unreferenced actions")
    return removed


async def sweep_actions_periodically(
    interval_seconds: float = ACTION_GC_INTERVAL_SECONDS,
    registry: ActionRegistry | None = None,
) -> None:
    """Background task: sweep now, then once per interval, until cancelled."""
    while True:
        try:
            await sweep_actions_once(registry)
        except Exception as e:
            logger.exception(f"Error in action GC task: {e}")

        await asyncio.sleep(interval_seconds)
