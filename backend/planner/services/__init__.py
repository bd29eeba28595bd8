"""Services for the maintenance planner."""

from planner.services.reconciliation import (
    carry_over_progress,
    rebuild_execution_items,
    snapshot_progress,
)

__all__ = [
    "carry_over_progress",
    "rebuild_execution_items",
    "snapshot_progress",
]
