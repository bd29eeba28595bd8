"""Pydantic models for the maintenance planner."""

from planner.models.action import Action
from planner.models.execution import (
    REOPEN_WINDOW_SECONDS,
    Execution,
    ExecutionItem,
    ExecutionList,
    ExecutionState,
    ExecutionSummary,
    ItemFinishedResult,
    ItemFinishedUpdate,
)
from planner.models.plan import (
    PlanCreate,
    PlanDetail,
    PlanItem,
    PlanSort,
    PlanSummary,
    PlanUpdate,
    PlanVisibility,
)
from planner.models.snapshot import (
    SNAPSHOT_VERSION,
    ImportResult,
    Snapshot,
    SnapshotExecution,
    SnapshotExecutionItem,
    SnapshotPlan,
    SnapshotPlanItem,
)

__all__ = [
    # Actions
    "Action",
    # Plans
    "PlanCreate",
    "PlanUpdate",
    "PlanItem",
    "PlanSummary",
    "PlanDetail",
    "PlanSort",
    "PlanVisibility",
    # Executions
    "REOPEN_WINDOW_SECONDS",
    "Execution",
    "ExecutionItem",
    "ExecutionList",
    "ExecutionState",
    "ExecutionSummary",
    "ItemFinishedUpdate",
    "ItemFinishedResult",
    # Snapshots
    "SNAPSHOT_VERSION",
    "Snapshot",
    "SnapshotPlan",
    "SnapshotPlanItem",
    "SnapshotExecution",
    "SnapshotExecutionItem",
    "ImportResult",
]
