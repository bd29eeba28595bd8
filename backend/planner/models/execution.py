"""Pydantic models for executions (checklist runs derived from a plan).

An execution is Open while `finished` is unset and Completed once it holds a
positive timestamp. Its items are a snapshot of the plan template taken at
creation time and are tracked independently of the plan's own items.
"""

from enum import Enum

from pydantic import BaseModel, Field

# Completed executions can be reopened for this long after completion
REOPEN_WINDOW_SECONDS = 24 * 60 * 60


class ExecutionState(str, Enum):
    """Lifecycle state of an execution."""

    OPEN = "open"
    COMPLETED = "completed"


def timestamp_or_none(value: int | None) -> int | None:
    """Normalize a stored timestamp: zero, negative or NULL mean unset."""
    if value is None or value <= 0:
        return None
    return value


def execution_state(finished: int | None) -> ExecutionState:
    """Derive the state from the stored `finished` column."""
    if timestamp_or_none(finished) is None:
        return ExecutionState.OPEN
    return ExecutionState.COMPLETED


def can_reopen(finished: int | None, now: int) -> bool:
    """Whether a completed execution is still inside the reopen window."""
    finished_at = timestamp_or_none(finished)
    if finished_at is None:
        return False
    return now - finished_at <= REOPEN_WINDOW_SECONDS


class ExecutionItem(BaseModel):
    """One checklist line of an execution."""

    model_config = {"populate_by_name": True, "serialize_by_alias": True}

    id: str
    action_id: str = Field(alias="actionId")
    action_name: str = Field(alias="actionName")
    order_index: int = Field(alias="orderIndex")
    finished_at: int | None = Field(None, alias="finishedAt")

    @property
    def is_finished(self) -> bool:
        return self.finished_at is not None


class ExecutionSummary(BaseModel):
    """Execution row without its items, used in listings."""

    model_config = {"populate_by_name": True, "serialize_by_alias": True}

    id: str
    plan_id: str = Field(alias="planId")
    plan_name: str = Field(alias="planName")
    started_at: int = Field(alias="startedAt")
    finished_at: int | None = Field(None, alias="finishedAt")


class ExecutionList(BaseModel):
    """Open and completed executions across all plans."""

    model_config = {"populate_by_name": True, "serialize_by_alias": True}

    open: list[ExecutionSummary] = Field(default_factory=list)
    finished: list[ExecutionSummary] = Field(default_factory=list)


class Execution(BaseModel):
    """Full execution with items and derived transition flags."""

    model_config = {"populate_by_name": True, "serialize_by_alias": True}

    id: str
    plan_id: str = Field(alias="planId")
    plan_name: str = Field(alias="planName")
    state: ExecutionState
    started_at: int = Field(alias="startedAt")
    finished_at: int | None = Field(None, alias="finishedAt")
    items: list[ExecutionItem] = Field(default_factory=list)
    can_complete: bool = Field(
        False,
        alias="canComplete",
        description="True when there is at least one item and all are finished",
    )
    can_reopen: bool = Field(
        False,
        alias="canReopen",
        description="True when completed less than 24 hours ago",
    )


class ItemFinishedUpdate(BaseModel):
    """Request to check or uncheck an execution item."""

    finished: bool


class ItemFinishedResult(BaseModel):
    """Result of checking or unchecking an execution item."""

    model_config = {"populate_by_name": True, "serialize_by_alias": True}

    id: str
    finished_at: int | None = Field(None, alias="finishedAt")
