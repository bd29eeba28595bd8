"""Pydantic models for action plans and their ordered item templates."""

from enum import Enum

from pydantic import BaseModel, Field

from planner.models.execution import ExecutionSummary


class PlanSort(str, Enum):
    """Sort keys for plan listings. Execution-based keys are computed per query."""

    NAME = "name"  # Case-insensitive
    LAST_STARTED = "last_started"  # Most recent execution start first
    LAST_FINISHED = "last_finished"  # Most recent completion first


class PlanVisibility(str, Enum):
    """Filter on the soft-delete state of plans."""

    ACTIVE = "active"
    DELETED = "deleted"
    ALL = "all"


class PlanCreate(BaseModel):
    """Request to create a plan."""

    model_config = {"populate_by_name": True}

    name: str = Field(..., min_length=1)
    items: list[str] = Field(
        default_factory=list, description="Ordered action names; blanks are dropped"
    )


class PlanUpdate(BaseModel):
    """Request to rename a plan and replace its items.

    When `execution_id` is given, that execution's checklist is rebuilt from
    the new items, keeping progress for actions whose names are unchanged.
    """

    model_config = {"populate_by_name": True}

    name: str = Field(..., min_length=1)
    items: list[str] = Field(default_factory=list)
    execution_id: str | None = Field(None, alias="executionId")


class PlanItem(BaseModel):
    """One ordered slot of a plan template."""

    model_config = {"populate_by_name": True, "serialize_by_alias": True}

    id: str
    order_index: int = Field(alias="orderIndex")
    action_id: str = Field(alias="actionId")
    action_name: str = Field(alias="actionName")


class PlanSummary(BaseModel):
    """Plan row as shown in listings."""

    model_config = {"populate_by_name": True, "serialize_by_alias": True}

    id: str
    name: str
    deleted: bool = False
    active_execution_id: str | None = Field(
        None,
        alias="activeExecutionId",
        description="Most recently started execution that is still open",
    )
    last_started_at: int | None = Field(None, alias="lastStartedAt")
    last_finished_at: int | None = Field(None, alias="lastFinishedAt")


class PlanDetail(BaseModel):
    """Plan with its template and executions."""

    model_config = {"populate_by_name": True, "serialize_by_alias": True}

    id: str
    name: str
    deleted: bool = False
    deleted_at: int | None = Field(None, alias="deletedAt")
    items: list[PlanItem] = Field(default_factory=list)
    active_executions: list[ExecutionSummary] = Field(
        default_factory=list, alias="activeExecutions"
    )
    finished_executions: list[ExecutionSummary] = Field(
        default_factory=list, alias="finishedExecutions"
    )
