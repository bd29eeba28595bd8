"""Pydantic models for the versioned backup document.

A snapshot holds the whole store: every plan (with its deletion state and
item template) and every execution (with its checklist). Items refer to
actions by name, so action ids are regenerated on import.
"""

from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, Field, StrictInt, StringConstraints

SNAPSHOT_VERSION = 1

# Range of a SQLite INTEGER column
SQLITE_INTEGER_MAX = 2**63 - 1

SqliteInt = Annotated[int, Field(ge=-SQLITE_INTEGER_MAX - 1, le=SQLITE_INTEGER_MAX)]

# Trimmed like plan input; blank names are rejected
ActionName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


class SnapshotPlanItem(BaseModel):
    """Plan template slot, referencing its action by name."""

    model_config = {"populate_by_name": True, "serialize_by_alias": True}

    order_index: SqliteInt = Field(alias="orderIndex")
    action_name: ActionName = Field(alias="actionName")


class SnapshotPlan(BaseModel):
    """Plan as stored in a snapshot."""

    model_config = {"populate_by_name": True, "serialize_by_alias": True}

    id: UUID
    name: str
    deleted_at: SqliteInt | None = Field(None, alias="deletedAt")
    items: list[SnapshotPlanItem] = Field(default_factory=list)


class SnapshotExecutionItem(BaseModel):
    """Execution checklist line, referencing its action by name."""

    model_config = {"populate_by_name": True, "serialize_by_alias": True}

    order_index: SqliteInt = Field(alias="orderIndex")
    action_name: ActionName = Field(alias="actionName")
    finished: SqliteInt | None = None


class SnapshotExecution(BaseModel):
    """Execution as stored in a snapshot."""

    model_config = {"populate_by_name": True, "serialize_by_alias": True}

    id: UUID
    plan_id: UUID = Field(alias="planId")
    started: SqliteInt
    finished: SqliteInt | None = None
    items: list[SnapshotExecutionItem] = Field(default_factory=list)


class Snapshot(BaseModel):
    """Complete backup document."""

    model_config = {"populate_by_name": True, "serialize_by_alias": True}

    version: StrictInt
    exported_at_unix: SqliteInt = Field(alias="exportedAtUnix")
    plans: list[SnapshotPlan] = Field(default_factory=list)
    executions: list[SnapshotExecution] = Field(default_factory=list)


class ImportResult(BaseModel):
    """Counts reported after a successful restore."""

    model_config = {"populate_by_name": True, "serialize_by_alias": True}

    plans_restored: int = Field(alias="plansRestored")
    executions_restored: int = Field(alias="executionsRestored")
