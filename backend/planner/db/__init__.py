"""Database module."""

from planner.db.action_registry import ActionRegistry, action_registry
from planner.db.database import close_database, get_db, init_database, transaction
from planner.db.errors import (
    ConflictError,
    NotFoundError,
    SnapshotValidationError,
    StoreError,
)
from planner.db.execution_store import ExecutionStore, execution_store
from planner.db.plan_store import PlanStore, plan_store
from planner.db.snapshot_store import SnapshotStore, snapshot_store

__all__ = [
    "get_db",
    "init_database",
    "close_database",
    "transaction",
    "StoreError",
    "NotFoundError",
    "ConflictError",
    "SnapshotValidationError",
    "action_registry",
    "ActionRegistry",
    "plan_store",
    "PlanStore",
    "execution_store",
    "ExecutionStore",
    "snapshot_store",
    "SnapshotStore",
]
