"""PlanStore - plans, their ordered item templates and soft deletion."""

import logging
import uuid
from collections.abc import Iterable

import aiosqlite

from planner.db.action_registry import action_registry
from planner.db.database import get_db, transaction, unix_now
from planner.db.errors import ConflictError, NotFoundError
from planner.models import (
    ExecutionSummary,
    PlanDetail,
    PlanItem,
    PlanSort,
    PlanSummary,
    PlanVisibility,
)
from planner.models.execution import timestamp_or_none
from planner.services.reconciliation import rebuild_execution_items, snapshot_progress

logger = logging.getLogger(__name__)

_ACTIVE_PREDICATE = "(deleted_at IS NULL OR deleted_at <= 0)"
_DELETED_PREDICATE = "deleted_at > 0"

_VISIBILITY_SQL = {
    PlanVisibility.ACTIVE: f"WHERE {_ACTIVE_PREDICATE}",
    PlanVisibility.DELETED: f"WHERE {_DELETED_PREDICATE}",
    PlanVisibility.ALL: "",
}

_SORT_SQL = {
    PlanSort.NAME: "name COLLATE NOCASE ASC, id ASC",
    PlanSort.LAST_STARTED: (
        "last_started_at IS NULL, last_started_at DESC, name COLLATE NOCASE ASC, id ASC"
    ),
    PlanSort.LAST_FINISHED: (
        "last_finished_at IS NULL, last_finished_at DESC, name COLLATE NOCASE ASC, id ASC"
    ),
}


def normalize_item_names(names: Iterable[str]) -> list[str]:
    """Trim each name and drop the blank ones, keeping order."""
    normalized = []
    for name in names:
        trimmed = name.strip()
        if trimmed:
            normalized.append(trimmed)
    return normalized


async def replace_items(
    db: aiosqlite.Connection, plan_id: str, names: Iterable[str]
) -> int:
    """Replace a plan's template with `names`, in order.

    Runs on the caller's transaction so that the delete and the re-insert
    commit together with whatever else the caller checked or wrote.

    Returns:
        The number of items written.
    """
    normalized = normalize_item_names(names)

    await db.execute("DELETE FROM plan_items WHERE plan_id = ?", (plan_id,))

    for order_index, name in enumerate(normalized):
        action_id = await action_registry.ensure_action(db, name)
        await db.execute(
            """
            INSERT INTO plan_items (id, order_index, plan_id, action_id)
            VALUES (?, ?, ?, ?)
            """,
            (str(uuid.uuid4()), order_index, plan_id, action_id),
        )

    return len(normalized)


async def _plan_exists(db: aiosqlite.Connection, plan_id: str) -> bool:
    cursor = await db.execute("SELECT 1 FROM action_plans WHERE id = ?", (plan_id,))
    return await cursor.fetchone() is not None


class PlanStore:
    """Storage operations for action plans."""

    async def create_plan(self, name: str, item_names: Iterable[str]) -> str:
        """Create an active plan with the given items. Returns the plan id."""
        plan_id = str(uuid.uuid4())

        async with transaction() as db:
            await db.execute(
                "INSERT INTO action_plans (id, name, deleted_at) VALUES (?, ?, NULL)",
                (plan_id, name),
            )
            count = await replace_items(db, plan_id, item_names)

        logger.info(f"Created plan {plan_id} ({name!r}) with {count} item(s)")
        return plan_id

    async def edit_plan(
        self,
        plan_id: str,
        name: str,
        item_names: Iterable[str],
        execution_id: str | None = None,
    ) -> None:
        """Rename a plan and replace its items, optionally reconciling an execution.

        Raises:
            NotFoundError: If there is no active plan with this id, or the
                execution does not exist or belongs to another plan.
        """
        async with transaction() as db:
            cursor = await db.execute(
                f"SELECT id FROM action_plans WHERE id = ? AND {_ACTIVE_PREDICATE}",
                (plan_id,),
            )
            if await cursor.fetchone() is None:
                raise NotFoundError(
                    f"No action plan exists for id: {plan_id}", entity="Action Plan"
                )

            progress = None
            if execution_id is not None:
                cursor = await db.execute(
                    "SELECT id FROM executions WHERE id = ? AND plan_id = ?",
                    (execution_id, plan_id),
                )
                if await cursor.fetchone() is None:
                    raise NotFoundError(
                        f"No execution {execution_id} exists for action plan {plan_id}",
                        entity="Execution",
                    )
                progress = await snapshot_progress(db, execution_id)

            await db.execute(
                "UPDATE action_plans SET name = ? WHERE id = ?",
                (name, plan_id),
            )
            count = await replace_items(db, plan_id, item_names)

            if progress is not None:
                await rebuild_execution_items(db, plan_id, execution_id, progress)

        if execution_id is not None:
            logger.info(
                f"Edited plan {plan_id} ({count} item(s)) and reconciled execution {execution_id}"
            )
        else:
            logger.info(f"Edited plan {plan_id} ({count} item(s))")

    async def soft_delete_plan(self, plan_id: str, now: int | None = None) -> None:
        """Mark a plan as deleted.

        Raises:
            NotFoundError: If the plan does not exist.
            ConflictError: If the plan is already deleted.
        """
        deleted_at = now if now is not None else unix_now()

        async with transaction() as db:
            cursor = await db.execute(
                f"UPDATE action_plans SET deleted_at = ? WHERE id = ? AND {_ACTIVE_PREDICATE}",
                (deleted_at, plan_id),
            )
            if cursor.rowcount == 0:
                if not await _plan_exists(db, plan_id):
                    raise NotFoundError(
                        f"No action plan exists for id: {plan_id}", entity="Action Plan"
                    )
                raise ConflictError("Action plan is already deleted.", entity="Action Plan")

        logger.info(f"Deleted plan {plan_id}")

    async def undelete_plan(self, plan_id: str) -> None:
        """Restore a soft-deleted plan.

        Raises:
            NotFoundError: If the plan does not exist.
            ConflictError: If the plan is not deleted.
        """
        async with transaction() as db:
            cursor = await db.execute(
                f"UPDATE action_plans SET deleted_at = NULL WHERE id = ? AND {_DELETED_PREDICATE}",
                (plan_id,),
            )
            if cursor.rowcount == 0:
                if not await _plan_exists(db, plan_id):
                    raise NotFoundError(
                        f"No action plan exists for id: {plan_id}", entity="Action Plan"
                    )
                raise ConflictError("Action plan is not deleted.", entity="Action Plan")

        logger.info(f"Restored plan {plan_id}")

    async def list_plans(
        self,
        sort: PlanSort = PlanSort.NAME,
        visibility: PlanVisibility = PlanVisibility.ACTIVE,
    ) -> list[PlanSummary]:
        """List plans with their computed execution columns."""
        db = await get_db()
        cursor = await db.execute(
            f"""
            SELECT * FROM (
                SELECT
                    action_plans.id AS id,
                    action_plans.name AS name,
                    action_plans.deleted_at AS deleted_at,
                    (
                        SELECT executions.id FROM executions
                        WHERE executions.plan_id = action_plans.id
                            AND (executions.finished IS NULL OR executions.finished <= 0)
                        ORDER BY executions.started DESC, executions.rowid DESC
                        LIMIT 1
                    ) AS active_execution_id,
                    (
                        SELECT MAX(executions.started) FROM executions
                        WHERE executions.plan_id = action_plans.id
                    ) AS last_started_at,
                    (
                        SELECT MAX(executions.finished) FROM executions
                        WHERE executions.plan_id = action_plans.id
                            AND executions.finished > 0
                    ) AS last_finished_at
                FROM action_plans
            )
            {_VISIBILITY_SQL[visibility]}
            ORDER BY {_SORT_SQL[sort]}
            """
        )
        rows = await cursor.fetchall()

        return [
            PlanSummary(
                id=row["id"],
                name=row["name"],
                deleted=timestamp_or_none(row["deleted_at"]) is not None,
                active_execution_id=row["active_execution_id"],
                last_started_at=row["last_started_at"],
                last_finished_at=row["last_finished_at"],
            )
            for row in rows
        ]

    async def get_plan(self, plan_id: str) -> PlanDetail | None:
        """Get a plan (deleted or not) with its items and executions."""
        async with transaction(write=False) as db:
            cursor = await db.execute(
                "SELECT id, name, deleted_at FROM action_plans WHERE id = ?",
                (plan_id,),
            )
            row = await cursor.fetchone()

            if row is None:
                return None

            cursor = await db.execute(
                """
                SELECT plan_items.id AS id,
                       plan_items.order_index AS order_index,
                       plan_items.action_id AS action_id,
                       actions.name AS action_name
                FROM plan_items
                INNER JOIN actions ON actions.id = plan_items.action_id
                WHERE plan_items.plan_id = ?
                ORDER BY plan_items.order_index ASC
                """,
                (plan_id,),
            )
            item_rows = await cursor.fetchall()

            cursor = await db.execute(
                """
                SELECT id, plan_id, started, finished FROM executions
                WHERE plan_id = ?
                ORDER BY started DESC, rowid DESC
                """,
                (plan_id,),
            )
            execution_rows = await cursor.fetchall()

        active_executions = []
        finished_executions = []
        for execution_row in execution_rows:
            summary = ExecutionSummary(
                id=execution_row["id"],
                plan_id=execution_row["plan_id"],
                plan_name=row["name"],
                started_at=execution_row["started"],
                finished_at=timestamp_or_none(execution_row["finished"]),
            )
            if summary.finished_at is None:
                active_executions.append(summary)
            else:
                finished_executions.append(summary)
        finished_executions.sort(key=lambda summary: summary.finished_at, reverse=True)

        deleted_at = timestamp_or_none(row["deleted_at"])
        return PlanDetail(
            id=row["id"],
            name=row["name"],
            deleted=deleted_at is not None,
            deleted_at=deleted_at,
            items=[
                PlanItem(
                    id=item_row["id"],
                    order_index=item_row["order_index"],
                    action_id=item_row["action_id"],
                    action_name=item_row["action_name"],
                )
                for item_row in item_rows
            ],
            active_executions=active_executions,
            finished_executions=finished_executions,
        )


# Global instance
plan_store = PlanStore()
