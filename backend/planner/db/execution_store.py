"""ExecutionStore - checklist runs and their time-gated state machine.

States are derived from `executions.finished`: NULL or <= 0 is Open, a
positive timestamp is Completed. Transitions are guarded UPDATE/DELETE
statements whose affected-row count decides the outcome; a zero count is
then classified by reading the row inside the same transaction.
"""

import logging
import uuid

import aiosqlite

from planner.db.database import get_db, transaction, unix_now
from planner.db.errors import ConflictError, NotFoundError
from planner.models import (
    REOPEN_WINDOW_SECONDS,
    Execution,
    ExecutionItem,
    ExecutionList,
    ExecutionSummary,
    ItemFinishedResult,
)
from planner.models.execution import can_reopen, execution_state, timestamp_or_none

logger = logging.getLogger(__name__)

_OPEN_PREDICATE = "(finished IS NULL OR finished <= 0)"


def _execution_not_found(execution_id: str) -> NotFoundError:
    return NotFoundError(
        f"No todo list exists for execution id: {execution_id}", entity="Execution"
    )


async def _get_finished(db: aiosqlite.Connection, execution_id: str) -> tuple[bool, int | None]:
    """Return (exists, finished) for an execution."""
    cursor = await db.execute(
        "SELECT finished FROM executions WHERE id = ?",
        (execution_id,),
    )
    row = await cursor.fetchone()
    if row is None:
        return False, None
    return True, timestamp_or_none(row["finished"])


class ExecutionStore:
    """Storage operations for executions."""

    async def create_execution(self, plan_id: str, now: int | None = None) -> str:
        """Start an execution from the plan's current template.

        Soft-deleted plans can still be executed.

        Raises:
            NotFoundError: If the plan does not exist.
        """
        started = now if now is not None else unix_now()
        execution_id = str(uuid.uuid4())

        async with transaction() as db:
            cursor = await db.execute(
                "SELECT id FROM action_plans WHERE id = ?",
                (plan_id,),
            )
            if await cursor.fetchone() is None:
                raise NotFoundError(
                    f"No action plan exists for id: {plan_id}", entity="Action Plan"
                )

            await db.execute(
                "INSERT INTO executions (id, plan_id, started, finished) VALUES (?, ?, ?, NULL)",
                (execution_id, plan_id, started),
            )

            cursor = await db.execute(
                """
                SELECT action_id, order_index FROM plan_items
                WHERE plan_id = ?
                ORDER BY order_index ASC
                """,
                (plan_id,),
            )
            template_items = await cursor.fetchall()

            for item in template_items:
                await db.execute(
                    """
                    INSERT INTO execution_items (id, action_id, order_index, execution_id, finished)
                    VALUES (?, ?, ?, ?, NULL)
                    """,
                    (str(uuid.uuid4()), item["action_id"], item["order_index"], execution_id),
                )

        logger.info(
            f"Started execution {execution_id} of plan {plan_id} with {len(template_items)} item(s)"
        )
        return execution_id

    async def get_execution(
        self, execution_id: str, now: int | None = None
    ) -> Execution | None:
        """Get an execution with its items and transition flags."""
        current = now if now is not None else unix_now()

        async with transaction(write=False) as db:
            cursor = await db.execute(
                """
                SELECT executions.id AS id,
                       executions.plan_id AS plan_id,
                       action_plans.name AS plan_name,
                       executions.started AS started,
                       executions.finished AS finished
                FROM executions
                INNER JOIN action_plans ON action_plans.id = executions.plan_id
                WHERE executions.id = ?
                """,
                (execution_id,),
            )
            row = await cursor.fetchone()

            if row is None:
                return None

            cursor = await db.execute(
                """
                SELECT execution_items.id AS id,
                       execution_items.action_id AS action_id,
                       actions.name AS action_name,
                       execution_items.order_index AS order_index,
                       execution_items.finished AS finished
                FROM execution_items
                INNER JOIN actions ON actions.id = execution_items.action_id
                WHERE execution_items.execution_id = ?
                ORDER BY execution_items.order_index ASC
                """,
                (execution_id,),
            )
            item_rows = await cursor.fetchall()

        items = [
            ExecutionItem(
                id=item_row["id"],
                action_id=item_row["action_id"],
                action_name=item_row["action_name"],
                order_index=item_row["order_index"],
                finished_at=timestamp_or_none(item_row["finished"]),
            )
            for item_row in item_rows
        ]

        return Execution(
            id=row["id"],
            plan_id=row["plan_id"],
            plan_name=row["plan_name"],
            state=execution_state(row["finished"]),
            started_at=row["started"],
            finished_at=timestamp_or_none(row["finished"]),
            items=items,
            can_complete=bool(items) and all(item.is_finished for item in items),
            can_reopen=can_reopen(row["finished"], current),
        )

    async def list_executions(self) -> ExecutionList:
        """List open executions (newest start first) and completed ones (newest finish first)."""
        db = await get_db()
        cursor = await db.execute(
            """
            SELECT executions.id AS id,
                   executions.plan_id AS plan_id,
                   action_plans.name AS plan_name,
                   executions.started AS started,
                   executions.finished AS finished
            FROM executions
            INNER JOIN action_plans ON action_plans.id = executions.plan_id
            ORDER BY executions.started DESC, executions.rowid DESC
            """
        )
        rows = await cursor.fetchall()

        result = ExecutionList()
        for row in rows:
            summary = ExecutionSummary(
                id=row["id"],
                plan_id=row["plan_id"],
                plan_name=row["plan_name"],
                started_at=row["started"],
                finished_at=timestamp_or_none(row["finished"]),
            )
            if summary.finished_at is None:
                result.open.append(summary)
            else:
                result.finished.append(summary)
        result.finished.sort(key=lambda summary: summary.finished_at, reverse=True)
        return result

    async def set_item_finished(
        self, item_id: str, finished: bool, now: int | None = None
    ) -> ItemFinishedResult:
        """Check or uncheck one execution item, in any execution state.

        Raises:
            NotFoundError: If the item does not exist.
        """
        finished_at = (now if now is not None else unix_now()) if finished else None

        async with transaction() as db:
            cursor = await db.execute(
                "UPDATE execution_items SET finished = ? WHERE id = ?",
                (finished_at, item_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(
                    f"No execution item exists for id: {item_id}", entity="Execution"
                )

        return ItemFinishedResult(id=item_id, finished_at=finished_at)

    async def complete_execution(self, execution_id: str, now: int | None = None) -> None:
        """Mark an execution as completed.

        Completing an already completed execution is a no-op.

        Raises:
            NotFoundError: If the execution does not exist.
            ConflictError: If any item is still unchecked.
        """
        finished_at = now if now is not None else unix_now()

        async with transaction() as db:
            exists, _ = await _get_finished(db, execution_id)
            if not exists:
                raise _execution_not_found(execution_id)

            cursor = await db.execute(
                f"""
                SELECT COUNT(*) AS count FROM execution_items
                WHERE execution_id = ? AND {_OPEN_PREDICATE}
                """,
                (execution_id,),
            )
            row = await cursor.fetchone()
            if row["count"] > 0:
                raise ConflictError(
                    "All items must be checked before completing this execution.",
                    entity="Execution",
                )

            cursor = await db.execute(
                f"UPDATE executions SET finished = ? WHERE id = ? AND {_OPEN_PREDICATE}",
                (finished_at, execution_id),
            )
            changed = cursor.rowcount > 0

        if changed:
            logger.info(f"Completed execution {execution_id}")

    async def reopen_execution(self, execution_id: str, now: int | None = None) -> None:
        """Reopen a completed execution within 24 hours of its completion.

        Raises:
            NotFoundError: If the execution does not exist.
            ConflictError: If it is already open or the window has passed.
        """
        current = now if now is not None else unix_now()

        async with transaction() as db:
            cursor = await db.execute(
                """
                UPDATE executions SET finished = NULL
                WHERE id = ? AND finished > 0 AND ? - finished <= ?
                """,
                (execution_id, current, REOPEN_WINDOW_SECONDS),
            )
            if cursor.rowcount == 0:
                exists, finished = await _get_finished(db, execution_id)
                if not exists:
                    raise _execution_not_found(execution_id)
                if finished is None:
                    raise ConflictError("Execution is already open.", entity="Execution")
                raise ConflictError(
                    "Execution can only be reopened within 24 hours of completion.",
                    entity="Execution",
                )

        logger.info(f"Reopened execution {execution_id}")

    async def delete_execution(self, execution_id: str) -> None:
        """Delete an open execution and its items.

        Raises:
            NotFoundError: If the execution does not exist.
            ConflictError: If the execution is completed.
        """
        async with transaction() as db:
            exists, finished = await _get_finished(db, execution_id)
            if not exists:
                raise _execution_not_found(execution_id)
            if finished is not None:
                raise ConflictError(
                    "Only open executions can be deleted.", entity="Execution"
                )

            await db.execute(
                "DELETE FROM execution_items WHERE execution_id = ?",
                (execution_id,),
            )
            await db.execute(
                f"DELETE FROM executions WHERE id = ? AND {_OPEN_PREDICATE}",
                (execution_id,),
            )

        logger.info(f"Deleted execution {execution_id}")


# Global instance
execution_store = ExecutionStore()
