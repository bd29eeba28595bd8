"""Keep an execution's checklist in step with an edited plan template.

Plan items are deleted and re-inserted on every edit, so there is no row
identity to follow across an edit. Progress is therefore carried by action
name in two passes:

1. Before the plan items are replaced, record `name -> finished` for every
   item of the execution and drop the execution's items.
2. After the replacement, recreate one execution item per new plan item,
   restoring `finished` where the action name was seen in pass 1.

Reordering and inserting or removing other items keeps progress. Renaming
an item (including a change of case) starts it over as unfinished.
"""

import logging
import uuid
from collections.abc import Iterable, Mapping

import aiosqlite

from planner.models.execution import timestamp_or_none

logger = logging.getLogger(__name__)


async def snapshot_progress(
    db: aiosqlite.Connection, execution_id: str
) -> dict[str, int | None]:
    """Record progress by action name, then delete the execution's items."""
    cursor = await db.execute(
        """
        SELECT actions.name AS name, execution_items.finished AS finished
        FROM execution_items
        INNER JOIN actions ON actions.id = execution_items.action_id
        WHERE execution_items.execution_id = ?
        ORDER BY execution_items.order_index ASC
        """,
        (execution_id,),
    )
    rows = await cursor.fetchall()

    progress: dict[str, int | None] = {}
    for row in rows:
        finished = timestamp_or_none(row["finished"])
        # A repeated name counts as finished if any of its lines was
        if progress.get(row["name"]) is None:
            progress[row["name"]] = finished

    await db.execute(
        "DELETE FROM execution_items WHERE execution_id = ?",
        (execution_id,),
    )
    return progress


def carry_over_progress(
    progress: Mapping[str, int | None], names: Iterable[str]
) -> list[int | None]:
    """Finished timestamps for `names` in order; unknown names are unfinished."""
    return [progress.get(name) for name in names]


async def rebuild_execution_items(
    db: aiosqlite.Connection,
    plan_id: str,
    execution_id: str,
    progress: Mapping[str, int | None],
) -> int:
    """Recreate the execution's items from the plan's current template.

    Returns:
        The number of items that kept a finished timestamp.
    """
    cursor = await db.execute(
        """
        SELECT plan_items.order_index AS order_index,
               plan_items.action_id AS action_id,
               actions.name AS name
        FROM plan_items
        INNER JOIN actions ON actions.id = plan_items.action_id
        WHERE plan_items.plan_id = ?
        ORDER BY plan_items.order_index ASC
        """,
        (plan_id,),
    )
    rows = await cursor.fetchall()

    finished_values = carry_over_progress(progress, (row["name"] for row in rows))
    for row, finished in zip(rows, finished_values):
        await db.execute(
            """
            INSERT INTO execution_items (id, action_id, order_index, execution_id, finished)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                str(uuid.uuid4()),
                row["action_id"],
                row["order_index"],
                execution_id,
                finished,
            ),
        )

    kept = sum(1 for finished in finished_values if finished is not None)
    logger.debug(
        f"Rebuilt {len(rows)} item(s) for execution {execution_id}, {kept} kept progress"
    )
    return kept
