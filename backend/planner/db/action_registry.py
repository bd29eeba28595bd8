"""ActionRegistry - create-on-demand store of named actions.

Actions have no explicit reference count. An action is alive while at least
one plan item or execution item points at it; the periodic sweep deletes
everything else.
"""

import logging
import uuid

import aiosqlite

from planner.db.database import get_db, transaction
from planner.models import Action

logger = logging.getLogger(__name__)

# Actions referenced by neither plan templates nor execution checklists
_UNREFERENCED_PREDICATE = """
    NOT EXISTS (SELECT 1 FROM plan_items WHERE plan_items.action_id = actions.id)
    AND NOT EXISTS (
        SELECT 1 FROM execution_items WHERE execution_items.action_id = actions.id
    )
"""


class ActionRegistry:
    """Storage operations for the shared action registry."""

    async def ensure_action(self, db: aiosqlite.Connection, name: str) -> str:
        """Return the id of the action named exactly `name`, creating it if needed.

        Must be called on a connection inside a write transaction; the lookup
        and insert then run under the same write lock, so repeated calls never
        create duplicates.
        """
        cursor = await db.execute("SELECT id FROM actions WHERE name = ?", (name,))
        row = await cursor.fetchone()
        if row is not None:
            return row["id"]

        action_id = str(uuid.uuid4())
        await db.execute(
            "INSERT INTO actions (id, name) VALUES (?, ?)",
            (action_id, name),
        )
        logger.debug(f"Created action {name!r} ({action_id})")
        return action_id

    async def get_action_by_name(self, name: str) -> Action | None:
        """Look up an action by exact name."""
        db = await get_db()
        cursor = await db.execute(
            "SELECT id, name FROM actions WHERE name = ?",
            (name,),
        )
        row = await cursor.fetchone()

        if row is None:
            return None

        return Action(id=row["id"], name=row["name"])

    async def list_actions(self) -> list[Action]:
        """List all actions ordered by name."""
        db = await get_db()
        cursor = await db.execute("SELECT id, name FROM actions ORDER BY name ASC")
        rows = await cursor.fetchall()
        return [Action(id=row["id"], name=row["name"]) for row in rows]

    async def search_actions(self, query: str, limit: int = 10) -> list[Action]:
        """Find actions whose name contains `query`, ignoring case, for autocomplete."""
        query = query.strip()
        if not query:
            return []

        pattern = "%" + query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_") + "%"
        db = await get_db()
        cursor = await db.execute(
            """
            SELECT id, name FROM actions
            WHERE name LIKE ? ESCAPE '\\'
            ORDER BY name COLLATE NOCASE ASC
            LIMIT ?
            """,
            (pattern, limit),
        )
        rows = await cursor.fetchall()
        return [Action(id=row["id"], name=row["name"]) for row in rows]

    async def sweep_unreferenced(self) -> list[Action]:
        """Delete every action nothing refers to.

        Returns:
            The actions that were removed, as they were before deletion.
        """
        async with transaction() as db:
            cursor = await db.execute(
                f"SELECT id, name FROM actions WHERE {_UNREFERENCED_PREDICATE} ORDER BY name ASC"
            )
            rows = await cursor.fetchall()
            removed = [Action(id=row["id"], name=row["name"]) for row in rows]

            if removed:
                await db.execute(f"DELETE FROM actions WHERE {_UNREFERENCED_PREDICATE}")

        return removed


# Global instance
action_registry = ActionRegistry()
