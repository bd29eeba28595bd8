"""SnapshotStore - whole-store backup export and atomic restore."""

import json
import logging
import uuid
from collections.abc import Mapping
from typing import Any

import aiosqlite
from pydantic import ValidationError

from planner.db.database import transaction, unix_now
from planner.db.errors import SnapshotValidationError
from planner.models import (
    SNAPSHOT_VERSION,
    ImportResult,
    Snapshot,
    SnapshotExecution,
    SnapshotExecutionItem,
    SnapshotPlan,
    SnapshotPlanItem,
)
from planner.models.execution import timestamp_or_none

logger = logging.getLogger(__name__)


def parse_snapshot(document: Mapping[str, Any] | Snapshot) -> Snapshot:
    """Validate a backup document without touching the store.

    Checks, in order: the version, the document structure, plan id
    uniqueness, execution id uniqueness, that every execution refers to a
    plan in the document, and that order indexes are unique per list.

    Raises:
        SnapshotValidationError: Describing the first problem found.
    """
    if isinstance(document, Snapshot):
        snapshot = document
    else:
        if not isinstance(document, Mapping):
            raise SnapshotValidationError("The uploaded file is not valid backup JSON.")
        version = document.get("version")
        # JSON true and 1.0 compare equal to 1 in Python
        if type(version) is not int or version != SNAPSHOT_VERSION:
            raise SnapshotValidationError(f"Unsupported backup version: {version}")
        try:
            snapshot = Snapshot.model_validate(document)
        except ValidationError as e:
            raise SnapshotValidationError(
                f"The uploaded file is not valid backup JSON: {e.error_count()} invalid field(s)"
            ) from e

    if snapshot.version != SNAPSHOT_VERSION:
        raise SnapshotValidationError(f"Unsupported backup version: {snapshot.version}")

    plan_ids: set[uuid.UUID] = set()
    for plan in snapshot.plans:
        if plan.id in plan_ids:
            raise SnapshotValidationError(f"Duplicate action plan id in backup: {plan.id}")
        plan_ids.add(plan.id)
        _check_order_indexes(f"action plan {plan.id}", plan.items)

    execution_ids: set[uuid.UUID] = set()
    for execution in snapshot.executions:
        if execution.id in execution_ids:
            raise SnapshotValidationError(f"Duplicate execution id in backup: {execution.id}")
        execution_ids.add(execution.id)
        if execution.plan_id not in plan_ids:
            raise SnapshotValidationError(
                f"Execution {execution.id} references unknown action plan {execution.plan_id}"
            )
        _check_order_indexes(f"execution {execution.id}", execution.items)

    return snapshot


def parse_snapshot_json(raw: bytes | str) -> Snapshot:
    """Decode and validate an uploaded backup file."""
    try:
        document = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise SnapshotValidationError("The uploaded file is not valid backup JSON.") from e
    return parse_snapshot(document)


def _check_order_indexes(
    owner: str, items: list[SnapshotPlanItem] | list[SnapshotExecutionItem]
) -> None:
    seen: set[int] = set()
    for item in items:
        if item.order_index in seen:
            raise SnapshotValidationError(
                f"Duplicate order index {item.order_index} in {owner}"
            )
        seen.add(item.order_index)


async def _action_id_for(
    db: aiosqlite.Connection, action_by_name: dict[str, str], name: str
) -> str:
    """Resolve an action name during import, inserting it on first sight."""
    action_id = action_by_name.get(name)
    if action_id is not None:
        return action_id

    action_id = str(uuid.uuid4())
    await db.execute("INSERT INTO actions (id, name) VALUES (?, ?)", (action_id, name))
    action_by_name[name] = action_id
    return action_id


class SnapshotStore:
    """Backup and restore of the complete planner state."""

    async def export_snapshot(self, now: int | None = None) -> Snapshot:
        """Read every plan and execution as one point-in-time document."""
        exported_at = now if now is not None else unix_now()

        async with transaction(write=False) as db:
            cursor = await db.execute(
                "SELECT id, name, deleted_at FROM action_plans ORDER BY name ASC, id ASC"
            )
            plan_rows = await cursor.fetchall()

            cursor = await db.execute(
                """
                SELECT plan_items.plan_id AS plan_id,
                       plan_items.order_index AS order_index,
                       actions.name AS action_name
                FROM plan_items
                INNER JOIN actions ON actions.id = plan_items.action_id
                ORDER BY plan_items.plan_id, plan_items.order_index ASC
                """
            )
            plan_items: dict[str, list[SnapshotPlanItem]] = {}
            for row in await cursor.fetchall():
                plan_items.setdefault(row["plan_id"], []).append(
                    SnapshotPlanItem(
                        order_index=row["order_index"], action_name=row["action_name"]
                    )
                )

            cursor = await db.execute(
                """
                SELECT id, plan_id, started, finished FROM executions
                ORDER BY started DESC, id ASC
                """
            )
            execution_rows = await cursor.fetchall()

            cursor = await db.execute(
                """
                SELECT execution_items.execution_id AS execution_id,
                       execution_items.order_index AS order_index,
                       actions.name AS action_name,
                       execution_items.finished AS finished
                FROM execution_items
                INNER JOIN actions ON actions.id = execution_items.action_id
                ORDER BY execution_items.execution_id, execution_items.order_index ASC
                """
            )
            execution_items: dict[str, list[SnapshotExecutionItem]] = {}
            for row in await cursor.fetchall():
                execution_items.setdefault(row["execution_id"], []).append(
                    SnapshotExecutionItem(
                        order_index=row["order_index"],
                        action_name=row["action_name"],
                        finished=timestamp_or_none(row["finished"]),
                    )
                )

        return Snapshot(
            version=SNAPSHOT_VERSION,
            exported_at_unix=exported_at,
            plans=[
                SnapshotPlan(
                    id=row["id"],
                    name=row["name"],
                    deleted_at=timestamp_or_none(row["deleted_at"]),
                    items=plan_items.get(row["id"], []),
                )
                for row in plan_rows
            ],
            executions=[
                SnapshotExecution(
                    id=row["id"],
                    plan_id=row["plan_id"],
                    started=row["started"],
                    finished=timestamp_or_none(row["finished"]),
                    items=execution_items.get(row["id"], []),
                )
                for row in execution_rows
            ],
        )

    async def import_snapshot(self, document: Mapping[str, Any] | Snapshot) -> ImportResult:
        """Replace the entire store with the contents of a backup document.

        The document is fully validated before anything is written; the wipe
        and re-insert then run in a single transaction.

        Raises:
            SnapshotValidationError: If the document is rejected.
        """
        snapshot = parse_snapshot(document)

        async with transaction() as db:
            await db.execute("DELETE FROM execution_items")
            await db.execute("DELETE FROM executions")
            await db.execute("DELETE FROM plan_items")
            await db.execute("DELETE FROM action_plans")
            await db.execute("DELETE FROM actions")

            action_by_name: dict[str, str] = {}

            for plan in snapshot.plans:
                plan_id = str(plan.id)
                await db.execute(
                    "INSERT INTO action_plans (id, name, deleted_at) VALUES (?, ?, ?)",
                    (plan_id, plan.name, timestamp_or_none(plan.deleted_at)),
                )

                ordered = sorted(plan.items, key=lambda item: item.order_index)
                for order_index, item in enumerate(ordered):
                    action_id = await _action_id_for(db, action_by_name, item.action_name)
                    await db.execute(
                        """
                        INSERT INTO plan_items (id, order_index, plan_id, action_id)
                        VALUES (?, ?, ?, ?)
                        """,
                        (str(uuid.uuid4()), order_index, plan_id, action_id),
                    )

            for execution in snapshot.executions:
                execution_id = str(execution.id)
                await db.execute(
                    "INSERT INTO executions (id, plan_id, started, finished) VALUES (?, ?, ?, ?)",
                    (
                        execution_id,
                        str(execution.plan_id),
                        execution.started,
                        timestamp_or_none(execution.finished),
                    ),
                )

                ordered = sorted(execution.items, key=lambda item: item.order_index)
                for order_index, item in enumerate(ordered):
                    action_id = await _action_id_for(db, action_by_name, item.action_name)
                    await db.execute(
                        """
                        INSERT INTO execution_items (id, action_id, order_index, execution_id, finished)
                        VALUES (?, ?, ?, ?, ?)
                        """,
                        (
                            str(uuid.uuid4()),
                            action_id,
                            order_index,
                            execution_id,
                            timestamp_or_none(item.finished),
                        ),
                    )

        logger.info(
            f"Imported backup: {len(snapshot.plans)} action plan(s), "
            f"{len(snapshot.executions)} execution(s), {len(action_by_name)} action(s)"
        )
        return ImportResult(
            plans_restored=len(snapshot.plans),
            executions_restored=len(snapshot.executions),
        )


# Global instance
snapshot_store = SnapshotStore()
