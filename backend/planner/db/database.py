"""SQLite database connection, transactions and schema initialization."""

import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import aiosqlite

# Seconds a writer waits for the SQLite write lock before failing
BUSY_TIMEOUT_SECONDS = 30.0

# Global connection holder
_db_connection: aiosqlite.Connection | None = None
_db_path: str | None = None


def unix_now() -> int:
    """Current time as integer Unix seconds."""
    return int(time.time())


async def init_database(db_path: str) -> None:
    """Initialize the database connection and create schema."""
    global _db_connection, _db_path

    # Ensure the data directory exists
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    _db_path = db_path
    _db_connection = await aiosqlite.connect(db_path, timeout=BUSY_TIMEOUT_SECONDS)
    _db_connection.row_factory = aiosqlite.Row

    await _db_connection.execute("PRAGMA journal_mode = WAL")
    await _db_connection.execute("PRAGMA foreign_keys = ON")

    # Create schema
    await _create_schema(_db_connection)


async def close_database() -> None:
    """Close the database connection."""
    global _db_connection, _db_path
    if _db_connection:
        await _db_connection.close()
        _db_connection = None
    _db_path = None


async def get_db() -> aiosqlite.Connection:
    """Get the shared connection used for single-statement reads."""
    if _db_connection is None:
        raise RuntimeError("Database not initialized. Call init_database first.")
    return _db_connection


@asynccontextmanager
async def transaction(write: bool = True) -> AsyncIterator[aiosqlite.Connection]:
    """Run a block of statements as one SQLite transaction.

    Each transaction gets its own connection so that its writes stay
    invisible to other coroutines until COMMIT. Writers take the database
    write lock up front (BEGIN IMMEDIATE); read-only blocks get a consistent
    snapshot (BEGIN). Any exception, cancellation included, rolls back.
    """
    if _db_path is None:
        raise RuntimeError("Database not initialized. Call init_database first.")

    async with aiosqlite.connect(
        _db_path, timeout=BUSY_TIMEOUT_SECONDS, isolation_level=None
    ) as db:
        db.row_factory = aiosqlite.Row
        await db.execute("PRAGMA foreign_keys = ON")
        await db.execute("BEGIN IMMEDIATE" if write else "BEGIN")
        try:
            yield db
        except BaseException:
            await db.execute("ROLLBACK")
            raise
        await db.execute("COMMIT")


async def _create_schema(db: aiosqlite.Connection) -> None:
    """Create database tables and indexes."""
    # Shared action registry
    await db.execute("""
        CREATE TABLE IF NOT EXISTS actions (
            id TEXT PRIMARY KEY NOT NULL,
            name TEXT NOT NULL UNIQUE
        )
    """)

    # Action plans (soft-deleted via deleted_at)
    await db.execute("""
        CREATE TABLE IF NOT EXISTS action_plans (
            id TEXT PRIMARY KEY NOT NULL,
            name TEXT NOT NULL,
            deleted_at INTEGER
        )
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_action_plans_deleted_at
        ON action_plans(deleted_at)
    """)

    # Ordered plan template
    await db.execute("""
        CREATE TABLE IF NOT EXISTS plan_items (
            id TEXT PRIMARY KEY NOT NULL,
            order_index INTEGER NOT NULL,
            plan_id TEXT NOT NULL,
            action_id TEXT NOT NULL,
            FOREIGN KEY (plan_id) REFERENCES action_plans(id),
            FOREIGN KEY (action_id) REFERENCES actions(id),
            UNIQUE(plan_id, order_index)
        )
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_plan_items_action
        ON plan_items(action_id)
    """)

    # =========================================================================
    # Executions (checklist runs)
    # =========================================================================
    await db.execute("""
        CREATE TABLE IF NOT EXISTS executions (
            id TEXT PRIMARY KEY NOT NULL,
            plan_id TEXT NOT NULL,
            started INTEGER NOT NULL,
            finished INTEGER,
            FOREIGN KEY (plan_id) REFERENCES action_plans(id)
        )
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_executions_plan
        ON executions(plan_id, started)
    """)

    await db.execute("""
        CREATE TABLE IF NOT EXISTS execution_items (
            id TEXT PRIMARY KEY NOT NULL,
            action_id TEXT NOT NULL,
            order_index INTEGER NOT NULL,
            execution_id TEXT NOT NULL,
            finished INTEGER,
            FOREIGN KEY (action_id) REFERENCES actions(id),
            FOREIGN KEY (execution_id) REFERENCES executions(id),
            UNIQUE(execution_id, order_index)
        )
    """)

    await db.execute("""
        CREATE INDEX IF NOT EXISTS idx_execution_items_action
        ON execution_items(action_id)
    """)

    await db.commit()
