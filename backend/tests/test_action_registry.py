"""Tests for the action registry and the unreferenced-action sweep."""

import pytest

from planner.db import action_registry, execution_store, plan_store, transaction
from planner.db.database import get_db
from planner.services.action_gc import sweep_actions_once


async def _action_names() -> list[str]:
    return [action.name for action in await action_registry.list_actions()]


class TestEnsureAction:
    """Tests for create-on-demand lookup."""

    @pytest.mark.asyncio
    async def test_creates_once_and_reuses_id(self):
        """Repeated calls with one name leave exactly one row with a stable id."""
        async with transaction() as db:
            first = await action_registry.ensure_action(db, "Check oil level")
            second = await action_registry.ensure_action(db, "Check oil level")

        async with transaction() as db:
            third = await action_registry.ensure_action(db, "Check oil level")

        assert first == second == third

        db = await get_db()
        cursor = await db.execute(
            "SELECT COUNT(*) AS count FROM actions WHERE name = ?", ("Check oil level",)
        )
        row = await cursor.fetchone()
        assert row["count"] == 1

    @pytest.mark.asyncio
    async def test_names_are_case_sensitive(self):
        """Differently cased names are different actions."""
        async with transaction() as db:
            upper = await action_registry.ensure_action(db, "Oil Change")
            lower = await action_registry.ensure_action(db, "oil change")

        assert upper != lower
        assert sorted(await _action_names()) == ["Oil Change", "oil change"]

    @pytest.mark.asyncio
    async def test_rolled_back_transaction_creates_nothing(self):
        """An action created in a failed transaction does not survive."""
        with pytest.raises(RuntimeError):
            async with transaction() as db:
                await action_registry.ensure_action(db, "Ghost")
                raise RuntimeError("boom")

        assert await action_registry.get_action_by_name("Ghost") is None

    @pytest.mark.asyncio
    async def test_plans_share_actions(self):
        """Two plans naming the same action point at one registry row."""
        first = await plan_store.create_plan("Car", ["Check tyre pressure"])
        second = await plan_store.create_plan("Bike", ["Check tyre pressure"])

        car = await plan_store.get_plan(first)
        bike = await plan_store.get_plan(second)

        assert car.items[0].action_id == bike.items[0].action_id
        assert await _action_names() == ["Check tyre pressure"]


class TestSearchActions:
    """Tests for name search used by item autocomplete."""

    @pytest.mark.asyncio
    async def test_substring_case_insensitive(self):
        await plan_store.create_plan("Car", ["Check oil level", "Oil change", "Wash"])

        results = await action_registry.search_actions("OIL")

        assert [action.name for action in results] == ["Check oil level", "Oil change"]

    @pytest.mark.asyncio
    async def test_wildcards_are_literal(self):
        await plan_store.create_plan("Car", ["50% discount", "Wash"])

        results = await action_registry.search_actions("%")

        assert [action.name for action in results] == ["50% discount"]

    @pytest.mark.asyncio
    async def test_blank_query(self):
        await plan_store.create_plan("Car", ["Wash"])
        assert await action_registry.search_actions("   ") == []


class TestSweepUnreferenced:
    """Tests for garbage collection of orphaned actions."""

    @pytest.mark.asyncio
    async def test_removes_orphans_and_keeps_referenced(self):
        """Actions dropped from every plan and execution are removed."""
        plan_id = await plan_store.create_plan("Car", ["A", "B", "C"])
        await plan_store.edit_plan(plan_id, "Car", ["A"])

        removed = await action_registry.sweep_unreferenced()

        assert sorted(action.name for action in removed) == ["B", "C"]
        assert await _action_names() == ["A"]

    @pytest.mark.asyncio
    async def test_execution_items_keep_actions_alive(self):
        """An action only referenced by an execution survives the sweep."""
        plan_id = await plan_store.create_plan("Car", ["A", "B"])
        await execution_store.create_execution(plan_id)
        await plan_store.edit_plan(plan_id, "Car", ["A"])

        removed = await action_registry.sweep_unreferenced()

        assert removed == []
        assert await _action_names() == ["A", "B"]

    @pytest.mark.asyncio
    async def test_deleting_execution_orphans_its_actions(self):
        plan_id = await plan_store.create_plan("Car", ["A", "B"])
        execution_id = await execution_store.create_execution(plan_id)
        await plan_store.edit_plan(plan_id, "Car", ["A"])
        await execution_store.delete_execution(execution_id)

        removed = await sweep_actions_once()

        assert [action.name for action in removed] == ["B"]
        assert await _action_names() == ["A"]

    @pytest.mark.asyncio
    async def test_empty_store(self):
        assert await action_registry.sweep_unreferenced() == []

    @pytest.mark.asyncio
    async def test_sweep_is_idempotent(self):
        plan_id = await plan_store.create_plan("Car", ["A", "B"])
        await plan_store.edit_plan(plan_id, "Car", [])

        first = await action_registry.sweep_unreferenced()
        second = await action_registry.sweep_unreferenced()

        assert len(first) == 2
        assert second == []
