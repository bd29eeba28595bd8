"""Tests for plans, item replacement and soft deletion."""

import pytest

from planner.db import ConflictError, NotFoundError, execution_store, plan_store, transaction
from planner.db.plan_store import normalize_item_names, replace_items
from planner.models import PlanSort, PlanVisibility


def _names(plan) -> list[str]:
    return [item.action_name for item in plan.items]


def _indexes(plan) -> list[int]:
    return [item.order_index for item in plan.items]


class TestNormalizeItemNames:
    """Tests for input normalization."""

    def test_trims_and_drops_blanks(self):
        assert normalize_item_names(["  A ", "", "   ", "B", "\tC\n"]) == ["A", "B", "C"]

    def test_keeps_order_and_duplicates(self):
        assert normalize_item_names(["B", "A", "B"]) == ["B", "A", "B"]

    def test_inner_whitespace_untouched(self):
        assert normalize_item_names(["Check  oil"]) == ["Check  oil"]

    def test_empty(self):
        assert normalize_item_names([]) == []


class TestReplaceItems:
    """Tests for full replacement of a plan template."""

    @pytest.mark.asyncio
    async def test_dense_order_matching_input(self):
        plan_id = await plan_store.create_plan("Car", [])

        async with transaction() as db:
            count = await replace_items(db, plan_id, [" A", "", "B ", "C"])

        plan = await plan_store.get_plan(plan_id)
        assert count == 3
        assert _names(plan) == ["A", "B", "C"]
        assert _indexes(plan) == [0, 1, 2]

    @pytest.mark.asyncio
    async def test_idempotent(self):
        plan_id = await plan_store.create_plan("Car", ["A", "B"])

        for _ in range(2):
            async with transaction() as db:
                await replace_items(db, plan_id, ["B", " A "])

        plan = await plan_store.get_plan(plan_id)
        assert _names(plan) == ["B", "A"]
        assert _indexes(plan) == [0, 1]

    @pytest.mark.asyncio
    async def test_rows_are_recreated(self):
        """Every edit writes new plan item rows."""
        plan_id = await plan_store.create_plan("Car", ["A"])
        before = await plan_store.get_plan(plan_id)

        await plan_store.edit_plan(plan_id, "Car", ["A"])
        after = await plan_store.get_plan(plan_id)

        assert before.items[0].id != after.items[0].id
        assert before.items[0].action_id == after.items[0].action_id

    @pytest.mark.asyncio
    async def test_failure_leaves_previous_items(self):
        """A failure after the delete rolls the whole replacement back."""
        plan_id = await plan_store.create_plan("Car", ["A", "B"])

        with pytest.raises(RuntimeError):
            async with transaction() as db:
                await replace_items(db, plan_id, ["X"])
                raise RuntimeError("boom")

        plan = await plan_store.get_plan(plan_id)
        assert _names(plan) == ["A", "B"]


class TestPlanLifecycle:
    """Tests for create, edit, delete and undelete."""

    @pytest.mark.asyncio
    async def test_create(self):
        plan_id = await plan_store.create_plan("Car", ["Check oil", "  ", "Wash"])

        plan = await plan_store.get_plan(plan_id)
        assert plan.name == "Car"
        assert plan.deleted is False
        assert plan.deleted_at is None
        assert _names(plan) == ["Check oil", "Wash"]

    @pytest.mark.asyncio
    async def test_get_missing(self):
        assert await plan_store.get_plan("missing") is None

    @pytest.mark.asyncio
    async def test_edit_renames_and_replaces(self):
        plan_id = await plan_store.create_plan("Car", ["A", "B"])

        await plan_store.edit_plan(plan_id, "Van", ["C", "A"])

        plan = await plan_store.get_plan(plan_id)
        assert plan.name == "Van"
        assert _names(plan) == ["C", "A"]

    @pytest.mark.asyncio
    async def test_edit_missing_plan(self):
        with pytest.raises(NotFoundError):
            await plan_store.edit_plan("missing", "Car", ["A"])

    @pytest.mark.asyncio
    async def test_edit_deleted_plan_is_not_found(self):
        plan_id = await plan_store.create_plan("Car", ["A"])
        await plan_store.soft_delete_plan(plan_id)

        with pytest.raises(NotFoundError):
            await plan_store.edit_plan(plan_id, "Van", ["B"])

        plan = await plan_store.get_plan(plan_id)
        assert plan.name == "Car"
        assert _names(plan) == ["A"]

    @pytest.mark.asyncio
    async def test_soft_delete_and_undelete(self):
        plan_id = await plan_store.create_plan("Car", ["A"])

        await plan_store.soft_delete_plan(plan_id, now=1_700_000_000)
        deleted = await plan_store.get_plan(plan_id)
        assert deleted.deleted is True
        assert deleted.deleted_at == 1_700_000_000
        assert _names(deleted) == ["A"]

        await plan_store.undelete_plan(plan_id)
        restored = await plan_store.get_plan(plan_id)
        assert restored.deleted is False
        assert restored.deleted_at is None

    @pytest.mark.asyncio
    async def test_delete_twice_conflicts(self):
        plan_id = await plan_store.create_plan("Car", [])
        await plan_store.soft_delete_plan(plan_id)

        with pytest.raises(ConflictError):
            await plan_store.soft_delete_plan(plan_id)

    @pytest.mark.asyncio
    async def test_delete_missing(self):
        with pytest.raises(NotFoundError):
            await plan_store.soft_delete_plan("missing")

    @pytest.mark.asyncio
    async def test_undelete_active_conflicts(self):
        plan_id = await plan_store.create_plan("Car", [])

        with pytest.raises(ConflictError):
            await plan_store.undelete_plan(plan_id)

    @pytest.mark.asyncio
    async def test_undelete_missing(self):
        with pytest.raises(NotFoundError):
            await plan_store.undelete_plan("missing")


class TestListPlans:
    """Tests for filtering and computed sort keys."""

    @pytest.mark.asyncio
    async def test_name_sort_is_case_insensitive(self):
        await plan_store.create_plan("bike", [])
        await plan_store.create_plan("Car", [])
        await plan_store.create_plan("attic", [])

        plans = await plan_store.list_plans(sort=PlanSort.NAME)

        assert [plan.name for plan in plans] == ["attic", "bike", "Car"]

    @pytest.mark.asyncio
    async def test_visibility_filter(self):
        await plan_store.create_plan("Active", [])
        deleted_id = await plan_store.create_plan("Gone", [])
        await plan_store.soft_delete_plan(deleted_id)

        active = await plan_store.list_plans(visibility=PlanVisibility.ACTIVE)
        deleted = await plan_store.list_plans(visibility=PlanVisibility.DELETED)
        everything = await plan_store.list_plans(visibility=PlanVisibility.ALL)

        assert [plan.name for plan in active] == ["Active"]
        assert [(plan.name, plan.deleted) for plan in deleted] == [("Gone", True)]
        assert [plan.name for plan in everything] == ["Active", "Gone"]

    @pytest.mark.asyncio
    async def test_execution_columns(self):
        plan_id = await plan_store.create_plan("Car", ["A"])
        done = await execution_store.create_execution(plan_id, now=1000)
        execution = await execution_store.get_execution(done)
        await execution_store.set_item_finished(execution.items[0].id, True, now=1100)
        await execution_store.complete_execution(done, now=1200)
        older_open = await execution_store.create_execution(plan_id, now=1300)
        newest_open = await execution_store.create_execution(plan_id, now=1400)

        [summary] = await plan_store.list_plans()

        assert summary.active_execution_id == newest_open
        assert summary.active_execution_id != older_open
        assert summary.last_started_at == 1400
        assert summary.last_finished_at == 1200

    @pytest.mark.asyncio
    async def test_sort_by_last_started(self):
        never = await plan_store.create_plan("Never run", [])
        old = await plan_store.create_plan("Old", [])
        recent = await plan_store.create_plan("Recent", [])
        await execution_store.create_execution(old, now=1000)
        await execution_store.create_execution(recent, now=2000)

        plans = await plan_store.list_plans(sort=PlanSort.LAST_STARTED)

        assert [plan.id for plan in plans] == [recent, old, never]

    @pytest.mark.asyncio
    async def test_sort_by_last_finished(self):
        open_only = await plan_store.create_plan("Open only", [])
        early = await plan_store.create_plan("Early", [])
        late = await plan_store.create_plan("Late", [])
        await execution_store.create_execution(open_only, now=5000)
        for plan_id, finished in ((early, 1000), (late, 2000)):
            execution_id = await execution_store.create_execution(plan_id, now=500)
            await execution_store.complete_execution(execution_id, now=finished)

        plans = await plan_store.list_plans(sort=PlanSort.LAST_FINISHED)

        assert [plan.id for plan in plans] == [late, early, open_only]
        assert plans[2].last_finished_at is None
