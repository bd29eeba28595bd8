"""Action plan API routes."""

import logging

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from planner.db import (
    ConflictError,
    NotFoundError,
    execution_store,
    plan_store,
)
from planner.models import (
    Execution,
    PlanCreate,
    PlanDetail,
    PlanSort,
    PlanSummary,
    PlanUpdate,
    PlanVisibility,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class PlansResponse(BaseModel):
    """Response for listing plans."""

    plans: list[PlanSummary]
    total: int


async def _load_plan(plan_id: str) -> PlanDetail:
    plan = await plan_store.get_plan(plan_id)
    if plan is None:
        raise HTTPException(status_code=404, detail="Action plan not found")
    return plan


@router.get("/plans")
async def list_plans(
    sort: PlanSort = Query(PlanSort.NAME, description="Sort key"),
    visibility: PlanVisibility = Query(PlanVisibility.ACTIVE, description="Deletion filter"),
    include_deleted: bool = Query(
        False, alias="includeDeleted", description="Shortcut for visibility=all"
    ),
) -> PlansResponse:
    """List plans with their active execution and last completion."""
    if include_deleted:
        visibility = PlanVisibility.ALL
    plans = await plan_store.list_plans(sort=sort, visibility=visibility)
    return PlansResponse(plans=plans, total=len(plans))


@router.post("/plans")
async def create_plan(plan: PlanCreate) -> PlanDetail:
    """Create a plan from an ordered list of action names."""
    plan_id = await plan_store.create_plan(plan.name, plan.items)
    return await _load_plan(plan_id)


@router.get("/plans/{plan_id}")
async def get_plan(plan_id: str) -> PlanDetail:
    """Get a plan with its items and executions."""
    return await _load_plan(plan_id)


@router.put("/plans/{plan_id}")
async def edit_plan(plan_id: str, update: PlanUpdate) -> PlanDetail:
    """Rename a plan and replace its items.

    Pass `executionId` to rebuild that execution's checklist from the new
    items while keeping progress on actions that kept their name.
    """
    try:
        await plan_store.edit_plan(plan_id, update.name, update.items, update.execution_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    return await _load_plan(plan_id)


@router.delete("/plans/{plan_id}")
async def delete_plan(plan_id: str) -> dict[str, bool]:
    """Soft-delete a plan."""
    try:
        await plan_store.soft_delete_plan(plan_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=e.message)
    return {"deleted": True}


@router.post("/plans/{plan_id}/undelete")
async def undelete_plan(plan_id: str) -> PlanDetail:
    """Restore a soft-deleted plan."""
    try:
        await plan_store.undelete_plan(plan_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=e.message)
    return await _load_plan(plan_id)


@router.post("/plans/{plan_id}/executions")
async def start_execution(plan_id: str) -> Execution:
    """Start a new execution from the plan's current items."""
    try:
        execution_id = await execution_store.create_execution(plan_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)

    execution = await execution_store.get_execution(execution_id)
    if execution is None:
        raise HTTPException(status_code=404, detail="Execution not found")
    return execution
