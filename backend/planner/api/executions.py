"""Execution API routes."""

from fastapi import APIRouter, HTTPException

from planner.db import ConflictError, NotFoundError, execution_store
from planner.models import (
    Execution,
    ExecutionList,
    ItemFinishedResult,
    ItemFinishedUpdate,
)

router = APIRouter()


async def _load_execution(execution_id: str) -> Execution:
    execution = await execution_store.get_execution(execution_id)
    if execution is None:
        raise HTTPException(status_code=404, detail="Execution not found")
    return execution


@router.get("/executions")
async def list_executions() -> ExecutionList:
    """List open and completed executions across all plans."""
    return await execution_store.list_executions()


@router.get("/executions/{execution_id}")
async def get_execution(execution_id: str) -> Execution:
    """Get an execution with its checklist."""
    return await _load_execution(execution_id)


@router.post("/executions/{execution_id}/complete")
async def complete_execution(execution_id: str) -> Execution:
    """Complete an execution once every item is checked."""
    try:
        await execution_store.complete_execution(execution_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=e.message)
    return await _load_execution(execution_id)


@router.post("/executions/{execution_id}/reopen")
async def reopen_execution(execution_id: str) -> Execution:
    """Reopen an execution completed within the last 24 hours."""
    try:
        await execution_store.reopen_execution(execution_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=e.message)
    return await _load_execution(execution_id)


@router.delete("/executions/{execution_id}")
async def delete_execution(execution_id: str) -> dict[str, bool]:
    """Delete an open execution."""
    try:
        await execution_store.delete_execution(execution_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=e.message)
    return {"deleted": True}


@router.put("/execution-items/{item_id}")
async def set_item_finished(item_id: str, update: ItemFinishedUpdate) -> ItemFinishedResult:
    """Check or uncheck one checklist item."""
    try:
        return await execution_store.set_item_finished(item_id, update.finished)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
