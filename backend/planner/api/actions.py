"""Action registry API routes."""

from fastapi import APIRouter, Query

from planner.db import action_registry
from planner.models import Action

router = APIRouter()


@router.get("/actions")
async def list_actions(
    q: str | None = Query(None, description="Case-insensitive name search"),
    limit: int = Query(10, ge=1, le=100, description="Maximum search results"),
) -> list[Action]:
    """List every known action, or search them by name for item autocomplete."""
    if q is not None:
        return await action_registry.search_actions(q, limit=limit)
    return await action_registry.list_actions()
