"""Pydantic models for the shared action registry."""

from pydantic import BaseModel


class Action(BaseModel):
    """A reusable named unit of work, shared by plans and executions."""

    id: str
    name: str
