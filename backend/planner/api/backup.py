"""Backup export/import API routes."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, File, HTTPException, UploadFile, status
from fastapi.responses import JSONResponse

from planner.db import SnapshotValidationError, snapshot_store
from planner.db.snapshot_store import parse_snapshot_json
from planner.models import ImportResult

logger = logging.getLogger(__name__)

router = APIRouter()

BACKUP_FILENAME = "maintenance-planner-backup.json"


@router.get("/backup/export")
async def export_backup() -> JSONResponse:
    """Download the whole store as a versioned JSON document."""
    snapshot = await snapshot_store.export_snapshot()
    return JSONResponse(
        content=snapshot.model_dump(mode="json", by_alias=True),
        headers={"Content-Disposition": f'attachment; filename="{BACKUP_FILENAME}"'},
    )


@router.post("/backup/import")
async def import_backup(document: Annotated[Any, Body()]) -> ImportResult:
    """Replace the whole store with a backup document sent as the JSON body."""
    try:
        return await snapshot_store.import_snapshot(document)
    except SnapshotValidationError as e:
        logger.warning(f"Rejected backup import: {e.message}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)


@router.post("/backup/import-file")
async def import_backup_file(
    backup_file: Annotated[UploadFile, File(description="Backup JSON file")],
) -> ImportResult:
    """Replace the whole store with an uploaded backup file."""
    content = await backup_file.read()
    try:
        snapshot = parse_snapshot_json(content)
        return await snapshot_store.import_snapshot(snapshot)
    except SnapshotValidationError as e:
        logger.warning(f"Rejected backup file {backup_file.filename}: {e.message}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
