"""
Backup endpoints.

GET  /api/backup/export — Download every saved costing as one JSON file
POST /api/backup/import — Upload a backup file; all items are stored or none
"""

import logging
import time

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response

from .. import backup
from ..config import settings
from ..errors import CostingError
from ..store import CostingStore
from .common import get_store, http_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/backup", tags=["backup"])


@router.get("/export")
def export_backup(store: CostingStore = Depends(get_store)):
    try:
        body = backup.dumps_backup(store)
    except CostingError as e:
        raise http_error(e)
    stamp = int(time.time() * 1000)
    return Response(
        content=body,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="garment-costing-backup-{stamp}.json"'},
    )


@router.post("/import")
async def import_backup(
    file: UploadFile = File(...),
    store: CostingStore = Depends(get_store),
):
    content = await file.read()
    if len(content) > settings.MAX_UPLOAD_SIZE * 10:
        raise HTTPException(status_code=400, detail="Backup file too large.")
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="Invalid backup file.")

    try:
        records = backup.import_backup(text, store)
    except CostingError as e:
        raise http_error(e)
    return {"imported": len(records)}
