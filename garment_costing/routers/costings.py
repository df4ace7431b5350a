"""
Saved costings — history, search, and outputs.

GET    /api/costings                    — List saved costings, newest first (?q= style name search)
GET    /api/costings/{id}               — One costing
DELETE /api/costings/{id}               — Delete a costing
POST   /api/costings/{id}/duplicate     — Open the wizard pre-filled from this costing
GET    /api/costings/{id}/photo         — Stored photo
GET    /api/costings/{id}/pdf           — Printable costing sheet
GET    /api/costings/{id}/share.{fmt}   — Share card image (png or jpg)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from ..display import sanitize_filename
from ..errors import CostingError
from ..pdf_generator import generate_costing_pdf
from ..schemas import CostingRecord
from ..share_card import FORMATS, render_share_card
from ..store import CostingStore
from ..wizard import CostingWizard
from .common import get_store, get_wizard, http_error, serialize_record

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/costings", tags=["costings"])


def _get_record(record_id: str, store: CostingStore) -> CostingRecord:
    try:
        record = store.get_record(record_id)
    except CostingError as e:
        raise http_error(e)
    if record is None:
        raise HTTPException(status_code=404, detail="Costing not found")
    return record


@router.get("")
def list_costings(
    q: Optional[str] = Query(None, description="Case-insensitive style name search"),
    store: CostingStore = Depends(get_store),
):
    try:
        records = store.list_records(q)
    except CostingError as e:
        raise http_error(e)
    return [serialize_record(r) for r in records]


@router.get("/{record_id}")
def get_costing(record_id: str, store: CostingStore = Depends(get_store)):
    return serialize_record(_get_record(record_id, store))


@router.delete("/{record_id}")
def delete_costing(record_id: str, store: CostingStore = Depends(get_store)):
    _get_record(record_id, store)
    try:
        store.delete_record(record_id)
    except CostingError as e:
        raise http_error(e)
    logger.info("Deleted costing %s", record_id)
    return {"deleted": record_id}


@router.post("/{record_id}/duplicate")
def duplicate_costing(
    record_id: str,
    store: CostingStore = Depends(get_store),
    wizard: CostingWizard = Depends(get_wizard),
):
    """Start a new wizard session seeded with this costing's values."""
    record = _get_record(record_id, store)
    wizard.duplicate(record)
    return {"open": True, "step_index": wizard.step_index, "draft": wizard.draft.to_storage()}


@router.get("/{record_id}/photo")
def get_costing_photo(record_id: str, store: CostingStore = Depends(get_store)):
    record = _get_record(record_id, store)
    if record.photo is None:
        raise HTTPException(status_code=404, detail="No photo")
    return Response(content=record.photo.data, media_type=record.photo.mime_type)


@router.get("/{record_id}/pdf")
def download_pdf(record_id: str, store: CostingStore = Depends(get_store)):
    """
    Generate and download the costing sheet.

    Returns: application/pdf
    """
    record = _get_record(record_id, store)
    pdf_bytes = generate_costing_pdf(record)
    filename = f"{sanitize_filename(record.style_name)}-FOB.pdf"

    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/{record_id}/share.{fmt}")
def download_share_card(record_id: str, fmt: str, store: CostingStore = Depends(get_store)):
    if fmt not in FORMATS:
        raise HTTPException(
            status_code=400,
            detail=f"Format '{fmt}' not supported. Use: {', '.join(FORMATS)}",
        )
    record = _get_record(record_id, store)
    image_bytes = render_share_card(record, fmt)
    _, media_type = FORMATS[fmt]
    filename = f"{sanitize_filename(record.style_name)}-FOB.{fmt}"

    return Response(
        content=image_bytes,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
