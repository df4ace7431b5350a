"""
Costing Wizard API — step-by-step data entry for one costing.

GET    /api/wizard           — Current state (step, draft, live computed figures)
GET    /api/wizard/draft     — Is there a saved draft to resume?
POST   /api/wizard/start     — Open the wizard (resume the saved draft or start fresh)
PATCH  /api/wizard/fields    — Edit draft fields (autosaved)
POST   /api/wizard/photo     — Upload the garment photo (compressed server-side)
GET    /api/wizard/photo     — The draft's compressed photo
DELETE /api/wizard/photo     — Remove the photo
POST   /api/wizard/advance   — Validate and go to the next step; on preview, commit
POST   /api/wizard/retreat   — Previous step
POST   /api/wizard/jump      — From preview, jump to a step to edit it
DELETE /api/wizard           — Discard the draft
"""

import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel

from .. import image_codec
from ..config import settings
from ..errors import CostingError, PersistenceFailure
from ..steps import PREVIEW_INDEX, STEPS
from ..store import CostingStore
from ..wizard import CostingWizard
from .common import get_store, get_wizard, http_error, serialize_record

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/wizard", tags=["wizard"])

ALLOWED_EXTENSIONS = {"jpg", "jpeg", "png", "webp"}


# --- Request schemas ---

class StartRequest(BaseModel):
    resume: bool = True


class FieldsRequest(BaseModel):
    fields: dict  # {field_name: value, ...}


class JumpRequest(BaseModel):
    index: int


# --- Endpoints ---

@router.get("")
def get_state(wizard: CostingWizard = Depends(get_wizard)):
    return _serialize_state(wizard)


@router.get("/draft")
def has_draft(store: CostingStore = Depends(get_store)):
    """Whether a saved draft exists (drives the 'resume' banner)."""
    try:
        draft = store.get_draft()
    except PersistenceFailure as e:
        logger.warning("Draft lookup failed: %s", e)
        draft = None
    return {
        "has_draft": draft is not None,
        "style_name": draft.style_name if draft is not None else None,
    }


@router.post("/start")
def start(request: StartRequest, wizard: CostingWizard = Depends(get_wizard)):
    wizard.start(resume=request.resume)
    return _serialize_state(wizard)


@router.patch("/fields")
def update_fields(request: FieldsRequest, wizard: CostingWizard = Depends(get_wizard)):
    if "photo" in request.fields:
        raise HTTPException(status_code=400, detail="Use /api/wizard/photo to change the photo.")
    try:
        wizard.update_fields(**request.fields)
    except CostingError as e:
        raise http_error(e)
    return _serialize_state(wizard)


@router.post("/photo")
async def upload_photo(
    file: UploadFile = File(...),
    wizard: CostingWizard = Depends(get_wizard),
):
    """
    Attach the garment photo to the draft.

    - Validates file type (jpg, jpeg, png, webp) and size
    - Compresses to a bounded JPEG before storing
    """
    filename = file.filename or ""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"File type '{ext}' not allowed. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}",
        )

    file_bytes = await file.read()
    if len(file_bytes) > settings.MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"File too large ({len(file_bytes) / 1024 / 1024:.1f}MB). "
                   f"Maximum is {settings.MAX_UPLOAD_SIZE // (1024 * 1024)}MB.",
        )

    try:
        photo = image_codec.compress(file_bytes)
        wizard.update_fields(photo=photo)
    except CostingError as e:
        raise http_error(e)
    return _serialize_state(wizard)


@router.get("/photo")
def get_photo(wizard: CostingWizard = Depends(get_wizard)):
    if not wizard.is_open or wizard.draft.photo is None:
        raise HTTPException(status_code=404, detail="No photo")
    photo = wizard.draft.photo
    return Response(content=photo.data, media_type=photo.mime_type)


@router.delete("/photo")
def delete_photo(wizard: CostingWizard = Depends(get_wizard)):
    try:
        wizard.update_fields(photo=None)
    except CostingError as e:
        raise http_error(e)
    return _serialize_state(wizard)


@router.post("/advance")
def advance(wizard: CostingWizard = Depends(get_wizard)):
    """
    Validate the current step and move on.

    On the preview step this commits the costing; the response then
    carries the new record and the wizard is closed.
    """
    try:
        record = wizard.advance()
    except CostingError as e:
        raise http_error(e)

    if record is not None:
        return {"committed": True, "record": serialize_record(record), "wizard": _serialize_state(wizard)}
    return {"committed": False, "wizard": _serialize_state(wizard)}


@router.post("/retreat")
def retreat(wizard: CostingWizard = Depends(get_wizard)):
    try:
        wizard.retreat()
    except CostingError as e:
        raise http_error(e)
    return _serialize_state(wizard)


@router.post("/jump")
def jump(request: JumpRequest, wizard: CostingWizard = Depends(get_wizard)):
    try:
        wizard.jump_to(request.index)
    except CostingError as e:
        raise http_error(e)
    return _serialize_state(wizard)


@router.delete("")
def discard(wizard: CostingWizard = Depends(get_wizard)):
    wizard.discard()
    return {"discarded": True}


def _serialize_state(wizard: CostingWizard) -> dict:
    """Wizard state for the frontend. Photo bytes are served by GET /photo."""
    if not wizard.is_open:
        return {"open": False}

    step = wizard.current_step
    draft = wizard.draft
    photo = draft.photo
    state = {
        "open": True,
        "step_index": wizard.step_index,
        "step_count": len(STEPS),
        "step": {
            "id": step.id,
            "kind": step.kind.value,
            "title": step.title,
            "hint": step.hint,
            "field_key": step.field_key,
            "required": step.required,
        },
        "is_preview": wizard.step_index == PREVIEW_INDEX,
        "draft": draft.to_storage(),
        "photo": None if photo is None else {
            "mime_type": photo.mime_type,
            "width": photo.width,
            "height": photo.height,
        },
        "computed": wizard.computed().model_dump(),
    }
    if state["is_preview"]:
        state["preview_rows"] = [
            {"title": r.title, "value": r.value, "kind": r.kind, "jump": r.jump}
            for r in wizard.preview_rows()
        ]
    return state
