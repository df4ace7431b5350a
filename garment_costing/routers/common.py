"""Shared router helpers: dependencies, error translation, serialization."""

import threading

from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..errors import (
    CostingError,
    ImageCodecError,
    MalformedImport,
    PersistenceFailure,
    ValidationRejected,
    WizardStateError,
)
from ..schemas import CostingRecord
from ..store import CostingStore
from ..wizard import CostingWizard


def get_store(db: Session = Depends(get_db)) -> CostingStore:
    return CostingStore(db)


_setup_lock = threading.Lock()


def get_wizard(request: Request, store: CostingStore = Depends(get_store)):
    """
    Yield the single wizard kept on the app state, routed through this
    request's store.

    Requests that use the wizard run one at a time: the lock is held until
    the endpoint returns, so no request sees another's session or a
    half-applied edit.
    """
    state = request.app.state
    with _setup_lock:
        if getattr(state, "wizard", None) is None:
            state.wizard = CostingWizard(store)
        if getattr(state, "wizard_lock", None) is None:
            # Plain Lock: FastAPI may run the exit half of this dependency on another thread
            state.wizard_lock = threading.Lock()
        wizard, lock = state.wizard, state.wizard_lock

    with lock:
        with wizard.using(store):
            yield wizard


def http_error(e: CostingError) -> HTTPException:
    """Map an engine error to the HTTP response the frontend expects."""
    if isinstance(e, ValidationRejected):
        return HTTPException(status_code=422, detail={"message": e.message, "step_index": e.step_index})
    if isinstance(e, (MalformedImport, ImageCodecError)):
        return HTTPException(status_code=400, detail=e.message)
    if isinstance(e, WizardStateError):
        return HTTPException(status_code=409, detail=e.message)
    if isinstance(e, PersistenceFailure):
        return HTTPException(status_code=503, detail=e.message)
    return HTTPException(status_code=500, detail=e.message)


def serialize_record(record: CostingRecord) -> dict:
    """Record as JSON without photo bytes (served separately)."""
    data = record.model_dump(mode="json", exclude={"photo"})
    data["photo"] = None
    if record.photo is not None:
        data["photo"] = {
            "mime_type": record.photo.mime_type,
            "width": record.photo.width,
            "height": record.photo.height,
            "url": f"/api/costings/{record.id}/photo",
        }
    return data
