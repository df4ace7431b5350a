"""
Persistence collaborator — drafts and committed costing records in SQL.

One fixed draft slot (DRAFT_ID) and an append-only table of records.
Every database error is rolled back and re-raised as PersistenceFailure;
deciding whether that is fatal is left to the caller.
"""

import logging
from datetime import datetime
from typing import Optional, Sequence

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .errors import PersistenceFailure
from .schemas import ComputedSnapshot, CostingInputs, CostingRecord, PhotoRef, WizardDraft

logger = logging.getLogger(__name__)

DRAFT_ID = "current"


class CostingStore:
    """Key/value style access to the draft slot and the records table."""

    def __init__(self, db: Session):
        self.db = db

    # --- Draft slot ---

    def get_draft(self) -> Optional[WizardDraft]:
        try:
            row = self.db.get(models.Draft, DRAFT_ID)
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Could not read the draft: {e}") from e
        if row is None:
            return None
        data = dict(row.data_json or {})
        data["photo"] = _photo_from_columns(row)
        return WizardDraft.model_validate(data)

    def put_draft(self, draft: WizardDraft) -> None:
        row = models.Draft(
            id=DRAFT_ID,
            updated_at=datetime.utcnow(),
            data_json=draft.to_storage(),
            **_photo_columns(draft.photo),
        )
        self._write(lambda: self.db.merge(row), "save the draft")

    def clear_draft(self) -> None:
        self._write(lambda: self._delete_draft_row(), "clear the draft")

    # --- Records ---

    def put_record(self, record: CostingRecord) -> None:
        self._write(lambda: self.db.merge(_record_to_row(record)), "save the costing")

    def commit_record(self, record: CostingRecord) -> None:
        """Save a new record and clear the draft slot in one transaction."""
        def work():
            self.db.merge(_record_to_row(record))
            self._delete_draft_row()
        self._write(work, "save the costing")

    def bulk_put_records(self, records: Sequence[CostingRecord]) -> None:
        """Upsert many records. All or nothing."""
        def work():
            for record in records:
                self.db.merge(_record_to_row(record))
        self._write(work, "restore the backup")

    def delete_record(self, record_id: str) -> None:
        def work():
            self.db.query(models.Costing).filter(models.Costing.id == record_id).delete()
        self._write(work, "delete the costing")

    def get_record(self, record_id: str) -> Optional[CostingRecord]:
        try:
            row = self.db.get(models.Costing, record_id)
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Could not read costing {record_id}: {e}") from e
        return _row_to_record(row) if row is not None else None

    def list_records(self, query: Optional[str] = None) -> list[CostingRecord]:
        """All records, newest first. query filters by style name (case-insensitive)."""
        try:
            q = self.db.query(models.Costing)
            text = (query or "").strip().lower()
            if text:
                q = q.filter(func.lower(models.Costing.style_name).contains(text, autoescape=True))
            rows = q.order_by(models.Costing.created_at.desc()).all()
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"Could not list costings: {e}") from e
        return [_row_to_record(row) for row in rows]

    # --- internals ---

    def _delete_draft_row(self):
        self.db.query(models.Draft).filter(models.Draft.id == DRAFT_ID).delete()

    def _write(self, work, action: str) -> None:
        try:
            work()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Could not %s: %s", action, e)
            raise PersistenceFailure(f"Could not {action}. Please try again.") from e


def _photo_columns(photo: Optional[PhotoRef]) -> dict:
    if photo is None:
        return {"photo_data": None, "photo_type": None, "photo_width": None, "photo_height": None}
    return {
        "photo_data": photo.data,
        "photo_type": photo.mime_type,
        "photo_width": photo.width,
        "photo_height": photo.height,
    }


def _photo_from_columns(row) -> Optional[PhotoRef]:
    if not row.photo_data:
        return None
    return PhotoRef(
        data=row.photo_data,
        mime_type=row.photo_type or "image/jpeg",
        width=row.photo_width,
        height=row.photo_height,
    )


def _record_to_row(record: CostingRecord) -> models.Costing:
    return models.Costing(
        id=record.id,
        created_at=record.created_at,
        app_version=record.app_version,
        calc_version=record.calc_version,
        style_name=record.style_name,
        yarn_desc=record.yarn_desc,
        composition=record.composition,
        gauge=record.gauge,
        weight_gm=record.weight_gm,
        currency=record.currency,
        inputs_json=record.inputs.model_dump(),
        computed_json=record.computed.model_dump(),
        **_photo_columns(record.photo),
    )


def _row_to_record(row: models.Costing) -> CostingRecord:
    return CostingRecord(
        id=row.id,
        created_at=row.created_at,
        app_version=row.app_version,
        calc_version=row.calc_version,
        style_name=row.style_name,
        yarn_desc=row.yarn_desc,
        composition=row.composition or "",
        gauge=row.gauge,
        weight_gm=row.weight_gm,
        currency=row.currency,
        photo=_photo_from_columns(row),
        inputs=CostingInputs.model_validate(row.inputs_json or {}),
        computed=ComputedSnapshot.model_validate(row.computed_json),
    )
