"""
Record Builder — turns a validated wizard draft into an immutable CostingRecord.

The required steps are re-checked here regardless of which step the user
visited last (jump-to-edit can leave steps revisited out of order).
Commit is all-or-nothing: the record is saved and the draft cleared in one
store transaction, or neither happens.
"""

import logging
import math
import uuid
from datetime import datetime

from .config import settings
from .errors import ValidationRejected
from .formulas import compute_from_draft, read_number
from .schemas import CostingInputs, CostingRecord, WizardDraft
from .steps import COMMIT_CHECK_STEP_IDS, STEPS, step_index
from .store import CostingStore
from .validation import validate_step

logger = logging.getLogger(__name__)


def check_commit_ready(draft: WizardDraft) -> None:
    """Raise ValidationRejected with the first failing required step."""
    for step_id in COMMIT_CHECK_STEP_IDS:
        index = step_index(step_id)
        result = validate_step(STEPS[index], draft)
        if not result.ok:
            raise ValidationRejected(result.message or "Please correct the input.", step_index=index)


def build_record(draft: WizardDraft) -> CostingRecord:
    """
    Freeze the draft into a new CostingRecord with a fresh id and timestamp.

    Does not validate or persist; see commit_draft().
    """
    computed = compute_from_draft(draft)

    draft_roc = read_number(draft.roc_pct)
    if draft_roc.value is not None and draft_roc.value != settings.FIXED_ROC_PCT:
        logger.warning(
            "Draft ROC %s%% differs from the fixed %s%%; committing the fixed value",
            draft_roc.raw, settings.FIXED_ROC_PCT,
        )

    inputs = CostingInputs(
        yarn_price_per_lb=read_number(draft.yarn_price_per_lb).or_zero(),
        wastage_pct=read_number(draft.wastage_pct).or_zero(),
        accessories_cost_doz=read_number(draft.accessories_cost_doz).or_zero(),
        fabric_doz=read_number(draft.fabric_doz).or_zero(),
        fabric_cost_doz=read_number(draft.fabric_cost_doz).or_zero(),
        fabric_attach_cost_doz=read_number(draft.fabric_attach_cost_doz).or_zero(),
        timing_min=math.trunc(read_number(draft.timing_min).or_zero()),
        cm_doz=read_number(draft.cm_doz).or_zero(),
        roc_pct=settings.FIXED_ROC_PCT,
    )

    return CostingRecord(
        id=str(uuid.uuid4()),
        created_at=datetime.utcnow(),
        app_version=settings.APP_VERSION,
        calc_version=settings.CALC_VERSION,
        style_name=draft.style_name.strip(),
        yarn_desc=draft.yarn_desc.strip(),
        composition=draft.composition.strip(),
        gauge=int(draft.gauge),
        weight_gm=read_number(draft.weight_gm).or_zero(),
        currency=(draft.currency or settings.DEFAULT_CURRENCY).strip() or settings.DEFAULT_CURRENCY,
        photo=draft.photo,
        inputs=inputs,
        computed=computed,
    )


def commit_draft(draft: WizardDraft, store: CostingStore) -> CostingRecord:
    """
    Validate, build and persist a record, clearing the draft slot.

    Raises:
        ValidationRejected: a required step fails; nothing is written.
        PersistenceFailure: the store write failed; the draft slot is intact.
    """
    check_commit_ready(draft)
    record = build_record(draft)
    store.commit_record(record)
    logger.info(
        "Committed costing %s (%s) final %.2f/pc",
        record.id, record.style_name, record.computed.final_per_pc,
    )
    return record
