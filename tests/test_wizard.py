"""
Costing wizard tests — navigation, autosave/resume, commit.

Tests:
1-4.   Start / resume / discard
5-8.   Field edits (atomic, unknown fields, autosave)
9-13.  advance / retreat / jump_to
14-16. Zero weight and out-of-range wastage are rejected in place
17-19. Commit with blank optional costs, then the wizard closes
20-21. Failed saves: autosave carries on, commit keeps the session
22-23. Preview rows and duplicate
24-25. Concurrent edits both land; a per-call store is restored afterwards
"""

import threading
import time

import pytest
from sqlalchemy.exc import OperationalError

from garment_costing.config import settings
from garment_costing.errors import (
    PersistenceFailure,
    ValidationRejected,
    WizardClosed,
    WizardStateError,
)
from garment_costing.schemas import WizardDraft
from garment_costing.steps import PREVIEW_INDEX, step_index
from garment_costing.store import CostingStore
from garment_costing.wizard import CostingWizard


def _fill_minimum(wizard, photo):
    """Style, weight, yarn price, wastage and CM only; other dozen costs blank."""
    wizard.update_fields(
        style_name="Crew Neck",
        yarn_desc="2/28 Cotton",
        gauge=7,
        weight_gm="378",
        photo=photo,
        yarn_price_per_lb="2",
        wastage_pct="5",
        cm_doz="6",
        accessories_cost_doz="",
        fabric_doz="",
        fabric_cost_doz="",
        fabric_attach_cost_doz="",
        timing_min="",
    )


def _walk_to_preview(wizard):
    while wizard.step_index < PREVIEW_INDEX:
        wizard.advance()


class _BrokenSession:
    """Session stand-in whose writes always fail."""

    def merge(self, *args, **kwargs):
        raise OperationalError("INSERT", {}, Exception("disk I/O error"))

    def rollback(self):
        pass


# =====================================================================
# Lifecycle
# =====================================================================

def test_start_fresh_uses_defaults(wizard):
    draft = wizard.start(resume=False)
    assert wizard.is_open
    assert wizard.step_index == 0
    assert draft.wastage_pct == str(settings.DEFAULT_WASTAGE_PCT)
    assert draft.roc_pct == str(settings.FIXED_ROC_PCT)
    assert draft.currency == settings.DEFAULT_CURRENCY


def test_resume_restores_saved_draft(wizard, store):
    wizard.start(resume=False)
    wizard.update_fields(style_name="Cable Cardigan", weight_gm="410")

    resumed = CostingWizard(store)
    draft = resumed.start(resume=True)
    assert draft.style_name == "Cable Cardigan"
    assert draft.weight_gm == "410"
    assert resumed.step_index == 0


def test_discard_clears_draft_and_closes(wizard, store):
    wizard.start(resume=False)
    wizard.update_fields(style_name="Temp")
    wizard.discard()
    assert not wizard.is_open
    assert store.get_draft() is None


def test_closed_wizard_rejects_operations(wizard):
    with pytest.raises(WizardClosed):
        wizard.advance()
    with pytest.raises(WizardClosed):
        wizard.update_fields(style_name="x")


# =====================================================================
# Editing
# =====================================================================

def test_update_autosaves(wizard, store):
    wizard.start(resume=False)
    wizard.update_fields(yarn_price_per_lb=4.25)
    assert store.get_draft().yarn_price_per_lb == "4.25"


def test_unknown_field_rejected(wizard):
    wizard.start(resume=False)
    with pytest.raises(WizardStateError):
        wizard.update_fields(colour="red")


def test_bad_value_leaves_draft_unchanged(wizard):
    wizard.start(resume=False)
    with pytest.raises(ValidationRejected):
        wizard.update_fields(style_name="Changed", gauge="seven")
    assert wizard.draft.style_name == ""
    assert wizard.draft.gauge is None


def test_blank_stays_distinct_from_zero(wizard):
    wizard.start(resume=False)
    wizard.update_fields(accessories_cost_doz="", fabric_doz=0)
    assert wizard.draft.accessories_cost_doz == ""
    assert wizard.draft.fabric_doz == "0"


# =====================================================================
# Navigation
# =====================================================================

def test_advance_moves_one_step(wizard, photo):
    wizard.start(resume=False)
    _fill_minimum(wizard, photo)
    assert wizard.advance() is None
    assert wizard.step_index == 1


def test_retreat_never_below_zero(wizard, photo):
    wizard.start(resume=False)
    assert wizard.retreat() == 0
    _fill_minimum(wizard, photo)
    wizard.advance()
    wizard.advance()
    assert wizard.retreat() == 1


def test_retreat_does_not_validate(wizard, photo):
    wizard.start(resume=False)
    _fill_minimum(wizard, photo)
    wizard.advance()
    wizard.update_fields(yarn_price_per_lb="")
    assert wizard.retreat() == 0


def test_jump_only_from_preview(wizard, photo):
    wizard.start(resume=False)
    with pytest.raises(WizardStateError):
        wizard.jump_to(3)

    _fill_minimum(wizard, photo)
    _walk_to_preview(wizard)
    assert wizard.jump_to(step_index("cmDoz")) == step_index("cmDoz")


def test_jump_is_clamped(wizard, photo):
    wizard.start(resume=False)
    _fill_minimum(wizard, photo)
    _walk_to_preview(wizard)
    assert wizard.jump_to(99) == PREVIEW_INDEX
    assert wizard.jump_to(-3) == 0


# =====================================================================
# Rejections stay on the step
# =====================================================================

def test_zero_weight_blocks_style_step(wizard, photo):
    wizard.start(resume=False)
    _fill_minimum(wizard, photo)
    wizard.update_fields(weight_gm="0")
    with pytest.raises(ValidationRejected) as exc:
        wizard.advance()
    assert "Garment Weight" in exc.value.message
    assert exc.value.step_index == 0
    assert wizard.step_index == 0


def test_blank_weight_blocks_style_step(wizard, photo, store):
    wizard.start(resume=False)
    _fill_minimum(wizard, photo)
    wizard.update_fields(weight_gm="")
    with pytest.raises(ValidationRejected):
        wizard.advance()
    assert store.list_records() == []


def test_wastage_out_of_range_stays_on_step(wizard, photo):
    wizard.start(resume=False)
    _fill_minimum(wizard, photo)
    wizard.update_fields(wastage_pct="150")
    while wizard.step_index < step_index("wastagePct"):
        wizard.advance()
    with pytest.raises(ValidationRejected) as exc:
        wizard.advance()
    assert "between 0 and 100" in exc.value.message
    assert wizard.step_index == step_index("wastagePct")


# =====================================================================
# Commit
# =====================================================================

def test_commit_with_blank_optional_costs(wizard, photo, store):
    wizard.start(resume=False)
    _fill_minimum(wizard, photo)
    _walk_to_preview(wizard)

    record = wizard.advance()
    assert record is not None
    assert record.inputs.accessories_cost_doz == 0.0
    assert record.inputs.fabric_doz == 0.0
    assert record.inputs.timing_min == 0
    assert record.computed.total_doz == 27.0
    assert record.computed.fob_per_pc == 2.25
    assert record.computed.final_per_pc == 2.31
    assert [r.id for r in store.list_records()] == [record.id]


def test_commit_closes_wizard_and_clears_draft(wizard, photo, store):
    wizard.start(resume=False)
    _fill_minimum(wizard, photo)
    _walk_to_preview(wizard)
    wizard.advance()
    assert not wizard.is_open
    assert store.get_draft() is None


def test_commit_rechecks_steps_edited_after_jump(wizard, photo, store):
    wizard.start(resume=False)
    _fill_minimum(wizard, photo)
    _walk_to_preview(wizard)
    wizard.update_fields(cm_doz="")

    with pytest.raises(ValidationRejected) as exc:
        wizard.advance()
    assert exc.value.step_index == step_index("cmDoz")
    assert wizard.is_open
    assert store.list_records() == []


# =====================================================================
# Persistence failures
# =====================================================================

def test_autosave_failure_keeps_session(wizard):
    wizard.start(resume=False)
    wizard.store = CostingStore(_BrokenSession())
    wizard.update_fields(style_name="Still Here")
    assert wizard.draft.style_name == "Still Here"


def test_commit_failure_keeps_preview_open(wizard, photo, store):
    wizard.start(resume=False)
    _fill_minimum(wizard, photo)
    _walk_to_preview(wizard)

    wizard.store = CostingStore(_BrokenSession())
    with pytest.raises(PersistenceFailure):
        wizard.advance()
    assert wizard.is_open
    assert wizard.step_index == PREVIEW_INDEX
    assert store.get_draft() is not None
    assert store.list_records() == []


# =====================================================================
# Preview and duplicate
# =====================================================================

def test_preview_rows_cover_every_value(wizard, photo):
    wizard.start(resume=False)
    _fill_minimum(wizard, photo)
    rows = wizard.preview_rows()
    assert len(rows) == 18
    by_title = {r.title: r for r in rows}
    assert by_title["Garments Weight (LBS / Doz)"].value == "10.00"
    assert by_title["Garments Weight (LBS / Doz)"].kind == "auto"
    assert by_title["CM"].jump == step_index("cmDoz")
    assert by_title["Final (ROC 2.50%)"].value == "$2.31 / pc"


def test_duplicate_seeds_new_draft(wizard, photo, store):
    wizard.start(resume=False)
    _fill_minimum(wizard, photo)
    _walk_to_preview(wizard)
    record = wizard.advance()

    draft = wizard.duplicate(record)
    assert wizard.is_open
    assert wizard.step_index == 0
    assert draft.style_name == "Crew Neck"
    assert draft.photo == record.photo
    assert draft.yarn_price_per_lb == "2.0"
    assert store.get_draft() is not None


# =====================================================================
# Concurrent callers
# =====================================================================

def test_concurrent_edits_are_not_lost(wizard, monkeypatch):
    wizard.start(resume=False)
    plain_copy = WizardDraft.model_copy

    def slow_copy(self, *args, **kwargs):
        copied = plain_copy(self, *args, **kwargs)
        time.sleep(0.05)
        return copied

    monkeypatch.setattr(WizardDraft, "model_copy", slow_copy)
    threads = [
        threading.Thread(target=wizard.update_fields, kwargs={"style_name": "Crew Neck"}),
        threading.Thread(target=wizard.update_fields, kwargs={"yarn_desc": "2/28 Cotton"}),
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert wizard.draft.style_name == "Crew Neck"
    assert wizard.draft.yarn_desc == "2/28 Cotton"


def test_using_routes_writes_and_restores_store(wizard, store, db):
    other = CostingStore(db)
    wizard.start(resume=False)
    with pytest.raises(WizardStateError):
        with wizard.using(other):
            assert wizard.store is other
            wizard.update_fields(nope=1)
    assert wizard.store is store
