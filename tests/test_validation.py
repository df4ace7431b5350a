"""
Validation engine and step schema tests.

Tests:
1-3.   Step schema shape (16 steps, preview last, lookups)
4-8.   Style step sub-field checks, in order
9-13.  Numeric / integer steps (required vs optional blanks)
14-17. Percent bounds (0 and 100 inclusive)
18-19. Computed and preview steps always pass; an unknown kind raises ValueError
"""

import pytest

from garment_costing.schemas import PhotoRef, WizardDraft
from garment_costing.steps import (
    GAUGE_OPTIONS,
    PREVIEW_INDEX,
    STEPS,
    StepDescriptor,
    StepKind,
    get_step,
    step_index,
)
from garment_costing.validation import validate_step


def _style_draft(**overrides):
    values = dict(
        style_name="Crew Neck Pullover",
        yarn_desc="2/28 Cotton",
        composition="100% Cotton",
        gauge=7,
        weight_gm="285",
        photo=PhotoRef(data=b"\xff\xd8jpeg", width=10, height=10),
    )
    values.update(overrides)
    return WizardDraft(**values)


# =====================================================================
# Step schema
# =====================================================================

def test_sixteen_steps_preview_last():
    assert len(STEPS) == 16
    assert PREVIEW_INDEX == 15
    assert STEPS[PREVIEW_INDEX].kind is StepKind.PREVIEW
    assert STEPS[0].kind is StepKind.STYLE_GROUP


def test_input_steps_bind_draft_fields():
    for step in STEPS:
        if step.kind in (StepKind.NUMERIC, StepKind.PERCENT, StepKind.INTEGER):
            assert step.field_key in WizardDraft.model_fields
        else:
            assert step.field_key is None


def test_step_lookup():
    assert step_index("cmDoz") == 12
    assert get_step("wastagePct").kind is StepKind.PERCENT
    with pytest.raises(KeyError):
        step_index("nope")


# =====================================================================
# Style step
# =====================================================================

STYLE = STEPS[0]


def test_complete_style_accepted():
    assert validate_step(STYLE, _style_draft()).ok


@pytest.mark.parametrize("overrides, message", [
    ({"style_name": "  "}, "Style Name is required."),
    ({"yarn_desc": ""}, "Yarn Description is required."),
    ({"photo": None}, "Product Photo is required."),
    ({"gauge": None}, "Please select a Gauge."),
    ({"gauge": 9}, "Please select a Gauge."),
    ({"weight_gm": ""}, "Garment Weight (grams) must be greater than 0."),
    ({"weight_gm": "0"}, "Garment Weight (grams) must be greater than 0."),
])
def test_style_rejections(overrides, message):
    result = validate_step(STYLE, _style_draft(**overrides))
    assert not result.ok
    assert result.message == message


def test_style_reports_first_failure():
    result = validate_step(STYLE, _style_draft(style_name="", yarn_desc="", photo=None))
    assert result.message == "Style Name is required."


def test_composition_is_optional():
    assert validate_step(STYLE, _style_draft(composition="")).ok


@pytest.mark.parametrize("gauge", GAUGE_OPTIONS)
def test_every_gauge_option_accepted(gauge):
    assert validate_step(STYLE, _style_draft(gauge=gauge)).ok


# =====================================================================
# Numeric / integer steps
# =====================================================================

def test_required_numeric_blank_rejected():
    step = get_step("yarnPricePerLb")
    result = validate_step(step, WizardDraft(yarn_price_per_lb=""))
    assert not result.ok
    assert result.message == "Yarn price / LBS is required."


def test_optional_numeric_blank_accepted():
    step = get_step("accessoriesCostDoz")
    assert validate_step(step, WizardDraft(accessories_cost_doz="")).ok


def test_numeric_zero_accepted_negative_rejected():
    step = get_step("cmDoz")
    assert validate_step(step, WizardDraft(cm_doz="0")).ok
    result = validate_step(step, WizardDraft(cm_doz="-1"))
    assert not result.ok
    assert result.message == "CM must be a non-negative number."


def test_numeric_garbage_rejected():
    step = get_step("fabricDoz")
    assert not validate_step(step, WizardDraft(fabric_doz="12abc")).ok


def test_integer_step_requires_whole_number():
    step = get_step("timingMin")
    assert validate_step(step, WizardDraft(timing_min="45")).ok
    assert validate_step(step, WizardDraft(timing_min="")).ok
    result = validate_step(step, WizardDraft(timing_min="12.5"))
    assert not result.ok
    assert result.message == "Timing must be a whole number."


# =====================================================================
# Percent steps
# =====================================================================

WASTAGE = get_step("wastagePct")


@pytest.mark.parametrize("value", ["0", "100", "8", "99.5"])
def test_percent_in_range_accepted(value):
    assert validate_step(WASTAGE, WizardDraft(wastage_pct=value)).ok


@pytest.mark.parametrize("value", ["150", "-0.1", "100.01"])
def test_percent_out_of_range_rejected(value):
    result = validate_step(WASTAGE, WizardDraft(wastage_pct=value))
    assert not result.ok
    assert result.message == "Wastage % must be between 0 and 100."


def test_percent_blank_required():
    result = validate_step(WASTAGE, WizardDraft(wastage_pct=""))
    assert result.message == "Wastage % is required."


def test_validation_does_not_mutate_draft():
    draft = WizardDraft(wastage_pct="150")
    before = draft.model_dump()
    validate_step(WASTAGE, draft)
    assert draft.model_dump() == before


# =====================================================================
# Computed / preview
# =====================================================================

def test_computed_and_preview_steps_always_pass():
    empty = WizardDraft(weight_gm="", yarn_price_per_lb="")
    for step in STEPS:
        if step.kind in (StepKind.COMPUTED, StepKind.PREVIEW):
            assert validate_step(step, empty).ok


def test_unknown_step_kind_raises():
    step = StepDescriptor(id="mystery", kind="mystery", title="Mystery")
    with pytest.raises(ValueError):
        validate_step(step, WizardDraft())
