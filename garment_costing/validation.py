"""
Validation Engine — per-step input checks for the costing wizard.

validate_step() never mutates the draft and reports bad input as a rejected
ValidationResult. It only looks at the fields owned by the given step; the
style step checks all of its sub-fields together. A step kind with no rule
raises ValueError.
"""

from dataclasses import dataclass
from typing import Optional

from .formulas import read_number
from .schemas import WizardDraft
from .steps import GAUGE_OPTIONS, StepDescriptor, StepKind


@dataclass(frozen=True)
class ValidationResult:
    ok: bool
    message: Optional[str] = None


ACCEPTED = ValidationResult(ok=True)


def reject(message: str) -> ValidationResult:
    return ValidationResult(ok=False, message=message)


def validate_step(step: StepDescriptor, draft: WizardDraft) -> ValidationResult:
    """Accept or reject the draft's values for one step."""
    if step.kind is StepKind.STYLE_GROUP:
        return _validate_style(draft)
    if step.kind in (StepKind.NUMERIC, StepKind.INTEGER):
        return _validate_number(step, getattr(draft, step.field_key))
    if step.kind is StepKind.PERCENT:
        return _validate_percent(step, getattr(draft, step.field_key))
    if step.kind in (StepKind.COMPUTED, StepKind.PREVIEW):
        return ACCEPTED
    raise ValueError(f"Unhandled step kind: {step.kind!r}")


def _validate_style(draft: WizardDraft) -> ValidationResult:
    if not draft.style_name.strip():
        return reject("Style Name is required.")
    if not draft.yarn_desc.strip():
        return reject("Yarn Description is required.")
    if draft.photo is None or not draft.photo.data:
        return reject("Product Photo is required.")
    if draft.gauge not in GAUGE_OPTIONS:
        return reject("Please select a Gauge.")
    if not read_number(draft.weight_gm).or_zero() > 0:
        return reject("Garment Weight (grams) must be greater than 0.")
    return ACCEPTED


def _validate_number(step: StepDescriptor, raw: str) -> ValidationResult:
    reading = read_number(raw)
    if reading.blank:
        return reject(f"{step.title} is required.") if step.required else ACCEPTED
    if not reading.valid or reading.value < 0:
        return reject(f"{step.title} must be a non-negative number.")
    if step.kind is StepKind.INTEGER and not reading.value.is_integer():
        return reject(f"{step.title} must be a whole number.")
    return ACCEPTED


def _validate_percent(step: StepDescriptor, raw: str) -> ValidationResult:
    reading = read_number(raw)
    if reading.blank:
        return reject(f"{step.title} is required.") if step.required else ACCEPTED
    if not reading.valid or not 0 <= reading.value <= 100:
        return reject(f"{step.title} must be between 0 and 100.")
    return ACCEPTED
