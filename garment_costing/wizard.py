"""
Costing Wizard — step-by-step navigation over the Step Schema.

Holds the single in-progress draft and the current step pointer. The
in-memory draft is the source of truth for the session; every change is
also written to the draft slot so an interrupted session can be resumed.
Those autosaves are best-effort: a failed write is logged and the session
carries on.

Public operations hold the wizard's lock, so concurrent callers see each
other's edits in order.

States are the step indices 0..len(STEPS)-1. advance() on the preview step
commits the costing and closes the wizard.
"""

import logging
import math
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from functools import wraps
from typing import Optional

from pydantic import ValidationError

from .config import settings
from .display import EMPTY, format_money, format_optional, format_plain
from .errors import PersistenceFailure, ValidationRejected, WizardClosed, WizardStateError
from .formulas import compute_from_draft, read_number
from .record_builder import commit_draft
from .schemas import ComputedSnapshot, CostingRecord, WizardDraft
from .steps import PREVIEW_INDEX, STEPS, StepDescriptor, step_index
from .store import CostingStore
from .validation import ValidationResult, validate_step

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(WizardDraft.model_fields)


def _serialized(method):
    @wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)
    return wrapper


def default_draft() -> WizardDraft:
    """A fresh draft with factory defaults."""
    return WizardDraft(
        currency=settings.DEFAULT_CURRENCY,
        wastage_pct=settings.DEFAULT_WASTAGE_PCT,
        roc_pct=settings.FIXED_ROC_PCT,
    )


def draft_from_record(record: CostingRecord) -> WizardDraft:
    """Seed a new draft from a committed record (duplicate-and-recalculate)."""
    inputs = record.inputs
    return WizardDraft(
        style_name=record.style_name,
        yarn_desc=record.yarn_desc,
        composition=record.composition or "",
        gauge=record.gauge,
        weight_gm=record.weight_gm,
        currency=record.currency or settings.DEFAULT_CURRENCY,
        photo=record.photo,
        yarn_price_per_lb=inputs.yarn_price_per_lb,
        wastage_pct=inputs.wastage_pct,
        accessories_cost_doz=inputs.accessories_cost_doz,
        fabric_doz=inputs.fabric_doz,
        fabric_cost_doz=inputs.fabric_cost_doz,
        fabric_attach_cost_doz=inputs.fabric_attach_cost_doz,
        timing_min=inputs.timing_min,
        cm_doz=inputs.cm_doz,
        roc_pct=inputs.roc_pct,
    )


def _normalize(draft: WizardDraft) -> WizardDraft:
    """Fill the defaults a loaded draft may be missing."""
    draft.currency = (draft.currency or settings.DEFAULT_CURRENCY).strip() or settings.DEFAULT_CURRENCY
    if read_number(draft.wastage_pct).blank:
        draft.wastage_pct = settings.DEFAULT_WASTAGE_PCT
    if read_number(draft.roc_pct).blank:
        draft.roc_pct = 0
    return draft


@dataclass(frozen=True)
class PreviewRow:
    title: str
    value: str
    kind: str  # "input" | "auto"
    jump: int


class CostingWizard:
    """Single-operator costing wizard bound to one store."""

    def __init__(self, store: CostingStore):
        self.store = store
        self.draft: Optional[WizardDraft] = None
        self.step_index = 0
        self._lock = threading.RLock()

    @contextmanager
    def using(self, store: CostingStore):
        """Temporarily route persistence through another store (one per request)."""
        with self._lock:
            previous, self.store = self.store, store
        try:
            yield self
        finally:
            with self._lock:
                self.store = previous

    # --- lifecycle ---

    @property
    def is_open(self) -> bool:
        return self.draft is not None

    @_serialized
    def start(self, resume: bool = True) -> WizardDraft:
        """
        Open the wizard at step 0.

        With resume=True the saved draft is loaded if there is one;
        otherwise (or if it cannot be read) a default draft is used.
        """
        draft = None
        if resume:
            try:
                draft = self.store.get_draft()
            except PersistenceFailure as e:
                logger.warning("Draft load failed, starting fresh: %s", e)
        self.draft = _normalize(draft) if draft is not None else default_draft()
        self.step_index = 0
        return self.draft

    @_serialized
    def duplicate(self, record: CostingRecord) -> WizardDraft:
        """Open the wizard on a new draft seeded from an existing record."""
        self.draft = _normalize(draft_from_record(record))
        self.step_index = 0
        self._autosave()
        return self.draft

    @_serialized
    def discard(self) -> None:
        """Throw away the draft and close the wizard."""
        try:
            self.store.clear_draft()
        except PersistenceFailure as e:
            logger.warning("Draft clear failed: %s", e)
        self._close()

    # --- editing ---

    @property
    def current_step(self) -> StepDescriptor:
        self._require_open()
        return STEPS[self.step_index]

    @_serialized
    def update_fields(self, **values) -> WizardDraft:
        """
        Apply field edits and autosave.

        All edits apply or none do: a value the draft cannot hold raises
        ValidationRejected and leaves the draft unchanged.
        """
        self._require_open()
        unknown = sorted(set(values) - EDITABLE_FIELDS)
        if unknown:
            raise WizardStateError(f"Unknown draft field(s): {', '.join(unknown)}")

        candidate = self.draft.model_copy()
        try:
            for field, value in values.items():
                setattr(candidate, field, value)
        except ValidationError as e:
            error = e.errors()[0]
            field = ".".join(str(p) for p in error.get("loc", ())) or "value"
            raise ValidationRejected(f"Invalid {field}: {error.get('msg')}", step_index=self.step_index) from e

        self.draft = candidate
        self._autosave()
        return self.draft

    @_serialized
    def computed(self) -> ComputedSnapshot:
        self._require_open()
        return compute_from_draft(self.draft)

    def validate_current(self) -> ValidationResult:
        return validate_step(self.current_step, self.draft)

    # --- navigation ---

    @_serialized
    def advance(self) -> Optional[CostingRecord]:
        """
        Validate the current step and move forward.

        Returns the new CostingRecord when advancing from the preview step
        (the wizard closes), otherwise None.

        Raises:
            ValidationRejected: current step is invalid; the wizard stays put.
            PersistenceFailure: the commit could not be saved; the wizard stays put.
        """
        step = self.current_step
        result = validate_step(step, self.draft)
        if not result.ok:
            raise ValidationRejected(result.message or "Please correct the input.", step_index=self.step_index)

        if self.step_index == PREVIEW_INDEX:
            record = commit_draft(self.draft, self.store)
            self._close()
            return record

        self.step_index = min(PREVIEW_INDEX, self.step_index + 1)
        self._autosave()
        return None

    @_serialized
    def retreat(self) -> int:
        """Go back one step without validating. Never moves below 0."""
        self._require_open()
        self.step_index = max(0, self.step_index - 1)
        self._autosave()
        return self.step_index

    @_serialized
    def jump_to(self, index: int) -> int:
        """Jump from the preview table to any step (clamped). No validation."""
        self._require_open()
        if self.step_index != PREVIEW_INDEX:
            raise WizardStateError("Jumping to a step is only possible from the preview.")
        self.step_index = max(0, min(PREVIEW_INDEX, int(index)))
        return self.step_index

    # --- preview ---

    @_serialized
    def preview_rows(self) -> list[PreviewRow]:
        """Every value with its source step, for the preview table."""
        self._require_open()
        s = self.draft
        derived = compute_from_draft(s)
        currency = s.currency or settings.DEFAULT_CURRENCY

        def num(raw) -> float:
            return read_number(raw).or_zero()

        def per_dozen(amount) -> str:
            return f"{format_money(amount, currency)} (per dozen)"

        return [
            PreviewRow("Style Name / Style Number", s.style_name, "input", 0),
            PreviewRow("Yarn Description", s.yarn_desc, "input", 0),
            PreviewRow("Fabric composition", s.composition or EMPTY, "input", 0),
            PreviewRow("Gauge", str(s.gauge) if s.gauge else EMPTY, "input", 0),
            PreviewRow("Garments Weight (grams)", f"{format_plain(num(s.weight_gm), 2)} gm", "input", step_index("weightGm")),
            PreviewRow("Yarn price / LBS", format_plain(num(s.yarn_price_per_lb), 4), "input", step_index("yarnPricePerLb")),
            PreviewRow("Garments Weight (LBS / Doz)", format_optional(derived.lbs_per_doz), "auto", step_index("lbsPerDoz")),
            PreviewRow("Wastage %", f"{format_plain(num(s.wastage_pct), 2)}%", "input", step_index("wastagePct")),
            PreviewRow(
                "Garments Weight LBS (Including Wastage @ %)",
                format_optional(derived.lbs_with_wastage), "auto", step_index("lbsWithWastage"),
            ),
            PreviewRow(
                "Yarn Cost",
                EMPTY if derived.yarn_cost_doz is None else per_dozen(derived.yarn_cost_doz),
                "auto", step_index("yarnCostDoz"),
            ),
            PreviewRow("Accessories Cost", per_dozen(num(s.accessories_cost_doz)), "input", step_index("accessoriesCostDoz")),
            PreviewRow("Fabric", per_dozen(num(s.fabric_doz)), "input", step_index("fabricDoz")),
            PreviewRow("Fabric Cost", per_dozen(num(s.fabric_cost_doz)), "input", step_index("fabricCostDoz")),
            PreviewRow("Fabric Attachment CM", per_dozen(num(s.fabric_attach_cost_doz)), "input", step_index("fabricAttachCostDoz")),
            PreviewRow("Timing", f"{math.trunc(num(s.timing_min))} min", "input", step_index("timingMin")),
            PreviewRow("CM", per_dozen(num(s.cm_doz)), "input", step_index("cmDoz")),
            PreviewRow("Costing price / FOB", f"{format_money(derived.fob_per_pc, currency)} / pc", "auto", step_index("fobPerPc")),
            PreviewRow(
                f"Final (ROC {derived.roc_pct:.2f}%)",
                f"{format_money(derived.final_per_pc, currency)} / pc", "auto", step_index("rocPct"),
            ),
        ]

    # --- internals ---

    def _require_open(self):
        if self.draft is None:
            raise WizardClosed()

    def _close(self):
        self.draft = None
        self.step_index = 0

    def _autosave(self):
        try:
            self.store.put_draft(self.draft)
        except PersistenceFailure as e:
            logger.warning("Draft save failed: %s", e)
