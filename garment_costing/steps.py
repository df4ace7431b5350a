"""
Step Schema — the ordered list of costing wizard steps.

Static data consulted by validation, navigation and the preview table.
A step's index in STEPS is its position and its jump target.
"""

import enum
from dataclasses import dataclass
from typing import Optional


class StepKind(str, enum.Enum):
    STYLE_GROUP = "style"
    NUMERIC = "number"
    PERCENT = "percent"
    INTEGER = "int"
    COMPUTED = "computed"
    PREVIEW = "preview"


# Kinds that edit exactly one draft field
INPUT_KINDS = (StepKind.NUMERIC, StepKind.PERCENT, StepKind.INTEGER)

GAUGE_OPTIONS = (3, 5, 7, 12)


@dataclass(frozen=True)
class StepDescriptor:
    id: str
    kind: StepKind
    title: str
    hint: str = ""
    field_key: Optional[str] = None  # None for style/computed/preview steps
    required: bool = False


STEPS: tuple[StepDescriptor, ...] = (
    StepDescriptor(
        id="styleInfo",
        kind=StepKind.STYLE_GROUP,
        title="STEP 1: Basic Style Information",
        hint="All fields are required. This is the base style data for all calculations.",
        required=True,
    ),
    StepDescriptor(
        id="yarnPricePerLb", kind=StepKind.NUMERIC, field_key="yarn_price_per_lb", required=True,
        title="Yarn price / LBS", hint="Enter yarn price per pound (LBS).",
    ),
    StepDescriptor(
        id="weightGm", kind=StepKind.NUMERIC, field_key="weight_gm", required=True,
        title="Garments Weight (grams)", hint="Weight per piece in grams (gm).",
    ),
    StepDescriptor(
        id="lbsPerDoz", kind=StepKind.COMPUTED,
        title="Garments Weight (LBS / Doz)",
        hint="Auto-calculated: LBS/Doz = Weight(gm) ÷ 37.8",
    ),
    StepDescriptor(
        id="wastagePct", kind=StepKind.PERCENT, field_key="wastage_pct", required=True,
        title="Wastage %", hint="Enter wastage percentage (0–100).",
    ),
    StepDescriptor(
        id="lbsWithWastage", kind=StepKind.COMPUTED,
        title="Garments Weight LBS (Including Wastage @ %)",
        hint="Auto-calculated: LBS incl wastage = LBS/Doz × (1 + Wastage%)",
    ),
    StepDescriptor(
        id="yarnCostDoz", kind=StepKind.COMPUTED,
        title="Yarn Cost",
        hint="Auto-calculated: Yarn Cost = Yarn Price/LBS × LBS (incl wastage).",
    ),
    StepDescriptor(
        id="accessoriesCostDoz", kind=StepKind.NUMERIC, field_key="accessories_cost_doz",
        title="Accessories Cost", hint="Enter cost per DOZEN. Blank is treated as 0.",
    ),
    StepDescriptor(
        id="fabricDoz", kind=StepKind.NUMERIC, field_key="fabric_doz",
        title="Fabric", hint="Enter cost per DOZEN (if any). Blank is treated as 0.",
    ),
    StepDescriptor(
        id="fabricCostDoz", kind=StepKind.NUMERIC, field_key="fabric_cost_doz",
        title="Fabric Cost", hint="Enter cost per DOZEN. Blank is treated as 0.",
    ),
    StepDescriptor(
        id="fabricAttachCostDoz", kind=StepKind.NUMERIC, field_key="fabric_attach_cost_doz",
        title="Fabric Attachment CM", hint="Enter cost per DOZEN. Blank is treated as 0.",
    ),
    StepDescriptor(
        id="timingMin", kind=StepKind.INTEGER, field_key="timing_min",
        title="Timing",
        hint="Minutes (informational). Does not affect calculation unless you change CM.",
    ),
    StepDescriptor(
        id="cmDoz", kind=StepKind.NUMERIC, field_key="cm_doz", required=True,
        title="CM", hint="Enter CM cost per DOZEN (Cut & Make).",
    ),
    StepDescriptor(
        id="fobPerPc", kind=StepKind.COMPUTED,
        title="Costing price / FOB",
        hint="Auto-calculated: (Total cost per dozen) ÷ 12",
    ),
    StepDescriptor(
        id="rocPct", kind=StepKind.COMPUTED,
        title="Final (ROC 2.50%)",
        hint="Auto-calculated: FOB × (1 + 2.50%)",
    ),
    StepDescriptor(
        id="preview", kind=StepKind.PREVIEW,
        title="Preview & Calculate Final FOB",
        hint="Review every value. You can tap any row to jump back and edit.",
    ),
)

PREVIEW_INDEX = len(STEPS) - 1


def step_index(step_id: str) -> int:
    """Position of a step by id. Raises KeyError for unknown ids."""
    for i, step in enumerate(STEPS):
        if step.id == step_id:
            return i
    raise KeyError(f"Unknown step: {step_id}")


def get_step(step_id: str) -> StepDescriptor:
    return STEPS[step_index(step_id)]


# Steps the record builder re-checks before commit, in order
COMMIT_CHECK_STEP_IDS = ("styleInfo", "yarnPricePerLb", "weightGm", "wastagePct", "cmDoz", "rocPct")
