"""
Formula Engine — factory costing sheet math.

Turns the dozen-based costing inputs into a ComputedSnapshot.
Pure math, no I/O. Weight per piece (gm) -> LBS per dozen -> yarn cost,
plus dozen-rate costs, divided down to a per-piece FOB and marked up by ROC.

Pipeline:
    lbs_per_doz      = weight_gm / 37.8                 (None unless weight > 0)
    lbs_with_wastage = lbs_per_doz * (1 + wastage/100)  (None propagates)
    yarn_cost_doz    = yarn_price * lbs_with_wastage    (None propagates)
    total_doz        = (yarn_cost_doz or 0) + accessories + fabric
                       + fabric_cost + fabric_attach + cm
    fob_per_pc       = round2(total_doz / 12)
    final_per_pc     = round2(fob_per_pc * (1 + roc/100))

Arithmetic runs in Decimal so 453.6 / 12 is exactly 37.8 and results do not
depend on binary float drift. Only fob_per_pc and final_per_pc are rounded.
"""

import math
import re
from dataclasses import dataclass
from decimal import Context, Decimal, ROUND_HALF_UP
from typing import Optional

from .config import settings
from .schemas import ComputedSnapshot, CostingInputs, WizardDraft

WEIGHT_GM_PER_LB = Decimal("453.6")
PIECES_PER_DOZEN = Decimal(12)
GM_PER_LB_PER_PIECE_IN_DOZEN = WEIGHT_GM_PER_LB / PIECES_PER_DOZEN  # 37.8

_CENT = Decimal("0.01")
_HUNDRED = Decimal(100)
# Wide enough to quantize any finite float without InvalidOperation
_ROUNDING_CONTEXT = Context(prec=400, rounding=ROUND_HALF_UP)
# Plain decimal notation only: no digit separators, hex or words like "inf"
_NUMBER_TEXT = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?", re.ASCII)


@dataclass(frozen=True)
class NumberReading:
    """
    Result of reading one numeric draft field.

    blank:  the field is empty (distinct from zero)
    value:  the parsed finite number, or None when blank or unparseable
    """
    raw: str
    blank: bool
    value: Optional[float]

    @property
    def valid(self) -> bool:
        return not self.blank and self.value is not None

    def or_zero(self) -> float:
        """Blank and unparseable fields count as 0 in the cost pipeline."""
        return self.value if self.value is not None else 0.0


def read_number(raw) -> NumberReading:
    """Parse a draft field. Whitespace-only counts as blank; NaN/inf are invalid."""
    text = "" if raw is None else str(raw).strip()
    if not text:
        return NumberReading(raw=text, blank=True, value=None)
    if not _NUMBER_TEXT.fullmatch(text):
        return NumberReading(raw=text, blank=False, value=None)
    try:
        value = float(text)
    except ValueError:
        return NumberReading(raw=text, blank=False, value=None)
    if not math.isfinite(value):
        return NumberReading(raw=text, blank=False, value=None)
    return NumberReading(raw=text, blank=False, value=value)


def _dec(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() gives the shortest repr, so 1.005 becomes Decimal("1.005")
    return Decimal(str(value))


def round2(value) -> float:
    """
    Round half away from zero at the second decimal.

    Idempotent: round2(round2(x)) == round2(x). Non-finite input returns 0.0.
    """
    d = _dec(value)
    if not d.is_finite():
        return 0.0
    return float(d.quantize(_CENT, rounding=ROUND_HALF_UP, context=_ROUNDING_CONTEXT))


def compute_costing(
    weight_gm: Optional[float],
    wastage_pct: Optional[float] = None,
    yarn_price_per_lb: Optional[float] = None,
    accessories_cost_doz: Optional[float] = None,
    fabric_doz: Optional[float] = None,
    fabric_cost_doz: Optional[float] = None,
    fabric_attach_cost_doz: Optional[float] = None,
    cm_doz: Optional[float] = None,
    roc_pct: Optional[float] = None,
) -> ComputedSnapshot:
    """
    Run the costing pipeline. None inputs are treated as 0.

    roc_pct defaults to the factory-fixed ROC (settings.FIXED_ROC_PCT).
    """
    weight = _dec(weight_gm or 0)
    wastage = _dec(wastage_pct or 0)
    yarn_price = _dec(yarn_price_per_lb or 0)
    roc = _dec(settings.FIXED_ROC_PCT if roc_pct is None else roc_pct)

    lbs_per_doz = weight / GM_PER_LB_PER_PIECE_IN_DOZEN if weight > 0 else None
    lbs_with_wastage = (
        lbs_per_doz * (1 + wastage / _HUNDRED) if lbs_per_doz is not None else None
    )
    yarn_cost_doz = yarn_price * lbs_with_wastage if lbs_with_wastage is not None else None

    dozen_rates = [
        accessories_cost_doz,
        fabric_doz,
        fabric_cost_doz,
        fabric_attach_cost_doz,
        cm_doz,
    ]
    total_doz = (yarn_cost_doz if yarn_cost_doz is not None else Decimal(0)) + sum(
        (_dec(rate or 0) for rate in dozen_rates), Decimal(0)
    )

    fob_per_pc = round2(total_doz / PIECES_PER_DOZEN)
    final_per_pc = round2(_dec(fob_per_pc) * (1 + roc / _HUNDRED))

    return ComputedSnapshot(
        lbs_per_doz=_to_float(lbs_per_doz),
        lbs_with_wastage=_to_float(lbs_with_wastage),
        yarn_cost_doz=_to_float(yarn_cost_doz),
        total_doz=float(total_doz),
        fob_per_pc=fob_per_pc,
        final_per_pc=final_per_pc,
        roc_pct=float(roc),
    )


def compute_from_draft(draft: WizardDraft) -> ComputedSnapshot:
    """Live preview for the wizard. Always applies the fixed ROC."""
    return compute_costing(
        weight_gm=read_number(draft.weight_gm).or_zero(),
        wastage_pct=read_number(draft.wastage_pct).or_zero(),
        yarn_price_per_lb=read_number(draft.yarn_price_per_lb).or_zero(),
        accessories_cost_doz=read_number(draft.accessories_cost_doz).or_zero(),
        fabric_doz=read_number(draft.fabric_doz).or_zero(),
        fabric_cost_doz=read_number(draft.fabric_cost_doz).or_zero(),
        fabric_attach_cost_doz=read_number(draft.fabric_attach_cost_doz).or_zero(),
        cm_doz=read_number(draft.cm_doz).or_zero(),
    )


def compute_from_inputs(weight_gm: float, inputs: CostingInputs) -> ComputedSnapshot:
    """Recompute a committed record's snapshot from its frozen inputs."""
    return compute_costing(
        weight_gm=weight_gm,
        wastage_pct=inputs.wastage_pct,
        yarn_price_per_lb=inputs.yarn_price_per_lb,
        accessories_cost_doz=inputs.accessories_cost_doz,
        fabric_doz=inputs.fabric_doz,
        fabric_cost_doz=inputs.fabric_cost_doz,
        fabric_attach_cost_doz=inputs.fabric_attach_cost_doz,
        cm_doz=inputs.cm_doz,
    )


def _to_float(value: Optional[Decimal]) -> Optional[float]:
    return float(value) if value is not None else None
