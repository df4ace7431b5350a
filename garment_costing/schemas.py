from pydantic import BaseModel, ConfigDict, field_validator
from typing import Optional
from datetime import datetime


class PhotoRef(BaseModel):
    """Compressed garment photo: encoded bytes plus the metadata needed to show it."""
    model_config = ConfigDict(frozen=True)

    data: bytes
    mime_type: str = "image/jpeg"
    width: Optional[int] = None
    height: Optional[int] = None


# Numeric draft inputs, in step order. Stored as strings so "" (blank) stays
# distinct from "0".
NUMERIC_FIELDS = (
    "weight_gm",
    "yarn_price_per_lb",
    "wastage_pct",
    "accessories_cost_doz",
    "fabric_doz",
    "fabric_cost_doz",
    "fabric_attach_cost_doz",
    "timing_min",
    "cm_doz",
    "roc_pct",
)

STYLE_FIELDS = ("style_name", "yarn_desc", "composition", "gauge", "currency")


class WizardDraft(BaseModel):
    """The single in-progress costing. Mutated field by field while the wizard runs."""
    model_config = ConfigDict(validate_assignment=True)

    # style info
    style_name: str = ""
    yarn_desc: str = ""
    composition: str = ""
    gauge: Optional[int] = None
    weight_gm: str = ""
    photo: Optional[PhotoRef] = None

    currency: str = "$"

    # costing inputs
    yarn_price_per_lb: str = ""
    wastage_pct: str = "8"
    accessories_cost_doz: str = "0"
    fabric_doz: str = "0"
    fabric_cost_doz: str = "0"
    fabric_attach_cost_doz: str = "0"
    timing_min: str = "0"
    cm_doz: str = "0"
    roc_pct: str = "2.5"

    @field_validator(*NUMERIC_FIELDS, mode="before")
    @classmethod
    def _number_as_text(cls, value):
        if value is None:
            return ""
        if isinstance(value, bool):
            raise ValueError("expected a number, not a boolean")
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("gauge", mode="before")
    @classmethod
    def _blank_gauge(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def to_storage(self) -> dict:
        """JSON-safe dict of everything except the photo (stored in its own columns)."""
        return self.model_dump(exclude={"photo"})


class CostingInputs(BaseModel):
    """Numeric inputs frozen at commit time. Blanks are already resolved to 0."""
    model_config = ConfigDict(frozen=True)

    yarn_price_per_lb: float = 0.0
    wastage_pct: float = 0.0
    accessories_cost_doz: float = 0.0
    fabric_doz: float = 0.0
    fabric_cost_doz: float = 0.0
    fabric_attach_cost_doz: float = 0.0
    timing_min: int = 0
    cm_doz: float = 0.0
    roc_pct: float = 0.0


class ComputedSnapshot(BaseModel):
    """Derived cost figures. The three nullable fields are None when weight <= 0."""
    model_config = ConfigDict(frozen=True)

    lbs_per_doz: Optional[float] = None
    lbs_with_wastage: Optional[float] = None
    yarn_cost_doz: Optional[float] = None
    total_doz: float
    fob_per_pc: float
    final_per_pc: float
    roc_pct: float


class CostingRecord(BaseModel):
    """Immutable, versioned audit record of a committed costing."""
    model_config = ConfigDict(frozen=True)

    id: str
    created_at: datetime
    app_version: str
    calc_version: str

    # style
    style_name: str
    yarn_desc: str
    composition: str = ""
    gauge: int
    weight_gm: float
    currency: str

    photo: Optional[PhotoRef] = None

    inputs: CostingInputs
    computed: ComputedSnapshot
