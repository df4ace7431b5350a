from sqlalchemy import Column, Integer, String, Float, DateTime, Text, JSON, LargeBinary
from datetime import datetime
from .database import Base


class Draft(Base):
    """The single in-progress wizard draft (fixed id, see store.DRAFT_ID)."""
    __tablename__ = "drafts"

    id = Column(String, primary_key=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    data_json = Column(JSON, default=dict)  # WizardDraft fields minus the photo
    # Photo stored as raw bytes, not inside the JSON blob
    photo_data = Column(LargeBinary, nullable=True)
    photo_type = Column(String, nullable=True)
    photo_width = Column(Integer, nullable=True)
    photo_height = Column(Integer, nullable=True)


class Costing(Base):
    """Committed costing record. Rows are written once and never updated in place."""
    __tablename__ = "costing_records"

    id = Column(String, primary_key=True)  # UUID
    created_at = Column(DateTime, nullable=False, index=True)
    app_version = Column(String, nullable=False)
    calc_version = Column(String, nullable=False)

    # style
    style_name = Column(String, nullable=False, index=True)
    yarn_desc = Column(Text, nullable=False)
    composition = Column(Text, default="")
    gauge = Column(Integer, nullable=False)
    weight_gm = Column(Float, nullable=False)
    currency = Column(String, nullable=False)

    photo_data = Column(LargeBinary, nullable=True)
    photo_type = Column(String, nullable=True)
    photo_width = Column(Integer, nullable=True)
    photo_height = Column(Integer, nullable=True)

    inputs_json = Column(JSON, nullable=False)    # CostingInputs snapshot
    computed_json = Column(JSON, nullable=False)  # ComputedSnapshot at commit time
