from demand_platform.static import STAGE_WEIGHT_TABLE
from sqlalchemy import (
    VARCHAR,
    Column,
    DateTime,
    Float,
)

from .internal_schema_base import InternalSchemaBase


class StageWeight(InternalSchemaBase):
    """Default probability (0-100) of a pipeline stage, configured by an operator."""

    __tablename__ = STAGE_WEIGHT_TABLE

    stage = Column(VARCHAR(length=100), primary_key=True, nullable=False)
    probability = Column(Float, nullable=False)
    updated = Column(DateTime, nullable=False)

    def __str__(self) -> str:
        return f"<StageWeight(stage={self.stage}, probability={self.probability})>"
