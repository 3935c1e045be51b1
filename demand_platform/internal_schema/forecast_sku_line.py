from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from demand_platform.static import (
    FORECAST_RUN_TABLE,
    FORECAST_SKU_LINE_TABLE,
)
from sqlalchemy import (
    JSON,
    VARCHAR,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
)
from sqlalchemy.orm import relationship

from .internal_schema_base import InternalSchemaBase

if TYPE_CHECKING:
    from demand_platform.forecasting import SkuForecastLine
    from .forecast_run import ForecastRun  # noqa: F401


class ForecastSkuLine(InternalSchemaBase):
    """Represent the engine output of one SKU within one forecast run, immutable once stored."""

    __tablename__ = FORECAST_SKU_LINE_TABLE

    id = Column(Integer, primary_key=True, autoincrement=True, nullable=False)

    run_id = Column(Integer, ForeignKey(f"{FORECAST_RUN_TABLE}.id", ondelete="CASCADE"), nullable=False, index=True)
    run = relationship("ForecastRun", back_populates="sku_lines")

    sku = Column(VARCHAR(length=100), nullable=False, index=True)

    demand_units_30 = Column(Integer, nullable=False)
    demand_units_60 = Column(Integer, nullable=False)
    demand_units_90 = Column(Integer, nullable=False)

    trailing_30_day_units = Column(Integer, nullable=False)
    weighted_pipeline_units = Column(Integer, nullable=False)
    confirmed_order_units_30 = Column(Integer, nullable=False)

    confidence_30 = Column(Integer, nullable=False)
    confidence_60 = Column(Integer, nullable=False)
    confidence_90 = Column(Integer, nullable=False)

    required_units = Column(Integer, nullable=False)
    recommended_order_units = Column(Integer, nullable=False)
    recommended_order_date = Column(Date, nullable=True)

    risk_flags = Column(JSON, nullable=False)
    explanation = Column(JSON, nullable=False)

    created = Column(DateTime, nullable=False)

    def __str__(self) -> str:
        return f"<ForecastSkuLine(id={self.id}, run_id={self.run_id}, sku={self.sku})>"

    @staticmethod
    def create(forecast_run_id: int, line: SkuForecastLine, created: datetime) -> ForecastSkuLine:
        """Construct a :class:`ForecastSkuLine` row from a computed forecast line."""
        demand = line.demand
        return ForecastSkuLine(
            run_id=forecast_run_id,
            sku=line.sku,
            demand_units_30=demand.demand_units[30],
            demand_units_60=demand.demand_units[60],
            demand_units_90=demand.demand_units[90],
            trailing_30_day_units=demand.trailing_30_day_units,
            weighted_pipeline_units=demand.weighted_pipeline_units,
            confirmed_order_units_30=demand.confirmed_order_units[30],
            confidence_30=demand.confidence[30],
            confidence_60=demand.confidence[60],
            confidence_90=demand.confidence[90],
            required_units=line.procurement.required_units,
            recommended_order_units=line.recommended_order_units,
            recommended_order_date=line.recommended_order_date,
            risk_flags=[flag.value for flag in line.risk_flags],
            explanation=line.explanation,
            created=created,
        )
