from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from demand_platform.static import (
    FORECAST_RUN_TABLE,
    ForecastRunStatus,
    SqlAlchemyEnum,
    TriggerType,
)
from sqlalchemy import (
    JSON,
    VARCHAR,
    Column,
    DateTime,
    Index,
    Integer,
    Text,
    text,
)
from sqlalchemy.orm import relationship

from .forecast_sku_line import ForecastSkuLine
from .internal_schema_base import InternalSchemaBase

if TYPE_CHECKING:
    from demand_platform.services import RuntimeConfig

_RUNNING_CONDITION = text(f"status = '{ForecastRunStatus.RUNNING.name}'")


class ForecastRun(InternalSchemaBase):
    """Represent a forecast run in the internal database, with relevant configuration and status information."""

    __tablename__ = FORECAST_RUN_TABLE
    __table_args__ = (
        # At most one running forecast run per trigger type
        Index(
            "ix_forecast_run_single_running",
            "trigger_type",
            unique=True,
            sqlite_where=_RUNNING_CONDITION,
            postgresql_where=_RUNNING_CONDITION,
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True, nullable=False)

    trigger_type = Column(SqlAlchemyEnum(TriggerType), nullable=False)
    horizon_days = Column(Integer, nullable=False)
    model_version = Column(VARCHAR(length=50), nullable=False)

    start = Column(DateTime, nullable=False)
    end = Column(DateTime, nullable=True)

    status = Column(SqlAlchemyEnum(ForecastRunStatus), nullable=False)
    error = Column(Text, nullable=True)

    input_summary = Column(JSON, nullable=True)
    output_summary = Column(JSON, nullable=True)

    sku_lines = relationship(ForecastSkuLine, passive_deletes=True, back_populates="run")

    def __str__(self) -> str:
        return f"<ForecastRun(id={self.id}, trigger_type={self.trigger_type}, status={self.status})>"

    @staticmethod
    def create(runtime_config: RuntimeConfig, start: datetime) -> ForecastRun:
        """Construct a newly initialized :class:`ForecastRun` instance."""
        return ForecastRun(
            trigger_type=runtime_config.trigger_type,
            horizon_days=runtime_config.horizon_days,
            model_version=runtime_config.model_version,
            start=start,
            status=ForecastRunStatus.RUNNING,
        )
