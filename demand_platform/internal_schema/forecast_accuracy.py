from demand_platform.static import (
    FORECAST_ACCURACY_TABLE,
    FORECAST_RUN_TABLE,
)
from sqlalchemy import (
    VARCHAR,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    Table,
)

from .internal_schema_base import InternalSchemaBase

#: Table schema definition for storing the reconciliation of past forecasts against realized sales.
ForecastAccuracy = Table(
    FORECAST_ACCURACY_TABLE,
    InternalSchemaBase.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True, nullable=False),
    Column("sku", VARCHAR(length=100), nullable=False, index=True),
    # ``run_id`` is nullable, reconciled runs can be deleted without losing the accuracy history
    Column("run_id", Integer, ForeignKey(f"{FORECAST_RUN_TABLE}.id", ondelete="SET NULL"), nullable=True),
    Column("horizon_days", Integer, nullable=False),
    Column("period_start", Date, nullable=False),
    Column("period_end", Date, nullable=False),
    Column("forecasted_units", Integer, nullable=False),
    Column("actual_units", Integer, nullable=False),
    Column("error_units", Integer, nullable=False),
    Column("absolute_error_units", Integer, nullable=False),
    Column("error_pct", Float, nullable=False),
    Column("created", DateTime, nullable=False),
)
