from demand_platform.static import (
    CONFIRMED_ORDER_TABLE,
    INVENTORY_SNAPSHOT_TABLE,
    PIPELINE_DEMAND_TABLE,
    PRODUCT_MASTER_TABLE,
    SALES_HISTORY_TABLE,
)
from sqlalchemy import (
    VARCHAR,
    Column,
    Date,
    Float,
    Integer,
    PrimaryKeyConstraint,
    Table,
)

from .feed_schema_base import FeedSchemaBase

#: Daily realized unit sales per SKU, appended by the sales ingestion and immutable once written.
SalesHistory = Table(
    SALES_HISTORY_TABLE,
    FeedSchemaBase.metadata,
    Column("sku", VARCHAR(length=100), nullable=False),
    Column("date", Date, nullable=False),
    Column("units_sold", Integer, nullable=False),
    PrimaryKeyConstraint("sku", "date"),
)

#: Expected monthly units implied by open sales opportunities.
PipelineDemand = Table(
    PIPELINE_DEMAND_TABLE,
    FeedSchemaBase.metadata,
    Column("opportunity_id", VARCHAR(length=100), nullable=False),
    Column("sku", VARCHAR(length=100), nullable=False, index=True),
    Column("expected_units", Float, nullable=False),
    Column("stage", VARCHAR(length=100), nullable=False),
    Column("probability_override", Float, nullable=True),  # 0-100, NULL to use the stage weight
    PrimaryKeyConstraint("opportunity_id", "sku"),
)

#: Committed purchase order quantities.
ConfirmedOrder = Table(
    CONFIRMED_ORDER_TABLE,
    FeedSchemaBase.metadata,
    Column("order_id", VARCHAR(length=100), nullable=False),
    Column("sku", VARCHAR(length=100), nullable=False, index=True),
    Column("quantity", Integer, nullable=False),
    Column("expected_fulfillment_date", Date, nullable=True),
    PrimaryKeyConstraint("order_id", "sku"),
)

#: Current supply position per SKU.
InventorySnapshotTable = Table(
    INVENTORY_SNAPSHOT_TABLE,
    FeedSchemaBase.metadata,
    Column("sku", VARCHAR(length=100), primary_key=True, nullable=False),
    Column("on_hand", Integer, nullable=False),
    Column("reserved", Integer, nullable=False),
    Column("available", Integer, nullable=True),  # NULL to derive from on_hand - reserved
    Column("on_order", Integer, nullable=False),
)

#: Procurement parameters per SKU. Each SKU in this table is tracked by the forecast runs.
ProductMaster = Table(
    PRODUCT_MASTER_TABLE,
    FeedSchemaBase.metadata,
    Column("sku", VARCHAR(length=100), primary_key=True, nullable=False),
    Column("safety_stock_units", Integer, nullable=True),
    Column("moq_units", Integer, nullable=True),
    Column("case_pack", Integer, nullable=True),
    Column("lead_time_days", Integer, nullable=True),
)
