from .feed_schema_base import FeedSchemaBase
from .feed_tables import (
    ConfirmedOrder,
    InventorySnapshotTable,
    PipelineDemand,
    ProductMaster,
    SalesHistory,
)

__all__ = [
    "FeedSchemaBase",
    "ConfirmedOrder",
    "InventorySnapshotTable",
    "PipelineDemand",
    "ProductMaster",
    "SalesHistory",
]
