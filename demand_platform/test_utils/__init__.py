"""Utility functions used for integration and unit tests, which are executed using pytest."""

from .get_forecast_run import (
    get_forecast_run,
    get_sku_lines,
)
from .insert_feed_data import (
    daily_sales,
    drop_feed_table,
    insert_feed_data,
    insert_tracked_skus,
)

__all__ = [
    "daily_sales",
    "drop_feed_table",
    "get_forecast_run",
    "get_sku_lines",
    "insert_feed_data",
    "insert_tracked_skus",
]
