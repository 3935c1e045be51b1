from datetime import (
    date,
    timedelta,
)
from typing import (
    Iterable,
    Optional,
)

import pandas as pd
from demand_platform.services import Database
from demand_platform.static import (
    CONFIRMED_ORDER_TABLE,
    INVENTORY_SNAPSHOT_TABLE,
    PIPELINE_DEMAND_TABLE,
    PRODUCT_MASTER_TABLE,
    SALES_HISTORY_TABLE,
)
from sqlalchemy import text


def daily_sales(sku: str, last_day: date, days: int, units_per_day: int) -> pd.DataFrame:
    """Build a sales history with the same units sold on each of ``days`` consecutive days ending at ``last_day``."""
    return pd.DataFrame(
        {
            "sku": sku,
            "date": [last_day - timedelta(days=offset) for offset in range(days)],
            "units_sold": units_per_day,
        }
    )


def insert_feed_data(
    feed_database: Database,
    sales_history: Optional[pd.DataFrame] = None,
    pipeline_lines: Optional[pd.DataFrame] = None,
    confirmed_orders: Optional[pd.DataFrame] = None,
    inventory: Optional[pd.DataFrame] = None,
    product_master: Optional[pd.DataFrame] = None,
) -> None:
    """Insert test data into the feed tables, feeds given as ``None`` are not modified."""
    for df, table_name in [
        (sales_history, SALES_HISTORY_TABLE),
        (pipeline_lines, PIPELINE_DEMAND_TABLE),
        (confirmed_orders, CONFIRMED_ORDER_TABLE),
        (inventory, INVENTORY_SNAPSHOT_TABLE),
        (product_master, PRODUCT_MASTER_TABLE),
    ]:
        if df is not None:
            feed_database.insert_data_frame(df, table_name)


def insert_tracked_skus(feed_database: Database, skus: Iterable[str]) -> None:
    """Add SKUs with default procurement parameters to the product master."""
    insert_feed_data(feed_database, product_master=pd.DataFrame({"sku": list(skus)}))


def drop_feed_table(feed_database: Database, table_name: str) -> None:
    """Drop a single feed table to make the feed unreachable."""
    with feed_database.transaction_context() as session:
        session.execute(text(f"DROP TABLE {table_name}"))
