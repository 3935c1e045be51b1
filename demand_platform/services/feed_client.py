from __future__ import annotations

from datetime import (
    date,
    timedelta,
)
from logging import getLogger
from typing import (
    TYPE_CHECKING,
    List,
    Optional,
)

import pandas as pd
from demand_platform import master_config
from demand_platform.feed_schema import (
    ConfirmedOrder,
    InventorySnapshotTable,
    PipelineDemand,
    ProductMaster,
    SalesHistory,
)
from demand_platform.forecasting import (
    CONFIRMED_ORDER_COLUMNS,
    PIPELINE_DEMAND_COLUMNS,
    SALES_HISTORY_COLUMNS,
    InventorySnapshot,
    ProcurementParameters,
    SkuInputs,
)
from demand_platform.static import FeedTimeout
from pandas.errors import DatabaseError as PandasDatabaseError
from sqlalchemy import (
    func,
    select,
)
from sqlalchemy.exc import OperationalError
from sqlalchemy.sql import Select

from .clock import Clock
from .database import retry_database_read_errors

if TYPE_CHECKING:
    from .database import Database

logger = getLogger("feed_client")

FEED_TABLES = [SalesHistory, PipelineDemand, ConfirmedOrder, InventorySnapshotTable, ProductMaster]


class FeedClient:
    """Read the input feeds of the demand engine from the feed database.

    The client never writes to the feed database. The list of tracked SKUs is cached per instance,
    construct a new client (or call :meth:`clear_cache`) to see SKUs added to the product master.

    Args:
        feed_database: Database containing the feed tables.
        clock: Clock used for checking read deadlines.

    """

    def __init__(self, feed_database: Database, clock: Clock) -> None:
        self._feed_database = feed_database
        self._clock = clock
        self._tracked_skus: Optional[List[str]] = None

    def clear_cache(self) -> None:
        """Forget the cached list of tracked SKUs."""
        self._tracked_skus = None

    def load_tracked_skus(self) -> List[str]:
        """Load all SKUs of the product master, sorted by SKU."""
        if self._tracked_skus is None:
            self._tracked_skus = self._load_tracked_skus()
            logger.info(f"Loaded {len(self._tracked_skus)} tracked SKUs from {self._feed_database}")
        return list(self._tracked_skus)

    @retry_database_read_errors
    def _load_tracked_skus(self) -> List[str]:
        with self._feed_database.transaction_context() as session:
            return list(session.execute(select(ProductMaster.c.sku).order_by(ProductMaster.c.sku)).scalars())

    @retry_database_read_errors
    def check_feeds(self) -> None:
        """Read a single row of every feed table.

        Raises:
            sqlalchemy.exc.OperationalError: if a feed table cannot be read.
        """
        with self._feed_database.transaction_context() as session:
            for table in FEED_TABLES:
                session.execute(select(table).limit(1)).first()
        logger.debug(f"All {len(FEED_TABLES)} feeds of {self._feed_database} are readable")

    @retry_database_read_errors
    def load_sales_history(self, sku: str, since: date, deadline: Optional[float] = None) -> pd.DataFrame:
        """Load daily sales of ``sku`` on or after ``since``."""
        timeout = self._remaining_seconds(sku, "sales history", deadline)
        query = (
            select(*[SalesHistory.c[column] for column in SALES_HISTORY_COLUMNS])
            .where(SalesHistory.c.sku == sku)
            .where(SalesHistory.c.date >= since)
            .order_by(SalesHistory.c.date)
        )
        return self._read_frame(query, parse_dates=["date"], timeout_seconds=timeout)

    @retry_database_read_errors
    def load_pipeline_lines(self, sku: str, deadline: Optional[float] = None) -> pd.DataFrame:
        """Load open opportunities referencing ``sku``."""
        timeout = self._remaining_seconds(sku, "pipeline demand", deadline)
        query = (
            select(*[PipelineDemand.c[column] for column in PIPELINE_DEMAND_COLUMNS])
            .where(PipelineDemand.c.sku == sku)
            .order_by(PipelineDemand.c.opportunity_id)
        )
        return self._read_frame(query, timeout_seconds=timeout)

    @retry_database_read_errors
    def load_confirmed_orders(self, sku: str, deadline: Optional[float] = None) -> pd.DataFrame:
        """Load purchase order lines of ``sku``, including lines without fulfillment date."""
        timeout = self._remaining_seconds(sku, "confirmed orders", deadline)
        query = (
            select(*[ConfirmedOrder.c[column] for column in CONFIRMED_ORDER_COLUMNS])
            .where(ConfirmedOrder.c.sku == sku)
            .order_by(ConfirmedOrder.c.order_id)
        )
        return self._read_frame(query, parse_dates=["expected_fulfillment_date"], timeout_seconds=timeout)

    @retry_database_read_errors
    def load_inventory_snapshot(self, sku: str, deadline: Optional[float] = None) -> InventorySnapshot:
        """Load the supply position of ``sku``, a SKU without snapshot has no inventory at all."""
        timeout = self._remaining_seconds(sku, "inventory snapshot", deadline)
        with self._feed_database.transaction_context(timeout_seconds=timeout) as session:
            row = session.execute(
                select(InventorySnapshotTable).where(InventorySnapshotTable.c.sku == sku)
            ).one_or_none()

        if row is None:
            logger.debug(f"No inventory snapshot found for {sku}")
            return InventorySnapshot(sku=sku)

        if row.available is None:
            return InventorySnapshot.from_levels(sku, row.on_hand, row.reserved, row.on_order)

        return InventorySnapshot(
            sku=sku, on_hand=row.on_hand, reserved=row.reserved, available=row.available, on_order=row.on_order
        )

    @retry_database_read_errors
    def load_procurement_parameters(self, sku: str, deadline: Optional[float] = None) -> ProcurementParameters:
        """Load procurement parameters of ``sku``, undefined values use the defaults from ``master_config``."""
        timeout = self._remaining_seconds(sku, "product master", deadline)
        with self._feed_database.transaction_context(timeout_seconds=timeout) as session:
            row = session.execute(select(ProductMaster).where(ProductMaster.c.sku == sku)).one_or_none()

        if row is None:
            return ProcurementParameters()

        defaults = ProcurementParameters()
        return ProcurementParameters(
            **{
                field: getattr(defaults, field) if getattr(row, field) is None else getattr(row, field)
                for field in ProcurementParameters._fields
            }
        )

    def gather_inputs(self, sku: str, today: date, deadline: Optional[float] = None) -> SkuInputs:
        """Read all feeds of a single SKU.

        Args:
            sku: SKU to read.
            today: Reference date of the forecast, sales history is loaded for the configured lookback before it.
            deadline: Value of :meth:`Clock.monotonic` after which no further feed is read, reads still running
                at the deadline are aborted by the database.

        Returns:
            Inputs of the demand engine and the procurement planner.

        Raises:
            FeedTimeout: if the deadline passed before all feeds were read.
        """
        since = today - timedelta(days=master_config.sales_history_lookback_days)

        try:
            sales_history = self.load_sales_history(sku, since, deadline=deadline)
            pipeline_lines = self.load_pipeline_lines(sku, deadline=deadline)
            confirmed_orders = self.load_confirmed_orders(sku, deadline=deadline)
            inventory = self.load_inventory_snapshot(sku, deadline=deadline)
            parameters = self.load_procurement_parameters(sku, deadline=deadline)
        except (OperationalError, PandasDatabaseError) as error:
            if deadline is not None and self._clock.monotonic() >= deadline:
                raise FeedTimeout(f"Deadline passed while reading feeds of {sku}") from error
            raise

        logger.debug(
            f"Loaded feeds of {sku}: {len(sales_history)} sales days, {len(pipeline_lines)} pipeline lines, "
            f"{len(confirmed_orders)} confirmed order lines"
        )

        return SkuInputs(
            sku=sku,
            sales_history=sales_history,
            pipeline_lines=pipeline_lines,
            confirmed_orders=confirmed_orders,
            inventory=inventory,
            parameters=parameters,
        )

    @retry_database_read_errors
    def load_sales_totals(self, skus: List[str], start: date, end: date) -> pd.DataFrame:
        """Sum units sold per SKU between ``start`` and ``end`` (both inclusive).

        Returns:
            :class:`~pandas.DataFrame` with "sku" and "actual_units" columns, one row per given SKU.
        """
        query = (
            select(SalesHistory.c.sku, func.sum(SalesHistory.c.units_sold).label("actual_units"))
            .where(SalesHistory.c.sku.in_(skus))
            .where(SalesHistory.c.date >= start)
            .where(SalesHistory.c.date <= end)
            .group_by(SalesHistory.c.sku)
        )
        totals = self._read_frame(query) if skus else pd.DataFrame(columns=["sku", "actual_units"])

        all_skus = pd.DataFrame({"sku": pd.Series(skus, dtype="object")})
        result = all_skus.merge(totals, on="sku", how="left")
        result["actual_units"] = result["actual_units"].fillna(0).astype("int64")
        return result

    def _read_frame(
        self, query: Select, parse_dates: Optional[List[str]] = None, timeout_seconds: Optional[float] = None
    ) -> pd.DataFrame:
        with self._feed_database.transaction_context(timeout_seconds=timeout_seconds) as session:
            return pd.read_sql(query, session.connection(), parse_dates=parse_dates)

    def _remaining_seconds(self, sku: str, feed_name: str, deadline: Optional[float]) -> Optional[float]:
        if deadline is None:
            return None
        remaining = deadline - self._clock.monotonic()
        if remaining <= 0:
            raise FeedTimeout(f"Deadline passed before reading {feed_name} of {sku}")
        return remaining
