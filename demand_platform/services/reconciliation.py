from __future__ import annotations

from datetime import (
    date,
    datetime,
    timedelta,
)
from logging import getLogger
from typing import (
    TYPE_CHECKING,
    NamedTuple,
    Optional,
)

import pandas as pd
from demand_platform import master_config
from demand_platform.forecasting import (
    compute_forecast_error,
    mean_error_pct,
)
from demand_platform.internal_schema import (
    ForecastAccuracy,
    ForecastRun,
    ForecastSkuLine,
)
from demand_platform.static import (
    HORIZONS,
    ConfigurationException,
    ForecastRunStatus,
)
from sqlalchemy import (
    func,
    select,
)

from .clock import Clock
from .data_output import DataOutput
from .database import retry_database_read_errors
from .feed_client import FeedClient

if TYPE_CHECKING:
    from .database import Database

logger = getLogger("reconciliation")


class ReconciliationResult(NamedTuple):
    """Outcome of an accuracy reconciliation, ``run_id`` is ``None`` if no forecast run qualified."""

    run_id: Optional[int] = None
    skus_compared: int = 0
    mean_error_pct: float = 0.0
    period_start: Optional[date] = None
    period_end: Optional[date] = None
    already_reconciled: bool = False


class AccuracyReconciler:
    """Compare forecasts of a past run against the sales realized afterwards.

    The reconciliation is independent of forecast runs and is typically triggered once per day.

    Args:
        internal_database: Database containing forecast runs and forecast lines.
        feed_client: Client providing realized sales.
        data_output: Output service storing the accuracy rows.
        clock: Clock defining "now".
    """

    def __init__(
        self, internal_database: Database, feed_client: FeedClient, data_output: DataOutput, clock: Clock
    ) -> None:
        self._internal_database = internal_database
        self._feed_client = feed_client
        self._data_output = data_output
        self._clock = clock

    def reconcile(
        self,
        horizon_days: int = 30,
        lookback_days: int = master_config.accuracy_lookback_days,
        window_days: int = master_config.accuracy_window_days,
    ) -> ReconciliationResult:
        """Reconcile the newest successful forecast run started between ``lookback_days`` and
        ``lookback_days + window_days`` ago.

        Each forecast line is compared with the units sold from the start date of the run until
        ``horizon_days`` later (both inclusive). A run is reconciled at most once per horizon.
        Only runs whose forecast period has elapsed qualify, ``lookback_days`` is raised to ``horizon_days``
        if it is shorter.

        Raises:
            ConfigurationException: if the horizon is not supported or the lookback is negative.
        """
        if horizon_days not in HORIZONS:
            raise ConfigurationException(f"Horizon of {horizon_days} days is not supported, choose from {HORIZONS}")
        if lookback_days < 0 or window_days < 0:
            raise ConfigurationException("Lookback and window days must not be negative")

        if lookback_days < horizon_days:
            logger.info(f"Using lookback of {horizon_days} days, forecast period of the run must have elapsed")
            lookback_days = horizon_days

        now = self._clock.now()
        run = self._find_run(now - timedelta(days=lookback_days + window_days), now - timedelta(days=lookback_days))
        if run is None:
            logger.info(
                f"No successful forecast run found from {lookback_days} to {lookback_days + window_days} days ago"
            )
            return ReconciliationResult()

        period_start = run.start.date()
        period_end = period_start + timedelta(days=horizon_days)

        if self._is_reconciled(run.id, horizon_days):
            logger.info(f"Forecast run {run.id} has already been reconciled for {horizon_days} days")
            return ReconciliationResult(
                run_id=run.id, period_start=period_start, period_end=period_end, already_reconciled=True
            )

        forecasts = self._load_forecasts(run.id, horizon_days)
        if forecasts.empty:
            logger.info(f"Forecast run {run.id} has no forecast lines to compare")
            return ReconciliationResult(run_id=run.id, period_start=period_start, period_end=period_end)

        actuals = self._feed_client.load_sales_totals(list(forecasts["sku"]), period_start, period_end)
        accuracy = compute_forecast_error(forecasts.merge(actuals, on="sku", how="left")).assign(
            run_id=run.id, horizon_days=horizon_days, period_start=period_start, period_end=period_end
        )

        self._data_output.store_accuracy(accuracy)

        result = ReconciliationResult(
            run_id=run.id,
            skus_compared=len(accuracy),
            mean_error_pct=mean_error_pct(accuracy),
            period_start=period_start,
            period_end=period_end,
        )
        logger.info(
            f"Reconciled forecast run {run.id} ({period_start} to {period_end}): "
            f"{result.skus_compared} SKUs, mean error {result.mean_error_pct}%"
        )
        return result

    @retry_database_read_errors
    def _find_run(self, earliest_start: datetime, latest_start: datetime) -> Optional[ForecastRun]:
        with self._internal_database.transaction_context() as session:
            return session.execute(
                select(ForecastRun)
                .where(ForecastRun.status == ForecastRunStatus.SUCCESS)
                .where(ForecastRun.start >= earliest_start)
                .where(ForecastRun.start <= latest_start)
                .order_by(ForecastRun.start.desc())
                .limit(1)
            ).scalar_one_or_none()

    @retry_database_read_errors
    def _is_reconciled(self, run_id: int, horizon_days: int) -> bool:
        with self._internal_database.transaction_context() as session:
            count = session.execute(
                select(func.count())
                .select_from(ForecastAccuracy)
                .where(ForecastAccuracy.c.run_id == run_id)
                .where(ForecastAccuracy.c.horizon_days == horizon_days)
            ).scalar_one()
        return bool(count)

    @retry_database_read_errors
    def _load_forecasts(self, run_id: int, horizon_days: int) -> pd.DataFrame:
        demand_column = getattr(ForecastSkuLine, f"demand_units_{horizon_days}")
        with self._internal_database.transaction_context() as session:
            return pd.read_sql(
                select(ForecastSkuLine.sku, demand_column.label("forecasted_units"))
                .where(ForecastSkuLine.run_id == run_id)
                .order_by(ForecastSkuLine.sku),
                session.connection(),
            )
