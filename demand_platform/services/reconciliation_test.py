from datetime import (
    date,
    timedelta,
)

import pandas as pd
import pytest
from demand_platform.static import (
    FORECAST_ACCURACY_TABLE,
    ConfigurationException,
    TriggerType,
)
from demand_platform.test_utils import (
    daily_sales,
    insert_feed_data,
    insert_tracked_skus,
)

from .clock import FixedClock
from .data_output import DataOutput
from .database import Database
from .feed_client import FeedClient
from .orchestrator import Orchestrator
from .reconciliation import (
    AccuracyReconciler,
    ReconciliationResult,
)
from .runtime_config import RuntimeConfig
from .stage_weights import StageWeightStore

RUN_DATE = date(2024, 2, 14)


@pytest.fixture  # type: ignore
def reconciler(
    internal_database: Database, feed_client: FeedClient, data_output: DataOutput, clock: FixedClock
) -> AccuracyReconciler:
    return AccuracyReconciler(internal_database, feed_client, data_output, clock)


def run_forecast_days_ago(
    days: int,
    clock: FixedClock,
    internal_database: Database,
    feed_database: Database,
    stage_weight_store: StageWeightStore,
) -> int:
    past_clock = FixedClock(clock.now() - timedelta(days=days))
    orchestrator = Orchestrator(
        RuntimeConfig(TriggerType.scheduled),
        FeedClient(feed_database, past_clock),
        stage_weight_store,
        DataOutput(internal_database, past_clock),
        internal_database,
        past_clock,
    )
    orchestrator.run()
    assert orchestrator.forecast_run_id is not None
    return orchestrator.forecast_run_id


@pytest.fixture  # type: ignore
def past_run_id(
    clock: FixedClock, internal_database: Database, feed_database: Database, stage_weight_store: StageWeightStore
) -> int:
    """Forecast run from 30 days ago, forecasting 300 units of SKU-1 and nothing for SKU-2 within 30 days."""
    insert_tracked_skus(feed_database, ["SKU-1", "SKU-2"])
    insert_feed_data(feed_database, sales_history=daily_sales("SKU-1", RUN_DATE - timedelta(days=1), 30, 10))

    run_id = run_forecast_days_ago(30, clock, internal_database, feed_database, stage_weight_store)

    insert_feed_data(
        feed_database,
        sales_history=pd.concat(
            [
                daily_sales("SKU-1", RUN_DATE + timedelta(days=9), days=10, units_per_day=24),
                daily_sales("SKU-2", RUN_DATE + timedelta(days=30), days=1, units_per_day=8),
                daily_sales("SKU-2", RUN_DATE + timedelta(days=31), days=1, units_per_day=1000),
            ]
        ),
    )
    return run_id


def read_accuracy(internal_database: Database) -> pd.DataFrame:
    with internal_database.transaction_context() as session:
        return pd.read_sql(f"SELECT * FROM {FORECAST_ACCURACY_TABLE} ORDER BY sku", session.connection())


def test_reconcile(reconciler: AccuracyReconciler, past_run_id: int, internal_database: Database) -> None:
    result = reconciler.reconcile()

    assert result == ReconciliationResult(
        run_id=past_run_id,
        skus_compared=2,
        mean_error_pct=62.5,
        period_start=RUN_DATE,
        period_end=date(2024, 3, 15),
    )

    accuracy = read_accuracy(internal_database)
    assert accuracy["sku"].tolist() == ["SKU-1", "SKU-2"]
    assert accuracy["run_id"].tolist() == [past_run_id, past_run_id]
    assert accuracy["horizon_days"].tolist() == [30, 30]
    assert accuracy["forecasted_units"].tolist() == [300, 0]
    assert accuracy["actual_units"].tolist() == [240, 8]
    assert accuracy["error_units"].tolist() == [60, -8]
    assert accuracy["absolute_error_units"].tolist() == [60, 8]
    assert accuracy["error_pct"].tolist() == [25.0, 100.0]


def test_run_is_reconciled_once_per_horizon(
    reconciler: AccuracyReconciler, past_run_id: int, internal_database: Database
) -> None:
    reconciler.reconcile()

    result = reconciler.reconcile()

    assert result.already_reconciled
    assert result.run_id == past_run_id
    assert result.skus_compared == 0
    assert len(read_accuracy(internal_database)) == 2


@pytest.mark.parametrize("horizon_days", [60, 90])  # type: ignore
def test_forecast_period_must_have_elapsed(
    horizon_days: int, reconciler: AccuracyReconciler, past_run_id: int, internal_database: Database
) -> None:
    result = reconciler.reconcile(horizon_days=horizon_days, lookback_days=0, window_days=40)

    assert result == ReconciliationResult()
    assert read_accuracy(internal_database).empty


def test_reconcile_longer_horizon(
    reconciler: AccuracyReconciler,
    clock: FixedClock,
    internal_database: Database,
    feed_database: Database,
    stage_weight_store: StageWeightStore,
) -> None:
    run_date = RUN_DATE - timedelta(days=30)
    insert_tracked_skus(feed_database, ["SKU-1", "SKU-2"])
    insert_feed_data(feed_database, sales_history=daily_sales("SKU-1", run_date - timedelta(days=1), 30, 10))
    run_id = run_forecast_days_ago(60, clock, internal_database, feed_database, stage_weight_store)
    insert_feed_data(
        feed_database,
        sales_history=pd.concat(
            [
                daily_sales("SKU-1", run_date + timedelta(days=59), days=60, units_per_day=12),
                daily_sales("SKU-2", run_date + timedelta(days=60), days=1, units_per_day=5),
                daily_sales("SKU-2", run_date + timedelta(days=61), days=1, units_per_day=1000),
            ]
        ),
    )

    result = reconciler.reconcile(horizon_days=60)

    assert result.run_id == run_id
    assert (result.period_start, result.period_end) == (run_date, clock.today())
    assert read_accuracy(internal_database)["forecasted_units"].tolist() == [600, 0]
    assert read_accuracy(internal_database)["actual_units"].tolist() == [720, 5]

    assert reconciler.reconcile(horizon_days=60).already_reconciled
    assert reconciler.reconcile(horizon_days=30, lookback_days=60).skus_compared == 2
    assert len(read_accuracy(internal_database)) == 4


def test_no_run_to_reconcile(reconciler: AccuracyReconciler) -> None:
    assert reconciler.reconcile() == ReconciliationResult()


@pytest.mark.parametrize("days_ago", [0, 29, 41])  # type: ignore
def test_run_outside_of_window_is_ignored(
    days_ago: int,
    reconciler: AccuracyReconciler,
    clock: FixedClock,
    internal_database: Database,
    feed_database: Database,
    stage_weight_store: StageWeightStore,
) -> None:
    insert_tracked_skus(feed_database, ["SKU-1"])
    run_forecast_days_ago(days_ago, clock, internal_database, feed_database, stage_weight_store)

    assert reconciler.reconcile(lookback_days=30, window_days=10) == ReconciliationResult()


def test_newest_run_within_window_is_reconciled(
    reconciler: AccuracyReconciler,
    clock: FixedClock,
    internal_database: Database,
    feed_database: Database,
    stage_weight_store: StageWeightStore,
) -> None:
    insert_tracked_skus(feed_database, ["SKU-1"])
    run_forecast_days_ago(38, clock, internal_database, feed_database, stage_weight_store)
    newest_run_id = run_forecast_days_ago(32, clock, internal_database, feed_database, stage_weight_store)

    assert reconciler.reconcile().run_id == newest_run_id


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"horizon_days": 45}, "Horizon of 45 days is not supported"),
        ({"lookback_days": -1}, "Lookback and window days must not be negative"),
        ({"window_days": -1}, "Lookback and window days must not be negative"),
    ],
)  # type: ignore
def test_invalid_reconciliation(reconciler: AccuracyReconciler, kwargs: dict, message: str) -> None:  # type: ignore
    with pytest.raises(ConfigurationException, match=message):
        reconciler.reconcile(**kwargs)
