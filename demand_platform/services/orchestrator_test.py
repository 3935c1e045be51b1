import logging
from datetime import (
    date,
    timedelta,
)
from typing import (
    Callable,
    List,
    Optional,
)

import pandas as pd
import pytest
from _pytest.logging import LogCaptureFixture
from _pytest.monkeypatch import MonkeyPatch
from demand_platform import master_config
from demand_platform.static import (
    PIPELINE_DEMAND_TABLE,
    ConfigurationException,
    ForecastRunStatus,
    RunAlreadyActive,
    TriggerType,
)
from demand_platform.test_utils import (
    daily_sales,
    drop_feed_table,
    get_forecast_run,
    get_sku_lines,
    insert_feed_data,
)
from sqlalchemy.exc import OperationalError

from .clock import FixedClock
from .database import Database
from .feed_client import FeedClient
from .orchestrator import Orchestrator

TODAY = date(2024, 3, 15)


@pytest.fixture  # type: ignore
def feed_data(feed_database: Database) -> None:
    insert_feed_data(
        feed_database,
        sales_history=daily_sales("SKU-1", TODAY, days=30, units_per_day=10),
        pipeline_lines=pd.DataFrame(
            {
                "opportunity_id": ["opp-1"],
                "sku": ["SKU-1"],
                "expected_units": [100.0],
                "stage": ["meeting_booked"],
                "probability_override": [None],
            }
        ),
        confirmed_orders=pd.DataFrame(
            {
                "order_id": ["po-1"],
                "sku": ["SKU-1"],
                "quantity": [50],
                "expected_fulfillment_date": [TODAY + timedelta(days=10)],
            }
        ),
        inventory=pd.DataFrame(
            {"sku": ["SKU-1"], "on_hand": [120], "reserved": [20], "available": [100], "on_order": [0]}
        ),
        product_master=pd.DataFrame(
            {
                "sku": ["SKU-1", "SKU-2"],
                "safety_stock_units": [50, None],
                "moq_units": [100, None],
                "case_pack": [24, None],
                "lead_time_days": [45, None],
            }
        ),
    )


@pytest.mark.usefixtures("feed_data")  # type: ignore
class TestForecastRun:
    def test_successful_run(
        self, create_orchestrator: Callable[..., Orchestrator], internal_database: Database, clock: FixedClock
    ) -> None:
        orchestrator = create_orchestrator()

        report = orchestrator.run()

        assert report.skus_tracked == 2
        assert report.skus_processed == 2
        assert report.skus_failed == 0

        forecast_run = get_forecast_run(internal_database, orchestrator.forecast_run_id)
        assert forecast_run is not None
        assert forecast_run.status == ForecastRunStatus.SUCCESS
        assert forecast_run.trigger_type == TriggerType.manual
        assert forecast_run.horizon_days == master_config.default_horizon_days
        assert forecast_run.model_version == master_config.model_version
        assert forecast_run.start == clock.now()
        assert forecast_run.end == clock.now()
        assert forecast_run.error is None
        assert forecast_run.output_summary == report.summary()
        assert forecast_run.input_summary == {
            "today": "2024-03-15",
            "skus": 2,
            "only_skus": [],
            "stage_weights": master_config.default_stage_weights,
            "max_parallel_skus": 1,
            "feed_read_deadline_seconds": master_config.feed_read_deadline_seconds,
        }

    def test_sku_lines_are_stored(
        self, create_orchestrator: Callable[..., Orchestrator], internal_database: Database
    ) -> None:
        orchestrator = create_orchestrator()
        orchestrator.run()

        sku_1, sku_2 = get_sku_lines(internal_database, orchestrator.forecast_run_id)

        assert sku_1.sku == "SKU-1"
        assert (sku_1.demand_units_30, sku_1.demand_units_60, sku_1.demand_units_90) == (300, 600, 900)
        assert (sku_1.trailing_30_day_units, sku_1.weighted_pipeline_units, sku_1.confirmed_order_units_30) == (
            300,
            20,
            50,
        )
        assert (sku_1.confidence_30, sku_1.confidence_60, sku_1.confidence_90) == (100, 90, 80)
        assert sku_1.required_units == 550
        assert sku_1.recommended_order_units == 552
        assert sku_1.recommended_order_date == TODAY + timedelta(days=38)
        assert sku_1.risk_flags == []
        assert sku_1.explanation["final_demand"] == {"30": 300, "60": 600, "90": 900}

        assert sku_2.sku == "SKU-2"
        assert (sku_2.demand_units_30, sku_2.demand_units_60, sku_2.demand_units_90) == (0, 0, 0)
        assert (sku_2.confidence_30, sku_2.confidence_60, sku_2.confidence_90) == (50, 40, 30)
        assert sku_2.recommended_order_units == 0
        assert sku_2.recommended_order_date is None
        assert sku_2.risk_flags == ["no_sales_history"]

    def test_only_skus(self, create_orchestrator: Callable[..., Orchestrator], internal_database: Database) -> None:
        orchestrator = create_orchestrator(only_skus=["SKU-2", "SKU-9"])

        report = orchestrator.run()

        assert report.skus_tracked == 1
        assert [line.sku for line in get_sku_lines(internal_database, orchestrator.forecast_run_id)] == ["SKU-2"]

    def test_failed_sku_does_not_fail_run(
        self,
        create_orchestrator: Callable[..., Orchestrator],
        internal_database: Database,
        feed_database: Database,
    ) -> None:
        insert_feed_data(
            feed_database,
            sales_history=daily_sales("SKU-2", TODAY, days=1, units_per_day=-5),
        )
        orchestrator = create_orchestrator()

        report = orchestrator.run()

        assert report.skus_processed == 1
        assert report.skus_failed == 1

        forecast_run = get_forecast_run(internal_database, orchestrator.forecast_run_id)
        assert forecast_run is not None
        assert forecast_run.status == ForecastRunStatus.SUCCESS
        assert forecast_run.output_summary["failed_skus"] == {
            "SKU-2": "DataException: Sales history of SKU-2 contains negative quantities"
        }
        assert [line.sku for line in get_sku_lines(internal_database, orchestrator.forecast_run_id)] == ["SKU-1"]

    def test_feed_deadline(
        self,
        create_orchestrator: Callable[..., Orchestrator],
        internal_database: Database,
        feed_client: FeedClient,
        clock: FixedClock,
        monkeypatch: MonkeyPatch,
    ) -> None:
        load_sales_history = feed_client.load_sales_history

        def slow_sales_history(sku: str, since: date, deadline: Optional[float] = None) -> pd.DataFrame:
            clock.advance(20)
            return load_sales_history(sku, since)

        monkeypatch.setattr(feed_client, "load_sales_history", slow_sales_history)
        orchestrator = create_orchestrator(feed_read_deadline_seconds=10)

        report = orchestrator.run()

        assert report.skus_processed == 0
        assert report.skus_timed_out == 2

        forecast_run = get_forecast_run(internal_database, orchestrator.forecast_run_id)
        assert forecast_run is not None
        assert forecast_run.status == ForecastRunStatus.SUCCESS
        assert forecast_run.output_summary["failed_skus"] == {
            "SKU-1": "FeedTimeout: Deadline passed before reading pipeline demand of SKU-1",
            "SKU-2": "FeedTimeout: Deadline passed before processing SKU-2",
        }

    def test_run_level_failure(
        self,
        create_orchestrator: Callable[..., Orchestrator],
        internal_database: Database,
        feed_client: FeedClient,
        monkeypatch: MonkeyPatch,
    ) -> None:
        def broken_feed() -> List[str]:
            raise RuntimeError("Feed database is not reachable")

        monkeypatch.setattr(feed_client, "load_tracked_skus", broken_feed)
        orchestrator = create_orchestrator()

        with pytest.raises(RuntimeError, match="Feed database is not reachable"):
            orchestrator.run()

        forecast_run = get_forecast_run(internal_database, orchestrator.forecast_run_id)
        assert forecast_run is not None
        assert forecast_run.status == ForecastRunStatus.FAILED
        assert forecast_run.error == "RuntimeError: Feed database is not reachable"
        assert forecast_run.end is not None

    def test_unreachable_feed_fails_run(
        self, create_orchestrator: Callable[..., Orchestrator], internal_database: Database, feed_database: Database
    ) -> None:
        drop_feed_table(feed_database, PIPELINE_DEMAND_TABLE)
        orchestrator = create_orchestrator()

        with pytest.raises(OperationalError):
            orchestrator.run()

        forecast_run = get_forecast_run(internal_database, orchestrator.forecast_run_id)
        assert forecast_run is not None
        assert forecast_run.status == ForecastRunStatus.FAILED
        assert forecast_run.error.startswith("OperationalError: ")
        assert f"no such table: {PIPELINE_DEMAND_TABLE}" in forecast_run.error
        assert forecast_run.output_summary is None

    def test_feed_lost_during_run_fails_run(
        self,
        create_orchestrator: Callable[..., Orchestrator],
        internal_database: Database,
        feed_client: FeedClient,
        monkeypatch: MonkeyPatch,
    ) -> None:
        def lost_feed(sku: str, deadline: Optional[float] = None) -> pd.DataFrame:
            raise OperationalError("SELECT", {}, Exception("Connection reset"))

        monkeypatch.setattr(feed_client, "load_pipeline_lines", lost_feed)
        orchestrator = create_orchestrator()

        with pytest.raises(OperationalError):
            orchestrator.run()

        forecast_run = get_forecast_run(internal_database, orchestrator.forecast_run_id)
        assert forecast_run is not None
        assert forecast_run.status == ForecastRunStatus.FAILED
        assert "Connection reset" in forecast_run.error

    def test_interrupted_run(
        self,
        create_orchestrator: Callable[..., Orchestrator],
        internal_database: Database,
        feed_client: FeedClient,
        monkeypatch: MonkeyPatch,
    ) -> None:
        def interrupt() -> List[str]:
            raise KeyboardInterrupt()

        monkeypatch.setattr(feed_client, "load_tracked_skus", interrupt)
        orchestrator = create_orchestrator()

        with pytest.raises(KeyboardInterrupt):
            orchestrator.run()

        forecast_run = get_forecast_run(internal_database, orchestrator.forecast_run_id)
        assert forecast_run is not None
        assert forecast_run.status == ForecastRunStatus.FAILED
        assert forecast_run.error == "Interrupted by user"

    def test_start_and_wait(
        self, create_orchestrator: Callable[..., Orchestrator], internal_database: Database
    ) -> None:
        orchestrator = create_orchestrator()

        forecast_run_id = orchestrator.start()
        report = orchestrator.wait(timeout=60)

        assert forecast_run_id == orchestrator.forecast_run_id
        assert report is not None
        assert report.skus_processed == 2

        forecast_run = get_forecast_run(internal_database, forecast_run_id)
        assert forecast_run is not None
        assert forecast_run.status == ForecastRunStatus.SUCCESS

    def test_wait_raises_background_error(
        self, create_orchestrator: Callable[..., Orchestrator], feed_client: FeedClient, monkeypatch: MonkeyPatch
    ) -> None:
        def broken_feed() -> List[str]:
            raise RuntimeError("Feed database is not reachable")

        monkeypatch.setattr(feed_client, "load_tracked_skus", broken_feed)
        orchestrator = create_orchestrator()
        orchestrator.start()

        with pytest.raises(RuntimeError, match="Feed database is not reachable"):
            orchestrator.wait(timeout=60)


class TestMutualExclusion:
    def test_running_run_blocks_same_trigger_type(self, create_orchestrator: Callable[..., Orchestrator]) -> None:
        active = create_orchestrator()
        active_run_id = active._initialize_forecast_run()

        with pytest.raises(RunAlreadyActive, match=f"Forecast run {active_run_id} \\(manual\\) is still running"):
            create_orchestrator().run()

    def test_other_trigger_type_is_not_blocked(
        self, create_orchestrator: Callable[..., Orchestrator], internal_database: Database
    ) -> None:
        create_orchestrator(TriggerType.scheduled)._initialize_forecast_run()

        orchestrator = create_orchestrator(TriggerType.manual)
        orchestrator.run()

        forecast_run = get_forecast_run(internal_database, orchestrator.forecast_run_id)
        assert forecast_run is not None
        assert forecast_run.status == ForecastRunStatus.SUCCESS

    def test_finished_run_does_not_block(self, create_orchestrator: Callable[..., Orchestrator]) -> None:
        create_orchestrator().run()

        assert create_orchestrator().run().skus_tracked == 0

    def test_orchestrator_runs_only_once(self, create_orchestrator: Callable[..., Orchestrator]) -> None:
        orchestrator = create_orchestrator()
        orchestrator.run()

        with pytest.raises(ConfigurationException, match="Orchestrator has already been used for forecast run"):
            orchestrator.run()


def test_end_state_is_final(
    create_orchestrator: Callable[..., Orchestrator],
    internal_database: Database,
    clock: FixedClock,
    caplog: LogCaptureFixture,
) -> None:
    orchestrator = create_orchestrator()
    orchestrator.run()
    forecast_run = get_forecast_run(internal_database, orchestrator.forecast_run_id)
    assert forecast_run is not None

    with caplog.at_level(logging.WARNING):
        caplog.clear()
        updated = Orchestrator._update_forecast_status(
            internal_database, forecast_run, ForecastRunStatus.FAILED, clock, error="Late failure"
        )

    assert caplog.messages == [
        "Attempted invalid state transition from end state ForecastRunStatus.SUCCESS to ForecastRunStatus.FAILED"
    ]
    assert updated.status == ForecastRunStatus.SUCCESS
    assert updated.error is None
