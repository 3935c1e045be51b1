from datetime import (
    date,
    datetime,
)
from threading import Event
from typing import List

import pytest
from demand_platform.forecasting import (
    CONFIRMED_ORDER_COLUMNS,
    PIPELINE_DEMAND_COLUMNS,
    InventorySnapshot,
    ProcurementParameters,
    SkuForecastLine,
    SkuInputs,
    empty_frame,
    forecast_sku,
)
from demand_platform.static import DataException
from demand_platform.test_utils import daily_sales
from sqlalchemy.exc import OperationalError

from .clock import (
    Clock,
    FixedClock,
)
from .logging import get_logging_context
from .sku_executor import (
    BatchReport,
    SkuFailure,
    execute_skus,
)

TODAY = date(2024, 3, 15)


def forecast_line(sku: str, units_per_day: int = 1) -> SkuForecastLine:
    inputs = SkuInputs(
        sku=sku,
        sales_history=daily_sales(sku, TODAY, days=30, units_per_day=units_per_day),
        pipeline_lines=empty_frame(PIPELINE_DEMAND_COLUMNS),
        confirmed_orders=empty_frame(CONFIRMED_ORDER_COLUMNS),
        inventory=InventorySnapshot(sku=sku),
        parameters=ProcurementParameters(),
    )
    return forecast_sku(inputs, {}, TODAY)


def process_sku(sku: str, deadline: float) -> SkuForecastLine:
    if sku == "SKU-bad-data":
        raise DataException("Sales history of SKU-bad-data contains negative quantities")
    if sku == "SKU-bug":
        raise ValueError("Unexpected value")
    return forecast_line(sku)


@pytest.fixture  # type: ignore
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 3, 15, 6, 0))


@pytest.mark.parametrize("max_parallel_skus", [1, 4])  # type: ignore
def test_failures_do_not_abort_batch(max_parallel_skus: int, clock: FixedClock) -> None:
    stored: List[str] = []

    report = execute_skus(
        ["SKU-1", "SKU-bad-data", "SKU-2", "SKU-bug"],
        process_sku=process_sku,
        store_line=lambda line: stored.append(line.sku),
        clock=clock,
        max_parallel_skus=max_parallel_skus,
        deadline_seconds=60,
    )

    assert sorted(stored) == ["SKU-1", "SKU-2"]
    assert sorted(line.sku for line in report.lines) == ["SKU-1", "SKU-2"]
    assert sorted(report.failures) == [
        SkuFailure("SKU-bad-data", "DataException", "Sales history of SKU-bad-data contains negative quantities"),
        SkuFailure("SKU-bug", "ValueError", "Unexpected value"),
    ]
    assert report.skus_tracked == 4
    assert report.skus_processed + report.skus_failed == report.skus_tracked


def test_sequential_processing_keeps_order(clock: FixedClock) -> None:
    stored: List[str] = []

    execute_skus(
        ["SKU-3", "SKU-1", "SKU-2"],
        process_sku=process_sku,
        store_line=lambda line: stored.append(line.sku),
        clock=clock,
        max_parallel_skus=1,
        deadline_seconds=60,
    )

    assert stored == ["SKU-3", "SKU-1", "SKU-2"]


@pytest.mark.parametrize("max_parallel_skus", [1, 3])  # type: ignore
def test_sku_is_logging_context(max_parallel_skus: int, clock: FixedClock) -> None:
    contexts: List[str] = []

    def record_context(sku: str, deadline: float) -> SkuForecastLine:
        contexts.append(get_logging_context())
        return forecast_line(sku)

    execute_skus(
        ["SKU-1", "SKU-2", "SKU-3"],
        process_sku=record_context,
        store_line=lambda line: None,
        clock=clock,
        max_parallel_skus=max_parallel_skus,
        deadline_seconds=60,
    )

    assert sorted(contexts) == ["SKU-1", "SKU-2", "SKU-3"]
    assert get_logging_context() == "global"


def test_deadline_passed_during_sequential_processing(clock: FixedClock) -> None:
    def slow_sku(sku: str, deadline: float) -> SkuForecastLine:
        clock.advance(45)
        return forecast_line(sku)

    report = execute_skus(
        ["SKU-1", "SKU-2", "SKU-3"],
        process_sku=slow_sku,
        store_line=lambda line: None,
        clock=clock,
        max_parallel_skus=1,
        deadline_seconds=60,
    )

    assert [line.sku for line in report.lines] == ["SKU-1", "SKU-2"]
    assert report.failures == [SkuFailure("SKU-3", "FeedTimeout", "Deadline passed before processing SKU-3")]
    assert report.skus_timed_out == 1


def test_deadline_passed_during_parallel_processing() -> None:
    release = Event()

    def blocking_sku(sku: str, deadline: float) -> SkuForecastLine:
        if sku == "SKU-blocked":
            release.wait(10)
        return forecast_line(sku)

    try:
        report = execute_skus(
            ["SKU-1", "SKU-blocked"],
            process_sku=blocking_sku,
            store_line=lambda line: None,
            clock=Clock(),
            max_parallel_skus=2,
            deadline_seconds=2,
        )
    finally:
        release.set()

    assert [line.sku for line in report.lines] == ["SKU-1"]
    assert report.failures == [
        SkuFailure("SKU-blocked", "FeedTimeout", "Deadline passed before processing SKU-blocked")
    ]
    assert report.failures[0].timed_out


def test_store_failure_is_recorded(clock: FixedClock) -> None:
    def store_line(line: SkuForecastLine) -> None:
        if line.sku == "SKU-2":
            raise RuntimeError("Database is gone")

    report = execute_skus(
        ["SKU-1", "SKU-2"],
        process_sku=process_sku,
        store_line=store_line,
        clock=clock,
        max_parallel_skus=1,
        deadline_seconds=60,
    )

    assert [line.sku for line in report.lines] == ["SKU-1"]
    assert report.failures == [SkuFailure("SKU-2", "RuntimeError", "Database is gone")]


def test_empty_batch(clock: FixedClock) -> None:
    report = execute_skus(
        [], process_sku=process_sku, store_line=lambda line: None, clock=clock, max_parallel_skus=4, deadline_seconds=1
    )

    assert report.summary()["skus_tracked"] == 0
    assert report.lines == []
    assert report.failures == []


def test_batch_report_summary() -> None:
    report = BatchReport(skus_tracked=4)
    report.lines = [forecast_line("SKU-1", units_per_day=2), forecast_line("SKU-2", units_per_day=0)]
    report.failures = [
        SkuFailure("SKU-3", "FeedTimeout", "Deadline passed before processing SKU-3"),
        SkuFailure("SKU-4", "DataException", "Broken"),
    ]

    assert report.summary() == {
        "skus_tracked": 4,
        "skus_processed": 2,
        "skus_failed": 2,
        "skus_timed_out": 1,
        "skus_with_demand": 1,
        "skus_needing_order": 1,
        "failed_skus": {
            "SKU-3": "FeedTimeout: Deadline passed before processing SKU-3",
            "SKU-4": "DataException: Broken",
        },
    }
    assert repr(report) == "<BatchReport(skus_tracked=4, skus_processed=2, skus_failed=2)>"


@pytest.mark.parametrize("max_parallel_skus", [1, 2])  # type: ignore
def test_unreachable_feed_is_raised(clock: FixedClock, max_parallel_skus: int) -> None:
    def unreachable_feed(sku: str, deadline: float) -> SkuForecastLine:
        raise OperationalError("SELECT", {}, Exception("Connection refused"))

    with pytest.raises(OperationalError, match="Connection refused"):
        execute_skus(
            ["SKU-1", "SKU-2"],
            process_sku=unreachable_feed,
            store_line=lambda line: None,
            clock=clock,
            max_parallel_skus=max_parallel_skus,
            deadline_seconds=60,
        )
