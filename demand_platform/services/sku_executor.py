from __future__ import annotations

import logging
from concurrent.futures import (
    Future,
    ThreadPoolExecutor,
)
from concurrent.futures import TimeoutError as FuturesTimeoutError
from concurrent.futures import as_completed
from typing import (
    Any,
    Callable,
    Dict,
    List,
    NamedTuple,
    Sequence,
    Union,
)

from demand_platform.forecasting import SkuForecastLine
from demand_platform.static import (
    DataException,
    FeedTimeout,
)

from .clock import Clock
from .database import is_operational_error
from .logging import (
    reset_logging_context,
    set_logging_context,
)

logger = logging.getLogger("sku_executor")


class SkuFailure(NamedTuple):
    """Forecast of a single SKU which could not be computed or stored."""

    sku: str
    error_type: str
    message: str

    @property
    def timed_out(self) -> bool:
        """``True`` if the SKU failed because the feed deadline of the run passed."""
        return self.error_type == FeedTimeout.__name__

    @staticmethod
    def from_exception(sku: str, error: BaseException) -> SkuFailure:
        """Record the type and message of ``error``."""
        return SkuFailure(sku=sku, error_type=type(error).__name__, message=str(error))


SkuResult = Union[SkuForecastLine, SkuFailure]


class BatchReport:
    """Outcome of processing all SKUs of one forecast run.

    Args:
        skus_tracked: Number of SKUs which were scheduled for processing.
    """

    def __init__(self, skus_tracked: int) -> None:
        self.skus_tracked = skus_tracked
        self.lines: List[SkuForecastLine] = []
        self.failures: List[SkuFailure] = []

    def __repr__(self) -> str:
        return (
            f"<BatchReport(skus_tracked={self.skus_tracked}, skus_processed={self.skus_processed}, "
            f"skus_failed={self.skus_failed})>"
        )

    @property
    def skus_processed(self) -> int:
        """Number of SKUs with a stored forecast line."""
        return len(self.lines)

    @property
    def skus_failed(self) -> int:
        """Number of SKUs without forecast line, including timed out SKUs."""
        return len(self.failures)

    @property
    def skus_timed_out(self) -> int:
        """Number of SKUs which failed because the feed deadline passed."""
        return sum(failure.timed_out for failure in self.failures)

    @property
    def skus_with_demand(self) -> int:
        """Number of processed SKUs with positive 30-day demand."""
        return sum(line.demand.demand_units[30] > 0 for line in self.lines)

    @property
    def skus_needing_order(self) -> int:
        """Number of processed SKUs with a recommended purchase order."""
        return sum(line.recommended_order_units > 0 for line in self.lines)

    def summary(self) -> Dict[str, Any]:
        """JSON serializable summary, stored as output summary of the forecast run."""
        return {
            "skus_tracked": self.skus_tracked,
            "skus_processed": self.skus_processed,
            "skus_failed": self.skus_failed,
            "skus_timed_out": self.skus_timed_out,
            "skus_with_demand": self.skus_with_demand,
            "skus_needing_order": self.skus_needing_order,
            "failed_skus": {failure.sku: f"{failure.error_type}: {failure.message}" for failure in self.failures},
        }


def execute_skus(
    skus: Sequence[str],
    process_sku: Callable[[str, float], SkuForecastLine],
    store_line: Callable[[SkuForecastLine], None],
    clock: Clock,
    max_parallel_skus: int,
    deadline_seconds: float,
) -> BatchReport:
    """Execute a parallelized or sequential forecast of all SKUs, depending on current configuration.

    If only a single SKU is processed or ``max_parallel_skus`` is 1, then no thread pool is used
    and the SKUs are processed within the calling thread.

    Errors of a single SKU never abort the batch, they are recorded as :class:`SkuFailure`.
    Database errors while reading the feeds of a SKU are re-raised, an unreachable feed fails the whole run.
    SKUs which are not finished when the deadline passes are recorded as failed with ``FeedTimeout``.
    Forecast lines are only stored from the calling thread.

    Args:
        skus: SKUs to process.
        process_sku: Function computing the forecast line of a SKU, called with the SKU and the deadline
            as value of :meth:`Clock.monotonic`.
        store_line: Function persisting a computed forecast line.
        clock: Clock used for the deadline.
        max_parallel_skus: Maximum number of worker threads.
        deadline_seconds: Seconds from now, after which no SKU is started and no feed is read.

    Returns:
        Report containing all forecast lines and failures.
    """
    assert max_parallel_skus > 0, "Expected max_parallel_skus to be greater than 0."

    report = BatchReport(skus_tracked=len(skus))
    deadline = clock.monotonic() + deadline_seconds

    if max_parallel_skus <= 1 or len(skus) <= 1:
        logger.info(f"Skipping thread pool (max_parallel_skus={max_parallel_skus}, number of SKUs={len(skus)})")
        for sku in skus:
            if clock.monotonic() >= deadline:
                result: SkuResult = _deadline_failure(sku)
            else:
                result = _run_sku(process_sku, sku, deadline)
            _collect(report, result, store_line)
        return report

    executor = ThreadPoolExecutor(max_workers=max_parallel_skus, thread_name_prefix="sku_worker")
    futures: Dict[Future[SkuResult], str] = {
        executor.submit(_run_sku, process_sku, sku, deadline): sku for sku in skus
    }
    collected = set()
    try:
        for future in as_completed(futures, timeout=max(deadline - clock.monotonic(), 0)):
            collected.add(future)
            _collect(report, future.result(), store_line)
    except FuturesTimeoutError:
        logger.warning(f"Deadline of {deadline_seconds} seconds passed, cancelling unfinished SKUs")
        for future, sku in futures.items():
            if future in collected:
                continue
            if future.done() and not future.cancelled():
                _collect(report, future.result(), store_line)
            else:
                future.cancel()
                _collect(report, _deadline_failure(sku), store_line)
    finally:
        # Running workers cannot be interrupted, they stop at their next deadline check.
        executor.shutdown(wait=False, cancel_futures=True)

    return report


def _run_sku(process_sku: Callable[[str, float], SkuForecastLine], sku: str, deadline: float) -> SkuResult:
    set_logging_context(sku)
    try:
        return process_sku(sku, deadline)
    except DataException as error:
        logger.warning(f"Skipping {sku}: {type(error).__name__}: {error}")
        return SkuFailure.from_exception(sku, error)
    except Exception as error:
        if is_operational_error(error):
            logger.error(f"Feeds of {sku} cannot be read: {error}")
            raise
        logger.exception(f"Forecast of {sku} failed")
        return SkuFailure.from_exception(sku, error)
    finally:
        reset_logging_context()


def _deadline_failure(sku: str) -> SkuFailure:
    logger.warning(f"Skipping {sku}: feed deadline passed before processing")
    return SkuFailure.from_exception(sku, FeedTimeout(f"Deadline passed before processing {sku}"))


def _collect(report: BatchReport, result: SkuResult, store_line: Callable[[SkuForecastLine], None]) -> None:
    if isinstance(result, SkuFailure):
        report.failures.append(result)
        return

    try:
        store_line(result)
    except Exception as error:
        logger.exception(f"Storing forecast line of {result.sku} failed")
        report.failures.append(SkuFailure.from_exception(result.sku, error))
        return

    report.lines.append(result)
