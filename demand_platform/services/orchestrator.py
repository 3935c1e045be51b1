from __future__ import annotations

import logging
from datetime import date
from threading import Thread
from typing import (
    Any,
    Dict,
    List,
    Optional,
)

from demand_platform.forecasting import (
    SkuForecastLine,
    forecast_sku,
)
from demand_platform.internal_schema import ForecastRun
from demand_platform.static import (
    ConfigurationException,
    ForecastRunStatus,
    RunAlreadyActive,
    StageWeights,
)
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from .clock import Clock
from .data_output import DataOutput
from .database import Database
from .feed_client import FeedClient
from .runtime_config import RuntimeConfig
from .sku_executor import (
    BatchReport,
    execute_skus,
)
from .stage_weights import StageWeightStore

logger = logging.getLogger("orchestrator")


class Orchestrator:
    """Coordinate the steps of a single forecast run.

    An instance executes exactly one run, either synchronously with :meth:`run` or in a background thread
    with :meth:`start` and :meth:`wait`.
    """

    def __init__(
        self,
        runtime_config: RuntimeConfig,
        feed_client: FeedClient,
        stage_weight_store: StageWeightStore,
        data_output: DataOutput,
        internal_database: Database,
        clock: Clock,
    ):
        self._runtime_config = runtime_config
        self._feed_client = feed_client
        self._stage_weight_store = stage_weight_store
        self._data_output = data_output
        self._internal_database = internal_database
        self._clock = clock

        self._forecast_run: Optional[ForecastRun] = None
        self._thread: Optional[Thread] = None
        self._report: Optional[BatchReport] = None
        self._error: Optional[BaseException] = None

    @property
    def forecast_run_id(self) -> Optional[int]:
        """ID of the forecast run, ``None`` before the run has been started."""
        return self._forecast_run.id if self._forecast_run else None

    def run(self) -> BatchReport:
        """Run the forecast of all tracked SKUs and wait for the result.

        Raises:
            RunAlreadyActive: if another run with the same trigger type is still running.
        """
        self._initialize_forecast_run()
        return self._execute()

    def start(self) -> int:
        """Create the forecast run and execute it in a background thread.

        Returns:
            ID of the created forecast run, available before any SKU has been processed.

        Raises:
            RunAlreadyActive: if another run with the same trigger type is still running.
        """
        forecast_run_id = self._initialize_forecast_run()

        self._thread = Thread(target=self._execute_in_background, name=f"forecast_run_{forecast_run_id}")
        self._thread.start()

        return forecast_run_id

    def wait(self, timeout: Optional[float] = None) -> Optional[BatchReport]:
        """Wait for a run started with :meth:`start`.

        Args:
            timeout: Maximum seconds to wait, wait until the run is finished if ``None``.

        Returns:
            Report of the finished run, ``None`` if the run is still in progress after ``timeout``.

        Raises:
            Exception: the error which failed the run.
        """
        assert self._thread is not None, "Use Orchestrator.start() before waiting for the forecast run"

        self._thread.join(timeout)
        if self._thread.is_alive():
            return None

        if self._error is not None:
            raise self._error

        return self._report

    def _initialize_forecast_run(self) -> int:
        if self._forecast_run is not None:
            raise ConfigurationException(
                f"Orchestrator has already been used for forecast run {self._forecast_run.id}"
            )

        trigger_type = self._runtime_config.trigger_type
        try:
            with self._internal_database.transaction_context() as session:
                active_run_id = session.execute(
                    select(ForecastRun.id)
                    .where(ForecastRun.trigger_type == trigger_type)
                    .where(ForecastRun.status == ForecastRunStatus.RUNNING)
                ).scalar()
                if active_run_id is not None:
                    raise RunAlreadyActive(f"Forecast run {active_run_id} ({trigger_type.value}) is still running")

                forecast_run = ForecastRun.create(self._runtime_config, start=self._clock.now())
                session.add(forecast_run)
                logger.debug(f"Initializing forecast run: {forecast_run}")
                session.flush()
                session.refresh(forecast_run)
        except IntegrityError as error:
            # Another process inserted a running forecast run after the check above.
            raise RunAlreadyActive(f"Another {trigger_type.value} forecast run is still running") from error

        logger.info(f"Started forecast run: {forecast_run}")
        self._forecast_run = forecast_run
        return int(forecast_run.id)

    def _execute_in_background(self) -> None:
        try:
            self._execute()
        except BaseException as error:
            logger.error(f"Forecast run {self.forecast_run_id} failed in background: {error}")
            self._error = error

    def _execute(self) -> BatchReport:
        assert self._forecast_run is not None, "Invalid program state: Expected forecast run to be initialized"

        try:
            today = self._clock.today()
            stage_weights = self._stage_weight_store.get_mapping()
            self._feed_client.check_feeds()
            skus = self._runtime_config.filter_skus(self._feed_client.load_tracked_skus())

            self._forecast_run = self._update_forecast_run(
                input_summary=self._input_summary(today, skus, stage_weights)
            )

            logger.info(f"Forecasting {len(skus)} SKU(s) for {today}")
            report = execute_skus(
                skus,
                process_sku=lambda sku, deadline: self._forecast_sku(sku, deadline, today, stage_weights),
                store_line=self._store_line,
                clock=self._clock,
                max_parallel_skus=self._runtime_config.max_parallel_skus,
                deadline_seconds=self._runtime_config.feed_read_deadline_seconds,
            )

            self._forecast_run = Orchestrator._update_forecast_status(
                self._internal_database,
                self._forecast_run,
                ForecastRunStatus.SUCCESS,
                self._clock,
                output_summary=report.summary(),
            )
        except KeyboardInterrupt:
            self._forecast_run = Orchestrator._update_forecast_status(
                self._internal_database,
                self._forecast_run,
                ForecastRunStatus.FAILED,
                self._clock,
                error="Interrupted by user",
            )
            raise
        except Exception as error:
            logger.exception(f"Forecast run {self.forecast_run_id} failed")
            self._forecast_run = Orchestrator._update_forecast_status(
                self._internal_database,
                self._forecast_run,
                ForecastRunStatus.FAILED,
                self._clock,
                error=f"{type(error).__name__}: {error}",
            )
            raise

        logger.info(
            f"Finished forecast run {self.forecast_run_id}: {report.skus_processed} of {report.skus_tracked} SKU(s) "
            f"processed, {report.skus_failed} failed ({report.skus_timed_out} timed out)"
        )
        self._report = report
        return report

    def _forecast_sku(self, sku: str, deadline: float, today: date, stage_weights: StageWeights) -> SkuForecastLine:
        inputs = self._feed_client.gather_inputs(sku, today, deadline)
        return forecast_sku(inputs, stage_weights, today, self._runtime_config.model_version)

    def _store_line(self, line: SkuForecastLine) -> None:
        assert self._forecast_run is not None, "Invalid program state: Expected forecast run to be initialized"
        self._data_output.store_sku_line(self._forecast_run.id, line)

    def _input_summary(self, today: date, skus: List[str], stage_weights: StageWeights) -> Dict[str, Any]:
        return {
            "today": today.isoformat(),
            "skus": len(skus),
            "only_skus": self._runtime_config.only_skus,
            "stage_weights": stage_weights,
            "max_parallel_skus": self._runtime_config.max_parallel_skus,
            "feed_read_deadline_seconds": self._runtime_config.feed_read_deadline_seconds,
        }

    def _update_forecast_run(self, input_summary: Dict[str, Any]) -> ForecastRun:
        assert self._forecast_run is not None, "Invalid program state: Expected forecast run to be initialized"
        with self._internal_database.transaction_context() as session:
            run = session.get(ForecastRun, self._forecast_run.id)
            run.input_summary = input_summary
        return run

    @staticmethod
    def _update_forecast_status(
        internal_database: Database,
        run: ForecastRun,
        status: ForecastRunStatus,
        clock: Clock,
        error: Optional[str] = None,
        output_summary: Optional[Dict[str, Any]] = None,
    ) -> ForecastRun:
        with internal_database.transaction_context() as session:
            run = session.get(ForecastRun, run.id, populate_existing=True)
            logger.debug(f"Updating status to {status}: {run}")

            if run.status.is_end_state():
                logger.warning(f"Attempted invalid state transition from end state {run.status} to {status}")
                return run

            run.status = status  # type: ignore
            if status.is_end_state():
                run.end = clock.now()  # type: ignore
            if error is not None:
                run.error = error  # type: ignore
            if output_summary is not None:
                run.output_summary = output_summary  # type: ignore
        return run
