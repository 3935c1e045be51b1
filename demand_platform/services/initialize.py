from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import (
    Iterable,
    Iterator,
    NamedTuple,
    Optional,
)

import click
from demand_platform import master_config
from demand_platform.static import (
    DatabaseType,
    TriggerType,
)

from .clock import Clock
from .data_output import DataOutput
from .database import Database
from .feed_client import FeedClient
from .logging import initialize_logging
from .orchestrator import Orchestrator
from .reconciliation import AccuracyReconciler
from .runtime_config import RuntimeConfig
from .stage_weights import StageWeightStore

logger = logging.getLogger("initialize")


class Services(NamedTuple):
    """Provide references to the currently valid services for this run."""

    clock: Clock  #: Current :py:class:`Clock` instance
    internal_database: Database  #: Current internal :py:class:`Database` instance
    feed_database: Database  #: Current feed :py:class:`Database` instance
    feed_client: FeedClient  #: Current :py:class:`FeedClient` instance
    stage_weight_store: StageWeightStore  #: Current :py:class:`StageWeightStore` instance
    data_output: DataOutput  #: Current :py:class:`DataOutput` instance
    orchestrator: Orchestrator  #: Current :py:class:`Orchestrator` instance
    reconciler: AccuracyReconciler  #: Current :py:class:`AccuracyReconciler` instance
    runtime_config: RuntimeConfig  #: Current :py:class:`RuntimeConfig` instance


@contextmanager
def initialize(
    trigger_type: TriggerType = TriggerType.manual,
    horizon_days: int = master_config.default_horizon_days,
    max_parallel_skus: Optional[int] = None,
    feed_read_deadline_seconds: Optional[float] = None,
    only_skus: Optional[Iterable[str]] = None,
    ignore_missing_tables: bool = False,
    clock: Optional[Clock] = None,
) -> Iterator[Services]:
    """Initialize and provide :class:`Services` context.

    Args:
        trigger_type: How the forecast run is triggered.
        horizon_days: Horizon recorded on the forecast run.
        max_parallel_skus: Number of SKUs to process in parallel, defaults to ``master_config``.
        feed_read_deadline_seconds: Deadline of all feed reads of the run, defaults to ``master_config``.
        only_skus: Only forecast the given SKUs.
        ignore_missing_tables: Ignore missing table (warning instead of error).
        clock: Clock defining "now", defaults to the system clock.

    Returns:
        Initialized services for the current run, valid within the :func:`~contextlib.contextmanager`.

    """
    click_context = click.get_current_context(silent=True)
    command_name = str(click_context.info_name) if click_context else trigger_type.value

    initialize_logging(command_name)

    if click_context:
        logger.debug(f"Invoked cli command '{click_context.info_name}' with parameters {click_context.params}")

    runtime_config = RuntimeConfig(
        trigger_type=trigger_type,
        horizon_days=horizon_days,
        max_parallel_skus=max_parallel_skus,
        feed_read_deadline_seconds=feed_read_deadline_seconds,
        only_skus=only_skus,
    )
    clock = clock or Clock()
    internal_database = Database(DatabaseType.internal, ignore_missing_tables)
    feed_database = Database(DatabaseType.feed, ignore_missing_tables)
    feed_client = FeedClient(feed_database, clock)
    stage_weight_store = StageWeightStore(internal_database, clock)
    data_output = DataOutput(internal_database, clock)
    orchestrator = Orchestrator(runtime_config, feed_client, stage_weight_store, data_output, internal_database, clock)
    reconciler = AccuracyReconciler(internal_database, feed_client, data_output, clock)

    logger.debug("Services initialized successfully")

    try:
        yield Services(
            clock,
            internal_database,
            feed_database,
            feed_client,
            stage_weight_store,
            data_output,
            orchestrator,
            reconciler,
            runtime_config,
        )
    finally:
        feed_client.clear_cache()
