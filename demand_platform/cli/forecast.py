import logging
import sys
from typing import (
    Optional,
    Sequence,
)

import click
from demand_platform import master_config
from demand_platform.services import (
    BatchReport,
    initialize,
)
from demand_platform.static import (
    ConfigurationException,
    TriggerType,
)

from .options import forecast_options

logger = logging.getLogger("forecast")


@click.command()
@forecast_options()
def manual(
    horizon_days: int,
    only_skus: Sequence[str],
    max_parallel_skus: Optional[int],
    feed_deadline_seconds: Optional[float],
) -> None:
    """Run forecast of all tracked SKUs on request of an operator."""
    run_forecast(
        trigger_type=TriggerType.manual,
        horizon_days=horizon_days,
        only_skus=only_skus,
        max_parallel_skus=max_parallel_skus,
        feed_deadline_seconds=feed_deadline_seconds,
    )


@click.command()
@forecast_options()
def scheduled(
    horizon_days: int,
    only_skus: Sequence[str],
    max_parallel_skus: Optional[int],
    feed_deadline_seconds: Optional[float],
) -> None:
    """Run forecast of all tracked SKUs, intended to be triggered once per day by a scheduler."""
    run_forecast(
        trigger_type=TriggerType.scheduled,
        horizon_days=horizon_days,
        only_skus=only_skus,
        max_parallel_skus=max_parallel_skus,
        feed_deadline_seconds=feed_deadline_seconds,
    )


def run_forecast(
    trigger_type: TriggerType,
    horizon_days: int = master_config.default_horizon_days,
    only_skus: Optional[Sequence[str]] = None,
    max_parallel_skus: Optional[int] = None,
    feed_deadline_seconds: Optional[float] = None,
) -> BatchReport:
    """Run a complete forecast of all tracked SKUs.

    Args:
        trigger_type: How the forecast run was triggered.
        horizon_days: Horizon recorded on the forecast run.
        only_skus: Only forecast the given SKUs.
        max_parallel_skus: Number of SKUs processed in parallel.
        feed_deadline_seconds: Deadline of all feed reads of the run.

    Returns:
        Report of the processed and failed SKUs.
    """
    try:
        with initialize(
            trigger_type=trigger_type,
            horizon_days=horizon_days,
            max_parallel_skus=max_parallel_skus,
            feed_read_deadline_seconds=feed_deadline_seconds,
            only_skus=only_skus,
        ) as services:
            services.runtime_config.log_config()

            report = services.orchestrator.run()

            message = (
                f"Forecast run {services.orchestrator.forecast_run_id} finished: "
                f"{report.skus_processed} of {report.skus_tracked} SKU(s) processed, {report.skus_failed} failed."
            )
            logger.info(message)
            click.echo(click.style(message, fg="yellow" if report.skus_failed else "green"))
            return report

    except KeyboardInterrupt:
        logger.error("Exiting because user terminated the process.")
        click.echo(click.style("Exiting because user terminated the process.", fg="red"), err=True)
        sys.exit(1)
    except ConfigurationException as e:
        logger.error(f"Configuration error: {e}")
        click.echo(click.style(f"Exiting because of configuration error: {e}", fg="red"), err=True)
        sys.exit(1)
