import logging
import sys

import click
from demand_platform import master_config
from demand_platform.services import initialize
from demand_platform.static import ConfigurationException

from .validation import (
    validate_days,
    validate_horizon_days,
)

logger = logging.getLogger("reconcile")


@click.command()
@click.option(
    "--horizon-days",
    type=int,
    callback=validate_horizon_days,
    default=30,
    show_default=True,
    help="Forecast horizon to compare with realized sales.",
)
@click.option(
    "--lookback-days",
    type=int,
    callback=validate_days,
    default=master_config.accuracy_lookback_days,
    show_default=True,
    help="Minimum age in days of the reconciled forecast run.",
)
@click.option(
    "--window-days",
    type=int,
    callback=validate_days,
    default=master_config.accuracy_window_days,
    show_default=True,
    help="Tolerance in days added to the lookback for finding a forecast run.",
)
def reconcile(horizon_days: int, lookback_days: int, window_days: int) -> None:
    """Compare a past forecast run with the sales realized afterwards and store its accuracy."""
    try:
        with initialize() as services:
            result = services.reconciler.reconcile(
                horizon_days=horizon_days, lookback_days=lookback_days, window_days=window_days
            )
    except ConfigurationException as e:
        logger.error(f"Configuration error: {e}")
        click.echo(click.style(f"Exiting because of configuration error: {e}", fg="red"), err=True)
        sys.exit(1)

    if result.run_id is None:
        click.echo(click.style("No forecast run found to compare.", fg="yellow"))
    elif result.already_reconciled:
        click.echo(click.style(f"Forecast run {result.run_id} has already been reconciled.", fg="yellow"))
    else:
        click.echo(
            click.style(
                f"Reconciled forecast run {result.run_id}: {result.skus_compared} SKU(s), "
                f"mean error {result.mean_error_pct}%.",
                fg="green",
            )
        )
