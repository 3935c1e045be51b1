import logging
import sys

import click
from demand_platform.services import initialize
from demand_platform.static import ConfigurationException

logger = logging.getLogger("stage_weights")


@click.group()
def stage_weights() -> None:
    """Show or change the probability of pipeline stages."""
    pass


@stage_weights.command(name="list")
def list_stage_weights() -> None:
    """List the probability of all pipeline stages."""
    with initialize() as services:
        entries = services.stage_weight_store.list()

    if not entries:
        click.echo("No stage weights configured, run 'setup-database internal' to add the defaults.")
    for entry in entries:
        click.echo(f"{entry.stage}: {entry.probability:g}")


@stage_weights.command(name="set")
@click.argument("stage")
@click.argument("probability", type=float)
def set_stage_weight(stage: str, probability: float) -> None:
    """Set PROBABILITY (0-100) of pipeline STAGE, unknown stages are added."""
    try:
        with initialize() as services:
            entry = services.stage_weight_store.set(stage, probability)
    except ConfigurationException as e:
        logger.error(f"Configuration error: {e}")
        click.echo(click.style(f"Exiting because of configuration error: {e}", fg="red"), err=True)
        sys.exit(1)

    click.echo(click.style(f"Set probability of stage {entry.stage} to {entry.probability:g}.", fg="green"))
