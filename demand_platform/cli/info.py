import logging

import click
from demand_platform.services import initialize

logger = logging.getLogger("info")


@click.command()
def info() -> None:
    """Show database setup information (default option)."""
    with initialize(ignore_missing_tables=True) as services:
        services.internal_database.log_database_status()
        services.feed_database.log_database_status()
        logger.info("Successfully connected to internal and feed database.")
