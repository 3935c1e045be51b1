import logging

import click
from demand_platform import master_config
from demand_platform.feed_schema import FeedSchemaBase
from demand_platform.helpers import (
    drop_known_tables,
    ensure_tables_exist,
)
from demand_platform.internal_schema import InternalSchemaBase
from demand_platform.services import initialize
from demand_platform.static import (
    ConfigurationException,
    DatabaseType,
)

logger = logging.getLogger("setup_database")


@click.group()
def setup_database() -> None:
    """Setup internal or feed database."""
    pass


@setup_database.command()
@click.option(
    "--drop-tables",
    is_flag=True,
    default=False,
    show_default=True,
    help=f"Remove these tables and delete all their data from the internal database: "
    f"{list(InternalSchemaBase.metadata.tables.keys())}. Other tables will not be modified.",
)
def internal(drop_tables: bool) -> None:
    """Create internal database tables and add default stage weights.

    .. warning::

        The "--drop-tables" option is only intended to be used for automated end-to-end testing.

    """
    with initialize(ignore_missing_tables=True) as services:
        services.internal_database.log_database_status()

        if drop_tables:
            drop_known_tables(services.internal_database)

        ensure_tables_exist(services.internal_database)
        services.stage_weight_store.ensure_defaults()
        logger.info("Successfully set up internal database.")


@setup_database.command()
@click.option(
    "--drop-tables",
    is_flag=True,
    default=False,
    show_default=True,
    help=f"Remove these tables and delete all their data from the feed database: "
    f"{list(FeedSchemaBase.metadata.tables.keys())}. Other tables will not be modified.",
)
def feed(drop_tables: bool) -> None:
    """Create feed database tables, intended for local development and testing.

    .. warning::

        The feed tables are populated by external ingestion pipelines. The "--drop-tables" option is only
        allowed for local SQLite feed databases.

    """
    if drop_tables and not master_config.database_url[DatabaseType.feed].startswith("sqlite"):
        raise ConfigurationException("Cannot drop tables on external feed database.")

    with initialize(ignore_missing_tables=True) as services:
        services.feed_database.log_database_status()

        if drop_tables:
            drop_known_tables(services.feed_database)

        ensure_tables_exist(services.feed_database)
        logger.info("Successfully set up feed database.")
