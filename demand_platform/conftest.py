"""Pytest configuration file.

Documentation: https://docs.pytest.org/en/latest/writing_plugins.html#conftest-py-plugins
"""
import logging
from datetime import datetime
from pathlib import Path
from typing import (
    Any,
    Callable,
    Iterator,
)

import pytest
from _pytest.monkeypatch import MonkeyPatch
from _pytest.tmpdir import TempPathFactory
from click.testing import CliRunner
from demand_platform import master_config

from .services import (
    Database,
    DataOutput,
    FeedClient,
    FixedClock,
    Orchestrator,
    RuntimeConfig,
    StageWeightStore,
)
from .services import logging as demand_platform_logging
from .static import (
    DatabaseType,
    TriggerType,
)

#: Reference time of all tests using the ``clock`` fixture.
TEST_NOW = datetime(2024, 3, 15, 6, 0, 0)


@pytest.fixture(scope="session")  # type: ignore
def monkeypatch_session() -> Iterator[MonkeyPatch]:
    """Monkeypatch that can be used from other session-scoped pytest fixtures.

    See: https://github.com/pytest-dev/pytest/issues/363
    """
    patch = MonkeyPatch()
    yield patch
    patch.undo()


@pytest.fixture  # type: ignore
def cli_runner() -> CliRunner:
    """Provide CliRunner that can be used to test CLI commands."""
    return CliRunner()


@pytest.fixture(autouse=True)  # type: ignore
def patch_database_url(monkeypatch: MonkeyPatch, tmp_path: Path) -> None:
    """Use fresh SQLite databases for each test, tables are created when connecting."""
    monkeypatch.setitem(master_config.database_url, DatabaseType.internal, f"sqlite:///{tmp_path / 'internal.db'}")
    monkeypatch.setitem(master_config.database_url, DatabaseType.feed, f"sqlite:///{tmp_path / 'feed.db'}")
    monkeypatch.setattr(master_config, "db_create_missing_tables", True)


@pytest.fixture(scope="session", autouse=True)  # type: ignore
def patch_database_retries(monkeypatch_session: MonkeyPatch) -> None:
    """Patch master_config to avoid waiting between database connection and read retries."""
    monkeypatch_session.setattr(master_config, "db_connection_retry_sleep_seconds", 0)
    monkeypatch_session.setattr(master_config, "db_read_retry_sleep_seconds", 0)


@pytest.fixture(scope="session", autouse=True)  # type: ignore
def patch_multithreading(monkeypatch_session: MonkeyPatch) -> None:
    """Patch master_config to process SKUs sequentially during pytest run to keep tests deterministic."""
    monkeypatch_session.setattr(master_config, "max_parallel_skus", 1)


@pytest.fixture(autouse=True)  # type: ignore
def patch_configure_logging(monkeypatch: MonkeyPatch, tmp_path_factory: TempPathFactory, request: Any) -> None:
    """Use basic test log config to allow pytest ``caplog`` features to be used.

    Production log config can be enabled with the ``@pytest.mark.testlogging`` decorator.
    """
    logging_unit_test = request.node.get_closest_marker("testlogging")
    if logging_unit_test:
        tmp_path = tmp_path_factory.mktemp("test_demand_platform")
        print(f"Using temporary directory for log_output_location: {tmp_path}")
        monkeypatch.setattr(master_config, "log_output_location", tmp_path)
        return

    def configure_logging_for_tests(*args: Any) -> None:
        logger = logging.getLogger()
        logger.setLevel(logging.NOTSET)

    print("Setting logging to log all levels. Disabling logging to log files.")
    monkeypatch.setattr(demand_platform_logging, "_configure_logging", configure_logging_for_tests)


@pytest.fixture  # type: ignore
def clock() -> FixedClock:
    """Clock standing still at :data:`TEST_NOW`."""
    return FixedClock(TEST_NOW)


@pytest.fixture  # type: ignore
def internal_database() -> Database:
    """Internal database of the current test."""
    return Database(DatabaseType.internal)


@pytest.fixture  # type: ignore
def feed_database() -> Database:
    """Feed database of the current test."""
    return Database(DatabaseType.feed)


@pytest.fixture  # type: ignore
def feed_client(feed_database: Database, clock: FixedClock) -> FeedClient:
    """Feed client reading from the feed database of the current test."""
    return FeedClient(feed_database, clock)


@pytest.fixture  # type: ignore
def stage_weight_store(internal_database: Database, clock: FixedClock) -> StageWeightStore:
    """Stage weight store seeded with the default stage weights."""
    store = StageWeightStore(internal_database, clock)
    store.ensure_defaults()
    return store


@pytest.fixture  # type: ignore
def data_output(internal_database: Database, clock: FixedClock) -> DataOutput:
    """Data output storing into the internal database of the current test."""
    return DataOutput(internal_database, clock)


@pytest.fixture  # type: ignore
def create_orchestrator(
    internal_database: Database,
    feed_client: FeedClient,
    stage_weight_store: StageWeightStore,
    data_output: DataOutput,
    clock: FixedClock,
) -> Callable[..., Orchestrator]:
    """Factory for orchestrators wired to the databases of the current test.

    Keyword arguments are passed to :class:`~demand_platform.services.RuntimeConfig`.
    """

    def factory(trigger_type: TriggerType = TriggerType.manual, **kwargs: Any) -> Orchestrator:
        runtime_config = RuntimeConfig(trigger_type, **kwargs)
        return Orchestrator(runtime_config, feed_client, stage_weight_store, data_output, internal_database, clock)

    return factory
