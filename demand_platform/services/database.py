from __future__ import annotations

import logging
from contextlib import contextmanager
from functools import wraps
from time import (
    monotonic,
    sleep,
)
from typing import (
    Any,
    Callable,
    Dict,
    Iterator,
    List,
    Optional,
    Type,
    TypeVar,
    Union,
    cast,
)

import numpy as np
import pandas as pd
from demand_platform import master_config
from demand_platform.feed_schema import FeedSchemaBase
from demand_platform.internal_schema import InternalSchemaBase
from demand_platform.static import (
    DatabaseConnectionFailure,
    DatabaseType,
)
from pandas.errors import DatabaseError as PandasDatabaseError
from sqlalchemy import (
    create_engine,
    inspect,
    text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.orm.session import Session
from sqlalchemy.pool import StaticPool

F = TypeVar("F", bound=Callable[..., Any])

logger = logging.getLogger("database")

#: Number of SQLite virtual machine instructions between two checks of a statement timeout.
SQLITE_PROGRESS_STEPS = 1000


class Database:
    """Database service provides access to a SQL database via SQLAlchemy.

    Multiple instances of this service can be created to access different databases.

    Args:
        database_type: Select which database to connect to based on master_config.
        ignore_missing_tables: Ignore DatabaseConnectionFailure in case of expected tables not existing.
        url: SQLAlchemy database URL, overrides the URL configured in master_config.
    """

    def __init__(
        self, database_type: DatabaseType, ignore_missing_tables: bool = False, url: Optional[str] = None
    ) -> None:
        self._is_disabled = master_config.db_connection_attempts < 1
        self._ignore_missing_tables = ignore_missing_tables
        self._database_type = database_type
        self._url = url or master_config.database_url[self._database_type]
        self._optional_engine = self._initialize_engine()

    def __str__(self) -> str:
        return f"{self._database_type.name} database"

    @property
    def _engine(self) -> Engine:
        assert self._optional_engine, "Use Database.is_disabled() to check if database is available"
        return self._optional_engine

    @property
    def schema_base_class(self) -> Union[Type[InternalSchemaBase], Type[FeedSchemaBase]]:
        """Base class for configured database schema."""
        if self._database_type is DatabaseType.internal:
            return InternalSchemaBase  # type: ignore
        if self._database_type is DatabaseType.feed:
            return FeedSchemaBase  # type: ignore

        raise NotImplementedError(f"A base class defining tables of the {self} needs to be referenced here")

    def is_disabled(self) -> bool:
        """Check if database has been disabled."""
        return self._is_disabled

    def has_table(self, table_name: str) -> bool:
        """Check if table exists in a database."""
        return cast(bool, inspect(self._engine).has_table(table_name))

    def _engine_options(self) -> Dict[str, Any]:
        if not self._url.startswith("sqlite"):
            return {"pool_pre_ping": True}  # Always check status of database connections before using them
        if self._url == "sqlite://" or ":memory:" in self._url:
            # In-memory SQLite databases exist per connection, share a single connection between all threads.
            return {"poolclass": StaticPool, "connect_args": {"check_same_thread": False}}
        return {"connect_args": {"check_same_thread": False}}

    def _check_connection(self, engine: Engine) -> None:
        for attempt in range(1, master_config.db_connection_attempts + 1):
            logger.debug(f"Trying to connect to {self}, attempt #{attempt}")
            try:
                with engine.connect():
                    logger.debug(f"Successfully connected to {self}")
                    return
            except OperationalError as error:
                logger.warning(f"Unsuccessful attempt #{attempt} to connect to {self}: {error}")

                if attempt >= master_config.db_connection_attempts:
                    logger.warning(f"Unable to connect to {self} after {attempt} attempt(s).")
                    raise DatabaseConnectionFailure(str(error)) from error

                sleep_seconds = master_config.db_connection_retry_sleep_seconds
                logger.info(f"Waiting {sleep_seconds} seconds before next connection attempt")
                sleep(sleep_seconds)

    def _initialize_engine(self) -> Optional[Engine]:
        if self.is_disabled():
            logger.info(
                f"Skipping {self} connection due to db_connection_attempts=={master_config.db_connection_attempts}"
            )
            return None

        engine = create_engine(
            self._url, echo=False, **self._engine_options()  # Disable verbose logging of all SQL queries
        )
        self._check_connection(engine)

        existing_tables = set(inspect(engine).get_table_names())
        missing_tables = set(self.schema_base_class.metadata.tables.keys()) - existing_tables
        if missing_tables:
            if master_config.db_create_missing_tables:
                logger.info(f"Creating missing tables in {self}: {sorted(missing_tables)}")
                self.schema_base_class.metadata.create_all(engine)
                return engine

            message = (
                f"Could not find expected tables in {self}: {sorted(missing_tables)}. "
                f"Did you run the 'setup-database {self._database_type.name}' command to setup {self}?"
            )
            if self._ignore_missing_tables:
                logger.debug(message)
            else:
                raise DatabaseConnectionFailure(message)

        return engine

    @contextmanager
    def transaction_context(self, timeout_seconds: Optional[float] = None) -> Iterator[Session]:
        """Provide a contextmanager to execute an operation on the database within a transaction.

        Based on the SQLAlchemy recommendation:
            https://docs.sqlalchemy.org/en/20/orm/session_basics.html#when-do-i-construct-a-session-when-do-i-commit-it-and-when-do-i-close-it

        Args:
            timeout_seconds: Abort statements of the transaction which run longer than this, only supported
                for PostgreSQL and SQLite. The database raises :class:`~sqlalchemy.exc.OperationalError`.
        """
        session_class = sessionmaker(bind=self._engine, expire_on_commit=False)
        session = session_class()

        try:
            with self._statement_timeout(session, timeout_seconds):
                yield session
            session.commit()
        except Exception as error:
            session.rollback()
            logger.error(f"Error during {self} operation, transaction was rolled-back: {error}")
            raise error
        finally:
            session.close()

    @contextmanager
    def _statement_timeout(self, session: Session, timeout_seconds: Optional[float]) -> Iterator[None]:
        dialect = self._engine.dialect.name
        if timeout_seconds is None:
            yield
        elif dialect == "postgresql":
            session.execute(text(f"SET LOCAL statement_timeout = {max(int(timeout_seconds * 1000), 1)}"))
            yield
        elif dialect == "sqlite":
            dbapi_connection = session.connection().connection.dbapi_connection
            deadline = monotonic() + timeout_seconds
            dbapi_connection.set_progress_handler(lambda: int(monotonic() >= deadline), SQLITE_PROGRESS_STEPS)
            try:
                yield
            finally:
                dbapi_connection.set_progress_handler(None, 0)
        else:
            logger.debug(f"Statement timeout is not supported for {dialect}, running {self} without timeout")
            yield

    def create_tables(self) -> None:
        """Create all tables of :py:attr:`schema_base_class` which do not exist yet."""
        self.schema_base_class.metadata.create_all(self._engine)

    def drop_tables(self) -> None:
        """Drop all tables of :py:attr:`schema_base_class`, other tables are not modified."""
        self.schema_base_class.metadata.drop_all(self._engine)

    def log_database_status(self) -> None:
        """Log database dialect, existing tables, and configuration."""
        if self.is_disabled():
            logger.warning(f"Connection to {self} is not initialized")
            return

        logger.debug(f"{self} dialect={self._engine.dialect.name}, driver={self._engine.dialect.driver}")
        logger.debug(f"{self} url={self._engine.url.render_as_string(hide_password=True)}")

        existing_tables = set(self.get_existing_table_names())
        defined_tables = set(self.get_defined_table_names())
        logger.info(f"Found existing {self} tables: {sorted(existing_tables)}")
        if not defined_tables.issubset(existing_tables):
            logger.warning(f"Missing tables in {self}: {sorted(defined_tables - existing_tables)}")

    def get_defined_table_names(self) -> List[str]:
        """List database tables, which are defined in the platform code.

        These tables are defined as subclasses of :py:attr:`~demand_platform.services.Database.schema_base_class`.
        """
        return list(self.schema_base_class.metadata.tables.keys())

    def get_existing_table_names(self) -> List[str]:
        """List all existing database tables."""
        if self.is_disabled():
            logger.warning(f"Could not get existing tables, because {self} connection is not available.")
            return []

        return list(inspect(self._engine).get_table_names())

    def insert_data_frame(self, df: pd.DataFrame, table_name: str) -> None:
        """Insert given ``df`` to database. Inserts are done in fixed-size batches to improve stability.

        In case of an error only the currently inserted chunk will be rolled-back. Previous chunks remain in the DB.

        Args:
            df: :class:`~pandas.DataFrame` to insert to the given table of the database.
            table_name: Table of database to insert given :class:`~pandas.DataFrame`.
        """
        total_size = len(df)
        if total_size == 0:
            logger.info(f"Nothing to insert to {table_name} table of {self}")
            return

        chunk_size = min(10 ** 4, total_size)

        logger.info(f"Inserting {total_size} rows to {table_name} table of {self}")

        for counter, chunk in df.groupby(np.arange(total_size) // chunk_size):
            logger.debug(f"Inserting chunk {counter + 1} with shape {chunk.shape} to database table {table_name}")
            with self.transaction_context() as session:
                chunk.to_sql(table_name, session.connection(), if_exists="append", index=False)


def is_operational_error(error: BaseException) -> bool:
    """Check if ``error`` is a :class:`~sqlalchemy.exc.OperationalError`, or wraps one.

    :func:`pandas.read_sql` re-raises errors of the database driver as :class:`pandas.errors.DatabaseError`.
    """
    if isinstance(error, OperationalError):
        return True
    if isinstance(error, PandasDatabaseError):
        return isinstance(error.__cause__, OperationalError) or isinstance(error.__context__, OperationalError)
    return False


def retry_database_read_errors(function: F) -> F:
    """Retry a database read operation, if a :class:`~sqlalchemy.exc.OperationalError` has been encountered.

    Errors raised by :func:`pandas.read_sql` are retried, if they were caused by an ``OperationalError``.

    Only intended for decorating functions, that do not manipulate data.
    Retry configuration is defined in :mod:`~demand_platform.master_config`.

    Args:
        function: Function to decorate.

    Returns:
        Decorated function.

    """

    @wraps(function)
    def wrapper(*args, **kwargs):  # type: ignore
        retries = master_config.db_read_retries
        sleep_seconds = master_config.db_read_retry_sleep_seconds
        while retries > 0:
            try:
                return function(*args, **kwargs)
            except (OperationalError, PandasDatabaseError) as e:
                if not is_operational_error(e):
                    raise
                logger.warning(
                    f"Error '{e}' occurred while running {function.__name__}. "
                    f"Trying again {retries} more time(s) in {sleep_seconds} second(s)."
                )
                retries -= 1
                sleep(sleep_seconds)
        return function(*args, **kwargs)

    return cast(F, wrapper)
