import logging
import logging.config
import os
import sys
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from platform import platform
from types import TracebackType
from typing import Type

from demand_platform import master_config
from demand_platform.static import LOG_DEFAULT_SKU_CONTEXT

_sku_log_context: ContextVar[str] = ContextVar("sku_log_context", default=LOG_DEFAULT_SKU_CONTEXT)

logger = logging.getLogger("initialize")


def initialize_logging(command_name: str) -> None:
    """Initialize logging handlers and configuration.

    Args:
        command_name: Name of the command that is being logged.

    """
    _configure_logging(command_name)
    _log_unhandled_exceptions()

    logger.debug(f"Initialized logging (pid={os.getpid()}, parent={os.getppid()}, platform={platform()})")


def set_logging_context(context_name: str) -> None:
    """Set logging context of the current thread, otherwise ``LOG_DEFAULT_SKU_CONTEXT`` is used.

    Args:
        context_name: Name to set for logging.

    """
    _sku_log_context.set(context_name)


def reset_logging_context() -> None:
    """Set logging context of the current thread to ``LOG_DEFAULT_SKU_CONTEXT``."""
    _sku_log_context.set(LOG_DEFAULT_SKU_CONTEXT)


def get_logging_context() -> str:
    """Return logging context of the current thread."""
    return _sku_log_context.get()


def _log_unhandled_exceptions() -> None:
    def _excepthook(exctype: Type[BaseException], exc: BaseException, tb: TracebackType) -> None:
        logging.exception("Exiting due to unhandled exception.", exc_info=(exctype, exc, tb))

    sys.excepthook = _excepthook  # type: ignore


class _LogSkuFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "sku"):
            record.sku = _sku_log_context.get()  # type: ignore

        return logging.Formatter.format(self, record)


def _configure_logging(command_name: str) -> None:
    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "()": _LogSkuFormatter,
                "format": master_config.logging_format,
                "datefmt": master_config.logging_timestamp_format,
            },
        },
        "handlers": {
            "file": {
                "class": "logging.FileHandler",
                "filename": _get_log_filename(command_name),
                "mode": "w",
                "encoding": "utf-8",
                "formatter": "default",
                "level": master_config.log_level_file,
            },
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": master_config.log_level_console,
            },
        },
        "root": {"handlers": ["console", "file"], "level": logging.NOTSET},
    }

    logging.config.dictConfig(logging_config)

    _reduce_noise_from_library_loggers()


def _reduce_noise_from_library_loggers() -> None:
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)


def _get_log_filename(command_name: str) -> Path:
    log_directory = Path(master_config.log_output_location)
    log_directory.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    filename = f"{timestamp}_demand_platform_{command_name}.log"

    return log_directory / filename
