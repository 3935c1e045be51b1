from functools import wraps
from typing import (
    Any,
    Callable,
    TypeVar,
    cast,
)

import click
from demand_platform import master_config

from .validation import (
    validate_feed_deadline_seconds,
    validate_horizon_days,
    validate_max_parallel_skus,
    validate_only_skus,
)

# Generic to preserve original function signature
# see https://mypy.readthedocs.io/en/stable/generics.html#decorator-factories
F = TypeVar("F", bound=Callable[..., None])


def forecast_options() -> Callable[[F], F]:
    """Decorate a forecast command to add CLI options.

    Returns:
        A decorator method to add forecast options.

    """
    options = [
        click.option(
            "--horizon-days",
            type=int,
            callback=validate_horizon_days,
            default=master_config.default_horizon_days,
            show_default=True,
            help="Horizon in days recorded on the forecast run.",
        ),
        click.option(
            "--only-sku",
            "only_skus",
            multiple=True,
            callback=validate_only_skus,
            help="Only forecast the given SKU, can be repeated.",
        ),
        click.option(
            "--max-parallel-skus",
            type=int,
            callback=validate_max_parallel_skus,
            default=None,
            help="Number of SKUs processed in parallel.",
            show_default=str(master_config.max_parallel_skus),
        ),
        click.option(
            "--feed-deadline-seconds",
            type=float,
            callback=validate_feed_deadline_seconds,
            default=None,
            help="Seconds after which no further input feed is read, unfinished SKUs are marked as failed.",
            show_default=str(master_config.feed_read_deadline_seconds),
        ),
    ]

    def decorator(function: F) -> F:
        for option in options:
            function = option(function)

        @wraps(function)
        def wrapper(*args: Any, **kwargs: Any) -> None:
            function(*args, **kwargs)

        return cast(F, wrapper)

    return decorator
