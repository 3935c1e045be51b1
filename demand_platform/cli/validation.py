from typing import (
    Optional,
    Tuple,
)

import click
from demand_platform.static import HORIZONS


def validate_horizon_days(ctx: click.Context, param: click.Parameter, value: int) -> int:
    """Validate horizon_days CLI parameter."""
    if value in HORIZONS:
        return value
    raise click.BadParameter(f"horizon needs to be one of {', '.join(str(horizon) for horizon in HORIZONS)} days")


def validate_max_parallel_skus(ctx: click.Context, param: click.Parameter, value: Optional[int]) -> Optional[int]:
    """Validate max_parallel_skus CLI parameter."""
    if value is None or 0 < value <= 64:
        return value
    raise click.BadParameter("max parallel SKUs needs to be an integer in range 1 - 64")


def validate_feed_deadline_seconds(
    ctx: click.Context, param: click.Parameter, value: Optional[float]
) -> Optional[float]:
    """Validate feed_deadline_seconds CLI parameter."""
    if value is None or value > 0:
        return value
    raise click.BadParameter("feed deadline needs to be a positive number of seconds")


def validate_only_skus(ctx: click.Context, param: click.Parameter, value: Tuple[str, ...]) -> Tuple[str, ...]:
    """Validate only_sku CLI parameter."""
    skus = tuple(sku.strip() for sku in value)
    if all(skus):
        return skus
    raise click.BadParameter("SKU must not be empty")


def validate_days(ctx: click.Context, param: click.Parameter, value: int) -> int:
    """Validate CLI parameters counting days into the past."""
    if 0 <= value <= 365:
        return value
    raise click.BadParameter("days need to be an integer in range 0 - 365")
