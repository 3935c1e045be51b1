from .forecast import (
    manual,
    run_forecast,
    scheduled,
)
from .info import info
from .options import forecast_options
from .reconcile import reconcile
from .setup_database import setup_database
from .stage_weights import stage_weights

__all__ = [
    "run_forecast",
    "manual",
    "scheduled",
    "info",
    "forecast_options",
    "reconcile",
    "setup_database",
    "stage_weights",
]
