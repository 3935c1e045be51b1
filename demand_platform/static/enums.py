from __future__ import annotations

from enum import (
    Enum,
    auto,
    unique,
)
from typing import Set


@unique
class DatabaseType(Enum):
    """Internal database or read-only feed database."""

    internal = auto()
    feed = auto()


@unique
class TriggerType(Enum):
    """How a :py:class:`~demand_platform.services.Orchestrator` run was triggered."""

    scheduled = "scheduled"
    manual = "manual"


@unique
class ForecastRunStatus(Enum):
    """All possible states of a :py:class:`~demand_platform.internal_schema.ForecastRun` instance."""

    #: Start state (default)
    RUNNING = "RUNNING"

    #: End state (final, no further state transitions allowed)
    SUCCESS = "SUCCESS"
    #: End state (final, no further state transitions allowed)
    FAILED = "FAILED"

    def is_end_state(self) -> bool:
        """Check if this enum value is final and therefore no transitions to other states are allowed.

        Returns
        -------
            ``True`` if this is an end-state, ``False`` otherwise.
        """
        return self in self.get_end_states()

    @staticmethod
    def get_end_states() -> Set[ForecastRunStatus]:
        """Set of all end states for this enum."""
        return {
            ForecastRunStatus.SUCCESS,
            ForecastRunStatus.FAILED,
        }


@unique
class RiskFlag(Enum):
    """Risk flags attached to a forecast SKU line."""

    stockout = "stockout"
    low_confidence = "low_confidence"
    no_sales_history = "no_sales_history"
