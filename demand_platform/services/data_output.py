from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import pandas as pd
from demand_platform.forecasting import SkuForecastLine
from demand_platform.internal_schema import ForecastSkuLine
from demand_platform.static import FORECAST_ACCURACY_TABLE

from .clock import Clock

if TYPE_CHECKING:
    from .database import Database

logger = getLogger("data_output")


class DataOutput:
    """Store output data of forecast runs and reconciliations in the internal database.

    Args:
        internal_database: Database to store the results.
        clock: Clock providing creation timestamps.
    """

    def __init__(self, internal_database: Database, clock: Clock) -> None:
        self._internal_database = internal_database
        self._clock = clock

    def store_sku_line(self, forecast_run_id: int, line: SkuForecastLine) -> int:
        """Store the forecast line of a single SKU, lines are never updated afterwards.

        Args:
            forecast_run_id: ID of the forecast run the line belongs to.
            line: Computed forecast line.

        Returns:
            ID of the stored line.
        """
        with self._internal_database.transaction_context() as session:
            row = ForecastSkuLine.create(forecast_run_id, line, created=self._clock.now())
            session.add(row)
            session.flush()
            logger.debug(f"Stored forecast line {row}")
            return int(row.id)

    def store_accuracy(self, accuracy: pd.DataFrame) -> None:
        """Store reconciled forecast accuracy rows.

        Args:
            accuracy: :class:`~pandas.DataFrame` with the columns of
                :data:`~demand_platform.internal_schema.ForecastAccuracy` except "id" and "created".
        """
        self._internal_database.insert_data_frame(accuracy.assign(created=self._clock.now()), FORECAST_ACCURACY_TABLE)
