from typing import (
    List,
    Optional,
)

from demand_platform.internal_schema import (
    ForecastRun,
    ForecastSkuLine,
)
from demand_platform.services import Database
from sqlalchemy import select


def get_forecast_run(internal_database: Database, forecast_run_id: Optional[int]) -> Optional[ForecastRun]:
    """Returns ForecastRun object with the given ID, detached from the database session.

    Args:
        internal_database: Database containing the forecast run.
        forecast_run_id: ID of the forecast run.
    """
    with internal_database.transaction_context() as session:
        forecast_run = session.get(ForecastRun, forecast_run_id)
        if forecast_run is None:
            return None

        session.expunge(forecast_run)
        return forecast_run


def get_sku_lines(internal_database: Database, forecast_run_id: Optional[int]) -> List[ForecastSkuLine]:
    """Returns all forecast lines of the given forecast run ordered by SKU, detached from the database session."""
    with internal_database.transaction_context() as session:
        lines = list(
            session.execute(
                select(ForecastSkuLine).where(ForecastSkuLine.run_id == forecast_run_id).order_by(ForecastSkuLine.sku)
            ).scalars()
        )
        session.expunge_all()
        return lines
