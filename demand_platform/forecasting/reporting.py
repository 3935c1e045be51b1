import numpy as np
import pandas as pd


def compute_forecast_error(accuracy: pd.DataFrame) -> pd.DataFrame:
    """Compute forecast error columns from forecasted and actual units.

    Error percentage is relative to the actual units. If nothing was sold, the error is 100% for any positive
    forecast and 0% for a forecast of zero.

    Args:
        accuracy: :class:`~pandas.DataFrame` with "forecasted_units" and "actual_units" columns

    Returns:
        Copy of ``accuracy`` with additional "error_units" (signed, forecasted minus actual),
        "absolute_error_units" and "error_pct" columns.

    """
    forecasted = accuracy["forecasted_units"].astype("int64")
    actual = accuracy["actual_units"].astype("int64")

    error = forecasted - actual
    absolute = error.abs()

    with np.errstate(divide="ignore", invalid="ignore"):
        error_pct = (absolute / actual * 100).round(1)

    # Division by zero: any positive forecast without sales is a complete miss.
    error_pct[actual == 0] = np.where(forecasted[actual == 0] > 0, 100.0, 0.0)

    return accuracy.assign(error_units=error, absolute_error_units=absolute, error_pct=error_pct.astype("float64"))


def mean_error_pct(accuracy: pd.DataFrame) -> float:
    """Average error percentage rounded to one decimal, 0 for an empty comparison."""
    if accuracy.empty:
        return 0.0
    return round(float(accuracy["error_pct"].mean()), 1)
