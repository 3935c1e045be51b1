"""Input shapes consumed by the demand engine and the procurement planner."""
from __future__ import annotations

from typing import (
    List,
    NamedTuple,
    Optional,
)

import pandas as pd
from demand_platform import master_config
from demand_platform.static import DataException

SALES_HISTORY_COLUMNS = ["sku", "date", "units_sold"]
PIPELINE_DEMAND_COLUMNS = ["opportunity_id", "sku", "expected_units", "stage", "probability_override"]
CONFIRMED_ORDER_COLUMNS = ["order_id", "sku", "quantity", "expected_fulfillment_date"]


class InventorySnapshot(NamedTuple):
    """Current supply position of a SKU."""

    sku: str
    on_hand: int = 0
    reserved: int = 0
    available: int = 0
    on_order: int = 0

    @staticmethod
    def from_levels(sku: str, on_hand: int, reserved: int, on_order: int) -> InventorySnapshot:
        """Construct a snapshot where available units are derived from on hand and reserved units.

        Available units are never negative.
        """
        return InventorySnapshot(
            sku=sku, on_hand=on_hand, reserved=reserved, available=max(on_hand - reserved, 0), on_order=on_order
        )


class ProcurementParameters(NamedTuple):
    """Supplier constraints and safety stock of a SKU, defaults are taken from ``master_config``."""

    safety_stock_units: int = master_config.default_safety_stock_units
    moq_units: int = master_config.default_moq_units
    case_pack: int = master_config.default_case_pack
    lead_time_days: int = master_config.default_lead_time_days


class SkuInputs(NamedTuple):
    """All external inputs gathered for a single SKU."""

    sku: str
    sales_history: pd.DataFrame
    pipeline_lines: pd.DataFrame
    confirmed_orders: pd.DataFrame
    inventory: InventorySnapshot
    parameters: ProcurementParameters


def empty_frame(columns: List[str]) -> pd.DataFrame:
    """Empty :class:`~pandas.DataFrame` with the given columns, used for SKUs without feed data."""
    return pd.DataFrame({column: pd.Series(dtype="object") for column in columns})


def ensure_frame(df: Optional[pd.DataFrame], columns: List[str]) -> pd.DataFrame:
    """Replace a missing feed by an empty :class:`~pandas.DataFrame`."""
    if df is None:
        return empty_frame(columns)
    return df


def validate_sku_inputs(inputs: SkuInputs) -> SkuInputs:
    """Validate the feed data of a single SKU.

    Empty feeds are valid, they only reduce the confidence of the forecast.

    Raises:
        DataException: if an expected column is missing or a quantity is missing or negative.
    """
    _validate_columns(inputs.sku, "sales history", inputs.sales_history, SALES_HISTORY_COLUMNS)
    _validate_columns(inputs.sku, "pipeline demand", inputs.pipeline_lines, PIPELINE_DEMAND_COLUMNS)
    _validate_columns(inputs.sku, "confirmed orders", inputs.confirmed_orders, CONFIRMED_ORDER_COLUMNS)

    _validate_quantities(inputs.sku, "sales history", inputs.sales_history["units_sold"])
    _validate_quantities(inputs.sku, "pipeline demand", inputs.pipeline_lines["expected_units"])
    _validate_quantities(inputs.sku, "confirmed orders", inputs.confirmed_orders["quantity"])

    if inputs.sales_history["date"].isna().any():
        raise DataException(f"Sales history of {inputs.sku} contains rows without date")

    overrides = pd.to_numeric(inputs.pipeline_lines["probability_override"], errors="coerce").dropna()
    if ((overrides < 0) | (overrides > 100)).any():
        raise DataException(f"Pipeline demand of {inputs.sku} contains probability overrides outside of 0-100")

    return inputs


def _validate_columns(sku: str, feed_name: str, df: pd.DataFrame, columns: List[str]) -> None:
    missing = [column for column in columns if column not in df.columns]
    if missing:
        raise DataException(f"{feed_name.capitalize()} of {sku} is missing columns: {missing}")


def _validate_quantities(sku: str, feed_name: str, quantities: pd.Series) -> None:
    numeric = pd.to_numeric(quantities, errors="coerce")
    if numeric.isna().any():
        raise DataException(f"{feed_name.capitalize()} of {sku} contains missing or non-numeric quantities")
    if (numeric < 0).any():
        raise DataException(f"{feed_name.capitalize()} of {sku} contains negative quantities")
