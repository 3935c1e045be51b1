"""Blended demand model.

Three independent signals are computed for each horizon H (30, 60 and 90 days):

* trailing sell-through velocity of the last 30 days, extrapolated linearly to H,
* weighted pipeline demand (expected units of open opportunities times stage probability),
* confirmed order demand (purchase order quantities expected to be fulfilled within H days).

The blended demand is the maximum of these signals. All functions are pure and deterministic,
"today" is always passed in explicitly.
"""
from __future__ import annotations

import math
from datetime import (
    date,
    timedelta,
)
from typing import (
    Dict,
    NamedTuple,
    Optional,
)

import pandas as pd
from demand_platform import master_config
from demand_platform.static import (
    HORIZONS,
    StageWeights,
)

from .inputs import (
    CONFIRMED_ORDER_COLUMNS,
    PIPELINE_DEMAND_COLUMNS,
    SALES_HISTORY_COLUMNS,
    ensure_frame,
)

#: Confidence reduction per horizon, longer horizons are less certain.
HORIZON_DECAY = {30: 0, 60: 10, 90: 20}

BASE_CONFIDENCE = 50


class ConfidenceComponents(NamedTuple):
    """Evidence counted for the confidence score, and the points awarded for it."""

    distinct_sales_days: int
    trailing_units_30: int
    pipeline_line_count: int
    confirmed_order_count: int
    sales_history_points: int
    trailing_volume_points: int
    pipeline_points: int
    confirmed_order_points: int

    @property
    def signal_count(self) -> int:
        """Number of demand signals with any data (0-3)."""
        return sum(
            count > 0 for count in (self.distinct_sales_days, self.pipeline_line_count, self.confirmed_order_count)
        )


class DemandEstimate(NamedTuple):
    """Result of :func:`calculate_demand`, all mappings are keyed by horizon in days."""

    trailing_units: Dict[int, int]
    weighted_pipeline_units: int
    confirmed_order_units: Dict[int, int]
    demand_units: Dict[int, int]
    confidence: Dict[int, int]
    confidence_components: ConfidenceComponents
    weighted_pipeline_lines: pd.DataFrame
    trailing_window_days: int
    trailing_window_units: int

    @property
    def trailing_30_day_units(self) -> int:
        """Trailing sales extrapolated to 30 days."""
        return self.trailing_units[30]

    @property
    def trailing_daily_average(self) -> float:
        """Average units sold per day of the trailing window, rounded to one decimal."""
        if self.trailing_window_days <= 0 or self.trailing_window_units <= 0:
            return 0
        return round(self.trailing_window_units / self.trailing_window_days, 1)


def round_half_up(value: float) -> int:
    """Round to the nearest integer, ``.5`` is always rounded up."""
    return int(math.floor(value + 0.5))


def trailing_velocity(sales_history: Optional[pd.DataFrame], days: int, today: date) -> int:
    """Sum units sold on or after ``today - days``.

    Args:
        sales_history: Daily sales with ``date`` and ``units_sold`` columns.
        days: Length of the trailing window.
        today: Reference date of the forecast.

    Returns:
        Total units sold within the trailing window.
    """
    sales_history = ensure_frame(sales_history, SALES_HISTORY_COLUMNS)
    if sales_history.empty:
        return 0

    cutoff = pd.Timestamp(today - timedelta(days=days))
    sale_dates = pd.to_datetime(sales_history["date"])
    units = pd.to_numeric(sales_history["units_sold"])
    return int(units[sale_dates >= cutoff].sum())


def extrapolate_velocity(trailing_units: int, trailing_days: int, target_days: int) -> int:
    """Scale trailing units linearly to a longer (or shorter) horizon."""
    if trailing_days <= 0:
        return 0
    return round_half_up(trailing_units / trailing_days * target_days)


def weigh_pipeline_lines(pipeline_lines: Optional[pd.DataFrame], stage_weights: StageWeights) -> pd.DataFrame:
    """Resolve the weight of each pipeline line.

    A probability override of the line takes precedence over the configured stage weight.
    Stages without configured weight have a weight of 0.

    Returns:
        Copy of ``pipeline_lines`` with additional ``weight`` (0-1) and ``weighted_units`` columns.
    """
    pipeline_lines = ensure_frame(pipeline_lines, PIPELINE_DEMAND_COLUMNS)

    stage_probability = pipeline_lines["stage"].map(lambda stage: stage_weights.get(stage, 0)).astype("float64")
    override = pd.to_numeric(pipeline_lines["probability_override"], errors="coerce").astype("float64")
    weight = override.where(override.notna(), stage_probability) / 100

    return pipeline_lines.assign(
        weight=weight, weighted_units=pd.to_numeric(pipeline_lines["expected_units"]).astype("float64") * weight,
    )


def weighted_pipeline_demand(pipeline_lines: Optional[pd.DataFrame], stage_weights: StageWeights) -> int:
    """Total expected units of all pipeline lines, discounted by their likelihood.

    The result does not depend on the horizon and is used for every horizon.
    """
    return round_half_up(float(weigh_pipeline_lines(pipeline_lines, stage_weights)["weighted_units"].sum()))


def confirmed_order_demand(confirmed_orders: Optional[pd.DataFrame], horizon_days: int, today: date) -> int:
    """Sum order quantities expected to be fulfilled on or before ``today + horizon_days``.

    Order lines without fulfillment date are always included, for every horizon.
    """
    confirmed_orders = ensure_frame(confirmed_orders, CONFIRMED_ORDER_COLUMNS)
    if confirmed_orders.empty:
        return 0

    cutoff = pd.Timestamp(today + timedelta(days=horizon_days))
    fulfillment_dates = pd.to_datetime(confirmed_orders["expected_fulfillment_date"])
    included = fulfillment_dates.isna() | (fulfillment_dates <= cutoff)
    return int(pd.to_numeric(confirmed_orders["quantity"])[included].sum())


def blended_demand(trailing: int, weighted_pipeline: int, confirmed_orders: int) -> int:
    """Blend signals by taking the strongest one, signals are never added up."""
    return max(trailing, weighted_pipeline, confirmed_orders)


def confidence_components(
    sales_history: Optional[pd.DataFrame],
    trailing_units_30: int,
    pipeline_line_count: int,
    confirmed_order_count: int,
) -> ConfidenceComponents:
    """Count the evidence behind a forecast and award confidence points for it."""
    sales_history = ensure_frame(sales_history, SALES_HISTORY_COLUMNS)
    distinct_sales_days = int(pd.to_datetime(sales_history["date"]).dt.normalize().nunique())

    if distinct_sales_days >= 25:
        sales_history_points = 15
    elif distinct_sales_days >= 15:
        sales_history_points = 8
    elif distinct_sales_days >= 7:
        sales_history_points = 3
    else:
        sales_history_points = 0

    pipeline_points = 0
    if pipeline_line_count > 0:
        pipeline_points += 10
    if pipeline_line_count >= 3:
        pipeline_points += 5

    return ConfidenceComponents(
        distinct_sales_days=distinct_sales_days,
        trailing_units_30=trailing_units_30,
        pipeline_line_count=pipeline_line_count,
        confirmed_order_count=confirmed_order_count,
        sales_history_points=sales_history_points,
        trailing_volume_points=10 if trailing_units_30 > 0 else 0,
        pipeline_points=pipeline_points,
        confirmed_order_points=15 if confirmed_order_count > 0 else 0,
    )


def confidence_score(components: ConfidenceComponents, horizon_days: int) -> int:
    """Compute the confidence score (0-100) of a horizon, higher is more confident.

    Raises:
        ValueError: if ``horizon_days`` is not one of :data:`~demand_platform.static.HORIZONS`.
    """
    if horizon_days not in HORIZON_DECAY:
        raise ValueError(f"Unsupported horizon {horizon_days}, expected one of {list(HORIZON_DECAY)}")

    score = (
        BASE_CONFIDENCE
        + components.sales_history_points
        + components.trailing_volume_points
        + components.pipeline_points
        + components.confirmed_order_points
        - HORIZON_DECAY[horizon_days]
    )
    return max(0, min(100, score))


def calculate_demand(
    sales_history: Optional[pd.DataFrame],
    pipeline_lines: Optional[pd.DataFrame],
    confirmed_orders: Optional[pd.DataFrame],
    stage_weights: StageWeights,
    today: date,
) -> DemandEstimate:
    """Calculate blended demand and confidence of a single SKU for all horizons.

    Missing or empty feeds never raise, they only lower the estimate and its confidence.

    Args:
        sales_history: Daily sales of the SKU.
        pipeline_lines: Open opportunities referencing the SKU.
        confirmed_orders: Purchase order lines of the SKU.
        stage_weights: Probability (0-100) per pipeline stage.
        today: Reference date of the forecast.

    Returns:
        Demand signals, blended demand and confidence for every horizon.
    """
    sales_history = ensure_frame(sales_history, SALES_HISTORY_COLUMNS)
    pipeline_lines = ensure_frame(pipeline_lines, PIPELINE_DEMAND_COLUMNS)
    confirmed_orders = ensure_frame(confirmed_orders, CONFIRMED_ORDER_COLUMNS)

    window = master_config.trailing_window_days
    trailing_window_units = trailing_velocity(sales_history, window, today)
    trailing_units = {
        horizon: extrapolate_velocity(trailing_window_units, window, horizon) for horizon in HORIZONS
    }

    weighted_lines = weigh_pipeline_lines(pipeline_lines, stage_weights)
    pipeline_units = round_half_up(float(weighted_lines["weighted_units"].sum()))

    order_units = {horizon: confirmed_order_demand(confirmed_orders, horizon, today) for horizon in HORIZONS}

    demand_units = {
        horizon: blended_demand(trailing_units[horizon], pipeline_units, order_units[horizon]) for horizon in HORIZONS
    }

    components = confidence_components(
        sales_history,
        trailing_units_30=trailing_units[30],
        pipeline_line_count=len(pipeline_lines),
        confirmed_order_count=len(confirmed_orders),
    )

    return DemandEstimate(
        trailing_units=trailing_units,
        weighted_pipeline_units=pipeline_units,
        confirmed_order_units=order_units,
        demand_units=demand_units,
        confidence={horizon: confidence_score(components, horizon) for horizon in HORIZONS},
        confidence_components=components,
        weighted_pipeline_lines=weighted_lines,
        trailing_window_days=window,
        trailing_window_units=trailing_window_units,
    )
