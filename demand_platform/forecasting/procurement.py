"""Procurement recommendation based on the 60-day demand and the current inventory position.

.. code-block:: text

    required = max(0, demand_60 + safety_stock - (available + on_order))
    order_units = ceil(max(required, moq) / case_pack) * case_pack       (only if required > 0)
    order_date = today + lead_time_days - buffer_days
"""
from __future__ import annotations

import math
from datetime import (
    date,
    timedelta,
)
from typing import (
    NamedTuple,
    Optional,
)

from demand_platform import master_config

from .inputs import (
    InventorySnapshot,
    ProcurementParameters,
)


class ProcurementRecommendation(NamedTuple):
    """Required units and the recommended purchase order of a SKU."""

    required_units: int
    recommended_order_units: int
    recommended_order_date: Optional[date]


def round_up_to_case_pack(units: int, case_pack: int) -> int:
    """Round up to the next multiple of ``case_pack``, a case pack of 0 or less is no constraint.

    >>> round_up_to_case_pack(17, 12)
    24
    >>> round_up_to_case_pack(24, 12)
    24
    """
    if case_pack <= 0:
        return units
    return int(math.ceil(units / case_pack)) * case_pack


def compute_required(
    demand_units_60: int, safety_stock_units: int, available_units: int, on_order_units: int
) -> int:
    """Compute units missing to cover 60 days of demand plus safety stock, never negative."""
    return max(0, demand_units_60 + safety_stock_units - (available_units + on_order_units))


def recommended_order_units(required_units: int, moq_units: int, case_pack: int) -> int:
    """Apply the minimum order quantity first and round the result up to the case pack."""
    if required_units <= 0:
        return 0
    return round_up_to_case_pack(max(required_units, moq_units), case_pack)


def recommended_order_date(
    today: date, lead_time_days: int, buffer_days: int = master_config.order_buffer_days
) -> date:
    """Latest date to place the order, which can be in the past if the lead time is shorter than the buffer."""
    return today + timedelta(days=lead_time_days - buffer_days)


def plan_procurement(
    demand_units_60: int, inventory: InventorySnapshot, parameters: ProcurementParameters, today: date
) -> ProcurementRecommendation:
    """Compute the procurement recommendation of a single SKU.

    Args:
        demand_units_60: Blended demand of the 60-day horizon.
        inventory: Current supply position.
        parameters: Safety stock, MOQ, case pack and lead time of the SKU.
        today: Reference date of the forecast.

    Returns:
        No order (0 units, no date) if the current supply position covers the demand.
    """
    required = compute_required(
        demand_units_60=demand_units_60,
        safety_stock_units=parameters.safety_stock_units,
        available_units=inventory.available,
        on_order_units=inventory.on_order,
    )

    if required <= 0:
        return ProcurementRecommendation(required_units=0, recommended_order_units=0, recommended_order_date=None)

    return ProcurementRecommendation(
        required_units=required,
        recommended_order_units=recommended_order_units(required, parameters.moq_units, parameters.case_pack),
        recommended_order_date=recommended_order_date(today, parameters.lead_time_days),
    )
