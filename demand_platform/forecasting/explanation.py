from __future__ import annotations

from datetime import (
    date,
    datetime,
)
from typing import (
    Any,
    Dict,
    List,
    Optional,
)

import pandas as pd
from demand_platform import master_config
from demand_platform.static import (
    BLEND_METHOD,
    HORIZONS,
)

from .demand_engine import DemandEstimate
from .inputs import SkuInputs
from .procurement import ProcurementRecommendation


def build_explanation(
    inputs: SkuInputs,
    demand: DemandEstimate,
    procurement: ProcurementRecommendation,
    model_version: str = master_config.model_version,
) -> Dict[str, Any]:
    """Build the audit record linking all inputs of a SKU to its forecast and procurement outputs.

    Only values already computed by the demand engine and the procurement planner are used.

    Args:
        inputs: Feed data of the SKU.
        demand: Result of :func:`~demand_platform.forecasting.calculate_demand` for ``inputs``.
        procurement: Result of :func:`~demand_platform.forecasting.plan_procurement` for ``demand``.
        model_version: Version label of the demand model.

    Returns:
        JSON serializable explanation record.
    """
    components = demand.confidence_components

    return {
        "model_version": model_version,
        "trailing_sales": {
            "days": demand.trailing_window_days,
            "total_units": demand.trailing_window_units,
            "daily_avg": demand.trailing_daily_average,
        },
        "pipeline_signals": _pipeline_signals(demand.weighted_pipeline_lines),
        "confirmed_order_signals": _confirmed_order_signals(inputs.confirmed_orders),
        "blend_method": BLEND_METHOD,
        "signals": {
            "trailing": {str(horizon): demand.trailing_units[horizon] for horizon in HORIZONS},
            "weighted_pipeline": demand.weighted_pipeline_units,
            "confirmed_orders": {str(horizon): demand.confirmed_order_units[horizon] for horizon in HORIZONS},
        },
        "final_demand": {str(horizon): demand.demand_units[horizon] for horizon in HORIZONS},
        "inventory": {
            "on_hand": int(inputs.inventory.on_hand),
            "reserved": int(inputs.inventory.reserved),
            "available": int(inputs.inventory.available),
            "on_order": int(inputs.inventory.on_order),
        },
        "procurement": {
            "safety_stock": int(inputs.parameters.safety_stock_units),
            "moq": int(inputs.parameters.moq_units),
            "case_pack": int(inputs.parameters.case_pack),
            "lead_time_days": int(inputs.parameters.lead_time_days),
            "required": procurement.required_units,
            "recommended_order_units": procurement.recommended_order_units,
            "recommended_order_date": _isoformat(procurement.recommended_order_date),
        },
        "confidence": {
            "components": {
                "distinct_sales_days": components.distinct_sales_days,
                "trailing_units_30": components.trailing_units_30,
                "pipeline_line_count": components.pipeline_line_count,
                "confirmed_order_count": components.confirmed_order_count,
                "sales_history_points": components.sales_history_points,
                "trailing_volume_points": components.trailing_volume_points,
                "pipeline_points": components.pipeline_points,
                "confirmed_order_points": components.confirmed_order_points,
                "signal_count": components.signal_count,
            },
            "scores": {str(horizon): demand.confidence[horizon] for horizon in HORIZONS},
        },
    }


def _pipeline_signals(weighted_pipeline_lines: pd.DataFrame) -> List[Dict[str, Any]]:
    return [
        {
            "opportunity_id": str(line.opportunity_id),
            "stage": line.stage if isinstance(line.stage, str) else None,
            "expected_units": float(line.expected_units),
            "weight": float(line.weight),
            "weighted_units": float(line.weighted_units),
        }
        for line in weighted_pipeline_lines.itertuples(index=False)
    ]


def _confirmed_order_signals(confirmed_orders: pd.DataFrame) -> List[Dict[str, Any]]:
    return [
        {
            "order_id": str(line.order_id),
            "quantity": int(line.quantity),
            "expected_fulfillment_date": _isoformat(line.expected_fulfillment_date),
        }
        for line in confirmed_orders.itertuples(index=False)
    ]


def _isoformat(value: Optional[Any]) -> Optional[str]:
    if value is None or pd.isna(value):
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return pd.Timestamp(value).date().isoformat()
