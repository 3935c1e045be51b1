from __future__ import annotations

from datetime import date
from typing import (
    Any,
    Dict,
    List,
    NamedTuple,
    Optional,
)

from demand_platform import master_config
from demand_platform.static import (
    RiskFlag,
    StageWeights,
)

from .demand_engine import (
    DemandEstimate,
    calculate_demand,
)
from .explanation import build_explanation
from .inputs import (
    SkuInputs,
    validate_sku_inputs,
)
from .procurement import (
    ProcurementRecommendation,
    plan_procurement,
)
from .risk import determine_risk_flags


class SkuForecastLine(NamedTuple):
    """Complete engine output for one SKU, stored as one forecast SKU line."""

    sku: str
    demand: DemandEstimate
    procurement: ProcurementRecommendation
    risk_flags: List[RiskFlag]
    explanation: Dict[str, Any]

    @property
    def recommended_order_units(self) -> int:
        """Units to order, 0 if no order is needed."""
        return self.procurement.recommended_order_units

    @property
    def recommended_order_date(self) -> Optional[date]:
        """Date to place the order, ``None`` if no order is needed."""
        return self.procurement.recommended_order_date


def forecast_sku(
    inputs: SkuInputs, stage_weights: StageWeights, today: date, model_version: str = master_config.model_version,
) -> SkuForecastLine:
    """Run demand engine, procurement planner and explanation builder for a single SKU.

    Args:
        inputs: Feed data of the SKU.
        stage_weights: Probability (0-100) per pipeline stage.
        today: Reference date of the forecast.
        model_version: Version label stored in the explanation record.

    Returns:
        Forecast line of the SKU.

    Raises:
        DataException: if the feed data of the SKU is malformed.
    """
    validate_sku_inputs(inputs)

    demand = calculate_demand(
        inputs.sales_history, inputs.pipeline_lines, inputs.confirmed_orders, stage_weights, today
    )
    procurement = plan_procurement(demand.demand_units[60], inputs.inventory, inputs.parameters, today)

    return SkuForecastLine(
        sku=inputs.sku,
        demand=demand,
        procurement=procurement,
        risk_flags=determine_risk_flags(inputs, demand),
        explanation=build_explanation(inputs, demand, procurement, model_version),
    )
