from .demand_engine import (
    HORIZON_DECAY,
    ConfidenceComponents,
    DemandEstimate,
    blended_demand,
    calculate_demand,
    confidence_components,
    confidence_score,
    confirmed_order_demand,
    extrapolate_velocity,
    round_half_up,
    trailing_velocity,
    weigh_pipeline_lines,
    weighted_pipeline_demand,
)
from .explanation import build_explanation
from .inputs import (
    CONFIRMED_ORDER_COLUMNS,
    PIPELINE_DEMAND_COLUMNS,
    SALES_HISTORY_COLUMNS,
    InventorySnapshot,
    ProcurementParameters,
    SkuInputs,
    empty_frame,
    ensure_frame,
    validate_sku_inputs,
)
from .procurement import (
    ProcurementRecommendation,
    compute_required,
    plan_procurement,
    recommended_order_date,
    recommended_order_units,
    round_up_to_case_pack,
)
from .reporting import (
    compute_forecast_error,
    mean_error_pct,
)
from .risk import determine_risk_flags
from .sku_forecast import (
    SkuForecastLine,
    forecast_sku,
)

__all__ = [
    "HORIZON_DECAY",
    "ConfidenceComponents",
    "DemandEstimate",
    "blended_demand",
    "calculate_demand",
    "confidence_components",
    "confidence_score",
    "confirmed_order_demand",
    "extrapolate_velocity",
    "round_half_up",
    "trailing_velocity",
    "weigh_pipeline_lines",
    "weighted_pipeline_demand",
    "build_explanation",
    "CONFIRMED_ORDER_COLUMNS",
    "PIPELINE_DEMAND_COLUMNS",
    "SALES_HISTORY_COLUMNS",
    "InventorySnapshot",
    "ProcurementParameters",
    "SkuInputs",
    "empty_frame",
    "ensure_frame",
    "validate_sku_inputs",
    "ProcurementRecommendation",
    "compute_required",
    "plan_procurement",
    "recommended_order_date",
    "recommended_order_units",
    "round_up_to_case_pack",
    "compute_forecast_error",
    "mean_error_pct",
    "determine_risk_flags",
    "SkuForecastLine",
    "forecast_sku",
]
