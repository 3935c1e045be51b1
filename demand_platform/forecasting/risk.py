from typing import List

from demand_platform import master_config
from demand_platform.static import RiskFlag

from .demand_engine import DemandEstimate
from .inputs import SkuInputs


def determine_risk_flags(inputs: SkuInputs, demand: DemandEstimate) -> List[RiskFlag]:
    """Flag SKUs that need attention of a planner.

    * ``stockout``: demand within 30 days but nothing available.
    * ``low_confidence``: 30-day confidence below :data:`~demand_platform.master_config.low_confidence_threshold`.
    * ``no_sales_history``: SKU without any sales history.
    """
    flags = []
    if demand.demand_units[30] > 0 and inputs.inventory.available <= 0:
        flags.append(RiskFlag.stockout)
    if demand.confidence[30] < master_config.low_confidence_threshold:
        flags.append(RiskFlag.low_confidence)
    if inputs.sales_history.empty:
        flags.append(RiskFlag.no_sales_history)
    return flags
