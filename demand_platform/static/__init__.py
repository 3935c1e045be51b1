from .constants import (
    BLEND_METHOD,
    CONFIRMED_ORDER_TABLE,
    FORECAST_ACCURACY_TABLE,
    FORECAST_RUN_TABLE,
    FORECAST_SKU_LINE_TABLE,
    HORIZONS,
    INVENTORY_SNAPSHOT_TABLE,
    LOG_DEFAULT_SKU_CONTEXT,
    ORDER_DATE_FORMAT,
    PIPELINE_DEMAND_TABLE,
    PRODUCT_MASTER_TABLE,
    SALES_HISTORY_TABLE,
    STAGE_WEIGHT_TABLE,
)
from .enums import (
    DatabaseType,
    ForecastRunStatus,
    RiskFlag,
    TriggerType,
)
from .exceptions import (
    ConfigurationException,
    DatabaseConnectionFailure,
    DataException,
    FeedTimeout,
    RunAlreadyActive,
)
from .typing import (
    SqlAlchemyEnum,
    StageWeights,
)

__all__ = [
    "BLEND_METHOD",
    "CONFIRMED_ORDER_TABLE",
    "FORECAST_ACCURACY_TABLE",
    "FORECAST_RUN_TABLE",
    "FORECAST_SKU_LINE_TABLE",
    "HORIZONS",
    "INVENTORY_SNAPSHOT_TABLE",
    "LOG_DEFAULT_SKU_CONTEXT",
    "ORDER_DATE_FORMAT",
    "PIPELINE_DEMAND_TABLE",
    "PRODUCT_MASTER_TABLE",
    "SALES_HISTORY_TABLE",
    "STAGE_WEIGHT_TABLE",
    "DatabaseType",
    "ForecastRunStatus",
    "RiskFlag",
    "TriggerType",
    "ConfigurationException",
    "DatabaseConnectionFailure",
    "DataException",
    "FeedTimeout",
    "RunAlreadyActive",
    "SqlAlchemyEnum",
    "StageWeights",
]
