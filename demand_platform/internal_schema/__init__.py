from .forecast_accuracy import ForecastAccuracy
from .forecast_run import ForecastRun
from .forecast_sku_line import ForecastSkuLine
from .internal_schema_base import InternalSchemaBase
from .stage_weight import StageWeight

__all__ = [
    "InternalSchemaBase",
    "ForecastAccuracy",
    "ForecastRun",
    "ForecastSkuLine",
    "StageWeight",
]
