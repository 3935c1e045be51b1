ORDER_DATE_FORMAT = "%Y-%m-%d"

#: Demand horizons (in days) computed for every SKU.
HORIZONS = (30, 60, 90)

#: Blend method identifier stored in every explanation record.
BLEND_METHOD = "max"

#: Entry for each forecast run (scheduled or manual trigger)
FORECAST_RUN_TABLE = "forecast_run"
#: Engine output for one SKU within one forecast run
FORECAST_SKU_LINE_TABLE = "forecast_sku_line"
#: Reconciliation of past forecasts against realized sales
FORECAST_ACCURACY_TABLE = "forecast_accuracy"
#: Operator configured probability per pipeline stage
STAGE_WEIGHT_TABLE = "stage_weight"

#: Daily realized unit sales per SKU, populated by the sales ingestion
SALES_HISTORY_TABLE = "sales_history_daily"
#: Expected unit volume of open sales opportunities
PIPELINE_DEMAND_TABLE = "pipeline_demand_line"
#: Committed purchase order quantities
CONFIRMED_ORDER_TABLE = "confirmed_order_line"
#: Current supply position per SKU
INVENTORY_SNAPSHOT_TABLE = "inventory_snapshot"
#: Procurement parameters per SKU, defines the set of tracked SKUs
PRODUCT_MASTER_TABLE = "product_master"

#: Default log scope if no specific SKU context is available
LOG_DEFAULT_SKU_CONTEXT = "global"
