"""The ``master_config`` script contains static configuration and default values used in all environments."""
import logging
from typing import Dict

from .static import DatabaseType

#: SQLAlchemy database URLs used by the platform.
#: The feed database is only read, the internal database stores runs, SKU lines, accuracy and stage weights.
database_url = {
    DatabaseType.internal: "sqlite:///demand_platform.db",
    DatabaseType.feed: "sqlite:///demand_platform.db",
}

#: Maximum number of database connection attempts in case of connection failure.
#: Set to ``0`` to disable database access.
db_connection_attempts = 5
#: Seconds to wait after a failed database connection attempt before trying again.
db_connection_retry_sleep_seconds = 3
#: Maximum number of database read retries in case of an :class:`~sqlalchemy.exc.OperationalError`.
#: Set to ``0`` disable retries i.e only one read attempt will be performed.
db_read_retries = 2
#: Seconds to wait after a failed database read attempt before trying again.
db_read_retry_sleep_seconds = 1
#: Create missing tables when connecting instead of failing with
#: :class:`~demand_platform.static.DatabaseConnectionFailure`.
db_create_missing_tables = False

# Demand engine configuration
#: Number of days summed up as trailing sell-through velocity.
trailing_window_days = 30
#: Number of days of sales history loaded per SKU (used for counting distinct days with sales).
sales_history_lookback_days = 90
#: Days subtracted from the lead time when computing the recommended order date.
order_buffer_days = 7
#: Horizon recorded on each forecast run.
default_horizon_days = 90
#: Version label stored on each forecast run and explanation record.
model_version = "v1-blended-max"
#: SKU lines with a 30-day confidence below this value are flagged as ``low_confidence``.
low_confidence_threshold = 30

# Procurement defaults, applied if the product master does not define a value
#: Default safety stock in units.
default_safety_stock_units = 0
#: Default minimum order quantity in units.
default_moq_units = 1
#: Default case pack size in units.
default_case_pack = 1
#: Default supplier lead time in days.
default_lead_time_days = 30

#: Number of SKUs to process in parallel.
max_parallel_skus = 8
#: Deadline in seconds for all feed reads of a single forecast run.
#: SKUs which could not be read before this deadline are marked as failed.
feed_read_deadline_seconds = 600

#: Default stage weights (probability in percent), seeded with ``setup-database internal``.
default_stage_weights: Dict[str, float] = {
    "targeted": 0,
    "contact_found": 5,
    "first_touch": 10,
    "meeting_booked": 20,
    "pitch_delivered": 30,
    "samples_sent": 40,
    "follow_up": 45,
    "vendor_setup": 60,
    "authorization_pending": 70,
    "po_received": 90,
    "on_shelf": 100,
    "reorder_cycle": 100,
}

# Accuracy reconciliation
#: Age in days of the forecast run which is reconciled against realized sales.
accuracy_lookback_days = 30
#: Tolerance in days for finding a forecast run of the expected age.
accuracy_window_days = 10

#: Logging output directory name.
log_output_location = "logs"
#: Log level for file logging.
log_level_file = logging.DEBUG
#: Log level for console logging.
log_level_console = logging.INFO
#: Logging format as defined in :class:`~logging.Formatter`.
logging_format = "%(asctime)s::%(levelname)s::%(name)s::%(sku)s::%(message)s"

#: Logging timestamp format as defined in :class:`~logging.Formatter`.
logging_timestamp_format = "%Y-%m-%d %H:%M:%S"
