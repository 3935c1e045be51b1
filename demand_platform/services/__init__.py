from .clock import (
    Clock,
    FixedClock,
)
from .data_output import DataOutput
from .database import (
    Database,
    retry_database_read_errors,
)
from .feed_client import FeedClient
from .initialize import (
    Services,
    initialize,
)
from .logging import initialize_logging
from .orchestrator import Orchestrator
from .reconciliation import (
    AccuracyReconciler,
    ReconciliationResult,
)
from .runtime_config import RuntimeConfig
from .sku_executor import (
    BatchReport,
    SkuFailure,
    execute_skus,
)
from .stage_weights import (
    StageWeightEntry,
    StageWeightStore,
)

__all__ = [
    "initialize",
    "initialize_logging",
    "AccuracyReconciler",
    "BatchReport",
    "Clock",
    "DataOutput",
    "Database",
    "FeedClient",
    "FixedClock",
    "Orchestrator",
    "ReconciliationResult",
    "RuntimeConfig",
    "Services",
    "SkuFailure",
    "StageWeightEntry",
    "StageWeightStore",
    "execute_skus",
    "retry_database_read_errors",
]
