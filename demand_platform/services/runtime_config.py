from __future__ import annotations

import logging
from datetime import datetime
from typing import (
    Iterable,
    List,
    Optional,
)

from demand_platform import master_config
from demand_platform.static import (
    HORIZONS,
    ConfigurationException,
    TriggerType,
)

logger = logging.getLogger("runtime_config")


class RuntimeConfig:
    """Combination of :mod:`~demand_platform.master_config` and CLI :mod:`~demand_platform.cli.options`.

    In many cases, :mod:`~demand_platform.master_config` only contains reasonable default values,
    which can be overridden by explicit CLI parameters.

    This provides the definitive configuration for a specific forecast run.
    """

    def __init__(
        self,
        trigger_type: TriggerType,
        horizon_days: int = master_config.default_horizon_days,
        max_parallel_skus: Optional[int] = None,
        feed_read_deadline_seconds: Optional[float] = None,
        only_skus: Optional[Iterable[str]] = None,
        model_version: str = master_config.model_version,
    ):
        self.trigger_type = trigger_type

        self.run_timestamp = datetime.now().strftime("%Y%m%d_%H%M")

        if horizon_days not in HORIZONS:
            raise ConfigurationException(f"Horizon of {horizon_days} days is not supported, choose from {HORIZONS}")
        self.horizon_days = horizon_days

        self.max_parallel_skus = (
            master_config.max_parallel_skus if max_parallel_skus is None else max_parallel_skus
        )
        if self.max_parallel_skus < 1:
            raise ConfigurationException("--max-parallel-skus must be at least 1")

        self.feed_read_deadline_seconds = (
            master_config.feed_read_deadline_seconds
            if feed_read_deadline_seconds is None
            else feed_read_deadline_seconds
        )
        if self.feed_read_deadline_seconds <= 0:
            raise ConfigurationException("--feed-deadline-seconds must be greater than 0")

        self.only_skus: List[str] = sorted(set(only_skus)) if only_skus else []

        self.model_version = model_version

    def filter_skus(self, tracked_skus: List[str]) -> List[str]:
        """Restrict the tracked SKUs to ``only_skus``, if any were configured.

        Configured SKUs that are not tracked are ignored with a warning.
        """
        if not self.only_skus:
            return tracked_skus

        untracked = set(self.only_skus) - set(tracked_skus)
        if untracked:
            logger.warning(f"Ignoring SKUs which are not tracked: {sorted(untracked)}")

        return [sku for sku in tracked_skus if sku in self.only_skus]

    def log_config(self) -> None:
        """Log current runtime configuration."""
        for k, v in self.__dict__.items():
            if k == "trigger_type":
                v = self.trigger_type.value
            logger.info(f"Runtime config {k} = {v}")
