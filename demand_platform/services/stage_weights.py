from __future__ import annotations

from logging import getLogger
from typing import (
    TYPE_CHECKING,
    List,
    NamedTuple,
)

from demand_platform import master_config
from demand_platform.internal_schema import StageWeight
from demand_platform.static import (
    ConfigurationException,
    StageWeights,
)
from sqlalchemy import select

from .clock import Clock
from .database import retry_database_read_errors

if TYPE_CHECKING:
    from .database import Database

logger = getLogger("stage_weights")


class StageWeightEntry(NamedTuple):
    """Configured probability of a pipeline stage."""

    stage: str
    probability: float


class StageWeightStore:
    """Read and update the probability of each pipeline stage in the internal database.

    Args:
        internal_database: Database storing the stage weights.
        clock: Clock providing update timestamps.
    """

    def __init__(self, internal_database: Database, clock: Clock) -> None:
        self._internal_database = internal_database
        self._clock = clock

    @retry_database_read_errors
    def list(self) -> List[StageWeightEntry]:
        """List all stage weights ordered by probability, then by stage."""
        with self._internal_database.transaction_context() as session:
            rows = session.execute(
                select(StageWeight.stage, StageWeight.probability).order_by(
                    StageWeight.probability, StageWeight.stage
                )
            ).all()
        return [StageWeightEntry(stage=row.stage, probability=row.probability) for row in rows]

    def get_mapping(self) -> StageWeights:
        """Snapshot of all stage weights as mapping from stage to probability (0-100)."""
        return {entry.stage: entry.probability for entry in self.list()}

    def set(self, stage: str, probability: float) -> StageWeightEntry:
        """Create or update the probability of a stage.

        Raises:
            ConfigurationException: if ``probability`` is not within 0-100 or ``stage`` is empty.
        """
        if not stage:
            raise ConfigurationException("Stage name must not be empty")
        if not 0 <= probability <= 100:
            raise ConfigurationException(f"Probability of stage {stage} must be within 0-100, got {probability}")

        with self._internal_database.transaction_context() as session:
            weight = session.get(StageWeight, stage)
            if weight is None:
                weight = StageWeight(stage=stage)
                session.add(weight)
            weight.probability = float(probability)  # type: ignore
            weight.updated = self._clock.now()  # type: ignore

        logger.info(f"Set probability of stage {stage} to {probability}")
        return StageWeightEntry(stage=stage, probability=float(probability))

    def ensure_defaults(self) -> List[str]:
        """Seed :data:`~demand_platform.master_config.default_stage_weights` for stages without weight.

        Existing weights are never changed.

        Returns:
            Stages which were added.
        """
        now = self._clock.now()
        with self._internal_database.transaction_context() as session:
            existing = set(session.execute(select(StageWeight.stage)).scalars())
            added = [stage for stage in master_config.default_stage_weights if stage not in existing]
            session.add_all(
                StageWeight(stage=stage, probability=float(master_config.default_stage_weights[stage]), updated=now)
                for stage in added
            )

        if added:
            logger.info(f"Added default weights for stages: {added}")
        return added
