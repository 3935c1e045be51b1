from typing import Dict

from sqlalchemy import Enum as SqlAlchemyEnum  # noqa: F401

#: Default probability (0-100) per pipeline stage, snapshot taken once per forecast run.
StageWeights = Dict[str, float]
