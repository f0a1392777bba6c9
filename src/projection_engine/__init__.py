"""Training-load projection and plan optimization engine."""

from projection_engine.engine import ProjectionEngine
from projection_engine.exceptions import (
    ActivityPlanNotFoundError,
    BlockingConflictError,
    PlanNotFoundError,
    PlanValidationError,
    ProjectionEngineError,
    StalePreviewError,
)

__all__ = [
    "ActivityPlanNotFoundError",
    "BlockingConflictError",
    "PlanNotFoundError",
    "PlanValidationError",
    "ProjectionEngine",
    "ProjectionEngineError",
    "StalePreviewError",
]
