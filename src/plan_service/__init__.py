"""Training plan service: all collaborator I/O for plan creation lives here."""

from plan_service.collaborators import (
    ActivityPlan,
    ActivityPlanReader,
    EffortBestsReader,
    HistoryReader,
    InMemoryActivityPlanReader,
    InMemoryPlanStore,
    JsonFilePlanStore,
    PlanStore,
    PlanWriter,
    ProfileReader,
    ScheduledActivity,
    StaticEffortBestsReader,
    StaticHistoryReader,
    StaticProfileReader,
)
from plan_service.service import (
    CreateResult,
    CreationSummary,
    OverridePolicy,
    PreviewResult,
    TrainingPlanService,
)
from projection_engine.exceptions import (
    ActivityPlanNotFoundError,
    BlockingConflictError,
    PlanNotFoundError,
    PlanValidationError,
    ProjectionEngineError,
    StalePreviewError,
)

__all__ = [
    "ActivityPlan",
    "ActivityPlanNotFoundError",
    "ActivityPlanReader",
    "BlockingConflictError",
    "CreateResult",
    "CreationSummary",
    "EffortBestsReader",
    "HistoryReader",
    "InMemoryActivityPlanReader",
    "InMemoryPlanStore",
    "JsonFilePlanStore",
    "OverridePolicy",
    "PlanNotFoundError",
    "PlanStore",
    "PlanValidationError",
    "PlanWriter",
    "PreviewResult",
    "ProfileReader",
    "ProjectionEngineError",
    "ScheduledActivity",
    "StalePreviewError",
    "StaticEffortBestsReader",
    "StaticHistoryReader",
    "StaticProfileReader",
    "TrainingPlanService",
]
