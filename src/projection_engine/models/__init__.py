"""Data models for the projection engine."""

from projection_engine.models.calibration import DEFAULT_CALIBRATION, CalibrationConfig, OptimizerSettings
from projection_engine.models.conflicts import ConflictItem, ConflictReport
from projection_engine.models.context import (
    ActivityRecord,
    ContextSummary,
    EffortBest,
    ProfileSnapshot,
    TrainingContext,
)
from projection_engine.models.creation_config import (
    AvailabilityConfig,
    AvailabilityDay,
    CreationConfig,
    NormalizedCreationConfig,
    TrainingConstraints,
)
from projection_engine.models.enums import (
    FeasibilityState,
    HistoryAvailability,
    OptimizationProfile,
    OptimizerPath,
    WeekPattern,
)
from projection_engine.models.feasibility import ProjectionFeasibility
from projection_engine.models.goals import (
    Goal,
    HrThresholdTarget,
    MinimalPlan,
    PaceThresholdTarget,
    PowerThresholdTarget,
    RacePerformanceTarget,
)
from projection_engine.models.projection import ProjectionChart, StartingState
from projection_engine.models.snapshot import PlanPreview, PlanProjection, PreviewSnapshot

__all__ = [
    "ActivityRecord",
    "AvailabilityConfig",
    "AvailabilityDay",
    "CalibrationConfig",
    "ConflictItem",
    "ConflictReport",
    "ContextSummary",
    "CreationConfig",
    "DEFAULT_CALIBRATION",
    "EffortBest",
    "FeasibilityState",
    "Goal",
    "HistoryAvailability",
    "HrThresholdTarget",
    "MinimalPlan",
    "NormalizedCreationConfig",
    "OptimizationProfile",
    "OptimizerPath",
    "OptimizerSettings",
    "PaceThresholdTarget",
    "PlanPreview",
    "PlanProjection",
    "PowerThresholdTarget",
    "PreviewSnapshot",
    "ProfileSnapshot",
    "ProjectionChart",
    "ProjectionFeasibility",
    "RacePerformanceTarget",
    "StartingState",
    "TrainingConstraints",
    "TrainingContext",
    "WeekPattern",
]
