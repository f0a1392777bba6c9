"""Tiered projection optimizer."""

from projection_engine.optimizer.chart import build_projection_chart
from projection_engine.optimizer.optimizer import OptimizationResult, ProjectionOptimizer
from projection_engine.optimizer.problem import ProjectionProblem, WeekSlot, build_problem, evaluate_week
from projection_engine.optimizer.tiers import (
    CandidateSet,
    CapOnlyBaselineTier,
    DegradedBoundedMpcTier,
    FullMpcTier,
    LegacyOptimizerTier,
    OptimizerTier,
    default_tiers,
)

__all__ = [
    "CandidateSet",
    "CapOnlyBaselineTier",
    "DegradedBoundedMpcTier",
    "FullMpcTier",
    "LegacyOptimizerTier",
    "OptimizationResult",
    "OptimizerTier",
    "ProjectionOptimizer",
    "ProjectionProblem",
    "WeekSlot",
    "build_problem",
    "build_projection_chart",
    "default_tiers",
    "evaluate_week",
]
