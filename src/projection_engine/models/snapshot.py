"""Preview snapshot and the engine's per-request result bundle."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from projection_engine.models.conflicts import ConflictReport
from projection_engine.models.context import TrainingContext
from projection_engine.models.creation_config import NormalizedCreationConfig
from projection_engine.models.enums import WeekPattern
from projection_engine.models.feasibility import ProjectionFeasibility
from projection_engine.models.goals import MinimalPlan
from projection_engine.models.projection import ProjectionChart


@dataclass(frozen=True)
class PreviewSnapshot:
    """Fingerprint binding a preview to the exact inputs it used."""

    version: int
    token: str


@dataclass(frozen=True)
class PlannedWeek:
    week_start: date
    week_end: date
    planned_weekly_tss: float
    pattern: WeekPattern


@dataclass(frozen=True)
class PlanPreview:
    """Compact plan outline shown alongside the projection."""

    plan_start_date: date
    plan_end_date: date
    goal_count: int
    week_count: int
    peak_weekly_tss: float
    total_planned_tss: float
    weeks: tuple[PlannedWeek, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class PlanProjection:
    """Everything one engine run produces for a plan."""

    plan: MinimalPlan
    normalized_creation_config: NormalizedCreationConfig
    context: TrainingContext
    projection_chart: ProjectionChart
    projection_feasibility: ProjectionFeasibility
    conflicts: ConflictReport
    plan_preview: PlanPreview
    starting_ctl_override: float | None = None
