"""Conflict detector: runs every check and aggregates one report."""

from __future__ import annotations

from typing import Iterable

from projection_engine.conflict_detection.checks import ConflictCheck, default_checks
from projection_engine.models.conflicts import ConflictReport
from projection_engine.models.creation_config import NormalizedCreationConfig
from projection_engine.models.goals import MinimalPlan
from projection_engine.models.projection import GoalDemand, StartingState


class ConflictDetector:
    """Runs conflict checks in a fixed order.

    Uses pluggable checks. Default is ramp caps, then recovery windows,
    then constraint bounds. The report is blocking when any item is.
    """

    def __init__(self, checks: Iterable[ConflictCheck] | None = None) -> None:
        self.checks = tuple(checks) if checks is not None else default_checks()

    def detect(
        self,
        plan: MinimalPlan,
        config: NormalizedCreationConfig,
        demands: tuple[GoalDemand, ...],
        start: StartingState,
    ) -> ConflictReport:
        items = []
        for check in self.checks:
            items.extend(check.detect(plan, config, demands, start))
        return ConflictReport(items=tuple(items))
