"""Custom exception hierarchy for the projection engine and plan service.

Every rejection carries a stable machine-readable ``code`` alongside the
human-readable message.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from projection_engine.models.conflicts import ConflictReport


class ProjectionEngineError(Exception):
    """Base exception for all projection engine errors."""

    default_code = "projection_engine_error"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class PlanValidationError(ProjectionEngineError):
    """Malformed or contradictory plan input, rejected before computation."""

    default_code = "invalid_minimal_plan"


class StalePreviewError(ProjectionEngineError):
    """The preview snapshot no longer matches the current inputs."""

    default_code = "stale_preview_snapshot"

    def __init__(self, message: str = "invalid configuration: refresh preview") -> None:
        super().__init__(message)


class BlockingConflictError(ProjectionEngineError):
    """Commit rejected because the configuration has blocking conflicts."""

    default_code = "blocking_conflicts"

    def __init__(self, report: ConflictReport) -> None:
        codes = ", ".join(item.code for item in report.items if item.is_blocking)
        super().__init__(f"plan has blocking conflicts: {codes}")
        self.report = report


class PlanNotFoundError(ProjectionEngineError):
    """No stored training plan has the requested identifier."""

    default_code = "training_plan_not_found"


class ActivityPlanNotFoundError(ProjectionEngineError):
    """No activity plan has the requested identifier."""

    default_code = "activity_plan_not_found"
