"""TrainingPlanService: preview, commit, suggestions and scheduling checks.

The service owns collaborator I/O. The three context reads (history, profile,
effort bests) run concurrently; a failing read is logged and treated as an
empty source so a projection is always produced.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Callable

from projection_engine.context import derive_training_context, summarize_context
from projection_engine.engine import ProjectionEngine
from projection_engine.exceptions import (
    ActivityPlanNotFoundError,
    BlockingConflictError,
    PlanNotFoundError,
    StalePreviewError,
)
from projection_engine.guard import verify_preview_snapshot
from projection_engine.models.calibration import DEFAULT_CALIBRATION, CalibrationConfig
from projection_engine.models.conflicts import ConflictReport
from projection_engine.models.context import ContextSummary, TrainingContext
from projection_engine.models.creation_config import CreationConfig, NormalizedCreationConfig
from projection_engine.models.feasibility import ProjectionFeasibility
from projection_engine.models.goals import MinimalPlan
from projection_engine.models.projection import ProjectionChart
from projection_engine.models.snapshot import PlanPreview, PlanProjection, PreviewSnapshot
from projection_engine.serialization.payload import to_payload
from projection_engine.serialization.requests import (
    parse_activity_record,
    parse_creation_config,
    parse_effort_best,
    parse_minimal_plan,
    parse_profile,
)
from plan_service.collaborators import (
    ActivityPlanReader,
    EffortBestsReader,
    HistoryReader,
    PlanStore,
    ProfileReader,
)
from plan_service.constraints import ConstraintValidation, validate_activity
from plan_service.suggestions import CreationSuggestions, suggest_creation_config

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverridePolicy:
    """Caller's decision on committing a plan despite blocking conflicts."""

    allow_blocking_conflicts: bool = False
    reason: str | None = None


@dataclass(frozen=True)
class PreviewResult:
    normalized_creation_config: NormalizedCreationConfig
    conflicts: ConflictReport
    projection_feasibility: ProjectionFeasibility
    projection_chart: ProjectionChart
    plan_preview: PlanPreview
    preview_snapshot: PreviewSnapshot
    context_summary: ContextSummary


@dataclass(frozen=True)
class CreationSummary:
    normalized_creation_config: NormalizedCreationConfig
    conflicts: ConflictReport
    projection_feasibility: ProjectionFeasibility
    projection_chart: ProjectionChart


@dataclass(frozen=True)
class CreateResult:
    id: str
    creation_summary: CreationSummary


def _coerce_plan(minimal_plan: MinimalPlan | dict) -> MinimalPlan:
    if isinstance(minimal_plan, dict):
        return parse_minimal_plan(minimal_plan)
    return minimal_plan


def _coerce_config(creation_input: CreationConfig | dict | None) -> CreationConfig | None:
    if isinstance(creation_input, dict):
        return parse_creation_config(creation_input)
    return creation_input


def _coerce_policy(policy: OverridePolicy | dict | None) -> OverridePolicy:
    if policy is None:
        return OverridePolicy()
    if isinstance(policy, dict):
        return OverridePolicy(
            allow_blocking_conflicts=bool(policy.get("allow_blocking_conflicts", False)),
            reason=policy.get("reason"),
        )
    return policy


class TrainingPlanService:
    """Facade over the projection engine and its collaborators.

    Usage:
        service = TrainingPlanService(history_reader, profile_reader, plan_store)
        preview = service.preview_creation_config(plan, {"optimization_profile": "balanced"})
        created = service.create_from_creation_config(
            plan, {"optimization_profile": "balanced"},
            preview_snapshot_token=preview.preview_snapshot.token,
        )
    """

    def __init__(
        self,
        history_reader: HistoryReader,
        profile_reader: ProfileReader,
        plan_store: PlanStore,
        effort_reader: EffortBestsReader | None = None,
        activity_plan_reader: ActivityPlanReader | None = None,
        calibration: CalibrationConfig = DEFAULT_CALIBRATION,
        engine: ProjectionEngine | None = None,
        require_snapshot_token: bool = False,
        max_workers: int = 3,
    ) -> None:
        self._history_reader = history_reader
        self._profile_reader = profile_reader
        self._plan_store = plan_store
        self._effort_reader = effort_reader
        self._activity_plan_reader = activity_plan_reader
        self._calibration = calibration
        self._engine = engine or ProjectionEngine(calibration)
        self._require_snapshot_token = require_snapshot_token
        self._max_workers = max_workers

    # ------------------------------------------------------------------
    # Context
    # ------------------------------------------------------------------

    def load_context(self, as_of: date | None = None) -> TrainingContext:
        """Read every context source concurrently and derive the context."""
        as_of = as_of or date.today()
        start = as_of - timedelta(days=self._calibration.effective_history_window_days - 1)

        reads: dict[str, tuple[Callable[..., Any], tuple]] = {
            "history": (self._history_reader.read_history, (start, as_of)),
            "profile": (self._profile_reader.read_profile, ()),
        }
        if self._effort_reader is not None:
            reads["effort"] = (self._effort_reader.read_efforts, (start, as_of))

        results: dict[str, Any] = {}
        unavailable: list[str] = []
        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            futures = {name: pool.submit(fn, *args) for name, (fn, args) in reads.items()}
            for name, future in futures.items():
                try:
                    results[name] = future.result()
                except Exception as exc:
                    logger.warning("Failed to read %s, continuing without: %s", name, exc)
                    unavailable.append(name)

        history = [parse_activity_record(r) if isinstance(r, dict) else r for r in results.get("history") or ()]
        efforts = [parse_effort_best(e) if isinstance(e, dict) else e for e in results.get("effort") or ()]
        profile = results.get("profile")
        if isinstance(profile, dict):
            profile = parse_profile(profile)

        return derive_training_context(
            profile,
            history,
            efforts,
            as_of,
            calibration=self._calibration,
            unavailable_sources=unavailable,
        )

    def _project(
        self,
        minimal_plan: MinimalPlan | dict,
        creation_input: CreationConfig | dict | None,
        starting_ctl_override: float | None,
        as_of: date | None,
    ) -> PlanProjection:
        plan = _coerce_plan(minimal_plan)
        context = self.load_context(as_of)
        return self._engine.project(plan, _coerce_config(creation_input), context, starting_ctl_override)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def preview_creation_config(
        self,
        minimal_plan: MinimalPlan | dict,
        creation_input: CreationConfig | dict | None,
        starting_ctl_override: float | None = None,
        as_of: date | None = None,
    ) -> PreviewResult:
        """Project a plan without persisting it.

        Returns:
            ``PreviewResult`` including the snapshot token a later commit
            must present to prove its inputs are unchanged.
        """
        projection = self._project(minimal_plan, creation_input, starting_ctl_override, as_of)
        snapshot = self._engine.snapshot(projection)
        self._plan_store.issue_snapshot_token(snapshot.token)
        logger.info(
            "Preview: %d conflicts (blocking=%s), feasibility=%s",
            len(projection.conflicts.items),
            projection.conflicts.is_blocking,
            projection.projection_feasibility.state.name.lower(),
        )
        return PreviewResult(
            normalized_creation_config=projection.normalized_creation_config,
            conflicts=projection.conflicts,
            projection_feasibility=projection.projection_feasibility,
            projection_chart=projection.projection_chart,
            plan_preview=projection.plan_preview,
            preview_snapshot=snapshot,
            context_summary=summarize_context(projection.context),
        )

    def create_from_creation_config(
        self,
        minimal_plan: MinimalPlan | dict,
        creation_input: CreationConfig | dict | None,
        preview_snapshot_token: str | None = None,
        starting_ctl_override: float | None = None,
        override_policy: OverridePolicy | dict | None = None,
        as_of: date | None = None,
    ) -> CreateResult:
        """Recompute the projection and persist the plan.

        Raises:
            StalePreviewError: When the token no longer matches the inputs,
                was not armed by a preview, was already used since its last
                preview, or is missing while tokens are required.
            BlockingConflictError: When blocking conflicts remain and the
                override policy does not allow them.
        """
        projection = self._project(minimal_plan, creation_input, starting_ctl_override, as_of)
        snapshot = self._engine.snapshot(projection)

        if preview_snapshot_token is not None:
            verify_preview_snapshot(preview_snapshot_token, snapshot)
        elif self._require_snapshot_token:
            logger.warning("Rejected commit without a preview snapshot token")
            raise StalePreviewError()

        policy = _coerce_policy(override_policy)
        if projection.conflicts.is_blocking and not policy.allow_blocking_conflicts:
            logger.warning("Rejected commit with blocking conflicts: %s", projection.conflicts.codes)
            raise BlockingConflictError(projection.conflicts)

        plan = projection.plan
        document = {
            "plan_start_date": plan.plan_start_date.isoformat(),
            "plan_end_date": plan.end_date.isoformat(),
            "goals": to_payload(plan.goals),
            "normalized_creation_config": to_payload(projection.normalized_creation_config),
            "projection_feasibility": to_payload(projection.projection_feasibility),
            "conflicts": to_payload(projection.conflicts),
            "plan_preview": to_payload(projection.plan_preview),
            "preview_snapshot_token": snapshot.token,
            "override_reason": policy.reason if projection.conflicts.is_blocking else None,
        }
        claimed = preview_snapshot_token is not None
        if claimed and not self._plan_store.claim_snapshot_token(snapshot.token):
            logger.warning("Rejected commit with a consumed or unissued preview snapshot token")
            raise StalePreviewError()
        try:
            plan_id = self._plan_store.create_plan(document)
        except Exception:
            if claimed:
                self._plan_store.release_snapshot_token(snapshot.token)
            raise
        logger.info("Created training plan %s", plan_id)
        return CreateResult(
            id=plan_id,
            creation_summary=CreationSummary(
                normalized_creation_config=projection.normalized_creation_config,
                conflicts=projection.conflicts,
                projection_feasibility=projection.projection_feasibility,
                projection_chart=projection.projection_chart,
            ),
        )

    def get_creation_suggestions(
        self,
        as_of: date | None = None,
        existing_values: dict | None = None,
    ) -> CreationSuggestions:
        """Suggest creation settings from the athlete's current context."""
        summary = summarize_context(self.load_context(as_of))
        return suggest_creation_config(summary, existing_values)

    def validate_constraints(
        self,
        training_plan_id: str,
        scheduled_date: date,
        activity_plan_id: str,
    ) -> ConstraintValidation:
        """Check whether one activity can be scheduled on a plan date.

        Raises:
            PlanNotFoundError: Unknown training plan id.
            ActivityPlanNotFoundError: Unknown activity plan id, or no
                activity plan reader configured.
        """
        document = self._plan_store.get_plan(training_plan_id)
        if document is None:
            raise PlanNotFoundError(f"training plan '{training_plan_id}' not found")
        reader = self._activity_plan_reader
        activity = reader.get_activity_plan(activity_plan_id) if reader is not None else None
        if activity is None:
            raise ActivityPlanNotFoundError(f"activity plan '{activity_plan_id}' not found")

        scheduled = self._plan_store.list_scheduled_activities(training_plan_id)
        return validate_activity(document, scheduled, scheduled_date, activity, reader)
