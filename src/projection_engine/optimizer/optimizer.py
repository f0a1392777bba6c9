"""ProjectionOptimizer: runs the tiers in fixed order and records every outcome."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from projection_engine.models.enums import OptimizerPath
from projection_engine.models.projection import TierOutcome
from projection_engine.optimizer.problem import ProjectionProblem
from projection_engine.optimizer.selection import ScoredSequence, select_best
from projection_engine.optimizer.tiers import CapOnlyBaselineTier, OptimizerTier, default_tiers

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OptimizationResult:
    """Selected trajectory plus the outcome of every tier."""

    selected_path: OptimizerPath
    trajectory: ScoredSequence
    outcomes: tuple[TierOutcome, ...]
    fallback_reason: str | None


class ProjectionOptimizer:
    """Attempts tiers from full_mpc down to cap_only_baseline.

    The first tier that yields a candidate is selected; later tiers are
    recorded as not attempted. A cap-only tier is always appended when the
    supplied tiers lack one, so the search is total.

    Usage:
        optimizer = ProjectionOptimizer()
        result = optimizer.optimize(problem)
    """

    def __init__(self, tiers: Iterable[OptimizerTier] | None = None) -> None:
        tiers = tuple(tiers) if tiers is not None else default_tiers()
        if not any(t.path == OptimizerPath.CAP_ONLY_BASELINE for t in tiers):
            tiers = tiers + (CapOnlyBaselineTier(),)
        self.tiers = tuple(sorted(tiers, key=lambda t: t.path))

    def optimize(self, problem: ProjectionProblem) -> OptimizationResult:
        outcomes: dict[OptimizerPath, TierOutcome] = {}
        failures = []
        selected: tuple[OptimizerPath, ScoredSequence] | None = None

        for tier in self.tiers:
            if selected is not None:
                outcomes.setdefault(tier.path, TierOutcome(path=tier.path, attempted=False, reason="not_attempted"))
                continue
            result = tier.attempt(problem)
            logger.debug(
                "Tier %s: %d candidates, %d pruned, reason=%s",
                tier.path.name,
                result.candidate_count,
                result.prune_count,
                result.reason,
            )
            outcomes[tier.path] = TierOutcome(
                path=tier.path,
                attempted=True,
                candidate_count=result.candidate_count,
                prune_count=result.prune_count,
                reason=result.reason,
            )
            best = select_best(result.trajectories)
            if best is not None:
                selected = (tier.path, best)
            else:
                failures.append(f"{tier.path.name.lower()}:{result.reason or 'no_candidates'}")

        if selected is None:
            # Only reachable when a custom cap-only tier yields nothing
            fallback = CapOnlyBaselineTier().attempt(problem)
            selected = (OptimizerPath.CAP_ONLY_BASELINE, fallback.trajectories[0])
            failures.append("cap_only_baseline:builtin_fallback")

        for path in OptimizerPath:
            outcomes.setdefault(path, TierOutcome(path=path, attempted=False, reason="tier_not_configured"))

        path, trajectory = selected
        logger.info("Selected optimizer path %s", path.name.lower())
        return OptimizationResult(
            selected_path=path,
            trajectory=trajectory,
            outcomes=tuple(outcomes[p] for p in OptimizerPath),
            fallback_reason="; ".join(failures) if failures else None,
        )
