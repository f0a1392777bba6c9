"""Optimizer tiers: pluggable strategies sharing one ``attempt`` interface.

Tiers, in the order the optimizer tries them:
    1. full_mpc: receding-horizon search around the reference trajectory
    2. degraded_bounded_mpc: shorter horizon, cap-bounded candidate lattice
    3. legacy_optimizer: per-goal monotonic ramp toward demand, capped
    4. cap_only_baseline: hold the previous week's load within the caps

Each attempt returns a ``CandidateSet`` with its candidate and prune counts,
even when it produces nothing; control flow never relies on exceptions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from itertools import product

from projection_engine.math.training_load import weekly_tss_for_ctl_ramp
from projection_engine.models.enums import OptimizerPath, WeekPattern
from projection_engine.models.projection import GoalDemand
from projection_engine.optimizer.problem import ProjectionProblem, WeekSlot, evaluate_week
from projection_engine.optimizer.selection import (
    ScoredSequence,
    preparedness_cost,
    ramp_variance,
    select_best,
    specificity,
    week_cost,
)

BUDGET_EXCEEDED = "computation_budget_exceeded"


@dataclass(frozen=True)
class CandidateSet:
    """Complete weekly trajectories one tier produced."""

    path: OptimizerPath
    trajectories: tuple[ScoredSequence, ...] = field(default_factory=tuple)
    candidate_count: int = 0
    prune_count: int = 0
    reason: str | None = None


class OptimizerTier(ABC):
    """Base class for optimizer tiers."""

    path: OptimizerPath

    @abstractmethod
    def attempt(self, problem: ProjectionProblem) -> CandidateSet:
        """Propose zero or more complete weekly trajectories for *problem*."""
        ...


def _capped_upper(problem: ProjectionProblem, slot: WeekSlot, previous: float, ctl: float, upper: float) -> float:
    """Tighten *upper* by the weekly cap and the CTL ramp cap."""
    if problem.weekly_cap is not None:
        upper = min(upper, problem.weekly_cap)
    return weekly_tss_for_ctl_ramp(
        ctl, problem.config.max_ctl_ramp_per_week, max(0.0, upper), problem.fitness_tc, slot.days
    )


def _finish(
    problem: ProjectionProblem,
    loads: list[float],
    cost: float,
    ctl_end: float,
    index: tuple[int, ...],
) -> ScoredSequence:
    last = problem.weeks[-1]
    return ScoredSequence(
        loads=tuple(loads),
        score=cost + preparedness_cost(problem, last, ctl_end),
        ramp_variance=ramp_variance(problem.start.weekly_tss, loads),
        specificity=specificity(problem, last, ctl_end),
        index=index,
        ctl_end=ctl_end,
    )


class RecedingHorizonTier(OptimizerTier):
    """Model-predictive search: optimize a short horizon, commit one week.

    At every week all lattice sequences over the horizon are simulated; any
    sequence breaking a hard constraint is pruned. The best survivor by the
    tie-break chain supplies the committed week. If some week has no
    survivor the tier yields nothing.
    """

    @abstractmethod
    def _search_space(self, problem: ProjectionProblem) -> tuple[int, tuple[float, ...], int]:
        """Return ``(horizon_weeks, levels, max_evaluations)``."""
        ...

    @abstractmethod
    def _level_base(self, problem: ProjectionProblem, slot: WeekSlot, previous: float) -> float:
        """Load that a lattice level of 1.0 corresponds to."""
        ...

    def _sequence(
        self,
        problem: ProjectionProblem,
        first: int,
        combo: tuple[int, ...],
        levels: tuple[float, ...],
        previous: float,
        ctl: float,
    ) -> ScoredSequence | None:
        start_previous = previous
        loads = []
        cost = 0.0
        for offset, level_index in enumerate(combo):
            slot = problem.weeks[first + offset]
            load = max(0.0, self._level_base(problem, slot, previous) * levels[level_index])
            evaluation = evaluate_week(problem, slot, previous, ctl, load)
            if not evaluation.feasible:
                return None
            cost += week_cost(problem, slot, previous, load)
            loads.append(load)
            previous, ctl = load, evaluation.ctl_end
        last = problem.weeks[first + len(combo) - 1]
        cost += preparedness_cost(problem, last, ctl)
        return ScoredSequence(
            loads=tuple(loads),
            score=cost,
            ramp_variance=ramp_variance(start_previous, loads),
            specificity=specificity(problem, last, ctl),
            index=combo,
            ctl_end=ctl,
        )

    def attempt(self, problem: ProjectionProblem) -> CandidateSet:
        horizon, levels, budget = self._search_space(problem)
        n_weeks = len(problem.weeks)
        estimate = sum(len(levels) ** min(horizon, n_weeks - k) for k in range(n_weeks))
        if estimate > budget:
            return CandidateSet(path=self.path, reason=BUDGET_EXCEEDED)

        previous, ctl = problem.start.weekly_tss, problem.start.ctl
        committed, indices = [], []
        total_cost = 0.0
        candidates = pruned = 0
        for k in range(n_weeks):
            survivors = []
            for combo in product(range(len(levels)), repeat=min(horizon, n_weeks - k)):
                sequence = self._sequence(problem, k, combo, levels, previous, ctl)
                if sequence is None:
                    pruned += 1
                else:
                    survivors.append(sequence)
            candidates += len(survivors)
            best = select_best(survivors)
            if best is None:
                return CandidateSet(
                    path=self.path,
                    candidate_count=candidates,
                    prune_count=pruned,
                    reason=f"no_feasible_candidate_week_{k}",
                )
            load = best.loads[0]
            slot = problem.weeks[k]
            total_cost += week_cost(problem, slot, previous, load)
            ctl = problem.ctl_after(ctl, load, slot.days)
            previous = load
            committed.append(load)
            indices.append(best.index[0])

        trajectory = _finish(problem, committed, total_cost, ctl, tuple(indices))
        return CandidateSet(
            path=self.path,
            trajectories=(trajectory,),
            candidate_count=candidates,
            prune_count=pruned,
        )


class FullMpcTier(RecedingHorizonTier):
    """Full horizon, lattice centred on the reference trajectory."""

    path = OptimizerPath.FULL_MPC

    def _search_space(self, problem: ProjectionProblem) -> tuple[int, tuple[float, ...], int]:
        s = problem.settings
        return s.full_horizon_weeks, s.full_levels, s.full_max_evaluations

    def _level_base(self, problem: ProjectionProblem, slot: WeekSlot, previous: float) -> float:
        return slot.reference_tss


class DegradedBoundedMpcTier(RecedingHorizonTier):
    """Shorter horizon, lattice scaled below the ramp-capped reference."""

    path = OptimizerPath.DEGRADED_BOUNDED_MPC

    def _search_space(self, problem: ProjectionProblem) -> tuple[int, tuple[float, ...], int]:
        s = problem.settings
        return s.degraded_horizon_weeks, s.degraded_levels, s.degraded_max_evaluations

    def _level_base(self, problem: ProjectionProblem, slot: WeekSlot, previous: float) -> float:
        base = min(slot.reference_tss, previous * problem.tss_ramp_factor)
        if slot.pattern == WeekPattern.RECOVERY:
            base = min(base, previous)
        return base


class LegacyOptimizerTier(OptimizerTier):
    """One candidate per goal that needs growth: ramp toward its demand.

    Each week the load heads for the goal's steady-state weekly TSS, shaped
    by the week pattern and bounded by every cap. Candidates that overshoot
    an earlier goal's demand band are pruned.
    """

    path = OptimizerPath.LEGACY_OPTIMIZER

    def _ramp_toward(self, problem: ProjectionProblem, demand: GoalDemand, index: int) -> ScoredSequence | None:
        previous, ctl = problem.start.weekly_tss, problem.start.ctl
        loads = []
        cost = 0.0
        for slot in problem.weeks:
            desired = demand.target_weekly_tss * slot.multiplier
            upper = previous * problem.tss_ramp_factor
            if slot.pattern == WeekPattern.RECOVERY:
                upper = min(upper, previous)
            load = max(0.0, min(desired, _capped_upper(problem, slot, previous, ctl, upper)))
            evaluation = evaluate_week(problem, slot, previous, ctl, load)
            if not evaluation.feasible:
                return None
            cost += week_cost(problem, slot, previous, load)
            loads.append(load)
            previous, ctl = load, evaluation.ctl_end
        return _finish(problem, loads, cost, ctl, (index,))

    def attempt(self, problem: ProjectionProblem) -> CandidateSet:
        growth = [d for d in problem.demands if d.target_ctl > problem.start.ctl]
        if not growth:
            return CandidateSet(path=self.path, reason="no_goal_requires_growth")
        survivors = []
        pruned = 0
        for index, demand in enumerate(growth):
            sequence = self._ramp_toward(problem, demand, index)
            if sequence is None:
                pruned += 1
            else:
                survivors.append(sequence)
        return CandidateSet(
            path=self.path,
            trajectories=tuple(sorted(survivors, key=ScoredSequence.sort_key)),
            candidate_count=len(survivors),
            prune_count=pruned,
            reason=None if survivors else "all_candidates_pruned",
        )


class CapOnlyBaselineTier(OptimizerTier):
    """Hold the previous week's load, reduced only where a cap requires it."""

    path = OptimizerPath.CAP_ONLY_BASELINE

    def attempt(self, problem: ProjectionProblem) -> CandidateSet:
        previous, ctl = problem.start.weekly_tss, problem.start.ctl
        loads = []
        cost = 0.0
        for slot in problem.weeks:
            load = _capped_upper(problem, slot, previous, ctl, previous)
            cost += week_cost(problem, slot, previous, load)
            loads.append(load)
            ctl = problem.ctl_after(ctl, load, slot.days)
            previous = load
        trajectory = _finish(problem, loads, cost, ctl, (0,))
        return CandidateSet(path=self.path, trajectories=(trajectory,), candidate_count=1)


def default_tiers() -> tuple[OptimizerTier, ...]:
    return (FullMpcTier(), DegradedBoundedMpcTier(), LegacyOptimizerTier(), CapOnlyBaselineTier())
