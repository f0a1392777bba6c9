"""Candidate scoring and the deterministic tie-break chain.

Candidates are compared by a sort key built from ``TIE_BREAK_CHAIN``:
objective score, then smaller ramp variance, then higher specificity to the
nearest goal, then the lowest week/candidate index. No randomness is used
anywhere, so identical inputs always select the identical candidate.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from projection_engine.optimizer.problem import ProjectionProblem, WeekSlot

# Scores are rounded before comparison so float noise cannot reorder ties
_SCORE_DECIMALS = 9


@dataclass(frozen=True)
class ScoredSequence:
    """A (partial) weekly load sequence with its tie-break attributes."""

    loads: tuple[float, ...]
    score: float
    ramp_variance: float
    specificity: float
    index: tuple[int, ...]
    ctl_end: float

    def sort_key(self) -> tuple:
        return (
            round(self.score, _SCORE_DECIMALS),
            round(self.ramp_variance, _SCORE_DECIMALS),
            -round(self.specificity, _SCORE_DECIMALS),
            self.index,
        )


def week_cost(
    problem: ProjectionProblem,
    slot: WeekSlot,
    previous_tss: float,
    weekly_tss: float,
) -> float:
    """Per-week objective: demand tracking, smoothness, ramp risk and floor."""
    weights = problem.weights
    scale = max(slot.reference_tss, 20.0)
    cost = weights.demand * slot.goal_weight * ((weekly_tss - slot.reference_tss) / scale) ** 2
    cost += weights.smoothness * ((weekly_tss - previous_tss) / scale) ** 2
    excess = (weekly_tss - previous_tss) - problem.learned_ramp_rate
    if excess > 0:
        cost += weights.risk * excess / scale
    if problem.weekly_floor is not None and weekly_tss < problem.weekly_floor:
        cost += weights.floor * ((problem.weekly_floor - weekly_tss) / scale) ** 2
    return cost


def preparedness_cost(problem: ProjectionProblem, slot: WeekSlot, ctl_end: float) -> float:
    """End-of-horizon distance from the ideal CTL path."""
    target = max(slot.target_ctl, 10.0)
    return problem.weights.preparedness * slot.goal_weight * ((ctl_end - slot.target_ctl) / target) ** 2


def specificity(problem: ProjectionProblem, slot: WeekSlot, ctl_end: float) -> float:
    """Closeness (0-1) of a CTL to the governing goal's demand."""
    target = problem.demand_for(slot.goal_id).target_ctl
    return max(0.0, 1.0 - abs(ctl_end - target) / max(target, 1.0))


def ramp_variance(previous_tss: float, loads: Sequence[float]) -> float:
    deltas = np.diff(np.array((previous_tss, *loads), dtype=np.float64))
    if deltas.size == 0:
        return 0.0
    return float(np.var(deltas))


def select_best(candidates: Sequence[ScoredSequence]) -> ScoredSequence | None:
    """Pick the best candidate by the tie-break chain, or None if empty."""
    if not candidates:
        return None
    return min(candidates, key=ScoredSequence.sort_key)
