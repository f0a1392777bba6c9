"""Fixtures for the plan service: in-memory collaborators and a service."""

from __future__ import annotations

import pytest

from plan_service import (
    ActivityPlan,
    InMemoryActivityPlanReader,
    InMemoryPlanStore,
    StaticEffortBestsReader,
    StaticHistoryReader,
    StaticProfileReader,
    TrainingPlanService,
)
from projection_engine.models.context import ProfileSnapshot


@pytest.fixture
def activity_plans() -> InMemoryActivityPlanReader:
    return InMemoryActivityPlanReader(
        [
            ActivityPlan(id="easy", name="Easy run", estimated_tss=50, estimated_duration_minutes=50),
            ActivityPlan(id="long", name="Long run", estimated_tss=180, estimated_duration_minutes=150),
            ActivityPlan(id="tempo", name="Tempo", estimated_tss=90, estimated_duration_minutes=60),
        ]
    )


@pytest.fixture
def plan_store() -> InMemoryPlanStore:
    return InMemoryPlanStore()


@pytest.fixture
def service_factory(steady_history, plan_store, activity_plans):
    """Factory fixture for a service over in-memory collaborators.

    Usage:
        service = service_factory()
        service = service_factory(history=[], require_snapshot_token=True)
        service = service_factory(history_reader=failing_reader)
    """

    def _build(history=None, profile=None, **kwargs) -> TrainingPlanService:
        kwargs.setdefault("plan_store", plan_store)
        kwargs.setdefault("activity_plan_reader", activity_plans)
        kwargs.setdefault("effort_reader", StaticEffortBestsReader())
        kwargs.setdefault("history_reader", StaticHistoryReader(steady_history if history is None else history))
        kwargs.setdefault(
            "profile_reader", StaticProfileReader(profile or ProfileSnapshot(dob="1990-06-15", gender="male"))
        )
        return TrainingPlanService(**kwargs)

    return _build


@pytest.fixture
def service(service_factory) -> TrainingPlanService:
    return service_factory()
