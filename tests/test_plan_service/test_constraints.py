"""Tests for single-activity scheduling checks."""

from __future__ import annotations

from datetime import date

import pytest

from plan_service import ActivityPlan, ActivityPlanNotFoundError, InMemoryActivityPlanReader, PlanNotFoundError
from plan_service.constraints import (
    HARD_REST_DAY,
    MAX_SESSIONS_PER_WEEK,
    MAX_SINGLE_SESSION_DURATION,
    WEEKLY_LOAD_CAP,
    WITHIN_PLAN_WINDOW,
    validate_activity,
)
from projection_engine.models.enums import ConstraintStatus

AS_OF = date(2026, 3, 1)
WEDNESDAY = date(2026, 3, 4)


@pytest.fixture
def plan_id(service, plan_request, config_request) -> str:
    return service.create_from_creation_config(plan_request, config_request, as_of=AS_OF).id


class TestValidateConstraints:
    def test_all_rules_satisfied(self, service, plan_id) -> None:
        result = service.validate_constraints(plan_id, WEDNESDAY, "easy")
        assert result.can_schedule
        assert set(result.constraints) == {
            WITHIN_PLAN_WINDOW,
            HARD_REST_DAY,
            MAX_SESSIONS_PER_WEEK,
            WEEKLY_LOAD_CAP,
            MAX_SINGLE_SESSION_DURATION,
        }
        assert all(r.status == ConstraintStatus.SATISFIED for r in result.constraints.values())

    def test_hard_rest_day(self, service, plan_id) -> None:
        result = service.validate_constraints(plan_id, date(2026, 3, 6), "easy")
        assert not result.can_schedule
        assert result.constraints[HARD_REST_DAY].status == ConstraintStatus.VIOLATED
        assert "Friday" in result.constraints[HARD_REST_DAY].message

    @pytest.mark.parametrize("day", [date(2026, 3, 1), date(2026, 6, 22)])
    def test_outside_plan_window(self, service, plan_id, day) -> None:
        result = service.validate_constraints(plan_id, day, "easy")
        assert result.constraints[WITHIN_PLAN_WINDOW].status == ConstraintStatus.VIOLATED
        assert not result.can_schedule

    def test_plan_end_date_is_inside_window(self, service, plan_id) -> None:
        result = service.validate_constraints(plan_id, date(2026, 6, 21), "easy")
        assert result.constraints[WITHIN_PLAN_WINDOW].status == ConstraintStatus.SATISFIED

    def test_max_sessions_per_week(self, service, plan_store, plan_id) -> None:
        for day in (date(2026, 3, 2), date(2026, 3, 3), date(2026, 3, 5)):
            plan_store.schedule(plan_id, "easy", day)
        result = service.validate_constraints(plan_id, WEDNESDAY, "easy")
        assert result.constraints[MAX_SESSIONS_PER_WEEK].status == ConstraintStatus.VIOLATED

    def test_other_weeks_do_not_count(self, service, plan_store, plan_id) -> None:
        for day in (date(2026, 3, 9), date(2026, 3, 10), date(2026, 3, 11)):
            plan_store.schedule(plan_id, "long", day)
        result = service.validate_constraints(plan_id, WEDNESDAY, "easy")
        assert result.can_schedule

    def test_weekly_load_cap(self, service, plan_store, plan_id) -> None:
        plan_store.schedule(plan_id, "long", date(2026, 3, 2))
        plan_store.schedule(plan_id, "long", date(2026, 3, 3))
        result = service.validate_constraints(plan_id, WEDNESDAY, "long")
        assert result.constraints[WEEKLY_LOAD_CAP].status == ConstraintStatus.SATISFIED
        plan_store.schedule(plan_id, "tempo", date(2026, 3, 4))
        result = service.validate_constraints(plan_id, date(2026, 3, 7), "long")
        assert result.constraints[WEEKLY_LOAD_CAP].status == ConstraintStatus.VIOLATED

    def test_session_duration(self, service, plan_id) -> None:
        result = service.validate_constraints(plan_id, WEDNESDAY, "long")
        assert result.constraints[MAX_SINGLE_SESSION_DURATION].status == ConstraintStatus.VIOLATED
        assert "150" in result.constraints[MAX_SINGLE_SESSION_DURATION].message

    def test_unknown_scheduled_activity_adds_no_load(self, service, plan_store, plan_id) -> None:
        plan_store.schedule(plan_id, "deleted-template", date(2026, 3, 2))
        result = service.validate_constraints(plan_id, WEDNESDAY, "tempo")
        assert result.constraints[WEEKLY_LOAD_CAP].status == ConstraintStatus.SATISFIED
        assert "90 of 600" in result.constraints[WEEKLY_LOAD_CAP].message


class TestLookupErrors:
    def test_unknown_plan(self, service) -> None:
        with pytest.raises(PlanNotFoundError) as exc:
            service.validate_constraints("plan-404", WEDNESDAY, "easy")
        assert exc.value.code == "training_plan_not_found"

    def test_unknown_activity_plan(self, service, plan_id) -> None:
        with pytest.raises(ActivityPlanNotFoundError) as exc:
            service.validate_constraints(plan_id, WEDNESDAY, "intervals")
        assert exc.value.code == "activity_plan_not_found"

    def test_no_activity_plan_reader(self, service_factory, plan_request, config_request) -> None:
        service = service_factory(activity_plan_reader=None)
        plan_id = service.create_from_creation_config(plan_request, config_request, as_of=AS_OF).id
        with pytest.raises(ActivityPlanNotFoundError):
            service.validate_constraints(plan_id, WEDNESDAY, "easy")


class TestValidateActivity:
    def test_missing_limits_and_window(self) -> None:
        reader = InMemoryActivityPlanReader()
        activity = ActivityPlan(id="x", estimated_tss=500, estimated_duration_minutes=400)
        result = validate_activity({}, [], WEDNESDAY, activity, reader)
        assert result.can_schedule
        assert result.constraints[WITHIN_PLAN_WINDOW].status == ConstraintStatus.UNKNOWN
        for name in (HARD_REST_DAY, MAX_SESSIONS_PER_WEEK, WEEKLY_LOAD_CAP, MAX_SINGLE_SESSION_DURATION):
            assert result.constraints[name].status == ConstraintStatus.SATISFIED
