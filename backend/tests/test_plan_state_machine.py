"""Tests for the inventory plan lifecycle."""

from datetime import date

import pytest

from app.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from app.models.inventory import InventoryPlan, PlanStatus, ScopeType
from app.services.inventory_plan_service import InventoryPlanService
from app.services.plan_state import (
    ALLOWED_FROM,
    PlanAction,
    can,
    ensure_can,
    next_status,
)
from app.services.scan_service import ScanIngestionService

# (status, operation) -> resulting status, or None when the operation is rejected
EXPECTED = {
    (PlanStatus.DRAFT, "start"): PlanStatus.IN_PROGRESS,
    (PlanStatus.DRAFT, "complete"): None,
    (PlanStatus.DRAFT, "close"): None,
    (PlanStatus.DRAFT, "delete"): "deleted",
    (PlanStatus.DRAFT, "scan"): None,
    (PlanStatus.IN_PROGRESS, "start"): None,
    (PlanStatus.IN_PROGRESS, "complete"): PlanStatus.COMPLETED,
    (PlanStatus.IN_PROGRESS, "close"): None,
    (PlanStatus.IN_PROGRESS, "delete"): None,
    (PlanStatus.IN_PROGRESS, "scan"): PlanStatus.IN_PROGRESS,
    (PlanStatus.COMPLETED, "start"): None,
    (PlanStatus.COMPLETED, "complete"): None,
    (PlanStatus.COMPLETED, "close"): PlanStatus.CLOSED,
    (PlanStatus.COMPLETED, "delete"): None,
    (PlanStatus.COMPLETED, "scan"): None,
    (PlanStatus.CLOSED, "start"): None,
    (PlanStatus.CLOSED, "complete"): None,
    (PlanStatus.CLOSED, "close"): None,
    (PlanStatus.CLOSED, "delete"): None,
    (PlanStatus.CLOSED, "scan"): None,
}


def _plan(db_session, status=PlanStatus.DRAFT, **overrides) -> InventoryPlan:
    values = {
        "name": "Q1 count",
        "start_date": date(2025, 1, 1),
        "end_date": date(2025, 1, 31),
        "scope_type": ScopeType.ALL,
        "scope_ids": [],
        "status": status,
    }
    values.update(overrides)
    plan = InventoryPlan(**values)
    db_session.add(plan)
    db_session.commit()
    db_session.refresh(plan)
    return plan


def _run(db_session, plan_id, operation):
    plans = InventoryPlanService(db_session)
    if operation == "start":
        return plans.start(plan_id, actor_id=None)
    if operation == "complete":
        return plans.complete(plan_id, actor_id=None)
    if operation == "close":
        return plans.close(plan_id, actor_id=None)
    if operation == "delete":
        return plans.delete(plan_id, actor_id=None)
    return ScanIngestionService(db_session).scan_manual(plan_id, "A-UNKNOWN", actor_id=None)


class TestTransitionTable:
    """Pure lifecycle rules."""

    def test_next_status(self):
        assert next_status(PlanAction.START) == PlanStatus.IN_PROGRESS
        assert next_status(PlanAction.COMPLETE, PlanStatus.IN_PROGRESS) == PlanStatus.COMPLETED
        assert next_status(PlanAction.CLOSE, PlanStatus.COMPLETED) == PlanStatus.CLOSED

    def test_next_status_rejects_non_transitions(self):
        with pytest.raises(ValueError):
            next_status(PlanAction.DELETE)

    def test_closed_allows_nothing(self):
        assert not any(can(action, PlanStatus.CLOSED) for action in PlanAction)

    def test_edit_only_before_completion(self):
        assert ALLOWED_FROM[PlanAction.EDIT] == {PlanStatus.DRAFT, PlanStatus.IN_PROGRESS}

    def test_rejection_carries_statuses(self):
        with pytest.raises(InvalidStateError) as exc_info:
            ensure_can(PlanAction.START, PlanStatus.COMPLETED)
        err = exc_info.value
        assert err.current_status == "completed"
        assert err.required_status == ["draft"]
        assert err.to_dict()["code"] == "invalid_state"

    def test_scan_rejection_names_in_progress(self):
        with pytest.raises(InvalidStateError) as exc_info:
            ensure_can(PlanAction.SCAN, PlanStatus.DRAFT)
        assert "in_progress" in exc_info.value.message


class TestStateOperationMatrix:
    """Every operation in every status."""

    @pytest.mark.parametrize("status, operation", sorted(EXPECTED, key=lambda k: (k[0].value, k[1])))
    def test_matrix(self, db_session, status, operation):
        plan = _plan(db_session, status=status)
        plan_id = plan.id
        expected = EXPECTED[(status, operation)]

        if expected is None:
            with pytest.raises(InvalidStateError):
                _run(db_session, plan_id, operation)
            db_session.expire_all()
            assert db_session.get(InventoryPlan, plan_id).status == status
        elif expected == "deleted":
            _run(db_session, plan_id, operation)
            db_session.expire_all()
            assert db_session.get(InventoryPlan, plan_id) is None
        else:
            _run(db_session, plan_id, operation)
            db_session.expire_all()
            assert db_session.get(InventoryPlan, plan_id).status == expected

    def test_full_lifecycle(self, db_session, test_user):
        plans = InventoryPlanService(db_session)
        plan = plans.create(
            {"name": "Annual", "start_date": "2025-03-01", "end_date": "2025-03-01"}, actor_id=test_user.id
        )
        assert plan.status == PlanStatus.DRAFT
        assert plans.start(plan.id, 1).status == PlanStatus.IN_PROGRESS
        # Completion does not require any scans
        assert plans.complete(plan.id, 1).status == PlanStatus.COMPLETED
        assert plans.close(plan.id, 1).status == PlanStatus.CLOSED

    def test_double_start_fails(self, db_session):
        plan = _plan(db_session)
        plans = InventoryPlanService(db_session)
        plans.start(plan.id, None)
        with pytest.raises(InvalidStateError):
            plans.start(plan.id, None)

    def test_stale_read_loses_compare_and_set(self, db_session, monkeypatch):
        """A status changed behind the service's back makes the guarded UPDATE miss."""
        plan = _plan(db_session)
        plans = InventoryPlanService(db_session)
        real_get_plan = plans.get_plan

        def stale_get_plan(plan_id):
            fetched = real_get_plan(plan_id)
            # Another request starts the plan between our read and our write
            db_session.execute(
                InventoryPlan.__table__.update()
                .where(InventoryPlan.id == plan_id)
                .values(status=PlanStatus.IN_PROGRESS)
            )
            monkeypatch.setattr(plans, "get_plan", real_get_plan)
            return fetched

        monkeypatch.setattr(plans, "get_plan", stale_get_plan)
        with pytest.raises(InvalidStateError) as exc_info:
            plans.start(plan.id, None)
        assert exc_info.value.current_status == "in_progress"

    def test_unknown_plan(self, db_session):
        with pytest.raises(NotFoundError) as exc_info:
            InventoryPlanService(db_session).start(999, None)
        assert exc_info.value.status_code == 404


class TestCreateAndEdit:
    """Plan field validation."""

    def test_scope_ids_are_deduplicated_and_sorted(self, db_session, test_user):
        plan = InventoryPlanService(db_session).create(
            {
                "name": " IT count ",
                "start_date": date(2025, 1, 1),
                "end_date": date(2025, 1, 2),
                "scope_type": "department",
                "scope_ids": [3, 1, 3],
            },
            actor_id=test_user.id,
        )
        assert plan.name == "IT count"
        assert plan.scope_type == ScopeType.DEPARTMENT
        assert plan.scope_ids == [1, 3]
        assert plan.created_by == test_user.id

    def test_scope_ids_dropped_for_all(self, db_session):
        plan = InventoryPlanService(db_session).create(
            {"name": "All", "start_date": "2025-01-01", "end_date": "2025-01-02",
             "scope_type": "all", "scope_ids": [4]},
            actor_id=None,
        )
        assert plan.scope_ids == []

    def test_validation_lists_every_problem(self, db_session):
        with pytest.raises(ValidationError) as exc_info:
            InventoryPlanService(db_session).create(
                {"name": "", "start_date": "2025-02-01", "end_date": "2025-01-01",
                 "scope_type": "location", "scope_ids": []},
                actor_id=None,
            )
        fields = {e["field"] for e in exc_info.value.errors}
        assert fields == {"name", "end_date", "scope_ids"}
        assert exc_info.value.status_code == 422

    def test_bad_date_and_scope_type(self, db_session):
        with pytest.raises(ValidationError) as exc_info:
            InventoryPlanService(db_session).create(
                {"name": "x", "start_date": "not-a-date", "scope_type": "building"},
                actor_id=None,
            )
        fields = {e["field"] for e in exc_info.value.errors}
        assert fields == {"start_date", "end_date", "scope_type"}

    def test_partial_update_revalidates_merged_fields(self, db_session):
        plan = _plan(db_session)
        plans = InventoryPlanService(db_session)
        with pytest.raises(ValidationError):
            plans.update(plan.id, {"end_date": date(2024, 12, 31)}, actor_id=None)
        updated = plans.update(plan.id, {"description": "second floor"}, actor_id=None)
        assert updated.description == "second floor"
        assert updated.name == "Q1 count"

    def test_changing_scope_type_requires_new_ids(self, db_session):
        plan = _plan(db_session, scope_type=ScopeType.DEPARTMENT, scope_ids=[1])
        plans = InventoryPlanService(db_session)
        with pytest.raises(ValidationError):
            plans.update(plan.id, {"scope_type": ScopeType.LOCATION}, actor_id=None)
        updated = plans.update(
            plan.id, {"scope_type": ScopeType.LOCATION, "scope_ids": [7]}, actor_id=None
        )
        assert (updated.scope_type, updated.scope_ids) == (ScopeType.LOCATION, [7])

    def test_update_with_unknown_scope_type(self, db_session):
        plan = _plan(db_session, scope_type=ScopeType.DEPARTMENT, scope_ids=[1])
        with pytest.raises(ValidationError) as exc_info:
            InventoryPlanService(db_session).update(plan.id, {"scope_type": "building"}, actor_id=None)
        assert [e["field"] for e in exc_info.value.errors] == ["scope_type"]
        db_session.refresh(plan)
        assert (plan.scope_type, plan.scope_ids) == (ScopeType.DEPARTMENT, [1])

    def test_edit_allowed_while_in_progress(self, db_session):
        plan = _plan(db_session, status=PlanStatus.IN_PROGRESS)
        updated = InventoryPlanService(db_session).update(plan.id, {"name": "Renamed"}, None)
        assert updated.name == "Renamed"
        assert updated.status == PlanStatus.IN_PROGRESS

    @pytest.mark.parametrize("status", [PlanStatus.COMPLETED, PlanStatus.CLOSED])
    def test_edit_rejected_after_completion(self, db_session, status):
        plan = _plan(db_session, status=status)
        with pytest.raises(InvalidStateError):
            InventoryPlanService(db_session).update(plan.id, {"name": "Renamed"}, None)
