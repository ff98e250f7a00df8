"""Inventory plan lifecycle: create, edit, start, complete, close, delete.

Status changes are compare-and-set updates
(``UPDATE ... WHERE id = :id AND status = :from``) so two concurrent
transition calls can never both succeed.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import delete, func, or_, update
from sqlalchemy.orm import Session

from app.core.exceptions import InvalidStateError, NotFoundError, ValidationError
from app.models.inventory import InventoryPlan, MatchStatus, PlanStatus, ScanRecord, ScopeType
from app.services.asset_registry import AssetRegistry, SqlAssetRegistry
from app.services.inventory_scope import resolve_plan_scope
from app.services.plan_state import (
    ALLOWED_FROM,
    EDITABLE_STATUSES,
    PlanAction,
    ensure_can,
    next_status,
    ordered_values,
)

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 200
EDITABLE_FIELDS = ("name", "description", "start_date", "end_date", "scope_type", "scope_ids")


@dataclass
class RecordCounts:
    """Scan records of one plan, by match status."""

    matched: int = 0
    discrepancy: int = 0
    unmatched: int = 0

    @property
    def scanned(self) -> int:
        return self.matched + self.discrepancy + self.unmatched

    def to_dict(self) -> Dict[str, int]:
        return {
            "matched": self.matched,
            "discrepancy": self.discrepancy,
            "unmatched": self.unmatched,
            "scanned": self.scanned,
        }


@dataclass
class PlanDetail:
    """A plan with its record counts and, when computed, its scope size."""

    plan: InventoryPlan
    counts: RecordCounts = field(default_factory=RecordCounts)
    total_assets: Optional[int] = None
    scope_fallback_to_all: bool = False


def count_records_by_status(db: Session, plan_ids: Iterable[int]) -> Dict[int, RecordCounts]:
    """One grouped query for the record counts of several plans."""
    plan_ids = list(plan_ids)
    counts = {plan_id: RecordCounts() for plan_id in plan_ids}
    if not plan_ids:
        return counts

    rows = (
        db.query(ScanRecord.plan_id, ScanRecord.match_status, func.count(ScanRecord.id))
        .filter(ScanRecord.plan_id.in_(plan_ids))
        .group_by(ScanRecord.plan_id, ScanRecord.match_status)
        .all()
    )
    for plan_id, match_status, count in rows:
        setattr(counts[plan_id], MatchStatus(match_status).value, count)
    return counts


def _parse_date(value: Any, field_name: str, errors: List[Dict[str, str]]) -> Optional[date]:
    if value is None or value == "":
        errors.append({"field": field_name, "message": "is required"})
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        errors.append({"field": field_name, "message": "must be a date (YYYY-MM-DD)"})
        return None


def validate_plan_fields(data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a full set of plan fields and return them normalized.

    Raises ``ValidationError`` listing every problem at once.
    """
    errors: List[Dict[str, str]] = []

    name = (data.get("name") or "").strip()
    if not name:
        errors.append({"field": "name", "message": "is required"})
    elif len(name) > NAME_MAX_LENGTH:
        errors.append({"field": "name", "message": f"must be at most {NAME_MAX_LENGTH} characters"})

    start_date = _parse_date(data.get("start_date"), "start_date", errors)
    end_date = _parse_date(data.get("end_date"), "end_date", errors)
    if start_date and end_date and end_date < start_date:
        errors.append({"field": "end_date", "message": "must not be before start_date"})

    scope_type = data.get("scope_type") or ScopeType.ALL
    try:
        scope_type = ScopeType(scope_type)
    except ValueError:
        errors.append({
            "field": "scope_type",
            "message": f"must be one of {', '.join(s.value for s in ScopeType)}",
        })
        scope_type = None

    scope_ids: List[int] = []
    try:
        scope_ids = sorted({int(i) for i in (data.get("scope_ids") or [])})
    except (TypeError, ValueError):
        errors.append({"field": "scope_ids", "message": "must be a list of integer ids"})

    if scope_type == ScopeType.ALL:
        scope_ids = []
    elif scope_type is not None and not scope_ids and not any(
        e["field"] == "scope_ids" for e in errors
    ):
        errors.append({
            "field": "scope_ids",
            "message": f"at least one id is required for scope '{scope_type.value}'",
        })

    if errors:
        raise ValidationError(errors)

    description = data.get("description")
    return {
        "name": name,
        "description": description.strip() if isinstance(description, str) and description.strip() else None,
        "start_date": start_date,
        "end_date": end_date,
        "scope_type": scope_type,
        "scope_ids": scope_ids,
    }


class InventoryPlanService:
    """Create and drive inventory plans through their lifecycle."""

    def __init__(self, db: Session, registry: Optional[AssetRegistry] = None):
        self.db = db
        self.registry = registry or SqlAssetRegistry(db)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_plan(self, plan_id: int) -> InventoryPlan:
        plan = self.db.query(InventoryPlan).filter(InventoryPlan.id == plan_id).first()
        if not plan:
            raise NotFoundError("Inventory plan", plan_id)
        return plan

    def get_plan_detail(self, plan_id: int) -> PlanDetail:
        plan = self.get_plan(plan_id)
        scope = resolve_plan_scope(plan)
        return PlanDetail(
            plan=plan,
            counts=count_records_by_status(self.db, [plan.id])[plan.id],
            total_assets=self.registry.count_matching(scope.asset_filter),
            scope_fallback_to_all=scope.fallback_to_all,
        )

    def list_plans(
        self,
        page: int = 1,
        page_size: int = 50,
        status: Optional[PlanStatus] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[PlanDetail], int]:
        """Newest plans first, each with its record counts."""
        query = self.db.query(InventoryPlan)
        if status is not None:
            query = query.filter(InventoryPlan.status == PlanStatus(status))
        if search:
            pattern = f"%{search.strip()}%"
            query = query.filter(
                or_(InventoryPlan.name.ilike(pattern), InventoryPlan.description.ilike(pattern))
            )

        total = query.count()
        plans = (
            query.order_by(InventoryPlan.created_at.desc(), InventoryPlan.id.desc())
            .offset((max(page, 1) - 1) * page_size)
            .limit(page_size)
            .all()
        )
        counts = count_records_by_status(self.db, [p.id for p in plans])
        return [PlanDetail(plan=p, counts=counts[p.id]) for p in plans], total

    # ------------------------------------------------------------------
    # Create / edit / delete
    # ------------------------------------------------------------------

    def create(self, data: Dict[str, Any], actor_id: Optional[int]) -> InventoryPlan:
        fields = validate_plan_fields(data)
        plan = InventoryPlan(**fields, status=PlanStatus.DRAFT, created_by=actor_id)
        self.db.add(plan)
        self.db.flush()
        self.db.refresh(plan)
        logger.info(
            "Inventory plan %s created by user %s (scope=%s ids=%s)",
            plan.id, actor_id, plan.scope_type.value, plan.scope_ids,
        )
        return plan

    def update(self, plan_id: int, data: Dict[str, Any], actor_id: Optional[int]) -> InventoryPlan:
        """Partial edit; the merged result is validated as a whole."""
        plan = self.get_plan(plan_id)
        ensure_can(PlanAction.EDIT, plan.status)

        merged = {name: getattr(plan, name) for name in EDITABLE_FIELDS}
        changes = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}
        merged.update(changes)
        if "scope_type" in changes and "scope_ids" not in changes:
            # Changing the scope type invalidates ids chosen for the old one;
            # an unknown type is reported by validate_plan_fields
            try:
                new_scope_type = ScopeType(changes["scope_type"] or ScopeType.ALL)
            except ValueError:
                new_scope_type = None
            if new_scope_type is not None and new_scope_type != plan.scope_type:
                merged["scope_ids"] = []
        fields = validate_plan_fields(merged)

        result = self.db.execute(
            update(InventoryPlan)
            .where(InventoryPlan.id == plan_id, InventoryPlan.status.in_(EDITABLE_STATUSES))
            .values(**fields)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self._raise_lost_race(plan_id, PlanAction.EDIT)
        self.db.refresh(plan)

        logger.info("Inventory plan %s edited by user %s", plan_id, actor_id)
        return plan

    def delete(self, plan_id: int, actor_id: Optional[int]) -> None:
        plan = self.get_plan(plan_id)
        ensure_can(PlanAction.DELETE, plan.status)

        result = self.db.execute(
            delete(InventoryPlan)
            .where(InventoryPlan.id == plan_id, InventoryPlan.status == PlanStatus.DRAFT)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self._raise_lost_race(plan_id, PlanAction.DELETE)
        self.db.expunge(plan)
        logger.info("Inventory plan %s deleted by user %s", plan_id, actor_id)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def start(self, plan_id: int, actor_id: Optional[int]) -> InventoryPlan:
        return self._transition(plan_id, PlanAction.START, actor_id)

    def complete(self, plan_id: int, actor_id: Optional[int]) -> InventoryPlan:
        """Completion does not require every scoped asset to be scanned."""
        return self._transition(plan_id, PlanAction.COMPLETE, actor_id)

    def close(self, plan_id: int, actor_id: Optional[int]) -> InventoryPlan:
        return self._transition(plan_id, PlanAction.CLOSE, actor_id)

    def _transition(self, plan_id: int, action: PlanAction, actor_id: Optional[int]) -> InventoryPlan:
        plan = self.get_plan(plan_id)
        from_status = plan.status
        to_status = next_status(action, from_status)

        result = self.db.execute(
            update(InventoryPlan)
            .where(InventoryPlan.id == plan_id, InventoryPlan.status == from_status)
            .values(status=to_status)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self._raise_lost_race(plan_id, action)
        self.db.refresh(plan)

        logger.info(
            "Inventory plan %s: %s -> %s by user %s",
            plan_id, from_status.value, to_status.value, actor_id,
        )
        return plan

    def _raise_lost_race(self, plan_id: int, action: PlanAction) -> None:
        """A concurrent request changed the status between read and write."""
        self.db.expire_all()
        plan = self.get_plan(plan_id)
        logger.warning(
            "Inventory plan %s: %s lost a concurrent status change (now %s)",
            plan.id, action.value, plan.status.value,
        )
        ensure_can(action, plan.status)
        raise InvalidStateError(
            f"Inventory plan {plan.id} was modified concurrently; retry the {action.value}",
            current_status=plan.status.value,
            required_status=ordered_values(ALLOWED_FROM[action]),
        )
