"""Progress and discrepancy reporting for inventory plans.

Everything here is read-only and available in every plan status. The scoped
population is resolved on each call, so assets added, moved or scrapped
while a plan runs are reflected immediately.
"""

import logging
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from app.core.exceptions import ValidationError
from app.models.inventory import InventoryPlan, MatchStatus, ScanRecord
from app.services.asset_registry import AssetRegistry, AssetSnapshot, Page, SqlAssetRegistry
from app.services.inventory_plan_service import InventoryPlanService, count_records_by_status
from app.services.inventory_scope import ResolvedScope, resolve_plan_scope

logger = logging.getLogger(__name__)

ASSET_STATES = ("all", "scanned", "pending")


def completion_percentage(matched: int, total: int) -> int:
    """``matched / total`` as a whole percentage, halves rounded up, capped at 100."""
    if total <= 0:
        return 0
    value = (Decimal(matched) * 100 / Decimal(total)).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return min(int(value), 100)


@dataclass
class PlanProgress:
    plan: InventoryPlan
    total_assets: int
    matched: int
    discrepancy: int
    unmatched: int
    pending: int
    percentage: int
    scope_fallback_to_all: bool = False

    @property
    def scanned(self) -> int:
        return self.matched + self.discrepancy + self.unmatched


@dataclass
class DiscrepancyReport:
    """Final reconciliation of a plan; the three lists are disjoint."""

    progress: PlanProgress
    discrepancy: List[ScanRecord] = field(default_factory=list)
    unmatched: List[ScanRecord] = field(default_factory=list)
    not_scanned: List[AssetSnapshot] = field(default_factory=list)

    @property
    def plan(self) -> InventoryPlan:
        return self.progress.plan


@dataclass
class PlanAsset:
    """A scoped asset and its scan record in the plan, if any."""

    asset: AssetSnapshot
    record: Optional[ScanRecord] = None

    @property
    def is_scanned(self) -> bool:
        return self.record is not None


class InventoryReportService:
    """Read models over a plan's scan records and scoped population."""

    def __init__(self, db: Session, registry: Optional[AssetRegistry] = None):
        self.db = db
        self.registry = registry or SqlAssetRegistry(db)
        self.plans = InventoryPlanService(db, self.registry)

    def _progress(self, plan: InventoryPlan, scope: ResolvedScope) -> PlanProgress:
        counts = count_records_by_status(self.db, [plan.id])[plan.id]
        total = self.registry.count_matching(scope.asset_filter)
        pending = self.registry.count_matching(scope.asset_filter.pending_in(plan.id))
        return PlanProgress(
            plan=plan,
            total_assets=total,
            matched=counts.matched,
            discrepancy=counts.discrepancy,
            unmatched=counts.unmatched,
            pending=pending,
            percentage=completion_percentage(counts.matched, total),
            scope_fallback_to_all=scope.fallback_to_all,
        )

    def progress(self, plan_id: int) -> PlanProgress:
        plan = self.plans.get_plan(plan_id)
        scope = resolve_plan_scope(plan)
        return self._progress(plan, scope)

    def discrepancy_report(self, plan_id: int) -> DiscrepancyReport:
        """Discrepancy and unmatched records plus scoped assets never scanned.

        Each list is ordered by asset tag, ties broken by insertion order.
        """
        plan = self.plans.get_plan(plan_id)
        scope = resolve_plan_scope(plan)
        records = (
            self.db.query(ScanRecord)
            .options(joinedload(ScanRecord.asset))
            .filter(
                ScanRecord.plan_id == plan.id,
                ScanRecord.match_status.in_([MatchStatus.DISCREPANCY, MatchStatus.UNMATCHED]),
            )
            .order_by(ScanRecord.asset_no.asc(), ScanRecord.id.asc())
            .all()
        )
        report = DiscrepancyReport(
            progress=self._progress(plan, scope),
            discrepancy=[r for r in records if r.match_status == MatchStatus.DISCREPANCY],
            unmatched=[r for r in records if r.match_status == MatchStatus.UNMATCHED],
            not_scanned=self.registry.list_matching(scope.asset_filter.pending_in(plan.id)),
        )
        logger.info(
            "Discrepancy report for plan %s: %d discrepancy, %d unmatched, %d not scanned",
            plan.id, len(report.discrepancy), len(report.unmatched), len(report.not_scanned),
        )
        return report

    def plan_assets(
        self,
        plan_id: int,
        page: int = 1,
        page_size: int = 50,
        state: str = "all",
    ) -> Tuple[List[PlanAsset], int, Dict[str, int]]:
        """One page of the scoped population with each asset's scan record.

        ``state`` narrows the listing to ``scanned`` or ``pending`` assets.
        Returns ``(items, total_for_state, {"total", "scanned", "pending"})``.
        """
        if state not in ASSET_STATES:
            raise ValidationError([
                {"field": "state", "message": f"must be one of {', '.join(ASSET_STATES)}"}
            ])

        plan = self.plans.get_plan(plan_id)
        scope = resolve_plan_scope(plan)
        base = scope.asset_filter
        pending_filter = base.pending_in(plan.id)
        scanned_filter = base.scanned_in(plan.id)

        total = self.registry.count_matching(base)
        pending = self.registry.count_matching(pending_filter)
        summary = {"total": total, "scanned": total - pending, "pending": pending}

        listing_filter = {"all": base, "scanned": scanned_filter, "pending": pending_filter}[state]
        listing_total = {"all": total, "scanned": total - pending, "pending": pending}[state]
        assets = self.registry.list_matching(listing_filter, Page(number=page, size=page_size))

        records_by_tag: Dict[str, ScanRecord] = {}
        tags = [a.asset_no for a in assets]
        if tags:
            for record in (
                self.db.query(ScanRecord)
                .filter(ScanRecord.plan_id == plan.id, ScanRecord.asset_no.in_(tags))
                .all()
            ):
                records_by_tag[record.asset_no] = record

        items = [PlanAsset(asset=a, record=records_by_tag.get(a.asset_no)) for a in assets]
        return items, listing_total, summary

    def list_records(
        self,
        plan_id: int,
        page: int = 1,
        page_size: int = 50,
        match_status: Optional[MatchStatus] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[ScanRecord], int]:
        """Scan records of a plan, most recent scan first."""
        plan = self.plans.get_plan(plan_id)
        query = self.db.query(ScanRecord).filter(ScanRecord.plan_id == plan.id)
        if match_status is not None:
            query = query.filter(ScanRecord.match_status == MatchStatus(match_status))
        if search:
            query = query.filter(ScanRecord.asset_no.ilike(f"%{search.strip()}%"))

        total = query.count()
        records = (
            query.options(joinedload(ScanRecord.asset))
            .order_by(ScanRecord.scanned_at.desc(), ScanRecord.id.desc())
            .offset((max(page, 1) - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return records, total
