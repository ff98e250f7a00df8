"""Inventory plan, scan and report routes."""

import logging
from typing import Literal, Optional

from fastapi import APIRouter, Query, Request, Response, status

from app.core.config import settings
from app.core.rate_limit import limiter
from app.core.rbac import RequireManager, RequireStaff
from app.core.responses import paginated_response
from app.db.session import DbSession
from app.models.inventory import MatchStatus, PlanStatus, ScanRecord
from app.schemas.asset import AssetSnapshotResponse
from app.schemas.inventory import (
    DiscrepancyReportResponse,
    InventoryPlanCreate,
    InventoryPlanDetail,
    InventoryPlanListItem,
    InventoryPlanResponse,
    InventoryPlanUpdate,
    ManualScanRequest,
    OcrScanRequest,
    PlanAssetItem,
    PlanProgressResponse,
    RecordCountsResponse,
    ScanRecordResponse,
    ScanRecordUpdate,
    ScanResponse,
)
from app.services.inventory_plan_service import InventoryPlanService, PlanDetail
from app.services.inventory_report_service import InventoryReportService, PlanAsset, PlanProgress
from app.services.scan_service import CaptureInfo, ScanIngestionService, ScanResult

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_PAGE_SIZE = settings.inventory_default_page_size
MAX_PAGE_SIZE = settings.inventory_max_page_size


def _plan_detail(detail: PlanDetail) -> InventoryPlanDetail:
    return InventoryPlanDetail(
        **InventoryPlanResponse.model_validate(detail.plan).model_dump(),
        stats=RecordCountsResponse(**detail.counts.to_dict()),
        total_assets=detail.total_assets or 0,
        scope_fallback_to_all=detail.scope_fallback_to_all,
    )


def _progress(progress: PlanProgress) -> PlanProgressResponse:
    return PlanProgressResponse(
        plan_id=progress.plan.id,
        status=progress.plan.status,
        total_assets=progress.total_assets,
        matched=progress.matched,
        discrepancy=progress.discrepancy,
        unmatched=progress.unmatched,
        scanned=progress.scanned,
        pending=progress.pending,
        percentage=progress.percentage,
        scope_fallback_to_all=progress.scope_fallback_to_all,
    )


def _record(record: ScanRecord) -> dict:
    return ScanRecordResponse.model_validate(record).model_dump(mode="json")


def _plan_asset(item: PlanAsset) -> dict:
    record = item.record
    return PlanAssetItem(
        **AssetSnapshotResponse.model_validate(item.asset).model_dump(),
        is_scanned=item.is_scanned,
        record_id=record.id if record else None,
        match_status=record.match_status if record else None,
        scanned_at=record.scanned_at if record else None,
    ).model_dump(mode="json")


def _scan_response(result: ScanResult, response: Response) -> ScanResponse:
    response.status_code = status.HTTP_201_CREATED if result.created else status.HTTP_200_OK
    record = result.record
    message = (
        f"Asset {record.asset_no} recorded as {record.match_status.value}"
        if result.created
        else f"Asset {record.asset_no} re-scanned, record updated ({record.match_status.value})"
    )
    return ScanResponse(
        outcome=result.outcome,
        created=result.created,
        message=message,
        record=ScanRecordResponse.model_validate(record),
    )


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------

@router.get("/plans")
@limiter.limit("60/minute")
def list_plans(
    request: Request,
    db: DbSession,
    current_user: RequireStaff,
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    status_filter: Optional[PlanStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=100),
):
    """List inventory plans, newest first, with per-status record counts."""
    details, total = InventoryPlanService(db).list_plans(
        page=page, page_size=page_size, status=status_filter, search=search
    )
    items = [
        InventoryPlanListItem(
            **InventoryPlanResponse.model_validate(d.plan).model_dump(),
            stats=RecordCountsResponse(**d.counts.to_dict()),
        ).model_dump(mode="json")
        for d in details
    ]
    return paginated_response(items, total, page, page_size)


@router.post("/plans", response_model=InventoryPlanResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_plan(
    request: Request,
    db: DbSession,
    current_user: RequireManager,
    plan_in: InventoryPlanCreate,
):
    """Create an inventory plan in draft."""
    return InventoryPlanService(db).create(plan_in.model_dump(), current_user.user_id)


@router.get("/plans/{plan_id}", response_model=InventoryPlanDetail)
@limiter.limit("60/minute")
def get_plan(request: Request, plan_id: int, db: DbSession, current_user: RequireStaff):
    """Plan with record counts and the current size of its scope."""
    return _plan_detail(InventoryPlanService(db).get_plan_detail(plan_id))


@router.put("/plans/{plan_id}", response_model=InventoryPlanResponse)
@limiter.limit("30/minute")
def update_plan(
    request: Request,
    plan_id: int,
    db: DbSession,
    current_user: RequireManager,
    plan_in: InventoryPlanUpdate,
):
    """Edit a draft or in-progress plan."""
    return InventoryPlanService(db).update(
        plan_id, plan_in.model_dump(exclude_unset=True), current_user.user_id
    )


@router.delete("/plans/{plan_id}", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("30/minute")
def delete_plan(request: Request, plan_id: int, db: DbSession, current_user: RequireManager):
    """Delete a draft plan."""
    InventoryPlanService(db).delete(plan_id, current_user.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/plans/{plan_id}/start", response_model=InventoryPlanResponse)
@limiter.limit("30/minute")
def start_plan(request: Request, plan_id: int, db: DbSession, current_user: RequireStaff):
    return InventoryPlanService(db).start(plan_id, current_user.user_id)


@router.post("/plans/{plan_id}/complete", response_model=InventoryPlanResponse)
@limiter.limit("30/minute")
def complete_plan(request: Request, plan_id: int, db: DbSession, current_user: RequireStaff):
    return InventoryPlanService(db).complete(plan_id, current_user.user_id)


@router.post("/plans/{plan_id}/close", response_model=InventoryPlanResponse)
@limiter.limit("30/minute")
def close_plan(request: Request, plan_id: int, db: DbSession, current_user: RequireManager):
    """Close a completed plan; it becomes read-only."""
    return InventoryPlanService(db).close(plan_id, current_user.user_id)


# ---------------------------------------------------------------------------
# Progress, population and reports
# ---------------------------------------------------------------------------

@router.get("/plans/{plan_id}/progress", response_model=PlanProgressResponse)
@limiter.limit("120/minute")
def get_progress(request: Request, plan_id: int, db: DbSession, current_user: RequireStaff):
    return _progress(InventoryReportService(db).progress(plan_id))


@router.get("/plans/{plan_id}/assets")
@limiter.limit("60/minute")
def list_plan_assets(
    request: Request,
    plan_id: int,
    db: DbSession,
    current_user: RequireStaff,
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    state: Literal["all", "scanned", "pending"] = Query("all"),
):
    """Scoped assets ordered by tag, with their scan state."""
    items, total, summary = InventoryReportService(db).plan_assets(
        plan_id, page=page, page_size=page_size, state=state
    )
    return paginated_response(
        [_plan_asset(i) for i in items], total, page, page_size, summary=summary
    )


@router.get("/plans/{plan_id}/records")
@limiter.limit("60/minute")
def list_records(
    request: Request,
    plan_id: int,
    db: DbSession,
    current_user: RequireStaff,
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    match_status: Optional[MatchStatus] = Query(None),
    search: Optional[str] = Query(None, max_length=64),
):
    """Scan records of a plan, most recent first."""
    records, total = InventoryReportService(db).list_records(
        plan_id, page=page, page_size=page_size, match_status=match_status, search=search
    )
    return paginated_response([_record(r) for r in records], total, page, page_size)


@router.get("/plans/{plan_id}/report", response_model=DiscrepancyReportResponse)
@limiter.limit("30/minute")
def get_discrepancy_report(request: Request, plan_id: int, db: DbSession, current_user: RequireStaff):
    """Discrepancies, unmatched tags and scoped assets never scanned."""
    report = InventoryReportService(db).discrepancy_report(plan_id)
    return DiscrepancyReportResponse(
        plan=InventoryPlanResponse.model_validate(report.plan),
        summary=_progress(report.progress),
        discrepancy=[ScanRecordResponse.model_validate(r) for r in report.discrepancy],
        unmatched=[ScanRecordResponse.model_validate(r) for r in report.unmatched],
        not_scanned=[AssetSnapshotResponse.model_validate(a) for a in report.not_scanned],
    )


# ---------------------------------------------------------------------------
# Scans
# ---------------------------------------------------------------------------

@router.post("/plans/{plan_id}/scans/ocr", response_model=ScanResponse)
@limiter.limit("120/minute")
def scan_ocr(
    request: Request,
    response: Response,
    plan_id: int,
    db: DbSession,
    current_user: RequireStaff,
    scan_in: OcrScanRequest,
):
    """Record a scan from OCR text; 201 for a first scan, 200 for a re-scan."""
    result = ScanIngestionService(db).scan_ocr(
        plan_id,
        scan_in.ocr_text,
        current_user.user_id,
        capture=CaptureInfo(scan_in.image_path, scan_in.latitude, scan_in.longitude),
        asset_no=scan_in.asset_no,
    )
    return _scan_response(result, response)


@router.post("/plans/{plan_id}/scans/manual", response_model=ScanResponse)
@limiter.limit("120/minute")
def scan_manual(
    request: Request,
    response: Response,
    plan_id: int,
    db: DbSession,
    current_user: RequireStaff,
    scan_in: ManualScanRequest,
):
    """Record a typed-in tag; 201 for a first scan, 200 for a re-scan."""
    result = ScanIngestionService(db).scan_manual(
        plan_id,
        scan_in.asset_no,
        current_user.user_id,
        capture=CaptureInfo(scan_in.image_path, scan_in.latitude, scan_in.longitude),
        note=scan_in.note,
        location_id=scan_in.location_id,
        department_id=scan_in.department_id,
    )
    return _scan_response(result, response)


@router.patch("/records/{record_id}", response_model=ScanRecordResponse)
@limiter.limit("30/minute")
def update_record(
    request: Request,
    record_id: int,
    db: DbSession,
    current_user: RequireManager,
    record_in: ScanRecordUpdate,
):
    """Correct a scan record's status or note until the plan is closed."""
    return ScanIngestionService(db).update_record(
        record_id,
        current_user.user_id,
        match_status=record_in.match_status,
        note=record_in.note,
    )
