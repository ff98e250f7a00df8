"""Inventory plan, scan and report schemas."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from app.models.inventory import MatchStatus, PlanStatus, ScanSource, ScopeType
from app.schemas.asset import AssetBrief, AssetSnapshotResponse


# ---------------------------------------------------------------------------
# Plans
# ---------------------------------------------------------------------------

class InventoryPlanCreate(BaseModel):
    """Inventory plan creation schema."""

    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    start_date: date
    end_date: date
    scope_type: ScopeType = ScopeType.ALL
    scope_ids: List[int] = []


class InventoryPlanUpdate(BaseModel):
    """Partial plan edit; only the fields sent are changed."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    scope_type: Optional[ScopeType] = None
    scope_ids: Optional[List[int]] = None


class RecordCountsResponse(BaseModel):
    matched: int = 0
    discrepancy: int = 0
    unmatched: int = 0
    scanned: int = 0


class InventoryPlanResponse(BaseModel):
    """Inventory plan response schema."""

    id: int
    name: str
    description: Optional[str] = None
    start_date: date
    end_date: date
    scope_type: ScopeType
    scope_ids: List[int] = []
    status: PlanStatus
    created_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class InventoryPlanListItem(InventoryPlanResponse):
    stats: RecordCountsResponse


class InventoryPlanDetail(InventoryPlanResponse):
    """Plan with record counts and the current size of its scope."""

    stats: RecordCountsResponse
    total_assets: int
    scope_fallback_to_all: bool = False


# ---------------------------------------------------------------------------
# Scans
# ---------------------------------------------------------------------------

class CaptureFields(BaseModel):
    image_path: Optional[str] = Field(default=None, max_length=500)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)


class OcrScanRequest(CaptureFields):
    """Text recognized from an asset label, with an optional typed tag fallback."""

    ocr_text: str = Field(max_length=10000)
    asset_no: Optional[str] = Field(default=None, max_length=64)


class ManualScanRequest(CaptureFields):
    """Typed-in asset tag, optionally with the scanner's location/department."""

    asset_no: str = Field(min_length=1, max_length=64)
    note: Optional[str] = Field(default=None, max_length=1000)
    location_id: Optional[int] = None
    department_id: Optional[int] = None


class ScanRecordResponse(BaseModel):
    """Scan record response schema."""

    id: int
    plan_id: int
    asset_no: str
    asset_id: Optional[int] = None
    asset: Optional[AssetBrief] = None
    match_status: MatchStatus
    discrepancy_note: Optional[str] = None
    source: ScanSource
    ocr_raw_text: Optional[str] = None
    ocr_category: Optional[str] = None
    ocr_name: Optional[str] = None
    ocr_acquire_date: Optional[str] = None
    image_path: Optional[str] = None
    gps_latitude: Optional[float] = None
    gps_longitude: Optional[float] = None
    scanned_by: Optional[int] = None
    scanned_at: datetime

    model_config = {"from_attributes": True}


class ScanResponse(BaseModel):
    """Result of a scan; ``outcome`` tells a first scan from a re-scan."""

    outcome: Literal["created", "updated"]
    created: bool
    message: str
    record: ScanRecordResponse


class ScanRecordUpdate(BaseModel):
    """Manual correction of a scan record."""

    match_status: Optional[MatchStatus] = None
    note: Optional[str] = Field(default=None, max_length=1000)


# ---------------------------------------------------------------------------
# Progress & reports
# ---------------------------------------------------------------------------

class PlanProgressResponse(BaseModel):
    plan_id: int
    status: PlanStatus
    total_assets: int
    matched: int
    discrepancy: int
    unmatched: int
    scanned: int
    pending: int
    percentage: int
    scope_fallback_to_all: bool = False


class PlanAssetItem(AssetSnapshotResponse):
    """Scoped asset with its scan state in the plan."""

    is_scanned: bool
    record_id: Optional[int] = None
    match_status: Optional[MatchStatus] = None
    scanned_at: Optional[datetime] = None


class DiscrepancyReportResponse(BaseModel):
    """Final reconciliation: discrepancies, over-count and under-count."""

    plan: InventoryPlanResponse
    summary: PlanProgressResponse
    discrepancy: List[ScanRecordResponse]
    unmatched: List[ScanRecordResponse]
    not_scanned: List[AssetSnapshotResponse]
