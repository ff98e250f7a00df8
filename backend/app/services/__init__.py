# Services module

from app.services.asset_registry import (
    AssetFilter,
    AssetRegistry,
    AssetSnapshot,
    InMemoryAssetRegistry,
    SqlAssetRegistry,
)
from app.services.inventory_scope import ResolvedScope, resolve_plan_scope, resolve_scope
from app.services.ocr_parser import OcrFields, parse_label_text
from app.services.match_classifier import Classification, MatchClassifier
from app.services.inventory_plan_service import InventoryPlanService
from app.services.scan_service import ScanIngestionService
from app.services.inventory_report_service import InventoryReportService

__all__ = [
    # Asset register
    "AssetFilter",
    "AssetRegistry",
    "AssetSnapshot",
    "InMemoryAssetRegistry",
    "SqlAssetRegistry",
    # Scope
    "ResolvedScope",
    "resolve_plan_scope",
    "resolve_scope",
    # Scanning
    "OcrFields",
    "parse_label_text",
    "Classification",
    "MatchClassifier",
    "ScanIngestionService",
    # Plans & reports
    "InventoryPlanService",
    "InventoryReportService",
]
