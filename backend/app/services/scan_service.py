"""Scan ingestion: classify a manual or OCR scan and upsert its record.

There is at most one ScanRecord per (plan, asset tag). The upsert inserts
inside a SAVEPOINT and falls back to updating the existing row when the
``uq_scan_record_plan_asset_no`` constraint fires, so concurrent scans of the
same tag never produce duplicates; the later write wins.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import AlreadyScannedError, NotFoundError
from app.models.inventory import InventoryPlan, MatchStatus, ScanRecord, ScanSource
from app.services.asset_registry import AssetRegistry, SqlAssetRegistry
from app.services.inventory_plan_service import InventoryPlanService
from app.services.inventory_scope import resolve_plan_scope
from app.services.match_classifier import Classification, MatchClassifier
from app.services.ocr_parser import parse_label_text
from app.services.plan_state import PlanAction, ensure_can

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CaptureInfo:
    """Where and how a scan was captured."""

    image_path: Optional[str] = None
    gps_latitude: Optional[float] = None
    gps_longitude: Optional[float] = None


@dataclass
class ScanResult:
    record: ScanRecord
    created: bool
    classification: Classification

    @property
    def outcome(self) -> str:
        return "created" if self.created else "updated"


class ScanIngestionService:
    """Entry point for scans coming from handheld or OCR clients."""

    def __init__(
        self,
        db: Session,
        registry: Optional[AssetRegistry] = None,
        classifier: Optional[MatchClassifier] = None,
    ):
        self.db = db
        self.registry = registry or SqlAssetRegistry(db)
        self.classifier = classifier or MatchClassifier(self.registry)
        self.plans = InventoryPlanService(db, self.registry)

    # ------------------------------------------------------------------
    # Scans
    # ------------------------------------------------------------------

    def scan_ocr(
        self,
        plan_id: int,
        ocr_text: Optional[str],
        actor_id: Optional[int],
        capture: Optional[CaptureInfo] = None,
        asset_no: Optional[str] = None,
    ) -> ScanResult:
        """Parse label text, classify it and upsert the record.

        ``asset_no`` is used only when no tag can be read from the text.
        Re-scanning a tag always overwrites the previous result.
        """
        plan = self._open_plan(plan_id)
        fields = parse_label_text(ocr_text)
        tag = fields.asset_no or (asset_no.strip() if asset_no else None)

        classification = self.classifier.classify(resolve_plan_scope(plan), tag, ocr=fields)
        values = {
            "source": ScanSource.OCR,
            "ocr_raw_text": fields.raw or None,
            "ocr_category": fields.category,
            "ocr_name": fields.name,
            "ocr_acquire_date": fields.acquire_date,
        }
        return self._record(plan, classification, values, actor_id, capture)

    def scan_manual(
        self,
        plan_id: int,
        asset_no: Optional[str],
        actor_id: Optional[int],
        capture: Optional[CaptureInfo] = None,
        note: Optional[str] = None,
        location_id: Optional[int] = None,
        department_id: Optional[int] = None,
    ) -> ScanResult:
        """Classify a typed-in tag and upsert the record.

        A tag that is already ``matched`` in this plan is rejected with
        ``AlreadyScannedError``; corrections go through ``update_record``.
        """
        plan = self._open_plan(plan_id)
        tag = asset_no.strip() if asset_no else None

        if tag:
            existing = self._find_record(plan.id, tag)
            if existing is not None and existing.match_status == MatchStatus.MATCHED:
                raise AlreadyScannedError(tag, plan.id)

        classification = self.classifier.classify(
            resolve_plan_scope(plan),
            tag,
            location_id=location_id,
            department_id=department_id,
        ).with_note(note)
        values = {
            "source": ScanSource.MANUAL,
            "ocr_raw_text": None,
            "ocr_category": None,
            "ocr_name": None,
            "ocr_acquire_date": None,
        }
        return self._record(plan, classification, values, actor_id, capture, guard_matched=True)

    # ------------------------------------------------------------------
    # Corrections
    # ------------------------------------------------------------------

    def get_record(self, record_id: int) -> ScanRecord:
        record = self.db.query(ScanRecord).filter(ScanRecord.id == record_id).first()
        if not record:
            raise NotFoundError("Scan record", record_id)
        return record

    def update_record(
        self,
        record_id: int,
        actor_id: Optional[int],
        match_status: Optional[MatchStatus] = None,
        note: Optional[str] = None,
    ) -> ScanRecord:
        """Manually correct a record's status and/or note.

        Allowed until the owning plan is closed. An empty note clears it.
        """
        record = self.get_record(record_id)
        ensure_can(PlanAction.CORRECT_RECORD, record.plan.status)

        if match_status is not None:
            record.match_status = MatchStatus(match_status)
        if note is not None:
            record.discrepancy_note = note.strip() or None
        self.db.flush()
        self.db.refresh(record)

        logger.info(
            "Scan record %s in plan %s corrected by user %s (status=%s)",
            record.id, record.plan_id, actor_id, record.match_status.value,
        )
        return record

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _open_plan(self, plan_id: int) -> InventoryPlan:
        plan = self.plans.get_plan(plan_id)
        ensure_can(PlanAction.SCAN, plan.status)
        return plan

    def _find_record(self, plan_id: int, asset_no: str) -> Optional[ScanRecord]:
        return (
            self.db.query(ScanRecord)
            .filter(ScanRecord.plan_id == plan_id, ScanRecord.asset_no == asset_no)
            .first()
        )

    def _record(
        self,
        plan: InventoryPlan,
        classification: Classification,
        values: Dict[str, Any],
        actor_id: Optional[int],
        capture: Optional[CaptureInfo],
        guard_matched: bool = False,
    ) -> ScanResult:
        capture = capture or CaptureInfo()
        values = dict(
            values,
            asset_id=classification.asset_id,
            match_status=classification.match_status,
            discrepancy_note=classification.note,
            image_path=capture.image_path,
            gps_latitude=capture.gps_latitude,
            gps_longitude=capture.gps_longitude,
            scanned_by=actor_id,
            scanned_at=datetime.now(timezone.utc),
        )

        created = True
        try:
            with self.db.begin_nested():
                record = ScanRecord(plan_id=plan.id, asset_no=classification.asset_no, **values)
                self.db.add(record)
                self.db.flush()
        except IntegrityError:
            existing = self._find_record(plan.id, classification.asset_no)
            if existing is None:
                raise
            if guard_matched and existing.match_status == MatchStatus.MATCHED:
                raise AlreadyScannedError(classification.asset_no, plan.id)
            for name, value in values.items():
                setattr(existing, name, value)
            self.db.flush()
            record = existing
            created = False

        self.db.refresh(record)
        logger.info(
            "Plan %s: %s scan of %s -> %s (%s)",
            plan.id,
            values["source"].value,
            classification.asset_no,
            classification.match_status.value,
            "created" if created else "updated",
        )
        return ScanResult(record=record, created=created, classification=classification)
