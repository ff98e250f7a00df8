"""Tests for scan ingestion and record corrections."""

import pytest

from app.core.exceptions import AlreadyScannedError, InvalidStateError, NotFoundError
from app.models.asset import Asset
from app.models.inventory import MatchStatus, PlanStatus, ScanRecord, ScanSource, ScopeType
from app.services.match_classifier import NOTE_ASSET_NOT_FOUND, NOTE_TAG_NOT_RECOGNIZED
from app.services.scan_service import CaptureInfo, ScanIngestionService

LABEL = "資編：A202501-0001\n類別：IT-Laptop\n名稱：ASUS Laptop\n取得年月：2023/9"


def _records(db_session, plan_id):
    return db_session.query(ScanRecord).filter(ScanRecord.plan_id == plan_id).all()


class TestOcrScan:
    """OCR label scans."""

    def test_matching_label(self, db_session, make_asset, make_plan):
        asset = make_asset("A202501-0001")
        plan = make_plan()
        result = ScanIngestionService(db_session).scan_ocr(
            plan.id, LABEL, actor_id=None,
            capture=CaptureInfo(image_path="/uploads/1.jpg", gps_latitude=25.03, gps_longitude=121.56),
        )

        record = result.record
        assert result.created is True
        assert result.outcome == "created"
        assert record.match_status == MatchStatus.MATCHED
        assert record.asset_id == asset.id
        assert record.source == ScanSource.OCR
        assert record.ocr_category == "IT-Laptop"
        assert record.ocr_acquire_date == "2023/09"
        assert record.ocr_raw_text == LABEL
        assert record.image_path == "/uploads/1.jpg"
        assert record.gps_latitude == 25.03
        assert record.scanned_at is not None

    @pytest.mark.parametrize("asset_no", ["X1", "PC_0001", "AB12.34"])
    def test_label_with_unusual_tag_shape_matches(self, db_session, make_asset, make_plan, asset_no):
        asset = make_asset(asset_no)
        plan = make_plan()
        result = ScanIngestionService(db_session).scan_ocr(plan.id, f"資編：{asset_no}", actor_id=None)

        assert result.record.asset_no == asset_no
        assert result.record.asset_id == asset.id
        assert result.record.match_status == MatchStatus.MATCHED

    def test_rescan_updates_the_same_record(self, db_session, make_asset, make_plan):
        make_asset("A202501-0001")
        plan = make_plan()
        service = ScanIngestionService(db_session)

        first = service.scan_ocr(plan.id, LABEL, actor_id=None)
        second = service.scan_ocr(
            plan.id, "資編：A202501-0001\n名稱：Dell Monitor", actor_id=None
        )

        assert first.created is True
        assert second.created is False
        assert second.record.id == first.record.id
        # Later write wins, even over a matched record
        assert second.record.match_status == MatchStatus.DISCREPANCY
        assert second.record.ocr_category is None
        assert len(_records(db_session, plan.id)) == 1

    def test_unreadable_label_gets_placeholder_tag(self, db_session, make_plan):
        plan = make_plan()
        service = ScanIngestionService(db_session)

        first = service.scan_ocr(plan.id, "smudged", actor_id=None)
        second = service.scan_ocr(plan.id, "", actor_id=None)

        assert first.record.asset_no.startswith("UNKNOWN-")
        assert first.record.match_status == MatchStatus.UNMATCHED
        assert first.record.discrepancy_note == NOTE_TAG_NOT_RECOGNIZED
        assert first.record.asset_no != second.record.asset_no
        assert len(_records(db_session, plan.id)) == 2

    def test_fallback_tag_used_when_text_has_none(self, db_session, make_asset, make_plan):
        asset = make_asset("A202501-0001")
        plan = make_plan()
        result = ScanIngestionService(db_session).scan_ocr(
            plan.id, "名稱：ASUS Laptop", actor_id=None, asset_no=" A202501-0001 "
        )
        assert result.record.asset_no == "A202501-0001"
        assert result.record.asset_id == asset.id
        assert result.record.match_status == MatchStatus.MATCHED

    def test_label_tag_wins_over_fallback(self, db_session, make_asset, make_plan):
        make_asset("A202501-0001")
        plan = make_plan()
        result = ScanIngestionService(db_session).scan_ocr(
            plan.id, LABEL, actor_id=None, asset_no="B-9999"
        )
        assert result.record.asset_no == "A202501-0001"


class TestManualScan:
    """Typed-in tags."""

    def test_in_scope_asset_is_matched(self, db_session, make_asset, make_plan, staff_user):
        asset = make_asset("A202501-0001")
        plan = make_plan()
        result = ScanIngestionService(db_session).scan_manual(
            plan.id, " A202501-0001 ", actor_id=staff_user.id
        )
        assert result.record.asset_no == "A202501-0001"
        assert result.record.asset_id == asset.id
        assert result.record.match_status == MatchStatus.MATCHED
        assert result.record.source == ScanSource.MANUAL
        assert result.record.scanned_by == staff_user.id

    def test_second_scan_of_matched_tag_is_rejected(self, db_session, make_asset, make_plan):
        make_asset("A202501-0001")
        plan = make_plan()
        service = ScanIngestionService(db_session)
        first = service.scan_manual(plan.id, "A202501-0001", actor_id=None)

        with pytest.raises(AlreadyScannedError) as exc_info:
            service.scan_manual(plan.id, "A202501-0001", actor_id=None, note="again")

        assert exc_info.value.to_dict()["code"] == "already_scanned"
        db_session.expire_all()
        record = db_session.get(ScanRecord, first.record.id)
        assert record.match_status == MatchStatus.MATCHED
        assert record.discrepancy_note is None
        assert len(_records(db_session, plan.id)) == 1

    def test_manual_scan_over_matched_ocr_record_is_rejected(self, db_session, make_asset, make_plan):
        make_asset("A202501-0001")
        plan = make_plan()
        service = ScanIngestionService(db_session)
        service.scan_ocr(plan.id, LABEL, actor_id=None)
        with pytest.raises(AlreadyScannedError):
            service.scan_manual(plan.id, "A202501-0001", actor_id=None)

    def test_rescan_of_unmatched_tag_updates(self, db_session, make_plan):
        plan = make_plan()
        service = ScanIngestionService(db_session)
        first = service.scan_manual(plan.id, "Z-0001", actor_id=None)
        second = service.scan_manual(plan.id, "Z-0001", actor_id=None, note="label peeled")

        assert first.record.match_status == MatchStatus.UNMATCHED
        assert second.created is False
        assert second.record.discrepancy_note == f"{NOTE_ASSET_NOT_FOUND}; label peeled"

    def test_manual_scan_clears_ocr_fields(self, db_session, make_asset, make_plan):
        make_asset("A202501-0001")
        plan = make_plan()
        service = ScanIngestionService(db_session)
        service.scan_ocr(plan.id, "資編：A202501-0001\n名稱：Dell Monitor", actor_id=None)
        result = service.scan_manual(plan.id, "A202501-0001", actor_id=None)

        assert result.created is False
        assert result.record.source == ScanSource.MANUAL
        assert result.record.ocr_name is None
        assert result.record.match_status == MatchStatus.MATCHED

    def test_out_of_scope_asset(self, db_session, org, make_asset, make_plan):
        asset = make_asset("A202501-0002", department_id=org["hr"].id)
        plan = make_plan(scope_type=ScopeType.DEPARTMENT, scope_ids=[org["it"].id])
        result = ScanIngestionService(db_session).scan_manual(plan.id, "A202501-0002", actor_id=None)
        assert result.record.match_status == MatchStatus.DISCREPANCY
        assert result.record.asset_id == asset.id

    def test_location_mismatch_does_not_touch_the_register(self, db_session, org, make_asset, make_plan):
        asset = make_asset("A202501-0001")
        plan = make_plan()
        result = ScanIngestionService(db_session).scan_manual(
            plan.id, "A202501-0001", actor_id=None, location_id=org["room_b"].id
        )
        assert result.record.match_status == MatchStatus.DISCREPANCY
        assert "location mismatch" in result.record.discrepancy_note

        db_session.expire_all()
        stored = db_session.get(Asset, asset.id)
        assert stored.location_id == org["room_a"].id
        assert stored.department_id == org["it"].id


class TestScanGate:
    """Scans are only accepted while the plan is in progress."""

    @pytest.mark.parametrize("status", [PlanStatus.DRAFT, PlanStatus.COMPLETED, PlanStatus.CLOSED])
    def test_rejected_outside_in_progress(self, db_session, make_asset, make_plan, status):
        make_asset("A202501-0001")
        plan = make_plan(status=status)
        service = ScanIngestionService(db_session)

        with pytest.raises(InvalidStateError) as exc_info:
            service.scan_manual(plan.id, "A202501-0001", actor_id=None)
        assert exc_info.value.current_status == status.value
        with pytest.raises(InvalidStateError):
            service.scan_ocr(plan.id, LABEL, actor_id=None)
        assert _records(db_session, plan.id) == []

    def test_unknown_plan(self, db_session):
        with pytest.raises(NotFoundError):
            ScanIngestionService(db_session).scan_manual(404, "A1234", actor_id=None)


class TestRecordCorrection:
    """update_record."""

    def _scan(self, db_session, plan):
        return ScanIngestionService(db_session).scan_manual(plan.id, "Z-0001", actor_id=None).record

    def test_correct_status_and_note(self, db_session, make_plan):
        plan = make_plan()
        record = self._scan(db_session, plan)
        updated = ScanIngestionService(db_session).update_record(
            record.id, actor_id=None, match_status=MatchStatus.DISCREPANCY, note=" relabelled "
        )
        assert updated.match_status == MatchStatus.DISCREPANCY
        assert updated.discrepancy_note == "relabelled"

    def test_empty_note_clears(self, db_session, make_plan):
        plan = make_plan()
        record = self._scan(db_session, plan)
        updated = ScanIngestionService(db_session).update_record(record.id, actor_id=None, note="")
        assert updated.discrepancy_note is None
        assert updated.match_status == MatchStatus.UNMATCHED

    def test_allowed_after_completion(self, db_session, make_plan):
        plan = make_plan()
        record = self._scan(db_session, plan)
        plan.status = PlanStatus.COMPLETED
        db_session.commit()
        updated = ScanIngestionService(db_session).update_record(
            record.id, actor_id=None, match_status="matched"
        )
        assert updated.match_status == MatchStatus.MATCHED

    def test_rejected_once_closed(self, db_session, make_plan):
        plan = make_plan()
        record = self._scan(db_session, plan)
        plan.status = PlanStatus.CLOSED
        db_session.commit()
        with pytest.raises(InvalidStateError):
            ScanIngestionService(db_session).update_record(
                record.id, actor_id=None, match_status=MatchStatus.MATCHED
            )

    def test_unknown_record(self, db_session):
        with pytest.raises(NotFoundError) as exc_info:
            ScanIngestionService(db_session).get_record(12345)
        assert exc_info.value.entity == "Scan record"
