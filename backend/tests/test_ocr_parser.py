"""Tests for asset label OCR parsing."""

from app.services.ocr_parser import OcrFields, parse_label_text


class TestParseLabelText:
    """Label text -> OcrFields."""

    def test_chinese_label(self):
        text = "資編：A202309-0275\n類別：資訊-可攜式電腦\n名稱：ASUS筆記型電腦\n取得年月：2023/9"
        fields = parse_label_text(text)
        assert fields.asset_no == "A202309-0275"
        assert fields.category == "資訊-可攜式電腦"
        assert fields.name == "ASUS筆記型電腦"
        assert fields.acquire_date == "2023/09"
        assert fields.acquire_year_month == (2023, 9)
        assert fields.raw == text

    def test_english_labels_are_case_insensitive(self):
        text = "ASSET NO: A202501-0001\ncategory: IT-Laptop\nName : ASUS Laptop\nAcquired: 2025-01"
        fields = parse_label_text(text)
        assert fields.asset_no == "A202501-0001"
        assert fields.category == "IT-Laptop"
        assert fields.name == "ASUS Laptop"
        assert fields.acquire_date == "2025/01"

    def test_ascii_and_full_width_colons(self):
        assert parse_label_text("資編:A1234").asset_no == "A1234"
        assert parse_label_text("資編：A1234").asset_no == "A1234"

    def test_dotted_date_is_normalized(self):
        assert parse_label_text("Acquire Date: 2021.11").acquire_date == "2021/11"

    def test_invalid_month_is_dropped(self):
        assert parse_label_text("取得年月：2023/13").acquire_date is None

    def test_missing_fields_are_none(self):
        fields = parse_label_text("名稱：Printer")
        assert fields.asset_no is None
        assert fields.category is None
        assert fields.acquire_date is None
        assert fields.name == "Printer"

    def test_empty_value_does_not_swallow_next_line(self):
        fields = parse_label_text("名稱：\n類別：IT-Monitor")
        assert fields.name is None
        assert fields.category == "IT-Monitor"

    def test_short_tag(self):
        assert parse_label_text("Asset Tag: X1").asset_no == "X1"

    def test_tag_with_underscore(self):
        assert parse_label_text("資編：PC_0001").asset_no == "PC_0001"

    def test_tag_with_dot_is_not_truncated(self):
        assert parse_label_text("資編：AB12.34").asset_no == "AB12.34"

    def test_overlong_tag_is_not_a_tag(self):
        assert parse_label_text("Tag: " + "A" * 65).asset_no is None

    def test_empty_tag_does_not_swallow_next_line(self):
        fields = parse_label_text("資編：\n名稱：Printer")
        assert fields.asset_no is None
        assert fields.name == "Printer"

    def test_tag_stops_at_first_token(self):
        assert parse_label_text("Asset Tag: A202501-0001 (spare)").asset_no == "A202501-0001"

    def test_crlf_line_endings(self):
        fields = parse_label_text("資編：A202309-0275\r\n名稱：Dell Monitor\r\n")
        assert fields.asset_no == "A202309-0275"
        assert fields.name == "Dell Monitor"

    def test_empty_text(self):
        assert parse_label_text("") == OcrFields(raw="")
        assert parse_label_text(None).asset_no is None

    def test_text_without_labels(self):
        fields = parse_label_text("completely unreadable smudge")
        assert fields == OcrFields(raw="completely unreadable smudge")
