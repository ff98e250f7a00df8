"""Parse OCR text read from printed asset labels.

A label looks like::

    資編：A202309-0275
    類別：資訊-可攜式電腦
    名稱：ASUS筆記型電腦
    取得年月：2023/9

English labels ("Asset No", "Category", "Name", "Acquired") are accepted as
well. Each field sits on its own line as ``<label>:<value>`` (ASCII or
full-width colon). Fields that cannot be found are left as ``None``.
"""

from dataclasses import dataclass
from typing import Optional, Tuple
import re

_LINE_START = r"^[ \t]*"
_SEPARATOR = r"[ \t]*[:：][ \t]*"
_REST_OF_LINE = r"(?P<value>[^\r\n]*?)[ \t]*\r?$"

_FLAGS = re.MULTILINE | re.IGNORECASE

# Width of ScanRecord.asset_no
ASSET_NO_MAX_LENGTH = 64

TAG_PATTERN = re.compile(
    _LINE_START
    + r"(?:資產編號|資編|asset[ \t]*(?:no\.?|number|tag)|tag)"
    + _SEPARATOR
    + _REST_OF_LINE,
    _FLAGS,
)
CATEGORY_PATTERN = re.compile(
    _LINE_START + r"(?:類別|category)" + _SEPARATOR + _REST_OF_LINE,
    _FLAGS,
)
NAME_PATTERN = re.compile(
    _LINE_START + r"(?:名稱|asset[ \t]*name|name)" + _SEPARATOR + _REST_OF_LINE,
    _FLAGS,
)
ACQUIRE_DATE_PATTERN = re.compile(
    _LINE_START
    + r"(?:取得年月|acquired|acquire[ \t]*date|acquisition[ \t]*date)"
    + _SEPARATOR
    + r"(?P<year>\d{4})[ \t]*[/\-.年][ \t]*(?P<month>\d{1,2})",
    _FLAGS,
)


@dataclass(frozen=True)
class OcrFields:
    """Fields recovered from one label."""

    raw: str
    asset_no: Optional[str] = None
    category: Optional[str] = None
    name: Optional[str] = None
    acquire_date: Optional[str] = None  # normalized "YYYY/MM"

    @property
    def acquire_year_month(self) -> Optional[Tuple[int, int]]:
        if not self.acquire_date:
            return None
        year, month = self.acquire_date.split("/")
        return int(year), int(month)


def _text_field(pattern: re.Pattern, text: str) -> Optional[str]:
    match = pattern.search(text)
    if not match:
        return None
    value = match.group("value").strip()
    return value or None


def _tag_field(text: str) -> Optional[str]:
    # The tag is the first token after the label; trailing notes are ignored
    value = _text_field(TAG_PATTERN, text)
    if value is None:
        return None
    token = value.split()[0]
    if len(token) > ASSET_NO_MAX_LENGTH:
        return None
    return token


def parse_label_text(text: Optional[str]) -> OcrFields:
    """Extract asset tag, category, name and acquisition month from OCR text."""
    if not text:
        return OcrFields(raw=text or "")

    asset_no = _tag_field(text)

    acquire_date = None
    date_match = ACQUIRE_DATE_PATTERN.search(text)
    if date_match:
        year, month = int(date_match.group("year")), int(date_match.group("month"))
        if 1 <= month <= 12:
            acquire_date = f"{year:04d}/{month:02d}"

    return OcrFields(
        raw=text,
        asset_no=asset_no,
        category=_text_field(CATEGORY_PATTERN, text),
        name=_text_field(NAME_PATTERN, text),
        acquire_date=acquire_date,
    )
