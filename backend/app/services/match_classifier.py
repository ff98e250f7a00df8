"""Classify a scanned tag against the asset register and a plan scope."""

from dataclasses import dataclass, replace
from typing import Optional, Tuple
import re
import uuid

from app.core.config import settings
from app.models.inventory import MatchStatus
from app.services.asset_registry import AssetRegistry, AssetSnapshot
from app.services.inventory_scope import ResolvedScope
from app.services.ocr_parser import OcrFields

NOTE_SEPARATOR = "; "

NOTE_TAG_NOT_RECOGNIZED = "tag not recognized"
NOTE_ASSET_NOT_FOUND = "asset not found in system"
NOTE_OUT_OF_SCOPE = "asset outside inventory scope"

_STRIP_CHARS = re.compile(r"[\s\-_]+")


def normalize(value: Optional[str]) -> str:
    """Lowercase and drop whitespace, hyphens and underscores."""
    if not value:
        return ""
    return _STRIP_CHARS.sub("", value).lower()


def fuzzy_match(scanned: Optional[str], system: Optional[str]) -> bool:
    """True when the normalized values are equal or one contains the other.

    A missing value on either side is treated as a match; only fields that
    are actually present are compared.
    """
    a, b = normalize(scanned), normalize(system)
    if not a or not b:
        return True
    return a == b or a in b or b in a


@dataclass(frozen=True)
class Classification:
    """Outcome of classifying one scan."""

    asset_no: str
    match_status: MatchStatus
    asset: Optional[AssetSnapshot] = None
    notes: Tuple[str, ...] = ()
    placeholder_tag: bool = False

    @property
    def asset_id(self) -> Optional[int]:
        return self.asset.id if self.asset else None

    @property
    def note(self) -> Optional[str]:
        return NOTE_SEPARATOR.join(self.notes) or None

    def with_note(self, note: Optional[str]) -> "Classification":
        """Copy with a caller-supplied note appended after the classifier notes."""
        if not note or not note.strip():
            return self
        return replace(self, notes=self.notes + (note.strip(),))


class MatchClassifier:
    """Turns (tag, optional OCR fields, optional scan context) into a match status."""

    def __init__(self, registry: AssetRegistry, unknown_tag_prefix: Optional[str] = None):
        self.registry = registry
        self.unknown_tag_prefix = unknown_tag_prefix or settings.inventory_unknown_tag_prefix

    def placeholder_tag(self) -> str:
        return f"{self.unknown_tag_prefix}-{uuid.uuid4().hex}"

    def classify(
        self,
        scope: ResolvedScope,
        asset_no: Optional[str],
        ocr: Optional[OcrFields] = None,
        location_id: Optional[int] = None,
        department_id: Optional[int] = None,
    ) -> Classification:
        asset_no = (asset_no or "").strip()
        if not asset_no:
            return Classification(
                asset_no=self.placeholder_tag(),
                match_status=MatchStatus.UNMATCHED,
                notes=(NOTE_TAG_NOT_RECOGNIZED,),
                placeholder_tag=True,
            )

        asset = self.registry.find_by_tag(asset_no)
        if asset is None:
            return Classification(
                asset_no=asset_no,
                match_status=MatchStatus.UNMATCHED,
                notes=(NOTE_ASSET_NOT_FOUND,),
            )

        if not scope.contains(asset):
            return Classification(
                asset_no=asset_no,
                match_status=MatchStatus.DISCREPANCY,
                asset=asset,
                notes=(NOTE_OUT_OF_SCOPE,),
            )

        notes = []
        if ocr is not None:
            notes.extend(compare_ocr_fields(ocr, asset))
        notes.extend(compare_scan_context(asset, location_id, department_id))

        return Classification(
            asset_no=asset_no,
            match_status=MatchStatus.DISCREPANCY if notes else MatchStatus.MATCHED,
            asset=asset,
            notes=tuple(notes),
        )


def compare_ocr_fields(ocr: OcrFields, asset: AssetSnapshot) -> list:
    """Mismatch notes for every OCR field that disagrees with the register."""
    notes = []
    if ocr.category and not fuzzy_match(ocr.category, asset.category_label):
        notes.append(f"category mismatch: tag[{ocr.category}] vs system[{asset.category_label}]")
    if ocr.name and not fuzzy_match(ocr.name, asset.name):
        notes.append(f"name mismatch: tag[{ocr.name}] vs system[{asset.name}]")
    if ocr.acquire_year_month is not None and asset.acquire_date is not None:
        system = (asset.acquire_date.year, asset.acquire_date.month)
        if ocr.acquire_year_month != system:
            notes.append(
                f"acquire date mismatch: tag[{ocr.acquire_date}] "
                f"vs system[{system[0]:04d}/{system[1]:02d}]"
            )
    return notes


def compare_scan_context(
    asset: AssetSnapshot,
    location_id: Optional[int],
    department_id: Optional[int],
) -> list:
    """Mismatch notes for the location/department a manual scan was taken in."""
    notes = []
    if location_id is not None and asset.location_id is not None and location_id != asset.location_id:
        notes.append(f"location mismatch: scanned[{location_id}] vs system[{asset.location_id}]")
    if (
        department_id is not None
        and asset.department_id is not None
        and department_id != asset.department_id
    ):
        notes.append(
            f"department mismatch: scanned[{department_id}] vs system[{asset.department_id}]"
        )
    return notes
