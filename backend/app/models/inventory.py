"""Inventory plan and scan record models."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    Enum as SQLEnum,
    Float,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, TimestampMixin


class PlanStatus(str, Enum):
    """Lifecycle status of an inventory plan."""

    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CLOSED = "closed"


class ScopeType(str, Enum):
    """Which assets a plan counts."""

    ALL = "all"
    DEPARTMENT = "department"
    LOCATION = "location"
    CATEGORY = "category"


class MatchStatus(str, Enum):
    """Reconciliation outcome of a scan."""

    MATCHED = "matched"
    DISCREPANCY = "discrepancy"
    UNMATCHED = "unmatched"  # over-count: tag not in the register


class ScanSource(str, Enum):
    """How the asset tag was captured."""

    MANUAL = "manual"
    OCR = "ocr"


class InventoryPlan(Base, TimestampMixin):
    """A physical inventory count over a scoped asset population."""

    __tablename__ = "inventory_plans"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    scope_type: Mapped[ScopeType] = mapped_column(
        SQLEnum(ScopeType), default=ScopeType.ALL, nullable=False
    )
    # Sorted, de-duplicated list of department/location/category ids
    scope_ids: Mapped[list[int]] = mapped_column(JSON, default=list, nullable=False)
    status: Mapped[PlanStatus] = mapped_column(
        SQLEnum(PlanStatus), default=PlanStatus.DRAFT, nullable=False, index=True
    )
    created_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Relationships
    records: Mapped[list["ScanRecord"]] = relationship(
        "ScanRecord", back_populates="plan", cascade="all, delete-orphan", passive_deletes=True
    )


class ScanRecord(Base, TimestampMixin):
    """One scanned asset tag within a plan; re-scans update the same row."""

    __tablename__ = "inventory_scan_records"
    __table_args__ = (
        UniqueConstraint("plan_id", "asset_no", name="uq_scan_record_plan_asset_no"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    plan_id: Mapped[int] = mapped_column(
        ForeignKey("inventory_plans.id", ondelete="CASCADE"), nullable=False, index=True
    )
    asset_no: Mapped[str] = mapped_column(String(64), nullable=False)  # As scanned
    asset_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("assets.id", ondelete="SET NULL"), nullable=True, index=True
    )
    match_status: Mapped[MatchStatus] = mapped_column(
        SQLEnum(MatchStatus), nullable=False, index=True
    )
    discrepancy_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source: Mapped[ScanSource] = mapped_column(
        SQLEnum(ScanSource), default=ScanSource.MANUAL, nullable=False
    )

    # OCR-sourced scans only
    ocr_raw_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ocr_category: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    ocr_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    ocr_acquire_date: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # "YYYY/MM"

    # Capture metadata
    image_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    gps_latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    gps_longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    scanned_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    scanned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    # Relationships
    plan: Mapped["InventoryPlan"] = relationship("InventoryPlan", back_populates="records")
    asset: Mapped[Optional["Asset"]] = relationship("Asset")


# Forward references
from app.models.asset import Asset
