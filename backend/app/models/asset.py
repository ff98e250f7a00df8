"""Asset register models."""

from __future__ import annotations

from datetime import date
from enum import Enum
from typing import Optional

from sqlalchemy import Date, Enum as SQLEnum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, TimestampMixin


class AssetStatus(str, Enum):
    """Lifecycle status of an asset."""

    IN_USE = "in_use"
    IDLE = "idle"
    REPAIR = "repair"
    PENDING_SCRAP = "pending_scrap"
    SCRAPPED = "scrapped"
    LOST = "lost"


class Asset(Base, TimestampMixin):
    """A physical asset in the register, identified by its printed asset tag."""

    __tablename__ = "assets"

    id: Mapped[int] = mapped_column(primary_key=True)
    asset_no: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    category_id: Mapped[int] = mapped_column(
        ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    department_id: Mapped[int] = mapped_column(
        ForeignKey("departments.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    location_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("locations.id", ondelete="SET NULL"), nullable=True, index=True
    )
    custodian_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[AssetStatus] = mapped_column(
        SQLEnum(AssetStatus), default=AssetStatus.IN_USE, nullable=False, index=True
    )
    acquire_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    brand: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    model: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    serial_no: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)

    # Relationships
    category: Mapped["Category"] = relationship("Category")
    department: Mapped["Department"] = relationship("Department", back_populates="assets")
    location: Mapped[Optional["Location"]] = relationship("Location", back_populates="assets")


# Forward references
from app.models.category import Category
from app.models.department import Department
from app.models.location import Location
