"""Asset category model."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base, TimestampMixin


class Category(Base, TimestampMixin):
    """Two-level asset category, e.g. "IT" > "Portable Computer"."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    code: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, unique=True)
    parent_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )

    # Relationships
    parent: Mapped[Optional["Category"]] = relationship("Category", remote_side=[id])

    @property
    def label(self) -> str:
        """Display label as printed on asset tags: "<parent>-<name>"."""
        if self.parent is not None:
            return f"{self.parent.name}-{self.name}"
        return self.name
