"""SQLAlchemy models."""

from app.models.user import User
from app.models.department import Department
from app.models.location import Location
from app.models.category import Category
from app.models.asset import Asset, AssetStatus
from app.models.inventory import (
    InventoryPlan,
    MatchStatus,
    PlanStatus,
    ScanRecord,
    ScanSource,
    ScopeType,
)

__all__ = [
    "User",
    "Department",
    "Location",
    "Category",
    "Asset",
    "AssetStatus",
    "InventoryPlan",
    "MatchStatus",
    "PlanStatus",
    "ScanRecord",
    "ScanSource",
    "ScopeType",
]
