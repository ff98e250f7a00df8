"""Asset register schemas."""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel

from app.models.asset import AssetStatus


class AssetBrief(BaseModel):
    """Asset reference embedded in scan records."""

    id: int
    asset_no: str
    name: str

    model_config = {"from_attributes": True}


class AssetSnapshotResponse(BaseModel):
    """Read-only view of an asset as the inventory core sees it."""

    id: int
    asset_no: str
    name: str
    category_id: int
    category_label: Optional[str] = None
    department_id: int
    location_id: Optional[int] = None
    status: AssetStatus
    acquire_date: Optional[date] = None

    model_config = {"from_attributes": True}


class AssetResponse(BaseModel):
    """Asset lookup for scanning clients."""

    id: int
    asset_no: str
    name: str
    status: AssetStatus
    category_id: int
    category_label: Optional[str] = None
    department_id: int
    department_name: Optional[str] = None
    location_id: Optional[int] = None
    location_name: Optional[str] = None
    acquire_date: Optional[date] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    serial_no: Optional[str] = None
