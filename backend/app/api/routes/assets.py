"""Asset register lookups used by scanning clients."""

from fastapi import APIRouter, HTTPException, Request, status
from sqlalchemy.orm import joinedload

from app.core.rate_limit import limiter
from app.core.rbac import CurrentUser
from app.db.session import DbSession
from app.models.asset import Asset
from app.models.category import Category
from app.schemas.asset import AssetResponse

router = APIRouter()


@router.get("/by-tag/{asset_no}", response_model=AssetResponse)
@limiter.limit("120/minute")
def get_asset_by_tag(request: Request, asset_no: str, db: DbSession, current_user: CurrentUser):
    """Preview an asset by its printed tag before scanning it."""
    asset = (
        db.query(Asset)
        .options(
            joinedload(Asset.category).joinedload(Category.parent),
            joinedload(Asset.department),
            joinedload(Asset.location),
        )
        .filter(Asset.asset_no == asset_no.strip())
        .first()
    )
    if not asset:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Asset not found")

    return AssetResponse(
        id=asset.id,
        asset_no=asset.asset_no,
        name=asset.name,
        status=asset.status,
        category_id=asset.category_id,
        category_label=asset.category.label if asset.category else None,
        department_id=asset.department_id,
        department_name=asset.department.name if asset.department else None,
        location_id=asset.location_id,
        location_name=asset.location.name if asset.location else None,
        acquire_date=asset.acquire_date,
        brand=asset.brand,
        model=asset.model,
        serial_no=asset.serial_no,
    )
