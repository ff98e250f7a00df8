"""API routes."""

from fastapi import APIRouter

from app.api.routes import assets, auth, inventory

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(inventory.router, prefix="/inventory", tags=["inventory"])
api_router.include_router(assets.router, prefix="/assets", tags=["assets"])
