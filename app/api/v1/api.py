"""API v1 router composition."""

from fastapi import APIRouter

from app.api.v1.endpoints import orders, settings

api_router: APIRouter = APIRouter()
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(settings.router, prefix="/settings", tags=["settings"])
