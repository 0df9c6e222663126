"""Version 1 API router."""
from fastapi import APIRouter

from src.api.v1.endpoints import admin, businesses, subscription


api_router = APIRouter(prefix="/v1")
api_router.include_router(subscription.router)
api_router.include_router(businesses.router)
api_router.include_router(admin.router)
