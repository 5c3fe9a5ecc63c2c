"""API routes."""

from fastapi import APIRouter

from catalog_hub.routes import admin, merchants

api_router = APIRouter()

# Merchant endpoints (management, sync, dashboard)
api_router.include_router(merchants.router, prefix="/v1/merchants", tags=["merchants"])

# Admin endpoints (review, master catalog)
api_router.include_router(admin.router, prefix="/v1/admin", tags=["admin"])
