"""Merchant endpoints: management, catalog sync and the merchant dashboard."""

import logging

from fastapi import APIRouter, Query

from catalog_hub.schemas.merchant import CreateMerchantRequest, MerchantOut, SyncResponse, UpdateMerchantRequest
from catalog_hub.schemas.staging import MerchantStats, StagingListItem, StagingPage
from catalog_hub.services.catalog_sync import sync_merchant_catalog
from catalog_hub.services.dashboard import get_merchant_stats, list_products_by_tab, resync_staging_product
from catalog_hub.services.merchants import create_merchant, list_active_merchants, update_merchant
from catalog_hub.stores.postgres import get_session

router = APIRouter()
logger = logging.getLogger("uvicorn.error")


@router.get("", response_model=list[MerchantOut])
async def get_merchants() -> list[MerchantOut]:
    """List active merchants."""
    async with get_session() as session:
        return await list_active_merchants(session)


@router.post("", response_model=MerchantOut, status_code=201)
async def post_merchant(request: CreateMerchantRequest) -> MerchantOut:
    """Create a merchant with its storefront source config."""
    async with get_session() as session:
        return await create_merchant(session, request)


@router.patch("/{merchant_id}", response_model=MerchantOut)
async def patch_merchant(merchant_id: int, request: UpdateMerchantRequest) -> MerchantOut:
    """Update name, active flag or source config."""
    async with get_session() as session:
        return await update_merchant(session, merchant_id, request)


@router.post("/{merchant_id}/sync", response_model=SyncResponse)
async def trigger_sync(merchant_id: int) -> SyncResponse:
    """Fetch the merchant's Shopify catalog into staging.

    Runs synchronously; products are committed one by one as they are staged.
    """
    result = await sync_merchant_catalog(merchant_id)
    return SyncResponse(
        merchant_id=result.merchant_id,
        products_synced=result.products_synced,
        variants_synced=result.variants_synced,
    )


@router.get("/{merchant_id}/products", response_model=StagingPage)
async def get_products(
    merchant_id: int,
    tab: str = Query(default="approved", description="approved | review | issues | all"),
    q: str | None = Query(default=None, max_length=200),
    page: int = Query(default=1, ge=1),
    size: int = Query(default=20, ge=1, le=100),
) -> StagingPage:
    """Staging products for a dashboard tab, optionally filtered by search."""
    async with get_session() as session:
        return await list_products_by_tab(session, merchant_id, tab=tab, q=q, page=page, size=size)


@router.get("/{merchant_id}/stats", response_model=MerchantStats)
async def get_stats(merchant_id: int) -> MerchantStats:
    async with get_session() as session:
        return await get_merchant_stats(session, merchant_id)


@router.post("/{merchant_id}/products/{staging_id}/resync", response_model=StagingListItem)
async def resync_product(merchant_id: int, staging_id: int) -> StagingListItem:
    """Re-arm a staging record (status PENDING_SYNC)."""
    async with get_session() as session:
        return await resync_staging_product(session, merchant_id, staging_id)
