"""Admin endpoints: review queue, decisions and the master catalog.

In production, consider adding authentication (API key or admin token).
"""

import logging

from fastapi import APIRouter, Query

from catalog_hub.schemas.catalog import BackfillResult, MasterProductItem, MasterProductPage, MasterVariant
from catalog_hub.schemas.review import DecisionResponse, ReviewDecisionRequest
from catalog_hub.schemas.staging import AdminStats, ReviewQueuePage, StagingDetail, VariantMatchResponse
from catalog_hub.services.master_catalog import (
    backfill_variant_options,
    list_master_products,
    list_master_variants,
    search_master_products,
)
from catalog_hub.services.review_decision import decide
from catalog_hub.services.review_queue import (
    get_admin_stats,
    get_review_queue,
    get_staging_detail,
    get_variant_match_suggestions,
)
from catalog_hub.settings import get_settings
from catalog_hub.stores.postgres import get_session

router = APIRouter()
logger = logging.getLogger("uvicorn.error")


# ============================================================
# Review
# ============================================================


@router.get("/stats", response_model=AdminStats)
async def get_stats() -> AdminStats:
    async with get_session() as session:
        return await get_admin_stats(session)


@router.get("/review/queue", response_model=ReviewQueuePage)
async def get_queue(
    status: str | None = Query(default=None, description="Defaults to PENDING + NEEDS_REVIEW"),
    page: int = Query(default=1, ge=1),
    size: int = Query(default=20, ge=1, le=100),
) -> ReviewQueuePage:
    async with get_session() as session:
        return await get_review_queue(session, status=status, page=page, size=size)


@router.get("/review/{staging_id}", response_model=StagingDetail)
async def get_review_detail(staging_id: int) -> StagingDetail:
    async with get_session() as session:
        return await get_staging_detail(session, staging_id)


@router.get("/review/{staging_id}/variants/match", response_model=VariantMatchResponse)
async def get_variant_matches(
    staging_id: int,
    master_product_id: int = Query(alias="masterProductId"),
) -> VariantMatchResponse:
    """Suggest master variants (barcode, then SKU, then options) for each staging variant."""
    async with get_session() as session:
        return await get_variant_match_suggestions(session, staging_id, master_product_id)


@router.post("/review/{staging_id}/decision", response_model=DecisionResponse)
async def post_decision(staging_id: int, request: ReviewDecisionRequest) -> DecisionResponse:
    """Approve (CREATE_NEW / LINK_EXISTING) or REJECT a staging product.

    The whole decision runs in one transaction; any failure rolls it back.
    """
    settings = get_settings()
    async with get_session(isolation_level=settings.decision_isolation_level) as session:
        result = await decide(session, staging_id, request)

    return DecisionResponse(
        action=result.action,
        staging_id=result.staging_id,
        status=result.status,
        product_id=result.product_id,
        created_variant_ids=result.created_variant_ids,
        created_offer_ids=result.created_offer_ids,
    )


# ============================================================
# Master catalog
# ============================================================


@router.get("/products", response_model=MasterProductPage)
async def get_master_products(
    page: int = Query(default=1, ge=1),
    size: int = Query(default=20, ge=1, le=100),
) -> MasterProductPage:
    async with get_session() as session:
        return await list_master_products(session, page=page, size=size)


@router.get("/products/search", response_model=list[MasterProductItem])
async def search_products(q: str = Query(default="", max_length=200)) -> list[MasterProductItem]:
    """Title search over master products (top 10)."""
    async with get_session() as session:
        return await search_master_products(session, q)


@router.get("/products/{product_id}/variants", response_model=list[MasterVariant])
async def get_product_variants(product_id: int) -> list[MasterVariant]:
    async with get_session() as session:
        return await list_master_variants(session, product_id)


@router.post("/products/{product_id}/backfill-options", response_model=BackfillResult)
async def backfill_options(product_id: int) -> BackfillResult:
    """Copy staging options onto variants approved without them."""
    async with get_session() as session:
        result = await backfill_variant_options(session, product_id)
    logger.info(f"[admin] backfill-options product_id={product_id} updated={result.updated_variants}")
    return result
