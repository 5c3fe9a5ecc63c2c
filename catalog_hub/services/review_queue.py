"""Admin review surface: queue, counters, staging detail, variant matching."""

from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_hub.models import Merchant, Product, StagingProduct, StagingStatus, Variant
from catalog_hub.models.staging import PENDING_REVIEW_STATUSES
from catalog_hub.schemas.staging import (
    AdminStats,
    ReviewQueueItem,
    ReviewQueuePage,
    StagingDetail,
    StagingMediaOut,
    StagingVariantOut,
    VariantMatchResponse,
    VariantMatchSuggestion,
)
from catalog_hub.services.errors import BadRequestError, NotFoundError
from catalog_hub.services.variants import match_staging_variant

REJECTED_WINDOW = timedelta(days=7)
MAX_PAGE_SIZE = 100


def _parse_status(status: str) -> StagingStatus:
    try:
        return StagingStatus(status.strip().upper())
    except ValueError:
        raise BadRequestError(
            f"Unknown status: {status}",
            detail={"allowed": [s.value for s in StagingStatus]},
        ) from None


async def _merchant_names(session: AsyncSession, merchant_ids: set[int]) -> dict[int, str]:
    if not merchant_ids:
        return {}
    res = await session.execute(select(Merchant.id, Merchant.name).where(Merchant.id.in_(merchant_ids)))
    return {mid: name for mid, name in res.all()}


async def get_admin_stats(session: AsyncSession, *, now: datetime | None = None) -> AdminStats:
    """Pending reviews, master catalog size, rejections in the last 7 days."""
    now = now or datetime.now(timezone.utc)
    week_start = now - REJECTED_WINDOW

    pending = (
        await session.execute(
            select(func.count())
            .select_from(StagingProduct)
            .where(StagingProduct.status.in_(PENDING_REVIEW_STATUSES))
        )
    ).scalar_one()
    masters = (await session.execute(select(func.count()).select_from(Product))).scalar_one()
    rejected = (
        await session.execute(
            select(func.count())
            .select_from(StagingProduct)
            .where(
                StagingProduct.status == StagingStatus.REJECTED,
                StagingProduct.updated_at >= week_start,
            )
        )
    ).scalar_one()

    return AdminStats(pending_reviews=pending, total_master_products=masters, rejected_this_week=rejected)


async def get_review_queue(
    session: AsyncSession,
    *,
    status: str | None = None,
    page: int = 1,
    size: int = 20,
) -> ReviewQueuePage:
    """Staging records awaiting review, oldest first.

    Without `status` the queue covers PENDING and NEEDS_REVIEW.
    """
    statuses = (_parse_status(status),) if status and status.strip() else PENDING_REVIEW_STATUSES
    page = max(1, page)
    size = min(max(1, size), MAX_PAGE_SIZE)

    where = StagingProduct.status.in_(statuses)
    total = (await session.execute(select(func.count()).select_from(StagingProduct).where(where))).scalar_one()
    res = await session.execute(
        select(StagingProduct)
        .where(where)
        .order_by(StagingProduct.created_at.asc(), StagingProduct.id.asc())
        .offset((page - 1) * size)
        .limit(size)
    )
    rows = res.scalars().all()
    names = await _merchant_names(session, {p.merchant_id for p in rows})

    items = [
        ReviewQueueItem(
            staging_id=p.id,
            merchant_id=p.merchant_id,
            merchant_name=names.get(p.merchant_id, ""),
            raw_title=p.raw_title,
            status=p.status.value,
            created_at=p.created_at,
            match_confidence=p.match_confidence_score or 0,
            suggested_master_id=p.suggested_product_id,
        )
        for p in rows
    ]
    return ReviewQueuePage(items=items, total=total, page=page, size=size)


async def get_staging_detail(session: AsyncSession, staging_id: int) -> StagingDetail:
    """Full staging record with ordered media and variants."""
    staging = await session.get(StagingProduct, staging_id)
    if staging is None:
        raise NotFoundError(f"Staging product {staging_id} not found", detail={"stagingId": staging_id})
    names = await _merchant_names(session, {staging.merchant_id})

    media = sorted(staging.media, key=lambda m: m.position)
    return StagingDetail(
        staging_id=staging.id,
        merchant_id=staging.merchant_id,
        merchant_name=names.get(staging.merchant_id, ""),
        external_product_id=staging.external_product_id,
        raw_title=staging.raw_title,
        raw_body_html=staging.raw_body_html,
        raw_vendor=staging.raw_vendor,
        raw_product_type=staging.raw_product_type,
        raw_tags=list(staging.raw_tags or []),
        raw_options_definition=list(staging.raw_options_definition or []),
        status=staging.status.value,
        match_confidence_score=staging.match_confidence_score,
        suggested_product_id=staging.suggested_product_id,
        rejection_reason=staging.rejection_reason,
        admin_notes=staging.admin_notes,
        created_at=staging.created_at,
        updated_at=staging.updated_at,
        image_url=media[0].source_url if media else None,
        media=[
            StagingMediaOut(
                id=m.id,
                source_url=m.source_url,
                alt_text=m.alt_text,
                position=m.position,
                media_type=m.media_type,
            )
            for m in media
        ],
        variants=[
            StagingVariantOut(
                staging_variant_id=sv.id,
                external_variant_id=sv.external_variant_id,
                raw_sku=sv.raw_sku,
                raw_barcode=sv.raw_barcode,
                raw_price_minor=sv.raw_price_minor,
                raw_options=dict(sv.raw_options or {}),
            )
            for sv in staging.variants
        ],
    )


async def get_variant_match_suggestions(
    session: AsyncSession,
    staging_id: int,
    master_product_id: int,
) -> VariantMatchResponse:
    """Suggest a master variant for every staging variant of a record."""
    staging = await session.get(StagingProduct, staging_id)
    if staging is None:
        raise NotFoundError(f"Staging product {staging_id} not found", detail={"stagingId": staging_id})
    master = await session.get(Product, master_product_id)
    if master is None:
        raise NotFoundError(
            f"Master product {master_product_id} not found",
            detail={"masterProductId": master_product_id},
        )

    res = await session.execute(select(Variant).where(Variant.product_id == master.id).order_by(Variant.id))
    master_variants = res.scalars().all()

    matches = []
    for sv in staging.variants:
        match = match_staging_variant(
            raw_barcode=sv.raw_barcode,
            raw_sku=sv.raw_sku,
            raw_options=sv.raw_options,
            master_variants=master_variants,
        )
        matches.append(
            VariantMatchSuggestion(
                staging_variant_id=sv.id,
                staging_options=dict(sv.raw_options or {}),
                suggested_master_variant_id=match.master_variant_id,
                match_reason=match.match_type.value,
            )
        )

    return VariantMatchResponse(staging_product_id=staging.id, master_product_id=master.id, matches=matches)
