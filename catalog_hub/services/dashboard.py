"""Merchant dashboard: staging listings per tab, counters, re-sync.

Tabs:
- approved: APPROVED (live)
- review:   PENDING, PENDING_SYNC, PROCESSING, AUTO_MATCHED, NEEDS_REVIEW
- issues:   REJECTED
- all:      every status

Search is a case-insensitive substring match over title, vendor, product type
and variant SKUs. A search spans every status; the tab then only picks the
sort order.
"""

import logging

from sqlalchemy import exists, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_hub.models import Merchant, StagingProduct, StagingStatus, StagingVariant
from catalog_hub.models.staging import ISSUE_STATUSES, LIVE_STATUSES, UNDER_REVIEW_STATUSES
from catalog_hub.schemas.staging import MerchantStats, StagingListItem, StagingPage
from catalog_hub.services.errors import BadRequestError, NotFoundError

logger = logging.getLogger("uvicorn.error")

TAB_STATUSES: dict[str, tuple[StagingStatus, ...] | None] = {
    "approved": LIVE_STATUSES,
    "review": UNDER_REVIEW_STATUSES,
    "issues": ISSUE_STATUSES,
    "all": None,
}
DEFAULT_TAB = "approved"
MAX_PAGE_SIZE = 100


async def ensure_merchant_exists(session: AsyncSession, merchant_id: int) -> Merchant:
    merchant = await session.get(Merchant, merchant_id)
    if merchant is None:
        raise NotFoundError(f"Merchant {merchant_id} not found", detail={"merchantId": merchant_id})
    return merchant


def to_list_item(p: StagingProduct) -> StagingListItem:
    """Dashboard row; the image is the first media item by position."""
    return StagingListItem(
        id=p.id,
        title=p.raw_title,
        vendor=p.raw_vendor,
        product_type=p.raw_product_type,
        status=p.status.value,
        image_url=p.media[0].source_url if p.media else None,
        rejection_reason=p.rejection_reason,
        created_at=p.created_at,
        updated_at=p.updated_at,
    )


def search_clause(q: str):
    """Case-insensitive substring filter over title/vendor/type/variant SKU."""
    needle = q.strip().lower()
    sku_match = exists().where(
        StagingVariant.staging_product_id == StagingProduct.id,
        func.lower(StagingVariant.raw_sku).contains(needle, autoescape=True),
    )
    return or_(
        func.lower(StagingProduct.raw_title).contains(needle, autoescape=True),
        func.lower(StagingProduct.raw_vendor).contains(needle, autoescape=True),
        func.lower(StagingProduct.raw_product_type).contains(needle, autoescape=True),
        sku_match,
    )


async def list_products_by_tab(
    session: AsyncSession,
    merchant_id: int,
    *,
    tab: str | None = None,
    q: str | None = None,
    page: int = 1,
    size: int = 20,
) -> StagingPage:
    """One page of a merchant's staging products for a dashboard tab."""
    tab_key = (tab or DEFAULT_TAB).strip().lower()
    if tab_key not in TAB_STATUSES:
        raise BadRequestError(f"Unknown tab: {tab}", detail={"allowed": list(TAB_STATUSES)})
    page = max(1, page)
    size = min(max(1, size), MAX_PAGE_SIZE)

    await ensure_merchant_exists(session, merchant_id)

    filters = [StagingProduct.merchant_id == merchant_id]
    statuses = TAB_STATUSES[tab_key]
    if q and q.strip():
        filters.append(search_clause(q))
    elif statuses is not None:
        filters.append(StagingProduct.status.in_(statuses))

    total = (await session.execute(select(func.count()).select_from(StagingProduct).where(*filters))).scalar_one()

    # Live and rejected rows are most interesting by last change; the rest by arrival
    if tab_key in ("approved", "issues"):
        order = (StagingProduct.updated_at.desc(), StagingProduct.id.desc())
    else:
        order = (StagingProduct.created_at.desc(), StagingProduct.id.desc())

    res = await session.execute(
        select(StagingProduct).where(*filters).order_by(*order).offset((page - 1) * size).limit(size)
    )
    items = [to_list_item(p) for p in res.scalars().all()]
    return StagingPage(tab=tab_key, items=items, total=total, page=page, size=size)


async def get_merchant_stats(session: AsyncSession, merchant_id: int) -> MerchantStats:
    """Counters for the merchant dashboard header."""
    await ensure_merchant_exists(session, merchant_id)

    res = await session.execute(
        select(StagingProduct.status, func.count())
        .where(StagingProduct.merchant_id == merchant_id)
        .group_by(StagingProduct.status)
    )
    counts: dict[StagingStatus, int] = {StagingStatus(status): n for status, n in res.all()}

    live = sum(counts.get(s, 0) for s in LIVE_STATUSES)
    under_review = sum(counts.get(s, 0) for s in UNDER_REVIEW_STATUSES)
    issues = sum(counts.get(s, 0) for s in ISSUE_STATUSES)
    return MerchantStats(
        live_products=live,
        under_review=under_review,
        issues=issues,
        total_skus=live + under_review + issues,
    )


async def resync_staging_product(session: AsyncSession, merchant_id: int, staging_id: int) -> StagingListItem:
    """Re-arm a staging record (status PENDING_SYNC).

    A record owned by another merchant is reported as not found.
    """
    await ensure_merchant_exists(session, merchant_id)
    staging = await session.get(StagingProduct, staging_id)
    if staging is None or staging.merchant_id != merchant_id:
        raise NotFoundError(f"Staging product {staging_id} not found", detail={"stagingId": staging_id})

    staging.status = StagingStatus.PENDING_SYNC
    await session.flush()
    await session.refresh(staging)
    logger.info(f"[dashboard] re-armed staging_id={staging_id} merchant_id={merchant_id}")
    return to_list_item(staging)
