"""Catalog sync: Shopify → staging tables.

Flow:
1. Load the merchant and parse its source config into store credentials
2. Fetch the full catalog through ShopifyClient (all pages, or nothing)
3. Upsert every product in its own transaction ("smart upsert"):
   - new products start PENDING
   - raw fields are overwritten; media and variants are cleared and rebuilt
   - a curated record whose title changed is re-armed to NEEDS_REVIEW

Products are committed in source order. A failure on product N leaves
products before N committed and aborts the rest of the sync.

Syncs for the same merchant are serialized with a Redis advisory lock when
Redis is available.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
import logging

from redis.exceptions import RedisError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_hub.models import Merchant, StagingMedia, StagingProduct, StagingStatus, StagingVariant
from catalog_hub.services.errors import InternalError, NotFoundError, SyncInProgressError
from catalog_hub.services.shopify_client import ShopifyClient, ShopifyProduct, StoreCredentials
from catalog_hub.settings import get_settings
from catalog_hub.stores.postgres import get_session
from catalog_hub.stores.redis import acquire_lock, release_lock

logger = logging.getLogger("uvicorn.error")

SessionScope = Callable[[], AbstractAsyncContextManager[AsyncSession]]

AUTO_SYNC_NOTE = "Auto-Sync: Product details changed on Shopify."


@dataclass
class SyncResult:
    """Counters from one merchant sync."""

    merchant_id: int
    products_synced: int = 0
    variants_synced: int = 0


def price_to_minor(price: str | None) -> int | None:
    """Parse a decimal price string into minor units (round half-up).

    Returns None when the price is missing or not a finite decimal.

    Examples:
        "12.30" -> 1230
        "0" -> 0
        "9.995" -> 1000
    """
    if price is None:
        return None
    text = str(price).strip()
    if not text:
        return None
    try:
        amount = Decimal(text)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# ============================================================
# Advisory lock
# ============================================================


def _lock_key(merchant_id: int) -> str:
    return f"sync:merchant:{merchant_id}"


async def _acquire_sync_lock(merchant_id: int) -> bool:
    """Take the per-merchant lock. Returns False when Redis is unavailable."""
    try:
        acquired = await acquire_lock(_lock_key(merchant_id), get_settings().sync_lock_ttl_s)
    except (RuntimeError, RedisError) as e:
        logger.warning(f"Sync lock unavailable for merchant_id={merchant_id}, proceeding without it: {e}")
        return False
    if not acquired:
        raise SyncInProgressError(
            f"A sync is already running for merchant {merchant_id}",
            detail={"merchantId": merchant_id},
        )
    return True


async def _release_sync_lock(merchant_id: int) -> None:
    try:
        await release_lock(_lock_key(merchant_id))
    except (RuntimeError, RedisError) as e:
        logger.warning(f"Failed to release sync lock for merchant_id={merchant_id}: {e}")


# ============================================================
# Sync
# ============================================================


async def load_store_credentials(session: AsyncSession, merchant_id: int) -> StoreCredentials:
    """Load a merchant and parse its source config."""
    merchant = await session.get(Merchant, merchant_id)
    if merchant is None:
        raise NotFoundError(f"Merchant {merchant_id} not found", detail={"merchantId": merchant_id})
    return StoreCredentials.from_source_config(merchant.source_config)


async def sync_merchant_catalog(
    merchant_id: int,
    *,
    client: ShopifyClient | None = None,
    session_scope: SessionScope = get_session,
) -> SyncResult:
    """Fetch a merchant's Shopify catalog and upsert it into staging.

    Args:
        merchant_id: Merchant to sync.
        client: Optional ShopifyClient (defaults to one configured from settings).
        session_scope: Factory for one transactional session scope.

    Returns:
        SyncResult with products and variants processed.
    """
    locked = await _acquire_sync_lock(merchant_id)
    try:
        return await _run_sync(merchant_id, client=client, session_scope=session_scope)
    finally:
        if locked:
            await _release_sync_lock(merchant_id)


async def _run_sync(
    merchant_id: int,
    *,
    client: ShopifyClient | None,
    session_scope: SessionScope,
) -> SyncResult:
    async with session_scope() as session:
        credentials = await load_store_credentials(session, merchant_id)

    client = client or ShopifyClient()
    logger.info(f"[sync] start merchant_id={merchant_id}")
    products = await client.fetch_all(credentials)
    logger.info(f"[sync] fetched merchant_id={merchant_id} products={len(products)}")

    result = SyncResult(merchant_id=merchant_id)
    for product in products:
        try:
            async with session_scope() as session:
                variants = await upsert_staging_product(session, merchant_id, product)
        except SQLAlchemyError as e:
            logger.exception(f"[sync] failed to stage product merchant_id={merchant_id} external_id={product.id}")
            raise InternalError(
                f"Failed to stage product {product.id}",
                detail={"merchantId": merchant_id, "externalProductId": product.id},
            ) from e
        result.products_synced += 1
        result.variants_synced += variants

    logger.info(
        "[sync] done merchant_id=%s products_synced=%s variants_synced=%s",
        merchant_id,
        result.products_synced,
        result.variants_synced,
    )
    return result


async def upsert_staging_product(session: AsyncSession, merchant_id: int, product: ShopifyProduct) -> int:
    """Insert or update one staging product and rebuild its children.

    Returns:
        Number of variants staged for the product.
    """
    res = await session.execute(
        select(StagingProduct).where(
            StagingProduct.merchant_id == merchant_id,
            StagingProduct.external_product_id == product.id,
        )
    )
    staging = res.scalar_one_or_none()

    is_new = staging is None
    title_changed = False
    if staging is None:
        staging = StagingProduct(
            merchant_id=merchant_id,
            external_product_id=product.id,
            status=StagingStatus.PENDING,
            match_confidence_score=0,
            media=[],
            variants=[],
        )
        session.add(staging)
    else:
        title_changed = staging.raw_title != product.title

    # Raw fields
    staging.raw_title = product.title
    staging.raw_body_html = product.description_html
    staging.raw_vendor = product.vendor
    staging.raw_product_type = product.product_type
    staging.raw_tags = list(product.tags)
    staging.raw_json_dump = product.raw
    staging.raw_options_definition = [{"name": o.name, "values": list(o.values)} for o in product.options]

    # Media: clear and rebuild in source order
    staging.media.clear()
    position = 1
    for m in product.media:
        if not m.url:
            logger.debug(f"[sync] skipping media without url external_id={product.id} media_id={m.id} type={m.media_type}")
            continue
        staging.media.append(
            StagingMedia(
                external_media_id=m.id,
                media_type=m.media_type,
                source_url=m.url,
                alt_text=m.alt_text,
                position=position,
            )
        )
        position += 1

    # Variants: clear and rebuild
    staging.variants.clear()
    for v in product.variants:
        price_minor = price_to_minor(v.price)
        if price_minor is None:
            logger.warning(f"[sync] unparseable price external_variant_id={v.id} price={v.price!r}")
        staging.variants.append(
            StagingVariant(
                external_variant_id=v.id,
                raw_sku=v.sku,
                raw_barcode=v.barcode,
                raw_price_minor=price_minor,
                raw_options=dict(v.options),
                status="PENDING",
            )
        )

    # Re-arm curated records whose details changed upstream
    if not is_new and title_changed and staging.status != StagingStatus.PENDING:
        logger.info(
            f"[sync] re-arming staging_id={staging.id} external_id={product.id} "
            f"prior_status={staging.status.value} -> NEEDS_REVIEW"
        )
        staging.status = StagingStatus.NEEDS_REVIEW
        staging.admin_notes = AUTO_SYNC_NOTE

    await session.flush()
    return len(product.variants)
