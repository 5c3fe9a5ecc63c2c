"""Master catalog views and maintenance."""

import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_hub.models import Brand, MerchantOffer, Product, StagingProduct, StagingVariant, Variant
from catalog_hub.schemas.catalog import BackfillResult, MasterProductItem, MasterProductPage, MasterVariant
from catalog_hub.services.errors import NotFoundError
from catalog_hub.services.keys import normalize_attributes

logger = logging.getLogger("uvicorn.error")

SEARCH_LIMIT = 10
MAX_PAGE_SIZE = 100


async def _to_items(session: AsyncSession, products: list[Product]) -> list[MasterProductItem]:
    """Attach brand names and variant counts."""
    if not products:
        return []

    brand_ids = {p.brand_id for p in products if p.brand_id is not None}
    brands: dict[int, str] = {}
    if brand_ids:
        res = await session.execute(select(Brand.id, Brand.name).where(Brand.id.in_(brand_ids)))
        brands = {bid: name for bid, name in res.all()}

    res = await session.execute(
        select(Variant.product_id, func.count())
        .where(Variant.product_id.in_([p.id for p in products]))
        .group_by(Variant.product_id)
    )
    counts = {pid: n for pid, n in res.all()}

    return [
        MasterProductItem(
            id=p.id,
            title=p.title,
            slug=p.slug,
            brand=brands.get(p.brand_id, "") if p.brand_id is not None else "",
            image_url=p.image_url,
            variant_count=counts.get(p.id, 0),
        )
        for p in products
    ]


async def search_master_products(session: AsyncSession, q: str | None) -> list[MasterProductItem]:
    """Case-insensitive title search, top 10. A blank query returns nothing."""
    if not q or not q.strip():
        return []
    needle = q.strip().lower()
    res = await session.execute(
        select(Product)
        .where(func.lower(Product.title).contains(needle, autoescape=True))
        .order_by(Product.title.asc(), Product.id.asc())
        .limit(SEARCH_LIMIT)
    )
    return await _to_items(session, list(res.scalars().all()))


async def list_master_products(session: AsyncSession, *, page: int = 1, size: int = 20) -> MasterProductPage:
    page = max(1, page)
    size = min(max(1, size), MAX_PAGE_SIZE)
    total = (await session.execute(select(func.count()).select_from(Product))).scalar_one()
    res = await session.execute(
        select(Product).order_by(Product.id.desc()).offset((page - 1) * size).limit(size)
    )
    items = await _to_items(session, list(res.scalars().all()))
    return MasterProductPage(items=items, total=total, page=page, size=size)


async def list_master_variants(session: AsyncSession, product_id: int) -> list[MasterVariant]:
    if await session.get(Product, product_id) is None:
        raise NotFoundError(f"Master product {product_id} not found", detail={"productId": product_id})
    res = await session.execute(select(Variant).where(Variant.product_id == product_id).order_by(Variant.id))
    return [
        MasterVariant(
            id=v.id,
            internal_sku=v.internal_sku,
            gtin=v.gtin,
            mpn=v.mpn,
            options=dict(v.options or {}),
            status=v.status,
            is_active=v.is_active,
        )
        for v in res.scalars().all()
    ]


async def backfill_variant_options(session: AsyncSession, product_id: int) -> BackfillResult:
    """Fill empty variant options from the staging variants they were approved from.

    A variant is matched to staging through its active offers: same merchant,
    same external variant id. The first staging variant with non-empty options
    wins.
    """
    if await session.get(Product, product_id) is None:
        raise NotFoundError(f"Master product {product_id} not found", detail={"productId": product_id})

    res = await session.execute(select(Variant).where(Variant.product_id == product_id).order_by(Variant.id))
    empty = [v for v in res.scalars().all() if not v.options]
    if not empty:
        return BackfillResult(product_id=product_id, updated_variants=0)

    res = await session.execute(
        select(MerchantOffer.variant_id, StagingVariant.raw_options)
        .join(StagingProduct, StagingProduct.merchant_id == MerchantOffer.merchant_id)
        .join(
            StagingVariant,
            (StagingVariant.staging_product_id == StagingProduct.id)
            & (StagingVariant.external_variant_id == MerchantOffer.external_variant_id),
        )
        .where(
            MerchantOffer.variant_id.in_([v.id for v in empty]),
            MerchantOffer.is_active.is_(True),
            MerchantOffer.external_variant_id.is_not(None),
        )
        .order_by(MerchantOffer.id, StagingVariant.id)
    )
    options_by_variant: dict[int, dict[str, str]] = {}
    for variant_id, raw_options in res.all():
        if raw_options and variant_id not in options_by_variant:
            options_by_variant[variant_id] = dict(raw_options)

    updated = 0
    for variant in empty:
        options = options_by_variant.get(variant.id)
        if not options:
            continue
        variant.options = options
        variant.normalized_attributes = normalize_attributes(options)
        updated += 1
    await session.flush()

    logger.info(f"[catalog] backfilled options product_id={product_id} updated={updated}")
    return BackfillResult(product_id=product_id, updated_variants=updated)
