"""Review decision engine: staging → canonical catalog.

A reviewer's decision moves a staging record to APPROVED or REJECTED:
- REJECT:        store reason and notes, touch nothing else
- CREATE_NEW:    new master product + media + categories + generated variants,
                 with offers backfilled from matching staging variants
- LINK_EXISTING: attach staging variants to an existing master product
                 (link to a master variant, add a new one, or add manual ones)

The caller owns the transaction: `decide` only flushes, so one session scope
(opened SERIALIZABLE by the router) covers every read and write of a decision.
All validation happens before the first write.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_hub.models import (
    Brand,
    Category,
    Media,
    MerchantOffer,
    Product,
    ProductCategory,
    StagingMedia,
    StagingProduct,
    StagingStatus,
    StagingVariant,
    Variant,
)
from catalog_hub.schemas.review import (
    CreateNewDecision,
    LinkExistingDecision,
    MediaSelection,
    RejectDecision,
    ReviewDecision,
    ReviewDecisionRequest,
)
from catalog_hub.services.errors import BadRequestError, NotFoundError
from catalog_hub.services.keys import (
    generate_slug,
    generated_variant_sku,
    linked_variant_sku,
    manual_variant_sku,
    normalize_attributes,
    normalized_options_key,
)
from catalog_hub.services.variants import (
    MAX_VARIANT_COMBINATIONS,
    cardinality,
    clean_options_definition,
    cross_product,
)

logger = logging.getLogger("uvicorn.error")

OFFER_CURRENCY = "INR"
OFFER_STATUS_LIVE = "LIVE"
PRODUCT_STATUS_ACTIVE = "ACTIVE"
VARIANT_STATUS_ACTIVE = "ACTIVE"


@dataclass
class DecisionResult:
    """Outcome of one review decision."""

    action: str
    staging_id: int
    status: str
    product_id: int | None = None
    created_variant_ids: list[int] = field(default_factory=list)
    created_offer_ids: list[int] = field(default_factory=list)


async def decide(
    session: AsyncSession,
    staging_id: int,
    decision: ReviewDecision | ReviewDecisionRequest,
) -> DecisionResult:
    """Apply a review decision to a staging product.

    Raises:
        NotFoundError: staging product, master product or master variant missing.
        BadRequestError: payload references data outside this staging product,
            options explode past the limit, or keys would collide.
    """
    if isinstance(decision, ReviewDecisionRequest):
        decision = decision.root

    staging = await session.get(StagingProduct, staging_id)
    if staging is None:
        raise NotFoundError(f"Staging product {staging_id} not found", detail={"stagingId": staging_id})

    if isinstance(decision, RejectDecision):
        result = await _reject(session, staging, decision)
    elif isinstance(decision, CreateNewDecision):
        result = await _create_new(session, staging, decision)
    elif isinstance(decision, LinkExistingDecision):
        result = await _link_existing(session, staging, decision)
    else:
        raise BadRequestError(f"Unknown review action: {getattr(decision, 'action', None)!r}")

    logger.info(
        "[review] staging_id=%s action=%s status=%s product_id=%s variants=%s offers=%s",
        result.staging_id,
        result.action,
        result.status,
        result.product_id,
        len(result.created_variant_ids),
        len(result.created_offer_ids),
    )
    return result


# ============================================================
# REJECT
# ============================================================


async def _reject(session: AsyncSession, staging: StagingProduct, decision: RejectDecision) -> DecisionResult:
    staging.status = StagingStatus.REJECTED
    staging.rejection_reason = decision.rejection_reason
    staging.admin_notes = decision.admin_notes
    await session.flush()
    return DecisionResult(action="REJECT", staging_id=staging.id, status=StagingStatus.REJECTED.value)


# ============================================================
# CREATE_NEW
# ============================================================


async def _create_new(session: AsyncSession, staging: StagingProduct, decision: CreateNewDecision) -> DecisionResult:
    clean = decision.clean_data

    # Validate everything before the first write
    definition = clean_options_definition(clean.options_definition)
    combinations = cardinality(definition)
    if combinations > MAX_VARIANT_COMBINATIONS:
        raise BadRequestError(
            f"Options definition yields {combinations} variant combinations "
            f"(maximum {MAX_VARIANT_COMBINATIONS})",
            detail={"combinations": combinations, "max": MAX_VARIANT_COMBINATIONS},
        )

    staging_media = _validate_media_selection(staging, clean)

    if clean.brand_id is not None and await session.get(Brand, clean.brand_id) is None:
        raise BadRequestError(f"Brand {clean.brand_id} does not exist", detail={"brandId": clean.brand_id})

    category_ids = list(dict.fromkeys(clean.category_ids))
    if category_ids:
        res = await session.execute(select(Category.id).where(Category.id.in_(category_ids)))
        known = set(res.scalars().all())
        missing = [cid for cid in category_ids if cid not in known]
        if missing:
            raise BadRequestError("Unknown category ids", detail={"categoryIds": missing})

    slug = clean.slug or generate_slug(clean.title)
    res = await session.execute(select(Product.id).where(Product.slug == slug))
    if res.scalar_one_or_none() is not None:
        raise BadRequestError(f"Slug already in use: {slug}", detail={"slug": slug})

    # Product
    product = Product(
        title=clean.title,
        slug=slug,
        description=clean.description,
        brand_id=clean.brand_id,
        options_definition=definition,
        specifications=clean.specifications if clean.specifications is not None else {},
        status=PRODUCT_STATUS_ACTIVE,
    )
    session.add(product)
    await session.flush()

    # Media (positions 0..N-1, selected first, then extra)
    urls = _add_media(session, product.id, clean, staging_media, start_position=0)
    if urls:
        product.image_url = urls[0]

    # Categories
    for category_id in category_ids:
        session.add(ProductCategory(product_id=product.id, category_id=category_id))

    # Variants
    definition_keys = {k.strip().lower() for k in definition}
    staging_keys: list[tuple[str, StagingVariant]] = []
    for sv in staging.variants:
        restricted = {k: v for k, v in (sv.raw_options or {}).items() if str(k).strip().lower() in definition_keys}
        staging_keys.append((normalized_options_key(restricted), sv))

    consumed: set[int] = set()
    pairs: list[tuple[Variant, StagingVariant | None]] = []
    for combo in cross_product(definition):
        combo_key = normalized_options_key(combo)
        match = next((sv for key, sv in staging_keys if key == combo_key and sv.id not in consumed), None)
        variant = Variant(
            product_id=product.id,
            internal_sku=generated_variant_sku(slug, list(combo.values())),
            options=combo,
            normalized_attributes=normalize_attributes(combo),
            status=VARIANT_STATUS_ACTIVE,
            is_active=True,
        )
        if match is not None:
            consumed.add(match.id)
            variant.gtin = match.raw_barcode
            variant.mpn = match.raw_sku
        session.add(variant)
        pairs.append((variant, match))
    await session.flush()

    result = DecisionResult(
        action="CREATE_NEW",
        staging_id=staging.id,
        status=StagingStatus.APPROVED.value,
        product_id=product.id,
        created_variant_ids=[v.id for v, _ in pairs],
    )

    # Offer backfill
    for variant, sv in pairs:
        if sv is None:
            continue
        offer = await create_merchant_offer(session, staging, sv, variant.id)
        if offer is not None:
            result.created_offer_ids.append(offer.id)

    staging.status = StagingStatus.APPROVED
    if decision.admin_notes is not None:
        staging.admin_notes = decision.admin_notes
    await session.flush()
    return result


# ============================================================
# LINK_EXISTING
# ============================================================


async def _link_existing(
    session: AsyncSession,
    staging: StagingProduct,
    decision: LinkExistingDecision,
) -> DecisionResult:
    master = await session.get(Product, decision.master_product_id)
    if master is None:
        raise NotFoundError(
            f"Master product {decision.master_product_id} not found",
            detail={"masterProductId": decision.master_product_id},
        )

    staging_variants = {sv.id: sv for sv in staging.variants}
    mapping = decision.variant_mapping

    foreign = [
        e.staging_variant_id
        for e in mapping
        if e.staging_variant_id is not None and e.staging_variant_id not in staging_variants
    ]
    if foreign:
        raise BadRequestError(
            "variant_mapping references variants outside this staging product",
            detail={"stagingVariantIds": foreign},
        )

    # Referenced master variants must exist and belong to the master
    master_variant_ids = {e.master_variant_id for e in mapping if e.master_variant_id is not None}
    if master_variant_ids:
        res = await session.execute(select(Variant).where(Variant.id.in_(master_variant_ids)))
        found = {v.id: v for v in res.scalars().all()}
        missing = sorted(master_variant_ids - found.keys())
        if missing:
            raise NotFoundError("Master variants not found", detail={"masterVariantIds": missing})
        wrong = sorted(vid for vid, v in found.items() if v.product_id != master.id)
        if wrong:
            raise BadRequestError(
                f"Variants do not belong to master product {master.id}",
                detail={"masterVariantIds": wrong},
            )

    # LINK-<stagingId>-<stagingVariantId> keys must be new
    link_skus = [
        linked_variant_sku(staging.id, e.staging_variant_id)
        for e in mapping
        if e.staging_variant_id is not None and e.master_variant_id is None
    ]
    if len(set(link_skus)) != len(link_skus):
        raise BadRequestError("variant_mapping adds the same staging variant twice")
    if link_skus:
        res = await session.execute(select(Variant.internal_sku).where(Variant.internal_sku.in_(link_skus)))
        taken = sorted(res.scalars().all())
        if taken:
            raise BadRequestError("Staging variants were already added as master variants", detail={"skus": taken})

    staging_media: dict[int, StagingMedia] = {}
    if decision.clean_data is not None:
        staging_media = _validate_media_selection(staging, decision.clean_data)

    result = DecisionResult(
        action="LINK_EXISTING",
        staging_id=staging.id,
        status=StagingStatus.APPROVED.value,
        product_id=master.id,
    )

    for entry in mapping:
        if entry.staging_variant_id is not None:
            sv = staging_variants[entry.staging_variant_id]
            if entry.master_variant_id is not None:
                variant_id = entry.master_variant_id
            else:
                attrs = entry.new_variant_attributes or dict(sv.raw_options or {})
                variant = Variant(
                    product_id=master.id,
                    internal_sku=linked_variant_sku(staging.id, sv.id),
                    gtin=sv.raw_barcode,
                    mpn=sv.raw_sku,
                    options=attrs,
                    normalized_attributes=normalize_attributes(attrs),
                    status=VARIANT_STATUS_ACTIVE,
                    is_active=True,
                )
                session.add(variant)
                await session.flush()
                result.created_variant_ids.append(variant.id)
                variant_id = variant.id

            offer = await create_merchant_offer(session, staging, sv, variant_id)
            if offer is not None:
                result.created_offer_ids.append(offer.id)
            continue

        # Manual variant: no staging variant to anchor an offer
        attrs = entry.new_variant_attributes or {}
        if not attrs:
            continue
        variant = Variant(
            product_id=master.id,
            internal_sku=manual_variant_sku(staging.id),
            options=attrs,
            normalized_attributes=normalize_attributes(attrs),
            status=VARIANT_STATUS_ACTIVE,
            is_active=True,
        )
        session.add(variant)
        await session.flush()
        result.created_variant_ids.append(variant.id)

    if decision.clean_data is not None:
        res = await session.execute(select(func.max(Media.position)).where(Media.product_id == master.id))
        max_position = res.scalar()
        start = 0 if max_position is None else max_position + 1
        urls = _add_media(session, master.id, decision.clean_data, staging_media, start_position=start)
        if urls and not (master.image_url or "").strip():
            master.image_url = urls[0]

    staging.status = StagingStatus.APPROVED
    if decision.admin_notes is not None:
        staging.admin_notes = decision.admin_notes
    await session.flush()
    return result


# ============================================================
# Shared helpers
# ============================================================


def _validate_media_selection(staging: StagingProduct, selection: MediaSelection) -> dict[int, StagingMedia]:
    """Check selected media ids belong to the staging product; return them by id."""
    by_id = {m.id: m for m in staging.media}
    foreign = [mid for mid in selection.selected_media_ids if mid not in by_id]
    if foreign:
        raise BadRequestError(
            "selected_media_ids contain media outside this staging product",
            detail={"mediaIds": foreign},
        )
    return by_id


def _add_media(
    session: AsyncSession,
    product_id: int,
    selection: MediaSelection,
    staging_media: dict[int, StagingMedia],
    *,
    start_position: int,
) -> list[str]:
    """Add selected staging media then extra media; return URLs in order."""
    urls: list[str] = []
    position = start_position
    for media_id in selection.selected_media_ids:
        sm = staging_media[media_id]
        session.add(Media(product_id=product_id, src_url=sm.source_url, alt_text=sm.alt_text, position=position))
        urls.append(sm.source_url)
        position += 1
    for extra in selection.extra_media:
        session.add(Media(product_id=product_id, src_url=extra.url, alt_text=extra.alt_text, position=position))
        urls.append(extra.url)
        position += 1
    return urls


async def create_merchant_offer(
    session: AsyncSession,
    staging: StagingProduct,
    staging_variant: StagingVariant,
    variant_id: int,
) -> MerchantOffer | None:
    """Create the (merchant, variant) offer unless one already exists.

    Returns:
        The new offer, or None when the pair was already offered.
    """
    res = await session.execute(
        select(MerchantOffer.id).where(
            MerchantOffer.merchant_id == staging.merchant_id,
            MerchantOffer.variant_id == variant_id,
        )
    )
    if res.scalar_one_or_none() is not None:
        logger.info(f"[review] offer exists merchant_id={staging.merchant_id} variant_id={variant_id}, skipping")
        return None

    price_minor = staging_variant.raw_price_minor if staging_variant.raw_price_minor is not None else 0
    offer = MerchantOffer(
        merchant_id=staging.merchant_id,
        variant_id=variant_id,
        external_product_id=staging.external_product_id,
        external_variant_id=staging_variant.external_variant_id,
        merchant_sku=staging_variant.raw_sku,
        currency_code=OFFER_CURRENCY,
        cached_price_minor=price_minor,
        cached_settlement_price_minor=price_minor,
        current_stock=0,
        offer_status=OFFER_STATUS_LIVE,
        is_active=True,
    )
    session.add(offer)
    await session.flush()
    return offer
