"""Merchant management: list, create, update source config."""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_hub.models import Merchant
from catalog_hub.schemas.merchant import CreateMerchantRequest, MerchantOut, UpdateMerchantRequest
from catalog_hub.services.errors import BadRequestError, NotFoundError

logger = logging.getLogger("uvicorn.error")


def _has_credentials(source_config: dict[str, Any] | None) -> bool:
    """Both store URL and access token present (camelCase or snake_case keys)."""
    cfg = source_config or {}
    store_url = cfg.get("storeUrl") or cfg.get("store_url")
    token = cfg.get("accessToken") or cfg.get("access_token")
    return bool(str(store_url or "").strip() and str(token or "").strip())


def to_merchant_out(m: Merchant) -> MerchantOut:
    return MerchantOut(
        id=m.id,
        name=m.name,
        email=m.email,
        source_type=m.source_type,
        shopify_configured=m.shopify_configured,
        is_active=m.is_active,
        created_at=m.created_at,
    )


async def list_active_merchants(session: AsyncSession) -> list[MerchantOut]:
    res = await session.execute(select(Merchant).where(Merchant.is_active.is_(True)).order_by(Merchant.id))
    return [to_merchant_out(m) for m in res.scalars().all()]


async def create_merchant(session: AsyncSession, request: CreateMerchantRequest) -> MerchantOut:
    merchant = Merchant(
        name=request.name,
        email=request.email,
        source_type="SHOPIFY",
        source_config=dict(request.source_config),
        shopify_configured=_has_credentials(request.source_config),
        is_active=True,
    )
    session.add(merchant)
    await session.flush()
    await session.refresh(merchant)
    logger.info(f"[merchants] created merchant_id={merchant.id} configured={merchant.shopify_configured}")
    return to_merchant_out(merchant)


async def update_merchant(session: AsyncSession, merchant_id: int, request: UpdateMerchantRequest) -> MerchantOut:
    merchant = await session.get(Merchant, merchant_id)
    if merchant is None:
        raise NotFoundError(f"Merchant {merchant_id} not found", detail={"merchantId": merchant_id})

    if request.name is not None:
        name = request.name.strip()
        if not name:
            raise BadRequestError("name must be non-blank")
        merchant.name = name
    if request.is_active is not None:
        merchant.is_active = request.is_active
    if request.source_config is not None:
        merchant.source_config = dict(request.source_config)
        merchant.shopify_configured = _has_credentials(request.source_config)

    await session.flush()
    await session.refresh(merchant)
    return to_merchant_out(merchant)
