"""Tests for the Shopify -> staging sync."""

import asyncio

import httpx
import pytest
import respx
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from catalog_hub.models import Merchant, StagingProduct, StagingStatus, StagingVariant
from catalog_hub.services import catalog_sync
from catalog_hub.services.catalog_sync import AUTO_SYNC_NOTE, price_to_minor, sync_merchant_catalog
from catalog_hub.services.errors import (
    ConfigInvalidError,
    InternalError,
    NotFoundError,
    RateLimitedError,
    SyncInProgressError,
)
from catalog_hub.services.shopify_client import ShopifyClient, ShopifyClientConfig, parse_product_node


class FakeShopifyClient:
    """Returns a fixed catalog (or raises) instead of calling Shopify."""

    def __init__(self, nodes: list[dict] | None = None, error: Exception | None = None):
        self.products = [parse_product_node(n) for n in nodes or []]
        self.error = error
        self.credentials = []

    async def fetch_all(self, credentials):
        self.credentials.append(credentials)
        if self.error is not None:
            raise self.error
        return list(self.products)


def _variant(vid: str, price: str | None, **options: str) -> dict:
    return {
        "id": vid,
        "sku": f"SKU-{vid}",
        "barcode": None,
        "price": price,
        "selectedOptions": [{"name": k, "value": v} for k, v in options.items()],
    }


def _product(pid: str = "gid://shopify/Product/1", title: str = "T", variants=None, media=None) -> dict:
    return {
        "id": pid,
        "title": title,
        "descriptionHtml": "<p>desc</p>",
        "vendor": "Acme",
        "productType": "Shirt",
        "tags": ["new"],
        "options": [{"name": "Size", "values": ["S"]}],
        "media": {"edges": [{"node": m} for m in media or []]},
        "variants": {"edges": [{"node": v} for v in variants or []]},
    }


async def _staging(session_scope, merchant_id: int) -> list[StagingProduct]:
    async with session_scope() as session:
        res = await session.execute(
            select(StagingProduct).where(StagingProduct.merchant_id == merchant_id).order_by(StagingProduct.id)
        )
        return list(res.scalars().all())


# ============================================================
# Price parsing
# ============================================================


@pytest.mark.parametrize(
    "price,expected",
    [
        ("12.30", 1230),
        ("10.00", 1000),
        ("0", 0),
        ("9.995", 1000),
        ("1.005", 101),
        (" 7.5 ", 750),
        ("", None),
        ("abc", None),
        ("NaN", None),
        (None, None),
    ],
)
def test_price_to_minor(price, expected) -> None:
    assert price_to_minor(price) == expected


# ============================================================
# Sync
# ============================================================


@pytest.mark.asyncio
async def test_first_sync_creates_pending_staging(session_scope, merchant_id) -> None:
    client = FakeShopifyClient([_product(title="T", variants=[_variant("gid://shopify/ProductVariant/1", "10.00", Size="S")])])

    result = await sync_merchant_catalog(merchant_id, client=client, session_scope=session_scope)

    assert result.merchant_id == merchant_id
    assert result.products_synced == 1
    assert result.variants_synced == 1
    assert client.credentials[0].store_url == "acme"

    [staging] = await _staging(session_scope, merchant_id)
    assert staging.status == StagingStatus.PENDING
    assert staging.raw_title == "T"
    assert staging.raw_vendor == "Acme"
    assert staging.raw_tags == ["new"]
    assert staging.raw_options_definition == [{"name": "Size", "values": ["S"]}]
    assert staging.raw_json_dump["id"] == "gid://shopify/Product/1"
    assert staging.match_confidence_score == 0
    assert staging.admin_notes is None

    [variant] = staging.variants
    assert variant.raw_price_minor == 1000
    assert variant.raw_options == {"Size": "S"}
    assert variant.raw_sku == "SKU-gid://shopify/ProductVariant/1"
    assert variant.status == "PENDING"


@pytest.mark.asyncio
async def test_title_change_rearms_curated_record(session_scope, merchant_id) -> None:
    async with session_scope() as session:
        session.add(
            StagingProduct(
                merchant_id=merchant_id,
                external_product_id="gid://shopify/Product/1",
                raw_title="Old",
                status=StagingStatus.APPROVED,
                media=[],
                variants=[],
            )
        )

    client = FakeShopifyClient([_product(title="New")])
    await sync_merchant_catalog(merchant_id, client=client, session_scope=session_scope)

    [staging] = await _staging(session_scope, merchant_id)
    assert staging.status == StagingStatus.NEEDS_REVIEW
    assert staging.admin_notes == AUTO_SYNC_NOTE
    assert staging.raw_title == "New"


@pytest.mark.asyncio
async def test_title_change_keeps_pending_record_pending(session_scope, merchant_id) -> None:
    await sync_merchant_catalog(merchant_id, client=FakeShopifyClient([_product(title="Old")]), session_scope=session_scope)
    await sync_merchant_catalog(merchant_id, client=FakeShopifyClient([_product(title="New")]), session_scope=session_scope)

    [staging] = await _staging(session_scope, merchant_id)
    assert staging.status == StagingStatus.PENDING
    assert staging.admin_notes is None
    assert staging.raw_title == "New"


@pytest.mark.asyncio
async def test_unchanged_title_keeps_status_but_refreshes_raw_fields(session_scope, merchant_id) -> None:
    async with session_scope() as session:
        session.add(
            StagingProduct(
                merchant_id=merchant_id,
                external_product_id="gid://shopify/Product/1",
                raw_title="T",
                raw_vendor="Old Vendor",
                status=StagingStatus.REJECTED,
                rejection_reason="dup",
                media=[],
                variants=[],
            )
        )

    await sync_merchant_catalog(merchant_id, client=FakeShopifyClient([_product(title="T")]), session_scope=session_scope)

    [staging] = await _staging(session_scope, merchant_id)
    assert staging.status == StagingStatus.REJECTED
    assert staging.rejection_reason == "dup"
    assert staging.raw_vendor == "Acme"


@pytest.mark.asyncio
async def test_resync_is_idempotent(session_scope, merchant_id) -> None:
    nodes = [
        _product(
            "gid://shopify/Product/1",
            variants=[
                _variant("gid://shopify/ProductVariant/1", "10.00", Size="S"),
                _variant("gid://shopify/ProductVariant/2", "12.00", Size="M"),
            ],
        ),
        _product("gid://shopify/Product/2", title="Other"),
    ]

    first = await sync_merchant_catalog(merchant_id, client=FakeShopifyClient(nodes), session_scope=session_scope)
    before = await _staging(session_scope, merchant_id)
    second = await sync_merchant_catalog(merchant_id, client=FakeShopifyClient(nodes), session_scope=session_scope)
    after = await _staging(session_scope, merchant_id)

    assert first.products_synced == second.products_synced == 2
    assert first.variants_synced == second.variants_synced == 2
    assert [s.id for s in before] == [s.id for s in after]
    assert [s.status for s in after] == [StagingStatus.PENDING, StagingStatus.PENDING]
    assert [v.raw_price_minor for v in after[0].variants] == [1000, 1200]

    async with session_scope() as session:
        total_variants = await session.scalar(select(func.count()).select_from(StagingVariant))
    assert total_variants == 2


@pytest.mark.asyncio
async def test_media_positions_skip_entries_without_url(session_scope, merchant_id) -> None:
    media = [
        {"id": "m1", "mediaContentType": "IMAGE", "image": {"url": "https://cdn.test/1.jpg"}, "alt": "one"},
        {"id": "m2", "mediaContentType": "MODEL_3D", "preview": {"image": {"url": "https://cdn.test/m.jpg"}}},
        {"id": "m3", "mediaContentType": "VIDEO", "preview": {"image": {"url": "https://cdn.test/v.jpg"}}},
        {"id": "m4", "mediaContentType": "IMAGE", "image": None},
    ]
    await sync_merchant_catalog(merchant_id, client=FakeShopifyClient([_product(media=media)]), session_scope=session_scope)

    [staging] = await _staging(session_scope, merchant_id)
    assert [(m.external_media_id, m.position) for m in staging.media] == [("m1", 1), ("m3", 2)]
    assert staging.media[0].alt_text == "one"
    assert staging.media[1].source_url == "https://cdn.test/v.jpg"
    assert staging.media[1].media_type == "VIDEO"


@pytest.mark.asyncio
async def test_unparseable_price_is_stored_as_null(session_scope, merchant_id) -> None:
    node = _product(variants=[_variant("gid://shopify/ProductVariant/1", "free")])
    await sync_merchant_catalog(merchant_id, client=FakeShopifyClient([node]), session_scope=session_scope)

    [staging] = await _staging(session_scope, merchant_id)
    assert staging.variants[0].raw_price_minor is None


@pytest.mark.asyncio
async def test_sync_unknown_merchant_raises_not_found(session_scope) -> None:
    with pytest.raises(NotFoundError):
        await sync_merchant_catalog(999, client=FakeShopifyClient([]), session_scope=session_scope)


@pytest.mark.asyncio
async def test_sync_with_blank_credentials_raises_config_invalid(session_scope) -> None:
    async with session_scope() as session:
        merchant = Merchant(name="Broken", source_config={"storeUrl": "acme", "accessToken": "  "})
        session.add(merchant)
        await session.flush()
        broken_id = merchant.id

    client = FakeShopifyClient([_product()])
    with pytest.raises(ConfigInvalidError):
        await sync_merchant_catalog(broken_id, client=client, session_scope=session_scope)
    assert client.credentials == []


@pytest.mark.asyncio
async def test_upstream_failure_writes_nothing(session_scope, merchant_id) -> None:
    client = FakeShopifyClient(error=RateLimitedError("Shopify rate limit exceeded (HTTP 429)"))

    with pytest.raises(RateLimitedError):
        await sync_merchant_catalog(merchant_id, client=client, session_scope=session_scope)
    assert await _staging(session_scope, merchant_id) == []


@pytest.mark.asyncio
async def test_storage_failure_keeps_earlier_products(session_scope, merchant_id, monkeypatch) -> None:
    real_upsert = catalog_sync.upsert_staging_product

    async def flaky_upsert(session, mid, product):
        if product.id == "gid://shopify/Product/2":
            raise SQLAlchemyError("disk full")
        return await real_upsert(session, mid, product)

    monkeypatch.setattr(catalog_sync, "upsert_staging_product", flaky_upsert)
    nodes = [
        _product("gid://shopify/Product/1"),
        _product("gid://shopify/Product/2"),
        _product("gid://shopify/Product/3"),
    ]

    with pytest.raises(InternalError) as exc_info:
        await sync_merchant_catalog(merchant_id, client=FakeShopifyClient(nodes), session_scope=session_scope)

    assert exc_info.value.detail["externalProductId"] == "gid://shopify/Product/2"
    staged = await _staging(session_scope, merchant_id)
    assert [s.external_product_id for s in staged] == ["gid://shopify/Product/1"]


# ============================================================
# Advisory lock
# ============================================================


@pytest.mark.asyncio
async def test_sync_refuses_when_lock_is_held(session_scope, merchant_id, monkeypatch) -> None:
    async def lock_held(key, ttl):
        return False

    monkeypatch.setattr(catalog_sync, "acquire_lock", lock_held)

    with pytest.raises(SyncInProgressError):
        await sync_merchant_catalog(merchant_id, client=FakeShopifyClient([_product()]), session_scope=session_scope)
    assert await _staging(session_scope, merchant_id) == []


@pytest.mark.asyncio
async def test_sync_releases_lock_after_failure(session_scope, merchant_id, monkeypatch) -> None:
    calls = []

    async def acquire(key, ttl):
        calls.append(("acquire", key))
        return True

    async def release(key):
        calls.append(("release", key))

    monkeypatch.setattr(catalog_sync, "acquire_lock", acquire)
    monkeypatch.setattr(catalog_sync, "release_lock", release)

    with pytest.raises(RateLimitedError):
        await sync_merchant_catalog(
            merchant_id,
            client=FakeShopifyClient(error=RateLimitedError("throttled")),
            session_scope=session_scope,
        )

    key = f"sync:merchant:{merchant_id}"
    assert calls == [("acquire", key), ("release", key)]


@pytest.mark.asyncio
async def test_sync_runs_without_redis(session_scope, merchant_id) -> None:
    # Redis is never initialized in tests; the sync proceeds unlocked.
    result = await sync_merchant_catalog(merchant_id, client=FakeShopifyClient([_product()]), session_scope=session_scope)
    assert result.products_synced == 1


@pytest.mark.asyncio
async def test_cancelled_fetch_propagates_and_stages_nothing(session_scope, merchant_id) -> None:
    async def cancel_sleep(seconds: float) -> None:
        raise asyncio.CancelledError()

    first_page = {
        "data": {
            "products": {
                "pageInfo": {"hasNextPage": True, "endCursor": "c1"},
                "edges": [{"node": _product()}],
            }
        }
    }
    client = ShopifyClient(ShopifyClientConfig(page_delay_ms=500), sleep=cancel_sleep)

    async with respx.mock(assert_all_called=True) as router:
        route = router.post(host="acme.myshopify.com").mock(return_value=httpx.Response(200, json=first_page))
        with pytest.raises(asyncio.CancelledError):
            await sync_merchant_catalog(merchant_id, client=client, session_scope=session_scope)

    assert route.call_count == 1
    assert await _staging(session_scope, merchant_id) == []
