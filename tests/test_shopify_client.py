"""Tests for the Shopify Admin GraphQL client."""

import asyncio
import json

import httpx
import pytest
import respx

from catalog_hub.services.errors import (
    AuthFailedError,
    ConfigInvalidError,
    ProtocolError,
    RateLimitedError,
    UpstreamError,
    UpstreamUnavailableError,
)
from catalog_hub.services.shopify_client import (
    ShopifyClient,
    ShopifyClientConfig,
    StoreCredentials,
    build_products_query,
    normalize_endpoint,
)

ENDPOINT = "https://demo-store.myshopify.com/admin/api/2026-01/graphql.json"
CREDENTIALS = StoreCredentials(store_url="demo-store", access_token="shpat_test")


class SleepRecorder:
    """Stands in for asyncio.sleep and records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _node(product_id: str = "gid://shopify/Product/1", title: str = "Tee") -> dict:
    return {
        "id": product_id,
        "title": title,
        "descriptionHtml": "<p>Soft cotton</p>",
        "vendor": "Acme",
        "productType": "Shirt",
        "tags": ["summer", "cotton"],
        "options": [{"name": "Color", "values": ["Red"]}],
        "media": {
            "edges": [
                {
                    "node": {
                        "id": "gid://shopify/MediaImage/1",
                        "mediaContentType": "IMAGE",
                        "alt": "front",
                        "preview": {"image": {"url": "https://cdn.test/preview.jpg"}},
                        "image": {"url": "https://cdn.test/front.jpg", "altText": "front"},
                    }
                },
                {
                    "node": {
                        "id": "gid://shopify/Video/2",
                        "mediaContentType": "VIDEO",
                        "alt": None,
                        "preview": {"image": {"url": "https://cdn.test/video-preview.jpg"}},
                    }
                },
            ]
        },
        "variants": {
            "edges": [
                {
                    "node": {
                        "id": "gid://shopify/ProductVariant/1",
                        "sku": "TEE-RED",
                        "barcode": None,
                        "price": "10.00",
                        "selectedOptions": [{"name": "Color", "value": "Red"}],
                    }
                }
            ]
        },
    }


def _page(nodes: list[dict], *, has_next: bool = False, cursor: str | None = None) -> dict:
    return {
        "data": {
            "products": {
                "pageInfo": {"hasNextPage": has_next, "endCursor": cursor},
                "edges": [{"node": n} for n in nodes],
            }
        }
    }


def _client(sleep: SleepRecorder, **overrides) -> ShopifyClient:
    config = ShopifyClientConfig(**{"page_delay_ms": 0, "retry_backoff_ms": 100, **overrides})
    return ShopifyClient(config, sleep=sleep)


# ============================================================
# Endpoint and credentials
# ============================================================


@pytest.mark.parametrize(
    "store_url",
    [
        "demo-store",
        "demo-store.myshopify.com",
        "https://demo-store.myshopify.com",
        "http://Demo-Store.myshopify.com/admin/products",
        "  demo-store  ",
    ],
)
def test_normalize_endpoint_variants_agree(store_url: str) -> None:
    assert normalize_endpoint(store_url, "2026-01") == ENDPOINT


@pytest.mark.parametrize("store_url", ["", "   ", None, "https://", "bad host!", "demo_store"])
def test_normalize_endpoint_rejects_malformed(store_url) -> None:
    with pytest.raises(ConfigInvalidError):
        normalize_endpoint(store_url, "2026-01")


def test_credentials_accept_camel_and_snake_case() -> None:
    camel = StoreCredentials.from_source_config({"storeUrl": "a", "accessToken": "t"})
    snake = StoreCredentials.from_source_config({"store_url": "a", "access_token": "t"})
    assert camel == snake


@pytest.mark.parametrize(
    "source_config",
    [None, {}, {"storeUrl": "a"}, {"storeUrl": "a", "accessToken": "   "}, "not-a-mapping"],
)
def test_credentials_reject_missing_or_blank(source_config) -> None:
    with pytest.raises(ConfigInvalidError):
        StoreCredentials.from_source_config(source_config)


def test_query_omits_media_when_media_first_is_zero() -> None:
    assert "media(first: 10)" in build_products_query(ShopifyClientConfig())
    assert "media(" not in build_products_query(ShopifyClientConfig(media_first=0))


def test_query_uses_configured_limits() -> None:
    query = build_products_query(ShopifyClientConfig(page_size=25, variants_first=7))
    assert "products(first: 25, after: $cursor)" in query
    assert "variants(first: 7)" in query


# ============================================================
# Fetching
# ============================================================


@pytest.mark.asyncio
async def test_fetch_all_single_page_parses_products() -> None:
    sleep = SleepRecorder()
    async with respx.mock(assert_all_called=True) as router:
        route = router.post(ENDPOINT).mock(return_value=httpx.Response(200, json=_page([_node()])))
        products = await _client(sleep).fetch_all(CREDENTIALS)

    assert route.call_count == 1
    request = route.calls[0].request
    assert request.headers["X-Shopify-Access-Token"] == "shpat_test"
    assert request.headers["Content-Type"].startswith("application/json")
    assert json.loads(request.content)["variables"] == {"cursor": None}

    assert len(products) == 1
    p = products[0]
    assert p.id == "gid://shopify/Product/1"
    assert p.title == "Tee"
    assert p.tags == ["summer", "cotton"]
    assert [(o.name, o.values) for o in p.options] == [("Color", ["Red"])]
    assert [m.url for m in p.media] == ["https://cdn.test/front.jpg", "https://cdn.test/video-preview.jpg"]
    assert p.variants[0].price == "10.00"
    assert p.variants[0].options == {"Color": "Red"}
    assert p.raw["vendor"] == "Acme"
    assert sleep.calls == []


@pytest.mark.asyncio
async def test_fetch_all_follows_cursor_and_sleeps_between_pages() -> None:
    sleep = SleepRecorder()
    pages = [
        httpx.Response(200, json=_page([_node("gid://shopify/Product/1")], has_next=True, cursor="c1")),
        httpx.Response(200, json=_page([_node("gid://shopify/Product/2")])),
    ]
    async with respx.mock(assert_all_called=True) as router:
        route = router.post(ENDPOINT).mock(side_effect=pages)
        products = await _client(sleep, page_delay_ms=600).fetch_all(CREDENTIALS)

    assert [p.id for p in products] == ["gid://shopify/Product/1", "gid://shopify/Product/2"]
    assert json.loads(route.calls[1].request.content)["variables"] == {"cursor": "c1"}
    assert sleep.calls == [0.6]


@pytest.mark.asyncio
async def test_fetch_all_retries_429_with_exponential_backoff() -> None:
    sleep = SleepRecorder()
    responses = [
        httpx.Response(429),
        httpx.Response(429),
        httpx.Response(200, json=_page([_node()])),
    ]
    async with respx.mock(assert_all_called=True) as router:
        route = router.post(ENDPOINT).mock(side_effect=responses)
        products = await _client(sleep, max_retries=2, retry_backoff_ms=100).fetch_all(CREDENTIALS)

    assert len(products) == 1
    assert route.call_count == 3
    assert sleep.calls == [0.1, 0.2]
    assert sum(sleep.calls) >= 0.3


@pytest.mark.asyncio
async def test_fetch_all_raises_rate_limited_after_retry_budget() -> None:
    sleep = SleepRecorder()
    async with respx.mock(assert_all_called=True) as router:
        route = router.post(ENDPOINT).mock(return_value=httpx.Response(429))
        with pytest.raises(RateLimitedError):
            await _client(sleep, max_retries=1).fetch_all(CREDENTIALS)

    assert route.call_count == 2
    assert sleep.calls == [0.1]


@pytest.mark.asyncio
async def test_fetch_all_raises_unavailable_after_5xx_budget() -> None:
    sleep = SleepRecorder()
    async with respx.mock(assert_all_called=True) as router:
        route = router.post(ENDPOINT).mock(return_value=httpx.Response(503))
        with pytest.raises(UpstreamUnavailableError):
            await _client(sleep, max_retries=2).fetch_all(CREDENTIALS)

    assert route.call_count == 3


@pytest.mark.asyncio
async def test_fetch_all_retries_timeouts() -> None:
    sleep = SleepRecorder()
    async with respx.mock(assert_all_called=True) as router:
        router.post(ENDPOINT).mock(
            side_effect=[httpx.ReadTimeout("read timed out"), httpx.Response(200, json=_page([_node()]))]
        )
        products = await _client(sleep, max_retries=1).fetch_all(CREDENTIALS)

    assert len(products) == 1
    assert sleep.calls == [0.1]


@pytest.mark.asyncio
async def test_fetch_all_zero_retries_fails_on_first_429() -> None:
    sleep = SleepRecorder()
    async with respx.mock(assert_all_called=True) as router:
        route = router.post(ENDPOINT).mock(return_value=httpx.Response(429))
        with pytest.raises(RateLimitedError):
            await _client(sleep, max_retries=0).fetch_all(CREDENTIALS)

    assert route.call_count == 1
    assert sleep.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 403])
async def test_fetch_all_auth_failure_is_not_retried(status: int) -> None:
    sleep = SleepRecorder()
    async with respx.mock(assert_all_called=True) as router:
        route = router.post(ENDPOINT).mock(return_value=httpx.Response(status, json={"errors": "Invalid API key"}))
        with pytest.raises(AuthFailedError):
            await _client(sleep, max_retries=3).fetch_all(CREDENTIALS)

    assert route.call_count == 1
    assert sleep.calls == []


@pytest.mark.asyncio
async def test_fetch_all_other_4xx_fails_fast() -> None:
    sleep = SleepRecorder()
    async with respx.mock(assert_all_called=True) as router:
        route = router.post(ENDPOINT).mock(return_value=httpx.Response(404))
        with pytest.raises(UpstreamError) as exc_info:
            await _client(sleep, max_retries=3).fetch_all(CREDENTIALS)

    assert not isinstance(exc_info.value, (AuthFailedError, RateLimitedError))
    assert route.call_count == 1


@pytest.mark.asyncio
async def test_fetch_all_graphql_errors_are_protocol_errors() -> None:
    sleep = SleepRecorder()
    body = {"errors": [{"message": "Field 'foo' doesn't exist"}]}
    async with respx.mock(assert_all_called=True) as router:
        route = router.post(ENDPOINT).mock(return_value=httpx.Response(200, json=body))
        with pytest.raises(ProtocolError, match="Field 'foo'"):
            await _client(sleep).fetch_all(CREDENTIALS)

    assert route.call_count == 1


@pytest.mark.asyncio
async def test_fetch_all_retries_throttled_graphql_errors() -> None:
    sleep = SleepRecorder()
    throttled = {"errors": [{"message": "Throttled", "extensions": {"code": "THROTTLED"}}]}
    async with respx.mock(assert_all_called=True) as router:
        router.post(ENDPOINT).mock(
            side_effect=[httpx.Response(200, json=throttled), httpx.Response(200, json=_page([_node()]))]
        )
        products = await _client(sleep, max_retries=2).fetch_all(CREDENTIALS)

    assert len(products) == 1
    assert sleep.calls == [0.1]


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {},
        {"data": None},
        {"data": {"shop": {}}},
        {"data": {"products": {"pageInfo": {"hasNextPage": True, "endCursor": None}, "edges": []}}},
    ],
)
async def test_fetch_all_rejects_malformed_payloads(body: dict) -> None:
    async with respx.mock(assert_all_called=True) as router:
        router.post(ENDPOINT).mock(return_value=httpx.Response(200, json=body))
        with pytest.raises(ProtocolError):
            await _client(SleepRecorder()).fetch_all(CREDENTIALS)


@pytest.mark.asyncio
async def test_fetch_all_never_returns_partial_catalog() -> None:
    sleep = SleepRecorder()
    pages = [
        httpx.Response(200, json=_page([_node()], has_next=True, cursor="c1")),
        httpx.Response(500),
    ]
    async with respx.mock(assert_all_called=True) as router:
        router.post(ENDPOINT).mock(side_effect=pages)
        with pytest.raises(UpstreamUnavailableError):
            await _client(sleep, max_retries=0).fetch_all(CREDENTIALS)


@pytest.mark.asyncio
async def test_fetch_all_backoff_doubles_across_retry_budget() -> None:
    sleep = SleepRecorder()
    async with respx.mock(assert_all_called=True) as router:
        route = router.post(ENDPOINT).mock(return_value=httpx.Response(502))
        with pytest.raises(UpstreamUnavailableError):
            await _client(sleep, max_retries=3, retry_backoff_ms=100).fetch_all(CREDENTIALS)

    assert route.call_count == 4
    assert sleep.calls == pytest.approx([0.1, 0.2, 0.4])


class CancellingSleep(SleepRecorder):
    """Records delays and cancels the caller once `cancel_on` sleeps have been requested."""

    def __init__(self, cancel_on: int = 1) -> None:
        super().__init__()
        self.cancel_on = cancel_on

    async def __call__(self, seconds: float) -> None:
        await super().__call__(seconds)
        if len(self.calls) >= self.cancel_on:
            raise asyncio.CancelledError()


@pytest.mark.asyncio
async def test_fetch_all_cancelled_during_page_delay_propagates() -> None:
    sleep = CancellingSleep()
    pages = [
        httpx.Response(200, json=_page([_node()], has_next=True, cursor="c1")),
        httpx.Response(200, json=_page([_node("gid://shopify/Product/2")])),
    ]
    async with respx.mock(assert_all_called=False) as router:
        route = router.post(ENDPOINT).mock(side_effect=pages)
        with pytest.raises(asyncio.CancelledError):
            await _client(sleep, page_delay_ms=500).fetch_all(CREDENTIALS)

    assert route.call_count == 1
    assert sleep.calls == [0.5]


@pytest.mark.asyncio
async def test_fetch_all_cancelled_during_backoff_propagates() -> None:
    sleep = CancellingSleep()
    responses = [httpx.Response(429), httpx.Response(200, json=_page([_node()]))]
    async with respx.mock(assert_all_called=False) as router:
        route = router.post(ENDPOINT).mock(side_effect=responses)
        with pytest.raises(asyncio.CancelledError):
            await _client(sleep, max_retries=3).fetch_all(CREDENTIALS)

    assert route.call_count == 1
    assert sleep.calls == [0.1]


@pytest.mark.asyncio
async def test_fetch_all_uses_injected_http_client() -> None:
    async with respx.mock(assert_all_called=True) as router:
        router.post(ENDPOINT).mock(return_value=httpx.Response(200, json=_page([_node()])))
        async with httpx.AsyncClient() as http_client:
            client = ShopifyClient(ShopifyClientConfig(page_delay_ms=0), http_client=http_client)
            products = await client.fetch_all(CREDENTIALS)
            assert not http_client.is_closed

    assert len(products) == 1
