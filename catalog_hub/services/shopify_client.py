"""Shopify Admin GraphQL client.

Fetches a merchant's full product catalog:
- Cursor pagination over `products(first, after)`, one page in flight at a time
- Fixed delay between pages to stay under the store's query-cost budget
- Exponential backoff (`backoff * 2^attempt`) on 429 / 5xx / timeouts / THROTTLED

Errors are classified into the `UpstreamError` family; a partial catalog is
never returned.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
import logging
import re
from typing import Any

import httpx
from pydantic import AliasChoices, BaseModel, Field, ValidationError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from catalog_hub.services.errors import (
    AuthFailedError,
    ConfigInvalidError,
    ProtocolError,
    RateLimitedError,
    UpstreamError,
    UpstreamUnavailableError,
)
from catalog_hub.settings import Settings, get_settings

logger = logging.getLogger("uvicorn.error")

SHOPIFY_HOST_SUFFIX = ".myshopify.com"
ACCESS_TOKEN_HEADER = "X-Shopify-Access-Token"

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
_HOST_RE = re.compile(r"^[a-z0-9][a-z0-9.-]*$")


# ============================================================
# Configuration
# ============================================================


@dataclass(frozen=True)
class ShopifyClientConfig:
    """Adapter limits. Bounds are validated by `Settings`."""

    api_version: str = "2026-01"
    page_size: int = 50
    page_delay_ms: int = 600
    request_timeout_s: float = 30.0
    max_retries: int = 3
    retry_backoff_ms: int = 1000
    media_first: int = 10
    variants_first: int = 100

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "ShopifyClientConfig":
        settings = settings or get_settings()
        return cls(
            api_version=settings.shopify_api_version,
            page_size=settings.shopify_page_size,
            page_delay_ms=settings.shopify_page_delay_ms,
            request_timeout_s=settings.shopify_request_timeout_s,
            max_retries=settings.shopify_max_retries,
            retry_backoff_ms=settings.shopify_retry_backoff_ms,
            media_first=settings.shopify_media_first,
            variants_first=settings.shopify_variants_first,
        )


class StoreCredentials(BaseModel):
    """Per-merchant storefront credentials (from `Merchant.source_config`)."""

    store_url: str = Field(validation_alias=AliasChoices("storeUrl", "store_url"))
    access_token: str = Field(validation_alias=AliasChoices("accessToken", "access_token"))

    @classmethod
    def from_source_config(cls, source_config: object) -> "StoreCredentials":
        """Parse a merchant source config, raising ConfigInvalidError when unusable."""
        if not isinstance(source_config, dict) or not source_config:
            raise ConfigInvalidError("Merchant source config is missing")
        try:
            creds = cls.model_validate(source_config)
        except ValidationError as e:
            raise ConfigInvalidError(
                "Merchant source config is invalid",
                detail={"fields": [".".join(str(p) for p in err["loc"]) for err in e.errors()]},
            ) from e
        if not creds.store_url.strip() or not creds.access_token.strip():
            raise ConfigInvalidError("Store URL and access token must be non-blank")
        return creds


def normalize_endpoint(store_url: str | None, api_version: str) -> str:
    """Build the Admin GraphQL endpoint for a store.

    Scheme and path are stripped; the `.myshopify.com` suffix is appended when
    missing.

    Examples:
        "my-store" -> https://my-store.myshopify.com/admin/api/<ver>/graphql.json
        "https://My-Store.myshopify.com/admin" -> same endpoint
    """
    raw = (store_url or "").strip()
    if not raw:
        raise ConfigInvalidError("Store URL must be non-blank")

    host = _SCHEME_RE.sub("", raw)
    host = re.split(r"[/?#]", host, maxsplit=1)[0].strip().lower()
    if not host or not _HOST_RE.match(host):
        raise ConfigInvalidError(f"Store URL is malformed: {store_url!r}")

    if not host.endswith(SHOPIFY_HOST_SUFFIX):
        host = f"{host}{SHOPIFY_HOST_SUFFIX}"
    return f"https://{host}/admin/api/{api_version}/graphql.json"


def build_products_query(config: ShopifyClientConfig) -> str:
    """GraphQL document for one page of products with media and variants."""
    media_block = ""
    if config.media_first > 0:
        media_block = f"""
          media(first: {config.media_first}) {{
            edges {{
              node {{
                id
                mediaContentType
                alt
                preview {{ image {{ url }} }}
                ... on MediaImage {{ image {{ url altText }} }}
              }}
            }}
          }}"""

    return f"""
query getProducts($cursor: String) {{
  products(first: {config.page_size}, after: $cursor) {{
    pageInfo {{ hasNextPage endCursor }}
    edges {{
      node {{
        id
        title
        descriptionHtml
        vendor
        productType
        tags
        options {{ name values }}{media_block}
        variants(first: {config.variants_first}) {{
          edges {{
            node {{
              id
              sku
              barcode
              price
              selectedOptions {{ name value }}
            }}
          }}
        }}
      }}
    }}
  }}
}}
"""


# ============================================================
# Parsed records
# ============================================================


@dataclass
class ShopifyOption:
    name: str
    values: list[str]


@dataclass
class ShopifyMedia:
    id: str | None
    media_type: str
    url: str | None
    alt_text: str | None


@dataclass
class ShopifyVariant:
    id: str | None
    sku: str | None
    barcode: str | None
    price: str | None  # decimal string as sent by Shopify, e.g. "12.30"
    options: dict[str, str]


@dataclass
class ShopifyProduct:
    """One product node, with the untouched node kept for the JSON dump."""

    id: str
    title: str | None
    description_html: str | None = None
    vendor: str | None = None
    product_type: str | None = None
    tags: list[str] = field(default_factory=list)
    options: list[ShopifyOption] = field(default_factory=list)
    media: list[ShopifyMedia] = field(default_factory=list)
    variants: list[ShopifyVariant] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)


def _edges(connection: object) -> list[dict[str, Any]]:
    if not isinstance(connection, dict):
        return []
    nodes = []
    for edge in connection.get("edges") or []:
        node = edge.get("node") if isinstance(edge, dict) else None
        if isinstance(node, dict):
            nodes.append(node)
    return nodes


def _nested_url(node: dict[str, Any], *path: str) -> str | None:
    cur: object = node
    for key in path:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    if isinstance(cur, str) and cur.strip():
        return cur.strip()
    return None


def media_url(node: dict[str, Any]) -> str | None:
    """URL to stage for a media node.

    IMAGE uses `image.url`; VIDEO and EXTERNAL_VIDEO use the preview image.
    Other media types yield None.
    """
    media_type = node.get("mediaContentType") or "IMAGE"
    if media_type == "IMAGE":
        return _nested_url(node, "image", "url")
    if media_type in ("VIDEO", "EXTERNAL_VIDEO"):
        return _nested_url(node, "preview", "image", "url")
    return None


def parse_product_node(node: dict[str, Any]) -> ShopifyProduct:
    """Convert a GraphQL product node into a ShopifyProduct."""
    product_id = node.get("id")
    if not isinstance(product_id, str) or not product_id:
        raise ProtocolError("Shopify product node lacks an id")

    options = [
        ShopifyOption(name=str(o.get("name") or ""), values=[str(v) for v in (o.get("values") or [])])
        for o in (node.get("options") or [])
        if isinstance(o, dict)
    ]

    media = []
    for m in _edges(node.get("media")):
        media.append(
            ShopifyMedia(
                id=m.get("id"),
                media_type=m.get("mediaContentType") or "IMAGE",
                url=media_url(m),
                alt_text=m.get("alt") or _nested_url(m, "image", "altText"),
            )
        )

    variants = []
    for v in _edges(node.get("variants")):
        selected = {}
        for opt in v.get("selectedOptions") or []:
            if isinstance(opt, dict) and opt.get("name") is not None:
                selected[str(opt["name"])] = "" if opt.get("value") is None else str(opt["value"])
        price = v.get("price")
        variants.append(
            ShopifyVariant(
                id=v.get("id"),
                sku=v.get("sku") or None,
                barcode=v.get("barcode") or None,
                price=None if price is None else str(price),
                options=selected,
            )
        )

    return ShopifyProduct(
        id=product_id,
        title=node.get("title"),
        description_html=node.get("descriptionHtml"),
        vendor=node.get("vendor"),
        product_type=node.get("productType"),
        tags=[str(t) for t in (node.get("tags") or [])],
        options=options,
        media=media,
        variants=variants,
        raw=node,
    )


# ============================================================
# Client
# ============================================================


class _RetryableUpstream(Exception):
    """Internal: a failure worth retrying. Carries the error raised once retries run out."""

    def __init__(self, terminal: UpstreamError):
        super().__init__(terminal.message)
        self.terminal = terminal


def _is_throttled(errors: object) -> bool:
    if not isinstance(errors, list):
        return False
    for err in errors:
        if isinstance(err, dict) and (err.get("extensions") or {}).get("code") == "THROTTLED":
            return True
    return False


def _first_error_message(errors: object) -> str:
    if isinstance(errors, list) and errors:
        first = errors[0]
        if isinstance(first, dict):
            return str(first.get("message") or "")
        return str(first)
    return str(errors)


class ShopifyClient:
    """Client for the Shopify Admin GraphQL products query."""

    def __init__(
        self,
        config: ShopifyClientConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """Initialize client.

        Args:
            config: Adapter limits (defaults to values from settings).
            http_client: Optional shared client; when omitted a client is opened
                per `fetch_all` call and closed afterwards.
            sleep: Awaitable sleep used for page delay and retry backoff.
        """
        self.config = config or ShopifyClientConfig.from_settings()
        self._http_client = http_client
        self._sleep = sleep

    async def fetch_all(self, credentials: StoreCredentials) -> list[ShopifyProduct]:
        """Fetch every product of the store, following cursors until exhausted."""
        endpoint = normalize_endpoint(credentials.store_url, self.config.api_version)
        token = (credentials.access_token or "").strip()
        if not token:
            raise ConfigInvalidError("Access token must be non-blank")

        headers = {ACCESS_TOKEN_HEADER: token, "Content-Type": "application/json"}

        if self._http_client is not None:
            return await self._fetch_pages(self._http_client, endpoint, headers)
        async with httpx.AsyncClient(timeout=self.config.request_timeout_s) as client:
            return await self._fetch_pages(client, endpoint, headers)

    async def _fetch_pages(
        self,
        client: httpx.AsyncClient,
        endpoint: str,
        headers: dict[str, str],
    ) -> list[ShopifyProduct]:
        query = build_products_query(self.config)
        products: list[ShopifyProduct] = []
        cursor: str | None = None
        page = 0

        while True:
            page += 1
            payload = {"query": query, "variables": {"cursor": cursor}}
            data = await self._post_with_retry(client, endpoint, headers, payload)

            connection = data.get("products")
            if not isinstance(connection, dict):
                raise ProtocolError("Shopify response lacks data.products")

            for node in _edges(connection):
                products.append(parse_product_node(node))

            page_info = connection.get("pageInfo") or {}
            logger.info(f"Shopify page {page} fetched: total_products={len(products)} endpoint={endpoint}")

            if not page_info.get("hasNextPage"):
                return products

            cursor = page_info.get("endCursor")
            if not cursor:
                raise ProtocolError("Shopify reported hasNextPage without an endCursor")

            if self.config.page_delay_ms > 0:
                await self._sleep(self.config.page_delay_ms / 1000)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        error = retry_state.outcome.exception()
        logger.warning(
            "Shopify request failed (%s), retry %s/%s in %.3fs",
            error.terminal.message,
            retry_state.attempt_number,
            self.config.max_retries,
            retry_state.next_action.sleep,
        )

    async def _post_with_retry(
        self,
        client: httpx.AsyncClient,
        endpoint: str,
        headers: dict[str, str],
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.config.max_retries + 1),
            wait=wait_exponential(multiplier=self.config.retry_backoff_ms / 1000, exp_base=2),
            retry=retry_if_exception_type(_RetryableUpstream),
            before_sleep=self._log_retry,
            sleep=self._sleep,
            reraise=True,
        )
        try:
            return await retrying(self._post_once, client, endpoint, headers, payload)
        except _RetryableUpstream as e:
            logger.warning(
                f"Shopify retries exhausted after {self.config.max_retries} retries: {e.terminal.message}"
            )
            raise e.terminal from None

    async def _post_once(
        self,
        client: httpx.AsyncClient,
        endpoint: str,
        headers: dict[str, str],
        payload: dict[str, Any],
    ) -> dict[str, Any]:
        try:
            response = await client.post(
                endpoint,
                json=payload,
                headers=headers,
                timeout=self.config.request_timeout_s,
            )
        except httpx.TimeoutException as e:
            raise _RetryableUpstream(
                UpstreamUnavailableError(f"Shopify request timed out after {self.config.request_timeout_s}s")
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailableError(f"Shopify request failed: {e}") from e

        status = response.status_code
        if status in (401, 403):
            raise AuthFailedError(f"Shopify rejected the access token (HTTP {status})", detail={"status": status})
        if status == 429:
            raise _RetryableUpstream(RateLimitedError("Shopify rate limit exceeded (HTTP 429)", detail={"status": 429}))
        if status >= 500:
            raise _RetryableUpstream(
                UpstreamUnavailableError(f"Shopify unavailable (HTTP {status})", detail={"status": status})
            )
        if status >= 400:
            raise UpstreamError(f"Shopify request failed (HTTP {status})", detail={"status": status})

        try:
            body = response.json()
        except ValueError as e:
            raise ProtocolError("Shopify returned a non-JSON response") from e
        if not isinstance(body, dict):
            raise ProtocolError("Shopify returned an unexpected response shape")

        errors = body.get("errors")
        if errors:
            message = _first_error_message(errors)
            if _is_throttled(errors):
                raise _RetryableUpstream(RateLimitedError(f"Shopify throttled the query: {message}"))
            raise ProtocolError(f"Shopify GraphQL error: {message}")

        data = body.get("data")
        if not isinstance(data, dict):
            raise ProtocolError("Shopify response lacks a data payload")
        return data
