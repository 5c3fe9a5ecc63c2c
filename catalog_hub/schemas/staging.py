"""Schemas for staging listings, review queue and review detail."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class StagingListItem(BaseModel):
    """A staging product row in the merchant dashboard."""

    id: int
    title: str | None
    vendor: str | None = None
    product_type: str | None = Field(alias="productType", default=None)
    status: str
    image_url: str | None = Field(alias="imageUrl", default=None)
    rejection_reason: str | None = Field(alias="rejectionReason", default=None)
    created_at: datetime | None = Field(alias="createdAt", default=None)
    updated_at: datetime | None = Field(alias="updatedAt", default=None)

    model_config = {"populate_by_name": True}


class StagingPage(BaseModel):
    """One page of a dashboard tab."""

    tab: str
    items: list[StagingListItem]
    total: int = Field(ge=0)
    page: int = Field(ge=1)
    size: int = Field(ge=1)


class MerchantStats(BaseModel):
    """Merchant dashboard counters."""

    live_products: int = Field(alias="liveProducts")
    under_review: int = Field(alias="underReview")
    issues: int
    total_skus: int = Field(alias="totalSkus")

    model_config = {"populate_by_name": True}


class AdminStats(BaseModel):
    """Admin dashboard counters."""

    pending_reviews: int = Field(alias="pendingReviews")
    total_master_products: int = Field(alias="totalMasterProducts")
    rejected_this_week: int = Field(alias="rejectedThisWeek")

    model_config = {"populate_by_name": True}


class ReviewQueueItem(BaseModel):
    staging_id: int = Field(alias="stagingId")
    merchant_id: int = Field(alias="merchantId")
    merchant_name: str = Field(alias="merchantName")
    raw_title: str | None = Field(alias="rawTitle")
    status: str
    created_at: datetime | None = Field(alias="createdAt", default=None)
    match_confidence: int = Field(alias="matchConfidence", default=0)
    suggested_master_id: int | None = Field(alias="suggestedMasterId", default=None)

    model_config = {"populate_by_name": True}


class ReviewQueuePage(BaseModel):
    items: list[ReviewQueueItem]
    total: int = Field(ge=0)
    page: int = Field(ge=1)
    size: int = Field(ge=1)


class StagingMediaOut(BaseModel):
    id: int
    source_url: str = Field(alias="sourceUrl")
    alt_text: str | None = Field(alias="altText", default=None)
    position: int
    media_type: str = Field(alias="mediaType")

    model_config = {"populate_by_name": True}


class StagingVariantOut(BaseModel):
    staging_variant_id: int = Field(alias="stagingVariantId")
    external_variant_id: str | None = Field(alias="externalVariantId", default=None)
    raw_sku: str | None = Field(alias="rawSku", default=None)
    raw_barcode: str | None = Field(alias="rawBarcode", default=None)
    raw_price_minor: int | None = Field(alias="rawPriceMinor", default=None)
    raw_options: dict[str, str] = Field(alias="rawOptions", default_factory=dict)

    model_config = {"populate_by_name": True}


class StagingDetail(BaseModel):
    """Everything a reviewer needs to decide on one staging product."""

    staging_id: int = Field(alias="stagingId")
    merchant_id: int = Field(alias="merchantId")
    merchant_name: str = Field(alias="merchantName")
    external_product_id: str = Field(alias="externalProductId")
    raw_title: str | None = Field(alias="rawTitle", default=None)
    raw_body_html: str | None = Field(alias="rawBodyHtml", default=None)
    raw_vendor: str | None = Field(alias="rawVendor", default=None)
    raw_product_type: str | None = Field(alias="rawProductType", default=None)
    raw_tags: list[str] = Field(alias="rawTags", default_factory=list)
    raw_options_definition: list[dict[str, Any]] = Field(alias="rawOptionsDefinition", default_factory=list)
    status: str
    match_confidence_score: int | None = Field(alias="matchConfidenceScore", default=None)
    suggested_product_id: int | None = Field(alias="suggestedProductId", default=None)
    rejection_reason: str | None = Field(alias="rejectionReason", default=None)
    admin_notes: str | None = Field(alias="adminNotes", default=None)
    created_at: datetime | None = Field(alias="createdAt", default=None)
    updated_at: datetime | None = Field(alias="updatedAt", default=None)
    image_url: str | None = Field(alias="imageUrl", default=None)
    media: list[StagingMediaOut] = Field(default_factory=list)
    variants: list[StagingVariantOut] = Field(default_factory=list)

    model_config = {"populate_by_name": True}


class VariantMatchSuggestion(BaseModel):
    staging_variant_id: int = Field(alias="stagingVariantId")
    staging_options: dict[str, str] = Field(alias="stagingOptions", default_factory=dict)
    suggested_master_variant_id: int | None = Field(alias="suggestedMasterVariantId", default=None)
    match_reason: str = Field(alias="matchReason")

    model_config = {"populate_by_name": True}


class VariantMatchResponse(BaseModel):
    staging_product_id: int = Field(alias="stagingProductId")
    master_product_id: int = Field(alias="masterProductId")
    matches: list[VariantMatchSuggestion]

    model_config = {"populate_by_name": True}
