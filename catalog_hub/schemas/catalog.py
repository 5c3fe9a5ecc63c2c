"""Schemas for the master (canonical) catalog views."""

from typing import Any

from pydantic import BaseModel, Field


class MasterProductItem(BaseModel):
    """Master product row for search results and the catalog list."""

    id: int
    title: str
    slug: str
    brand: str = ""
    image_url: str | None = Field(alias="imageUrl", default=None)
    variant_count: int = Field(alias="variantCount", ge=0)

    model_config = {"populate_by_name": True}


class MasterProductPage(BaseModel):
    items: list[MasterProductItem]
    total: int = Field(ge=0)
    page: int = Field(ge=1)
    size: int = Field(ge=1)


class MasterVariant(BaseModel):
    id: int
    internal_sku: str = Field(alias="internalSku")
    gtin: str | None = None
    mpn: str | None = None
    options: dict[str, Any] = Field(default_factory=dict)
    status: str
    is_active: bool = Field(alias="isActive")

    model_config = {"populate_by_name": True}


class BackfillResult(BaseModel):
    """Result of copying staging options onto option-less variants."""

    product_id: int = Field(alias="productId")
    updated_variants: int = Field(alias="updatedVariants", ge=0)

    model_config = {"populate_by_name": True}
