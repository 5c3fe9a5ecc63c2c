"""Merchant request/response schemas."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator


class MerchantOut(BaseModel):
    """Merchant as exposed by the API (credentials are never returned)."""

    id: int
    name: str
    email: str | None = None
    source_type: str = Field(alias="sourceType")
    shopify_configured: bool = Field(alias="shopifyConfigured")
    is_active: bool = Field(alias="isActive")
    created_at: datetime | None = Field(alias="createdAt", default=None)

    model_config = {"populate_by_name": True}


class CreateMerchantRequest(BaseModel):
    """Request body for creating a merchant."""

    name: str
    email: str | None = None
    source_config: dict[str, Any] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def _name_present(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name must be non-blank")
        return v


class UpdateMerchantRequest(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    name: str | None = None
    is_active: bool | None = None
    source_config: dict[str, Any] | None = None


class SyncResponse(BaseModel):
    """Result of a catalog sync."""

    success: bool = True
    merchant_id: int = Field(alias="merchantId")
    products_synced: int = Field(alias="productsSynced", ge=0)
    variants_synced: int = Field(alias="variantsSynced", ge=0)

    model_config = {"populate_by_name": True}
