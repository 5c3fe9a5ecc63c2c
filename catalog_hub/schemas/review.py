"""Review decision request/response schemas.

The decision payload is a discriminated union on `action`:
- REJECT:        rejection_reason, admin_notes
- CREATE_NEW:    clean_data (title required)
- LINK_EXISTING: master_product_id (required), variant_mapping, optional media selection

Request bodies are snake_case; responses use camelCase aliases.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, RootModel, field_validator, model_validator


class ExtraMedia(BaseModel):
    """Media URL added by the reviewer (not from the storefront)."""

    url: str
    alt_text: str | None = None

    @field_validator("url")
    @classmethod
    def _strip_url(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("url must be non-blank")
        return v


class MediaSelection(BaseModel):
    """Staging media to copy (in order) plus extra media to append."""

    selected_media_ids: list[int] = Field(default_factory=list)
    extra_media: list[ExtraMedia] = Field(default_factory=list)


class CleanData(MediaSelection):
    """Reviewer-curated product data for CREATE_NEW."""

    title: str
    slug: str | None = None
    description: str | None = None
    brand_id: int | None = None
    category_ids: list[int] = Field(default_factory=list)
    options_definition: dict[str, list[str]] = Field(default_factory=dict)
    specifications: dict[str, Any] | list[Any] | None = None

    @field_validator("title")
    @classmethod
    def _title_present(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("title must be non-blank")
        return v

    @field_validator("slug")
    @classmethod
    def _blank_slug_is_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class VariantMappingEntry(BaseModel):
    """One LINK_EXISTING mapping entry.

    - link:     staging_variant_id + master_variant_id
    - add-new:  staging_variant_id + new_variant_attributes (may be empty)
    - manual:   new_variant_attributes only
    """

    staging_variant_id: int | None = None
    master_variant_id: int | None = None
    new_variant_attributes: dict[str, str] | None = None

    @model_validator(mode="after")
    def _check_exclusive(self) -> "VariantMappingEntry":
        if self.master_variant_id is not None and self.new_variant_attributes is not None:
            raise ValueError("master_variant_id and new_variant_attributes are mutually exclusive")
        if self.master_variant_id is not None and self.staging_variant_id is None:
            raise ValueError("master_variant_id requires staging_variant_id")
        return self


class RejectDecision(BaseModel):
    action: Literal["REJECT"]
    rejection_reason: str | None = None
    admin_notes: str | None = None


class CreateNewDecision(BaseModel):
    action: Literal["CREATE_NEW"]
    clean_data: CleanData
    admin_notes: str | None = None


class LinkExistingDecision(BaseModel):
    action: Literal["LINK_EXISTING"]
    master_product_id: int
    variant_mapping: list[VariantMappingEntry] = Field(default_factory=list)
    clean_data: MediaSelection | None = None
    admin_notes: str | None = None


ReviewDecision = Annotated[
    Union[RejectDecision, CreateNewDecision, LinkExistingDecision],
    Field(discriminator="action"),
]


class ReviewDecisionRequest(RootModel[ReviewDecision]):
    """Request body for POST /v1/admin/review/{staging_id}/decision."""


class DecisionResponse(BaseModel):
    """Outcome of a review decision."""

    model_config = {"populate_by_name": True}

    success: bool = True
    action: str
    staging_id: int = Field(alias="stagingId")
    status: str
    product_id: int | None = Field(default=None, alias="productId")
    created_variant_ids: list[int] = Field(default_factory=list, alias="createdVariantIds")
    created_offer_ids: list[int] = Field(default_factory=list, alias="createdOfferIds")
