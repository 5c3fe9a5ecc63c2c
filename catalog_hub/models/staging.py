"""Staging models.

A StagingProduct is the raw, per-merchant copy of one storefront product
awaiting curation. It owns its variants and media: children carry only the
parent id and are deleted with the parent. Children are loaded eagerly
(selectin) because the sync rebuilds them on every run.

Lifecycle:
    PENDING (first sync) -> NEEDS_REVIEW (title changed after curation)
    -> APPROVED | REJECTED (review decision); PENDING_SYNC re-arms a record.
"""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import BigInteger, DateTime, ForeignKey, String, Text, UniqueConstraint, func
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from catalog_hub.stores.postgres import Base, JsonType


class StagingStatus(str, Enum):
    """Review lifecycle of a staging record."""

    PENDING = "PENDING"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    PENDING_SYNC = "PENDING_SYNC"
    PROCESSING = "PROCESSING"
    AUTO_MATCHED = "AUTO_MATCHED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


# Status groups used by the dashboards
PENDING_REVIEW_STATUSES = (StagingStatus.PENDING, StagingStatus.NEEDS_REVIEW)
UNDER_REVIEW_STATUSES = (
    StagingStatus.PENDING,
    StagingStatus.PENDING_SYNC,
    StagingStatus.PROCESSING,
    StagingStatus.AUTO_MATCHED,
    StagingStatus.NEEDS_REVIEW,
)
ISSUE_STATUSES = (StagingStatus.REJECTED,)
LIVE_STATUSES = (StagingStatus.APPROVED,)

_status_type = SAEnum(StagingStatus, native_enum=False, length=32)


class StagingProduct(Base):
    """Raw storefront product awaiting review."""

    __tablename__ = "staging_products"
    __table_args__ = (
        UniqueConstraint("merchant_id", "external_product_id", name="uq_staging_products_merchant_external"),
    )
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(primary_key=True)

    merchant_id: Mapped[int] = mapped_column(ForeignKey("merchants.id"), index=True)
    external_product_id: Mapped[str] = mapped_column(String(200))

    # Raw fields (overwritten on every sync)
    raw_title: Mapped[str | None] = mapped_column(Text)
    raw_body_html: Mapped[str | None] = mapped_column(Text)
    raw_vendor: Mapped[str | None] = mapped_column(String(255))
    raw_product_type: Mapped[str | None] = mapped_column(String(255))
    raw_tags: Mapped[list[str]] = mapped_column(JsonType, default=list)
    raw_json_dump: Mapped[dict[str, Any] | None] = mapped_column(JsonType)
    raw_options_definition: Mapped[list[dict[str, Any]] | None] = mapped_column(JsonType)

    # Review state
    status: Mapped[StagingStatus] = mapped_column(_status_type, default=StagingStatus.PENDING, index=True)
    match_confidence_score: Mapped[int | None] = mapped_column()
    suggested_product_id: Mapped[int | None] = mapped_column(ForeignKey("products.id"))
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    admin_notes: Mapped[str | None] = mapped_column(Text)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    media: Mapped[list["StagingMedia"]] = relationship(
        cascade="all, delete-orphan",
        order_by="StagingMedia.position",
        lazy="selectin",
    )
    variants: Mapped[list["StagingVariant"]] = relationship(
        cascade="all, delete-orphan",
        order_by="StagingVariant.id",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<StagingProduct {self.id} {self.external_product_id} ({self.status.value})>"


class StagingVariant(Base):
    """Raw storefront variant; rebuilt on every sync."""

    __tablename__ = "staging_variants"

    id: Mapped[int] = mapped_column(primary_key=True)
    staging_product_id: Mapped[int] = mapped_column(
        ForeignKey("staging_products.id", ondelete="CASCADE"),
        index=True,
    )

    external_variant_id: Mapped[str | None] = mapped_column(String(200), index=True)
    raw_sku: Mapped[str | None] = mapped_column(String(255))
    raw_barcode: Mapped[str | None] = mapped_column(String(255))
    raw_price_minor: Mapped[int | None] = mapped_column(BigInteger)  # minor units (paise/cents)
    raw_options: Mapped[dict[str, str]] = mapped_column(JsonType, default=dict)

    status: Mapped[str] = mapped_column(String(32), default="PENDING")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<StagingVariant {self.id} {self.external_variant_id}>"


class StagingMedia(Base):
    """Raw storefront media item; position is 1-based within its product."""

    __tablename__ = "staging_media"

    id: Mapped[int] = mapped_column(primary_key=True)
    staging_product_id: Mapped[int] = mapped_column(
        ForeignKey("staging_products.id", ondelete="CASCADE"),
        index=True,
    )

    external_media_id: Mapped[str | None] = mapped_column(String(200))
    media_type: Mapped[str] = mapped_column(String(30), default="IMAGE")
    source_url: Mapped[str] = mapped_column(Text)
    alt_text: Mapped[str | None] = mapped_column(Text)
    position: Mapped[int] = mapped_column()

    def __repr__(self) -> str:
        return f"<StagingMedia {self.id} #{self.position}>"
