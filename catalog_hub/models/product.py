"""Canonical (master) catalog models.

Products are merchant-independent. Variants and media reference their product
by id only; the review engine writes them explicitly.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from catalog_hub.stores.postgres import Base, JsonType


class Product(Base):
    """Master product curated from one or more staging records."""

    __tablename__ = "products"
    __mapper_args__ = {"eager_defaults": True}

    id: Mapped[int] = mapped_column(primary_key=True)

    title: Mapped[str] = mapped_column(String(500))
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    brand_id: Mapped[int | None] = mapped_column(ForeignKey("brands.id"), index=True)
    image_url: Mapped[str | None] = mapped_column(Text)

    # {"Color": ["Red", "Blue"], "Size": ["S", "M"]}
    options_definition: Mapped[dict[str, Any]] = mapped_column(JsonType, default=dict)
    specifications: Mapped[Any] = mapped_column(JsonType, default=dict)

    status: Mapped[str] = mapped_column(String(30), default="ACTIVE")

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product {self.id} {self.slug}>"


class Variant(Base):
    """Canonical variant: one concrete option combination of a product."""

    __tablename__ = "variants"

    id: Mapped[int] = mapped_column(primary_key=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="CASCADE"), index=True)

    internal_sku: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    gtin: Mapped[str | None] = mapped_column(String(64), index=True)
    mpn: Mapped[str | None] = mapped_column(String(255))

    options: Mapped[dict[str, str]] = mapped_column(JsonType, default=dict)
    # Lower-cased, trimmed copy of options used for matching
    normalized_attributes: Mapped[dict[str, str]] = mapped_column(JsonType, default=dict)

    status: Mapped[str] = mapped_column(String(30), default="ACTIVE")
    is_active: Mapped[bool] = mapped_column(default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<Variant {self.id} {self.internal_sku}>"


class Media(Base):
    """Canonical product media; position is 0-based within its product."""

    __tablename__ = "media"

    id: Mapped[int] = mapped_column(primary_key=True)
    product_id: Mapped[int] = mapped_column(ForeignKey("products.id", ondelete="CASCADE"), index=True)

    src_url: Mapped[str] = mapped_column(Text)
    alt_text: Mapped[str | None] = mapped_column(Text)
    position: Mapped[int] = mapped_column(default=0)

    def __repr__(self) -> str:
        return f"<Media {self.id} product={self.product_id} #{self.position}>"
