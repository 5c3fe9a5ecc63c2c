"""initial_catalog_schema

Revision ID: 1a6f0c2e9d41
Revises:
Create Date: 2026-10-17
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "1a6f0c2e9d41"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    # Reference tables
    op.create_table(
        "merchants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("source_type", sa.String(length=30), nullable=False),
        sa.Column("source_config", postgresql.JSONB(), nullable=False),
        sa.Column("shopify_configured", sa.Boolean(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_merchants_name"), "merchants", ["name"], unique=False)

    op.create_table(
        "brands",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("slug", sa.String(length=200), nullable=True),
        sa.Column("logo_url", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
        sa.UniqueConstraint("slug"),
    )

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("parent_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("slug", sa.String(length=200), nullable=False),
        sa.Column("icon", sa.String(length=100), nullable=True),
        sa.Column("path", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["parent_id"], ["categories.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("slug"),
    )
    op.create_index(op.f("ix_categories_parent_id"), "categories", ["parent_id"], unique=False)

    # Canonical catalog
    op.create_table(
        "products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(length=500), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("brand_id", sa.Integer(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("options_definition", postgresql.JSONB(), nullable=False),
        sa.Column("specifications", postgresql.JSONB(), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["brand_id"], ["brands.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_products_slug"), "products", ["slug"], unique=True)
    op.create_index(op.f("ix_products_brand_id"), "products", ["brand_id"], unique=False)

    op.create_table(
        "variants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("internal_sku", sa.String(length=255), nullable=False),
        sa.Column("gtin", sa.String(length=64), nullable=True),
        sa.Column("mpn", sa.String(length=255), nullable=True),
        sa.Column("options", postgresql.JSONB(), nullable=False),
        sa.Column("normalized_attributes", postgresql.JSONB(), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_variants_product_id"), "variants", ["product_id"], unique=False)
    op.create_index(op.f("ix_variants_internal_sku"), "variants", ["internal_sku"], unique=True)
    op.create_index(op.f("ix_variants_gtin"), "variants", ["gtin"], unique=False)

    op.create_table(
        "media",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("src_url", sa.Text(), nullable=False),
        sa.Column("alt_text", sa.Text(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_media_product_id"), "media", ["product_id"], unique=False)

    op.create_table(
        "product_categories",
        sa.Column("product_id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["category_id"], ["categories.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("product_id", "category_id"),
    )

    # Staging
    op.create_table(
        "staging_products",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("merchant_id", sa.Integer(), nullable=False),
        sa.Column("external_product_id", sa.String(length=200), nullable=False),
        sa.Column("raw_title", sa.Text(), nullable=True),
        sa.Column("raw_body_html", sa.Text(), nullable=True),
        sa.Column("raw_vendor", sa.String(length=255), nullable=True),
        sa.Column("raw_product_type", sa.String(length=255), nullable=True),
        sa.Column("raw_tags", postgresql.JSONB(), nullable=False),
        sa.Column("raw_json_dump", postgresql.JSONB(), nullable=True),
        sa.Column("raw_options_definition", postgresql.JSONB(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("match_confidence_score", sa.Integer(), nullable=True),
        sa.Column("suggested_product_id", sa.Integer(), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["merchant_id"], ["merchants.id"]),
        sa.ForeignKeyConstraint(["suggested_product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("merchant_id", "external_product_id", name="uq_staging_products_merchant_external"),
    )
    op.create_index(op.f("ix_staging_products_merchant_id"), "staging_products", ["merchant_id"], unique=False)
    op.create_index(op.f("ix_staging_products_status"), "staging_products", ["status"], unique=False)
    op.create_index(op.f("ix_staging_products_created_at"), "staging_products", ["created_at"], unique=False)

    op.create_table(
        "staging_variants",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("staging_product_id", sa.Integer(), nullable=False),
        sa.Column("external_variant_id", sa.String(length=200), nullable=True),
        sa.Column("raw_sku", sa.String(length=255), nullable=True),
        sa.Column("raw_barcode", sa.String(length=255), nullable=True),
        sa.Column("raw_price_minor", sa.BigInteger(), nullable=True),
        sa.Column("raw_options", postgresql.JSONB(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["staging_product_id"], ["staging_products.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_staging_variants_staging_product_id"), "staging_variants", ["staging_product_id"], unique=False
    )
    op.create_index(
        op.f("ix_staging_variants_external_variant_id"), "staging_variants", ["external_variant_id"], unique=False
    )

    op.create_table(
        "staging_media",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("staging_product_id", sa.Integer(), nullable=False),
        sa.Column("external_media_id", sa.String(length=200), nullable=True),
        sa.Column("media_type", sa.String(length=30), nullable=False),
        sa.Column("source_url", sa.Text(), nullable=False),
        sa.Column("alt_text", sa.Text(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["staging_product_id"], ["staging_products.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_staging_media_staging_product_id"), "staging_media", ["staging_product_id"], unique=False)

    # Offers
    op.create_table(
        "merchant_offers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("merchant_id", sa.Integer(), nullable=False),
        sa.Column("variant_id", sa.Integer(), nullable=False),
        sa.Column("external_product_id", sa.String(length=200), nullable=True),
        sa.Column("external_variant_id", sa.String(length=200), nullable=True),
        sa.Column("merchant_sku", sa.String(length=255), nullable=True),
        sa.Column("currency_code", sa.String(length=3), nullable=False),
        sa.Column("cached_price_minor", sa.BigInteger(), nullable=False),
        sa.Column("cached_settlement_price_minor", sa.BigInteger(), nullable=False),
        sa.Column("current_stock", sa.Integer(), nullable=False),
        sa.Column("offer_status", sa.String(length=30), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["merchant_id"], ["merchants.id"]),
        sa.ForeignKeyConstraint(["variant_id"], ["variants.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("merchant_id", "variant_id", name="uq_merchant_offers_merchant_variant"),
    )
    op.create_index(op.f("ix_merchant_offers_merchant_id"), "merchant_offers", ["merchant_id"], unique=False)
    op.create_index(op.f("ix_merchant_offers_variant_id"), "merchant_offers", ["variant_id"], unique=False)
    op.create_index(
        op.f("ix_merchant_offers_external_variant_id"), "merchant_offers", ["external_variant_id"], unique=False
    )


def downgrade() -> None:
    op.drop_table("merchant_offers")
    op.drop_table("staging_media")
    op.drop_table("staging_variants")
    op.drop_table("staging_products")
    op.drop_table("product_categories")
    op.drop_table("media")
    op.drop_table("variants")
    op.drop_table("products")
    op.drop_table("categories")
    op.drop_table("brands")
    op.drop_table("merchants")
