"""Merchant model.

Represents a selling partner whose storefront catalog is ingested.
`source_config` holds the storefront credentials (store URL + access token).
"""

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

from catalog_hub.stores.postgres import Base, JsonType


class Merchant(Base):
    """Merchant with storefront source configuration."""

    __tablename__ = "merchants"

    id: Mapped[int] = mapped_column(primary_key=True)

    # Identification
    name: Mapped[str] = mapped_column(String(200), index=True)
    email: Mapped[str | None] = mapped_column(String(320))

    # Source (only Shopify today)
    source_type: Mapped[str] = mapped_column(String(30), default="SHOPIFY")
    source_config: Mapped[dict[str, Any]] = mapped_column(JsonType, default=dict)
    shopify_configured: Mapped[bool] = mapped_column(default=False)

    is_active: Mapped[bool] = mapped_column(default=True)

    # Timestamps
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
        return f"<Merchant {self.id} {self.name}>"
