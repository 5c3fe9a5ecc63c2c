"""Merchant offer model.

An offer records that a merchant sells a canonical variant. At most one offer
exists per (merchant, variant). Prices are integers in minor units.
"""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from catalog_hub.stores.postgres import Base


class MerchantOffer(Base):
    """Link between a merchant and a canonical variant."""

    __tablename__ = "merchant_offers"
    __table_args__ = (
        UniqueConstraint("merchant_id", "variant_id", name="uq_merchant_offers_merchant_variant"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    merchant_id: Mapped[int] = mapped_column(ForeignKey("merchants.id"), index=True)
    variant_id: Mapped[int] = mapped_column(ForeignKey("variants.id", ondelete="CASCADE"), index=True)

    # Upstream identifiers (copied from the staging side)
    external_product_id: Mapped[str | None] = mapped_column(String(200))
    external_variant_id: Mapped[str | None] = mapped_column(String(200), index=True)
    merchant_sku: Mapped[str | None] = mapped_column(String(255))

    # Pricing (minor units)
    currency_code: Mapped[str] = mapped_column(String(3), default="INR")
    cached_price_minor: Mapped[int] = mapped_column(BigInteger, default=0)
    cached_settlement_price_minor: Mapped[int] = mapped_column(BigInteger, default=0)

    current_stock: Mapped[int] = mapped_column(default=0)
    offer_status: Mapped[str] = mapped_column(String(30), default="LIVE")
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
        return f"<MerchantOffer merchant={self.merchant_id} variant={self.variant_id}>"
