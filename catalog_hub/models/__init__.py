"""SQLAlchemy ORM models.

Models represent database tables:
- merchants: Selling partners and their storefront source config
- staging_products / staging_variants / staging_media: Raw storefront records awaiting review
- products / variants / media: Canonical (master) catalog
- merchant_offers: Which merchant sells which canonical variant
- brands / categories / product_categories: Reference tables
"""

from catalog_hub.models.merchant import Merchant
from catalog_hub.models.offer import MerchantOffer
from catalog_hub.models.product import Media, Product, Variant
from catalog_hub.models.staging import StagingMedia, StagingProduct, StagingStatus, StagingVariant
from catalog_hub.models.taxonomy import Brand, Category, ProductCategory

__all__ = [
    "Brand",
    "Category",
    "Media",
    "Merchant",
    "MerchantOffer",
    "Product",
    "ProductCategory",
    "StagingMedia",
    "StagingProduct",
    "StagingStatus",
    "StagingVariant",
    "Variant",
]
