"""Pydantic schemas for API request/response validation."""

from catalog_hub.schemas.catalog import BackfillResult, MasterProductItem, MasterProductPage, MasterVariant
from catalog_hub.schemas.common import ErrorDetail, ErrorResponse
from catalog_hub.schemas.merchant import CreateMerchantRequest, MerchantOut, SyncResponse, UpdateMerchantRequest
from catalog_hub.schemas.review import (
    CleanData,
    CreateNewDecision,
    DecisionResponse,
    ExtraMedia,
    LinkExistingDecision,
    MediaSelection,
    RejectDecision,
    ReviewDecision,
    ReviewDecisionRequest,
    VariantMappingEntry,
)
from catalog_hub.schemas.staging import (
    AdminStats,
    MerchantStats,
    ReviewQueueItem,
    ReviewQueuePage,
    StagingDetail,
    StagingListItem,
    StagingMediaOut,
    StagingPage,
    StagingVariantOut,
    VariantMatchResponse,
    VariantMatchSuggestion,
)

__all__ = [
    "AdminStats",
    "BackfillResult",
    "CleanData",
    "CreateMerchantRequest",
    "CreateNewDecision",
    "DecisionResponse",
    "ErrorDetail",
    "ErrorResponse",
    "ExtraMedia",
    "LinkExistingDecision",
    "MasterProductItem",
    "MasterProductPage",
    "MasterVariant",
    "MediaSelection",
    "MerchantOut",
    "MerchantStats",
    "RejectDecision",
    "ReviewDecision",
    "ReviewDecisionRequest",
    "ReviewQueueItem",
    "ReviewQueuePage",
    "StagingDetail",
    "StagingListItem",
    "StagingMediaOut",
    "StagingPage",
    "StagingVariantOut",
    "SyncResponse",
    "UpdateMerchantRequest",
    "VariantMappingEntry",
    "VariantMatchResponse",
    "VariantMatchSuggestion",
]
