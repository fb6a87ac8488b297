"""Expose Pydantic schemas for convenient imports."""

from .adjustment import (
    AdjustmentCreate,
    AdjustmentDraftRead,
    AdjustmentLockRead,
    AdjustmentLockUpdate,
    AdjustmentRead,
    BulkAdjustmentCreate,
    BulkAdjustmentPreviewRead,
    BulkAdjustmentRead,
    DiscountPayload,
    SkippedAdjustmentRead,
    ValueChangeCreate,
)
from .billing import (
    BillingDecisionRead,
    ContractProfitRead,
    MonthlyRevenueRead,
    ProfitabilityRequest,
    ProportionalSplitRead,
    ProrationRequest,
    RevenueOverrideRead,
    RevenueOverrideUpsert,
    TermProrationRead,
    TermProrationRequest,
    YearlyBillingRead,
)
from .common import PaginatedResponse
from .contract import (
    ContractBase,
    ContractCreate,
    ContractListResponse,
    ContractRead,
    EffectiveValueRead,
    RenewalStatusRead,
)

__all__ = [
    "AdjustmentCreate",
    "AdjustmentDraftRead",
    "AdjustmentLockRead",
    "AdjustmentLockUpdate",
    "AdjustmentRead",
    "BillingDecisionRead",
    "BulkAdjustmentCreate",
    "BulkAdjustmentPreviewRead",
    "BulkAdjustmentRead",
    "ContractBase",
    "ContractCreate",
    "ContractListResponse",
    "ContractProfitRead",
    "ContractRead",
    "DiscountPayload",
    "EffectiveValueRead",
    "MonthlyRevenueRead",
    "PaginatedResponse",
    "ProfitabilityRequest",
    "ProportionalSplitRead",
    "ProrationRequest",
    "RenewalStatusRead",
    "RevenueOverrideRead",
    "RevenueOverrideUpsert",
    "SkippedAdjustmentRead",
    "TermProrationRead",
    "TermProrationRequest",
    "YearlyBillingRead",
]
