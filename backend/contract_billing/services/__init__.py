"""Service layer encapsulating business logic for API routers."""

from .adjustments import (
    AdjustmentDraft,
    AdjustmentError,
    AdjustmentLockedError,
    BulkAdjustmentResult,
    ContractAdjustmentService,
    Discount,
    SkippedAdjustment,
    prepare_adjustment,
    prepare_bulk_adjustments,
    prepare_value_change,
)
from .billing_cycles import BillingCycleEvaluator, BillingDecision, MonthlyRevenue
from .contracts import ContractService
from .profitability import ContractProfit, CostAllocation, ProfitabilityService
from .proration import (
    ProportionalBillingCalculator,
    ProportionalSplit,
    ProrationError,
    TermProration,
)
from .renewals import EffectiveDatePlan, RenewalScheduler, RenewalStatus
from .value_resolver import ValueResolver

__all__ = [
    "AdjustmentDraft",
    "AdjustmentError",
    "AdjustmentLockedError",
    "BillingCycleEvaluator",
    "BillingDecision",
    "BulkAdjustmentResult",
    "ContractAdjustmentService",
    "ContractProfit",
    "ContractService",
    "CostAllocation",
    "Discount",
    "EffectiveDatePlan",
    "MonthlyRevenue",
    "ProfitabilityService",
    "ProportionalBillingCalculator",
    "ProportionalSplit",
    "ProrationError",
    "RenewalScheduler",
    "RenewalStatus",
    "SkippedAdjustment",
    "TermProration",
    "ValueResolver",
    "prepare_adjustment",
    "prepare_bulk_adjustments",
    "prepare_value_change",
]
