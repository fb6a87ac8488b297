"""Expose SQLAlchemy models for convenient imports."""

from .contract import (
    ADJUSTMENT_TYPE_ENUM,
    PLAN_TYPE_ENUM,
    Contract,
    ContractAdjustment,
    ContractAdjustmentLock,
    ContractMonthlyRevenueOverride,
)

__all__ = [
    "ADJUSTMENT_TYPE_ENUM",
    "PLAN_TYPE_ENUM",
    "Contract",
    "ContractAdjustment",
    "ContractAdjustmentLock",
    "ContractMonthlyRevenueOverride",
]
