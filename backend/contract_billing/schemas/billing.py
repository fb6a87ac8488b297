from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..domain import PlanType, RevenueMode
from .common import coerce_amount, coerce_calendar_date


class BillingDecisionRead(BaseModel):
    """Charge of a contract in one calendar month."""

    contract_id: str
    year: int
    month: int
    billed: bool
    value: Decimal
    effective_value: Decimal
    months_since_billing_start: Optional[int] = None
    in_trial: bool = False


class MonthlyRevenueRead(BaseModel):
    year: int
    month: int
    billed: bool
    value: Decimal
    source: str

    model_config = ConfigDict(from_attributes=True)


class YearlyBillingRead(BaseModel):
    contract_id: str
    year: int
    total: Decimal
    months: List[MonthlyRevenueRead]


class RevenueOverrideUpsert(BaseModel):
    value: Decimal = Field(..., ge=0)
    notes: Optional[str] = None

    @field_validator("value", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> Any:
        return coerce_amount(value)


class RevenueOverrideRead(BaseModel):
    id: str
    contract_id: str
    year: int
    month: int
    value: Decimal
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class ProrationRequest(BaseModel):
    old_value: Decimal = Field(..., ge=0)
    new_value: Decimal = Field(..., ge=0)
    payment_day: Optional[int] = None
    change_date: date
    calendar_days: bool = Field(
        default=False, description="Use the real period length instead of a 30-day month"
    )

    @field_validator("change_date", mode="before")
    @classmethod
    def _parse_dates(cls, value: Any) -> Optional[date]:
        return coerce_calendar_date(value)

    @field_validator("old_value", "new_value", mode="before")
    @classmethod
    def _parse_amounts(cls, value: Any) -> Any:
        return coerce_amount(value)


class ProportionalSplitRead(BaseModel):
    period_start: date
    period_end: date
    next_payment_date: date
    days_in_period: int
    days_old_plan: int
    days_new_plan: int
    proportional_old_value: Decimal
    proportional_new_value: Decimal
    total_value: Decimal
    applies_to_next_invoice: bool

    model_config = ConfigDict(from_attributes=True)


class TermProrationRequest(BaseModel):
    old_value: Decimal = Field(..., ge=0)
    new_value: Decimal = Field(..., ge=0)
    change_date: date
    renewal_date: date
    plan_type: PlanType

    @field_validator("change_date", "renewal_date", mode="before")
    @classmethod
    def _parse_dates(cls, value: Any) -> Optional[date]:
        return coerce_calendar_date(value)

    @field_validator("old_value", "new_value", mode="before")
    @classmethod
    def _parse_amounts(cls, value: Any) -> Any:
        return coerce_amount(value)


class TermProrationRead(BaseModel):
    remaining_days: int
    total_period_days: int
    already_paid_value: Decimal
    daily_difference: Decimal
    proportional_difference: Decimal
    new_plan_proportional_value: Decimal
    description: str

    model_config = ConfigDict(from_attributes=True)


class ProfitabilityRequest(BaseModel):
    """Costs apportioned to the contract for the analysed month."""

    analysis_date: Optional[date] = None
    mode: RevenueMode = RevenueMode.ACTUAL_BILLING
    reference_revenue: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Revenue the shared costs were apportioned against; 0 uses the contract value",
    )
    operational_costs: Decimal = Field(default=Decimal("0"), ge=0)
    company_fraction: Decimal = Field(default=Decimal("0"), ge=0)
    taxes: Decimal = Field(default=Decimal("0"), ge=0)
    bank_slip_fee: Decimal = Field(default=Decimal("0"), ge=0)

    @field_validator("analysis_date", mode="before")
    @classmethod
    def _parse_dates(cls, value: Any) -> Optional[date]:
        return coerce_calendar_date(value)


class ContractProfitRead(BaseModel):
    contract_id: str
    year: int
    month: int
    mode: RevenueMode
    effective_value: Decimal
    revenue: Decimal
    billed: bool
    operational_costs: Decimal
    company_fraction: Decimal
    taxes: Decimal
    bank_slip_fee: Decimal
    gross_profit: Decimal
    net_profit: Decimal
    gross_margin: Decimal
    net_margin: Decimal
    is_deficit_month: bool

    model_config = ConfigDict(from_attributes=True)
