from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..domain import PlanType, RenewalUrgency
from .common import PaginatedResponse, coerce_amount, coerce_calendar_date


class ContractBase(BaseModel):
    customer_name: str = Field(..., min_length=1, max_length=200)
    contract_number: Optional[str] = Field(default=None, max_length=60)
    base_value: Decimal = Field(..., ge=0, description="Value charged per billing cycle")
    plan_type: PlanType = PlanType.MONTHLY
    start_date: Optional[date] = None
    trial_days: Optional[int] = Field(default=None, ge=0)
    renewal_date: Optional[date] = Field(
        default=None, description="Yearly anchor of the contract adjustment"
    )
    payment_day: Optional[int] = Field(default=None, ge=1, le=31)
    notes: Optional[str] = None

    @field_validator("start_date", "renewal_date", mode="before")
    @classmethod
    def _parse_dates(cls, value: Any) -> Optional[date]:
        return coerce_calendar_date(value)

    @field_validator("base_value", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> Any:
        return coerce_amount(value)

    @field_validator("plan_type", mode="before")
    @classmethod
    def _parse_plan_type(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() in {"mensal", "semestral", "anual"}:
            return PlanType.parse(value)
        return value


class ContractCreate(ContractBase):
    """Schema used to register a contract."""

    pass


class ContractRead(ContractBase):
    """Stored contract."""

    id: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ContractListResponse(PaginatedResponse[ContractRead]):
    """Paginated contract listing."""

    pass


class EffectiveValueRead(BaseModel):
    contract_id: str
    as_of: date
    effective_value: Decimal
    monthly_average_value: Decimal
    adjustment_id: Optional[str] = None
    adjustment_effective_date: Optional[date] = None


class RenewalStatusRead(BaseModel):
    contract_id: str
    customer_name: Optional[str] = None
    target_date: Optional[date] = None
    days_until_renewal: Optional[int] = None
    urgency: RenewalUrgency
    has_adjustment_for_period: bool = False
    is_locked: bool = False
    next_renewal_date: Optional[date] = Field(
        default=None, description="Date a new adjustment should target"
    )

    model_config = ConfigDict(from_attributes=True)
