from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..domain import AdjustmentType
from .billing import ProportionalSplitRead
from .common import coerce_amount, coerce_calendar_date


def _parse_adjustment_type(value: Any) -> Any:
    if isinstance(value, str):
        return AdjustmentType.parse(value)
    return value


class AdjustmentRead(BaseModel):
    """Stored contract adjustment."""

    id: str
    contract_id: str
    adjustment_type: AdjustmentType
    adjustment_value: Decimal
    previous_value: Decimal
    new_value: Decimal
    effective_date: date
    renewal_date_used: Optional[date] = None
    notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class AdjustmentCreate(BaseModel):
    """Renewal adjustment targeting the next renewal date or a custom date."""

    adjustment_type: AdjustmentType
    adjustment_value: Decimal = Field(
        ..., description="Percentage delta or the new absolute value"
    )
    today: Optional[date] = Field(
        default=None, description="Date the adjustment is applied; defaults to the current day"
    )
    custom_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("today", "custom_date", mode="before")
    @classmethod
    def _parse_dates(cls, value: Any) -> Optional[date]:
        return coerce_calendar_date(value)

    @field_validator("adjustment_value", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> Any:
        return coerce_amount(value)

    @field_validator("adjustment_type", mode="before")
    @classmethod
    def _parse_type(cls, value: Any) -> Any:
        return _parse_adjustment_type(value)


class DiscountPayload(BaseModel):
    kind: AdjustmentType = AdjustmentType.PERCENTAGE
    value: Decimal = Field(..., ge=0)

    @field_validator("kind", mode="before")
    @classmethod
    def _parse_kind(cls, value: Any) -> Any:
        return _parse_adjustment_type(value)


class ValueChangeCreate(BaseModel):
    """Manual plan change with optional discount and proportional invoice."""

    adjustment_type: AdjustmentType
    adjustment_value: Decimal
    effective_date: date
    discount: Optional[DiscountPayload] = None
    proportional: bool = False
    change_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("effective_date", "change_date", mode="before")
    @classmethod
    def _parse_dates(cls, value: Any) -> Optional[date]:
        return coerce_calendar_date(value)

    @field_validator("adjustment_value", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> Any:
        return coerce_amount(value)

    @field_validator("adjustment_type", mode="before")
    @classmethod
    def _parse_type(cls, value: Any) -> Any:
        return _parse_adjustment_type(value)


class AdjustmentDraftRead(BaseModel):
    """Resolved adjustment shown for confirmation."""

    contract_id: str
    adjustment_type: AdjustmentType
    adjustment_value: Decimal
    previous_value: Decimal
    new_value: Decimal
    effective_date: date
    renewal_date_used: Optional[date] = None
    notes: Optional[str] = None
    retroactive: bool = False
    proration: Optional[ProportionalSplitRead] = None

    model_config = ConfigDict(from_attributes=True)


class AdjustmentLockUpdate(BaseModel):
    is_locked: bool = True
    reason: Optional[str] = None


class AdjustmentLockRead(BaseModel):
    """Adjustment lock of one contract renewal year."""

    id: str
    contract_id: str
    renewal_year: int
    is_locked: bool
    reason: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class BulkAdjustmentCreate(BaseModel):
    """One adjustment applied to several contracts at once."""

    contract_ids: List[str] = Field(..., min_length=1)
    adjustment_type: AdjustmentType = AdjustmentType.PERCENTAGE
    adjustment_value: Decimal
    today: Optional[date] = None
    custom_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("today", "custom_date", mode="before")
    @classmethod
    def _parse_dates(cls, value: Any) -> Optional[date]:
        return coerce_calendar_date(value)

    @field_validator("adjustment_value", mode="before")
    @classmethod
    def _parse_amount(cls, value: Any) -> Any:
        return coerce_amount(value)

    @field_validator("adjustment_type", mode="before")
    @classmethod
    def _parse_type(cls, value: Any) -> Any:
        return _parse_adjustment_type(value)


class SkippedAdjustmentRead(BaseModel):
    contract_id: str
    reason: str

    model_config = ConfigDict(from_attributes=True)


class BulkAdjustmentPreviewRead(BaseModel):
    drafts: List[AdjustmentDraftRead]
    skipped: List[SkippedAdjustmentRead]


class BulkAdjustmentRead(BaseModel):
    adjustments: List[AdjustmentRead]
    skipped: List[SkippedAdjustmentRead]
