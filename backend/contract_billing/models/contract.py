"""Contracts, their value adjustments, adjustment locks and monthly revenue overrides."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from ..database import Base
from ..db_types import GUID
from ..domain import AdjustmentType, PlanType


PLAN_TYPE_ENUM = SAEnum(
    PlanType,
    name="contract_plan_type_enum",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
    native_enum=False,
    validate_strings=True,
)

ADJUSTMENT_TYPE_ENUM = SAEnum(
    AdjustmentType,
    name="contract_adjustment_type_enum",
    values_callable=lambda enum_cls: [member.value for member in enum_cls],
    native_enum=False,
    validate_strings=True,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Contract(Base):
    """Billing terms agreed with a customer."""

    __tablename__ = "contracts"

    id = Column("contract_id", GUID(), primary_key=True, default=uuid.uuid4)
    contract_number = Column(String(60), nullable=True, unique=True)
    customer_name = Column(String(200), nullable=False)
    base_value = Column(Numeric(18, 6), nullable=False)
    plan_type = Column(PLAN_TYPE_ENUM, nullable=False, default=PlanType.MONTHLY)
    start_date = Column(Date, nullable=True)
    trial_days = Column(Integer, nullable=True)
    renewal_date = Column(Date, nullable=True)
    payment_day = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    adjustments = relationship(
        "ContractAdjustment",
        back_populates="contract",
        cascade="all, delete-orphan",
        order_by="ContractAdjustment.effective_date",
    )
    revenue_overrides = relationship(
        "ContractMonthlyRevenueOverride",
        back_populates="contract",
        cascade="all, delete-orphan",
    )
    adjustment_locks = relationship(
        "ContractAdjustmentLock",
        back_populates="contract",
        cascade="all, delete-orphan",
    )


class ContractAdjustment(Base):
    """Immutable record of one change (reajuste) of a contract value."""

    __tablename__ = "contract_adjustments"

    id = Column("adjustment_id", GUID(), primary_key=True, default=uuid.uuid4)
    contract_id = Column(
        GUID(), ForeignKey("contracts.contract_id", ondelete="CASCADE"), nullable=False, index=True
    )
    adjustment_type = Column(ADJUSTMENT_TYPE_ENUM, nullable=False)
    adjustment_value = Column(Numeric(18, 6), nullable=False)
    previous_value = Column(Numeric(18, 6), nullable=False)
    new_value = Column(Numeric(18, 6), nullable=False)
    effective_date = Column(Date, nullable=False, index=True)
    renewal_date_used = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    # Set in Python so same-day adjustments keep a strict creation order.
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    contract = relationship("Contract", back_populates="adjustments")


class ContractMonthlyRevenueOverride(Base):
    """Manually entered revenue for one contract month."""

    __tablename__ = "contract_monthly_revenue_overrides"
    __table_args__ = (
        UniqueConstraint("contract_id", "year", "month", name="uq_contract_revenue_override_month"),
    )

    id = Column("override_id", GUID(), primary_key=True, default=uuid.uuid4)
    contract_id = Column(
        GUID(), ForeignKey("contracts.contract_id", ondelete="CASCADE"), nullable=False, index=True
    )
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)
    value = Column(Numeric(18, 6), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    contract = relationship("Contract", back_populates="revenue_overrides")


class ContractAdjustmentLock(Base):
    """Blocks the adjustment of one contract for one renewal year."""

    __tablename__ = "contract_adjustment_locks"
    __table_args__ = (
        UniqueConstraint("contract_id", "renewal_year", name="uq_contract_adjustment_lock_year"),
    )

    id = Column("lock_id", GUID(), primary_key=True, default=uuid.uuid4)
    contract_id = Column(
        GUID(), ForeignKey("contracts.contract_id", ondelete="CASCADE"), nullable=False, index=True
    )
    renewal_year = Column(Integer, nullable=False)
    is_locked = Column(Boolean, nullable=False, default=True)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    contract = relationship("Contract", back_populates="adjustment_locks")
