"""Domain records shared by the contract valuation and billing engine.

The engine works on these plain, immutable records instead of ORM rows or
loosely-typed dictionaries so every computation stays pure: callers load the
data (from the database, an import file or an HTTP payload), convert it with
``from_model``/``from_record`` and pass it in together with an explicit date.
"""

from __future__ import annotations

import enum
import logging
import os
import re
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Mapping, Optional

from .dates import normalize_date

LOGGER = logging.getLogger(__name__)

DEFAULT_TRIAL_DAYS_ENV = "DEFAULT_TRIAL_DAYS"
DEFAULT_TRIAL_DAYS = 30

CENT = Decimal("0.01")
ZERO = Decimal("0")


class PlanType(str, enum.Enum):
    """Billing cadence of a contract."""

    MONTHLY = "monthly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"

    @property
    def cycle_months(self) -> int:
        return _CYCLE_MONTHS[self]

    @classmethod
    def parse(cls, raw: Any) -> "PlanType":
        """Map upstream labels (including the legacy Portuguese ones) to a plan type."""

        if isinstance(raw, cls):
            return raw
        label = str(raw or "").strip().lower()
        plan_type = _PLAN_TYPE_ALIASES.get(label)
        if plan_type is None:
            LOGGER.warning("Unknown plan type %r; assuming monthly billing", raw)
            return cls.MONTHLY
        return plan_type


_CYCLE_MONTHS = {
    PlanType.MONTHLY: 1,
    PlanType.SEMIANNUAL: 6,
    PlanType.ANNUAL: 12,
}

_PLAN_TYPE_ALIASES = {
    "monthly": PlanType.MONTHLY,
    "mensal": PlanType.MONTHLY,
    "semiannual": PlanType.SEMIANNUAL,
    "semestral": PlanType.SEMIANNUAL,
    "annual": PlanType.ANNUAL,
    "anual": PlanType.ANNUAL,
}


class AdjustmentType(str, enum.Enum):
    """How an adjustment expresses the new contract value."""

    PERCENTAGE = "percentage"
    FIXED_VALUE = "fixed_value"

    @classmethod
    def parse(cls, raw: Any) -> "AdjustmentType":
        if isinstance(raw, cls):
            return raw
        label = str(raw or "").strip().lower()
        if label in {"percentage", "percentual"}:
            return cls.PERCENTAGE
        if label in {"fixed_value", "value", "valor"}:
            return cls.FIXED_VALUE
        raise ValueError(f"Unknown adjustment type: {raw!r}")


class RenewalUrgency(str, enum.Enum):
    """Severity of the renewal-warning badge."""

    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RevenueMode(str, enum.Enum):
    """Whether revenue is reported as actually billed or smoothed per month."""

    ACTUAL_BILLING = "actual_billing"
    MONTHLY_AVERAGE = "monthly_average"


_CURRENCY_NOISE = re.compile(r"[^\d,.\-]")


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """Convert numbers and Brazilian-formatted amounts (``"R$ 1.234,56"``) to Decimal."""

    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Boolean values are not monetary amounts")
    if isinstance(value, (int, float)):
        return Decimal(str(value))

    text = _CURRENCY_NOISE.sub("", str(value))
    if not text:
        return default
    if "," in text:
        # Brazilian notation: dots group thousands, the comma marks decimals.
        text = text.replace(".", "").replace(",", ".")
    try:
        return Decimal(text)
    except InvalidOperation:
        LOGGER.warning("Could not parse monetary amount %r; using %s", value, default)
        return default


def round_money(value: Decimal) -> Decimal:
    """Round an amount to cents for presentation."""

    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def default_trial_days() -> int:
    raw = os.getenv(DEFAULT_TRIAL_DAYS_ENV)
    if raw is None:
        return DEFAULT_TRIAL_DAYS
    try:
        value = int(raw)
    except ValueError:
        LOGGER.warning(
            "Invalid %s=%s; falling back to %s", DEFAULT_TRIAL_DAYS_ENV, raw, DEFAULT_TRIAL_DAYS
        )
        return DEFAULT_TRIAL_DAYS
    return max(value, 0)


def _parse_trial_days(raw: Any) -> int:
    if raw is None or raw == "":
        return default_trial_days()
    if isinstance(raw, bool):
        raise TypeError("Boolean values are not trial lengths")
    if isinstance(raw, int):
        return max(raw, 0)
    text = str(raw).strip()
    try:
        return max(int(Decimal(text)), 0)
    except (InvalidOperation, ValueError, OverflowError):
        # Labels such as "30 dias".
        match = re.search(r"-?\d+", text)
    if match is None:
        LOGGER.warning("Ignoring invalid trial length %r", raw)
        return default_trial_days()
    return max(int(match.group()), 0)


def _parse_payment_day(raw: Any) -> Optional[int]:
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        LOGGER.warning("Ignoring invalid payment day %r", raw)
        return None


def _as_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    return value


@dataclass(frozen=True)
class ContractTerms:
    """Billing terms of one contract."""

    id: str
    base_value: Decimal
    plan_type: PlanType = PlanType.MONTHLY
    start_date: Optional[date] = None
    trial_days: int = 0
    renewal_date: Optional[date] = None
    payment_day: Optional[int] = None
    created_at: Optional[date] = None

    def __post_init__(self) -> None:
        if self.trial_days < 0:
            raise ValueError("trial_days must be non-negative")
        if self.payment_day is not None and not 1 <= self.payment_day <= 31:
            raise ValueError("payment_day must be between 1 and 31")

    @property
    def effective_start_date(self) -> Optional[date]:
        """Start date, falling back to the record creation date."""

        return self.start_date or self.created_at

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "ContractTerms":
        """Build terms from an upstream record with legacy textual fields."""

        created_at = normalize_date(record.get("created_at"))
        payment_day = _parse_payment_day(record.get("payment_day"))
        if payment_day is not None and not 1 <= payment_day <= 31:
            LOGGER.warning("Ignoring out-of-range payment day %s", payment_day)
            payment_day = None
        base_value = record.get("base_value")
        if base_value is None:
            base_value = record.get("monthly_value")
        return cls(
            id=str(record.get("id") or ""),
            base_value=to_decimal(base_value),
            plan_type=PlanType.parse(record.get("plan_type")),
            start_date=normalize_date(record.get("start_date"), default=created_at),
            trial_days=_parse_trial_days(record.get("trial_days")),
            renewal_date=normalize_date(record.get("renewal_date")),
            payment_day=payment_day,
            created_at=created_at,
        )

    @classmethod
    def from_model(cls, contract: Any) -> "ContractTerms":
        trial_days = contract.trial_days
        return cls(
            id=str(contract.id),
            base_value=to_decimal(contract.base_value),
            plan_type=PlanType.parse(contract.plan_type),
            start_date=_as_date(contract.start_date),
            trial_days=default_trial_days() if trial_days is None else trial_days,
            renewal_date=_as_date(contract.renewal_date),
            payment_day=contract.payment_day,
            created_at=_as_date(contract.created_at),
        )


@dataclass(frozen=True)
class AdjustmentRecord:
    """One recorded change (reajuste) of a contract value."""

    id: str
    contract_id: str
    adjustment_type: AdjustmentType
    adjustment_value: Decimal
    previous_value: Decimal
    new_value: Decimal
    effective_date: date
    renewal_date_used: Optional[date] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "AdjustmentRecord":
        effective_date = normalize_date(record.get("effective_date"))
        if effective_date is None:
            raise ValueError("Adjustment records require an effective date")
        created_at = record.get("created_at")
        if isinstance(created_at, str):
            try:
                created_at = datetime.fromisoformat(created_at.replace("Z", "+00:00"))
            except ValueError:
                LOGGER.warning("Ignoring malformed adjustment timestamp %r", created_at)
                created_at = None
        return cls(
            id=str(record.get("id") or ""),
            contract_id=str(record.get("contract_id") or ""),
            adjustment_type=AdjustmentType.parse(record.get("adjustment_type")),
            adjustment_value=to_decimal(record.get("adjustment_value")),
            previous_value=to_decimal(record.get("previous_value")),
            new_value=to_decimal(record.get("new_value")),
            effective_date=effective_date,
            renewal_date_used=normalize_date(
                record.get("renewal_date_used") or record.get("renewal_date")
            ),
            notes=record.get("notes"),
            created_at=created_at,
        )

    @classmethod
    def from_model(cls, adjustment: Any) -> "AdjustmentRecord":
        return cls(
            id=str(adjustment.id),
            contract_id=str(adjustment.contract_id),
            adjustment_type=AdjustmentType.parse(adjustment.adjustment_type),
            adjustment_value=to_decimal(adjustment.adjustment_value),
            previous_value=to_decimal(adjustment.previous_value),
            new_value=to_decimal(adjustment.new_value),
            effective_date=_as_date(adjustment.effective_date),
            renewal_date_used=_as_date(adjustment.renewal_date_used),
            notes=adjustment.notes,
            created_at=adjustment.created_at,
        )
