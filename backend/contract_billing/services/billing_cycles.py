"""Decide whether, and how much, a contract is billed in a calendar month."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Mapping, Optional, Sequence

from ..dates import add_days, add_months, first_day_of_month, months_between
from ..domain import ZERO, AdjustmentRecord, ContractTerms, PlanType
from .value_resolver import ValueResolver

LOGGER = logging.getLogger(__name__)

REVENUE_SOURCE_COMPUTED = "computed"
REVENUE_SOURCE_OVERRIDE = "override"


@dataclass(frozen=True)
class BillingDecision:
    """Outcome of evaluating one contract for one month."""

    year: int
    month: int
    billed: bool
    value: Decimal
    effective_value: Decimal
    months_since_billing_start: Optional[int]
    in_trial: bool = False


@dataclass(frozen=True)
class MonthlyRevenue:
    """One row of the month-by-month revenue breakdown."""

    year: int
    month: int
    billed: bool
    value: Decimal
    source: str = REVENUE_SOURCE_COMPUTED


def _validate_month(month: int) -> None:
    if month < 1 or month > 12:
        raise ValueError("month must be between 1 and 12")


class BillingCycleEvaluator:
    """Applies the trial period and the plan cadence to monthly billing."""

    @staticmethod
    def billing_start_date(contract: ContractTerms) -> Optional[date]:
        """First day the contract generates revenue (start date plus trial)."""

        start = contract.effective_start_date
        if start is None:
            return None
        return add_days(start, contract.trial_days)

    @classmethod
    def first_billed_month(cls, contract: ContractTerms) -> Optional[date]:
        """First day of the month the billing cadence is anchored on.

        This is the month the trial ends in, except that a trial ending inside
        the month the contract started leaves that whole month free.
        """

        start = contract.effective_start_date
        billing_start = cls.billing_start_date(contract)
        if start is None or billing_start is None:
            return None
        anchor = first_day_of_month(billing_start)
        if contract.trial_days > 0 and anchor == first_day_of_month(start):
            anchor = add_months(anchor, 1)
        return anchor

    @classmethod
    def months_since_billing_start(
        cls, contract: ContractTerms, year: int, month: int
    ) -> Optional[int]:
        _validate_month(month)
        anchor = cls.first_billed_month(contract)
        if anchor is None:
            return None
        return months_between(anchor.year, anchor.month, year, month)

    @staticmethod
    def is_billing_month(plan_type: PlanType, months_since_billing_start: int) -> bool:
        if months_since_billing_start < 0:
            return False
        return months_since_billing_start % plan_type.cycle_months == 0

    @classmethod
    def is_billed_in_month(
        cls,
        contract: ContractTerms,
        year: int,
        month: int,
        adjustments: Sequence[AdjustmentRecord] = (),
        *,
        as_of: Optional[date] = None,
    ) -> BillingDecision:
        """Evaluate the charge of ``contract`` in ``year``/``month``.

        Non-monthly plans charge the full effective value in their billing
        month and nothing in between. ``as_of`` selects the date at which the
        effective value is resolved and defaults to the first day of the month.
        """

        months_since = cls.months_since_billing_start(contract, year, month)
        resolution_date = as_of or date(year, month, 1)
        effective_value = ValueResolver.resolve_effective_value(
            contract, adjustments, resolution_date
        )

        if months_since is None:
            # Without a start date there is no trial information to apply.
            return BillingDecision(
                year=year,
                month=month,
                billed=True,
                value=effective_value,
                effective_value=effective_value,
                months_since_billing_start=None,
            )

        billed = cls.is_billing_month(contract.plan_type, months_since)
        LOGGER.debug(
            "Contract %s (%s) %s-%02d: months since billing start=%s billed=%s",
            contract.id,
            contract.plan_type.value,
            year,
            month,
            months_since,
            billed,
        )
        return BillingDecision(
            year=year,
            month=month,
            billed=billed,
            value=effective_value if billed else ZERO,
            effective_value=effective_value,
            months_since_billing_start=months_since,
            in_trial=months_since < 0,
        )

    @staticmethod
    def monthly_average_value(contract: ContractTerms, effective_value: Decimal) -> Decimal:
        """Smooth a cycle charge into a per-month figure for aggregate reports.

        This is a display transform: it ignores the trial period and the
        billing month on purpose.
        """

        return effective_value / Decimal(contract.plan_type.cycle_months)

    @classmethod
    def yearly_breakdown(
        cls,
        contract: ContractTerms,
        adjustments: Sequence[AdjustmentRecord],
        year: int,
        overrides: Optional[Mapping[int, Decimal]] = None,
    ) -> list[MonthlyRevenue]:
        """Month-by-month charges of ``year``; manual overrides replace computed values."""

        overrides = overrides or {}
        rows: list[MonthlyRevenue] = []
        for month in range(1, 13):
            if month in overrides:
                value = overrides[month]
                rows.append(
                    MonthlyRevenue(
                        year=year,
                        month=month,
                        billed=value > ZERO,
                        value=value,
                        source=REVENUE_SOURCE_OVERRIDE,
                    )
                )
                continue
            decision = cls.is_billed_in_month(contract, year, month, adjustments)
            rows.append(
                MonthlyRevenue(
                    year=year,
                    month=month,
                    billed=decision.billed,
                    value=decision.value,
                )
            )
        return rows
