"""Renewal anchors, renewal-warning badges and retroactive effective dates."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import AbstractSet, Iterable, Mapping, Optional, Sequence, Tuple

from ..dates import (
    anniversary_in_year,
    clamp_day,
    first_day_of_month,
    first_day_of_next_month,
    format_month_label,
    months_between,
)
from ..domain import AdjustmentRecord, ContractTerms, RenewalUrgency

LOGGER = logging.getLogger(__name__)

OVERDUE_GRACE_DAYS = 30
HIGH_URGENCY_DAYS = 7
MEDIUM_URGENCY_DAYS = 15
LOW_URGENCY_DAYS = 30
MARKER_ROLLOVER_MONTHS = 6


@dataclass(frozen=True)
class RenewalStatus:
    """State of the yearly renewal marker of a contract at a given date."""

    contract_id: str
    target_date: Optional[date]
    days_until_renewal: Optional[int]
    urgency: RenewalUrgency
    has_adjustment_for_period: bool = False
    is_locked: bool = False

    @property
    def is_surfaced(self) -> bool:
        return self.urgency != RenewalUrgency.NONE


@dataclass(frozen=True)
class EffectiveDatePlan:
    """Date from which a new adjustment takes effect, with the reason."""

    effective_date: date
    retroactive: bool
    note: Optional[str] = None


class RenewalScheduler:
    """Computes when a contract is due for its next adjustment (reajuste)."""

    @staticmethod
    def next_renewal_date(
        contract: ContractTerms,
        adjustments: Sequence[AdjustmentRecord],
        as_of: date,
    ) -> Optional[date]:
        """Date a new adjustment for ``contract`` should target.

        Only the month and day of the original renewal date matter; the year
        is derived from ``as_of`` and the years already covered by
        adjustments. Returns ``None`` when the contract has no renewal anchor.
        """

        anchor = contract.renewal_date
        if anchor is None:
            return None

        if not adjustments:
            candidate = anniversary_in_year(anchor, as_of.year)
            if (candidate - as_of).days < -OVERDUE_GRACE_DAYS:
                candidate = anniversary_in_year(anchor, as_of.year + 1)
            return candidate

        adjustment_years = {adjustment.effective_date.year for adjustment in adjustments}
        if as_of.year not in adjustment_years:
            target_year = as_of.year
        else:
            target_year = max(adjustment_years) + 1
        return anniversary_in_year(anchor, target_year)

    @staticmethod
    def renewal_urgency(days_until_renewal: int) -> RenewalUrgency:
        if days_until_renewal <= HIGH_URGENCY_DAYS:
            return RenewalUrgency.HIGH
        if days_until_renewal <= MEDIUM_URGENCY_DAYS:
            return RenewalUrgency.MEDIUM
        if days_until_renewal <= LOW_URGENCY_DAYS:
            return RenewalUrgency.LOW
        return RenewalUrgency.NONE

    @staticmethod
    def marker_target_date(anchor: date, as_of: date) -> date:
        """Renewal marker relevant at ``as_of``.

        The marker is this year's anniversary of the anchor, or the anchor
        itself while it lies in the future. Only in the anchor's own year does
        it roll over to the next anniversary once ``as_of`` is more than six
        months past it; in later years a missed anniversary stays overdue.
        """

        if as_of.year > anchor.year:
            return anniversary_in_year(anchor, as_of.year)
        target = anchor
        if as_of > target and months_between(
            target.year, target.month, as_of.year, as_of.month
        ) > MARKER_ROLLOVER_MONTHS:
            target = anniversary_in_year(anchor, target.year + 1)
        return target

    @classmethod
    def renewal_status(
        cls,
        contract: ContractTerms,
        adjustments: Sequence[AdjustmentRecord],
        as_of: date,
        locked_years: AbstractSet[int] = frozenset(),
    ) -> RenewalStatus:
        """Renewal-warning badge of ``contract`` at ``as_of``.

        The warning is hidden when an adjustment already took effect in the
        marker year or when that renewal year is locked against adjustments.
        """

        anchor = contract.renewal_date
        if anchor is None:
            return RenewalStatus(
                contract_id=contract.id,
                target_date=None,
                days_until_renewal=None,
                urgency=RenewalUrgency.NONE,
            )

        target = cls.marker_target_date(anchor, as_of)
        if any(adjustment.effective_date.year == target.year for adjustment in adjustments):
            LOGGER.debug(
                "Renewal marker %s of contract %s already satisfied by an adjustment",
                target,
                contract.id,
            )
            return RenewalStatus(
                contract_id=contract.id,
                target_date=target,
                days_until_renewal=(target - as_of).days,
                urgency=RenewalUrgency.NONE,
                has_adjustment_for_period=True,
            )

        days_until = (target - as_of).days
        if target.year in locked_years:
            LOGGER.debug("Renewal %s of contract %s is locked", target.year, contract.id)
            return RenewalStatus(
                contract_id=contract.id,
                target_date=target,
                days_until_renewal=days_until,
                urgency=RenewalUrgency.NONE,
                is_locked=True,
            )
        return RenewalStatus(
            contract_id=contract.id,
            target_date=target,
            days_until_renewal=days_until,
            urgency=cls.renewal_urgency(days_until),
        )

    @staticmethod
    def retroactive_effective_date(
        renewal_date: date, today: date, payment_day: Optional[int] = None
    ) -> EffectiveDatePlan:
        """Keep late adjustments from rewriting invoices that were already charged.

        Until the renewal date passes the adjustment takes effect on it. After
        that, it applies from the first day of the current month while this
        month's payment date has not passed, otherwise from the first day of
        next month.
        """

        if today <= renewal_date:
            return EffectiveDatePlan(effective_date=renewal_date, retroactive=False)

        due_day = payment_day or renewal_date.day
        current_payment_date = clamp_day(today.year, today.month, due_day)
        if today <= current_payment_date:
            effective_date = first_day_of_month(today)
            note = (
                f"Reajuste retroativo aplicado no mês atual ({format_month_label(effective_date)})"
                " - pagamento ainda não vencido"
            )
        else:
            effective_date = first_day_of_next_month(today)
            note = (
                f"Reajuste aplicado a partir do próximo mês ({format_month_label(effective_date)})"
                " - pagamento do mês atual já vencido"
            )
        LOGGER.info(
            "Renewal %s already passed on %s (payment day %s); adjustment effective %s",
            renewal_date,
            today,
            due_day,
            effective_date,
        )
        return EffectiveDatePlan(effective_date=effective_date, retroactive=True, note=note)

    @classmethod
    def upcoming_renewals(
        cls,
        contracts: Iterable[Tuple[ContractTerms, Sequence[AdjustmentRecord]]],
        as_of: date,
        locks: Optional[Mapping[str, AbstractSet[int]]] = None,
    ) -> list[RenewalStatus]:
        """Surfaced renewal warnings, most urgent (fewest days left) first.

        ``locks`` maps contract ids to their locked renewal years.
        """

        locks = locks or {}
        statuses = [
            cls.renewal_status(contract, adjustments, as_of, locks.get(contract.id, frozenset()))
            for contract, adjustments in contracts
        ]
        surfaced = [status for status in statuses if status.is_surfaced]
        surfaced.sort(key=lambda status: (status.days_until_renewal, status.contract_id))
        return surfaced
