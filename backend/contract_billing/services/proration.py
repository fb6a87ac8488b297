"""Split a billing period between an old and a new contract value."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Optional

from ..dates import add_days, add_months, clamp_day
from ..domain import ZERO, PlanType, round_money

LOGGER = logging.getLogger(__name__)

COMMERCIAL_MONTH_DAYS = 30
TERM_PERIOD_DAYS = {
    PlanType.SEMIANNUAL: 183,
    PlanType.ANNUAL: 365,
}


class ProrationError(ValueError):
    """Raised when a proration cannot be computed from the contract configuration."""


@dataclass(frozen=True)
class ProportionalSplit:
    """Old-rate and new-rate shares of one billing period."""

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

    def rounded(self) -> "ProportionalSplit":
        """Copy with monetary amounts rounded to cents for display."""

        return replace(
            self,
            proportional_old_value=round_money(self.proportional_old_value),
            proportional_new_value=round_money(self.proportional_new_value),
            total_value=round_money(self.total_value),
        )


@dataclass(frozen=True)
class TermProration:
    """Difference owed when a semiannual or annual plan changes mid-term."""

    remaining_days: int
    total_period_days: int
    already_paid_value: Decimal
    daily_difference: Decimal
    proportional_difference: Decimal
    new_plan_proportional_value: Decimal
    description: str


def _format_brl(value: Decimal, places: str = "0.01") -> str:
    return f"R$ {value.quantize(Decimal(places))}".replace(".", ",")


class ProportionalBillingCalculator:
    """Prorates value changes against a fixed monthly payment day."""

    @staticmethod
    def billing_period(payment_day: Optional[int], change_date: date) -> tuple[date, date]:
        """Return ``(period_start, next_payment_date)`` around ``change_date``.

        A period runs from one payment day up to the day before the next one.
        Payment days past the end of a short month fall on its last day.
        """

        if payment_day is None or not 1 <= payment_day <= 31:
            raise ProrationError(
                "Não é possível calcular o valor proporcional: dia de pagamento não configurado"
            )

        this_month_payment = clamp_day(change_date.year, change_date.month, payment_day)
        if change_date >= this_month_payment:
            period_start = this_month_payment
        else:
            previous = add_months(change_date.replace(day=1), -1)
            period_start = clamp_day(previous.year, previous.month, payment_day)
        following = add_months(period_start.replace(day=1), 1)
        next_payment = clamp_day(following.year, following.month, payment_day)
        return period_start, next_payment

    @classmethod
    def compute_proration(
        cls,
        old_value: Decimal,
        new_value: Decimal,
        payment_day: Optional[int],
        change_date: date,
        *,
        calendar_days: bool = False,
    ) -> ProportionalSplit:
        """Prorate one period: old rate before ``change_date``, new rate from it.

        By default the period is valued as a 30-day commercial month, so the
        new-rate share is ``30 - days_old_plan``. With ``calendar_days`` the
        actual period length is used instead.
        """

        period_start, next_payment = cls.billing_period(payment_day, change_date)
        period_end = add_days(next_payment, -1)
        actual_days = (next_payment - period_start).days
        days_in_period = actual_days if calendar_days else COMMERCIAL_MONTH_DAYS
        if days_in_period <= 0:
            raise ProrationError(
                "Não é possível calcular o valor proporcional: período de cobrança vazio"
            )

        days_old = min((change_date - period_start).days, days_in_period)
        days_new = days_in_period - days_old
        divisor = Decimal(days_in_period)
        proportional_old = old_value * Decimal(days_old) / divisor
        proportional_new = new_value * Decimal(days_new) / divisor

        split = ProportionalSplit(
            period_start=period_start,
            period_end=period_end,
            next_payment_date=next_payment,
            days_in_period=days_in_period,
            days_old_plan=days_old,
            days_new_plan=days_new,
            proportional_old_value=proportional_old,
            proportional_new_value=proportional_new,
            total_value=proportional_old + proportional_new,
            applies_to_next_invoice=change_date >= clamp_day(
                change_date.year, change_date.month, payment_day
            ),
        )
        LOGGER.debug(
            "Proration %s -> %s on %s (payment day %s): %sd old, %sd new, total %s",
            old_value,
            new_value,
            change_date,
            payment_day,
            days_old,
            days_new,
            split.total_value,
        )
        return split

    @staticmethod
    def compute_term_proration(
        old_value: Decimal,
        new_value: Decimal,
        change_date: date,
        renewal_date: date,
        plan_type: PlanType,
    ) -> TermProration:
        """Charge only the daily difference for the days left in a prepaid term."""

        total_days = TERM_PERIOD_DAYS.get(plan_type)
        if total_days is None:
            raise ProrationError("Cálculo por período aplica-se apenas a planos semestrais ou anuais")

        remaining_days = max(0, (renewal_date - change_date).days)
        divisor = Decimal(total_days)
        daily_old = old_value / divisor
        daily_new = new_value / divisor
        daily_difference = daily_new - daily_old
        proportional_difference = daily_difference * Decimal(remaining_days)
        new_plan_value = daily_new * Decimal(remaining_days)

        description = (
            f"Cliente já pagou {_format_brl(old_value)} do plano anterior. "
            f"Diferença diária: {_format_brl(daily_difference, '0.0001')}. "
            f"Deve pagar {_format_brl(proportional_difference)} pela diferença nos "
            f"{remaining_days} dias restantes até a próxima renovação."
        )
        return TermProration(
            remaining_days=remaining_days,
            total_period_days=total_days,
            already_paid_value=old_value,
            daily_difference=daily_difference,
            proportional_difference=proportional_difference if remaining_days else ZERO,
            new_plan_proportional_value=new_plan_value,
            description=description,
        )
