"""Monthly profit of a contract against its share of company costs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Sequence

from ..domain import ZERO, AdjustmentRecord, ContractTerms, RevenueMode
from .billing_cycles import BillingCycleEvaluator
from .value_resolver import ValueResolver

LOGGER = logging.getLogger(__name__)

HUNDRED = Decimal("100")


@dataclass(frozen=True)
class CostAllocation:
    """Costs apportioned to one contract for one month.

    ``company_fraction`` and ``taxes`` were apportioned against
    ``reference_revenue`` and are scaled to the revenue actually billed when
    reporting actual billing. A zero reference stands for the contract value
    in force in the analysed month, so billed months carry the allocation
    as given.
    """

    reference_revenue: Decimal = ZERO
    operational_costs: Decimal = ZERO
    company_fraction: Decimal = ZERO
    taxes: Decimal = ZERO
    bank_slip_fee: Decimal = ZERO


@dataclass(frozen=True)
class ContractProfit:
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
    is_deficit_month: bool = False


def profit_margin(profit: Decimal, revenue: Decimal) -> Decimal:
    """Profit as a percentage of revenue; -100 for losses on zero revenue."""

    if revenue == ZERO:
        return Decimal("-100") if profit < ZERO else ZERO
    return profit / revenue * HUNDRED


class ProfitabilityService:
    """Compares what a contract brings in with what it costs in a month."""

    @staticmethod
    def contract_profit(
        contract: ContractTerms,
        adjustments: Sequence[AdjustmentRecord],
        analysis_date: date,
        allocation: CostAllocation,
        mode: RevenueMode = RevenueMode.ACTUAL_BILLING,
    ) -> ContractProfit:
        """Profit of ``contract`` in the month of ``analysis_date``.

        In actual-billing mode semiannual and annual plans only earn revenue
        in their billing months while operational costs are still charged
        every month, so the months in between show a deficit. The monthly
        average mode spreads the cycle charge evenly instead.
        """

        year, month = analysis_date.year, analysis_date.month
        effective_value = ValueResolver.resolve_effective_value(
            contract, adjustments, analysis_date
        )

        if mode == RevenueMode.MONTHLY_AVERAGE:
            revenue = BillingCycleEvaluator.monthly_average_value(contract, effective_value)
            billed = True
            company_fraction = allocation.company_fraction
            taxes = allocation.taxes
            bank_slip_fee = allocation.bank_slip_fee
        else:
            decision = BillingCycleEvaluator.is_billed_in_month(
                contract, year, month, adjustments, as_of=analysis_date
            )
            revenue = decision.value
            billed = decision.billed
            reference = allocation.reference_revenue or effective_value
            ratio = revenue / reference if reference > ZERO else ZERO
            company_fraction = allocation.company_fraction * ratio
            taxes = allocation.taxes * ratio
            bank_slip_fee = allocation.bank_slip_fee if billed else ZERO

        operational_costs = allocation.operational_costs
        gross_profit = revenue - operational_costs - company_fraction
        net_profit = gross_profit - taxes - bank_slip_fee
        total_costs = operational_costs + company_fraction + taxes + bank_slip_fee
        is_deficit_month = (
            mode == RevenueMode.ACTUAL_BILLING and revenue == ZERO and total_costs > ZERO
        )
        if is_deficit_month:
            LOGGER.debug(
                "Contract %s has no revenue in %s-%02d but costs %s",
                contract.id,
                year,
                month,
                total_costs,
            )

        return ContractProfit(
            contract_id=contract.id,
            year=year,
            month=month,
            mode=mode,
            effective_value=effective_value,
            revenue=revenue,
            billed=billed,
            operational_costs=operational_costs,
            company_fraction=company_fraction,
            taxes=taxes,
            bank_slip_fee=bank_slip_fee,
            gross_profit=gross_profit,
            net_profit=net_profit,
            gross_margin=profit_margin(gross_profit, revenue),
            net_margin=profit_margin(net_profit, revenue),
            is_deficit_month=is_deficit_month,
        )
