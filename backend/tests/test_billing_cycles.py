from datetime import date
from decimal import Decimal

import pytest

from backend.contract_billing.domain import AdjustmentRecord, AdjustmentType, ContractTerms, PlanType
from backend.contract_billing.services import BillingCycleEvaluator
from backend.contract_billing.services.billing_cycles import REVENUE_SOURCE_OVERRIDE


def _contract(**overrides) -> ContractTerms:
    values = {
        "id": "contract-1",
        "base_value": Decimal("1200"),
        "plan_type": PlanType.MONTHLY,
        "start_date": date(2024, 1, 1),
        "trial_days": 0,
    }
    values.update(overrides)
    return ContractTerms(**values)


def test_monthly_trial_moves_first_billed_month():
    contract = _contract(trial_days=30)

    assert BillingCycleEvaluator.billing_start_date(contract) == date(2024, 1, 31)

    assert BillingCycleEvaluator.first_billed_month(contract) == date(2024, 2, 1)

    january = BillingCycleEvaluator.is_billed_in_month(contract, 2024, 1)
    february = BillingCycleEvaluator.is_billed_in_month(contract, 2024, 2)

    assert january.billed is False
    assert january.in_trial is True
    assert february.billed is True
    assert february.value == Decimal("1200")


def test_short_trial_ending_in_the_start_month_leaves_that_month_free():
    contract = _contract(trial_days=5)

    assert BillingCycleEvaluator.billing_start_date(contract) == date(2024, 1, 6)
    assert BillingCycleEvaluator.first_billed_month(contract) == date(2024, 2, 1)
    assert BillingCycleEvaluator.is_billed_in_month(contract, 2024, 1).billed is False
    assert BillingCycleEvaluator.is_billed_in_month(contract, 2024, 2).billed is True


def test_contract_without_trial_is_billed_from_its_start_month():
    contract = _contract(start_date=date(2024, 1, 20))

    assert BillingCycleEvaluator.is_billed_in_month(contract, 2024, 1).billed is True


def test_monthly_trial_spanning_a_month_boundary_skips_that_month():
    contract = _contract(start_date=date(2024, 1, 15), trial_days=30)

    assert BillingCycleEvaluator.billing_start_date(contract) == date(2024, 2, 14)

    january = BillingCycleEvaluator.is_billed_in_month(contract, 2024, 1)
    assert january.billed is False
    assert january.in_trial is True
    assert january.value == Decimal("0")

    for month in range(2, 13):
        decision = BillingCycleEvaluator.is_billed_in_month(contract, 2024, month)
        assert decision.billed is True
        assert decision.value == Decimal("1200")


def test_annual_plan_bills_only_on_its_anniversary_month():
    contract = _contract(plan_type=PlanType.ANNUAL, start_date=date(2024, 3, 10))

    assert BillingCycleEvaluator.is_billed_in_month(contract, 2024, 3).billed is True
    for year, month in [(2024, m) for m in range(4, 13)] + [(2025, 1), (2025, 2)]:
        decision = BillingCycleEvaluator.is_billed_in_month(contract, year, month)
        assert decision.billed is False
        assert decision.value == Decimal("0")
    assert BillingCycleEvaluator.is_billed_in_month(contract, 2025, 3).billed is True


def test_semiannual_plan_bills_every_six_months():
    contract = _contract(plan_type=PlanType.SEMIANNUAL, start_date=date(2024, 2, 5))

    billed_months = [
        month
        for month in range(1, 13)
        if BillingCycleEvaluator.is_billed_in_month(contract, 2024, month).billed
    ]

    assert billed_months == [2, 8]


def test_months_before_billing_start_are_not_billed():
    contract = _contract(start_date=date(2024, 6, 1))

    decision = BillingCycleEvaluator.is_billed_in_month(contract, 2024, 5)

    assert decision.billed is False
    assert decision.months_since_billing_start == -1


def test_contract_without_start_date_is_billed_every_month():
    contract = _contract(start_date=None)

    decision = BillingCycleEvaluator.is_billed_in_month(contract, 2024, 7)

    assert decision.billed is True
    assert decision.months_since_billing_start is None


def test_billed_value_follows_adjustments():
    contract = _contract(plan_type=PlanType.ANNUAL, start_date=date(2024, 3, 10))
    adjustment = AdjustmentRecord(
        id="adj-1",
        contract_id="contract-1",
        adjustment_type=AdjustmentType.PERCENTAGE,
        adjustment_value=Decimal("5"),
        previous_value=Decimal("1200"),
        new_value=Decimal("1260"),
        effective_date=date(2025, 3, 1),
    )

    decision = BillingCycleEvaluator.is_billed_in_month(contract, 2025, 3, [adjustment])

    assert decision.billed is True
    assert decision.value == Decimal("1260")


def test_monthly_average_value_spreads_cycle_charge():
    annual = _contract(plan_type=PlanType.ANNUAL)
    semiannual = _contract(plan_type=PlanType.SEMIANNUAL)
    monthly = _contract()

    assert BillingCycleEvaluator.monthly_average_value(annual, Decimal("1200")) == Decimal("100")
    assert BillingCycleEvaluator.monthly_average_value(semiannual, Decimal("1200")) == Decimal("200")
    assert BillingCycleEvaluator.monthly_average_value(monthly, Decimal("1200")) == Decimal("1200")


def test_invalid_month_is_rejected():
    with pytest.raises(ValueError):
        BillingCycleEvaluator.is_billed_in_month(_contract(), 2024, 13)


def test_yearly_breakdown_prefers_overrides():
    contract = _contract(plan_type=PlanType.ANNUAL, start_date=date(2024, 3, 10))

    rows = BillingCycleEvaluator.yearly_breakdown(
        contract, [], 2024, overrides={5: Decimal("300")}
    )

    assert len(rows) == 12
    assert [row.month for row in rows if row.billed] == [3, 5]
    assert rows[2].value == Decimal("1200")
    assert rows[4].value == Decimal("300")
    assert rows[4].source == REVENUE_SOURCE_OVERRIDE
    assert sum(row.value for row in rows) == Decimal("1500")
