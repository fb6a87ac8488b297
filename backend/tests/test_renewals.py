from datetime import date
from decimal import Decimal

import pytest

from backend.contract_billing.domain import (
    AdjustmentRecord,
    AdjustmentType,
    ContractTerms,
    RenewalUrgency,
)
from backend.contract_billing.services import RenewalScheduler


def _contract(contract_id="contract-1", renewal_date=date(2023, 6, 15), payment_day=10) -> ContractTerms:
    return ContractTerms(
        id=contract_id,
        base_value=Decimal("1000"),
        start_date=date(2023, 1, 10),
        renewal_date=renewal_date,
        payment_day=payment_day,
    )


def _adjustment(effective_date, contract_id="contract-1") -> AdjustmentRecord:
    return AdjustmentRecord(
        id=f"adj-{effective_date.isoformat()}",
        contract_id=contract_id,
        adjustment_type=AdjustmentType.PERCENTAGE,
        adjustment_value=Decimal("5"),
        previous_value=Decimal("1000"),
        new_value=Decimal("1050"),
        effective_date=effective_date,
    )


def test_next_renewal_uses_anchor_month_and_day_in_current_year():
    contract = _contract()

    assert RenewalScheduler.next_renewal_date(contract, [], date(2024, 5, 1)) == date(2024, 6, 15)


def test_recently_passed_renewal_stays_due_for_thirty_days():
    contract = _contract()

    assert RenewalScheduler.next_renewal_date(contract, [], date(2024, 7, 10)) == date(2024, 6, 15)
    assert RenewalScheduler.next_renewal_date(contract, [], date(2024, 8, 1)) == date(2025, 6, 15)


def test_next_renewal_skips_years_already_adjusted():
    contract = _contract()

    assert RenewalScheduler.next_renewal_date(
        contract, [_adjustment(date(2023, 6, 15))], date(2024, 3, 1)
    ) == date(2024, 6, 15)
    assert RenewalScheduler.next_renewal_date(
        contract, [_adjustment(date(2023, 6, 15)), _adjustment(date(2024, 6, 20))], date(2024, 6, 1)
    ) == date(2025, 6, 15)


def test_contract_without_renewal_anchor_has_no_renewal_due():
    contract = _contract(renewal_date=None)

    assert RenewalScheduler.next_renewal_date(contract, [], date(2024, 6, 1)) is None
    status = RenewalScheduler.renewal_status(contract, [], date(2024, 6, 1))
    assert status.urgency == RenewalUrgency.NONE
    assert status.target_date is None
    assert status.is_surfaced is False


@pytest.mark.parametrize(
    ("days", "expected"),
    [
        (-3, RenewalUrgency.HIGH),
        (0, RenewalUrgency.HIGH),
        (7, RenewalUrgency.HIGH),
        (8, RenewalUrgency.MEDIUM),
        (15, RenewalUrgency.MEDIUM),
        (16, RenewalUrgency.LOW),
        (30, RenewalUrgency.LOW),
        (31, RenewalUrgency.NONE),
    ],
)
def test_renewal_urgency_thresholds(days, expected):
    assert RenewalScheduler.renewal_urgency(days) == expected


def test_adjustment_in_target_year_suppresses_renewal_warning():
    contract = _contract(renewal_date=date(2024, 6, 15))

    status = RenewalScheduler.renewal_status(contract, [_adjustment(date(2024, 6, 20))], date(2024, 6, 1))

    assert status.target_date == date(2024, 6, 15)
    assert status.has_adjustment_for_period is True
    assert status.urgency == RenewalUrgency.NONE


def test_renewal_warning_is_surfaced_without_adjustment():
    contract = _contract(renewal_date=date(2024, 6, 15))

    status = RenewalScheduler.renewal_status(contract, [], date(2024, 6, 1))

    assert status.days_until_renewal == 14
    assert status.urgency == RenewalUrgency.MEDIUM
    assert status.is_surfaced is True


def test_renewal_marker_rolls_over_only_in_the_anchor_year():
    anchor = date(2024, 3, 10)

    assert RenewalScheduler.marker_target_date(anchor, date(2024, 9, 5)) == anchor
    assert RenewalScheduler.marker_target_date(anchor, date(2024, 10, 15)) == date(2025, 3, 10)
    assert RenewalScheduler.marker_target_date(anchor, date(2023, 12, 1)) == anchor


def test_missed_anniversary_in_a_later_year_stays_overdue():
    contract = _contract(renewal_date=date(2022, 2, 10))

    assert RenewalScheduler.marker_target_date(date(2022, 2, 10), date(2024, 9, 15)) == date(2024, 2, 10)
    status = RenewalScheduler.renewal_status(contract, [], date(2024, 9, 15))
    assert status.target_date == date(2024, 2, 10)
    assert status.days_until_renewal < 0
    assert status.urgency == RenewalUrgency.HIGH


def test_locked_renewal_year_hides_the_warning():
    contract = _contract(renewal_date=date(2024, 6, 15))

    status = RenewalScheduler.renewal_status(contract, [], date(2024, 6, 10), {2024})

    assert status.target_date == date(2024, 6, 15)
    assert status.is_locked is True
    assert status.urgency == RenewalUrgency.NONE
    assert RenewalScheduler.renewal_status(contract, [], date(2024, 6, 10), {2025}).urgency == (
        RenewalUrgency.HIGH
    )


def test_retroactive_rule_keeps_renewal_date_until_it_passes():
    plan = RenewalScheduler.retroactive_effective_date(date(2024, 3, 10), date(2024, 3, 5), 10)

    assert plan.effective_date == date(2024, 3, 10)
    assert plan.retroactive is False
    assert plan.note is None


def test_retroactive_rule_applies_current_month_before_payment_date():
    plan = RenewalScheduler.retroactive_effective_date(date(2024, 3, 10), date(2024, 4, 8), 10)

    assert plan.effective_date == date(2024, 4, 1)
    assert plan.retroactive is True
    assert "04/2024" in plan.note


def test_retroactive_rule_moves_to_next_month_after_payment_date():
    plan = RenewalScheduler.retroactive_effective_date(date(2024, 3, 10), date(2024, 4, 15), 10)

    assert plan.effective_date == date(2024, 5, 1)
    assert "próximo mês" in plan.note


def test_retroactive_rule_falls_back_to_renewal_day_without_payment_day():
    plan = RenewalScheduler.retroactive_effective_date(date(2024, 3, 20), date(2024, 4, 15))

    assert plan.effective_date == date(2024, 4, 1)


def test_upcoming_renewals_are_sorted_by_urgency():
    as_of = date(2024, 6, 1)
    soon = _contract("soon", renewal_date=date(2022, 6, 5))
    later = _contract("later", renewal_date=date(2021, 6, 25))
    adjusted = _contract("adjusted", renewal_date=date(2022, 6, 3))
    far = _contract("far", renewal_date=date(2022, 11, 1))

    statuses = RenewalScheduler.upcoming_renewals(
        [
            (later, []),
            (far, []),
            (adjusted, [_adjustment(date(2024, 6, 3), contract_id="adjusted")]),
            (soon, []),
        ],
        as_of,
    )

    assert [status.contract_id for status in statuses] == ["soon", "later"]
    assert statuses[0].urgency == RenewalUrgency.HIGH
    assert statuses[1].urgency == RenewalUrgency.LOW


def test_upcoming_renewals_leave_out_locked_contracts():
    as_of = date(2024, 6, 1)
    locked = _contract("locked", renewal_date=date(2022, 6, 5))
    open_ = _contract("open", renewal_date=date(2022, 6, 10))

    statuses = RenewalScheduler.upcoming_renewals(
        [(locked, []), (open_, [])], as_of, {"locked": {2024}, "open": {2023}}
    )

    assert [status.contract_id for status in statuses] == ["open"]
