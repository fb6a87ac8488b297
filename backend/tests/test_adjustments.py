from datetime import date
from decimal import Decimal

import pytest

from backend.contract_billing.domain import AdjustmentRecord, AdjustmentType, ContractTerms
from backend.contract_billing.services import (
    AdjustmentError,
    AdjustmentLockedError,
    Discount,
    ProrationError,
    prepare_adjustment,
    prepare_bulk_adjustments,
    prepare_value_change,
)


def _contract(**overrides) -> ContractTerms:
    values = {
        "id": "contract-1",
        "base_value": Decimal("1000"),
        "start_date": date(2023, 1, 10),
        "renewal_date": date(2023, 6, 15),
        "payment_day": 10,
    }
    values.update(overrides)
    return ContractTerms(**values)


def _history() -> list:
    return [
        AdjustmentRecord(
            id="adj-2023",
            contract_id="contract-1",
            adjustment_type=AdjustmentType.PERCENTAGE,
            adjustment_value=Decimal("10"),
            previous_value=Decimal("1000"),
            new_value=Decimal("1100"),
            effective_date=date(2023, 6, 15),
        )
    ]


def test_adjustment_before_renewal_takes_effect_on_renewal_date():
    draft = prepare_adjustment(
        _contract(),
        [],
        adjustment_type=AdjustmentType.PERCENTAGE,
        adjustment_value=Decimal("10"),
        today=date(2024, 6, 1),
        notes="  Reajuste IPCA  ",
    )

    assert draft.renewal_date_used == date(2024, 6, 15)
    assert draft.effective_date == date(2024, 6, 15)
    assert draft.previous_value == Decimal("1000")
    assert draft.new_value == Decimal("1100")
    assert draft.retroactive is False
    assert draft.notes == "Reajuste IPCA"


def test_successive_adjustments_compound():
    draft = prepare_adjustment(
        _contract(),
        _history(),
        adjustment_type=AdjustmentType.PERCENTAGE,
        adjustment_value=Decimal("10"),
        today=date(2024, 6, 1),
    )

    assert draft.previous_value == Decimal("1100")
    assert draft.new_value == Decimal("1210")


def test_late_adjustment_applies_from_current_month_before_payment_date():
    draft = prepare_adjustment(
        _contract(),
        _history(),
        adjustment_type=AdjustmentType.FIXED_VALUE,
        adjustment_value=Decimal("1250"),
        today=date(2024, 7, 5),
        notes="Negociado com o cliente",
    )

    assert draft.renewal_date_used == date(2024, 6, 15)
    assert draft.effective_date == date(2024, 7, 1)
    assert draft.retroactive is True
    assert draft.new_value == Decimal("1250")
    assert draft.notes.startswith("Reajuste retroativo aplicado no mês atual (07/2024)")
    assert draft.notes.endswith("\n\nNegociado com o cliente")


def test_late_adjustment_moves_to_next_month_after_payment_date():
    draft = prepare_adjustment(
        _contract(),
        _history(),
        adjustment_type=AdjustmentType.PERCENTAGE,
        adjustment_value=Decimal("5"),
        today=date(2024, 7, 12),
    )

    assert draft.effective_date == date(2024, 8, 1)
    assert "próximo mês (08/2024)" in draft.notes


def test_custom_date_overrides_renewal_anchor():
    draft = prepare_adjustment(
        _contract(renewal_date=None),
        _history(),
        adjustment_type=AdjustmentType.PERCENTAGE,
        adjustment_value=Decimal("4.5"),
        today=date(2024, 6, 1),
        custom_date=date(2024, 3, 1),
    )

    assert draft.effective_date == date(2024, 3, 1)
    assert draft.renewal_date_used == date(2024, 3, 1)
    assert draft.previous_value == Decimal("1100")
    assert draft.new_value == Decimal("1149.5")
    assert draft.notes == "Data de renovação personalizada: 01/03/2024"


def test_adjustment_without_renewal_anchor_requires_custom_date():
    with pytest.raises(AdjustmentError):
        prepare_adjustment(
            _contract(renewal_date=None),
            [],
            adjustment_type=AdjustmentType.PERCENTAGE,
            adjustment_value=Decimal("10"),
            today=date(2024, 6, 1),
        )


def test_adjustment_cannot_produce_negative_value():
    with pytest.raises(AdjustmentError):
        prepare_adjustment(
            _contract(),
            [],
            adjustment_type=AdjustmentType.PERCENTAGE,
            adjustment_value=Decimal("-150"),
            today=date(2024, 6, 1),
        )


def test_proportional_value_change_reports_split_in_notes():
    draft = prepare_value_change(
        _contract(base_value=Decimal("100")),
        [],
        adjustment_type=AdjustmentType.FIXED_VALUE,
        adjustment_value=Decimal("150"),
        effective_date=date(2024, 5, 15),
        proportional=True,
    )

    assert draft.previous_value == Decimal("100")
    assert draft.new_value == Decimal("150")
    assert draft.proration.days_old_plan == 5
    assert draft.notes == (
        "Mudança de plano manual: valor"
        " | Próxima fatura proporcional: R$ 141.67 (5d antigo, 25d novo)"
        " | Vigência: 15/05/2024"
    )


def test_value_change_applies_discount_and_keeps_user_notes():
    draft = prepare_value_change(
        _contract(),
        [],
        adjustment_type=AdjustmentType.PERCENTAGE,
        adjustment_value=Decimal("20"),
        effective_date=date(2024, 5, 1),
        discount=Discount(AdjustmentType.PERCENTAGE, Decimal("10")),
        notes="Upgrade de plano",
    )

    assert draft.new_value == Decimal("1080")
    assert draft.proration is None
    assert draft.notes == (
        "Upgrade de plano Mudança de plano manual: percentual com desconto de 10% | Vigência: 01/05/2024"
    )


def test_fixed_discount_never_goes_below_zero():
    discount = Discount(AdjustmentType.FIXED_VALUE, Decimal("250.00"))

    assert discount.apply(Decimal("200")) == Decimal("0")
    assert discount.label() == "R$ 250"


def test_proportional_change_without_payment_day_is_rejected():
    with pytest.raises(ProrationError):
        prepare_value_change(
            _contract(payment_day=None),
            [],
            adjustment_type=AdjustmentType.FIXED_VALUE,
            adjustment_value=Decimal("150"),
            effective_date=date(2024, 5, 15),
            proportional=True,
        )


def test_locked_renewal_year_refuses_the_adjustment():
    with pytest.raises(AdjustmentLockedError, match="2024"):
        prepare_adjustment(
            _contract(),
            _history(),
            adjustment_type=AdjustmentType.PERCENTAGE,
            adjustment_value=Decimal("10"),
            today=date(2024, 6, 1),
            locked_years={2024},
        )

    draft = prepare_adjustment(
        _contract(),
        _history(),
        adjustment_type=AdjustmentType.PERCENTAGE,
        adjustment_value=Decimal("10"),
        today=date(2024, 6, 1),
        locked_years={2023},
    )
    assert draft.renewal_date_used == date(2024, 6, 15)


def test_bulk_adjustment_uses_each_contract_history():
    contracts = [
        (_contract(), _history(), set()),
        (_contract(id="contract-2", base_value=Decimal("500"), renewal_date=date(2023, 7, 1)), [], set()),
        (_contract(id="contract-3", renewal_date=date(2023, 6, 20)), [], {2024}),
        (_contract(id="contract-4", renewal_date=None), [], set()),
    ]

    result = prepare_bulk_adjustments(
        contracts, adjustment_value=Decimal("10"), today=date(2024, 6, 1)
    )

    values = {draft.contract_id: (draft.previous_value, draft.new_value) for draft in result.drafts}
    assert values == {
        "contract-1": (Decimal("1100"), Decimal("1210")),
        "contract-2": (Decimal("500"), Decimal("550")),
    }
    assert {draft.contract_id: draft.effective_date for draft in result.drafts} == {
        "contract-1": date(2024, 6, 15),
        "contract-2": date(2024, 7, 1),
    }
    assert [item.contract_id for item in result.skipped] == ["contract-3", "contract-4"]
    assert "bloqueado" in result.skipped[0].reason
