from datetime import date, datetime
from decimal import Decimal

import pytest

from backend.contract_billing.dates import (
    DateParseError,
    add_months,
    anniversary_in_year,
    clamp_day,
    months_between,
    normalize_date,
    parse_calendar_date,
)
from backend.contract_billing.domain import ContractTerms, PlanType, to_decimal


def test_parse_calendar_date_accepts_brazilian_and_iso_formats():
    assert parse_calendar_date("15/06/2024") == date(2024, 6, 15)
    assert parse_calendar_date("2024-06-15") == date(2024, 6, 15)
    assert parse_calendar_date("2024-06-15T13:45:00Z") == date(2024, 6, 15)
    assert parse_calendar_date(datetime(2024, 6, 15, 8, 30)) == date(2024, 6, 15)


@pytest.mark.parametrize("raw", ["2024/06/15", "31/02/2024", "junho 2024", 20240615])
def test_parse_calendar_date_rejects_unsupported_values(raw):
    with pytest.raises(DateParseError):
        parse_calendar_date(raw)


def test_normalize_date_falls_back_to_default_for_malformed_input(caplog):
    fallback = date(2023, 1, 1)

    assert normalize_date("not a date", default=fallback) == fallback
    assert normalize_date("", default=fallback) == fallback
    assert normalize_date(None) is None
    assert "Malformed date" in caplog.text


def test_clamp_day_and_add_months_respect_short_months():
    assert clamp_day(2024, 2, 31) == date(2024, 2, 29)
    assert clamp_day(2023, 2, 31) == date(2023, 2, 28)
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
    assert add_months(date(2024, 3, 10), -3) == date(2023, 12, 10)
    assert anniversary_in_year(date(2024, 2, 29), 2025) == date(2025, 2, 28)
    assert months_between(2024, 11, 2025, 2) == 3


def test_to_decimal_parses_brazilian_currency():
    assert to_decimal("R$ 1.234,56") == Decimal("1234.56")
    assert to_decimal("1500.5") == Decimal("1500.5")
    assert to_decimal(None) == Decimal("0")
    assert to_decimal(99.9) == Decimal("99.9")


def test_contract_terms_from_record_normalizes_legacy_fields(monkeypatch):
    monkeypatch.setenv("DEFAULT_TRIAL_DAYS", "15")

    terms = ContractTerms.from_record(
        {
            "id": 7,
            "monthly_value": "R$ 2.400,00",
            "plan_type": "Semestral",
            "start_date": "invalid",
            "created_at": "2024-02-01T10:00:00Z",
            "renewal_date": "01/08/2024",
            "payment_day": "40",
        }
    )

    assert terms.id == "7"
    assert terms.base_value == Decimal("2400.00")
    assert terms.plan_type == PlanType.SEMIANNUAL
    assert terms.start_date == date(2024, 2, 1)
    assert terms.trial_days == 15
    assert terms.renewal_date == date(2024, 8, 1)
    assert terms.payment_day is None


def test_unknown_plan_type_defaults_to_monthly(caplog):
    assert PlanType.parse("quinzenal") == PlanType.MONTHLY
    assert "Unknown plan type" in caplog.text
