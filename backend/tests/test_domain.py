import pytest

from backend.contract_billing.domain import ContractTerms


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (30, 30),
        (30.0, 30),
        ("45", 45),
        ("15.0", 15),
        ("30 dias", 30),
        ("-5", 0),
        (-10, 0),
    ],
)
def test_trial_days_from_upstream_records(raw, expected):
    terms = ContractTerms.from_record(
        {"id": "contract-1", "base_value": "1000", "plan_type": "mensal", "trial_days": raw}
    )

    assert terms.trial_days == expected


def test_missing_trial_days_fall_back_to_configured_default(monkeypatch):
    monkeypatch.setenv("DEFAULT_TRIAL_DAYS", "14")

    terms = ContractTerms.from_record({"id": "contract-1", "base_value": "1000", "trial_days": ""})

    assert terms.trial_days == 14


def test_unreadable_trial_days_fall_back_to_default(monkeypatch):
    monkeypatch.delenv("DEFAULT_TRIAL_DAYS", raising=False)

    terms = ContractTerms.from_record({"id": "contract-1", "base_value": "1000", "trial_days": "sem teste"})

    assert terms.trial_days == 30
