from __future__ import annotations

from datetime import date
from decimal import Decimal
import os
import sys
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

# Ensure the project root (which exposes the ``backend`` package) is on ``sys.path``
PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

# The test database is created from the models; the app must not migrate on startup.
os.environ.setdefault("RUN_MIGRATIONS_ON_STARTUP", "0")

from backend.contract_billing.database import Base, get_db  # noqa: E402
from backend.contract_billing.domain import PlanType  # noqa: E402
from backend.contract_billing.main import app  # noqa: E402
from backend.contract_billing import models  # noqa: E402

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture(scope="session", autouse=True)
def setup_database() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        try:
            yield db_session
        finally:
            db_session.expire_all()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
def seed_contracts(db_session: Session) -> dict:
    monthly = models.Contract(
        customer_name="Padaria Central",
        contract_number="CT-001",
        base_value=Decimal("1000"),
        plan_type=PlanType.MONTHLY,
        start_date=date(2023, 1, 10),
        trial_days=0,
        renewal_date=date(2023, 6, 15),
        payment_day=10,
    )
    annual = models.Contract(
        customer_name="Oficina Norte",
        contract_number="CT-002",
        base_value=Decimal("12000"),
        plan_type=PlanType.ANNUAL,
        start_date=date(2024, 3, 10),
        trial_days=0,
        renewal_date=date(2024, 3, 10),
        payment_day=10,
    )
    no_anchor = models.Contract(
        customer_name="Clínica Sul",
        contract_number="CT-003",
        base_value=Decimal("500"),
        plan_type=PlanType.MONTHLY,
        start_date=date(2024, 1, 1),
        trial_days=30,
    )
    db_session.add_all([monthly, annual, no_anchor])
    db_session.commit()

    return {"monthly": monthly, "annual": annual, "no_anchor": no_anchor}
