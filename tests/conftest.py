"""Pytest fixtures for testing"""

import pytest
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from lending_gateway.api.main import create_app
from lending_gateway.api.dependencies import get_ledger_client
from lending_gateway.infrastructure.database.models import Base
from lending_gateway.infrastructure.database.repositories import UserRepository
from lending_gateway.infrastructure.database.session import get_db
from lending_gateway.domain.models import (
    EmiFrequency,
    FeeApplicationMethod,
    LoanPlan,
    PlanFee,
    PlanType,
)


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class StubLedgerClient:
    """Collects ledger events instead of posting them"""

    def __init__(self):
        self.events = []

    async def publish_extension_approved(self, outcome) -> None:
        self.events.append(outcome)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def ledger() -> StubLedgerClient:
    return StubLedgerClient()


@pytest.fixture
def client(db: Session, ledger: StubLedgerClient) -> TestClient:
    """Create FastAPI test client with test database and stub ledger"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ledger_client] = lambda: ledger
    return TestClient(app)


@pytest.fixture
def user(db: Session):
    """Borrower paid on the 5th with a ₹20,000 salary"""
    db_user = UserRepository(db).create_user(salary_date=5, monthly_income=Decimal("20000"))
    db.commit()
    return db_user


@pytest.fixture
def single_plan() -> LoanPlan:
    """15-day single payment plan, 0.1%/day, 2% processing fee added to the total"""
    return LoanPlan(
        plan_type=PlanType.SINGLE,
        interest_rate_per_day=Decimal("0.001"),
        repayment_days=15,
        fees=(PlanFee("Processing Fee", Decimal("2"), FeeApplicationMethod.ADD_TO_TOTAL),),
    )


@pytest.fixture
def emi_plan() -> LoanPlan:
    """3 monthly EMIs, first due 30 days out, no fees"""
    return LoanPlan(
        plan_type=PlanType.MULTI_EMI,
        interest_rate_per_day=Decimal("0.001"),
        repayment_days=30,
        emi_count=3,
        emi_frequency=EmiFrequency.MONTHLY,
    )


@pytest.fixture
def single_plan_payload() -> dict:
    return {
        "plan_type": "single",
        "interest_rate_per_day": "0.001",
        "repayment_days": 15,
        "fees": [{"name": "Processing Fee", "percent": "2", "application_method": "add_to_total"}],
    }


@pytest.fixture
def emi_plan_payload() -> dict:
    return {
        "plan_type": "multi_emi",
        "interest_rate_per_day": "0.001",
        "repayment_days": 30,
        "emi_count": 3,
        "emi_frequency": "monthly",
    }


@pytest.fixture
def session_factory(db: Session):
    """Independent sessions on the test database, one per worker thread"""
    return TestingSessionLocal
