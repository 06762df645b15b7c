"""Pytest fixtures for testing"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from installment_engine.api.main import create_app
from installment_engine.domain.ledger import PlanLedger
from installment_engine.domain.models import InstallmentPlan
from installment_engine.domain.results import Ok
from installment_engine.infrastructure.database.models import Base
from installment_engine.infrastructure.database.repositories import PlanRepository
from installment_engine.infrastructure.database.session import get_db
from installment_engine.utils.clock import FixedClock


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Every test runs at 2025-01-15 09:00 UTC unless it moves the clock
NOW = datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)
TODAY = NOW.date()


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
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def repository(db: Session) -> PlanRepository:
    return PlanRepository(db)


@pytest.fixture
def ledger(repository: PlanRepository, clock: FixedClock) -> PlanLedger:
    return PlanLedger(repository, clock=clock)


@pytest.fixture
def make_plan(ledger: PlanLedger) -> Callable[..., InstallmentPlan]:
    """Create a plan through the ledger; defaults finance 1000 over 5 months at 0%"""

    def _make(
        total_price: str = "1200",
        down_payment: str = "200",
        months: int = 5,
        rate: str = "0",
        start_date: date = TODAY,
        customer_id: str = "customer-1",
        sale_id: str = "sale-1",
    ) -> InstallmentPlan:
        result = ledger.create_plan(
            sale_id=sale_id,
            customer_id=customer_id,
            product_id="product-1",
            total_price=Decimal(total_price),
            down_payment=Decimal(down_payment),
            term_months=months,
            annual_rate_percent=Decimal(rate),
            start_date=start_date,
        )
        assert isinstance(result, Ok), result
        return result.value

    return _make


@pytest.fixture
def client(db: Session, clock: FixedClock) -> TestClient:
    """Create FastAPI test client with test database and frozen clock"""
    app = create_app(clock=clock)

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def plan_payload() -> dict:
    """Request body financing 1000 over 5 months at 0%"""
    return {
        "saleId": "sale-1",
        "customerId": "customer-1",
        "productId": "product-1",
        "totalPrice": 1200,
        "downPayment": 200,
        "numberOfMonths": 5,
        "interestRate": 0,
        "startDate": "2025-01-15",
    }
