"""Pytest fixtures for testing"""

import pytest
from datetime import date
from typing import Callable, Generator
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from sparely_core.config import Settings
from sparely_core.infrastructure.database.models import Base
from sparely_core.domain.allocation import create_expense
from sparely_core.domain.models import (
    Expense,
    ExpenseCategory,
    ExpenseInput,
    RiskLevel,
    SavingsPercentages,
    UserProfile,
)


# Test database: one shared in-memory connection
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TODAY = date(2024, 6, 15)


class FakeClock:
    """Epoch-millis clock advanced by hand"""

    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance_minutes(self, minutes: float) -> None:
        self.now += int(minutes * 60_000)


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
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def test_settings() -> Settings:
    """Settings independent of the environment"""
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        min_transfer_cents=1000,
        batch_window_minutes=3,
        saving_tax_rate=0.04,
        adjust_for_included_tax=False,
    )


@pytest.fixture
def profile() -> UserProfile:
    """Balanced 30-year-old earning $4000 with half the emergency fund target saved"""
    return UserProfile(
        age=30,
        risk_level=RiskLevel.BALANCED,
        monthly_income=4000.0,
        has_debts=False,
        country_code="US",
        current_emergency_fund=7800.0,  # 50% of the $15,600 target
    )


@pytest.fixture
def make_expense() -> Callable[..., Expense]:
    """Build allocated expenses at a fixed 0.15/0.05/0.05 split"""
    counter = iter(range(1, 10_000))

    def _make(
        amount: float,
        on: date = TODAY,
        category: ExpenseCategory = ExpenseCategory.GROCERIES,
        description: str = "Purchase",
    ) -> Expense:
        return create_expense(
            ExpenseInput(description=description, amount=amount, category=category, date=on),
            SavingsPercentages(emergency=0.15, invest=0.05, fun=0.05),
            RiskLevel.BALANCED,
            auto_recommended=False,
            expense_id=next(counter),
        )

    return _make
