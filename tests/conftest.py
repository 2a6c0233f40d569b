"""
Pytest fixtures for testing
"""
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from kudipal.infrastructure.db.session import Base, build_engine
from kudipal.infrastructure.db.models import Expense, Income, Budget, Goal


def _sqlite_engine(url: str, **kwargs):
    engine = build_engine(url, **kwargs)
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_engine():
    """In-memory SQLite engine; StaticPool so TestClient worker threads see the same DB."""
    engine = _sqlite_engine("sqlite://", poolclass=StaticPool)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine) -> Session:
    """Create database session for tests"""
    SessionLocal = sessionmaker(bind=db_engine, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def session_factory(tmp_path):
    """
    File-backed SQLite session factory for the concurrent insight fan-out
    (one connection per worker thread). Seed data must be committed.
    """
    engine = _sqlite_engine(f"sqlite:///{tmp_path / 'kudipal.db'}")
    yield sessionmaker(bind=engine, autoflush=False)
    engine.dispose()


@pytest.fixture
def sample_user_id():
    return 1


# ---------------------------------------------------------------------------
# Row builders
# ---------------------------------------------------------------------------

class RowFactory:
    """Inserts finance records into the given session (flush only)."""

    def expense(self, db, user_id: int, amount, day: date,
                category: str = "Food / Chop Bar", payment_method: str = "Cash") -> Expense:
        row = Expense(
            user_id=user_id,
            amount=Decimal(str(amount)),
            category=category,
            payment_method=payment_method,
            expense_date=day,
        )
        db.add(row)
        db.flush()
        return row

    def income(self, db, user_id: int, amount, day: date, source: str = "Salary") -> Income:
        row = Income(user_id=user_id, amount=Decimal(str(amount)), source=source, income_date=day)
        db.add(row)
        db.flush()
        return row

    def budget(self, db, user_id: int, amount, start: date, end: date,
               period_type: str = "monthly", is_active: bool = True) -> Budget:
        row = Budget(
            user_id=user_id,
            period_type=period_type,
            amount=Decimal(str(amount)),
            start_date=start,
            end_date=end,
            is_active=is_active,
        )
        db.add(row)
        db.flush()
        return row

    def goal(self, db, user_id: int, target, current, deadline: date | None,
             title: str = "New laptop", status: str = "active") -> Goal:
        row = Goal(
            user_id=user_id,
            title=title,
            target_amount=Decimal(str(target)),
            current_amount=Decimal(str(current)),
            deadline=deadline,
            status=status,
        )
        db.add(row)
        db.flush()
        return row


@pytest.fixture
def rows() -> RowFactory:
    return RowFactory()
