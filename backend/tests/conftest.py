"""Pytest configuration and fixtures."""

from datetime import date, timedelta
from typing import Generator, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from stockledger.core.clock import FixedClock, get_clock
from stockledger.core.rbac import UserRole
from stockledger.core.security import create_access_token
from stockledger.db.base import Base
from stockledger.db.session import get_db
from stockledger.main import app
# Import all models to ensure they're registered with Base.metadata
from stockledger.models import *
from stockledger.models.item import InventoryItem
from stockledger.models.movement import StockMovement
from stockledger.models.user import User

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"

# Business date pinned for every test
TODAY = date(2026, 3, 15)
YESTERDAY = TODAY - timedelta(days=1)


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Same foreign key enforcement as the application engine
    @event.listens_for(engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(TODAY)


@pytest.fixture(scope="function")
def client(db_session: Session, clock: FixedClock) -> Generator[TestClient, None, None]:
    """Create a test client with database and clock overrides."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    # Disable rate limiter during tests to avoid flaky failures
    from stockledger.core.rate_limit import limiter
    limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    limiter.enabled = True
    app.dependency_overrides.clear()


def _make_user(db_session: Session, username: str, role: UserRole) -> User:
    user = User(username=username, role=role, is_active=True)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def _token_for(user: User) -> str:
    return create_access_token(
        data={"sub": str(user.id), "username": user.username, "role": user.role.value}
    )


@pytest.fixture
def operator_user(db_session: Session) -> User:
    """Create an operator (counter staff)."""
    return _make_user(db_session, "operator", UserRole.OPERATOR)


@pytest.fixture
def lead_user(db_session: Session) -> User:
    """Create a lead (shift supervisor)."""
    return _make_user(db_session, "lead", UserRole.LEAD)


@pytest.fixture
def auth_headers(operator_user: User) -> dict:
    """Authentication headers for the operator."""
    return {"Authorization": f"Bearer {_token_for(operator_user)}"}


@pytest.fixture
def lead_headers(lead_user: User) -> dict:
    """Authentication headers for the lead."""
    return {"Authorization": f"Bearer {_token_for(lead_user)}"}


@pytest.fixture
def test_item(db_session: Session) -> InventoryItem:
    """Create an active item with an empty snapshot."""
    item = InventoryItem(name="Eggs", unit="tray", category="Dairy", is_active=True)
    db_session.add(item)
    db_session.commit()
    db_session.refresh(item)
    return item


@pytest.fixture
def add_movement(db_session: Session):
    """Insert a ledger row directly, bypassing the gateway."""
    def _add(
        item: InventoryItem,
        kind: str,
        quantity: int,
        day: date,
        notes: Optional[str] = None,
    ) -> StockMovement:
        movement = StockMovement(
            item_id=item.id,
            kind=kind,
            quantity=quantity,
            movement_date=day,
            notes=notes,
        )
        db_session.add(movement)
        db_session.commit()
        db_session.refresh(movement)
        return movement

    return _add
