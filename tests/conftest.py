from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from expense_tracker.db import create_session_factory, init_db
from expense_tracker.main import create_app
from expense_tracker.models import TransactionType
from expense_tracker.schemas.transactions import TransactionIn
from expense_tracker.services.transactions import TransactionStore


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db):
    return TransactionStore(db)


@pytest.fixture
def app(session_factory):
    return create_app(session_factory=session_factory)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def add_transaction(store):
    """Insert a transaction straight through the store."""

    def _add(
        type: str = "expense",
        amount="10",
        description: str = "Test transaction",
        category: str = "Food",
        date: datetime | None = None,
    ):
        return store.create(
            TransactionIn(
                type=TransactionType(type),
                amount=Decimal(str(amount)),
                description=description,
                category=category,
                date=date,
            )
        )

    return _add
