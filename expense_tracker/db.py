import logging
from typing import Iterator

from fastapi import Depends, Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from expense_tracker.models import Base
from expense_tracker.services.transactions import TransactionStore

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str) -> Engine:
    # pool_pre_ping/pool_recycle guard against dropped/stale connections causing OperationalError
    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_recycle=300,
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def connect_database(database_url: str) -> Engine:
    """Open the engine, verify the server answers and make sure the tables exist.

    Raises whatever SQLAlchemy raises when the database is unreachable; startup
    is expected to abort in that case.
    """
    engine = create_db_engine(database_url)
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    init_db(engine)
    logger.info(f"Database connected: {engine.url.render_as_string(hide_password=True)}")
    return engine


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(bind=engine)


def get_db(request: Request) -> Iterator[Session]:
    session_factory = request.app.state.session_factory
    if session_factory is None:
        raise RuntimeError("Database is not connected")
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


def get_transaction_store(db: Session = Depends(get_db)) -> TransactionStore:
    return TransactionStore(db)
