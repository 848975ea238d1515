"""Engine, session factory and the ``get_db`` request dependency."""

from collections.abc import Generator
from typing import Annotated

from fastapi import Depends
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from stockledger.core.config import settings

_is_sqlite = settings.database_url.startswith("sqlite")

if _is_sqlite:
    engine_options = {"connect_args": {"check_same_thread": False}}
else:
    engine_options = {"pool_size": 5, "max_overflow": 10, "pool_recycle": 1800}

engine = create_engine(settings.database_url, pool_pre_ping=True, **engine_options)

if _is_sqlite:
    # Item deletes cascade to movements and actor deletes null the audit columns
    @event.listens_for(engine, "connect")
    def enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a session per request and always close it."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


DbSession = Annotated[Session, Depends(get_db)]
