"""Engine, session factory and declarative base for the coupon store."""

from collections.abc import Generator, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from coupon_manager.core.config import settings


def _is_sqlite(dsn: str) -> bool:
    return dsn.startswith("sqlite")


def create_db_engine(dsn: str, **kwargs: Any) -> Engine:
    """Create an engine, enabling foreign keys on SQLite connections."""
    if _is_sqlite(dsn):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    db_engine = create_engine(dsn, **kwargs)

    if _is_sqlite(dsn):

        @event.listens_for(db_engine, "connect")
        def _enable_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return db_engine


engine = create_db_engine(settings.APP_DATABASE_DSN)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base: Any = declarative_base()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for code running outside a request (worker jobs, bot updates)."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Initialize database tables."""
    import coupon_manager.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
