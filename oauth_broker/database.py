"""
SQLAlchemy engine and session factory for registered accounts and the audit log.
Pending authorization sessions never touch the database.
"""
from collections.abc import Iterator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from oauth_broker.config import DATABASE_URL
from oauth_broker.models import Base


def make_engine(url: str) -> Engine:
    """
    SQLite is used from FastAPI's threadpool, so same-thread checks are off. An in-memory SQLite
    URL gets a single shared connection; otherwise every connection would see an empty DB.
    """
    if not url.startswith("sqlite"):
        return create_engine(url)
    options: dict = {"connect_args": {"check_same_thread": False}}
    if ":memory:" in url:
        options["poolclass"] = StaticPool
    return create_engine(url, **options)


engine = make_engine(DATABASE_URL)
SessionLocal = sessionmaker(bind=engine, autoflush=False)


def init_db() -> None:
    """Create the accounts and audit_log tables if missing."""
    Base.metadata.create_all(bind=engine)


def get_db() -> Iterator[Session]:
    """Dependency: one DB session per request."""
    with SessionLocal() as db:
        yield db
