"""Database bootstrap helpers."""

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from orderpay.common.config import settings


def build_engine(url: str) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads."""

    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    return create_engine(url, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    # `expire_on_commit=False` keeps ORM objects readable after the session closes.
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)


engine = build_engine(settings.database_url)
SessionLocal = build_session_factory(engine)


class Base(DeclarativeBase):
    """Declarative base for payment tables."""
