"""Base model configuration."""
import sqlite3
from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import Column, DateTime, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from thrive45.config import settings


def create_db_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """Create an engine for the remote record store."""
    url = url or settings.database.url
    connect_args = {}
    if url.startswith("sqlite"):
        # Repository calls run in worker threads
        connect_args["check_same_thread"] = False
    return create_engine(
        url,
        echo=settings.database.echo if echo is None else echo,
        connect_args=connect_args,
    )


@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enforce foreign keys on SQLite connections."""
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# Create declarative base class
Base = declarative_base()


class TimestampMixin:
    """Mixin to add timestamp columns to models."""
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )


def create_session_factory(bind: Engine) -> sessionmaker:
    """Session factory bound to ``bind``."""
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=bind)


def init_db(bind: Engine) -> None:
    """Initialize database."""
    # Register the tables on Base.metadata
    import thrive45.models.models  # noqa: F401

    Base.metadata.create_all(bind=bind)  # Create tables if they don't exist
