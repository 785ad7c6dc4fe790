"""
Database models for the MCP Server Registry.

Uses SQLAlchemy 2.0. Two tables back the persistence layer: a key-value
blob table (deduplication state, run metadata) and an append-only
dataset table (published canonical records).
"""

from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from sqlalchemy import (
    create_engine,
    DateTime,
    Integer,
    String,
    Text,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    sessionmaker,
)
from sqlalchemy.sql import func

from mcp_registry.config import settings


# =============================================================================
# Database Engine and Session
# =============================================================================

engine = create_engine(
    settings.storage.database_url,
    echo=settings.pipeline.log_level == "DEBUG",
    pool_pre_ping=True,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_session(session_factory=None):
    """Context manager for database sessions."""
    session = (session_factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# =============================================================================
# Base Model
# =============================================================================

class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class KeyValueEntry(Base):
    """
    A string blob stored under a string key.

    Last write wins per key.
    """
    __tablename__ = "key_value_entries"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<KeyValueEntry(key='{self.key}', size={len(self.value or '')})>"


class DatasetItem(Base):
    """One canonical record pushed to the output dataset. Rows are never updated."""
    __tablename__ = "dataset_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_id: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    normalized_name: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    data: Mapped[str] = mapped_column(Text, nullable=False)  # JSON document
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        return f"<DatasetItem(id={self.id}, name='{self.normalized_name}')>"


def create_all_tables(bind: Engine | None = None):
    """Create all database tables (and the directory of a SQLite file)."""
    bind = bind or engine
    database = bind.url.database
    if bind.url.get_backend_name() == "sqlite" and database and database != ":memory:":
        Path(database).parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(bind=bind)


def drop_all_tables(bind: Engine | None = None):
    """Drop all database tables. USE WITH CAUTION!"""
    Base.metadata.drop_all(bind=bind or engine)
