"""Database session management with connection pooling"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sparely_core.infrastructure.database.models import Base


def build_engine(database_url: str) -> Engine:
    """SQLite gets a cross-thread connection; server databases get a recycled pool"""
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    # Connection pool: max 20 connections, recycle after 1 hour to avoid stale connections
    return create_engine(
        database_url,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


def init_db(bind: Engine) -> None:
    """Create all tables that do not exist yet"""
    Base.metadata.create_all(bind=bind)

