"""
Database engine and session management with SQLAlchemy async
"""

from typing import Optional
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)


def build_engine(database_url: str, schema: Optional[str] = None, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for the pipeline.

    Tables are declared without a schema; when ``schema`` is given every
    statement is rewritten to target it via ``schema_translate_map``.
    """
    engine = create_async_engine(
        database_url,
        echo=echo,
        poolclass=NullPool,  # One run, one connection
        future=True
    )
    if schema:
        engine = engine.execution_options(schema_translate_map={None: schema})
    return engine


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    """Create the session factory used by the transaction coordinator"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False
    )


def dialect_insert(dialect_name: str):
    """
    Return the ``insert`` construct supporting ``ON CONFLICT`` for a dialect.

    PostgreSQL is the production target; SQLite is accepted so the pipeline
    can run against a local file or an in-memory test database.
    """
    if dialect_name == "postgresql":
        return postgresql.insert
    if dialect_name == "sqlite":
        return sqlite.insert
    raise ValueError(f"Unsupported database dialect for upserts: {dialect_name}")


def create_default_engine() -> AsyncEngine:
    """Engine configured from application settings"""
    logger.debug(f"Creating engine (schema={settings.DATABASE_SCHEMA or 'default'})")
    return build_engine(
        settings.DATABASE_URL,
        schema=settings.DATABASE_SCHEMA,
        echo=settings.ENVIRONMENT == "development" and settings.LOG_LEVEL.upper() == "DEBUG"
    )
