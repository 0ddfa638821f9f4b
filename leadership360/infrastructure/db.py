"""
Database connection and session management with centralized configuration.

This module provides database connectivity using the centralized configuration
system, with proper error handling and logging integration.
"""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .config import DatabaseConfig, get_settings
from .exceptions import handle_database_error
from .logging import get_logger
from .models import Base

logger = get_logger(__name__)


def create_database_engine(config: DatabaseConfig | None = None) -> Engine:
    """
    Create SQLAlchemy engine with proper configuration.

    Args:
        config: Database configuration (uses settings if None)

    Example:
        >>> engine = create_database_engine(DatabaseConfig(sqlite_path=":memory:"))
    """
    if config is None:
        config = get_settings().database

    connection_url = config.get_connection_url()
    engine_options = config.get_engine_options()

    logger.info(f"Creating database engine for {config.backend} backend")
    logger.debug(f"Connection URL: {connection_url.split('@')[0]}@***")

    try:
        engine = create_engine(connection_url, **engine_options)
        logger.info("Database engine created successfully")
        return engine
    except Exception as e:
        logger.error(f"Failed to create database engine: {str(e)}")
        raise


def create_session_factory(engine: Engine | None = None) -> sessionmaker:
    """
    Create SQLAlchemy session factory.

    Example:
        >>> SessionLocal = create_session_factory(engine)
        >>> with SessionLocal() as session:
        ...     pass
    """
    if engine is None:
        engine = create_database_engine()

    logger.debug("Creating session factory")
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def make_engine_and_session(connection_url: str | None = None) -> tuple[Engine, sessionmaker]:
    """
    Create engine and session factory.

    An explicit ``connection_url`` bypasses the configured database, which is
    how the scripts and tests point at a throwaway SQLite file.
    """
    if connection_url:
        logger.info("Using explicit connection URL")
        engine = create_engine(connection_url, echo=False, pool_pre_ping=True)
        SessionLocal = create_session_factory(engine)
    else:
        engine = create_database_engine()
        SessionLocal = create_session_factory(engine)

    return engine, SessionLocal


def initialise_database(engine: Engine) -> None:
    """Create any missing tables for local use."""
    try:
        Base.metadata.create_all(engine)
    except SQLAlchemyError as e:
        raise handle_database_error(e, "initialise_database") from e
    logger.info("Database tables ready")


def is_database_configured() -> bool:
    """
    Check if database is properly configured.

    Example:
        >>> if is_database_configured():
        ...     engine = create_database_engine()
    """
    try:
        config = get_settings().database
        config.get_connection_url()
        return True
    except Exception as e:
        logger.warning(f"Database configuration invalid: {str(e)}")
        return False
