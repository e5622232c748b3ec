"""Database base configuration"""

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from pantry.infrastructure.config.settings import Settings

logger = logging.getLogger(__name__)

# Base class for models
Base = declarative_base()


def create_db_engine(settings: Settings) -> Engine:
    """Create database engine with appropriate connect_args"""
    database_url = settings.get_database_url()

    if database_url.startswith("postgresql"):
        logger.info(
            "Connecting to PostgreSQL database: %s@%s:%s",
            settings.DB_NAME, settings.DB_HOST, settings.DB_PORT,
        )
        return create_engine(
            database_url,
            pool_pre_ping=True,  # Verify connections before using
            pool_size=10,
            max_overflow=20,
        )
    if database_url.startswith("sqlite"):
        logger.info("Using SQLite database: %s", database_url)
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every session sees an empty database
            return create_engine(
                database_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
        )
    raise ValueError(f"Unsupported database URL: {database_url}")


def create_session_factory(engine: Engine) -> sessionmaker:
    """Create session factory

    autocommit=False means we need to explicitly commit transactions.
    expire_on_commit=False keeps loaded rows readable after commit.
    """
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Initialize database - create all tables."""
    from pantry.infrastructure.database import models  # noqa: F401  Import models to register them

    Base.metadata.create_all(bind=engine)
