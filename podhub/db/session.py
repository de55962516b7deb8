from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool
import logging

from podhub.core.config import settings

logger = logging.getLogger("app")

# Base class for all SQLAlchemy models
Base = declarative_base()


def create_db_engine(database_url: str) -> Engine:
    """Create an engine suited to the database behind ``database_url``."""
    if not database_url:
        logger.error("DATABASE_URL is not set or empty!")
        raise ValueError("DATABASE_URL environment variable is required")

    if database_url.startswith("sqlite"):
        # Socket handlers and background tasks use the engine from worker threads
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url or database_url in ("sqlite://", "sqlite:///"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)

    return create_engine(
        database_url,
        pool_pre_ping=True,  # Check connection before using from pool
        pool_recycle=3600,   # Recycle connections after 1 hour
    )


def create_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=bind)


try:
    engine = create_db_engine(settings.DATABASE_URL)
    logger.info("Database engine created successfully")
except Exception as e:
    logger.error(f"Failed to create database engine: {e}")
    raise

# Default session factory; create_app() accepts another one
SessionLocal = create_session_factory(engine)
