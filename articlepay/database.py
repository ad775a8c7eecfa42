"""
Database connection and session management for articlepay.

PostgreSQL (or SQLite for tests and local development) through SQLAlchemy,
plus an optional Redis connection for rate limits and handshake nonces.
"""

import logging
from contextlib import contextmanager
from typing import Any, Generator, Mapping, Optional

import redis
from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import Session, scoped_session, sessionmaker

from articlepay.config import get_config
from articlepay.models import Base

logger = logging.getLogger(__name__)

# Global database engine and session factory
_engine = None
_SessionFactory = None
_redis_client = None


def get_database_url(config: Optional[Mapping[str, Any]] = None) -> str:
    """
    Get database URL from configuration.

    Returns:
        Database connection URL
    """
    config = config or get_config()
    db_url = config.get("DATABASE_URL")

    if not db_url:
        # Build from components if DATABASE_URL not provided
        db_host = config.get("DB_HOST") or "localhost"
        db_port = config.get("DB_PORT") or 5432
        db_user = config.get("DB_USER") or "articlepay"
        db_password = config.get("DB_PASSWORD") or "articlepay"
        db_name = config.get("DB_NAME") or "articlepay"

        db_url = f"postgresql+psycopg://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"

    return db_url


def init_database(db_url: Optional[str] = None, echo: bool = False, create_tables: bool = False) -> None:
    """
    Initialize database engine and session factory.

    Args:
        db_url: Connection URL; defaults to the environment configuration
        echo: If True, log all SQL statements
        create_tables: If True, create all tables (not recommended for production - use migrations)
    """
    global _engine, _SessionFactory

    if _engine is not None:
        logger.warning("Database already initialized")
        return

    db_url = db_url or get_database_url()

    engine_kwargs = {
        "echo": echo,
        "pool_pre_ping": True,
    }

    if db_url.startswith("sqlite"):
        # SQLite (especially in-memory) doesn't support the same pooling args
        # as PostgreSQL. Use a simple engine configuration suitable for tests.
        engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}
    else:
        engine_kwargs.update(
            {
                "pool_size": 10,
                "max_overflow": 20,
                "pool_recycle": 3600,
                "connect_args": {"connect_timeout": 10, "options": "-c timezone=utc"},
            }
        )

    _engine = create_engine(db_url, **engine_kwargs)

    @event.listens_for(_engine, "connect")
    def receive_connect(dbapi_conn, connection_record):
        """Handle new database connections."""
        logger.debug("New database connection established")

    # Create session factory with scoped sessions (thread-safe)
    session_factory = sessionmaker(bind=_engine, expire_on_commit=False)
    _SessionFactory = scoped_session(session_factory)

    if create_tables:
        logger.warning("Creating database tables - use migrations in production!")
        Base.metadata.create_all(_engine)

    logger.info(f"Database initialized: {db_url.split('@')[1] if '@' in db_url else db_url}")


def get_session() -> Session:
    """
    Get a database session.

    Raises:
        RuntimeError: If database not initialized
    """
    if _SessionFactory is None:
        raise RuntimeError("Database not initialized. Call init_database() first.")

    return _SessionFactory()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Provide a transactional scope for database operations.

    Usage:
        with session_scope() as session:
            article = session.get(Article, article_id)
            session.add(new_object)
            # Automatically commits on success, rolls back on error

    Yields:
        Database session
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.debug(f"Database transaction rolled back: {e}")
        raise
    finally:
        session.close()


def close_database() -> None:
    """
    Close database connections and clean up.
    """
    global _engine, _SessionFactory

    if _SessionFactory:
        _SessionFactory.remove()
        _SessionFactory = None

    if _engine:
        _engine.dispose()
        _engine = None

    logger.info("Database connections closed")


def check_database_health() -> dict:
    """
    Check database connection health.

    Returns:
        Dictionary with health status
    """
    try:
        with session_scope() as session:
            session.execute(text("SELECT 1"))

        return {"status": "healthy", "connected": True}
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return {"status": "unhealthy", "connected": False, "error": str(e)}


# ============================================================================
# Redis Connection Management
# ============================================================================


def init_redis(config: Optional[Mapping[str, Any]] = None) -> None:
    """
    Initialize Redis connection for rate limits and handshake nonces.

    Redis is optional: without REDIS_URL or REDIS_HOST the process-local
    stores are used instead.
    """
    global _redis_client

    if _redis_client is not None:
        logger.warning("Redis already initialized")
        return

    config = config or get_config()

    redis_url = config.get("REDIS_URL")
    redis_host = config.get("REDIS_HOST")
    if not redis_url and not redis_host:
        logger.info("Redis not configured; using in-memory challenge storage")
        return

    try:
        if redis_url:
            client = redis.Redis.from_url(
                redis_url,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_timeout=5,
            )
        else:
            client = redis.Redis(
                host=redis_host,
                port=config.get("REDIS_PORT", 6379),
                password=config.get("REDIS_PASSWORD"),
                db=config.get("REDIS_DB", 0),
                decode_responses=True,  # Return strings instead of bytes
                socket_connect_timeout=5,
                socket_timeout=5,
                max_connections=50,
                health_check_interval=30,
            )

        # Test connection
        client.ping()
        _redis_client = client

        logger.info(f"Redis initialized: {redis_url or redis_host}")
    except redis.RedisError as e:
        logger.error(f"Failed to initialize Redis: {e}")
        logger.warning("Falling back to in-memory challenge storage")
        _redis_client = None


def get_redis() -> Optional[redis.Redis]:
    """
    Get Redis client instance.

    Returns:
        Redis client or None if not available
    """
    return _redis_client


def close_redis() -> None:
    """
    Close Redis connection.
    """
    global _redis_client

    if _redis_client:
        _redis_client.close()
        _redis_client = None
        logger.info("Redis connection closed")


def check_redis_health() -> dict:
    """
    Check Redis connection health.

    Returns:
        Dictionary with health status
    """
    if _redis_client is None:
        return {"status": "unavailable", "connected": False, "error": "Redis not initialized"}

    try:
        _redis_client.ping()
        info = _redis_client.info()

        return {
            "status": "healthy",
            "connected": True,
            "version": info.get("redis_version"),
            "uptime_seconds": info.get("uptime_in_seconds"),
        }
    except redis.RedisError as e:
        logger.error(f"Redis health check failed: {e}")
        return {"status": "unhealthy", "connected": False, "error": str(e)}


# ============================================================================
# Initialization Helper
# ============================================================================


def init_all(config: Optional[Mapping[str, Any]] = None, echo: bool = False, create_tables: bool = False) -> None:
    """
    Initialize both database and Redis.

    Args:
        config: Configuration mapping; defaults to the environment configuration
        echo: If True, log all SQL statements
        create_tables: If True, create database tables
    """
    config = config or get_config()
    db_url = get_database_url(config)

    # SQLite is only used for tests and local runs, where there are no migrations
    if db_url.startswith("sqlite"):
        create_tables = True

    init_database(db_url, echo=echo, create_tables=create_tables)
    init_redis(config)

    logger.info("All database connections initialized")


def close_all() -> None:
    """
    Close all database connections.
    """
    close_database()
    close_redis()

    logger.info("All database connections closed")


def get_health_status() -> dict:
    """
    Get health status of all database connections.
    """
    return {"database": check_database_health(), "redis": check_redis_health()}
