"""Database session factory setup."""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)


def create_engine(db_url: str, pool_size: int = 20) -> AsyncEngine:
    """Create the async engine.

    SQLite URLs (local development, tests) get the driver's default pool since
    pool sizing options are not accepted there.
    """
    if db_url.startswith("sqlite"):
        return create_async_engine(db_url, echo=False)

    return create_async_engine(
        db_url,
        pool_size=pool_size,
        max_overflow=0,
        pool_pre_ping=True,
        echo=False,  # SQL is not logged, use structlog events instead
    )


def setup_db_session(db_url: str, pool_size: int = 20) -> async_sessionmaker[AsyncSession]:
    """Create async database session factory.

    Args:
        db_url: Database URL (postgresql+psycopg://... in production)
        pool_size: Maximum number of connections in the pool

    Returns:
        Async session factory for creating database sessions
    """
    return create_session_factory(create_engine(db_url, pool_size))


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Bind a session factory to an existing engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Records are read after the unit of work closes
    )
