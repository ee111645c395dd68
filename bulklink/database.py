"""Database configuration and async SQLAlchemy setup."""
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession
from sqlalchemy.orm import sessionmaker, declarative_base
from bulklink.config import settings


def configure_sqlite_transactions(async_engine: AsyncEngine) -> None:
    """Open every SQLite transaction with BEGIN IMMEDIATE.

    SQLite has no row locks, so the write lock is taken up front. Concurrent
    redemptions then queue on the busy timeout instead of failing on a lock
    upgrade, which gives the same serialization PostgreSQL's FOR UPDATE does.
    """
    sync_engine = async_engine.sync_engine

    @event.listens_for(sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        # Stop the driver from emitting its own deferred BEGIN
        dbapi_connection.isolation_level = None

    @event.listens_for(sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """Create an async engine, applying SQLite locking where needed."""
    if url.startswith("sqlite"):
        async_engine = create_async_engine(url, future=True, **kwargs)
        configure_sqlite_transactions(async_engine)
        return async_engine

    return create_async_engine(
        url,
        future=True,
        pool_pre_ping=True,
        pool_recycle=1800,
        **kwargs,
    )


# Create async engine
engine = build_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)

# Create async session factory
AsyncSessionLocal = sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    future=True,
)

# Base class for models
Base = declarative_base()


async def get_db():
    """Dependency to get database session."""
    async with AsyncSessionLocal() as session:
        yield session
