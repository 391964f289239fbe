"""
festboard/database.py
Database configuration: async engine, session factory and schema bootstrap
"""
import logging

from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker

# Import Base from orm.base to avoid circular imports
from festboard.orm.base import Base
import festboard.orm  # ensures all models are registered
from festboard.config.settings import settings

logger = logging.getLogger(__name__)

DATABASE_URL = settings.DATABASE_URL

if not DATABASE_URL:
    raise ValueError("DATABASE_URL environment variable is not set")


def _install_sqlite_listeners(engine: AsyncEngine) -> None:
    """
    Take over transaction control from the sqlite driver.

    The driver defers BEGIN until the first write, so a duplicate check
    followed by an insert would not run under the write lock. Every
    transaction starts with BEGIN IMMEDIATE instead: concurrent result commits
    serialize on the database lock and the second one sees the first's row.
    """
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str = DATABASE_URL, echo: bool = settings.DB_ECHO) -> AsyncEngine:
    """Create an async engine with the pool settings used in every environment."""
    if "sqlite" in url.lower():
        # SQLite: file databases get a small pool, in-memory ones use the
        # driver default (single static connection).
        kwargs = {
            "connect_args": {
                "timeout": settings.DB_TIMEOUT_SECONDS,   # SQLite busy timeout in seconds
            }
        }
        if ":memory:" not in url:
            kwargs.update(pool_size=5, max_overflow=10, pool_timeout=30)
        engine = create_async_engine(url, echo=echo, future=True, **kwargs)
        _install_sqlite_listeners(engine)
        return engine

    # PostgreSQL: standard pool; statement timeout bounds every transaction
    return create_async_engine(
        url,
        echo=echo,
        future=True,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
        pool_recycle=3600,
        connect_args={
            "server_settings": {
                "statement_timeout": str(int(settings.DB_TIMEOUT_SECONDS * 1000)),
            }
        },
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


engine = build_engine()
AsyncSessionLocal = build_session_factory(engine)


async def get_db():
    """Dependency for getting async database session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def create_schema(target: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def init_db():
    """
    Initialize database: create missing tables.
    """
    logger.info("Initializing database...")

    try:
        logger.info(f"Database dialect: {engine.url.get_backend_name()}")
        await create_schema(engine)
        logger.info("✓ Database initialization complete")

    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        raise


async def close_db():
    """Close database connection"""
    await engine.dispose()
    logger.info("Database connection closed")
