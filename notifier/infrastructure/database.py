"""
Database setup and session management.
"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from notifier.config.settings import get_settings
from notifier.domain.messages import Base


def create_engine_for(url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for the shared store.
    
    SQLite connections begin every transaction with BEGIN IMMEDIATE so that
    concurrent writers from other processes queue on the database lock
    instead of failing on a read-to-write lock upgrade.
    """
    if not url.startswith("sqlite"):
        return create_async_engine(url, echo=echo, pool_pre_ping=True)
    
    engine = create_async_engine(
        url,
        echo=echo,
        connect_args={"check_same_thread": False, "timeout": 30},
        poolclass=NullPool,
    )
    
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
    
    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")
    
    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Session factory used by every store operation."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


settings = get_settings()

engine = create_engine_for(settings.database_url, echo=settings.debug)
async_session_factory = create_session_factory(engine)


async def init_database(target: AsyncEngine = engine) -> None:
    """Create tables that do not exist yet."""
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
