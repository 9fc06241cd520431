"""
Database engine and session management.

PostgreSQL (asyncpg) in deployment; the same code runs on SQLite
(aiosqlite) for local tooling, which does not accept pool sizing.
"""

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base
from trackchain.app.core.config import settings


def engine_options(database_url: str) -> dict:
    options = {"echo": settings.db_echo}
    if make_url(database_url).get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,
        )
    return options


engine = create_async_engine(settings.database_url, **engine_options(settings.database_url))

# Objects stay readable after commit; endpoints build responses from them
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


def register_models() -> None:
    """Import every model module so its table is attached to `Base.metadata`."""
    from trackchain.app.models import (  # noqa: F401
        audit_log, checkpoint, product_category, product, batch, package,
        shipment, shipment_item, shipment_segment, segment_location,
    )


async def init_models() -> None:
    """Create missing tables."""
    register_models()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db():
    """
    FastAPI dependency for database sessions.

    Endpoints commit explicitly. Anything raised while the request holds
    the session rolls back what was not committed.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
