import logging
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool
from auction_house.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def normalize_database_url(url: str) -> str:
    """Rewrite postgres URLs to the psycopg (v3) async driver"""
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+psycopg://", 1)
    if "+asyncpg" in url:
        return url.replace("+asyncpg", "+psycopg")
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


database_url = normalize_database_url(settings.database_url)
is_postgres = database_url.startswith("postgresql")

engine_kwargs = {
    "echo": settings.debug,
}

if is_postgres:
    # pgbouncer handles pooling; prepared statements break its transaction mode
    engine_kwargs.update({
        "poolclass": NullPool,
        "connect_args": {
            "prepare_threshold": None,
        },
    })
else:
    # Concurrent writers wait on the SQLite write lock instead of failing fast
    engine_kwargs["connect_args"] = {"timeout": 30}

logger.info(f"Database config: is_postgres={is_postgres}, poolclass={'NullPool' if is_postgres else 'default'}")

engine = create_async_engine(database_url, **engine_kwargs)

# Async session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all models"""
    pass


async def get_db() -> AsyncSession:
    """Dependency for getting async database sessions"""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_session_maker() -> async_sessionmaker:
    """Dependency for components that manage their own transactions"""
    return async_session_maker


async def init_db():
    """Initialize database tables"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
