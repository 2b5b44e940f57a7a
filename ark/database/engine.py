from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from ark.config import settings


def _connect_args(url: str) -> dict:
    """Bound every statement on asyncpg so a stuck query fails instead of hanging."""
    if url.startswith("postgresql+asyncpg"):
        return {"command_timeout": settings.database_statement_timeout_seconds}
    return {}


engine = create_async_engine(
    settings.database_url,
    pool_pre_ping=True,
    pool_recycle=3600,
    pool_timeout=settings.database_pool_timeout_seconds,
    connect_args=_connect_args(settings.database_url),
    echo=settings.environment == "development",
)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
