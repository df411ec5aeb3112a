from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from docs_agent.core.config import get_settings
from docs_agent.core.errors import ServiceMisconfigured


class Base(DeclarativeBase):
    pass


_engine = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """
    Lazily create the engine and session factory.

    Created on first use so the app starts (and non-persistence endpoints
    keep working) even when the database is unreachable.
    """
    global _engine, _session_factory
    if _session_factory is None:
        settings = get_settings()
        if not settings.database_url:
            raise ServiceMisconfigured("DATABASE_URL is not set")
        _engine = create_async_engine(settings.database_url, pool_pre_ping=True)
        _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
    return _session_factory


async def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
