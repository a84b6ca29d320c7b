from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine as sa_create_async_engine

from contact_groups.config.settings import get_settings

_engine: AsyncEngine | None = None


def get_engine(echo: bool = False) -> AsyncEngine:
    """Return the process-wide async engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = sa_create_async_engine(get_settings().database_url, echo=echo)
    return _engine


async def dispose_engine() -> None:
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None
