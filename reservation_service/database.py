from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from reservation_service.config import settings

# Convert sync URL to async URL for asyncpg
_async_url = settings.database_url.replace("postgresql://", "postgresql+asyncpg://")


def _engine_options(url: str) -> dict:
    # Every lock wait and statement is bounded so a contended row surfaces as a
    # store error instead of a hang.
    if url.startswith("sqlite"):
        return {"connect_args": {"timeout": settings.db_command_timeout}}
    return {
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": settings.db_pool_timeout,
        "connect_args": {
            "command_timeout": settings.db_command_timeout,
            "server_settings": {"lock_timeout": str(settings.db_lock_timeout_ms)},
        },
    }


engine = create_async_engine(_async_url, **_engine_options(_async_url))
AsyncSessionLocal = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session
