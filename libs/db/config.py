from typing import Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from libs.common.config import get_settings

settings = get_settings()


def build_engine(url: Optional[str] = None, **overrides) -> AsyncEngine:
    """Async engine using the pool settings from config; `overrides` win."""
    options = {
        # SQL echo only for local development
        "echo": settings.ENVIRONMENT == "local",
        "pool_pre_ping": True,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
    }
    options.update(overrides)
    return create_async_engine(url or settings.DATABASE_URL, **options)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=bind, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )


engine = build_engine()

AsyncSessionLocal = build_session_factory(engine)
