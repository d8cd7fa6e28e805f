"""
数据库引擎：AsyncEngine 创建 + AsyncSession 工厂
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tasknest.config import get_settings

settings = get_settings()


def _engine_kwargs() -> dict:
    """SQLite 不支持连接池参数，仅服务端数据库启用"""
    if settings.is_sqlite:
        return {}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
    }


engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DB_ECHO,
    **_engine_kwargs(),
)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI 依赖注入：获取数据库会话"""
    async with async_session() as session:
        yield session


async def create_all() -> None:
    """按模型元数据建表（已存在的表跳过）"""
    from tasknest.db.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
