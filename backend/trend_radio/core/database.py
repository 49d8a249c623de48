from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from trend_radio.core.config import settings

# 创建异步引擎
_db_url = settings.DATABASE_URL
_engine_kwargs = {
    "echo": settings.DEBUG,
    "future": True,
    "pool_pre_ping": True,
}
# 连接池配置（仅非 sqlite 场景启用）
if not _db_url.startswith("sqlite"):
    _engine_kwargs.update(pool_size=10, max_overflow=5)

engine = create_async_engine(_db_url, **_engine_kwargs)

# 创建异步 Session 工厂
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI 依赖项: 获取数据库 Session
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def create_tables() -> None:
    """无迁移部署时按模型建表（已存在的表不受影响）"""
    from trend_radio.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
