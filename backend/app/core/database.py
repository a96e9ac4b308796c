# app/core/database.py
# 数据库连接模块
#
# 功能说明：
# 1. 创建 SQLAlchemy 异步引擎和会话工厂
# 2. 提供 ORM 基类 Base
# 3. 提供 FastAPI 依赖 get_db
#
# 使用方法：
#   from app.core.database import async_session_maker
#   async with async_session_maker() as session:
#       ...

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import settings


class Base(DeclarativeBase):
    """所有 ORM 模型的基类"""
    pass


def create_engine(url: str = settings.DATABASE_URL) -> AsyncEngine:
    """
    创建异步数据库引擎

    Args:
        url: 数据库连接串，默认使用配置中的 DATABASE_URL

    Returns:
        AsyncEngine: 异步引擎（创建时不会立即连接数据库）
    """
    return create_async_engine(
        url,
        echo=settings.DEBUG,
        pool_pre_ping=True,
    )


def create_session_maker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """为指定引擎创建会话工厂（测试中用来指向临时数据库）"""
    return async_sessionmaker(bind, expire_on_commit=False)


# 全局引擎和会话工厂
engine = create_engine()
async_session_maker = create_session_maker(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI 依赖：获取数据库会话

    使用方式：
        @router.get("/")
        async def handler(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with async_session_maker() as session:
        yield session


async def init_db(bind: AsyncEngine = engine) -> None:
    """
    创建所有数据表（已存在的表会跳过）

    需要先导入 app.models，确保所有模型已注册到 Base.metadata
    """
    import app.models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """释放连接池"""
    await engine.dispose()
