"""
异步引擎与会话工厂
"""
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from core.config import settings
from infrastructure.models import Base


# 同步驱动名 -> 异步驱动名
ASYNC_DRIVERS = {
    "postgresql": "postgresql+asyncpg",
    "postgres": "postgresql+asyncpg",
    "sqlite": "sqlite+aiosqlite",
}


def _build_async_url(database_url: str) -> str:
    url = make_url(database_url)
    if "+" in url.drivername:
        return database_url
    try:
        return url.set(drivername=ASYNC_DRIVERS[url.drivername]).render_as_string(hide_password=False)
    except KeyError:
        raise ValueError(f"不支持的数据库驱动: {url.drivername}，请在 DATABASE__URL 中指定异步驱动") from None


engine = create_async_engine(
    _build_async_url(settings.database.url),
    echo=settings.database.echo,
    pool_pre_ping=True,
)

AsyncSessionLocal = async_sessionmaker(bind=engine, expire_on_commit=False)


async def create_tables() -> None:
    """按模型建表，仅用于开发环境"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
