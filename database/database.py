from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool
from typing import Optional

from config import settings

# ==========================
# Подключение к базе данных
# ==========================

def make_engine(url: str, echo: bool = False) -> AsyncEngine:
    """
    Асинхронный движок по URL.
    sqlite в памяти живёт, пока жив единственный коннект, поэтому StaticPool.
    """
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url:
            kwargs["poolclass"] = StaticPool
        return create_async_engine(url, echo=echo, **kwargs)
    return create_async_engine(url, echo=echo, pool_pre_ping=True)


engine = make_engine(settings.DATABASE_URL, echo=bool(settings.debug))

# Базовый класс для моделей
Base = declarative_base()

# Фабрика сессий; объекты остаются доступными после commit
async_session_maker = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False
)


async def init_db(db_engine: Optional[AsyncEngine] = None):
    """Создаёт недостающие таблицы"""
    import database.models  # noqa: F401  регистрирует модели в Base.metadata

    async with (db_engine or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)
