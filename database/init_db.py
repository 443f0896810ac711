"""
Скрипт для инициализации базы данных
Запускать перед первым запуском бота: python -m database.init_db
Флаг --drop пересоздаёт таблицы (ОСТОРОЖНО! Удалит все данные)
"""

import asyncio
import logging
import sys

from database.database import engine, init_db
from database.models import Base
from utils.logger import setup_logger

logger = logging.getLogger(__name__)


async def init_database(drop: bool = False):
    """Создает все таблицы в базе данных"""
    if drop:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        logger.warning("Таблицы удалены")

    await init_db()
    logger.info("✅ База данных успешно инициализирована!")


if __name__ == "__main__":
    setup_logger()
    asyncio.run(init_database(drop="--drop" in sys.argv))
