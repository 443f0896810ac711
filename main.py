import argparse
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from fastapi import FastAPI

from bot.handlers import router, store
from bot.webhook import setup_webhooks, set_webhook_bot, set_webhook_dispatcher
from config import settings, BOT_TOKEN, WEBHOOK_URL, WEBHOOK_PATH
from database.database import engine, init_db
from utils.logger import setup_logger

setup_logger(level=logging.DEBUG if settings.debug else logging.INFO)
logger = logging.getLogger(__name__)

bot: Optional[Bot] = None
dp: Optional[Dispatcher] = None


def create_bot() -> Bot:
    return Bot(token=BOT_TOKEN, default=DefaultBotProperties(parse_mode=ParseMode.HTML))


def create_dispatcher() -> Dispatcher:
    dispatcher = Dispatcher()
    dispatcher.include_router(router)
    return dispatcher


async def shutdown(current_bot: Optional[Bot]):
    """Останавливает циклы матчей и закрывает соединения"""
    store.cancel_all()
    if current_bot:
        await current_bot.session.close()
    await engine.dispose()
    logger.info("Бот остановлен")


# ==================== WEBHOOK ====================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Жизненный цикл webhook-сервера"""
    global bot, dp

    try:
        logger.info("Инициализация базы данных...")
        await init_db()

        bot = create_bot()
        dp = create_dispatcher()
        set_webhook_bot(bot)
        set_webhook_dispatcher(dp)

        webhook_url = f"{WEBHOOK_URL}{WEBHOOK_PATH}"
        await bot.set_webhook(url=webhook_url, drop_pending_updates=True)
        logger.info(f"Telegram webhook установлен: {webhook_url}")
        logger.info(f"Webhook сервер слушает порт {settings.WEBHOOK_PORT}")

        yield

    except Exception as e:
        logger.error(f"Ошибка при инициализации: {e}")
        raise
    finally:
        if bot:
            await bot.delete_webhook(drop_pending_updates=True)
        await shutdown(bot)


app = FastAPI(lifespan=lifespan)
setup_webhooks(app)


async def serve_webhook():
    config = uvicorn.Config(
        app,
        host="0.0.0.0",
        port=settings.WEBHOOK_PORT,
        log_level="debug" if settings.debug else "info"
    )
    await uvicorn.Server(config).serve()


# ==================== POLLING ====================

async def run_polling():
    """Локальный запуск без публичного URL"""
    await init_db()
    polling_bot = create_bot()
    try:
        await polling_bot.delete_webhook(drop_pending_updates=True)
        logger.info("Запуск в режиме polling")
        await create_dispatcher().start_polling(polling_bot)
    finally:
        await shutdown(polling_bot)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Crash Football bot")
    parser.add_argument("--polling", action="store_true", help="long polling вместо webhook")
    args = parser.parse_args()
    try:
        asyncio.run(run_polling() if args.polling else serve_webhook())
    except KeyboardInterrupt:
        logger.info("Остановка сервера...")
