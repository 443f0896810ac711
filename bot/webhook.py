from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import json
import logging

from config import settings

# Настройка логирования
logger = logging.getLogger(__name__)

# Глобальные переменные
bot = None
dp = None


# --- Установка экземпляров ---
def set_webhook_bot(bot_instance):
    global bot
    bot = bot_instance
    logger.info("Экземпляр бота успешно установлен")


def set_webhook_dispatcher(dispatcher):
    global dp
    dp = dispatcher
    logger.info("Dispatcher успешно установлен")


# --- Регистрация эндпоинтов ---
def setup_webhooks(app: FastAPI):
    @app.post(settings.WEBHOOK_PATH)
    async def telegram_webhook(request: Request):
        body = await request.body()
        logger.debug(f"Получен запрос webhook: {body.decode('utf-8')}")
        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            logger.error(f"Ошибка декодирования JSON: {e}")
            return JSONResponse({"error": "Invalid JSON"}, status_code=400)

        if bot and dp:
            try:
                await dp.feed_raw_update(bot, data)
                logger.debug("Обновление передано в роутеры для обработки")
            except Exception as e:
                # Telegram повторяет неподтверждённые обновления, поэтому ошибка только логируется
                logger.exception(f"Ошибка в webhook: {e}")
        else:
            logger.warning("Обновление не обработано: bot или dp не инициализированы")
        return {"ok": True}

    @app.get("/health")
    async def health():
        return {"ok": True, "bot": bot is not None}

    logger.info("Webhook endpoints registered")
