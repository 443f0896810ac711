import asyncio
from aiogram import Bot
from config import settings

async def check_telegram_webhook():
    bot = Bot(token=settings.BOT_TOKEN)
    try:
        info = await bot.get_webhook_info()
    finally:
        await bot.session.close()

    print("="*60)
    print("ПРОВЕРКА TELEGRAM WEBHOOK")
    print("="*60)
    print(f"Текущий webhook URL: {info.url or 'НЕ УСТАНОВЛЕН'}")
    print(f"Ожидаемый URL: {settings.WEBHOOK_URL}{settings.WEBHOOK_PATH}")
    print(f"Обновлений в очереди: {info.pending_update_count}")
    if info.last_error_message:
        print(f"Последняя ошибка: {info.last_error_message}")
    print("="*60)

if __name__ == "__main__":
    asyncio.run(check_telegram_webhook())
