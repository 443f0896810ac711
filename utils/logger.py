import logging
from logging.handlers import RotatingFileHandler
import sys

def setup_logger(log_file: str = 'crash_football.log', level: int = logging.INFO):
    """Настройка логирования"""

    # Формат логов
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Консольный handler
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)

    # Файловый handler (автоматическая ротация)
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setFormatter(formatter)

    # Корневой logger
    logger = logging.getLogger()
    logger.setLevel(level)
    # Повторный вызов не должен дублировать handlers
    for handler in list(logger.handlers):
        if getattr(handler, '_crash_football', False):
            logger.removeHandler(handler)
            handler.close()
    for handler in (console_handler, file_handler):
        handler._crash_football = True
        logger.addHandler(handler)

    return logger
