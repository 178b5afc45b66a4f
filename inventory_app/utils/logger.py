# inventory_app/utils/logger.py
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from inventory_app import config

LOGGER_NAME = "inventory_app"


def setup_logger() -> logging.Logger:
    """
    Настройка логгера приложения:
    - консоль всегда,
    - файл с ротацией раз в сутки, если задан LOG_DIR,
    - единый формат с временем и уровнем.
    Повторный вызов ничего не дублирует.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(config.LOG_LEVEL.upper())

    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if config.LOG_DIR:
        log_dir = Path(config.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = TimedRotatingFileHandler(
            filename=log_dir / "inventory.log",
            when="midnight",
            interval=1,
            backupCount=7,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.info("Логгер настроен (уровень %s)", config.LOG_LEVEL.upper())
    return logger
