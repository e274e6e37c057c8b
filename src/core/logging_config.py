"""
Logging — конфигурация логирования движка

Все модули пишут в логгеры вида ``logging.getLogger(__name__)``,
то есть в поддерево ``src``. setup_logging навешивает handlers
на корневой логгер пакета.
"""

import logging
from pathlib import Path
from typing import Optional, Union

ROOT_LOGGER_NAME = "src"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    level: Union[int, str] = logging.INFO,
    console_output: bool = True,
    log_file: Optional[Union[str, Path]] = None,
) -> logging.Logger:
    """
    Настройка логирования пакета.

    Args:
        level: уровень логирования (int или имя уровня, например "DEBUG")
        console_output: писать ли в stderr
        log_file: путь к файлу лога (None — без файла)

    Returns:
        Настроенный корневой логгер пакета
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {level}")

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    # Повторный вызов не должен дублировать handlers
    logger.handlers.clear()

    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("Logging initialized (level=%s)", logging.getLevelName(level))
    return logger
