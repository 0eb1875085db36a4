#!/usr/bin/env python3
"""
Централизованная настройка логирования Quiz Battle Bot

Включает:
- Цветной вывод в консоль
- Ежедневную ротацию файлов (общий лог и лог ошибок)
- Логирование событий викторины с контекстом чата и пользователя
"""

import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s | %(levelname)-8s | %(name)-24s | %(funcName)-24s | %(lineno)-3d | %(message)s'

LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG, "INFO": logging.INFO,
    "WARNING": logging.WARNING, "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL
}

class ColoredFormatter(logging.Formatter):
    """Форматтер с цветным выводом для консоли"""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname)
        if not color:
            return super().format(record)
        # Копия записи, чтобы цвет не попал в файловые обработчики
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{color}{record.levelname}{self.RESET}"
        return super().format(colored)

class QuizContextFormatter(logging.Formatter):
    """Файловый форматтер: добавляет chat_id/user_id/quiz_id, если они переданы через extra"""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        context_parts = []
        for attr in ('chat_id', 'user_id', 'quiz_id', 'event_type'):
            value = getattr(record, attr, None)
            if value is not None:
                context_parts.append(f"{attr}={value}")
        if context_parts:
            return f"{base} | {' '.join(context_parts)}"
        return base

def setup_logging(
    log_level: str = "INFO",
    log_dir: str = "logs",
    console_output: bool = True,
    file_output: bool = True,
    backup_count: int = 3
) -> None:
    """
    Настраивает корневой логгер

    Args:
        log_level: Уровень логирования (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Директория для логов
        console_output: Включить вывод в консоль
        file_output: Включить вывод в файл
        backup_count: Сколько дней хранить ротируемые файлы
    """
    level = LOG_LEVEL_MAP.get(log_level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt='%H:%M:%S'))
        root_logger.addHandler(console_handler)

    if file_output:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_formatter = QuizContextFormatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')
        date_suffix = datetime.now().strftime('%d.%m.%y')

        file_handler = logging.handlers.TimedRotatingFileHandler(
            log_path / f"bot_{date_suffix}.log",
            when='midnight',
            interval=1,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(file_formatter)
        root_logger.addHandler(file_handler)

        error_handler = logging.handlers.TimedRotatingFileHandler(
            log_path / f"errors_{date_suffix}.log",
            when='midnight',
            interval=1,
            backupCount=backup_count,
            encoding='utf-8'
        )
        error_handler.setLevel(logging.ERROR)
        error_handler.setFormatter(file_formatter)
        root_logger.addHandler(error_handler)

    # Сторонние библиотеки слишком разговорчивы на INFO
    logging.getLogger('telegram').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)
    logging.getLogger('httpcore').setLevel(logging.WARNING)
    logging.getLogger('apscheduler').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Логирование настроено: уровень={log_level}, консоль={console_output}, файл={file_output}"
    )

def log_quiz_event(
    logger: logging.Logger,
    event_type: str,
    message: str,
    chat_id: int,
    user_id: Optional[int] = None,
    quiz_id: Optional[str] = None,
    level: int = logging.INFO
) -> None:
    """
    Логирует событие викторины (start, question, timeout, answer, finish, error)

    Args:
        logger: Логгер для записи
        event_type: Тип события
        message: Сообщение
        chat_id: ID чата
        user_id: ID пользователя (опционально)
        quiz_id: ID викторины (опционально)
        level: Уровень логирования
    """
    extra = {'chat_id': chat_id, 'event_type': event_type}
    if user_id is not None:
        extra['user_id'] = user_id
    if quiz_id is not None:
        extra['quiz_id'] = quiz_id
    logger.log(level, f"[QUIZ:{event_type.upper()}] {message}", extra=extra)

__all__ = [
    'setup_logging',
    'log_quiz_event',
    'ColoredFormatter',
    'QuizContextFormatter',
    'LOG_LEVEL_MAP'
]
