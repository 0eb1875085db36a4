#!/usr/bin/env python3
"""
Безопасные утилиты для работы с Telegram API

Включает:
- Декоратор для вызовов Telegram API с повтором при сетевых ошибках
- Разбиение длинных сообщений
- Снятие клавиатуры с сообщения вопроса
"""

import asyncio
import logging
from datetime import timedelta
from functools import wraps
from typing import Any, Callable, List, Optional, Union

from telegram import Bot, InlineKeyboardMarkup, Message
from telegram.constants import ParseMode
from telegram.error import BadRequest, Forbidden, NetworkError, RetryAfter, TelegramError, TimedOut

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 4096
# Дольше ждать не имеет смысла: вопрос длится секунды
MAX_RETRY_AFTER_SECONDS = 5.0

class TelegramMessageError(Exception):
    """Базовое исключение для ошибок отправки сообщений"""
    pass

class MessageTooLongError(TelegramMessageError):
    """Сообщение слишком длинное для Telegram"""
    pass

class UserBlockedError(TelegramMessageError):
    """Бот заблокирован или исключён из чата"""
    pass

class ChatNotFoundError(TelegramMessageError):
    """Чат не найден"""
    pass

class MessageNotModifiedError(TelegramMessageError):
    """Сообщение уже в нужном состоянии"""
    pass

def _retry_after_seconds(error: RetryAfter) -> float:
    retry_after = error.retry_after
    if isinstance(retry_after, timedelta):
        return retry_after.total_seconds()
    return float(retry_after)

def _translate_bad_request(error: BadRequest) -> TelegramMessageError:
    error_message = str(error).lower()
    if "message is not modified" in error_message:
        return MessageNotModifiedError(str(error))
    if "chat not found" in error_message:
        return ChatNotFoundError(f"Чат не найден: {error}")
    if "message is too long" in error_message:
        return MessageTooLongError("Сообщение слишком длинное для Telegram")
    if "message to edit not found" in error_message:
        return TelegramMessageError("Сообщение для редактирования не найдено")
    return TelegramMessageError(f"Ошибка запроса: {error}")

def safe_telegram_call(
    max_retries: int = 1,
    base_delay: float = 0.1,
    max_delay: float = 0.5,
    exponential_base: float = 1.5
):
    """
    Декоратор для безопасного вызова Telegram API с retry

    Любая ошибка Telegram превращается в TelegramMessageError (или подкласс),
    чтобы вызывающий код ловил одно семейство исключений.

    Args:
        max_retries: Количество повторов после первой попытки
        base_delay: Базовая задержка между попытками (секунды)
        max_delay: Максимальная задержка между попытками (секунды)
        exponential_base: База для экспоненциального backoff
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            last_exception: Optional[Exception] = None

            for attempt in range(max_retries + 1):
                try:
                    return await func(*args, **kwargs)

                # BadRequest и TimedOut наследуются от NetworkError, порядок важен
                except BadRequest as e:
                    translated = _translate_bad_request(e)
                    if isinstance(translated, MessageNotModifiedError):
                        logger.debug(f"{func.__name__}: сообщение не изменилось")
                    else:
                        logger.warning(f"Ошибка запроса Telegram API в {func.__name__}: {e}")
                    raise translated from e

                except Forbidden as e:
                    logger.warning(f"Бот не может писать в чат: {e}")
                    raise UserBlockedError(f"Бот заблокирован или исключён из чата: {e}") from e

                except RetryAfter as e:
                    wait_time = _retry_after_seconds(e)
                    last_exception = e
                    if attempt >= max_retries or wait_time > MAX_RETRY_AFTER_SECONDS:
                        logger.error(f"Telegram API просит подождать {wait_time}с, повтор не выполняется")
                        raise TelegramMessageError(f"Превышен лимит запросов: {e}") from e
                    logger.warning(f"Telegram API просит подождать {wait_time}с (попытка {attempt + 1}/{max_retries + 1})")
                    await asyncio.sleep(wait_time)

                except (TimedOut, NetworkError) as e:
                    last_exception = e
                    if attempt >= max_retries:
                        logger.error(f"Исчерпаны попытки после сетевых ошибок: {e}")
                        raise TelegramMessageError(f"Не удалось выполнить операцию после {max_retries + 1} попыток: {e}") from e
                    delay = min(base_delay * (exponential_base ** attempt), max_delay)
                    logger.warning(f"Сетевая ошибка, повтор через {delay:.1f}с (попытка {attempt + 1}/{max_retries + 1}): {e}")
                    await asyncio.sleep(delay)

                except TelegramError as e:
                    logger.error(f"Ошибка Telegram API: {e}")
                    raise TelegramMessageError(f"Ошибка Telegram API: {e}") from e

            raise TelegramMessageError(
                f"Операция не удалась после {max_retries + 1} попыток. Последняя ошибка: {last_exception}"
            )

        return wrapper
    return decorator

def _chunk_line(line: str, limit: int) -> List[str]:
    """Режет слишком длинную строку, не отрывая экранирующий слэш от символа"""
    chunks: List[str] = []
    while len(line) > limit:
        cut = limit
        trailing = len(line[:cut]) - len(line[:cut].rstrip("\\"))
        if trailing % 2 and cut > 1:
            cut -= 1
        chunks.append(line[:cut])
        line = line[cut:]
    chunks.append(line)
    return chunks

def split_long_text(text: str, limit: int = MAX_MESSAGE_LENGTH) -> List[str]:
    """Разбивает текст по строкам на части не длиннее limit"""
    if len(text) <= limit:
        return [text]

    parts: List[str] = []
    current_part = ""
    for line in text.split('\n'):
        if len(current_part) + len(line) + 1 <= limit:
            current_part = f"{current_part}\n{line}" if current_part else line
        else:
            if current_part:
                parts.append(current_part)
            chunks = _chunk_line(line, limit)
            parts.extend(chunks[:-1])
            current_part = chunks[-1]
    if current_part:
        parts.append(current_part)
    return parts

@safe_telegram_call(max_retries=2, base_delay=0.1)
async def safe_send_message(
    bot: Bot,
    chat_id: Union[int, str],
    text: str,
    parse_mode: Optional[str] = ParseMode.MARKDOWN_V2,
    reply_markup: Optional[InlineKeyboardMarkup] = None,
    **kwargs
) -> Message:
    """
    Отправка сообщения с разбиением длинных текстов

    Клавиатура прикрепляется к последней части. Возвращается последнее сообщение.

    Raises:
        TelegramMessageError: При ошибках Telegram API
    """
    parts = split_long_text(text)
    if len(parts) > 1:
        logger.info(f"Сообщение слишком длинное ({len(text)} символов), разбиваю на {len(parts)} частей")

    message = None
    for i, part in enumerate(parts):
        is_last = i == len(parts) - 1
        message = await bot.send_message(
            chat_id=chat_id,
            text=part,
            parse_mode=parse_mode,
            reply_markup=reply_markup if is_last else None,
            **kwargs
        )
    return message

@safe_telegram_call(max_retries=1, base_delay=0.1)
async def safe_edit_reply_markup(
    bot: Bot,
    chat_id: Union[int, str],
    message_id: int,
    reply_markup: Optional[InlineKeyboardMarkup] = None
) -> Union[Message, bool]:
    """Заменяет (или убирает при reply_markup=None) клавиатуру сообщения"""
    return await bot.edit_message_reply_markup(
        chat_id=chat_id,
        message_id=message_id,
        reply_markup=reply_markup
    )

def format_error_message(error: Exception) -> str:
    """Понятное описание ошибки для логов и ответов пользователю"""
    if isinstance(error, UserBlockedError):
        return "Бот заблокирован или исключён из чата"
    elif isinstance(error, ChatNotFoundError):
        return "Чат не найден"
    elif isinstance(error, MessageTooLongError):
        return "Сообщение слишком длинное"
    elif isinstance(error, TelegramMessageError):
        return f"Ошибка Telegram: {error}"
    else:
        return f"Произошла ошибка: {error}"

__all__ = [
    'safe_telegram_call',
    'safe_send_message',
    'safe_edit_reply_markup',
    'split_long_text',
    'format_error_message',
    'TelegramMessageError',
    'MessageTooLongError',
    'MessageNotModifiedError',
    'UserBlockedError',
    'ChatNotFoundError'
]
