#utils.py
"""Общие помощники: время, имена участников, MarkdownV2 и русские числительные."""

import logging
import re
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional, Union

from telegram import User as TelegramUser

logger = logging.getLogger(__name__)

# Символы, которые MarkdownV2 требует экранировать (обратный слэш первым)
_MARKDOWN_V2_SPECIAL = re.compile(r"([\\_*\[\]()~`>#+\-=|{}.!])")


def get_current_utc_time() -> datetime:
    return datetime.now(timezone.utc)


def participant_display_name(user: Optional[TelegramUser]) -> str:
    """Имя участника в таблицах: имя, иначе @username, иначе id"""
    if user is None:
        return "Неизвестный участник"
    if user.first_name:
        return user.first_name
    if user.username:
        return f"@{user.username}"
    return f"Участник {user.id}"


@lru_cache(maxsize=1024)
def _escape_cached(text: str) -> str:
    return _MARKDOWN_V2_SPECIAL.sub(r"\\\1", text)


def escape_markdown_v2(text: Union[str, int, float]) -> str:
    """
    Экранирует текст для parse_mode=MarkdownV2.

    Варианты ответов и заголовки повторяются в каждом вопросе,
    поэтому результат кэшируется.
    """
    if text is None:
        raise ValueError("text не может быть None")
    return _escape_cached(str(text))


def pluralize(count: int, one: str, few: str, many: str) -> str:
    """'1 вопрос', '3 вопроса', '11 вопросов'"""
    n = abs(int(count))
    last_two = n % 100
    last = n % 10
    if last == 1 and last_two != 11:
        form = one
    elif last in (2, 3, 4) and not 12 <= last_two <= 14:
        form = few
    else:
        form = many
    return f"{count} {form}"


def format_duration(seconds: Optional[Union[int, float]]) -> str:
    """Длительность для сообщений: '45 сек', '2 мин', '1 мин 15 сек'"""
    if seconds is None or seconds < 0:
        return "N/A"
    minutes, rest = divmod(int(seconds), 60)
    if not minutes:
        return f"{rest} сек"
    return f"{minutes} мин {rest} сек" if rest else f"{minutes} мин"
