#modules/quiz_transport.py
"""
Доставка сообщений викторины в чат.

Движок вызывает транспорт только после смены состояния и не ждёт
от него гарантий: ошибки логируются, прогресс идёт по таймерам.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from telegram import Bot

from .quiz_formatting import (
    build_answer_keyboard, format_announcement, format_error_notice,
    format_leaderboard, format_question, format_question_result
)
from .quiz_models import LeaderboardReport, QuestionResult, QuizQuestion
from .telegram_utils import MessageNotModifiedError, safe_edit_reply_markup, safe_send_message

logger = logging.getLogger(__name__)


class QuizTransport(ABC):
    """Вывод событий викторины. Все методы могут бросать исключения"""

    @abstractmethod
    async def render_announcement(
        self, chat_id: int, title: str, total_questions: int,
        question_time_seconds: int, start_delay_seconds: int
    ) -> None:
        ...

    @abstractmethod
    async def render_question(
        self, chat_id: int, question: QuizQuestion, question_index: int,
        total_questions: int, deadline_seconds: int, session_token: str
    ) -> Optional[Any]:
        """
        Публикует вопрос. session_token попадает в кнопки ответа.
        Возвращает идентификатор сообщения для disable_answering
        """

    @abstractmethod
    async def render_results(self, chat_id: int, result: QuestionResult) -> None:
        ...

    @abstractmethod
    async def render_leaderboard(self, chat_id: int, report: LeaderboardReport) -> None:
        ...

    @abstractmethod
    async def disable_answering(self, chat_id: int, message_handle: Any) -> None:
        ...

    @abstractmethod
    async def render_error(self, chat_id: int, text: str) -> None:
        ...


class TelegramQuizTransport(QuizTransport):
    """Транспорт поверх python-telegram-bot, повторы внутри safe_* функций"""

    def __init__(self, bot: Bot, leaderboard_display_limit: int = 10):
        self.bot = bot
        self.leaderboard_display_limit = leaderboard_display_limit

    async def render_announcement(self, chat_id, title, total_questions, question_time_seconds, start_delay_seconds):
        text = format_announcement(title, total_questions, question_time_seconds, start_delay_seconds)
        await safe_send_message(self.bot, chat_id, text)

    async def render_question(self, chat_id, question, question_index, total_questions, deadline_seconds, session_token):
        text = format_question(question, question_index, total_questions, deadline_seconds)
        keyboard = build_answer_keyboard(session_token, question_index, question.options)
        message = await safe_send_message(self.bot, chat_id, text, reply_markup=keyboard)
        return message.message_id if message is not None else None

    async def render_results(self, chat_id, result):
        await safe_send_message(self.bot, chat_id, format_question_result(result))

    async def render_leaderboard(self, chat_id, report):
        text = format_leaderboard(report, display_limit=self.leaderboard_display_limit)
        await safe_send_message(self.bot, chat_id, text)

    async def disable_answering(self, chat_id, message_handle):
        if message_handle is None:
            return
        try:
            await safe_edit_reply_markup(self.bot, chat_id, message_handle, reply_markup=None)
        except MessageNotModifiedError:
            logger.debug(f"Клавиатура сообщения {message_handle} в чате {chat_id} уже убрана")

    async def render_error(self, chat_id, text):
        await safe_send_message(self.bot, chat_id, format_error_notice(text))
