#handlers/quiz_handlers.py
import logging
import re
from typing import List, Union

from telegram import Update
from telegram.ext import CallbackQueryHandler, CommandHandler, ContextTypes
from telegram.constants import ParseMode
from telegram.error import TelegramError

from app_config import AppConfig
from state import QuizSessionStore
from utils import escape_markdown_v2, participant_display_name
from modules.quiz_engine import QuizEngine
from modules.quiz_errors import (
    InvalidQuizDefinitionError, NoActiveSessionError, NotAdminError,
    QuizNotFoundError, SessionAlreadyActiveError
)
from modules.quiz_formatting import (
    ANSWER_CALLBACK_PATTERN, format_answer_feedback, format_quiz_list, format_session_status
)
from modules.quiz_repository import JsonQuizRepository

logger = logging.getLogger(__name__)

ANSWER_CALLBACK_RE = re.compile(ANSWER_CALLBACK_PATTERN)

# Сколько ошибок валидации показывать в чате
MAX_VALIDATION_ERRORS_SHOWN = 5

class QuizHandlers:
    def __init__(self, app_config: AppConfig, engine: QuizEngine, store: QuizSessionStore, repository: JsonQuizRepository):
        self.app_config = app_config
        self.engine = engine
        self.store = store
        self.repository = repository

    async def _reply(self, update: Update, text: str) -> None:
        if not update.message:
            return
        try:
            await update.message.reply_text(text, parse_mode=ParseMode.MARKDOWN_V2)
        except TelegramError as e:
            logger.error(f"Не удалось ответить в чат {update.effective_chat.id if update.effective_chat else '?'}: {e}")

    async def start_quiz_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.effective_chat or not update.effective_user or not update.message:
            return

        chat_id = update.effective_chat.id
        user_id = update.effective_user.id

        if not context.args:
            await self._reply(update, escape_markdown_v2(
                f"Укажите ID викторины: /{self.app_config.commands.start_quiz} <id>. "
                f"Список: /{self.app_config.commands.list_quizzes}"
            ))
            return

        quiz_id = context.args[0].strip()
        logger.info(f"Команда запуска викторины '{quiz_id}' от {user_id} в чате {chat_id}")

        try:
            await self.engine.start_quiz(chat_id, user_id, quiz_id)
        except NotAdminError:
            await self._reply(update, escape_markdown_v2("⛔ Запускать викторины могут только администраторы чата."))
        except SessionAlreadyActiveError:
            await self._reply(update, escape_markdown_v2(
                f"В этом чате уже идёт викторина. Остановить: /{self.app_config.commands.stop_quiz}"
            ))
        except QuizNotFoundError:
            await self._reply(update, escape_markdown_v2(
                f"Викторина '{quiz_id}' не найдена. Список: /{self.app_config.commands.list_quizzes}"
            ))
        except InvalidQuizDefinitionError as e:
            details = e.errors[:MAX_VALIDATION_ERRORS_SHOWN] or [str(e)]
            text = f"❌ Викторину '{quiz_id}' нельзя запустить:\n" + "\n".join(f"• {d}" for d in details)
            await self._reply(update, escape_markdown_v2(text))

    async def stop_quiz_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.effective_chat or not update.effective_user:
            return

        chat_id = update.effective_chat.id
        user_id = update.effective_user.id
        try:
            await self.engine.stop_quiz(chat_id, user_id)
            logger.info(f"Викторина в чате {chat_id} остановлена пользователем {user_id}")
        except NoActiveSessionError:
            await self._reply(update, escape_markdown_v2("В этом чате нет активной викторины."))
        except NotAdminError:
            await self._reply(update, escape_markdown_v2("⛔ Остановить викторину может администратор или тот, кто её запустил."))

    async def quiz_status_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.effective_chat:
            return
        session = self.store.get(update.effective_chat.id)
        await self._reply(update, format_session_status(session, self.app_config.commands.start_quiz))

    async def list_quizzes_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        definitions = await self.repository.list_quizzes()
        await self._reply(update, format_quiz_list(definitions, self.app_config.commands.start_quiz))

    async def answer_callback(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        query = update.callback_query
        if not query or not query.from_user or not query.message:
            return

        match = ANSWER_CALLBACK_RE.match(query.data or "")
        if not match:
            logger.warning(f"Некорректные данные кнопки ответа: {query.data}")
            await self._answer_query(query, "Некорректная кнопка")
            return
        session_token = match.group(1)
        question_index, answer_index = int(match.group(2)), int(match.group(3))

        result = await self.engine.submit_answer(
            chat_id=query.message.chat.id,
            question_index=question_index,
            user_id=query.from_user.id,
            display_name=participant_display_name(query.from_user),
            answer_index=answer_index,
            session_token=session_token,
        )
        await self._answer_query(query, format_answer_feedback(result))

    @staticmethod
    async def _answer_query(query, text: str) -> None:
        try:
            await query.answer(text)
        except TelegramError as e:
            # Query устаревает через ~15 секунд, это не ошибка викторины
            logger.debug(f"Не удалось ответить на callback query: {e}")

    def get_handlers(self) -> List[Union[CommandHandler, CallbackQueryHandler]]:
        commands = self.app_config.commands
        return [
            CommandHandler(commands.start_quiz, self.start_quiz_command),
            CommandHandler(commands.stop_quiz, self.stop_quiz_command),
            CommandHandler(commands.quiz_status, self.quiz_status_command),
            CommandHandler(commands.list_quizzes, self.list_quizzes_command),
            CallbackQueryHandler(self.answer_callback, pattern=ANSWER_CALLBACK_PATTERN),
        ]
