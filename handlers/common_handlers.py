#handlers/common_handlers.py
import logging
from typing import List

from telegram import Update
from telegram.ext import ContextTypes, CommandHandler
from telegram.constants import ParseMode
from telegram.error import TelegramError

from app_config import AppConfig
from utils import escape_markdown_v2

logger = logging.getLogger(__name__)

class CommonHandlers:
    def __init__(self, app_config: AppConfig):
        self.app_config = app_config

    def _commands_block(self) -> str:
        commands = self.app_config.commands
        return (
            f"/{commands.list_quizzes} \\- {escape_markdown_v2('список викторин')}\n"
            f"/{commands.start_quiz} {escape_markdown_v2('<id>')} \\- {escape_markdown_v2('запустить викторину (админ)')}\n"
            f"/{commands.quiz_status} \\- {escape_markdown_v2('состояние текущей викторины')}\n"
            f"/{commands.stop_quiz} \\- {escape_markdown_v2('остановить викторину (админ/инициатор)')}\n"
            f"/{commands.help} \\- {escape_markdown_v2('показать справку')}"
        )

    async def start_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.effective_user or not update.message:
            return

        user = update.effective_user
        welcome_text = (
            f"Привет, {escape_markdown_v2(user.first_name or '')}\\! Я провожу викторины на скорость\\.\n\n"
            f"Доступные команды:\n{self._commands_block()}"
        )
        try:
            await update.message.reply_text(welcome_text, parse_mode=ParseMode.MARKDOWN_V2)
        except TelegramError as e:
            logger.error(f"Ошибка при отправке start_command: {e}")

    async def help_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.message:
            return

        rules = [
            "Правильный ответ: +1 очко",
            "Первый правильный ответ на вопрос: ещё +1",
            "Два и больше правильных ответа подряд: ещё +1",
            "Неверный ответ сбрасывает серию, очки не отнимаются",
            "На каждый вопрос можно ответить только один раз",
        ]
        help_text = (
            f"*{escape_markdown_v2('Справка по командам:')}*\n\n"
            f"{self._commands_block()}\n\n"
            f"*{escape_markdown_v2('🎯 Правила начисления очков')}*\n"
            + "\n".join(escape_markdown_v2(f"• {rule}") for rule in rules)
        )
        try:
            await update.message.reply_text(help_text, parse_mode=ParseMode.MARKDOWN_V2)
        except TelegramError as e:
            logger.error(f"Ошибка при отправке help_command: {e}")

    def get_handlers(self) -> List[CommandHandler]:
        return [
            CommandHandler(self.app_config.commands.start, self.start_command),
            CommandHandler(self.app_config.commands.help, self.help_command),
        ]
