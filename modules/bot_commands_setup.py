"""
Регистрация команд бота в Telegram Bot API (меню команд).
"""

import logging
from typing import TYPE_CHECKING, List

from telegram import (
    BotCommand,
    BotCommandScopeAllPrivateChats,
    BotCommandScopeAllGroupChats,
    BotCommandScopeAllChatAdministrators,
)
from telegram.error import TelegramError

if TYPE_CHECKING:
    from telegram.ext import Application
    from app_config import AppConfig

logger = logging.getLogger(__name__)


def build_bot_commands(app_config: "AppConfig") -> List[BotCommand]:
    commands = app_config.commands
    return [
        BotCommand(commands.start, "🚀 Начать работу с ботом"),
        BotCommand(commands.help, "ℹ️ Правила и команды"),
        BotCommand(commands.list_quizzes, "📚 Список викторин"),
        BotCommand(commands.start_quiz, "🏁 Запустить викторину (админ)"),
        BotCommand(commands.quiz_status, "📊 Состояние викторины"),
        BotCommand(commands.stop_quiz, "🛑 Остановить викторину"),
    ]


async def setup_bot_commands(application: "Application", app_config: "AppConfig") -> None:
    """
    Устанавливает команды бота для всех скоупов.
    Ошибка не мешает запуску: меню команд лишь подсказка для пользователей.
    """
    bot_commands = build_bot_commands(app_config)
    try:
        await application.bot.set_my_commands(bot_commands)
        for scope in (BotCommandScopeAllPrivateChats(), BotCommandScopeAllGroupChats(),
                      BotCommandScopeAllChatAdministrators()):
            await application.bot.set_my_commands(bot_commands, scope=scope)
        logger.info(f"✅ Команды бота установлены для всех скоупов ({len(bot_commands)} команд).")
    except TelegramError as e_set_cmd:
        logger.error(f"❌ Не удалось установить команды бота: {e_set_cmd}")
