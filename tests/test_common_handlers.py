#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Тесты /start, /help, меню команд бота и сборки Application
"""

import sys
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from telegram.error import TelegramError

from app_config import CommandConfig
from bot import build_application
from handlers.common_handlers import CommonHandlers
from modules.bot_commands_setup import build_bot_commands, setup_bot_commands
from modules.quiz_engine import QuizEngineConfig
from state import QuizSessionStore


def make_app_config():
    app_config = MagicMock()
    app_config.commands = CommandConfig({})
    return app_config


class TestCommonHandlers(unittest.IsolatedAsyncioTestCase):

    async def test_start_lists_commands(self):
        handlers = CommonHandlers(make_app_config())
        update = MagicMock()
        update.effective_user.first_name = "Алиса"
        update.message.reply_text = AsyncMock()

        await handlers.start_command(update, MagicMock())

        text = update.message.reply_text.await_args.args[0]
        self.assertIn("Алиса", text)
        self.assertIn("/startquiz", text)
        self.assertIn("/quizzes", text)

    async def test_help_survives_telegram_error(self):
        handlers = CommonHandlers(make_app_config())
        update = MagicMock()
        update.message.reply_text = AsyncMock(side_effect=TelegramError("fail"))
        await handlers.help_command(update, MagicMock())
        update.message.reply_text.assert_awaited_once()


class TestBotCommands(unittest.IsolatedAsyncioTestCase):

    def test_build_commands(self):
        names = [c.command for c in build_bot_commands(make_app_config())]
        self.assertEqual(sorted(names), sorted(["start", "help", "quizzes", "startquiz", "quizstatus", "stopquiz"]))

    async def test_setup_sets_all_scopes(self):
        application = MagicMock()
        application.bot.set_my_commands = AsyncMock()
        await setup_bot_commands(application, make_app_config())
        self.assertEqual(application.bot.set_my_commands.await_count, 4)

    async def test_setup_error_is_logged(self):
        application = MagicMock()
        application.bot.set_my_commands = AsyncMock(side_effect=TelegramError("fail"))
        await setup_bot_commands(application, make_app_config())


class TestBuildApplication(unittest.TestCase):

    def test_bot_data_holds_only_session_store(self):
        app_config = MagicMock()
        app_config.bot_token = "123456:TEST-TOKEN"
        app_config.commands = CommandConfig({})
        app_config.paths.quizzes_dir = Path("data/quizzes")
        app_config.leaderboard_display_limit = 10
        app_config.engine_config.return_value = QuizEngineConfig()

        application = build_application(app_config, MagicMock())

        self.assertEqual(set(application.bot_data), {"quiz_store"})
        self.assertIsInstance(application.bot_data["quiz_store"], QuizSessionStore)


if __name__ == "__main__":
    unittest.main()
