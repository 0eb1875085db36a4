#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Тесты безопасных вызовов Telegram API: повторы, RetryAfter, перевод ошибок
"""

import sys
import unittest
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from telegram.error import BadRequest, Forbidden, NetworkError, RetryAfter, TimedOut

from modules.telegram_utils import (
    ChatNotFoundError, MessageNotModifiedError, TelegramMessageError, UserBlockedError,
    safe_edit_reply_markup, safe_send_message, safe_telegram_call, split_long_text
)


class TestSafeTelegramCall(unittest.IsolatedAsyncioTestCase):

    async def test_retries_network_errors(self):
        call = AsyncMock(side_effect=[NetworkError("boom"), TimedOut(), "ok"])
        wrapped = safe_telegram_call(max_retries=2)(call)
        with patch("modules.telegram_utils.asyncio.sleep", new=AsyncMock()) as sleep:
            self.assertEqual(await wrapped(), "ok")
        self.assertEqual(call.await_count, 3)
        self.assertEqual(sleep.await_count, 2)

    async def test_gives_up_after_max_retries(self):
        call = AsyncMock(side_effect=NetworkError("down"))
        wrapped = safe_telegram_call(max_retries=1)(call)
        with patch("modules.telegram_utils.asyncio.sleep", new=AsyncMock()):
            with self.assertRaises(TelegramMessageError):
                await wrapped()
        self.assertEqual(call.await_count, 2)

    async def test_bad_request_not_retried(self):
        call = AsyncMock(side_effect=BadRequest("Chat not found"))
        wrapped = safe_telegram_call(max_retries=3)(call)
        with self.assertRaises(ChatNotFoundError):
            await wrapped()
        self.assertEqual(call.await_count, 1)

    async def test_message_not_modified(self):
        call = AsyncMock(side_effect=BadRequest("Message is not modified: specified new message content"))
        with self.assertRaises(MessageNotModifiedError):
            await safe_telegram_call()(call)()

    async def test_forbidden(self):
        call = AsyncMock(side_effect=Forbidden("bot was kicked from the group chat"))
        with self.assertRaises(UserBlockedError):
            await safe_telegram_call()(call)()

    async def test_retry_after_waits(self):
        call = AsyncMock(side_effect=[RetryAfter(2), "ok"])
        wrapped = safe_telegram_call(max_retries=1)(call)
        with patch("modules.telegram_utils.asyncio.sleep", new=AsyncMock()) as sleep:
            self.assertEqual(await wrapped(), "ok")
        sleep.assert_awaited_once_with(2.0)

    async def test_long_retry_after_not_awaited(self):
        call = AsyncMock(side_effect=RetryAfter(60))
        wrapped = safe_telegram_call(max_retries=3)(call)
        with patch("modules.telegram_utils.asyncio.sleep", new=AsyncMock()) as sleep:
            with self.assertRaises(TelegramMessageError):
                await wrapped()
        sleep.assert_not_awaited()


class TestSafeHelpers(unittest.IsolatedAsyncioTestCase):

    async def test_send_message_attaches_keyboard_to_last_part(self):
        bot = MagicMock()
        bot.send_message = AsyncMock(side_effect=lambda **kwargs: MagicMock(message_id=len(bot.send_message.await_args_list)))
        keyboard = MagicMock()
        text = "\n".join("строка " * 50 for _ in range(30))

        await safe_send_message(bot, -1, text, reply_markup=keyboard)

        calls = bot.send_message.await_args_list
        self.assertGreater(len(calls), 1)
        self.assertTrue(all(c.kwargs["reply_markup"] is None for c in calls[:-1]))
        self.assertIs(calls[-1].kwargs["reply_markup"], keyboard)

    async def test_edit_reply_markup(self):
        bot = MagicMock()
        bot.edit_message_reply_markup = AsyncMock(return_value=True)
        await safe_edit_reply_markup(bot, -1, 42)
        bot.edit_message_reply_markup.assert_awaited_once_with(chat_id=-1, message_id=42, reply_markup=None)

    def test_split_long_text(self):
        text = "\n".join(["x" * 100] * 100)
        parts = split_long_text(text, limit=1000)
        self.assertTrue(all(len(p) <= 1000 for p in parts))
        self.assertEqual("\n".join(parts), text)
        self.assertEqual(split_long_text("коротко"), ["коротко"])

    def test_split_single_long_line(self):
        line = "y" * 2500
        parts = split_long_text(line, limit=1000)
        self.assertEqual([len(p) for p in parts], [1000, 1000, 500])
        self.assertEqual("".join(parts), line)

    def test_split_keeps_escape_with_char(self):
        line = "a" * 999 + "\\." + "b" * 100
        parts = split_long_text(line, limit=1000)
        self.assertEqual(parts[0], "a" * 999)
        self.assertTrue(parts[1].startswith("\\."))
        self.assertEqual("".join(parts), line)


if __name__ == "__main__":
    unittest.main()
