#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Детерминированные заменители таймеров, транспорта, источника викторин и прав доступа
"""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from modules.access_control import AccessControl
from modules.quiz_models import QuestionDefinition, QuizDefinition, QuizSettings
from modules.quiz_repository import QuizDefinitionProvider
from modules.quiz_timer import TimerFacility, TimerHandle
from modules.quiz_transport import QuizTransport
from modules.telegram_utils import TelegramMessageError

START_TIME = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeTimerFacility(TimerFacility):
    """Таймеры с ручным временем: колбэки выполняются только внутри advance()"""

    def __init__(self, start: datetime = START_TIME):
        self.current_time = start
        self._counter = 0
        self._pending: Dict[str, TimerHandle] = {}
        self._callbacks: Dict[str, Tuple[Callable[..., Any], Tuple[Any, ...]]] = {}
        self.scheduled: List[TimerHandle] = []
        self.cancelled: List[TimerHandle] = []

    def now(self) -> datetime:
        return self.current_time

    def schedule(self, delay_seconds, callback, *args, name=""):
        self._counter += 1
        handle = TimerHandle(
            job_id=f"fake_{self._counter}",
            name=name,
            fire_at=self.current_time + timedelta(seconds=delay_seconds),
        )
        self._pending[handle.job_id] = handle
        self._callbacks[handle.job_id] = (callback, args)
        self.scheduled.append(handle)
        return handle

    def cancel(self, handle):
        if handle is None or handle.job_id not in self._pending:
            return False
        del self._pending[handle.job_id]
        self.cancelled.append(handle)
        return True

    def pending(self, name_part: str = "") -> List[TimerHandle]:
        return sorted(
            (h for h in self._pending.values() if name_part in h.name),
            key=lambda h: (h.fire_at, h.job_id)
        )

    async def advance(self, seconds: float) -> None:
        """Сдвигает время, по порядку выполняя все наступившие колбэки"""
        target = self.current_time + timedelta(seconds=seconds)
        while True:
            due = [h for h in self.pending() if h.fire_at <= target]
            if not due:
                break
            handle = due[0]
            self.current_time = max(self.current_time, handle.fire_at)
            del self._pending[handle.job_id]
            callback, args = self._callbacks[handle.job_id]
            await callback(*args)
        self.current_time = target

    async def fire(self, handle: TimerHandle) -> None:
        """Выполняет колбэк, даже если таймер отменён (таймер, уже запущенный в момент отмены)"""
        self._pending.pop(handle.job_id, None)
        callback, args = self._callbacks[handle.job_id]
        await callback(*args)


class FakeTransport(QuizTransport):
    """Записывает все вызовы. Методы из fail_on бросают TelegramMessageError"""

    def __init__(self, fail_on: Optional[Set[str]] = None):
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []
        self.fail_on: Set[str] = set(fail_on or ())
        self._next_message_id = 100

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, args))
        if method in self.fail_on:
            raise TelegramMessageError(f"{method} недоступен")

    def calls_of(self, method: str) -> List[Tuple[Any, ...]]:
        return [args for name, args in self.calls if name == method]

    async def render_announcement(self, chat_id, title, total_questions, question_time_seconds, start_delay_seconds):
        self._record("render_announcement", chat_id, title, total_questions, question_time_seconds, start_delay_seconds)

    async def render_question(self, chat_id, question, question_index, total_questions, deadline_seconds, session_token):
        self._record(
            "render_question", chat_id, question, question_index, total_questions, deadline_seconds, session_token
        )
        self._next_message_id += 1
        return self._next_message_id

    async def render_results(self, chat_id, result):
        self._record("render_results", chat_id, result)

    async def render_leaderboard(self, chat_id, report):
        self._record("render_leaderboard", chat_id, report)

    async def disable_answering(self, chat_id, message_handle):
        self._record("disable_answering", chat_id, message_handle)

    async def render_error(self, chat_id, text):
        self._record("render_error", chat_id, text)


class FakeProvider(QuizDefinitionProvider):
    def __init__(self, *definitions: QuizDefinition):
        self.definitions = {d.quiz_id: d for d in definitions}

    async def load(self, quiz_id):
        return self.definitions.get(quiz_id)


class FakeAccessControl(AccessControl):
    def __init__(self, admins: Optional[Set[int]] = None):
        self.admins = set(admins or ())

    async def is_admin(self, chat_id, user_id):
        return user_id in self.admins


def make_definition(
    quiz_id: str = "capitals",
    question_count: int = 2,
    correct_option: int = 0,
    settings: Optional[QuizSettings] = None,
) -> QuizDefinition:
    questions = tuple(
        QuestionDefinition(
            text=f"Вопрос номер {i + 1}?",
            options=(f"Ответ {i}-A", f"Ответ {i}-B", f"Ответ {i}-C", f"Ответ {i}-D"),
            correct_option=correct_option,
        )
        for i in range(question_count)
    )
    return QuizDefinition(
        quiz_id=quiz_id,
        title="Столицы мира",
        questions=questions,
        category="География",
        settings=settings,
    )
