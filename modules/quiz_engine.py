# modules/quiz_engine.py
"""
Движок викторины: конечный автомат сессии.

    SETUP --(задержка старта)--> RUNNING --(дедлайн)--> INTERMISSION --(перерыв)--> RUNNING ...
    любое незавершённое состояние --(конец вопросов / стоп / ошибка данных)--> COMPLETED

Переходы выполняются под session.lock и без I/O. Сообщения в чат
отправляются после освобождения блокировки; их ошибки логируются
и не влияют на ход викторины.

Колбэки таймеров получают (chat_id, session_id, expected_index) и ничего
не делают, если сессия уже другая или состояние/индекс не совпадают.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from utils import get_current_utc_time

from .access_control import AccessControl
from .answer_scorer import score_answer
from .logger_config import log_quiz_event
from .quiz_errors import (
    AnswerRejection, InvalidQuizDefinitionError, NoActiveSessionError,
    NotAdminError, QuizNotFoundError, SessionAlreadyActiveError
)
from .quiz_models import (
    ANSWER_LABELS, AnswerResult, EndReason, LeaderboardReport, QuestionResult,
    QuizQuestion, QuizSession, QuizSettings, SessionStatus
)
from .quiz_repository import QuizDefinitionProvider
from .quiz_timer import TimerFacility
from .quiz_transport import QuizTransport
from .quiz_validator import QuizValidator
from .results_aggregator import build_question_result, finalize
from .telegram_utils import format_error_message

logger = logging.getLogger(__name__)

# Индекс "до первого вопроса", его ждёт колбэк задержки старта
BEFORE_FIRST_QUESTION = -1


@dataclass(frozen=True)
class QuizEngineConfig:
    """Политики движка. Значения по умолчанию совпадают с config/quiz_config.json"""
    default_settings: QuizSettings = field(default_factory=QuizSettings)
    start_delay_seconds: float = 5
    completed_session_grace_seconds: float = 30
    min_questions_to_start: int = 1
    max_questions_per_quiz: int = QuizValidator.MAX_QUESTIONS_PER_QUIZ
    streak_highlight_threshold: int = 2


class QuizEngine:
    def __init__(
        self,
        store,
        timers: TimerFacility,
        transport: QuizTransport,
        provider: QuizDefinitionProvider,
        access_control: AccessControl,
        config: Optional[QuizEngineConfig] = None,
        clock: Callable[[], datetime] = get_current_utc_time,
    ):
        self.store = store
        self.timers = timers
        self.transport = transport
        self.provider = provider
        self.access_control = access_control
        self.config = config or QuizEngineConfig()
        self.clock = clock
        logger.debug("QuizEngine initialized.")

    # --- Команды ---

    async def start_quiz(self, chat_id: int, user_id: int, quiz_id: str) -> QuizSession:
        """
        Запускает викторину в чате.

        Raises:
            NotAdminError, SessionAlreadyActiveError, QuizNotFoundError,
            InvalidQuizDefinitionError
        """
        if not await self.access_control.is_admin(chat_id, user_id):
            raise NotAdminError(chat_id, user_id)

        # Быстрая проверка до чтения файла; окончательная внутри create_session
        existing = self.store.get(chat_id)
        if existing is not None and not existing.is_completed:
            raise SessionAlreadyActiveError(chat_id)

        definition = await self.provider.load(quiz_id)
        if definition is None:
            raise QuizNotFoundError(quiz_id)

        errors = QuizValidator.validate_definition(
            definition,
            min_questions=self.config.min_questions_to_start,
            max_questions=self.config.max_questions_per_quiz,
        )
        if errors:
            raise InvalidQuizDefinitionError(f"Викторина '{quiz_id}' содержит ошибки", errors)

        settings = definition.settings or self.config.default_settings
        session = self.store.create_session(chat_id, user_id, definition, settings, now=self.clock())

        async with session.lock:
            self._arm_timer(session, self.config.start_delay_seconds, self._on_start_delay, BEFORE_FIRST_QUESTION)

        log_quiz_event(
            logger, "start",
            f"Викторина '{session.title}' запущена ({session.total_questions} вопросов, сессия {session.session_id})",
            chat_id=chat_id, user_id=user_id, quiz_id=session.quiz_id
        )
        await self._display(
            session, "announcement", self.transport.render_announcement,
            chat_id, session.title, session.total_questions,
            settings.question_time_seconds, self.config.start_delay_seconds
        )
        return session

    async def stop_quiz(self, chat_id: int, user_id: int) -> LeaderboardReport:
        """Досрочная остановка по команде. Остановить может администратор или тот, кто запустил"""
        session = self.store.get(chat_id)
        if session is None or session.is_completed:
            raise NoActiveSessionError(chat_id)

        if user_id != session.admin_id and not await self.access_control.is_admin(chat_id, user_id):
            raise NotAdminError(chat_id, user_id)

        report = await self.end_early(session, EndReason.STOPPED)
        if report is None:
            # Завершилась, пока проверяли права
            raise NoActiveSessionError(chat_id)
        return report

    async def submit_answer(
        self,
        chat_id: int,
        question_index: int,
        user_id: int,
        display_name: str,
        answer_index: int,
        now: Optional[datetime] = None,
        session_token: Optional[str] = None,
    ) -> AnswerResult:
        """
        Принимает ответ участника. session_token берётся из кнопки:
        кнопка от прошлой сессии этого чата получает NO_ACTIVE_QUESTION
        """
        session = self.store.get(chat_id)
        if session is None:
            return AnswerResult.rejected(AnswerRejection.NO_ACTIVE_QUESTION)
        if session_token is not None and session_token != session.answer_token:
            logger.debug(f"Ответ {user_id} по кнопке чужой сессии {session_token} в чате {chat_id} отклонён")
            return AnswerResult.rejected(AnswerRejection.NO_ACTIVE_QUESTION)

        async with session.lock:
            result = score_answer(session, question_index, user_id, display_name, answer_index, now or self.clock())

        if result.accepted:
            log_quiz_event(
                logger, "answer",
                f"Ответ {ANSWER_LABELS[answer_index]} на вопрос {question_index + 1}: "
                f"{'верно' if result.is_correct else 'неверно'}, +{result.points_awarded}",
                chat_id=chat_id, user_id=user_id, quiz_id=session.quiz_id, level=logging.DEBUG
            )
        return result

    # --- Переходы автомата ---

    async def advance_to_next_question(self, session: QuizSession, expected_index: Optional[int] = None) -> bool:
        """
        Переход к следующему вопросу (или к итогам, если вопросы кончились).

        expected_index задают колбэки таймеров: переход выполняется, только
        если текущий индекс всё ещё равен снимку. Возвращает True, если переход был.
        """
        question: Optional[QuizQuestion] = None
        index = session.current_question_index
        report: Optional[LeaderboardReport] = None
        error_text: Optional[str] = None

        async with session.lock:
            if session.status not in (SessionStatus.SETUP, SessionStatus.INTERMISSION):
                logger.debug(f"Переход пропущен: сессия {session.session_id} в состоянии {session.status.value}")
                return False
            if expected_index is not None and session.current_question_index != expected_index:
                logger.debug(
                    f"Переход пропущен: сессия {session.session_id} на вопросе {session.current_question_index}, "
                    f"ожидался {expected_index}"
                )
                return False

            self._cancel_timer(session)
            next_index = session.current_question_index + 1

            if next_index >= session.total_questions:
                report = self._complete_locked(session, EndReason.FINISHED)
            else:
                candidate = session.question_at(next_index)
                problem = self._find_question_problem(candidate)
                if problem is not None:
                    error_text = f"Вопрос {next_index + 1} повреждён ({problem}), викторина остановлена"
                    report = self._complete_locked(session, EndReason.ERROR)
                else:
                    question = candidate
                    index = next_index
                    session.current_question_index = next_index
                    session.status = SessionStatus.RUNNING
                    session.question_started_at[next_index] = self.clock()
                    self._arm_timer(
                        session, session.settings.question_time_seconds,
                        self._on_question_deadline, next_index
                    )

        if error_text is not None:
            log_quiz_event(logger, "error", error_text, chat_id=session.chat_id,
                           quiz_id=session.quiz_id, level=logging.ERROR)
            await self._display(session, "error", self.transport.render_error, session.chat_id, error_text)

        if report is not None:
            await self._announce_completion(session, report)
            return True

        log_quiz_event(logger, "question", f"Вопрос {index + 1}/{session.total_questions}",
                       chat_id=session.chat_id, quiz_id=session.quiz_id)
        handle = await self._display(
            session, "question", self.transport.render_question,
            session.chat_id, question, index, session.total_questions,
            session.settings.question_time_seconds, session.answer_token
        )
        if handle is not None:
            session.question_message_ids[index] = handle
            if index in session.locked_question_indices or session.is_completed:
                # Дедлайн или остановка случились раньше, чем Telegram вернул сообщение
                await self._display(session, "disable_answering", self.transport.disable_answering,
                                    session.chat_id, handle)
        return True

    async def on_question_timeout(self, session: QuizSession, expected_index: int) -> Optional[QuestionResult]:
        """Дедлайн вопроса: блокирует ответы, показывает итоги вопроса, запускает перерыв"""
        async with session.lock:
            if session.status is not SessionStatus.RUNNING or session.current_question_index != expected_index:
                logger.debug(
                    f"Устаревший дедлайн вопроса {expected_index} для сессии {session.session_id} "
                    f"(состояние {session.status.value}, вопрос {session.current_question_index})"
                )
                return None

            session.status = SessionStatus.INTERMISSION
            session.locked_question_indices.add(expected_index)
            result = build_question_result(session, expected_index)
            self._arm_timer(
                session, session.settings.intermission_time_seconds,
                self._on_intermission_deadline, expected_index
            )
            message_handle = session.question_message_ids.get(expected_index)

        log_quiz_event(
            logger, "timeout",
            f"Вопрос {expected_index + 1} закрыт: ответов {result.total_responses}, верных {result.correct_responses}",
            chat_id=session.chat_id, quiz_id=session.quiz_id
        )
        if message_handle is not None:
            await self._display(session, "disable_answering", self.transport.disable_answering,
                                session.chat_id, message_handle)
        await self._display(session, "results", self.transport.render_results, session.chat_id, result)
        return result

    async def end_early(self, session: QuizSession, reason: EndReason = EndReason.STOPPED) -> Optional[LeaderboardReport]:
        """Досрочное завершение из любого незавершённого состояния. Повторный вызов возвращает None"""
        async with session.lock:
            if session.is_completed:
                return None
            was_running = session.status is SessionStatus.RUNNING
            report = self._complete_locked(session, reason)
            message_handle = session.question_message_ids.get(session.current_question_index) if was_running else None

        if message_handle is not None:
            await self._display(session, "disable_answering", self.transport.disable_answering,
                                session.chat_id, message_handle)
        await self._announce_completion(session, report)
        return report

    # --- Колбэки таймеров ---

    def _resolve(self, chat_id: int, session_id: str) -> Optional[QuizSession]:
        session = self.store.get_by_id(chat_id, session_id)
        if session is None:
            logger.debug(f"Таймер сессии {session_id} сработал, но сессии в чате {chat_id} уже нет")
        return session

    async def _on_start_delay(self, chat_id: int, session_id: str, expected_index: int) -> None:
        session = self._resolve(chat_id, session_id)
        if session is not None:
            await self.advance_to_next_question(session, expected_index=expected_index)

    async def _on_question_deadline(self, chat_id: int, session_id: str, expected_index: int) -> None:
        session = self._resolve(chat_id, session_id)
        if session is not None:
            await self.on_question_timeout(session, expected_index)

    async def _on_intermission_deadline(self, chat_id: int, session_id: str, expected_index: int) -> None:
        session = self._resolve(chat_id, session_id)
        if session is not None:
            await self.advance_to_next_question(session, expected_index=expected_index)

    async def _evict_session(self, chat_id: int, session_id: str) -> None:
        removed = self.store.remove(chat_id, session_id)
        if removed is not None:
            logger.info(f"Завершённая сессия {session_id} удалена из чата {chat_id}")

    # --- Внутреннее (вызывать под session.lock) ---

    def _arm_timer(self, session: QuizSession, delay_seconds: float, callback: Callable[..., Any], expected_index: int) -> None:
        self._cancel_timer(session)
        session.active_timer = self.timers.schedule(
            delay_seconds, callback, session.chat_id, session.session_id, expected_index,
            name=f"{session.session_id}_{callback.__name__.strip('_')}_{expected_index}"
        )

    def _cancel_timer(self, session: QuizSession) -> None:
        if session.active_timer is not None:
            self.timers.cancel(session.active_timer)
            session.active_timer = None

    def _complete_locked(self, session: QuizSession, reason: EndReason) -> LeaderboardReport:
        # Статус меняется до отмены таймера: уже запущенный колбэк увидит COMPLETED
        session.status = SessionStatus.COMPLETED
        session.end_reason = reason
        session.ended_at = self.clock()
        self._cancel_timer(session)
        session.report = finalize(session, streak_highlight_threshold=self.config.streak_highlight_threshold)
        session.active_timer = self.timers.schedule(
            self.config.completed_session_grace_seconds, self._evict_session,
            session.chat_id, session.session_id,
            name=f"{session.session_id}_evict"
        )
        return session.report

    @staticmethod
    def _find_question_problem(question: Optional[QuizQuestion]) -> Optional[str]:
        if question is None:
            return "вопрос отсутствует"
        if not question.text:
            return "пустой текст"
        if len(question.options) != len(ANSWER_LABELS):
            return f"вариантов {len(question.options)} вместо {len(ANSWER_LABELS)}"
        if not 0 <= question.correct_option < len(question.options):
            return "неверный индекс правильного ответа"
        return None

    async def _announce_completion(self, session: QuizSession, report: LeaderboardReport) -> None:
        winner = report.winner
        log_quiz_event(
            logger, "finish",
            f"Викторина завершена ({report.end_reason.value}): участников {report.participant_count}, "
            f"победитель {winner.display_name if winner else '-'}",
            chat_id=session.chat_id, quiz_id=session.quiz_id
        )
        await self._display(session, "leaderboard", self.transport.render_leaderboard, session.chat_id, report)

    async def _display(self, session: QuizSession, action: str, func: Callable[..., Any], *args: Any) -> Any:
        """Вызов транспорта без влияния на автомат: ошибка логируется, возвращается None"""
        try:
            return await func(*args)
        except Exception as e:
            logger.error(
                f"❌ Не удалось отправить '{action}' в чат {session.chat_id} "
                f"(сессия {session.session_id}): {format_error_message(e)}"
            )
            return None
