"""
Типы данных для викторин Quiz Battle Bot
Содержит все структуры данных, используемые движком викторин
"""

from __future__ import annotations
import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

from .quiz_errors import AnswerRejection

ANSWER_LABELS = ("A", "B", "C", "D")


class SessionStatus(Enum):
    """Состояния сессии викторины"""
    SETUP = "setup"
    RUNNING = "running"
    INTERMISSION = "intermission"
    COMPLETED = "completed"


class EndReason(Enum):
    """Причина завершения сессии"""
    FINISHED = "finished"
    STOPPED = "stopped"
    ERROR = "error"


@dataclass(frozen=True)
class QuizSettings:
    """Тайминги викторины, фиксируются при создании сессии"""
    question_time_seconds: int = 10
    intermission_time_seconds: int = 5


@dataclass(frozen=True)
class QuestionDefinition:
    """Вопрос в определении викторины (неизменяемый)"""
    text: str
    options: Tuple[str, ...]
    correct_option: int


@dataclass(frozen=True)
class QuizDefinition:
    """Определение викторины, из которого создаётся сессия"""
    quiz_id: str
    title: str
    questions: Tuple[QuestionDefinition, ...]
    category: str = "Uncategorized"
    settings: Optional[QuizSettings] = None


@dataclass(frozen=True)
class QuizResponse:
    """Ответ участника на вопрос. После создания не меняется"""
    user_id: int
    question_index: int
    answer_index: int
    timestamp: datetime
    is_correct: bool
    is_first_correct: bool
    points_awarded: int


@dataclass
class QuizQuestion:
    """Вопрос в рамках запущенной сессии"""
    text: str
    options: Tuple[str, ...]
    correct_option: int
    responses: List[QuizResponse] = field(default_factory=list)
    first_correct_responder: Optional[int] = None

    @classmethod
    def from_definition(cls, definition: QuestionDefinition) -> "QuizQuestion":
        return cls(
            text=definition.text,
            options=tuple(definition.options),
            correct_option=definition.correct_option,
        )

    @property
    def correct_label(self) -> str:
        if 0 <= self.correct_option < len(ANSWER_LABELS):
            return ANSWER_LABELS[self.correct_option]
        return "?"

    @property
    def correct_text(self) -> str:
        if 0 <= self.correct_option < len(self.options):
            return self.options[self.correct_option]
        return ""


@dataclass
class Participant:
    """Участник сессии. Создаётся при первом ответе"""
    user_id: int
    display_name: str
    score: int = 0
    correct_answer_count: int = 0
    current_streak: int = 0
    max_streak: int = 0
    last_response_at: Optional[datetime] = None
    responses: List[QuizResponse] = field(default_factory=list)

    def has_answered(self, question_index: int) -> bool:
        return any(r.question_index == question_index for r in self.responses)


@dataclass
class QuizSession:
    """Сессия викторины, одна на чат"""
    session_id: str
    chat_id: int
    admin_id: int
    quiz_id: str
    title: str
    questions: List[QuizQuestion]
    settings: QuizSettings
    # Метка сессии в callback_data кнопок ответа
    answer_token: str = ""
    status: SessionStatus = SessionStatus.SETUP
    current_question_index: int = -1
    participants: Dict[int, Participant] = field(default_factory=dict)
    active_timer: Optional[Any] = None
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
    end_reason: Optional[EndReason] = None
    locked_question_indices: Set[int] = field(default_factory=set)
    question_started_at: Dict[int, datetime] = field(default_factory=dict)
    question_message_ids: Dict[int, Any] = field(default_factory=dict)
    report: Optional["LeaderboardReport"] = None
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    @property
    def is_completed(self) -> bool:
        return self.status is SessionStatus.COMPLETED

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    @property
    def current_question(self) -> Optional[QuizQuestion]:
        """Текущий вопрос"""
        return self.question_at(self.current_question_index)

    def question_at(self, index: int) -> Optional[QuizQuestion]:
        if 0 <= index < len(self.questions):
            return self.questions[index]
        return None

    @property
    def progress(self) -> Tuple[int, int]:
        """Прогресс викторины (номер текущего вопроса, всего вопросов)"""
        return (self.current_question_index + 1, len(self.questions))


@dataclass(frozen=True)
class AnswerResult:
    """Результат обработки ответа"""
    accepted: bool
    is_correct: bool = False
    points_awarded: int = 0
    is_first_correct: bool = False
    streak_after: int = 0
    rejection: Optional[AnswerRejection] = None

    @classmethod
    def rejected(cls, reason: AnswerRejection) -> "AnswerResult":
        return cls(accepted=False, rejection=reason)


@dataclass(frozen=True)
class QuestionResult:
    """Итоги одного вопроса для показа в перерыве"""
    question_index: int
    total_questions: int
    question_text: str
    correct_option: int
    correct_label: str
    correct_text: str
    first_correct_name: Optional[str]
    first_correct_response_seconds: Optional[float]
    total_responses: int
    correct_responses: int
    option_counts: Tuple[int, ...]
    next_in_seconds: int
    is_last: bool


@dataclass(frozen=True)
class LeaderboardEntry:
    """Строка итоговой таблицы"""
    position: int
    user_id: int
    display_name: str
    score: int
    correct_answer_count: int
    max_streak: int


@dataclass(frozen=True)
class LeaderboardReport:
    """Итоговый отчёт викторины"""
    session_id: str
    chat_id: int
    title: str
    total_questions: int
    entries: Tuple[LeaderboardEntry, ...]
    participant_count: int
    average_score: float
    average_correct: float
    top_streak: Optional[LeaderboardEntry]
    stumped_question_indices: Tuple[int, ...]
    hottest_question_index: Optional[int]
    hottest_question_correct: int
    speed_leader_name: Optional[str]
    speed_leader_average_seconds: Optional[float]
    duration_seconds: Optional[float]
    end_reason: EndReason

    @property
    def winner(self) -> Optional[LeaderboardEntry]:
        return self.entries[0] if self.entries else None
