#state.py
import logging
import threading
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from modules.quiz_errors import SessionAlreadyActiveError
from modules.quiz_models import QuizDefinition, QuizQuestion, QuizSession, QuizSettings, SessionStatus
from utils import get_current_utc_time

logger = logging.getLogger(__name__)


class QuizSessionStore:
    """
    Хранилище сессий викторин: chat_id -> QuizSession.

    В чате может быть не больше одной незавершённой сессии.
    Завершённая сессия остаётся доступной до вызова remove()
    (движок удаляет её по таймеру после периода ожидания).
    """

    def __init__(self):
        self._sessions: Dict[int, QuizSession] = {}
        self._lock = threading.Lock()

    def create_session(
        self,
        chat_id: int,
        admin_id: int,
        definition: QuizDefinition,
        settings: QuizSettings,
        now: Optional[datetime] = None,
    ) -> QuizSession:
        with self._lock:
            existing = self._sessions.get(chat_id)
            if existing is not None and existing.status is not SessionStatus.COMPLETED:
                logger.info(f"Отказ в создании сессии: в чате {chat_id} уже идёт викторина {existing.session_id}")
                raise SessionAlreadyActiveError(chat_id)

            token = uuid.uuid4().hex[:12]
            session = QuizSession(
                session_id=f"quiz_{chat_id}_{token}",
                chat_id=chat_id,
                admin_id=admin_id,
                quiz_id=definition.quiz_id,
                title=definition.title,
                questions=[QuizQuestion.from_definition(q) for q in definition.questions],
                settings=settings,
                answer_token=token,
                started_at=now or get_current_utc_time(),
            )
            self._sessions[chat_id] = session

        if existing is not None:
            logger.debug(f"Завершённая сессия {existing.session_id} в чате {chat_id} заменена новой")
        logger.info(f"✅ Создана сессия {session.session_id} ('{session.title}', {len(session.questions)} вопросов) в чате {chat_id}")
        return session

    def get(self, chat_id: int) -> Optional[QuizSession]:
        with self._lock:
            return self._sessions.get(chat_id)

    def get_by_id(self, chat_id: int, session_id: str) -> Optional[QuizSession]:
        """Сессия чата, если её id совпадает с ожидаемым"""
        with self._lock:
            session = self._sessions.get(chat_id)
        if session is not None and session.session_id == session_id:
            return session
        return None

    def remove(self, chat_id: int, session_id: Optional[str] = None) -> Optional[QuizSession]:
        with self._lock:
            session = self._sessions.get(chat_id)
            if session is None:
                return None
            if session_id is not None and session.session_id != session_id:
                # В чате уже другая сессия
                return None
            del self._sessions[chat_id]
        logger.debug(f"Сессия {session.session_id} удалена из хранилища (чат {chat_id})")
        return session

    def active_sessions(self) -> List[QuizSession]:
        with self._lock:
            return [s for s in self._sessions.values() if s.status is not SessionStatus.COMPLETED]

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
