# modules/answer_scorer.py
"""
Подсчёт очков за ответы.

Правила:
- правильный ответ: 1 очко;
- первый правильный ответ на вопрос: +1 очко;
- серия из 2 и более правильных ответов подряд: +1 очко;
- неправильный ответ обнуляет серию, очки не отнимаются.

Функции не делают I/O и не берут блокировок: вызывающий код
(QuizEngine) обязан держать session.lock.
"""

import logging
from datetime import datetime
from typing import Optional

from .quiz_errors import AnswerRejection
from .quiz_models import AnswerResult, Participant, QuizResponse, QuizSession, SessionStatus

logger = logging.getLogger(__name__)

BASE_POINTS = 1
FIRST_CORRECT_BONUS = 1
STREAK_BONUS = 1
STREAK_BONUS_THRESHOLD = 2


def check_answer_allowed(
    session: QuizSession, question_index: int, user_id: int, answer_index: int
) -> Optional[AnswerRejection]:
    """Возвращает причину отказа или None, если ответ можно принять"""
    if question_index in session.locked_question_indices:
        return AnswerRejection.QUESTION_LOCKED
    if session.status is not SessionStatus.RUNNING or session.current_question_index != question_index:
        return AnswerRejection.NO_ACTIVE_QUESTION

    question = session.question_at(question_index)
    if question is None:
        return AnswerRejection.NO_ACTIVE_QUESTION
    if not 0 <= answer_index < len(question.options):
        return AnswerRejection.INVALID_OPTION

    participant = session.participants.get(user_id)
    if participant is not None and participant.has_answered(question_index):
        return AnswerRejection.DUPLICATE_ANSWER
    return None


def get_or_create_participant(session: QuizSession, user_id: int, display_name: str) -> Participant:
    participant = session.participants.get(user_id)
    if participant is None:
        participant = Participant(user_id=user_id, display_name=display_name)
        session.participants[user_id] = participant
        logger.debug(f"Новый участник {user_id} ({display_name}) в чате {session.chat_id}")
    elif display_name and participant.display_name != display_name:
        # Пользователь мог сменить имя во время викторины
        participant.display_name = display_name
    return participant


def score_answer(
    session: QuizSession,
    question_index: int,
    user_id: int,
    display_name: str,
    answer_index: int,
    now: datetime,
) -> AnswerResult:
    """Проверяет ответ, начисляет очки и записывает QuizResponse"""
    rejection = check_answer_allowed(session, question_index, user_id, answer_index)
    if rejection is not None:
        logger.debug(
            f"Ответ пользователя {user_id} на вопрос {question_index} в чате {session.chat_id} "
            f"отклонён: {rejection.value}"
        )
        return AnswerResult.rejected(rejection)

    question = session.questions[question_index]
    participant = get_or_create_participant(session, user_id, display_name)

    is_correct = answer_index == question.correct_option
    is_first_correct = False
    points = 0

    if is_correct:
        participant.correct_answer_count += 1
        points += BASE_POINTS
        if question.first_correct_responder is None:
            question.first_correct_responder = user_id
            is_first_correct = True
            points += FIRST_CORRECT_BONUS
        participant.current_streak += 1
        participant.max_streak = max(participant.max_streak, participant.current_streak)
        if participant.current_streak >= STREAK_BONUS_THRESHOLD:
            points += STREAK_BONUS
    else:
        participant.current_streak = 0

    response = QuizResponse(
        user_id=user_id,
        question_index=question_index,
        answer_index=answer_index,
        timestamp=now,
        is_correct=is_correct,
        is_first_correct=is_first_correct,
        points_awarded=points,
    )
    question.responses.append(response)
    participant.responses.append(response)
    participant.score += points
    participant.last_response_at = now

    return AnswerResult(
        accepted=True,
        is_correct=is_correct,
        points_awarded=points,
        is_first_correct=is_first_correct,
        streak_after=participant.current_streak,
    )
