# modules/results_aggregator.py
"""
Итоги вопросов и викторины: таблица лидеров и статистика.
Все функции чистые и работают только с данными сессии.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from .quiz_models import (
    EndReason, LeaderboardEntry, LeaderboardReport, Participant,
    QuestionResult, QuizSession
)

logger = logging.getLogger(__name__)

DEFAULT_STREAK_HIGHLIGHT_THRESHOLD = 2
SPEED_LEADER_MIN_FIRST_ANSWERS = 2


def _ranking_key(participant: Participant):
    last_response = participant.last_response_at
    # naive и aware datetime нельзя сравнивать между собой, поэтому сравниваем timestamp
    last_ts = last_response.timestamp() if last_response is not None else float("inf")
    return (-participant.score, -participant.correct_answer_count, last_ts, participant.user_id)


def rank_participants(participants: Iterable[Participant]) -> List[Participant]:
    """Сортировка: очки, затем правильные ответы, затем кто раньше ответил последним, затем user_id"""
    return sorted(participants, key=_ranking_key)


def _seconds_since_question_start(session: QuizSession, question_index: int, moment: datetime) -> Optional[float]:
    started = session.question_started_at.get(question_index)
    if started is None:
        return None
    return max(0.0, (moment - started).total_seconds())


def build_question_result(session: QuizSession, question_index: int) -> QuestionResult:
    """Итоги вопроса: правильный ответ, первый угадавший, распределение ответов"""
    question = session.questions[question_index]

    option_counts = [0] * len(question.options)
    correct_responses = 0
    first_correct_name: Optional[str] = None
    first_correct_seconds: Optional[float] = None

    for response in question.responses:
        if 0 <= response.answer_index < len(option_counts):
            option_counts[response.answer_index] += 1
        if response.is_correct:
            correct_responses += 1
        if response.is_first_correct:
            participant = session.participants.get(response.user_id)
            first_correct_name = participant.display_name if participant else str(response.user_id)
            first_correct_seconds = _seconds_since_question_start(session, question_index, response.timestamp)

    is_last = question_index >= len(session.questions) - 1
    return QuestionResult(
        question_index=question_index,
        total_questions=len(session.questions),
        question_text=question.text,
        correct_option=question.correct_option,
        correct_label=question.correct_label,
        correct_text=question.correct_text,
        first_correct_name=first_correct_name,
        first_correct_response_seconds=first_correct_seconds,
        total_responses=len(question.responses),
        correct_responses=correct_responses,
        option_counts=tuple(option_counts),
        next_in_seconds=session.settings.intermission_time_seconds,
        is_last=is_last,
    )


def _to_entry(position: int, participant: Participant) -> LeaderboardEntry:
    return LeaderboardEntry(
        position=position,
        user_id=participant.user_id,
        display_name=participant.display_name,
        score=participant.score,
        correct_answer_count=participant.correct_answer_count,
        max_streak=participant.max_streak,
    )


def _find_hottest_question(session: QuizSession) -> Tuple[Optional[int], int]:
    """Вопрос с наибольшим числом правильных ответов (только если угадали хотя бы двое)"""
    best_index: Optional[int] = None
    best_count = 0
    for index, question in enumerate(session.questions):
        correct = sum(1 for r in question.responses if r.is_correct)
        if correct > 1 and correct > best_count:
            best_index, best_count = index, correct
    return best_index, best_count


def _find_speed_leader(session: QuizSession) -> Tuple[Optional[str], Optional[float]]:
    """Самый быстрый по среднему времени первых правильных ответов"""
    times_by_user: Dict[int, List[float]] = {}
    for participant in session.participants.values():
        for response in participant.responses:
            if not response.is_first_correct:
                continue
            seconds = _seconds_since_question_start(session, response.question_index, response.timestamp)
            if seconds is not None:
                times_by_user.setdefault(participant.user_id, []).append(seconds)

    leader_id: Optional[int] = None
    leader_avg: Optional[float] = None
    for user_id in sorted(times_by_user):
        times = times_by_user[user_id]
        if len(times) < SPEED_LEADER_MIN_FIRST_ANSWERS:
            continue
        avg = sum(times) / len(times)
        if leader_avg is None or avg < leader_avg:
            leader_id, leader_avg = user_id, avg

    if leader_id is None:
        return None, None
    return session.participants[leader_id].display_name, leader_avg


def finalize(
    session: QuizSession,
    streak_highlight_threshold: int = DEFAULT_STREAK_HIGHLIGHT_THRESHOLD,
) -> LeaderboardReport:
    """Строит итоговый отчёт по завершённой (или завершаемой) сессии"""
    ranked = rank_participants(session.participants.values())
    entries = tuple(_to_entry(position, p) for position, p in enumerate(ranked, start=1))

    participant_count = len(entries)
    if participant_count:
        average_score = sum(e.score for e in entries) / participant_count
        average_correct = sum(e.correct_answer_count for e in entries) / participant_count
    else:
        average_score = 0.0
        average_correct = 0.0

    # При равной серии побеждает тот, кто выше в таблице
    top_streak: Optional[LeaderboardEntry] = None
    for entry in entries:
        if entry.max_streak >= streak_highlight_threshold and (
            top_streak is None or entry.max_streak > top_streak.max_streak
        ):
            top_streak = entry

    # Учитываются только уже показанные вопросы
    asked_count = min(session.current_question_index + 1, len(session.questions))
    stumped = tuple(
        index for index in range(asked_count)
        if not any(r.is_correct for r in session.questions[index].responses)
    )

    hottest_index, hottest_count = _find_hottest_question(session)
    speed_name, speed_avg = _find_speed_leader(session)

    duration: Optional[float] = None
    if session.started_at and session.ended_at:
        duration = max(0.0, (session.ended_at - session.started_at).total_seconds())

    report = LeaderboardReport(
        session_id=session.session_id,
        chat_id=session.chat_id,
        title=session.title,
        total_questions=len(session.questions),
        entries=entries,
        participant_count=participant_count,
        average_score=average_score,
        average_correct=average_correct,
        top_streak=top_streak,
        stumped_question_indices=stumped,
        hottest_question_index=hottest_index,
        hottest_question_correct=hottest_count,
        speed_leader_name=speed_name,
        speed_leader_average_seconds=speed_avg,
        duration_seconds=duration,
        end_reason=session.end_reason or EndReason.FINISHED,
    )
    logger.debug(
        f"Итоги сессии {session.session_id}: участников={participant_count}, "
        f"без ответа={len(stumped)}, средний счёт={average_score:.2f}"
    )
    return report
