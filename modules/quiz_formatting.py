#modules/quiz_formatting.py
"""
Тексты сообщений викторины (MarkdownV2) и клавиатура ответов.
Весь пользовательский текст проходит через escape_markdown_v2.
"""

import logging
from typing import Dict, Optional, Sequence

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from utils import escape_markdown_v2, format_duration, pluralize

from .quiz_errors import AnswerRejection
from .quiz_models import (
    ANSWER_LABELS, AnswerResult, EndReason, LeaderboardReport, QuestionResult,
    QuizDefinition, QuizQuestion, QuizSession, SessionStatus
)

logger = logging.getLogger(__name__)

ANSWER_CALLBACK_PREFIX = "answer"
# answer_<метка сессии>_<вопрос>_<вариант>
ANSWER_CALLBACK_PATTERN = r"^answer_([0-9a-f]+)_(\d+)_(\d+)$"

OPTION_MARKERS = ("🔴", "🔵", "🟢", "🟡")
MEDALS = ("🥇", "🥈", "🥉")

REJECTION_MESSAGES: Dict[AnswerRejection, str] = {
    AnswerRejection.QUESTION_LOCKED: "⏱️ Время на этот вопрос вышло",
    AnswerRejection.NO_ACTIVE_QUESTION: "Этот вопрос уже не активен",
    AnswerRejection.DUPLICATE_ANSWER: "Вы уже ответили на этот вопрос",
    AnswerRejection.INVALID_OPTION: "Некорректный вариант ответа",
}

STATUS_NAMES: Dict[SessionStatus, str] = {
    SessionStatus.SETUP: "подготовка",
    SessionStatus.RUNNING: "идёт вопрос",
    SessionStatus.INTERMISSION: "перерыв",
    SessionStatus.COMPLETED: "завершена",
}


def _bold(text: str) -> str:
    return f"*{escape_markdown_v2(text)}*"


def _italic(text: str) -> str:
    return f"_{escape_markdown_v2(text)}_"


def build_answer_callback_data(session_token: str, question_index: int, answer_index: int) -> str:
    return f"{ANSWER_CALLBACK_PREFIX}_{session_token}_{question_index}_{answer_index}"


def build_answer_keyboard(session_token: str, question_index: int, options: Sequence[str]) -> InlineKeyboardMarkup:
    """Кнопки A-D в два ряда. Метка сессии и индекс вопроса зашиты в callback_data"""
    buttons = [
        InlineKeyboardButton(
            f"{OPTION_MARKERS[i]} {ANSWER_LABELS[i]}",
            callback_data=build_answer_callback_data(session_token, question_index, i)
        )
        for i in range(min(len(options), len(ANSWER_LABELS)))
    ]
    rows = [buttons[i:i + 2] for i in range(0, len(buttons), 2)]
    return InlineKeyboardMarkup(rows)


def format_announcement(title: str, total_questions: int, question_time_seconds: int, start_delay_seconds: int) -> str:
    lines = [
        _bold(f"🎮 ВИКТОРИНА: «{title}» 🎮"),
        "",
        escape_markdown_v2(f"• {pluralize(total_questions, 'вопрос', 'вопроса', 'вопросов')}"),
        escape_markdown_v2(f"• {pluralize(question_time_seconds, 'секунда', 'секунды', 'секунд')} на ответ"),
        escape_markdown_v2("• Первый правильный ответ: +1 очко"),
        escape_markdown_v2("• Серия правильных ответов: +1 очко"),
        "",
        _bold(f"Старт через {format_duration(start_delay_seconds)}..."),
    ]
    return "\n".join(lines)


def format_question(question: QuizQuestion, question_index: int, total_questions: int, deadline_seconds: int) -> str:
    lines = [
        _bold(f"🔸 Вопрос {question_index + 1}/{total_questions} 🔸"),
        "",
        _bold(question.text),
        "",
    ]
    for i, option in enumerate(question.options[:len(ANSWER_LABELS)]):
        lines.append(escape_markdown_v2(f"{OPTION_MARKERS[i]} {ANSWER_LABELS[i]}. {option}"))
    lines.append("")
    lines.append(f"⏱️ {_bold(f'Время: {format_duration(deadline_seconds)}')}")
    lines.append(_italic("⚡ Первый правильный ответ получает +1 очко!"))
    return "\n".join(lines)


def format_question_result(result: QuestionResult) -> str:
    lines = [
        _bold(f"⏱️ Время вышло! Вопрос {result.question_index + 1}/{result.total_questions}"),
        "",
        f"✅ {_bold('Правильный ответ:')} {escape_markdown_v2(f'{result.correct_label} ({result.correct_text})')}",
    ]

    if result.first_correct_name:
        winner_line = f"🏆 {_bold('Первым ответил:')} {escape_markdown_v2(result.first_correct_name)}"
        if result.first_correct_response_seconds is not None:
            winner_line += escape_markdown_v2(f" ({result.first_correct_response_seconds:.1f} сек)")
        lines.append(winner_line)
    else:
        lines.append(escape_markdown_v2("😶 Никто не ответил правильно"))

    distribution = " | ".join(
        f"{ANSWER_LABELS[i]}: {count}" for i, count in enumerate(result.option_counts[:len(ANSWER_LABELS)])
    )
    lines.append(escape_markdown_v2(
        f"📊 Ответов: {result.total_responses}, правильных: {result.correct_responses} ({distribution})"
    ))

    lines.append("")
    if result.is_last:
        lines.append(_bold("Подводим итоги..."))
    else:
        lines.append(_bold(f"Следующий вопрос через {format_duration(result.next_in_seconds)}"))
    return "\n".join(lines)


def _entry_line(entry, total_questions: int) -> str:
    if entry.position <= len(MEDALS):
        prefix = MEDALS[entry.position - 1]
    else:
        prefix = f"{entry.position}."
    stats = escape_markdown_v2(
        f" - {pluralize(entry.score, 'очко', 'очка', 'очков')} ({entry.correct_answer_count}/{total_questions} верно)"
    )
    return f"{escape_markdown_v2(prefix)} {_bold(entry.display_name)}{stats}"


def format_leaderboard(report: LeaderboardReport, display_limit: int = 10) -> str:
    """Итоговая таблица и статистика викторины"""
    if report.end_reason is EndReason.STOPPED:
        header = "🛑 ВИКТОРИНА ОСТАНОВЛЕНА"
    elif report.end_reason is EndReason.ERROR:
        header = "⚠️ ВИКТОРИНА ПРЕРВАНА"
    else:
        header = "🏆 ВИКТОРИНА ЗАВЕРШЕНА! 🏆"

    lines = [_bold(header), escape_markdown_v2(f"«{report.title}»"), ""]

    if not report.entries:
        lines.append(escape_markdown_v2("Никто не ответил ни на один вопрос 🤷"))
        return "\n".join(lines)

    for entry in report.entries[:display_limit]:
        lines.append(_entry_line(entry, report.total_questions))
    hidden = len(report.entries) - display_limit
    if hidden > 0:
        lines.append(_italic(f"...и ещё {pluralize(hidden, 'участник', 'участника', 'участников')}"))

    lines.append("")
    lines.append(_bold("📊 Статистика"))
    lines.append(escape_markdown_v2(f"👥 Участников: {report.participant_count}"))
    lines.append(escape_markdown_v2(f"🎯 Средний счёт: {report.average_score:.1f}"))
    lines.append(escape_markdown_v2(f"✅ В среднем верно: {report.average_correct:.1f}/{report.total_questions}"))

    if report.top_streak is not None:
        lines.append(escape_markdown_v2(
            f"🔥 Лучшая серия: {report.top_streak.display_name} ({report.top_streak.max_streak} подряд)"
        ))
    if report.hottest_question_index is not None:
        lines.append(escape_markdown_v2(
            f"🌶 Самый лёгкий вопрос: №{report.hottest_question_index + 1} "
            f"({pluralize(report.hottest_question_correct, 'правильный ответ', 'правильных ответа', 'правильных ответов')})"
        ))
    if report.stumped_question_indices:
        numbers = ", ".join(f"№{i + 1}" for i in report.stumped_question_indices)
        lines.append(escape_markdown_v2(f"❓ Никто не угадал: {numbers}"))
    if report.speed_leader_name and report.speed_leader_average_seconds is not None:
        lines.append(escape_markdown_v2(
            f"⚡ Самый быстрый: {report.speed_leader_name} (в среднем {report.speed_leader_average_seconds:.2f} сек)"
        ))
    if report.duration_seconds is not None:
        lines.append(escape_markdown_v2(
            f"⏱️ Длительность: {format_duration(report.duration_seconds)}"
        ))

    winner = report.winner
    if winner is not None and winner.score > 0:
        lines.append("")
        lines.append(f"🎊 {_bold(f'Поздравляем, {winner.display_name}!')} 🎊")
    return "\n".join(lines)


def format_answer_feedback(result: AnswerResult) -> str:
    """Короткий текст для всплывающего ответа на нажатие кнопки (без разметки)"""
    if not result.accepted:
        return REJECTION_MESSAGES.get(result.rejection, "Ответ не принят")
    if not result.is_correct:
        return "❌ Неверно! Серия сброшена"
    text = "✅ Верно! Вы первый!" if result.is_first_correct else "✅ Верно! Но кто-то был быстрее"
    text += f" +{pluralize(result.points_awarded, 'очко', 'очка', 'очков')}"
    if result.streak_after >= 2:
        text += f" 🔥 Серия: {result.streak_after}"
    return text


def format_session_status(session: Optional[QuizSession], start_command: str = "startquiz") -> str:
    if session is None:
        return escape_markdown_v2(f"В этом чате сейчас нет викторины. Запустить: /{start_command} <id>")

    current, total = session.progress
    lines = [
        _bold(f"🎮 «{session.title}»"),
        escape_markdown_v2(f"Состояние: {STATUS_NAMES.get(session.status, session.status.value)}"),
        escape_markdown_v2(f"Вопрос: {max(current, 0)}/{total}"),
        escape_markdown_v2(f"Участников: {len(session.participants)}"),
    ]
    return "\n".join(lines)


def format_quiz_list(definitions: Sequence[QuizDefinition], start_command: str = "startquiz") -> str:
    if not definitions:
        return escape_markdown_v2("Викторин пока нет. Добавьте JSON-файлы в data/quizzes/")

    lines = [_bold("📚 Доступные викторины"), ""]
    for definition in definitions:
        count = pluralize(len(definition.questions), 'вопрос', 'вопроса', 'вопросов')
        lines.append(
            f"• {_bold(definition.quiz_id)} {escape_markdown_v2(f'- {definition.title} ({definition.category}, {count})')}"
        )
    lines.append("")
    lines.append(escape_markdown_v2(f"Запуск: /{start_command} <id>"))
    return "\n".join(lines)


def format_error_notice(text: str) -> str:
    return f"⚠️ {escape_markdown_v2(text)}"
