"""
Валидация определений викторин Quiz Battle Bot
Проверяет структуру вопросов и настроек до создания сессии
"""

from __future__ import annotations
import logging
from typing import List, Optional

from .quiz_models import ANSWER_LABELS, QuestionDefinition, QuizDefinition, QuizSettings

logger = logging.getLogger(__name__)


class QuizValidator:
    """Валидатор определений викторин"""

    # Максимальные значения
    MAX_QUESTIONS_PER_QUIZ = 50
    MAX_TITLE_LENGTH = 100
    MAX_QUESTION_TEXT_LENGTH = 300
    MAX_OPTION_TEXT_LENGTH = 100
    MAX_QUESTION_TIME_SECONDS = 600
    MAX_INTERMISSION_SECONDS = 300
    OPTIONS_COUNT = len(ANSWER_LABELS)

    @classmethod
    def validate_question(cls, question: QuestionDefinition, position: int) -> List[str]:
        """Валидировать вопрос (position начинается с 1, для сообщений)"""
        errors = []
        prefix = f"Вопрос {position}"

        if not isinstance(question.text, str) or not question.text.strip():
            errors.append(f"{prefix}: текст вопроса не может быть пустым")
        elif len(question.text) > cls.MAX_QUESTION_TEXT_LENGTH:
            errors.append(f"{prefix}: текст длиннее {cls.MAX_QUESTION_TEXT_LENGTH} символов")

        options = question.options
        if not isinstance(options, (list, tuple)) or len(options) != cls.OPTIONS_COUNT:
            errors.append(f"{prefix}: должно быть ровно {cls.OPTIONS_COUNT} варианта ответа")
        else:
            for i, option in enumerate(options):
                if not isinstance(option, str) or not option.strip():
                    errors.append(f"{prefix}: вариант {ANSWER_LABELS[i]} не может быть пустым")
                elif len(option) > cls.MAX_OPTION_TEXT_LENGTH:
                    errors.append(f"{prefix}: вариант {ANSWER_LABELS[i]} длиннее {cls.MAX_OPTION_TEXT_LENGTH} символов")

        # bool тоже int, но индексом ответа быть не должен
        if (not isinstance(question.correct_option, int) or isinstance(question.correct_option, bool)
                or not 0 <= question.correct_option < cls.OPTIONS_COUNT):
            errors.append(f"{prefix}: индекс правильного ответа должен быть от 0 до {cls.OPTIONS_COUNT - 1}")

        return errors

    @classmethod
    def validate_settings(cls, settings: Optional[QuizSettings]) -> List[str]:
        """Валидировать тайминги викторины"""
        errors = []
        if settings is None:
            return errors

        question_time = settings.question_time_seconds
        if not isinstance(question_time, (int, float)) or question_time <= 0:
            errors.append("Время на вопрос должно быть положительным числом")
        elif question_time > cls.MAX_QUESTION_TIME_SECONDS:
            errors.append(f"Максимальное время на вопрос: {cls.MAX_QUESTION_TIME_SECONDS} секунд")

        intermission = settings.intermission_time_seconds
        if not isinstance(intermission, (int, float)) or intermission < 0:
            errors.append("Перерыв между вопросами не может быть отрицательным")
        elif intermission > cls.MAX_INTERMISSION_SECONDS:
            errors.append(f"Максимальный перерыв между вопросами: {cls.MAX_INTERMISSION_SECONDS} секунд")

        return errors

    @classmethod
    def validate_definition(
        cls,
        definition: QuizDefinition,
        min_questions: int = 1,
        max_questions: int = MAX_QUESTIONS_PER_QUIZ
    ) -> List[str]:
        """Валидировать определение викторины целиком. Пустой список означает, что всё в порядке"""
        errors = []

        if not definition.quiz_id or not str(definition.quiz_id).strip():
            errors.append("Не указан ID викторины")

        if not isinstance(definition.title, str) or not definition.title.strip():
            errors.append("Название викторины не может быть пустым")
        elif len(definition.title) > cls.MAX_TITLE_LENGTH:
            errors.append(f"Название длиннее {cls.MAX_TITLE_LENGTH} символов")

        max_questions = min(max_questions, cls.MAX_QUESTIONS_PER_QUIZ)
        count = len(definition.questions)
        if count < min_questions:
            errors.append(f"В викторине {count} вопросов, нужно не меньше {min_questions}")
        elif count > max_questions:
            errors.append(f"Максимальное количество вопросов: {max_questions}")

        for position, question in enumerate(definition.questions, start=1):
            errors.extend(cls.validate_question(question, position))

        errors.extend(cls.validate_settings(definition.settings))

        if errors:
            logger.warning(f"Викторина '{definition.quiz_id}' не прошла валидацию: {len(errors)} ошибок")
        return errors
