"""
Исключения и причины отказа для движка викторин
"""

from enum import Enum


class AnswerRejection(Enum):
    """Причины, по которым ответ не засчитан"""
    NO_ACTIVE_QUESTION = "no_active_question"
    DUPLICATE_ANSWER = "duplicate_answer"
    QUESTION_LOCKED = "question_locked"
    INVALID_OPTION = "invalid_option"


class QuizError(Exception):
    """Базовое исключение движка викторин"""
    pass


class SessionAlreadyActiveError(QuizError):
    """В чате уже идёт викторина"""

    def __init__(self, chat_id: int):
        super().__init__(f"В чате {chat_id} уже идёт викторина")
        self.chat_id = chat_id


class QuizNotFoundError(QuizError):
    """Определение викторины не найдено"""

    def __init__(self, quiz_id: str):
        super().__init__(f"Викторина '{quiz_id}' не найдена")
        self.quiz_id = quiz_id


class NotAdminError(QuizError):
    """Пользователь не является администратором чата"""

    def __init__(self, chat_id: int, user_id: int):
        super().__init__(f"Пользователь {user_id} не администратор чата {chat_id}")
        self.chat_id = chat_id
        self.user_id = user_id


class NoActiveSessionError(QuizError):
    """В чате нет активной викторины"""

    def __init__(self, chat_id: int):
        super().__init__(f"В чате {chat_id} нет активной викторины")
        self.chat_id = chat_id


class InvalidQuizDefinitionError(QuizError):
    """Некорректное определение викторины (вопросы, варианты, настройки)"""

    def __init__(self, message: str, errors=None):
        super().__init__(message)
        self.errors = list(errors) if errors else []


__all__ = [
    'AnswerRejection',
    'QuizError',
    'SessionAlreadyActiveError',
    'QuizNotFoundError',
    'NotAdminError',
    'NoActiveSessionError',
    'InvalidQuizDefinitionError',
]
