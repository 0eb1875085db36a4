#modules/quiz_repository.py
"""
Загрузка определений викторин из JSON-файлов data/quizzes/<quiz_id>.json

Формат файла:
{
    "id": "capitals",
    "title": "Столицы мира",
    "category": "География",
    "settings": {"question_time_seconds": 10, "intermission_time_seconds": 5},
    "questions": [
        {"text": "Столица Франции?", "options": ["Париж", "Рим", "Мадрид", "Берлин"], "correct_option": 0}
    ]
}
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import aiofiles

from .quiz_errors import InvalidQuizDefinitionError
from .quiz_models import QuestionDefinition, QuizDefinition, QuizSettings

logger = logging.getLogger(__name__)

QUIZ_ID_PATTERN = re.compile(r'^[a-zA-Z0-9_-]{1,64}$')


class QuizDefinitionProvider(ABC):
    """Источник определений викторин"""

    @abstractmethod
    async def load(self, quiz_id: str) -> Optional[QuizDefinition]:
        """Определение викторины или None, если такой нет"""


def _parse_question(raw: Any, position: int) -> QuestionDefinition:
    if not isinstance(raw, dict):
        raise InvalidQuizDefinitionError(f"Вопрос {position} должен быть объектом")

    options = raw.get("options")
    if not isinstance(options, list):
        raise InvalidQuizDefinitionError(f"Вопрос {position}: поле 'options' должно быть списком")

    correct_option = raw.get("correct_option", raw.get("correct_answer"))
    if correct_option is None:
        raise InvalidQuizDefinitionError(f"Вопрос {position}: не указан правильный ответ")

    return QuestionDefinition(
        text=str(raw.get("text", "")).strip(),
        options=tuple(str(option).strip() for option in options),
        correct_option=correct_option,
    )


def _parse_settings(raw: Any) -> Optional[QuizSettings]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise InvalidQuizDefinitionError("Поле 'settings' должно быть объектом")
    defaults = QuizSettings()
    return QuizSettings(
        question_time_seconds=raw.get("question_time_seconds", defaults.question_time_seconds),
        intermission_time_seconds=raw.get("intermission_time_seconds", defaults.intermission_time_seconds),
    )


def parse_quiz_definition(data: Dict[str, Any], fallback_id: str) -> QuizDefinition:
    """Преобразует JSON-объект в QuizDefinition. Структурные ошибки -> InvalidQuizDefinitionError"""
    if not isinstance(data, dict):
        raise InvalidQuizDefinitionError("Файл викторины должен содержать JSON объект")

    questions_raw = data.get("questions")
    if not isinstance(questions_raw, list):
        raise InvalidQuizDefinitionError("Поле 'questions' должно быть списком")

    return QuizDefinition(
        quiz_id=str(data.get("id") or fallback_id),
        title=str(data.get("title", "")).strip(),
        category=str(data.get("category") or "Uncategorized"),
        questions=tuple(_parse_question(q, i) for i, q in enumerate(questions_raw, start=1)),
        settings=_parse_settings(data.get("settings")),
    )


class JsonQuizRepository(QuizDefinitionProvider):
    """Определения викторин в отдельных JSON-файлах каталога"""

    def __init__(self, quizzes_dir: Union[str, Path]):
        self.quizzes_dir = Path(quizzes_dir)
        logger.debug(f"JsonQuizRepository: каталог викторин {self.quizzes_dir}")

    def _path_for(self, quiz_id: str) -> Optional[Path]:
        if not quiz_id or not QUIZ_ID_PATTERN.match(quiz_id):
            return None
        return self.quizzes_dir / f"{quiz_id}.json"

    async def _read_json(self, path: Path) -> Any:
        async with aiofiles.open(path, mode='r', encoding='utf-8') as f:
            content = await f.read()
        return json.loads(content)

    async def load(self, quiz_id: str) -> Optional[QuizDefinition]:
        path = self._path_for(quiz_id)
        if path is None:
            logger.warning(f"Некорректный ID викторины: '{quiz_id}'")
            return None
        if not path.is_file():
            logger.info(f"Викторина '{quiz_id}' не найдена ({path})")
            return None

        try:
            data = await self._read_json(path)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(f"Ошибка чтения JSON викторины '{quiz_id}': {e}")
            raise InvalidQuizDefinitionError(f"Файл викторины '{quiz_id}' повреждён: {e}") from e

        definition = parse_quiz_definition(data, fallback_id=quiz_id)
        logger.debug(f"Загружена викторина '{definition.quiz_id}' ({len(definition.questions)} вопросов)")
        return definition

    async def list_quizzes(self) -> List[QuizDefinition]:
        """Все корректно читаемые викторины каталога, отсортированные по ID"""
        if not self.quizzes_dir.is_dir():
            logger.warning(f"Каталог викторин {self.quizzes_dir} не существует")
            return []

        definitions: List[QuizDefinition] = []
        for path in sorted(self.quizzes_dir.glob("*.json")):
            try:
                definition = await self.load(path.stem)
            except (InvalidQuizDefinitionError, OSError) as e:
                logger.warning(f"Пропущен файл викторины {path.name}: {e}")
                continue
            if definition is not None:
                definitions.append(definition)
        return definitions
