#app_config.py
import copy
import json
import logging
import os
from pathlib import Path
from typing import Dict, Any, Optional

from dotenv import load_dotenv

from modules.quiz_engine import QuizEngineConfig
from modules.quiz_models import QuizSettings

logger = logging.getLogger(__name__)

CURRENT_FILE_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = CURRENT_FILE_DIR # app_config.py лежит в корне проекта

dotenv_path = PROJECT_ROOT / '.env'
load_dotenv(dotenv_path=dotenv_path)
logger.debug(f"app_config.py: переменные окружения загружены из {dotenv_path}")

DEFAULT_CONFIG_STRUCTURE: Dict[str, Any] = {
    "quiz_settings": {
        "default_question_time_seconds": 10,
        "default_intermission_time_seconds": 5,
        "start_delay_seconds": 5,
        "completed_session_grace_seconds": 30,
        "min_questions_to_start": 1,
        "max_questions_per_quiz": 50,
        "streak_highlight_threshold": 2
    },
    "global_settings": {
        "commands": {
            "start": "start", "help": "help", "start_quiz": "startquiz",
            "stop_quiz": "stopquiz", "quiz_status": "quizstatus", "list_quizzes": "quizzes"
        },
        "leaderboard_display_limit": 10
    }
}

class CommandConfig:
    def __init__(self, commands_data: Dict[str, str]):
        self.start: str = commands_data.get("start", "start")
        self.help: str = commands_data.get("help", "help")
        self.start_quiz: str = commands_data.get("start_quiz", "startquiz")
        self.stop_quiz: str = commands_data.get("stop_quiz", "stopquiz")
        self.quiz_status: str = commands_data.get("quiz_status", "quizstatus")
        self.list_quizzes: str = commands_data.get("list_quizzes", "quizzes")

class PathConfig:
    def __init__(self, project_root_path: Path, data_dir_name: str = "data", config_dir_name: str = "config"):
        self.project_root: Path = project_root_path
        self.data_dir: Path = self.project_root / data_dir_name
        self.quizzes_dir: Path = self.data_dir / "quizzes"
        self.config_dir: Path = self.project_root / config_dir_name
        self.quiz_config_file: Path = self.config_dir / "quiz_config.json"
        self.logs_dir: Path = self.project_root / "logs"

        for directory in (self.data_dir, self.quizzes_dir, self.config_dir):
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                logger.error(f"PathConfig: Ошибка при создании директории {directory}: {e}")

        logger.debug(f"PathConfig: quizzes={self.quizzes_dir}, config={self.quiz_config_file}")

class AppConfig:
    def __init__(self, project_root: Optional[Path] = None):
        self.bot_token: Optional[str] = os.getenv("BOT_TOKEN")
        self.log_level_str: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.debug_mode: bool = os.getenv("DEBUG_MODE", "False").lower() == "true"
        logger.debug(f"AppConfig: BOT_TOKEN={'задан' if self.bot_token else 'не задан'}, LOG_LEVEL={self.log_level_str}, DEBUG_MODE={self.debug_mode}")

        self.paths = PathConfig(project_root or PROJECT_ROOT)
        self._raw_quiz_config: Dict[str, Any] = self._load_json_config(self.paths.quiz_config_file)

        self.quiz_settings: Dict[str, Any] = self._raw_quiz_config.get("quiz_settings", {})
        self.global_settings: Dict[str, Any] = self._raw_quiz_config.get("global_settings", {})
        self.commands = CommandConfig(self.global_settings.get("commands", {}))

        self.default_question_time_seconds: int = self.quiz_settings.get("default_question_time_seconds", 10)
        self.default_intermission_time_seconds: int = self.quiz_settings.get("default_intermission_time_seconds", 5)
        self.start_delay_seconds: int = self.quiz_settings.get("start_delay_seconds", 5)
        self.completed_session_grace_seconds: int = self.quiz_settings.get("completed_session_grace_seconds", 30)
        self.min_questions_to_start: int = self.quiz_settings.get("min_questions_to_start", 1)
        self.max_questions_per_quiz: int = self.quiz_settings.get("max_questions_per_quiz", 50)
        self.streak_highlight_threshold: int = self.quiz_settings.get("streak_highlight_threshold", 2)
        self.leaderboard_display_limit: int = self.global_settings.get("leaderboard_display_limit", 10)

        if not self.bot_token:
            logger.critical("AppConfig: Токен BOT_TOKEN не найден! Проверьте .env файл.")

        logger.info("AppConfig загружен.")

    def engine_config(self) -> QuizEngineConfig:
        return QuizEngineConfig(
            default_settings=QuizSettings(
                question_time_seconds=self.default_question_time_seconds,
                intermission_time_seconds=self.default_intermission_time_seconds,
            ),
            start_delay_seconds=self.start_delay_seconds,
            completed_session_grace_seconds=self.completed_session_grace_seconds,
            min_questions_to_start=self.min_questions_to_start,
            max_questions_per_quiz=self.max_questions_per_quiz,
            streak_highlight_threshold=self.streak_highlight_threshold,
        )

    def _load_json_config(self, file_path: Path) -> Dict[str, Any]:
        default_config = copy.deepcopy(DEFAULT_CONFIG_STRUCTURE)
        try:
            if not file_path.exists():
                logger.warning(f"AppConfig._load_json_config: Файл {file_path} не найден! Создаю его с дефолтной структурой.")
                with open(file_path, 'w', encoding='utf-8') as f:
                    json.dump(default_config, f, ensure_ascii=False, indent=4)
                return default_config

            with open(file_path, 'r', encoding='utf-8') as f:
                config_data = json.load(f)

            if not isinstance(config_data, dict):
                logger.error(f"AppConfig._load_json_config: {file_path} должен содержать JSON объект. Будет использована структура по умолчанию.")
                return default_config

            if self._merge_defaults(config_data, default_config, str(file_path)):
                logger.info(f"AppConfig._load_json_config: Конфигурация в {file_path} дополнена недостающими ключами.")
                try:
                    with open(file_path, 'w', encoding='utf-8') as f_rewrite:
                        json.dump(config_data, f_rewrite, ensure_ascii=False, indent=4)
                except OSError as e_rewrite:
                    logger.error(f"AppConfig._load_json_config: Не удалось перезаписать {file_path}: {e_rewrite}")
            return config_data

        except json.JSONDecodeError as e_json:
            logger.error(f"AppConfig._load_json_config: Ошибка декодирования JSON в {file_path}: {e_json}! Будет использована структура по умолчанию.")
        except OSError as e:
            logger.error(f"AppConfig._load_json_config: Ошибка чтения {file_path}: {e}. Будет использована структура по умолчанию.")

        return default_config

    @staticmethod
    def _merge_defaults(target: Dict[str, Any], defaults: Dict[str, Any], path: str) -> bool:
        """Рекурсивно добавляет отсутствующие ключи. True, если что-то добавлено"""
        changed = False
        for key, default_value in defaults.items():
            if key not in target:
                target[key] = copy.deepcopy(default_value)
                logger.warning(f"AppConfig: в {path} отсутствует ключ '{key}'. Используется значение по умолчанию.")
                changed = True
            elif isinstance(default_value, dict) and isinstance(target[key], dict):
                if AppConfig._merge_defaults(target[key], default_value, f"{path}.{key}"):
                    changed = True
        return changed
