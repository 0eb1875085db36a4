#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Тесты загрузки конфигурации quiz_config.json
"""

import json
import shutil
import sys
import tempfile
import unittest
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app_config import DEFAULT_CONFIG_STRUCTURE, AppConfig
from modules.quiz_models import QuizSettings


class TestAppConfig(unittest.TestCase):

    def setUp(self):
        self.test_dir = Path(tempfile.mkdtemp())
        self.config_file = self.test_dir / "config" / "quiz_config.json"

    def tearDown(self):
        shutil.rmtree(self.test_dir, ignore_errors=True)

    def test_creates_default_config(self):
        app_config = AppConfig(project_root=self.test_dir)
        self.assertTrue(self.config_file.exists())
        self.assertTrue((self.test_dir / "data" / "quizzes").is_dir())
        with open(self.config_file, encoding="utf-8") as f:
            self.assertEqual(json.load(f), DEFAULT_CONFIG_STRUCTURE)
        self.assertEqual(app_config.commands.start_quiz, "startquiz")
        self.assertEqual(app_config.leaderboard_display_limit, 10)

    def test_missing_keys_are_merged(self):
        self.config_file.parent.mkdir(parents=True)
        self.config_file.write_text(
            json.dumps({"quiz_settings": {"default_question_time_seconds": 20}}), encoding="utf-8"
        )
        app_config = AppConfig(project_root=self.test_dir)
        self.assertEqual(app_config.default_question_time_seconds, 20)
        self.assertEqual(app_config.start_delay_seconds, 5)

        with open(self.config_file, encoding="utf-8") as f:
            saved = json.load(f)
        self.assertEqual(saved["quiz_settings"]["default_question_time_seconds"], 20)
        self.assertIn("global_settings", saved)
        self.assertIn("min_questions_to_start", saved["quiz_settings"])

    def test_broken_json_falls_back_to_defaults(self):
        self.config_file.parent.mkdir(parents=True)
        self.config_file.write_text("{oops", encoding="utf-8")
        app_config = AppConfig(project_root=self.test_dir)
        self.assertEqual(app_config.default_question_time_seconds, 10)

    def test_engine_config(self):
        self.config_file.parent.mkdir(parents=True)
        config = json.loads(json.dumps(DEFAULT_CONFIG_STRUCTURE))
        config["quiz_settings"]["default_intermission_time_seconds"] = 0
        config["quiz_settings"]["min_questions_to_start"] = 3
        self.config_file.write_text(json.dumps(config), encoding="utf-8")

        engine_config = AppConfig(project_root=self.test_dir).engine_config()
        self.assertEqual(engine_config.default_settings, QuizSettings(question_time_seconds=10, intermission_time_seconds=0))
        self.assertEqual(engine_config.min_questions_to_start, 3)
        self.assertEqual(engine_config.completed_session_grace_seconds, 30)


if __name__ == "__main__":
    unittest.main()
