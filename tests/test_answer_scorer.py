#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Тесты начисления очков и причин отказа
"""

import sys
import unittest
from datetime import timedelta
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(Path(__file__).parent))

from fakes import START_TIME, make_definition
from modules.answer_scorer import score_answer
from modules.quiz_errors import AnswerRejection
from modules.quiz_models import QuizSettings, SessionStatus
from state import QuizSessionStore


def running_session(question_count=3, index=0):
    store = QuizSessionStore()
    session = store.create_session(-1, 1, make_definition(question_count=question_count), QuizSettings(), now=START_TIME)
    session.status = SessionStatus.RUNNING
    session.current_question_index = index
    session.question_started_at[index] = START_TIME
    return session


def at(seconds):
    return START_TIME + timedelta(seconds=seconds)


class TestScoring(unittest.TestCase):

    def test_first_correct_gets_bonus(self):
        session = running_session()
        result = score_answer(session, 0, 10, "Алиса", 0, at(1))
        self.assertTrue(result.accepted)
        self.assertTrue(result.is_first_correct)
        self.assertEqual(result.points_awarded, 2)
        self.assertEqual(session.questions[0].first_correct_responder, 10)

    def test_only_one_first_correct(self):
        session = running_session()
        score_answer(session, 0, 10, "Алиса", 0, at(1))
        later = score_answer(session, 0, 20, "Борис", 0, at(2))
        self.assertFalse(later.is_first_correct)
        self.assertEqual(later.points_awarded, 1)
        flags = [r.is_first_correct for r in session.questions[0].responses]
        self.assertEqual(flags.count(True), 1)

    def test_wrong_answer_does_not_block_first_correct(self):
        session = running_session()
        wrong = score_answer(session, 0, 10, "Алиса", 3, at(1))
        self.assertFalse(wrong.is_correct)
        self.assertEqual(wrong.points_awarded, 0)
        right = score_answer(session, 0, 20, "Борис", 0, at(2))
        self.assertTrue(right.is_first_correct)

    def test_streak_bonus_and_reset(self):
        session = running_session(question_count=4)
        points = []
        for index, answer in enumerate([0, 0, 1, 0]):
            session.current_question_index = index
            # Другой участник всегда первым, чтобы бонус первого не мешал
            score_answer(session, index, 99, "Быстрый", 0, at(index * 20))
            points.append(score_answer(session, index, 10, "Алиса", answer, at(index * 20 + 1)).points_awarded)

        self.assertEqual(points, [1, 2, 0, 1])
        participant = session.participants[10]
        self.assertEqual(participant.current_streak, 1)
        self.assertEqual(participant.max_streak, 2)
        self.assertEqual(participant.score, 4)
        self.assertEqual(participant.correct_answer_count, 3)

    def test_score_never_negative(self):
        session = running_session()
        score_answer(session, 0, 10, "Алиса", 2, at(1))
        self.assertEqual(session.participants[10].score, 0)

    def test_response_recorded_in_both_places(self):
        session = running_session()
        score_answer(session, 0, 10, "Алиса", 1, at(3))
        participant = session.participants[10]
        self.assertEqual(len(participant.responses), 1)
        self.assertIs(participant.responses[0], session.questions[0].responses[0])
        self.assertEqual(participant.last_response_at, at(3))

    def test_display_name_updated(self):
        session = running_session()
        score_answer(session, 0, 10, "Алиса", 1, at(1))
        session.current_question_index = 1
        score_answer(session, 1, 10, "Алиса К.", 1, at(2))
        self.assertEqual(session.participants[10].display_name, "Алиса К.")


class TestRejections(unittest.TestCase):

    def test_duplicate_answer(self):
        session = running_session()
        score_answer(session, 0, 10, "Алиса", 1, at(1))
        again = score_answer(session, 0, 10, "Алиса", 0, at(2))
        self.assertFalse(again.accepted)
        self.assertEqual(again.rejection, AnswerRejection.DUPLICATE_ANSWER)
        self.assertEqual(session.participants[10].score, 0)
        self.assertEqual(len(session.questions[0].responses), 1)

    def test_locked_question(self):
        session = running_session()
        session.locked_question_indices.add(0)
        result = score_answer(session, 0, 10, "Алиса", 0, at(1))
        self.assertEqual(result.rejection, AnswerRejection.QUESTION_LOCKED)
        self.assertNotIn(10, session.participants)

    def test_locked_takes_precedence_over_inactive(self):
        session = running_session()
        session.locked_question_indices.add(0)
        session.status = SessionStatus.INTERMISSION
        result = score_answer(session, 0, 10, "Алиса", 0, at(1))
        self.assertEqual(result.rejection, AnswerRejection.QUESTION_LOCKED)

    def test_not_running(self):
        session = running_session()
        session.status = SessionStatus.SETUP
        result = score_answer(session, 0, 10, "Алиса", 0, at(1))
        self.assertEqual(result.rejection, AnswerRejection.NO_ACTIVE_QUESTION)

    def test_wrong_question_index(self):
        session = running_session(index=1)
        result = score_answer(session, 0, 10, "Алиса", 0, at(1))
        self.assertEqual(result.rejection, AnswerRejection.NO_ACTIVE_QUESTION)

    def test_option_out_of_range(self):
        session = running_session()
        result = score_answer(session, 0, 10, "Алиса", 4, at(1))
        self.assertEqual(result.rejection, AnswerRejection.INVALID_OPTION)
        self.assertEqual(session.participants, {})


if __name__ == "__main__":
    unittest.main()
