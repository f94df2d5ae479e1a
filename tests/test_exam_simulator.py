"""Tests for the exam simulation state machine."""

import asyncio

import pytest

from study_dashboard.models import ExamQuestion
from study_dashboard.services.exam_simulator import (
    UNKNOWN_ERROR,
    ExamNotReadyError,
    ExamSimulator,
    ExamStatus,
    score_answers,
)

from conftest import FakeContentService, make_questions


def started(service=None):
    exam = ExamSimulator()
    asyncio.run(exam.begin(service or FakeContentService()))
    return exam


class TestScoring:
    def test_one_right_one_wrong(self):
        """Answers {0: correct, 1: wrong} against two questions score 1."""
        questions = [
            ExamQuestion(question="Capital of France?", options=["Paris", "Rome"], correct_answer="Paris"),
            ExamQuestion(question="2 + 2?", options=["3", "4"], correct_answer="4"),
        ]
        assert score_answers(questions, {0: "Paris", 1: "3"}) == 1

    def test_match_is_exact(self):
        questions = [ExamQuestion(question="Q", options=["Paris", "paris "], correct_answer="Paris")]
        assert score_answers(questions, {0: "paris "}) == 0

    def test_missing_answers_score_nothing(self):
        assert score_answers(make_questions(3), {}) == 0


class TestExamFlow:
    def test_starts_not_started(self):
        exam = ExamSimulator()
        assert exam.status == ExamStatus.NOT_STARTED
        assert not exam.is_complete

    def test_begin_loads_questions(self):
        service = FakeContentService()
        exam = started(service)
        assert exam.status == ExamStatus.IN_PROGRESS
        assert len(exam.questions) == 3
        assert service.exam_calls == 1

    def test_failure_enters_error_state_with_message(self, failing_content_service):
        exam = started(failing_content_service)
        assert exam.status == ExamStatus.ERROR
        assert "HTTP 503" in exam.error
        assert exam.questions == []

    def test_unexpected_failure_gets_generic_message(self):
        service = FakeContentService()
        service.error = RuntimeError("socket exploded")
        exam = started(service)
        assert exam.status == ExamStatus.ERROR
        assert exam.error == UNKNOWN_ERROR

    def test_retry_after_error(self, failing_content_service):
        exam = started(failing_content_service)
        failing_content_service.error = None
        asyncio.run(exam.begin(failing_content_service))
        assert exam.status == ExamStatus.IN_PROGRESS
        assert exam.error is None

    def test_begin_ignored_while_loading(self):
        service = FakeContentService()
        exam = ExamSimulator()
        exam.status = ExamStatus.LOADING
        asyncio.run(exam.begin(service))
        assert service.exam_calls == 0

    def test_restart_clears_previous_answers(self):
        service = FakeContentService()
        exam = started(service)
        exam.select_answer(0, "B")
        asyncio.run(exam.begin(service))
        assert exam.answers == {}


class TestAnswering:
    def test_submit_requires_every_answer(self):
        exam = started()
        exam.select_answer(0, "B")
        exam.select_answer(1, "A")
        with pytest.raises(ExamNotReadyError):
            exam.submit()
        assert exam.status == ExamStatus.IN_PROGRESS

    def test_submit_scores_and_keeps_questions(self):
        exam = started(FakeContentService(questions=make_questions(2)))
        served = list(exam.questions)
        exam.select_answer(0, "B")
        exam.select_answer(1, "C")

        attempt = exam.submit()

        assert attempt.score == 1
        assert attempt.total == 2
        assert attempt.user_answers == {0: "B", 1: "C"}
        assert attempt.questions == served
        assert attempt.date is None
        assert exam.status == ExamStatus.SUBMITTED

    def test_changing_an_answer_replaces_it(self):
        exam = started()
        exam.select_answer(0, "A")
        exam.select_answer(0, "B")
        assert exam.answers[0] == "B"

    def test_rejects_unknown_option(self):
        exam = started()
        with pytest.raises(ValueError):
            exam.select_answer(0, "Z")

    def test_rejects_unknown_question(self):
        exam = started()
        with pytest.raises(ValueError):
            exam.select_answer(7, "A")

    def test_cannot_answer_before_start(self):
        with pytest.raises(ValueError):
            ExamSimulator().select_answer(0, "A")
