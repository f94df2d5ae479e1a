"""Exam simulation state machine.

not_started -> loading -> (error | in_progress) -> submitted

The simulator belongs to the exam view: it is created when the view opens
and dropped when the user leaves it. A result that arrives after the view
was left lands on an orphaned simulator and is never shown.
"""

from enum import Enum
from typing import Dict, List, Optional

from study_dashboard.logging_config import get_logger, log_with_context
from study_dashboard.models import ExamAttempt, ExamQuestion
from study_dashboard.services.content_service import ContentServiceError

logger = get_logger("content")

UNKNOWN_ERROR = "An unknown error occurred."


class ExamStatus(str, Enum):
    NOT_STARTED = "not_started"
    LOADING = "loading"
    ERROR = "error"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"


class ExamNotReadyError(Exception):
    """Submission attempted before every question has an answer."""


def score_answers(questions: List[ExamQuestion], answers: Dict[int, str]) -> int:
    """Count answers that equal the correct option text exactly."""
    return sum(1 for index, question in enumerate(questions) if answers.get(index) == question.correct_answer)


class ExamSimulator:
    def __init__(self):
        self.status = ExamStatus.NOT_STARTED
        self.questions: List[ExamQuestion] = []
        self.answers: Dict[int, str] = {}
        self.error: Optional[str] = None

    @property
    def is_loading(self) -> bool:
        return self.status == ExamStatus.LOADING

    @property
    def is_complete(self) -> bool:
        """True once every question index has a selected answer."""
        return bool(self.questions) and all(i in self.answers for i in range(len(self.questions)))

    async def begin(self, content_service) -> None:
        """Request a fresh exam; one request may be in flight at a time."""
        if self.status == ExamStatus.LOADING:
            return

        self.questions = []
        self.answers = {}
        self.error = None
        self.status = ExamStatus.LOADING

        try:
            questions = await content_service.generate_exam()
        except ContentServiceError as exc:
            self.error = str(exc)
            self.status = ExamStatus.ERROR
            return
        except Exception:
            log_with_context(logger, "ERROR", "Exam generation failed unexpectedly", exc_info=True)
            self.error = UNKNOWN_ERROR
            self.status = ExamStatus.ERROR
            return

        self.questions = list(questions)
        self.status = ExamStatus.IN_PROGRESS

    def select_answer(self, index: int, option: str) -> None:
        if self.status != ExamStatus.IN_PROGRESS:
            raise ValueError("The exam is not in progress")
        if not 0 <= index < len(self.questions):
            raise ValueError(f"Question {index} does not exist")
        if option not in self.questions[index].options:
            raise ValueError(f"'{option}' is not an option of question {index}")
        self.answers[index] = option

    def submit(self) -> ExamAttempt:
        """Score the exam. The attempt carries no date; the controller
        stamps it when it records the attempt."""
        if self.status != ExamStatus.IN_PROGRESS or not self.is_complete:
            raise ExamNotReadyError("Answer every question before submitting.")

        attempt = ExamAttempt(
            questions=self.questions,
            user_answers=dict(self.answers),
            score=score_answers(self.questions, self.answers),
        )
        self.status = ExamStatus.SUBMITTED
        return attempt
