"""Domain models for the learning quiz application."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from learnquiz.core.errors import AlreadyAnsweredError


class AnswerType(str, Enum):
    """Whether one or several options of a question are correct."""

    SINGLE = "single"
    MULTIPLE = "multiple"


class Evaluation(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"

    @property
    def is_correct(self) -> bool:
        return self is Evaluation.CORRECT


class SessionStatus(str, Enum):
    """Lifecycle of a quiz session. Only ever moves forward."""

    CREATED = "created"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class Answer:
    """A selectable option of a question."""

    answer_id: int
    answer_text: str
    is_correct: bool = False
    note: str | None = None  # Explanation revealed after submission


@dataclass(slots=True)
class Question:
    """Single- or multiple-choice question from the question bank."""

    question_id: int
    category_id: int
    question_text: str
    answer_type: AnswerType
    answers: list[Answer]
    note: str | None = None
    link_url: str | None = None


@dataclass(slots=True)
class Category:
    category_id: int
    name: str
    is_active: bool = True


@dataclass(slots=True)
class SessionQuestionState:
    """A question bound to a session together with the user's outcome.

    ``user_answer`` and ``is_correct`` are set together, once.
    """

    question: Question
    user_answer: frozenset[int] | None = None
    is_correct: bool | None = None

    @property
    def question_id(self) -> int:
        return self.question.question_id

    @property
    def is_answered(self) -> bool:
        return self.user_answer is not None

    def record(self, selected_answer_ids: frozenset[int], is_correct: bool) -> None:
        if self.user_answer is not None:
            raise AlreadyAnsweredError(self.question_id)
        self.user_answer = frozenset(selected_answer_ids)
        self.is_correct = is_correct


@dataclass(slots=True)
class QuizSession:
    """Aggregate root of a session; owns its bound question states."""

    session_id: int | None
    category_id: int
    name: str
    question_count: int
    description: str | None = None
    completed_count: int = 0
    correct_count: int = 0
    status: SessionStatus = SessionStatus.CREATED
    user_id: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class SessionSnapshot:
    """Read-only view of a session's counters returned to callers."""

    session_id: int
    category_id: int
    name: str
    description: str | None
    question_count: int
    completed_count: int
    correct_count: int
    status: SessionStatus
    accuracy: int
    score: int
    progress: int
    remaining_count: int
    user_id: str | None
    created_at: datetime
    updated_at: datetime

    @property
    def is_complete(self) -> bool:
        return self.status is SessionStatus.COMPLETED


@dataclass(slots=True)
class SubmissionResult:
    """Outcome of a submission; the correct answers are always revealed."""

    question_id: int
    evaluation: Evaluation
    selected_answer_ids: frozenset[int]
    correct_answers: list[Answer]
    session: SessionSnapshot | None = None
    score_id: int | None = None

    @property
    def is_correct(self) -> bool:
        return self.evaluation.is_correct


@dataclass(slots=True)
class ScoreRecord:
    """One ad-hoc answer recorded in a user's score history."""

    score_id: int | None
    user_id: str
    question_id: int
    category_id: int
    is_correct: bool
    selected_answer_ids: frozenset[int]
    submitted_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class CategoryStat:
    category_id: int
    total_questions: int
    correct_answers: int
    accuracy_rate: int
    last_access: datetime


@dataclass(slots=True)
class ScoreSummary:
    """Totals over a user's whole score history, overall and per category."""

    user_id: str
    total_questions: int
    correct_answers: int
    accuracy_rate: int
    category_stats: list[CategoryStat]
