from __future__ import annotations

import random

import pytest

from learnquiz.core.errors import QuestionNotFoundError
from learnquiz.core.models import Answer, AnswerType, Question
from learnquiz.core.quiz_engine import QuizEngine
from learnquiz.core.services.session_repository import InMemorySessionRepository
from learnquiz.core.session_policy import SessionCreationPolicy


def make_question(
    question_id: int,
    answers: list[tuple[int, bool]],
    answer_type: AnswerType = AnswerType.SINGLE,
    category_id: int = 1,
) -> Question:
    return Question(
        question_id=question_id,
        category_id=category_id,
        question_text=f"Question {question_id}",
        answer_type=answer_type,
        answers=[
            Answer(answer_id=answer_id, answer_text=f"Answer {answer_id}", is_correct=is_correct)
            for answer_id, is_correct in answers
        ],
    )


class StaticQuestionRepository:
    """Question store that keeps the ids it is given."""

    def __init__(self, questions: list[Question]) -> None:
        self._questions = list(questions)

    def list_questions_by_category(self, category_id: int) -> list[Question]:
        return [q for q in self._questions if q.category_id == category_id]

    def get_question(self, question_id: int) -> Question:
        for question in self._questions:
            if question.question_id == question_id:
                return question
        raise QuestionNotFoundError(question_id)


@pytest.fixture
def single_question() -> Question:
    return make_question(1, [(3, False), (7, True), (8, False)])


@pytest.fixture
def multiple_question() -> Question:
    return make_question(2, [(2, True), (5, True), (9, False)], AnswerType.MULTIPLE)


@pytest.fixture
def bank(single_question: Question, multiple_question: Question) -> StaticQuestionRepository:
    third = make_question(3, [(10, True), (11, False)])
    return StaticQuestionRepository([single_question, multiple_question, third])


@pytest.fixture
def sessions() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def engine(bank: StaticQuestionRepository, sessions: InMemorySessionRepository) -> QuizEngine:
    policy = SessionCreationPolicy(bank, rng=random.Random(1234))
    return QuizEngine(bank, sessions, policy)
