"""Service for storing categories and the questions of the question bank."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Protocol

from learnquiz.core.errors import QuestionNotFoundError
from learnquiz.core.models import Answer, AnswerType, Category, Question

if TYPE_CHECKING:
    from learnquiz.core.question_importer import ImportedQuestionBank


class QuestionRepository(Protocol):
    """What the engine needs from a question store."""

    def list_questions_by_category(self, category_id: int) -> list[Question]:
        ...

    def get_question(self, question_id: int) -> Question:
        ...


class InMemoryQuestionRepository:
    """Keeps categories and validated questions in process memory.

    Reads return copies, so callers can never alter the stored bank.
    """

    def __init__(self) -> None:
        self._categories: dict[int, Category] = {}
        self._questions: dict[int, Question] = {}
        self._category_counter: int = 0
        self._question_counter: int = 0
        self._answer_counter: int = 0

    # --- Categories ---

    def add_category(self, name: str, is_active: bool = True) -> Category:
        cleaned = name.strip()
        if not cleaned:
            raise ValueError("Category name must not be empty.")
        self._category_counter += 1
        category = Category(category_id=self._category_counter, name=cleaned, is_active=is_active)
        self._categories[category.category_id] = category
        return category

    def get_category(self, category_id: int) -> Category | None:
        return self._categories.get(category_id)

    def find_category(self, name: str) -> Category | None:
        wanted = name.strip().casefold()
        return next((c for c in self._categories.values() if c.name.casefold() == wanted), None)

    def list_categories(self) -> list[Category]:
        return sorted(self._categories.values(), key=lambda c: c.category_id)

    def set_category_active(self, category_id: int, is_active: bool) -> None:
        category = self._categories.get(category_id)
        if category is None:
            raise KeyError(f"Category {category_id} does not exist")
        category.is_active = is_active

    # --- Questions ---

    def add_question(self, question: Question) -> Question:
        """Validate ``question`` and store it under freshly assigned ids."""
        if question.category_id not in self._categories:
            raise ValueError(f"Category {question.category_id} does not exist.")
        prepared = self._prepare_question(question)
        self._questions[prepared.question_id] = prepared
        return copy.deepcopy(prepared)

    def get_question(self, question_id: int) -> Question:
        question = self._questions.get(question_id)
        if question is None:
            raise QuestionNotFoundError(question_id)
        return copy.deepcopy(question)

    def list_questions_by_category(self, category_id: int) -> list[Question]:
        """Eligible questions of a category in insertion order."""
        category = self._categories.get(category_id)
        if category is None or not category.is_active:
            return []
        return [copy.deepcopy(q) for q in self._questions.values() if q.category_id == category_id]

    def load_bank(self, bank: ImportedQuestionBank) -> int:
        """Store every imported question, creating categories by name."""
        loaded = 0
        for category_name, questions in bank.questions_by_category.items():
            category = self.find_category(category_name) or self.add_category(category_name)
            for question in questions:
                question.category_id = category.category_id
                self.add_question(question)
                loaded += 1
        return loaded

    def _prepare_question(self, question: Question) -> Question:
        cleaned_text = question.question_text.strip()
        if not cleaned_text:
            raise ValueError("Question text must not be empty.")
        answers = self._validate_answers(question.answer_type, question.answers)
        return Question(
            question_id=self._next_question_id(),
            category_id=question.category_id,
            question_text=cleaned_text,
            answer_type=question.answer_type,
            answers=[
                Answer(
                    answer_id=self._next_answer_id(),
                    answer_text=answer.answer_text,
                    is_correct=answer.is_correct,
                    note=answer.note,
                )
                for answer in answers
            ],
            note=question.note,
            link_url=question.link_url,
        )

    def _next_question_id(self) -> int:
        self._question_counter += 1
        return self._question_counter

    def _next_answer_id(self) -> int:
        self._answer_counter += 1
        return self._answer_counter

    @staticmethod
    def _validate_answers(answer_type: AnswerType, answers: list[Answer]) -> list[Answer]:
        if len(answers) < 2:
            raise ValueError("Each question must have at least two answers.")
        cleaned = [
            Answer(
                answer_id=answer.answer_id,
                answer_text=answer.answer_text.strip(),
                is_correct=answer.is_correct,
                note=answer.note,
            )
            for answer in answers
        ]
        if any(not answer.answer_text for answer in cleaned):
            raise ValueError("Answer text cannot be empty.")
        correct = sum(1 for answer in cleaned if answer.is_correct)
        if answer_type is AnswerType.SINGLE and correct != 1:
            raise ValueError("A single-choice question must have exactly one correct answer.")
        if answer_type is AnswerType.MULTIPLE and correct < 1:
            raise ValueError("A multiple-choice question must have at least one correct answer.")
        return cleaned
