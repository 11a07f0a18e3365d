"""Selection of the questions that seed a new quiz session."""

from __future__ import annotations

import random

from learnquiz.core.errors import EmptyCategoryError
from learnquiz.core.models import Question
from learnquiz.core.services.question_repository import QuestionRepository


class SessionCreationPolicy:
    """Draws a uniform random sample, without replacement, from a category.

    Asking for more questions than the category holds is not an error: the
    sample is clamped to whatever is available.
    """

    def __init__(self, question_repository: QuestionRepository, rng: random.Random | None = None) -> None:
        self._questions = question_repository
        self._rng = rng or random.Random()

    def set_seed(self, seed: int | None) -> None:
        self._rng.seed(seed)

    def select_questions(self, category_id: int, desired_count: int) -> list[Question]:
        if desired_count <= 0:
            raise ValueError("Desired question count must be a positive integer.")
        pool = self._questions.list_questions_by_category(category_id)
        if not pool:
            raise EmptyCategoryError(category_id)
        return self._rng.sample(pool, min(desired_count, len(pool)))
