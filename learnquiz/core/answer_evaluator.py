"""Scoring of a submitted selection against a question's correct answers."""

from __future__ import annotations

from collections.abc import Iterable

from learnquiz.core.errors import EmptySelectionError
from learnquiz.core.models import Answer, Evaluation, Question


def correct_answers(question: Question) -> list[Answer]:
    return [answer for answer in question.answers if answer.is_correct]


def correct_answer_ids(question: Question) -> frozenset[int]:
    return frozenset(answer.answer_id for answer in question.answers if answer.is_correct)


def evaluate(question: Question, selected_answer_ids: Iterable[int]) -> Evaluation:
    """Return CORRECT iff the selection is exactly the set of correct answers.

    Single-choice questions are the case where that set has one member, so
    both answer types share the same rule.
    """
    selection = frozenset(selected_answer_ids)
    if not selection:
        raise EmptySelectionError()
    if selection == correct_answer_ids(question):
        return Evaluation.CORRECT
    return Evaluation.INCORRECT
