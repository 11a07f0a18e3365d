"""Service for a session's completion and correctness counters."""

from __future__ import annotations

import math

from learnquiz.core.models import QuizSession


def percentage(part: int, total: int) -> int:
    """Whole percentage rounded half up; 0 when there is nothing to divide by."""
    if total <= 0:
        return 0
    return math.floor(part / total * 100 + 0.5)


class ProgressTracker:
    """Tracks answered and correct counts for a single session."""

    def __init__(self, session: QuizSession) -> None:
        self._session = session

    @property
    def session(self) -> QuizSession:
        return self._session

    def on_answer_recorded(self, was_correct: bool) -> None:
        """Advance the counters for one newly recorded answer."""
        session = self._session
        if session.completed_count >= session.question_count:
            raise RuntimeError(
                f"Session {session.session_id} already has all {session.question_count} answers."
            )
        session.completed_count += 1
        if was_correct:
            session.correct_count += 1

    def accuracy(self) -> int:
        """Share of answered questions answered correctly."""
        return percentage(self._session.correct_count, self._session.completed_count)

    def score(self) -> int:
        """Share of all bound questions answered correctly."""
        return percentage(self._session.correct_count, self._session.question_count)

    def progress_percentage(self) -> int:
        return percentage(self._session.completed_count, self._session.question_count)

    def remaining_count(self) -> int:
        return max(0, self._session.question_count - self._session.completed_count)

    def is_complete(self) -> bool:
        return self._session.completed_count == self._session.question_count
