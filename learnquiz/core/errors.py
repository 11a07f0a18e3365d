"""Domain errors raised by the quiz session engine.

All of them are local validation failures. Retrying without changing the
input will fail the same way. Errors raised by storage collaborators are
not wrapped and reach the caller unchanged.
"""

from __future__ import annotations


class QuizEngineError(Exception):
    """Base class for quiz engine validation failures."""


class EmptySelectionError(QuizEngineError):
    def __init__(self) -> None:
        super().__init__("Select at least one answer before submitting.")


class AlreadyAnsweredError(QuizEngineError):
    def __init__(self, question_id: int) -> None:
        super().__init__(f"Question {question_id} has already been answered in this session.")
        self.question_id = question_id


class QuestionNotInSessionError(QuizEngineError):
    def __init__(self, question_id: int) -> None:
        super().__init__(f"Question {question_id} is not part of this session.")
        self.question_id = question_id


class EmptyCategoryError(QuizEngineError):
    def __init__(self, category_id: int) -> None:
        super().__init__(f"Category {category_id} has no questions to build a session from.")
        self.category_id = category_id


class SessionNotFoundError(QuizEngineError):
    def __init__(self, session_id: int) -> None:
        super().__init__(f"Quiz session {session_id} does not exist.")
        self.session_id = session_id


class QuestionNotFoundError(QuizEngineError):
    def __init__(self, question_id: int) -> None:
        super().__init__(f"Question {question_id} does not exist.")
        self.question_id = question_id
