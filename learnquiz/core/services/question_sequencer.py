"""Service for ordered navigation over the questions bound to a session."""

from __future__ import annotations

from collections.abc import Iterable

from learnquiz.core.errors import QuestionNotInSessionError
from learnquiz.core.models import SessionQuestionState


class QuestionSequencer:
    """Indexable cursor over a session's question states.

    Navigation never requires the current question to be answered, and
    ``next``/``previous`` stop silently at either end of the sequence.
    """

    def __init__(self, states: list[SessionQuestionState], start_index: int = 0) -> None:
        self._states = states
        self._current_index: int = 0
        if states:
            self.jump_to(start_index)

    @classmethod
    def resume(cls, states: list[SessionQuestionState]) -> "QuestionSequencer":
        """Position the cursor on the first unanswered question, if any."""
        sequencer = cls(states)
        first_open = sequencer.find_first_unanswered()
        if first_open is not None:
            sequencer.jump_to(first_open)
        return sequencer

    def __len__(self) -> int:
        return len(self._states)

    @property
    def states(self) -> list[SessionQuestionState]:
        return list(self._states)

    @property
    def current_index(self) -> int:
        return self._current_index

    def current(self) -> SessionQuestionState:
        return self.state_at(self._current_index)

    def state_at(self, index: int) -> SessionQuestionState:
        if not 0 <= index < len(self._states):
            raise IndexError(f"Question index {index} out of range")
        return self._states[index]

    def jump_to(self, index: int) -> SessionQuestionState:
        state = self.state_at(index)
        self._current_index = index
        return state

    def next(self) -> SessionQuestionState:
        if self._current_index < len(self._states) - 1:
            self._current_index += 1
        return self.current()

    def previous(self) -> SessionQuestionState:
        if self._current_index > 0:
            self._current_index -= 1
        return self.current()

    def is_last(self) -> bool:
        return self._current_index >= len(self._states) - 1

    def find_first_unanswered(self) -> int | None:
        return next((i for i, state in enumerate(self._states) if not state.is_answered), None)

    def answered_count(self) -> int:
        return sum(1 for state in self._states if state.is_answered)

    def index_of(self, question_id: int) -> int:
        index = next((i for i, s in enumerate(self._states) if s.question_id == question_id), -1)
        if index < 0:
            raise QuestionNotInSessionError(question_id)
        return index

    def record_answer(
        self,
        index: int,
        selected_answer_ids: Iterable[int],
        is_correct: bool,
    ) -> SessionQuestionState:
        """Store the outcome for the question at ``index``.

        Raises AlreadyAnsweredError instead of overwriting an earlier answer.
        """
        state = self.state_at(index)
        state.record(frozenset(selected_answer_ids), is_correct)
        return state
