"""Service for storing quiz sessions and their bound question states."""

from __future__ import annotations

import copy
from threading import Lock
from typing import Protocol

from learnquiz.core.errors import SessionNotFoundError
from learnquiz.core.models import QuizSession, SessionQuestionState


class SessionRepository(Protocol):
    """Storage contract for sessions.

    ``get`` must reflect the most recent successful ``persist``.
    """

    def create(self, session: QuizSession, states: list[SessionQuestionState]) -> QuizSession:
        ...

    def get(self, session_id: int) -> tuple[QuizSession, list[SessionQuestionState]]:
        ...

    def persist(self, session: QuizSession, states: list[SessionQuestionState]) -> None:
        ...

    def list_sessions(self) -> list[QuizSession]:
        ...

    def delete(self, session_id: int) -> None:
        ...


class InMemorySessionRepository:
    """Session store that hands out copies so callers work on private state."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._sessions: dict[int, tuple[QuizSession, list[SessionQuestionState]]] = {}
        self._session_counter: int = 0

    def create(self, session: QuizSession, states: list[SessionQuestionState]) -> QuizSession:
        with self._lock:
            self._session_counter += 1
            session.session_id = self._session_counter
            self._sessions[session.session_id] = copy.deepcopy((session, states))
            return copy.deepcopy(session)

    def get(self, session_id: int) -> tuple[QuizSession, list[SessionQuestionState]]:
        with self._lock:
            entry = self._sessions.get(session_id)
            if entry is None:
                raise SessionNotFoundError(session_id)
            return copy.deepcopy(entry)

    def persist(self, session: QuizSession, states: list[SessionQuestionState]) -> None:
        if session.session_id is None:
            raise ValueError("Cannot persist a session that was never created.")
        with self._lock:
            if session.session_id not in self._sessions:
                raise SessionNotFoundError(session.session_id)
            self._sessions[session.session_id] = copy.deepcopy((session, states))

    def list_sessions(self) -> list[QuizSession]:
        with self._lock:
            return [copy.deepcopy(session) for session, _ in self._sessions.values()]

    def delete(self, session_id: int) -> None:
        with self._lock:
            if self._sessions.pop(session_id, None) is None:
                raise SessionNotFoundError(session_id)

    def get_session_count(self) -> int:
        with self._lock:
            return len(self._sessions)
