"""Service for storing the per-user history of ad-hoc answers."""

from __future__ import annotations

import copy
from threading import Lock
from typing import Protocol

from learnquiz.core.models import ScoreRecord


class ScoreRepository(Protocol):
    def add(self, record: ScoreRecord) -> ScoreRecord:
        ...

    def list_for_user(self, user_id: str) -> list[ScoreRecord]:
        ...


class InMemoryScoreRepository:
    """Append-only score store; records come back in submission order."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._records: list[ScoreRecord] = []
        self._score_counter: int = 0

    def add(self, record: ScoreRecord) -> ScoreRecord:
        with self._lock:
            self._score_counter += 1
            record.score_id = self._score_counter
            self._records.append(copy.deepcopy(record))
            return copy.deepcopy(record)

    def list_for_user(self, user_id: str) -> list[ScoreRecord]:
        with self._lock:
            return [copy.deepcopy(r) for r in self._records if r.user_id == user_id]
