"""Business logic driving quiz sessions from creation to completion."""

from __future__ import annotations

from collections.abc import Iterable
import copy
import logging
from threading import Lock

from learnquiz.constants.quiz_constants import DEFAULT_SCORE_HISTORY_LIMIT, DEFAULT_SESSION_QUESTION_COUNT
from learnquiz.core import answer_evaluator
from learnquiz.core.errors import AlreadyAnsweredError, EmptySelectionError, QuizEngineError
from learnquiz.core.models import (
    CategoryStat,
    Evaluation,
    QuizSession,
    ScoreRecord,
    ScoreSummary,
    SessionQuestionState,
    SessionSnapshot,
    SessionStatus,
    SubmissionResult,
    utcnow,
)
from learnquiz.core.services.progress_tracker import ProgressTracker, percentage
from learnquiz.core.services.question_repository import QuestionRepository
from learnquiz.core.services.question_sequencer import QuestionSequencer
from learnquiz.core.services.score_repository import InMemoryScoreRepository, ScoreRepository
from learnquiz.core.services.session_repository import SessionRepository
from learnquiz.core.session_policy import SessionCreationPolicy

logger = logging.getLogger(__name__)

_ALLOWED_TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.CREATED: frozenset({SessionStatus.IN_PROGRESS, SessionStatus.COMPLETED}),
    SessionStatus.IN_PROGRESS: frozenset({SessionStatus.IN_PROGRESS, SessionStatus.COMPLETED}),
    SessionStatus.COMPLETED: frozenset(),
}


def advance_status(session: QuizSession, tracker: ProgressTracker) -> SessionStatus:
    """Move ``session`` to the status its counters imply after one more answer."""
    target = SessionStatus.COMPLETED if tracker.is_complete() else SessionStatus.IN_PROGRESS
    if target not in _ALLOWED_TRANSITIONS[session.status]:
        raise RuntimeError(f"Illegal session transition {session.status.value} -> {target.value}")
    session.status = target
    return target


def snapshot(session: QuizSession) -> SessionSnapshot:
    if session.session_id is None:
        raise ValueError("Session has not been stored yet.")
    tracker = ProgressTracker(session)
    return SessionSnapshot(
        session_id=session.session_id,
        category_id=session.category_id,
        name=session.name,
        description=session.description,
        question_count=session.question_count,
        completed_count=session.completed_count,
        correct_count=session.correct_count,
        status=session.status,
        accuracy=tracker.accuracy(),
        score=tracker.score(),
        progress=tracker.progress_percentage(),
        remaining_count=tracker.remaining_count(),
        user_id=session.user_id,
        created_at=session.created_at,
        updated_at=session.updated_at,
    )


class QuizEngine:
    """Facade over the question bank, session store and session services."""

    def __init__(
        self,
        question_repository: QuestionRepository,
        session_repository: SessionRepository,
        creation_policy: SessionCreationPolicy | None = None,
        score_repository: ScoreRepository | None = None,
    ) -> None:
        self._questions = question_repository
        self._sessions = session_repository
        self._policy = creation_policy or SessionCreationPolicy(question_repository)
        self._scores = score_repository or InMemoryScoreRepository()
        self._lock = Lock()
        self._session_locks: dict[int, Lock] = {}

    # --- Session lifecycle ---

    def create_session(
        self,
        category_id: int,
        name: str,
        description: str | None = None,
        desired_count: int = DEFAULT_SESSION_QUESTION_COUNT,
        user_id: str | None = None,
    ) -> SessionSnapshot:
        cleaned_name = name.strip()
        if not cleaned_name:
            raise ValueError("Session name must not be empty.")
        questions = self._policy.select_questions(category_id, desired_count)
        session = QuizSession(
            session_id=None,
            category_id=category_id,
            name=cleaned_name,
            description=(description or "").strip() or None,
            question_count=len(questions),
            user_id=user_id,
        )
        states = [SessionQuestionState(question=copy.deepcopy(q)) for q in questions]
        created = self._sessions.create(session, states)
        logger.info(
            "Created session %s for category %s with %d of %d requested questions",
            created.session_id,
            category_id,
            created.question_count,
            desired_count,
        )
        return snapshot(created)

    def get_session(self, session_id: int) -> SessionSnapshot:
        session, _ = self._sessions.get(session_id)
        return snapshot(session)

    def get_session_questions(self, session_id: int) -> list[SessionQuestionState]:
        _, states = self._sessions.get(session_id)
        return states

    def list_sessions(self, category_id: int | None = None, user_id: str | None = None) -> list[SessionSnapshot]:
        sessions = [
            s
            for s in self._sessions.list_sessions()
            if (category_id is None or s.category_id == category_id)
            and (user_id is None or s.user_id == user_id)
        ]
        sessions.sort(key=lambda s: (s.created_at, s.session_id or 0), reverse=True)
        return [snapshot(s) for s in sessions]

    def delete_session(self, session_id: int) -> None:
        with self._lock_for(session_id):
            self._sessions.delete(session_id)
        with self._lock:
            self._session_locks.pop(session_id, None)

    # --- Submission ---

    def submit_answer(
        self,
        session_id: int,
        question_id: int,
        selected_answer_ids: Iterable[int],
    ) -> SubmissionResult:
        """Score one answer and record it together with the session counters.

        Everything happens on a working copy that is persisted once at the
        end, so a rejected submission leaves the stored session untouched.
        """
        selection = frozenset(selected_answer_ids)
        with self._lock_for(session_id):
            try:
                session, states = self._sessions.get(session_id)
                sequencer = QuestionSequencer(states)
                index = sequencer.index_of(question_id)
                if not selection:
                    raise EmptySelectionError()
                state = sequencer.state_at(index)
                if state.is_answered:
                    raise AlreadyAnsweredError(question_id)
                evaluation = answer_evaluator.evaluate(state.question, selection)

                tracker = ProgressTracker(session)
                sequencer.record_answer(index, selection, evaluation.is_correct)
                tracker.on_answer_recorded(evaluation.is_correct)
                status = advance_status(session, tracker)
                session.updated_at = utcnow()
                self._sessions.persist(session, states)
            except QuizEngineError as exc:
                logger.info("Rejected submission for session %s question %s: %s", session_id, question_id, exc)
                raise

        if status is SessionStatus.COMPLETED:
            logger.info(
                "Session %s completed: %d/%d correct",
                session_id,
                session.correct_count,
                session.question_count,
            )
        return SubmissionResult(
            question_id=question_id,
            evaluation=evaluation,
            selected_answer_ids=selection,
            correct_answers=answer_evaluator.correct_answers(state.question),
            session=snapshot(session),
        )

    # --- Navigation & summary queries ---

    def open_sequencer(self, session_id: int) -> QuestionSequencer:
        """Cursor over a private copy of the session, resumed where the user left off."""
        _, states = self._sessions.get(session_id)
        return QuestionSequencer.resume(states)

    def first_unanswered_index(self, session_id: int) -> int | None:
        _, states = self._sessions.get(session_id)
        return QuestionSequencer(states).find_first_unanswered()

    def accuracy(self, session_id: int) -> int:
        session, _ = self._sessions.get(session_id)
        return ProgressTracker(session).accuracy()

    def is_complete(self, session_id: int) -> bool:
        session, _ = self._sessions.get(session_id)
        return ProgressTracker(session).is_complete()

    # --- Ad-hoc mode & score history ---

    def check_answer(
        self,
        question_id: int,
        selected_answer_ids: Iterable[int],
        user_id: str | None = None,
    ) -> SubmissionResult:
        """Evaluate a bank question outside of any session.

        With a ``user_id`` the outcome is also added to that user's score history.
        """
        question = self._questions.get_question(question_id)
        selection = frozenset(selected_answer_ids)
        evaluation: Evaluation = answer_evaluator.evaluate(question, selection)
        score_id = None
        if user_id is not None:
            record = self._scores.add(
                ScoreRecord(
                    score_id=None,
                    user_id=user_id,
                    question_id=question_id,
                    category_id=question.category_id,
                    is_correct=evaluation.is_correct,
                    selected_answer_ids=selection,
                )
            )
            score_id = record.score_id
        return SubmissionResult(
            question_id=question_id,
            evaluation=evaluation,
            selected_answer_ids=selection,
            correct_answers=answer_evaluator.correct_answers(question),
            score_id=score_id,
        )

    def score_history(
        self,
        user_id: str,
        category_id: int | None = None,
        limit: int = DEFAULT_SCORE_HISTORY_LIMIT,
    ) -> list[ScoreRecord]:
        """Most recent ad-hoc answers of a user, newest first."""
        if limit <= 0:
            raise ValueError("History limit must be a positive integer.")
        records = [
            r for r in self._scores.list_for_user(user_id) if category_id is None or r.category_id == category_id
        ]
        records.sort(key=lambda r: (r.submitted_at, r.score_id or 0), reverse=True)
        return records[:limit]

    def score_summary(self, user_id: str) -> ScoreSummary:
        records = self._scores.list_for_user(user_id)
        by_category: dict[int, list[ScoreRecord]] = {}
        for record in records:
            by_category.setdefault(record.category_id, []).append(record)

        category_stats = []
        for category_id, category_records in sorted(by_category.items()):
            correct = sum(1 for r in category_records if r.is_correct)
            category_stats.append(
                CategoryStat(
                    category_id=category_id,
                    total_questions=len(category_records),
                    correct_answers=correct,
                    accuracy_rate=percentage(correct, len(category_records)),
                    last_access=max(r.submitted_at for r in category_records),
                )
            )
        correct_total = sum(1 for r in records if r.is_correct)
        return ScoreSummary(
            user_id=user_id,
            total_questions=len(records),
            correct_answers=correct_total,
            accuracy_rate=percentage(correct_total, len(records)),
            category_stats=category_stats,
        )

    def set_selection_seed(self, seed: int | None) -> None:
        self._policy.set_seed(seed)

    def _lock_for(self, session_id: int) -> Lock:
        with self._lock:
            lock = self._session_locks.get(session_id)
            if lock is None:
                lock = Lock()
                self._session_locks[session_id] = lock
            return lock
