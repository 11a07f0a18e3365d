"""FastAPI server exposing categories, ad-hoc questions and quiz sessions."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
import uvicorn

from learnquiz.constants.about import APP_NAME, APP_VERSION
from learnquiz.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from learnquiz.constants.quiz_constants import (
    DEFAULT_SCORE_HISTORY_LIMIT,
    DEFAULT_SESSION_QUESTION_COUNT,
    MAX_SESSION_QUESTION_COUNT,
)
from learnquiz.core.errors import (
    AlreadyAnsweredError,
    EmptyCategoryError,
    EmptySelectionError,
    QuestionNotFoundError,
    QuestionNotInSessionError,
    QuizEngineError,
    SessionNotFoundError,
)
from learnquiz.core.markdown_renderer import renderer
from learnquiz.core.models import (
    Answer,
    Question,
    ScoreRecord,
    ScoreSummary,
    SessionQuestionState,
    SessionSnapshot,
    SubmissionResult,
)
from learnquiz.core.quiz_engine import QuizEngine
from learnquiz.core.services.question_repository import InMemoryQuestionRepository

_ERROR_STATUS: dict[type[QuizEngineError], int] = {
    EmptySelectionError: 422,
    AlreadyAnsweredError: 409,
    QuestionNotInSessionError: 404,
    EmptyCategoryError: 404,
    SessionNotFoundError: 404,
    QuestionNotFoundError: 404,
}


class SessionCreatePayload(BaseModel):
    """Payload schema for starting a quiz session."""

    category_id: int
    name: str
    description: str | None = None
    user_id: str | None = None


class SubmitPayload(BaseModel):
    """Payload schema for answering a question inside a session."""

    question_id: int
    selected_answer_ids: list[int] = Field(default_factory=list)


class CheckPayload(BaseModel):
    """Payload schema for answering a question in ad-hoc mode."""

    selected_answer_ids: list[int] = Field(default_factory=list)
    user_id: str | None = None


def _iso(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _session_payload(session: SessionSnapshot) -> dict[str, object]:
    return {
        "session_id": session.session_id,
        "category_id": session.category_id,
        "name": session.name,
        "description": session.description,
        "question_count": session.question_count,
        "completed_count": session.completed_count,
        "correct_count": session.correct_count,
        "accuracy": session.accuracy,
        "score": session.score,
        "progress": session.progress,
        "remaining_count": session.remaining_count,
        "status": session.status.value,
        "completed": session.is_complete,
        "user_id": session.user_id,
        "created_at": _iso(session.created_at),
        "updated_at": _iso(session.updated_at),
    }


def _answer_payload(answer: Answer, reveal: bool) -> dict[str, object]:
    payload: dict[str, object] = {
        "answer_id": answer.answer_id,
        "answer_text": answer.answer_text,
        "answer_html": renderer.render_inline(answer.answer_text),
    }
    # Correctness stays hidden until the question has been answered.
    if reveal:
        payload["is_correct"] = answer.is_correct
        payload["note"] = answer.note
    return payload


def _question_payload(question: Question, reveal: bool) -> dict[str, object]:
    payload: dict[str, object] = {
        "question_id": question.question_id,
        "category_id": question.category_id,
        "question_text": question.question_text,
        "question_html": renderer.render_fragment(question.question_text),
        "answer_type": question.answer_type.value,
        "answers": [_answer_payload(answer, reveal) for answer in question.answers],
        "link_url": question.link_url,
    }
    if reveal:
        payload["note"] = question.note
        payload["note_html"] = renderer.render_fragment(question.note or "")
    return payload


def _state_payload(index: int, state: SessionQuestionState) -> dict[str, object]:
    payload = _question_payload(state.question, reveal=state.is_answered)
    payload["index"] = index
    payload["user_answer"] = sorted(state.user_answer) if state.user_answer is not None else None
    payload["is_correct"] = state.is_correct
    return payload


def _submission_payload(result: SubmissionResult) -> dict[str, object]:
    return {
        "question_id": result.question_id,
        "evaluation": result.evaluation.value,
        "is_correct": result.is_correct,
        "selected_answer_ids": sorted(result.selected_answer_ids),
        "correct_answers": [_answer_payload(answer, reveal=True) for answer in result.correct_answers],
        "session": _session_payload(result.session) if result.session is not None else None,
        "score_id": result.score_id,
    }


def _score_payload(record: ScoreRecord) -> dict[str, object]:
    return {
        "score_id": record.score_id,
        "user_id": record.user_id,
        "question_id": record.question_id,
        "category_id": record.category_id,
        "is_correct": record.is_correct,
        "selected_answer_ids": sorted(record.selected_answer_ids),
        "submitted_at": _iso(record.submitted_at),
    }


def _summary_payload(summary: ScoreSummary) -> dict[str, object]:
    return {
        "user_id": summary.user_id,
        "total_questions": summary.total_questions,
        "correct_answers": summary.correct_answers,
        "accuracy_rate": summary.accuracy_rate,
        "category_stats": [
            {
                "category_id": stat.category_id,
                "total_questions": stat.total_questions,
                "correct_answers": stat.correct_answers,
                "accuracy_rate": stat.accuracy_rate,
                "last_access": _iso(stat.last_access),
            }
            for stat in summary.category_stats
        ],
    }


def _get_engine_dependency(engine: QuizEngine):
    def dependency() -> QuizEngine:
        return engine

    return dependency


def create_api_app(engine: QuizEngine, question_repository: InMemoryQuestionRepository | None = None) -> FastAPI:
    """Create a FastAPI application wired to the provided quiz engine.

    Category listing needs the concrete question store; without one the
    category endpoint reports an empty list.
    """
    app = FastAPI(title=f"{APP_NAME} API", version=APP_VERSION)
    engine_dep = _get_engine_dependency(engine)

    @app.exception_handler(QuizEngineError)
    async def handle_engine_error(request: Request, exc: QuizEngineError) -> JSONResponse:
        status_code = _ERROR_STATUS.get(type(exc), 400)
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    @app.get("/categories")
    def list_categories() -> list[dict[str, object]]:
        if question_repository is None:
            return []
        return [
            {
                "category_id": category.category_id,
                "name": category.name,
                "is_active": category.is_active,
                "question_count": len(question_repository.list_questions_by_category(category.category_id)),
            }
            for category in question_repository.list_categories()
        ]

    @app.get("/categories/{category_id}/sessions")
    def list_category_sessions(
        category_id: int,
        manager: QuizEngine = Depends(engine_dep),
    ) -> list[dict[str, object]]:
        return [_session_payload(s) for s in manager.list_sessions(category_id=category_id)]

    @app.get("/questions/{question_id}")
    def get_question(question_id: int) -> dict[str, object]:
        if question_repository is None:
            raise QuestionNotFoundError(question_id)
        return _question_payload(question_repository.get_question(question_id), reveal=False)

    @app.post("/questions/{question_id}/check")
    def check_answer(
        question_id: int,
        payload: CheckPayload,
        manager: QuizEngine = Depends(engine_dep),
    ) -> dict[str, object]:
        result = manager.check_answer(question_id, payload.selected_answer_ids, user_id=payload.user_id)
        return _submission_payload(result)

    @app.get("/scores/history")
    def score_history(
        user_id: str,
        limit: int = Query(DEFAULT_SCORE_HISTORY_LIMIT, ge=1),
        manager: QuizEngine = Depends(engine_dep),
    ) -> list[dict[str, object]]:
        return [_score_payload(r) for r in manager.score_history(user_id, limit=limit)]

    @app.get("/scores/summary")
    def score_summary(user_id: str, manager: QuizEngine = Depends(engine_dep)) -> dict[str, object]:
        return _summary_payload(manager.score_summary(user_id))

    @app.get("/scores/category/{category_id}")
    def category_scores(
        category_id: int,
        user_id: str,
        limit: int = Query(DEFAULT_SCORE_HISTORY_LIMIT, ge=1),
        manager: QuizEngine = Depends(engine_dep),
    ) -> list[dict[str, object]]:
        return [_score_payload(r) for r in manager.score_history(user_id, category_id=category_id, limit=limit)]

    @app.post("/sessions", status_code=201)
    def create_session(
        payload: SessionCreatePayload,
        question_count: int = Query(DEFAULT_SESSION_QUESTION_COUNT, ge=1, le=MAX_SESSION_QUESTION_COUNT),
        manager: QuizEngine = Depends(engine_dep),
    ) -> dict[str, object]:
        try:
            session = manager.create_session(
                category_id=payload.category_id,
                name=payload.name,
                description=payload.description,
                desired_count=question_count,
                user_id=payload.user_id,
            )
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return _session_payload(session)

    @app.get("/sessions")
    def list_sessions(
        user_id: str | None = None,
        manager: QuizEngine = Depends(engine_dep),
    ) -> list[dict[str, object]]:
        return [_session_payload(s) for s in manager.list_sessions(user_id=user_id)]

    @app.get("/sessions/{session_id}")
    def get_session(session_id: int, manager: QuizEngine = Depends(engine_dep)) -> dict[str, object]:
        return _session_payload(manager.get_session(session_id))

    @app.delete("/sessions/{session_id}", status_code=204)
    def delete_session(session_id: int, manager: QuizEngine = Depends(engine_dep)) -> Response:
        manager.delete_session(session_id)
        return Response(status_code=204)

    @app.get("/sessions/{session_id}/questions")
    def get_session_questions(session_id: int, manager: QuizEngine = Depends(engine_dep)) -> list[dict[str, object]]:
        states = manager.get_session_questions(session_id)
        return [_state_payload(index, state) for index, state in enumerate(states)]

    @app.get("/sessions/{session_id}/resume")
    def resume_session(session_id: int, manager: QuizEngine = Depends(engine_dep)) -> dict[str, object]:
        index = manager.first_unanswered_index(session_id)
        return {"session_id": session_id, "index": index, "completed": index is None}

    @app.post("/sessions/{session_id}/submit")
    def submit_answer(
        session_id: int,
        payload: SubmitPayload,
        manager: QuizEngine = Depends(engine_dep),
    ) -> dict[str, object]:
        result = manager.submit_answer(session_id, payload.question_id, payload.selected_answer_ids)
        return _submission_payload(result)

    return app


def run_api_server(
    engine: QuizEngine,
    question_repository: InMemoryQuestionRepository | None = None,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> None:
    """Serve the API with uvicorn until interrupted."""
    app = create_api_app(engine, question_repository)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)
    server.run()
