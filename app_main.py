"""Application entry point for the LearnQuiz API."""

from __future__ import annotations

import argparse
from pathlib import Path

from learnquiz.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from learnquiz.constants.quiz_constants import DEFAULT_QUESTION_BANK_PATH
from learnquiz.core.question_importer import load_question_bank
from learnquiz.core.quiz_engine import QuizEngine
from learnquiz.core.services.question_repository import InMemoryQuestionRepository
from learnquiz.core.services.session_repository import InMemorySessionRepository
from learnquiz.server.api_server import run_api_server
from learnquiz.utils.logging_config import configure_logging


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Serve the LearnQuiz API.")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument(
        "--bank",
        type=Path,
        default=Path(__file__).resolve().parent / DEFAULT_QUESTION_BANK_PATH,
        help="Question bank text file to load at startup.",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for session question selection.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """Initialize logging, load the question bank, and serve the API."""
    args = _parse_args(argv)
    logger = configure_logging()
    logger.info("Starting LearnQuiz…")

    questions = InMemoryQuestionRepository()
    bank = load_question_bank(args.bank)
    loaded = questions.load_bank(bank)
    logger.info("Loaded %d questions in %d categories from %s", loaded, len(questions.list_categories()), args.bank)

    engine = QuizEngine(questions, InMemorySessionRepository())
    if args.seed is not None:
        engine.set_selection_seed(args.seed)

    logger.info("API available at http://%s:%d/", args.host, args.port)
    run_api_server(engine, questions, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
