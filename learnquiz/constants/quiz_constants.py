"""Quiz session constants shared across the engine and the API layer."""

DEFAULT_SESSION_QUESTION_COUNT: int = 10
MAX_SESSION_QUESTION_COUNT: int = 100
DEFAULT_QUESTION_BANK_PATH: str = "learnquiz/data/sample_bank.txt"
DEFAULT_SCORE_HISTORY_LIMIT: int = 100
