"""Network configuration constants for the quiz API."""

DEFAULT_HOST: str = "127.0.0.1"
DEFAULT_PORT: int = 8000
