"""Static metadata describing LearnQuiz."""

APP_NAME = "LearnQuiz"
APP_VERSION = "0.1.0"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "LearnQuiz serves single- and multiple-choice questions by category, either one at a time "
    "or as tracked quiz sessions with progress and accuracy."
)
