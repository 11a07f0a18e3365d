"""Utilities for importing a question bank from a human-friendly text file.

File format (repeat blocks separated by blank lines or '---'):

    CATEGORY: Category name  (applies to every following block until changed)
    Q: Question text (supports markdown). Additional lines until the next
       marker are treated as part of the question.
    TYPE: single|multiple    (optional; inferred from the CORRECT letters)
    A: First option text
    B: Second option text
    ...                      (at least two options, consecutive letters)
    CORRECT: B   or   CORRECT: A, C
    NOTE: Explanation revealed after answering (optional, may span lines)
    LINK: https://...        (optional further reading)

Example:

    CATEGORY: Python basics
    Q: Which of these are immutable?
    A: list
    B: tuple
    C: frozenset
    CORRECT: B, C
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
import string

from learnquiz.core.models import Answer, AnswerType, Question


class QuestionImportError(Exception):
    """Raised when a question bank cannot be parsed."""


@dataclass(slots=True)
class ImportedQuestionBank:
    """Imported questions grouped by category name, in file order."""

    source_path: Path | None
    questions_by_category: dict[str, list[Question]] = field(default_factory=dict)

    @property
    def question_count(self) -> int:
        return sum(len(questions) for questions in self.questions_by_category.values())


_OPTION_LETTERS = string.ascii_uppercase
_OPTION_ORDER_SET = frozenset(_OPTION_LETTERS)
_DEFAULT_CATEGORY = "General"


def load_question_bank(file_path: Path) -> ImportedQuestionBank:
    text = file_path.read_text(encoding="utf-8")
    bank = parse_question_bank(text)
    bank.source_path = file_path
    return bank


def parse_question_bank(text: str) -> ImportedQuestionBank:
    bank = ImportedQuestionBank(source_path=None)
    category = _DEFAULT_CATEGORY
    for block in _split_blocks(text):
        category, question = _parse_block(block, category)
        if question is not None:
            bank.questions_by_category.setdefault(category, []).append(question)
    if not bank.question_count:
        raise QuestionImportError("Question bank did not contain any questions.")
    return bank


def _split_blocks(text: str) -> list[str]:
    blocks: list[str] = []
    current_block: list[str] = []
    for raw_line in text.splitlines():
        stripped = raw_line.strip()
        if stripped == "---" or not stripped:
            if current_block:
                blocks.append("\n".join(current_block).strip())
                current_block = []
            continue
        current_block.append(raw_line)
    if current_block:
        blocks.append("\n".join(current_block).strip())
    return blocks


def _parse_block(block: str, category: str) -> tuple[str, Question | None]:
    question_lines: list[str] = []
    note_lines: list[str] = []
    options: dict[str, str] = {}
    correct_letters: list[str] | None = None
    declared_type: AnswerType | None = None
    link_url: str | None = None
    current_section: str | None = None
    question_markers: list[str] = []

    for raw_line in block.splitlines():
        line = raw_line.strip()
        upper = line.upper()

        if upper.startswith("CATEGORY:"):
            category = line.split(":", 1)[1].strip()
            if not category:
                raise QuestionImportError("CATEGORY must name a category.")
            current_section = None
            continue

        if upper.startswith("Q:"):
            question_lines = [line[2:].strip()]
            current_section = "Q"
            continue

        if upper.startswith("TYPE:"):
            declared_type = _parse_type(line.split(":", 1)[1])
            question_markers.append("TYPE")
            current_section = None
            continue

        if upper.startswith("CORRECT:"):
            raw_value = line.split(":", 1)[1]
            correct_letters = [part.strip().upper() for part in raw_value.split(",") if part.strip()]
            question_markers.append("CORRECT")
            current_section = None
            continue

        if upper.startswith("NOTE:"):
            note_lines = [line[5:].strip()]
            question_markers.append("NOTE")
            current_section = "NOTE"
            continue

        if upper.startswith("LINK:"):
            link_url = line.split(":", 1)[1].strip() or None
            question_markers.append("LINK")
            current_section = None
            continue

        if len(line) > 2 and line[0].upper() in _OPTION_ORDER_SET and line[1] == ":":
            letter = line[0].upper()
            options[letter] = line[2:].strip()
            current_section = letter
            continue

        if current_section == "Q":
            question_lines.append(line)
        elif current_section == "NOTE":
            note_lines.append(line)
        elif current_section in options:
            options[current_section] = options[current_section] + f"\n{line}"
        else:
            raise QuestionImportError(
                f"Encountered text outside of a known section: '{line}'."
            )

    if not question_lines and not options:
        if question_markers:
            raise QuestionImportError(
                f"{', '.join(question_markers)} found outside of a question block; "
                "keep it with its Q: and options, without blank lines in between."
            )
        # A block holding only CATEGORY switches the category for later blocks.
        return category, None
    return category, _build_question(question_lines, options, correct_letters, declared_type, note_lines, link_url)


def _build_question(
    question_lines: list[str],
    options: dict[str, str],
    correct_letters: list[str] | None,
    declared_type: AnswerType | None,
    note_lines: list[str],
    link_url: str | None,
) -> Question:
    question_text = "\n".join(question_lines).strip()
    if not question_text:
        raise QuestionImportError("Question text missing (Q: ...)")
    if len(options) < 2:
        raise QuestionImportError("Each question must define at least two options.")

    letters = list(_OPTION_LETTERS[: len(options)])
    if sorted(options) != letters:
        raise QuestionImportError(f"Options must use consecutive letters starting at A, got {sorted(options)}.")
    if any(not options[letter].strip() for letter in letters):
        raise QuestionImportError("Option text cannot be empty.")

    if not correct_letters:
        raise QuestionImportError("CORRECT must list at least one option letter.")
    unknown = [letter for letter in correct_letters if letter not in options]
    if unknown:
        raise QuestionImportError(f"CORRECT refers to undefined options: {', '.join(unknown)}.")
    correct = set(correct_letters)

    answer_type = declared_type or (AnswerType.SINGLE if len(correct) == 1 else AnswerType.MULTIPLE)
    if answer_type is AnswerType.SINGLE and len(correct) != 1:
        raise QuestionImportError("A single-choice question must have exactly one CORRECT letter.")

    answers = [
        Answer(
            answer_id=0,  # assigned by the question repository
            answer_text=options[letter].strip(),
            is_correct=letter in correct,
        )
        for letter in letters
    ]
    note = "\n".join(note_lines).strip() or None
    return Question(
        question_id=0,  # assigned by the question repository
        category_id=0,
        question_text=question_text,
        answer_type=answer_type,
        answers=answers,
        note=note,
        link_url=link_url,
    )


def _parse_type(raw_value: str) -> AnswerType:
    value = raw_value.strip().lower()
    try:
        return AnswerType(value)
    except ValueError as exc:
        raise QuestionImportError("TYPE must be 'single' or 'multiple'.") from exc
