"""Markdown rendering for question, answer and note text served to clients.

Question banks are plain text, but authors use markdown for code snippets,
emphasis and lists. Clients receive ready-made HTML fragments alongside the
raw text so every front-end renders the same markup.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt


@dataclass(slots=True)
class MarkdownRenderer:
    """Converts markdown into HTML fragments. Raw HTML is escaped by default."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str) -> str:
        """Render block markdown (question text, notes) into an HTML fragment."""
        sanitized = markdown_text.strip()
        if not sanitized:
            return ""
        return self._markdown.render(sanitized)

    def render_inline(self, markdown_text: str) -> str:
        """Render a single line (answer option) without a wrapping paragraph."""
        return self._markdown.renderInline(markdown_text.strip())


# MarkdownIt is safe to share for read-only renders across request threads.
renderer = MarkdownRenderer()
