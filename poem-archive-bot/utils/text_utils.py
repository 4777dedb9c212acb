#!/usr/bin/env python3
"""
Text processing utility functions.
"""
import re
from datetime import date
from typing import Optional

from config.settings import (
    CONTINUATION_NOTICE,
    FILENAME_TITLE_CHARS,
    NOTEBOOK_LABEL,
    NOTEBOOK_WORD,
    TRANSCRIPT_LANGUAGE,
    UNTITLED_PLACEHOLDER,
)
from ftfy import fix_text

NOTEBOOK_PATTERN = re.compile(rf"{re.escape(NOTEBOOK_WORD)}\s*(\d+)", re.IGNORECASE)
# ASCII word characters, whitespace, hyphen and the Spanish accented letters
FILENAME_DISALLOWED = re.compile(r"[^A-Za-z0-9_\s\-áéíóúñÁÉÍÓÚÑ]")
WHITESPACE_RUN = re.compile(r"\s+")


class TextUtils:
    """Text processing utility functions as static methods."""

    @staticmethod
    def parse_notebook_number(caption: Optional[str]) -> Optional[str]:
        """Return the digits after the first "libro N" in the caption, or None."""
        if not caption:
            return None
        match = NOTEBOOK_PATTERN.search(caption)
        return match.group(1) if match else None

    @staticmethod
    def fix_mojibake(text: str) -> str:
        """Use ftfy to fix common mojibake/encoding issues before checks."""
        try:
            return fix_text(text)
        except Exception:
            return text

    @staticmethod
    def is_usable_text(text) -> bool:
        """A transcription is usable when it has any non-whitespace content."""
        return isinstance(text, str) and bool(text.strip())

    @staticmethod
    def derive_title(text: str, placeholder: str = UNTITLED_PLACEHOLDER) -> str:
        """First non-blank line, trimmed."""
        for line in (text or "").splitlines():
            if line.strip():
                return line.strip()
        return placeholder

    @staticmethod
    def sanitize_filename(title: str, max_chars: int = FILENAME_TITLE_CHARS) -> str:
        """
        Make a Drive-friendly filename stem from a title.

        Truncates to max_chars, drops anything outside word characters,
        whitespace, hyphen and accented letters, then trims and collapses
        whitespace runs.
        """
        stem = FILENAME_DISALLOWED.sub("", title[:max_chars])
        stem = WHITESPACE_RUN.sub(" ", stem.strip())
        return stem or UNTITLED_PLACEHOLDER

    @staticmethod
    def notebook_label(notebook: Optional[str]) -> str:
        return f"{NOTEBOOK_LABEL} {notebook}"

    @staticmethod
    def build_front_matter(fields: dict) -> str:
        """YAML front matter block with every value double-quoted."""
        lines = ["---"]
        for key, value in fields.items():
            escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
            lines.append(f'{key}: "{escaped}"')
        lines.append("---")
        return "\n".join(lines)

    @staticmethod
    def build_transcript_markdown(title: str, text: str, notebook: str, image_file: str, today: Optional[date] = None) -> str:
        """Markdown document stored in the archive for one transcript."""
        today = today or date.today()
        header = TextUtils.build_front_matter({
            "title": title,
            "book": TextUtils.notebook_label(notebook),
            "date": today.isoformat(),
            "language": TRANSCRIPT_LANGUAGE,
            "image_file": image_file,
        })
        return f"{header}\n\n{text}\n"

    @staticmethod
    def truncate_for_display(text: str, limit: int, notice: str = CONTINUATION_NOTICE) -> str:
        """Cut text at limit characters and append the continuation notice."""
        if len(text) <= limit:
            return text
        return text[:limit] + notice


parse_notebook_number = TextUtils.parse_notebook_number
fix_mojibake = TextUtils.fix_mojibake
is_usable_text = TextUtils.is_usable_text
derive_title = TextUtils.derive_title
sanitize_filename = TextUtils.sanitize_filename
notebook_label = TextUtils.notebook_label
build_front_matter = TextUtils.build_front_matter
build_transcript_markdown = TextUtils.build_transcript_markdown
truncate_for_display = TextUtils.truncate_for_display
