"""Text processing helpers."""

from __future__ import annotations

import re

UNSAFE_FILENAME_RE = re.compile(r"[^\w.\-]+")


def normalize_newlines(text: str) -> str:
    """Convert CRLF line endings to LF."""
    return text.replace("\r\n", "\n")


def safe_filename(name: str | None) -> str:
    """Reduce an uploaded filename to characters safe for a temp path."""
    cleaned = UNSAFE_FILENAME_RE.sub("_", name or "upload")
    return cleaned or "upload"
