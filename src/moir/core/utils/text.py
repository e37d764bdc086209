"""Text helpers for entry previews and counters."""

import re

_WORD_RE = re.compile(r"\S+")


def word_count(text: str) -> int:
    """Count whitespace-separated words."""
    if not text or not isinstance(text, str):
        return 0
    return len(_WORD_RE.findall(text))


def normalize_text(text: str) -> str:
    """Collapse runs of whitespace (including newlines) to single spaces."""
    if not text or not isinstance(text, str):
        return ""
    text = text.replace("\r\n", "\n")
    text = re.sub(r"\s+", " ", text)
    return text.strip()


def truncate_text(text: str, max_length: int = 100, ellipsis: str = "...") -> str:
    """Truncate text to max_length, appending ellipsis if truncated."""
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[: max_length - len(ellipsis)] + ellipsis


def excerpt(text: str, max_length: int = 150) -> str:
    """Single-line preview of an entry body, as shown in lists."""
    return truncate_text(normalize_text(text), max_length)


def excerpt_around(text: str, term: str, max_length: int = 150, ellipsis: str = "...") -> str:
    """Like ``excerpt``, but shifted so the first case-insensitive match of *term* is visible."""
    flat = normalize_text(text)
    term = term.strip()
    match = re.search(re.escape(term), flat, re.IGNORECASE) if term else None
    if match is None or len(flat) <= max_length or match.end() <= max_length - len(ellipsis):
        return truncate_text(flat, max_length, ellipsis)

    window = max_length - 2 * len(ellipsis)
    # Lead-in of a third of the window before the match
    start = max(match.start() - window // 3, 0)
    if start + window >= len(flat):
        return ellipsis + flat[max(len(flat) - (max_length - len(ellipsis)), 0) :]
    return ellipsis + flat[start : start + window] + ellipsis
