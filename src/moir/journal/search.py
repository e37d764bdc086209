"""Substring search over a user's entries.

There is no server-side full-text index: the owner's full entry set is
fetched and matched here, case-insensitively, against title and body.
Matches are rendered by splitting the text on the query term.

Example::

    results = search_entries(entries, "mom")
    for result in results:
        segments = highlight(result.entry.content, "mom")
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from .models import Entry
from .views import recency_list


@dataclass(frozen=True)
class Segment:
    """A run of text, flagged when it is a match of the query."""

    text: str
    matched: bool = False


@dataclass
class SearchResult:
    """An entry that matched, with where it matched."""

    entry: Entry
    in_title: bool
    in_content: bool

    def __repr__(self) -> str:
        where = "+".join(name for name, hit in (("title", self.in_title), ("content", self.in_content)) if hit)
        return f"SearchResult(id='{self.entry.id}', match={where})"


def _contains(text: str, needle: str) -> bool:
    return needle in text.lower()


def search_entries(entries: Iterable[Entry], query: str) -> list[SearchResult]:
    """Entries whose title or content contains *query* (case-insensitive), newest first.

    A blank query matches nothing.
    """
    needle = query.strip().lower()
    if not needle:
        return []

    results = []
    for entry in recency_list(entries):
        in_title = _contains(entry.title, needle)
        in_content = _contains(entry.content, needle)
        if in_title or in_content:
            results.append(SearchResult(entry=entry, in_title=in_title, in_content=in_content))
    return results


def highlight(text: str, query: str) -> list[Segment]:
    """Split *text* into plain and matched segments for *query*.

    Matching ignores case; the query is taken literally (no regex syntax).
    An empty or whitespace-only query yields the whole text as one plain segment.
    """
    if not text:
        return []
    term = query.strip()
    if not term:
        return [Segment(text)]

    pattern = re.compile(f"({re.escape(term)})", re.IGNORECASE)
    segments = []
    # With a capturing group, re.split puts the matches at odd indices
    for i, part in enumerate(pattern.split(text)):
        if part:
            segments.append(Segment(part, matched=i % 2 == 1))
    return segments


def render_highlight(segments: Iterable[Segment], open_mark: str = "[", close_mark: str = "]") -> str:
    """Flatten segments to a string, wrapping matches in the given marks (for terminals)."""
    return "".join(f"{open_mark}{s.text}{close_mark}" if s.matched else s.text for s in segments)
