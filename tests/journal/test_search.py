"""Tests for moir.journal.search (substring search and highlighting)."""

from datetime import date

import pytest

from moir.journal.models import Entry
from moir.journal.search import Segment, highlight, render_highlight, search_entries


def _entry(entry_id, day, title="", content=""):
    return Entry(
        id=entry_id,
        userId="u1",
        notebookId="n1",
        entry_date=date.fromisoformat(day),
        title=title,
        content=content,
    )


@pytest.fixture
def sample_entries():
    return [
        _entry("a", "2024-01-02", title="Groceries", content="Milk, eggs, call MOM about Sunday"),
        _entry("b", "2024-01-05", title="Mom's birthday", content="Plan the dinner"),
        _entry("c", "2024-01-04", title="Work", content="Quarterly review went fine"),
    ]


class TestSearchEntries:
    def test_matches_title_or_content_case_insensitively(self, sample_entries):
        results = search_entries(sample_entries, "mom")
        assert [r.entry.id for r in results] == ["b", "a"]
        assert results[0].in_title and not results[0].in_content
        assert results[1].in_content and not results[1].in_title

    def test_results_newest_first(self, sample_entries):
        results = search_entries(sample_entries, "e")
        assert [r.entry.id for r in results] == ["b", "c", "a"]

    @pytest.mark.parametrize("query", ["", "   "])
    def test_blank_query_matches_nothing(self, sample_entries, query):
        assert search_entries(sample_entries, query) == []

    def test_no_match(self, sample_entries):
        assert search_entries(sample_entries, "holiday") == []

    def test_query_is_literal(self):
        entries = [_entry("a", "2024-01-01", content="costs $5.00 (approx)")]
        assert len(search_entries(entries, "(approx)")) == 1
        assert search_entries(entries, "a.p") == []

    def test_repr(self, sample_entries):
        assert repr(search_entries(sample_entries, "mom")[0]) == "SearchResult(id='b', match=title)"


class TestHighlight:
    def test_single_match(self):
        assert highlight("Call mom today", "mom") == [
            Segment("Call "),
            Segment("mom", matched=True),
            Segment(" today"),
        ]

    def test_preserves_original_case(self):
        segments = highlight("MOM and Mom", "mom")
        assert [s.text for s in segments if s.matched] == ["MOM", "Mom"]
        assert "".join(s.text for s in segments) == "MOM and Mom"

    def test_match_at_edges(self):
        assert highlight("mom", "mom") == [Segment("mom", matched=True)]

    def test_empty_query_is_one_plain_segment(self):
        assert highlight("Call mom today", "") == [Segment("Call mom today")]

    def test_empty_text(self):
        assert highlight("", "mom") == []

    def test_regex_characters_are_literal(self):
        segments = highlight("1+1=2", "1+1")
        assert segments[0] == Segment("1+1", matched=True)

    def test_render(self):
        assert render_highlight(highlight("Call mom today", "mom")) == "Call [mom] today"
        assert render_highlight(highlight("Call mom today", "mom"), "<b>", "</b>") == "Call <b>mom</b> today"
