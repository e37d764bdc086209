"""Tests for moir.journal.views."""

from datetime import UTC, date, datetime

import pytest

from moir.journal.config import DigestConfig
from moir.journal.models import Entry, Notebook, ThoughtDump
from moir.journal.views import (
    calendar_counts,
    dashboard_stats,
    date_key,
    digest_window,
    latest_thought_dump,
    month_grid,
    notebook_entry_counts,
    recency_list,
    shift_month,
    weekly_digest,
    writing_streak,
)

TODAY = date(2024, 1, 10)


def _entry(entry_id, day, notebook_id="n1", created=None, content=""):
    return Entry(
        id=entry_id,
        userId="u1",
        notebookId=notebook_id,
        entry_date=date.fromisoformat(day),
        content=content,
        created_at=created,
    )


def _notebook(notebook_id, digest=False):
    return Notebook(id=notebook_id, userId="u1", name=notebook_id, include_in_weekly_summary=digest)


class TestRecency:
    def test_newest_date_first(self):
        entries = [_entry("a", "2024-01-03"), _entry("b", "2024-01-01"), _entry("c", "2024-01-05")]
        assert [e.date_key for e in recency_list(entries)] == ["2024-01-05", "2024-01-03", "2024-01-01"]

    def test_same_day_newest_created_first(self):
        early = _entry("a", "2024-01-05", created=datetime(2024, 1, 5, 8, tzinfo=UTC))
        late = _entry("b", "2024-01-05", created=datetime(2024, 1, 5, 21, tzinfo=UTC))
        assert [e.id for e in recency_list([early, late])] == ["b", "a"]

    def test_missing_created_at_sorts_last_within_day(self):
        stamped = _entry("a", "2024-01-05", created=datetime(2024, 1, 5, 8, tzinfo=UTC))
        unstamped = _entry("b", "2024-01-05")
        assert [e.id for e in recency_list([unstamped, stamped])] == ["a", "b"]

    def test_empty(self):
        assert recency_list([]) == []


class TestCalendar:
    def test_counts_per_day(self):
        entries = [
            _entry("a", "2024-01-05"),
            _entry("b", "2024-01-05"),
            _entry("c", "2024-01-07"),
            _entry("d", "2024-02-05"),
        ]
        assert calendar_counts(entries, 2024, 1) == {"2024-01-05": 2, "2024-01-07": 1}

    def test_counts_sum_to_month_entries(self):
        entries = [_entry(str(i), f"2024-01-{(i % 28) + 1:02d}") for i in range(40)]
        assert sum(calendar_counts(entries, 2024, 1).values()) == 40

    def test_grid_is_sunday_first(self):
        grid = month_grid(2024, 1)
        # 2024-01-01 was a Monday
        assert grid[0][:2] == [None, 1]
        assert all(len(week) == 7 for week in grid)
        assert max(d for week in grid for d in week if d) == 31

    @pytest.mark.parametrize(
        "start, delta, expected",
        [((2024, 1), -1, (2023, 12)), ((2024, 12), 1, (2025, 1)), ((2024, 5), 0, (2024, 5)), ((2024, 3), -14, (2023, 1))],
    )
    def test_shift_month(self, start, delta, expected):
        assert shift_month(*start, delta) == expected

    def test_date_key(self):
        assert date_key(2024, 1, 5) == "2024-01-05"


class TestStreak:
    def test_ends_today(self):
        days = [date(2024, 1, 8), date(2024, 1, 9), date(2024, 1, 10)]
        assert writing_streak(days, TODAY) == 3

    def test_ends_yesterday(self):
        assert writing_streak([date(2024, 1, 8), date(2024, 1, 9)], TODAY) == 2

    def test_broken(self):
        assert writing_streak([date(2024, 1, 7), date(2024, 1, 8)], TODAY) == 0

    def test_duplicates_count_once(self):
        assert writing_streak([TODAY, TODAY, date(2024, 1, 9)], TODAY) == 2


class TestDashboard:
    def test_stats(self):
        entries = [_entry("a", "2024-01-10"), _entry("b", "2024-01-09"), _entry("c", "2024-01-01"), _entry("d", "2023-12-31")]
        stats = dashboard_stats(entries, notebook_count=2, today=TODAY)
        assert stats.total_entries == 4
        assert stats.total_notebooks == 2
        assert stats.writing_streak == 2
        assert [e.id for e in stats.recent_entries] == ["a", "b", "c"]

    def test_latest_thought_dump(self):
        dumps = [
            ThoughtDump(
                id=str(h),
                userId="u1",
                dump_text="d",
                problem_text="p",
                action_text="a",
                created_at=datetime(2024, 1, 10, h, tzinfo=UTC),
            )
            for h in (8, 12, 10)
        ]
        assert latest_thought_dump(dumps).id == "12"
        assert latest_thought_dump([]) is None

    def test_notebook_entry_counts(self):
        summaries = notebook_entry_counts(
            [_notebook("n1"), _notebook("n2")],
            [_entry("a", "2024-01-01", "n1"), _entry("b", "2024-01-02", "n1")],
        )
        assert [(s.notebook.id, s.entry_count) for s in summaries] == [("n1", 2), ("n2", 0)]


class TestWeeklyDigest:
    def test_no_opted_in_notebooks(self):
        insights = weekly_digest([_notebook("n1")], [_entry("a", "2024-01-09")], TODAY)
        assert not insights.has_enough_data
        assert "No notebooks" in insights.message

    def test_two_entries_is_not_enough(self):
        entries = [_entry("a", "2024-01-09"), _entry("b", "2024-01-08")]
        insights = weekly_digest([_notebook("n1", digest=True)], entries, TODAY)
        assert not insights.has_enough_data
        assert insights.entry_count == 2
        assert "at least 3" in insights.message

    def test_three_entries_is_enough(self):
        entries = [_entry("a", "2024-01-09"), _entry("b", "2024-01-08"), _entry("c", "2024-01-03")]
        insights = weekly_digest([_notebook("n1", digest=True)], entries, TODAY)
        assert insights.has_enough_data
        assert insights.entry_count == 3
        assert insights.is_placeholder
        assert insights.top_keywords == ["Journaling", "Reflection", "Growth"]

    def test_window_excludes_old_and_opted_out(self):
        entries = [
            _entry("a", "2024-01-09", "n1"),
            _entry("b", "2024-01-02", "n1"),
            _entry("c", "2024-01-09", "n2"),
        ]
        window = digest_window(entries, [_notebook("n1", digest=True), _notebook("n2")], TODAY)
        assert [e.id for e in window] == ["a"]

    def test_custom_threshold(self):
        insights = weekly_digest(
            [_notebook("n1", digest=True)],
            [_entry("a", "2024-01-09")],
            TODAY,
            DigestConfig(min_entries=1),
        )
        assert insights.has_enough_data
