"""Pure derivations from fetched record sets to what the screens show.

Nothing here touches the store. Each function takes the records from a
single fetch, so a view is never stitched together from two responses.
"""

from __future__ import annotations

import calendar
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta

from .config import DigestConfig
from .models import Entry, Notebook, ThoughtDump

_EPOCH = datetime.min.replace(tzinfo=UTC)


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------


def recency_list(entries: Iterable[Entry]) -> list[Entry]:
    """Newest ``entry_date`` first; same-day entries newest ``created_at`` first, then by id."""
    ordered = sorted(entries, key=lambda e: e.id)
    ordered.sort(key=lambda e: (e.entry_date, e.created_at or _EPOCH), reverse=True)
    return ordered


# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------


def entries_in_month(entries: Iterable[Entry], year: int, month: int) -> list[Entry]:
    return [e for e in entries if e.entry_date.year == year and e.entry_date.month == month]


def calendar_counts(entries: Iterable[Entry], year: int, month: int) -> dict[str, int]:
    """``YYYY-MM-DD`` -> number of entries that day. Days without entries are absent."""
    return dict(Counter(e.date_key for e in entries_in_month(entries, year, month)))


def month_grid(year: int, month: int) -> list[list[int | None]]:
    """Sunday-first weeks of day numbers, padded with None outside the month."""
    weeks = calendar.Calendar(firstweekday=calendar.SUNDAY).monthdayscalendar(year, month)
    return [[day or None for day in week] for week in weeks]


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move ``delta`` months forward (negative = back)."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def date_key(year: int, month: int, day: int) -> str:
    return f"{year:04d}-{month:02d}-{day:02d}"


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


def writing_streak(dates: Iterable[date], today: date) -> int:
    """Consecutive days with at least one entry, ending today or yesterday.

    A streak that last touched the day before yesterday is broken (0).
    """
    days = set(dates)
    if today in days:
        cursor = today
    elif today - timedelta(days=1) in days:
        cursor = today - timedelta(days=1)
    else:
        return 0
    streak = 0
    while cursor in days:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


@dataclass
class DashboardStats:
    total_entries: int = 0
    total_notebooks: int = 0
    writing_streak: int = 0
    recent_entries: list[Entry] = field(default_factory=list)


def dashboard_stats(entries: list[Entry], notebook_count: int, today: date, recent_limit: int = 3) -> DashboardStats:
    """Counts, streak and the most recent entries from one fetch of the owner's entries."""
    return DashboardStats(
        total_entries=len(entries),
        total_notebooks=notebook_count,
        writing_streak=writing_streak((e.entry_date for e in entries), today),
        recent_entries=recency_list(entries)[:recent_limit],
    )


def latest_thought_dump(dumps: Iterable[ThoughtDump]) -> ThoughtDump | None:
    """The newest dump (the dashboard's "current focus"), or None."""
    return max(dumps, key=lambda d: d.created_at or _EPOCH, default=None)


# ---------------------------------------------------------------------------
# Notebooks
# ---------------------------------------------------------------------------


@dataclass
class NotebookSummary:
    notebook: Notebook
    entry_count: int = 0


def notebook_entry_counts(notebooks: Iterable[Notebook], entries: Iterable[Entry]) -> list[NotebookSummary]:
    counts = Counter(e.notebook_id for e in entries)
    return [NotebookSummary(notebook=nb, entry_count=counts.get(nb.id, 0)) for nb in notebooks]


# ---------------------------------------------------------------------------
# Weekly digest
# ---------------------------------------------------------------------------


@dataclass
class WeeklyInsights:
    """What the weekly reflection screen shows.

    ``summary_text``, ``dominant_time`` and ``top_keywords`` are fixed
    illustrative values, not analysis of the entries; ``is_placeholder``
    says so to whoever renders them.
    """

    has_enough_data: bool
    entry_count: int = 0
    message: str | None = None
    summary_text: str | None = None
    dominant_time: str | None = None
    top_keywords: list[str] = field(default_factory=list)
    is_placeholder: bool = False


def digest_window(entries: Iterable[Entry], notebooks: Iterable[Notebook], today: date, window_days: int = 7) -> list[Entry]:
    """Entries dated within the trailing window that belong to an opted-in notebook."""
    opted_in = {nb.id for nb in notebooks if nb.include_in_weekly_digest}
    start = today - timedelta(days=window_days)
    return recency_list(e for e in entries if e.entry_date >= start and e.notebook_id in opted_in)


def weekly_digest(
    notebooks: list[Notebook],
    entries: list[Entry],
    today: date,
    config: DigestConfig | None = None,
) -> WeeklyInsights:
    config = config or DigestConfig()
    if not any(nb.include_in_weekly_digest for nb in notebooks):
        return WeeklyInsights(
            has_enough_data=False,
            message="No notebooks are included in the weekly digest yet.",
        )

    window = digest_window(entries, notebooks, today, config.window_days)
    if len(window) < config.min_entries:
        return WeeklyInsights(
            has_enough_data=False,
            entry_count=len(window),
            message=f"Write at least {config.min_entries} entries this week to see your reflection.",
        )

    return WeeklyInsights(
        has_enough_data=True,
        entry_count=len(window),
        summary_text=config.summary_text,
        dominant_time=config.dominant_time,
        top_keywords=list(config.top_keywords),
        is_placeholder=True,
    )
