"""Per-route screen controllers.

A screen holds the view state one route renders and refreshes it from the
store. Every fetch is tagged by a ``RequestGuard`` with the current owner
and mount epoch; a response that comes back after the owner changed, the
screen was unmounted, or a newer fetch started is dropped.

Read failures never block a screen: the previous state (empty on first
load) stays in place and the failure is logged. Lookups by id are the
exception, they set ``redirect`` to the dashboard instead.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from typing import Any, ClassVar, TypeVar

from loguru import logger

from moir.backend.base import eq
from moir.core.events import ENTRY_DELETED, NOTEBOOK_DELETED, NOTEBOOK_SAVED, Event
from moir.core.exceptions import DecodeError, FetchError, MoirError, ValidationError, WriteError
from moir.core.utils.debounce import Debouncer
from moir.core.utils.text import excerpt_around

from .collections import CollectionAccessor
from .config import JournalSettings
from .models import DEFAULT_NOTEBOOK_COLOR, NOTEBOOK_COLORS, Collection, Entry, Notebook, ThoughtDump
from .search import SearchResult, Segment, highlight, search_entries
from .session import SessionContext
from .views import (
    DashboardStats,
    NotebookSummary,
    WeeklyInsights,
    calendar_counts,
    dashboard_stats,
    date_key,
    entries_in_month,
    latest_thought_dump,
    month_grid,
    notebook_entry_counts,
    recency_list,
    shift_month,
    weekly_digest,
)

T = TypeVar("T")

READ_ERRORS = (FetchError, DecodeError)
DASHBOARD = "/dashboard"


class RequestGuard:
    """Generation counter keyed by owner id and mount epoch."""

    def __init__(self) -> None:
        self._epoch = 0
        self._owner: str | None = None

    def begin(self, owner_id: str) -> tuple[str, int]:
        """Start a request; any earlier token stops being current."""
        self._epoch += 1
        self._owner = owner_id
        return (owner_id, self._epoch)

    def is_current(self, token: tuple[str, int]) -> bool:
        return token == (self._owner, self._epoch)

    def invalidate(self) -> None:
        """Unmount: nothing started before this call is current any more."""
        self._epoch += 1


class Screen:
    """Base for route controllers."""

    name: ClassVar[str] = ""

    def __init__(
        self,
        session: SessionContext,
        accessor: CollectionAccessor,
        settings: JournalSettings | None = None,
        today: Callable[[], date] = date.today,
    ):
        self.session = session
        self.accessor = accessor
        self.settings = settings or JournalSettings()
        self._today = today
        self.guard = RequestGuard()
        self.loading = False
        self.error: str | None = None
        self.redirect: str | None = None

    @property
    def owner_id(self) -> str:
        return self.session.uid

    async def _read(self, what: str, request: Awaitable[T], fallback: T) -> T:
        try:
            return await request
        except READ_ERRORS as e:
            logger.warning(f"[{self.name}] failed to fetch {what}: {e}")
            return fallback

    def _finish(self, token: tuple[str, int]) -> None:
        # A superseded request leaves the spinner to the one that replaced it
        if self.guard.is_current(token):
            self.loading = False

    def _stale(self, token: tuple[str, int]) -> bool:
        if self.guard.is_current(token):
            return False
        logger.debug(f"[{self.name}] dropping stale response {token}")
        return True

    async def _emit(self, name: str, payload: dict[str, Any]) -> None:
        await self.session.bus.emit(Event(name=name, payload=payload, source=self.name))

    def unmount(self) -> None:
        self.guard.invalidate()


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------


class DashboardScreen(Screen):
    name = "dashboard"

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.stats = DashboardStats()
        self.latest_action: ThoughtDump | None = None

    async def refresh(self) -> DashboardStats:
        """Entry stats, the notebook count and the latest thought-dump action."""
        owner_id = self.owner_id
        token = self.guard.begin(owner_id)
        self.loading = True
        try:
            entries = await self._read("entries", self.accessor.list_entries(owner_id), None)
            notebook_count = await self._read(
                "notebook count", self.accessor.count(Collection.NOTEBOOKS, owner_id), self.stats.total_notebooks
            )
            dumps = await self._read("thought dumps", self.accessor.list_thought_dumps(owner_id), None)
        finally:
            self._finish(token)
        if self._stale(token):
            return self.stats

        if entries is not None:
            limit = self.settings.dashboard.recent_limit
            self.stats = dashboard_stats(entries, notebook_count, self._today(), recent_limit=limit)
        else:
            self.stats.total_notebooks = notebook_count
        if dumps is not None:
            self.latest_action = latest_thought_dump(dumps)
        return self.stats


# ---------------------------------------------------------------------------
# Notebooks
# ---------------------------------------------------------------------------


class NotebooksScreen(Screen):
    name = "notebooks"

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.notebooks: list[NotebookSummary] = []

    async def refresh(self) -> list[NotebookSummary]:
        owner_id = self.owner_id
        token = self.guard.begin(owner_id)
        self.loading = True
        try:
            notebooks = await self._read("notebooks", self.accessor.list_notebooks(owner_id), None)
            entries = await self._read("entries", self.accessor.list_entries(owner_id), [])
        finally:
            self._finish(token)
        if self._stale(token) or notebooks is None:
            return self.notebooks
        self.notebooks = notebook_entry_counts(notebooks, entries)
        return self.notebooks

    async def save_notebook(
        self,
        name: str,
        description: str = "",
        color_theme: str = DEFAULT_NOTEBOOK_COLOR,
        include_in_weekly_digest: bool = False,
        notebook_id: str | None = None,
    ) -> str:
        """Create a notebook, or update *notebook_id* when given, then refresh the list."""
        name = name.strip()
        if not name:
            raise ValidationError("Notebook name is required")
        if color_theme not in NOTEBOOK_COLORS:
            raise ValidationError(f"Unknown color {color_theme!r}; pick one of {', '.join(NOTEBOOK_COLORS)}")

        self.error = None
        try:
            if notebook_id is None:
                notebook_id = await self.accessor.create_notebook(
                    self.owner_id, name, description, color_theme, include_in_weekly_digest
                )
            else:
                await self.accessor.update_notebook(
                    notebook_id, name, description, color_theme, include_in_weekly_digest
                )
        except WriteError:
            self.error = "Failed to save notebook. Please try again."
            raise
        except MoirError as e:
            self.error = "Failed to save notebook. Please try again."
            raise WriteError(str(e)) from e

        await self._emit(NOTEBOOK_SAVED, {"id": notebook_id})
        await self.refresh()
        return notebook_id

    async def delete_notebook(self, notebook_id: str) -> None:
        """Delete an empty notebook.

        Removal from the list is applied first and undone if the store
        rejects the delete.

        Raises:
            ValidationError: The notebook still has entries.
            WriteError: The store rejected the delete.
        """
        remaining = await self.accessor.count(Collection.ENTRIES, self.owner_id, [eq("notebookId", notebook_id)])
        if remaining:
            raise ValidationError(
                f"This notebook still has {remaining} entries. Move or delete them before deleting the notebook."
            )

        self.error = None
        previous = list(self.notebooks)
        self.notebooks = [s for s in self.notebooks if s.notebook.id != notebook_id]
        try:
            await self.accessor.delete(Collection.NOTEBOOKS, notebook_id)
        except WriteError:
            self.notebooks = previous
            self.error = "Failed to delete notebook. Please try again."
            raise
        await self._emit(NOTEBOOK_DELETED, {"id": notebook_id})


class NotebookDetailScreen(Screen):
    name = "notebook"

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.notebook: Notebook | None = None
        self.entries: list[Entry] = []

    async def load(self, notebook_id: str) -> Notebook | None:
        owner_id = self.owner_id
        token = self.guard.begin(owner_id)
        self.loading = True
        try:
            notebook = await self.accessor.get_notebook(notebook_id, owner_id=owner_id)
            entries = await self._read("entries", self.accessor.list_entries(owner_id, notebook_id), [])
        except READ_ERRORS as e:
            logger.warning(f"[{self.name}] cannot open notebook {notebook_id}: {e}")
            if not self._stale(token):
                self.redirect = DASHBOARD
            return None
        finally:
            self._finish(token)
        if self._stale(token):
            return self.notebook
        self.notebook = notebook
        self.entries = recency_list(entries)
        return notebook

    @property
    def write_path(self) -> str:
        """Where "new entry" goes, with this notebook preselected."""
        return f"/write?notebook={self.notebook.id}" if self.notebook else "/write"


# ---------------------------------------------------------------------------
# Entry view
# ---------------------------------------------------------------------------


class EntryScreen(Screen):
    name = "entry"

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.entry: Entry | None = None
        self.notebook_name: str | None = None

    async def load(self, entry_id: str) -> Entry | None:
        """The entry and its notebook's name; a missing entry redirects to the dashboard."""
        owner_id = self.owner_id
        token = self.guard.begin(owner_id)
        self.loading = True
        try:
            entry = await self.accessor.get_entry(entry_id, owner_id=owner_id)
            notebook = await self._read(
                "notebook", self.accessor.get_notebook(entry.notebook_id, owner_id=owner_id), None
            )
        except READ_ERRORS as e:
            logger.warning(f"[{self.name}] cannot open entry {entry_id}: {e}")
            if not self._stale(token):
                self.redirect = DASHBOARD
            return None
        finally:
            self._finish(token)
        if self._stale(token):
            return self.entry
        self.entry = entry
        self.notebook_name = notebook.name if notebook else None
        return entry

    async def delete(self) -> None:
        if self.entry is None:
            return
        entry_id = self.entry.id
        try:
            await self.accessor.delete(Collection.ENTRIES, entry_id)
        except WriteError:
            self.error = "Failed to delete entry. Please try again."
            raise
        self.entry = None
        self.redirect = DASHBOARD
        await self._emit(ENTRY_DELETED, {"id": entry_id})

    @property
    def edit_path(self) -> str | None:
        return f"/entry/{self.entry.id}/edit" if self.entry else None


# ---------------------------------------------------------------------------
# Calendar
# ---------------------------------------------------------------------------


class CalendarScreen(Screen):
    """Month heat-map. Days without entries are absent from ``counts``."""

    name = "calendar"

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        today = self._today()
        self.year = today.year
        self.month = today.month
        self.counts: dict[str, int] = {}
        self.selected_date: str | None = None
        self._entries: list[Entry] = []

    @property
    def grid(self) -> list[list[int | None]]:
        return month_grid(self.year, self.month)

    def count_for(self, day: int) -> int:
        return self.counts.get(date_key(self.year, self.month, day), 0)

    async def refresh(self) -> dict[str, int]:
        owner_id = self.owner_id
        token = self.guard.begin(owner_id)
        year, month = self.year, self.month
        self.loading = True
        try:
            entries = await self._read("entries", self.accessor.list_entries(owner_id), None)
        finally:
            self._finish(token)
        if self._stale(token) or entries is None:
            return self.counts
        self._entries = entries_in_month(entries, year, month)
        self.counts = calendar_counts(self._entries, year, month)
        return self.counts

    async def previous_month(self) -> dict[str, int]:
        return await self._move(-1)

    async def next_month(self) -> dict[str, int]:
        return await self._move(1)

    async def _move(self, delta: int) -> dict[str, int]:
        self.year, self.month = shift_month(self.year, self.month, delta)
        self.selected_date = None
        self.counts = {}
        self._entries = []
        return await self.refresh()

    def select_date(self, key: str) -> str | None:
        """Select a day. Picking the already-selected day moves on to the dashboard.

        Days without entries clear the selection. Returns the redirect, if any.
        """
        if not self.counts.get(key):
            self.selected_date = None
            return None
        if self.selected_date == key:
            self.redirect = DASHBOARD
            return self.redirect
        self.selected_date = key
        return None

    def entries_on(self, key: str) -> list[Entry]:
        return recency_list(e for e in self._entries if e.date_key == key)


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


@dataclass
class SearchHit:
    result: SearchResult
    title: list[Segment]
    preview: list[Segment]


class SearchScreen(Screen):
    """Search box with a 300 ms input debounce."""

    name = "search"

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.query = ""
        self.results: list[SearchResult] = []
        self.has_searched = False
        self._debounce = Debouncer(self.settings.search.debounce_delay, self.run, name="search")

    @property
    def search_pending(self) -> bool:
        return self._debounce.pending

    def set_query(self, query: str) -> None:
        """Input changed. A blank query clears the results at once; anything else waits for quiet."""
        self.query = query
        if not query.strip():
            self._debounce.cancel()
            self.guard.begin(self.owner_id)
            self.loading = False
            self.results = []
            self.has_searched = False
            return
        self._debounce.trigger()

    async def run(self) -> list[SearchResult]:
        """Search the owner's entries for the current query."""
        query = self.query
        if not query.strip():
            return []
        owner_id = self.owner_id
        token = self.guard.begin(owner_id)
        self.loading = True
        self.has_searched = True
        try:
            entries = await self._read("entries", self.accessor.list_entries(owner_id), None)
        finally:
            self._finish(token)
        if self._stale(token) or entries is None:
            return self.results
        self.results = search_entries(entries, query)
        return self.results

    def hits(self) -> list[SearchHit]:
        """Results with their title and body preview split into highlight segments."""
        length = self.settings.search.excerpt_length
        return [
            SearchHit(
                result=r,
                title=highlight(r.entry.title, self.query),
                preview=highlight(excerpt_around(r.entry.content, self.query, length), self.query),
            )
            for r in self.results
        ]

    async def close(self) -> None:
        self.unmount()
        await self._debounce.close()


# ---------------------------------------------------------------------------
# Weekly reflection
# ---------------------------------------------------------------------------


class WeeklyReflectionScreen(Screen):
    name = "weekly-reflection"

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.insights: WeeklyInsights | None = None

    async def refresh(self) -> WeeklyInsights | None:
        owner_id = self.owner_id
        token = self.guard.begin(owner_id)
        self.loading = True
        try:
            notebooks = await self._read("notebooks", self.accessor.list_notebooks(owner_id, digest_only=True), None)
            entries = await self._read("entries", self.accessor.list_entries(owner_id), None)
        finally:
            self._finish(token)
        if self._stale(token) or notebooks is None or entries is None:
            return self.insights
        self.insights = weekly_digest(notebooks, entries, self._today(), self.settings.digest)
        return self.insights
