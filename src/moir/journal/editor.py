"""Entry editor: draft state, explicit save, and debounced autosave.

A draft starts ``new`` (no id). Only an explicit ``save()`` creates the
record; after that the location is replaced with ``/entry/{id}/edit`` and
every edit restarts a 2 second autosave timer. Manual saves and an
in-flight autosave are not coordinated; the store's last write wins.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import date, datetime

from loguru import logger

from moir.core.events import ENTRY_SAVED, Event, EventBus
from moir.core.exceptions import MoirError, ValidationError, WriteError
from moir.core.utils.debounce import Debouncer
from moir.core.utils.text import word_count

from .collections import CollectionAccessor
from .config import EditorConfig

_UNSET = object()


@dataclass
class EntryDraft:
    title: str = ""
    content: str = ""
    entry_date: date = field(default_factory=date.today)
    notebook_id: str = ""
    id: str | None = None

    @property
    def is_persisted(self) -> bool:
        return self.id is not None


class EntryEditor:
    """Editing session for one entry.

    Args:
        accessor: Collection access.
        owner_id: The signed-in uid.
        config: Autosave delay.
        navigate_replace: Called with the edit route once a new entry gets its id,
            replacing the current location without a navigation.
        bus: Receives ``entry.saved`` after each successful write.
    """

    def __init__(
        self,
        accessor: CollectionAccessor,
        owner_id: str,
        config: EditorConfig | None = None,
        navigate_replace: Callable[[str], None] | None = None,
        bus: EventBus | None = None,
    ):
        self._accessor = accessor
        self.owner_id = owner_id
        self.config = config or EditorConfig()
        self._navigate_replace = navigate_replace
        self._bus = bus
        self.draft = EntryDraft()
        self.is_saving = False
        self.last_saved: datetime | None = None
        self.last_error: str | None = None
        self._autosave = Debouncer(self.config.autosave_delay, self.autosave, name="autosave")

    # -- loading ------------------------------------------------------------

    async def new(self, notebook_id: str | None = None, today: date | None = None) -> EntryDraft:
        """Start a fresh draft for ``/write``.

        The notebook defaults to the ``?notebook=`` parameter, else the
        owner's first notebook.
        """
        self._autosave.cancel()
        if not notebook_id:
            notebooks = await self._accessor.list_notebooks(self.owner_id)
            notebook_id = notebooks[0].id if notebooks else ""
        self.draft = EntryDraft(entry_date=today or date.today(), notebook_id=notebook_id)
        return self.draft

    async def load(self, entry_id: str) -> EntryDraft:
        """Open an existing entry for ``/entry/{id}/edit``."""
        self._autosave.cancel()
        entry = await self._accessor.get_entry(entry_id, owner_id=self.owner_id)
        self.draft = EntryDraft(
            id=entry.id,
            title=entry.title,
            content=entry.content,
            entry_date=entry.entry_date,
            notebook_id=entry.notebook_id,
        )
        return self.draft

    # -- editing ------------------------------------------------------------

    @property
    def word_count(self) -> int:
        return word_count(self.draft.content)

    @property
    def autosave_pending(self) -> bool:
        return self._autosave.pending

    def edit(self, *, title=_UNSET, content=_UNSET, entry_date=_UNSET, notebook_id=_UNSET) -> EntryDraft:
        """Apply field changes; restarts the autosave timer once the entry exists."""
        changes = {
            name: value
            for name, value in (
                ("title", title),
                ("content", content),
                ("entry_date", entry_date),
                ("notebook_id", notebook_id),
            )
            if value is not _UNSET
        }
        if not changes:
            return self.draft
        self.draft = replace(self.draft, **changes)
        if self.draft.is_persisted:
            self._autosave.trigger()
        return self.draft

    # -- saving -------------------------------------------------------------

    def _check(self) -> None:
        if not self.draft.notebook_id:
            raise ValidationError("Choose a notebook for this entry")

    async def save(self) -> str:
        """Explicit save: create on first save, update afterwards.

        Raises:
            ValidationError: No notebook chosen.
            WriteError: The store rejected the write; the draft is kept.
        """
        self._check()
        self._autosave.cancel()
        self.is_saving = True
        draft = self.draft
        try:
            if draft.id is None:
                entry_id = await self._accessor.create_entry(
                    self.owner_id, draft.notebook_id, draft.title, draft.content, draft.entry_date
                )
                self.draft = replace(self.draft, id=entry_id)
                if self._navigate_replace is not None:
                    self._navigate_replace(f"/entry/{entry_id}/edit")
            else:
                await self._accessor.update_entry(
                    draft.id, draft.title, draft.content, draft.entry_date, draft.notebook_id
                )
        except MoirError as e:
            self.last_error = "Failed to save entry. Please try again."
            logger.error(f"Save failed: {e}")
            if isinstance(e, WriteError):
                raise
            raise WriteError(str(e)) from e
        finally:
            self.is_saving = False

        self._saved()
        # Edits made while the write was in flight still need saving
        if replace(self.draft, id=draft.id) != draft:
            self._autosave.trigger()
        if self._bus is not None:
            await self._bus.emit(Event(name=ENTRY_SAVED, payload={"id": self.draft.id}, source="editor"))
        return self.draft.id

    async def autosave(self) -> None:
        """Debounced save of an existing entry. Failures are logged, not raised."""
        draft = self.draft
        if draft.id is None:
            return
        self.is_saving = True
        try:
            await self._accessor.update_entry(draft.id, draft.title, draft.content, draft.entry_date, draft.notebook_id)
        except MoirError as e:
            self.last_error = "Auto-save failed"
            logger.warning(f"Auto-save failed for {draft.id}: {e}")
            return
        finally:
            self.is_saving = False
        self._saved()

    def _saved(self) -> None:
        self.last_saved = datetime.now()
        self.last_error = None

    async def close(self) -> None:
        """Drop any pending autosave."""
        await self._autosave.close()
