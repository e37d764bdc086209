"""Thought dump: compress free-form venting into one problem and one action.

States::

    DUMP --submit_dump--> COMPRESS --submit_compression--> SUCCESS --(2 s or continue_now)--> /dashboard
      |
      +--open_archive--> ARCHIVE --back--> DUMP

A failed save keeps the flow in COMPRESS with an inline error and the
dump text intact, so the user can resubmit.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from enum import StrEnum

from loguru import logger

from moir.core.events import THOUGHT_DUMP_SAVED, Event, EventBus
from moir.core.exceptions import MoirError, ValidationError

from .collections import CollectionAccessor
from .config import ThoughtDumpConfig
from .models import ThoughtDump

SAVE_ERROR = "Network error. Please check your connection."


class FlowState(StrEnum):
    DUMP = "dump"
    COMPRESS = "compress"
    SUCCESS = "success"
    ARCHIVE = "archive"


class ThoughtDumpFlow:
    """One pass through the thought-dump screen."""

    def __init__(
        self,
        accessor: CollectionAccessor,
        owner_id: str,
        config: ThoughtDumpConfig | None = None,
        navigate: Callable[[str], None] | None = None,
        bus: EventBus | None = None,
    ):
        self._accessor = accessor
        self.owner_id = owner_id
        self.config = config or ThoughtDumpConfig()
        self._navigate = navigate
        self._bus = bus
        self.state = FlowState.DUMP
        self.dump_text = ""
        self.error: str | None = None
        self.is_loading = False
        self.saved_id: str | None = None
        self.archive: list[ThoughtDump] = []
        self._redirect: asyncio.Task | None = None

    def _require(self, *states: FlowState) -> None:
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise ValidationError(f"Not allowed in state {self.state.value} (expected {allowed})")

    # -- dump -----------------------------------------------------------------

    def submit_dump(self, text: str) -> FlowState:
        self._require(FlowState.DUMP)
        if not text or not text.strip():
            raise ValidationError("Write something before continuing")
        self.dump_text = text
        self.error = None
        self.state = FlowState.COMPRESS
        return self.state

    # -- compress -------------------------------------------------------------

    def can_submit(self, problem: str, action: str) -> bool:
        """Both fields non-blank and within the length cap."""
        limit = self.config.max_field_length
        return all(value.strip() and len(value) <= limit for value in (problem, action))

    async def submit_compression(self, problem: str, action: str) -> FlowState:
        self._require(FlowState.COMPRESS)
        if self.is_loading:
            raise ValidationError("A save is already in progress")
        if not self.can_submit(problem, action):
            raise ValidationError(
                f"Problem and action are both required, at most {self.config.max_field_length} characters"
            )

        self.is_loading = True
        self.error = None
        try:
            self.saved_id = await self._accessor.create_thought_dump(self.owner_id, self.dump_text, problem, action)
        except MoirError as e:
            logger.error(f"Error saving thought dump: {e}")
            self.error = SAVE_ERROR
            return self.state
        finally:
            self.is_loading = False

        self.state = FlowState.SUCCESS
        if self._bus is not None:
            await self._bus.emit(Event(name=THOUGHT_DUMP_SAVED, payload={"id": self.saved_id}, source="thought_dump"))
        self._redirect = asyncio.get_running_loop().create_task(self._redirect_later())
        return self.state

    # -- success --------------------------------------------------------------

    async def _redirect_later(self) -> None:
        await asyncio.sleep(self.config.redirect_delay)
        self._go_dashboard()

    def _go_dashboard(self) -> None:
        if self._navigate is not None:
            self._navigate("/dashboard")

    def continue_now(self) -> None:
        """Leave the success state without waiting for the timer."""
        self._require(FlowState.SUCCESS)
        self.cancel_redirect()
        self._go_dashboard()

    def cancel_redirect(self) -> None:
        if self._redirect is not None and not self._redirect.done():
            self._redirect.cancel()
        self._redirect = None

    # -- archive --------------------------------------------------------------

    async def open_archive(self) -> list[ThoughtDump]:
        """Read-only list of the owner's past dumps, newest first."""
        self._require(FlowState.DUMP)
        self.state = FlowState.ARCHIVE
        try:
            self.archive = await self._accessor.list_thought_dumps(self.owner_id)
        except MoirError as e:
            logger.warning(f"Failed to load thought dump archive: {e}")
            self.archive = []
        return self.archive

    def back(self) -> FlowState:
        self._require(FlowState.ARCHIVE)
        self.state = FlowState.DUMP
        return self.state
