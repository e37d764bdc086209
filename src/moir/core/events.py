"""Event bus for loose-coupled extensibility.

Provides a lightweight publish/subscribe system that lets screens react to
session changes and writes without direct dependencies. Hooks can be sync
or async.

Usage::

    from moir.core.events import EventBus, Event, ENTRY_SAVED

    bus = EventBus()

    async def refresh_dashboard(event: Event) -> None:
        await dashboard.refresh()

    bus.on(ENTRY_SAVED, refresh_dashboard)
    await bus.emit(Event(name=ENTRY_SAVED, payload={"id": "abc"}, source="editor"))
"""

from __future__ import annotations

import inspect
from collections import defaultdict
from dataclasses import dataclass, field
from time import time
from typing import Any

from loguru import logger

# ---------------------------------------------------------------------------
# Well-known event names
# ---------------------------------------------------------------------------

SESSION_CHANGED = "session.changed"
ENTRY_SAVED = "entry.saved"
ENTRY_DELETED = "entry.deleted"
NOTEBOOK_SAVED = "notebook.saved"
NOTEBOOK_DELETED = "notebook.deleted"
THOUGHT_DUMP_SAVED = "thought_dump.saved"
PROFILE_UPDATED = "profile.updated"

# Type alias for hook callables (sync or async)
Hook = Any  # Callable[[Event], None] | Callable[[Event], Awaitable[None]]


# ---------------------------------------------------------------------------
# Event model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Event:
    """An immutable event that flows through the bus."""

    name: str
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time)
    source: str = ""


# ---------------------------------------------------------------------------
# EventBus
# ---------------------------------------------------------------------------


class EventBus:
    """Simple pub/sub event bus supporting sync and async hooks."""

    def __init__(self) -> None:
        self._hooks: dict[str, list[Hook]] = defaultdict(list)
        self._wildcard_hooks: list[Hook] = []

    def on(self, event_name: str, hook: Hook) -> None:
        """Register *hook* for a specific event name."""
        self._hooks[event_name].append(hook)

    def on_all(self, hook: Hook) -> None:
        """Register *hook* for all events (wildcard)."""
        self._wildcard_hooks.append(hook)

    def off(self, event_name: str, hook: Hook) -> None:
        """Unregister *hook* from a specific event name."""
        try:
            self._hooks[event_name].remove(hook)
        except ValueError:
            pass

    async def emit(self, event: Event) -> None:
        """Emit an event, running all matching hooks (async)."""
        hooks = list(self._hooks.get(event.name, []))
        hooks.extend(self._wildcard_hooks)
        for hook in hooks:
            try:
                if inspect.iscoroutinefunction(hook):
                    await hook(event)
                else:
                    hook(event)
            except Exception as exc:
                logger.warning(f"Event hook failed for {event.name}: {exc}")
