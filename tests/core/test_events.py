"""Tests for moir.core.events — EventBus and Event."""

from __future__ import annotations

from dataclasses import FrozenInstanceError

import pytest

from moir.core.events import ENTRY_SAVED, NOTEBOOK_DELETED, Event, EventBus

pytestmark = pytest.mark.smoke


# ---------------------------------------------------------------------------
# 1. on / off / emit lifecycle
# ---------------------------------------------------------------------------


async def test_on_off_emit_lifecycle():
    bus = EventBus()
    received: list[Event] = []

    def hook(event: Event) -> None:
        received.append(event)

    bus.on(ENTRY_SAVED, hook)
    evt = Event(name=ENTRY_SAVED, payload={"id": "e1"}, source="editor")
    await bus.emit(evt)

    assert len(received) == 1
    assert received[0] is evt

    bus.off(ENTRY_SAVED, hook)
    await bus.emit(evt)

    assert len(received) == 1  # still 1 — hook was removed


async def test_off_unknown_hook_is_ignored():
    bus = EventBus()
    bus.off(ENTRY_SAVED, lambda e: None)


# ---------------------------------------------------------------------------
# 2. Wildcard hooks via on_all
# ---------------------------------------------------------------------------


async def test_wildcard_hooks_receive_all_events():
    bus = EventBus()
    received: list[str] = []

    bus.on_all(lambda event: received.append(event.name))

    await bus.emit(Event(name=ENTRY_SAVED))
    await bus.emit(Event(name=NOTEBOOK_DELETED))

    assert received == [ENTRY_SAVED, NOTEBOOK_DELETED]


# ---------------------------------------------------------------------------
# 3. Async hooks are awaited
# ---------------------------------------------------------------------------


async def test_async_hooks_awaited():
    bus = EventBus()
    received: list[str] = []

    async def hook(event: Event) -> None:
        received.append(event.payload["id"])

    bus.on(ENTRY_SAVED, hook)
    await bus.emit(Event(name=ENTRY_SAVED, payload={"id": "e2"}))

    assert received == ["e2"]


async def test_emit_no_listeners():
    bus = EventBus()
    await bus.emit(Event(name="nobody.listening"))


# ---------------------------------------------------------------------------
# 4. Hook failures never reach the emitter
# ---------------------------------------------------------------------------


async def test_hook_exception_does_not_block_others():
    bus = EventBus()
    received: list[str] = []

    def bad(event: Event) -> None:
        raise RuntimeError("boom")

    bus.on(ENTRY_SAVED, bad)
    bus.on(ENTRY_SAVED, lambda e: received.append("ok"))

    await bus.emit(Event(name=ENTRY_SAVED))
    assert received == ["ok"]


async def test_async_hook_exception_does_not_block_others():
    bus = EventBus()
    received: list[str] = []

    async def bad(event: Event) -> None:
        raise RuntimeError("boom")

    async def good(event: Event) -> None:
        received.append("ok")

    bus.on(ENTRY_SAVED, bad)
    bus.on(ENTRY_SAVED, good)

    await bus.emit(Event(name=ENTRY_SAVED))
    assert received == ["ok"]


# ---------------------------------------------------------------------------
# 5. Event model
# ---------------------------------------------------------------------------


def test_event_is_frozen():
    evt = Event(name=ENTRY_SAVED)
    with pytest.raises(FrozenInstanceError):
        evt.name = "other"  # type: ignore[misc]


def test_event_defaults():
    evt = Event(name=ENTRY_SAVED)
    assert evt.payload == {}
    assert evt.source == ""
    assert evt.timestamp > 0
