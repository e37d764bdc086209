"""Tests for moir.journal.editor."""

import asyncio
from datetime import date

import pytest

from moir.core.events import ENTRY_SAVED, EventBus
from moir.core.exceptions import NotFoundError, ValidationError, WriteError
from moir.journal.config import EditorConfig
from moir.journal.editor import EntryEditor

QUIET = 0.05


@pytest.fixture
def routes():
    return []


@pytest.fixture
async def editor(accessor, routes):
    ed = EntryEditor(accessor, "u1", EditorConfig(autosave_delay=QUIET), navigate_replace=routes.append)
    yield ed
    await ed.close()


async def _settle():
    await asyncio.sleep(QUIET * 3)


class TestNewDraft:
    async def test_defaults_to_first_notebook(self, editor, accessor):
        first = await accessor.create_notebook("u1", "Daily", "", "#9fb09f", False)
        await accessor.create_notebook("u1", "Work", "", "#9fb09f", False)
        draft = await editor.new(today=date(2024, 1, 10))
        assert draft.notebook_id == first
        assert draft.entry_date == date(2024, 1, 10)
        assert not draft.is_persisted

    async def test_notebook_from_query_parameter(self, editor, accessor, store):
        draft = await editor.new(notebook_id="n9")
        assert draft.notebook_id == "n9"
        assert not store.calls_for("query")

    async def test_no_notebooks(self, editor):
        assert (await editor.new()).notebook_id == ""


class TestSave:
    async def test_first_save_creates_and_replaces_location(self, editor, store, routes):
        await editor.new(notebook_id="n1", today=date(2024, 1, 10))
        editor.edit(title="Morning", content="Call mom today")
        entry_id = await editor.save()

        assert editor.draft.id == entry_id
        assert routes == [f"/entry/{entry_id}/edit"]
        assert len(store.calls_for("add")) == 1
        assert not store.calls_for("update")
        assert editor.last_saved is not None
        assert editor.word_count == 3
        assert not editor.autosave_pending

    async def test_second_save_updates(self, editor, store, routes):
        await editor.new(notebook_id="n1")
        await editor.save()
        editor.edit(content="more")
        await editor.save()
        assert len(store.calls_for("add")) == 1
        assert len(store.calls_for("update")) == 1
        assert len(routes) == 1

    async def test_requires_notebook(self, editor, store):
        await editor.new()
        editor.edit(title="x")
        with pytest.raises(ValidationError):
            await editor.save()
        assert not store.calls_for("add")

    async def test_failure_keeps_draft(self, editor, store, routes):
        await editor.new(notebook_id="n1")
        editor.edit(content="keep me")
        store.fail_next("add")
        with pytest.raises(WriteError):
            await editor.save()
        assert editor.draft.content == "keep me"
        assert editor.draft.id is None
        assert editor.last_error == "Failed to save entry. Please try again."
        assert not editor.is_saving
        assert routes == []

    async def test_emits_entry_saved(self, accessor):
        bus = EventBus()
        seen = []
        bus.on(ENTRY_SAVED, seen.append)
        ed = EntryEditor(accessor, "u1", bus=bus)
        await ed.new(notebook_id="n1")
        entry_id = await ed.save()
        assert seen[0].payload == {"id": entry_id}


class TestAutosave:
    async def test_no_autosave_before_first_save(self, editor, store):
        await editor.new(notebook_id="n1")
        editor.edit(content="typing")
        assert not editor.autosave_pending
        await _settle()
        assert not store.calls_for("update")

    async def test_one_update_per_quiet_period(self, editor, store, accessor):
        await editor.new(notebook_id="n1")
        entry_id = await editor.save()

        for text in ("a", "ab", "abc", "abcd"):
            editor.edit(content=text)
            await asyncio.sleep(QUIET / 5)
        assert editor.autosave_pending
        assert not store.calls_for("update")

        await _settle()
        assert store.calls_for("update") == [("update", "entries", entry_id)]
        assert (await accessor.get_entry(entry_id)).content == "abcd"

    async def test_explicit_save_cancels_pending_autosave(self, editor, store):
        await editor.new(notebook_id="n1")
        await editor.save()
        editor.edit(content="x")
        await editor.save()
        await _settle()
        assert len(store.calls_for("update")) == 1

    async def test_autosave_failure_is_not_raised(self, editor, store):
        await editor.new(notebook_id="n1")
        await editor.save()
        store.fail_next("update")
        editor.edit(content="lost?")
        await _settle()
        assert editor.last_error == "Auto-save failed"
        assert editor.draft.content == "lost?"

    async def test_edit_during_first_save_is_autosaved(self, editor, store, accessor, monkeypatch):
        add = store.add

        async def slow_add(*args, **kwargs):
            await asyncio.sleep(QUIET)
            return await add(*args, **kwargs)

        monkeypatch.setattr(store, "add", slow_add)
        await editor.new(notebook_id="n1")
        editor.edit(content="first")
        saving = asyncio.create_task(editor.save())
        await asyncio.sleep(QUIET / 5)
        editor.edit(content="first and more typed while saving")
        entry_id = await saving

        assert editor.autosave_pending
        await _settle()
        assert (await accessor.get_entry(entry_id)).content == "first and more typed while saving"

    async def test_edit_during_update_is_autosaved(self, editor, store, accessor, monkeypatch):
        await editor.new(notebook_id="n1")
        entry_id = await editor.save()
        update = store.update

        async def slow_update(*args, **kwargs):
            await asyncio.sleep(QUIET)
            return await update(*args, **kwargs)

        monkeypatch.setattr(store, "update", slow_update)
        editor.edit(content="draft")
        saving = asyncio.create_task(editor.save())
        await asyncio.sleep(QUIET / 5)
        editor.edit(content="draft, revised")
        await saving

        assert editor.autosave_pending
        await _settle()
        assert (await accessor.get_entry(entry_id)).content == "draft, revised"

    async def test_close_drops_pending(self, editor, store):
        await editor.new(notebook_id="n1")
        await editor.save()
        editor.edit(content="x")
        await editor.close()
        await _settle()
        assert not store.calls_for("update")


class TestLoad:
    async def test_load_existing(self, editor, accessor):
        entry_id = await accessor.create_entry("u1", "n1", "Title", "Body", date(2024, 1, 5))
        draft = await editor.load(entry_id)
        assert draft.is_persisted
        assert (draft.title, draft.content, draft.entry_date, draft.notebook_id) == (
            "Title",
            "Body",
            date(2024, 1, 5),
            "n1",
        )

    async def test_other_owner(self, editor, accessor):
        entry_id = await accessor.create_entry("u2", "n1", "Title", "Body", date(2024, 1, 5))
        with pytest.raises(NotFoundError):
            await editor.load(entry_id)

    async def test_edit_after_load_autosaves(self, editor, accessor, store):
        entry_id = await accessor.create_entry("u1", "n1", "Title", "Body", date(2024, 1, 5))
        await editor.load(entry_id)
        editor.edit(title="Renamed")
        await _settle()
        assert (await accessor.get_entry(entry_id)).title == "Renamed"

    async def test_empty_edit_is_noop(self, editor):
        await editor.new(notebook_id="n1")
        await editor.save()
        editor.edit()
        assert not editor.autosave_pending
