"""Shared test fixtures for moir."""

import os
import tempfile
from datetime import UTC, date, datetime, timedelta

import pytest

from moir.backend.memory import InMemoryDocumentStore, InMemoryIdentityProvider
from moir.journal.collections import CollectionAccessor
from moir.journal.session import SessionContext

TODAY = date(2024, 1, 10)
EMAIL = "asha@example.com"
PASSWORD = "correct-horse"


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def tmp_config_file(tmp_dir):
    """Create a temporary YAML config file."""
    import yaml

    config_data = {
        "paths": {
            "data_dir": os.path.join(tmp_dir, "data"),
            "log_dir": os.path.join(tmp_dir, "logs"),
        },
        "backend": {
            "kind": "memory",
        },
        "timing": {
            "search_debounce": 0.05,
        },
    }
    config_path = os.path.join(tmp_dir, "config.yaml")
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path


@pytest.fixture
def clock():
    """A server clock that advances one second per write, so creation order is observable."""
    state = {"now": datetime(2024, 1, 10, 9, 0, tzinfo=UTC)}

    def tick() -> datetime:
        state["now"] += timedelta(seconds=1)
        return state["now"]

    return tick


@pytest.fixture
def store(clock):
    return InMemoryDocumentStore(clock=clock)


@pytest.fixture
def identity():
    provider = InMemoryIdentityProvider()
    provider.add_account(EMAIL, PASSWORD, display_name="Asha")
    return provider


@pytest.fixture
def accessor(store):
    return CollectionAccessor(store)


@pytest.fixture
async def session(identity, accessor):
    """A started session, signed in as EMAIL."""
    ctx = SessionContext(identity, accessor)
    await ctx.start()
    await ctx.login(EMAIL, PASSWORD)
    yield ctx
    await ctx.close()


@pytest.fixture
def uid(session):
    return session.uid


@pytest.fixture
def seed(accessor, uid):
    """Helpers that write notebooks and entries for the signed-in user."""

    class Seeder:
        async def notebook(self, name="Daily", digest=False, owner_id=None, color="#9fb09f"):
            return await accessor.create_notebook(owner_id or uid, name, "", color, digest)

        async def entry(self, notebook_id, day, title="", content="", owner_id=None):
            if isinstance(day, str):
                day = date.fromisoformat(day)
            return await accessor.create_entry(owner_id or uid, notebook_id, title, content, day)

    return Seeder()
