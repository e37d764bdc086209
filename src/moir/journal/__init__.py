"""Journal domain: records, owner-scoped access, view models and flows.

Provides the collection schemas, a CollectionAccessor over any
DocumentStore, pure view derivations (recency, calendar, dashboard,
search, weekly digest), the session context, the entry editor, the
thought-dump flow and the per-route screen controllers.
"""

from .collections import CollectionAccessor
from .config import JournalSettings
from .editor import EntryEditor
from .models import Collection, Entry, Notebook, ThoughtDump, User
from .session import SessionContext
from .thought_dump import FlowState, ThoughtDumpFlow

__all__ = [
    "Collection",
    "CollectionAccessor",
    "Entry",
    "EntryEditor",
    "FlowState",
    "JournalSettings",
    "Notebook",
    "SessionContext",
    "ThoughtDump",
    "ThoughtDumpFlow",
    "User",
]
