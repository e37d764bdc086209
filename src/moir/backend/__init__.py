"""Backend adapters: the identity provider and document store the client delegates to.

``memory`` runs entirely in-process; ``firestore`` and ``firebase_auth``
talk to the hosted Firebase services. ``create_backend`` picks one from
configuration.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from moir.core.exceptions import ConfigurationError

from .base import (
    SERVER_TIMESTAMP,
    AuthRecord,
    Document,
    DocumentStore,
    FieldFilter,
    IdentityProvider,
    eq,
)
from .memory import InMemoryDocumentStore, InMemoryIdentityProvider

if TYPE_CHECKING:
    from moir.core.config import Config

__all__ = [
    "SERVER_TIMESTAMP",
    "AuthRecord",
    "Document",
    "DocumentStore",
    "FieldFilter",
    "IdentityProvider",
    "InMemoryDocumentStore",
    "InMemoryIdentityProvider",
    "create_backend",
    "eq",
]


def create_backend(config: Config) -> tuple[IdentityProvider, DocumentStore]:
    """Build the identity provider and document store named by ``backend.kind``."""
    kind = config.get("backend.kind", "firebase")
    if kind == "memory":
        return InMemoryIdentityProvider(), InMemoryDocumentStore()
    if kind == "firebase":
        from .firebase_auth import FirebaseAuthClient
        from .firestore import FirestoreClient

        project_id = config.get("backend.project_id", "")
        api_key = config.get("backend.api_key", "")
        if not project_id or not api_key:
            raise ConfigurationError("backend.project_id and backend.api_key are required for the firebase backend")
        timeout = int(config.get("backend.timeout", 20))
        identity = FirebaseAuthClient(api_key, timeout=timeout)
        store = FirestoreClient(
            project_id,
            api_key,
            identity.id_token,
            database=config.get("backend.database", "(default)"),
            timeout=timeout,
        )
        return identity, store
    raise ConfigurationError(f"Unknown backend kind: {kind!r}")
