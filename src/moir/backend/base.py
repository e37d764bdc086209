"""Contracts for the hosted backend: identity provider and document store.

The client owns no server. Everything it persists goes through these two
protocols; ``memory`` implements them in-process and ``firestore`` /
``firebase_auth`` talk to the hosted services over REST.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Literal, Protocol, runtime_checkable


class _ServerTimestamp:
    """Sentinel asking the store to stamp the field with its own clock."""

    _instance: _ServerTimestamp | None = None

    def __new__(cls) -> _ServerTimestamp:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()

Operator = Literal["==", ">=", "<=", ">", "<"]


@dataclass(frozen=True)
class FieldFilter:
    """A single predicate on a stored field."""

    field: str
    op: Operator
    value: Any

    def matches(self, data: dict[str, Any]) -> bool:
        if self.field not in data:
            return False
        actual = data[self.field]
        if self.op == "==":
            return actual == self.value
        if actual is None:
            return False
        try:
            if self.op == ">=":
                return actual >= self.value
            if self.op == "<=":
                return actual <= self.value
            if self.op == ">":
                return actual > self.value
            if self.op == "<":
                return actual < self.value
        except TypeError:
            return False
        raise ValueError(f"Unsupported operator: {self.op}")


def eq(field_name: str, value: Any) -> FieldFilter:
    """Shorthand for an equality filter."""
    return FieldFilter(field_name, "==", value)


@dataclass
class Document:
    """A stored document: opaque id plus its raw field data."""

    id: str
    data: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


@dataclass(frozen=True)
class AuthRecord:
    """The identity the auth service knows about (no profile fields)."""

    uid: str
    email: str = ""
    display_name: str | None = None
    id_token: str = ""


IdentityListener = Callable[[AuthRecord | None], Any]


@runtime_checkable
class IdentityProvider(Protocol):
    """Email/password identity service with change notifications."""

    async def sign_in(self, email: str, password: str) -> AuthRecord:
        """Sign in; raises AuthError on bad credentials."""
        ...

    async def sign_up(self, email: str, password: str) -> AuthRecord:
        """Create an identity and sign it in; raises AuthError if the email is taken."""
        ...

    async def sign_out(self) -> None: ...

    @property
    def current(self) -> AuthRecord | None:
        """The signed-in identity, if any."""
        ...

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        """Call *listener* now with the current identity and on every change.

        Returns a function that removes the listener.
        """
        ...


@runtime_checkable
class DocumentStore(Protocol):
    """Named collections of documents with server-assigned ids.

    ``query`` supports equality and range filters plus a single ordering,
    which is all the client asks of the server. Read failures raise
    FetchError, write failures WriteError, missing documents NotFoundError.
    """

    async def query(
        self,
        collection: str,
        filters: list[FieldFilter] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]: ...

    async def get(self, collection: str, doc_id: str) -> Document: ...

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        """Insert a document and return the id the store assigned."""
        ...

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Create or replace a document under a caller-chosen id (profiles keyed by uid)."""
        ...

    async def update(self, collection: str, doc_id: str, patch: dict[str, Any]) -> None:
        """Update fields on an existing document; raises NotFoundError if absent."""
        ...

    async def delete(self, collection: str, doc_id: str) -> None: ...

    async def count(self, collection: str, filters: list[FieldFilter] | None = None) -> int:
        """Server-side count of documents matching *filters*."""
        ...
