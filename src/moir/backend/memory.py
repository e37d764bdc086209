"""In-process identity provider and document store.

Behaves like the hosted backend closely enough for tests and for running
the CLI with ``backend.kind: memory``: server-assigned ids, server
timestamps, documents missing an ``order_by`` field excluded from ordered
queries, copies on every read and write.
"""

from __future__ import annotations

import copy
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from loguru import logger

from moir.core.exceptions import AuthError, FetchError, NotFoundError, WriteError

from .base import SERVER_TIMESTAMP, AuthRecord, Document, FieldFilter, IdentityListener

_READ_OPS = {"query", "get", "count"}


def _new_id() -> str:
    return uuid.uuid4().hex[:20]


class InMemoryDocumentStore:
    """Dict-backed DocumentStore.

    Args:
        clock: Returns the time used for SERVER_TIMESTAMP fields.

    ``calls`` records every operation as ``(op, collection, doc_id)`` so
    tests can assert on remote traffic. ``fail_next(op)`` makes the next
    call of that operation raise.
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(UTC))
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._failures: dict[str, Exception] = {}
        self.calls: list[tuple[str, str, str | None]] = []

    # -- test helpers ---------------------------------------------------

    def fail_next(self, op: str, exc: Exception | None = None) -> None:
        """Make the next *op* call raise *exc* (FetchError/WriteError by default)."""
        if exc is None:
            exc = FetchError(f"simulated {op} failure") if op in _READ_OPS else WriteError(f"simulated {op} failure")
        self._failures[op] = exc

    def calls_for(self, op: str) -> list[tuple[str, str, str | None]]:
        return [c for c in self.calls if c[0] == op]

    # -- internals ------------------------------------------------------

    def _record(self, op: str, collection: str, doc_id: str | None = None) -> None:
        self.calls.append((op, collection, doc_id))
        exc = self._failures.pop(op, None)
        if exc is not None:
            raise exc

    def _resolve(self, data: dict[str, Any]) -> dict[str, Any]:
        now = self._clock()
        return {k: (now if v is SERVER_TIMESTAMP else copy.deepcopy(v)) for k, v in data.items()}

    def _docs(self, collection: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(collection, {})

    # -- DocumentStore --------------------------------------------------

    async def query(
        self,
        collection: str,
        filters: list[FieldFilter] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]:
        self._record("query", collection)
        docs = [
            Document(id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in self._docs(collection).items()
            if all(f.matches(data) for f in filters or [])
        ]
        if order_by:
            docs = [d for d in docs if d.data.get(order_by) is not None]
            docs.sort(key=lambda d: d.data[order_by], reverse=descending)
        if limit is not None:
            docs = docs[:limit]
        return docs

    async def get(self, collection: str, doc_id: str) -> Document:
        self._record("get", collection, doc_id)
        data = self._docs(collection).get(doc_id)
        if data is None:
            raise NotFoundError(f"{collection}/{doc_id} not found")
        return Document(id=doc_id, data=copy.deepcopy(data))

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        doc_id = _new_id()
        self._record("add", collection, doc_id)
        self._docs(collection)[doc_id] = self._resolve(data)
        logger.debug(f"memory store: added {collection}/{doc_id}")
        return doc_id

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self._record("set", collection, doc_id)
        self._docs(collection)[doc_id] = self._resolve(data)

    async def update(self, collection: str, doc_id: str, patch: dict[str, Any]) -> None:
        self._record("update", collection, doc_id)
        docs = self._docs(collection)
        if doc_id not in docs:
            raise NotFoundError(f"{collection}/{doc_id} not found")
        docs[doc_id].update(self._resolve(patch))

    async def delete(self, collection: str, doc_id: str) -> None:
        self._record("delete", collection, doc_id)
        self._docs(collection).pop(doc_id, None)

    async def count(self, collection: str, filters: list[FieldFilter] | None = None) -> int:
        self._record("count", collection)
        return sum(1 for data in self._docs(collection).values() if all(f.matches(data) for f in filters or []))


class InMemoryIdentityProvider:
    """Email/password identities held in a dict."""

    def __init__(self) -> None:
        self._accounts: dict[str, dict[str, str]] = {}
        self._current: AuthRecord | None = None
        self._listeners: list[IdentityListener] = []

    @property
    def current(self) -> AuthRecord | None:
        return self._current

    def add_account(self, email: str, password: str, display_name: str | None = None) -> AuthRecord:
        """Seed an account without signing in."""
        key = email.strip().lower()
        uid = _new_id()
        self._accounts[key] = {"uid": uid, "password": password, "display_name": display_name or ""}
        return AuthRecord(uid=uid, email=email, display_name=display_name)

    async def sign_in(self, email: str, password: str) -> AuthRecord:
        account = self._accounts.get(email.strip().lower())
        if account is None or account["password"] != password:
            raise AuthError("Invalid email or password")
        record = AuthRecord(
            uid=account["uid"],
            email=email.strip(),
            display_name=account["display_name"] or None,
            id_token=f"token-{account['uid']}",
        )
        self._set_current(record)
        return record

    async def sign_up(self, email: str, password: str) -> AuthRecord:
        if not email or "@" not in email:
            raise AuthError("Invalid email address")
        if len(password) < 6:
            raise AuthError("Password should be at least 6 characters")
        if email.strip().lower() in self._accounts:
            raise AuthError("Email already in use")
        self.add_account(email, password)
        return await self.sign_in(email, password)

    async def sign_out(self) -> None:
        self._set_current(None)

    def subscribe(self, listener: IdentityListener) -> Callable[[], None]:
        self._listeners.append(listener)
        listener(self._current)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _set_current(self, record: AuthRecord | None) -> None:
        self._current = record
        for listener in list(self._listeners):
            listener(record)
