"""Owner-scoped access to the stored collections.

Every ``list`` is an equality query on the owner field; any further
filtering and ordering happens here, client-side, over the owner's full
set. That avoids composite server indexes and is only reasonable while a
single user's collections stay small (hundreds of documents). Past that,
push the filters and ordering into ``DocumentStore.query``.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from loguru import logger

from moir.backend.base import SERVER_TIMESTAMP, Document, DocumentStore, FieldFilter, eq
from moir.core.exceptions import AuthError, FetchError, NotFoundError, WriteError

from .models import OWNER_FIELD, Collection, Entry, Notebook, Record, ThoughtDump, User


def _sort_key(value: Any) -> tuple[int, Any]:
    # Missing values sort after present ones in ascending order
    return (1, None) if value is None else (0, value)


def apply_filters(
    docs: list[Document],
    filters: list[FieldFilter] | None = None,
    order_by: str | None = None,
    descending: bool = False,
    limit: int | None = None,
) -> list[Document]:
    """Filter, order and cap a fetched document list in memory."""
    result = [d for d in docs if all(f.matches(d.data) for f in filters or [])]
    if order_by:
        present = [d for d in result if d.data.get(order_by) is not None]
        missing = [d for d in result if d.data.get(order_by) is None]
        present.sort(key=lambda d: _sort_key(d.data.get(order_by)), reverse=descending)
        result = present + missing
    if limit is not None:
        result = result[:limit]
    return result


class CollectionAccessor:
    """Generic CRUD over named collections plus typed helpers per collection.

    Reads raise FetchError (NotFoundError for a missing id), writes raise
    WriteError, and decoding problems raise DecodeError.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    # -- generic --------------------------------------------------------

    async def list(
        self,
        collection: str,
        owner_id: str,
        filters: list[FieldFilter] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]:
        """All of *owner_id*'s documents in *collection*, then filtered/ordered locally."""
        if not owner_id:
            raise AuthError("No signed-in user")
        try:
            docs = await self.store.query(str(collection), [eq(OWNER_FIELD, owner_id)])
        except FetchError as e:
            logger.warning(f"list {collection} for {owner_id} failed: {e}")
            raise
        return apply_filters(docs, filters, order_by, descending, limit)

    async def get(self, collection: str, doc_id: str) -> Document:
        if not doc_id:
            raise NotFoundError(f"{collection}: empty id")
        return await self.store.get(str(collection), doc_id)

    async def create(self, collection: str, fields: dict[str, Any]) -> str:
        try:
            doc_id = await self.store.add(str(collection), fields)
        except WriteError as e:
            logger.error(f"create in {collection} failed: {e}")
            raise
        logger.debug(f"created {collection}/{doc_id}")
        return doc_id

    async def update(self, collection: str, doc_id: str, patch: dict[str, Any]) -> None:
        try:
            await self.store.update(str(collection), doc_id, patch)
        except (WriteError, NotFoundError) as e:
            logger.error(f"update {collection}/{doc_id} failed: {e}")
            raise

    async def delete(self, collection: str, doc_id: str) -> None:
        try:
            await self.store.delete(str(collection), doc_id)
        except WriteError as e:
            logger.error(f"delete {collection}/{doc_id} failed: {e}")
            raise

    async def count(self, collection: str, owner_id: str, filters: list[FieldFilter] | None = None) -> int:
        """Server-side count; equality filters only, so no composite index is needed."""
        if not owner_id:
            raise AuthError("No signed-in user")
        return await self.store.count(str(collection), [eq(OWNER_FIELD, owner_id), *(filters or [])])

    # -- typed reads ----------------------------------------------------

    async def _get_owned(self, model: type[Record], doc_id: str, owner_id: str | None) -> Any:
        record = model.from_document(await self.get(model.collection, doc_id))
        if owner_id is not None and getattr(record, "owner_id", owner_id) != owner_id:
            raise NotFoundError(f"{model.collection}/{doc_id} not found")
        return record

    async def list_entries(self, owner_id: str, notebook_id: str | None = None) -> list[Entry]:
        filters = [eq("notebookId", notebook_id)] if notebook_id else None
        docs = await self.list(Collection.ENTRIES, owner_id, filters)
        return [Entry.from_document(d) for d in docs]

    async def get_entry(self, entry_id: str, owner_id: str | None = None) -> Entry:
        return await self._get_owned(Entry, entry_id, owner_id)

    async def list_notebooks(self, owner_id: str, digest_only: bool = False) -> list[Notebook]:
        filters = [eq("include_in_weekly_summary", True)] if digest_only else None
        docs = await self.list(Collection.NOTEBOOKS, owner_id, filters)
        return [Notebook.from_document(d) for d in docs]

    async def get_notebook(self, notebook_id: str, owner_id: str | None = None) -> Notebook:
        return await self._get_owned(Notebook, notebook_id, owner_id)

    async def list_thought_dumps(self, owner_id: str) -> list[ThoughtDump]:
        docs = await self.list(Collection.THOUGHT_DUMPS, owner_id, order_by="created_at", descending=True)
        return [ThoughtDump.from_document(d) for d in docs]

    async def get_profile(self, uid: str) -> User | None:
        """The profile document for *uid*, or None if none has been written yet."""
        try:
            doc = await self.get(Collection.USERS, uid)
        except NotFoundError:
            return None
        return User.from_document(doc)

    # -- typed writes ---------------------------------------------------

    async def create_entry(
        self,
        owner_id: str,
        notebook_id: str,
        title: str,
        content: str,
        entry_date: date,
    ) -> str:
        fields = {
            "title": title,
            "content": content,
            "entry_date": entry_date.isoformat(),
            "notebookId": notebook_id,
            OWNER_FIELD: owner_id,
            "created_at": SERVER_TIMESTAMP,
            "updated_at": SERVER_TIMESTAMP,
        }
        return await self.create(Collection.ENTRIES, fields)

    async def update_entry(
        self,
        entry_id: str,
        title: str,
        content: str,
        entry_date: date,
        notebook_id: str,
    ) -> None:
        patch = {
            "title": title,
            "content": content,
            "entry_date": entry_date.isoformat(),
            "notebookId": notebook_id,
            "updated_at": SERVER_TIMESTAMP,
        }
        await self.update(Collection.ENTRIES, entry_id, patch)

    async def create_notebook(
        self,
        owner_id: str,
        name: str,
        description: str,
        color_theme: str,
        include_in_weekly_digest: bool,
    ) -> str:
        fields = {
            OWNER_FIELD: owner_id,
            "name": name,
            "description": description,
            "color_theme": color_theme,
            "include_in_weekly_summary": include_in_weekly_digest,
            "createdAt": SERVER_TIMESTAMP,
        }
        return await self.create(Collection.NOTEBOOKS, fields)

    async def update_notebook(
        self,
        notebook_id: str,
        name: str,
        description: str,
        color_theme: str,
        include_in_weekly_digest: bool,
    ) -> None:
        patch = {
            "name": name,
            "description": description,
            "color_theme": color_theme,
            "include_in_weekly_summary": include_in_weekly_digest,
            "updatedAt": SERVER_TIMESTAMP,
        }
        await self.update(Collection.NOTEBOOKS, notebook_id, patch)

    async def create_thought_dump(self, owner_id: str, dump_text: str, problem_text: str, action_text: str) -> str:
        fields = {
            OWNER_FIELD: owner_id,
            "dump_text": dump_text,
            "problem_text": problem_text,
            "action_text": action_text,
            "created_at": SERVER_TIMESTAMP,
        }
        return await self.create(Collection.THOUGHT_DUMPS, fields)

    async def create_profile(self, uid: str, username: str, email: str) -> None:
        try:
            await self.store.set(
                Collection.USERS, uid, {"username": username, "email": email, "createdAt": SERVER_TIMESTAMP}
            )
        except WriteError as e:
            logger.error(f"creating profile for {uid} failed: {e}")
            raise

    async def update_profile(self, uid: str, patch: dict[str, Any]) -> None:
        await self.update(Collection.USERS, uid, patch)
