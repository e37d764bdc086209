"""Cloud Firestore client over the public REST API (v1).

Uses bearer-token auth with the signed-in user's ID token, so the
project's security rules apply exactly as they do for the web client.
No external dependencies beyond the standard library; blocking requests
run in the default executor.

Server timestamps go through ``documents:commit`` field transforms
(``REQUEST_TIME``). A document created with a server timestamp gets a
client-generated id and is written by a single commit, so the fields and
the timestamp land together or not at all.
"""

from __future__ import annotations

import json
import urllib.error
import urllib.parse
import urllib.request
import uuid
from collections.abc import Callable
from datetime import UTC, date, datetime
from typing import Any

from loguru import logger

from moir.core.exceptions import FetchError, NotFoundError, WriteError
from moir.core.utils.async_helpers import run_blocking

from .base import SERVER_TIMESTAMP, Document, FieldFilter

DEFAULT_API_BASE = "https://firestore.googleapis.com/v1"

_OPERATORS = {
    "==": "EQUAL",
    ">=": "GREATER_THAN_OR_EQUAL",
    "<=": "LESS_THAN_OR_EQUAL",
    ">": "GREATER_THAN",
    "<": "LESS_THAN",
}


# ---------------------------------------------------------------------------
# Value codec
# ---------------------------------------------------------------------------


def encode_value(value: Any) -> dict[str, Any]:
    """Convert a Python value to a Firestore ``Value`` JSON object."""
    if value is None:
        return {"nullValue": None}
    if isinstance(value, bool):
        return {"booleanValue": value}
    if isinstance(value, int):
        return {"integerValue": str(value)}
    if isinstance(value, float):
        return {"doubleValue": value}
    if isinstance(value, str):
        return {"stringValue": value}
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return {"timestampValue": value.astimezone(UTC).isoformat().replace("+00:00", "Z")}
    if isinstance(value, date):
        return {"stringValue": value.isoformat()}
    if isinstance(value, list | tuple):
        return {"arrayValue": {"values": [encode_value(v) for v in value]}}
    if isinstance(value, dict):
        return {"mapValue": {"fields": encode_fields(value)}}
    raise TypeError(f"Cannot store value of type {type(value).__name__}")


def decode_value(value: dict[str, Any]) -> Any:
    """Convert a Firestore ``Value`` JSON object to a Python value."""
    if "nullValue" in value:
        return None
    if "booleanValue" in value:
        return bool(value["booleanValue"])
    if "integerValue" in value:
        return int(value["integerValue"])
    if "doubleValue" in value:
        return float(value["doubleValue"])
    if "stringValue" in value:
        return value["stringValue"]
    if "timestampValue" in value:
        return datetime.fromisoformat(value["timestampValue"].replace("Z", "+00:00"))
    if "arrayValue" in value:
        return [decode_value(v) for v in value["arrayValue"].get("values", [])]
    if "mapValue" in value:
        return decode_fields(value["mapValue"].get("fields", {}))
    if "referenceValue" in value:
        return value["referenceValue"]
    logger.debug(f"Unhandled Firestore value type: {sorted(value)}")
    return None


def encode_fields(data: dict[str, Any]) -> dict[str, Any]:
    return {k: encode_value(v) for k, v in data.items()}


def decode_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {k: decode_value(v) for k, v in fields.items()}


def _new_doc_id() -> str:
    return uuid.uuid4().hex[:20]


def _split_transforms(data: dict[str, Any]) -> tuple[dict[str, Any], list[dict[str, Any]]]:
    """Separate SERVER_TIMESTAMP sentinels into field transforms."""
    plain = {k: v for k, v in data.items() if v is not SERVER_TIMESTAMP}
    transforms = [
        {"fieldPath": k, "setToServerValue": "REQUEST_TIME"} for k, v in data.items() if v is SERVER_TIMESTAMP
    ]
    return plain, transforms


def _field_filter(f: FieldFilter) -> dict[str, Any]:
    return {
        "fieldFilter": {
            "field": {"fieldPath": f.field},
            "op": _OPERATORS[f.op],
            "value": encode_value(f.value),
        }
    }


def build_structured_query(
    collection: str,
    filters: list[FieldFilter] | None = None,
    order_by: str | None = None,
    descending: bool = False,
    limit: int | None = None,
) -> dict[str, Any]:
    """Build a ``StructuredQuery`` body for runQuery / runAggregationQuery."""
    query: dict[str, Any] = {"from": [{"collectionId": collection}]}
    filters = filters or []
    if len(filters) == 1:
        query["where"] = _field_filter(filters[0])
    elif filters:
        query["where"] = {"compositeFilter": {"op": "AND", "filters": [_field_filter(f) for f in filters]}}
    if order_by:
        query["orderBy"] = [
            {"field": {"fieldPath": order_by}, "direction": "DESCENDING" if descending else "ASCENDING"}
        ]
    if limit is not None:
        query["limit"] = int(limit)
    return query


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class FirestoreClient:
    """DocumentStore implementation backed by Cloud Firestore.

    Args:
        project_id: Firebase project id.
        api_key: Web API key (sent as ``?key=``).
        token_provider: Returns the current user's ID token, or None when
            signed out. Typically ``lambda: identity.current and identity.current.id_token``.
        database: Firestore database id.
    """

    def __init__(
        self,
        project_id: str,
        api_key: str,
        token_provider: Callable[[], str | None],
        *,
        database: str = "(default)",
        timeout: int = 20,
        api_base: str = DEFAULT_API_BASE,
    ):
        if not project_id or not api_key:
            raise ValueError("project_id and api_key are required")
        self.project_id = project_id
        self.api_key = api_key
        self.database = database
        self.timeout = timeout
        self.api_base = api_base.rstrip("/")
        self._token_provider = token_provider

    @property
    def root(self) -> str:
        """Resource name of the documents root."""
        return f"projects/{self.project_id}/databases/{self.database}/documents"

    def _doc_name(self, collection: str, doc_id: str) -> str:
        return f"{self.root}/{collection}/{doc_id}"

    def _request(
        self,
        method: str,
        path: str,
        *,
        payload: Any = None,
        query: dict[str, Any] | None = None,
        write: bool = False,
    ) -> Any:
        params: dict[str, Any] = {"key": self.api_key}
        if query:
            params.update(query)
        url = f"{self.api_base}/{path.lstrip('/')}?{urllib.parse.urlencode(params, doseq=True)}"

        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        token = self._token_provider()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = urllib.request.Request(url=url, method=method.upper(), data=data, headers=headers)

        error_cls = WriteError if write else FetchError
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read()
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="ignore") if hasattr(e, "read") else ""
            if e.code == 404:
                raise NotFoundError(f"Firestore {path}: not found") from e
            raise error_cls(f"Firestore API {e.code}: {body or e.reason}") from e
        except urllib.error.URLError as e:
            raise error_cls(f"Firestore request failed: {e}") from e

        if not raw:
            return {}
        return json.loads(raw.decode("utf-8", errors="ignore"))

    def _commit(self, writes: list[dict[str, Any]]) -> None:
        self._request("POST", f"{self.root}:commit", payload={"writes": writes}, write=True)

    @staticmethod
    def _to_document(raw: dict[str, Any]) -> Document:
        return Document(id=raw["name"].rsplit("/", 1)[-1], data=decode_fields(raw.get("fields", {})))

    # -- sync implementations (run in executor) -------------------------

    def _query_sync(self, structured: dict[str, Any]) -> list[Document]:
        rows = self._request("POST", f"{self.root}:runQuery", payload={"structuredQuery": structured})
        return [self._to_document(row["document"]) for row in rows or [] if "document" in row]

    def _count_sync(self, structured: dict[str, Any]) -> int:
        body = {
            "structuredAggregationQuery": {
                "structuredQuery": structured,
                "aggregations": [{"alias": "count", "count": {}}],
            }
        }
        rows = self._request("POST", f"{self.root}:runAggregationQuery", payload=body)
        for row in rows or []:
            fields = row.get("result", {}).get("aggregateFields", {})
            if "count" in fields:
                return int(decode_value(fields["count"]))
        return 0

    def _get_sync(self, collection: str, doc_id: str) -> Document:
        return self._to_document(self._request("GET", self._doc_name(collection, doc_id)))

    def _add_sync(self, collection: str, data: dict[str, Any]) -> str:
        plain, transforms = _split_transforms(data)
        if not transforms:
            created = self._request(
                "POST", f"{self.root}/{collection}", payload={"fields": encode_fields(plain)}, write=True
            )
            return created["name"].rsplit("/", 1)[-1]

        doc_id = _new_doc_id()
        self._commit(
            [
                {
                    "update": {"name": self._doc_name(collection, doc_id), "fields": encode_fields(plain)},
                    "updateTransforms": transforms,
                    "currentDocument": {"exists": False},
                }
            ]
        )
        return doc_id

    def _set_sync(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        plain, transforms = _split_transforms(data)
        write: dict[str, Any] = {"update": {"name": self._doc_name(collection, doc_id), "fields": encode_fields(plain)}}
        if transforms:
            write["updateTransforms"] = transforms
        self._commit([write])

    def _update_sync(self, collection: str, doc_id: str, patch: dict[str, Any]) -> None:
        plain, transforms = _split_transforms(patch)
        write: dict[str, Any] = {
            "update": {"name": self._doc_name(collection, doc_id), "fields": encode_fields(plain)},
            "updateMask": {"fieldPaths": sorted(plain)},
            "currentDocument": {"exists": True},
        }
        if transforms:
            write["updateTransforms"] = transforms
        try:
            self._commit([write])
        except WriteError as e:
            # A failed exists precondition comes back as 400 FAILED_PRECONDITION / NOT_FOUND
            if "NOT_FOUND" in str(e) or "FAILED_PRECONDITION" in str(e):
                raise NotFoundError(f"{collection}/{doc_id} not found") from e
            raise

    def _delete_sync(self, collection: str, doc_id: str) -> None:
        try:
            self._request("DELETE", self._doc_name(collection, doc_id), write=True)
        except NotFoundError:
            # Deleting a missing document is a no-op
            pass

    # -- DocumentStore --------------------------------------------------

    async def query(
        self,
        collection: str,
        filters: list[FieldFilter] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Document]:
        structured = build_structured_query(collection, filters, order_by, descending, limit)
        return await run_blocking(self._query_sync, structured)

    async def get(self, collection: str, doc_id: str) -> Document:
        return await run_blocking(self._get_sync, collection, doc_id)

    async def add(self, collection: str, data: dict[str, Any]) -> str:
        return await run_blocking(self._add_sync, collection, data)

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        await run_blocking(self._set_sync, collection, doc_id, data)

    async def update(self, collection: str, doc_id: str, patch: dict[str, Any]) -> None:
        await run_blocking(self._update_sync, collection, doc_id, patch)

    async def delete(self, collection: str, doc_id: str) -> None:
        await run_blocking(self._delete_sync, collection, doc_id)

    async def count(self, collection: str, filters: list[FieldFilter] | None = None) -> int:
        return await run_blocking(self._count_sync, build_structured_query(collection, filters))
