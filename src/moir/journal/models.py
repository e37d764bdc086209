"""Record schemas for the four stored collections.

Every document read from the store is decoded through one of these
models; a document that does not fit raises DecodeError naming the
collection, id and field instead of leaking missing values into views.

Stored field names match the documents the web client writes
(``userId``, ``notebookId``, ``include_in_weekly_summary`` ...); Python
attributes are snake_case.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from enum import StrEnum
from typing import Any, ClassVar, Self

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from moir.backend.base import Document
from moir.core.exceptions import DecodeError
from moir.core.utils.text import word_count

OWNER_FIELD = "userId"

NOTEBOOK_COLORS = (
    "#9fb09f",  # sage
    "#64748b",  # slate
    "#94a3b8",  # cool gray
    "#d4a373",  # earth
    "#e76f51",  # terra cotta
    "#2a9d8f",  # teal
)
DEFAULT_NOTEBOOK_COLOR = NOTEBOOK_COLORS[0]


class Collection(StrEnum):
    """Collection names in the document store."""

    USERS = "users"
    NOTEBOOKS = "notebooks"
    ENTRIES = "entries"
    THOUGHT_DUMPS = "thought_dumps"


def _as_utc(value: Any) -> Any:
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class Record(BaseModel):
    """Base for decoded documents."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    collection: ClassVar[Collection]

    id: str

    @classmethod
    def from_document(cls, doc: Document) -> Self:
        """Decode a raw store document, raising DecodeError on schema mismatch."""
        try:
            return cls.model_validate({**doc.data, "id": doc.id})
        except PydanticValidationError as e:
            first = e.errors()[0]
            loc = ".".join(str(p) for p in first.get("loc", ())) or "?"
            raise DecodeError(cls.collection.value, doc.id, f"{loc}: {first.get('msg', 'invalid')}") from e


class User(Record):
    """Profile of the signed-in person. ``id`` is the auth uid."""

    collection: ClassVar[Collection] = Collection.USERS

    username: str = "User"
    email: str = ""
    first_name: str | None = None
    occupation: str | None = None
    avatar: str | None = None
    created_at: datetime | None = Field(default=None, validation_alias=AliasChoices("createdAt", "created_at"))

    @field_validator("created_at", mode="after")
    @classmethod
    def _utc(cls, v: Any) -> Any:
        return _as_utc(v)

    @property
    def display_name(self) -> str:
        return self.first_name or self.username


class Notebook(Record):
    collection: ClassVar[Collection] = Collection.NOTEBOOKS

    owner_id: str = Field(alias=OWNER_FIELD)
    name: str
    description: str = ""
    color_theme: str = DEFAULT_NOTEBOOK_COLOR
    include_in_weekly_digest: bool = Field(default=False, alias="include_in_weekly_summary")
    created_at: datetime | None = Field(default=None, validation_alias=AliasChoices("createdAt", "created_at"))
    updated_at: datetime | None = Field(default=None, validation_alias=AliasChoices("updatedAt", "updated_at"))

    @field_validator("description", "color_theme", mode="before")
    @classmethod
    def _none_to_default(cls, v: Any, info) -> Any:
        if v is None:
            return "" if info.field_name == "description" else DEFAULT_NOTEBOOK_COLOR
        return v

    @field_validator("created_at", "updated_at", mode="after")
    @classmethod
    def _utc(cls, v: Any) -> Any:
        return _as_utc(v)


class Entry(Record):
    """A dated journal entry. ``entry_date`` groups and sorts; ``created_at`` breaks ties."""

    collection: ClassVar[Collection] = Collection.ENTRIES

    owner_id: str = Field(alias=OWNER_FIELD)
    notebook_id: str = Field(alias="notebookId")
    title: str = ""
    content: str = ""
    entry_date: date
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("title", "content", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("entry_date", mode="before")
    @classmethod
    def _date_only(cls, v: Any) -> Any:
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        return v

    @field_validator("created_at", "updated_at", mode="after")
    @classmethod
    def _utc(cls, v: Any) -> Any:
        return _as_utc(v)

    @property
    def date_key(self) -> str:
        """``YYYY-MM-DD`` key used by the calendar."""
        return self.entry_date.isoformat()

    @property
    def word_count(self) -> int:
        return word_count(self.content)


class ThoughtDump(Record):
    """One pass through the thought-dump flow. Append-only."""

    collection: ClassVar[Collection] = Collection.THOUGHT_DUMPS

    owner_id: str = Field(alias=OWNER_FIELD)
    dump_text: str
    problem_text: str
    action_text: str
    created_at: datetime | None = None

    @field_validator("created_at", mode="after")
    @classmethod
    def _utc(cls, v: Any) -> Any:
        return _as_utc(v)
