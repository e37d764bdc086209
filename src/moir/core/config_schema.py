"""Pydantic models for config validation.

Opt-in schema validation for ``Config.config_data``.  Call
``Config.validated()`` to obtain a typed, validated ``MoirConfig``
instance.  Existing dict-based access continues to work unchanged.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class PathsConfig(BaseModel):
    """File-system paths used by the client."""

    data_dir: Path
    log_dir: Path | None = None

    @field_validator("data_dir", "log_dir", mode="before")
    @classmethod
    def _expand_user(cls, v: Any) -> Any:
        if isinstance(v, str):
            return Path(v).expanduser()
        if isinstance(v, Path):
            return v.expanduser()
        return v


class BackendConfig(BaseModel):
    """Which backend the client talks to and how to reach it."""

    kind: Literal["firebase", "memory"] = "firebase"
    project_id: str = ""
    api_key: str = ""
    database: str = "(default)"
    timeout: int = Field(default=20, gt=0)

    @model_validator(mode="after")
    def _firebase_needs_credentials(self) -> BackendConfig:
        if self.kind == "firebase" and (not self.project_id or not self.api_key):
            raise ValueError("firebase backend requires backend.project_id and backend.api_key")
        return self


class TimingConfig(BaseModel):
    """Debounce and redirect delays, in seconds."""

    search_debounce: float = Field(default=0.3, ge=0)
    autosave_debounce: float = Field(default=2.0, ge=0)
    success_redirect_delay: float = Field(default=2.0, ge=0)


class DigestSettings(BaseModel):
    """Weekly digest eligibility window."""

    window_days: int = Field(default=7, gt=0)
    min_entries: int = Field(default=3, gt=0)


class LoggingConfig(BaseModel):
    level: Literal["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"] = "WARNING"

    @field_validator("level", mode="before")
    @classmethod
    def _upper(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v


class MoirConfig(BaseModel):
    """Root configuration model.

    Uses ``extra="allow"`` so callers can bolt on custom sections
    without touching this schema.
    """

    model_config = ConfigDict(extra="allow")

    paths: PathsConfig = PathsConfig(data_dir=Path("~/.moir"))
    backend: BackendConfig = BackendConfig(kind="memory")
    timing: TimingConfig = TimingConfig()
    digest: DigestSettings = DigestSettings()
    logging: LoggingConfig = LoggingConfig()
