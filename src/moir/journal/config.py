"""Configuration dataclasses for the journal views and flows.

These are pure data containers with sensible defaults.
Override them from YAML config, env vars, or constructor args.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from moir.core.config import Config


@dataclass
class DigestConfig:
    """Weekly digest eligibility and placeholder content.

    Attributes:
        window_days: Trailing window, counted back from today.
        min_entries: Entries needed in the window before a digest is shown.
        summary_text: Fixed illustrative summary. Not derived from the entries.
        dominant_time: Fixed illustrative time-of-day label.
        top_keywords: Fixed illustrative themes.
    """

    window_days: int = 7
    min_entries: int = 3
    summary_text: str = "You've been consistent this week. Keep writing to discover more patterns."
    dominant_time: str = "Evening"
    top_keywords: list[str] = field(default_factory=lambda: ["Journaling", "Reflection", "Growth"])


@dataclass
class EditorConfig:
    """Entry editor settings.

    Attributes:
        autosave_delay: Seconds of typing inactivity before an autosave.
    """

    autosave_delay: float = 2.0


@dataclass
class SearchConfig:
    """Search screen settings.

    Attributes:
        debounce_delay: Seconds of input inactivity before a search runs.
        excerpt_length: Characters of body shown per result.
    """

    debounce_delay: float = 0.3
    excerpt_length: int = 150


@dataclass
class ThoughtDumpConfig:
    """Thought-dump flow settings.

    Attributes:
        max_field_length: Cap on the problem and action fields.
        redirect_delay: Seconds the success state waits before going to the dashboard.
    """

    max_field_length: int = 255
    redirect_delay: float = 2.0


@dataclass
class DashboardConfig:
    recent_limit: int = 3


@dataclass
class JournalSettings:
    """All journal-level settings in one place."""

    digest: DigestConfig = field(default_factory=DigestConfig)
    editor: EditorConfig = field(default_factory=EditorConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    thought_dump: ThoughtDumpConfig = field(default_factory=ThoughtDumpConfig)
    dashboard: DashboardConfig = field(default_factory=DashboardConfig)

    @classmethod
    def from_config(cls, config: Config) -> JournalSettings:
        """Pull the timing and digest knobs out of a loaded Config."""
        return cls(
            digest=DigestConfig(
                window_days=int(config.get("digest.window_days", 7)),
                min_entries=int(config.get("digest.min_entries", 3)),
            ),
            editor=EditorConfig(autosave_delay=float(config.get("timing.autosave_debounce", 2.0))),
            search=SearchConfig(debounce_delay=float(config.get("timing.search_debounce", 0.3))),
            thought_dump=ThoughtDumpConfig(redirect_delay=float(config.get("timing.success_redirect_delay", 2.0))),
        )
