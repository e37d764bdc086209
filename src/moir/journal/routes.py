"""Logical routes and the auth guard in front of them.

``resolve`` turns a path into one of three outcomes:

- ``Resolution(route=..., params=...)``: render that screen
- ``Resolution(redirect=...)``: go somewhere else first
- ``Resolution(pending=True)``: the session is still loading, render nothing yet
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from urllib.parse import parse_qsl, urlsplit


@dataclass(frozen=True)
class Route:
    pattern: str
    screen: str
    requires_auth: bool = True

    @property
    def regex(self) -> re.Pattern[str]:
        return re.compile("^" + re.sub(r"\{(\w+)\}", r"(?P<\1>[^/]+)", self.pattern) + "$")


ROUTES: tuple[Route, ...] = (
    Route("/login", "login", requires_auth=False),
    Route("/register", "register", requires_auth=False),
    Route("/dashboard", "dashboard"),
    Route("/write", "write"),
    Route("/entry/{id}", "entry"),
    Route("/entry/{id}/edit", "edit"),
    Route("/notebooks", "notebooks"),
    Route("/notebook/{id}", "notebook"),
    Route("/calendar", "calendar"),
    Route("/search", "search"),
    Route("/weekly-reflection", "weekly-reflection"),
    Route("/thought-dump", "thought-dump"),
)

HOME = "/dashboard"
LOGIN = "/login"


@dataclass(frozen=True)
class Resolution:
    route: Route | None = None
    params: dict[str, str] = field(default_factory=dict)
    redirect: str | None = None
    pending: bool = False


def match(path: str) -> tuple[Route, dict[str, str]] | None:
    """The route for *path* and its path and query parameters, or None."""
    parts = urlsplit(path)
    clean = parts.path.rstrip("/") or "/"
    for route in ROUTES:
        m = route.regex.match(clean)
        if m:
            return route, {**dict(parse_qsl(parts.query)), **m.groupdict()}
    return None


def resolve(path: str, authenticated: bool, loading: bool = False) -> Resolution:
    """Apply the auth guard and the root/unknown redirects to *path*."""
    found = match(path)
    if found is None:
        # Root and unknown paths; the dashboard's own guard sends signed-out users on to /login
        return Resolution(redirect=HOME)

    route, params = found
    if not route.requires_auth:
        return Resolution(route=route, params=params)
    if loading:
        return Resolution(pending=True)
    if not authenticated:
        return Resolution(redirect=LOGIN)
    return Resolution(route=route, params=params)
