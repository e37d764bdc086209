"""The signed-in identity and its profile, as an explicit object.

Create one ``SessionContext`` at startup, ``await start()`` it, pass it to
the screens that need the current user, and ``await close()`` it on
shutdown. It listens to the identity provider and, on every change,
resolves the profile document so the UI always has something to render:

    1. the stored ``users/{uid}`` profile
    2. else a minimal user from the auth record (display name or "User")
    3. else, if the profile fetch failed, a minimal user named after the
       email's local part

``loading`` stays True until the first resolution finishes; routes must
not redirect while it is set.
"""

from __future__ import annotations

import asyncio
from typing import Any

from loguru import logger

from moir.backend.base import AuthRecord, IdentityProvider
from moir.core.events import PROFILE_UPDATED, SESSION_CHANGED, Event, EventBus
from moir.core.exceptions import AuthError, DecodeError, FetchError, NotFoundError, ValidationError

from .collections import CollectionAccessor
from .models import User

PROFILE_FIELDS = frozenset({"first_name", "username", "occupation", "avatar"})


def _fallback_user(record: AuthRecord, *, from_email: bool = False) -> User:
    if from_email:
        name = record.email.split("@", 1)[0] if record.email else ""
    else:
        name = record.display_name or ""
    return User(id=record.uid, username=name or "User", email=record.email)


class SessionContext:
    """Current user, sign-in/out, and profile edits."""

    def __init__(self, identity: IdentityProvider, accessor: CollectionAccessor, bus: EventBus | None = None):
        self._identity = identity
        self._accessor = accessor
        self.bus = bus or EventBus()
        self._user: User | None = None
        self._generation = 0
        self._pending: asyncio.Task | None = None
        self._unsubscribe = None
        self.loading = True

    # -- lifecycle --------------------------------------------------------

    async def start(self) -> None:
        """Subscribe to identity changes and wait for the first resolution."""
        if self._unsubscribe is None:
            self._unsubscribe = self._identity.subscribe(self._on_identity_change)
        await self.wait_ready()

    async def close(self) -> None:
        """Unsubscribe and forget the user."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._generation += 1
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None
        self._user = None
        self.loading = False

    async def wait_ready(self) -> None:
        """Wait until the latest identity change has been resolved."""
        while self._pending is not None and not self._pending.done():
            task = self._pending
            await asyncio.gather(task, return_exceptions=True)

    # -- accessors ----------------------------------------------------------

    def current_user(self) -> User | None:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    @property
    def uid(self) -> str:
        """The signed-in uid; raises AuthError when signed out."""
        if self._user is None:
            raise AuthError("You must be logged in.")
        return self._user.id

    # -- identity changes ---------------------------------------------------

    def _on_identity_change(self, record: AuthRecord | None) -> None:
        self._generation += 1
        self.loading = True
        self._pending = asyncio.get_running_loop().create_task(self._resolve(record, self._generation))

    async def _resolve(self, record: AuthRecord | None, generation: int) -> None:
        user = await self._load_profile(record) if record is not None else None
        if generation != self._generation:
            logger.debug(f"Dropping stale session resolution (generation {generation})")
            return
        self._user = user
        self.loading = False
        await self.bus.emit(Event(name=SESSION_CHANGED, payload={"uid": user.id if user else None}, source="session"))

    async def _load_profile(self, record: AuthRecord) -> User:
        try:
            profile = await self._accessor.get_profile(record.uid)
        except (FetchError, DecodeError) as e:
            logger.warning(f"Error fetching user profile for {record.uid}: {e}")
            return _fallback_user(record, from_email=True)
        if profile is None:
            return _fallback_user(record)
        return profile.model_copy(
            update={
                "username": profile.username or record.display_name or "User",
                "email": profile.email or record.email,
            }
        )

    async def refresh(self) -> None:
        """Re-resolve the profile for the current identity."""
        self._on_identity_change(self._identity.current)
        await self.wait_ready()

    # -- operations ---------------------------------------------------------

    async def login(self, email: str, password: str) -> User:
        if not email or not password:
            raise ValidationError("Email and password are required")
        await self._identity.sign_in(email, password)
        await self.wait_ready()
        if self._user is None:
            raise AuthError("Sign-in did not produce a session")
        return self._user

    async def register(self, username: str, email: str, password: str) -> User:
        """Create the identity, then its profile document.

        The two writes are not atomic: if the profile write fails the
        identity still exists and WriteError propagates.
        """
        username = username.strip()
        if not username or not email or not password:
            raise ValidationError("Username, email and password are required")
        record = await self._identity.sign_up(email, password)
        await self._accessor.create_profile(record.uid, username, email)
        await self.refresh()
        if self._user is None:
            raise AuthError("Registration did not produce a session")
        return self._user

    async def logout(self) -> None:
        await self._identity.sign_out()
        await self.wait_ready()

    async def update_user(self, patch: dict[str, Any]) -> User:
        """Write profile fields and merge them into the current user."""
        unknown = set(patch) - PROFILE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown profile fields: {sorted(unknown)}")
        if "username" in patch and not str(patch["username"] or "").strip():
            raise ValidationError("Username cannot be empty")
        uid = self.uid

        try:
            await self._accessor.update_profile(uid, patch)
        except NotFoundError:
            # Profile document was never written (fallback identity)
            current = self._user
            await self._accessor.create_profile(uid, current.username, current.email)
            await self._accessor.update_profile(uid, patch)

        self._user = self._user.model_copy(update=patch)
        await self.bus.emit(Event(name=PROFILE_UPDATED, payload={"uid": uid, "fields": sorted(patch)}, source="session"))
        return self._user
