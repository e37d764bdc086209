"""Firebase Authentication over the Identity Toolkit REST API.

Email/password sign-in and sign-up only. The REST API has no push
channel, so identity-change notifications fire locally whenever this
client signs in or out.
"""

from __future__ import annotations

import json
import urllib.error
import urllib.parse
import urllib.request
from collections.abc import Callable
from typing import Any

from loguru import logger

from moir.core.exceptions import APIError, AuthError
from moir.core.utils.async_helpers import run_blocking

from .base import AuthRecord, IdentityListener

DEFAULT_API_BASE = "https://identitytoolkit.googleapis.com/v1"

# Identity Toolkit error codes mapped to messages fit for a login form
_AUTH_MESSAGES = {
    "EMAIL_NOT_FOUND": "Invalid email or password",
    "INVALID_PASSWORD": "Invalid email or password",
    "INVALID_LOGIN_CREDENTIALS": "Invalid email or password",
    "USER_DISABLED": "This account has been disabled",
    "EMAIL_EXISTS": "Email already in use",
    "INVALID_EMAIL": "Invalid email address",
    "WEAK_PASSWORD": "Password should be at least 6 characters",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts, try again later",
}


def _auth_message(body: str) -> str | None:
    try:
        code = json.loads(body)["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return None
    # WEAK_PASSWORD comes back as "WEAK_PASSWORD : Password should be at least 6 characters"
    code = str(code).split(" ", 1)[0]
    return _AUTH_MESSAGES.get(code, code)


class FirebaseAuthClient:
    """IdentityProvider implementation backed by Firebase Authentication."""

    def __init__(self, api_key: str, *, timeout: int = 20, api_base: str = DEFAULT_API_BASE):
        if not api_key:
            raise ValueError("api_key is required")
        self.api_key = api_key
        self.timeout = timeout
        self.api_base = api_base.rstrip("/")
        self._current: AuthRecord | None = None
        self._listeners: list[IdentityListener] = []

    @property
    def current(self) -> AuthRecord | None:
        return self._current

    def id_token(self) -> str | None:
        """Bearer token for the document store, or None when signed out."""
        return self._current.id_token if self._current else None

    def _request(self, endpoint: str, payload: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.api_base}/{endpoint}?{urllib.parse.urlencode({'key': self.api_key})}"
        req = urllib.request.Request(
            url=url,
            method="POST",
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                raw = resp.read()
        except urllib.error.HTTPError as e:
            body = e.read().decode("utf-8", errors="ignore") if hasattr(e, "read") else ""
            message = _auth_message(body)
            if message:
                raise AuthError(message) from e
            raise APIError(f"Identity Toolkit {e.code}: {body or e.reason}") from e
        except urllib.error.URLError as e:
            raise APIError(f"Identity Toolkit request failed: {e}") from e
        return json.loads(raw.decode("utf-8", errors="ignore")) if raw else {}

    @staticmethod
    def _record(result: dict[str, Any]) -> AuthRecord:
        return AuthRecord(
            uid=result["localId"],
            email=result.get("email", ""),
            display_name=result.get("displayName") or None,
            id_token=result.get("idToken", ""),
        )

    async def sign_in(self, email: str, password: str) -> AuthRecord:
        result = await run_blocking(
            self._request,
            "accounts:signInWithPassword",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        record = self._record(result)
        logger.info(f"Signed in as {record.email}")
        self._set_current(record)
        return record

    async def sign_up(self, email: str, password: str) -> AuthRecord:
        result = await run_blocking(
            self._request,
            "accounts:signUp",
            {"email": email, "password": password, "returnSecureToken": True},
        )
        record = self._record(result)
        logger.info(f"Created account {record.email}")
        self._set_current(record)
        return record

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
