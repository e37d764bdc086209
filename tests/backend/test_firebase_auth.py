"""Tests for moir.backend.firebase_auth."""

from __future__ import annotations

import io
import json
import urllib.error
from unittest.mock import patch

import pytest

from moir.backend.firebase_auth import FirebaseAuthClient
from moir.core.exceptions import APIError, AuthError

URLOPEN = "moir.backend.firebase_auth.urllib.request.urlopen"


class _DummyResp:
    def __init__(self, payload: object):
        self._payload = json.dumps(payload).encode("utf-8")

    def read(self):
        return self._payload

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


def _auth_error(message: str, code: int = 400) -> urllib.error.HTTPError:
    return urllib.error.HTTPError(
        url="https://identitytoolkit.googleapis.com/v1/accounts:signInWithPassword",
        code=code,
        msg="Bad Request",
        hdrs=None,
        fp=io.BytesIO(json.dumps({"error": {"code": code, "message": message}}).encode("utf-8")),
    )


SIGN_IN_RESULT = {"localId": "uid1", "email": "asha@example.com", "displayName": "Asha", "idToken": "tok-1"}


def test_init_requires_api_key():
    with pytest.raises(ValueError):
        FirebaseAuthClient("")


class TestSignIn:
    async def test_sign_in(self):
        client = FirebaseAuthClient("api-key")
        with patch(URLOPEN, return_value=_DummyResp(SIGN_IN_RESULT)) as mock_urlopen:
            record = await client.sign_in("asha@example.com", "pw")

        assert record.uid == "uid1"
        assert record.display_name == "Asha"
        assert client.current == record
        assert client.id_token() == "tok-1"

        req = mock_urlopen.call_args[0][0]
        assert "accounts:signInWithPassword?key=api-key" in req.full_url
        assert json.loads(req.data) == {"email": "asha@example.com", "password": "pw", "returnSecureToken": True}

    @pytest.mark.parametrize("code", ["INVALID_LOGIN_CREDENTIALS", "EMAIL_NOT_FOUND", "INVALID_PASSWORD"])
    async def test_bad_credentials(self, code):
        client = FirebaseAuthClient("api-key")
        with patch(URLOPEN, side_effect=_auth_error(code)):
            with pytest.raises(AuthError, match="Invalid email or password"):
                await client.sign_in("asha@example.com", "wrong")
        assert client.current is None
        assert client.id_token() is None

    async def test_unparseable_error_is_api_error(self):
        err = urllib.error.HTTPError("https://x", 503, "Unavailable", None, io.BytesIO(b"<html>down</html>"))
        with patch(URLOPEN, side_effect=err):
            with pytest.raises(APIError, match="503"):
                await FirebaseAuthClient("api-key").sign_in("a@b.c", "pw")

    async def test_network_error(self):
        with patch(URLOPEN, side_effect=urllib.error.URLError("offline")):
            with pytest.raises(APIError, match="offline"):
                await FirebaseAuthClient("api-key").sign_in("a@b.c", "pw")


class TestSignUp:
    async def test_sign_up(self):
        client = FirebaseAuthClient("api-key")
        result = {"localId": "uid2", "email": "new@example.com", "idToken": "tok-2"}
        with patch(URLOPEN, return_value=_DummyResp(result)) as mock_urlopen:
            record = await client.sign_up("new@example.com", "secret1")
        assert record.uid == "uid2"
        assert record.display_name is None
        assert "accounts:signUp" in mock_urlopen.call_args[0][0].full_url

    async def test_duplicate_email(self):
        with patch(URLOPEN, side_effect=_auth_error("EMAIL_EXISTS")):
            with pytest.raises(AuthError, match="Email already in use"):
                await FirebaseAuthClient("api-key").sign_up("asha@example.com", "secret1")

    async def test_weak_password_message_with_suffix(self):
        err = _auth_error("WEAK_PASSWORD : Password should be at least 6 characters")
        with patch(URLOPEN, side_effect=err):
            with pytest.raises(AuthError, match="at least 6"):
                await FirebaseAuthClient("api-key").sign_up("new@example.com", "123")


class TestListeners:
    async def test_subscribe_sign_in_sign_out(self):
        client = FirebaseAuthClient("api-key")
        seen = []
        unsubscribe = client.subscribe(seen.append)
        assert seen == [None]

        with patch(URLOPEN, return_value=_DummyResp(SIGN_IN_RESULT)):
            await client.sign_in("asha@example.com", "pw")
        await client.sign_out()
        assert [r.uid if r else None for r in seen] == [None, "uid1", None]

        unsubscribe()
        await client.sign_out()
        assert len(seen) == 3
