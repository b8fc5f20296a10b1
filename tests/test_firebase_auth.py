from __future__ import annotations

import pytest
import requests

from labrats.backend.firebase_auth import FirebaseAuth
from labrats.backend.interface import AuthUser
from labrats.core.errors import AuthProviderError

from .helpers.fakes import FakeHttp, FakeResponse


def _auth(http: FakeHttp, api_key: str = "k-123") -> FirebaseAuth:
    return FirebaseAuth(api_key=api_key, timeout_seconds=3.0, session=http)


def test_sign_up_posts_to_identity_toolkit():
    http = FakeHttp()
    http.queue("post", FakeResponse(200, {"localId": "uid1", "email": "rat@lab.io", "idToken": "id", "refreshToken": "rt"}))
    user = _auth(http).create_account("rat@lab.io", "cheese123")
    assert user == AuthUser(uid="uid1", email="rat@lab.io", id_token="id", refresh_token="rt")
    req = http.requests[0]
    assert req["url"].endswith("/accounts:signUp")
    assert req["params"] == {"key": "k-123"}
    assert req["json"]["returnSecureToken"] is True
    assert req["timeout"] == 3.0


def test_sign_in_uses_sign_in_with_password():
    http = FakeHttp()
    http.queue("post", FakeResponse(200, {"localId": "uid1", "idToken": "id"}))
    user = _auth(http).authenticate("rat@lab.io", "cheese123")
    assert user.uid == "uid1"
    assert user.email == "rat@lab.io"
    assert http.requests[0]["url"].endswith("/accounts:signInWithPassword")


def test_provider_error_message_passed_through():
    http = FakeHttp()
    http.queue("post", FakeResponse(400, {"error": {"code": 400, "message": "WEAK_PASSWORD : Password should be at least 6 characters"}}))
    with pytest.raises(AuthProviderError) as ei:
        _auth(http).create_account("rat@lab.io", "1")
    assert ei.value.user_message == "WEAK_PASSWORD : Password should be at least 6 characters"
    assert ei.value.provider_code == "WEAK_PASSWORD"


def test_non_json_error_body():
    http = FakeHttp()
    http.queue("post", FakeResponse(502, None, text="bad gateway"))
    with pytest.raises(AuthProviderError) as ei:
        _auth(http).authenticate("rat@lab.io", "x")
    assert ei.value.user_message == "HTTP 502"


def test_network_failure_is_a_provider_error():
    http = FakeHttp()
    http.queue("post", requests.ConnectionError("no route"))
    with pytest.raises(AuthProviderError) as ei:
        _auth(http).authenticate("rat@lab.io", "x")
    assert ei.value.provider_code == "NETWORK_ERROR"


def test_missing_api_key_fails_without_request():
    http = FakeHttp()
    with pytest.raises(AuthProviderError) as ei:
        _auth(http, api_key="").authenticate("rat@lab.io", "x")
    assert ei.value.provider_code == "CONFIGURATION_NOT_FOUND"
    assert http.requests == []


def test_refresh_exchanges_refresh_token():
    http = FakeHttp()
    http.queue("post", FakeResponse(200, {"user_id": "uid1", "id_token": "new-id", "refresh_token": "new-rt"}))
    user = _auth(http).refresh(AuthUser(uid="uid1", email="rat@lab.io", id_token="old", refresh_token="rt"))
    assert user.id_token == "new-id"
    assert user.refresh_token == "new-rt"
    req = http.requests[0]
    assert req["url"].endswith("/token")
    assert req["data"] == {"grant_type": "refresh_token", "refresh_token": "rt"}


def test_refresh_without_token():
    with pytest.raises(AuthProviderError):
        _auth(FakeHttp()).refresh(AuthUser(uid="u", email="e"))
