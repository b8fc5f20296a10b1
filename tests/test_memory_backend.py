from __future__ import annotations

import pytest

from labrats.backend.memory import InMemoryAuth, InMemoryDatabase
from labrats.core.errors import AuthProviderError, DataStoreError


def test_accounts_are_case_insensitive_by_email():
    auth = InMemoryAuth()
    user = auth.create_account("Rat@Lab.io", "cheese123")
    again = auth.authenticate("rat@lab.io", "cheese123")
    assert again.uid == user.uid
    assert again.id_token != user.id_token


@pytest.mark.parametrize(
    "email,password,code",
    [
        ("not-an-email", "cheese123", "INVALID_EMAIL"),
        ("rat@lab.io", "123", "WEAK_PASSWORD"),
    ],
)
def test_create_account_validation(email, password, code):
    with pytest.raises(AuthProviderError) as ei:
        InMemoryAuth().create_account(email, password)
    assert ei.value.provider_code == code


def test_wrong_password_and_unknown_account_look_the_same():
    auth = InMemoryAuth()
    auth.create_account("rat@lab.io", "cheese123")
    for email, pw in (("rat@lab.io", "nope"), ("ghost@lab.io", "cheese123")):
        with pytest.raises(AuthProviderError) as ei:
            auth.authenticate(email, pw)
        assert ei.value.user_message == "INVALID_LOGIN_CREDENTIALS"


def test_passwords_are_stored_as_salted_scrypt_digests():
    import hashlib

    from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

    auth = InMemoryAuth()
    auth.create_account("a@lab.io", "cheese123")
    auth.create_account("b@lab.io", "cheese123")
    a = auth._accounts["a@lab.io"]
    b = auth._accounts["b@lab.io"]
    assert len(a["salt"]) == 16
    assert a["salt"] != b["salt"]
    assert a["hash"] != b["hash"]
    expected = Scrypt(salt=a["salt"], length=32, n=2**14, r=8, p=1).derive(b"cheese123")
    assert a["hash"] == expected
    assert a["hash"] != hashlib.sha256(a["salt"] + b"cheese123").digest()
    assert b"cheese123" not in a["hash"]


def test_subscribe_delivers_current_value_then_changes():
    db = InMemoryDatabase()
    seen = []
    sub = db.subscribe("Users/u1/Labs", seen.append, lambda e: None)
    db.set_value("Users/u1/Labs/Drop", {"Time": 2})
    db.set_value("Users/u1/Profile", {"Email": "x"})
    assert seen == [None, {"Drop": {"Time": 2}}]
    sub.close()
    db.set_value("Users/u1/Labs/Drop", None)
    assert len(seen) == 2
    assert db.get_value("Users/u1/Labs/Drop") is None


def test_fail_subscribers_reports_and_drops():
    db = InMemoryDatabase()
    errors = []
    sub = db.subscribe("Users/u1/Labs", lambda v: None, errors.append)
    db.fail_subscribers("Users/u1")
    assert isinstance(errors[0], DataStoreError)
    assert not sub.active
