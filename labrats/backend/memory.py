from __future__ import annotations

import copy
import secrets
import threading
from typing import Any, Dict, List, Optional

from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from labrats.backend.firebase_db import apply_put, path_segments
from labrats.backend.interface import AuthProvider, AuthUser, DataStore, OnError, OnValue, Subscription
from labrats.core.errors import AuthProviderError, DataStoreError


def _hash_password(password: str, salt: bytes, n: int = 2**14, r: int = 8, p: int = 1) -> bytes:
    kdf = Scrypt(salt=salt, length=32, n=n, r=r, p=p)
    return kdf.derive(password.encode("utf-8"))


class InMemoryAuth(AuthProvider):
    """
    Local stand-in for the hosted auth provider (offline mode and tests).

    Error messages mirror the provider's own codes so the UI behaves the same.
    """

    name = "memory"

    def __init__(self, *, min_password_length: int = 6):
        self.min_password_length = int(min_password_length)
        self._lock = threading.Lock()
        self._accounts: Dict[str, Dict[str, Any]] = {}

    def create_account(self, email: str, password: str) -> AuthUser:
        email_norm = str(email or "").strip().lower()
        if "@" not in email_norm:
            raise AuthProviderError("INVALID_EMAIL", provider_code="INVALID_EMAIL")
        if len(password or "") < self.min_password_length:
            raise AuthProviderError(
                f"WEAK_PASSWORD : Password should be at least {self.min_password_length} characters",
                provider_code="WEAK_PASSWORD",
            )
        salt = secrets.token_bytes(16)
        digest = _hash_password(password, salt)
        with self._lock:
            if email_norm in self._accounts:
                raise AuthProviderError("EMAIL_EXISTS", provider_code="EMAIL_EXISTS")
            uid = secrets.token_hex(14)
            self._accounts[email_norm] = {"uid": uid, "salt": salt, "hash": digest}
        return self._issue(uid, email_norm)

    def authenticate(self, email: str, password: str) -> AuthUser:
        email_norm = str(email or "").strip().lower()
        with self._lock:
            acct = self._accounts.get(email_norm)
        if acct is None or not secrets.compare_digest(acct["hash"], _hash_password(password or "", acct["salt"])):
            raise AuthProviderError("INVALID_LOGIN_CREDENTIALS", provider_code="INVALID_LOGIN_CREDENTIALS")
        return self._issue(acct["uid"], email_norm)

    def refresh(self, user: AuthUser) -> AuthUser:
        return self._issue(user.uid, user.email)

    def sign_out(self, user: AuthUser) -> None:
        return None

    @staticmethod
    def _issue(uid: str, email: str) -> AuthUser:
        return AuthUser(uid=uid, email=email, id_token=secrets.token_urlsafe(24), refresh_token=secrets.token_urlsafe(24))


class _MemorySubscription(Subscription):
    def __init__(self, owner: "InMemoryDatabase", path: str, on_value: OnValue, on_error: OnError):
        self.owner = owner
        self.path = path
        self.on_value = on_value
        self.on_error = on_error
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def close(self) -> None:
        self._active = False
        self.owner._remove(self)


class InMemoryDatabase(DataStore):
    """
    Local stand-in for the realtime database.

    Writes notify every subscriber whose path overlaps the written path, synchronously
    and on the writer's thread.
    """

    name = "memory"

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._lock = threading.RLock()
        self._tree: Any = copy.deepcopy(initial) if initial else None
        self._subs: List[_MemorySubscription] = []

    def get_value(self, path: str) -> Any:
        with self._lock:
            node = self._tree
            for seg in path_segments(path):
                if not isinstance(node, dict):
                    return None
                node = node.get(seg)
            return copy.deepcopy(node)

    def set_value(self, path: str, value: Any, *, token: str = "") -> None:
        with self._lock:
            self._tree = apply_put(self._tree, path, value)
            subs = [s for s in self._subs if _overlaps(s.path, path)]
        for s in subs:
            self._deliver(s)

    def subscribe(self, path: str, on_value: OnValue, on_error: OnError, *, token: str = "") -> Subscription:
        sub = _MemorySubscription(self, path, on_value, on_error)
        with self._lock:
            self._subs.append(sub)
        self._deliver(sub)
        return sub

    def fail_subscribers(self, path: str, reason: str = "permission_denied") -> None:
        """Push an error to every listener under `path` and drop them (like a server-side cancel)."""
        with self._lock:
            subs = [s for s in self._subs if _overlaps(s.path, path)]
        for s in subs:
            s.close()
            s.on_error(DataStoreError("Error loading data.", reason=reason, path=s.path))

    def _deliver(self, sub: _MemorySubscription) -> None:
        if sub.active:
            sub.on_value(self.get_value(sub.path))

    def _remove(self, sub: _MemorySubscription) -> None:
        with self._lock:
            self._subs = [s for s in self._subs if s is not sub]


def _overlaps(a: str, b: str) -> bool:
    sa, sb = path_segments(a), path_segments(b)
    n = min(len(sa), len(sb))
    return sa[:n] == sb[:n]
