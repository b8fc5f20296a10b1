from __future__ import annotations

import hashlib
import secrets
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from labrats.backend.interface import AuthUser
from labrats.companion.widget import CompanionWidget
from labrats.dashboard.modal import ExperimentModal


@dataclass
class BrowserSession:
    """
    One signed-in browser. Holds the UI state that belongs to that page only
    (detail modal, companion clip); the labs snapshot is shared per user.
    """

    session_id: str
    user: AuthUser
    created_at: float
    last_seen_at: float
    modal: ExperimentModal = field(default_factory=ExperimentModal)
    companion: Optional[CompanionWidget] = None


SessionListener = Callable[[BrowserSession, bool], None]


class SessionStore:
    """
    In-memory registry of browser sessions keyed by opaque cookie tokens.

    Only SHA-256 hashes of tokens are kept. Listeners are told about every
    sign-in (True) and sign-out / expiry (False).
    """

    def __init__(
        self,
        *,
        idle_timeout_seconds: int = 3600,
        companion_factory: Optional[Callable[[], CompanionWidget]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.idle_timeout_seconds = int(idle_timeout_seconds)
        self._companion_factory = companion_factory
        self._clock = clock
        self._lock = threading.Lock()
        self._sessions: Dict[str, BrowserSession] = {}
        self._listeners: List[SessionListener] = []

    @staticmethod
    def _hash_token(token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    def subscribe(self, listener: SessionListener) -> None:
        if not callable(listener):
            raise ValueError("listener must be callable")
        with self._lock:
            self._listeners.append(listener)

    def _notify(self, sess: BrowserSession, signed_in: bool) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for fn in listeners:
            fn(sess, signed_in)

    def create(self, user: AuthUser) -> Tuple[str, BrowserSession]:
        token = secrets.token_urlsafe(32)
        now = self._clock()
        sess = BrowserSession(
            session_id=secrets.token_hex(8),
            user=user,
            created_at=now,
            last_seen_at=now,
            companion=self._companion_factory() if self._companion_factory else None,
        )
        with self._lock:
            self._sessions[self._hash_token(token)] = sess
        self._notify(sess, True)
        return token, sess

    def resolve(self, token: Optional[str]) -> Optional[BrowserSession]:
        if not token:
            return None
        h = self._hash_token(token)
        now = self._clock()
        expired: Optional[BrowserSession] = None
        with self._lock:
            sess = self._sessions.get(h)
            if sess is None:
                return None
            if now - sess.last_seen_at > self.idle_timeout_seconds:
                expired = self._sessions.pop(h)
            else:
                sess.last_seen_at = now
        if expired is not None:
            self._notify(expired, False)
            return None
        return sess

    def revoke(self, token: Optional[str]) -> Optional[BrowserSession]:
        if not token:
            return None
        with self._lock:
            sess = self._sessions.pop(self._hash_token(token), None)
        if sess is not None:
            self._notify(sess, False)
        return sess

    def count_for(self, uid: str) -> int:
        with self._lock:
            return sum(1 for s in self._sessions.values() if s.user.uid == uid)

    def clear(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions = {}
        for s in sessions:
            self._notify(s, False)
