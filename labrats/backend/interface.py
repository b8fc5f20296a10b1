from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass(frozen=True)
class AuthUser:
    """A signed-in account as reported by the auth provider."""

    uid: str
    email: str
    id_token: str = ""
    refresh_token: str = ""

    def public(self) -> dict:
        return {"uid": self.uid, "email": self.email}


OnValue = Callable[[Optional[Any]], None]
OnError = Callable[[BaseException], None]


class Subscription(ABC):
    @abstractmethod
    def close(self) -> None:
        raise NotImplementedError

    @property
    @abstractmethod
    def active(self) -> bool:
        raise NotImplementedError


class AuthProvider(ABC):
    """
    Hosted authentication boundary.

    Failures raise AuthProviderError carrying the provider's message verbatim.
    """

    name: str = "base"

    @abstractmethod
    def create_account(self, email: str, password: str) -> AuthUser:
        raise NotImplementedError

    @abstractmethod
    def authenticate(self, email: str, password: str) -> AuthUser:
        raise NotImplementedError

    @abstractmethod
    def refresh(self, user: AuthUser) -> AuthUser:
        raise NotImplementedError

    @abstractmethod
    def sign_out(self, user: AuthUser) -> None:
        raise NotImplementedError


class DataStore(ABC):
    """
    Hosted realtime database boundary.

    `subscribe` delivers the full value at `path` (or None) on every change and
    reports failures of the subscription itself on the error channel. It never retries.
    """

    name: str = "base"

    @abstractmethod
    def set_value(self, path: str, value: Any, *, token: str = "") -> None:
        raise NotImplementedError

    @abstractmethod
    def subscribe(self, path: str, on_value: OnValue, on_error: OnError, *, token: str = "") -> Subscription:
        raise NotImplementedError


def user_profile_path(uid: str) -> str:
    return f"Users/{uid}/Profile"


def user_labs_path(uid: str) -> str:
    return f"Users/{uid}/Labs"
