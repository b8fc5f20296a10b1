from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from labrats.backend.interface import AuthProvider, AuthUser
from labrats.core.errors import AuthProviderError


IDENTITY_TOOLKIT_URL = "https://identitytoolkit.googleapis.com/v1"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1"


def _provider_error(r: requests.Response) -> AuthProviderError:
    """Map an Identity Toolkit error body ({"error": {"message": ...}}) to AuthProviderError."""
    message = f"HTTP {r.status_code}"
    try:
        body = r.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        err = body.get("error")
        if isinstance(err, dict) and err.get("message"):
            message = str(err.get("message"))
        elif isinstance(err, str) and err:
            message = err
    # e.g. "WEAK_PASSWORD : Password should be at least 6 characters"
    code = message.split(":", 1)[0].strip() or "unknown"
    return AuthProviderError(message, provider_code=code, status=r.status_code)


@dataclass
class FirebaseAuth(AuthProvider):
    """Email/password accounts through the Firebase Auth REST API."""

    api_key: str
    timeout_seconds: float = 10.0
    identity_url: str = IDENTITY_TOOLKIT_URL
    token_url: str = SECURE_TOKEN_URL
    session: Optional[requests.Session] = None
    name: str = "firebase"

    def _http(self) -> requests.Session:
        if self.session is None:
            self.session = requests.Session()
        return self.session

    def _accounts(self, action: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        if not self.api_key:
            raise AuthProviderError("Firebase API key is not configured.", provider_code="CONFIGURATION_NOT_FOUND")
        url = f"{self.identity_url.rstrip('/')}/accounts:{action}"
        try:
            r = self._http().post(url, params={"key": self.api_key}, json=payload, timeout=self.timeout_seconds)
        except requests.RequestException as e:
            raise AuthProviderError(f"Network error: {e}", provider_code="NETWORK_ERROR") from e
        if r.status_code != 200:
            raise _provider_error(r)
        return r.json()

    @staticmethod
    def _user_from(data: Dict[str, Any], fallback_email: str) -> AuthUser:
        return AuthUser(
            uid=str(data.get("localId") or ""),
            email=str(data.get("email") or fallback_email),
            id_token=str(data.get("idToken") or ""),
            refresh_token=str(data.get("refreshToken") or ""),
        )

    def create_account(self, email: str, password: str) -> AuthUser:
        data = self._accounts("signUp", {"email": email, "password": password, "returnSecureToken": True})
        return self._user_from(data, email)

    def authenticate(self, email: str, password: str) -> AuthUser:
        data = self._accounts("signInWithPassword", {"email": email, "password": password, "returnSecureToken": True})
        return self._user_from(data, email)

    def refresh(self, user: AuthUser) -> AuthUser:
        if not user.refresh_token:
            raise AuthProviderError("No refresh token for this session.", provider_code="MISSING_REFRESH_TOKEN")
        url = f"{self.token_url.rstrip('/')}/token"
        try:
            r = self._http().post(
                url,
                params={"key": self.api_key},
                data={"grant_type": "refresh_token", "refresh_token": user.refresh_token},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as e:
            raise AuthProviderError(f"Network error: {e}", provider_code="NETWORK_ERROR") from e
        if r.status_code != 200:
            raise _provider_error(r)
        data = r.json()
        return AuthUser(
            uid=str(data.get("user_id") or user.uid),
            email=user.email,
            id_token=str(data.get("id_token") or ""),
            refresh_token=str(data.get("refresh_token") or user.refresh_token),
        )

    def sign_out(self, user: AuthUser) -> None:
        # Firebase sessions are client-held tokens; signing out means forgetting them.
        return None
