from __future__ import annotations

from enum import Enum
from typing import Optional

from labrats.backend.interface import AuthUser
from labrats.core.logger import get_logger


logger = get_logger("session")


class SessionState(str, Enum):
    SIGNED_OUT = "SIGNED_OUT"
    SIGNED_IN = "SIGNED_IN"


class Route(str, Enum):
    LOGIN = "/"
    DASHBOARD = "/dashboard"


LOGIN_PATHS = {"/", "/index.html"}
DASHBOARD_PATHS = {"/dashboard", "/dashboard.html"}


class SessionGate:
    """
    Page access control driven by auth-state notifications.

    Signed-in users are sent away from the login page, signed-out users away from
    the dashboard. Redirects are full-page navigations.
    """

    def __init__(self, user: Optional[AuthUser] = None):
        self._user = user
        self._state = SessionState.SIGNED_IN if user is not None else SessionState.SIGNED_OUT

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def user(self) -> Optional[AuthUser]:
        return self._user

    def on_auth_state_changed(self, user: Optional[AuthUser]) -> SessionState:
        new_state = SessionState.SIGNED_IN if user is not None else SessionState.SIGNED_OUT
        if new_state != self._state:
            if user is not None:
                logger.info("User is signed in: %s", user.uid)
            else:
                logger.info("User is signed out")
        self._user = user
        self._state = new_state
        return self._state

    def redirect_for(self, path: str) -> Optional[str]:
        if self._state == SessionState.SIGNED_IN and path in LOGIN_PATHS:
            return Route.DASHBOARD.value
        if self._state == SessionState.SIGNED_OUT and path in DASHBOARD_PATHS:
            return Route.LOGIN.value
        return None
