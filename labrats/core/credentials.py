from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from labrats.backend.interface import AuthProvider, AuthUser, DataStore, user_profile_path
from labrats.core.error_reporter import ErrorReporter
from labrats.core.errors import AuthProviderError, PasswordMismatchError, ProfileWriteError
from labrats.core.events import EventLogger
from labrats.core.logger import get_logger
from labrats.core.session import Route


logger = get_logger("auth")


@dataclass(frozen=True)
class FormOutcome:
    ok: bool
    alert: Optional[str] = None
    user: Optional[AuthUser] = None
    redirect: Optional[str] = None


class CredentialService:
    """
    Sign in / sign up / sign out against the auth provider.

    Provider errors come back as a blocking alert with the provider's message
    verbatim. The profile write after sign-up is best effort: a failure is logged
    and the new account is still usable.
    """

    def __init__(
        self,
        auth: AuthProvider,
        store: DataStore,
        *,
        event_logger: Optional[EventLogger] = None,
        error_reporter: Optional[ErrorReporter] = None,
    ):
        self.auth = auth
        self.store = store
        self.event_logger = event_logger
        self.error_reporter = error_reporter

    def _event(self, trace_id: str, event: str, details: dict) -> None:
        if self.event_logger is not None:
            self.event_logger.log(trace_id, event, details)

    def sign_in(self, email: str, password: str, *, trace_id: str = "auth") -> FormOutcome:
        try:
            user = self.auth.authenticate(email, password)
        except AuthProviderError as e:
            logger.error("Login Error: %s %s", e.provider_code, e.user_message)
            self._event(trace_id, "auth.sign_in.failed", {"email": email, "provider_code": e.provider_code})
            return FormOutcome(ok=False, alert=f"Login Error: {e.user_message}")
        logger.info("Logged in: %s", user.uid)
        self._event(trace_id, "auth.sign_in.ok", {"uid": user.uid})
        return FormOutcome(ok=True, user=user, redirect=Route.DASHBOARD.value)

    def sign_up(self, email: str, password: str, confirm_password: Optional[str] = None, *, trace_id: str = "auth") -> FormOutcome:
        if confirm_password and password != confirm_password:
            err = PasswordMismatchError()
            self._event(trace_id, "auth.sign_up.password_mismatch", {"email": email})
            return FormOutcome(ok=False, alert=err.user_message)

        try:
            user = self.auth.create_account(email, password)
        except AuthProviderError as e:
            logger.error("Signup Error: %s %s", e.provider_code, e.user_message)
            self._event(trace_id, "auth.sign_up.failed", {"email": email, "provider_code": e.provider_code})
            return FormOutcome(ok=False, alert=f"Signup Error: {e.user_message}")

        logger.info("Signed up: %s", user.uid)
        self._event(trace_id, "auth.sign_up.ok", {"uid": user.uid})
        self._write_profile(user, email, trace_id=trace_id)
        return FormOutcome(ok=True, user=user, redirect=Route.DASHBOARD.value)

    def _write_profile(self, user: AuthUser, email: str, *, trace_id: str) -> bool:
        path = user_profile_path(user.uid)
        try:
            self.store.set_value(path, {"Email": email}, token=user.id_token)
        except Exception as e:  # noqa: BLE001
            logger.error("Database Error: %s", e)
            if self.error_reporter is not None:
                self.error_reporter.report_exception(
                    ProfileWriteError(path=path, error=str(e)),
                    trace_id=trace_id,
                    subsystem="database",
                )
            self._event(trace_id, "auth.profile_write.failed", {"uid": user.uid, "path": path})
            return False
        logger.info("User profile created in DB")
        return True

    def sign_out(self, user: Optional[AuthUser], *, trace_id: str = "auth") -> FormOutcome:
        if user is not None:
            try:
                self.auth.sign_out(user)
            except Exception as e:  # noqa: BLE001
                logger.error("Sign-out error: %s", e)
        logger.info("Sign-out successful.")
        self._event(trace_id, "auth.sign_out", {"uid": user.uid if user else None})
        return FormOutcome(ok=True, redirect=Route.LOGIN.value)
