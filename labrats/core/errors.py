from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from labrats.core.events import redact


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class LabRatsError(Exception):
    code: str
    user_message: str
    severity: Severity = Severity.ERROR
    recoverable: bool = True
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.code)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": bool(self.recoverable),
            "context": redact(self.context or {}),
        }


# ---- Core types ----
class ConfigError(LabRatsError):
    def __init__(self, user_message: str = "Configuration error.", **ctx: Any):
        super().__init__("config_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


class ValidationError(LabRatsError):
    def __init__(self, user_message: str = "Invalid request.", **ctx: Any):
        super().__init__("validation_error", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class PasswordMismatchError(ValidationError):
    def __init__(self, user_message: str = "Passwords do not match!", **ctx: Any):
        super().__init__(user_message, **ctx)
        self.code = "password_mismatch"


class SessionRequiredError(LabRatsError):
    def __init__(self, user_message: str = "Sign in required.", **ctx: Any):
        super().__init__("session_required", user_message, severity=Severity.WARN, recoverable=True, context=ctx)


class RateLimitError(LabRatsError):
    def __init__(self, user_message: str = "Too many attempts. Try again shortly.", **ctx: Any):
        super().__init__("rate_limited", user_message, severity=Severity.WARN, recoverable=True, context=ctx)


# ---- Backend boundary ----
class AuthProviderError(LabRatsError):
    """
    Failure reported by the authentication provider.

    `provider_code` is the provider's own error identifier (e.g. EMAIL_EXISTS) and
    `user_message` is its message, passed through verbatim to the user.
    """

    def __init__(self, user_message: str, *, provider_code: Optional[str] = None, **ctx: Any):
        super().__init__("auth_provider_error", user_message, severity=Severity.WARN, recoverable=True, context=ctx)
        self.provider_code = provider_code or "unknown"


class DataStoreError(LabRatsError):
    def __init__(self, user_message: str = "Error loading data.", **ctx: Any):
        super().__init__("data_store_error", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


class ProfileWriteError(DataStoreError):
    def __init__(self, user_message: str = "Unable to save the user profile.", **ctx: Any):
        super().__init__(user_message, **ctx)
        self.code = "profile_write_error"
