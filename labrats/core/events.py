from __future__ import annotations

import json
import os
import threading
import time
from typing import Any, Dict, Optional


REDACTED = "***REDACTED***"

# any key containing one of these is secret (password, confirm_password, id_token, idToken, ...)
SECRET_MARKERS = ("password", "token", "secret", "api_key", "apikey", "authorization", "cookie")
SECRET_KEYS = {"key", "session"}
EMAIL_KEYS = {"email"}


def _is_secret(key: str) -> bool:
    k = key.lower()
    return k in SECRET_KEYS or any(m in k for m in SECRET_MARKERS)


def mask_email(value: Any) -> Any:
    """rat@lab.io -> r***@lab.io; enough to tell accounts apart in a trail."""
    if not isinstance(value, str) or "@" not in value:
        return value
    local, _, domain = value.partition("@")
    return f"{local[:1]}***@{domain}"


def redact(obj: Any) -> Any:
    if isinstance(obj, dict):
        out: Dict[str, Any] = {}
        for k, v in obj.items():
            key = str(k)
            if _is_secret(key):
                out[k] = REDACTED
            elif key.lower() in EMAIL_KEYS:
                out[k] = mask_email(v)
            else:
                out[k] = redact(v)
        return out
    if isinstance(obj, (list, tuple)):
        return [redact(x) for x in obj]
    return obj


class EventLogger:
    """
    Append-only JSONL trail of what happened: sign-ins, redirects, subscription
    failures, throttling. One redacted object per line, keyed by trace id.
    """

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()

    def log(self, trace_id: str, event_type: str, details: Optional[Dict[str, Any]] = None) -> None:
        entry = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "trace_id": trace_id,
            "event": event_type,
            "details": redact(details or {}),
        }
        line = json.dumps(entry, ensure_ascii=False, default=str)
        with self._lock:
            os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
