from __future__ import annotations

import json

from labrats.core.error_reporter import ErrorReporter, ErrorReporterConfig, normalize_exception
from labrats.core.errors import AuthProviderError, PasswordMismatchError
from labrats.core.events import EventLogger


def test_unknown_exception_normalized_and_redacted(tmp_path):
    p = tmp_path / "errors.jsonl"
    r = ErrorReporter(path=str(p))
    try:
        raise RuntimeError("boom")
    except Exception as e:  # noqa: BLE001
        err = r.report_exception(e, trace_id="t1", subsystem="web", context={"api_key": "SECRET", "x": 1})
        assert err.code == "internal_error"
    obj = json.loads(p.read_text(encoding="utf-8").splitlines()[-1])
    assert obj["trace_id"] == "t1"
    assert obj["subsystem"] == "web"
    assert "SECRET" not in json.dumps(obj)
    assert "***REDACTED***" in json.dumps(obj)
    assert "internal_context" not in obj


def test_tracebacks_only_when_enabled(tmp_path):
    p = tmp_path / "errors.jsonl"
    r = ErrorReporter(path=str(p), cfg=ErrorReporterConfig(include_tracebacks=True))
    try:
        raise RuntimeError("boom")
    except Exception as e:  # noqa: BLE001
        r.report_exception(e, trace_id="t1", subsystem="web")
    obj = json.loads(p.read_text(encoding="utf-8").splitlines()[-1])
    assert "RuntimeError" in obj["internal_context"]["traceback"]


def test_subsystem_mapping():
    assert normalize_exception(RuntimeError("x"), subsystem="auth", context={}).code == "auth_provider_error"
    assert normalize_exception(RuntimeError("x"), subsystem="dashboard", context={}).code == "data_store_error"
    assert normalize_exception(ValueError("bad"), subsystem="web", context={}).code == "validation_error"


def test_library_errors_pass_through_with_context():
    err = AuthProviderError("EMAIL_EXISTS", provider_code="EMAIL_EXISTS")
    out = normalize_exception(err, subsystem="auth", context={"email": "rat@lab.io"})
    assert out is err
    assert out.context["email"] == "rat@lab.io"
    assert PasswordMismatchError().code == "password_mismatch"
    assert PasswordMismatchError().user_message == "Passwords do not match!"


def test_event_logger_redacts_secrets(tmp_path):
    p = tmp_path / "events.jsonl"
    EventLogger(str(p)).log("t1", "auth.sign_in.ok", {"uid": "u1", "password": "cheese", "nested": {"id_token": "abc"}})
    obj = json.loads(p.read_text(encoding="utf-8").splitlines()[-1])
    assert obj["event"] == "auth.sign_in.ok"
    assert obj["details"]["uid"] == "u1"
    assert obj["details"]["password"] == "***REDACTED***"
    assert obj["details"]["nested"]["id_token"] == "***REDACTED***"


def test_event_logger_masks_emails_and_token_like_keys(tmp_path):
    p = tmp_path / "events.jsonl"
    EventLogger(str(p)).log(
        "t1",
        "auth.sign_in.failed",
        {"email": "rat@lab.io", "provider_code": "INVALID_LOGIN_CREDENTIALS", "idToken": "abc", "attempts": [{"refreshToken": "r"}]},
    )
    details = json.loads(p.read_text(encoding="utf-8").splitlines()[-1])["details"]
    assert details["email"] == "r***@lab.io"
    assert details["provider_code"] == "INVALID_LOGIN_CREDENTIALS"
    assert details["idToken"] == "***REDACTED***"
    assert details["attempts"] == [{"refreshToken": "***REDACTED***"}]
