from __future__ import annotations

from labrats.backend.interface import AuthUser
from labrats.core.session import SessionGate, SessionState


USER = AuthUser(uid="u1", email="a@b.c")


def test_signed_out_user_is_sent_to_login():
    gate = SessionGate()
    assert gate.state == SessionState.SIGNED_OUT
    assert gate.redirect_for("/dashboard") == "/"
    assert gate.redirect_for("/dashboard.html") == "/"
    assert gate.redirect_for("/") is None


def test_signed_in_user_is_sent_to_dashboard():
    gate = SessionGate()
    assert gate.on_auth_state_changed(USER) == SessionState.SIGNED_IN
    assert gate.user == USER
    assert gate.redirect_for("/") == "/dashboard"
    assert gate.redirect_for("/index.html") == "/dashboard"
    assert gate.redirect_for("/dashboard") is None


def test_sign_out_notification_flips_state():
    gate = SessionGate(USER)
    gate.on_auth_state_changed(None)
    assert gate.state == SessionState.SIGNED_OUT
    assert gate.user is None
    assert gate.redirect_for("/dashboard") == "/"


def test_other_paths_never_redirect():
    assert SessionGate().redirect_for("/health") is None
    assert SessionGate(USER).redirect_for("/v1/dashboard") is None
