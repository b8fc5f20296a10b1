from __future__ import annotations

import time
import uuid
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse, RedirectResponse

from labrats.core.events import EventLogger
from labrats.core.logger import get_logger
from labrats.core.session import DASHBOARD_PATHS, LOGIN_PATHS, SessionGate
from labrats.web.security.throttle import LoginThrottle
from labrats.web.security.sessions import SessionStore


logger = get_logger("web")

THROTTLED_PATHS = {"/v1/auth/login", "/v1/auth/signup"}


def _client_ip(request: Request) -> Optional[str]:
    return getattr(getattr(request, "client", None), "host", None)


class SessionGateMiddleware:
    """
    Request chain (order matters):
    1) trace_id + request event
    2) session cookie -> request.state.session
    3) credential endpoint throttling per client IP
    4) page redirects by session state (login <-> dashboard)
    """

    def __init__(self, *, sessions: SessionStore, cookie_name: str, event_logger: EventLogger, throttle: LoginThrottle):
        self.sessions = sessions
        self.cookie_name = cookie_name
        self.event_logger = event_logger
        self.throttle = throttle

    async def __call__(self, request: Request, call_next):  # noqa: ANN001
        trace_id = uuid.uuid4().hex
        request.state.trace_id = trace_id
        ip = _client_ip(request)
        path = request.url.path
        method = request.method
        t0 = time.time()

        sess = self.sessions.resolve(request.cookies.get(self.cookie_name))
        request.state.session = sess
        self.event_logger.log(trace_id, "web.request", {"path": path, "method": method, "client_host": ip, "signed_in": sess is not None})

        if method == "POST" and path in THROTTLED_PATHS:
            wait = self.throttle.attempt(ip or "unknown")
            if wait > 0:
                self.event_logger.log(trace_id, "web.rate_limited", {"path": path, "client_host": ip, "retry_after": round(wait, 1)})
                return JSONResponse(
                    status_code=429,
                    content={"ok": False, "alert": "Too many attempts. Try again shortly.", "code": "rate_limited"},
                    headers={"Retry-After": LoginThrottle.retry_after_header(wait)},
                )

        if method == "GET" and (path in LOGIN_PATHS or path in DASHBOARD_PATHS):
            gate = SessionGate()
            gate.on_auth_state_changed(sess.user if sess is not None else None)
            target = gate.redirect_for(path)
            if target is not None:
                self.event_logger.log(trace_id, "web.redirect", {"from": path, "to": target})
                return RedirectResponse(url=target, status_code=303)

        resp = await call_next(request)
        logger.debug("%s %s -> %s (%.1f ms)", method, path, resp.status_code, (time.time() - t0) * 1000.0)
        return resp
