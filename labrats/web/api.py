from __future__ import annotations

import asyncio
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles

from labrats.backend.interface import AuthProvider, DataStore
from labrats.companion.widget import CompanionWidget
from labrats.core.config.models import AppConfig
from labrats.core.credentials import CredentialService, FormOutcome
from labrats.core.error_reporter import ErrorReporter
from labrats.core.errors import LabRatsError, SessionRequiredError
from labrats.core.events import EventLogger
from labrats.core.logger import get_logger
from labrats.core.session import Route
from labrats.dashboard.controller import DashboardController, DashboardHub
from labrats.web.middleware import SessionGateMiddleware
from labrats.web.models import (
    AuthResponse,
    CompanionEndedRequest,
    CompanionEndedResponse,
    LabSelectRequest,
    LoginRequest,
    ModalCloseRequest,
    SignupRequest,
)
from labrats.web.pages import render_dashboard_page, render_login_page
from labrats.web.security.throttle import LoginThrottle
from labrats.web.security.sessions import BrowserSession, SessionStore
from labrats.web.stream import dashboard_events


logger = get_logger("web")

STATUS_BY_CODE = {
    "session_required": 401,
    "validation_error": 400,
    "password_mismatch": 400,
    "rate_limited": 429,
    "auth_provider_error": 401,
    "data_store_error": 503,
}


def _trace_id(request: Request) -> str:
    return getattr(getattr(request, "state", None), "trace_id", "web")


def _require_session(request: Request) -> BrowserSession:
    sess = getattr(getattr(request, "state", None), "session", None)
    if sess is None:
        raise SessionRequiredError()
    return sess


def create_app(
    *,
    cfg: AppConfig,
    auth: AuthProvider,
    store: DataStore,
    event_logger: EventLogger,
    error_reporter: ErrorReporter,
    sessions: Optional[SessionStore] = None,
    hub: Optional[DashboardHub] = None,
    throttle: Optional[LoginThrottle] = None,
) -> FastAPI:
    web_cfg = cfg.web
    cookie_name = web_cfg.session_cookie_name

    credentials = CredentialService(auth, store, event_logger=event_logger, error_reporter=error_reporter)
    if sessions is None:
        sessions = SessionStore(
            idle_timeout_seconds=web_cfg.session_idle_timeout_seconds,
            companion_factory=(lambda: CompanionWidget(cfg.companion.clips)) if cfg.companion.enabled else None,
        )
    if hub is None:
        hub = DashboardHub(
            lambda user: DashboardController(
                user,
                store,
                event_logger=event_logger,
                error_reporter=error_reporter,
                refresher=auth.refresh,
                renew_after_seconds=cfg.firebase.token_refresh_seconds,
            )
        )

    def _on_session_change(sess: BrowserSession, signed_in: bool) -> None:
        event_logger.log(sess.session_id, "session.signed_in" if signed_in else "session.signed_out", {"uid": sess.user.uid})
        if not signed_in and sessions.count_for(sess.user.uid) == 0:
            hub.detach(sess.user.uid)

    sessions.subscribe(_on_session_change)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        hub.shutdown()
        logger.info("Dashboard subscriptions closed.")

    app = FastAPI(title="LabRats Dashboard", version="1.0.0", lifespan=lifespan)
    app.state.sessions = sessions
    app.state.hub = hub
    app.state.credentials = credentials

    app.middleware("http")(
        SessionGateMiddleware(
            sessions=sessions,
            cookie_name=cookie_name,
            event_logger=event_logger,
            throttle=throttle or LoginThrottle(web_cfg.login_attempts_per_minute),
        )
    )

    @app.exception_handler(LabRatsError)
    async def labrats_error_handler(request: Request, exc: LabRatsError):
        error_reporter.write_error(exc, trace_id=_trace_id(request), subsystem="web")
        code = STATUS_BY_CODE.get(exc.code, 500)
        return JSONResponse(status_code=code, content={"detail": exc.user_message, "code": exc.code})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"detail": "Invalid request.", "code": "validation_error"})

    def _auth_response(outcome: FormOutcome, *, failure_status: int) -> JSONResponse:
        body = AuthResponse(
            ok=outcome.ok,
            alert=outcome.alert,
            redirect=outcome.redirect,
            email=outcome.user.email if outcome.user else None,
        )
        resp = JSONResponse(status_code=200 if outcome.ok else failure_status, content=body.model_dump())
        if outcome.ok and outcome.user is not None:
            token, _sess = sessions.create(outcome.user)
            resp.set_cookie(
                cookie_name,
                token,
                httponly=True,
                samesite="lax",
                secure=bool(web_cfg.secure_cookies),
                max_age=int(web_cfg.session_idle_timeout_seconds),
            )
        return resp

    # ---- pages ----
    @app.get("/health")
    async def health():
        return {"status": "ok", "auth": auth.name, "store": store.name}

    @app.get("/", response_class=HTMLResponse)
    @app.get("/index.html", response_class=HTMLResponse)
    async def login_page():
        return render_login_page()

    @app.get("/dashboard", response_class=HTMLResponse)
    @app.get("/dashboard.html", response_class=HTMLResponse)
    async def dashboard_page(request: Request):
        sess = _require_session(request)
        ctl = hub.attach(sess.user)
        return render_dashboard_page(sess.user.email, ctl.view(), companion=cfg.companion)

    # ---- credentials ----
    @app.post("/v1/auth/login", response_model=AuthResponse)
    async def login(req: LoginRequest, request: Request):
        outcome = await asyncio.to_thread(credentials.sign_in, req.email, req.password, trace_id=_trace_id(request))
        return _auth_response(outcome, failure_status=401)

    @app.post("/v1/auth/signup", response_model=AuthResponse)
    async def signup(req: SignupRequest, request: Request):
        outcome = await asyncio.to_thread(
            credentials.sign_up, req.email, req.password, req.confirm_password, trace_id=_trace_id(request)
        )
        return _auth_response(outcome, failure_status=400)

    @app.post("/v1/auth/logout", response_model=AuthResponse)
    async def logout(request: Request):
        sess = getattr(request.state, "session", None)
        outcome = credentials.sign_out(sess.user if sess else None, trace_id=_trace_id(request))
        sessions.revoke(request.cookies.get(cookie_name))
        resp = JSONResponse(status_code=200, content=AuthResponse(ok=True, redirect=outcome.redirect or Route.LOGIN.value).model_dump())
        resp.delete_cookie(cookie_name)
        return resp

    # ---- dashboard ----
    @app.get("/v1/dashboard")
    async def dashboard_view(request: Request):
        sess = _require_session(request)
        return hub.attach(sess.user).view().as_payload()

    @app.get("/v1/dashboard/stream")
    async def dashboard_stream(request: Request):
        sess = _require_session(request)
        ctl = hub.attach(sess.user)
        uid = sess.user.uid
        events = dashboard_events(ctl, lambda: hub.get(uid) is ctl, keepalive=float(web_cfg.stream_keepalive_seconds))
        return StreamingResponse(events, media_type="text/event-stream", headers={"Cache-Control": "no-cache"})

    # ---- detail modal ----
    @app.post("/v1/labs/select")
    async def select_lab(req: LabSelectRequest, request: Request):
        sess = _require_session(request)
        ctl = hub.attach(sess.user)
        return sess.modal.select(req.name, ctl.lab(req.name)).model_dump(mode="json")

    @app.post("/v1/modal/intro/dismiss")
    async def dismiss_intro(request: Request):
        sess = _require_session(request)
        return sess.modal.dismiss_intro().model_dump(mode="json")

    @app.post("/v1/modal/close")
    async def close_modal(req: ModalCloseRequest, request: Request):
        sess = _require_session(request)
        return sess.modal.close(req.reason).model_dump(mode="json")

    # ---- companion ----
    @app.post("/v1/companion/click")
    async def companion_click(request: Request):
        sess = _require_session(request)
        if sess.companion is None:
            raise SessionRequiredError("Companion is not available.")
        return sess.companion.click().model_dump()

    @app.post("/v1/companion/ended", response_model=CompanionEndedResponse)
    async def companion_ended(req: CompanionEndedRequest, request: Request):
        sess = _require_session(request)
        if sess.companion is None:
            return CompanionEndedResponse(applied=False, bouncing=False)
        if req.failed:
            applied = sess.companion.playback_failed(req.play_id, req.reason)
        else:
            applied = sess.companion.playback_ended(req.play_id)
        return CompanionEndedResponse(applied=applied, bouncing=sess.companion.bouncing)

    # ---- static assets (clips, mascot) ----
    assets = web_cfg.assets_dir
    for sub in ("audios", "imgs"):
        d = os.path.join(assets, sub)
        if os.path.isdir(d):
            app.mount(f"/{sub}", StaticFiles(directory=d), name=sub)

    return app
