from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Any, Dict, Optional, Tuple

import uvicorn

from labrats.backend.firebase_auth import FirebaseAuth
from labrats.backend.firebase_db import FirebaseDatabase
from labrats.backend.interface import AuthProvider, DataStore, user_labs_path, user_profile_path
from labrats.backend.memory import InMemoryAuth, InMemoryDatabase
from labrats.core.config import ConfigManager
from labrats.core.config.models import AppConfig
from labrats.core.config.paths import ConfigFsPaths
from labrats.core.error_reporter import ErrorReporter, ErrorReporterConfig
from labrats.core.errors import ConfigError
from labrats.core.events import EventLogger
from labrats.core.logger import setup_logging
from labrats.web.api import create_app


def _load_seed(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ConfigError("Seed file must contain a JSON object of labs.", path=path)
    return data


def _offline_backends(*, demo: Optional[str], seed_path: Optional[str], logger) -> Tuple[AuthProvider, DataStore]:  # noqa: ANN001
    auth = InMemoryAuth()
    store = InMemoryDatabase()
    if demo:
        email, sep, password = demo.partition(":")
        if not sep:
            raise ConfigError("--demo expects EMAIL:PASSWORD")
        user = auth.create_account(email, password)
        store.set_value(user_profile_path(user.uid), {"Email": user.email})
        labs = _load_seed(seed_path)
        if labs:
            store.set_value(user_labs_path(user.uid), labs)
        logger.info(f"Offline demo account ready: {user.email} ({len(labs)} labs)")
    elif seed_path:
        logger.warning("--seed ignored without --demo")
    return auth, store


def _firebase_backends(cfg: AppConfig, logger) -> Tuple[AuthProvider, DataStore]:  # noqa: ANN001
    fb = cfg.firebase
    if not fb.api_key:
        logger.warning("Firebase api_key is empty: sign-in will fail until config/firebase.json or LABRATS_FIREBASE_API_KEY is set.")
    auth = FirebaseAuth(api_key=fb.api_key, timeout_seconds=fb.request_timeout_seconds)
    store = FirebaseDatabase(
        database_url=fb.database_url,
        timeout_seconds=fb.request_timeout_seconds,
        stream_read_timeout_seconds=fb.stream_read_timeout_seconds,
    )
    return auth, store


def main() -> None:
    ap = argparse.ArgumentParser(description="LabRats lab results dashboard")
    ap.add_argument("--root", default=".", help="App root holding config/ and logs/.")
    ap.add_argument("--host", default=None, help="Override web.json bind_host.")
    ap.add_argument("--port", type=int, default=None, help="Override web.json port.")
    ap.add_argument("--offline", action="store_true", help="Use the in-memory auth/database instead of Firebase.")
    ap.add_argument("--demo", default=None, metavar="EMAIL:PASSWORD", help="Offline only: pre-create this account.")
    ap.add_argument("--seed", default=None, metavar="PATH", help="Offline only: JSON labs map for the demo account.")
    args = ap.parse_args()

    root = os.path.abspath(args.root)
    logger = setup_logging(os.path.join(root, "logs"))

    try:
        cfg = ConfigManager(fs=ConfigFsPaths(root), logger=logger).load_all()
    except ConfigError as e:
        logger.error(f"Config error: {e.user_message}")
        sys.exit(2)

    log_dir = cfg.app.log_dir if os.path.isabs(cfg.app.log_dir) else os.path.join(root, cfg.app.log_dir)
    logger = setup_logging(log_dir)
    event_logger = EventLogger(os.path.join(log_dir, "events.jsonl"))
    error_reporter = ErrorReporter(
        path=os.path.join(log_dir, "errors.jsonl"),
        cfg=ErrorReporterConfig(include_tracebacks=cfg.app.include_tracebacks),
    )

    if args.offline:
        auth, store = _offline_backends(demo=args.demo, seed_path=args.seed, logger=logger)
    else:
        auth, store = _firebase_backends(cfg, logger)

    if not os.path.isabs(cfg.web.assets_dir):
        cfg = cfg.model_copy(update={"web": cfg.web.model_copy(update={"assets_dir": os.path.join(root, cfg.web.assets_dir)})})

    app = create_app(cfg=cfg, auth=auth, store=store, event_logger=event_logger, error_reporter=error_reporter)
    host = args.host or cfg.web.bind_host
    port = int(args.port or cfg.web.port)
    event_logger.log("startup", "app.start", {"backend": auth.name, "host": host, "port": port})
    logger.info(f"LabRats dashboard on http://{host}:{port} (backend={auth.name})")
    uvicorn.run(app, host=host, port=port, log_level="info")


if __name__ == "__main__":
    main()
