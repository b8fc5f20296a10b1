from __future__ import annotations

import os

import pytest
from fastapi.testclient import TestClient

from labrats.backend.memory import InMemoryAuth, InMemoryDatabase
from labrats.core.config.manager import ConfigManager
from labrats.core.config.paths import ConfigFsPaths
from labrats.core.error_reporter import ErrorReporter
from labrats.core.events import EventLogger
from labrats.web.api import create_app


@pytest.fixture
def tmp_config_root(tmp_path):
    """
    Provides an isolated app root with config/ under tmp_path.
    """
    fs = ConfigFsPaths(root=str(tmp_path))
    os.makedirs(fs.config_dir, exist_ok=True)
    return fs


@pytest.fixture
def config_manager(tmp_config_root):
    cm = ConfigManager(fs=tmp_config_root, logger=None, read_only=False, environ={})
    cm.load_all()
    return cm


@pytest.fixture
def event_logger(tmp_path):
    return EventLogger(str(tmp_path / "logs" / "events.jsonl"))


@pytest.fixture
def error_reporter(tmp_path):
    return ErrorReporter(path=str(tmp_path / "logs" / "errors.jsonl"))


@pytest.fixture
def memory_backend():
    return InMemoryAuth(), InMemoryDatabase()


@pytest.fixture
def make_client(config_manager, memory_backend, event_logger, error_reporter):
    """Factory for a TestClient over the in-memory backend; kwargs go to create_app."""

    def _make(**kwargs):
        auth, store = memory_backend
        app = create_app(
            cfg=kwargs.pop("cfg", config_manager.get()),
            auth=kwargs.pop("auth", auth),
            store=kwargs.pop("store", store),
            event_logger=event_logger,
            error_reporter=error_reporter,
            **kwargs,
        )
        return TestClient(app)

    return _make
