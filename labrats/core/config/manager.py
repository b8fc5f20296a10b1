from __future__ import annotations

import os
from typing import Any, Dict, Optional

from pydantic import ValidationError

from labrats.core.config.io import (
    atomic_write_json,
    quarantine_corrupt,
    read_json_file,
    restore_last_known_good,
    snapshot_last_known_good,
)
from labrats.core.config.models import (
    AppConfig,
    AppFileConfig,
    CompanionConfig,
    FirebaseConfig,
    WebConfig,
)
from labrats.core.config.paths import ConfigFsPaths
from labrats.core.errors import ConfigError


ENV_PREFIX = "LABRATS"

# env var suffix -> (section, field)
ENV_OVERRIDES: Dict[str, tuple[str, str]] = {
    "FIREBASE_API_KEY": ("firebase", "api_key"),
    "FIREBASE_DATABASE_URL": ("firebase", "database_url"),
    "FIREBASE_PROJECT_ID": ("firebase", "project_id"),
    "WEB_BIND_HOST": ("web", "bind_host"),
    "WEB_PORT": ("web", "port"),
}

# file name -> (AppConfig section, model)
SECTIONS = {
    "app.json": ("app", AppFileConfig),
    "firebase.json": ("firebase", FirebaseConfig),
    "web.json": ("web", WebConfig),
    "companion.json": ("companion", CompanionConfig),
}


class ConfigManager:
    """
    Loads config/*.json into an AppConfig.

    Missing files are written with defaults, a corrupt file is moved to
    config/backups/ and replaced by its last-known-good snapshot (or defaults).
    Read-only managers never touch the disk.
    """

    def __init__(
        self,
        *,
        fs: Optional[ConfigFsPaths] = None,
        logger=None,
        read_only: bool = False,
        environ: Optional[Dict[str, str]] = None,
    ):
        self.fs = fs or ConfigFsPaths(".")
        self.logger = logger
        self.read_only = read_only
        self._environ = environ if environ is not None else os.environ
        self._cfg: Optional[AppConfig] = None

    def load_all(self) -> AppConfig:
        raw = {name: self._load_file(name) for name in SECTIONS}
        cfg = self._validate_all(raw)
        self._cfg = self._apply_env_overrides(cfg)
        if not self.read_only:
            snapshot_last_known_good(self.fs.config_dir, self.fs.last_known_good_dir, SECTIONS)
        return self._cfg

    def get(self) -> AppConfig:
        if self._cfg is None:
            raise ConfigError("Config not loaded.")
        return self._cfg

    def _warn(self, msg: str) -> None:
        if self.logger:
            self.logger.warning(msg)

    def _load_file(self, name: str) -> Dict[str, Any]:
        path = os.path.join(self.fs.config_dir, name)
        rr = read_json_file(path)
        if rr.ok and rr.data:
            return rr.data
        if self.read_only:
            return {}
        if rr.error == "corrupt":
            moved = quarantine_corrupt(path, self.fs.backups_dir)
            restored = restore_last_known_good(path, self.fs.last_known_good_dir)
            self._warn(f"Corrupt config {name} moved to {moved}; restored={restored is not None}")
            if restored:
                return restored
        _section, model = SECTIONS[name]
        defaults = model().model_dump()
        self._warn(f"Config {name} unusable ({rr.error or 'empty'}); writing defaults.")
        atomic_write_json(path, defaults)
        return defaults

    def _validate_all(self, files: Dict[str, Dict[str, Any]]) -> AppConfig:
        try:
            return AppConfig(**{section: model.model_validate(files.get(name) or {}) for name, (section, model) in SECTIONS.items()})
        except ValidationError as e:
            raise ConfigError(str(e)) from e

    def _apply_env_overrides(self, cfg: AppConfig) -> AppConfig:
        """Environment wins over files; overrides are never written back to disk."""
        updates: Dict[str, Dict[str, Any]] = {}
        for suffix, (section, field_name) in ENV_OVERRIDES.items():
            value = self._environ.get(f"{ENV_PREFIX}_{suffix}")
            if value is None or value.strip() == "":
                continue
            updates.setdefault(section, {})[field_name] = value.strip()
        if not updates:
            return cfg
        raw = cfg.model_dump()
        for section, fields in updates.items():
            raw[section].update(fields)
        try:
            return AppConfig.model_validate(raw)
        except ValidationError as e:
            raise ConfigError(f"Invalid environment override: {e}") from e
