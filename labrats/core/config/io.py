from __future__ import annotations

import json
import os
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ReadResult:
    """Outcome of reading one config file. `error` is "missing", "corrupt" or an OS error text."""

    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def read_json_file(path: str) -> ReadResult:
    try:
        with open(path, "r", encoding="utf-8") as f:
            obj = json.load(f)
    except FileNotFoundError:
        return ReadResult(error="missing")
    except json.JSONDecodeError:
        return ReadResult(error="corrupt")
    except OSError as e:
        return ReadResult(error=str(e))
    # a top-level array or scalar is as unusable as broken JSON
    if not isinstance(obj, dict):
        return ReadResult(error="corrupt")
    return ReadResult(data=obj)


def atomic_write_json(path: str, data: Dict[str, Any]) -> None:
    """Write through a temp file in the same directory, then rename over `path`."""
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".tmp_", suffix=".json", dir=directory)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False, sort_keys=True)
            f.write("\n")
        os.replace(tmp, path)
    finally:
        if os.path.exists(tmp):
            os.remove(tmp)


def quarantine_corrupt(path: str, backups_dir: str) -> Optional[str]:
    """Move an unreadable config file to backups/<name>.<utc ts>.corrupt.json."""
    if not os.path.exists(path):
        return None
    os.makedirs(backups_dir, exist_ok=True)
    stamp = time.strftime("%Y%m%d_%H%M%S", time.gmtime())
    target = os.path.join(backups_dir, f"{os.path.basename(path)}.{stamp}.corrupt.json")
    shutil.move(path, target)
    return target


def restore_last_known_good(path: str, last_known_good_dir: str) -> Optional[Dict[str, Any]]:
    """Copy the snapshot of `path` back into place; None when there is no usable snapshot."""
    rr = read_json_file(os.path.join(last_known_good_dir, os.path.basename(path)))
    if not rr.ok:
        return None
    atomic_write_json(path, rr.data)
    return rr.data


def snapshot_last_known_good(config_dir: str, last_known_good_dir: str, names) -> None:  # noqa: ANN001
    os.makedirs(last_known_good_dir, exist_ok=True)
    for name in names:
        src = os.path.join(config_dir, name)
        if os.path.isfile(src):
            shutil.copy2(src, os.path.join(last_known_good_dir, name))
