from __future__ import annotations

import json
import sys

from labrats.core.config import ConfigManager
from labrats.core.config.paths import ConfigFsPaths


def main() -> None:
    root = sys.argv[1] if len(sys.argv) > 1 else "."
    cm = ConfigManager(fs=ConfigFsPaths(root), logger=None, read_only=True)
    data = cm.load_all().model_dump()
    if data["firebase"].get("api_key"):
        data["firebase"]["api_key"] = "[REDACTED]"
    print(json.dumps(data, indent=2, sort_keys=True))


if __name__ == "__main__":
    main()
