from __future__ import annotations

import math
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict


class LoginThrottle:
    """
    Sliding one-minute window of credential attempts per client.

    `attempt(client)` records the attempt and returns 0.0 when it may proceed,
    otherwise the seconds until the oldest attempt in the window expires (the
    attempt is then not recorded).
    """

    window_seconds = 60.0

    def __init__(self, per_minute: int = 10, *, clock: Callable[[], float] = time.time) -> None:
        self.per_minute = max(1, int(per_minute))
        self._clock = clock
        self._lock = threading.Lock()
        self._attempts: Dict[str, Deque[float]] = {}

    def attempt(self, client: str) -> float:
        now = self._clock()
        with self._lock:
            hits = self._attempts.setdefault(client, deque())
            while hits and now - hits[0] >= self.window_seconds:
                hits.popleft()
            if len(hits) >= self.per_minute:
                return max(0.001, hits[0] + self.window_seconds - now)
            hits.append(now)
            return 0.0

    @staticmethod
    def retry_after_header(wait_seconds: float) -> str:
        return str(max(1, math.ceil(wait_seconds)))
