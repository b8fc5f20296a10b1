from __future__ import annotations

import asyncio
import json
from typing import AsyncIterator, Callable

from labrats.dashboard.controller import DashboardController


KEEPALIVE = ": keep-alive\n\n"


def sse_event(event: str, payload: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(payload, ensure_ascii=False)}\n\n"


async def dashboard_events(
    ctl: DashboardController,
    is_current: Callable[[], bool],
    *,
    keepalive: float,
) -> AsyncIterator[str]:
    """
    Server-sent events for one dashboard stream.

    Sends the current view, then a new one after every change and a comment line
    when `keepalive` seconds pass quietly. Waiting happens on the event loop: the
    controller's listener only schedules `changed.set()` from the backend thread,
    so open streams never occupy executor threads. Ends once the controller is
    stopped or no longer the hub's controller for this user (`is_current`).
    """
    loop = asyncio.get_running_loop()
    changed = asyncio.Event()

    def wake() -> None:
        try:
            loop.call_soon_threadsafe(changed.set)
        except RuntimeError:
            # loop already closed: the client is gone and the finally below has run or will
            return

    ctl.add_listener(wake)
    try:
        version = ctl.version
        yield sse_event("dashboard", ctl.view().as_payload())
        while not ctl.stopped and is_current():
            try:
                await asyncio.wait_for(changed.wait(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield KEEPALIVE
                continue
            changed.clear()
            if ctl.stopped or not is_current():
                break
            current = ctl.version
            if current == version:
                continue
            version = current
            yield sse_event("dashboard", ctl.view().as_payload())
    finally:
        ctl.remove_listener(wake)
