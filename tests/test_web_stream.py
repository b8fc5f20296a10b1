from __future__ import annotations

import asyncio
import json
from concurrent.futures import ThreadPoolExecutor

from labrats.backend.interface import AuthUser
from labrats.backend.memory import InMemoryAuth
from labrats.dashboard.controller import DashboardController
from labrats.web.stream import KEEPALIVE, dashboard_events, sse_event

from .helpers.fakes import ManualStore


USER = AuthUser(uid="u1", email="rat@lab.io", id_token="tok")
LABS = "Users/u1/Labs"


def _payload(event: str) -> dict:
    head, data = event.strip().split("\n", 1)
    assert head == "event: dashboard"
    return json.loads(data[len("data: "):])


def _controller() -> tuple[DashboardController, ManualStore]:
    store = ManualStore()
    ctl = DashboardController(USER, store)
    ctl.start()
    return ctl, store


def test_sse_event_framing():
    assert sse_event("dashboard", {"a": "é"}) == 'event: dashboard\ndata: {"a": "é"}\n\n'


def test_open_streams_leave_the_executor_free_for_logins():
    ctl, store = _controller()
    auth = InMemoryAuth()
    auth.create_account("rat@lab.io", "cheese123")

    async def scenario():
        loop = asyncio.get_running_loop()
        executor = ThreadPoolExecutor(max_workers=1)
        loop.set_default_executor(executor)
        streams = [dashboard_events(ctl, lambda: True, keepalive=30.0) for _ in range(4)]
        firsts = [await s.__anext__() for s in streams]
        pending = [asyncio.ensure_future(s.__anext__()) for s in streams]
        await asyncio.sleep(0.05)
        assert not any(p.done() for p in pending)

        # the single worker thread is not held by any stream
        user = await asyncio.wait_for(asyncio.to_thread(auth.authenticate, "rat@lab.io", "cheese123"), timeout=5.0)

        store.push(LABS, {"Drop": {"Time": 4}})
        nexts = await asyncio.wait_for(asyncio.gather(*pending), timeout=5.0)
        for s in streams:
            await s.aclose()
        executor.shutdown(wait=False)
        return firsts, nexts, user

    firsts, nexts, user = asyncio.run(scenario())
    assert user.email == "rat@lab.io"
    assert all(_payload(e)["total_labs"] == 0 for e in firsts)
    assert all(_payload(e)["total_labs"] == 1 for e in nexts)
    # closed streams unregister themselves
    assert ctl._listeners == []


def test_quiet_stream_sends_keep_alive_comments():
    ctl, _store = _controller()

    async def scenario():
        stream = dashboard_events(ctl, lambda: True, keepalive=0.01)
        first = await stream.__anext__()
        second = await stream.__anext__()
        await stream.aclose()
        return first, second

    first, second = asyncio.run(scenario())
    assert first.startswith("event: dashboard\n")
    assert second == KEEPALIVE


def test_stream_ends_when_the_controller_stops():
    ctl, store = _controller()

    async def scenario():
        async def drain():
            return [e async for e in dashboard_events(ctl, lambda: True, keepalive=30.0)]

        task = asyncio.ensure_future(drain())
        await asyncio.sleep(0.05)
        store.push(LABS, {"A": {"Time": 1}})
        await asyncio.sleep(0.05)
        ctl.stop()
        return await asyncio.wait_for(task, timeout=5.0)

    events = asyncio.run(scenario())
    assert [_payload(e)["total_labs"] for e in events] == [0, 1]


def test_stream_ends_when_the_controller_is_replaced():
    ctl, store = _controller()
    current = {"ok": True}

    async def scenario():
        async def drain():
            return [e async for e in dashboard_events(ctl, lambda: current["ok"], keepalive=30.0)]

        task = asyncio.ensure_future(drain())
        await asyncio.sleep(0.05)
        current["ok"] = False
        store.push(LABS, {"A": {"Time": 1}})
        return await asyncio.wait_for(task, timeout=5.0)

    assert len(asyncio.run(scenario())) == 1


def test_updates_from_another_thread_wake_the_stream():
    ctl, store = _controller()

    async def scenario():
        stream = dashboard_events(ctl, lambda: True, keepalive=30.0)
        await stream.__anext__()
        nxt = asyncio.ensure_future(stream.__anext__())
        await asyncio.sleep(0.01)
        # backend callbacks arrive on their own thread
        await asyncio.get_running_loop().run_in_executor(None, store.push, LABS, {"A": {"Time": 1}, "B": {"Time": 2}})
        event = await asyncio.wait_for(nxt, timeout=5.0)
        await stream.aclose()
        return event

    assert _payload(asyncio.run(scenario()))["total_labs"] == 2
