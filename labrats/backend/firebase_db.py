from __future__ import annotations

import copy
import json
import threading
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

import requests

from labrats.backend.interface import DataStore, OnError, OnValue, Subscription
from labrats.core.errors import DataStoreError
from labrats.core.logger import get_logger


logger = get_logger("backend.firebase_db")


def path_segments(path: str) -> List[str]:
    return [p for p in str(path or "").split("/") if p]


def apply_put(tree: Any, path: str, data: Any) -> Any:
    """Return `tree` with the value at `path` replaced by `data` (None deletes)."""
    segs = path_segments(path)
    if not segs:
        return copy.deepcopy(data)
    root = tree if isinstance(tree, dict) else {}
    node = root
    for seg in segs[:-1]:
        child = node.get(seg)
        if not isinstance(child, dict):
            child = {} if not isinstance(child, list) else {str(i): v for i, v in enumerate(child)}
            node[seg] = child
        node = child
    if data is None:
        node.pop(segs[-1], None)
    else:
        node[segs[-1]] = copy.deepcopy(data)
    return root or None


def apply_patch(tree: Any, path: str, data: Any) -> Any:
    """A patch is a put of every child of `data` under `path`."""
    if not isinstance(data, dict):
        return apply_put(tree, path, data)
    base = "/".join(path_segments(path))
    for key, value in data.items():
        tree = apply_put(tree, f"{base}/{key}" if base else str(key), value)
    return tree


def iter_sse(lines: Iterable[str]) -> Iterator[Tuple[str, str]]:
    """Yield (event, data) pairs from a text/event-stream line iterator."""
    event = ""
    data: List[str] = []
    for raw in lines:
        line = raw if isinstance(raw, str) else raw.decode("utf-8", errors="replace")
        if line == "":
            if event or data:
                yield event or "message", "\n".join(data)
            event, data = "", []
            continue
        if line.startswith(":"):
            continue
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "event":
            event = value
        elif name == "data":
            data.append(value)
    if event or data:
        yield event or "message", "\n".join(data)


class StreamSubscription(Subscription):
    """
    One live listener on a database path (REST streaming, one daemon thread).

    put/patch events are folded into a local copy and the full copy is delivered
    to on_value after every change. cancel, auth_revoked and transport failures
    are delivered once to on_error and end the subscription.
    """

    def __init__(self, *, url: str, params: Dict[str, str], on_value: OnValue, on_error: OnError, http: requests.Session, timeout: Tuple[float, float]):
        self._url = url
        self._params = params
        self._on_value = on_value
        self._on_error = on_error
        self._http = http
        self._timeout = timeout
        self._stop = threading.Event()
        self._resp: Optional[requests.Response] = None
        self._snapshot: Any = None
        self._thread = threading.Thread(target=self._run, name="labs-stream", daemon=True)

    def start(self) -> "StreamSubscription":
        self._thread.start()
        return self

    @property
    def active(self) -> bool:
        return self._thread.is_alive() and not self._stop.is_set()

    def close(self) -> None:
        self._stop.set()
        resp = self._resp
        if resp is not None:
            try:
                resp.close()
            except Exception:  # noqa: BLE001
                pass

    def _run(self) -> None:
        try:
            with self._http.get(
                self._url,
                params=self._params,
                headers={"Accept": "text/event-stream"},
                stream=True,
                timeout=self._timeout,
            ) as resp:
                self._resp = resp
                if resp.status_code != 200:
                    raise DataStoreError("Error loading data.", status=resp.status_code, reason=resp.text[:200])
                for event, data in iter_sse(resp.iter_lines(decode_unicode=True)):
                    if self._stop.is_set():
                        return
                    self._handle(event, data)
        except DataStoreError as e:
            self._fail(e)
        except Exception as e:  # noqa: BLE001
            if self._stop.is_set():
                return
            self._fail(DataStoreError("Error loading data.", error=str(e)))
        else:
            if not self._stop.is_set():
                self._fail(DataStoreError("Error loading data.", reason="stream_closed"))

    def _handle(self, event: str, data: str) -> None:
        if event == "keep-alive":
            return
        if event in {"cancel", "auth_revoked"}:
            raise DataStoreError("Error loading data.", reason=event, detail=data)
        if event not in {"put", "patch"}:
            logger.debug("Ignoring stream event %s", event)
            return
        msg = json.loads(data) if data else {}
        path = str((msg or {}).get("path") or "/")
        body = (msg or {}).get("data")
        if event == "put":
            self._snapshot = apply_put(self._snapshot, path, body)
        else:
            self._snapshot = apply_patch(self._snapshot, path, body)
        self._on_value(copy.deepcopy(self._snapshot))

    def _fail(self, err: BaseException) -> None:
        self._stop.set()
        try:
            self._on_error(err)
        except Exception:  # noqa: BLE001
            logger.exception("Subscription error handler failed")


@dataclass
class FirebaseDatabase(DataStore):
    """Realtime Database over its REST API (`<db>/<path>.json`)."""

    database_url: str
    timeout_seconds: float = 10.0
    stream_read_timeout_seconds: float = 90.0
    session: Optional[requests.Session] = None
    name: str = "firebase"

    def _http(self) -> requests.Session:
        if self.session is None:
            self.session = requests.Session()
        return self.session

    def _url(self, path: str) -> str:
        return f"{self.database_url.rstrip('/')}/{'/'.join(path_segments(path))}.json"

    @staticmethod
    def _params(token: str) -> Dict[str, str]:
        return {"auth": token} if token else {}

    def set_value(self, path: str, value: Any, *, token: str = "") -> None:
        try:
            r = self._http().put(self._url(path), params=self._params(token), json=value, timeout=self.timeout_seconds)
        except requests.RequestException as e:
            raise DataStoreError("Database write failed.", path=path, error=str(e)) from e
        if r.status_code != 200:
            raise DataStoreError("Database write failed.", path=path, status=r.status_code, reason=r.text[:200])

    def subscribe(self, path: str, on_value: OnValue, on_error: OnError, *, token: str = "") -> Subscription:
        sub = StreamSubscription(
            url=self._url(path),
            params=self._params(token),
            on_value=on_value,
            on_error=on_error,
            http=self._http(),
            timeout=(float(self.timeout_seconds), float(self.stream_read_timeout_seconds)),
        )
        return sub.start()
