from __future__ import annotations

import copy
import threading
from typing import Any, Callable, Dict, List, Optional

from labrats.backend.interface import AuthUser, DataStore, Subscription, user_labs_path
from labrats.core.error_reporter import ErrorReporter
from labrats.core.errors import LabRatsError
from labrats.core.events import EventLogger
from labrats.core.logger import get_logger
from labrats.dashboard.aggregator import DashboardView, aggregate, error_view


logger = get_logger("dashboard")

Listener = Callable[[], None]


class DashboardController:
    """
    Owns one user's live labs subscription and the latest snapshot.

    Every snapshot replaces the previous one and recomputes the view. A failure of
    the subscription degrades the view to the error row and is not retried here;
    `DashboardHub.attach` replaces a failed controller for a new sign-in.

    With a `refresher`, the ID token is renewed every `renew_after_seconds` and the
    subscription is reopened with the new token before the old one expires.
    Listeners are called (without the lock held) after every view change and on stop.
    """

    def __init__(
        self,
        user: AuthUser,
        store: DataStore,
        *,
        event_logger: Optional[EventLogger] = None,
        error_reporter: Optional[ErrorReporter] = None,
        refresher: Optional[Callable[[AuthUser], AuthUser]] = None,
        renew_after_seconds: float = 0.0,
    ):
        self.user = user
        # token of the sign-in this controller was built for; renewals do not change it
        self.initial_token = user.id_token
        self.store = store
        self.event_logger = event_logger
        self.error_reporter = error_reporter
        self.refresher = refresher
        self.renew_after_seconds = float(renew_after_seconds)
        self._lock = threading.Lock()
        self._snapshot: Dict[str, Any] = {}
        self._view = DashboardView()
        self._version = 0
        self._sub: Optional[Subscription] = None
        # bumped for every (re)subscribe; callbacks of older subscriptions are ignored
        self._generation = 0
        self._started = False
        self._stopped = False
        self._timer: Optional[threading.Timer] = None
        self._listeners: List[Listener] = []

    @property
    def path(self) -> str:
        return user_labs_path(self.user.uid)

    def start(self) -> None:
        with self._lock:
            if self._sub is not None:
                return
            self._stopped = False
            self._generation += 1
            gen = self._generation
            user = self.user
        sub = self._subscribe(user, gen)
        with self._lock:
            adopted = sub.active and not self._stopped and gen == self._generation
            if adopted:
                self._sub = sub
            self._started = True
        if not adopted and sub.active:
            sub.close()
        logger.info("Subscribed to %s", self.path)
        self._schedule_renewal()

    def stop(self) -> None:
        with self._lock:
            sub, self._sub = self._sub, None
            timer, self._timer = self._timer, None
            self._stopped = True
        if timer is not None:
            timer.cancel()
        if sub is not None:
            sub.close()
            logger.info("Unsubscribed from %s", self.path)
        self._notify()

    def renew(self) -> bool:
        """Refresh the ID token and move the live subscription onto it. False when nothing was renewed."""
        if self.refresher is None:
            return False
        with self._lock:
            if self._stopped or self._sub is None:
                return False
            user = self.user
        try:
            fresh = self.refresher(user)
        except LabRatsError as e:
            # keep the current subscription; it stays live until the old token expires
            logger.warning("Token refresh failed for %s: %s", self.path, e)
            if self.error_reporter is not None:
                self.error_reporter.report_exception(e, trace_id=user.uid, subsystem="dashboard", context={"path": self.path})
            if self.event_logger is not None:
                self.event_logger.log(user.uid, "dashboard.token.refresh_failed", {"path": self.path, "error": str(e)})
            self._schedule_renewal()
            return False

        with self._lock:
            if self._stopped or self._sub is None:
                return False
            previous = self._sub
            self.user = fresh
            self._generation += 1
            gen = self._generation
        sub = self._subscribe(fresh, gen)
        with self._lock:
            if sub.active and not self._stopped and gen == self._generation:
                self._sub = sub
            current = self._sub
        if previous is not current:
            previous.close()
        if sub is not current and sub.active:
            sub.close()
        if self.event_logger is not None:
            self.event_logger.log(fresh.uid, "dashboard.token.renewed", {"path": self.path, "live": sub is current})
        self._schedule_renewal()
        return sub is current

    @property
    def running(self) -> bool:
        with self._lock:
            return self._sub is not None and not self._stopped

    @property
    def stopped(self) -> bool:
        with self._lock:
            return self._stopped

    @property
    def failed(self) -> bool:
        """Started, lost its subscription, and was never stopped."""
        with self._lock:
            return self._started and self._sub is None and not self._stopped

    @property
    def version(self) -> int:
        with self._lock:
            return self._version

    def view(self) -> DashboardView:
        with self._lock:
            return self._view

    def lab(self, name: str) -> Optional[Any]:
        with self._lock:
            rec = self._snapshot.get(name)
            return copy.deepcopy(rec) if rec is not None else None

    def add_listener(self, fn: Listener) -> None:
        with self._lock:
            self._listeners.append(fn)

    def remove_listener(self, fn: Listener) -> None:
        with self._lock:
            self._listeners = [f for f in self._listeners if f is not fn]

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for fn in listeners:
            fn()

    def _subscribe(self, user: AuthUser, gen: int) -> Subscription:
        return self.store.subscribe(
            user_labs_path(user.uid),
            lambda snapshot: self._on_value(snapshot, gen),
            lambda exc: self._on_error(exc, gen),
            token=user.id_token,
        )

    def _schedule_renewal(self) -> None:
        if self.refresher is None or self.renew_after_seconds <= 0:
            return
        timer = threading.Timer(self.renew_after_seconds, self.renew)
        timer.daemon = True
        with self._lock:
            if self._stopped or self._sub is None:
                return
            old, self._timer = self._timer, timer
        if old is not None:
            old.cancel()
        timer.start()

    # ---- subscription callbacks (backend thread) ----
    def _on_value(self, snapshot: Any, gen: int) -> None:
        view = aggregate(snapshot)
        with self._lock:
            if gen != self._generation or self._stopped:
                return
            self._snapshot = snapshot if isinstance(snapshot, dict) else {}
            self._view = view
            self._version += 1
        self._notify()

    def _on_error(self, exc: BaseException, gen: int) -> None:
        with self._lock:
            if gen != self._generation or self._stopped:
                return
        logger.error("Error fetching data for %s: %s", self.path, exc)
        if self.error_reporter is not None:
            self.error_reporter.report_exception(exc, trace_id=self.user.uid, subsystem="dashboard", context={"path": self.path})
        if self.event_logger is not None:
            self.event_logger.log(self.user.uid, "dashboard.subscription.failed", {"path": self.path, "error": str(exc)})
        with self._lock:
            self._view = error_view(self._view)
            self._sub = None
            timer, self._timer = self._timer, None
            self._version += 1
        if timer is not None:
            timer.cancel()
        self._notify()


class DashboardHub:
    """
    One controller per signed-in uid, shared by all of that user's sessions.

    A controller whose subscription failed is replaced, built from the attaching
    user, when a different sign-in (another ID token) of that uid attaches. The
    sessions that saw the failure keep the error view.
    """

    def __init__(self, factory: Callable[[AuthUser], DashboardController]):
        self._factory = factory
        self._lock = threading.Lock()
        self._controllers: Dict[str, DashboardController] = {}

    def attach(self, user: AuthUser) -> DashboardController:
        stale = None
        with self._lock:
            ctl = self._controllers.get(user.uid)
            if ctl is not None and ctl.failed and ctl.initial_token != user.id_token:
                stale, ctl = ctl, None
            created = ctl is None
            if created:
                ctl = self._factory(user)
                self._controllers[user.uid] = ctl
        if stale is not None:
            # ends the failed controller's streams so their clients reconnect
            stale.stop()
            logger.info("Replacing failed dashboard subscription for %s", user.uid)
        if created:
            ctl.start()
        return ctl

    def get(self, uid: str) -> Optional[DashboardController]:
        with self._lock:
            return self._controllers.get(uid)

    def detach(self, uid: str) -> None:
        with self._lock:
            ctl = self._controllers.pop(uid, None)
        if ctl is not None:
            ctl.stop()

    def shutdown(self) -> None:
        with self._lock:
            ctls = list(self._controllers.values())
            self._controllers = {}
        for ctl in ctls:
            ctl.stop()
