from __future__ import annotations

import threading
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from labrats.dashboard.records import ExperimentEntry, experiment_entries, experiment_sequence


INTRO_KEYWORD = "gravity"
NO_DETAILS_MESSAGE = "No detailed experiments found for this lab."


class ModalState(str, Enum):
    HIDDEN = "HIDDEN"
    INTRO = "INTRO"
    VISIBLE = "VISIBLE"


class CloseReason(str, Enum):
    CLOSE_BUTTON = "close_button"
    BACKDROP = "backdrop"
    ESCAPE = "escape"


class ModalView(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: ModalState = ModalState.HIDDEN
    lab_name: Optional[str] = None
    title: str = ""
    subtitle: str = ""
    has_details: bool = False
    rows: List[ExperimentEntry] = Field(default_factory=list)
    message: Optional[str] = None


def needs_intro(lab_name: str) -> bool:
    return INTRO_KEYWORD in str(lab_name or "").strip().lower()


def detail_view(lab_name: str, record: Any) -> ModalView:
    experiments = experiment_sequence(record.get("Experiments")) if isinstance(record, dict) else None
    rows = experiment_entries(experiments)
    return ModalView(
        state=ModalState.VISIBLE,
        lab_name=lab_name,
        title=f"Details: {lab_name}",
        subtitle=f"Detailed experiment logs for {lab_name}",
        has_details=bool(rows),
        rows=rows,
        message=None if rows else NO_DETAILS_MESSAGE,
    )


class ExperimentModal:
    """
    Detail view for one lab, per browser session.

    Labs whose name contains "gravity" show a full-screen intro first; the details
    open on the click that dismisses it. That happens on every selection.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._view = ModalView()
        self._pending: Optional[tuple[str, Any]] = None

    def view(self) -> ModalView:
        with self._lock:
            return self._view

    @property
    def state(self) -> ModalState:
        return self.view().state

    def select(self, lab_name: str, record: Any) -> ModalView:
        with self._lock:
            if record is None:
                return self._view
            if needs_intro(lab_name):
                self._pending = (lab_name, record)
                self._view = ModalView(state=ModalState.INTRO, lab_name=lab_name)
            else:
                self._pending = None
                self._view = detail_view(lab_name, record)
            return self._view

    def dismiss_intro(self) -> ModalView:
        with self._lock:
            if self._view.state != ModalState.INTRO or self._pending is None:
                return self._view
            lab_name, record = self._pending
            self._pending = None
            self._view = detail_view(lab_name, record)
            return self._view

    def close(self, reason: CloseReason = CloseReason.CLOSE_BUTTON) -> ModalView:
        with self._lock:
            if reason == CloseReason.ESCAPE and self._view.state != ModalState.VISIBLE:
                return self._view
            self._pending = None
            self._view = ModalView()
            return self._view
