from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from labrats.dashboard.records import format_number, normalize_record


NOT_AVAILABLE = "N/A"
STATUS_COMPLETED = "Completed"
EMPTY_MESSAGE = "No data found."
ERROR_MESSAGE = "Error loading data."


class DashboardRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    time: str
    attempts: int
    status: str = STATUS_COMPLETED
    date: str = NOT_AVAILABLE


class DashboardView(BaseModel):
    """Everything the dashboard page binds to (stats cards + labs table)."""

    model_config = ConfigDict(frozen=True)

    total_labs: int = 0
    average: str = "0"
    fastest: str = NOT_AVAILABLE
    # Last key in the snapshot's iteration order; not derived from any timestamp.
    latest_lab: str = NOT_AVAILABLE
    rows: List[DashboardRow] = Field(default_factory=list)
    empty: bool = True
    error_message: Optional[str] = None

    @property
    def average_label(self) -> str:
        return f"{self.average}s"

    @property
    def table_message(self) -> Optional[str]:
        if self.error_message:
            return self.error_message
        if self.empty:
            return EMPTY_MESSAGE
        return None

    def as_payload(self) -> dict:
        out = self.model_dump()
        out["average_label"] = self.average_label
        out["table_message"] = self.table_message
        return out


def aggregate(snapshot: Any) -> DashboardView:
    """
    Summary statistics and table rows for one full snapshot of a user's labs.

    Every record counts toward the total; only records with a positive time feed
    the average and the fastest time.
    """
    if not isinstance(snapshot, dict) or not snapshot:
        return DashboardView()

    total = 0
    time_sum = 0.0
    timed = 0
    fastest: Optional[float] = None
    latest = NOT_AVAILABLE
    rows: List[DashboardRow] = []

    for name, raw in snapshot.items():
        rec = normalize_record(name, raw)
        total += 1
        if rec.has_positive_time:
            time_sum += rec.time_taken
            timed += 1
            if fastest is None or rec.time_taken < fastest:
                fastest = rec.time_taken
        latest = rec.name
        rows.append(DashboardRow(name=rec.name, time=f"{format_number(rec.time_taken)}s", attempts=rec.attempts))

    average = f"{time_sum / timed:.2f}" if timed else "0"
    return DashboardView(
        total_labs=total,
        average=average,
        fastest=f"{format_number(fastest)}s" if fastest is not None else NOT_AVAILABLE,
        latest_lab=latest,
        rows=rows,
        empty=False,
    )


def error_view(previous: Optional[DashboardView] = None) -> DashboardView:
    """Subscription failed: keep the stats that were showing, replace the table with an error row."""
    base = previous or DashboardView()
    return base.model_copy(update={"rows": [], "error_message": ERROR_MESSAGE})
