"""
Normalisation of lab records as written by the lab simulations.

Writers are not consistent: the duration lives under `Time_Passed` or `Time`,
an experiment's `Duration` is sometimes a one-element list, and sparse
`Experiments` arrays come back from the database as objects keyed by index.
Everything that reads a record goes through this module.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict


TIME_FIELDS = ("Time_Passed", "Time")
PLACEHOLDER = "-"


def to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


def format_number(value: float) -> str:
    """Shortest plain rendering: 12.0 -> "12", 12.5 -> "12.5"."""
    v = float(value)
    if v.is_integer():
        return str(int(v))
    return repr(v)


def experiment_sequence(raw: Any) -> Optional[List[Any]]:
    """
    The `Experiments` value as a list, or None when there is no usable sequence.

    {"0": a, "2": b} -> [a, None, b]
    """
    if isinstance(raw, list):
        return list(raw)
    if isinstance(raw, dict) and raw and all(str(k).isdigit() for k in raw):
        idx = {int(k): v for k, v in raw.items()}
        return [idx.get(i) for i in range(max(idx) + 1)]
    return None


@dataclass(frozen=True)
class LabRecord:
    name: str
    time_taken: float
    attempts: int
    experiments: Optional[List[Any]]

    @property
    def has_positive_time(self) -> bool:
        return self.time_taken > 0


def time_taken(raw: Any) -> float:
    if not isinstance(raw, dict):
        return 0.0
    for key in TIME_FIELDS:
        if key in raw:
            return to_number(raw[key]) or 0.0
    return 0.0


def normalize_record(name: str, raw: Any) -> LabRecord:
    experiments = experiment_sequence(raw.get("Experiments")) if isinstance(raw, dict) else None
    if experiments is not None:
        attempts = sum(1 for e in experiments if e is not None)
    else:
        attempts = 1
    return LabRecord(name=str(name), time_taken=time_taken(raw), attempts=attempts, experiments=experiments)


class ExperimentEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    index: int
    distance: str
    gravity: str
    duration: str
    recorded_at: str


def _fixed(value: Any, digits: int) -> str:
    num = to_number(value)
    if num is not None:
        return f"{num:.{digits}f}"
    if value is None or value == "":
        return PLACEHOLDER
    return str(value)


def normalize_experiment(index: int, raw: Any) -> Optional[ExperimentEntry]:
    """Display values for one trial; None for null entries."""
    if not isinstance(raw, dict):
        return None

    duration = raw.get("Duration")
    if isinstance(duration, list):
        duration = duration[0] if duration else None

    # zero, empty and false readings mean "not measured"
    distance = raw.get("Distance")
    dist_num = to_number(distance)
    if dist_num is not None:
        distance_text = format_number(dist_num) if dist_num else PLACEHOLDER
    else:
        distance_text = str(distance) if distance else PLACEHOLDER

    recorded = to_number(raw.get("RecordedAtSeconds"))
    recorded_text = f"{recorded:.1f}s" if recorded else PLACEHOLDER

    return ExperimentEntry(
        index=int(index),
        distance=distance_text,
        gravity=_fixed(raw.get("Gravity"), 2),
        duration=_fixed(duration, 2),
        recorded_at=recorded_text,
    )


def experiment_entries(experiments: Optional[List[Any]]) -> List[ExperimentEntry]:
    out: List[ExperimentEntry] = []
    for i, raw in enumerate(experiments or []):
        entry = normalize_experiment(i, raw)
        if entry is not None:
            out.append(entry)
    return out
