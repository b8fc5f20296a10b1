from __future__ import annotations

import random
import threading
import uuid
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from labrats.core.logger import get_logger


logger = get_logger("companion")

DEFAULT_CLIPS = (
    "audios/web gravity lab.wav",
    "audios/web home.wav",
    "audios/web settings.wav",
)
MASCOT_IMAGE = "imgs/rat_speaking_button.png"


class CompanionCue(BaseModel):
    """What the page must do after a mascot click."""

    model_config = ConfigDict(frozen=True)

    play_id: str
    clip: str
    stop_previous: bool
    bounce: bool = True


class CompanionWidget:
    """
    Clickable mascot that plays one random clip at a time.

    A click stops the current clip, picks a new one uniformly (repeats allowed) and
    bounces the mascot until that clip ends or the next click interrupts it.
    """

    def __init__(self, clips: Sequence[str] = DEFAULT_CLIPS, *, rng: Optional[random.Random] = None):
        if not clips:
            raise ValueError("At least one companion clip is required.")
        self.clips: List[str] = list(clips)
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self._current: Optional[CompanionCue] = None
        self._bouncing = False

    @property
    def bouncing(self) -> bool:
        with self._lock:
            return self._bouncing

    @property
    def current(self) -> Optional[CompanionCue]:
        with self._lock:
            return self._current

    def click(self) -> CompanionCue:
        with self._lock:
            stop_previous = self._current is not None
            cue = CompanionCue(
                play_id=uuid.uuid4().hex,
                clip=self._rng.choice(self.clips),
                stop_previous=stop_previous,
            )
            self._current = cue
            self._bouncing = True
        logger.debug("Companion clip %s (interrupting=%s)", cue.clip, stop_previous)
        return cue

    def playback_ended(self, play_id: str) -> bool:
        """End of a clip. Ignored unless it is the current one; returns whether it applied."""
        with self._lock:
            if self._current is None or self._current.play_id != play_id:
                return False
            self._current = None
            self._bouncing = False
            return True

    def playback_failed(self, play_id: str, reason: str = "") -> bool:
        logger.error("Audio play failed: %s", reason or "unknown")
        return self.playback_ended(play_id)
