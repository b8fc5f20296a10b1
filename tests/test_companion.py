from __future__ import annotations

import random

import pytest

from labrats.companion.widget import DEFAULT_CLIPS, CompanionWidget


def test_click_plays_a_known_clip_and_bounces():
    w = CompanionWidget(rng=random.Random(1))
    cue = w.click()
    assert cue.clip in DEFAULT_CLIPS
    assert cue.bounce
    assert not cue.stop_previous
    assert w.bouncing
    assert w.current == cue


def test_second_click_interrupts_the_first():
    w = CompanionWidget(rng=random.Random(2))
    first = w.click()
    second = w.click()
    assert second.stop_previous
    assert second.play_id != first.play_id
    # late end of the interrupted clip must not stop the new bounce
    assert w.playback_ended(first.play_id) is False
    assert w.bouncing


def test_end_of_current_clip_stops_bounce():
    w = CompanionWidget(rng=random.Random(3))
    cue = w.click()
    assert w.playback_ended(cue.play_id) is True
    assert not w.bouncing
    assert w.current is None
    assert w.click().stop_previous is False


def test_play_failure_stops_bounce():
    w = CompanionWidget(rng=random.Random(4))
    cue = w.click()
    assert w.playback_failed(cue.play_id, "NotAllowedError")
    assert not w.bouncing


def test_repeats_are_allowed():
    w = CompanionWidget(["only.wav"], rng=random.Random(5))
    assert {w.click().clip for _ in range(3)} == {"only.wav"}


def test_empty_clip_list_rejected():
    with pytest.raises(ValueError):
        CompanionWidget([])
