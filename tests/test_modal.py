from __future__ import annotations

from labrats.dashboard.modal import CloseReason, ExperimentModal, ModalState, needs_intro


DROP = {"Time": 3, "Experiments": [{"Distance": 2, "Gravity": 9.81, "Duration": [0.64], "RecordedAtSeconds": 1.5}]}


def test_plain_lab_opens_details_directly():
    m = ExperimentModal()
    v = m.select("Drop Test", DROP)
    assert v.state == ModalState.VISIBLE
    assert v.title == "Details: Drop Test"
    assert v.subtitle == "Detailed experiment logs for Drop Test"
    assert v.has_details
    assert v.rows[0].duration == "0.64"
    assert v.rows[0].recorded_at == "1.5s"
    assert v.rows[0].distance == "2"


def test_gravity_lab_shows_intro_first_every_time():
    m = ExperimentModal()
    for _ in range(2):
        v = m.select("My GRAVITY Lab", DROP)
        assert v.state == ModalState.INTRO
        v = m.dismiss_intro()
        assert v.state == ModalState.VISIBLE
        assert v.lab_name == "My GRAVITY Lab"
        m.close(CloseReason.CLOSE_BUTTON)
        assert m.state == ModalState.HIDDEN


def test_needs_intro_is_case_insensitive_substring():
    assert needs_intro("Gravity")
    assert needs_intro("antigravity room")
    assert not needs_intro("Pendulum")


def test_unknown_lab_leaves_modal_unchanged():
    m = ExperimentModal()
    assert m.select("Ghost", None).state == ModalState.HIDDEN


def test_lab_without_entries_shows_empty_message():
    m = ExperimentModal()
    v = m.select("Pendulum", {"Time": 2, "Experiments": [None]})
    assert v.state == ModalState.VISIBLE
    assert not v.has_details
    assert v.message == "No detailed experiments found for this lab."


def test_close_reasons():
    m = ExperimentModal()
    m.select("Drop", DROP)
    assert m.close(CloseReason.BACKDROP).state == ModalState.HIDDEN
    m.select("Drop", DROP)
    assert m.close(CloseReason.ESCAPE).state == ModalState.HIDDEN


def test_escape_does_not_skip_the_intro():
    m = ExperimentModal()
    m.select("Gravity Lab", DROP)
    assert m.close(CloseReason.ESCAPE).state == ModalState.INTRO
    assert m.dismiss_intro().state == ModalState.VISIBLE


def test_dismiss_without_intro_is_noop():
    m = ExperimentModal()
    assert m.dismiss_intro().state == ModalState.HIDDEN
