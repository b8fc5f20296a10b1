from __future__ import annotations

from labrats.dashboard.records import (
    experiment_entries,
    experiment_sequence,
    format_number,
    normalize_experiment,
    normalize_record,
    time_taken,
)


def test_time_passed_wins_over_time():
    assert time_taken({"Time_Passed": 8, "Time": 3}) == 8.0
    assert time_taken({"Time": 3}) == 3.0
    assert time_taken({}) == 0.0


def test_present_but_non_numeric_time_counts_as_zero():
    assert time_taken({"Time_Passed": "fast", "Time": 3}) == 0.0
    assert time_taken({"Time": True}) == 0.0
    assert time_taken("not a record") == 0.0


def test_attempts_count_non_null_entries():
    assert normalize_record("Drop", {"Experiments": [{"Duration": 1}, None, {"Duration": 2}]}).attempts == 2
    assert normalize_record("Drop", {"Experiments": []}).attempts == 0


def test_attempts_default_to_one_without_sequence():
    assert normalize_record("Drop", {"Time": 2}).attempts == 1
    assert normalize_record("Drop", {"Experiments": "nope"}).attempts == 1
    assert normalize_record("Drop", 42).attempts == 1


def test_sparse_object_becomes_list_with_gaps():
    seq = experiment_sequence({"0": "a", "2": "b"})
    assert seq == ["a", None, "b"]
    assert normalize_record("Drop", {"Experiments": {"0": {}, "3": {}}}).attempts == 2
    assert experiment_sequence({"x": 1}) is None


def test_format_number_drops_trailing_zero():
    assert format_number(12.0) == "12"
    assert format_number(12.5) == "12.5"
    assert format_number(0) == "0"


def test_duration_list_and_scalar_render_the_same():
    a = normalize_experiment(0, {"Duration": [4.2]})
    b = normalize_experiment(1, {"Duration": 4.2})
    assert a.duration == "4.20"
    assert b.duration == "4.20"


def test_missing_values_render_placeholder():
    e = normalize_experiment(0, {})
    assert e.distance == "-"
    assert e.gravity == "-"
    assert e.duration == "-"
    assert e.recorded_at == "-"
    assert normalize_experiment(0, {"Duration": []}).duration == "-"


def test_experiment_display_formats():
    e = normalize_experiment(3, {"Distance": 10, "Gravity": 9.81, "Duration": 1.234, "RecordedAtSeconds": 12.34})
    assert e.index == 3
    assert e.distance == "10"
    assert e.gravity == "9.81"
    assert e.duration == "1.23"
    assert e.recorded_at == "12.3s"
    assert normalize_experiment(0, {"Distance": "far"}).distance == "far"


def test_zero_and_falsy_readings_render_placeholder():
    for distance in (0, 0.0, "", None, False):
        assert normalize_experiment(0, {"Distance": distance}).distance == "-"
    assert normalize_experiment(0, {"RecordedAtSeconds": 0}).recorded_at == "-"
    assert normalize_experiment(0, {"RecordedAtSeconds": 0.04}).recorded_at == "0.0s"
    assert normalize_experiment(0, {"Distance": 0.5}).distance == "0.5"


def test_entries_skip_nulls_but_keep_positions():
    rows = experiment_entries([None, {"Duration": 3}, None, {"Duration": 1}])
    assert [r.index for r in rows] == [1, 3]
    assert experiment_entries(None) == []
