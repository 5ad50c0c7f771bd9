"""Functional tests for choosing the prior response a session resumes from."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from assessment_runner.logic.resumption import resume_answers, select_latest_response
from assessment_runner.models.assessment import ResponseRecord, parse_timestamp


def _records(make_records, stamps):
    return [ResponseRecord.model_validate(r) for r in make_records(7, 3, stamps)]


def test_latest_submission_wins_regardless_of_input_order(make_records):
    records = _records(
        make_records,
        ["2024-01-01T00:00:00Z", "2024-03-01T00:00:00Z", "2024-02-01T00:00:00Z"],
    )
    latest = select_latest_response(records)
    assert latest is not None
    assert latest.id == 2
    assert latest.responses == {"1": "answer from 2024-03-01T00:00:00Z"}


def test_no_records_means_nothing_to_resume():
    assert select_latest_response([]) is None
    assert resume_answers([], {}) is None


def test_identical_timestamps_resolve_to_highest_record_id(make_records):
    records = _records(make_records, ["2024-05-05", "2024-05-05", "2024-05-05"])
    assert select_latest_response(records).id == 3
    assert select_latest_response(list(reversed(records))).id == 3


def test_non_numeric_ids_still_break_ties_deterministically(make_records):
    records = _records(make_records, ["2024-05-05", "2024-05-05", "2024-05-05"])
    records = [r.model_copy(update={"id": rid}) for r, rid in zip(records, ["nan", 5, "inf"])]
    # Text ids sort after numeric ones, then by text
    assert select_latest_response(records).id == "nan"
    assert select_latest_response(list(reversed(records))).id == "nan"


def test_records_without_timestamp_sort_first(make_records):
    records = _records(make_records, [None, "1999-12-31"])
    assert select_latest_response(records).id == 2


def test_mixed_offsets_compare_on_the_same_clock(make_records):
    # 10:00+02:00 is 08:00Z, earlier than 09:00Z
    records = _records(make_records, ["2024-01-01T10:00:00+02:00", "2024-01-01T09:00:00Z"])
    assert select_latest_response(records).id == 2


def test_resume_answers_only_fills_an_empty_answer_map(make_records):
    records = _records(make_records, ["2024-01-01", "2024-02-01"])
    assert resume_answers(records, {}) == {"1": "answer from 2024-02-01"}
    assert resume_answers(records, {"1": "typed already"}) is None


def test_parse_timestamp_treats_naive_values_as_utc():
    assert parse_timestamp("2024-02-01") == datetime(2024, 2, 1, tzinfo=timezone.utc)
    assert parse_timestamp("2024-02-01T12:30:00Z") == datetime(2024, 2, 1, 12, 30, tzinfo=timezone.utc)
    assert parse_timestamp(None) is None
    with pytest.raises(ValueError):
        parse_timestamp("last tuesday")


def test_response_keys_are_normalised_to_strings():
    record = ResponseRecord.model_validate(
        {"id": 1, "assessment_id": 7, "responses": {1: "a", "2": [0]}, "submitted_at": "2024-01-01"}
    )
    assert record.responses == {"1": "a", "2": [0]}
    assert record.status == "submitted"
