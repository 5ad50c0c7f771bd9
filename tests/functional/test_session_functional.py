"""Functional tests for the assessment session state machine.

Sessions are driven directly (no HTTP) against the in-memory data layer,
using anyio to run the async load and submit paths.
"""

from __future__ import annotations

import asyncio

import anyio
import pytest

from assessment_runner.logic.data_layer import InMemoryDataLayer
from assessment_runner.logic.errors import (
    SessionStateError,
    SubmissionError,
    UnknownQuestionError,
)
from assessment_runner.logic.events import (
    ANSWER_CHANGED,
    SESSION_LOAD_FAILED,
    SESSION_RESUMED,
    SESSION_SUBMITTED,
    get_buffered_events,
    subscribe,
)
from assessment_runner.logic.session import AssessmentSession, load_session
from assessment_runner.models.question_kind import SessionState


def _ids(questions) -> list:
    return [q.id for q in questions]


class GatedDataLayer(InMemoryDataLayer):
    """Holds every submission until `gate` is set."""

    gate: asyncio.Event

    async def submit_response(self, payload):
        await self.gate.wait()
        return await super().submit_response(payload)


class RejectingDataLayer(InMemoryDataLayer):
    def __init__(self, *args, failures: int = 1, **kwargs):
        super().__init__(*args, **kwargs)
        self.failures = failures
        self.attempts = 0

    async def submit_response(self, payload):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise SubmissionError("storage rejected the response")
        return await super().submit_response(payload)


class BrokenResponsesDataLayer(InMemoryDataLayer):
    async def fetch_responses(self, assessment_id, job_id=None):
        raise ConnectionError("responses service unavailable")


# ----------------------------------------------------------------------------
# Loading and resumption
# ----------------------------------------------------------------------------


def test_fresh_session_starts_ready_with_gated_form(gated_assessment):
    session = AssessmentSession(gated_assessment, [])
    assert session.state == SessionState.READY
    assert _ids(session.visible_questions) == ["1"]
    assert _ids(session.violations) == ["1"]
    assert session.can_submit is False
    assert session.transitions == [(SessionState.LOADING, SessionState.READY)]


def test_answering_required_question_reveals_follow_up_and_unblocks(gated_assessment):
    session = AssessmentSession(gated_assessment, [])
    change = session.on_answer_change("1", "hello")

    # Assert 1: derived state
    assert _ids(session.visible_questions) == ["1", "2"]
    assert session.violations == []
    assert session.can_submit is True
    assert session.state == SessionState.ANSWERING
    # Assert 2: change report
    assert change.visibility_delta.now_visible == ["2"]
    assert change.visibility_delta.now_hidden == []
    assert change.violations == []
    assert change.can_submit is True
    # Assert 3: event published
    events = get_buffered_events()
    assert [e["type"] for e in events] == [ANSWER_CHANGED]
    assert events[0]["payload"]["question_id"] == "1"


def test_prior_response_resumes_into_submitted_state(gated_assessment, make_records):
    records = make_records(7, 3, ["2024-01-01", "2024-02-01"])
    session = AssessmentSession(gated_assessment, records)

    assert session.state == SessionState.SUBMITTED
    assert session.answers == {"1": "answer from 2024-02-01"}
    assert session.resumed is True
    assert session.resumed_from.id == 2
    assert session.can_submit is False
    assert session.transitions == [
        (SessionState.LOADING, SessionState.READY),
        (SessionState.READY, SessionState.SUBMITTED),
    ]
    assert [e["type"] for e in get_buffered_events()] == [SESSION_RESUMED]


def test_resumed_session_rejects_answer_changes(gated_assessment, make_records):
    session = AssessmentSession(gated_assessment, make_records(7, 3, ["2024-01-01"]))
    with pytest.raises(SessionStateError) as excinfo:
        session.on_answer_change("1", "new")
    assert excinfo.value.state == SessionState.SUBMITTED
    assert session.answers == {"1": "answer from 2024-01-01"}


def test_load_session_by_job_fetches_assessment_and_responses(gated_assessment, make_records):
    layer = InMemoryDataLayer([gated_assessment], make_records(7, 3, ["2024-01-01", "2024-02-01"]))
    session = anyio.run(load_session, layer, 3)
    assert session.state == SessionState.SUBMITTED
    assert session.assessment.id == 7
    assert session.answers["1"] == "answer from 2024-02-01"


def test_load_session_by_assessment_id_without_prior_responses(gated_assessment):
    layer = InMemoryDataLayer([gated_assessment])
    session = anyio.run(load_session, layer, None, 7)
    assert session.state == SessionState.READY
    assert session.job_id == 3
    assert session.answers == {}


def test_unknown_assessment_lands_in_load_error(gated_assessment):
    layer = InMemoryDataLayer([gated_assessment])
    session = anyio.run(load_session, layer, 404)

    assert session.state == SessionState.LOAD_ERROR
    assert "404" in session.load_error
    assert session.visible_questions == []
    assert [e["type"] for e in get_buffered_events()] == [SESSION_LOAD_FAILED]
    with pytest.raises(SessionStateError):
        session.on_answer_change("1", "x")
    with pytest.raises(SessionStateError):
        anyio.run(session.submit)


def test_failed_prior_response_fetch_starts_a_fresh_session(gated_assessment):
    for args in ((3,), (3, 7)):
        layer = BrokenResponsesDataLayer([gated_assessment])
        session = anyio.run(load_session, layer, *args)
        assert session.state == SessionState.READY
        assert session.answers == {}


def test_session_in_loading_state_rejects_work():
    session = AssessmentSession()
    assert session.state == SessionState.LOADING
    assert session.can_submit is False
    with pytest.raises(SessionStateError):
        session.on_answer_change("1", "x")


# ----------------------------------------------------------------------------
# Answer changes
# ----------------------------------------------------------------------------


def test_unknown_question_is_rejected(gated_assessment):
    session = AssessmentSession(gated_assessment, [])
    with pytest.raises(UnknownQuestionError):
        session.on_answer_change("99", "x")
    assert session.state == SessionState.READY


def test_hiding_an_answered_question_reports_suppressed_answer(mixed_assessment):
    session = AssessmentSession(mixed_assessment, [])
    shown = session.on_input("1", 2)
    assert shown.value == "2"
    assert shown.visibility_delta.now_visible == ["7"]
    assert "7" in shown.violations

    session.on_input("7", "Led the design system rewrite")
    hidden = session.on_input("1", 0)
    assert hidden.visibility_delta.now_hidden == ["7"]
    assert hidden.suppressed_answers == ["7"]
    # Hidden answers stay stored but no longer block
    assert session.answers["7"] == "Led the design system rewrite"
    assert "7" not in hidden.violations


def test_multiple_select_input_toggles_stored_selection(mixed_assessment):
    session = AssessmentSession(mixed_assessment, [])
    session.on_input("2", 0)
    session.on_input("2", 2)
    session.on_input("2", 0)
    assert session.answers["2"] == [2]
    change = session.on_input("2", 2)
    assert change.value == []
    assert "2" in change.violations


def test_review_labels_visible_questions_in_order(mixed_assessment):
    session = AssessmentSession(mixed_assessment, [])
    session.on_input("1", 2)
    session.on_input("2", 1)
    session.on_input("3", True)
    session.on_input("6", 4)

    review = session.review()
    assert [r.label for r in review] == [f"Q{i}" for i in range(1, 11)]
    by_id = {r.question_id: r.answer_text for r in review}
    assert by_id["1"] == "Senior"
    assert by_id["2"] == "Vue"
    assert by_id["3"] == "True"
    assert by_id["6"] == "4"
    assert by_id["7"] == "No answer"
    assert by_id["9"] == "No file uploaded"
    assert by_id["10"] == "def fizz():\n    pass"


# ----------------------------------------------------------------------------
# Submission
# ----------------------------------------------------------------------------


def test_submit_with_violations_does_not_call_data_layer(gated_assessment):
    layer = InMemoryDataLayer([gated_assessment])
    session = AssessmentSession(gated_assessment, [], data_layer=layer)
    assert anyio.run(session.submit) is None
    assert layer.submit_calls == []
    assert session.state == SessionState.READY


def test_successful_submit_stores_record_and_finishes(gated_assessment):
    layer = InMemoryDataLayer([gated_assessment])
    session = AssessmentSession(gated_assessment, [], data_layer=layer, candidate_id=42)
    session.on_answer_change("1", "hello")
    get_buffered_events()

    record = anyio.run(session.submit)

    assert record is not None
    assert record.responses == {"1": "hello"}
    assert record.job_id == 3
    assert record.candidate_id == 42
    assert session.state == SessionState.SUBMITTED
    assert session.submitted_record == record
    assert [e["type"] for e in get_buffered_events()] == [SESSION_SUBMITTED]
    assert session.transitions[-2:] == [
        (SessionState.ANSWERING, SessionState.SUBMITTING),
        (SessionState.SUBMITTING, SessionState.SUBMITTED),
    ]
    with pytest.raises(SessionStateError):
        anyio.run(session.submit)


def test_submit_from_ready_passes_through_answering():
    assessment = {"id": 1, "questions": [{"id": 1, "type": "essay"}]}
    layer = InMemoryDataLayer([assessment])
    session = AssessmentSession(assessment, [], data_layer=layer)
    anyio.run(session.submit)
    assert [to for _, to in session.transitions] == [
        SessionState.READY,
        SessionState.ANSWERING,
        SessionState.SUBMITTING,
        SessionState.SUBMITTED,
    ]


def test_concurrent_submit_issues_a_single_data_layer_call(gated_assessment):
    async def scenario():
        layer = GatedDataLayer([gated_assessment])
        layer.gate = asyncio.Event()
        session = AssessmentSession(gated_assessment, [], data_layer=layer)
        session.on_answer_change("1", "hello")

        first = asyncio.create_task(session.submit())
        await asyncio.sleep(0)
        assert session.state == SessionState.SUBMITTING
        second = await session.submit()

        layer.gate.set()
        record = await first
        return layer, session, record, second

    layer, session, record, second = anyio.run(scenario)
    assert second is None
    assert record is not None
    assert len(layer.submit_calls) == 1
    assert session.state == SessionState.SUBMITTED


def test_failed_submit_returns_to_answering_and_can_retry(gated_assessment):
    layer = RejectingDataLayer([gated_assessment], failures=1)
    session = AssessmentSession(gated_assessment, [], data_layer=layer)
    session.on_answer_change("1", "hello")

    with pytest.raises(SubmissionError):
        anyio.run(session.submit)
    assert session.state == SessionState.ANSWERING
    assert session.can_submit is True

    record = anyio.run(session.submit)
    assert record is not None
    assert layer.attempts == 2
    assert session.state == SessionState.SUBMITTED


def test_subscribers_receive_session_events(gated_assessment):
    seen = []
    unsubscribe = subscribe(seen.append)
    try:
        session = AssessmentSession(gated_assessment, [])
        session.on_answer_change("1", "a")
    finally:
        unsubscribe()
    session.on_answer_change("1", "b")
    assert [e["type"] for e in seen] == [ANSWER_CHANGED]
