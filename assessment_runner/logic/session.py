"""Assessment session state machine.

An `AssessmentSession` owns one candidate's answer map for one assessment and
exposes the derived form state (visible questions, violations, whether a
submit is allowed). Derived state is recomputed from (assessment, answers) on
every access, so it can never go stale.

State flow:

    loading -> load_error
    loading -> ready -> answering -> submitting -> submitted
    ready -> submitted                    (resumed from a prior response)

`load_error` and `submitted` are terminal. A failed submit returns the session
to `answering` so the candidate can try again.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional, Tuple

from assessment_runner.config import CodecConfig
from assessment_runner.logic.answer_codec import decode_for_review, encode_answer
from assessment_runner.logic.data_layer import AssessmentDataLayer
from assessment_runner.logic.errors import (
    AssessmentRunnerError,
    SessionStateError,
    UnknownQuestionError,
)
from assessment_runner.logic.events import (
    ANSWER_CHANGED,
    SESSION_LOAD_FAILED,
    SESSION_RESUMED,
    SESSION_SUBMITTED,
    publish,
)
from assessment_runner.logic.gating import find_violations, is_answer_missing
from assessment_runner.logic.resumption import select_latest_response
from assessment_runner.logic.visibility_delta import compute_visibility_delta
from assessment_runner.logic.visibility_rules import resolve_visible
from assessment_runner.models.assessment import (
    Assessment,
    Identifier,
    Question,
    ResponseRecord,
    SubmissionPayload,
)
from assessment_runner.models.question_kind import SessionState
from assessment_runner.models.response_types import AnswerChange, ReviewItem, SessionView

logger = logging.getLogger(__name__)


class AssessmentSession:
    """One candidate's pass through one assessment.

    Constructed with an assessment (and the prior response records for its
    assessment/job pair) the session completes loading immediately: it lands
    in `ready`, or in `submitted` when a prior response is resumed. Constructed
    without one it stays in `loading` until `begin()` or `fail()` is called.
    """

    def __init__(
        self,
        assessment: Assessment | Dict[str, Any] | None = None,
        responses: Iterable[ResponseRecord | Dict[str, Any]] | None = None,
        *,
        data_layer: AssessmentDataLayer | None = None,
        job_id: Identifier | None = None,
        candidate_id: Identifier = 0,
        settings: CodecConfig | None = None,
        session_id: str | None = None,
    ) -> None:
        self.session_id = session_id or str(uuid.uuid4())
        self.data_layer = data_layer
        self.job_id = job_id
        self.candidate_id = candidate_id
        self.settings = settings or CodecConfig()
        self.state: str = SessionState.LOADING
        self.assessment: Optional[Assessment] = None
        self.load_error: Optional[str] = None
        self.resumed_from: Optional[ResponseRecord] = None
        self.submitted_record: Optional[ResponseRecord] = None
        self.transitions: List[Tuple[str, str]] = []
        self._answers: Dict[str, Any] = {}
        if assessment is not None:
            self.begin(assessment, responses)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _transition(self, new_state: str) -> None:
        old = self.state
        self.transitions.append((old, new_state))
        self.state = new_state
        logger.info("session_transition session_id=%s from=%s to=%s", self.session_id, old, new_state)

    def _require_state(self, allowed: Iterable[str], action: str) -> None:
        if self.state not in allowed:
            raise SessionStateError(f"cannot {action} while {self.state}", self.state)

    def begin(
        self,
        assessment: Assessment | Dict[str, Any],
        responses: Iterable[ResponseRecord | Dict[str, Any]] | None = None,
    ) -> None:
        """Finish loading with a fetched assessment and its prior responses."""
        self._require_state({SessionState.LOADING}, "begin")
        self.assessment = (
            assessment if isinstance(assessment, Assessment) else Assessment.model_validate(assessment)
        )
        if self.job_id is None:
            self.job_id = self.assessment.job_id
        records = [
            r if isinstance(r, ResponseRecord) else ResponseRecord.model_validate(r)
            for r in (responses or [])
        ]
        self._transition(SessionState.READY)
        logger.info(
            "session_loaded session_id=%s assessment_id=%s questions=%d prior_responses=%d",
            self.session_id,
            self.assessment.id,
            len(self.assessment.questions),
            len(records),
        )
        latest = select_latest_response(records)
        if latest is not None and not self._answers:
            self._answers = dict(latest.responses)
            self.resumed_from = latest
            self._transition(SessionState.SUBMITTED)
            publish(
                SESSION_RESUMED,
                {
                    "session_id": self.session_id,
                    "assessment_id": self.assessment.id,
                    "response_id": latest.id,
                },
            )

    def fail(self, reason: str) -> None:
        """Mark loading as failed; the session becomes unusable."""
        self._require_state({SessionState.LOADING}, "fail loading")
        self.load_error = reason
        self._transition(SessionState.LOAD_ERROR)
        publish(SESSION_LOAD_FAILED, {"session_id": self.session_id, "reason": reason})

    # ------------------------------------------------------------------
    # Derived state
    # ------------------------------------------------------------------

    @property
    def answers(self) -> Dict[str, Any]:
        return dict(self._answers)

    @property
    def questions(self) -> List[Question]:
        return list(self.assessment.questions) if self.assessment is not None else []

    @property
    def visible_questions(self) -> List[Question]:
        return resolve_visible(self.questions, self._answers)

    @property
    def violations(self) -> List[Question]:
        return find_violations(self.visible_questions, self._answers)

    @property
    def can_submit(self) -> bool:
        return self.state in SessionState.EDITABLE and not self.violations

    @property
    def resumed(self) -> bool:
        return self.resumed_from is not None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _question(self, question_id: Any) -> Question:
        question = self.assessment.get_question(question_id) if self.assessment is not None else None
        if question is None:
            raise UnknownQuestionError(str(question_id))
        return question

    def on_answer_change(self, question_id: Any, value: Any) -> AnswerChange:
        """Store a canonical answer and report how the form changed."""
        self._require_state(SessionState.EDITABLE, "change answers")
        question = self._question(question_id)
        pre_visible = self.visible_questions

        if isinstance(value, (list, tuple)):
            value = list(value)
        self._answers[question.id] = value
        if self.state == SessionState.READY:
            self._transition(SessionState.ANSWERING)

        post_visible = self.visible_questions
        delta, suppressed = compute_visibility_delta(
            pre_visible,
            post_visible,
            lambda qid: not is_answer_missing(self._answers.get(qid)),
        )
        violations = [q.id for q in find_violations(post_visible, self._answers)]
        change = AnswerChange(
            question_id=question.id,
            value=value,
            state=self.state,
            visibility_delta=delta,
            suppressed_answers=suppressed,
            violations=violations,
            can_submit=not violations,
        )
        logger.info(
            "answer_changed session_id=%s question_id=%s now_visible=%s now_hidden=%s violations=%s",
            self.session_id,
            question.id,
            delta.now_visible,
            delta.now_hidden,
            violations,
        )
        publish(ANSWER_CHANGED, {"session_id": self.session_id, "question_id": question.id})
        return change

    def on_input(self, question_id: Any, raw: Any) -> AnswerChange:
        """Encode a raw input event for the question's type, then store it."""
        self._require_state(SessionState.EDITABLE, "change answers")
        question = self._question(question_id)
        value = encode_answer(question, raw, self._answers.get(question.id), self.settings)
        return self.on_answer_change(question.id, value)

    async def submit(self) -> Optional[ResponseRecord]:
        """Submit the current answers.

        Returns the stored record on success. Returns None without calling the
        data layer when a submit is already in flight or required questions
        are unanswered. Submission errors propagate after the session has
        returned to `answering`.
        """
        if self.state == SessionState.SUBMITTING:
            logger.info("submit_ignored_in_flight session_id=%s", self.session_id)
            return None
        self._require_state(SessionState.EDITABLE, "submit")
        violations = self.violations
        if violations:
            logger.info(
                "submit_blocked session_id=%s violations=%s",
                self.session_id,
                [q.id for q in violations],
            )
            return None
        if self.data_layer is None:
            raise AssessmentRunnerError("session has no data layer to submit to")

        if self.state == SessionState.READY:
            self._transition(SessionState.ANSWERING)
        # Entered before the first await: concurrent submits see SUBMITTING
        self._transition(SessionState.SUBMITTING)
        payload = SubmissionPayload(
            assessment_id=self.assessment.id,
            job_id=self.job_id,
            candidate_id=self.candidate_id,
            responses=dict(self._answers),
        )
        try:
            record = await self.data_layer.submit_response(payload)
        except Exception:
            logger.error("submit_failed session_id=%s", self.session_id, exc_info=True)
            self._transition(SessionState.ANSWERING)
            raise
        self.submitted_record = record
        self._transition(SessionState.SUBMITTED)
        publish(
            SESSION_SUBMITTED,
            {
                "session_id": self.session_id,
                "assessment_id": self.assessment.id,
                "response_id": record.id,
            },
        )
        return record

    # ------------------------------------------------------------------
    # Read models
    # ------------------------------------------------------------------

    def review(self) -> List[ReviewItem]:
        """Render each visible question with its decoded answer."""
        return [
            ReviewItem(
                label=f"Q{idx}",
                question_id=q.id,
                type=q.type,
                prompt=q.prompt,
                description=q.description,
                answer_text=decode_for_review(q, self._answers.get(q.id)),
            )
            for idx, q in enumerate(self.visible_questions, start=1)
        ]

    def snapshot(self) -> SessionView:
        assessment = self.assessment
        visible = self.visible_questions
        return SessionView(
            session_id=self.session_id,
            state=self.state,
            assessment_id=assessment.id if assessment is not None else None,
            job_id=self.job_id,
            title=assessment.title if assessment is not None else None,
            description=assessment.description if assessment is not None else None,
            visible_questions=visible,
            violations=[q.id for q in find_violations(visible, self._answers)],
            can_submit=self.can_submit,
            answers=dict(self._answers),
            resumed=self.resumed,
            load_error=self.load_error,
        )


async def load_session(
    data_layer: AssessmentDataLayer,
    job_id: Identifier | None,
    assessment_id: Identifier | None = None,
    *,
    candidate_id: Identifier = 0,
    settings: CodecConfig | None = None,
) -> AssessmentSession:
    """Fetch an assessment and its prior responses, then start a session.

    A specific `assessment_id` is preferred over the job's assessment. The
    returned session is in `load_error` when the assessment cannot be fetched.
    A failure to fetch prior responses is logged and treated as "none".
    """
    session = AssessmentSession(
        data_layer=data_layer, job_id=job_id, candidate_id=candidate_id, settings=settings
    )
    records: List[ResponseRecord] = []
    try:
        if assessment_id is not None:
            fetched, prior = await asyncio.gather(
                data_layer.fetch_assessment_by_id(assessment_id),
                data_layer.fetch_responses(assessment_id, job_id),
                return_exceptions=True,
            )
            if isinstance(fetched, BaseException):
                raise fetched
            assessment = fetched
            if isinstance(prior, BaseException):
                logger.warning(
                    "prior_responses_fetch_failed assessment_id=%s job_id=%s",
                    assessment_id,
                    job_id,
                    exc_info=prior,
                )
            else:
                records = list(prior)
        else:
            if job_id is None:
                raise AssessmentRunnerError("either job_id or assessment_id is required")
            assessment = await data_layer.fetch_assessment_by_job(job_id)
            try:
                records = list(await data_layer.fetch_responses(assessment.id, job_id))
            except Exception:
                logger.warning(
                    "prior_responses_fetch_failed assessment_id=%s job_id=%s",
                    assessment.id,
                    job_id,
                    exc_info=True,
                )
    except Exception as exc:
        logger.warning(
            "session_load_failed job_id=%s assessment_id=%s error=%s", job_id, assessment_id, exc
        )
        session.fail(str(exc) or type(exc).__name__)
        return session
    session.begin(assessment, records)
    return session


__all__ = ["AssessmentSession", "load_session"]
