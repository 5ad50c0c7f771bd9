"""Assessment session endpoints.

Implements:
- POST  /sessions                                   load an assessment and start a session
- GET   /sessions/{session_id}                      current form state
- PATCH /sessions/{session_id}/answers/{question_id} store one answer
- POST  /sessions/{session_id}/submit               submit once, gated on violations
- GET   /sessions/{session_id}/review               decoded answers for review
- DELETE /sessions/{session_id}                     end a session and drop its answers

All handlers are coroutines so every session is only touched from the event
loop thread.
"""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, Response

from assessment_runner.config import AppConfig
from assessment_runner.http.problem import PROBLEM_MEDIA_TYPE, problem, problem_response
from assessment_runner.logic.data_layer import AssessmentDataLayer
from assessment_runner.logic.errors import SessionStateError
from assessment_runner.logic.gating import evaluate_gating
from assessment_runner.logic.session import load_session
from assessment_runner.logic.session_registry import SessionRegistry
from assessment_runner.models.question_kind import SessionState
from assessment_runner.models.response_types import ReviewItem, SessionView
from assessment_runner.models.session_requests import AnswerUpsertModel, CreateSessionRequest

router = APIRouter()
logger = logging.getLogger(__name__)


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.sessions


def get_data_layer(request: Request) -> AssessmentDataLayer:
    return request.app.state.data_layer


def get_config(request: Request) -> AppConfig:
    return request.app.state.config


def _session_not_found(session_id: str) -> JSONResponse:
    return problem_response(404, "SESSION_NOT_FOUND", f"session {session_id} not found")


@router.post("/sessions", summary="Load an assessment and start a session", status_code=201)
async def create_session(
    payload: CreateSessionRequest,
    registry: SessionRegistry = Depends(get_registry),
    data_layer: AssessmentDataLayer = Depends(get_data_layer),
    config: AppConfig = Depends(get_config),
):
    session = await load_session(
        data_layer,
        payload.job_id,
        payload.assessment_id,
        candidate_id=payload.candidate_id,
        settings=config.codec,
    )
    if session.state == SessionState.LOAD_ERROR:
        return problem_response(
            404, "LOAD_ASSESSMENT_NOT_FOUND", session.load_error or "assessment could not be loaded"
        )
    registry.register(session)
    return JSONResponse(session.snapshot().model_dump(mode="json"), status_code=201)


@router.get("/sessions/{session_id}", summary="Current session state", response_model=SessionView)
async def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    session = registry.get(session_id)
    if session is None:
        return _session_not_found(session_id)
    return session.snapshot()


@router.patch("/sessions/{session_id}/answers/{question_id}", summary="Store one answer")
async def patch_answer(
    session_id: str,
    question_id: str,
    payload: AnswerUpsertModel,
    registry: SessionRegistry = Depends(get_registry),
):
    session = registry.get(session_id)
    if session is None:
        return _session_not_found(session_id)
    if payload.is_raw_input:
        change = session.on_input(question_id, payload.input)
    else:
        change = session.on_answer_change(question_id, payload.value)
    return {
        "change": change.model_dump(mode="json"),
        "session": session.snapshot().model_dump(mode="json"),
    }


@router.post("/sessions/{session_id}/submit", summary="Submit the session's answers")
async def submit_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    session = registry.get(session_id)
    if session is None:
        return _session_not_found(session_id)
    if session.state == SessionState.SUBMITTING:
        return problem_response(409, "SUBMIT_IN_FLIGHT", "a submission is already in progress")
    if session.state in SessionState.EDITABLE:
        verdict = evaluate_gating(session.questions, session.answers)
        if not verdict.ok:
            body = problem(
                409,
                "SUBMIT_BLOCKED",
                "required questions are unanswered",
                blocking_items=[item.model_dump() for item in verdict.blocking_items],
            )
            return JSONResponse(body, status_code=409, media_type=PROBLEM_MEDIA_TYPE)
    try:
        record = await session.submit()
    except SessionStateError:
        # Mapped to 409 by the global handler
        raise
    except Exception as exc:
        return problem_response(502, "SUBMIT_FAILED", str(exc) or "submission failed")
    if record is None:
        return problem_response(409, "SUBMIT_IN_FLIGHT", "a submission is already in progress")
    return {
        "record": record.model_dump(mode="json"),
        "session": session.snapshot().model_dump(mode="json"),
    }


@router.get("/sessions/{session_id}/review", summary="Decoded answers for review", response_model=List[ReviewItem])
async def review_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    session = registry.get(session_id)
    if session is None:
        return _session_not_found(session_id)
    return session.review()


@router.delete("/sessions/{session_id}", summary="End a session", status_code=204)
async def end_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    session = registry.get(session_id)
    if session is None:
        return _session_not_found(session_id)
    if session.state == SessionState.SUBMITTING:
        return problem_response(409, "SUBMIT_IN_FLIGHT", "a submission is already in progress")
    registry.discard(session_id)
    logger.info("session_ended session_id=%s state=%s", session_id, session.state)
    return Response(status_code=204)


__all__ = ["router", "create_session", "get_session", "patch_answer", "submit_session", "review_session", "end_session"]
