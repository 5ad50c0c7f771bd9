"""Problem+JSON utilities and global exception handlers.

Defines the RFC7807 media type, a builder for problem bodies carrying a
stable `code` token, and handler callables that turn HTTP exceptions,
request validation failures and core errors into application/problem+json
responses.
"""

from __future__ import annotations

from typing import Any, Dict
import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from assessment_runner.logic.errors import (
    AnswerEncodingError,
    AssessmentNotFound,
    AssessmentRunnerError,
    SessionStateError,
    UnknownQuestionError,
)

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)

_TITLES = {
    400: "Bad Request",
    404: "Not Found",
    409: "Conflict",
    422: "Invalid Request",
    500: "Internal Server Error",
    502: "Bad Gateway",
}


def problem(status: int, code: str, detail: str, **extra: Any) -> Dict[str, Any]:
    """Return a problem body with a machine-readable `code`."""
    body: Dict[str, Any] = {
        "title": _TITLES.get(status, "Error"),
        "status": status,
        "detail": detail,
        "code": code,
    }
    body.update(extra)
    logger.info("error_handler.handle code=%s status=%s", code, status)
    return body


def problem_response(status: int, code: str, detail: str, **extra: Any) -> JSONResponse:
    return JSONResponse(problem(status, code, detail, **extra), status_code=status, media_type=PROBLEM_MEDIA_TYPE)


def runner_error_status(exc: AssessmentRunnerError) -> tuple[int, str]:
    """Map a core error to (HTTP status, problem code)."""
    if isinstance(exc, (AssessmentNotFound, UnknownQuestionError)):
        return 404, "RESOURCE_NOT_FOUND"
    if isinstance(exc, SessionStateError):
        return 409, "SESSION_STATE_CONFLICT"
    if isinstance(exc, AnswerEncodingError):
        return 422, "ANSWER_ENCODING_INVALID"
    return 500, "INTERNAL_ERROR"


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status = int(getattr(exc, "status_code", 500) or 500)
    if isinstance(exc.detail, dict):
        body = dict(exc.detail)
    else:
        body = {"title": _TITLES.get(status, "Error"), "status": status, "detail": str(exc.detail or "")}
    headers = {str(k): str(v) for k, v in (exc.headers or {}).items()}
    return JSONResponse(body, status_code=status, media_type=PROBLEM_MEDIA_TYPE, headers=headers or None)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    body = {
        "title": "Invalid Request",
        "status": 422,
        "detail": "Request validation failed",
        "code": "REQUEST_VALIDATION_FAILED",
        "errors": [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
            for err in exc.errors()
        ],
    }
    return JSONResponse(body, status_code=422, media_type=PROBLEM_MEDIA_TYPE)


async def handle_runner_error(request: Request, exc: AssessmentRunnerError) -> JSONResponse:  # noqa: D401
    status, code = runner_error_status(exc)
    if status >= 500:
        logger.error("runner_error path=%s", request.url.path, exc_info=exc)
    return problem_response(status, code, str(exc))


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return JSONResponse({"title": "Internal Server Error", "status": 500}, status_code=500, media_type=PROBLEM_MEDIA_TYPE)


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "problem",
    "problem_response",
    "runner_error_status",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_runner_error",
    "handle_unexpected_error",
]
