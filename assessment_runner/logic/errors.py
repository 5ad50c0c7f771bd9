"""Exception types raised by the assessment runner core."""

from __future__ import annotations


class AssessmentRunnerError(Exception):
    pass


class AssessmentNotFound(AssessmentRunnerError):
    """Raised by data layers when the requested assessment does not exist."""


class SessionStateError(AssessmentRunnerError):
    """Raised when an operation is not allowed in the session's current state."""

    def __init__(self, message: str, state: str) -> None:
        super().__init__(message)
        self.state = state


class UnknownQuestionError(AssessmentRunnerError, KeyError):
    def __init__(self, question_id: str) -> None:
        super().__init__(question_id)
        self.question_id = question_id

    def __str__(self) -> str:
        return f"unknown question_id: {self.question_id}"


class AnswerEncodingError(AssessmentRunnerError, ValueError):
    """Raised when a raw input cannot be encoded for the question's type."""

    def __init__(self, question_id: str, reason: str) -> None:
        super().__init__(f"{reason} (question_id={question_id})")
        self.question_id = question_id
        self.reason = reason


class UnsupportedInputError(AnswerEncodingError):
    """Raised for question types that have review rendering but no input."""


class SubmissionError(AssessmentRunnerError):
    """Raised by data layers when a submission is rejected."""


__all__ = [
    "AssessmentRunnerError",
    "AssessmentNotFound",
    "SessionStateError",
    "UnknownQuestionError",
    "AnswerEncodingError",
    "UnsupportedInputError",
    "SubmissionError",
]
