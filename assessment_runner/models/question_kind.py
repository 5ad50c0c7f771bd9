"""Closed vocabularies used by assessments and sessions.

Simple constants containers instead of Enums so that unknown values coming
from stored assessments can still be carried (and dispatched to a default)
without failing model validation.
"""

from __future__ import annotations


class QuestionType:
    MULTIPLE_CHOICE = "multiple_choice"
    MULTIPLE_SELECT = "multiple_select"
    TRUE_FALSE = "true_false"
    SHORT_ANSWER = "short_answer"
    ESSAY = "essay"
    RATING_SCALE = "rating_scale"
    LIKERT_SCALE = "likert_scale"
    FILE_UPLOAD = "file_upload"
    CODING = "coding"

    ALL = frozenset(
        {
            MULTIPLE_CHOICE,
            MULTIPLE_SELECT,
            TRUE_FALSE,
            SHORT_ANSWER,
            ESSAY,
            RATING_SCALE,
            LIKERT_SCALE,
            FILE_UPLOAD,
            CODING,
        }
    )
    # Types with review rendering but no input encoding
    REVIEW_ONLY = frozenset({LIKERT_SCALE, FILE_UPLOAD, CODING})


class ConditionOperator:
    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"

    ALL = frozenset(
        {EQUALS, NOT_EQUALS, CONTAINS, GREATER_THAN, LESS_THAN, IS_EMPTY, IS_NOT_EMPTY}
    )


class SessionState:
    LOADING = "loading"
    LOAD_ERROR = "load_error"
    READY = "ready"
    ANSWERING = "answering"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"

    # States in which the answer map may still change
    EDITABLE = frozenset({READY, ANSWERING})
    TERMINAL = frozenset({LOAD_ERROR, SUBMITTED})


__all__ = ["QuestionType", "ConditionOperator", "SessionState"]
